from typing import Any, Dict

# partition key value plus the sort key value when the table defines one
DynamoKey = Dict[str, Any]
