from typing import Any, Dict

TableDescription = Dict[str, Any]
