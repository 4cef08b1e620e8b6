"""Type exports for ddb_entity."""

from .dynamo_item import DynamoItem
from .dynamo_items import DynamoItems
from .dynamo_key import DynamoKey
from .table_description import TableDescription

__all__ = [
    "DynamoItem",
    "DynamoItems",
    "DynamoKey",
    "TableDescription",
]
