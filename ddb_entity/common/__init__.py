"""Payload helpers shared by the connector."""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from ddb_entity.types import DynamoItem

T = TypeVar("T")


def chunk(sequence: Sequence[T], size: int) -> List[List[T]]:
    """Split ``sequence`` into ordered groups of at most ``size`` elements."""

    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(sequence[pos: pos + size]) for pos in range(0, len(sequence), size)]


def clean_item(item: Optional[DynamoItem]) -> Optional[DynamoItem]:
    """Return a copy of ``item`` prepared for a write.

    Empty strings are dropped at every depth and floats become ``Decimal``,
    which is the only non-integer number type the boto3 serializer accepts.
    A set left empty by the stripping is dropped as well, since DynamoDB
    refuses empty sets. The input is left untouched.
    """

    if item is None:
        return None
    return _clean_mapping(item)


def _clean_mapping(mapping: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {key: _clean_value(value) for key, value in mapping.items()}
    return {key: value for key, value in cleaned.items() if not _is_blank(value)}


def _clean_value(value: Any) -> Any:
    if isinstance(value, dict):
        return _clean_mapping(value)
    if isinstance(value, (list, tuple)):
        return [inner for inner in map(_clean_value, value) if not _is_blank(inner)]
    if isinstance(value, (set, frozenset)):
        return {_clean_value(inner) for inner in value if inner != ""}
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _is_blank(value: Any) -> bool:
    if isinstance(value, (set, frozenset)):
        return not value
    return isinstance(value, str) and value == ""
