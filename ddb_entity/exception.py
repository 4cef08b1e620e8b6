"""Exceptions raised by the entity connector."""

from botocore.exceptions import ClientError

TABLE_MISSING_CODES = frozenset({"ResourceNotFoundException"})
TABLE_IN_USE_CODES = frozenset({"ResourceInUseException"})


class ConnectorError(Exception):
    """Base exception for connector failures that are not raw SDK errors."""


class BatchItemException(ConnectorError):
    """A batched write or delete could not be completed."""


def error_code(exc: BaseException) -> str:
    if not isinstance(exc, ClientError):
        return ""
    return (exc.response or {}).get("Error", {}).get("Code") or ""


def is_table_missing(exc: BaseException) -> bool:
    return error_code(exc) in TABLE_MISSING_CODES


def is_table_in_use(exc: BaseException) -> bool:
    return error_code(exc) in TABLE_IN_USE_CODES
