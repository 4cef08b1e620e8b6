"""Public interface for the ddb_entity package."""

from typing import Any

from .connector import EntityConnector
from .exception import BatchItemException, ConnectorError
from .settings import ConnectorSettings, get_settings


def connector(**kwargs: Any) -> EntityConnector:
    """Factory helper building an entity connector for the requested engine."""

    engine = kwargs.pop("engine", "dynamodb")
    if engine and engine != "dynamodb":  # only one store backend exists
        raise ValueError(f"engine {engine} not supported; only 'dynamodb' is available")
    return EntityConnector(**kwargs)


__all__ = [
    "connector",
    "EntityConnector",
    "BatchItemException",
    "ConnectorError",
    "ConnectorSettings",
    "get_settings",
]
