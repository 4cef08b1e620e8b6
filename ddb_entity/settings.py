from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConnectorSettings(BaseSettings):
    """Connection and recovery settings for :class:`EntityConnector`.

    Field names double as (case-insensitive) environment variable names.
    Build one explicitly and pass it to the connector, or call
    :func:`get_settings` to resolve it once from the process environment.
    """

    model_config = SettingsConfigDict(env_file=None, extra="ignore", frozen=True)

    # AWS
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None
    aws_region: str | None = None
    dynamodb_endpoint_url: str | None = None
    ddb_sdk_max_attempts: int = Field(default=10, ge=1)

    # Tables
    ddb_table_prefix: str = ""

    # Lazy table creation
    ddb_recovery_initial_wait_s: float = Field(default=2.5, ge=0)
    ddb_recovery_poll_interval_s: float = Field(default=2.0, ge=0)
    ddb_recovery_max_polls: int = Field(default=16, ge=1)

    # Batch writes
    ddb_max_batch_workers: int = Field(default=8, ge=1)

    def table_name(self, logical_name: str) -> str:
        return f"{self.ddb_table_prefix}{logical_name}"


@lru_cache(maxsize=1)
def get_settings() -> ConnectorSettings:
    return ConnectorSettings()
