"""Lazy table creation for data-plane calls.

Every data-plane call on :class:`~ddb_entity.connector.EntityConnector` runs
through :meth:`TableRecovery.run`. When DynamoDB reports that the table does
not exist, the table is created, polled until ``ACTIVE``, and the call is
retried exactly once. Every other failure propagates untouched.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import TYPE_CHECKING, Callable, TypeVar

import structlog
from botocore.exceptions import ClientError

from ddb_entity.exception import is_table_in_use, is_table_missing

if TYPE_CHECKING:
    from ddb_entity.connector import EntityConnector

T = TypeVar("T")

logger = structlog.get_logger(__name__)

PENDING_STATUSES = frozenset({"CREATING", "UPDATING"})
ACTIVE_STATUS = "ACTIVE"


class RecoveryState(str, Enum):
    RECOVERING = "RECOVERING"
    RETRYING = "RETRYING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class TableRecovery:
    """Runs store calls and heals a missing table before a single retry."""

    def __init__(
        self,
        connector: EntityConnector,
        *,
        initial_wait_s: float = 2.5,
        poll_interval_s: float = 2.0,
        max_polls: int = 16,
    ) -> None:
        self.connector = connector
        self.initial_wait_s = initial_wait_s
        self.poll_interval_s = poll_interval_s
        self.max_polls = max(1, int(max_polls))

    def run(self, operation: str, fn: Callable[[], T]) -> T:
        """Call ``fn``; on a missing table, create it and call ``fn`` once more.

        ``fn`` is a zero-argument continuation. The second call happens outside
        this wrapper, so a failure during the retry surfaces as-is.
        """

        try:
            return fn()
        except ClientError as exc:
            if not is_table_missing(exc):
                raise
            self.recover(operation, exc)

        try:
            result = fn()
        except Exception:
            self.__log_state(RecoveryState.FAILED, operation, reason="retry_failed")
            raise
        self.__log_state(RecoveryState.SUCCESS, operation)
        return result

    def recover(self, operation: str, original: ClientError) -> None:
        """Create the table and wait until it is usable.

        Raises ``original`` when the table cannot be brought to ``ACTIVE``.
        """

        table = self.connector.table_name
        logger.warning(
            "table_missing", table=table, operation=operation, state=RecoveryState.RECOVERING.value
        )

        try:
            self.connector.create_table()
            logger.info("table_created", table=table)
        except ClientError as create_exc:
            if not is_table_in_use(create_exc):
                self.__log_state(RecoveryState.FAILED, operation, reason="create_failed")
                raise original from create_exc
            logger.info("table_create_in_progress", table=table)
        except Exception as create_exc:
            self.__log_state(RecoveryState.FAILED, operation, reason="create_failed")
            raise original from create_exc

        time.sleep(self.initial_wait_s)

        for poll in range(1, self.max_polls + 1):
            try:
                description = self.connector.describe_table()
            except Exception as describe_exc:
                self.__log_state(RecoveryState.FAILED, operation, reason="describe_failed")
                raise original from describe_exc

            if not description:
                self.__log_state(RecoveryState.FAILED, operation, reason="no_description")
                raise original

            status = description.get("TableStatus")
            if status == ACTIVE_STATUS:
                logger.info("table_active", table=table, polls=poll)
                self.__log_state(RecoveryState.RETRYING, operation)
                return
            if status not in PENDING_STATUSES:
                self.__log_state(
                    RecoveryState.FAILED, operation, reason="unexpected_status", status=status
                )
                raise original

            if poll == self.max_polls:
                self.__log_state(
                    RecoveryState.FAILED, operation, reason="timeout", status=status, polls=poll
                )
                raise original
            time.sleep(self.poll_interval_s)

    def __log_state(self, state: RecoveryState, operation: str, **extra: object) -> None:
        if state is RecoveryState.FAILED:
            logger.warning(
                "table_recovery_failed",
                table=self.connector.table_name,
                operation=operation,
                state=state.value,
                **extra,
            )
            return
        logger.debug(
            "table_recovery_state",
            table=self.connector.table_name,
            operation=operation,
            state=state.value,
            **extra,
        )
