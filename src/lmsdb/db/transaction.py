"""Transaction coordinator for the shared connection.

Semantics:
    begin     fails if a transaction is already open; the open transaction
              is then rolled back (with a warning) before the error is raised
    commit    on failure rolls back, then raises; a failed rollback is
              logged and the commit error is still the one raised
    rollback  on failure raises directly

Every failure is raised as :class:`~lmsdb.core.errors.TransactionError`
with the driver error as its cause.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from lmsdb.core.errors import TransactionError
from lmsdb.core.logging import get_logger
from lmsdb.core.protocols import Connection

logger = get_logger(__name__)


class TransactionCoordinator:
    """begin/commit/rollback around one connection."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @property
    def active(self) -> bool:
        return self.conn.in_transaction

    def begin(self) -> None:
        try:
            self.conn.begin()
        except Exception as e:
            if self.conn.in_transaction:
                logger.warning("transaction_already_open", action="rollback")
                self.conn.rollback()
            raise TransactionError(f"error in begin: {e}", cause=e) from e
        logger.debug("transaction_begin")

    def commit(self) -> None:
        try:
            self.conn.commit()
        except Exception as e:
            logger.error("transaction_commit_failed", error=str(e))
            try:
                self.rollback()
            except TransactionError as rollback_error:
                logger.error("transaction_rollback_failed", error=str(rollback_error.cause))
            raise TransactionError(f"error in commit: {e}", cause=e) from e
        logger.debug("transaction_commit")

    def rollback(self) -> None:
        try:
            self.conn.rollback()
        except Exception as e:
            raise TransactionError(f"error in rollback: {e}", cause=e) from e
        logger.debug("transaction_rollback")

    @contextmanager
    def scope(self) -> Iterator[None]:
        """Commit on success, roll back on any exception."""
        self.begin()
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        self.commit()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Like :meth:`scope`, but joins a transaction that is already open."""
        if self.active:
            yield
            return
        with self.scope():
            yield


__all__ = ["TransactionCoordinator"]
