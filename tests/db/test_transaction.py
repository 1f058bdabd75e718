"""Tests for ``lmsdb.db.transaction.TransactionCoordinator``."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from lmsdb.core.errors import TransactionError
from lmsdb.core.sqlite_conn import SqliteConnection
from lmsdb.db.transaction import TransactionCoordinator


class _FailingConn(SqliteConnection):
    """SQLite connection whose commit always fails."""

    def __init__(self) -> None:
        super().__init__(":memory:")
        self.rollbacks = 0

    def commit(self) -> None:
        raise RuntimeError("database is locked")

    def rollback(self) -> None:
        self.rollbacks += 1
        super().rollback()


class _BrokenConn(_FailingConn):
    """Commit and rollback both fail."""

    def rollback(self) -> None:
        self.rollbacks += 1
        raise RuntimeError("disk I/O error")


@pytest.fixture
def tx(conn) -> TransactionCoordinator:
    conn.execute("CREATE TABLE t (id INTEGER)")
    return TransactionCoordinator(conn)


def _count(conn) -> int:
    conn.execute("SELECT COUNT(*) FROM t")
    return conn.fetchone()[0]


class TestBeginCommitRollback:
    def test_commit(self, tx, conn):
        tx.begin()
        assert tx.active
        conn.execute("INSERT INTO t VALUES (1)")
        tx.commit()
        assert not tx.active
        assert _count(conn) == 1

    def test_rollback(self, tx, conn):
        tx.begin()
        conn.execute("INSERT INTO t VALUES (1)")
        tx.rollback()
        assert _count(conn) == 0

    def test_begin_while_open_rolls_back(self, tx, conn):
        tx.begin()
        conn.execute("INSERT INTO t VALUES (1)")
        with capture_logs() as logs:
            with pytest.raises(TransactionError, match="error in begin"):
                tx.begin()
        assert not tx.active
        assert _count(conn) == 0
        assert logs[0]["event"] == "transaction_already_open"
        assert logs[0]["log_level"] == "warning"

    def test_failed_commit_rolls_back(self):
        conn = _FailingConn()
        tx = TransactionCoordinator(conn)
        tx.begin()
        with pytest.raises(TransactionError, match="error in commit: database is locked") as exc:
            tx.commit()
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert conn.rollbacks == 1
        assert not tx.active
        conn.close()

    def test_failed_rollback_after_failed_commit(self):
        conn = _BrokenConn()
        tx = TransactionCoordinator(conn)
        tx.begin()
        with capture_logs() as logs:
            with pytest.raises(TransactionError, match="error in commit: database is locked") as exc:
                tx.commit()
        assert str(exc.value.cause) == "database is locked"
        assert conn.rollbacks == 1
        assert [e["event"] for e in logs] == [
            "transaction_commit_failed", "transaction_rollback_failed",
        ]
        assert logs[1]["error"] == "disk I/O error"
        conn.raw.rollback()
        conn.close()


class TestScope:
    def test_commits(self, tx, conn):
        with tx.scope():
            conn.execute("INSERT INTO t VALUES (1)")
        assert _count(conn) == 1

    def test_rolls_back_and_reraises(self, tx, conn):
        with pytest.raises(ValueError):
            with tx.scope():
                conn.execute("INSERT INTO t VALUES (1)")
                raise ValueError("stop")
        assert _count(conn) == 0
        assert not tx.active

    def test_atomic_joins_outer(self, tx, conn):
        with pytest.raises(ValueError):
            with tx.scope():
                with tx.atomic():
                    conn.execute("INSERT INTO t VALUES (1)")
                assert tx.active
                raise ValueError("outer fails")
        assert _count(conn) == 0
