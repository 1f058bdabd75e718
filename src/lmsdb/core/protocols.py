"""
Protocol definitions for lmsdb.

``Connection`` is the single definition of what the data-access layer needs
from a store connection.  Repositories, the table collaborator and the
transaction coordinator all depend on this shape, never on a driver.

Architecture:
    ::

        Connection Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ execute(sql, params)   → cursor (exposes .rowcount)    │
        │ executemany(sql, list) → cursor                        │
        │ fetchone()             → one row of the last query     │
        │ fetchall()             → all rows of the last query    │
        │ begin()                → open an explicit transaction  │
        │ commit()               → commit transaction            │
        │ rollback()             → rollback transaction          │
        │ in_transaction         → whether a transaction is open │
        └────────────────────────────────────────────────────────┘

Tags:
    protocol, connection, database, contracts
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """Minimal synchronous connection interface.

    One connection is shared by every repository and the transaction
    coordinator of a :class:`~lmsdb.db.database.CourseDatabase`.
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for multiple parameter sets."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...

    def begin(self) -> None:
        """Open an explicit transaction; fails if one is already open."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...

    @property
    def in_transaction(self) -> bool:
        """Whether an explicit transaction is currently open."""
        ...
