"""SQL dialect abstraction for the table collaborator.

The table collaborator (:mod:`lmsdb.db.table`) never writes backend-specific
SQL directly.  Placeholders, identifier quoting, auto-increment DDL, table
introspection and the classification of driver errors all come from a
:class:`Dialect`.

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │  SQLTable                                                        │
    │    sql = f"SELECT * FROM {d.quote(table)} WHERE ..."             │
    │    try: conn.execute(sql, params)                                │
    │    except Exception as e:                                        │
    │        if d.is_duplicate_key(e): raise RecordExists(...)         │
    │        if d.is_missing_table(e): raise TableMissing(...)         │
    └──────────────────────────────────────────────────────────────────┘
                              │
                              ▼
                       ┌──────────────┐
                       │ SQLiteDialect │  ?, "ident", AUTOINCREMENT
                       └──────────────┘

Examples:
    >>> d = SQLiteDialect()
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> d.quote("math101_user")
    '"math101_user"'

Tags:
    dialect, sql, abstraction, portability, database
"""

from __future__ import annotations

import sqlite3
from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract used by the table collaborator."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    # -- Placeholder generation --------------------------------------------

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    # -- Identifiers -------------------------------------------------------

    def quote(self, identifier: str) -> str:
        """Quote a table or column name."""
        ...

    # -- DDL helpers -------------------------------------------------------

    def column_type(self, python_type: type) -> str:
        """Column type for a record field annotated with ``python_type``."""
        ...

    def auto_increment(self) -> str:
        """Full column type for an auto-incrementing integer primary key."""
        ...

    def table_exists_query(self) -> str:
        """Query with one placeholder (table name) returning a row if it exists."""
        ...

    def rename_table(self, old: str, new: str) -> str:
        """``ALTER TABLE … RENAME TO …`` statement."""
        ...

    # -- Error classification ----------------------------------------------

    def is_duplicate_key(self, error: BaseException) -> bool:
        """Whether ``error`` is a primary-key uniqueness violation."""
        ...

    def is_missing_table(self, error: BaseException) -> bool:
        """Whether ``error`` reports a table that does not exist."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, double-quoted identifiers."""

    @property
    def name(self) -> str:
        return "sqlite"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- Identifiers -------------------------------------------------------

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    # -- DDL ---------------------------------------------------------------

    def column_type(self, python_type: type) -> str:
        if python_type is int:
            return "INTEGER"
        if python_type is float:
            return "REAL"
        return "TEXT"

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type='table' AND name=?"

    def rename_table(self, old: str, new: str) -> str:
        return f"ALTER TABLE {self.quote(old)} RENAME TO {self.quote(new)}"

    # -- Errors ------------------------------------------------------------

    def is_duplicate_key(self, error: BaseException) -> bool:
        return isinstance(error, sqlite3.IntegrityError) and "UNIQUE constraint failed" in str(
            error
        )

    def is_missing_table(self, error: BaseException) -> bool:
        return isinstance(error, sqlite3.OperationalError) and "no such table" in str(error)

    def __repr__(self) -> str:
        return "SQLiteDialect()"


# =========================================================================
# Auto-detection
# =========================================================================

_DIALECTS: dict[str, Dialect] = {"sqlite": SQLiteDialect()}


def get_dialect(backend: str) -> Dialect:
    """Return the dialect registered for a backend name.

    Raises:
        KeyError: If no dialect is registered for ``backend``.
    """
    try:
        return _DIALECTS[backend]
    except KeyError:
        raise KeyError(
            f"No dialect for backend {backend!r}. Known: {sorted(_DIALECTS)}"
        ) from None


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "get_dialect",
]
