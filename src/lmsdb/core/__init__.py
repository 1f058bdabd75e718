"""lmsdb core: connection, dialect, errors, logging and settings.

Architecture::

    Layer 1 -- Errors & Contracts
        errors.py          Typed error hierarchy (LMSDBError, ErrorKind)
        protocols.py       Connection protocol

    Layer 2 -- Store Access
        dialect.py         SQL dialect abstraction (SQLite)
        sqlite_conn.py     sqlite3 adapter satisfying Connection
        connection.py      Connection factory (create_connection)

    Layer 3 -- Cross-Cutting Concerns
        logging.py         Structured logging (structlog)
        settings.py        LMSDBSettings (pydantic-settings)
"""

from lmsdb.core.connection import ConnectionInfo, create_connection
from lmsdb.core.dialect import Dialect, SQLiteDialect, get_dialect
from lmsdb.core.errors import (
    DataAccessError,
    DependencyNotFound,
    ErrorContext,
    ErrorKind,
    LayoutError,
    LMSDBError,
    RecordExists,
    RecordNotFound,
    TableMissing,
    TransactionError,
    ValidationError,
)
from lmsdb.core.protocols import Connection

__all__ = [
    "Connection",
    "ConnectionInfo",
    "create_connection",
    "Dialect",
    "SQLiteDialect",
    "get_dialect",
    "ErrorKind",
    "ErrorContext",
    "LMSDBError",
    "DataAccessError",
    "RecordExists",
    "RecordNotFound",
    "DependencyNotFound",
    "TableMissing",
    "ValidationError",
    "LayoutError",
    "TransactionError",
]
