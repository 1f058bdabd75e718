"""
Structured error types for the course data-access layer.

Every failure the data-access layer reports is a typed exception carrying a
machine-readable ``kind``, a human-readable message, structured context (the
entity and key involved) and, when it wraps a lower-level failure, the
original exception as ``cause``.  Callers branch on the class or on
``error.kind``; the application layer turns these into localized messages.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                         LMSDBError                            │
        │               (message, context, cause)                       │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  DataAccessError (kind)          LayoutError                  │
        │     │                            TransactionError             │
        │     ├── RecordExists             (TABLE collaborator)         │
        │     ├── RecordNotFound                                        │
        │     │      └── DependencyNotFound                             │
        │     ├── TableMissing             (TABLE collaborator)         │
        │     └── ValidationError          (field, value, constraint)   │
        └──────────────────────────────────────────────────────────────┘

Ownership:
    - ``RecordExists`` and ``TableMissing`` are raised only by the table
      collaborator (:mod:`lmsdb.db.table`) when the store reports a
      duplicate key or a missing table.
    - ``RecordNotFound`` is raised by repositories when ``put`` matches no
      row.  ``DependencyNotFound`` is raised before an insert when a
      required parent row is absent.
    - ``ValidationError`` is raised by :mod:`lmsdb.db.validate` before any
      store interaction.

Examples:
    >>> err = RecordNotFound("put_user: user not found").with_context(
    ...     entity="user", key=("alice",)
    ... )
    >>> err.kind
    <ErrorKind.RECORD_NOT_FOUND: 'RecordNotFound'>
    >>> err.to_dict()["context"]
    {'entity': 'user', 'key': ['alice']}

Tags:
    error-handling, exception-hierarchy, error-context, data-access
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Failure kinds reported by the data-access layer."""

    RECORD_EXISTS = "RecordExists"
    RECORD_NOT_FOUND = "RecordNotFound"
    DEPENDENCY_NOT_FOUND = "DependencyNotFound"
    TABLE_MISSING = "TableMissing"
    VALIDATION = "ValidationError"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        entity: Logical entity name (``"user"``, ``"set_user"``, ...)
        table: Physical table name, when the store was involved
        key: Key values of the offending record or call
        metadata: Additional key-value pairs
    """

    entity: str | None = None
    table: str | None = None
    key: tuple[Any, ...] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        if self.entity is not None:
            result["entity"] = self.entity
        if self.table is not None:
            result["table"] = self.table
        if self.key is not None:
            result["key"] = list(self.key)
        if self.metadata:
            result.update(self.metadata)
        return result


class LMSDBError(Exception):
    """Base exception for all lmsdb errors.

    Carries a message, an :class:`ErrorContext` and an optional ``cause``.
    When a cause is given it is also chained as ``__cause__`` so tracebacks
    show the original failure.
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LMSDBError:
        """Add context to this error (fluent API).

        Usage:
            raise RecordNotFound("not found").with_context(entity="user", key=("bob",))
        """
        for key, value in kwargs.items():
            if key == "key" and value is not None:
                value = tuple(value)
            if key in ("entity", "table", "key"):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# =============================================================================
# DATA-ACCESS ERRORS (tagged with a kind)
# =============================================================================


class DataAccessError(LMSDBError):
    """An error with one of the :class:`ErrorKind` tags."""

    kind: ErrorKind

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["kind"] = self.kind.value
        return result


class RecordExists(DataAccessError):
    """An insert collided with an existing key."""

    kind = ErrorKind.RECORD_EXISTS


class RecordNotFound(DataAccessError):
    """An update matched no existing row."""

    kind = ErrorKind.RECORD_NOT_FOUND


class DependencyNotFound(RecordNotFound):
    """A parent row required by an insert does not exist."""

    kind = ErrorKind.DEPENDENCY_NOT_FOUND


class TableMissing(DataAccessError):
    """The backing table of an entity does not exist in the store."""

    kind = ErrorKind.TABLE_MISSING


class ValidationError(DataAccessError):
    """Malformed call arguments or key-field values.

    ``field`` names the offending argument or key field, ``value`` is what
    was passed and ``constraint`` the allowed pattern or rule.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


# =============================================================================
# SETUP AND TRANSACTION ERRORS
# =============================================================================


class LayoutError(LMSDBError):
    """The entity layout cannot be initialized (cycle, unknown dependency)."""


class TransactionError(LMSDBError):
    """Beginning, committing or rolling back a transaction failed."""


__all__ = [
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
