"""
Argument and key validation.

Every repository call is checked here before the store is touched.  Failures
raise :class:`~lmsdb.core.errors.ValidationError` carrying the offending
field, its value and the allowed pattern.

Two entry points exist for deletion keys:

- the public API (:func:`check_key`) requires every key part;
- :class:`CascadeFilter`, used only by the cascade engine, lets individual
  key parts be absent.  An absent part is unconstrained.

Key-field character classes::

    problem_id   ^[0-9]*$
    user_id      ^[-a-zA-Z0-9_.@]*,?(set_id:)?[-a-zA-Z0-9_.@]*(,g)?$
    ip_mask      ^[-a-fA-F0-9_.:/]*$
    set_id       ^[-a-zA-Z0-9_.,]*$   (versioned mode only)
    (default)    ^[-a-zA-Z0-9_.]*$

Tags:
    validation, keys, arguments, cascade
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from lmsdb.core.errors import ValidationError
from lmsdb.db.records import Record

DEFAULT_PATTERN = r"^[-a-zA-Z0-9_.]*$"
VERSIONED_SET_ID_PATTERN = r"^[-a-zA-Z0-9_.,]*$"
USER_ID_PATTERN = r"^[-a-zA-Z0-9_.@]*,?(set_id:)?[-a-zA-Z0-9_.@]*(,g)?$"

FIELD_PATTERNS: dict[str, str] = {
    "problem_id": r"^[0-9]*$",
    "user_id": USER_ID_PATTERN,
    "ip_mask": r"^[-a-fA-F0-9_.:/]*$",
}


def key_pattern(name: str, *, versioned: bool = False) -> str:
    """Allowed pattern for the key field ``name``."""
    if versioned and name == "set_id":
        return VERSIONED_SET_ID_PATTERN
    return FIELD_PATTERNS.get(name, DEFAULT_PATTERN)


def check_arity(count: int, minimum: int, maximum: int | None = None) -> None:
    """Fail unless ``minimum <= count <= maximum`` (``None`` means unbounded)."""
    if count >= minimum and (maximum is None or count <= maximum):
        return
    if maximum is not None and minimum == maximum:
        message = f"requires {minimum} argument{'' if minimum == 1 else 's'}"
    elif maximum is not None:
        message = f"requires between {minimum} and {maximum} arguments"
    else:
        message = f"requires at least {minimum} argument{'' if minimum == 1 else 's'}"
    raise ValidationError(message, field="arguments", value=count, constraint=message)


def check_key(key_fields: Sequence[str], key: Sequence[Any], *, entity: str) -> tuple[Any, ...]:
    """Check a complete key: arity, then every part present."""
    if len(key) != len(key_fields):
        try:
            check_arity(len(key), len(key_fields), len(key_fields))
        except ValidationError as e:
            raise e.with_context(entity=entity, key=key) from None
    for pos, (name, value) in enumerate(zip(key_fields, key), start=1):
        if value is None:
            raise ValidationError(
                f"argument {pos} must contain a {name}",
                field=name,
                value=value,
                constraint="required",
            ).with_context(entity=entity, key=key)
    return tuple(key)


def check_keys(
    key_fields: Sequence[str],
    keys: Iterable[Any],
    *,
    entity: str,
) -> list[tuple[Any, ...]]:
    """Check a list call.  Each item is a key sequence (or a scalar for single-field keys)."""
    normalized: list[tuple[Any, ...]] = []
    for pos, item in enumerate(keys, start=1):
        if len(key_fields) == 1 and not isinstance(item, list | tuple):
            item = (item,)
        if not isinstance(item, list | tuple):
            raise ValidationError(
                f"item {pos} must be a key sequence",
                field="keys",
                value=item,
                constraint=f"({', '.join(key_fields)})",
            ).with_context(entity=entity)
        try:
            normalized.append(check_key(key_fields, item, entity=entity))
        except ValidationError as e:
            raise ValidationError(
                f"item {pos} {e.message}",
                field=e.field,
                value=e.value,
                constraint=e.constraint,
                context=e.context,
                cause=e,
            ) from e
    return normalized


def check_record(
    record_type: type[Record],
    record: Any,
    *,
    entity: str,
    versioned: bool = False,
) -> Record:
    """Check a record argument: its type, then each key field's value.

    An unset auto-increment key ends the key check; the store assigns it.
    """
    if not isinstance(record, record_type):
        raise ValidationError(
            f"argument 1 must be of type {record_type.__name__}",
            field="record",
            value=type(record).__name__,
            constraint=record_type.__name__,
        ).with_context(entity=entity)

    for name in record_type.KEYFIELDS:
        value = getattr(record, name)
        if name == record_type.AUTO_KEY and value is None:
            break
        if value is None:
            problem, constraint = f"undefined {name!r} field", "required"
        elif value == "":
            problem, constraint = f"empty {name!r} field", "non-empty"
        else:
            constraint = key_pattern(name, versioned=versioned)
            if re.fullmatch(constraint, str(value)) is not None:
                continue
            problem = f"invalid characters in {name!r} field: {value!r}"
        raise ValidationError(
            f"argument 1 contains {problem}",
            field=name,
            value=value,
            constraint=constraint,
        ).with_context(entity=entity, key=record.primary_key)
    return record


# ---------------------------------------------------------------------------
# Cascade filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CascadeFilter:
    """Partial-key filter used only by the cascade engine.

    ``parts`` holds the constrained fields; a field that is not in
    ``parts`` is unconstrained.  Present parts must be real values.

    Examples:
        >>> f = CascadeFilter(entity="set_user", fields=("user_id", "set_id"),
        ...                   parts={"set_id": "hw1"})
        >>> f.as_where()
        {'set_id': 'hw1'}
    """

    entity: str
    fields: tuple[str, ...]
    parts: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.parts:
            raise ValidationError(
                "cascade filter needs at least one key part",
                field="parts",
                value={},
                constraint="non-empty",
            ).with_context(entity=self.entity)
        for name, value in self.parts.items():
            if name not in self.fields:
                raise ValidationError(
                    f"unknown cascade filter field {name!r}",
                    field=name,
                    value=value,
                    constraint=", ".join(self.fields),
                ).with_context(entity=self.entity)
            if value is None:
                raise ValidationError(
                    f"cascade filter part {name!r} is present but undefined",
                    field=name,
                    value=value,
                    constraint="required when present",
                ).with_context(entity=self.entity)
        object.__setattr__(self, "parts", MappingProxyType(dict(self.parts)))

    @classmethod
    def for_record(cls, entity: str, record_type: type[Record], **parts: Any) -> CascadeFilter:
        return cls(entity=entity, fields=record_type.field_names(), parts=parts)

    def narrow(self, entity: str, record_type: type[Record], shared: Sequence[str]) -> CascadeFilter:
        """Filter for a child entity keeping only the ``shared`` parts present here."""
        parts = {name: self.parts[name] for name in shared if name in self.parts}
        return CascadeFilter.for_record(entity, record_type, **parts)

    def as_where(self) -> dict[str, Any]:
        return dict(self.parts)


__all__ = [
    "DEFAULT_PATTERN",
    "FIELD_PATTERNS",
    "USER_ID_PATTERN",
    "VERSIONED_SET_ID_PATTERN",
    "CascadeFilter",
    "check_arity",
    "check_key",
    "check_keys",
    "check_record",
    "key_pattern",
]
