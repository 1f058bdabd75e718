"""Filter predicates and ordering for generic queries.

A predicate is a mapping of field name to either a plain value (equality,
``None`` meaning ``IS NULL``) or a :class:`Condition` built with one of the
helpers below.  An order is a sequence of field names; a leading ``-``
sorts that field descending.

Examples:
    >>> where = {"user_id": not_like("set_id:%"), "status": "C"}
    >>> order = ["last_name", "-user_id"]

Field names are checked against the record type before any SQL is built,
so only declared columns ever reach the store.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from lmsdb.core.dialect import Dialect
from lmsdb.core.errors import ValidationError

Where = Mapping[str, Any]
Order = Sequence[str]


@dataclass(frozen=True)
class Condition:
    """A non-equality comparison against one field."""

    op: str
    value: Any


def ne(value: Any) -> Condition:
    return Condition("ne", value)


def like(pattern: str) -> Condition:
    return Condition("like", pattern)


def not_like(pattern: str) -> Condition:
    return Condition("not_like", pattern)


def in_(values: Iterable[Any]) -> Condition:
    return Condition("in", tuple(values))


_OPERATORS = {"ne": "<>", "like": "LIKE", "not_like": "NOT LIKE"}


def check_field(name: str, columns: Iterable[str]) -> None:
    if name not in columns:
        raise ValidationError(
            f"unknown field {name!r}",
            field=name,
            value=name,
            constraint="declared record field",
        )


def compile_where(
    where: Where | None,
    dialect: Dialect,
    columns: Sequence[str],
) -> tuple[str, tuple[Any, ...]]:
    """Build a ``WHERE`` clause (leading space included) and its parameters."""
    if not where:
        return "", ()

    clauses: list[str] = []
    params: list[Any] = []
    for name, value in where.items():
        check_field(name, columns)
        column = dialect.quote(name)
        if isinstance(value, Condition):
            if value.op == "in":
                if not value.value:
                    clauses.append("1 = 0")
                    continue
                clauses.append(f"{column} IN ({dialect.placeholders(len(value.value))})")
                params.extend(value.value)
            elif value.op in _OPERATORS:
                clauses.append(f"{column} {_OPERATORS[value.op]} {dialect.placeholder(0)}")
                params.append(value.value)
            else:
                raise ValidationError(
                    f"unknown operator {value.op!r}",
                    field=name,
                    value=value.op,
                    constraint=", ".join(sorted([*_OPERATORS, "in"])),
                )
        elif value is None:
            clauses.append(f"{column} IS NULL")
        else:
            clauses.append(f"{column} = {dialect.placeholder(0)}")
            params.append(value)

    return " WHERE " + " AND ".join(clauses), tuple(params)


def compile_order(order: Order | None, dialect: Dialect, columns: Sequence[str]) -> str:
    """Build an ``ORDER BY`` clause (leading space included)."""
    if not order:
        return ""
    terms: list[str] = []
    for item in order:
        descending = item.startswith("-")
        name = item[1:] if descending else item
        check_field(name, columns)
        terms.append(f"{dialect.quote(name)} {'DESC' if descending else 'ASC'}")
    return " ORDER BY " + ", ".join(terms)


__all__ = [
    "Condition",
    "Order",
    "Where",
    "compile_order",
    "check_field",
    "compile_where",
    "in_",
    "like",
    "ne",
    "not_like",
]
