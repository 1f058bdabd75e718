"""
Merge resolver: effective per-user records computed from override rows.

A merged record overlays a user-level (or version-level) override row onto
the global row it overrides, field by field.  A field takes the override's
value when the override row exists and the value is set (neither ``None``
nor ``""``); otherwise it takes the global value.  Key fields come from the
requested key.  Every merged record is built from deep copies, so mutating
it never touches either source row.

Merged views are read-only: ``exists``/``get``/``gets`` and bulk readers,
never add, put or delete.

Anchoring decides when a merged record exists::

    view                      override          global     exists when
    ────────────────────────  ────────────────  ─────────  ───────────────
    set_merged                set_user          set        global exists
    problem_merged            problem_user      problem    global exists
    set_version_merged        set_version       set        version exists
    problem_version_merged    problem_version   problem    version exists

Tags:
    merge, overrides, computed-view, read-only
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from lmsdb.db import records as rec
from lmsdb.db.registry import SchemaRegistry
from lmsdb.db.utils import grok_vset_id
from lmsdb.db.validate import check_key, check_keys
from lmsdb.db.where import Order, Where


def is_unset(value: Any) -> bool:
    return value is None or value == ""


def merge_records(
    merged_type: type[rec.Record],
    key: Sequence[Any],
    override: rec.Record | None,
    base: rec.Record | None,
) -> rec.Record:
    """Build a ``merged_type`` record for ``key`` from ``override`` over ``base``."""
    keyed = dict(zip(merged_type.KEYFIELDS, key, strict=True))
    values: dict[str, Any] = {}
    for name in merged_type.field_names():
        if name in keyed:
            values[name] = keyed[name]
            continue
        value = getattr(override, name, None) if override is not None else None
        if is_unset(value):
            value = getattr(base, name, None) if base is not None else None
        values[name] = copy.deepcopy(value)
    return merged_type(**values)


@dataclass(frozen=True)
class MergeRule:
    """How one merged view is computed.

    Attributes:
        name: View name (error context).
        merged: Merged record type; its key is the view's key.
        override: Override entity name.
        base: Global entity name.
        base_key: Maps a merged key to the global row's key.
        anchored_on_override: The view exists only where the override row
            exists; otherwise it exists wherever the global row exists.
    """

    name: str
    merged: type[rec.Record]
    override: str
    base: str
    base_key: Callable[[tuple], tuple]
    anchored_on_override: bool = False


MERGED_SET = MergeRule(
    "set_merged", rec.MergedSet, override="set_user", base="set",
    base_key=lambda k: (k[1],),
)
MERGED_PROBLEM = MergeRule(
    "problem_merged", rec.MergedProblem, override="problem_user", base="problem",
    base_key=lambda k: (grok_vset_id(k[1])[0], k[2]),
)
MERGED_SET_VERSION = MergeRule(
    "set_version_merged", rec.MergedSetVersion, override="set_version", base="set",
    base_key=lambda k: (k[1],), anchored_on_override=True,
)
MERGED_PROBLEM_VERSION = MergeRule(
    "problem_version_merged", rec.MergedProblemVersion, override="problem_version", base="problem",
    base_key=lambda k: (k[1], k[3]), anchored_on_override=True,
)


class MergedView:
    """Read-only accessor for one merged view."""

    def __init__(self, rule: MergeRule, registry: SchemaRegistry) -> None:
        self.rule = rule
        self._override = registry[rule.override]
        self._base = registry[rule.base]

    def __repr__(self) -> str:
        return f"MergedView({self.rule.name!r})"

    @property
    def key_fields(self) -> tuple[str, ...]:
        return self.rule.merged.KEYFIELDS

    def exists(self, *key: Any) -> bool:
        check_key(self.key_fields, key, entity=self.rule.name)
        if self.rule.anchored_on_override:
            return self._override.table.exists(*key)
        return self._base.table.exists(*self.rule.base_key(key))

    def get(self, *key: Any) -> rec.Record | None:
        check_key(self.key_fields, key, entity=self.rule.name)
        return self._resolve(tuple(key))

    def gets(self, keys: Iterable[Any]) -> list[rec.Record]:
        """Merged records for each key; keys with no merged record are omitted."""
        found = []
        for key in check_keys(self.key_fields, keys, entity=self.rule.name):
            merged = self._resolve(key)
            if merged is not None:
                found.append(merged)
        return found

    def get_all(self, where: Where, order: Order | None = None) -> list[rec.Record]:
        """Merge every override row matching ``where``."""
        merged = []
        for override in self._override.get_records_where(where, order):
            key = tuple(getattr(override, name) for name in self.key_fields)
            base = self._first(self._base, self.rule.base_key(key))
            merged.append(merge_records(self.rule.merged, key, override, base))
        return merged

    def _resolve(self, key: tuple) -> rec.Record | None:
        override = self._first(self._override, key)
        base = self._first(self._base, self.rule.base_key(key))
        anchor = override if self.rule.anchored_on_override else base
        if anchor is None:
            return None
        return merge_records(self.rule.merged, key, override, base)

    @staticmethod
    def _first(repo: Any, key: tuple) -> rec.Record | None:
        found = repo.table.gets([key])
        return found[0] if found else None


__all__ = [
    "MERGED_PROBLEM",
    "MERGED_PROBLEM_VERSION",
    "MERGED_SET",
    "MERGED_SET_VERSION",
    "MergeRule",
    "MergedView",
    "is_unset",
    "merge_records",
]
