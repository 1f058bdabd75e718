"""Generic per-entity repository.

One :class:`Repository` is instantiated per :class:`EntityDescriptor`.  It
validates arguments, runs dependency checks before inserts and cascades
before deletes, then delegates persistence to the entity's table
collaborator.

Architecture::

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      Repository[RecordT]                            │
    │                                                                     │
    │  exists(*key) ─┐                                                    │
    │  get(*key)     ├── check_key ──────────────────────► table          │
    │  gets(keys)  ──┘   check_keys                                       │
    │                                                                     │
    │  add(record)  ── check_record ─► parent checks ────► table.add      │
    │                                   (DependencyNotFound)              │
    │  put(record)  ── check_record ─────────────────────► table.put      │
    │                   0 rows: upsert → add, else RecordNotFound         │
    │  delete(*key) ── check_key ────► cascade engine ───► table.delete   │
    │                                                                     │
    │  delete_matching(CascadeFilter)   (cascade engine only)             │
    │  count_where / exists_where / list_where / get_records_where /      │
    │  get_fields_where                                                   │
    └─────────────────────────────────────────────────────────────────────┘

Every record returned is a fresh instance; mutating it never affects the
store or another caller's copy.

Tags:
    repository, crud, data-access, generic
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from lmsdb.core.errors import DependencyNotFound, RecordNotFound
from lmsdb.core.logging import get_logger
from lmsdb.db.records import Record
from lmsdb.db.validate import CascadeFilter, check_key, check_keys, check_record
from lmsdb.db.where import Order, Where

if TYPE_CHECKING:
    from lmsdb.db.cascade import CascadeEngine
    from lmsdb.db.layout import EntityDescriptor

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=Record)


class Repository(Generic[RecordT]):
    """CRUD surface for one entity.

    Parameters:
        descriptor: The entity's layout descriptor.
        table: Table collaborator for the entity.
        parents: Initialized repositories named by ``descriptor.requires``.
        cascade: Cascade engine shared by the registry.
    """

    def __init__(
        self,
        descriptor: EntityDescriptor,
        table: Any,
        *,
        parents: Mapping[str, Repository],
        cascade: CascadeEngine,
    ) -> None:
        self.descriptor = descriptor
        self.table = table
        self._parents = dict(parents)
        self._cascade = cascade

    def __repr__(self) -> str:
        return f"Repository({self.name!r}, table={self.descriptor.table!r})"

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def record_type(self) -> type[RecordT]:
        return self.descriptor.record

    @property
    def key_fields(self) -> tuple[str, ...]:
        return self.record_type.KEYFIELDS

    # -- Reads -------------------------------------------------------------

    def exists(self, *key: Any) -> bool:
        check_key(self.key_fields, key, entity=self.name)
        return self.table.exists(*key)

    def get(self, *key: Any) -> RecordT | None:
        check_key(self.key_fields, key, entity=self.name)
        found = self.table.gets([key])
        return found[0] if found else None

    def gets(self, keys: Iterable[Any]) -> list[RecordT]:
        """Records for each key in ``keys``; absent keys are omitted.

        For single-field keys the items may be bare values.
        """
        return self.table.gets(check_keys(self.key_fields, keys, entity=self.name))

    # -- Writes ------------------------------------------------------------

    def add(self, record: RecordT) -> int:
        check_record(
            self.record_type, record, entity=self.name, versioned=self.descriptor.versioned
        )
        self._check_parents(record)
        rows = self.table.add(record)
        logger.debug("record_added", entity=self.name, key=list(record.primary_key))
        return rows

    def put(self, record: RecordT, *, versioned_ok: bool = False) -> int:
        """Update an existing row.

        ``versioned_ok`` lets entities that accept versioned set ids on
        ``add`` accept them here too.
        """
        check_record(
            self.record_type,
            record,
            entity=self.name,
            versioned=versioned_ok and self.descriptor.versioned,
        )
        rows = self.table.put(record)
        if rows == 0:
            if self.descriptor.upsert:
                logger.debug(
                    "put_fallback_to_add", entity=self.name, key=list(record.primary_key)
                )
                return self.add(record)
            raise RecordNotFound(
                f"put_{self.name}: {self.name} not found (perhaps you meant to use add?)"
            ).with_context(entity=self.name, key=record.primary_key)
        return rows

    def delete(self, *key: Any) -> int:
        """Delete one row and, first, every row that depends on it."""
        check_key(self.key_fields, key, entity=self.name)
        parent = CascadeFilter.for_record(
            self.name, self.record_type, **dict(zip(self.key_fields, key))
        )
        self._cascade.delete_dependents(self.name, parent)
        return self.table.delete(*key)

    def delete_matching(self, where: CascadeFilter) -> int:
        """Delete rows matching a partial-key filter (cascade entry point).

        Returns the rows deleted here and in every dependent entity.
        """
        deleted = self._cascade.delete_dependents(self.name, where)
        return deleted + self.table.delete_where(where.as_where())

    def _check_parents(self, record: RecordT) -> None:
        for check in self.descriptor.requires:
            if not check.applies_to(record):
                continue
            parent_key = check.key_of(record)
            if not self._parents[check.entity].table.exists(*parent_key):
                raise DependencyNotFound(
                    f"add_{self.name}: {check.entity} {' '.join(map(str, parent_key))} not found"
                ).with_context(entity=self.name, key=record.primary_key, parent=check.entity)

    # -- Filtered queries --------------------------------------------------

    def count_where(self, where: Where | None = None) -> int:
        return self.table.count_where(where)

    def exists_where(self, where: Where | None = None) -> bool:
        return self.table.exists_where(where)

    def list_where(self, where: Where | None = None, order: Order | None = None) -> list[tuple]:
        return self.table.list_where(where, order)

    def get_records_where(
        self, where: Where | None = None, order: Order | None = None
    ) -> list[RecordT]:
        return self.table.get_records_where(where, order)

    def get_fields_where(
        self,
        names: Sequence[str],
        where: Where | None = None,
        order: Order | None = None,
        *,
        distinct: bool = False,
    ) -> list[tuple]:
        return self.table.get_fields_where(names, where, order, distinct=distinct)


__all__ = ["Repository"]
