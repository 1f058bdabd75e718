"""Schema registry: one repository per entity, built in dependency order.

:meth:`SchemaRegistry.initialize` walks the descriptor table depth-first
with a three-state marker per entity.  Every entity a descriptor depends on
is fully constructed before the dependent, so repositories that check
parent rows always hold complete parents.  Reaching an entity that is still
in progress is a dependency cycle and raises :class:`LayoutError`.

Examples:
    >>> registry = SchemaRegistry.initialize(database_layout("math101"), conn=conn)
    >>> registry["user"].exists("alice")
    False
    >>> [repo.name for repo in registry][:2]
    ['user', 'password']

Tags:
    registry, initialization, dependency-graph, dfs
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from lmsdb.core.dialect import Dialect, SQLiteDialect
from lmsdb.core.errors import LayoutError
from lmsdb.core.logging import get_logger
from lmsdb.core.protocols import Connection
from lmsdb.db.cascade import CascadeEngine
from lmsdb.db.layout import EntityDescriptor
from lmsdb.db.repository import Repository

logger = get_logger(__name__)


class _State(Enum):
    IN_PROGRESS = "in_progress"
    DONE = "done"


class SchemaRegistry:
    """Entity name → :class:`Repository` lookup in initialization order."""

    def __init__(self, repositories: dict[str, Repository], cascade: CascadeEngine) -> None:
        self._repositories = repositories
        self.cascade = cascade

    @classmethod
    def initialize(
        cls,
        descriptors: Iterable[EntityDescriptor],
        *,
        conn: Connection,
        dialect: Dialect | None = None,
    ) -> SchemaRegistry:
        """Instantiate every descriptor's table and repository.

        Raises:
            LayoutError: Duplicate entity, unknown dependency, a parent check
                naming an entity outside ``depends``, or a dependency cycle.
        """
        dialect = dialect or SQLiteDialect()
        by_name: dict[str, EntityDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in by_name:
                raise LayoutError(f"duplicate entity {descriptor.name!r} in layout")
            by_name[descriptor.name] = descriptor

        repositories: dict[str, Repository] = {}
        cascade = CascadeEngine(repositories)
        states: dict[str, _State] = {}
        path: list[str] = []

        def init(name: str, needed_by: str | None) -> None:
            state = states.get(name)
            if state is _State.DONE:
                return
            if state is _State.IN_PROGRESS:
                cycle = " -> ".join(path[path.index(name):] + [name])
                raise LayoutError(f"loop in entity dependencies: {cycle}")
            descriptor = by_name.get(name)
            if descriptor is None:
                raise LayoutError(f"entity {needed_by!r} depends on unknown entity {name!r}")

            states[name] = _State.IN_PROGRESS
            path.append(name)
            for dep in descriptor.depends:
                init(dep, name)
            path.pop()

            for check in descriptor.requires:
                if check.entity not in descriptor.depends:
                    raise LayoutError(
                        f"entity {name!r} checks parent {check.entity!r} but does not depend on it"
                    )
            table = descriptor.table_class(
                conn, dialect, entity=name, table=descriptor.table, record=descriptor.record
            )
            repositories[name] = Repository(
                descriptor,
                table,
                parents={c.entity: repositories[c.entity] for c in descriptor.requires},
                cascade=cascade,
            )
            states[name] = _State.DONE
            logger.debug("repository_initialized", entity=name, table=descriptor.table)

        for name in by_name:
            init(name, None)

        return cls(repositories, cascade)

    # -- Lookup ------------------------------------------------------------

    def __getitem__(self, name: str) -> Repository:
        try:
            return self._repositories[name]
        except KeyError:
            raise KeyError(f"no repository for entity {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._repositories

    def __iter__(self) -> Iterator[Repository]:
        return iter(self._repositories.values())

    def __len__(self) -> int:
        return len(self._repositories)

    def names(self) -> list[str]:
        return list(self._repositories)


__all__ = ["SchemaRegistry"]
