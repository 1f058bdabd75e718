"""
Course database: the data-access API the application layer uses.

:class:`CourseDatabase` owns one connection and builds everything on it:
the schema registry (one repository per entity), the cascade engine, the
merged views, the version manager and the transaction coordinator.

Architecture::

    ┌──────────────────────────────────────────────────────────────────────┐
    │                          CourseDatabase                              │
    │                                                                      │
    │   conn ─────────────┬───────────────────┬─────────────────────┐      │
    │                     │                   │                     │      │
    │   SchemaRegistry ───┘   TransactionCoordinator     VersionManager    │
    │     user, password, set, set_user, problem, ...                      │
    │     (Repository + SQLTable per entity, CascadeEngine shared)         │
    │                                                                      │
    │   MergedView: merged_sets, merged_problems,                          │
    │               merged_set_versions, merged_problem_versions           │
    │                                                                      │
    │   relationship listings, course settings, past answers               │
    │   create/delete/dump/restore/rename_all_tables                       │
    └──────────────────────────────────────────────────────────────────────┘

Usage:
    >>> db = CourseDatabase.from_settings()
    >>> db.create_all_tables()
    >>> db.users.add(User(user_id="alice"))
    >>> db.global_sets.add(GlobalSet(set_id="hw1"))
    >>> db.user_sets.add(UserSet(user_id="alice", set_id="hw1"))
    >>> db.global_sets.delete("hw1")
    >>> db.user_sets.exists("alice", "hw1")
    False

Cascading deletes are not atomic on their own; wrap them in
:meth:`CourseDatabase.transaction` when all-or-nothing is required::

    with db.transaction():
        db.users.delete("alice")

Tags:
    database, facade, data-access, maintenance, transactions
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from lmsdb.core.connection import create_connection
from lmsdb.core.dialect import Dialect, SQLiteDialect, get_dialect
from lmsdb.core.logging import get_logger
from lmsdb.core.protocols import Connection
from lmsdb.core.settings import LMSDBSettings, get_settings
from lmsdb.db import records as rec
from lmsdb.db.layout import EntityDescriptor, database_layout
from lmsdb.db.merge import (
    MERGED_PROBLEM,
    MERGED_PROBLEM_VERSION,
    MERGED_SET,
    MERGED_SET_VERSION,
    MergedView,
)
from lmsdb.db.registry import SchemaRegistry
from lmsdb.db.repository import Repository
from lmsdb.db.transaction import TransactionCoordinator
from lmsdb.db.validate import check_key
from lmsdb.db.versions import VersionManager
from lmsdb.db.where import not_like

logger = get_logger(__name__)

PROCTOR_PREFIX = "set_id:"


def _by_problem_id(records: Iterable[Any]) -> list[Any]:
    return sorted(records, key=lambda r: int(r.problem_id))


class CourseDatabase:
    """Data-access layer for one course.

    Parameters:
        conn: The store connection.  Every repository and the transaction
            coordinator share it.
        course_name: Course whose tables the layout addresses.
        dialect: SQL dialect.  Defaults to :class:`SQLiteDialect`.
        layout: Entity descriptors.  Defaults to :func:`database_layout`.
    """

    def __init__(
        self,
        conn: Connection,
        course_name: str = "default",
        *,
        dialect: Dialect | None = None,
        layout: Iterable[EntityDescriptor] | None = None,
    ) -> None:
        self.conn = conn
        self.course_name = course_name
        self.dialect: Dialect = dialect or SQLiteDialect()
        descriptors = database_layout(course_name) if layout is None else layout
        self.registry = SchemaRegistry.initialize(descriptors, conn=conn, dialect=self.dialect)
        self.transactions = TransactionCoordinator(conn)

        self.merged_sets = MergedView(MERGED_SET, self.registry)
        self.merged_problems = MergedView(MERGED_PROBLEM, self.registry)
        self.merged_set_versions = MergedView(MERGED_SET_VERSION, self.registry)
        self.merged_problem_versions = MergedView(MERGED_PROBLEM_VERSION, self.registry)
        self.versions = VersionManager(self.registry, self.transactions)

    @classmethod
    def from_settings(cls, settings: LMSDBSettings | None = None) -> CourseDatabase:
        """Open the database named by ``settings`` (default: :func:`get_settings`)."""
        settings = settings or get_settings()
        conn, info = create_connection(settings.database_url)
        logger.info("course_database_opened", course=settings.course_name, connection=repr(info))
        return cls(conn, settings.course_name, dialect=get_dialect(info.backend))

    def __repr__(self) -> str:
        return f"CourseDatabase(course={self.course_name!r}, entities={len(self.registry)})"

    def __getitem__(self, entity: str) -> Repository:
        return self.registry[entity]

    def close(self) -> None:
        close = getattr(self.conn, "close", None)
        if close is not None:
            close()

    # ── Repositories ─────────────────────────────────────────────────────

    @property
    def users(self) -> Repository[rec.User]:
        return self.registry["user"]

    @property
    def passwords(self) -> Repository[rec.Password]:
        return self.registry["password"]

    @property
    def permission_levels(self) -> Repository[rec.PermissionLevel]:
        return self.registry["permission"]

    @property
    def keys(self) -> Repository[rec.Key]:
        return self.registry["key"]

    @property
    def course_settings(self) -> Repository[rec.Setting]:
        return self.registry["setting"]

    @property
    def locations(self) -> Repository[rec.Location]:
        return self.registry["location"]

    @property
    def location_addresses(self) -> Repository[rec.LocationAddress]:
        return self.registry["location_address"]

    @property
    def past_answers(self) -> Repository[rec.PastAnswer]:
        return self.registry["past_answer"]

    @property
    def global_sets(self) -> Repository[rec.GlobalSet]:
        return self.registry["set"]

    @property
    def user_sets(self) -> Repository[rec.UserSet]:
        return self.registry["set_user"]

    @property
    def set_versions(self) -> Repository[rec.SetVersion]:
        return self.registry["set_version"]

    @property
    def set_version_counters(self) -> Repository[rec.SetVersionCounter]:
        return self.registry["set_version_counter"]

    @property
    def global_problems(self) -> Repository[rec.GlobalProblem]:
        return self.registry["problem"]

    @property
    def user_problems(self) -> Repository[rec.UserProblem]:
        return self.registry["problem_user"]

    @property
    def problem_versions(self) -> Repository[rec.ProblemVersion]:
        return self.registry["problem_version"]

    @property
    def achievements(self) -> Repository[rec.Achievement]:
        return self.registry["achievement"]

    @property
    def user_achievements(self) -> Repository[rec.UserAchievement]:
        return self.registry["achievement_user"]

    @property
    def global_user_achievements(self) -> Repository[rec.GlobalUserAchievement]:
        return self.registry["global_user_achievement"]

    @property
    def global_set_locations(self) -> Repository[rec.GlobalSetLocation]:
        return self.registry["set_location"]

    @property
    def user_set_locations(self) -> Repository[rec.UserSetLocation]:
        return self.registry["set_location_user"]

    # ── Transactions ─────────────────────────────────────────────────────

    def start_transaction(self) -> None:
        self.transactions.begin()

    def end_transaction(self) -> None:
        self.transactions.commit()

    def abort_transaction(self) -> None:
        self.transactions.rollback()

    @contextmanager
    def transaction(self) -> Iterator[CourseDatabase]:
        """Run the block in one transaction: commit on success, roll back on error."""
        with self.transactions.scope():
            yield self

    # ── Whole-store maintenance ──────────────────────────────────────────

    def _for_each_table(
        self,
        operation: str,
        call: Callable[[Callable[..., Any], Repository], Any],
    ) -> int:
        done = 0
        for repo in self.registry:
            if repo.descriptor.non_native:
                continue
            method = getattr(repo.table, operation, None)
            if method is None:
                logger.warning(
                    "table_maintenance_skipped",
                    entity=repo.name,
                    operation=operation,
                    reason=f"no {operation} method",
                )
                continue
            if call(method, repo) is not False:
                done += 1
        logger.info("table_maintenance", operation=operation, course=self.course_name, tables=done)
        return done

    def create_all_tables(self) -> int:
        return self._for_each_table("create_table", lambda create, _repo: create())

    def delete_all_tables(self) -> int:
        return self._for_each_table("delete_table", lambda drop, _repo: drop())

    def dump_all_tables(self, dump_dir: str | Path) -> int:
        """Dump every table to ``<dump_dir>/<entity>.json``."""
        directory = Path(dump_dir)
        directory.mkdir(parents=True, exist_ok=True)
        return self._for_each_table(
            "dump_table", lambda dump, repo: dump(directory / f"{repo.name}.json")
        )

    def restore_all_tables(self, dump_dir: str | Path) -> int:
        """Restore every table from ``<dump_dir>/<entity>.json``; missing files are skipped.

        Each table is restored in its own transaction: a bad dump file raises
        and leaves that table as it was, while tables restored before it stay
        restored.
        """
        directory = Path(dump_dir)

        def restore(method: Callable[..., Any], repo: Repository) -> bool:
            path = directory / f"{repo.name}.json"
            if not path.exists():
                logger.warning(
                    "table_maintenance_skipped",
                    entity=repo.name,
                    operation="restore_table",
                    reason=f"no dump file {path}",
                )
                return False
            with self.transactions.atomic():
                method(path)
            return True

        return self._for_each_table("restore_table", restore)

    def rename_all_tables(self, new_course: str) -> int:
        """Rename every table to ``new_course``'s layout."""
        new_tables = {d.name: d.table for d in database_layout(new_course)}

        def rename(method: Callable[..., Any], repo: Repository) -> bool:
            if repo.name not in new_tables:
                logger.warning(
                    "table_maintenance_skipped",
                    entity=repo.name,
                    operation="rename_table",
                    reason="entity not in new layout",
                )
                return False
            method(new_tables[repo.name])
            return True

        renamed = self._for_each_table("rename_table", rename)
        self.course_name = new_course
        return renamed

    def table_counts(self) -> dict[str, int]:
        """Row count per native entity."""
        return {
            repo.name: repo.count_where()
            for repo in self.registry
            if not repo.descriptor.non_native
        }

    # ── Users ────────────────────────────────────────────────────────────

    def list_users(self) -> list[str]:
        """User ids, excluding set-level proctor pseudo-users."""
        where = {"user_id": not_like(f"{PROCTOR_PREFIX}%")}
        return [row[0] for row in self.users.get_fields_where(["user_id"], where)]

    def count_users(self) -> int:
        return self.users.count_where({"user_id": not_like(f"{PROCTOR_PREFIX}%")})

    # ── Course settings ──────────────────────────────────────────────────

    def setting_exists(self, name: str) -> bool:
        return self.course_settings.exists(name)

    def get_setting_value(self, name: str) -> str | None:
        setting = self.course_settings.get(name)
        return setting.value if setting is not None else None

    def set_setting_value(self, name: str, value: str | None) -> int:
        """Insert or update a setting."""
        setting = rec.Setting(name=name, value=value)
        if self.setting_exists(name):
            return self.course_settings.put(setting)
        return self.course_settings.add(setting)

    def delete_setting(self, name: str) -> int:
        return self.course_settings.delete(name)

    # ── Relationship listings ────────────────────────────────────────────

    def _column(self, repo: Repository, name: str, where: dict, order: list | None = None) -> list:
        for field, value in where.items():
            check_key((field,), (value,), entity=repo.name)
        return [row[0] for row in repo.get_fields_where([name], where, order)]

    def list_set_users(self, set_id: str) -> list[str]:
        return self._column(self.user_sets, "user_id", {"set_id": set_id})

    def list_user_sets(self, user_id: str) -> list[str]:
        return self._column(self.user_sets, "set_id", {"user_id": user_id})

    def list_global_problems(self, set_id: str) -> list[str]:
        return self._column(self.global_problems, "problem_id", {"set_id": set_id})

    def get_all_global_problems(self, set_id: str) -> list[rec.GlobalProblem]:
        check_key(("set_id",), (set_id,), entity="problem")
        return self.global_problems.get_records_where({"set_id": set_id})

    def list_user_problems(self, user_id: str, set_id: str) -> list[str]:
        return self._column(
            self.user_problems, "problem_id", {"user_id": user_id, "set_id": set_id}
        )

    def list_problem_users(self, set_id: str, problem_id: str) -> list[str]:
        return self._column(
            self.user_problems, "user_id", {"set_id": set_id, "problem_id": problem_id}
        )

    def get_all_user_problems(self, user_id: str, set_id: str) -> list[rec.UserProblem]:
        check_key(("user_id", "set_id"), (user_id, set_id), entity="problem_user")
        return self.user_problems.get_records_where({"user_id": user_id, "set_id": set_id})

    def list_problem_versions(self, user_id: str, set_id: str, version_id: int) -> list[str]:
        return self._column(
            self.problem_versions,
            "problem_id",
            {"user_id": user_id, "set_id": set_id, "version_id": version_id},
        )

    def get_all_problem_versions(
        self, user_id: str, set_id: str, version_id: int
    ) -> list[rec.ProblemVersion]:
        check_key(
            ("user_id", "set_id", "version_id"), (user_id, set_id, version_id),
            entity="problem_version",
        )
        where = {"user_id": user_id, "set_id": set_id, "version_id": version_id}
        return _by_problem_id(self.problem_versions.get_records_where(where))

    def list_achievement_users(self, achievement_id: str) -> list[str]:
        return self._column(self.user_achievements, "user_id", {"achievement_id": achievement_id})

    def list_user_achievements(self, user_id: str) -> list[str]:
        return self._column(self.user_achievements, "achievement_id", {"user_id": user_id})

    def get_achievement_categories(self) -> list[str]:
        rows = self.achievements.get_fields_where(
            ["category"], {"category": not_like("")}, ["category"], distinct=True
        )
        return [row[0] for row in rows]

    def list_location_addresses(self, location_id: str) -> list[str]:
        return self._column(self.location_addresses, "ip_mask", {"location_id": location_id})

    def list_address_locations(self, ip_mask: str) -> list[str]:
        return self._column(self.location_addresses, "location_id", {"ip_mask": ip_mask})

    def get_all_location_addresses(self, location_id: str) -> list[rec.LocationAddress]:
        check_key(("location_id",), (location_id,), entity="location_address")
        return self.location_addresses.get_records_where({"location_id": location_id})

    def list_global_set_locations(self, set_id: str) -> list[str]:
        return self._column(
            self.global_set_locations, "location_id", {"set_id": set_id}, ["location_id"]
        )

    def get_all_global_set_locations(self, set_id: str) -> list[rec.GlobalSetLocation]:
        check_key(("set_id",), (set_id,), entity="set_location")
        return self.global_set_locations.get_records_where({"set_id": set_id})

    def list_user_set_locations(self, user_id: str, set_id: str) -> list[str]:
        return self._column(
            self.user_set_locations, "location_id", {"user_id": user_id, "set_id": set_id}
        )

    def get_all_user_set_locations(self, user_id: str, set_id: str) -> list[rec.UserSetLocation]:
        check_key(("user_id", "set_id"), (user_id, set_id), entity="set_location_user")
        return self.user_set_locations.get_records_where({"user_id": user_id, "set_id": set_id})

    def list_set_location_users(self, set_id: str, location_id: str) -> list[str]:
        return self._column(
            self.user_set_locations, "user_id", {"set_id": set_id, "location_id": location_id}
        )

    def get_all_merged_set_locations(self, user_id: str, set_id: str) -> list[rec.Record]:
        """The user's set locations when any exist, otherwise the global set's."""
        user_locations = self.get_all_user_set_locations(user_id, set_id)
        if user_locations:
            return user_locations
        return self.get_all_global_set_locations(set_id)

    # ── Past answers ─────────────────────────────────────────────────────

    def list_problem_past_answers(self, user_id: str, set_id: str, problem_id: str) -> list[int]:
        """Answer ids for one user problem, oldest first."""
        return self._column(
            self.past_answers,
            "answer_id",
            {"user_id": user_id, "set_id": set_id, "problem_id": problem_id},
            ["answer_id"],
        )

    def latest_problem_past_answer(self, user_id: str, set_id: str, problem_id: str) -> int | None:
        answer_ids = self.list_problem_past_answers(user_id, set_id, problem_id)
        return answer_ids[-1] if answer_ids else None

    # ── Merged bulk readers ──────────────────────────────────────────────

    def get_all_merged_user_problems(self, user_id: str, set_id: str) -> list[rec.Record]:
        """Merged problems for every problem assigned to the user, by problem id."""
        check_key(("user_id", "set_id"), (user_id, set_id), entity="problem_merged")
        merged = self.merged_problems.get_all({"user_id": user_id, "set_id": set_id})
        return _by_problem_id(merged)

    def get_all_merged_problem_versions(
        self, user_id: str, set_id: str, version_id: int
    ) -> list[rec.Record]:
        check_key(
            ("user_id", "set_id", "version_id"), (user_id, set_id, version_id),
            entity="problem_version_merged",
        )
        where = {"user_id": user_id, "set_id": set_id, "version_id": version_id}
        return _by_problem_id(self.merged_problem_versions.get_all(where))


__all__ = ["CourseDatabase", "PROCTOR_PREFIX"]
