"""Version manager for repeatable (gateway) assignment attempts.

``add_version(user_id, set_id)`` snapshots a user's set into the next
:class:`SetVersion` and copies each of the user's problems into a
:class:`ProblemVersion` with the same version id.  Version ids per
``(user_id, set_id)`` start at 1 and are allocated as one more than the
highest id ever issued for that pair, inside a single transaction on
the shared connection.  The high-water mark lives in
:class:`SetVersionCounter`, so deleting the latest version never frees its
number for reuse.

Deleting a version cascades to its problem versions.
"""

from __future__ import annotations

from lmsdb.core.errors import DependencyNotFound
from lmsdb.core.logging import get_logger
from lmsdb.db import records as rec
from lmsdb.db.registry import SchemaRegistry
from lmsdb.db.transaction import TransactionCoordinator
from lmsdb.db.utils import now_epoch
from lmsdb.db.validate import check_key

logger = get_logger(__name__)


def _copy_into(target: type[rec.Record], source: rec.Record, **extra) -> rec.Record:
    values = {name: getattr(source, name) for name in target.field_names() if hasattr(source, name)}
    values.update(extra)
    return target(**values)


class VersionManager:
    """Creates, lists and deletes set versions."""

    def __init__(self, registry: SchemaRegistry, transactions: TransactionCoordinator) -> None:
        self._user_sets = registry["set_user"]
        self._set_versions = registry["set_version"]
        self._user_problems = registry["problem_user"]
        self._problem_versions = registry["problem_version"]
        self._counters = registry["set_version_counter"]
        self._tx = transactions

    def add_version(self, user_id: str, set_id: str) -> int:
        """Snapshot the user's set and problems as the next version.

        Raises:
            DependencyNotFound: The user set does not exist.
        """
        check_key(("user_id", "set_id"), (user_id, set_id), entity="set_version")
        with self._tx.atomic():
            user_set = self._user_sets.get(user_id, set_id)
            if user_set is None:
                raise DependencyNotFound(
                    f"add_version: set {set_id} not found for user {user_id}"
                ).with_context(entity="set_version", key=(user_id, set_id), parent="set_user")

            version_id = self._next_version_id(user_id, set_id)
            snapshot = _copy_into(
                rec.SetVersion,
                user_set,
                version_id=version_id,
                version_creation_time=now_epoch(),
            )
            self._set_versions.add(snapshot)

            problems = self._user_problems.get_records_where(
                {"user_id": user_id, "set_id": set_id}
            )
            for problem in problems:
                self._problem_versions.add(
                    _copy_into(rec.ProblemVersion, problem, version_id=version_id)
                )

        logger.info(
            "set_version_created",
            user_id=user_id,
            set_id=set_id,
            version_id=version_id,
            problems=len(problems),
        )
        return version_id

    def _next_version_id(self, user_id: str, set_id: str) -> int:
        # Versions restored without a counter row still count toward the mark.
        ids = self.list_versions(user_id, set_id)
        counter = self._counters.get(user_id, set_id)
        last = max(ids[-1] if ids else 0, (counter.last_version_id or 0) if counter else 0)
        version_id = last + 1
        self._counters.put(
            rec.SetVersionCounter(user_id=user_id, set_id=set_id, last_version_id=version_id)
        )
        return version_id

    def get_version(self, user_id: str, set_id: str, version_id: int) -> rec.SetVersion | None:
        return self._set_versions.get(user_id, set_id, version_id)

    def list_versions(self, user_id: str, set_id: str) -> list[int]:
        """Version ids for the user's set, ascending."""
        check_key(("user_id", "set_id"), (user_id, set_id), entity="set_version")
        rows = self._set_versions.get_fields_where(
            ["version_id"], {"user_id": user_id, "set_id": set_id}, ["version_id"]
        )
        return [int(row[0]) for row in rows]

    def count_versions(self, user_id: str, set_id: str) -> int:
        return len(self.list_versions(user_id, set_id))

    def delete_version(self, user_id: str, set_id: str, version_id: int) -> int:
        """Delete one version and its problem versions."""
        return self._set_versions.delete(user_id, set_id, version_id)


__all__ = ["VersionManager"]
