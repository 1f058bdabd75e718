"""Cascade engine: delete dependent rows when a parent row is deleted.

Each parent entity maps to its dependents in deletion order, along with the
fields a dependent shares with the parent.  Deleting a parent narrows the
parent's key (or partial filter) to those shared fields and deletes the
matching dependent rows, which cascade in turn.

Cascade table (parent → dependents, in order)::

    user                     → set_user, password, global_user_achievement,
                               permission, key, past_answer
    set                      → set_user, problem, set_location
    set_user                 → set_version, set_version_counter,
                               problem_user
    set_version              → problem_version
    problem                  → problem_user
    achievement              → achievement_user
    global_user_achievement  → achievement_user
    location                 → set_location, set_location_user, location_address
    set_location             → set_location_user

No transaction is opened here.  A caller that needs an all-or-nothing
cascade brackets the delete with :meth:`CourseDatabase.transaction`.

Tags:
    cascade, referential-integrity, delete
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lmsdb.core.logging import get_logger
from lmsdb.db.validate import CascadeFilter

if TYPE_CHECKING:
    from lmsdb.db.repository import Repository

logger = get_logger(__name__)


@dataclass(frozen=True)
class CascadeRule:
    """One dependent of a parent entity and the fields they share."""

    child: str
    shared: tuple[str, ...]


CASCADE_RULES: dict[str, tuple[CascadeRule, ...]] = {
    "user": (
        CascadeRule("set_user", ("user_id",)),
        CascadeRule("password", ("user_id",)),
        CascadeRule("global_user_achievement", ("user_id",)),
        CascadeRule("permission", ("user_id",)),
        CascadeRule("key", ("user_id",)),
        CascadeRule("past_answer", ("user_id",)),
    ),
    "set": (
        CascadeRule("set_user", ("set_id",)),
        CascadeRule("problem", ("set_id",)),
        CascadeRule("set_location", ("set_id",)),
    ),
    "set_user": (
        CascadeRule("set_version", ("user_id", "set_id")),
        CascadeRule("set_version_counter", ("user_id", "set_id")),
        CascadeRule("problem_user", ("user_id", "set_id")),
    ),
    "set_version": (
        CascadeRule("problem_version", ("user_id", "set_id", "version_id")),
    ),
    "problem": (
        CascadeRule("problem_user", ("set_id", "problem_id")),
    ),
    "achievement": (
        CascadeRule("achievement_user", ("achievement_id",)),
    ),
    "global_user_achievement": (
        CascadeRule("achievement_user", ("user_id",)),
    ),
    "location": (
        CascadeRule("set_location", ("location_id",)),
        CascadeRule("set_location_user", ("location_id",)),
        CascadeRule("location_address", ("location_id",)),
    ),
    "set_location": (
        CascadeRule("set_location_user", ("set_id", "location_id")),
    ),
}


class CascadeEngine:
    """Runs the cascade table against a registry's repositories.

    ``repositories`` is the registry's name → repository lookup.  It is
    read at delete time, so it may be filled after the engine is built.
    """

    def __init__(
        self,
        repositories: Mapping[str, Repository],
        rules: Mapping[str, tuple[CascadeRule, ...]] | None = None,
    ) -> None:
        self._repositories = repositories
        self._rules = CASCADE_RULES if rules is None else rules

    def children_of(self, entity: str) -> tuple[CascadeRule, ...]:
        return self._rules.get(entity, ())

    def delete_dependents(self, entity: str, parent: CascadeFilter) -> int:
        """Delete every dependent row of the rows matching ``parent``.

        Returns the number of dependent rows deleted, at every depth.
        """
        deleted = 0
        for rule in self.children_of(entity):
            repo = self._repositories[rule.child]
            child = parent.narrow(rule.child, repo.record_type, rule.shared)
            deleted += repo.delete_matching(child)
        if deleted:
            logger.debug("cascade_delete", entity=entity, filter=dict(parent.parts), rows=deleted)
        return deleted


__all__ = ["CASCADE_RULES", "CascadeEngine", "CascadeRule"]
