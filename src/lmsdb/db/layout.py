"""
Static entity layout for a course database.

One :class:`EntityDescriptor` per entity names its record type, its
physical table, the entities it depends on, the parent rows that must
exist before a row is added, and its execution parameters.  The schema
registry instantiates one repository per descriptor from this table; there
is no runtime code generation.

Dependency graph (``depends``)::

    user ──┬── password, permission, key, global_user_achievement
           │
    set ───┼── set_user ── set_version ── problem_version
           │       │   └── set_version_counter    │
           │       │                          │
    problem┴── problem_user ──────────────────┘
                   │
               past_answer

    achievement + user ── achievement_user
    location ── location_address
    set ── set_location ;  set_user + location ── set_location_user

Tags:
    layout, schema, descriptors, dependency-graph
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from lmsdb.db import records as rec
from lmsdb.db.table import SQLTable
from lmsdb.db.utils import grok_vset_id


def _fields(*names: str) -> Callable[[Any], tuple]:
    def key_of(record: Any) -> tuple:
        return tuple(getattr(record, name) for name in names)

    return key_of


@dataclass(frozen=True)
class ParentCheck:
    """A parent row that must exist before a record is added.

    Attributes:
        entity: Parent entity name.
        key_of: Builds the parent key from the record being added.
        skip_if: When it returns true for the record, the check is skipped.
    """

    entity: str
    key_of: Callable[[Any], tuple]
    skip_if: Callable[[Any], bool] | None = None

    def applies_to(self, record: Any) -> bool:
        return self.skip_if is None or not self.skip_if(record)


@dataclass(frozen=True)
class EntityDescriptor:
    """Declaration of one entity.

    Attributes:
        name: Entity name (registry key, cascade and error context name).
        record: Record type.
        table: Physical table name.
        depends: Entities that must be initialized first.
        requires: Parent rows checked before ``add``.
        upsert: ``put`` on a missing row falls back to ``add``.
        versioned: ``add`` accepts versioned set ids (``"hw1,v3"``).
        non_native: Skipped by whole-store maintenance operations.
        table_class: Table collaborator type.
    """

    name: str
    record: type[rec.Record]
    table: str
    depends: tuple[str, ...] = ()
    requires: tuple[ParentCheck, ...] = ()
    upsert: bool = False
    versioned: bool = False
    non_native: bool = False
    table_class: type = field(default=SQLTable)


def database_layout(course_name: str) -> tuple[EntityDescriptor, ...]:
    """Descriptors for every entity of ``course_name``'s database.

    Tables are named ``<course_name>_<entity>``.
    """

    def table(name: str) -> str:
        return f"{course_name}_{name}"

    user = ParentCheck("user", _fields("user_id"))
    user_set = ParentCheck("set_user", _fields("user_id", "set_id"))

    return (
        EntityDescriptor("user", rec.User, table("user")),
        EntityDescriptor(
            "password", rec.Password, table("password"),
            depends=("user",), requires=(user,), upsert=True,
        ),
        EntityDescriptor(
            "permission", rec.PermissionLevel, table("permission"),
            depends=("user",), requires=(user,), upsert=True,
        ),
        EntityDescriptor(
            "key", rec.Key, table("key"),
            depends=("user",),
            requires=(ParentCheck("user", _fields("user_id"), skip_if=lambda r: r.key == "nonce"),),
        ),
        EntityDescriptor("setting", rec.Setting, table("setting")),
        EntityDescriptor("location", rec.Location, table("locations")),
        EntityDescriptor(
            "location_address", rec.LocationAddress, table("location_addresses"),
            depends=("location",), requires=(ParentCheck("location", _fields("location_id")),),
        ),
        EntityDescriptor("set", rec.GlobalSet, table("set")),
        EntityDescriptor(
            "set_user", rec.UserSet, table("set_user"),
            depends=("user", "set"),
            requires=(user, ParentCheck("set", _fields("set_id"))),
        ),
        EntityDescriptor(
            "set_version", rec.SetVersion, table("set_version"),
            depends=("set_user",), requires=(user_set,),
        ),
        EntityDescriptor(
            "set_version_counter", rec.SetVersionCounter, table("set_version_counter"),
            depends=("set_user",), requires=(user_set,), upsert=True,
        ),
        EntityDescriptor(
            "problem", rec.GlobalProblem, table("problem"),
            depends=("set",), requires=(ParentCheck("set", _fields("set_id")),),
        ),
        EntityDescriptor(
            "problem_user", rec.UserProblem, table("problem_user"),
            depends=("set_user", "problem"),
            requires=(
                user_set,
                ParentCheck("problem", lambda r: (grok_vset_id(r.set_id)[0], r.problem_id)),
            ),
            versioned=True,
        ),
        EntityDescriptor(
            "problem_version", rec.ProblemVersion, table("problem_version"),
            depends=("set_version", "problem_user"),
            requires=(
                ParentCheck("set_version", _fields("user_id", "set_id", "version_id")),
                ParentCheck("problem_user", _fields("user_id", "set_id", "problem_id")),
            ),
        ),
        EntityDescriptor(
            "past_answer", rec.PastAnswer, table("past_answer"),
            depends=("problem_user",),
            requires=(ParentCheck("problem_user", _fields("user_id", "set_id", "problem_id")),),
        ),
        EntityDescriptor("achievement", rec.Achievement, table("achievement")),
        EntityDescriptor(
            "achievement_user", rec.UserAchievement, table("achievement_user"),
            depends=("user", "achievement"),
            requires=(user, ParentCheck("achievement", _fields("achievement_id"))),
        ),
        EntityDescriptor(
            "global_user_achievement", rec.GlobalUserAchievement, table("global_user_achievement"),
            depends=("user",),
        ),
        EntityDescriptor(
            "set_location", rec.GlobalSetLocation, table("set_locations"),
            depends=("set", "location"), requires=(ParentCheck("set", _fields("set_id")),),
        ),
        EntityDescriptor(
            "set_location_user", rec.UserSetLocation, table("set_locations_user"),
            depends=("set_user", "location"), requires=(user_set,),
            versioned=True,
        ),
    )


__all__ = ["EntityDescriptor", "ParentCheck", "database_layout"]
