"""Record types for every course entity.

Manifesto:
    Each entity is a plain dataclass declaring its key fields
    (``KEYFIELDS``) and its non-key fields.  Records carry no behaviour
    beyond key extraction and dict conversion; repositories hand back fresh
    instances on every read, so there is never a shared mutable object
    graph.

Class attributes:
    KEYFIELDS    Ordered key fields (the composite primary key)
    AUTO_KEY     Key field assigned by the store on insert, if any
    JSON_FIELDS  Fields stored JSON-encoded and decoded on read

The ``Merged*`` types are never persisted; they are computed projections
built by :mod:`lmsdb.db.merge`.

Tags:
    records, dataclasses, data-model, entities
"""

from __future__ import annotations

import copy
import types
import typing
from dataclasses import dataclass, fields
from typing import Any, ClassVar


@dataclass
class Record:
    """Base class for all entity records."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ()
    AUTO_KEY: ClassVar[str | None] = None
    JSON_FIELDS: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def nonkey_fields(cls) -> tuple[str, ...]:
        return tuple(name for name in cls.field_names() if name not in cls.KEYFIELDS)

    @classmethod
    def field_types(cls) -> dict[str, Any]:
        """Map each field to its annotated type with ``None`` stripped."""
        hints = typing.get_type_hints(cls)
        result: dict[str, Any] = {}
        for name in cls.field_names():
            hint = hints[name]
            if isinstance(hint, types.UnionType) or typing.get_origin(hint) is typing.Union:
                args = [a for a in typing.get_args(hint) if a is not type(None)]
                hint = args[0] if args else str
            result[name] = typing.get_origin(hint) or hint
        return result

    @property
    def primary_key(self) -> tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.KEYFIELDS)

    def to_dict(self) -> dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self.field_names()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Record:
        """Build a record from a mapping, ignoring unknown keys."""
        known = set(cls.field_names())
        return cls(**{k: v for k, v in data.items() if k in known})

    def copy(self) -> Record:
        return copy.deepcopy(self)


# ---------------------------------------------------------------------------
# Users and credentials
# ---------------------------------------------------------------------------


@dataclass
class User(Record):
    """A course participant."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id",)

    user_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email_address: str | None = None
    student_id: str | None = None
    status: str | None = None
    section: str | None = None
    recitation: str | None = None
    comment: str | None = None


@dataclass
class Password(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id",)

    user_id: str | None = None
    password: str | None = None


@dataclass
class PermissionLevel(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id",)

    user_id: str | None = None
    permission: int | None = None


@dataclass
class Key(Record):
    """Session key.  ``session`` is a dict stored as JSON."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id",)
    JSON_FIELDS: ClassVar[tuple[str, ...]] = ("session",)

    user_id: str | None = None
    key: str | None = None
    timestamp: int | None = None
    session: dict[str, Any] | None = None


@dataclass
class Setting(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("name",)

    name: str | None = None
    value: str | None = None


# ---------------------------------------------------------------------------
# IP restriction locations
# ---------------------------------------------------------------------------


@dataclass
class Location(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("location_id",)

    location_id: str | None = None
    description: str | None = None


@dataclass
class LocationAddress(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("location_id", "ip_mask")

    location_id: str | None = None
    ip_mask: str | None = None


# ---------------------------------------------------------------------------
# Answer log
# ---------------------------------------------------------------------------


@dataclass
class PastAnswer(Record):
    """One submitted answer.  ``answer_id`` is assigned by the store."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("answer_id",)
    AUTO_KEY: ClassVar[str | None] = "answer_id"

    answer_id: int | None = None
    user_id: str | None = None
    set_id: str | None = None
    problem_id: str | None = None
    source_file: str | None = None
    timestamp: int | None = None
    scores: str | None = None
    answer_string: str | None = None
    comment_string: str | None = None
    problem_seed: int | None = None


# ---------------------------------------------------------------------------
# Sets
# ---------------------------------------------------------------------------


@dataclass
class GlobalSet(Record):
    """Shared definition of an assignment."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("set_id",)

    set_id: str | None = None
    set_header: str | None = None
    hardcopy_header: str | None = None
    open_date: int | None = None
    due_date: int | None = None
    answer_date: int | None = None
    reduced_scoring_date: int | None = None
    visible: int | None = None
    enable_reduced_scoring: int | None = None
    assignment_type: str | None = None
    description: str | None = None
    attempts_per_version: int | None = None
    time_interval: int | None = None
    versions_per_interval: int | None = None
    version_time_limit: int | None = None
    problem_randorder: int | None = None
    problems_per_page: int | None = None
    hide_score: str | None = None
    hide_work: str | None = None
    time_limit_cap: int | None = None
    restrict_ip: str | None = None
    relax_restrict_ip: str | None = None
    restricted_login_proctor: str | None = None


@dataclass
class UserSet(Record):
    """Per-user override of a :class:`GlobalSet`; unset fields are ``None``."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id", "set_id")

    user_id: str | None = None
    set_id: str | None = None
    set_header: str | None = None
    hardcopy_header: str | None = None
    open_date: int | None = None
    due_date: int | None = None
    answer_date: int | None = None
    reduced_scoring_date: int | None = None
    visible: int | None = None
    enable_reduced_scoring: int | None = None
    assignment_type: str | None = None
    description: str | None = None
    attempts_per_version: int | None = None
    time_interval: int | None = None
    versions_per_interval: int | None = None
    version_time_limit: int | None = None
    problem_randorder: int | None = None
    problems_per_page: int | None = None
    hide_score: str | None = None
    hide_work: str | None = None
    time_limit_cap: int | None = None
    restrict_ip: str | None = None
    relax_restrict_ip: str | None = None
    restricted_login_proctor: str | None = None


@dataclass
class SetVersion(UserSet):
    """Snapshot of a :class:`UserSet` for one gateway attempt."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id", "set_id", "version_id")

    version_id: int | None = None
    version_creation_time: int | None = None
    version_last_attempt_time: int | None = None


@dataclass
class SetVersionCounter(Record):
    """Highest version id ever issued for a user's set.

    Kept apart from :class:`UserSet` so that version numbers are not handed
    out twice after the latest version is deleted.
    """

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id", "set_id")

    user_id: str | None = None
    set_id: str | None = None
    last_version_id: int | None = None


# ---------------------------------------------------------------------------
# Problems
# ---------------------------------------------------------------------------


@dataclass
class GlobalProblem(Record):
    """A problem within a :class:`GlobalSet`.  ``problem_id`` is numeric."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("set_id", "problem_id")

    set_id: str | None = None
    problem_id: str | None = None
    source_file: str | None = None
    value: int | None = None
    max_attempts: int | None = None
    att_to_open_children: int | None = None
    counts_parent_grade: int | None = None
    showMeAnother: int | None = None
    showHintsAfter: int | None = None
    prPeriod: int | None = None
    flags: str | None = None


@dataclass
class UserProblem(GlobalProblem):
    """Per-user override of a :class:`GlobalProblem` plus grading state."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id", "set_id", "problem_id")

    user_id: str | None = None
    problem_seed: int | None = None
    status: float | None = None
    attempted: int | None = None
    last_answer: str | None = None
    num_correct: int | None = None
    num_incorrect: int | None = None
    sub_status: float | None = None


@dataclass
class ProblemVersion(UserProblem):
    """Snapshot of a :class:`UserProblem` tied to one :class:`SetVersion`."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id", "set_id", "version_id", "problem_id")

    version_id: int | None = None


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


@dataclass
class Achievement(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("achievement_id",)

    achievement_id: str | None = None
    name: str | None = None
    description: str | None = None
    points: int | None = None
    test: str | None = None
    icon: str | None = None
    category: str | None = None
    enabled: int | None = None
    max_counter: int | None = None
    number: int | None = None
    assignment_type: str | None = None


@dataclass
class UserAchievement(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id", "achievement_id")

    user_id: str | None = None
    achievement_id: str | None = None
    earned: int | None = None
    counter: int | None = None
    frozen_hash: str | None = None


@dataclass
class GlobalUserAchievement(Record):
    """Aggregate achievement score and level for one user."""

    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id",)

    user_id: str | None = None
    achievement_points: int | None = None
    next_level_points: int | None = None
    level_achievement_id: str | None = None
    achievement_frozen_hash: str | None = None


# ---------------------------------------------------------------------------
# Set locations
# ---------------------------------------------------------------------------


@dataclass
class GlobalSetLocation(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("set_id", "location_id")

    set_id: str | None = None
    location_id: str | None = None


@dataclass
class UserSetLocation(Record):
    KEYFIELDS: ClassVar[tuple[str, ...]] = ("user_id", "set_id", "location_id")

    user_id: str | None = None
    set_id: str | None = None
    location_id: str | None = None


# ---------------------------------------------------------------------------
# Merged (computed, never persisted)
# ---------------------------------------------------------------------------


@dataclass
class MergedSet(UserSet):
    pass


@dataclass
class MergedProblem(UserProblem):
    pass


@dataclass
class MergedSetVersion(SetVersion):
    pass


@dataclass
class MergedProblemVersion(ProblemVersion):
    pass


__all__ = [
    "Record",
    "User",
    "Password",
    "PermissionLevel",
    "Key",
    "Setting",
    "Location",
    "LocationAddress",
    "PastAnswer",
    "GlobalSet",
    "UserSet",
    "SetVersion",
    "SetVersionCounter",
    "GlobalProblem",
    "UserProblem",
    "ProblemVersion",
    "Achievement",
    "UserAchievement",
    "GlobalUserAchievement",
    "GlobalSetLocation",
    "UserSetLocation",
    "MergedSet",
    "MergedProblem",
    "MergedSetVersion",
    "MergedProblemVersion",
]
