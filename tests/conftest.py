"""
Shared pytest fixtures for lmsdb tests.

This module provides:
- In-memory connections and course databases with tables created
- A populated course ("alice" assigned "hw1" with two problems)
- Settings cache isolation

Usage:
    def test_something(course):
        assert course.user_sets.exists("alice", "hw1")
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from lmsdb.core.settings import clear_settings_cache
from lmsdb.core.sqlite_conn import SqliteConnection
from lmsdb.db import records as rec
from lmsdb.db.database import CourseDatabase


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep LMSDB_* environment and cached settings from leaking between tests."""
    for name in ("LMSDB_DATABASE_URL", "LMSDB_COURSE_NAME", "LMSDB_LOG_LEVEL",
                 "LMSDB_LOG_FORMAT", "LMSDB_DUMP_DIR"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def conn() -> Iterator[SqliteConnection]:
    connection = SqliteConnection(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def db(conn: SqliteConnection) -> CourseDatabase:
    """Empty course database with every table created."""
    database = CourseDatabase(conn, "math101")
    database.create_all_tables()
    return database


@pytest.fixture
def course(db: CourseDatabase) -> CourseDatabase:
    """Course with alice and bob, set hw1 (problems 1 and 2) assigned to alice."""
    db.users.add(rec.User(user_id="alice", first_name="Alice", last_name="Liddell"))
    db.users.add(rec.User(user_id="bob", first_name="Bob"))
    db.global_sets.add(rec.GlobalSet(set_id="hw1", due_date=1000, set_header="header.pg"))
    db.global_problems.add(rec.GlobalProblem(set_id="hw1", problem_id="1", value=1, max_attempts=3))
    db.global_problems.add(rec.GlobalProblem(set_id="hw1", problem_id="2", value=2, max_attempts=5))
    db.user_sets.add(rec.UserSet(user_id="alice", set_id="hw1", due_date=2000))
    db.user_problems.add(rec.UserProblem(user_id="alice", set_id="hw1", problem_id="1",
                                         problem_seed=42, status=0.5))
    db.user_problems.add(rec.UserProblem(user_id="alice", set_id="hw1", problem_id="2",
                                         max_attempts=10))
    return db
