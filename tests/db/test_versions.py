"""Tests for set versions (repeatable attempts)."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from lmsdb.core.errors import DependencyNotFound, ValidationError


class TestAddVersion:
    def test_first_version(self, course):
        assert course.versions.add_version("alice", "hw1") == 1
        version = course.versions.get_version("alice", "hw1", 1)
        assert version.due_date == 2000
        assert version.version_creation_time is not None

    def test_copies_problems(self, course):
        course.versions.add_version("alice", "hw1")
        assert sorted(course.list_problem_versions("alice", "hw1", 1)) == ["1", "2"]
        pv = course.problem_versions.get("alice", "hw1", 1, "1")
        assert pv.problem_seed == 42
        assert pv.status == 0.5

    def test_ids_increase(self, course):
        ids = [course.versions.add_version("alice", "hw1") for _ in range(3)]
        assert ids == [1, 2, 3]
        assert course.versions.list_versions("alice", "hw1") == [1, 2, 3]
        assert course.versions.count_versions("alice", "hw1") == 3

    def test_unassigned_set(self, course):
        with pytest.raises(DependencyNotFound, match="set hw1 not found for user bob"):
            course.versions.add_version("bob", "hw1")
        assert course.set_versions.count_where() == 0

    def test_missing_argument(self, course):
        with pytest.raises(ValidationError):
            course.versions.add_version("alice", None)

    def test_logged(self, course):
        with capture_logs() as logs:
            course.versions.add_version("alice", "hw1")
        created = [e for e in logs if e["event"] == "set_version_created"]
        assert created == [{
            "event": "set_version_created", "user_id": "alice", "set_id": "hw1",
            "version_id": 1, "problems": 2, "log_level": "info",
        }]


class TestDeleteVersion:
    def test_cascades_to_problem_versions(self, course):
        course.versions.add_version("alice", "hw1")
        course.versions.add_version("alice", "hw1")
        assert course.versions.delete_version("alice", "hw1", 1) == 1
        assert course.versions.list_versions("alice", "hw1") == [2]
        assert course.problem_versions.count_where({"version_id": 1}) == 0
        assert course.problem_versions.count_where({"version_id": 2}) == 2

    def test_deleted_latest_number_is_not_reissued(self, course):
        course.versions.add_version("alice", "hw1")
        course.versions.add_version("alice", "hw1")
        course.versions.delete_version("alice", "hw1", 2)
        assert course.versions.add_version("alice", "hw1") == 3
        assert course.versions.list_versions("alice", "hw1") == [1, 3]

    def test_all_deleted_keeps_counting(self, course):
        course.versions.add_version("alice", "hw1")
        course.versions.delete_version("alice", "hw1", 1)
        assert course.versions.list_versions("alice", "hw1") == []
        assert course.versions.add_version("alice", "hw1") == 2
        assert course.set_version_counters.get("alice", "hw1").last_version_id == 2

    def test_counter_removed_with_user_set(self, course):
        course.versions.add_version("alice", "hw1")
        course.user_sets.delete("alice", "hw1")
        assert not course.set_version_counters.exists("alice", "hw1")

    def test_versions_without_counter_row(self, course):
        course.versions.add_version("alice", "hw1")
        course.set_version_counters.delete("alice", "hw1")
        assert course.versions.add_version("alice", "hw1") == 2


class TestAtomicity:
    def test_failed_copy_leaves_no_version(self, course, monkeypatch):
        def boom(record):
            raise RuntimeError("disk full")

        monkeypatch.setattr(course.problem_versions, "add", boom)
        with pytest.raises(RuntimeError):
            course.versions.add_version("alice", "hw1")
        assert course.set_versions.count_where() == 0
        assert not course.transactions.active

    def test_joins_open_transaction(self, course):
        with course.transaction():
            course.versions.add_version("alice", "hw1")
            assert course.transactions.active
        assert course.versions.list_versions("alice", "hw1") == [1]
