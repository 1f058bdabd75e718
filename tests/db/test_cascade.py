"""Tests for cascading deletes."""

from __future__ import annotations

from structlog.testing import capture_logs

from lmsdb.db import records as rec
from lmsdb.db.cascade import CASCADE_RULES, CascadeEngine, CascadeRule


class TestCascadeRules:
    def test_user_dependents_in_order(self):
        assert [r.child for r in CASCADE_RULES["user"]] == [
            "set_user", "password", "global_user_achievement", "permission", "key", "past_answer",
        ]

    def test_children_of_leaf(self):
        engine = CascadeEngine({})
        assert engine.children_of("password") == ()

    def test_custom_rules(self):
        engine = CascadeEngine({}, rules={"a": (CascadeRule("b", ("user_id",)),)})
        assert engine.children_of("a")[0].child == "b"


class TestDeleteSet:
    def test_removes_assignments_and_problems(self, course):
        course.users.add(rec.User(user_id="carol"))
        course.user_sets.add(rec.UserSet(user_id="carol", set_id="hw1"))
        course.global_sets.add(rec.GlobalSet(set_id="hw2"))
        course.user_sets.add(rec.UserSet(user_id="carol", set_id="hw2"))

        assert course.global_sets.delete("hw1") == 1

        assert not course.user_sets.exists("alice", "hw1")
        assert not course.user_sets.exists("carol", "hw1")
        assert course.global_problems.count_where({"set_id": "hw1"}) == 0
        assert course.user_problems.count_where({"set_id": "hw1"}) == 0
        assert course.user_sets.exists("carol", "hw2")
        assert course.users.exists("alice")

    def test_removes_versions(self, course):
        course.versions.add_version("alice", "hw1")
        course.global_sets.delete("hw1")
        assert course.set_versions.count_where() == 0
        assert course.problem_versions.count_where() == 0


class TestDeleteUser:
    def test_removes_everything_owned(self, course):
        course.passwords.add(rec.Password(user_id="alice", password="x"))
        course.permission_levels.add(rec.PermissionLevel(user_id="alice", permission=0))
        course.keys.add(rec.Key(user_id="alice", key="k"))
        course.past_answers.add(rec.PastAnswer(user_id="alice", set_id="hw1", problem_id="1"))
        course.achievements.add(rec.Achievement(achievement_id="first"))
        course.user_achievements.add(rec.UserAchievement(user_id="alice", achievement_id="first"))
        course.global_user_achievements.add(rec.GlobalUserAchievement(user_id="alice"))

        course.users.delete("alice")

        for repo in (course.passwords, course.permission_levels, course.keys,
                     course.global_user_achievements):
            assert not repo.exists("alice")
        assert course.past_answers.count_where() == 0
        assert course.user_problems.count_where() == 0
        assert course.user_achievements.count_where() == 0
        assert course.achievements.exists("first")
        assert course.global_sets.exists("hw1")
        assert course.global_problems.count_where() == 2

    def test_other_users_untouched(self, course):
        course.user_sets.add(rec.UserSet(user_id="bob", set_id="hw1"))
        course.users.delete("alice")
        assert course.user_sets.exists("bob", "hw1")


class TestDeleteProblem:
    def test_removes_user_problems_of_that_problem_only(self, course):
        course.global_problems.delete("hw1", "1")
        assert not course.user_problems.exists("alice", "hw1", "1")
        assert course.user_problems.exists("alice", "hw1", "2")


class TestDeleteLocation:
    def test_removes_addresses_and_set_locations(self, course):
        course.locations.add(rec.Location(location_id="lab"))
        course.location_addresses.add(rec.LocationAddress(location_id="lab", ip_mask="10.0.0.0/8"))
        course.global_set_locations.add(rec.GlobalSetLocation(set_id="hw1", location_id="lab"))
        course.user_set_locations.add(
            rec.UserSetLocation(user_id="alice", set_id="hw1", location_id="lab")
        )

        course.locations.delete("lab")

        assert course.location_addresses.count_where() == 0
        assert course.global_set_locations.count_where() == 0
        assert course.user_set_locations.count_where() == 0

    def test_set_location_removes_user_set_locations(self, course):
        course.locations.add(rec.Location(location_id="lab"))
        course.global_set_locations.add(rec.GlobalSetLocation(set_id="hw1", location_id="lab"))
        course.user_set_locations.add(
            rec.UserSetLocation(user_id="alice", set_id="hw1", location_id="lab")
        )
        course.global_set_locations.delete("hw1", "lab")
        assert not course.user_set_locations.exists("alice", "hw1", "lab")
        assert course.locations.exists("lab")


def test_cascade_is_logged(course):
    with capture_logs() as logs:
        course.global_sets.delete("hw1")
    events = [e for e in logs if e["event"] == "cascade_delete"]
    assert events
    assert events[-1]["entity"] == "set"
    assert events[-1]["filter"] == {"set_id": "hw1"}
