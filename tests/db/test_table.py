"""Tests for ``lmsdb.db.table.SQLTable``."""

from __future__ import annotations

import json

import pytest

from lmsdb.core.errors import RecordExists, TableMissing
from lmsdb.db import records as rec
from lmsdb.db.table import SQLTable


@pytest.fixture
def users(conn) -> SQLTable:
    table = SQLTable(conn, entity="user", table="t_user", record=rec.User)
    table.create_table()
    return table


@pytest.fixture
def answers(conn) -> SQLTable:
    table = SQLTable(conn, entity="past_answer", table="t_past_answer", record=rec.PastAnswer)
    table.create_table()
    return table


class TestSingleRecord:
    def test_add_get(self, users):
        assert users.add(rec.User(user_id="alice", first_name="Alice")) == 1
        assert users.exists("alice")
        assert users.get("alice") == rec.User(user_id="alice", first_name="Alice")
        assert users.get("bob") is None

    def test_duplicate_add(self, users):
        users.add(rec.User(user_id="alice"))
        with pytest.raises(RecordExists) as exc:
            users.add(rec.User(user_id="alice"))
        assert exc.value.context.key == ("alice",)
        assert exc.value.context.table == "t_user"

    def test_gets_omits_missing(self, users):
        users.add(rec.User(user_id="alice"))
        users.add(rec.User(user_id="carol"))
        found = users.gets([("carol",), ("bob",), ("alice",)])
        assert [u.user_id for u in found] == ["carol", "alice"]

    def test_put(self, users):
        users.add(rec.User(user_id="alice", first_name="A"))
        assert users.put(rec.User(user_id="alice", first_name="Alice")) == 1
        assert users.get("alice").first_name == "Alice"
        assert users.put(rec.User(user_id="bob")) == 0

    def test_delete(self, users):
        users.add(rec.User(user_id="alice"))
        assert users.delete("alice") == 1
        assert users.delete("alice") == 0

    def test_reads_are_fresh_copies(self, users):
        users.add(rec.User(user_id="alice", first_name="Alice"))
        first = users.get("alice")
        first.first_name = "changed"
        assert users.get("alice").first_name == "Alice"


class TestAutoKey:
    def test_answer_id_assigned(self, answers):
        answer = rec.PastAnswer(user_id="alice", set_id="hw1", problem_id="1")
        answers.add(answer)
        assert answer.answer_id == 1
        second = rec.PastAnswer(user_id="alice", set_id="hw1", problem_id="1")
        answers.add(second)
        assert second.answer_id == 2


class TestJsonFields:
    def test_session_round_trip(self, conn):
        keys = SQLTable(conn, entity="key", table="t_key", record=rec.Key)
        keys.create_table()
        keys.add(rec.Key(user_id="alice", key="abc", session={"flash": ["hi"]}))
        assert keys.get("alice").session == {"flash": ["hi"]}


class TestFilteredQueries:
    @pytest.fixture(autouse=True)
    def _populate(self, users):
        for uid, section in [("alice", "1"), ("bob", "2"), ("carol", "1"), ("set_id:hw1", None)]:
            users.add(rec.User(user_id=uid, section=section))

    def test_count_and_exists(self, users):
        assert users.count_where() == 4
        assert users.count_where({"section": "1"}) == 2
        assert users.exists_where({"section": None})
        assert not users.exists_where({"section": "9"})

    def test_list_where_returns_keys(self, users):
        assert users.list_where({"section": "1"}, ["-user_id"]) == [("carol",), ("alice",)]

    def test_get_records_where(self, users):
        records = users.get_records_where({"section": "2"})
        assert records == [rec.User(user_id="bob", section="2")]

    def test_get_fields_where_distinct(self, users):
        rows = users.get_fields_where(["section"], {"section": "1"}, distinct=True)
        assert rows == [("1",)]

    def test_delete_where(self, users):
        assert users.delete_where({"section": "1"}) == 2
        assert users.count_where() == 2


class TestMaintenance:
    def test_missing_table(self, conn):
        table = SQLTable(conn, entity="user", table="absent", record=rec.User)
        with pytest.raises(TableMissing) as exc:
            table.exists("alice")
        assert exc.value.context.table == "absent"

    def test_create_is_idempotent(self, users):
        users.add(rec.User(user_id="alice"))
        users.create_table()
        assert users.exists("alice")

    def test_delete_table(self, users):
        users.delete_table()
        with pytest.raises(TableMissing):
            users.count_where()
        users.delete_table()

    def test_rename_table(self, users):
        users.add(rec.User(user_id="alice"))
        users.rename_table("t_user_renamed")
        assert users.table == "t_user_renamed"
        assert users.exists("alice")

    def test_dump_restore(self, users, tmp_path):
        users.add(rec.User(user_id="alice", first_name="Alice"))
        users.add(rec.User(user_id="bob"))
        path = tmp_path / "user.json"
        assert users.dump_table(path) == 2
        assert {row["user_id"] for row in json.loads(path.read_text())} == {"alice", "bob"}

        users.delete("alice")
        users.add(rec.User(user_id="zed"))
        assert users.restore_table(path) == 2
        assert sorted(k[0] for k in users.list_where()) == ["alice", "bob"]
        assert users.get("alice").first_name == "Alice"

    def test_restore_keeps_answer_ids(self, answers, tmp_path):
        answers.add(rec.PastAnswer(user_id="alice", set_id="hw1", problem_id="1"))
        answers.add(rec.PastAnswer(user_id="alice", set_id="hw1", problem_id="2"))
        answers.delete(1)
        path = tmp_path / "past_answer.json"
        answers.dump_table(path)
        answers.restore_table(path)
        assert answers.list_where() == [(2,)]

    def test_restore_duplicate_row(self, users, tmp_path):
        path = tmp_path / "user.json"
        path.write_text(json.dumps([{"user_id": "alice"}, {"user_id": "bob"}, {"user_id": "alice"}]))
        with pytest.raises(RecordExists) as exc:
            users.restore_table(path)
        assert exc.value.context.table == "t_user"
