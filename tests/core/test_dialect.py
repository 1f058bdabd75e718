"""Tests for ``lmsdb.core.dialect``."""

import sqlite3

import pytest

from lmsdb.core.dialect import Dialect, SQLiteDialect, get_dialect


class TestSQLiteDialect:
    def setup_method(self):
        self.d = SQLiteDialect()

    def test_is_dialect(self):
        assert isinstance(self.d, Dialect)
        assert self.d.name == "sqlite"

    def test_placeholders(self):
        assert self.d.placeholder(3) == "?"
        assert self.d.placeholders(3) == "?, ?, ?"

    def test_quote_escapes(self):
        assert self.d.quote("user") == '"user"'
        assert self.d.quote('a"b') == '"a""b"'

    def test_column_types(self):
        assert self.d.column_type(int) == "INTEGER"
        assert self.d.column_type(float) == "REAL"
        assert self.d.column_type(str) == "TEXT"
        assert self.d.column_type(dict) == "TEXT"

    def test_rename_table(self):
        assert self.d.rename_table("a_user", "b_user") == 'ALTER TABLE "a_user" RENAME TO "b_user"'

    def test_error_classification(self):
        assert self.d.is_duplicate_key(sqlite3.IntegrityError("UNIQUE constraint failed: t.id"))
        assert not self.d.is_duplicate_key(sqlite3.IntegrityError("NOT NULL constraint failed"))
        assert self.d.is_missing_table(sqlite3.OperationalError("no such table: t"))
        assert not self.d.is_missing_table(ValueError("no such table"))


class TestGetDialect:
    def test_sqlite(self):
        assert isinstance(get_dialect("sqlite"), SQLiteDialect)

    def test_unknown(self):
        with pytest.raises(KeyError, match="No dialect for backend 'oracle'"):
            get_dialect("oracle")
