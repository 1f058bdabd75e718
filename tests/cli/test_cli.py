"""
Tests for the lmsdb CLI.
"""

from __future__ import annotations

import importlib

import pytest
from typer.testing import CliRunner

from lmsdb import __version__
from lmsdb.cli.app import app

# lmsdb.cli re-exports the Typer object under the submodule's name
app_module = importlib.import_module("lmsdb.cli.app")

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the CLI from reconfiguring structlog for the rest of the session."""
    monkeypatch.setattr(app_module, "configure_logging", lambda **kwargs: None)


@pytest.fixture
def db_args(tmp_path) -> list[str]:
    return ["--database", f"sqlite:///{tmp_path / 'course.db'}", "--course", "math101"]


def _invoke(*args: str):
    return runner.invoke(app, list(args))


class TestRoot:
    def test_version(self):
        result = _invoke("--version")
        assert result.exit_code == 0
        assert f"lmsdb {__version__}" in result.output

    def test_help_lists_commands(self):
        result = _invoke("--help")
        assert result.exit_code == 0
        assert "tables" in result.output
        assert "status" in result.output


class TestTables:
    def test_create_then_status(self, db_args):
        result = _invoke("tables", "create", *db_args)
        assert result.exit_code == 0, result.output
        assert "created 20 tables for course math101" in result.output

        result = _invoke("status", *db_args, "--json")
        assert result.exit_code == 0, result.output
        assert '"user": 0' in result.output

    def test_status_without_tables(self, db_args):
        result = _invoke("status", *db_args)
        assert result.exit_code == 1
        assert "TableMissing" in result.output

    def test_dump_restore(self, db_args, tmp_path):
        _invoke("tables", "create", *db_args)
        dump_dir = tmp_path / "dump"
        result = _invoke("tables", "dump", str(dump_dir), *db_args)
        assert result.exit_code == 0, result.output
        assert (dump_dir / "user.json").exists()

        result = _invoke("tables", "restore", str(dump_dir), *db_args)
        assert result.exit_code == 0, result.output
        assert "restored 20 tables" in result.output

    def test_rename(self, db_args, tmp_path):
        _invoke("tables", "create", *db_args)
        result = _invoke("tables", "rename", "math102", *db_args)
        assert result.exit_code == 0, result.output
        assert "renamed 20 tables from math101 to math102" in result.output

        renamed = [db_args[0], db_args[1], "--course", "math102"]
        assert _invoke("status", *renamed).exit_code == 0

    def test_delete_requires_confirmation(self, db_args):
        _invoke("tables", "create", *db_args)
        result = runner.invoke(app, ["tables", "delete", *db_args], input="n\n")
        assert result.exit_code != 0
        assert _invoke("status", *db_args).exit_code == 0

        result = _invoke("tables", "delete", *db_args, "--yes")
        assert result.exit_code == 0, result.output
        assert _invoke("status", *db_args).exit_code == 1

    def test_invalid_course_name(self, tmp_path):
        result = _invoke("tables", "create", "--database", f"sqlite:///{tmp_path / 'c.db'}",
                         "--course", "bad name")
        assert result.exit_code == 2
        assert "Invalid settings" in result.output
