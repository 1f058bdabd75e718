"""Tests for ``lmsdb.core.settings``."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from lmsdb.core.settings import LMSDBSettings, clear_settings_cache, get_settings


class TestDefaults:
    def test_defaults(self):
        s = LMSDBSettings(_env_file=None)
        assert s.course_name == "default"
        assert s.log_level == "INFO"
        assert s.json_logs is True
        assert s.dump_dir == Path("dumps")


class TestEnvironment:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LMSDB_COURSE_NAME", "math101")
        monkeypatch.setenv("LMSDB_DATABASE_URL", "memory")
        monkeypatch.setenv("LMSDB_LOG_FORMAT", "console")
        s = LMSDBSettings(_env_file=None)
        assert s.course_name == "math101"
        assert s.database_url == "memory"
        assert s.json_logs is False

    def test_invalid_course_name(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LMSDB_COURSE_NAME", "math 101")
        with pytest.raises(ValidationError, match="course_name"):
            LMSDBSettings(_env_file=None)

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            LMSDBSettings(_env_file=None, log_format="xml")


class TestCache:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch: pytest.MonkeyPatch):
        first = get_settings()
        monkeypatch.setenv("LMSDB_COURSE_NAME", "physics")
        assert get_settings().course_name == first.course_name
        assert get_settings(_force_reload=True).course_name == "physics"

    def test_clear(self, monkeypatch: pytest.MonkeyPatch):
        get_settings()
        monkeypatch.setenv("LMSDB_COURSE_NAME", "chem")
        clear_settings_cache()
        assert get_settings().course_name == "chem"
