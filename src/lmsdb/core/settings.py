"""Settings for lmsdb.

One validated, cached settings object read from ``LMSDB_*`` environment
variables and an optional ``.env`` file.

Fields
──────
database_url : Store location (``memory``, ``sqlite:///path`` or a bare path)
course_name  : Course whose tables the layout addresses (table name prefix)
log_level    : Structlog log level
log_format   : ``json`` or ``console``
dump_dir     : Default directory for ``dump``/``restore`` maintenance

Examples:
    >>> import os
    >>> os.environ["LMSDB_COURSE_NAME"] = "math101"
    >>> get_settings(_force_reload=True).course_name
    'math101'

Tags:
    settings, configuration, pydantic
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_COURSE_NAME = re.compile(r"[a-zA-Z0-9_]+")


class LMSDBSettings(BaseSettings):
    """lmsdb configuration (``LMSDB_*`` environment variables)."""

    model_config = SettingsConfigDict(
        env_prefix="LMSDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/lmsdb.db")
    course_name: str = Field(default="default", description="Table name prefix")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # ── Maintenance ──────────────────────────────────────────────
    dump_dir: Path = Field(default=Path("dumps"))

    @field_validator("course_name")
    @classmethod
    def _course_name_is_identifier(cls, value: str) -> str:
        if not _COURSE_NAME.fullmatch(value):
            raise ValueError(
                f"course_name {value!r} must be non-empty and contain only [a-zA-Z0-9_]"
            )
        return value

    @field_validator("log_format")
    @classmethod
    def _known_log_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, LMSDBSettings] = {}


def get_settings(*, _force_reload: bool = False) -> LMSDBSettings:
    """Load, validate, and cache a :class:`LMSDBSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = LMSDBSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["LMSDBSettings", "get_settings", "clear_settings_cache"]
