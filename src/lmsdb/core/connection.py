"""Connection factory: create store connections from URL strings.

This is the single entry point for opening the connection a
:class:`~lmsdb.db.database.CourseDatabase` owns.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/course.db``                         SQLite file
==================  ==========================================  ============

Usage
-----
::

    from lmsdb.core.connection import create_connection

    conn, info = create_connection()                    # ephemeral
    conn, info = create_connection("sqlite:///math.db")  # persistent

    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/math.db')
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from lmsdb.core.logging import get_logger
from lmsdb.core.sqlite_conn import SqliteConnection

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a store connection."""

    backend: str
    """Backend identifier, also the dialect name (``"sqlite"``)."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[SqliteConnection, ConnectionInfo]:
    conn = SqliteConnection(":memory:")
    info = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
    return conn, info


def _create_sqlite_file(path_str: str) -> tuple[SqliteConnection, ConnectionInfo]:
    path = Path(path_str)
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())

    conn = SqliteConnection(resolved)
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"file"`` or the
    unrecognised scheme prefix.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        return db.split("://", 1)[0], db

    # Bare file path: treat as SQLite file
    return "file", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(
    db: str | None = None,
    *,
    data_dir: str | None = None,
) -> tuple[SqliteConnection, ConnectionInfo]:
    """Create a store connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        ``None``/``"memory"`` for in-memory SQLite, ``"sqlite:///path"`` or a
        bare path for file-based SQLite.  Unknown schemes fall back to
        in-memory SQLite with a warning.
    data_dir:
        Resolve relative SQLite paths within this directory.

    Returns
    -------
    tuple[Connection, ConnectionInfo]
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()

    elif scheme in ("sqlite", "file"):
        if data_dir and not Path(target).is_absolute():
            target = str(Path(data_dir) / target)
        conn, info = _create_sqlite_file(target)

    else:
        logger.warning("unknown_database_scheme", scheme=scheme, fallback="memory")
        conn, info = _create_sqlite_memory()

    logger.debug("connection_created", backend=info.backend, persistent=info.persistent)
    return conn, info


__all__ = ["ConnectionInfo", "create_connection"]
