"""
CLI utility helpers: output formatting and database access.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from pydantic import ValidationError as SettingsError
from rich.console import Console
from rich.table import Table

from lmsdb.core.errors import LMSDBError
from lmsdb.core.settings import LMSDBSettings, get_settings
from lmsdb.db.database import CourseDatabase

console = Console()
err_console = Console(stderr=True)


# ── Database helper ──────────────────────────────────────────────────────


@contextmanager
def open_database(
    database: str | None = None,
    course: str | None = None,
) -> Iterator[CourseDatabase]:
    """Open a :class:`CourseDatabase`, overriding settings where given.

    Any :class:`LMSDBError` raised inside the block is printed and turned
    into exit code 1.
    """
    overrides = {
        k: v for k, v in {"database_url": database, "course_name": course}.items() if v is not None
    }
    try:
        settings = LMSDBSettings(**overrides) if overrides else get_settings()
    except SettingsError as e:
        err_console.print(f"[bold red]Invalid settings[/bold red]: {e.errors()[0]['msg']}")
        raise typer.Exit(code=2) from e
    db = CourseDatabase.from_settings(settings)
    try:
        yield db
    except LMSDBError as e:
        fail(e)
    finally:
        db.close()


def fail(error: LMSDBError) -> None:
    """Print an lmsdb error and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red] ({error.__class__.__name__}): {error.message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def output_counts(counts: dict[str, int], *, as_json: bool = False, title: str = "") -> None:
    """Render an entity → row count mapping."""
    if as_json:
        console.print_json(json.dumps(counts))
        return
    if not counts:
        console.print("[dim]No tables.[/dim]")
        return
    _print_table([{"entity": k, "rows": v} for k, v in counts.items()], title=title)


def output_message(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*(str(v) for v in item.values()))
    console.print(table)
