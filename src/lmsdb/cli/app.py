"""
Root Typer application for the lmsdb CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from lmsdb import __version__
from lmsdb.cli.tables import app as tables_app
from lmsdb.cli.utils import open_database, output_counts
from lmsdb.core.logging import configure_logging
from lmsdb.core.settings import get_settings

app = Typer(
    name="lmsdb",
    help="lmsdb: course database maintenance.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lmsdb {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """lmsdb CLI: create, dump, restore and rename course tables."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


@app.command()
def status(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    course: str | None = typer.Option(None, "--course", "-c", help="Course name"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show row counts for every course table."""
    with open_database(database, course) as db:
        output_counts(db.table_counts(), as_json=json_out, title=f"Course {db.course_name}")


app.add_typer(tables_app, name="tables", help="Whole-store table maintenance.")
