"""
CLI: ``lmsdb tables`` -- whole-store table maintenance.
"""

from __future__ import annotations

from pathlib import Path

import typer

from lmsdb.cli.utils import open_database, output_message
from lmsdb.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command()
def create(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    course: str | None = typer.Option(None, "--course", "-c", help="Course name"),
) -> None:
    """Create every course table that does not exist yet."""
    with open_database(database, course) as db:
        count = db.create_all_tables()
        output_message(f"created {count} tables for course {db.course_name}")


@app.command()
def delete(
    database: str | None = typer.Option(None, "--database", "-d"),
    course: str | None = typer.Option(None, "--course", "-c"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Drop every course table."""
    with open_database(database, course) as db:
        if not yes:
            typer.confirm(f"Drop all tables for course {db.course_name}?", abort=True)
        count = db.delete_all_tables()
        output_message(f"dropped {count} tables for course {db.course_name}")


@app.command()
def dump(
    dump_dir: Path | None = typer.Argument(None, help="Output directory (default: settings dump_dir)"),
    database: str | None = typer.Option(None, "--database", "-d"),
    course: str | None = typer.Option(None, "--course", "-c"),
) -> None:
    """Dump every course table to one JSON file per entity."""
    target = dump_dir or get_settings().dump_dir
    with open_database(database, course) as db:
        count = db.dump_all_tables(target)
        output_message(f"dumped {count} tables to {target}")


@app.command()
def restore(
    dump_dir: Path | None = typer.Argument(None, help="Dump directory (default: settings dump_dir)"),
    database: str | None = typer.Option(None, "--database", "-d"),
    course: str | None = typer.Option(None, "--course", "-c"),
) -> None:
    """Recreate course tables from a dump directory."""
    source = dump_dir or get_settings().dump_dir
    with open_database(database, course) as db:
        count = db.restore_all_tables(source)
        output_message(f"restored {count} tables from {source}")


@app.command()
def rename(
    new_course: str = typer.Argument(..., help="New course name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    course: str | None = typer.Option(None, "--course", "-c"),
) -> None:
    """Rename every course table to another course's names."""
    with open_database(database, course) as db:
        old = db.course_name
        count = db.rename_all_tables(new_course)
        output_message(f"renamed {count} tables from {old} to {new_course}")
