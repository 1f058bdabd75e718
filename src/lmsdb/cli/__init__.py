"""
CLI layer for lmsdb.

Provides a Typer application whose commands open a
:class:`~lmsdb.db.CourseDatabase` and run whole-store maintenance on it.
This package handles only terminal transport: argument parsing,
coloured output, and table formatting.

Entry point::

    lmsdb --help
"""

from lmsdb.cli.app import app

__all__ = ["app"]
