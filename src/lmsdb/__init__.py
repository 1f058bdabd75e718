"""
lmsdb - course data-access layer for an online homework system.

- lmsdb.core: connection, dialect, errors, logging, settings
- lmsdb.db: records, repositories, cascades, merged views, versions
- lmsdb.cli: ``lmsdb`` command line
"""

__version__ = "0.1.0"

from lmsdb.db import CourseDatabase  # noqa: E402

__all__ = ["CourseDatabase", "__version__"]
