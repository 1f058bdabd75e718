"""lmsdb data-access layer.

Architecture::

    Layer 1 -- Records & Validation
        records.py         Record dataclasses, one per entity and merged view
        where.py           Where/order compilation (Condition helpers)
        validate.py        Argument, key and record validation; CascadeFilter
        utils.py           Versioned set ids, timestamps

    Layer 2 -- Storage
        table.py           SQLTable: one course table per entity
        layout.py          EntityDescriptor table (database_layout)

    Layer 3 -- Relationships
        repository.py      Repository: CRUD with parent checks and cascades
        cascade.py         CascadeEngine and CASCADE_RULES
        registry.py        SchemaRegistry: dependency-ordered initialization
        merge.py           MergedView: override-over-global records
        versions.py        VersionManager: set/problem version snapshots
        transaction.py     TransactionCoordinator

    Layer 4 -- Facade
        database.py        CourseDatabase
"""

from lmsdb.db.database import CourseDatabase
from lmsdb.db.layout import EntityDescriptor, ParentCheck, database_layout
from lmsdb.db.merge import MergedView
from lmsdb.db.records import Record
from lmsdb.db.registry import SchemaRegistry
from lmsdb.db.repository import Repository
from lmsdb.db.table import SQLTable
from lmsdb.db.utils import grok_vset_id, make_vset_id
from lmsdb.db.where import Condition, in_, like, ne, not_like

__all__ = [
    "CourseDatabase",
    "EntityDescriptor",
    "ParentCheck",
    "database_layout",
    "MergedView",
    "Record",
    "SchemaRegistry",
    "Repository",
    "SQLTable",
    "grok_vset_id",
    "make_vset_id",
    "Condition",
    "in_",
    "like",
    "ne",
    "not_like",
]
