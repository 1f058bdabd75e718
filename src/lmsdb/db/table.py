"""Table collaborator: executes entity operations against one store table.

:class:`SQLTable` is the only layer that writes SQL.  It pairs a
:class:`~lmsdb.core.protocols.Connection` with a
:class:`~lmsdb.core.dialect.Dialect` and a record type, and offers the
per-entity operations repositories delegate to.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                            SQLTable                                │
    │                                                                    │
    │   conn: Connection          dialect: Dialect        record: type   │
    │                                                                    │
    │   exists(*key)              count_where(where)                     │
    │   gets(keys)                exists_where(where)                    │
    │   add(record)               list_where(where, order)    → keys     │
    │   put(record)   → rows      get_records_where(where, order)        │
    │   delete(*key)  → rows      get_fields_where(fields, where, order) │
    │   delete_where(where)                                              │
    │                                                                    │
    │   create_table / delete_table / rename_table                       │
    │   dump_table(path) / restore_table(path)                           │
    └────────────────────────────────────────────────────────────────────┘

Ownership:
    ``RecordExists`` (duplicate key on insert) and ``TableMissing`` (absent
    backing table) are raised here and nowhere else.

Tags:
    table, sql, collaborator, persistence
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from lmsdb.core.dialect import Dialect, SQLiteDialect
from lmsdb.core.errors import RecordExists, TableMissing
from lmsdb.core.logging import get_logger
from lmsdb.core.protocols import Connection
from lmsdb.db.records import Record
from lmsdb.db.where import Order, Where, check_field, compile_order, compile_where

logger = get_logger(__name__)


class SQLTable:
    """Executes operations for one entity against its backing table.

    Parameters:
        conn: Shared store connection.
        dialect: SQL dialect.  Defaults to :class:`SQLiteDialect`.
        entity: Logical entity name (used in errors and logs).
        table: Physical table name.
        record: Record type stored in the table.
    """

    def __init__(
        self,
        conn: Connection,
        dialect: Dialect | None = None,
        *,
        entity: str,
        table: str,
        record: type[Record],
    ) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()
        self.entity = entity
        self.table = table
        self.record = record
        self._columns = record.field_names()

    def __repr__(self) -> str:
        return f"SQLTable(entity={self.entity!r}, table={self.table!r})"

    # -- SQL plumbing ------------------------------------------------------

    @property
    def _quoted(self) -> str:
        return self.dialect.quote(self.table)

    def _execute(self, sql: str, params: tuple = ()) -> Any:
        try:
            return self.conn.execute(sql, params)
        except Exception as e:
            self._raise_translated(e)
            raise

    def _executemany(self, sql: str, params: list[tuple]) -> Any:
        try:
            return self.conn.executemany(sql, params)
        except Exception as e:
            self._raise_translated(e)
            raise

    def _raise_translated(self, e: Exception) -> None:
        """Re-raise a driver error as ``RecordExists`` or ``TableMissing`` when it is one."""
        if self.dialect.is_duplicate_key(e):
            raise RecordExists(
                f"{self.entity}: record already exists", cause=e
            ).with_context(entity=self.entity, table=self.table) from e
        if self.dialect.is_missing_table(e):
            raise TableMissing(
                f"{self.entity}: table {self.table} does not exist", cause=e
            ).with_context(entity=self.entity, table=self.table) from e

    def _key_where(self, key: Sequence[Any]) -> dict[str, Any]:
        return dict(zip(self.record.KEYFIELDS, key, strict=True))

    def _encode(self, name: str, value: Any) -> Any:
        if name in self.record.JSON_FIELDS and value is not None:
            return json.dumps(value)
        return value

    def _decode_row(self, row: Any) -> Record:
        data = dict(row)
        for name in self.record.JSON_FIELDS:
            if data.get(name) is not None:
                data[name] = json.loads(data[name])
        return self.record.from_dict(data)

    def _select(self, columns: str, where: Where | None, order: Order | None = None) -> list:
        clause, params = compile_where(where, self.dialect, self._columns)
        order_by = compile_order(order, self.dialect, self._columns)
        cursor = self._execute(f"SELECT {columns} FROM {self._quoted}{clause}{order_by}", params)
        return cursor.fetchall()

    # -- Single-record operations -----------------------------------------

    def exists(self, *key: Any) -> bool:
        return self.exists_where(self._key_where(key))

    def gets(self, keys: Iterable[Sequence[Any]]) -> list[Record]:
        """Fetch records by key; absent keys are omitted."""
        records: list[Record] = []
        for key in keys:
            rows = self._select("*", self._key_where(key))
            if rows:
                records.append(self._decode_row(rows[0]))
        return records

    def get(self, *key: Any) -> Record | None:
        found = self.gets([key])
        return found[0] if found else None

    def add(self, record: Record) -> int:
        """Insert ``record``; an unset auto key is assigned back onto it."""
        auto = self.record.AUTO_KEY
        names = [n for n in self._columns if not (n == auto and getattr(record, n) is None)]
        values = tuple(self._encode(n, getattr(record, n)) for n in names)
        columns = ", ".join(self.dialect.quote(n) for n in names)
        sql = f"INSERT INTO {self._quoted} ({columns}) VALUES ({self.dialect.placeholders(len(names))})"
        try:
            cursor = self._execute(sql, values)
        except RecordExists as e:
            raise e.with_context(key=record.primary_key)
        if auto is not None and getattr(record, auto) is None:
            setattr(record, auto, cursor.lastrowid)
        return cursor.rowcount

    def put(self, record: Record) -> int:
        """Update the row matching ``record``'s key; returns rows affected."""
        nonkey = self.record.nonkey_fields()
        if not nonkey:
            return 1 if self.exists(*record.primary_key) else 0
        assignments = ", ".join(
            f"{self.dialect.quote(n)} = {self.dialect.placeholder(i)}" for i, n in enumerate(nonkey)
        )
        key_where = self._key_where(record.primary_key)
        clause, key_params = compile_where(key_where, self.dialect, self._columns)
        values = tuple(self._encode(n, getattr(record, n)) for n in nonkey)
        cursor = self._execute(f"UPDATE {self._quoted} SET {assignments}{clause}", values + key_params)
        return cursor.rowcount

    def delete(self, *key: Any) -> int:
        return self.delete_where(self._key_where(key))

    # -- Filtered operations ----------------------------------------------

    def delete_where(self, where: Where | None) -> int:
        clause, params = compile_where(where, self.dialect, self._columns)
        cursor = self._execute(f"DELETE FROM {self._quoted}{clause}", params)
        return cursor.rowcount

    def count_where(self, where: Where | None = None) -> int:
        rows = self._select("COUNT(*)", where)
        return int(rows[0][0])

    def exists_where(self, where: Where | None = None) -> bool:
        return self.count_where(where) > 0

    def list_where(self, where: Where | None = None, order: Order | None = None) -> list[tuple]:
        """Keys of matching rows."""
        return self.get_fields_where(self.record.KEYFIELDS, where, order)

    def get_records_where(
        self, where: Where | None = None, order: Order | None = None
    ) -> list[Record]:
        return [self._decode_row(row) for row in self._select("*", where, order)]

    def get_fields_where(
        self,
        names: Sequence[str],
        where: Where | None = None,
        order: Order | None = None,
        *,
        distinct: bool = False,
    ) -> list[tuple]:
        """Selected columns of matching rows as tuples."""
        for name in names:
            check_field(name, self._columns)
        columns = ", ".join(self.dialect.quote(n) for n in names)
        if distinct:
            columns = "DISTINCT " + columns
        return [tuple(row) for row in self._select(columns, where, order)]

    # -- Maintenance -------------------------------------------------------

    def create_table(self) -> None:
        types = self.record.field_types()
        auto = self.record.AUTO_KEY
        definitions = []
        for name in self._columns:
            if name == auto:
                definitions.append(f"{self.dialect.quote(name)} {self.dialect.auto_increment()}")
            else:
                definitions.append(f"{self.dialect.quote(name)} {self.dialect.column_type(types[name])}")
        if auto is None:
            keys = ", ".join(self.dialect.quote(n) for n in self.record.KEYFIELDS)
            definitions.append(f"PRIMARY KEY ({keys})")
        self._execute(f"CREATE TABLE IF NOT EXISTS {self._quoted} ({', '.join(definitions)})")
        logger.debug("table_created", entity=self.entity, table=self.table)

    def delete_table(self) -> None:
        self._execute(f"DROP TABLE IF EXISTS {self._quoted}")
        logger.debug("table_dropped", entity=self.entity, table=self.table)

    def rename_table(self, new_table: str) -> None:
        self._execute(self.dialect.rename_table(self.table, new_table))
        logger.debug("table_renamed", entity=self.entity, old=self.table, new=new_table)
        self.table = new_table

    def dump_table(self, path: str | Path) -> int:
        """Write every row to ``path`` as a JSON array; returns the row count."""
        rows = [dict(row) for row in self._select("*", None)]
        Path(path).write_text(json.dumps(rows, indent=2, default=str), encoding="utf-8")
        logger.debug("table_dumped", entity=self.entity, table=self.table, rows=len(rows))
        return len(rows)

    def restore_table(self, path: str | Path) -> int:
        """Recreate the table from a :meth:`dump_table` file; returns the row count.

        Drop, create and insert run as separate statements.  A duplicate key
        in the file raises ``RecordExists`` and leaves the rows inserted so
        far; callers that need all-or-nothing bracket the call in a
        transaction, as ``CourseDatabase.restore_all_tables`` does.
        """
        rows = json.loads(Path(path).read_text(encoding="utf-8"))
        self.delete_table()
        self.create_table()
        if rows:
            names = [n for n in self._columns if n in rows[0]]
            columns = ", ".join(self.dialect.quote(n) for n in names)
            sql = f"INSERT INTO {self._quoted} ({columns}) VALUES ({self.dialect.placeholders(len(names))})"
            self._executemany(sql, [tuple(row.get(n) for n in names) for row in rows])
        logger.debug("table_restored", entity=self.entity, table=self.table, rows=len(rows))
        return len(rows)


__all__ = ["SQLTable"]
