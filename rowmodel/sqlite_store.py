import logging
import re
import sqlite3
import time
from contextlib import contextmanager

from rowmodel.builder import QueryBuilder
from rowmodel.errors import SchemaError
from rowmodel.store import ColumnInfo, Row, RowStore

logger = logging.getLogger("rowmodel.sqlite")

_LIMITED_TYPE = re.compile(r'(char|varchar)\s*\(\s*(\d+)\s*\)', re.IGNORECASE)


class SqliteRowStore(RowStore):
    def __init__(self, db_path=":memory:"):
        # transactions are issued explicitly, see transaction()
        self.connection = sqlite3.connect(db_path, isolation_level=None)
        self.connection.row_factory = sqlite3.Row
        self.query_builder = QueryBuilder()
        self._schema_cache = {}
        self._query_cache = {}
        self._depth = 0

    def _log(self, sql, params=None):
        msg = f"[SQL EXECUTE]: {sql}"
        if params:
            msg += f" | [PARAMS]: {params}"
        logger.debug(msg)

    def execute(self, sql, params=None):
        self._log(sql, params)
        cursor = self.connection.cursor()
        cursor.execute(sql, params or ())
        return cursor.fetchall()

    def execute_insert(self, sql, params=None):
        self._log(sql, params)
        cursor = self.connection.cursor()
        cursor.execute(sql, params or ())
        return cursor.lastrowid

    def executescript(self, script):
        self._log(script)
        self.connection.executescript(script)
        self._schema_cache.clear()
        self._query_cache.clear()

    def close(self):
        self.connection.close()

    # --- RowStore -------------------------------------------------------

    def schema(self, table_name, fields=None, ttl=0):
        now = time.monotonic()
        cached = self._schema_cache.get(table_name)
        if cached and ttl and now - cached[0] < ttl:
            columns = cached[1]
        else:
            rows = self.execute(f"PRAGMA table_info({self.query_builder._quote(table_name)})")
            if not rows:
                raise SchemaError(table_name)
            columns = [self._column_info(r) for r in rows]
            self._schema_cache[table_name] = (now, columns)
        return [
            c for c in columns
            if not c.pk and c.name != self.pk and (not fields or c.name in fields)
        ]

    def _column_info(self, pragma_row):
        db_type = pragma_row["type"] or ""
        match = _LIMITED_TYPE.search(db_type)
        if match:
            return ColumnInfo(pragma_row["name"], match.group(1).lower(), int(match.group(2)),
                              bool(pragma_row["pk"]))
        return ColumnInfo(pragma_row["name"], db_type.lower(), None, bool(pragma_row["pk"]))

    def find(self, table_name, filter_arg=None, options=None, ttl=0):
        options = options or {}
        sql, params = self.query_builder.build_select(
            table_name, filter_arg,
            order_by=options.get("order"),
            limit=options.get("limit"),
            offset=options.get("offset"),
        )
        key = (sql, params)
        now = time.monotonic()
        if ttl:
            cached = self._query_cache.get(key)
            if cached and now - cached[0] < ttl:
                return [Row(table_name, values) for values in cached[1]]
        found = [dict(r) for r in self.execute(sql, params)]
        if ttl:
            self._query_cache[key] = (now, found)
        return [Row(table_name, values) for values in found]

    def save(self, row):
        builder = self.query_builder
        if row.dry:
            data = {c: v for c, v in row.values.items() if c != self.pk}
            sql, params = builder.build_insert(row.table_name, data)
            new_id = self.execute_insert(sql, params)
            self._written()
            fresh = self.execute(*builder.build_select(row.table_name, {self.pk: new_id}))
            row.values = dict(fresh[0]) if fresh else dict(row.values, **{self.pk: new_id})
        else:
            data = {c: row.values.get(c) for c in row.changed if c != self.pk}
            if data:
                sql, params = builder.build_update(row.table_name, data, row.values[self.pk], self.pk)
                self.execute(sql, params)
                self._written()
        row.changed.clear()
        return row

    def erase(self, row):
        if row.dry:
            return
        sql, params = self.query_builder.build_delete(row.table_name, row.values[self.pk], self.pk)
        self.execute(sql, params)
        self._written()
        row.values = {}
        row.changed.clear()

    def exec(self, sql, params=None):
        rows = self.execute(sql, params)
        if not sql.lstrip().upper().startswith(("SELECT", "PRAGMA")):
            self._written()
        return rows

    def exists(self, table_name, filter_arg=None):
        return bool(self.execute(*self.query_builder.build_exists(table_name, filter_arg)))

    def count(self, table_name, filter_arg=None):
        return self.execute(*self.query_builder.build_count(table_name, filter_arg))[0][0]

    def update_many(self, table_name, values, filter_arg):
        sql, params = self.query_builder.build_update_many(table_name, values, filter_arg)
        self.execute(sql, params)
        self._written()

    @contextmanager
    def transaction(self):
        if self._depth:
            # nested levels are savepoints so they can fail on their own
            savepoint = f"sp_{self._depth}"
            self.execute(f"SAVEPOINT {savepoint}")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self.execute(f"ROLLBACK TO {savepoint}")
                self.execute(f"RELEASE {savepoint}")
                self._query_cache.clear()
                raise
            else:
                self.execute(f"RELEASE {savepoint}")
            finally:
                self._depth -= 1
            return
        self.execute("BEGIN")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self._depth = 0
            self.execute("ROLLBACK")
            self._query_cache.clear()
            raise
        self._depth = 0
        self.execute("COMMIT")

    def _written(self):
        self._query_cache.clear()
