import re

from rowmodel.filters import (
    as_filter, BetweenFilter, CombinedFilter, ComparisonFilter, InFilter, IsNotNullFilter,
    IsNullFilter, LikeFilter, NotFilter, NotInFilter, RawFilter,
)


class QueryBuilder:
    def __init__(self):
        self._safe_ident_pattern = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

    def _quote(self, identifier):
        if not identifier or not self._safe_ident_pattern.match(str(identifier)):
            raise ValueError(f"Unsafe SQL identifier: {identifier}")
        return f'"{identifier}"'

    def build_insert(self, table_name, data):
        table = self._quote(table_name)
        if not data:
            return f"INSERT INTO {table} DEFAULT VALUES", ()
        fields = list(data.keys())
        quoted_fields = [self._quote(f) for f in fields]
        placeholders = ", ".join(["?" for _ in fields])
        values = [data[f] for f in fields]
        sql = f"INSERT INTO {table} ({', '.join(quoted_fields)}) VALUES ({placeholders})"
        return sql, tuple(values)

    def build_select(self, table_name, filter_arg=None, order_by=None, limit=None, offset=None,
                     columns=None):
        table = self._quote(table_name)
        cols = ", ".join(self._quote(c) for c in columns) if columns else "*"
        sql = f"SELECT {cols} FROM {table}"
        where, params = self.compile_filter(filter_arg)
        if where:
            sql += f" WHERE {where}"

        order_clauses = [f"{self._quote(c)} {d}" for c, d in self.parse_order(order_by)]
        if order_clauses:
            sql += " ORDER BY " + ", ".join(order_clauses)

        if limit is not None:
            sql += f" LIMIT {int(limit)}"
            if offset is not None: sql += f" OFFSET {int(offset)}"
        elif offset is not None:
            sql += f" LIMIT -1 OFFSET {int(offset)}"

        return sql, tuple(params)

    def build_count(self, table_name, filter_arg=None):
        sql = f"SELECT COUNT(*) FROM {self._quote(table_name)}"
        where, params = self.compile_filter(filter_arg)
        if where:
            sql += f" WHERE {where}"
        return sql, tuple(params)

    def build_exists(self, table_name, filter_arg=None):
        sql = f"SELECT 1 FROM {self._quote(table_name)}"
        where, params = self.compile_filter(filter_arg)
        if where:
            sql += f" WHERE {where}"
        return sql + " LIMIT 1", tuple(params)

    def build_update(self, table_name, data, pk_value, pk_column="id"):
        table = self._quote(table_name)
        set_parts = []
        params = []
        for column, val in data.items():
            set_parts.append(f"{self._quote(column)} = ?")
            params.append(val)
        params.append(pk_value)
        sql = f"UPDATE {table} SET {', '.join(set_parts)} WHERE {self._quote(pk_column)} = ?"
        return sql, tuple(params)

    def build_update_many(self, table_name, values, filter_arg):
        table = self._quote(table_name)
        set_parts = [f"{self._quote(c)} = ?" for c in values]
        params = list(values.values())
        sql = f"UPDATE {table} SET {', '.join(set_parts)}"
        where, where_params = self.compile_filter(filter_arg)
        if where:
            sql += f" WHERE {where}"
        return sql, tuple(params + where_params)

    def build_delete(self, table_name, pk_value, pk_column="id"):
        table = self._quote(table_name)
        pk_col = self._quote(pk_column)
        sql = f"DELETE FROM {table} WHERE {pk_col} = ?"
        return sql, (pk_value,)

    def parse_order(self, order_by):
        """Normalize "a, b DESC", ["a", "b DESC"] or [("a", "ASC")] to [(col, dir)]"""
        if not order_by:
            return []
        if isinstance(order_by, str):
            order_by = order_by.split(",")
        result = []
        for item in order_by:
            if isinstance(item, str):
                words = item.split()
                if not words:
                    continue
                column = words[0]
                direction = words[1].upper() if len(words) > 1 else "ASC"
            else:
                column, direction = item
                direction = (direction or "ASC").upper()
            if direction not in ("ASC", "DESC"):
                raise ValueError(f"Bad sort direction for {column}: {direction}")
            result.append((column, direction))
        return result

    def compile_filter(self, filter_arg):
        """Return (where clause, params) for anything filters.as_filter() accepts"""
        expr = as_filter(filter_arg)
        if expr is None:
            return "", []
        params = []
        sql = self._compile(expr, params)
        return sql, params

    def _compile(self, expr, params):
        if isinstance(expr, ComparisonFilter):
            params.append(expr.value)
            return f"{self._quote(expr.column_name)} {expr.operator} ?"
        if isinstance(expr, IsNullFilter):
            return f"{self._quote(expr.column_name)} IS NULL"
        if isinstance(expr, IsNotNullFilter):
            return f"{self._quote(expr.column_name)} IS NOT NULL"
        if isinstance(expr, (InFilter, NotInFilter)):
            negate = isinstance(expr, NotInFilter)
            if not expr.values:
                return "1 = 1" if negate else "1 = 0"
            params.extend(expr.values)
            placeholders = ", ".join("?" for _ in expr.values)
            op = "NOT IN" if negate else "IN"
            return f"{self._quote(expr.column_name)} {op} ({placeholders})"
        if isinstance(expr, LikeFilter):
            params.append(expr.pattern)
            return f"{self._quote(expr.column_name)} LIKE ?"
        if isinstance(expr, BetweenFilter):
            params.extend([expr.lower, expr.upper])
            return f"{self._quote(expr.column_name)} BETWEEN ? AND ?"
        if isinstance(expr, NotFilter):
            return f"NOT ({self._compile(expr.filter_expr, params)})"
        if isinstance(expr, RawFilter):
            params.extend(expr.params)
            return f"({expr.sql})"
        if isinstance(expr, CombinedFilter):
            parts = [self._compile(f, params) for f in expr.filters]
            return "(" + f" {expr.logic} ".join(parts) + ")"
        raise TypeError(f"Cannot compile filter {expr!r}")
