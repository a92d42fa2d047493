"""
Filter expressions understood by the SQLite row store.

    store.find("Pet", col("age") > 5)
    store.find("Pet", (col("age") > 3) & col("name").like("%e%"))
    store.find("Pet", {"fkOwner": 7})
    store.find("Pet", raw("age BETWEEN ? AND ?", 3, 7))

Values are always bound as parameters, never pasted into the SQL text.
"""


class FilterExpression:
    """Anything QueryBuilder.compile_filter() can turn into a WHERE clause"""

    def __and__(self, other):
        return and_(self, other)

    def __or__(self, other):
        return or_(self, other)

    def __invert__(self):
        return NotFilter(self)


class ColumnFilter:
    """A column name, compared with Python operators to build filters"""
    def __init__(self, column_name):
        self.column_name = column_name

    def __eq__(self, other):
        """Equality comparison, IS NULL for None"""
        if other is None:
            return IsNullFilter(self.column_name)
        return ComparisonFilter(self.column_name, '=', other)

    def __ne__(self, other):
        """Not equal comparison, IS NOT NULL for None"""
        if other is None:
            return IsNotNullFilter(self.column_name)
        return ComparisonFilter(self.column_name, '!=', other)

    def __lt__(self, other):
        return ComparisonFilter(self.column_name, '<', other)

    def __le__(self, other):
        return ComparisonFilter(self.column_name, '<=', other)

    def __gt__(self, other):
        return ComparisonFilter(self.column_name, '>', other)

    def __ge__(self, other):
        return ComparisonFilter(self.column_name, '>=', other)

    __hash__ = object.__hash__

    def in_(self, values):
        return InFilter(self.column_name, values)

    def not_in(self, values):
        return NotInFilter(self.column_name, values)

    def like(self, pattern):
        """SQL LIKE, % and _ are the wildcards"""
        return LikeFilter(self.column_name, pattern)

    def is_null(self):
        return IsNullFilter(self.column_name)

    def is_not_null(self):
        return IsNotNullFilter(self.column_name)

    def between(self, lower, upper):
        return BetweenFilter(self.column_name, lower, upper)


class ComparisonFilter(FilterExpression):
    """column <op> value, op being one of = != < <= > >="""
    def __init__(self, column_name, operator, value):
        self.column_name = column_name
        self.operator = operator
        self.value = value

    def __repr__(self):
        return f"<ComparisonFilter {self.column_name} {self.operator} {self.value!r}>"


class InFilter(FilterExpression):
    def __init__(self, column_name, values):
        self.column_name = column_name
        self.values = list(values)


class NotInFilter(FilterExpression):
    def __init__(self, column_name, values):
        self.column_name = column_name
        self.values = list(values)


class LikeFilter(FilterExpression):
    def __init__(self, column_name, pattern):
        self.column_name = column_name
        self.pattern = pattern


class IsNullFilter(FilterExpression):
    def __init__(self, column_name):
        self.column_name = column_name


class IsNotNullFilter(FilterExpression):
    def __init__(self, column_name):
        self.column_name = column_name


class BetweenFilter(FilterExpression):
    def __init__(self, column_name, lower, upper):
        self.column_name = column_name
        self.lower = lower
        self.upper = upper


class NotFilter(FilterExpression):
    def __init__(self, filter_expr):
        self.filter_expr = filter_expr


class RawFilter(FilterExpression):
    """A condition string with "?" placeholders and its values"""
    def __init__(self, sql, params=None):
        self.sql = sql
        self.params = list(params or [])

    def __repr__(self):
        return f"<RawFilter {self.sql} params={self.params}>"


class CombinedFilter(FilterExpression):
    """Flat AND or OR of its parts, see and_() and or_()"""
    def __init__(self, *filters, logic='AND'):
        self.filters = filters
        self.logic = logic.upper()
        if self.logic not in ('AND', 'OR'):
            raise ValueError("Logic must be 'AND' or 'OR'")


def col(column_name):
    """Start a filter expression on a column"""
    return ColumnFilter(column_name)


def raw(sql, *params):
    return RawFilter(sql, params)


def equals(values):
    """Turn a {column: value} mapping into a filter expression"""
    parts = []
    for column, value in values.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            parts.append(InFilter(column, value))
        else:
            parts.append(col(column) == value)
    return and_(*parts)


def as_filter(filter_arg):
    """Normalize None, a mapping, a filter expression or a (sql, params) pair"""
    if filter_arg is None or isinstance(filter_arg, FilterExpression):
        return filter_arg
    if isinstance(filter_arg, dict):
        return equals(filter_arg) if filter_arg else None
    if isinstance(filter_arg, str):
        return RawFilter(filter_arg) if filter_arg.strip() else None
    if isinstance(filter_arg, (list, tuple)) and filter_arg and isinstance(filter_arg[0], str):
        return RawFilter(filter_arg[0], filter_arg[1:])
    raise TypeError(f"Unsupported filter: {filter_arg!r}")


def _flatten(logic, filters):
    out = []
    for f in filters:
        f = as_filter(f)
        if f is None:
            continue
        if isinstance(f, CombinedFilter) and f.logic == logic:
            out.extend(f.filters)
        else:
            out.append(f)
    return out


def and_(*filters):
    """Combine multiple filters with AND logic, skipping empty ones"""
    parts = _flatten('AND', filters)
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return CombinedFilter(*parts, logic='AND')


def or_(*filters):
    """Combine multiple filters with OR logic, skipping empty ones"""
    parts = _flatten('OR', filters)
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return CombinedFilter(*parts, logic='OR')
