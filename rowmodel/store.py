from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    db_type: str
    char_limit: Optional[int] = None
    pk: bool = False


class Row:
    """One table row. Owned by exactly one model instance."""

    def __init__(self, table_name, values=None):
        self.table_name = table_name
        self.values = dict(values or {})
        self.changed = set()

    @property
    def dry(self):
        return self.values.get("id") is None

    def __repr__(self):
        return f"<Row {self.table_name} {self.values}>"


class RowStore(ABC):
    """What the model layer needs from storage, and nothing more."""

    pk = "id"

    @abstractmethod
    def schema(self, table_name, fields=None, ttl=0):
        """Return [ColumnInfo] for the table, primary key excluded. SchemaError if absent."""

    @abstractmethod
    def find(self, table_name, filter_arg=None, options=None, ttl=0):
        """Return an ordered list of Row."""

    def find_one(self, table_name, filter_arg=None, options=None, ttl=0):
        options = dict(options or {})
        options["limit"] = 1
        found = self.find(table_name, filter_arg, options, ttl)
        return found[0] if found else None

    def new_row(self, table_name):
        return Row(table_name)

    def get(self, row, column):
        return row.values.get(column)

    def set(self, row, column, value):
        if column == self.pk and not row.dry and row.values[column] != value:
            raise AttributeError(f"Cannot change primary key of a stored {row.table_name} row")
        row.values[column] = value
        row.changed.add(column)

    def clear(self, row, column):
        row.values.pop(column, None)
        row.changed.discard(column)

    @abstractmethod
    def save(self, row):
        """Insert or update, then leave row.values in sync with storage."""

    @abstractmethod
    def erase(self, row):
        pass

    @abstractmethod
    def exec(self, sql, params=None):
        pass

    @abstractmethod
    def exists(self, table_name, filter_arg=None):
        pass

    @abstractmethod
    def count(self, table_name, filter_arg=None):
        pass

    @abstractmethod
    def update_many(self, table_name, values, filter_arg):
        pass

    @abstractmethod
    def transaction(self):
        """Context manager. A nested level is a savepoint that rolls back on its own."""
