from rowmodel.associations import BelongsTo, HasMany, OnDelete
from rowmodel.cascade import DeleteBlocked, DeleteRefused, RestrictConflict
from rowmodel.config import Settings, configure_logging
from rowmodel.errors import (
    AmbiguousError,
    AttributeDecodeError,
    ConfigurationError,
    NotStoredError,
    RowModelError,
    SchemaError,
)
from rowmodel.factory import ModelFactory
from rowmodel.filters import and_, col, equals, or_, raw
from rowmodel.model import Model
from rowmodel.object_attr import AttrState, ObjectAttr
from rowmodel.registry import Registry
from rowmodel.sqlite_store import SqliteRowStore
from rowmodel.store import ColumnInfo, Row, RowStore

__version__ = "0.1.0"
