import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from rowmodel.associations import AttrDef, OnDelete
from rowmodel.errors import ConfigurationError
from rowmodel.object_attr import ObjectAttr


def _split(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [v for v in re.split(r'[,;|\s]+', value) if v]
    return list(value)


class HasManyOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    remote_name: str
    remote_model: Optional[str] = None
    foreign_key: Optional[str] = None
    on_delete: Optional[OnDelete] = None
    through: Optional[str] = None
    remote_key: Optional[str] = None


class BelongsToOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    remote_name: str
    remote_model: Optional[str] = None
    foreign_key: Optional[str] = None


class FactoryOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    table_name: Optional[str] = None
    view: bool = False
    markdown: List[str] = []
    json_attrs: List[str] = []
    object_attrs: Dict[str, Any] = {}
    has_many: List[HasManyOptions] = []
    belongs_to: List[BelongsToOptions] = []
    compare: Any = None
    fields: Optional[List[str]] = None
    cache_ttl: Optional[float] = None

    @field_validator("markdown", "json_attrs", mode="before")
    @classmethod
    def _names(cls, value):
        return _split(value)

    @field_validator("fields", mode="before")
    @classmethod
    def _fields(cls, value):
        if not value:
            return None
        fields = _split(value)
        if "id" not in fields:
            fields.append("id")
        return fields

    @field_validator("object_attrs", mode="before")
    @classmethod
    def _object_attrs(cls, value):
        result = {}
        for name, definition in (value or {}).items():
            if isinstance(definition, AttrDef):
                result[name] = definition
                continue
            if not isinstance(definition, (list, tuple)):
                definition = (definition,)
            object_type = definition[0]
            if not (isinstance(object_type, type) and issubclass(object_type, ObjectAttr)):
                raise ValueError(f"{name}: {object_type!r} is not an ObjectAttr subclass")
            size = int(definition[1]) if len(definition) > 1 and definition[1] is not None else None
            if size is not None and size < 0:
                raise ValueError(f"{name}: negative array size {size}")
            result[name] = AttrDef(object_type, size)
        return result

    @field_validator("compare", mode="before")
    @classmethod
    def _compare(cls, value):
        if value is None or value is False:
            return None
        if value is True or callable(value):
            return value
        if isinstance(value, str):
            names = [value]
        elif isinstance(value, (list, tuple)):
            names = list(value)
        else:
            names = []
        if not names or not all(isinstance(n, str) and n.split() for n in names):
            raise ValueError(f"compare must be True, a callable or attribute names, got {value!r}")
        return names


def parse_options(model_name, options):
    if isinstance(options, FactoryOptions):
        return options
    try:
        return FactoryOptions(**(options or {}))
    except ValidationError as e:
        raise ConfigurationError(f"Bad options for model {model_name}: {e}") from e
