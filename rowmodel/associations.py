from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type


class OnDelete(str, Enum):
    RESTRICT = "restrict"
    CASCADE = "cascade"
    SET_NULL = "set-null"


@dataclass(frozen=True)
class HasMany:
    name: str
    remote_model: str
    foreign_key: str
    on_delete: Optional[OnDelete]
    through: Optional[str] = None
    remote_key: Optional[str] = None

    def __post_init__(self):
        if self.through:
            if self.on_delete is not None or not self.remote_key:
                raise ValueError(f"through association {self.name} needs a remote key and no on_delete")
        elif self.remote_key is not None:
            raise ValueError(f"remote_key given for direct association {self.name}")

    def __repr__(self):
        parts = [f"remote={self.remote_model}", f"fk={self.foreign_key}"]
        if self.through:
            parts.append(f"through={self.through}({self.remote_key})")
        else:
            parts.append(f"on_delete={self.on_delete.value}")
        return f"<HasMany {self.name} {', '.join(parts)}>"


@dataclass(frozen=True)
class BelongsTo:
    name: str
    remote_model: str
    foreign_key: str


@dataclass(frozen=True)
class AttrDef:
    object_type: Optional[Type] = None
    array_size: Optional[int] = None

    @property
    def is_array(self):
        return self.array_size is not None


def build_has_many(model_name, opts):
    remote_model = opts.remote_model or opts.remote_name
    foreign_key = opts.foreign_key or f"fk{model_name}"
    if opts.through:
        if opts.on_delete is not None:
            raise ValueError(f"on_delete does not apply to through association {opts.remote_name}")
        return HasMany(
            opts.remote_name, remote_model, foreign_key, None,
            through=opts.through,
            remote_key=opts.remote_key or f"fk{remote_model}",
        )
    return HasMany(opts.remote_name, remote_model, foreign_key, opts.on_delete or OnDelete.RESTRICT)


def build_belongs_to(opts):
    name = opts.remote_name
    return BelongsTo(
        name[:1].lower() + name[1:],
        opts.remote_model or name,
        opts.foreign_key or f"fk{name}",
    )


class Accessor:
    """One synthesized has-many operation: find_<name>, sorted_<name> or new_<name>."""

    def __init__(self, kind, assoc):
        self.kind = kind
        self.assoc = assoc
        self.name = f"{kind}_{assoc.name}"

    def __call__(self, instance, *args, **kwargs):
        factory = instance._factory
        if self.kind == "new":
            return factory.new_many(self.assoc.name, instance, *args, **kwargs)
        this_id = instance.id
        if not this_id:
            return []
        join_sort = kwargs.pop("join_sort", False)
        sort = "join" if join_sort and self.kind == "sorted" else self.kind == "sorted"
        if self.assoc.through:
            return factory.find_many_through(self.assoc.name, sort, this_id, *args, **kwargs)
        return factory.find_many(self.assoc.name, sort, this_id, *args, **kwargs)

    def __repr__(self):
        return f"<Accessor {self.name}>"


def build_accessors(has_many):
    accessors = {}
    for assoc in has_many.values():
        kinds = ("find", "sorted") if assoc.through else ("find", "sorted", "new")
        for kind in kinds:
            accessor = Accessor(kind, assoc)
            accessors[accessor.name] = accessor
    return accessors
