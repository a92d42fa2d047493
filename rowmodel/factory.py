import logging

from rowmodel.associations import AttrDef, build_accessors, build_belongs_to, build_has_many
from rowmodel.compare import build_compare, stable_sort
from rowmodel.errors import AmbiguousError, ConfigurationError, NotStoredError
from rowmodel.filters import and_, as_filter, col, ComparisonFilter, or_
from rowmodel.options import parse_options
from rowmodel.sanitize import clean as clean_value

logger = logging.getLogger("rowmodel.factory")


class ModelFactory:
    """Produces and finds the instances of one model.

    Everything derived from the schema and the options is computed once, here,
    and read-only afterwards.
    """

    def __init__(self, model_name, registry, options=None, model_class=None):
        from rowmodel.model import Model

        opts = parse_options(model_name, options)
        self.model_name = model_name
        self.registry = registry
        self.settings = registry.settings
        self.row_store = registry.row_store
        self.model_class = model_class or Model
        self.table_name = opts.table_name or model_name
        self.view = opts.view
        self.fields = opts.fields
        self.cache_ttl = self.settings.cache_ttl if opts.cache_ttl is None else opts.cache_ttl

        self._resolve_attrs()
        self._resolve_markdown(opts.markdown)
        self._resolve_json_attrs(opts.json_attrs, opts.object_attrs)
        self._resolve_associations(opts.has_many, opts.belongs_to)
        try:
            self.compare, self._order_by = build_compare(opts.compare)
        except (IndexError, AttributeError) as e:
            raise ConfigurationError(f"Bad compare option for {model_name}: {opts.compare!r}") from e

        logger.debug(f"Created {self!r}")

    def __repr__(self):
        cols = ", ".join(self.attrs.keys())
        return (
            f"<ModelFactory model={self.model_name} table={self.table_name} "
            f"columns=[{cols}] has_many={list(self.has_many)} belongs_to={list(self.belongs_to)}>"
        )

    def _resolve_attrs(self):
        columns = self.row_store.schema(self.table_name, self.fields, self.cache_ttl)
        self.attrs = {c.name: c for c in columns}

    def _resolve_markdown(self, markdown):
        # names that are not columns are silently ignored
        self.markdown = frozenset(name for name in markdown if name in self.attrs)

    def _resolve_json_attrs(self, json_attrs, object_attrs):
        definitions = {name: AttrDef() for name in json_attrs}
        definitions.update(object_attrs)
        for name in definitions:
            if name not in self.attrs:
                raise ConfigurationError(f"JSON attribute {self.model_name}.{name} is not a column")
        self.json_attrs = definitions

    def _resolve_associations(self, has_many_opts, belongs_to_opts):
        self.has_many = {}
        for opts in has_many_opts:
            if opts.remote_name in self.has_many:
                raise ConfigurationError(f"Duplicate has-many {opts.remote_name} in {self.model_name}")
            try:
                self.has_many[opts.remote_name] = build_has_many(self.model_name, opts)
            except ValueError as e:
                raise ConfigurationError(f"{self.model_name}: {e}") from e
        self.belongs_to = {}
        for opts in belongs_to_opts:
            assoc = build_belongs_to(opts)
            if assoc.name in self.belongs_to:
                raise ConfigurationError(f"Duplicate belongs-to {assoc.name} in {self.model_name}")
            self.belongs_to[assoc.name] = assoc
        self.accessors = build_accessors(self.has_many)

    # --- registry pass-throughs -----------------------------------------

    def factory(self, model_name):
        return self.registry.factory(model_name)

    def model_names(self):
        return self.registry.model_names()

    # --- producing and finding ------------------------------------------

    def count(self):
        return self.row_store.count(self.table_name)

    def row_exists(self, id):
        return bool(id) and self.row_store.exists(self.table_name, {"id": id})

    def create(self, params=None):
        """A new, not yet stored, instance"""
        return self.model_class(self, None, params)

    def get(self, id):
        if not id:
            return None
        found = self.find({"id": id})
        return found[0] if found else None

    def find(self, filter=None, options=None, ttl=0):
        options = dict(options or {})
        used_cls = options.pop("model_class", None) or self.model_class
        rows = self.row_store.find(self.table_name, filter, options, ttl)
        return [used_cls(self, row) for row in rows]

    def find_one(self, filter=None, options=None, ttl=0):
        options = dict(options or {})
        used_cls = options.pop("model_class", None) or self.model_class
        row = self.row_store.find_one(self.table_name, filter, options, ttl)
        return used_cls(self, row) if row is not None else None

    def add_find_cond(self, filter, column, value, op="=", logic="AND"):
        cond = col(column) == value if op == "=" else ComparisonFilter(column, op, value)
        if logic.upper() == "OR":
            return or_(filter, cond)
        return and_(filter, cond)

    def sorted(self, filter=None, options=None, compare=None, ttl=0):
        """find() and sort as the compare option says, or by the compare argument if given."""
        callback = compare
        if callback is None and self._order_by is None:
            callback = self.compare
        if callback is not None:
            return stable_sort(self.find(filter, options, ttl), callback)
        if not self._order_by:
            raise ConfigurationError(f"{self.model_name} has no compare option, pass a comparator")
        return self.find(filter, dict(options or {}, order=self._order_by), ttl)

    def sort(self, instances):
        if self.compare is None:
            return list(instances)
        return stable_sort(instances, self.compare)

    def find_unique(self, attr_values, ensure=False, ttl=0):
        """None, the one matching instance, or AmbiguousError if more than one match.

        With no match and a truthy ensure, a new unsaved instance with
        attr_values (merged with ensure if that is a dict) is returned.
        """
        if not attr_values:
            return None
        filter = None
        for attr, value in attr_values.items():
            filter = self.add_find_cond(filter, attr, value)
        found = self.find(filter, None, ttl)
        if not found:
            if not ensure:
                return None
            if isinstance(ensure, dict):
                attr_values = self.sanitize({**attr_values, **ensure})
            return self.create(attr_values)
        if len(found) == 1:
            return found[0]
        raise AmbiguousError(self.model_name, attr_values, found)

    def clean(self, attr, value):
        keep = self.settings.markdown_tags if attr in self.markdown else ()
        return clean_value(value, keep)

    def sanitize(self, params, allow=(), clean=True):
        allowed = set(self.attrs) | set(allow)
        return {
            key: self.clean(key, val) if clean else val
            for key, val in params.items()
            if key in allowed
        }

    # --- has-many, usable without an instance ----------------------------

    def _assoc(self, name):
        try:
            return self.has_many[name]
        except KeyError:
            raise ConfigurationError(f"{self.model_name} has no has-many association {name}") from None

    def new_many(self, assoc_name, owner, params=None):
        assoc = self._assoc(assoc_name)
        if assoc.through:
            raise ConfigurationError(f"Cannot create through {assoc.through} from {self.model_name}")
        if not owner.id:
            raise NotStoredError(owner, f"creating {assoc_name}")
        params = dict(params or {})
        params[assoc.foreign_key] = owner.id
        return self.factory(assoc.remote_model).create(params)

    def find_many(self, assoc_name, sort, this_id, filter=None, options=None, compare=None, ttl=0):
        assoc = self._assoc(assoc_name)
        remote = self.factory(assoc.remote_model)
        filter = self.add_find_cond(filter, assoc.foreign_key, this_id)
        if sort:
            return remote.sorted(filter, options, compare, ttl)
        return remote.find(filter, options, ttl)

    def find_many_through(self, assoc_name, sort, this_id, filter=None, options=None, compare=None,
                          ttl=0):
        """sort is falsy, truthy for the remote order, or "join" for the join model order."""
        assoc = self._assoc(assoc_name)
        join = self.factory(assoc.through)
        join_filter = {assoc.foreign_key: this_id}
        joins = join.sorted(join_filter) if sort == "join" else join.find(join_filter)
        ids = [j.get_column(assoc.remote_key) for j in joins]
        ids = [i for i in ids if i is not None]
        if not ids:
            return []
        remote = self.factory(assoc.remote_model)
        filter = and_(as_filter(filter), col("id").in_(ids))
        if sort and sort != "join":
            result = remote.sorted(filter, options, compare, ttl)
        else:
            result = remote.find(filter, options, ttl)
        if sort == "join":
            position = {}
            for ix, id in enumerate(ids):
                position.setdefault(id, ix)
            result.sort(key=lambda o: position[o.id])
        return result
