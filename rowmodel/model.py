import datetime
import re
from functools import partial

from rowmodel import cascade
from rowmodel.codec import AttributeCodec
from rowmodel.compare import delegate_comparator
from rowmodel.errors import AmbiguousError, ConfigurationError


class Model:
    """One row, as produced by a ModelFactory.

    Columns, JSON attributes and belongs-to associations read and write as
    plain attributes. Has-many associations are reached through the
    factory's accessor table: find_<name>(), sorted_<name>() and, for direct
    associations, new_<name>().

    Subclass to add behaviour and validation. A subclass may declare its
    factory options in a model_options dict, see Registry.register().
    """

    def __init__(self, factory, row=None, params=None):
        if row is None:
            row = factory.row_store.new_row(factory.table_name)
        object.__setattr__(self, '_factory', factory)
        object.__setattr__(self, '_row', row)
        object.__setattr__(self, '_codec', AttributeCodec(factory, factory.row_store, row))
        object.__setattr__(self, '_assoc_vals', {})
        if params:
            self.set_attrs(params)

    def __repr__(self):
        pk_val = self.id if self.id is not None else "New"
        return f"<{self._factory.model_name}(id={pk_val})>"

    @property
    def id(self):
        return self._factory.row_store.get(self._row, "id")

    @id.setter
    def id(self, value):
        self._factory.row_store.set(self._row, "id", value)

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        factory = self._factory
        accessor = factory.accessors.get(name)
        if accessor is not None:
            return partial(accessor, self)
        if name in factory.belongs_to:
            assoc = factory.belongs_to[name]
            fk = factory.row_store.get(self._row, assoc.foreign_key)
            return factory.factory(assoc.remote_model).get(fk) if fk else None
        if name in factory.json_attrs:
            return self._codec.get(name)
        if name in factory.attrs:
            return factory.row_store.get(self._row, name)
        raise AttributeError(f"{factory.model_name} has no attribute '{name}'")

    def __setattr__(self, name, value):
        if name.startswith('_') or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self._set(name, value)

    def _set(self, name, value):
        factory = self._factory
        if name in factory.belongs_to:
            if isinstance(value, Model):
                value = value.id
            elif isinstance(value, str) and value.strip().isdigit():
                value = int(value)
            elif not isinstance(value, int) or isinstance(value, bool):
                value = None
            factory.row_store.set(self._row, factory.belongs_to[name].foreign_key, value)
        elif name in factory.json_attrs:
            self._codec.set(name, value)
        elif name in factory.attrs:
            factory.row_store.set(self._row, name, value)
        else:
            raise AttributeError(f"{factory.model_name} has no attribute '{name}'")

    def get_column(self, name):
        """The raw column value, bypassing JSON decoding and associations"""
        return self._factory.row_store.get(self._row, name)

    def set_attrs(self, params):
        for key, val in params.items():
            if key == "id":
                self.id = val
            else:
                self._set(key, val)
        return self

    def is_modified(self, attr):
        return self._codec.is_modified(attr) or attr in self._row.changed

    def related(self, accessor_name):
        """Cached result of calling find_<name>() or sorted_<name>() with no arguments"""
        if accessor_name not in self._factory.accessors or accessor_name.startswith("new_"):
            raise AttributeError(f"{self._factory.model_name} has no association reader {accessor_name}")
        if accessor_name not in self._assoc_vals:
            self._assoc_vals[accessor_name] = getattr(self, accessor_name)()
        return self._assoc_vals[accessor_name]

    def forget_related(self):
        self._assoc_vals = {}

    # --- storing and deleting -------------------------------------------

    def store(self, dry_run=False):
        """Validate and save. Returns the list of errors that prevented it, empty on success."""
        return cascade.store(self, dry_run)

    def delete(self, force=False):
        """Delete the row and handle has-many children.

        Returns None when done, or a cascade.RestrictConflict or
        cascade.DeleteRefused explaining why nothing was deleted.
        """
        return cascade.delete(self, force)

    def errors_preventing_store(self):
        """Override to return error messages that should stop store()."""
        return []

    def errors_preventing_delete(self):
        """Override to return error messages that should stop a non-forced delete()."""
        return []

    # --- utilities ------------------------------------------------------

    def clear_attrs(self):
        """Forget all column values except the primary key."""
        for column in self._factory.attrs:
            self._factory.row_store.clear(self._row, column)
        self._codec.clear()
        self._assoc_vals = {}
        return self

    def cast(self):
        result = {"id": self.id}
        for attr in self._factory.attrs:
            result[attr] = getattr(self, attr) if attr in self._factory.json_attrs else self.get_column(attr)
        return result

    def create_clone(self):
        """A new unstored instance with the same attribute values"""
        params = self.cast()
        del params["id"]
        return self._factory.create(params)

    def compare(self, other):
        cmp = self._factory.compare
        if cmp is None or cmp is delegate_comparator:
            raise ConfigurationError(f"{self._factory.model_name} must override compare()")
        return cmp(self, other)

    def row_exists(self, model_name, fk):
        return self._factory.factory(model_name).row_exists(fk)

    # --- helpers for errors_preventing_store() --------------------------

    def report_falsy(self, errors, required_attrs, prefix="missing"):
        result = True
        for attr_name in required_attrs:
            attr, name = (attr_name, attr_name) if isinstance(attr_name, str) else attr_name
            if not getattr(self, attr):
                errors.append(f"{prefix} {name}")
                result = False
        return result

    def report_row_missing(self, errors, required_fks, missing="missing", ref_to="reference to",
                           with_id="with id"):
        """required_fks holds (model name, human name[, foreign key[, allow null]])"""
        result = True
        for entry in required_fks:
            model, name = entry[0], entry[1]
            fk_name = (entry[2] if len(entry) > 2 else None) or f"fk{model}"
            allow_null = len(entry) > 3 and entry[3]
            fk_val = self.get_column(fk_name)
            if fk_val:
                if not self.row_exists(model, fk_val):
                    errors.append(f"{missing} {name} {with_id} {fk_val}")
                    result = False
            elif not allow_null:
                errors.append(f"{missing} {ref_to} {name}")
                result = False
        return result

    def report_duplicate(self, errors, unique, text_before="a row with", text_after="already exists"):
        params = {}
        names = []
        for field in unique:
            attr, name = (field, field) if isinstance(field, str) else field
            names.append(name)
            params[attr] = getattr(self, attr)
        try:
            dup = self._factory.find_unique(params)
        except AmbiguousError as e:
            dup = next((o for o in e.found if o.id != self.id), None)
        if dup is None or dup.id == self.id:
            return True
        if len(names) == 1:
            desc = f"{names[0]} = {params[unique_attr(unique[0])]}"
        else:
            desc = f"({', '.join(names)}) = ({', '.join(str(v) for v in params.values())})"
        errors.append(f"{text_before} {desc} {text_after}")
        return False

    def report_duplicate_sibling(self, errors, parent_id, parent_name, sibling_model, sibling_fk,
                                 sibling_name, exists_as="already exists as", missing="missing"):
        if not parent_id:
            errors.append(f"{missing} {parent_name}")
            return False
        sibling = self._factory.factory(sibling_model)
        if sibling.row_store.exists(sibling.table_name, {sibling_fk: parent_id}):
            errors.append(f"{parent_name} {exists_as} {sibling_name}")
            return False
        return True

    def check_integer(self, errors, attr, shown=None, default=None, message="should be an integer, got"):
        val = self.get_column(attr)
        if isinstance(val, int) and not isinstance(val, bool):
            return True
        if isinstance(val, str) and val.isdigit():
            return True
        if isinstance(default, int):
            self._set(attr, default)
            return True
        errors.append(f'{shown or attr} {message} "{val}"')
        return False

    def check_date_format(self, errors, attr, illegal="has an illegal date, got",
                          should_be="should be an existing date"):
        val = self.get_column(attr)
        match = re.fullmatch(r'(\d{4})-(\d\d)-(\d\d)', val or "") if isinstance(val, str) else None
        if match:
            try:
                datetime.date(*(int(g) for g in match.groups()))
                return True
            except ValueError:
                pass
        errors.append(f"{attr} {illegal} {val}, {should_be} YYYY-MM-DD")
        return False


def unique_attr(field):
    return field if isinstance(field, str) else field[0]
