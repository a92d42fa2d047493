import json
import logging

from rowmodel.errors import AttributeDecodeError
from rowmodel.object_attr import AttrState, Slot

logger = logging.getLogger("rowmodel.codec")


def is_empty(value):
    return value is None or (isinstance(value, (str, list, dict)) and not value)


def encode(value):
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


class AttributeCodec:
    """JSON and object attributes of one model instance.

    The cache maps attribute name to its decoded value. A missing key means
    the column has not been decoded yet; a None value means it was decoded
    (or set) and is empty. For object attributes the cached value is a Slot,
    or a list of Slot for array attributes.
    """

    def __init__(self, factory, row_store, row):
        self.factory = factory
        self.row_store = row_store
        self.row = row
        self._cache = {}
        self._modified = set()

    def clear(self):
        self._cache = {}
        self._modified = set()

    def is_loaded(self, attr):
        return attr in self._cache

    def is_modified(self, attr):
        return attr in self._modified

    def state(self, attr):
        """AttrState of an object attribute, a list of them for an array attribute"""
        if self.factory.json_attrs[attr].object_type is None:
            raise TypeError(f"{attr} is not an object attribute")
        if attr not in self._cache:
            return AttrState.UNLOADED
        value = self._cache[attr]
        if value is None:
            return AttrState.GONE
        if isinstance(value, list):
            return [slot.state for slot in value]
        return value.state

    def load(self, attr):
        if attr in self._cache:
            return self._cache[attr]
        definition = self.factory.json_attrs[attr]
        decoded = self._decode(attr, self.row_store.get(self.row, attr))
        if decoded is None:
            value = None
        elif definition.object_type is None:
            value = decoded
        elif definition.is_array:
            if not isinstance(decoded, list):
                decoded = [decoded]
            value = [self._from_store(definition, item) for item in decoded]
        else:
            value = self._from_store(definition, decoded)
        self._cache[attr] = value
        return value

    def _decode(self, attr, raw):
        if raw is None or raw == "":
            return None
        if not isinstance(raw, (str, bytes)):
            return raw
        try:
            return json.loads(raw)
        except ValueError:
            if self.factory.settings.bad_json == "raise":
                raise AttributeDecodeError(self.factory.model_name, attr, raw)
            logger.warning(f"Malformed JSON in {self.factory.model_name}.{attr} read as None: {raw!r}")
            return None

    def _from_store(self, definition, decoded):
        if decoded is None:
            return Slot(AttrState.GONE)
        obj = definition.object_type()
        obj.from_store(decoded)
        return Slot.wrap(obj)

    def get(self, attr):
        definition = self.factory.json_attrs[attr]
        value = self.load(attr)
        if definition.object_type is None or value is None:
            return value
        if definition.is_array:
            return [slot.value() for slot in value]
        return value.value()

    def set(self, attr, value):
        definition = self.factory.json_attrs[attr]
        if definition.object_type is None:
            self._cache[attr] = value
        elif definition.is_array:
            self._cache[attr] = self._set_array(definition, self.load(attr) or [], value)
        else:
            old = self.load(attr)
            obj = old.obj if old is not None and old.held else definition.object_type()
            result = obj.set(value)
            self._cache[attr] = None if result is None else Slot.wrap(result)
        self._modified.add(attr)

    def _set_array(self, definition, old_slots, values):
        if values is None:
            values = []
        elif not isinstance(values, (list, tuple)):
            raise TypeError(f"Array attribute needs a list, got {values!r}")
        available = [slot.obj for slot in old_slots if slot.held]
        result = []
        for value in (v for v in values if not is_empty(v)):
            obj = available.pop(0).set(value) if available else None
            if obj is None:
                obj = definition.object_type().set(value)
            result.append(Slot.wrap(obj))
        # old instances left over are told so rather than dropped, they may be zombies
        for old in available:
            leftover = old.set(None)
            if leftover is not None:
                result.append(Slot.wrap(leftover))
        return result

    def errors_preventing_store(self):
        errors = []
        for attr, definition in self.factory.json_attrs.items():
            if definition.object_type is None:
                continue
            try:
                value = self.load(attr)
            except Exception as e:
                errors.append(f"{attr}: {e}")
                continue
            slots = value if definition.is_array else [value]
            for slot in slots or []:
                if slot is None or not slot.held:
                    continue
                try:
                    found = slot.obj.errors_preventing_store()
                except Exception as e:
                    errors.append(f"{attr}: {e}")
                    continue
                if isinstance(found, str):
                    errors.append(found)
                elif found:
                    errors.extend(found)
        return errors

    def to_store(self):
        """Write every decoded attribute back to the row as JSON text."""
        for attr, definition in self.factory.json_attrs.items():
            if attr not in self._cache:
                continue
            value = self._cache[attr]
            if definition.object_type is None:
                stored = value
            elif definition.is_array:
                stored = self._array_to_store(attr, definition, value)
            else:
                stored = self._scalar_to_store(attr, value)
            self.row_store.set(self.row, attr, encode(stored))
            self._modified.discard(attr)

    def _scalar_to_store(self, attr, slot):
        if slot is None or not slot.held:
            self._cache[attr] = None
            return None
        stored = slot.obj.to_store()
        if slot.state is AttrState.ZOMBIE and is_empty(stored):
            self._cache[attr] = None
        return stored

    def _array_to_store(self, attr, definition, slots):
        if slots is None:
            return None
        stored = [slot.obj.to_store() if slot.held else None for slot in slots]
        while stored and is_empty(stored[-1]) and len(stored) > definition.array_size:
            stored.pop()
            slots.pop()
        for ix, slot in enumerate(slots):
            if slot.state is AttrState.ZOMBIE and is_empty(stored[ix]):
                slots[ix] = Slot(AttrState.GONE)
        if not stored:
            self._cache[attr] = None
            return None
        return stored

    def delete(self):
        """Release the external resources of every object attribute."""
        for attr, definition in self.factory.json_attrs.items():
            if definition.object_type is None:
                continue
            value = self.load(attr)
            slots = value if definition.is_array else [value]
            for slot in slots or []:
                if slot is not None and slot.held:
                    slot.obj.delete()
            self._cache[attr] = None
