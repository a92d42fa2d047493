"""
Object attributes: a JSON column whose value is handled by a user class.

The JSON in the database and the Python value seen through the model are
not necessarily the same thing, and the class may also manage a resource
outside the database (a file, a blob in some other store...).

A column holds either one instance or a list of them. The ObjectAttr
methods only ever deal with one value at a time; the codec does the rest.

Zombies
-------
If the instance manages an external resource it is usually better not to
create or destroy the resource in set() but to wait until the owning model
is stored. So set(None) may return the instance itself rather than None.
Such an instance reports get() == None but is kept around, and its
to_store() (or delete()) releases the resource and returns None.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class AttrState(Enum):
    UNLOADED = auto()
    LIVE = auto()
    ZOMBIE = auto()
    GONE = auto()


class ObjectAttr(ABC):
    """Subclasses must be constructible without arguments."""

    @abstractmethod
    def from_store(self, decoded):
        """Initialize from the decoded JSON of one value. Return value ignored."""

    @abstractmethod
    def get(self):
        """The Python value. None for a zombie."""

    @abstractmethod
    def set(self, value):
        """Return self (possibly a zombie), a replacement instance, or None to be forgotten."""

    def errors_preventing_store(self):
        return []

    @abstractmethod
    def to_store(self):
        """The JSON-able value to store. A zombie releases its resource and returns None."""

    def delete(self):
        """Release any resource not stored in the database."""


@dataclass
class Slot:
    state: AttrState
    obj: Optional[ObjectAttr] = None

    @classmethod
    def wrap(cls, obj):
        if obj is None:
            return cls(AttrState.GONE)
        if obj.get() is None:
            return cls(AttrState.ZOMBIE, obj)
        return cls(AttrState.LIVE, obj)

    @property
    def held(self):
        return self.state in (AttrState.LIVE, AttrState.ZOMBIE)

    def value(self):
        if self.state is AttrState.LIVE:
            return self.obj.get()
        return None
