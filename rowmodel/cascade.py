import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from rowmodel.associations import OnDelete

logger = logging.getLogger("rowmodel.cascade")


class DeleteBlocked:
    """Why a delete() did not happen. Returned, not raised."""


@dataclass
class RestrictConflict(DeleteBlocked):
    # association names from the deleted instance down to the restricting one
    path: List[str]
    # (cascade association name, child id) for each step taken
    steps: List[Tuple[str, int]] = field(default_factory=list)

    def prefixed(self, name, child_id):
        return RestrictConflict([name] + self.path, [(name, child_id)] + self.steps)


@dataclass
class DeleteRefused(DeleteBlocked):
    errors: List[str]
    steps: List[Tuple[str, int]] = field(default_factory=list)

    def prefixed(self, name, child_id):
        return DeleteRefused(self.errors, [(name, child_id)] + self.steps)


class CascadeAborted(Exception):
    def __init__(self, blocked):
        super().__init__(blocked)
        self.blocked = blocked


def collect_errors_preventing_store(instance):
    """Errors from the instance's own hook and from every object attribute.

    A hook that raises contributes its message, it does not stop the others.
    """
    errors = []
    try:
        found = instance.errors_preventing_store()
    except Exception as e:
        logger.debug(f"errors_preventing_store() of {instance!r} raised", exc_info=True)
        found = [str(e) or e.__class__.__name__]
    if isinstance(found, str):
        found = [found]
    errors.extend(found or [])
    errors.extend(instance._codec.errors_preventing_store())
    return errors


def store(instance, dry_run=False):
    errors = collect_errors_preventing_store(instance)
    if errors or dry_run:
        return errors
    factory = instance._factory
    row_store = factory.row_store
    row = instance._row
    with row_store.transaction():
        instance._codec.to_store()
        for name, info in factory.attrs.items():
            if info.char_limit is None:
                continue
            val = row_store.get(row, name)
            if isinstance(val, str) and len(val) > info.char_limit:
                row_store.set(row, name, val[:info.char_limit])
        row_store.save(row)
    return []


def restrict_probe(instance, steps=(), _seen=None):
    """Walk the cascade tree; return the first RestrictConflict found, or None."""
    _seen = set() if _seen is None else _seen
    factory = instance._factory
    key = (factory.model_name, instance.id)
    if key in _seen:
        return None
    _seen.add(key)
    for name, assoc in factory.has_many.items():
        if assoc.on_delete is OnDelete.CASCADE:
            if factory.factory(assoc.remote_model).view:
                continue
            for child in factory.find_many(name, False, instance.id):
                found = restrict_probe(child, steps + ((name, child.id),), _seen)
                if found:
                    return found
        elif assoc.on_delete is OnDelete.RESTRICT:
            remote = factory.factory(assoc.remote_model)
            if factory.row_store.exists(remote.table_name, {assoc.foreign_key: instance.id}):
                return RestrictConflict([s[0] for s in steps] + [name], list(steps))
    return None


def check_delete(instance):
    blocked = restrict_probe(instance)
    if blocked:
        return blocked
    errors = instance.errors_preventing_delete()
    if isinstance(errors, str):
        errors = [errors]
    if errors:
        return DeleteRefused(list(errors))
    return None


def delete(instance, force=False):
    """Delete instance and handle its has-many children.

    Returns None on success (or if there was nothing to delete), a
    DeleteBlocked if anything in the tree prevented the delete. In the latter
    case nothing was changed.
    """
    if instance._row.dry:
        return None
    row_store = instance._factory.row_store
    try:
        with row_store.transaction():
            _delete(instance, force)
    except CascadeAborted as e:
        logger.info(f"Delete of {instance!r} blocked: {e.blocked}")
        return e.blocked
    return None


def _delete(instance, force):
    if not force:
        blocked = check_delete(instance)
        if blocked:
            raise CascadeAborted(blocked)
    factory = instance._factory
    this_id = instance.id
    for name, assoc in factory.has_many.items():
        if assoc.through:
            # join rows always go, on_delete does not apply
            _delete_children(instance, name, assoc.through, assoc.foreign_key, force)
        elif assoc.on_delete is OnDelete.RESTRICT:
            if force:
                _delete_children(instance, name, assoc.remote_model, assoc.foreign_key, True)
        elif assoc.on_delete is OnDelete.CASCADE:
            _delete_children(instance, name, assoc.remote_model, assoc.foreign_key, force)
        elif assoc.on_delete is OnDelete.SET_NULL:
            remote = factory.factory(assoc.remote_model)
            if not remote.view:
                factory.row_store.update_many(
                    remote.table_name, {assoc.foreign_key: None}, {assoc.foreign_key: this_id}
                )
    instance._codec.delete()
    instance._assoc_vals = {}
    factory.row_store.erase(instance._row)
    logger.debug(f"Deleted {factory.model_name} {this_id}")


def _delete_children(instance, name, remote_model, foreign_key, force):
    remote = instance._factory.factory(remote_model)
    if remote.view:
        return
    for child in remote.find({foreign_key: instance.id}):
        child_id = child.id
        blocked = child.delete(force=force)
        if blocked:
            raise CascadeAborted(blocked.prefixed(name, child_id))
