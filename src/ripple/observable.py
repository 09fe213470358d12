"""Observable records and lists — state that tracks its readers.

observable(target) wraps a dict (or any mutable mapping), a list, or a plain
attribute object in a handle. Reading a field through the handle while an
effect runs subscribes that effect to (handle, field); writing a field stores
the value and notifies the field's subscribers when it actually changed.

Nested records and lists come back wrapped, so reactivity is deep; the
target itself only ever holds raw values.

Wrapping is idempotent: the runtime keeps a side table from target identity
to handle, cleared when the handle is collected.
"""

from __future__ import annotations

import enum
import types
import weakref
from collections.abc import MutableMapping
from typing import Any, Hashable, Iterator

from ripple._runtime import Runtime, get_runtime
from ripple.errors import NotObservableError

_MISSING = object()


class _IterateKey:
    def __repr__(self) -> str:
        return "ITERATE"


# Subscribed by iteration and len(); notified when fields are added or removed.
ITERATE = _IterateKey()


def _is_record(value: Any) -> bool:
    if isinstance(value, MutableMapping):
        return True
    if isinstance(value, (type, types.ModuleType, enum.Enum)) or callable(value):
        return False
    return hasattr(value, "__dict__")


def _changed(old: Any, new: Any) -> bool:
    return old is not new and old != new


def observable(target: Any, *, runtime: Runtime | None = None):
    """Wrap target for tracking. Returns the existing handle if already wrapped.

    Usage:
        state = observable({"count": 0, "user": {"name": "Ada"}})
        state["count"]          # tracked read
        state["user"]["name"]   # nested records are wrapped too
        state["count"] = 1      # notifies readers of "count"
    """
    if isinstance(target, (ObservableRecord, ObservableList)):
        return target
    runtime = runtime if runtime is not None else get_runtime()
    ref = runtime.handles.get(id(target))
    if ref is not None:
        handle = ref()
        if handle is not None and handle._target is target:
            return handle
    if isinstance(target, list):
        handle = ObservableList(target, runtime)
    elif _is_record(target):
        handle = ObservableRecord(target, runtime)
    else:
        raise NotObservableError(f"cannot observe {type(target).__name__} value {target!r}")

    key = id(target)
    handles = runtime.handles

    def _forget(r: weakref.ref) -> None:
        if handles.get(key) is r:
            del handles[key]

    handles[key] = weakref.ref(handle, _forget)
    return handle


def _is_wrappable(value: Any) -> bool:
    return isinstance(value, list) or _is_record(value)


def to_raw(value: Any) -> Any:
    """The plain object behind a handle; anything else is returned as is."""
    if isinstance(value, (ObservableRecord, ObservableList)):
        return value._target
    return value


def is_observable(value: Any) -> bool:
    return isinstance(value, (ObservableRecord, ObservableList))


class ObservableRecord:
    """Handle over a mapping or attribute object: read/write by field name.

    Any read (read, [], get, in) registers a dependency on that field;
    iteration, len() and fields() register one on ITERATE.

    The handle owns the handles of its nested values. The store and the side
    table only hold them weakly, so without this a nested handle, and every
    subscription made through it, would die with the read expression.
    """

    __slots__ = ("_target", "_runtime", "_mapping", "_children", "__weakref__")

    def __init__(self, target: Any, runtime: Runtime) -> None:
        self._target = target
        self._runtime = runtime
        self._mapping = isinstance(target, MutableMapping)
        self._children: dict[Hashable, ObservableRecord | ObservableList] = {}

    # --- Raw access ---

    def _has_raw(self, field: Hashable) -> bool:
        if self._mapping:
            return field in self._target
        return isinstance(field, str) and hasattr(self._target, field)

    def _get_raw(self, field: Hashable) -> Any:
        if self._mapping:
            return self._target[field]
        return getattr(self._target, field)

    def _raw_fields(self) -> list:
        if self._mapping:
            return list(self._target.keys())
        return list(vars(self._target))

    def _child(self, field: Hashable, value: Any) -> Any:
        """value, wrapped and cached under field when it is a record or list."""
        if not _is_wrappable(value):
            return value
        child = self._children.get(field)
        if child is None or child._target is not value:
            child = self._children[field] = observable(value, runtime=self._runtime)
        return child

    # --- Read operations (track) ---

    def read(self, field: Hashable, default: Any = _MISSING) -> Any:
        """Tracked read of field. Raises like the target unless default is given."""
        self._runtime.store.track(self, field)
        if not self._has_raw(field):
            if default is _MISSING:
                if self._mapping:
                    raise KeyError(field)
                raise AttributeError(f"{type(self._target).__name__!r} object has no attribute {field!r}")
            return default
        return self._child(field, self._get_raw(field))

    def has(self, field: Hashable) -> bool:
        self._runtime.store.track(self, field)
        return self._has_raw(field)

    def fields(self) -> list:
        self._runtime.store.track(self, ITERATE)
        return self._raw_fields()

    def __getitem__(self, field: Hashable) -> Any:
        return self.read(field)

    def get(self, field: Hashable, default: Any = None) -> Any:
        return self.read(field, default)

    def __contains__(self, field: Hashable) -> bool:
        return self.has(field)

    def __len__(self) -> int:
        return len(self.fields())

    def __iter__(self) -> Iterator:
        return iter(self.fields())

    def keys(self) -> list:
        return self.fields()

    def values(self) -> list:
        return [self.read(field) for field in self.fields()]

    def items(self) -> list:
        return [(field, self.read(field)) for field in self.fields()]

    # --- Write operations (notify) ---

    def write(self, field: Hashable, value: Any) -> None:
        """Store value, then notify readers of field if it changed."""
        self._runtime.call(self._write_direct, field, to_raw(value))

    def _write_direct(self, field: Hashable, value: Any) -> None:
        had = self._has_raw(field)
        old = self._get_raw(field) if had else _MISSING
        if self._mapping:
            self._target[field] = value
        else:
            setattr(self._target, field, value)
        if old is not value:
            self._children.pop(field, None)
        if not had:
            self._runtime.store.notify_many(self, (field, ITERATE))
        elif _changed(old, value):
            self._runtime.store.notify(self, field)

    def delete(self, field: Hashable) -> None:
        """Remove field, notifying its readers and iterators."""
        self._runtime.call(self._delete_direct, field)

    def _delete_direct(self, field: Hashable) -> None:
        if self._mapping:
            del self._target[field]
        else:
            delattr(self._target, field)
        self._children.pop(field, None)
        self._runtime.store.notify_many(self, (field, ITERATE))

    def __setitem__(self, field: Hashable, value: Any) -> None:
        self.write(field, value)

    def __delitem__(self, field: Hashable) -> None:
        self.delete(field)

    def pop(self, field: Hashable, *default) -> Any:
        """Remove field and return its raw value, like dict.pop."""
        if not self._has_raw(field):
            if default:
                return default[0]
            if self._mapping:
                raise KeyError(field)
            raise AttributeError(field)
        value = self._get_raw(field)
        self.delete(field)
        return value

    def setdefault(self, field: Hashable, default: Any = None) -> Any:
        if not self._has_raw(field):
            self.write(field, default)
        return self._child(field, self._get_raw(field))

    def clear(self) -> None:
        """Remove every field, notifying each field's readers and iterators."""
        self._runtime.call(self._clear_direct)

    def _clear_direct(self) -> None:
        fields = self._raw_fields()
        if not fields:
            return
        if self._mapping:
            self._target.clear()
        else:
            for field in fields:
                delattr(self._target, field)
        self._children.clear()
        self._runtime.store.notify_many(self, (*fields, ITERATE))

    def update(self, other=None, **kwargs) -> None:
        if other:
            for field, value in dict(other).items():
                self.write(field, value)
        for field, value in kwargs.items():
            self.write(field, value)

    def __repr__(self) -> str:
        return f"ObservableRecord({self._target!r})"


class ObservableList:
    """An observable list that tracks reads and notifies on mutation.

    Any read operation (iteration, indexing, len) registers a dependency.
    Any mutation (append, extend, __setitem__, etc.) notifies observers.
    """

    __slots__ = ("_target", "_runtime", "_children", "__weakref__")

    def __init__(self, target: list, runtime: Runtime) -> None:
        self._target = target
        self._runtime = runtime
        # id(raw item) -> handle; owned here for the same reason as ObservableRecord.
        self._children: dict[int, ObservableRecord | ObservableList] = {}

    def _track(self) -> None:
        self._runtime.store.track(self, ITERATE)

    def _notify(self) -> None:
        if self._children:
            live = {id(item) for item in self._target}
            for key in [key for key in self._children if key not in live]:
                del self._children[key]
        self._runtime.store.notify(self, ITERATE)

    def _child(self, item):
        if not _is_wrappable(item):
            return item
        child = self._children.get(id(item))
        if child is None or child._target is not item:
            child = self._children[id(item)] = observable(item, runtime=self._runtime)
        return child

    # --- Read operations (track) ---

    def __getitem__(self, index):
        self._track()
        if isinstance(index, slice):
            return [self._child(item) for item in self._target[index]]
        return self._child(self._target[index])

    def __len__(self) -> int:
        self._track()
        return len(self._target)

    def __iter__(self) -> Iterator:
        self._track()
        return iter([self._child(item) for item in self._target])

    def __contains__(self, item) -> bool:
        self._track()
        return to_raw(item) in self._target

    def __bool__(self) -> bool:
        self._track()
        return bool(self._target)

    def index(self, item, *args) -> int:
        self._track()
        return self._target.index(to_raw(item), *args)

    def count(self, item) -> int:
        self._track()
        return self._target.count(to_raw(item))

    # --- Write operations (notify) ---

    def append(self, item) -> None:
        self._target.append(to_raw(item))
        self._notify()

    def extend(self, items) -> None:
        self._target.extend(to_raw(item) for item in items)
        self._notify()

    def insert(self, index: int, item) -> None:
        self._target.insert(index, to_raw(item))
        self._notify()

    def pop(self, index: int = -1):
        result = self._target.pop(index)
        self._notify()
        if _is_wrappable(result):
            return observable(result, runtime=self._runtime)
        return result

    def remove(self, item) -> None:
        self._target.remove(to_raw(item))
        self._notify()

    def clear(self) -> None:
        self._target.clear()
        self._notify()

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._target.sort(key=key, reverse=reverse)
        self._notify()

    def reverse(self) -> None:
        self._target.reverse()
        self._notify()

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            self._target[index] = [to_raw(v) for v in value]
        else:
            self._target[index] = to_raw(value)
        self._notify()

    def __delitem__(self, index) -> None:
        del self._target[index]
        self._notify()

    def __repr__(self) -> str:
        return f"ObservableList({self._target!r})"
