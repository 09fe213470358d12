"""watch() — call back with (new, old) when a source changes.

A watcher is an effect whose body reads the source and whose scheduler
re-runs it to get the new value, then hands (new, old) to the callback.

Sources:
- a callable getter, tracked as is;
- an observable record or list, traversed deeply so every nested field is
  a dependency (the callback fires on any nested write);
- a Computed, whose .value is read.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from ripple.computed import Computed
from ripple.effect import Effect
from ripple.errors import InvalidWatchSourceError
from ripple.observable import ObservableList, ObservableRecord, _changed
from ripple.scheduler import JobQueue

T = TypeVar("T")

_INITIAL = object()


def traverse(value: Any, seen: set[int] | None = None) -> Any:
    """Read every field of value, recursively, to subscribe to all of them.

    Cycle-safe: each handle is visited once. Returns value unchanged.
    """
    if seen is None:
        seen = set()
    if isinstance(value, ObservableRecord):
        if id(value) in seen:
            return value
        seen.add(id(value))
        for field in value.fields():
            traverse(value.read(field), seen)
    elif isinstance(value, ObservableList):
        if id(value) in seen:
            return value
        seen.add(id(value))
        for item in value:
            traverse(item, seen)
    return value


class WatchHandle:
    """Disposable handle for a watcher. Calling it stops the watcher."""

    __slots__ = ("_effect", "_callback", "_old", "_deep", "_dedupe", "_queue")

    def __init__(
        self,
        getter: Callable[[], Any],
        callback: Callable[[Any, Any], None],
        *,
        deep: bool,
        dedupe: bool,
        queue: JobQueue | None,
    ) -> None:
        self._callback = callback
        self._old = _INITIAL
        self._deep = deep
        self._dedupe = dedupe
        self._queue = queue
        self._effect = Effect(getter, self._schedule, on_stop=self._on_stop)

    def _schedule(self, effect: Effect) -> None:
        if self._queue is not None:
            self._queue.enqueue(self._job)
        else:
            self._job()

    def _job(self) -> None:
        if not self._effect.active:
            return
        new = self._effect.run()
        if self._old is _INITIAL or self._deep or not self._dedupe or _changed(self._old, new):
            old = None if self._old is _INITIAL else self._old
            self._callback(new, old)
            self._old = new

    def _on_stop(self) -> None:
        if self._queue is not None:
            self._queue.discard(self._job)

    @property
    def stopped(self) -> bool:
        return not self._effect.active

    @property
    def value(self) -> Any:
        """Last value delivered (or the baseline); None before any run."""
        return None if self._old is _INITIAL else self._old

    def stop(self) -> None:
        """Stop watching. Pending queued deliveries are dropped."""
        self._effect.stop()

    dispose = stop

    def __call__(self) -> None:
        self.stop()

    def __repr__(self) -> str:
        state = "stopped" if self.stopped else "active"
        return f"WatchHandle({state})"


def watch(
    source: Any,
    callback: Callable[[T, T | None], None],
    *,
    immediate: bool = False,
    deep: bool | None = None,
    dedupe: bool = True,
    queue: JobQueue | None = None,
) -> WatchHandle:
    """Call callback(new, old) whenever source changes.

    The initial run only records the baseline value; with immediate=True the
    callback also fires at once with old=None. With a queue, deliveries are
    batched through it instead of running synchronously.

    By default a re-run whose result equals the previous one (and is not a
    deep watch) is not delivered; dedupe=False delivers after every re-run.

    Usage:
        state = observable({"count": 0})
        log = []

        handle = watch(lambda: state["count"], lambda new, old: log.append((new, old)))
        state["count"] = 1
        # log == [(1, 0)]

        handle.stop()
    """
    if isinstance(source, (ObservableRecord, ObservableList)):
        getter = lambda: traverse(source)  # noqa: E731
        deep = True
    elif isinstance(source, Computed):
        getter = lambda: source.value  # noqa: E731
    elif callable(source):
        getter = source
    else:
        raise InvalidWatchSourceError(
            f"watch source must be an observable, a computed, or a callable, "
            f"got {type(source).__name__}"
        )

    if deep and not isinstance(source, (ObservableRecord, ObservableList)):
        base_getter = getter
        getter = lambda: traverse(base_getter())  # noqa: E731

    handle = WatchHandle(getter, callback, deep=bool(deep), dedupe=dedupe, queue=queue)
    if immediate:
        handle._job()
    else:
        handle._old = handle._effect.run()
    return handle
