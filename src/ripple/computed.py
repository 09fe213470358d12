"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a getter in a lazy effect. Reading .value runs the getter
only when it is dirty and caches the result. When a source changes, the
effect's scheduler does not recompute: it marks the node dirty and notifies
whoever read .value, so the getter runs at most once per change and only
when someone asks.

The node tracks its own readers by hand (track(self, "value")). Without
that, an outer effect reading .value would be invisible to the sources,
because the computed's own effect sits on top of the stack while the
getter runs.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from ripple._runtime import get_runtime
from ripple.effect import Effect
from ripple.errors import ReadonlyComputedError

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_getter", "_setter", "_effect", "_value", "_dirty", "_runtime", "__weakref__")

    def __init__(self, getter: Callable[[], T], setter: Callable[[T], None] | None = None) -> None:
        self._getter = getter
        self._setter = setter
        self._value = _UNSET
        self._dirty = True
        self._runtime = get_runtime()
        self._effect = Effect(getter, self._invalidate, runtime=self._runtime)
        self._effect.computed = True

    def _invalidate(self, effect: Effect) -> None:
        """Scheduler of the inner effect: mark dirty and tell our readers."""
        if not self._dirty:
            self._dirty = True
            self._runtime.store.notify(self, "value")

    @property
    def value(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        self._runtime.store.track(self, "value")
        if not self._effect.active:
            # Stopped: no cache to invalidate, evaluate every time.
            return self._getter()
        if self._dirty:
            self._value = self._effect.run()
            self._dirty = False
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        if self._setter is None:
            raise ReadonlyComputedError(f"computed {self._name} has no setter")
        self._setter(new_value)

    def get(self) -> T:
        return self.value

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def effect(self) -> Effect:
        return self._effect

    @property
    def _name(self) -> str:
        return getattr(self._getter, "__name__", type(self._getter).__name__)

    def stop(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert."""
        self._effect.stop()
        self._dirty = True
        self._value = _UNSET

    dispose = stop

    def __repr__(self) -> str:
        if not self._effect.active:
            state = "stopped"
        elif self._dirty:
            state = "dirty"
        else:
            state = f"cached={self._value!r}"
        return f"Computed({self._name}, {state})"


def computed(getter: Callable[[], T], setter: Callable[[T], None] | None = None) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        state = observable({"count": 1})

        @computed
        def doubled():
            return state["count"] * 2

        doubled.value  # 2
        state["count"] = 5
        doubled.value  # 10
    """
    return Computed(getter, setter)
