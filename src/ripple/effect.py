"""Effects — units of reactive computation.

An Effect wraps a function. Each run first leaves every Dep it joined last
time, then runs the function with itself on top of the effect stack, so the
reads made by that run, and only those, subscribe it again. Branches that
stop reading a field therefore stop being triggered by it.

When a dependency changes the effect re-runs synchronously, unless it has a
scheduler, which is handed the effect and decides when to call run().
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from ripple._runtime import Runtime, get_runtime
from ripple.errors import EffectDisposedError

T = TypeVar("T")

logger = logging.getLogger("ripple.effect")

Scheduler = Callable[["Effect"], None]


class Effect:
    """A reactive computation with explicit run/stop."""

    __slots__ = ("fn", "scheduler", "deps", "active", "computed", "on_stop", "_runtime", "__weakref__")

    def __init__(
        self,
        fn: Callable[[], T],
        scheduler: Scheduler | None = None,
        *,
        on_stop: Callable[[], None] | None = None,
        runtime: Runtime | None = None,
    ) -> None:
        self.fn = fn
        self.scheduler = scheduler
        self.deps: list = []
        self.active = True
        # Set by Computed; such effects are dispatched ahead of plain ones.
        self.computed = False
        self.on_stop = on_stop
        self._runtime = runtime if runtime is not None else get_runtime()
        if self._runtime.scope is not None:
            self._runtime.scope.collect(self)

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    def run(self) -> T:
        """Re-run fn, re-tracking its dependencies. Returns fn's result."""
        if not self.active:
            raise EffectDisposedError(f"cannot run stopped effect {self!r}")
        self._cleanup()
        with self._runtime.running(self):
            return self.fn()

    def _cleanup(self) -> None:
        for dep in self.deps:
            dep.remove(self)
        self.deps.clear()

    def stop(self) -> None:
        """Leave every dependency for good. Idempotent."""
        if not self.active:
            return
        self._cleanup()
        self.active = False
        logger.debug("Stopped %r", self)
        if self.on_stop is not None:
            self.on_stop()

    dispose = stop

    def __repr__(self) -> str:
        name = getattr(self.fn, "__name__", type(self.fn).__name__)
        state = "active" if self.active else "stopped"
        return f"Effect({name}, {state}, {len(self.deps)} deps)"


def register_effect(
    fn: Callable[[], T],
    *,
    scheduler: Scheduler | None = None,
    lazy: bool = False,
) -> Effect:
    """Create an effect and, unless lazy, run it once to collect dependencies.

    Returns the Effect (call .run() to re-run, .stop() to dispose).

    Usage:
        state = observable({"count": 0})
        log = []

        e = register_effect(lambda: log.append(state["count"]))
        # log == [0]

        state["count"] = 1
        # log == [0, 1]

        e.stop()
        state["count"] = 2
        # log == [0, 1]
    """
    effect = Effect(fn, scheduler)
    if not lazy:
        effect.run()
    return effect


def autorun(fn: Callable[[], None]) -> Effect:
    """Decorator form of register_effect: run now and on every change.

    Usage:
        @autorun
        def render():
            print(state["count"])
    """
    return register_effect(fn)
