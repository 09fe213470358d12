"""Runtime context — the effect stack and everything else that is mutable.

A Runtime owns the stack of running effects (the top is the active effect
that reads subscribe), the dependency store, the transaction depth with its
pending effects, and the optional cross-thread marshal.

The current runtime lives in a contextvar. Effects, observables and computeds
bind the runtime current at their creation, so swapping it with
use_runtime() isolates a whole graph (tests do this for every case).

Thread safety: call set_scheduler() once from the owner thread. After that,
writes from any other thread are marshaled to it, so all track/notify/run
work happens on one thread.
"""

from __future__ import annotations

import contextvars
import logging
import threading
import weakref
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

from ripple.dep import DependencyStore

if TYPE_CHECKING:
    from ripple.effect import Effect
    from ripple.scope import EffectScope

logger = logging.getLogger("ripple.runtime")


class Runtime:
    """Encapsulated reactive state: effect stack, store, batching, marshal."""

    def __init__(self) -> None:
        self.stack: list[Effect] = []
        self.store = DependencyStore(self)
        # id(target) -> weakref to its handle, so wrapping is idempotent.
        self.handles: dict[int, weakref.ref] = {}
        self.scope: EffectScope | None = None
        self.batch_depth = 0
        self.pending: dict[Effect, None] = {}
        self.tracking_paused = 0
        self._marshal: Callable[[Callable[[], None]], None] | None = None
        self._marshal_thread: threading.Thread | None = None

    @property
    def active_effect(self) -> Effect | None:
        """Top of the effect stack, or None outside any run."""
        return self.stack[-1] if self.stack else None

    @contextmanager
    def running(self, effect: Effect) -> Iterator[None]:
        """Push effect for the duration of its run. Popped on failure too."""
        self.stack.append(effect)
        paused, self.tracking_paused = self.tracking_paused, 0
        try:
            yield
        finally:
            self.tracking_paused = paused
            self.stack.pop()

    @contextmanager
    def paused_tracking(self) -> Iterator[None]:
        """Reads inside do not subscribe the active effect."""
        self.tracking_paused += 1
        try:
            yield
        finally:
            self.tracking_paused -= 1

    # ─── Dispatch ────────────────────────────────────────────────────────

    def dispatch(self, effect: Effect) -> None:
        """Run or schedule a triggered effect.

        Inside a transaction plain effects are deferred; computed effects only
        flip a dirty flag, so they are always dispatched at once.
        """
        if not effect.active:
            return
        if self.batch_depth > 0 and not effect.computed:
            self.pending[effect] = None
            return
        if effect.scheduler is not None:
            effect.scheduler(effect)
        else:
            effect.run()

    def begin_batch(self) -> None:
        self.batch_depth += 1

    def end_batch(self) -> None:
        self.batch_depth -= 1
        if self.batch_depth == 0:
            self._flush_pending()

    def _flush_pending(self) -> None:
        """Dispatch every pending effect; re-raise the first failure at the end."""
        error: Exception | None = None
        while self.pending:
            # Snapshot and clear; effects may trigger new ones while running.
            batch = list(self.pending)
            self.pending.clear()
            for effect in batch:
                try:
                    self.dispatch(effect)
                except Exception as exc:
                    if error is None:
                        error = exc
                    else:
                        logger.exception("Effect %r failed at transaction end", effect)
        if error is not None:
            raise error

    # ─── Cross-thread marshal ────────────────────────────────────────────

    def set_thread_marshal(self, marshal: Callable[[Callable[[], None]], None] | None) -> None:
        """Marshal writes from other threads through marshal(fn).

        The calling thread becomes the owner thread.
        """
        self._marshal = marshal
        self._marshal_thread = threading.current_thread() if marshal is not None else None

    def call(self, fn: Callable[..., None], *args) -> None:
        """Call fn now on the owner thread, or hand it to the marshal."""
        if self._marshal is not None and threading.current_thread() is not self._marshal_thread:
            self._marshal(lambda: fn(*args))
        else:
            fn(*args)


_default_runtime = Runtime()

current_runtime: contextvars.ContextVar[Runtime] = contextvars.ContextVar(
    "ripple_runtime", default=_default_runtime
)


def get_runtime() -> Runtime:
    return current_runtime.get()


@contextmanager
def use_runtime(runtime: Runtime | None = None) -> Iterator[Runtime]:
    """Make runtime (or a fresh one) current for the enclosed block."""
    runtime = runtime if runtime is not None else Runtime()
    token = current_runtime.set(runtime)
    try:
        yield runtime
    finally:
        current_runtime.reset(token)


def set_scheduler(scheduler: Callable[[Callable[[], None]], None] | None) -> None:
    """Set the thread marshal of the current runtime.

    Call once from the main/UI thread:
        ripple.set_scheduler(app.call_from_thread)

    After this, any observable write from a background thread is marshaled.
    Main-thread writes remain synchronous.
    """
    get_runtime().set_thread_marshal(scheduler)
