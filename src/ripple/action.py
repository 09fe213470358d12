"""Transactions — one effect run per burst of synchronous writes.

Inside `with transaction()` (or a function decorated with @action) a write
does not run the effects it triggers. It parks them in the runtime's pending
set, keyed by effect, so an effect hit by five writes is parked once. When
the outermost transaction exits, normally or by exception, each parked effect
is dispatched once in the order it was first parked and sees the final state.

Computed values are the exception: their invalidation only flips a dirty
flag, so it happens at write time and a computed read inside the
transaction is already up to date.

Unlike JobQueue, nothing is deferred past the end of the block.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from ripple._runtime import get_runtime

P = ParamSpec("P")
R = TypeVar("R")


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Run fn inside a transaction; return its result.

    Usage:
        cart = observable({"items": 0, "total": 0})

        @action
        def add_item(price):
            cart["items"] += 1
            cart["total"] += price
            # a summary effect reading both fields re-runs once, after return
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with transaction():
            return fn(*args, **kwargs)

    return wrapper


@contextmanager
def transaction() -> Iterator[None]:
    """Park triggered effects until the outermost block exits.

    Nests freely: only the outermost exit dispatches. If several parked
    effects fail, all of them still run and the first error is raised.
    """
    runtime = get_runtime()
    runtime.begin_batch()
    try:
        yield
    finally:
        runtime.end_batch()
