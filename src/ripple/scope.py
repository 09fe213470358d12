"""Effect scopes — stop a group of effects together.

Effects, computeds and watchers created while a scope is active are
collected by it; stop() disposes all of them. Owners with a lifecycle (a
view, a screen, a session) create one scope and stop it on teardown instead
of keeping every handle.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from ripple._runtime import get_runtime
from ripple.errors import ScopeStoppedError

if TYPE_CHECKING:
    from ripple.effect import Effect

T = TypeVar("T")

logger = logging.getLogger("ripple.scope")


class EffectScope:
    """Collects effects created inside it. Nested scopes belong to the parent."""

    def __init__(self, *, detached: bool = False) -> None:
        self._runtime = get_runtime()
        self._effects: list[Effect] = []
        self._children: list[EffectScope] = []
        self._previous: list[EffectScope | None] = []
        self.active = True
        parent = None if detached else self._runtime.scope
        if parent is not None:
            parent._children.append(self)

    def collect(self, effect: Effect) -> None:
        self._effects.append(effect)

    def __enter__(self) -> EffectScope:
        if not self.active:
            raise ScopeStoppedError("cannot enter a stopped effect scope")
        self._previous.append(self._runtime.scope)
        self._runtime.scope = self
        return self

    def __exit__(self, *exc_info) -> None:
        self._runtime.scope = self._previous.pop()

    def run(self, fn: Callable[[], T]) -> T:
        """Call fn with this scope active and return its result."""
        with self:
            return fn()

    def stop(self) -> None:
        """Stop every collected effect and child scope. Idempotent."""
        if not self.active:
            return
        for effect in self._effects:
            effect.stop()
        for child in self._children:
            child.stop()
        logger.debug(
            "Stopped scope: %d effects, %d child scopes",
            len(self._effects), len(self._children),
        )
        self._effects.clear()
        self._children.clear()
        self.active = False

    dispose = stop

    def __len__(self) -> int:
        return len(self._effects)

    def __repr__(self) -> str:
        state = "active" if self.active else "stopped"
        return f"EffectScope({len(self._effects)} effects, {state})"


def effect_scope(*, detached: bool = False) -> EffectScope:
    """Create a scope. Use it as a context manager or via scope.run(fn).

    Usage:
        scope = effect_scope()
        with scope:
            register_effect(render)
            watch(lambda: state["page"], on_page)

        scope.stop()  # both stopped
    """
    return EffectScope(detached=detached)
