"""Dependency store — who reads what.

Maps a target (an observable handle or a computed node) to its fields, and
each field to the Dep of effects that read it during their last run. Links
are bidirectional: an effect keeps the Deps it belongs to so it can leave all
of them before re-running.

The store holds targets weakly. Whoever holds the handle owns the target;
once the handle is collected its entries disappear with it. A target whose
last subscription goes away is dropped from the store.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Hashable, Iterable

if TYPE_CHECKING:
    from ripple._runtime import Runtime
    from ripple.effect import Effect


class Dep:
    """Insertion-ordered set of effects subscribed to one (target, key)."""

    __slots__ = ("key", "effects", "_entries", "_target", "_targets")

    def __init__(
        self,
        key: Hashable,
        entries: dict,
        target: weakref.ref,
        targets: weakref.WeakKeyDictionary,
    ) -> None:
        self.key = key
        self.effects: dict[Effect, None] = {}
        # Weak link to the target, so the Dep never keeps it alive.
        self._entries = entries
        self._target = target
        self._targets = targets

    def add(self, effect: Effect) -> bool:
        if effect in self.effects:
            return False
        self.effects[effect] = None
        return True

    def remove(self, effect: Effect) -> None:
        self.effects.pop(effect, None)
        if self.effects or self._entries.get(self.key) is not self:
            return
        del self._entries[self.key]
        if not self._entries:
            target = self._target()
            if target is not None and self._targets.get(target) is self._entries:
                del self._targets[target]

    def __len__(self) -> int:
        return len(self.effects)

    def __iter__(self):
        return iter(self.effects)

    def __contains__(self, effect) -> bool:
        return effect in self.effects

    def __repr__(self) -> str:
        return f"Dep({self.key!r}, {len(self.effects)} effects)"


class DependencyStore:
    """target -> {key -> Dep}, with track/notify against one Runtime."""

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime
        self._targets: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def track(self, target: object, key: Hashable) -> None:
        """Subscribe the active effect to (target, key). No-op outside a run."""
        runtime = self._runtime
        effect = runtime.active_effect
        if effect is None or runtime.tracking_paused or not effect.active:
            return
        entries = self._targets.get(target)
        if entries is None:
            entries = self._targets[target] = {}
        dep = entries.get(key)
        if dep is None:
            dep = entries[key] = Dep(key, entries, weakref.ref(target), self._targets)
        if dep.add(effect):
            effect.deps.append(dep)

    def notify(self, target: object, key: Hashable) -> None:
        """Dispatch every effect subscribed to (target, key)."""
        self.notify_many(target, (key,))

    trigger = notify

    def notify_many(self, target: object, keys: Iterable[Hashable]) -> None:
        """Dispatch subscribers of several keys, each effect once.

        Computed effects go first so derived values are dirty before any
        plain effect reads them; within each group, first-subscribed first.
        """
        entries = self._targets.get(target)
        if not entries:
            return
        # Snapshot: dispatching re-runs effects, which mutates the Deps.
        snapshot: dict[Effect, None] = {}
        for key in keys:
            dep = entries.get(key)
            if dep is not None:
                snapshot.update(dep.effects)
        if not snapshot:
            return
        active = self._runtime.active_effect
        ordered = [e for e in snapshot if e.computed] + [e for e in snapshot if not e.computed]
        for effect in ordered:
            # An effect writing what it reads must not re-run itself.
            if effect is active:
                continue
            self._runtime.dispatch(effect)

    def subscribers(self, target: object, key: Hashable) -> list[Effect]:
        """Effects currently subscribed to (target, key). For introspection."""
        entries = self._targets.get(target)
        if not entries or key not in entries:
            return []
        return list(entries[key])

    def has_entries(self, target: object) -> bool:
        return bool(self._targets.get(target))

    def __contains__(self, target: object) -> bool:
        return target in self._targets

    def __len__(self) -> int:
        """Number of targets with at least one subscribed field."""
        return len(self._targets)
