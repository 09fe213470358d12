"""Ripple: fine-grained reactive effects, computed values and watchers for Python."""

from importlib.metadata import version as _version

__version__ = _version("ripple")

from ripple._runtime import Runtime, get_runtime, use_runtime, set_scheduler
from ripple.observable import (
    ITERATE,
    ObservableList,
    ObservableRecord,
    is_observable,
    observable,
    to_raw,
)
from ripple.effect import Effect, register_effect, autorun
from ripple.scheduler import JobQueue, asyncio_defer
from ripple.action import action, transaction
from ripple.computed import Computed, computed
from ripple.watch import watch, WatchHandle, traverse
from ripple.scope import EffectScope, effect_scope
from ripple.errors import (
    EffectDisposedError,
    InvalidWatchSourceError,
    NotObservableError,
    ReactivityError,
    ReadonlyComputedError,
    ScopeStoppedError,
)
# textual NOT auto-imported — opt-in only

__all__ = [
    "Runtime",
    "get_runtime",
    "use_runtime",
    "set_scheduler",
    "ITERATE",
    "ObservableList",
    "ObservableRecord",
    "is_observable",
    "observable",
    "to_raw",
    "Effect",
    "register_effect",
    "autorun",
    "JobQueue",
    "asyncio_defer",
    "action",
    "transaction",
    "Computed",
    "computed",
    "watch",
    "WatchHandle",
    "traverse",
    "EffectScope",
    "effect_scope",
    "EffectDisposedError",
    "InvalidWatchSourceError",
    "NotObservableError",
    "ReactivityError",
    "ReadonlyComputedError",
    "ScopeStoppedError",
]
