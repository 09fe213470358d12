"""Ripple error hierarchy.

All ripple-specific errors inherit from ReactivityError for easy catching.
Untracked writes and an effect's writes to its own dependencies are not
errors and never raise.
"""


class ReactivityError(Exception):
    """Base error for all ripple operations."""


class EffectDisposedError(ReactivityError):
    """run() was called on an effect that has been stopped."""


class InvalidWatchSourceError(ReactivityError, TypeError):
    """watch() source is neither an observable, a computed, nor a callable."""


class NotObservableError(ReactivityError, TypeError):
    """Value cannot be wrapped as an observable record or list."""


class ReadonlyComputedError(ReactivityError, AttributeError):
    """Write to a computed value that has no setter."""


class ScopeStoppedError(ReactivityError):
    """An effect scope was entered after it was stopped."""
