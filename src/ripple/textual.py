"""Textual integration for ripple. Opt-in — requires textual.

Guard + NoMatches + thread-marshal are enforced here, not at callsites, so
the core stays agnostic of the UI toolkit. Pause state has a single owner
(this module): an app id is present exactly while inside pause(app).
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from ripple import register_effect as _register_effect, watch as _watch

logger = logging.getLogger("ripple.textual")

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def autorun(app, fn):
    """register_effect() that safely bridges to Textual widgets.

    The first run always happens to collect dependencies. Later triggers are
    skipped while the app is paused or not running (dependencies are kept),
    run through call_from_thread when they come from another thread, and
    ignore NoMatches from widget queries.
    """
    _main = threading.get_ident()

    def _safe():
        try:
            fn()
        except NoMatches:
            logger.debug("Widget query missed in %r", fn)

    def _guarded(effect):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(effect.run)
        else:
            effect.run()

    return _register_effect(_safe, scheduler=_guarded)


def watch(app, source, callback, *, immediate=False, deep=None):
    """watch() that safely bridges to Textual widgets.

    Guards against firing during pause/not-running, catches NoMatches
    from widget queries, and marshals cross-thread calls via call_from_thread.
    """
    _main = threading.get_ident()

    def _safe(new, old):
        try:
            callback(new, old)
        except NoMatches:
            logger.debug("Widget query missed in %r", callback)

    def _guarded(new, old):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, new, old)
        else:
            _safe(new, old)

    return _watch(source, _guarded, immediate=immediate, deep=deep)
