"""Textual integration for refcentral. Opt-in — requires textual.

Guard + NoMatches + thread-marshal are enforced here, not at callsites.
Textual coupling is isolated in this module; the registry stays agnostic.
_paused_apps has a single owner (this module): an id is present exactly
while that app is inside a pause() block.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded listeners during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def listen(app, observer, callback, param=None, *, replay=False):
    """Attach callback to a RefObserver so it can safely touch Textual widgets.

    Skips signals while the app is paused or not running, swallows NoMatches
    from widget queries, and marshals off-thread signals via
    call_from_thread. Starts the observer if it is not running yet.
    Returns the listener remover.
    """
    _main = threading.get_ident()

    def _guarded(value, previous, lparam, key):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value, previous, lparam, key)
        else:
            _safe(value, previous, lparam, key)

    def _safe(value, previous, lparam, key):
        try:
            callback(value, previous, lparam, key)
        except NoMatches:
            pass

    remove = observer.add_listener(_guarded, param)
    observer.start(replay)
    return remove
