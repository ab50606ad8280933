"""Time-boxed refs — deferred removal after a TTL.

Uses threading.Timer (daemon=True), one timer per set_ref call. Timers are
never cancelled by an overwrite or removal of their key: at expiry they
remove whatever is stored there. Only close() cancels, for teardown.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger("refcentral.ttl")


class ExpiryScheduler:
    """Owns the pending expiry timers of one registry."""

    def __init__(self) -> None:
        self._timers: set[threading.Timer] = set()
        self._lock = threading.Lock()
        self._closed = False

    def schedule(self, seconds: float, expire: Callable[[], object], label: str = "") -> None:
        """Run expire() on a daemon timer thread after seconds."""
        if self._closed:
            logger.debug("Scheduler closed, not scheduling expiry of %s", label)
            return

        timer: threading.Timer

        def _fire() -> None:
            with self._lock:
                self._timers.discard(timer)
            logger.debug("Expiring %s", label)
            try:
                expire()
            except Exception:
                logger.exception("Expiry of %s failed", label)

        timer = threading.Timer(seconds, _fire)
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        logger.debug("Scheduled expiry of %s in %.3fs", label, seconds)
        timer.start()

    @property
    def pending(self) -> int:
        """Number of timers that have not fired yet."""
        with self._lock:
            return len(self._timers)

    def close(self) -> None:
        """Cancel every pending timer. Later schedule() calls are ignored."""
        with self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for t in timers:
            t.cancel()
        if timers:
            logger.debug("Cancelled %d pending expiries", len(timers))
