"""Observers — durable subscriptions built from one-shot waiting entries.

A waiting entry fires once. A RefObserver turns that into a subscription:
while running it keeps exactly one entry of its own parked on the key, and
every time that entry fires it parks a fresh one before notifying its
listeners. stop() removes the parked entry by its owner token, so the
observer never relies on callback identity to find it.

Listeners receive (value, previous, param, key), where previous is the
value the key held before this write (ABSENT if none).
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Callable, Hashable

from refcentral._anchor import ABSENT

if TYPE_CHECKING:
    from refcentral.registry import RefRegistry

Listener = Callable[[object, object, object, str], object]
Disposer = Callable[[], None]

_listener_ids = itertools.count(1)


class RefObserver:
    """Restartable subscription to every write of one (channel, key)."""

    __slots__ = ("_registry", "_key", "_channel", "_running", "_listeners", "_token")

    def __init__(self, registry: RefRegistry, key: str, channel: Hashable) -> None:
        self._registry = registry
        self._key = key
        self._channel = channel
        self._running = False
        self._listeners: list[tuple[int, Listener | str, object]] = []
        self._token: object | None = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def channel(self) -> Hashable:
        return self._channel

    @property
    def running(self) -> bool:
        return self._running

    @property
    def value(self) -> object:
        """The ref currently stored for this key, running or not."""
        return self._registry.get_ref(self._key, channel=self._channel)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def start(self, replay: bool = False) -> None:
        """Begin signalling listeners on every write. No-op if running.

        With replay=False the first signal is the next write, even when a
        value is already stored. With replay=True a stored value is pushed
        to the listeners right away.
        """
        if self._running:
            return
        self._running = True
        self._token = object()

        current = self.value
        if replay and current is not ABSENT:
            self._signal(current, ABSENT, self._key)
        else:
            self._arm()

    def stop(self) -> None:
        """Stop signalling and drop the parked entry. Idempotent."""
        if not self._running:
            return
        self._running = False
        token, self._token = self._token, None
        self._registry._discard_owned(self._key, self._channel, token)

    def flush(self) -> None:
        """Re-write the current value so running observers fire again."""
        current = self.value
        if current is not ABSENT:
            self._registry.set_ref(self._key, current, self._channel)

    def add_listener(self, callback: Listener | str, param: object = None) -> Disposer:
        """Attach callback(value, previous, param, key). Returns a remover.

        callback may be the key name of a ref holding the handler; each
        signal then reads that ref and calls it (waiting until it is set).
        The remover is idempotent.
        """
        listener_id = next(_listener_ids)
        self._listeners.append((listener_id, callback, param))

        def _remove() -> None:
            self._listeners[:] = [entry for entry in self._listeners if entry[0] != listener_id]

        return _remove

    def _arm(self) -> None:
        self._registry._enqueue_owned(self._key, self._channel, self._on_write, self._token)

    def _on_write(self, value: object, token: object, key: str) -> None:
        if token is not self._token:
            return  # parked by an earlier start()
        # Fired while the store still holds the value being replaced.
        previous = self.value
        self._signal(value, previous, key)

    def _signal(self, value: object, previous: object, key: str) -> None:
        if not self._running:
            return
        self._arm()
        for _listener_id, callback, param in list(self._listeners):
            if isinstance(callback, str):
                self._dispatch_indirect(callback, value, previous, param, key)
            else:
                callback(value, previous, param, key)

    def _dispatch_indirect(
        self, handler_key: str, value: object, previous: object, param: object, key: str
    ) -> None:
        def _call(handler: object, _param: object, _handler_key: str) -> None:
            if callable(handler):
                handler(value, previous, param, key)

        self._registry.get_ref(handler_key, _call, self._channel)

    def __repr__(self) -> str:
        state = "running" if self._running else "stopped"
        return f"RefObserver({self._channel!r}:{self._key!r}, {state}, listeners={len(self._listeners)})"
