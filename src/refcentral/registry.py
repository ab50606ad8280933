"""RefRegistry — keyed refs with retrieval-before-availability.

A ref is any value stored under a (channel, key) pair. Readers may ask for a
ref before anyone provides it: the callback is parked on the key's waiting
queue and fires on the next set_ref. Writers drain that queue before the new
value is committed, so a waiter never misses the write it waited for.

All state lives in the registry's _anchor.Anchor. Every operation runs
synchronously on the calling thread. Call set_scheduler() once from the
owning thread to have writes from other threads (TTL expiry included)
marshaled back onto it. Without one, a registry lock keeps TTL timer
threads from mutating the store while another thread is draining.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Hashable, Sequence

from refcentral import _waiting
from refcentral._anchor import ABSENT, ANY, Anchor
from refcentral.observer import RefObserver
from refcentral.ttl import ExpiryScheduler

if TYPE_CHECKING:
    from refcentral.channel import RefChannel

logger = logging.getLogger("refcentral.registry")

Callback = Callable[[object, object, str], object]


class RefRegistry:
    """Process-local ref store, waiting queues, observers and TTL timers."""

    def __init__(self) -> None:
        self._anchor = Anchor()
        self._expiry = ExpiryScheduler()
        # Serializes store and queue mutation with TTL timer threads.
        self._lock = threading.RLock()
        self._scheduler: Callable[[Callable[[], object]], object] | None = None
        self._scheduler_thread: threading.Thread | None = None

    # ─── Channels ────────────────────────────────────────────────────────────

    def get_map(self, channel: Hashable = ANY) -> dict[str, object]:
        """The key -> value store of channel, created on first request."""
        store = self._anchor.stores.get(channel)
        if store is None:
            store = self._anchor.stores[channel] = {}
        return store

    def create_channel(self, name: str) -> int:
        """Allocate an id for a named channel. Same name, same id."""
        channel = self._anchor.channel_names.get(name)
        if channel is None:
            channel = self._anchor.channel_names[name] = self._anchor.new_channel_id()
            logger.debug("Allocated channel %r -> %d", name, channel)
        return channel

    def open_channel(
        self,
        name: str | None = None,
        init: Callable[[RefChannel], object] | None = None,
    ) -> RefChannel:
        """Return a RefChannel bound to a named or fresh anonymous channel.

        init(api) is called once with the new facade, if given.
        """
        from refcentral.channel import RefChannel

        channel = self._anchor.new_channel_id() if name is None else self.create_channel(name)
        api = RefChannel(self, channel)
        if init is not None:
            init(api)
        return api

    # ─── Reads ───────────────────────────────────────────────────────────────

    def get_ref(
        self,
        key: str | Sequence[str],
        callback: Callback | None = None,
        channel: Hashable = ANY,
        param: object = None,
    ) -> object:
        """Read a ref now, or have callback(value, param, key) fire once it exists.

        If the ref is present, callback fires synchronously and the value is
        returned. Otherwise ABSENT is returned and callback (if any) waits for
        the next set_ref of this key.

        A list or tuple of keys is an AND-join: callback(values, param, keys)
        fires once, after every key resolved, with values aligned to keys.
        """
        if not callable(callback):
            callback = None
        if isinstance(key, (list, tuple)):
            return self._get_all(key, callback, channel, param)

        with self._lock:
            store = self.get_map(channel)
            if key not in store:
                if callback is not None:
                    _waiting.enqueue(self._anchor.waiting, (channel, key), callback, param)
                return ABSENT
            value = store[key]
        if callback is not None:
            callback(value, param, key)
        return value

    def _get_all(
        self,
        keys: Sequence[str],
        callback: Callback | None,
        channel: Hashable,
        param: object,
    ) -> object:
        values: list[object] = [ABSENT] * len(keys)
        missing: list[int] = []
        with self._lock:
            store = self.get_map(channel)
            for index, key in enumerate(keys):
                if key in store:
                    values[index] = store[key]
                else:
                    missing.append(index)
            if missing and callback is not None:
                self._join_missing(keys, missing, values, callback, channel, param)

        if not missing:
            if callback is not None:
                callback(values, param, keys)
            return values

        return ABSENT

    def _join_missing(
        self,
        keys: Sequence[str],
        missing: list[int],
        values: list[object],
        callback: Callback,
        channel: Hashable,
        param: object,
    ) -> None:
        remaining = len(missing)

        def _join(value: object, index: int, _key: str) -> None:
            nonlocal remaining
            values[index] = value
            remaining -= 1
            if remaining == 0:
                callback(list(values), param, keys)

        for index in missing:
            _waiting.enqueue(self._anchor.waiting, (channel, keys[index]), _join, index)

    def get_next_ref(
        self,
        key: str,
        callback: Callback,
        channel: Hashable = ANY,
        param: object = None,
    ) -> None:
        """Have callback fire on the next set_ref of key, ignoring any current value."""
        if not callable(callback):
            return
        with self._lock:
            self.get_map(channel)
            _waiting.enqueue(self._anchor.waiting, (channel, key), callback, param)

    def get_remove_ref(
        self,
        key: str,
        callback: Callback,
        channel: Hashable = ANY,
        param: object = None,
    ) -> None:
        """Have callback(value, param, key) fire once, on the next removal of key."""
        if not callable(callback):
            return
        with self._lock:
            self.get_map(channel)
            _waiting.enqueue(self._anchor.removal_waiting, (channel, key), callback, param)

    # ─── Writes ──────────────────────────────────────────────────────────────

    def set_ref(
        self,
        key: str,
        value: object,
        channel: Hashable = ANY,
        ttl: float | None = None,
    ) -> object:
        """Store value under key, firing everything waiting for it first.

        With a positive ttl (seconds) the key is removed again once it
        elapses, whatever it holds by then. Auto-marshals from other threads.
        """
        if self._is_foreign_thread():
            self._scheduler(lambda: self._set_direct(key, value, channel, ttl))
        else:
            self._set_direct(key, value, channel, ttl)
        return value

    def _set_direct(self, key: str, value: object, channel: Hashable, ttl: float | None = None) -> None:
        with self._lock:
            store = self.get_map(channel)
            try:
                _waiting.drain(self._anchor.waiting, (channel, key), value, key)
            finally:
                # Committed even when a waiter raised; the timer starts after it.
                store[key] = value
                if ttl is not None and ttl > 0:
                    self._expiry.schedule(
                        ttl,
                        lambda: self.unset_ref(key, channel),
                        label=f"{channel!r}:{key!r}",
                    )

    def unset_ref(self, key: str, channel: Hashable = ANY) -> object:
        """Remove key and fire its removal waiters. Returns the removed value.

        Returns ABSENT if nothing was stored, or if the call was marshaled
        to the scheduler thread (the removal then happens there).
        """
        if self._is_foreign_thread():
            self._scheduler(lambda: self._unset_direct(key, channel))
            return ABSENT
        return self._unset_direct(key, channel)

    def _unset_direct(self, key: str, channel: Hashable) -> object:
        with self._lock:
            store = self.get_map(channel)
            if key not in store:
                return ABSENT
            value = store.pop(key)
            _waiting.drain(self._anchor.removal_waiting, (channel, key), value, key)
        return value

    def unset_all_refs(self, channel: Hashable = ANY) -> None:
        """Remove every key of channel, firing removal waiters for each."""
        if self._is_foreign_thread():
            self._scheduler(lambda: self.unset_all_refs(channel))
            return
        with self._lock:
            store = self.get_map(channel)
            for key in list(store):
                self._unset_direct(key, channel)
            store.clear()

    # ─── Observers ───────────────────────────────────────────────────────────

    def observe_ref(self, key: str, channel: Hashable = ANY) -> RefObserver:
        """The observer of (channel, key). Repeated calls return the same one."""
        slot = (channel, key)
        observer = self._anchor.observers.get(slot)
        if observer is None:
            observer = self._anchor.observers[slot] = RefObserver(self, key, channel)
        return observer

    def _enqueue_owned(self, key: str, channel: Hashable, callback: Callback, owner: object) -> None:
        with self._lock:
            self.get_map(channel)
            _waiting.enqueue(self._anchor.waiting, (channel, key), callback, owner, owner)

    def _discard_owned(self, key: str, channel: Hashable, owner: object) -> int:
        with self._lock:
            return _waiting.discard_owned(self._anchor.waiting, (channel, key), owner)

    # ─── Introspection ───────────────────────────────────────────────────────

    def waiting_count(self, key: str, channel: Hashable = ANY) -> int:
        """Callbacks waiting for the next write of key. Useful for testing."""
        return _waiting.pending_count(self._anchor.waiting, (channel, key))

    def removal_waiting_count(self, key: str, channel: Hashable = ANY) -> int:
        """Callbacks waiting for the next removal of key. Useful for testing."""
        return _waiting.pending_count(self._anchor.removal_waiting, (channel, key))

    @property
    def pending_expiries(self) -> int:
        return self._expiry.pending

    # ─── Thread marshaling & lifecycle ──────────────────────────────────────

    def set_scheduler(self, scheduler: Callable[[Callable[[], object]], object] | None) -> None:
        """Set the scheduler for writes arriving from other threads.

        Call once from the owning thread:
            registry.set_scheduler(app.call_from_thread)

        After this, set_ref/unset_ref from any other thread (TTL timers
        included) are handed to scheduler. Owner-thread calls stay synchronous.
        Pass None to go back to running every call inline.
        """
        self._scheduler = scheduler
        self._scheduler_thread = threading.current_thread() if scheduler is not None else None

    def _is_foreign_thread(self) -> bool:
        return self._scheduler is not None and threading.current_thread() != self._scheduler_thread

    def close(self) -> None:
        """Cancel pending TTL timers. Stored refs are left untouched."""
        self._expiry.close()

    def __repr__(self) -> str:
        refs = sum(len(store) for store in self._anchor.stores.values())
        return f"RefRegistry(channels={len(self._anchor.stores)}, refs={refs})"
