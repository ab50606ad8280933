"""RefChannel — the registry API bound to one channel.

Components that share a channel share refs; each open_channel() call
without a name gets a channel of its own:

    ui = registry.open_channel("ui")
    ui.get_ref("theme", lambda theme, _param, _key: apply(theme))
    ui.set_ref("theme", "dark")        # apply("dark")
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import TYPE_CHECKING, Hashable, Sequence

from refcentral import futures
from refcentral.observer import Disposer, Listener, RefObserver
from refcentral.proxy import RefProxy, create_proxy

if TYPE_CHECKING:
    from refcentral.registry import Callback, RefRegistry


class RefChannel:
    """Facade over a RefRegistry with the channel argument filled in."""

    def __init__(self, registry: RefRegistry, channel: Hashable) -> None:
        self._registry = registry
        self._channel = channel
        # Plain dicts cannot be weakly referenced, so cached proxies (and
        # their targets) live until clear_proxies() or the channel goes away.
        self._proxies: dict[int, tuple[dict, RefProxy]] = {}

    @property
    def channel(self) -> Hashable:
        return self._channel

    @property
    def registry(self) -> RefRegistry:
        return self._registry

    def get_ref(
        self, key: str | Sequence[str], callback: Callback | None = None, param: object = None
    ) -> object:
        return self._registry.get_ref(key, callback, self._channel, param)

    def get_next_ref(self, key: str, callback: Callback, param: object = None) -> None:
        self._registry.get_next_ref(key, callback, self._channel, param)

    def get_remove_ref(self, key: str, callback: Callback, param: object = None) -> None:
        self._registry.get_remove_ref(key, callback, self._channel, param)

    def set_ref(self, key: str, value: object, ttl: float | None = None) -> object:
        return self._registry.set_ref(key, value, self._channel, ttl)

    def unset_ref(self, key: str) -> object:
        return self._registry.unset_ref(key, self._channel)

    def unset_all_refs(self) -> None:
        self._registry.unset_all_refs(self._channel)

    def observe_ref(self, key: str) -> RefObserver:
        return self._registry.observe_ref(key, self._channel)

    def listen_ref(self, key: str, callback: Listener, param: object = None) -> Disposer:
        """Call callback(value, previous, param, key) on every later write of key.

        Returns a function that removes the listener.
        """
        observer = self.observe_ref(key)
        remove = observer.add_listener(callback, param)
        observer.start()
        return remove

    def when_ref(self, key: str | Sequence[str]) -> Future:
        return futures.when_ref(self._registry, key, self._channel)

    def when_next_ref(self, key: str) -> Future:
        return futures.when_next_ref(self._registry, key, self._channel)

    def when_ref_unset(self, key: str) -> Future:
        return futures.when_ref_unset(self._registry, key, self._channel)

    def create_proxy(self, target: dict[str, object] | None = None) -> RefProxy:
        return create_proxy(self, target)

    def cached_proxy(self, target: dict[str, object]) -> RefProxy | None:
        """The proxy already made for this exact target dict, if any."""
        entry = self._proxies.get(id(target))
        if entry is not None and entry[0] is target:
            return entry[1]
        return None

    def cache_proxy(self, target: dict[str, object], proxy: RefProxy) -> None:
        self._proxies[id(target)] = (target, proxy)

    def clear_proxies(self) -> int:
        """Forget cached proxies so their targets can be freed. Returns the count."""
        count = len(self._proxies)
        self._proxies.clear()
        return count

    def __repr__(self) -> str:
        return f"RefChannel({self._channel!r})"
