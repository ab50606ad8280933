"""RefProxy — attribute/item access over one channel of refs.

    p = channel.create_proxy({"width": 80})
    p.height = 24            # set_ref("height", 24)
    p["width"]               # get_ref("width") -> 80
    "depth" in p             # False
    del p.height             # unset_ref("height")

The proxy keeps a target dict of the keys written through it. Reads always
go to the registry; deletes only succeed for keys the target holds.
Any attribute name is a ref key, so the proxy exposes no public methods.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from refcentral._anchor import ABSENT

if TYPE_CHECKING:
    from refcentral.channel import RefChannel


class RefProxy:
    """Attribute and item access translated into registry calls."""

    __slots__ = ("_api", "_target")

    def __init__(self, api: RefChannel, target: dict[str, object]) -> None:
        object.__setattr__(self, "_api", api)
        object.__setattr__(self, "_target", target)

    # --- Item access ---

    def __getitem__(self, key: str) -> object:
        return self._api.get_ref(key)

    def __setitem__(self, key: str, value: object) -> None:
        self._target[key] = self._api.set_ref(key, value)

    def __delitem__(self, key: str) -> None:
        if key not in self._target:
            raise KeyError(key)
        del self._target[key]
        self._api.unset_ref(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._api.get_ref(key) is not ABSENT

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._target))

    def __len__(self) -> int:
        return len(self._target)

    # --- Attribute access ---

    def __getattr__(self, name: str) -> object:
        if name.startswith("__"):
            raise AttributeError(name)
        return self[name]

    def __setattr__(self, name: str, value: object) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(f"no ref {name!r} to delete") from None

    def __repr__(self) -> str:
        return f"RefProxy(channel={self._api.channel!r}, keys={list(self._target)!r})"


def create_proxy(api: RefChannel, target: dict[str, object] | None = None) -> RefProxy:
    """Wrap target in a RefProxy, first writing each of its items as a ref.

    The same target dict always yields the same proxy until the channel's
    clear_proxies() is called; no target yields a fresh, uncached proxy.
    """
    if target is None:
        return RefProxy(api, {})
    for key, value in list(target.items()):
        api.set_ref(key, value)

    cached = api.cached_proxy(target)
    if cached is not None:
        return cached

    proxy = RefProxy(api, target)
    api.cache_proxy(target, proxy)
    return proxy
