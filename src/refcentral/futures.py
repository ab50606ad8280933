"""Future-returning wrappers over the callback protocol.

Each wrapper returns a concurrent.futures.Future that is resolved exactly
once with the delivered value. The futures are never failed: a ref that
never arrives leaves its future pending.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import TYPE_CHECKING, Hashable, Sequence

from refcentral._anchor import ANY

if TYPE_CHECKING:
    from refcentral.registry import RefRegistry


def _resolver(future: Future):
    def _resolve(value, _param, _key) -> None:
        if not future.done():
            future.set_result(value)

    return _resolve


def when_ref(registry: RefRegistry, key: str | Sequence[str], channel: Hashable = ANY) -> Future:
    """Future of the ref (or list of refs), resolved now if already stored."""
    future: Future = Future()
    registry.get_ref(key, _resolver(future), channel)
    return future


def when_next_ref(registry: RefRegistry, key: str, channel: Hashable = ANY) -> Future:
    """Future of the next value written to key."""
    future: Future = Future()
    registry.get_next_ref(key, _resolver(future), channel)
    return future


def when_ref_unset(registry: RefRegistry, key: str, channel: Hashable = ANY) -> Future:
    """Future of the value key held when it is next removed."""
    future: Future = Future()
    registry.get_remove_ref(key, _resolver(future), channel)
    return future
