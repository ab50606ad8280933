"""Waiting queues — the one-shot callback protocol behind every read.

A waiting entry is a (callback, param, owner) triple parked on a
(channel, key) slot. Entries fire in FIFO order and are consumed as they
fire. Draining detaches the queue first: entries enqueued by callbacks
running during the drain land in a fresh queue and wait for the next event.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, NamedTuple

from refcentral._anchor import Slot

logger = logging.getLogger("refcentral.waiting")


class WaitingEntry(NamedTuple):
    callback: Callable
    param: object
    owner: object = None  # token of the observer that queued it, if any


def enqueue(
    queues: dict[Slot, deque],
    slot: Slot,
    callback: Callable,
    param: object = None,
    owner: object = None,
) -> None:
    """Park callback on slot, behind everything already waiting there."""
    queue = queues.get(slot)
    if queue is None:
        queue = queues[slot] = deque()
    queue.append(WaitingEntry(callback, param, owner))


def drain(queues: dict[Slot, deque], slot: Slot, value: object, key: str) -> int:
    """Fire and discard everything waiting on slot. Returns the count fired.

    A raising callback does not stop the drain: every entry still fires
    once, then the first error is re-raised. Later errors are logged.
    """
    queue = queues.pop(slot, None)
    if not queue:
        return 0
    fired = 0
    error: Exception | None = None
    while queue:
        entry = queue.popleft()
        fired += 1
        try:
            entry.callback(value, entry.param, key)
        except Exception as exc:
            if error is None:
                error = exc
            else:
                logger.exception("Waiter on %r failed after an earlier waiter", slot)
    if error is not None:
        raise error
    return fired


def discard_owned(queues: dict[Slot, deque], slot: Slot, owner: object) -> int:
    """Drop every entry on slot queued by owner. Returns the count removed."""
    queue = queues.get(slot)
    if not queue:
        return 0
    kept = deque(entry for entry in queue if entry.owner is not owner)
    removed = len(queue) - len(kept)
    if kept:
        queues[slot] = kept
    else:
        del queues[slot]
    return removed


def pending_count(queues: dict[Slot, deque], slot: Slot) -> int:
    """Number of entries waiting on slot. Useful for testing."""
    queue = queues.get(slot)
    return len(queue) if queue else 0
