"""Data anchor — plain Python structures that hold all registry state.

One Anchor belongs to one RefRegistry. Behavior lives in the registry,
waiting and observer modules; this module only owns the raw data so a
registry can be torn down by dropping its anchor.
"""

from __future__ import annotations

import itertools
from collections import deque
from typing import Hashable

ANY = 0  # the default channel


class _Absent:
    """Falsy marker for "no value under this key"."""

    __slots__ = ()

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return "ABSENT"


ABSENT = _Absent()

Slot = tuple[Hashable, str]  # (channel, key)


class Anchor:
    """Raw state of a single registry."""

    __slots__ = (
        "stores",
        "waiting",
        "removal_waiting",
        "observers",
        "channel_names",
        "_channel_ids",
    )

    def __init__(self) -> None:
        self.stores: dict[Hashable, dict[str, object]] = {}
        self.waiting: dict[Slot, deque] = {}
        self.removal_waiting: dict[Slot, deque] = {}
        self.observers: dict[Slot, object] = {}
        self.channel_names: dict[str, int] = {}
        # 0 is reserved for ANY
        self._channel_ids = itertools.count(ANY + 1)

    def new_channel_id(self) -> int:
        return next(self._channel_ids)
