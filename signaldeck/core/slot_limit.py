"""
Slot Limit Simulator
====================

Replays a historical signal log as a trader who can hold at most ``K``
positions open at once would have experienced it.

For each signal, in recorded entry order:

1. every open slot whose settlement time is ``<=`` the signal's entry time
   is released (a position settling at the same instant frees its slot
   before the new entry is considered);
2. if fewer than ``K`` slots remain open the signal is taken and its own
   settlement time occupies a slot;
3. otherwise the signal is dropped.

This is the greedy sequential decision a capacity-bound executor makes,
not a global optimum.  Apply it to the full chronological log *before*
any level / symbol / direction filter: capacity is consumed by every
signal that was actually dispatched.

A taken signal without a settlement time holds its slot until the end of
the replay.
"""

from __future__ import annotations

import heapq
import operator
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from .models import Signal

T = TypeVar("T")

DEFAULT_SLOT_LIMIT = 5

_entry_of = operator.attrgetter("created_at")
_settle_of = operator.attrgetter("settle_at")


class SlotLimitSimulator:
    """Greedy fixed-capacity replay.  ``capacity=None`` disables the cap."""

    def __init__(
        self,
        capacity: Optional[int] = DEFAULT_SLOT_LIMIT,
        entry_key: Callable[[Any], Any] = _entry_of,
        settle_key: Callable[[Any], Any] = _settle_of,
    ):
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be >= 1 or None, got {capacity}")
        self.capacity = capacity
        self._entry_key = entry_key
        self._settle_key = settle_key

    def run(self, signals: Iterable[T]) -> List[T]:
        """Return the admitted signals in their original order.

        Raises:
            ValueError: if entry times decrease along the log.
        """
        if self.capacity is None:
            return list(signals)

        admitted: List[T] = []
        pending: List[Any] = []     # min-heap of open settlement times
        held_forever = 0            # admitted signals with no settlement time
        last_entry = None

        for signal in signals:
            entry = self._entry_key(signal)
            if last_entry is not None and entry < last_entry:
                raise ValueError(
                    f"signal log not ordered by entry time: {entry!r} after {last_entry!r}"
                )
            last_entry = entry

            while pending and pending[0] <= entry:
                heapq.heappop(pending)

            if len(pending) + held_forever < self.capacity:
                admitted.append(signal)
                settle = self._settle_key(signal)
                if settle is None:
                    held_forever += 1
                else:
                    heapq.heappush(pending, settle)

        return admitted


def apply_slot_limit(
    signals: Iterable[Signal], capacity: Optional[int] = DEFAULT_SLOT_LIMIT
) -> List[Signal]:
    """Shorthand for ``SlotLimitSimulator(capacity).run(signals)``."""
    return SlotLimitSimulator(capacity).run(signals)
