# boss_bot/features/announce/reservations.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional


@dataclass(eq=False)
class Reservation:
    """One pending timed delivery. Identity matters: two reservations for
    the same key are never equal."""

    key: str
    target: datetime
    message: str
    task: Optional[asyncio.Task] = None
    cancelled: bool = False
    in_flight: bool = False

    def cancel(self) -> bool:
        # a delivery that already started runs to completion
        if self.cancelled or self.in_flight:
            return False
        self.cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()
        return True

    @property
    def live(self) -> bool:
        return not self.cancelled and self.task is not None and not self.task.done()


class ReservationTable:
    """key -> Reservation, at most one per key.

    Entries only go in through upsert(), which cancels whatever it replaces
    without yielding to the event loop in between.
    """

    def __init__(self) -> None:
        self._slots: Dict[str, Reservation] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def get(self, key: str) -> Optional[Reservation]:
        return self._slots.get(key)

    def upsert(self, reservation: Reservation) -> Optional[Reservation]:
        prior = self._slots.get(reservation.key)
        if prior is not None and prior is not reservation:
            prior.cancel()
        self._slots[reservation.key] = reservation
        return prior if prior is not reservation else None

    def discard(self, key: str) -> Optional[Reservation]:
        cur = self._slots.pop(key, None)
        if cur is not None:
            cur.cancel()
        return cur

    def release(self, reservation: Reservation) -> bool:
        """Drop `reservation` if it is still the entry for its key."""
        if self._slots.get(reservation.key) is reservation:
            del self._slots[reservation.key]
            return True
        return False

    def snapshot(self) -> List[Reservation]:
        return sorted(self._slots.values(), key=lambda r: (r.target, r.key))

    def clear(self) -> None:
        slots, self._slots = self._slots, {}
        for res in slots.values():
            res.cancel()
