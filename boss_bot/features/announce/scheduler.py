# boss_bot/features/announce/scheduler.py
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol
from zoneinfo import ZoneInfo

from ...utils.time_helpers import millis, parse_local, to_utc, utcnow
from .reservations import Reservation, ReservationTable
from .sink import DeliveryError

log = logging.getLogger(__name__)

MAX_FUTURE = timedelta(hours=48)
LATE_GRACE = timedelta(minutes=3)
RESCHEDULE_THRESHOLD = timedelta(seconds=1)


class Sink(Protocol):
    async def send(self, text: str) -> None: ...


# ---- Feed items ----
@dataclass(frozen=True)
class Announcement:
    key: str
    notify_at: str
    message: str

    @classmethod
    def from_payload(cls, raw: Any) -> Optional["Announcement"]:
        """Wire shape: {"race_key", "announceAtISO", "message"}; None if unusable."""
        if isinstance(raw, Announcement):
            fields = (raw.key, raw.notify_at, raw.message)
        elif isinstance(raw, dict):
            fields = (raw.get("race_key"), raw.get("announceAtISO"), raw.get("message"))
        else:
            return None
        key, notify_at, message = fields
        if not key or not notify_at or not message:
            return None
        msg = str(message).strip()
        if not msg:
            return None
        return cls(key=str(key), notify_at=str(notify_at), message=msg)


class Action(enum.Enum):
    DROPPED = "dropped"
    UNCHANGED = "unchanged"
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    SENT_NOW = "sent-now"
    FAILED = "failed"


@dataclass
class PlanStats:
    fetched: int = 0
    scheduled: int = 0
    rescheduled: int = 0
    sent_now: int = 0
    unchanged: int = 0
    dropped: int = 0
    failed: int = 0
    active: int = 0
    actions: Dict[str, Action] = field(default_factory=dict)

    def count(self, key: Optional[str], action: Action) -> None:
        attr = {
            Action.DROPPED: "dropped",
            Action.UNCHANGED: "unchanged",
            Action.SCHEDULED: "scheduled",
            Action.RESCHEDULED: "rescheduled",
            Action.SENT_NOW: "sent_now",
            Action.FAILED: "failed",
        }[action]
        setattr(self, attr, getattr(self, attr) + 1)
        if key is not None:
            self.actions[key] = action

    def summary(self) -> str:
        return (
            f"fetched={self.fetched} scheduled={self.scheduled} rescheduled={self.rescheduled} "
            f"send-now={self.sent_now} unchanged={self.unchanged} dropped={self.dropped} "
            f"failed={self.failed} active={self.active}"
        )


# ---- Scheduler ----
class Scheduler:
    """
    Keeps one pending delivery per announcement key in line with the feed.

    reconcile() is the only way reservations are created or replaced; the
    timer task of a reservation removes it again once its delivery attempt
    finishes, whatever the outcome.
    """

    def __init__(
        self,
        sink: Sink,
        zone: ZoneInfo,
        *,
        max_future: timedelta = MAX_FUTURE,
        late_grace: timedelta = LATE_GRACE,
        reschedule_threshold: timedelta = RESCHEDULE_THRESHOLD,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.sink = sink
        self.zone = zone
        self.max_future = max_future
        self.late_grace = late_grace
        self.reschedule_threshold = reschedule_threshold
        self._clock = clock or utcnow
        self._sleep = sleep
        self._table = ReservationTable()
        self._delivered: Dict[str, datetime] = {}  # key -> target last delivered
        self._lock = asyncio.Lock()
        self.last_stats: Optional[PlanStats] = None

    # -- read side --
    def now(self) -> datetime:
        """Current instant, in UTC."""
        return to_utc(self._clock())

    def local(self, dt: datetime) -> datetime:
        return dt.astimezone(self.zone)

    @property
    def active(self) -> int:
        return len(self._table)

    def reservations(self) -> List[Reservation]:
        return self._table.snapshot()

    def get(self, key: str) -> Optional[Reservation]:
        return self._table.get(key)

    # -- reconciliation --
    async def reconcile(self, items: Iterable[Any], now: Optional[datetime] = None) -> PlanStats:
        async with self._lock:
            now = to_utc(now) if now is not None else self.now()
            items = list(items)
            stats = PlanStats(fetched=len(items))
            self._forget_delivered(now)
            for raw in items:
                try:
                    key, action = await self._plan_one(raw, now)
                except Exception:
                    log.exception("[plan] item failed: %r", raw)
                    key, action = None, Action.FAILED
                stats.count(key, action)
            stats.active = len(self._table)
            self.last_stats = stats
            return stats

    async def _plan_one(self, raw: Any, now: datetime):
        ann = Announcement.from_payload(raw)
        if ann is None:
            log.debug("[skip] malformed item: %r", raw)
            return None, Action.DROPPED

        key = ann.key
        target = parse_local(ann.notify_at, self.zone)
        if target is None:
            log.debug("[skip] %s: unparseable time %r", key, ann.notify_at)
            return key, Action.DROPPED

        diff = target - now
        if diff > self.max_future:
            return key, Action.DROPPED

        if diff <= timedelta(0):
            return key, await self._send_late(ann, target, -diff)

        existing = self._table.get(key)
        if existing is not None and self._same_time(existing.target, target):
            return key, Action.UNCHANGED
        if existing is None and self._was_delivered(key, target):
            # timer fired a little ahead of the clock
            return key, Action.UNCHANGED

        self._arm(ann, target, diff)
        if existing is not None:
            log.info(
                "[reschedule] %s %s -> %s", key, self.local(existing.target).isoformat(), self.local(target).isoformat()
            )
            return key, Action.RESCHEDULED
        log.info("[schedule] %s at %s (in %dms)", key, self.local(target).isoformat(), millis(diff))
        return key, Action.SCHEDULED

    async def _send_late(self, ann: Announcement, target: datetime, late: timedelta) -> Action:
        if late > self.late_grace:
            return Action.DROPPED

        key = ann.key
        if self._was_delivered(key, target):
            return Action.UNCHANGED
        existing = self._table.get(key)
        if existing is not None and existing.in_flight and self._same_time(existing.target, target):
            return Action.UNCHANGED

        self._table.discard(key)
        if not await self._deliver(key, ann.message, target):
            return Action.FAILED
        log.info("[send-now] %s (late %dms)", key, millis(late))
        return Action.SENT_NOW

    def _arm(self, ann: Announcement, target: datetime, delay: timedelta) -> Reservation:
        res = Reservation(key=ann.key, target=target, message=ann.message)
        res.task = asyncio.get_running_loop().create_task(
            self._fire(res, delay.total_seconds()), name=f"announce:{ann.key}"
        )
        self._table.upsert(res)
        return res

    async def _fire(self, res: Reservation, delay: float) -> None:
        try:
            await self._sleep(delay)
            if res.cancelled:
                return
            res.in_flight = True
            if await self._deliver(res.key, res.message, res.target):
                log.info("[send] %s", res.key)
        finally:
            self._table.release(res)

    async def _deliver(self, key: str, message: str, target: datetime) -> bool:
        try:
            await self.sink.send(message)
        except DeliveryError as e:
            log.error("[send error] %s: %s", key, e)
            return False
        except Exception:
            log.exception("[send error] %s", key)
            return False
        self._delivered[key] = target
        return True

    def _same_time(self, a: datetime, b: datetime) -> bool:
        return abs(a - b) < self.reschedule_threshold

    def _was_delivered(self, key: str, target: datetime) -> bool:
        delivered = self._delivered.get(key)
        return delivered is not None and self._same_time(delivered, target)

    def _forget_delivered(self, now: datetime) -> None:
        cutoff = now - self.late_grace
        for key in [k for k, t in self._delivered.items() if t < cutoff]:
            del self._delivered[key]

    # -- lifecycle --
    def shutdown(self) -> None:
        """Cancel every pending delivery. Sends already under way still finish."""
        self._table.clear()
