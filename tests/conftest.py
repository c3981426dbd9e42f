"""Shared test fixtures: a manual clock, a recording sink, feed item factories."""

import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from boss_bot.features.announce.scheduler import Scheduler

TOKYO = ZoneInfo("Asia/Tokyo")


class ManualTimers:
    """Clock plus sleep() that only wakes when the test advances time."""

    def __init__(self, start: datetime):
        self.now = start
        self._waiters: list[tuple[datetime, asyncio.Future]] = []

    def clock(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + timedelta(seconds=seconds), fut))
        await fut

    @property
    def pending(self) -> int:
        return sum(1 for _, fut in self._waiters if not fut.done())

    async def settle(self) -> None:
        for _ in range(10):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        await self.settle()
        self.now += timedelta(seconds=seconds)
        for deadline, fut in self._waiters:
            if deadline <= self.now and not fut.done():
                fut.set_result(None)
        self._waiters = [(d, f) for d, f in self._waiters if not f.done()]
        await self.settle()


class RecordingSink:
    def __init__(self):
        self.sent: list[str] = []
        self.fail_with: Exception | None = None

    async def send(self, text: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(text)


@pytest.fixture
def zone() -> ZoneInfo:
    return TOKYO


@pytest.fixture
def t0() -> datetime:
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=TOKYO)


@pytest.fixture
def timers(t0) -> ManualTimers:
    return ManualTimers(t0)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scheduler(sink, zone, timers) -> Scheduler:
    return Scheduler(sink, zone, clock=timers.clock, sleep=timers.sleep)


@pytest.fixture
def item(zone):
    """Build a wire-format feed item due at `at` (an aware datetime)."""

    def make(key: str, at: datetime, message: str = "go") -> dict:
        local = at.astimezone(zone).replace(tzinfo=None)
        return {
            "race_key": key,
            "announceAtISO": local.isoformat(timespec="milliseconds"),
            "message": message,
        }

    return make


@pytest.fixture
def make_timers():
    return ManualTimers
