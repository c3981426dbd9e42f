"""Tests for the reservation table."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from boss_bot.features.announce.reservations import Reservation, ReservationTable

T = datetime(2026, 3, 1, 3, 0, tzinfo=timezone.utc)


def res(key: str, offset: int = 0) -> Reservation:
    return Reservation(key=key, target=T + timedelta(seconds=offset), message=f"msg {key}")


class TestReservation:
    def test_cancel_sets_flag_once(self):
        r = res("a")
        assert r.cancel() is True
        assert r.cancelled is True
        assert r.cancel() is False

    def test_cancel_in_flight_is_noop(self):
        r = res("a")
        r.in_flight = True
        assert r.cancel() is False
        assert r.cancelled is False

    @pytest.mark.asyncio
    async def test_cancel_stops_task(self):
        r = res("a")
        r.task = asyncio.get_running_loop().create_task(asyncio.sleep(3600))
        assert r.live is True

        r.cancel()
        await asyncio.gather(r.task, return_exceptions=True)

        assert r.task.cancelled()
        assert r.live is False

    def test_reservations_compare_by_identity(self):
        assert res("a") != res("a")


class TestReservationTable:
    def test_upsert_inserts(self):
        table = ReservationTable()
        first = res("a")

        assert table.upsert(first) is None
        assert table.get("a") is first
        assert len(table) == 1

    def test_upsert_replaces_and_cancels_prior(self):
        table = ReservationTable()
        first, second = res("a", 0), res("a", 5)
        table.upsert(first)

        assert table.upsert(second) is first
        assert first.cancelled is True
        assert table.get("a") is second
        assert len(table) == 1

    def test_upsert_same_object_is_noop(self):
        table = ReservationTable()
        first = res("a")
        table.upsert(first)

        assert table.upsert(first) is None
        assert first.cancelled is False

    def test_release_only_removes_matching_entry(self):
        table = ReservationTable()
        old, new = res("a", 0), res("a", 5)
        table.upsert(old)
        table.upsert(new)

        assert table.release(old) is False
        assert table.get("a") is new
        assert table.release(new) is True
        assert len(table) == 0

    def test_release_does_not_cancel(self):
        table = ReservationTable()
        r = res("a")
        table.upsert(r)
        table.release(r)
        assert r.cancelled is False

    def test_discard(self):
        table = ReservationTable()
        r = res("a")
        table.upsert(r)

        assert table.discard("a") is r
        assert r.cancelled is True
        assert table.discard("a") is None

    def test_snapshot_sorted_by_target(self):
        table = ReservationTable()
        for key, offset in (("c", 30), ("a", 10), ("b", 20)):
            table.upsert(res(key, offset))

        assert [r.key for r in table.snapshot()] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_clear_cancels_pending(self):
        table = ReservationTable()
        r = res("a")
        r.task = asyncio.get_running_loop().create_task(asyncio.sleep(3600))
        table.upsert(r)

        table.clear()
        await asyncio.gather(r.task, return_exceptions=True)

        assert len(table) == 0
        assert r.cancelled is True
        assert r.task.cancelled()

    @pytest.mark.asyncio
    async def test_clear_leaves_in_flight_send_running(self):
        table = ReservationTable()
        r = res("a")
        r.in_flight = True
        r.task = asyncio.get_running_loop().create_task(asyncio.sleep(3600))
        table.upsert(r)

        table.clear()
        await asyncio.sleep(0)

        assert len(table) == 0
        assert r.cancelled is False
        assert not r.task.done()
        r.task.cancel()
        await asyncio.gather(r.task, return_exceptions=True)
