"""
Concurrent transitions. Each contender gets its own session, as separate
requests would.
"""

import asyncio

import pytest

from venueflow.core.admission import (
    MemoryAdmissionLockManager,
    RedisAdmissionLockManager,
    admission_keys,
    build_admission_lock_manager,
)
from venueflow.core.exceptions import (
    AdmissionBusyError,
    AllocationRejectedError,
    NotEligibleError,
)
from venueflow.core.settings import AdmissionSettings
from venueflow.crud import event as event_crud
from venueflow.models.event import EventStatus


async def _race(database, workflow, method, event_ids, actor):
    async def attempt(event_id):
        async with database.session_factory() as session:
            return await getattr(workflow, method)(session, event_id, actor)

    return await asyncio.gather(
        *(attempt(event_id) for event_id in event_ids), return_exceptions=True
    )


class TestHeadApproveRace:
    async def test_conflicting_venue_exactly_one_wins(self, db, database, scenario):
        venue = await scenario.venue()
        events = [
            await scenario.dean_approved(venue, start=0, end=2, title="A"),
            await scenario.dean_approved(venue, start=1, end=3, title="B"),
            await scenario.dean_approved(venue, start=0.5, end=1.5, title="C"),
        ]

        results = await _race(
            database,
            scenario.workflow,
            "head_approve",
            [e.id for e in events],
            scenario.head,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(r, AllocationRejectedError) for r in losers)

        statuses = [
            (await event_crud.get_event(db, e.id)).status for e in events
        ]
        assert statuses.count(EventStatus.HEAD_APPROVED) == 1
        assert statuses.count(EventStatus.DEAN_APPROVED) == 2

    async def test_shared_resource_is_never_oversubscribed(
        self, db, database, scenario
    ):
        projector = await scenario.resource(total_quantity=3)
        events = []
        for i in range(4):
            venue = await scenario.venue(f"Room {i}")
            events.append(
                await scenario.dean_approved(
                    venue, start=0, end=2, claims=[(projector, 2)], title=f"E{i}"
                )
            )

        results = await _race(
            database,
            scenario.workflow,
            "head_approve",
            [e.id for e in events],
            scenario.head,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 1

    async def test_non_conflicting_events_all_commit(self, db, database, scenario):
        events = []
        for i in range(3):
            venue = await scenario.venue(f"Room {i}")
            events.append(await scenario.dean_approved(venue, title=f"E{i}"))

        results = await _race(
            database,
            scenario.workflow,
            "head_approve",
            [e.id for e in events],
            scenario.head,
        )

        assert all(r.status == EventStatus.HEAD_APPROVED for r in results)

    async def test_same_event_approved_once(self, db, database, scenario):
        event = await scenario.dean_approved(await scenario.venue())

        results = await _race(
            database,
            scenario.workflow,
            "head_approve",
            [event.id, event.id],
            scenario.head,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 1
        assert any(isinstance(r, NotEligibleError) for r in results)


async def test_double_submit_succeeds_once(db, database, scenario):
    event = await scenario.draft(await scenario.venue())

    results = await _race(
        database,
        scenario.workflow,
        "submit",
        [event.id, event.id],
        scenario.coordinator,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert any(isinstance(r, NotEligibleError) for r in results)
    assert (await event_crud.get_event(db, event.id)).status == EventStatus.SUBMITTED


def test_admission_keys_are_sorted_and_unique():
    assert admission_keys(7, [3, 1, 3]) == ["resource:1", "resource:3", "venue:7"]


class TestMemoryLockManager:
    async def test_serializes_holders_of_one_key(self):
        manager = MemoryAdmissionLockManager(wait_seconds=5)
        order = []

        async def worker(name):
            async with manager.hold(["venue:1"]):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    async def test_disjoint_keys_do_not_block(self):
        manager = MemoryAdmissionLockManager(wait_seconds=0.1)
        async with manager.hold(["venue:1"]):
            async with manager.hold(["venue:2"]) as keys:
                assert keys == ["venue:2"]

    async def test_times_out_with_busy_error(self):
        manager = MemoryAdmissionLockManager(wait_seconds=0.05)
        async with manager.hold(["resource:1", "venue:1"]):
            with pytest.raises(AdmissionBusyError):
                async with manager.hold(["venue:1"]):
                    pass
        assert manager.active_keys() == []

    async def test_releases_on_error(self):
        manager = MemoryAdmissionLockManager(wait_seconds=0.05)
        with pytest.raises(RuntimeError):
            async with manager.hold(["venue:1"]):
                raise RuntimeError("boom")

        assert manager.active_keys() == []
        async with manager.hold(["venue:1"]):
            pass


class FakeRedis:
    """In-process double for the two redis calls the lock manager makes."""

    def __init__(self):
        self.store = {}

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def eval(self, script, numkeys, key, value):
        if self.store.get(key) == value:
            del self.store[key]
            return 1
        return 0


class TestRedisLockManager:
    async def test_acquires_and_releases_all_keys(self):
        redis = FakeRedis()
        manager = RedisAdmissionLockManager(redis, wait_seconds=0.1, poll_interval=0.01)

        async with manager.hold(["venue:1", "resource:2"]):
            assert set(redis.store) == {
                "admission_lock:venue:1",
                "admission_lock:resource:2",
            }

        assert redis.store == {}

    async def test_busy_key_raises_and_releases_partial_holds(self):
        redis = FakeRedis()
        redis.store["admission_lock:venue:9"] = "someone-else"
        manager = RedisAdmissionLockManager(redis, wait_seconds=0.05, poll_interval=0.01)

        with pytest.raises(AdmissionBusyError):
            async with manager.hold(["resource:1", "venue:9"]):
                pass

        assert redis.store == {"admission_lock:venue:9": "someone-else"}

    def test_factory_requires_client_for_redis_backend(self):
        config = AdmissionSettings(LOCK_BACKEND="redis")
        with pytest.raises(RuntimeError):
            build_admission_lock_manager(config)
        assert isinstance(
            build_admission_lock_manager(config, FakeRedis()), RedisAdmissionLockManager
        )
        assert isinstance(
            build_admission_lock_manager(AdmissionSettings(LOCK_BACKEND="memory")),
            MemoryAdmissionLockManager,
        )
