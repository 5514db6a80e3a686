"""Tests for RefreshController and AvailabilityWatcher.

The orchestrator is mostly mocked so each test decides what a batch returns
and when it completes; the fan-out test drives a real one.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from vigia.cache import TieredCache
from vigia.models import Entity, Identity, JurisdictionTier, ProfileRecord
from vigia.pipeline import FetchReport, Orchestrator
from vigia.scheduler import AvailabilityWatcher, ControllerState, RefreshController
from vigia.sources import FIELD_PROFILE, FetchParams, SourceAdapter


STAMP = datetime(2025, 6, 1, tzinfo=timezone.utc)

IDENTITIES = [
    Identity(id=f"deputado_{n}", name=f"Deputado {n}", tier=JurisdictionTier.FEDERAL) for n in (1, 2, 3)
]


def entity(entity_id: str, name: str = "Fresh") -> Entity:
    return Entity(id=entity_id, name=name, tier=JurisdictionTier.FEDERAL, last_updated=STAMP)


def report(ids, failed=()) -> FetchReport:
    return FetchReport(entities=[entity(i) for i in ids], failed=list(failed))


def make_orchestrator(fetch_result=None, cached=()):
    orchestrator = MagicMock()
    orchestrator.cache.get_all_valid = AsyncMock(return_value=list(cached))
    orchestrator.fetch_all = AsyncMock(return_value=fetch_result or report(["deputado_1", "deputado_2", "deputado_3"]))
    orchestrator.fetch_entity = AsyncMock()
    return orchestrator


def make_controller(orchestrator, health=None):
    snapshots = []
    controller = RefreshController(
        orchestrator,
        IDENTITIES,
        on_change=snapshots.append,
        health=health,
        now=lambda: STAMP,
    )
    return controller, snapshots


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_goes_loading_then_ready(self):
        controller, snapshots = make_controller(make_orchestrator())

        await controller.load()

        assert snapshots[0].state == ControllerState.LOADING
        assert snapshots[-1].state == ControllerState.READY
        assert [e.id for e in snapshots[-1].entities] == ["deputado_1", "deputado_2", "deputado_3"]
        assert snapshots[-1].error is None
        assert snapshots[-1].last_refreshed == STAMP

    @pytest.mark.asyncio
    async def test_paints_cache_before_fetch(self):
        cached = [entity("deputado_2", "Cached"), entity("deputado_9", "Untracked")]
        orchestrator = make_orchestrator(cached=cached)
        controller, snapshots = make_controller(orchestrator)

        await controller.load()

        painted = snapshots[1]
        assert painted.state == ControllerState.LOADING
        assert [e.name for e in painted.entities] == ["Cached"]
        orchestrator.fetch_all.assert_awaited_once_with(IDENTITIES)

    @pytest.mark.asyncio
    async def test_total_failure_without_data_is_blocking(self):
        orchestrator = make_orchestrator(report([], failed=[i.id for i in IDENTITIES]))
        controller, _ = make_controller(orchestrator)

        await controller.load()

        assert controller.snapshot.error.blocking
        assert controller.snapshot.entities == ()

    @pytest.mark.asyncio
    async def test_total_failure_with_cached_data_is_not_blocking(self):
        orchestrator = make_orchestrator(
            report([], failed=[i.id for i in IDENTITIES]),
            cached=[entity("deputado_1", "Cached")],
        )
        controller, _ = make_controller(orchestrator)

        await controller.load()

        assert not controller.snapshot.error.blocking
        assert [e.name for e in controller.snapshot.entities] == ["Cached"]

    @pytest.mark.asyncio
    async def test_health_is_probed(self):
        health = MagicMock()
        health.probe = AsyncMock(return_value={"camara": "up"})
        controller, _ = make_controller(make_orchestrator(), health=health)

        await controller.load()

        assert controller.snapshot.health == {"camara": "up"}


class TestRefresh:
    @pytest.mark.asyncio
    async def test_partial_failure_keeps_previous_entities(self):
        orchestrator = make_orchestrator()
        controller, _ = make_controller(orchestrator)
        await controller.load()
        old = {e.id: e for e in controller.snapshot.entities}

        orchestrator.fetch_all.return_value = report(["deputado_1", "deputado_3"], failed=["deputado_2"])
        await controller.refresh()

        snapshot = controller.snapshot
        assert snapshot.state == ControllerState.READY
        assert [e.id for e in snapshot.entities] == ["deputado_1", "deputado_2", "deputado_3"]
        assert snapshot.entities[1] is old["deputado_2"]
        assert snapshot.error.failed == ("deputado_2",)
        assert not snapshot.error.blocking
        orchestrator.fetch_all.assert_awaited_with(IDENTITIES, force_refresh=True)

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_fan_out_once(self):
        gate = asyncio.Event()
        orchestrator = make_orchestrator()

        async def _slow_fetch(identities, force_refresh=False):
            await gate.wait()
            return report([i.id for i in identities])

        orchestrator.fetch_all.side_effect = _slow_fetch
        controller, _ = make_controller(orchestrator)

        first = asyncio.create_task(controller.refresh())
        second = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)
        assert controller.refreshing
        gate.set()
        await asyncio.gather(first, second)

        assert orchestrator.fetch_all.await_count == 1
        assert not controller.refreshing

    @pytest.mark.asyncio
    async def test_refresh_state_sequence(self):
        controller, snapshots = make_controller(make_orchestrator())

        await controller.refresh()

        assert [s.state for s in snapshots] == [ControllerState.REFRESHING, ControllerState.READY]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_attached(self):
        orchestrator = make_orchestrator()
        orchestrator.fetch_all.side_effect = RuntimeError("boom")
        controller, _ = make_controller(orchestrator)

        await controller.refresh()

        assert controller.snapshot.state == ControllerState.READY
        assert controller.snapshot.error.message == "boom"
        assert controller.snapshot.error.blocking

    @pytest.mark.asyncio
    async def test_refresh_one_replaces_entity(self):
        orchestrator = make_orchestrator()
        controller, _ = make_controller(orchestrator)
        await controller.load()
        orchestrator.fetch_entity.return_value = entity("deputado_2", "Updated")

        result = await controller.refresh_one("deputado_2")

        assert result.name == "Updated"
        orchestrator.fetch_entity.assert_awaited_once_with(IDENTITIES[1], force_refresh=True)
        orchestrator.cache.invalidate.assert_not_called()
        assert [e.name for e in controller.snapshot.entities] == ["Fresh", "Updated", "Fresh"]

    @pytest.mark.asyncio
    async def test_refresh_one_failure_keeps_entity(self):
        orchestrator = make_orchestrator()
        controller, _ = make_controller(orchestrator)
        await controller.load()
        orchestrator.fetch_entity.return_value = None

        assert await controller.refresh_one("deputado_2") is None
        assert [e.name for e in controller.snapshot.entities] == ["Fresh", "Fresh", "Fresh"]

    @pytest.mark.asyncio
    async def test_refresh_one_unknown_id(self):
        controller, _ = make_controller(make_orchestrator())
        assert await controller.refresh_one("deputado_99") is None


class TestTeardown:
    @pytest.mark.asyncio
    async def test_no_callback_after_teardown(self):
        gate = asyncio.Event()
        orchestrator = make_orchestrator()

        async def _slow_fetch(identities, force_refresh=False):
            await gate.wait()
            return report([i.id for i in identities])

        orchestrator.fetch_all.side_effect = _slow_fetch
        controller, snapshots = make_controller(orchestrator)

        task = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)
        count = len(snapshots)
        controller.teardown()
        gate.set()
        await task

        assert len(snapshots) == count
        assert controller.snapshot.state == ControllerState.REFRESHING

    @pytest.mark.asyncio
    async def test_teardown_stops_schedules(self):
        controller, _ = make_controller(make_orchestrator())
        handle = controller.start_auto_refresh(interval=3600)

        controller.teardown()
        await controller.wait_closed()

        assert handle.stopped

    @pytest.mark.asyncio
    async def test_calls_after_teardown_are_noops(self):
        orchestrator = make_orchestrator()
        controller, snapshots = make_controller(orchestrator)
        controller.teardown()

        await controller.load()
        await controller.refresh()

        assert snapshots == []
        orchestrator.fetch_all.assert_not_awaited()


class TestAvailabilityWatcher:
    @pytest.mark.asyncio
    async def test_fires_once_per_transition(self):
        states = iter([False, True, True, False, True])
        fired = []

        async def _check():
            return next(states)

        async def _on_available():
            fired.append(1)

        watcher = AvailabilityWatcher(_check, _on_available, interval=3600)
        results = [await watcher.poll() for _ in range(5)]

        assert results == [False, True, False, False, True]
        assert watcher.transitions == 2
        assert len(fired) == 2

    @pytest.mark.asyncio
    async def test_check_error_keeps_state(self):
        outcomes = iter([True, RuntimeError("tse down"), True])

        async def _check():
            value = next(outcomes)
            if isinstance(value, Exception):
                raise value
            return value

        watcher = AvailabilityWatcher(_check, AsyncMock(), interval=3600)

        assert await watcher.poll() is True
        assert await watcher.poll() is False
        assert watcher.available
        assert await watcher.poll() is False
        assert watcher.transitions == 1

    @pytest.mark.asyncio
    async def test_controller_refreshes_on_availability(self):
        orchestrator = make_orchestrator()
        controller, _ = make_controller(orchestrator)

        controller.watch_availability(AsyncMock(return_value=True), interval=3600)
        await asyncio.sleep(0.01)
        controller.teardown()
        await controller.wait_closed()

        assert controller.snapshot.future_dataset_available
        orchestrator.fetch_all.assert_awaited_once_with(IDENTITIES, force_refresh=True)

    @pytest.mark.asyncio
    async def test_transition_during_refresh_forces_another(self):
        gate = asyncio.Event()
        orchestrator = make_orchestrator()

        async def _gated_fetch(identities, force_refresh=False):
            await gate.wait()
            return report([i.id for i in identities])

        orchestrator.fetch_all.side_effect = _gated_fetch
        controller, _ = make_controller(orchestrator)

        in_flight = asyncio.create_task(controller.refresh())
        await asyncio.sleep(0)
        assert controller.refreshing

        watcher = controller.watch_availability(AsyncMock(return_value=True), interval=3600)
        await asyncio.sleep(0.01)
        gate.set()
        await in_flight
        await asyncio.sleep(0.01)
        controller.teardown()
        await controller.wait_closed()

        assert watcher.transitions == 1
        assert orchestrator.fetch_all.await_count == 2


class CountingAdapter(SourceAdapter):
    """Profile adapter that blocks on ``gate`` and counts fetches."""

    name = "Perfil"
    field = FIELD_PROFILE

    def __init__(self, gate: asyncio.Event) -> None:
        self.gate = gate
        self.calls = 0

    async def fetch(self, identity, params):
        self.calls += 1
        await self.gate.wait()
        return ProfileRecord(name=identity.name, party="", region="PE")


@pytest.mark.asyncio
async def test_back_to_back_refresh_single_fan_out():
    """Two refresh() calls while the first is pending hit each adapter once per identity."""
    gate = asyncio.Event()
    adapter = CountingAdapter(gate)
    orchestrator = Orchestrator(
        TieredCache(None, fast_ttl=3600, durable_ttl=86400),
        adapters=[adapter],
        params_factory=lambda: FetchParams(years=(2025,)),
    )
    controller = RefreshController(orchestrator, IDENTITIES)

    first = asyncio.create_task(controller.refresh())
    await asyncio.sleep(0)
    await controller.refresh()
    gate.set()
    await first

    assert adapter.calls == len(IDENTITIES)
    assert len(controller.snapshot.entities) == len(IDENTITIES)
