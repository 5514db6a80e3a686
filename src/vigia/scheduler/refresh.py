"""Refresh controller: one consumer's view of the tracked entities.

State machine:

    IDLE -> LOADING -> READY            load()
    READY -> REFRESHING -> READY        refresh()

A failed refresh returns to READY with an error attached and keeps the
previous entities (stale-while-revalidate). The error is blocking only when
nothing at all can be shown.

Every state change is delivered to ``on_change(snapshot)``. The controller
owns a CancellationToken; teardown() cancels it, and every async path
checks it after each await before touching state, so results that arrive
after teardown are dropped without a callback.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from vigia.config import settings
from vigia.health import HealthMonitor, HealthVector
from vigia.models import Entity, Identity
from vigia.pipeline import FetchReport, Orchestrator
from vigia.scheduler.tasks import CancellationToken, PeriodicTask, StopHandle


logger = logging.getLogger(__name__)


class ControllerState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class RefreshError:
    """Attached to a snapshot after a failed or partial load/refresh.

    Attributes:
        message: Human-readable summary
        blocking: True only when no entity could be produced and no cached
            data exists, i.e. there is nothing to show
        failed: Identity ids with no data in the last batch
    """

    message: str
    blocking: bool
    failed: tuple[str, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    state: ControllerState = ControllerState.IDLE
    entities: tuple[Entity, ...] = ()
    health: HealthVector = field(default_factory=dict)
    error: RefreshError | None = None
    last_refreshed: datetime | None = None
    future_dataset_available: bool = False


class AvailabilityWatcher:
    """Slow poll for a dataset that is not published yet.

    Each unavailable -> available transition fires ``on_available`` exactly
    once; the watcher keeps polling afterwards and fires again only after
    the dataset has been seen unavailable in between. A check that raises
    leaves the last known state unchanged.

    Args:
        check: Async predicate, True when the dataset is available
        on_available: Async callback for each transition
        interval: Poll cadence in seconds (default: settings.election_check_interval)
        token: Liveness token; no callback fires once cancelled
    """

    def __init__(
        self,
        check: Callable[[], Awaitable[bool]],
        on_available: Callable[[], Awaitable[object]],
        interval: float | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.check = check
        self.on_available = on_available
        self.interval = interval if interval is not None else settings.election_check_interval
        self.token = token or CancellationToken()
        self.available = False
        self.transitions = 0

    async def poll(self) -> bool:
        """Check once. Returns True when this poll fired the callback."""
        try:
            available = bool(await self.check())
        except Exception as e:
            logger.warning("Availability check failed, keeping last state: %s", e)
            return False
        if self.token.cancelled:
            return False

        became_available = available and not self.available
        self.available = available
        if not became_available:
            return False

        self.transitions += 1
        logger.info("Future dataset became available, triggering refresh")
        await self.on_available()
        return True

    def start(self) -> StopHandle:
        return PeriodicTask(
            self.interval,
            self.poll,
            name="availability-watcher",
            run_immediately=True,
            token=self.token,
        ).start()


class RefreshController:
    """Per-consumer load/refresh driver.

    Args:
        orchestrator: Produces entities (and owns the cache)
        identities: Entities this consumer tracks
        on_change: Receives every new Snapshot
        health: Probed on load and refresh (optional)
        now: Timestamp source for last_refreshed
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        identities: Sequence[Identity],
        on_change: Callable[[Snapshot], None] | None = None,
        health: HealthMonitor | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.orchestrator = orchestrator
        self.identities = list(identities)
        self.on_change = on_change
        self.health = health
        self.now = now
        self.token = CancellationToken()
        self.snapshot = Snapshot()
        self._in_flight = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._handles: list[StopHandle] = []

    @property
    def refreshing(self) -> bool:
        return self._in_flight

    def _begin(self) -> None:
        self._in_flight = True
        self._idle.clear()

    def _end(self) -> None:
        self._in_flight = False
        self._idle.set()

    def _commit(self, **changes) -> None:
        """Apply state changes and notify, unless torn down."""
        if self.token.cancelled:
            return
        self.snapshot = replace(self.snapshot, **changes)
        if self.on_change is not None:
            self.on_change(self.snapshot)

    def _ordered(self, by_id: dict[str, Entity]) -> tuple[Entity, ...]:
        return tuple(by_id[i.id] for i in self.identities if i.id in by_id)

    async def _probe_health(self) -> None:
        if self.health is None:
            return
        vector = await self.health.probe()
        self._commit(health=vector)

    def _apply_report(self, report: FetchReport, had_data: bool) -> None:
        by_id = {e.id: e for e in self.snapshot.entities}
        by_id.update({e.id: e for e in report.entities})
        entities = self._ordered(by_id)

        error = None
        if report.failed:
            blocking = not report.entities and not had_data
            if blocking:
                message = "Could not load any entity and no cached data is available"
            else:
                message = f"No fresh data for {len(report.failed)} of {len(self.identities)} entities"
            error = RefreshError(message=message, blocking=blocking, failed=tuple(report.failed))

        self._commit(
            state=ControllerState.READY,
            entities=entities,
            error=error,
            last_refreshed=self.now() if report.entities else self.snapshot.last_refreshed,
        )

    async def load(self) -> None:
        """Initial load: probe health, paint from cache, then fetch."""
        if self.token.cancelled:
            return
        self._begin()
        try:
            self._commit(state=ControllerState.LOADING, error=None)
            await self._probe_health()
            if self.token.cancelled:
                return

            tracked = {i.id for i in self.identities}
            cached = [e for e in await self.orchestrator.cache.get_all_valid() if e.id in tracked]
            if self.token.cancelled:
                return
            if cached:
                logger.info("Painting %d entities from cache", len(cached))
                self._commit(entities=self._ordered({e.id: e for e in cached}))

            report = await self.orchestrator.fetch_all(self.identities)
            if self.token.cancelled:
                logger.debug("Load finished after teardown, result dropped")
                return
            self._apply_report(report, had_data=bool(cached))
        except Exception as e:
            logger.error("Initial load failed: %s", e, exc_info=True)
            self._commit(
                state=ControllerState.READY,
                error=RefreshError(message=str(e), blocking=not self.snapshot.entities),
            )
        finally:
            self._end()

    async def refresh(self) -> None:
        """Forced re-fetch of every entity. No-op while one is in flight."""
        if self._in_flight or self.token.cancelled:
            logger.debug("Refresh skipped (in flight or torn down)")
            return
        self._begin()
        try:
            self._commit(state=ControllerState.REFRESHING)
            await self._probe_health()
            if self.token.cancelled:
                return

            report = await self.orchestrator.fetch_all(self.identities, force_refresh=True)
            if self.token.cancelled:
                logger.debug("Refresh finished after teardown, result dropped")
                return
            self._apply_report(report, had_data=bool(self.snapshot.entities))
        except Exception as e:
            logger.error("Refresh failed: %s", e, exc_info=True)
            self._commit(
                state=ControllerState.READY,
                error=RefreshError(message=str(e), blocking=not self.snapshot.entities),
            )
        finally:
            self._end()

    async def refresh_one(self, entity_id: str) -> Entity | None:
        """Forced re-fetch of one tracked entity, replacing it in state."""
        identity = next((i for i in self.identities if i.id == entity_id), None)
        if identity is None or self.token.cancelled:
            return None

        entity = await self.orchestrator.fetch_entity(identity, force_refresh=True)
        if entity is None or self.token.cancelled:
            return entity

        by_id = {e.id: e for e in self.snapshot.entities}
        by_id[entity.id] = entity
        self._commit(entities=self._ordered(by_id))
        return entity

    def start_auto_refresh(self, interval: float | None = None) -> StopHandle:
        """Call refresh() every ``interval`` seconds (default: settings.refresh_interval)."""
        handle = PeriodicTask(
            interval if interval is not None else settings.refresh_interval,
            self.refresh,
            name="auto-refresh",
            token=self.token,
        ).start()
        self._handles.append(handle)
        return handle

    def watch_availability(
        self,
        check: Callable[[], Awaitable[bool]],
        interval: float | None = None,
    ) -> AvailabilityWatcher:
        """Start a watcher that forces one refresh per availability transition.

        A refresh already in flight may have started before the dataset was
        published, so the watcher waits for it and then forces its own.
        """

        async def _on_available() -> None:
            self._commit(future_dataset_available=True)
            while self._in_flight and not self.token.cancelled:
                await self._idle.wait()
            await self.refresh()

        async def _check() -> bool:
            available = await check()
            if not available and self.snapshot.future_dataset_available:
                self._commit(future_dataset_available=False)
            return available

        watcher = AvailabilityWatcher(_check, _on_available, interval=interval, token=self.token)
        self._handles.append(watcher.start())
        return watcher

    def teardown(self) -> None:
        """Stop all schedules and drop every result still in flight."""
        self.token.cancel()
        for handle in self._handles:
            handle.stop()
        logger.debug("Controller torn down")

    async def wait_closed(self) -> None:
        """Wait for every schedule loop to exit after teardown."""
        await asyncio.gather(*(handle.wait() for handle in self._handles))
        self._handles.clear()
