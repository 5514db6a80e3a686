"""Consumer-facing API.

VigiaService wires settings, cache, adapters, orchestrator and health
monitor together and exposes the operations a front end needs.

Usage:
    service = VigiaService.from_settings()
    entities = await service.fetch_all()
    print(service.last_report.failed)

    handle = service.start_auto_refresh(6 * 3600, lambda entities: print(len(entities)))
    ...
    handle.stop()
"""

import inspect
import logging
from collections.abc import Callable, Sequence

from vigia import roster
from vigia.cache import ParquetEntityStore, TieredCache
from vigia.clients import TSEClient
from vigia.config import settings
from vigia.health import HealthMonitor, HealthVector
from vigia.models import Entity, Identity
from vigia.pipeline import FetchReport, Orchestrator
from vigia.engine.comparison import PeerComparison, compare_to_peers
from vigia.scheduler import CancellationToken, PeriodicTask, RefreshController, Snapshot, StopHandle


logger = logging.getLogger(__name__)


async def election_available(year: int | None = None, uf: str | None = None) -> bool:
    """Whether TSE has published the candidates of a future election."""
    async with TSEClient(rate_limit=settings.tse_rate_limit) as client:
        return await client.election_published(
            year or settings.future_election_year,
            uf or settings.state_code,
        )


class VigiaService:
    """Aggregation engine facade.

    Args:
        orchestrator: Entity producer (owns the tiered cache)
        health: Source health monitor
        identities: Default tracked set (default: the PE roster)
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        health: HealthMonitor | None = None,
        identities: Sequence[Identity] | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.health = health or HealthMonitor()
        self.identities = list(identities) if identities is not None else list(roster.TRACKED)
        self.last_report: FetchReport | None = None
        self._in_flight = False

    @classmethod
    def from_settings(cls) -> "VigiaService":
        cache = TieredCache(ParquetEntityStore(settings.cache_dir))
        return cls(Orchestrator(cache))

    @property
    def cache(self) -> TieredCache:
        return self.orchestrator.cache

    def resolve(self, identity_or_id: Identity | str) -> Identity | None:
        if isinstance(identity_or_id, Identity):
            return identity_or_id
        return roster.find(identity_or_id, tuple(self.identities))

    async def fetch_all(
        self,
        identities: Sequence[Identity] | None = None,
        force_refresh: bool = False,
    ) -> list[Entity]:
        """Every entity that could be produced. Failures go to last_report."""
        report = await self.orchestrator.fetch_all(
            identities if identities is not None else self.identities,
            force_refresh=force_refresh,
        )
        self.last_report = report
        return report.entities

    async def fetch_one(self, identity_or_id: Identity | str, force_refresh: bool = False) -> Entity | None:
        identity = self.resolve(identity_or_id)
        if identity is None:
            logger.warning("Unknown entity: %s", identity_or_id)
            return None
        return await self.orchestrator.fetch_entity(identity, force_refresh=force_refresh)

    async def refresh(self) -> None:
        """Forced re-fetch of the tracked set. No-op while one is in flight."""
        if self._in_flight:
            logger.debug("Refresh already in flight, skipping")
            return
        self._in_flight = True
        try:
            await self.fetch_all(force_refresh=True)
        finally:
            self._in_flight = False

    async def get_health(self) -> HealthVector:
        return await self.health.probe()

    async def get_cached(self) -> list[Entity]:
        """Unexpired durable entries, for painting before any fetch."""
        return await self.cache.get_all_valid()

    async def compare(self, entity: Entity) -> PeerComparison | None:
        """Rank ``entity`` against the cached profiles of same-position peers.

        Peers are the tracked entities with an unexpired cache entry; None
        when the entity reported no spend.
        """
        tracked = {i.id for i in self.identities}
        peers = [
            e for e in await self.cache.get_all_valid()
            if e.id in tracked and e.position == entity.position
        ]
        return compare_to_peers(entity, peers)

    def start_auto_refresh(
        self,
        interval_seconds: float,
        callback: Callable[[list[Entity]], object],
    ) -> StopHandle:
        """Refresh every ``interval_seconds`` and hand the entities to ``callback``.

        ``callback`` may be a plain function or a coroutine function. Once
        the handle is stopped the callback is never invoked again, even by
        a refresh that was already running.
        """
        token = CancellationToken()

        async def _tick() -> None:
            if self._in_flight or token.cancelled:
                return
            await self.refresh()
            if token.cancelled:
                logger.debug("Auto refresh finished after stop, result dropped")
                return
            entities = self.last_report.entities if self.last_report else []
            result = callback(entities)
            if inspect.isawaitable(result):
                await result

        return PeriodicTask(
            interval_seconds,
            _tick,
            name="service-auto-refresh",
            token=token,
            owns_token=True,
        ).start()

    def controller(self, on_change: Callable[[Snapshot], None] | None = None) -> RefreshController:
        """A fresh per-consumer controller over this service's engine."""
        return RefreshController(
            self.orchestrator,
            self.identities,
            on_change=on_change,
            health=self.health,
        )
