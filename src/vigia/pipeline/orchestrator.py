"""Orchestrator: identities → source adapters → merged Entity → cache.

Per identity:
  1. Serve from the tiered cache unless a refresh is forced
  2. Pick the adapters that apply to the identity (none for state and
     municipal officials, who get a static profile instead)
  3. Run them concurrently; each failure is isolated to its own field
  4. Merge by field ownership, filling silent fields with defaults
  5. Derive metrics and red flags, stamp last_updated, write through

Usage:
    orchestrator = Orchestrator(cache=TieredCache(ParquetEntityStore("data")))
    report = await orchestrator.fetch_all(roster.TRACKED)
    for entity in report.entities:
        print(entity.name, entity.efficiency_rating.value)
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from vigia.cache import TieredCache
from vigia.clients.base import TransportError
from vigia.config import settings
from vigia.engine.metrics import (
    compute_efficiency_rating,
    describe_transaction,
    monthly_ceiling,
    monthly_history,
    spend_utilization,
    staff_cost_utilization,
    top_transactions,
)
from vigia.engine.red_flags import DEFAULT_POLICY, RedFlagPolicy, generate_red_flags
from vigia.models import (
    AmendmentSummary,
    EfficiencyRating,
    Entity,
    Identity,
    ProfileRecord,
    Provenance,
    StaffStats,
)
from vigia.roster import STATE_TRANSPARENCY_URL, STATIC_PROFILE_FINDINGS
from vigia.sources import (
    FIELD_AMENDMENTS,
    FIELD_PROFILE,
    FIELD_SPEND,
    FIELD_STAFF,
    FetchParams,
    ParseError,
    SourceAdapter,
    default_adapters,
)


logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _has_data(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple)) and not value:
        return False
    return True


@dataclass
class FetchReport:
    """Outcome of a batch fetch.

    Attributes:
        entities: Entities produced, in input order
        failed: Ids of identities for which nothing could be produced
    """

    entities: list[Entity] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "failed": list(self.failed),
        }


class Orchestrator:
    """Aggregates tracked identities into Entities.

    Args:
        cache: Tiered cache consulted before and written after each fetch
        adapters: Source adapters (default: every shipped adapter)
        policy: Red flag thresholds (default: DEFAULT_POLICY)
        concurrency: Max identities in flight in fetch_all
            (default: settings.fetch_concurrency)
        params_factory: Builds the query window for one aggregation
        now: Timestamp source for last_updated and provenance
    """

    def __init__(
        self,
        cache: TieredCache,
        adapters: Sequence[SourceAdapter] | None = None,
        policy: RedFlagPolicy = DEFAULT_POLICY,
        concurrency: int | None = None,
        params_factory: Callable[[], FetchParams] = FetchParams.recent,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.cache = cache
        self.adapters = list(adapters) if adapters is not None else default_adapters()
        self.policy = policy
        self.params_factory = params_factory
        self.now = now
        self._semaphore = asyncio.Semaphore(concurrency or settings.fetch_concurrency)
        self._last_stamp: dict[str, datetime] = {}

    def adapters_for(self, identity: Identity) -> list[SourceAdapter]:
        """Adapters that can serve this identity."""
        return [a for a in self.adapters if a.applies_to(identity)]

    async def fetch_entity(self, identity: Identity, force_refresh: bool = False) -> Entity | None:
        """Produce the current Entity for one identity.

        Returns:
            The cached or freshly merged Entity, or None when every
            applicable adapter failed or returned nothing. The cache is
            left untouched in that case.
        """
        if not force_refresh:
            cached = await self.cache.get(identity.id)
            if cached is not None:
                logger.debug("%s: served from cache", identity.id)
                self._remember(cached)
                return cached

        adapters = self.adapters_for(identity)
        if not adapters:
            entity = self._static_profile(identity)
        else:
            entity = await self._aggregate(identity, adapters)
            if entity is None:
                return None

        await self.cache.put(identity.id, entity)
        return entity

    async def fetch_all(
        self,
        identities: Iterable[Identity],
        force_refresh: bool = False,
    ) -> FetchReport:
        """Fetch every identity concurrently. Never raises.

        Concurrency is bounded by the orchestrator's semaphore.
        """
        identities = list(identities)

        async def _fetch_one(identity: Identity) -> Entity | None:
            async with self._semaphore:
                try:
                    return await self.fetch_entity(identity, force_refresh=force_refresh)
                except Exception as e:
                    logger.error("%s: aggregation failed: %s", identity.id, e, exc_info=True)
                    return None

        results = await asyncio.gather(*(_fetch_one(i) for i in identities))

        report = FetchReport()
        for identity, entity in zip(identities, results):
            if entity is None:
                report.failed.append(identity.id)
            else:
                report.entities.append(entity)

        if report.failed:
            logger.warning("No data for %d/%d identities: %s", len(report.failed), len(identities), ", ".join(report.failed))
        logger.info("Aggregated %d/%d entities", len(report.entities), len(identities))
        return report

    async def _aggregate(self, identity: Identity, adapters: list[SourceAdapter]) -> Entity | None:
        params = self.params_factory()
        results = await asyncio.gather(
            *(adapter.fetch(identity, params) for adapter in adapters),
            return_exceptions=True,
        )
        fetched_at = self.now()

        owned: dict[str, Any] = {}
        provenance: list[Provenance] = []
        for adapter, result in zip(adapters, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self._log_adapter_failure(identity, adapter, result)
                continue
            if not _has_data(result):
                logger.debug("%s: %s returned no data", identity.id, adapter.name)
                continue
            owned[adapter.field] = result
            provenance.append(
                Provenance(
                    source=adapter.name,
                    fields=(adapter.field,),
                    fetched_at=fetched_at,
                    url=adapter.url_for(identity),
                )
            )

        if not owned:
            logger.warning("%s: all %d adapters failed or returned nothing", identity.id, len(adapters))
            return None

        return self._merge(identity, owned, provenance)

    def _log_adapter_failure(self, identity: Identity, adapter: SourceAdapter, error: Exception) -> None:
        if isinstance(error, TransportError):
            logger.warning("%s: %s transport failure: %s", identity.id, adapter.name, error)
        elif isinstance(error, ParseError):
            logger.warning("%s: %s parse failure: %s", identity.id, adapter.name, error)
        else:
            logger.error("%s: %s failed unexpectedly: %s", identity.id, adapter.name, error, exc_info=error)

    def _merge(self, identity: Identity, owned: dict[str, Any], provenance: list[Provenance]) -> Entity:
        profile: ProfileRecord = owned.get(FIELD_PROFILE) or ProfileRecord(
            name=identity.name,
            party=identity.party,
            region=identity.region,
            position=identity.position,
            photo_url=identity.photo_url,
        )
        spend = tuple(owned.get(FIELD_SPEND) or ())
        staff: StaffStats = owned.get(FIELD_STAFF) or StaffStats()
        amendments: AmendmentSummary = owned.get(FIELD_AMENDMENTS) or AmendmentSummary()

        region = profile.region or identity.region
        ceiling = monthly_ceiling(region, identity.chamber)
        history = monthly_history(spend)
        rating = compute_efficiency_rating(
            spend_utilization(history, ceiling),
            staff_cost_utilization(staff),
        )

        return Entity(
            id=identity.id,
            name=profile.name or identity.name,
            party=profile.party or identity.party,
            tier=identity.tier,
            region=region,
            position=profile.position or identity.position,
            photo_url=profile.photo_url or identity.photo_url,
            spend_records=spend,
            monthly_history=history,
            spend_total=round(sum(m.amount for m in history), 2),
            spend_limit=round(ceiling * 12, 2),
            staff_stats=staff,
            amendments=amendments,
            efficiency_rating=rating,
            red_flags=tuple(generate_red_flags(spend, staff, self.policy)),
            key_findings=tuple(describe_transaction(r) for r in top_transactions(spend)),
            provenance=tuple(provenance),
            last_updated=self._stamp(identity.id),
        )

    def _static_profile(self, identity: Identity) -> Entity:
        """Profile for officials with no integrated source."""
        stamp = self._stamp(identity.id)
        return Entity(
            id=identity.id,
            name=identity.name,
            party=identity.party,
            tier=identity.tier,
            region=identity.region,
            position=identity.position,
            photo_url=identity.photo_url,
            efficiency_rating=EfficiencyRating.AVERAGE,
            key_findings=STATIC_PROFILE_FINDINGS,
            provenance=(
                Provenance(
                    source="Portal Transparência PE",
                    fields=(FIELD_PROFILE,),
                    fetched_at=stamp,
                    url=identity.profile_url or STATE_TRANSPARENCY_URL,
                ),
            ),
            last_updated=stamp,
        )

    def _remember(self, entity: Entity) -> None:
        previous = self._last_stamp.get(entity.id)
        if previous is None or entity.last_updated > previous:
            self._last_stamp[entity.id] = entity.last_updated

    def _stamp(self, entity_id: str) -> datetime:
        """A last_updated strictly later than any seen for this entity."""
        stamp = self.now()
        previous = self._last_stamp.get(entity_id)
        if previous is not None and stamp <= previous:
            stamp = previous + _TICK
        self._last_stamp[entity_id] = stamp
        return stamp
