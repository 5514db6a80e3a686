"""Source health monitor.

Runs one lightweight reachability probe per source concurrently, each
bounded by settings.health_timeout, and reports a vector with an entry for
every source. A probe that raises or times out is reported unreachable;
``probe()`` itself never raises.

Usage:
    monitor = HealthMonitor()
    vector = await monitor.probe()
    for name, status in vector.items():
        print(name, "up" if status.reachable else "down")
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone

from vigia.clients import CamaraClient, SenadoClient, TransparenciaClient, TSEClient
from vigia.config import settings


logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class SourceHealth:
    reachable: bool
    last_probed_at: datetime
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "reachable": self.reachable,
            "last_probed_at": self.last_probed_at.isoformat(),
            "detail": self.detail,
        }


HealthVector = dict[str, SourceHealth]


async def probe_camara() -> bool:
    async with CamaraClient(rate_limit=settings.camara_rate_limit) as client:
        await client.ping()
    return True


async def probe_senado() -> bool:
    async with SenadoClient(rate_limit=settings.senado_rate_limit) as client:
        await client.ping()
    return True


async def probe_tse() -> bool:
    """Reachable once the request completes, published or not."""
    async with TSEClient(rate_limit=settings.tse_rate_limit) as client:
        await client.election_published(settings.future_election_year, settings.state_code)
    return True


async def probe_transparencia() -> bool:
    """Needs the API key; without one the portal counts as unreachable."""
    if not settings.transparencia_api_key:
        return False
    async with TransparenciaClient(
        settings.transparencia_api_key, rate_limit=settings.transparencia_rate_limit
    ) as client:
        await client.ping()
    return True


def default_probes() -> dict[str, Probe]:
    return {
        "camara": probe_camara,
        "senado": probe_senado,
        "tse": probe_tse,
        "transparencia": probe_transparencia,
    }


class HealthMonitor:
    """Concurrent, timeout-bounded reachability probes.

    Args:
        probes: Source name -> async probe returning reachability
            (default: the four shipped sources)
        timeout: Per-probe timeout in seconds (default: settings.health_timeout)
        now: Timestamp source for last_probed_at
    """

    def __init__(
        self,
        probes: Mapping[str, Probe] | None = None,
        timeout: float | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.probes = dict(probes) if probes is not None else default_probes()
        self.timeout = timeout if timeout is not None else settings.health_timeout
        self.now = now
        self.last: HealthVector = {}

    async def _run(self, name: str, probe: Probe) -> SourceHealth:
        try:
            reachable = bool(await asyncio.wait_for(probe(), timeout=self.timeout))
            detail = "" if reachable else "unavailable"
        except asyncio.TimeoutError:
            reachable, detail = False, f"timed out after {self.timeout:.1f}s"
        except Exception as e:
            reachable, detail = False, str(e) or type(e).__name__
        if not reachable:
            logger.info("Source %s unreachable: %s", name, detail)
        return SourceHealth(reachable=reachable, last_probed_at=self.now(), detail=detail)

    async def probe(self) -> HealthVector:
        """Probe every source. Always returns one entry per source."""
        names = list(self.probes)
        results = await asyncio.gather(
            *(self._run(name, self.probes[name]) for name in names),
            return_exceptions=True,
        )

        vector: HealthVector = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error("Probe %s crashed: %s", name, result)
                result = SourceHealth(reachable=False, last_probed_at=self.now(), detail=str(result))
            vector[name] = result

        self.last = vector
        logger.debug("Health: %s", {n: s.reachable for n, s in vector.items()})
        return vector
