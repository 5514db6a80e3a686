"""Portal da Transparência adapter: budget amendments authored."""

import asyncio
import logging
from collections import Counter
from collections.abc import Callable
from typing import Any

from vigia.clients.transparencia import TransparenciaClient
from vigia.config import settings
from vigia.models import AmendmentSummary, Identity, JurisdictionTier
from vigia.sources.base import (
    FIELD_AMENDMENTS,
    Err,
    FetchParams,
    Ok,
    ParseError,
    ParseResult,
    SourceAdapter,
    parse_brl,
    unwrap,
)


logger = logging.getLogger(__name__)

SOURCE = "transparencia"

_TOP_AREAS = 3


def parse_amendments(rows: Any) -> ParseResult[AmendmentSummary | None]:
    """Sum committed/paid values and rank spending areas by committed value.

    An empty list parses as None (no amendments found).
    """
    if not isinstance(rows, list):
        return Err(ParseError(SOURCE, f"expected a list of amendments, got {type(rows).__name__}"))
    if not rows:
        return Ok(None)

    committed = 0.0
    paid = 0.0
    areas: Counter[str] = Counter()
    try:
        for row in rows:
            value = parse_brl(row.get("valorEmpenhado"))
            committed += value
            paid += parse_brl(row.get("valorPago"))
            areas[row.get("funcao") or "Não classificado"] += value
    except (AttributeError, ValueError) as e:
        return Err(ParseError(SOURCE, f"malformed amendment row: {e}"))

    return Ok(
        AmendmentSummary(
            count=len(rows),
            total_committed=round(committed, 2),
            total_paid=round(paid, 2),
            top_areas=tuple(area for area, _ in areas.most_common(_TOP_AREAS)),
        )
    )


class TransparenciaAmendmentsAdapter(SourceAdapter):
    """Amendments by author name; disabled without an API key."""

    name = "Portal da Transparência"
    field = FIELD_AMENDMENTS

    def __init__(
        self,
        api_key: str | None = None,
        client_factory: Callable[[], TransparenciaClient] | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.transparencia_api_key
        self._client_factory = client_factory or (
            lambda: TransparenciaClient(self.api_key, rate_limit=settings.transparencia_rate_limit)
        )

    def applies_to(self, identity: Identity) -> bool:
        return bool(self.api_key) and identity.tier == JurisdictionTier.FEDERAL

    def url_for(self, identity: Identity) -> str:
        return "https://portaldatransparencia.gov.br/emendas"

    async def fetch(self, identity: Identity, params: FetchParams) -> AmendmentSummary | None:
        author = identity.name.upper()
        async with self._client_factory() as client:
            per_year = await asyncio.gather(
                *(client.get_amendments(author, year) for year in params.years)
            )
        rows = [row for batch in per_year for row in batch]
        logger.debug("%s: %d amendment rows", identity.id, len(rows))
        return unwrap(parse_amendments(rows))
