"""Câmara dos Deputados adapters: deputy profile and CEAP expenses."""

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from vigia.clients.camara import CamaraClient, deputy_page_url, deputy_photo_url
from vigia.config import settings
from vigia.models import Chamber, Identity, ProfileRecord, SpendRecord
from vigia.sources.base import (
    FIELD_PROFILE,
    FIELD_SPEND,
    Err,
    FetchParams,
    Ok,
    ParseError,
    ParseResult,
    SourceAdapter,
    unwrap,
)


logger = logging.getLogger(__name__)

SOURCE = "camara"


def _default_client() -> CamaraClient:
    return CamaraClient(rate_limit=settings.camara_rate_limit)


def _parse_date(raw: Any) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        return None


def parse_deputy(payload: Any) -> ParseResult[ProfileRecord]:
    """Parse GET /deputados/{id}."""
    if not isinstance(payload, dict) or not isinstance(payload.get("dados"), dict):
        return Err(ParseError(SOURCE, "deputy payload has no 'dados' object"))

    data = payload["dados"]
    status = data.get("ultimoStatus") or {}
    name = status.get("nome") or status.get("nomeEleitoral") or data.get("nomeCivil")
    if not name:
        return Err(ParseError(SOURCE, "deputy payload has no name"))

    deputy_id = data.get("id")
    photo = status.get("urlFoto") or (deputy_photo_url(deputy_id) if deputy_id else "")
    return Ok(
        ProfileRecord(
            name=name,
            party=status.get("siglaPartido") or "",
            region=status.get("siglaUf") or "",
            position="Deputado Federal",
            photo_url=photo,
            url=deputy_page_url(deputy_id) if deputy_id else "",
        )
    )


def parse_expenses(rows: Any) -> ParseResult[list[SpendRecord]]:
    """Parse the 'dados' rows of GET /deputados/{id}/despesas.

    Rows without a usable year, month or amount are skipped. The parse
    fails only when the payload is not a list, or when no row survives.
    """
    if not isinstance(rows, list):
        return Err(ParseError(SOURCE, f"expected a list of expenses, got {type(rows).__name__}"))

    records: list[SpendRecord] = []
    for row in rows:
        try:
            records.append(
                SpendRecord(
                    year=int(row["ano"]),
                    month=int(row["mes"]),
                    category=str(row.get("tipoDespesa") or "OUTROS"),
                    amount=float(row["valorLiquido"]),
                    date=_parse_date(row.get("dataDocumento")),
                    supplier=row.get("nomeFornecedor") or "",
                    document_url=row.get("urlDocumento") or "",
                    source=SOURCE,
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("Skipping malformed Câmara expense row %r: %s", row, e)

    if rows and not records:
        return Err(ParseError(SOURCE, f"none of {len(rows)} expense rows could be parsed"))
    return Ok(records)


class _CamaraAdapter(SourceAdapter):
    def __init__(self, client_factory: Callable[[], CamaraClient] | None = None) -> None:
        self._client_factory = client_factory or _default_client

    def applies_to(self, identity: Identity) -> bool:
        return identity.chamber == Chamber.LOWER and identity.source_id is not None

    def url_for(self, identity: Identity) -> str:
        return deputy_page_url(identity.source_id)


class CamaraProfileAdapter(_CamaraAdapter):
    name = "Câmara dos Deputados"
    field = FIELD_PROFILE

    async def fetch(self, identity: Identity, params: FetchParams) -> ProfileRecord:
        async with self._client_factory() as client:
            payload = await client.get_deputy(identity.source_id)
        return unwrap(parse_deputy(payload))


class CamaraExpensesAdapter(_CamaraAdapter):
    name = "CEAP - Câmara dos Deputados"
    field = FIELD_SPEND

    async def fetch(self, identity: Identity, params: FetchParams) -> list[SpendRecord]:
        async with self._client_factory() as client:
            per_year = await asyncio.gather(
                *(client.get_expenses(identity.source_id, year) for year in params.years)
            )

        records: list[SpendRecord] = []
        for rows in per_year:
            records.extend(unwrap(parse_expenses(rows)))
        logger.debug("%s: %d Câmara expense records", identity.id, len(records))
        return records
