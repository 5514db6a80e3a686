"""Senado Federal adapters: senator profile and expenses."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from vigia.clients.senado import SenadoClient, senator_page_url, senator_photo_url
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
    parse_brl,
    unwrap,
)


logger = logging.getLogger(__name__)

SOURCE = "senado"


def _default_client() -> SenadoClient:
    return SenadoClient(rate_limit=settings.senado_rate_limit)


def _dig(payload: Any, *path: str) -> Any:
    node = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def parse_senator(payload: Any) -> ParseResult[ProfileRecord]:
    """Parse GET /senador/{codigo}."""
    ident = _dig(payload, "DetalheParlamentar", "Parlamentar", "IdentificacaoParlamentar")
    if not isinstance(ident, dict):
        return Err(ParseError(SOURCE, "missing DetalheParlamentar.Parlamentar.IdentificacaoParlamentar"))

    name = ident.get("NomeParlamentar") or ident.get("NomeCompletoParlamentar")
    if not name:
        return Err(ParseError(SOURCE, "senator payload has no name"))

    code = ident.get("CodigoParlamentar")
    photo = ident.get("UrlFotoParlamentar") or (senator_photo_url(int(code)) if code else "")
    return Ok(
        ProfileRecord(
            name=name,
            party=ident.get("SiglaPartidoParlamentar") or "",
            region=ident.get("UfParlamentar") or "",
            position="Senador",
            photo_url=photo,
            url=ident.get("UrlPaginaParlamentar") or (senator_page_url(int(code)) if code else ""),
        )
    )


def parse_expenses(payload: Any) -> ParseResult[list[SpendRecord]]:
    """Parse GET /senador/{codigo}/despesas.

    A senator with no expenses has no Despesas node, which parses as an
    empty list. Despesa is a bare object when there is one transaction.
    """
    if not isinstance(payload, dict) or "DespesasParlamentar" not in payload:
        return Err(ParseError(SOURCE, "missing DespesasParlamentar"))

    raw = _dig(payload, "DespesasParlamentar", "Parlamentar", "Despesas", "Despesa")
    if raw is None:
        return Ok([])
    rows = raw if isinstance(raw, list) else [raw]

    records: list[SpendRecord] = []
    for row in rows:
        try:
            records.append(
                SpendRecord(
                    year=int(row["Ano"]),
                    month=int(row["Mes"]),
                    category=str(row.get("TipoDespesa") or "OUTROS"),
                    amount=parse_brl(row.get("Valor")),
                    supplier=row.get("Fornecedor") or "",
                    document_url=row.get("UrlDocumento") or "",
                    source=SOURCE,
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("Skipping malformed Senado expense row %r: %s", row, e)

    if rows and not records:
        return Err(ParseError(SOURCE, f"none of {len(rows)} expense rows could be parsed"))
    return Ok(records)


class _SenadoAdapter(SourceAdapter):
    def __init__(self, client_factory: Callable[[], SenadoClient] | None = None) -> None:
        self._client_factory = client_factory or _default_client

    def applies_to(self, identity: Identity) -> bool:
        return identity.chamber == Chamber.UPPER and identity.source_id is not None

    def url_for(self, identity: Identity) -> str:
        return senator_page_url(identity.source_id)


class SenadoProfileAdapter(_SenadoAdapter):
    name = "Senado Federal"
    field = FIELD_PROFILE

    async def fetch(self, identity: Identity, params: FetchParams) -> ProfileRecord:
        async with self._client_factory() as client:
            payload = await client.get_senator(identity.source_id)
        return unwrap(parse_senator(payload))


class SenadoExpensesAdapter(_SenadoAdapter):
    name = "Despesas - Senado Federal"
    field = FIELD_SPEND

    async def fetch(self, identity: Identity, params: FetchParams) -> list[SpendRecord]:
        async with self._client_factory() as client:
            payloads = await asyncio.gather(
                *(client.get_expenses(identity.source_id, year) for year in params.years)
            )

        records: list[SpendRecord] = []
        for payload in payloads:
            records.extend(unwrap(parse_expenses(payload)))
        return records
