"""Portal da Transparência API client.

Provides async access to budget amendments (emendas parlamentares) authored
by a legislator. Every request needs a free API key sent in the
``chave-api-dados`` header.

API Documentation: https://api.portaldatransparencia.gov.br/swagger-ui/index.html

Usage:
    from vigia.config import settings
    from vigia.clients.transparencia import TransparenciaClient

    async with TransparenciaClient(settings.transparencia_api_key) as client:
        rows = await client.get_amendments("HUMBERTO COSTA", year=2025)
"""

import logging
from typing import Any

from vigia.clients.base import BaseAsyncClient, TransportError


logger = logging.getLogger(__name__)

TRANSPARENCIA_BASE_URL = "https://api.portaldatransparencia.gov.br/api-de-dados"

_MAX_PAGES = 10


class TransparenciaClient(BaseAsyncClient):
    """Async client for the Portal da Transparência.

    Args:
        api_key: Portal API key (from settings.transparencia_api_key)
        rate_limit: Max requests per second (default: 3)
    """

    source_name = "transparencia"

    def __init__(self, api_key: str, rate_limit: int = 3) -> None:
        super().__init__(
            base_url=TRANSPARENCIA_BASE_URL,
            headers={"chave-api-dados": api_key},
            rate_limit=rate_limit,
        )

    async def get_amendments(self, author: str, year: int) -> list[dict[str, Any]]:
        """Get every amendment an author filed in a year.

        Pages until an empty page, capped at ten pages. A failure on the
        first page raises; a failure on a later page keeps what was read.

        Returns:
            List of raw amendment dicts.
            Each has: codigoEmenda, ano, autor, funcao, localidade,
            valorEmpenhado, valorLiquidado, valorPago (BRL strings).
        """
        rows: list[dict[str, Any]] = []
        for page in range(1, _MAX_PAGES + 1):
            params = {"ano": year, "nomeAutor": author, "pagina": page}
            try:
                batch = await self.get("/emendas", params=params)
            except TransportError:
                if page == 1:
                    raise
                logger.warning("Stopping amendment pagination for %s at page %d", author, page)
                break
            if not isinstance(batch, list) or not batch:
                break
            rows.extend(batch)
        return rows

    async def ping(self) -> int:
        """Key-authenticated reachability probe."""
        return await self.head("/servidores", params={"pagina": 1, "quantidade": 1})
