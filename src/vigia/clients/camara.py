"""Câmara dos Deputados open data client.

Provides async access to the lower-house endpoints the engine needs:
- Deputy identity (name, party, UF, photo)
- CEAP expense transactions per year
- Current delegation of a UF (used as the health probe target)

API Documentation: https://dadosabertos.camara.leg.br/swagger/api.html

Usage:
    from vigia.clients.camara import CamaraClient

    async with CamaraClient() as client:
        deputy = await client.get_deputy(204534)
        expenses = await client.get_expenses(204534, year=2025)
"""

import logging
from typing import Any

from vigia.clients.base import BaseAsyncClient


logger = logging.getLogger(__name__)

CAMARA_BASE_URL = "https://dadosabertos.camara.leg.br/api/v2"

# The API caps itens at 100 per page
_PAGE_SIZE = 100
_MAX_PAGES = 10


def deputy_page_url(deputy_id: int) -> str:
    """Public profile page of a deputy."""
    return f"https://www.camara.leg.br/deputados/{deputy_id}"


def deputy_photo_url(deputy_id: int) -> str:
    """Official portrait, used when the API omits urlFoto."""
    return f"https://www.camara.leg.br/internet/deputado/bandep/{deputy_id}.jpg"


class CamaraClient(BaseAsyncClient):
    """Async client for the Câmara dos Deputados API.

    Args:
        rate_limit: Max requests per second (default: 5)
    """

    source_name = "camara"

    def __init__(self, rate_limit: int = 5) -> None:
        super().__init__(base_url=CAMARA_BASE_URL, rate_limit=rate_limit)

    async def get_deputy(self, deputy_id: int) -> dict[str, Any]:
        """Get a deputy's detail record.

        Returns:
            Dict with 'dados' holding nomeCivil and ultimoStatus
            (nome, siglaPartido, siglaUf, urlFoto).
        """
        return await self.get(f"/deputados/{deputy_id}")

    async def get_expenses(self, deputy_id: int, year: int) -> list[dict[str, Any]]:
        """Get every CEAP transaction of a deputy for one year.

        Follows pagination until a short page, capped at ten pages.

        Returns:
            List of raw expense dicts.
            Each has: ano, mes, tipoDespesa, dataDocumento, valorLiquido,
            nomeFornecedor, urlDocumento.
        """
        rows: list[dict[str, Any]] = []
        for page in range(1, _MAX_PAGES + 1):
            params: dict[str, Any] = {
                "ano": year,
                "itens": _PAGE_SIZE,
                "pagina": page,
                "ordem": "DESC",
                "ordenarPor": "valorLiquido",
            }
            result = await self.get(f"/deputados/{deputy_id}/despesas", params=params)
            batch = result.get("dados", []) if isinstance(result, dict) else []
            rows.extend(batch)
            if len(batch) < _PAGE_SIZE:
                break
        else:
            logger.warning("Expense pagination cap reached for deputy %d (%d)", deputy_id, year)
        return rows

    async def list_deputies(self, uf: str) -> dict[str, Any]:
        """List the sitting deputies of a UF."""
        return await self.get("/deputados", params={"siglaUf": uf.upper()})

    async def ping(self) -> int:
        """Reachability probe on the deputies listing."""
        return await self.head("/deputados", params={"itens": 1})
