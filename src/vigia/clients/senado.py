"""Senado Federal open data client.

Provides async access to the upper-house endpoints:
- Senator identity (IdentificacaoParlamentar)
- Expense transactions per year
- Current senators list (used as the health probe target)

API Documentation: https://legis.senado.leg.br/dadosabertos/docs/

Usage:
    from vigia.clients.senado import SenadoClient

    async with SenadoClient() as client:
        senator = await client.get_senator(4539)
"""

from typing import Any

from vigia.clients.base import BaseAsyncClient


SENADO_BASE_URL = "https://legis.senado.leg.br/dadosabertos"


def senator_photo_url(code: int) -> str:
    """Official portrait of a senator."""
    return f"https://www.senado.leg.br/senadores/img/fotos-oficiais/senador{code}.jpg"


def senator_page_url(code: int) -> str:
    """Public profile page of a senator."""
    return f"https://www25.senado.leg.br/web/senadores/senador/-/perfil/{code}"


class SenadoClient(BaseAsyncClient):
    """Async client for the Senado Federal API.

    Args:
        rate_limit: Max requests per second (default: 5)
    """

    source_name = "senado"

    def __init__(self, rate_limit: int = 5) -> None:
        super().__init__(base_url=SENADO_BASE_URL, rate_limit=rate_limit)

    async def get_senator(self, code: int) -> dict[str, Any]:
        """Get a senator's detail record.

        Returns:
            Dict shaped DetalheParlamentar.Parlamentar.IdentificacaoParlamentar.
        """
        return await self.get(f"/senador/{code}")

    async def get_expenses(self, code: int, year: int) -> dict[str, Any]:
        """Get a senator's expenses for one year.

        Returns:
            Dict shaped DespesasParlamentar.Parlamentar.Despesas.Despesa, where
            Despesa is a single object when there is one transaction and a
            list otherwise.
        """
        return await self.get(f"/senador/{code}/despesas", params={"ano": year})

    async def list_current(self) -> dict[str, Any]:
        """List senators currently in office."""
        return await self.get("/senador/lista/atual")

    async def ping(self) -> int:
        """Reachability probe on the current senators list."""
        return await self.head("/senador/lista/atual")
