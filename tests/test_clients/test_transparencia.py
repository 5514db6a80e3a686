"""Tests for the Portal da Transparência client."""

import httpx
import pytest

from vigia.clients.base import TransportError
from vigia.clients.transparencia import TRANSPARENCIA_BASE_URL, TransparenciaClient


AMENDMENTS = f"{TRANSPARENCIA_BASE_URL}/emendas"


def _row(code: str) -> dict:
    return {"codigoEmenda": code, "valorEmpenhado": "1.000,00", "valorPago": "500,00"}


class TestTransparenciaClient:
    @pytest.mark.asyncio
    async def test_api_key_sent_in_header(self, respx_mock):
        route = respx_mock.get(AMENDMENTS).mock(return_value=httpx.Response(200, json=[]))

        async with TransparenciaClient(api_key="test_portal_key") as client:
            await client.get_amendments("HUMBERTO COSTA", year=2025)

        request = route.calls.last.request
        assert request.headers["chave-api-dados"] == "test_portal_key"
        assert request.url.params["nomeAutor"] == "HUMBERTO COSTA"

    @pytest.mark.asyncio
    async def test_pages_until_empty(self, respx_mock):
        def _page(request):
            page = int(request.url.params["pagina"])
            return httpx.Response(200, json=[_row(f"{page}-a"), _row(f"{page}-b")] if page <= 2 else [])

        route = respx_mock.get(AMENDMENTS).mock(side_effect=_page)

        async with TransparenciaClient(api_key="k") as client:
            rows = await client.get_amendments("X", year=2025)

        assert [r["codigoEmenda"] for r in rows] == ["1-a", "1-b", "2-a", "2-b"]
        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_first_page_error_raises(self, respx_mock):
        respx_mock.get(AMENDMENTS).mock(return_value=httpx.Response(401, text="Unauthorized"))

        async with TransparenciaClient(api_key="bad") as client:
            with pytest.raises(TransportError) as exc_info:
                await client.get_amendments("X", year=2025)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_later_page_error_keeps_rows(self, respx_mock):
        def _page(request):
            if request.url.params["pagina"] == "1":
                return httpx.Response(200, json=[_row("a")])
            return httpx.Response(400, text="bad page")

        respx_mock.get(AMENDMENTS).mock(side_effect=_page)

        async with TransparenciaClient(api_key="k") as client:
            rows = await client.get_amendments("X", year=2025)

        assert [r["codigoEmenda"] for r in rows] == ["a"]
