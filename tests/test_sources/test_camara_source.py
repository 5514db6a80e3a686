"""Tests for the Câmara parse functions and adapters."""

from datetime import date

import pytest

from vigia.models import Chamber, Identity, JurisdictionTier
from vigia.sources.base import Err, FetchParams, Ok, ParseError
from vigia.sources.camara import (
    CamaraExpensesAdapter,
    CamaraProfileAdapter,
    parse_deputy,
    parse_expenses,
)


DEPUTY = Identity(
    id="deputado_204534",
    name="Tabata Teste",
    tier=JurisdictionTier.FEDERAL,
    chamber=Chamber.LOWER,
    source_id=204534,
)


def _row(**overrides) -> dict:
    row = {
        "ano": 2025,
        "mes": 3,
        "tipoDespesa": "COMBUSTÍVEIS E LUBRIFICANTES.",
        "dataDocumento": "2025-03-14T00:00:00",
        "valorLiquido": 250.0,
        "nomeFornecedor": "Posto Boa Viagem",
        "urlDocumento": "https://example.org/nf.pdf",
    }
    row.update(overrides)
    return row


class FakeCamaraClient:
    """Stands in for CamaraClient inside ``async with``."""

    def __init__(self, deputy=None, expenses=None):
        self.deputy = deputy
        self.expenses = expenses or {}
        self.expense_calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def get_deputy(self, deputy_id):
        return self.deputy

    async def get_expenses(self, deputy_id, year):
        self.expense_calls.append(year)
        return self.expenses.get(year, [])


class TestParseDeputy:
    def test_reads_last_status(self):
        payload = {
            "dados": {
                "id": 204534,
                "nomeCivil": "Nome Civil Completo",
                "ultimoStatus": {
                    "nome": "Tabata Teste",
                    "siglaPartido": "PSB",
                    "siglaUf": "PE",
                    "urlFoto": "https://example.org/foto.jpg",
                },
            }
        }

        result = parse_deputy(payload)

        assert isinstance(result, Ok)
        profile = result.value
        assert profile.name == "Tabata Teste"
        assert profile.party == "PSB"
        assert profile.region == "PE"
        assert profile.position == "Deputado Federal"
        assert profile.photo_url == "https://example.org/foto.jpg"
        assert profile.url.endswith("/deputados/204534")

    def test_falls_back_to_civil_name_and_official_photo(self):
        result = parse_deputy({"dados": {"id": 7, "nomeCivil": "Fulano"}})

        assert result.value.name == "Fulano"
        assert result.value.photo_url.endswith("/bandep/7.jpg")

    @pytest.mark.parametrize("payload", [None, [], {"dados": []}, {"dados": {"id": 1}}])
    def test_bad_shapes_are_errors(self, payload):
        assert isinstance(parse_deputy(payload), Err)


class TestParseExpenses:
    def test_parses_rows(self):
        result = parse_expenses([_row(), _row(valorLiquido=10.5, dataDocumento=None)])

        records = result.value
        assert len(records) == 2
        assert records[0].date == date(2025, 3, 14)
        assert records[0].supplier == "Posto Boa Viagem"
        assert records[0].source == "camara"
        assert records[1].date is None
        assert records[1].amount == 10.5

    def test_skips_malformed_rows(self):
        result = parse_expenses([_row(), {"ano": 2025}, _row(mes=13)])
        assert len(result.value) == 1

    def test_empty_list_is_ok(self):
        assert parse_expenses([]) == Ok([])

    def test_all_rows_malformed_is_error(self):
        assert isinstance(parse_expenses([{"foo": 1}]), Err)

    def test_non_list_is_error(self):
        assert isinstance(parse_expenses({"dados": []}), Err)


class TestCamaraAdapters:
    def test_applies_only_to_lower_house_with_id(self):
        adapter = CamaraProfileAdapter(client_factory=FakeCamaraClient)
        senator = DEPUTY.model_copy(update={"chamber": Chamber.UPPER})
        no_id = DEPUTY.model_copy(update={"source_id": None})

        assert adapter.applies_to(DEPUTY)
        assert not adapter.applies_to(senator)
        assert not adapter.applies_to(no_id)

    @pytest.mark.asyncio
    async def test_profile_fetch(self):
        client = FakeCamaraClient(deputy={"dados": {"id": 204534, "ultimoStatus": {"nome": "T", "siglaPartido": "PT"}}})
        adapter = CamaraProfileAdapter(client_factory=lambda: client)

        profile = await adapter.fetch(DEPUTY, FetchParams(years=(2025,)))

        assert profile.name == "T"
        assert profile.party == "PT"

    @pytest.mark.asyncio
    async def test_profile_fetch_raises_on_bad_payload(self):
        adapter = CamaraProfileAdapter(client_factory=lambda: FakeCamaraClient(deputy={}))

        with pytest.raises(ParseError):
            await adapter.fetch(DEPUTY, FetchParams(years=(2025,)))

    @pytest.mark.asyncio
    async def test_expenses_fetch_every_year(self):
        client = FakeCamaraClient(expenses={2025: [_row()], 2024: [_row(ano=2024), _row(ano=2024)]})
        adapter = CamaraExpensesAdapter(client_factory=lambda: client)

        records = await adapter.fetch(DEPUTY, FetchParams(years=(2025, 2024)))

        assert len(records) == 3
        assert sorted(client.expense_calls) == [2024, 2025]
