"""Tests for the Senado parse functions and adapters."""

import pytest

from vigia.models import Chamber, Identity, JurisdictionTier
from vigia.sources.base import Err, FetchParams, Ok
from vigia.sources.senado import SenadoExpensesAdapter, SenadoProfileAdapter, parse_expenses, parse_senator


SENATOR = Identity(
    id="senador_5008",
    name="Senador Teste",
    tier=JurisdictionTier.FEDERAL,
    chamber=Chamber.UPPER,
    source_id=5008,
)


def _expenses(despesa) -> dict:
    return {"DespesasParlamentar": {"Parlamentar": {"Despesas": {"Despesa": despesa}}}}


def _despesa(valor="1.234,56", mes=5) -> dict:
    return {"Ano": "2025", "Mes": str(mes), "TipoDespesa": "Passagens aéreas", "Valor": valor, "Fornecedor": "Cia"}


class TestParseSenator:
    def test_reads_identification(self):
        payload = {
            "DetalheParlamentar": {
                "Parlamentar": {
                    "IdentificacaoParlamentar": {
                        "CodigoParlamentar": "5008",
                        "NomeParlamentar": "Senador Teste",
                        "SiglaPartidoParlamentar": "PT",
                        "UfParlamentar": "PE",
                    }
                }
            }
        }

        profile = parse_senator(payload).value

        assert profile.name == "Senador Teste"
        assert profile.party == "PT"
        assert profile.position == "Senador"
        assert profile.photo_url.endswith("senador5008.jpg")

    def test_missing_identification_is_error(self):
        assert isinstance(parse_senator({"DetalheParlamentar": {}}), Err)


class TestParseExpenses:
    def test_list_of_expenses(self):
        records = parse_expenses(_expenses([_despesa(), _despesa("10,00", mes=6)])).value

        assert [r.amount for r in records] == [pytest.approx(1234.56), 10.0]
        assert records[1].month == 6
        assert records[0].source == "senado"

    def test_single_expense_object(self):
        records = parse_expenses(_expenses(_despesa())).value
        assert len(records) == 1

    def test_no_expenses_node_is_empty(self):
        assert parse_expenses({"DespesasParlamentar": {"Parlamentar": {}}}) == Ok([])

    def test_missing_root_is_error(self):
        assert isinstance(parse_expenses({}), Err)


class TestSenadoAdapters:
    def test_applies_only_to_upper_house(self):
        adapter = SenadoProfileAdapter()
        assert adapter.applies_to(SENATOR)
        assert not adapter.applies_to(SENATOR.model_copy(update={"chamber": Chamber.LOWER}))

    @pytest.mark.asyncio
    async def test_expenses_fetch_merges_years(self, mocker):
        client = mocker.AsyncMock()
        client.__aenter__.return_value = client
        client.get_expenses.side_effect = lambda code, year: _expenses(_despesa())
        adapter = SenadoExpensesAdapter(client_factory=lambda: client)

        records = await adapter.fetch(SENATOR, FetchParams(years=(2025, 2024)))

        assert len(records) == 2
        assert client.get_expenses.await_count == 2
