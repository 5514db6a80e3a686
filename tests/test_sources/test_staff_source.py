"""Tests for the declared staff roster adapter."""

import pandas as pd
import pytest

from vigia.models import Chamber, Identity, JurisdictionTier, StaffStats
from vigia.sources.base import Err, FetchParams, Ok, ParseError
from vigia.sources.staff import StaffRosterAdapter, parse_roster_row


DEPUTY = Identity(
    id="deputado_204534",
    name="Deputada Teste",
    tier=JurisdictionTier.FEDERAL,
    chamber=Chamber.LOWER,
    source_id=204534,
)

ROSTER = (
    "entity_id,staff_count,max_staff,monthly_cost,max_monthly_cost\n"
    "deputado_204534,25,25,118000.00,118376.13\n"
    "deputado_1,10,25,40000.00,118376.13\n"
)


@pytest.fixture
def roster_path(tmp_path):
    path = tmp_path / "staff.csv"
    path.write_text(ROSTER, encoding="utf-8")
    return path


class TestParseRosterRow:
    def test_picks_entity_row(self):
        frame = pd.DataFrame(
            [{"entity_id": "deputado_1", "staff_count": 3, "max_staff": 25, "monthly_cost": 9.5, "max_monthly_cost": 10.0}]
        )

        assert parse_roster_row(frame, "deputado_1") == Ok(
            StaffStats(staff_count=3, max_staff=25, monthly_cost=9.5, max_monthly_cost=10.0)
        )

    def test_unlisted_entity_is_none(self):
        frame = pd.DataFrame(columns=["entity_id", "staff_count", "max_staff", "monthly_cost", "max_monthly_cost"])
        assert parse_roster_row(frame, "deputado_9") == Ok(None)

    def test_missing_columns_is_error(self):
        frame = pd.DataFrame([{"entity_id": "deputado_1"}])
        assert isinstance(parse_roster_row(frame, "deputado_1"), Err)


class TestStaffRosterAdapter:
    def test_needs_a_path_and_lower_house(self, roster_path):
        assert not StaffRosterAdapter(path="").applies_to(DEPUTY)
        adapter = StaffRosterAdapter(path=roster_path)
        assert adapter.applies_to(DEPUTY)
        assert not adapter.applies_to(DEPUTY.model_copy(update={"chamber": Chamber.UPPER}))

    @pytest.mark.asyncio
    async def test_fetch_reads_csv(self, roster_path):
        stats = await StaffRosterAdapter(path=roster_path).fetch(DEPUTY, FetchParams(years=(2025,)))

        assert stats.staff_count == 25
        assert stats.max_staff == 25
        assert stats.max_monthly_cost == pytest.approx(118376.13)

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path):
        adapter = StaffRosterAdapter(path=tmp_path / "absent.csv")

        with pytest.raises(ParseError, match="not found"):
            await adapter.fetch(DEPUTY, FetchParams(years=(2025,)))
