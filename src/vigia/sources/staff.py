"""Declared office staffing, read from a CSV roster.

Neither chamber publishes advisor counts per office in its open data API,
so staffing comes from a maintained file with one row per entity:

    entity_id,staff_count,max_staff,monthly_cost,max_monthly_cost
    deputado_204534,22,25,98000.00,118376.13

The file is read with pandas in a worker thread on every fetch; it is small
and may be edited between refreshes.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from vigia.config import settings
from vigia.models import Chamber, Identity, StaffStats
from vigia.sources.base import (
    FIELD_STAFF,
    Err,
    FetchParams,
    Ok,
    ParseError,
    ParseResult,
    SourceAdapter,
    unwrap,
)


logger = logging.getLogger(__name__)

SOURCE = "staff_roster"

# Lower-house office ceilings (Ato da Mesa 72/1997, current values)
MAX_LOWER_HOUSE_STAFF = 25
MAX_LOWER_HOUSE_STAFF_COST = 118_376.13

REQUIRED_COLUMNS = ("entity_id", "staff_count", "max_staff", "monthly_cost", "max_monthly_cost")


def parse_roster_row(frame: pd.DataFrame, entity_id: str) -> ParseResult[StaffStats | None]:
    """Pick one entity's row out of the roster frame.

    Returns Ok(None) when the entity is not listed.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        return Err(ParseError(SOURCE, f"roster is missing columns {missing}"))

    rows = frame[frame["entity_id"].astype(str) == entity_id]
    if rows.empty:
        return Ok(None)
    if len(rows) > 1:
        logger.warning("Roster lists %s %d times, using the last row", entity_id, len(rows))

    row: dict[str, Any] = rows.iloc[-1].to_dict()
    try:
        return Ok(
            StaffStats(
                staff_count=int(row["staff_count"]),
                max_staff=int(row["max_staff"]),
                monthly_cost=float(row["monthly_cost"]),
                max_monthly_cost=float(row["max_monthly_cost"]),
            )
        )
    except (TypeError, ValueError) as e:
        return Err(ParseError(SOURCE, f"bad roster row for {entity_id}: {e}"))


class StaffRosterAdapter(SourceAdapter):
    """Staffing for lower-house deputies, from settings.staff_roster_path."""

    name = "Quadro de pessoal declarado"
    field = FIELD_STAFF

    def __init__(self, path: str | Path | None = None) -> None:
        raw = path if path is not None else settings.staff_roster_path
        self.path = Path(raw) if raw else None

    def applies_to(self, identity: Identity) -> bool:
        return self.path is not None and identity.chamber == Chamber.LOWER

    def url_for(self, identity: Identity) -> str:
        return self.path.as_uri() if self.path and self.path.is_absolute() else str(self.path or "")

    def _read(self) -> pd.DataFrame:
        return pd.read_csv(self.path)

    async def fetch(self, identity: Identity, params: FetchParams) -> StaffStats | None:
        if not self.path.exists():
            raise ParseError(SOURCE, f"roster file not found: {self.path}")
        frame = await asyncio.to_thread(self._read)
        return unwrap(parse_roster_row(frame, identity.id))
