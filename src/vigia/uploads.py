"""Contract for user-uploaded amendment spreadsheets.

A SpreadsheetParser turns the raw text of a Portal da Transparência export
into typed rows; detecting which column is which is the parser's own
business. Everything after that is shared: filtering and the grouped
summaries by author, spending area (função) and locality, built with
pandas.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import pandas as pd
from pydantic import BaseModel, ConfigDict

from vigia.config import settings


# Localities counted as in-state for the tracked UF
_IN_STATE_MARKERS = {
    "PE": ("PERNAMBUCO", " - PE", "RECIFE"),
}


class UploadRecord(BaseModel):
    """One amendment row from a spreadsheet."""

    model_config = ConfigDict(frozen=True)

    code: str = ""
    year: int
    author: str
    region: str = ""
    category: str = ""
    committed: float = 0.0
    paid: float = 0.0


@dataclass(frozen=True)
class UploadFilter:
    """Optional row filters. Text filters are case-insensitive substrings."""

    author: str | None = None
    year: int | None = None
    region: str | None = None

    def matches(self, record: UploadRecord) -> bool:
        if self.author and self.author.strip().upper() not in record.author.upper():
            return False
        if self.year is not None and record.year != self.year:
            return False
        if self.region and self.region.strip().upper() not in record.region.upper():
            return False
        return True


@dataclass
class UploadResult:
    """Parsed rows plus grouped summaries.

    Attributes:
        records: Rows that passed the filters
        by_author: author, count, committed, paid, execution_pct
        by_category: category, count, committed, paid
        by_region: region, count, committed, in_state
        errors: Human-readable parse problems, one per rejected row
        total_rows: Rows read before filtering
    """

    records: list[UploadRecord] = field(default_factory=list)
    by_author: pd.DataFrame = field(default_factory=pd.DataFrame)
    by_category: pd.DataFrame = field(default_factory=pd.DataFrame)
    by_region: pd.DataFrame = field(default_factory=pd.DataFrame)
    errors: list[str] = field(default_factory=list)
    total_rows: int = 0


class SpreadsheetParser(Protocol):
    def parse(self, text: str, filters: UploadFilter | None = None) -> UploadResult: ...


def _group(frame: pd.DataFrame, key: str) -> pd.DataFrame:
    """Sum committed/paid per case-insensitive key, largest committed first."""
    labelled = frame[frame[key].str.strip() != ""].assign(_key=lambda f: f[key].str.strip().str.upper())
    grouped = labelled.groupby("_key", sort=False).agg(
        **{key: (key, "first")},
        count=(key, "size"),
        committed=("committed", "sum"),
        paid=("paid", "sum"),
    )
    return grouped.sort_values("committed", ascending=False).reset_index(drop=True)


def summarize(
    records: Iterable[UploadRecord],
    filters: UploadFilter | None = None,
    errors: Sequence[str] = (),
    state_code: str | None = None,
) -> UploadResult:
    """Filter already-parsed rows and build the grouped summaries."""
    records = list(records)
    kept = [r for r in records if filters is None or filters.matches(r)]
    result = UploadResult(records=kept, errors=list(errors), total_rows=len(records))
    if not kept:
        return result

    frame = pd.DataFrame([r.model_dump() for r in kept])

    by_author = _group(frame, "author")
    by_author["execution_pct"] = (
        (by_author["paid"] / by_author["committed"].where(by_author["committed"] > 0) * 100)
        .round()
        .fillna(0)
        .astype(int)
    )
    result.by_author = by_author

    result.by_category = _group(frame, "category")

    markers = _IN_STATE_MARKERS.get((state_code or settings.state_code).upper(), ())
    by_region = _group(frame, "region").drop(columns=["paid"])
    by_region["in_state"] = by_region["region"].str.upper().apply(
        lambda name: any(marker in name for marker in markers)
    )
    result.by_region = by_region
    return result
