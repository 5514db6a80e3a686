"""Domain records for Vigia.

Every record is an immutable pydantic model. Immutability gives two things
the engine relies on: exact-duplicate removal via hashing (transactions and
red flags), and lossless JSON round-tripping into the durable cache.

An Entity is never patched. Each successful aggregation builds a new one and
the cache replaces the previous value wholesale.
"""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JurisdictionTier(str, Enum):
    """Government sphere of a tracked official."""

    FEDERAL = "federal"
    STATE = "state"
    MUNICIPAL = "municipal"


class Chamber(str, Enum):
    """Federal legislative house (None for executive/local officials)."""

    LOWER = "camara"
    UPPER = "senado"


class Severity(str, Enum):
    """Red flag severity."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EfficiencyRating(str, Enum):
    """Five ordered tiers of combined spend/staffing utilization, best first."""

    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    BELOW_AVERAGE = "below_average"
    POOR = "poor"

    @property
    def rank(self) -> int:
        """1-based position, 1 = best tier."""
        return list(EfficiencyRating).index(self) + 1

    def get_description(self) -> str:
        """Get human-readable description of the tier."""
        descriptions = {
            EfficiencyRating.EXCELLENT: "High efficiency",
            EfficiencyRating.GOOD: "Good",
            EfficiencyRating.AVERAGE: "Average",
            EfficiencyRating.BELOW_AVERAGE: "Below average",
            EfficiencyRating.POOR: "Low efficiency",
        }
        return descriptions[self]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Identity(_Record):
    """A tracked official and how to reach them in each source.

    Attributes:
        id: Stable key, also the cache key (e.g. "deputado_204534")
        name: Display name
        tier: Jurisdiction tier, selects the adapter set
        chamber: Federal house, None for state/municipal officials
        source_id: Identifier inside the chamber's API
        region: UF
        position: Office held
        party: Known affiliation, used for static profiles
        photo_url: Known portrait, used for static profiles
        profile_url: Public page, used for static profiles
    """

    id: str
    name: str
    tier: JurisdictionTier
    chamber: Chamber | None = None
    source_id: int | None = None
    region: str = "PE"
    position: str = ""
    party: str = ""
    photo_url: str = ""
    profile_url: str = ""


class ProfileRecord(_Record):
    """Identity fields as reported by a chamber API."""

    name: str
    party: str
    region: str
    position: str = ""
    photo_url: str = ""
    url: str = ""


class SpendRecord(_Record):
    """One categorized expense transaction."""

    year: int
    month: int = Field(ge=1, le=12)
    category: str
    amount: float
    date: dt.date | None = None
    supplier: str = ""
    document_url: str = ""
    source: str = ""


class MonthlySpend(_Record):
    """Summed spend for one calendar month ("MM/YYYY")."""

    month: str
    amount: float


class StaffStats(_Record):
    """Office staffing utilization. Zeros mean "not reported"."""

    staff_count: int = 0
    max_staff: int = 0
    monthly_cost: float = 0.0
    max_monthly_cost: float = 0.0


class AmendmentSummary(_Record):
    """Budget amendments authored, summed over the fetched years."""

    count: int = 0
    total_committed: float = 0.0
    total_paid: float = 0.0
    top_areas: tuple[str, ...] = ()

    @property
    def execution_ratio(self) -> float:
        """Share of committed value actually paid."""
        if self.total_committed <= 0:
            return 0.0
        return self.total_paid / self.total_committed


class RedFlag(_Record):
    """A generated anomaly record."""

    category: str
    severity: Severity
    description: str
    detail: str = ""
    source: str = ""


class Provenance(_Record):
    """Which source contributed which fields, and when."""

    source: str
    fields: tuple[str, ...]
    fetched_at: dt.datetime
    url: str = ""


class Entity(_Record):
    """Canonical merged profile for one tracked official."""

    id: str
    name: str
    party: str = ""
    tier: JurisdictionTier
    region: str = ""
    position: str = ""
    photo_url: str = ""

    spend_records: tuple[SpendRecord, ...] = ()
    monthly_history: tuple[MonthlySpend, ...] = ()
    spend_total: float = 0.0
    spend_limit: float = 0.0

    staff_stats: StaffStats = StaffStats()
    amendments: AmendmentSummary = AmendmentSummary()

    efficiency_rating: EfficiencyRating = EfficiencyRating.AVERAGE
    red_flags: tuple[RedFlag, ...] = ()
    key_findings: tuple[str, ...] = ()

    provenance: tuple[Provenance, ...] = ()
    last_updated: dt.datetime

    @property
    def sources(self) -> list[str]:
        """Names of sources that contributed to this profile."""
        return [p.source for p in self.provenance]

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")
