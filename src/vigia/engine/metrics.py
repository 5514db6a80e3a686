"""Utilization metrics and the five-tier efficiency rating.

Efficiency combines two ratios of actual usage to an allowed ceiling:

    spend utilization        mean monthly spend / monthly quota ceiling
    staff cost utilization   monthly staff cost / allowed monthly staff cost

Both may exceed 1.0. Their mean is bucketed with inclusive upper bounds, so
a value sitting exactly on a threshold belongs to the better tier:

    <= 0.50  EXCELLENT
    <= 0.70  GOOD
    <= 0.85  AVERAGE
    <= 0.95  BELOW_AVERAGE
    else     POOR
"""

from collections import defaultdict
from collections.abc import Iterable

from vigia.models import Chamber, EfficiencyRating, MonthlySpend, SpendRecord, StaffStats


# Ordered (upper bound, tier) pairs, best first
EFFICIENCY_THRESHOLDS: tuple[tuple[float, EfficiencyRating], ...] = (
    (0.50, EfficiencyRating.EXCELLENT),
    (0.70, EfficiencyRating.GOOD),
    (0.85, EfficiencyRating.AVERAGE),
    (0.95, EfficiencyRating.BELOW_AVERAGE),
)

# Monthly CEAP ceiling per UF for the lower house (R$, 2024/2025 values)
# Source: https://www.camara.leg.br/transparencia/gastos-parlamentares
CEAP_MONTHLY_CEILING: dict[str, float] = {
    "AC": 45612.53, "AL": 41676.13, "AM": 44735.13, "AP": 45612.53,
    "BA": 40971.73, "CE": 43693.73, "DF": 31722.13, "ES": 38050.93,
    "GO": 35909.33, "MA": 44735.13, "MG": 37043.53, "MS": 40449.73,
    "MT": 40449.73, "PA": 44735.13, "PB": 43693.73, "PE": 42622.93,
    "PI": 43693.73, "PR": 39059.33, "RJ": 35759.33, "RN": 43693.73,
    "RO": 45612.53, "RR": 45612.53, "RS": 42622.93, "SC": 40449.73,
    "SE": 41676.13, "SP": 37043.53, "TO": 43693.73,
}
CEAP_NATIONAL_AVERAGE = 40943.00

# The Senate publishes no per-UF table; approximate monthly quota
SENATE_MONTHLY_CEILING = 50000.00

HISTORY_MONTHS = 12


def compute_efficiency_rating(
    spend_utilization: float,
    staff_cost_utilization: float,
) -> EfficiencyRating:
    """Bucket the mean of two utilization ratios into a tier.

    Args:
        spend_utilization: Actual spend / spend ceiling (>= 0)
        staff_cost_utilization: Actual staff cost / staff cost ceiling (>= 0)

    Returns:
        EfficiencyRating, EXCELLENT when the mean is at most 0.50
    """
    mean = (spend_utilization + staff_cost_utilization) / 2
    for upper, tier in EFFICIENCY_THRESHOLDS:
        if mean <= upper:
            return tier
    return EfficiencyRating.POOR


def monthly_ceiling(region: str, chamber: Chamber | None = Chamber.LOWER) -> float:
    """Monthly spending quota for an office.

    Unknown UFs fall back to the national average.
    """
    if chamber == Chamber.UPPER:
        return SENATE_MONTHLY_CEILING
    return CEAP_MONTHLY_CEILING.get(region.upper(), CEAP_NATIONAL_AVERAGE)


def monthly_history(
    records: Iterable[SpendRecord],
    months: int = HISTORY_MONTHS,
) -> tuple[MonthlySpend, ...]:
    """Spend summed per calendar month, oldest first, last ``months`` only."""
    totals: dict[tuple[int, int], float] = defaultdict(float)
    for record in records:
        totals[(record.year, record.month)] += record.amount

    recent = sorted(totals.items())[-months:] if months > 0 else []
    return tuple(
        MonthlySpend(month=f"{month:02d}/{year}", amount=round(amount, 2))
        for (year, month), amount in recent
    )


def spend_utilization(history: Iterable[MonthlySpend], ceiling: float) -> float:
    """Mean monthly spend over the months reported, divided by the ceiling."""
    amounts = [m.amount for m in history]
    if not amounts or ceiling <= 0:
        return 0.0
    return (sum(amounts) / len(amounts)) / ceiling


def staff_cost_utilization(stats: StaffStats) -> float:
    """Monthly staff cost over the allowed monthly cost, 0.0 when not reported."""
    if stats.max_monthly_cost <= 0:
        return 0.0
    return stats.monthly_cost / stats.max_monthly_cost


def category_breakdown(records: Iterable[SpendRecord]) -> list[tuple[str, float, float]]:
    """(category, total, share of overall spend), largest first."""
    totals: dict[str, float] = defaultdict(float)
    for record in records:
        totals[record.category] += record.amount

    overall = sum(totals.values())
    rows = [
        (category, round(total, 2), total / overall if overall > 0 else 0.0)
        for category, total in totals.items()
    ]
    return sorted(rows, key=lambda row: row[1], reverse=True)


def top_transactions(records: Iterable[SpendRecord], n: int = 3) -> list[SpendRecord]:
    """The ``n`` largest individual transactions."""
    return sorted(records, key=lambda r: r.amount, reverse=True)[:n]


def format_brl(value: float) -> str:
    """Format as Brazilian currency, e.g. 1234.5 -> "R$ 1.234,50"."""
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {text}"


def describe_transaction(record: SpendRecord) -> str:
    """One-line summary used in key findings."""
    text = f"{record.category}: {format_brl(record.amount)}"
    if record.supplier:
        text += f" - {record.supplier}"
    return text
