"""Red flag rules over spend and staffing data.

Rules are independent and may all fire for the same entity; their outputs
are concatenated and only exact duplicate flags are removed.

    Category concentration   share of total spend above a per-category
                             threshold (exclusive bound)
    Single transaction       one transaction above the category's
                             absolute limit, flagged individually
    Same-day transactions    more than one transaction in a category on
                             one date, summing above the same-day limit
    Staffing at ceiling      staff count at or above the allowed maximum

The default thresholds are undocumented heuristics carried over from the
first audits of CEAP data. They live in RedFlagPolicy so callers can swap
them without touching the rules.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from vigia.engine.metrics import format_brl
from vigia.models import RedFlag, Severity, SpendRecord, StaffStats


CEAP_SOURCE = "Análise automatizada CEAP"
STAFF_SOURCE = "Quadro de pessoal declarado"


@dataclass(frozen=True)
class CategoryRule:
    """Thresholds for one monitored spend category.

    Attributes:
        key: Flag category emitted (e.g. "fuel")
        label: Human-readable category name
        keywords: Uppercase substrings matched against the record category
        high_share: Share of total spend above which the flag is high
        medium_share: Share of total spend above which the flag is medium
        single_limit: Amount above which one transaction is flagged
        same_day_limit: Same-date group sum above which the group is flagged
    """

    key: str
    label: str
    keywords: tuple[str, ...]
    high_share: float
    medium_share: float
    single_limit: float | None = None
    same_day_limit: float | None = None

    def matches(self, record: SpendRecord) -> bool:
        category = record.category.upper()
        return any(keyword in category for keyword in self.keywords)


@dataclass(frozen=True)
class RedFlagPolicy:
    rules: tuple[CategoryRule, ...] = field(default_factory=tuple)
    staffing: bool = True


FUEL = CategoryRule(
    key="fuel",
    label="Fuel",
    keywords=("COMBUSTÍV", "COMBUSTIV", "LUBRIFICANTE"),
    high_share=0.25,
    medium_share=0.15,
    single_limit=600.0,
    same_day_limit=100.0,
)
TRAVEL = CategoryRule(
    key="travel",
    label="Air travel",
    keywords=("PASSAGE",),
    high_share=0.40,
    medium_share=0.30,
)
MEALS = CategoryRule(
    key="meals",
    label="Meals",
    keywords=("ALIMENTAÇÃO", "ALIMENTACAO"),
    high_share=0.15,
    medium_share=0.10,
)
PUBLICITY = CategoryRule(
    key="publicity",
    label="Publicity",
    keywords=("DIVULGAÇÃO", "DIVULGACAO"),
    high_share=0.30,
    medium_share=0.20,
)

DEFAULT_POLICY = RedFlagPolicy(rules=(FUEL, TRAVEL, MEALS, PUBLICITY))


def concentration_flags(
    records: Sequence[SpendRecord],
    rules: Iterable[CategoryRule],
) -> list[RedFlag]:
    total = sum(r.amount for r in records)
    if total <= 0:
        return []

    flags = []
    for rule in rules:
        spent = sum(r.amount for r in records if rule.matches(r))
        share = spent / total
        if share > rule.high_share:
            severity, threshold = Severity.HIGH, rule.high_share
        elif share > rule.medium_share:
            severity, threshold = Severity.MEDIUM, rule.medium_share
        else:
            continue
        flags.append(
            RedFlag(
                category=rule.key,
                severity=severity,
                description=f"{rule.label} accounts for {share:.1%} of total spend",
                detail=f"{format_brl(spent)} of {format_brl(total)} (threshold {threshold:.0%})",
                source=CEAP_SOURCE,
            )
        )
    return flags


def outlier_flags(
    records: Sequence[SpendRecord],
    rules: Iterable[CategoryRule],
) -> list[RedFlag]:
    flags = []
    for rule in rules:
        if rule.single_limit is None:
            continue
        for record in records:
            if rule.matches(record) and record.amount > rule.single_limit:
                when = record.date.isoformat() if record.date else f"{record.month:02d}/{record.year}"
                flags.append(
                    RedFlag(
                        category=rule.key,
                        severity=Severity.MEDIUM,
                        description=f"Single {rule.label.lower()} transaction of {format_brl(record.amount)} on {when}",
                        detail=f"Above the {format_brl(rule.single_limit)} per-transaction limit; supplier: {record.supplier or 'n/a'}",
                        source=CEAP_SOURCE,
                    )
                )
    return flags


def same_day_flags(
    records: Sequence[SpendRecord],
    rules: Iterable[CategoryRule],
) -> list[RedFlag]:
    flags = []
    for rule in rules:
        if rule.same_day_limit is None:
            continue

        # Exact duplicate transactions are one transaction
        unique = dict.fromkeys(r for r in records if rule.matches(r) and r.date is not None)
        by_day: dict[date, list[SpendRecord]] = defaultdict(list)
        for record in unique:
            by_day[record.date].append(record)

        for day in sorted(by_day):
            group = by_day[day]
            day_total = sum(r.amount for r in group)
            if len(group) > 1 and day_total > rule.same_day_limit:
                flags.append(
                    RedFlag(
                        category=rule.key,
                        severity=Severity.MEDIUM,
                        description=f"{len(group)} {rule.label.lower()} transactions on {day.isoformat()} totalling {format_brl(day_total)}",
                        detail="; ".join(f"{format_brl(r.amount)} {r.supplier}".strip() for r in group),
                        source=CEAP_SOURCE,
                    )
                )
    return flags


def staffing_flags(stats: StaffStats) -> list[RedFlag]:
    if stats.max_staff <= 0 or stats.staff_count < stats.max_staff:
        return []
    return [
        RedFlag(
            category="staffing",
            severity=Severity.LOW,
            description="Office at the maximum number of advisors",
            detail=f"{stats.staff_count}/{stats.max_staff} advisors",
            source=STAFF_SOURCE,
        )
    ]


def generate_red_flags(
    spend_records: Iterable[SpendRecord],
    staff_stats: StaffStats,
    policy: RedFlagPolicy = DEFAULT_POLICY,
) -> list[RedFlag]:
    """Run every rule and concatenate the results.

    Args:
        spend_records: Transactions of one entity
        staff_stats: Staffing of the same entity
        policy: Thresholds (default: DEFAULT_POLICY)

    Returns:
        Flags in rule order, exact duplicates removed
    """
    records = list(spend_records)
    flags = [
        *concentration_flags(records, policy.rules),
        *outlier_flags(records, policy.rules),
        *same_day_flags(records, policy.rules),
    ]
    if policy.staffing:
        flags.extend(staffing_flags(staff_stats))
    return list(dict.fromkeys(flags))
