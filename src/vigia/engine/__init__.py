"""Derived metrics for Vigia.

Modules:
    - metrics: utilization ratios, monthly history, efficiency rating
    - red_flags: rule-based anomaly flags with configurable thresholds
    - comparison: peer ranking of quota spending
"""

from vigia.engine.comparison import PeerComparison, compare_to_peers, spend_frame
from vigia.engine.metrics import (
    compute_efficiency_rating,
    monthly_ceiling,
    monthly_history,
    spend_utilization,
    staff_cost_utilization,
    top_transactions,
)
from vigia.engine.red_flags import DEFAULT_POLICY, CategoryRule, RedFlagPolicy, generate_red_flags

__all__ = [
    "PeerComparison",
    "compare_to_peers",
    "spend_frame",
    "compute_efficiency_rating",
    "monthly_ceiling",
    "monthly_history",
    "spend_utilization",
    "staff_cost_utilization",
    "top_transactions",
    "DEFAULT_POLICY",
    "CategoryRule",
    "RedFlagPolicy",
    "generate_red_flags",
]
