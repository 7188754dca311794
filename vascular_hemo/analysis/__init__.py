"""Post-processing of coupled solutions."""

from .flow import (
    branch_flow_rates,
    junction_flow_balance,
    junction_hematocrit_split,
    check_flow_plausibility,
)

__all__ = [
    "branch_flow_rates",
    "junction_flow_balance",
    "junction_hematocrit_split",
    "check_flow_plausibility",
]
