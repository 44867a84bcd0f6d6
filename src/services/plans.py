"""
Plan tiers, feature gates and limits.

A value of -1 in PLAN_LIMITS means unlimited.
"""

from typing import Optional

from src.services.exceptions import PlanLimitError

DEFAULT_PLAN = "free"

PLAN_NAMES = {
    "free": "Free",
    "pro": "Pro",
    "family": "Family+",
}

PLAN_LIMITS = {
    "free": {"max_blocked_periods_per_month": 5},
    "pro": {"max_blocked_periods_per_month": -1},
    "family": {"max_blocked_periods_per_month": -1},
}

PLAN_FEATURES = {
    "free": {"weekly_proposal": False},
    "pro": {"weekly_proposal": True},
    "family": {"weekly_proposal": True},
}


def normalize_plan(plan: Optional[str]) -> str:
    """Unknown or missing plans fall back to the free tier."""
    return plan if plan in PLAN_NAMES else DEFAULT_PLAN


def can_use_weekly_proposal(plan: Optional[str]) -> bool:
    return PLAN_FEATURES[normalize_plan(plan)]["weekly_proposal"]


def can_add_blocked_period(plan: Optional[str], count_this_month: int) -> bool:
    """Check the monthly blocked period allowance."""
    limit = PLAN_LIMITS[normalize_plan(plan)]["max_blocked_periods_per_month"]
    if limit == -1:
        return True
    return count_this_month < limit


def require_weekly_proposal(plan: Optional[str]) -> None:
    """
    Raises:
        PlanLimitError: If the plan does not include weekly proposals
    """
    if not can_use_weekly_proposal(plan):
        raise PlanLimitError(
            "Automatic weekly proposals are available on the Pro plan. "
            "Upgrade to use them."
        )
