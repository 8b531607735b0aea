from __future__ import annotations

from typing import Final, Literal

Tier = Literal["free", "paid", "premium", "mentorship", "employee"]

TIERS: Final[tuple[str, ...]] = ("free", "paid", "premium", "mentorship", "employee")
BILLABLE_TIERS: Final[tuple[str, ...]] = ("paid", "premium", "mentorship")

TIER_RANK: Final[dict[str, int]] = {name: rank for rank, name in enumerate(TIERS)}

_FREE_FEATURES = (
    "view_monthly_free_alert",
    "view_basic_education",
    "attend_weekly_intro",
)
_PAID_FEATURES = _FREE_FEATURES + (
    "view_all_alerts",
    "use_portfolio_tracking",
    "view_full_education",
    "custom_notifications",
    "attend_weekly_new_alerts",
)
_PREMIUM_FEATURES = _PAID_FEATURES + (
    "access_priority_notifications",
    "view_advanced_education",
    "attend_qa_sessions",
    "annual_portfolio_review",
)
_MENTORSHIP_FEATURES = _PREMIUM_FEATURES + ("coaching_sessions",)

TIER_FEATURES: Final[dict[str, frozenset[str]]] = {
    "free": frozenset(_FREE_FEATURES),
    "paid": frozenset(_PAID_FEATURES),
    "premium": frozenset(_PREMIUM_FEATURES),
    "mentorship": frozenset(_MENTORSHIP_FEATURES),
    "employee": frozenset(_MENTORSHIP_FEATURES),
}


def normalize_tier(value: str | None) -> str:
    """Lower-case a tier name, defaulting unknown values to ``free``."""

    tier = (value or "").strip().lower()
    return tier if tier in TIER_RANK else "free"


def tier_rank(value: str | None) -> int:
    return TIER_RANK[normalize_tier(value)]


def tier_at_least(value: str | None, required: str) -> bool:
    return tier_rank(value) >= TIER_RANK[required]


def has_feature(value: str | None, feature: str) -> bool:
    return feature in TIER_FEATURES[normalize_tier(value)]


def visible_content_tiers(value: str | None) -> tuple[str, ...]:
    """Education tiers readable by a member of tier ``value``."""

    rank = tier_rank(value)
    if rank >= TIER_RANK["premium"]:
        return ("free", "paid", "premium")
    if rank >= TIER_RANK["paid"]:
        return ("free", "paid")
    return ("free",)


__all__ = [
    "Tier",
    "TIERS",
    "BILLABLE_TIERS",
    "TIER_RANK",
    "TIER_FEATURES",
    "normalize_tier",
    "tier_rank",
    "tier_at_least",
    "has_feature",
    "visible_content_tiers",
]
