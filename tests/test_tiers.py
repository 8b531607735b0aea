from __future__ import annotations

from portfolio_consultant.core.tiers import (
    has_feature,
    normalize_tier,
    tier_at_least,
    visible_content_tiers,
)


def test_normalize_tier_defaults_unknown_to_free() -> None:
    assert normalize_tier("PREMIUM") == "premium"
    assert normalize_tier(None) == "free"
    assert normalize_tier("gold") == "free"


def test_tier_ordering() -> None:
    assert tier_at_least("mentorship", "premium")
    assert tier_at_least("employee", "mentorship")
    assert not tier_at_least("paid", "premium")
    assert not tier_at_least("free", "paid")


def test_feature_matrix() -> None:
    assert not has_feature("free", "custom_notifications")
    assert has_feature("paid", "custom_notifications")
    assert not has_feature("premium", "coaching_sessions")
    assert has_feature("mentorship", "coaching_sessions")
    assert has_feature("employee", "coaching_sessions")


def test_visible_content_tiers() -> None:
    assert visible_content_tiers(None) == ("free",)
    assert visible_content_tiers("paid") == ("free", "paid")
    assert visible_content_tiers("mentorship") == ("free", "paid", "premium")
