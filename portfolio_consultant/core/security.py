from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, status

from portfolio_consultant.api.auth import get_current_user
from portfolio_consultant.models import User

from .tiers import TIER_RANK, tier_at_least

# ruff: noqa: B008  # FastAPI dependency injection pattern


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Authorization guard for admin APIs: 401 anonymous, 403 non-admin."""

    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required.",
        )
    return user


def require_tier(min_tier: str) -> Callable[..., User]:
    """Build a dependency admitting users at ``min_tier`` or above.

    Admins always pass.
    """

    if min_tier not in TIER_RANK:
        raise ValueError(f"Unknown tier: {min_tier}")

    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.is_admin or tier_at_least(user.tier, min_tier):
            return user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"This feature requires the {min_tier} tier or higher.",
        )

    return _guard


__all__ = ["require_admin", "require_tier"]
