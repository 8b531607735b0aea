from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from portfolio_consultant.core.tiers import Tier


class TierUpdate(BaseModel):
    tier: Tier


class AdminFlagUpdate(BaseModel):
    is_admin: bool
    admin_roles: Optional[List[str]] = None


class DisabledUpdate(BaseModel):
    disabled: bool


__all__ = ["TierUpdate", "AdminFlagUpdate", "DisabledUpdate"]
