from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from portfolio_consultant.core.auth import hash_password
from portfolio_consultant.core.config import Settings
from portfolio_consultant.core.tiers import TIER_RANK, normalize_tier
from portfolio_consultant.models import User
from portfolio_consultant.services.system_events import record_system_event

logger = logging.getLogger(__name__)


def get_user_by_username(db: Session, username: str) -> User | None:
    return (
        db.query(User)
        .filter(func.lower(User.username) == username.strip().lower())
        .one_or_none()
    )


def get_user_by_email(db: Session, email: str) -> User | None:
    return (
        db.query(User).filter(func.lower(User.email) == email.strip().lower()).one_or_none()
    )


def get_user_by_stripe_customer(db: Session, customer_id: str) -> User | None:
    return db.query(User).filter(User.stripe_customer_id == customer_id).one_or_none()


def ensure_default_admin(db: Session, settings: Settings) -> Optional[User]:
    """Create the configured bootstrap admin when it does not exist yet.

    Nothing happens unless both ``PC_ADMIN_USERNAME`` and ``PC_ADMIN_PASSWORD``
    are set. Safe to call repeatedly.
    """

    username = (settings.admin_username or "").strip()
    password = settings.admin_password or ""
    if not username or not password:
        return None

    existing = get_user_by_username(db, username)
    if existing is not None:
        return existing

    admin = User(
        username=username,
        email=(settings.admin_email or f"{username}@localhost").strip(),
        name="Administrator",
        password_hash=hash_password(password),
        tier="employee",
        is_admin=True,
        admin_roles="super_admin",
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(
        "Bootstrapped default admin user",
        extra={"extra": {"username": username}},
    )
    return admin


def set_user_tier(
    db: Session,
    user: User,
    tier: str,
    *,
    source: str,
    correlation_id: Optional[str] = None,
    commit: bool = True,
) -> bool:
    """Move ``user`` to ``tier``; returns False when nothing changed.

    With ``commit=False`` the change is only flushed and the caller owns the
    transaction.
    """

    new_tier = normalize_tier(tier)
    if new_tier not in TIER_RANK or tier.strip().lower() != new_tier:
        raise ValueError(f"Unknown tier: {tier}")

    old_tier = user.tier
    if old_tier == new_tier:
        return False

    user.tier = new_tier
    db.add(user)
    if commit:
        db.commit()
        db.refresh(user)
    else:
        db.flush()

    logger.info(
        "User tier changed",
        extra={
            "extra": {
                "correlation_id": correlation_id,
                "user_id": user.id,
                "old_tier": old_tier,
                "new_tier": new_tier,
                "source": source,
            }
        },
    )
    record_system_event(
        db,
        level="INFO",
        category="tier",
        message=f"Tier changed from {old_tier} to {new_tier}",
        user_id=user.id,
        correlation_id=correlation_id,
        details={"old_tier": old_tier, "new_tier": new_tier, "source": source},
        commit=commit,
    )
    return True


__all__ = [
    "ensure_default_admin",
    "get_user_by_email",
    "get_user_by_stripe_customer",
    "get_user_by_username",
    "set_user_tier",
]
