from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from portfolio_consultant.core.security import require_admin
from portfolio_consultant.core.tiers import TIERS
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import User
from portfolio_consultant.schemas.auth import UserRead
from portfolio_consultant.schemas.users import AdminFlagUpdate, DisabledUpdate, TierUpdate
from portfolio_consultant.services.system_events import record_system_event
from portfolio_consultant.services.users import set_user_tier

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


@router.get("/", response_model=List[UserRead])
def list_users(
    tier: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> List[UserRead]:
    query = db.query(User)
    if tier is not None:
        if tier not in TIERS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown tier: {tier}",
            )
        query = query.filter(User.tier == tier)
    return [UserRead.model_validate(u) for u in query.order_by(User.id.asc()).all()]


@router.patch("/{user_id}/tier", response_model=UserRead)
def update_user_tier(
    user_id: int,
    payload: TierUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserRead:
    user = _get_user_or_404(db, user_id)
    set_user_tier(
        db,
        user,
        payload.tier,
        source=f"admin:{admin.username}",
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    return UserRead.model_validate(user)


@router.patch("/{user_id}/admin", response_model=UserRead)
def update_admin_flag(
    user_id: int,
    payload: AdminFlagUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserRead:
    user = _get_user_or_404(db, user_id)
    if user.id == admin.id and not payload.is_admin:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove your own admin access.",
        )

    user.is_admin = payload.is_admin
    if not payload.is_admin:
        user.admin_roles = None
    elif payload.admin_roles is not None:
        user.admin_roles = ",".join(r.strip() for r in payload.admin_roles if r.strip()) or None
    db.add(user)
    db.commit()
    db.refresh(user)

    record_system_event(
        db,
        level="INFO",
        category="admin",
        message=f"Admin access {'granted' if user.is_admin else 'revoked'}",
        user_id=user.id,
        correlation_id=getattr(request.state, "correlation_id", None),
        details={"by": admin.username, "roles": user.admin_role_list},
    )
    return UserRead.model_validate(user)


@router.patch("/{user_id}/disabled", response_model=UserRead)
def update_disabled(
    user_id: int,
    payload: DisabledUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserRead:
    user = _get_user_or_404(db, user_id)
    if user.id == admin.id and payload.disabled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot disable your own account.",
        )

    user.disabled = payload.disabled
    db.add(user)
    db.commit()
    db.refresh(user)

    record_system_event(
        db,
        level="WARNING" if user.disabled else "INFO",
        category="admin",
        message="Account disabled" if user.disabled else "Account enabled",
        user_id=user.id,
        correlation_id=getattr(request.state, "correlation_id", None),
        details={"by": admin.username},
    )
    return UserRead.model_validate(user)


__all__ = ["router"]
