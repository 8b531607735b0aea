from fastapi import APIRouter, Depends

from ..core.config import Settings, get_settings
from ..core.security import require_admin
from . import (
    achievements,
    alert_preferences,
    auth,
    billing,
    coaching,
    coupons,
    education,
    live_updates,
    notifications,
    portfolio,
    stock_alerts,
    system_events,
    technical_reasons,
    users,
)

# ruff: noqa: B008  # FastAPI dependency injection pattern


router = APIRouter()


@router.get("/", tags=["system"])
def read_root(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Root endpoint to verify that the API is running."""

    return {
        "message": f"{settings.app_name} is running",
        "environment": settings.environment,
    }


@router.get("/health", tags=["system"])
def health_check(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Basic health endpoint used by the frontend and monitoring."""

    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
    }


router.include_router(auth.router, prefix="/api/auth", tags=["auth"])

router.include_router(
    users.router,
    prefix="/api/admin/users",
    dependencies=[Depends(require_admin)],
    tags=["admin"],
)

router.include_router(
    system_events.router,
    prefix="/api/system-events",
    dependencies=[Depends(require_admin)],
    tags=["system-events"],
)

router.include_router(stock_alerts.router, prefix="/api/stock-alerts", tags=["stock-alerts"])
router.include_router(
    technical_reasons.router,
    prefix="/api/technical-reasons",
    tags=["stock-alerts"],
)
router.include_router(portfolio.router, prefix="/api/portfolio", tags=["portfolio"])
router.include_router(
    alert_preferences.router,
    prefix="/api/alert-preferences",
    tags=["alert-preferences"],
)
router.include_router(
    notifications.router,
    prefix="/api/notifications",
    tags=["notifications"],
)
router.include_router(education.router, prefix="/api/education", tags=["education"])
router.include_router(achievements.router, prefix="/api", tags=["achievements"])
router.include_router(coaching.router, prefix="/api/coaching", tags=["coaching"])
router.include_router(billing.router, prefix="/api/billing", tags=["billing"])
router.include_router(coupons.coupons_router, prefix="/api/coupons", tags=["coupons"])
router.include_router(coupons.discounts_router, prefix="/api/discounts", tags=["coupons"])
router.include_router(live_updates.router, tags=["live-updates"])
