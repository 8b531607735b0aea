from .achievements import SuccessCard, UserAchievement
from .alert_preferences import AlertPreference, AlertTriggerEvent
from .billing import Coupon, Discount, StripeEvent
from .coaching import CoachingSession, GroupCoachingSession, GroupSessionRegistration
from .education import EducationContent, EducationProgress
from .notifications import UserNotification
from .portfolio import PortfolioItem
from .stock_alerts import StockAlert, TechnicalReason
from .system_event import SystemEvent
from .user import User

__all__ = [
    "AlertPreference",
    "AlertTriggerEvent",
    "CoachingSession",
    "Coupon",
    "Discount",
    "EducationContent",
    "EducationProgress",
    "GroupCoachingSession",
    "GroupSessionRegistration",
    "PortfolioItem",
    "StockAlert",
    "StripeEvent",
    "SuccessCard",
    "SystemEvent",
    "TechnicalReason",
    "User",
    "UserAchievement",
    "UserNotification",
]
