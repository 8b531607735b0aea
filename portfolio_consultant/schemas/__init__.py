from .portfolio import PortfolioItemCreate, PortfolioItemRead, PortfolioStats
from .stock_alerts import (
    StockAlertCreate,
    StockAlertRead,
    StockAlertUpdate,
    TargetBuckets,
)

__all__ = [
    "PortfolioItemCreate",
    "PortfolioItemRead",
    "PortfolioStats",
    "StockAlertCreate",
    "StockAlertRead",
    "StockAlertUpdate",
    "TargetBuckets",
]
