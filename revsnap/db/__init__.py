"""Database layer for RevSnap."""

from .models import (
    Base,
    CompetitorPriceDB,
    OrganizationDB,
    PriceAlertDB,
    PricingAnalysisDB,
    ProductDB,
    SubscriptionDB,
)
from .repository import Repository
from .session import close_database, get_engine, get_session, init_database, session_scope

__all__ = [
    "Base",
    "OrganizationDB",
    "SubscriptionDB",
    "ProductDB",
    "CompetitorPriceDB",
    "PriceAlertDB",
    "PricingAnalysisDB",
    "Repository",
    "close_database",
    "get_engine",
    "get_session",
    "init_database",
    "session_scope",
]
