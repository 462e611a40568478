"""Core business logic for RevSnap."""

from .config import Settings, get_settings
from .models import (
    Organization,
    Subscription,
    Product,
    ProductInput,
    PricingRecommendation,
    PricingAnalysis,
    PriceObservation,
    DataQualityResult,
    CompetitorPrice,
    PriceAlert,
    ImportResult,
)
from .exceptions import RevSnapError, ValidationError, NotFoundError, PlanLimitError
from .pricing import PricingEngine, psychological_price
from .data_quality import DataQualityScorer
from .competitors import CompetitorTracker
from .plans import PlanService, PLAN_LIMITS
from .csv_importer import CatalogImporter, CsvValidationError

__all__ = [
    "Settings",
    "get_settings",
    "Organization",
    "Subscription",
    "Product",
    "ProductInput",
    "PricingRecommendation",
    "PricingAnalysis",
    "PriceObservation",
    "DataQualityResult",
    "CompetitorPrice",
    "PriceAlert",
    "ImportResult",
    "RevSnapError",
    "ValidationError",
    "NotFoundError",
    "PlanLimitError",
    "PricingEngine",
    "psychological_price",
    "DataQualityScorer",
    "CompetitorTracker",
    "PlanService",
    "PLAN_LIMITS",
    "CatalogImporter",
    "CsvValidationError",
]
