"""Core data models for RevSnap."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def _num(value: Decimal | None) -> float | None:
    """Convert a Decimal to float for JSON output."""
    return float(value) if value is not None else None


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into naive local time."""
    return to_local_naive(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))


class PlanId(str, Enum):
    """Subscription plans."""

    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"

    @classmethod
    def from_string(cls, value: str) -> "PlanId":
        """Convert string to PlanId enum."""
        value_lower = value.strip().lower()
        for plan in cls:
            if plan.value == value_lower:
                return plan
        raise ValueError(f"Unknown plan: {value}")

    @classmethod
    def values(cls) -> list[str]:
        """Get list of plan values."""
        return [p.value for p in cls]


class SubscriptionStatus(str, Enum):
    """Billing status of a subscription."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"


class SourceType(str, Enum):
    """Where a competitor price observation came from."""

    API = "api"
    SCRAPING = "scraping"
    MANUAL = "manual"
    HISTORICAL = "historical"


class Confidence(str, Enum):
    """Confidence in a pricing recommendation."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PricingRule(str, Enum):
    """Rule that produced a recommended price."""

    HIGH_MARGIN_DISCOUNT = "high_margin_discount"
    LOW_MARGIN_INCREASE = "low_margin_increase"
    ELASTICITY_ADJUSTMENT = "elasticity_adjustment"
    MARGIN_FLOOR = "margin_floor"


class QualityLevel(str, Enum):
    """Qualitative bucket for a data quality score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    INSUFFICIENT = "insufficient"


class AlertSeverity(str, Enum):
    """Severity of a competitor price alert."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MarketPositionCategory(str, Enum):
    """Where a seller's price sits among competitors."""

    LEADER = "leader"
    PREMIUM = "premium"
    FOLLOWER = "follower"
    BUDGET = "budget"


# ==================== Tenancy ====================


@dataclass
class Organization:
    """A tenant of the service."""

    id: int | None = None
    name: str = ""
    slug: str = ""
    industry: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "industry": self.industry,
        }


@dataclass
class Subscription:
    """An organization's plan subscription."""

    id: int | None = None
    organization_id: int = 0
    plan: PlanId = PlanId.STARTER
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_end: datetime | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_in_good_standing(self) -> bool:
        """Whether the subscription grants its plan's limits."""
        return self.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


@dataclass
class Product:
    """A product in an organization's catalog."""

    id: int | None = None
    organization_id: int = 0
    name: str = ""
    sku: str = ""
    category: str = "General"
    current_price: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    units_sold: int = 100
    currency: str = "USD"
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_input(self) -> ProductInput:
        """Build the pricing engine input for this product."""
        return ProductInput(
            name=self.name,
            current_price=self.current_price,
            cost=self.cost,
            units_sold=self.units_sold,
            category=self.category,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "current_price": _num(self.current_price),
            "cost": _num(self.cost),
            "units_sold": self.units_sold,
            "currency": self.currency,
            "is_active": self.is_active,
        }


# ==================== Pricing ====================


@dataclass
class ProductInput:
    """Product data fed to the pricing engine."""

    name: str = ""
    current_price: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    units_sold: int | None = None
    category: str | None = None


@dataclass
class PricingRecommendation:
    """Recommended price for a single product."""

    product_name: str = ""
    category: str = "General"
    current_price: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    units_sold: int = 0
    current_margin: Decimal = Decimal("0")
    recommended_price: Decimal = Decimal("0")
    projected_margin: Decimal = Decimal("0")
    margin_delta: Decimal = Decimal("0")
    price_change: Decimal = Decimal("0")
    price_change_pct: Decimal = Decimal("0")
    revenue_impact: Decimal = Decimal("0")
    confidence: Confidence = Confidence.MEDIUM
    rule: PricingRule = PricingRule.ELASTICITY_ADJUSTMENT
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_name": self.product_name,
            "category": self.category,
            "current_price": _num(self.current_price),
            "cost": _num(self.cost),
            "units_sold": self.units_sold,
            "current_margin": _num(self.current_margin),
            "recommended_price": _num(self.recommended_price),
            "projected_margin": _num(self.projected_margin),
            "margin_delta": _num(self.margin_delta),
            "price_change": _num(self.price_change),
            "price_change_pct": _num(self.price_change_pct),
            "revenue_impact": _num(self.revenue_impact),
            "confidence": self.confidence.value,
            "rule": self.rule.value,
            "reasoning": self.reasoning,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PricingRecommendation":
        """Rebuild a recommendation from its stored JSON form."""

        def dec(key: str) -> Decimal:
            return Decimal(str(data.get(key) or 0))

        return cls(
            product_name=data.get("product_name", ""),
            category=data.get("category", "General"),
            current_price=dec("current_price"),
            cost=dec("cost"),
            units_sold=int(data.get("units_sold") or 0),
            current_margin=dec("current_margin"),
            recommended_price=dec("recommended_price"),
            projected_margin=dec("projected_margin"),
            margin_delta=dec("margin_delta"),
            price_change=dec("price_change"),
            price_change_pct=dec("price_change_pct"),
            revenue_impact=dec("revenue_impact"),
            confidence=Confidence(data.get("confidence", Confidence.MEDIUM.value)),
            rule=PricingRule(data.get("rule", PricingRule.ELASTICITY_ADJUSTMENT.value)),
            reasoning=data.get("reasoning", ""),
        )


@dataclass
class PricingSummary:
    """Aggregate figures for a pricing analysis."""

    total_products: int = 0
    total_current_revenue: Decimal = Decimal("0")
    total_projected_revenue: Decimal = Decimal("0")
    revenue_uplift: Decimal = Decimal("0")
    revenue_uplift_pct: Decimal = Decimal("0")
    avg_margin_improvement: Decimal = Decimal("0")
    high_confidence_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_products": self.total_products,
            "total_current_revenue": _num(self.total_current_revenue),
            "total_projected_revenue": _num(self.total_projected_revenue),
            "revenue_uplift": _num(self.revenue_uplift),
            "revenue_uplift_pct": _num(self.revenue_uplift_pct),
            "avg_margin_improvement": _num(self.avg_margin_improvement),
            "high_confidence_count": self.high_confidence_count,
        }


@dataclass
class PricingAnalysis:
    """Complete pricing analysis for a list of products."""

    id: int | None = None
    organization_id: int | None = None
    summary: PricingSummary = field(default_factory=PricingSummary)
    recommendations: list[PricingRecommendation] = field(default_factory=list)
    top_opportunities: list[PricingRecommendation] = field(default_factory=list)
    risk_products: list[PricingRecommendation] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "summary": self.summary.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "top_opportunities": [r.to_dict() for r in self.top_opportunities],
            "risk_products": [r.to_dict() for r in self.risk_products],
            "created_at": self.created_at.isoformat(),
        }


# ==================== Data quality ====================


@dataclass
class PriceObservation:
    """A competitor price as seen by one data source."""

    source_type: SourceType = SourceType.MANUAL
    reliability: Decimal = Decimal("0")  # 0-100
    last_updated: datetime = field(default_factory=datetime.now)
    price: Decimal | None = None
    competitor: str = ""


@dataclass
class DataQualityResult:
    """Score and advice for a set of price observations."""

    score: int = 0
    level: QualityLevel = QualityLevel.INSUFFICIENT
    message: str = ""
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level.value,
            "message": self.message,
            "recommendations": list(self.recommendations),
        }


@dataclass
class CompetitorGuidance:
    """How to collect prices from one competitor platform."""

    platform: str = ""
    url_pattern: str = ""
    instructions: str = ""
    data_quality: str = "medium"
    api_available: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "url_pattern": self.url_pattern,
            "instructions": self.instructions,
            "data_quality": self.data_quality,
            "api_available": self.api_available,
        }


@dataclass
class UrlValidation:
    """Result of matching a competitor URL against known platforms."""

    is_valid: bool = False
    platform: str | None = None
    product_id: str | None = None
    guidance: CompetitorGuidance | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "platform": self.platform,
            "product_id": self.product_id,
            "guidance": self.guidance.to_dict() if self.guidance else None,
        }


# ==================== Competitor tracking ====================


@dataclass
class CompetitorPrice:
    """A competitor's price for one of our products."""

    id: int | None = None
    product_id: int = 0
    competitor: str = ""
    product_name: str = ""
    price: Decimal = Decimal("0")
    previous_price: Decimal = Decimal("0")
    price_change: Decimal = Decimal("0")
    price_change_pct: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    currency: str = "USD"
    availability: bool = True
    rating: float | None = None
    review_count: int | None = None
    url: str = ""
    source_type: SourceType = SourceType.MANUAL
    reliability: Decimal = Decimal("80")
    observed_at: datetime = field(default_factory=datetime.now)

    @property
    def landed_price(self) -> Decimal:
        """Get the total landed price (price + shipping)."""
        return self.price + self.shipping

    def to_observation(self) -> PriceObservation:
        """View this price as a data quality observation."""
        return PriceObservation(
            source_type=self.source_type,
            reliability=self.reliability,
            last_updated=self.observed_at,
            price=self.price,
            competitor=self.competitor,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "competitor": self.competitor,
            "product_name": self.product_name,
            "price": _num(self.price),
            "previous_price": _num(self.previous_price),
            "price_change": _num(self.price_change),
            "price_change_pct": _num(self.price_change_pct),
            "shipping": _num(self.shipping),
            "currency": self.currency,
            "availability": self.availability,
            "rating": self.rating,
            "review_count": self.review_count,
            "url": self.url,
            "source_type": self.source_type.value,
            "reliability": _num(self.reliability),
            "observed_at": self.observed_at.isoformat(),
        }


@dataclass
class PriceAlert:
    """Alert raised when a competitor changes price."""

    id: int | None = None
    product_id: int = 0
    competitor: str = ""
    product_name: str = ""
    old_price: Decimal = Decimal("0")
    new_price: Decimal = Decimal("0")
    change_pct: Decimal = Decimal("0")
    severity: AlertSeverity = AlertSeverity.LOW
    threshold: Decimal = Decimal("2")
    is_read: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def message(self) -> str:
        direction = "raised" if self.new_price > self.old_price else "dropped"
        return (
            f"{self.competitor} {direction} {self.product_name or 'price'} "
            f"{self.old_price:.2f} → {self.new_price:.2f} ({self.change_pct:+.2f}%)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "competitor": self.competitor,
            "product_name": self.product_name,
            "old_price": _num(self.old_price),
            "new_price": _num(self.new_price),
            "change_pct": _num(self.change_pct),
            "severity": self.severity.value,
            "threshold": _num(self.threshold),
            "is_read": self.is_read,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class MarketPosition:
    """Where our price ranks among competitor prices."""

    rank: int = 1
    percentile: Decimal = Decimal("50")
    category: MarketPositionCategory = MarketPositionCategory.FOLLOWER
    recommendation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "percentile": _num(self.percentile),
            "category": self.category.value,
            "recommendation": self.recommendation,
        }


# ==================== Imports ====================


@dataclass
class ImportResult:
    """Result of a catalog import operation."""

    success: bool = False
    items_imported: int = 0
    items_updated: int = 0
    items_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "items_imported": self.items_imported,
            "items_updated": self.items_updated,
            "items_skipped": self.items_skipped,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
