"""Pricing recommendation engine for RevSnap."""

from __future__ import annotations

import logging
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from .exceptions import PricingInputError
from .models import (
    Confidence,
    PricingAnalysis,
    PricingRecommendation,
    PricingRule,
    PricingSummary,
    ProductInput,
)

if TYPE_CHECKING:
    from .config import PricingConfig

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MARGIN_PLACES = Decimal("0.0001")
PCT_PLACES = Decimal("0.01")

ONE = Decimal("1")
FIVE = Decimal("5")
TEN = Decimal("10")
TWENTY = Decimal("20")
HUNDRED = Decimal("100")
THOUSAND = Decimal("1000")


def _whole(price: Decimal) -> Decimal:
    return price.to_integral_value(rounding=ROUND_FLOOR)


def has_psychological_ending(price: Decimal) -> bool:
    """Check whether a cent-quantized price already has a customary ending."""
    if price < ONE:
        return True

    whole = _whole(price)
    cents = price - whole

    if price >= Decimal("999") and cents == 0 and whole % TEN == 9:
        return True
    if price < TWENTY:
        return cents in (Decimal("0.49"), Decimal("0.99"))
    if price < HUNDRED:
        return cents in (Decimal("0.95"), Decimal("0.99"))
    if price < THOUSAND:
        return cents == Decimal("0.99") and whole % FIVE == 4
    return False


def psychological_price(price: Decimal) -> Decimal:
    """Round a price to a customary ending (.99, .95, .49) for its magnitude.

    Prices that already end in a customary way are returned unchanged, and
    every rounded value ends in a customary way, so applying this twice
    gives the same result as applying it once.
    """
    price = Decimal(price).quantize(CENT, rounding=ROUND_HALF_UP)

    if has_psychological_ending(price):
        return price

    whole = _whole(price)
    remainder = price - whole

    if price < TWENTY:
        if remainder < Decimal("0.25"):
            return whole - CENT
        if remainder < Decimal("0.75"):
            return whole + Decimal("0.49")
        return whole + Decimal("0.99")

    if price < HUNDRED:
        if remainder < Decimal("0.50"):
            return whole - CENT
        return whole + Decimal("0.95")

    if price < THOUSAND:
        fives = (price / FIVE).quantize(ONE, rounding=ROUND_HALF_UP)
        return fives * FIVE - CENT

    tens = (price / TEN).quantize(ONE, rounding=ROUND_HALF_UP)
    return tens * TEN - ONE


def psychological_price_at_least(floor: Decimal) -> Decimal:
    """Get the smallest customary price that is not below the floor."""
    floor = Decimal(floor).quantize(CENT, rounding=ROUND_CEILING)
    if has_psychological_ending(floor):
        return floor

    whole = _whole(floor)
    if floor < TWENTY:
        candidates = [whole + Decimal("0.49"), whole + Decimal("0.99")]
    elif floor < HUNDRED:
        candidates = [whole + Decimal("0.95"), whole + Decimal("0.99")]
    else:
        # x4.99 / x9.99 below 1000, whole x9 from 999 up
        fives = ((floor - Decimal("4.99")) / FIVE).to_integral_value(rounding=ROUND_CEILING)
        tens = ((floor - Decimal("9")) / TEN).to_integral_value(rounding=ROUND_CEILING)
        candidates = [fives * FIVE + Decimal("4.99"), tens * TEN + Decimal("9")]

    return min(c for c in candidates if c >= floor and has_psychological_ending(c))


class PricingEngine:
    """Recommends prices from margin, category elasticity and a margin floor."""

    def __init__(self, config: PricingConfig) -> None:
        self.config = config
        self._elasticity = {k.lower(): v for k, v in config.elasticity_factors.items()}

    def validate(self, product: ProductInput) -> None:
        """Raise PricingInputError if the product cannot be priced."""
        if not product.name or not product.name.strip():
            raise PricingInputError("Product name is required")
        if product.current_price is None or product.current_price <= 0:
            raise PricingInputError(f"{product.name}: current price must be greater than 0")
        if product.cost is None or product.cost <= 0:
            raise PricingInputError(f"{product.name}: cost must be greater than 0")
        if product.units_sold is not None and product.units_sold < 0:
            raise PricingInputError(f"{product.name}: units sold cannot be negative")

    def calculate_margin(self, price: Decimal, cost: Decimal) -> Decimal:
        """Margin as a fraction of price."""
        if price <= 0:
            return Decimal("0")
        return (price - cost) / price

    def minimum_price(self, cost: Decimal) -> Decimal:
        """Lowest price that keeps the configured minimum margin."""
        return cost / (ONE - self.config.min_margin)

    def get_elasticity(self, category: str) -> Decimal | None:
        """Elasticity factor for a category, or None when unknown."""
        return self._elasticity.get(category.strip().lower())

    def recommend(self, product: ProductInput) -> PricingRecommendation:
        """Calculate the recommended price for a single product."""
        self.validate(product)

        cfg = self.config
        price = Decimal(product.current_price)
        cost = Decimal(product.cost)
        units = cfg.default_units_sold if product.units_sold is None else product.units_sold
        category = (product.category or "").strip() or cfg.default_category

        current_margin = self.calculate_margin(price, cost)

        if current_margin > cfg.high_margin_threshold:
            target = price * (ONE - cfg.high_margin_discount)
            confidence = Confidence.HIGH
            rule = PricingRule.HIGH_MARGIN_DISCOUNT
            reasoning = "High margin product - recommend competitive pricing to increase market share"
        elif current_margin < cfg.low_margin_threshold:
            target = price * (ONE + cfg.low_margin_increase)
            confidence = Confidence.HIGH
            rule = PricingRule.LOW_MARGIN_INCREASE
            reasoning = "Low margin product - significant price increase needed for profitability"
        else:
            elasticity = self.get_elasticity(category)
            rule = PricingRule.ELASTICITY_ADJUSTMENT
            if elasticity is None:
                elasticity = ONE
                confidence = Confidence.LOW
                reasoning = f"Medium margin product - no elasticity data for {category}, using market default"
            else:
                confidence = Confidence.MEDIUM
                reasoning = f"Medium margin product - optimized based on {category} category elasticity"
            target = price * (ONE + cfg.elasticity_base_increase * elasticity)

        floor = self.minimum_price(cost)
        floor_reasoning = f"Price adjusted to maintain minimum {cfg.min_margin:.0%} margin"
        if target < floor:
            target = floor
            confidence = Confidence.HIGH
            rule = PricingRule.MARGIN_FLOOR
            reasoning = floor_reasoning

        recommended = psychological_price(target)
        if recommended < floor:
            recommended = psychological_price_at_least(floor)
            confidence = Confidence.HIGH
            rule = PricingRule.MARGIN_FLOOR
            reasoning = floor_reasoning

        projected_margin = self.calculate_margin(recommended, cost)
        price_change = recommended - price
        price_change_pct = price_change / price * HUNDRED

        return PricingRecommendation(
            product_name=product.name.strip(),
            category=category,
            current_price=price,
            cost=cost,
            units_sold=units,
            current_margin=current_margin.quantize(MARGIN_PLACES, rounding=ROUND_HALF_UP),
            recommended_price=recommended,
            projected_margin=projected_margin.quantize(MARGIN_PLACES, rounding=ROUND_HALF_UP),
            margin_delta=(projected_margin - current_margin).quantize(
                MARGIN_PLACES, rounding=ROUND_HALF_UP
            ),
            price_change=price_change.quantize(CENT, rounding=ROUND_HALF_UP),
            price_change_pct=price_change_pct.quantize(PCT_PLACES, rounding=ROUND_HALF_UP),
            revenue_impact=(price_change * units).quantize(CENT, rounding=ROUND_HALF_UP),
            confidence=confidence,
            rule=rule,
            reasoning=reasoning,
        )

    def analyze(self, products: list[ProductInput]) -> PricingAnalysis:
        """Recommend prices for every product and summarize the impact."""
        if not products:
            raise PricingInputError("No valid product data provided")

        recommendations = [self.recommend(p) for p in products]

        total_current = sum((r.current_price * r.units_sold for r in recommendations), Decimal("0"))
        total_projected = sum(
            (r.recommended_price * r.units_sold for r in recommendations), Decimal("0")
        )
        uplift = total_projected - total_current
        uplift_pct = uplift / total_current * HUNDRED if total_current > 0 else Decimal("0")
        avg_margin_improvement = sum(
            (r.margin_delta for r in recommendations), Decimal("0")
        ) / len(recommendations)

        summary = PricingSummary(
            total_products=len(recommendations),
            total_current_revenue=total_current.quantize(CENT, rounding=ROUND_HALF_UP),
            total_projected_revenue=total_projected.quantize(CENT, rounding=ROUND_HALF_UP),
            revenue_uplift=uplift.quantize(CENT, rounding=ROUND_HALF_UP),
            revenue_uplift_pct=uplift_pct.quantize(PCT_PLACES, rounding=ROUND_HALF_UP),
            avg_margin_improvement=avg_margin_improvement.quantize(
                MARGIN_PLACES, rounding=ROUND_HALF_UP
            ),
            high_confidence_count=sum(1 for r in recommendations if r.confidence == Confidence.HIGH),
        )

        top_opportunities = sorted(
            (r for r in recommendations if r.revenue_impact > 0),
            key=lambda r: r.revenue_impact,
            reverse=True,
        )[: self.config.top_opportunities_limit]

        risk_products = sorted(
            (r for r in recommendations if r.price_change_pct < self.config.risk_price_change_pct),
            key=lambda r: r.price_change_pct,
        )

        logger.info(
            f"Priced {summary.total_products} products, "
            f"projected uplift {summary.revenue_uplift} ({summary.revenue_uplift_pct}%)"
        )

        return PricingAnalysis(
            summary=summary,
            recommendations=recommendations,
            top_opportunities=top_opportunities,
            risk_products=risk_products,
        )
