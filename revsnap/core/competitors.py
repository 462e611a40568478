"""Competitor price tracking for RevSnap."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from statistics import median
from typing import TYPE_CHECKING, Any

from .exceptions import ValidationError
from .models import (
    AlertSeverity,
    CompetitorPrice,
    MarketPosition,
    MarketPositionCategory,
    PriceAlert,
    SourceType,
    parse_timestamp,
    to_local_naive,
)

if TYPE_CHECKING:
    from .config import AlertConfig

logger = logging.getLogger(__name__)

PCT_PLACES = Decimal("0.01")

POSITION_RECOMMENDATIONS = {
    MarketPositionCategory.PREMIUM: "Focus on value-add strategies to justify premium pricing",
    MarketPositionCategory.LEADER: (
        "Consider gradual price increases to maximize profit while maintaining leadership"
    ),
    MarketPositionCategory.BUDGET: (
        "Monitor quality perception and consider value proposition improvements"
    ),
    MarketPositionCategory.FOLLOWER: "Price is in line with the market - monitor competitor moves",
}


TRUE_STRINGS = ("true", "yes", "1", "in stock", "available")
FALSE_STRINGS = ("false", "no", "0", "out of stock", "unavailable")


def _parse_availability(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ValueError(f"availability must be true or false, got {value!r}")


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return Decimal("0")
    return (part / whole * 100).quantize(PCT_PLACES, rounding=ROUND_HALF_UP)


@dataclass
class CompetitorSnapshot:
    """Summary of all competitor prices for a product at a point in time."""

    product_id: int = 0
    snapshot_time: datetime = field(default_factory=datetime.now)
    prices: list[CompetitorPrice] = field(default_factory=list)
    total_competitors: int = 0
    available_count: int = 0
    lowest_price: Decimal | None = None
    highest_price: Decimal | None = None
    average_price: Decimal | None = None
    lowest_competitor: str = ""

    def analyze(self) -> None:
        """Analyze the prices and populate summary fields."""
        if not self.prices:
            return

        self.total_competitors = len(self.prices)
        available = [p for p in self.prices if p.availability and p.price > 0]
        self.available_count = len(available)
        if not available:
            return

        cheapest = min(available, key=lambda p: p.price)
        self.lowest_price = cheapest.price
        self.lowest_competitor = cheapest.competitor
        self.highest_price = max(p.price for p in available)
        self.average_price = (sum(p.price for p in available) / len(available)).quantize(
            PCT_PLACES, rounding=ROUND_HALF_UP
        )

    def to_dict(self) -> dict[str, Any]:
        def num(value: Decimal | None) -> float | None:
            return float(value) if value is not None else None

        return {
            "product_id": self.product_id,
            "snapshot_time": self.snapshot_time.isoformat(),
            "total_competitors": self.total_competitors,
            "available_count": self.available_count,
            "lowest_price": num(self.lowest_price),
            "lowest_competitor": self.lowest_competitor,
            "highest_price": num(self.highest_price),
            "average_price": num(self.average_price),
        }


@dataclass
class CompetitorTrend:
    """Price trend for one competitor over time."""

    competitor: str = ""
    period_days: int = 30
    history: list[CompetitorPrice] = field(default_factory=list)

    # Computed trends
    data_points: int = 0
    average_price: Decimal | None = None
    price_trend: str = ""  # "rising", "stable", "falling"
    price_volatility: float = 0.0  # Coefficient of variation

    def analyze(self) -> None:
        """Analyze the trend across the price history."""
        self.data_points = len(self.history)
        if self.data_points < 2:
            return

        ordered = sorted(self.history, key=lambda p: p.observed_at)
        prices = [p.price for p in ordered]
        self.average_price = sum(prices) / len(prices)

        first_half = prices[: len(prices) // 2]
        second_half = prices[len(prices) // 2 :]
        avg_first = sum(first_half) / len(first_half)
        avg_second = sum(second_half) / len(second_half)

        if avg_second > avg_first * Decimal("1.05"):
            self.price_trend = "rising"
        elif avg_second < avg_first * Decimal("0.95"):
            self.price_trend = "falling"
        else:
            self.price_trend = "stable"

        if self.average_price > 0:
            variance = sum((p - self.average_price) ** 2 for p in prices) / len(prices)
            std_dev = variance.sqrt()
            self.price_volatility = float(std_dev / self.average_price)

    def to_dict(self) -> dict[str, Any]:
        return {
            "competitor": self.competitor,
            "period_days": self.period_days,
            "data_points": self.data_points,
            "average_price": (
                float(self.average_price.quantize(PCT_PLACES, rounding=ROUND_HALF_UP))
                if self.average_price is not None
                else None
            ),
            "price_trend": self.price_trend or None,
            "price_volatility": round(self.price_volatility, 4),
        }


class CompetitorTracker:
    """Compares competitor prices against earlier observations."""

    def __init__(self, config: AlertConfig) -> None:
        self.config = config

    @staticmethod
    def parse_prices(product_id: int, payload: list[dict[str, Any]]) -> list[CompetitorPrice]:
        """Parse competitor prices from a JSON request body."""
        if not isinstance(payload, list) or not payload:
            raise ValidationError("prices must be a non-empty list")

        prices = []
        for i, item in enumerate(payload, start=1):
            if not isinstance(item, dict):
                raise ValidationError(f"Price entry {i} must be an object")
            competitor = str(item.get("competitor") or "").strip()
            if not competitor:
                raise ValidationError(f"Price entry {i} is missing a competitor")
            try:
                price = Decimal(str(item.get("price", 0)))
                shipping = Decimal(str(item.get("shipping") or 0))
                reliability = Decimal(str(item.get("reliability", 80)))
                source_type = SourceType(str(item.get("source_type", SourceType.MANUAL.value)).lower())
                observed_at = (
                    parse_timestamp(str(item["observed_at"]))
                    if item.get("observed_at")
                    else datetime.now()
                )
                availability = _parse_availability(item.get("availability"))
                review_count = int(item["review_count"]) if item.get("review_count") is not None else None
                rating = float(item["rating"]) if item.get("rating") is not None else None
            except (ArithmeticError, TypeError, ValueError) as e:
                raise ValidationError(f"Price entry {i} ({competitor}) is invalid: {e}") from e
            if price < 0:
                raise ValidationError(f"Price entry {i} ({competitor}) has a negative price")

            prices.append(
                CompetitorPrice(
                    product_id=product_id,
                    competitor=competitor,
                    product_name=str(item.get("product_name") or ""),
                    price=price,
                    shipping=shipping,
                    currency=str(item.get("currency") or "USD"),
                    availability=availability,
                    rating=rating,
                    review_count=review_count,
                    url=str(item.get("url") or ""),
                    source_type=source_type,
                    reliability=reliability,
                    observed_at=observed_at,
                )
            )
        return prices

    def apply_price_changes(
        self, current: list[CompetitorPrice], previous: list[CompetitorPrice]
    ) -> list[CompetitorPrice]:
        """Fill previous price and change fields from the last known prices."""
        last_by_competitor = {p.competitor: p for p in previous}

        for price in current:
            last = last_by_competitor.get(price.competitor)
            if last is None:
                price.previous_price = Decimal("0")
                price.price_change = Decimal("0")
                price.price_change_pct = Decimal("0")
                continue
            price.previous_price = last.price
            price.price_change = price.price - last.price
            price.price_change_pct = _pct(price.price_change, last.price)

        return current

    def classify(self, change_pct: Decimal) -> tuple[AlertSeverity, Decimal]:
        """Get the alert severity and threshold for a percent change."""
        cfg = self.config
        magnitude = abs(change_pct)
        if magnitude >= cfg.high_severity_pct:
            return AlertSeverity.HIGH, cfg.high_severity_pct
        if magnitude >= cfg.medium_severity_pct:
            return AlertSeverity.MEDIUM, cfg.medium_severity_pct
        return AlertSeverity.LOW, cfg.low_severity_threshold

    def generate_alerts(self, prices: list[CompetitorPrice]) -> list[PriceAlert]:
        """Create an alert for every competitor whose price moved."""
        alerts = []
        for price in prices:
            if price.previous_price <= 0:
                continue
            if abs(price.price_change) <= self.config.min_price_change:
                continue

            severity, threshold = self.classify(price.price_change_pct)
            alert = PriceAlert(
                product_id=price.product_id,
                competitor=price.competitor,
                product_name=price.product_name,
                old_price=price.previous_price,
                new_price=price.price,
                change_pct=price.price_change_pct,
                severity=severity,
                threshold=threshold,
            )
            alerts.append(alert)
            logger.info(f"Price alert ({severity.value}): {alert.message}")

        return alerts

    def snapshot_quality(
        self, prices: list[CompetitorPrice], now: datetime | None = None
    ) -> Decimal:
        """Score a set of prices from 0 to 1 for completeness, staleness and outliers."""
        if not prices:
            return Decimal("0")

        now = now or datetime.now()
        total = Decimal(len(prices))
        quality = Decimal("1")

        missing = sum(1 for p in prices if p.price <= 0 or not p.product_name)
        quality -= Decimal(missing) / total * Decimal("0.3")

        stale_cutoff = to_local_naive(now) - timedelta(minutes=self.config.stale_after_minutes)
        stale = sum(1 for p in prices if to_local_naive(p.observed_at) < stale_cutoff)
        quality -= Decimal(stale) / total * Decimal("0.2")

        valid = [p.price for p in prices if p.price > 0]
        if len(valid) > 1:
            mean = sum(valid) / len(valid)
            anomalies = sum(1 for v in valid if abs(v - mean) / mean > self.config.anomaly_deviation)
            quality -= Decimal(anomalies) / Decimal(len(valid)) * Decimal("0.1")

        quality = max(Decimal("0"), min(Decimal("1"), quality))
        return quality.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)

    def market_position(
        self, prices: list[CompetitorPrice], your_price: Decimal
    ) -> MarketPosition:
        """Rank our price among the competitors' prices."""
        valid = sorted(p.price for p in prices if p.price > 0)
        if not valid:
            category = MarketPositionCategory.FOLLOWER
            return MarketPosition(
                rank=1,
                percentile=Decimal("50"),
                category=category,
                recommendation=POSITION_RECOMMENDATIONS[category],
            )

        n = len(valid)
        rank = min(sum(1 for v in valid if v < your_price) + 1, n)
        percentile = (Decimal(rank) / Decimal(n) * 100).quantize(PCT_PLACES, rounding=ROUND_HALF_UP)

        if your_price <= valid[0] * Decimal("1.05"):
            category = MarketPositionCategory.LEADER
        elif your_price >= valid[-1] * Decimal("0.95"):
            category = MarketPositionCategory.PREMIUM
        elif your_price <= median(valid):
            category = MarketPositionCategory.FOLLOWER
        else:
            category = MarketPositionCategory.BUDGET

        return MarketPosition(
            rank=rank,
            percentile=percentile,
            category=category,
            recommendation=POSITION_RECOMMENDATIONS[category],
        )

    def get_trends(
        self, history: list[CompetitorPrice], days: int = 30
    ) -> dict[str, CompetitorTrend]:
        """Get a trend per competitor from a price history."""
        by_competitor: dict[str, list[CompetitorPrice]] = {}
        for price in history:
            by_competitor.setdefault(price.competitor, []).append(price)

        trends = {}
        for competitor, points in by_competitor.items():
            trend = CompetitorTrend(competitor=competitor, period_days=days, history=points)
            trend.analyze()
            trends[competitor] = trend
        return trends
