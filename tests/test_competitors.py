"""Tests for competitor tracking functionality."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from revsnap.core.competitors import (
    CompetitorSnapshot,
    CompetitorTracker,
    CompetitorTrend,
)
from revsnap.core.config import Settings
from revsnap.core.exceptions import ValidationError
from revsnap.core.models import (
    AlertSeverity,
    CompetitorPrice,
    MarketPositionCategory,
    SourceType,
)


@pytest.fixture
def tracker(settings: Settings) -> CompetitorTracker:
    return CompetitorTracker(settings.alerts)


def price(
    competitor: str,
    amount: str,
    observed_at: datetime | None = None,
    product_name: str = "Widget",
    availability: bool = True,
) -> CompetitorPrice:
    return CompetitorPrice(
        product_id=1,
        competitor=competitor,
        product_name=product_name,
        price=Decimal(amount),
        availability=availability,
        observed_at=observed_at or datetime.now(),
    )


class TestCompetitorPrice:
    """Tests for CompetitorPrice dataclass."""

    def test_landed_price(self):
        """Test landed price calculation."""
        p = CompetitorPrice(price=Decimal("10.00"), shipping=Decimal("3.99"))
        assert p.landed_price == Decimal("13.99")

    def test_to_observation(self, now):
        p = CompetitorPrice(
            competitor="Walmart",
            price=Decimal("12.50"),
            source_type=SourceType.API,
            reliability=Decimal("90"),
            observed_at=now,
        )
        obs = p.to_observation()

        assert obs.source_type == SourceType.API
        assert obs.reliability == Decimal("90")
        assert obs.last_updated == now
        assert obs.competitor == "Walmart"


class TestCompetitorSnapshot:
    """Tests for CompetitorSnapshot."""

    def test_analyze_empty(self):
        """Test analyzing empty snapshot."""
        snapshot = CompetitorSnapshot(product_id=1)
        snapshot.analyze()

        assert snapshot.total_competitors == 0
        assert snapshot.lowest_price is None
        assert snapshot.to_dict()["average_price"] is None

    def test_analyze_with_prices(self):
        """Test analyzing snapshot skips unavailable prices."""
        snapshot = CompetitorSnapshot(
            product_id=1,
            prices=[
                price("Amazon", "20.00"),
                price("Walmart", "10.00"),
                price("Target", "30.00"),
                price("eBay", "5.00", availability=False),
            ],
        )
        snapshot.analyze()

        assert snapshot.total_competitors == 4
        assert snapshot.available_count == 3
        assert snapshot.lowest_price == Decimal("10.00")
        assert snapshot.lowest_competitor == "Walmart"
        assert snapshot.highest_price == Decimal("30.00")
        assert snapshot.average_price == Decimal("20.00")

    def test_analyze_nothing_available(self):
        snapshot = CompetitorSnapshot(
            product_id=1, prices=[price("Amazon", "0"), price("eBay", "9", availability=False)]
        )
        snapshot.analyze()

        assert snapshot.total_competitors == 2
        assert snapshot.available_count == 0
        assert snapshot.lowest_price is None


class TestCompetitorTrend:
    """Tests for CompetitorTrend."""

    def _history(self, amounts: list[str]) -> list[CompetitorPrice]:
        start = datetime(2026, 2, 1)
        return [price("Amazon", a, start + timedelta(days=i)) for i, a in enumerate(amounts)]

    def test_analyze_insufficient_data(self):
        """Test that one data point gives no trend."""
        trend = CompetitorTrend(competitor="Amazon", history=self._history(["10"]))
        trend.analyze()

        assert trend.data_points == 1
        assert trend.price_trend == ""
        assert trend.to_dict()["price_trend"] is None

    def test_analyze_rising_trend(self):
        trend = CompetitorTrend(competitor="Amazon", history=self._history(["10", "10", "12", "12"]))
        trend.analyze()

        assert trend.price_trend == "rising"
        assert trend.average_price == Decimal("11")
        assert trend.price_volatility == pytest.approx(1 / 11, abs=1e-4)

    def test_analyze_falling_trend(self):
        trend = CompetitorTrend(competitor="Amazon", history=self._history(["10", "9"]))
        trend.analyze()
        assert trend.price_trend == "falling"

    def test_analyze_stable_trend(self):
        trend = CompetitorTrend(competitor="Amazon", history=self._history(["10", "10.20"]))
        trend.analyze()
        assert trend.price_trend == "stable"

    def test_history_order_does_not_matter(self):
        history = self._history(["10", "10", "12", "12"])
        trend = CompetitorTrend(competitor="Amazon", history=list(reversed(history)))
        trend.analyze()
        assert trend.price_trend == "rising"


class TestParsePrices:
    """Tests for parsing competitor prices from request bodies."""

    def test_parse(self):
        prices = CompetitorTracker.parse_prices(
            7,
            [
                {
                    "competitor": "Amazon",
                    "price": 19.99,
                    "shipping": "4.99",
                    "source_type": "API",
                    "reliability": 95,
                    "observed_at": "2026-03-01T12:00:00",
                    "rating": 4.5,
                    "review_count": 120,
                },
                {"competitor": "Target", "price": "21.50"},
            ],
        )

        assert [p.competitor for p in prices] == ["Amazon", "Target"]
        assert prices[0].product_id == 7
        assert prices[0].price == Decimal("19.99")
        assert prices[0].landed_price == Decimal("24.98")
        assert prices[0].source_type == SourceType.API
        assert prices[0].observed_at == datetime(2026, 3, 1, 12, 0, 0)
        assert prices[0].review_count == 120
        assert prices[1].source_type == SourceType.MANUAL
        assert prices[1].reliability == Decimal("80")

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, True),
            (True, True),
            (False, False),
            (0, False),
            ("false", False),
            ("False", False),
            ("no", False),
            ("out of stock", False),
            ("true", True),
            ("In Stock", True),
        ],
    )
    def test_availability(self, value, expected):
        item = {"competitor": "Amazon", "price": 10}
        if value is not None:
            item["availability"] = value

        prices = CompetitorTracker.parse_prices(1, [item])
        assert prices[0].availability is expected

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"competitor": "Amazon"},
            ["Amazon"],
            [{"price": 10}],
            [{"competitor": "Amazon", "price": "abc"}],
            [{"competitor": "Amazon", "price": -1}],
            [{"competitor": "Amazon", "price": 10, "source_type": "carrier-pigeon"}],
            [{"competitor": "Amazon", "price": 10, "observed_at": "yesterday"}],
            [{"competitor": "Amazon", "price": 10, "availability": "maybe"}],
        ],
    )
    def test_invalid(self, payload):
        with pytest.raises(ValidationError):
            CompetitorTracker.parse_prices(1, payload)


class TestAlerts:
    """Tests for price change detection and alerting."""

    def test_apply_price_changes(self, tracker):
        current = [price("Amazon", "90.00"), price("Walmart", "50.00")]
        tracker.apply_price_changes(current, [price("Amazon", "100.00")])

        assert current[0].previous_price == Decimal("100.00")
        assert current[0].price_change == Decimal("-10.00")
        assert current[0].price_change_pct == Decimal("-10.00")
        assert current[1].previous_price == Decimal("0")
        assert current[1].price_change_pct == Decimal("0")

    @pytest.mark.parametrize(
        "new_price, severity, threshold",
        [
            ("90.00", AlertSeverity.HIGH, "10"),
            ("115.00", AlertSeverity.HIGH, "10"),
            ("106.00", AlertSeverity.MEDIUM, "5"),
            ("95.00", AlertSeverity.MEDIUM, "5"),
            ("101.00", AlertSeverity.LOW, "2"),
        ],
    )
    def test_severity(self, tracker, new_price, severity, threshold):
        current = tracker.apply_price_changes([price("Amazon", new_price)], [price("Amazon", "100.00")])
        alerts = tracker.generate_alerts(current)

        assert len(alerts) == 1
        assert alerts[0].severity == severity
        assert alerts[0].threshold == Decimal(threshold)
        assert alerts[0].old_price == Decimal("100.00")
        assert alerts[0].new_price == Decimal(new_price)

    def test_tiny_change_ignored(self, tracker):
        current = tracker.apply_price_changes([price("Amazon", "100.01")], [price("Amazon", "100.00")])
        assert tracker.generate_alerts(current) == []

    def test_new_competitor_no_alert(self, tracker):
        current = tracker.apply_price_changes([price("Walmart", "50.00")], [price("Amazon", "100.00")])
        assert tracker.generate_alerts(current) == []

    def test_alert_message(self, tracker):
        current = tracker.apply_price_changes([price("Amazon", "90.00")], [price("Amazon", "100.00")])
        alert = tracker.generate_alerts(current)[0]

        assert alert.message == "Amazon dropped Widget 100.00 → 90.00 (-10.00%)"
        assert alert.to_dict()["severity"] == "high"


class TestSnapshotQuality:
    """Tests for the 0-1 snapshot quality score."""

    def test_empty(self, tracker):
        assert tracker.snapshot_quality([]) == Decimal("0")

    def test_perfect(self, tracker, now):
        prices = [price("A", "10", now), price("B", "11", now), price("C", "12", now)]
        assert tracker.snapshot_quality(prices, now=now) == Decimal("1.0000")

    def test_missing_product_name(self, tracker, now):
        prices = [price(c, "10", now) for c in "ABC"] + [price("D", "10", now, product_name="")]
        assert tracker.snapshot_quality(prices, now=now) == Decimal("0.9250")

    def test_stale(self, tracker, now):
        prices = [price("A", "10", now), price("B", "10", now - timedelta(hours=2))]
        assert tracker.snapshot_quality(prices, now=now) == Decimal("0.9000")

    def test_stale_with_aware_clock(self, tracker, now):
        aware_now = now.astimezone(timezone.utc)
        prices = [price("A", "10", now), price("B", "10", now - timedelta(hours=2))]
        assert tracker.snapshot_quality(prices, now=aware_now) == Decimal("0.9000")

    def test_anomaly(self, tracker, now):
        prices = [price(c, "10", now) for c in "ABC"] + [price("D", "40", now)]
        assert tracker.snapshot_quality(prices, now=now) == Decimal("0.9750")

    def test_bounded(self, tracker, now):
        old = now - timedelta(days=3)
        prices = [price("A", "0", old, product_name=""), price("B", "0", old, product_name="")]
        quality = tracker.snapshot_quality(prices, now=now)
        assert Decimal("0") <= quality <= Decimal("1")


class TestMarketPosition:
    """Tests for ranking our price among competitors."""

    @pytest.fixture
    def market(self):
        return [price(c, a) for c, a in [("A", "10"), ("B", "20"), ("C", "30"), ("D", "40")]]

    @pytest.mark.parametrize(
        "your_price, rank, percentile, category",
        [
            ("10", 1, "25.00", MarketPositionCategory.LEADER),
            ("20", 2, "50.00", MarketPositionCategory.FOLLOWER),
            ("30", 3, "75.00", MarketPositionCategory.BUDGET),
            ("39", 4, "100.00", MarketPositionCategory.PREMIUM),
            ("100", 4, "100.00", MarketPositionCategory.PREMIUM),
        ],
    )
    def test_position(self, tracker, market, your_price, rank, percentile, category):
        position = tracker.market_position(market, Decimal(your_price))

        assert position.rank == rank
        assert position.percentile == Decimal(percentile)
        assert position.category == category
        assert position.recommendation

    def test_no_competitors(self, tracker):
        position = tracker.market_position([], Decimal("25"))

        assert position.rank == 1
        assert position.percentile == Decimal("50")
        assert position.category == MarketPositionCategory.FOLLOWER


class TestTrends:
    """Tests for grouping history into per-competitor trends."""

    def test_get_trends(self, tracker):
        start = datetime(2026, 2, 1)
        history = [
            price("Amazon", "10", start),
            price("Walmart", "20", start),
            price("Amazon", "12", start + timedelta(days=1)),
        ]
        trends = tracker.get_trends(history, days=14)

        assert set(trends) == {"Amazon", "Walmart"}
        assert trends["Amazon"].price_trend == "rising"
        assert trends["Amazon"].period_days == 14
        assert trends["Walmart"].data_points == 1
        assert trends["Walmart"].price_trend == ""
