"""Tests for data quality scoring."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from revsnap.core.config import Settings
from revsnap.core.data_quality import NO_SOURCES_RECOMMENDATIONS, DataQualityScorer
from revsnap.core.exceptions import DataQualityInputError
from revsnap.core.models import PriceObservation, QualityLevel, SourceType


@pytest.fixture
def scorer(settings: Settings) -> DataQualityScorer:
    return DataQualityScorer(settings.data_quality)


def obs(source_type: SourceType, reliability: str, last_updated: datetime) -> PriceObservation:
    return PriceObservation(
        source_type=source_type,
        reliability=Decimal(reliability),
        last_updated=last_updated,
    )


class TestScore:
    """Tests for the weighted quality score."""

    def test_empty_is_insufficient(self, scorer: DataQualityScorer) -> None:
        result = scorer.score([])

        assert result.score == 0
        assert result.level == QualityLevel.INSUFFICIENT
        assert result.message == "No data sources available"
        assert result.recommendations == NO_SOURCES_RECOMMENDATIONS

    def test_api_capped_at_100(self, scorer: DataQualityScorer, now: datetime) -> None:
        result = scorer.score([obs(SourceType.API, "90", now)], now=now)

        # 90 * 1.2 = 108, capped
        assert result.score == 100
        assert result.level == QualityLevel.EXCELLENT
        assert result.message == "High-quality data from reliable sources"
        assert result.recommendations == []

    def test_single_manual_source(self, scorer: DataQualityScorer, now: datetime) -> None:
        result = scorer.score([obs(SourceType.MANUAL, "80", now)], now=now)

        assert result.score == 64
        assert result.level == QualityLevel.GOOD
        assert result.recommendations == [
            "Consider adding more data sources for better accuracy",
            "Consider using official APIs (Amazon SP-API, Walmart API) for better data quality",
            "Add more data sources beyond manual entry for better accuracy",
        ]

    def test_scraping_without_api(self, scorer: DataQualityScorer, now: datetime) -> None:
        result = scorer.score([obs(SourceType.SCRAPING, "80", now)], now=now)

        assert result.score == 56
        assert result.level == QualityLevel.FAIR
        assert "Web scraping data may be unreliable - consider manual verification" in result.recommendations

    def test_weighted_average(self, scorer: DataQualityScorer, sample_observations, now: datetime) -> None:
        result = scorer.score(sample_observations, now=now)

        # (100 * 3 + 40 * 1) / 4 = 85
        assert result.score == 85
        assert result.level == QualityLevel.EXCELLENT

    def test_rounds_half_up(self, scorer: DataQualityScorer, now: datetime) -> None:
        # 80.625 * 0.8 = 64.5
        result = scorer.score([obs(SourceType.MANUAL, "80.625", now)], now=now)
        assert result.score == 65

    def test_aware_timestamps(self, scorer: DataQualityScorer) -> None:
        result = scorer.score([obs(SourceType.API, "50", datetime.now(timezone.utc))])

        # 50 * 1.2, fresh
        assert result.score == 60

    def test_aware_and_naive_mixed(self, scorer: DataQualityScorer) -> None:
        updated = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        now = updated.astimezone().replace(tzinfo=None) + timedelta(hours=12)

        result = scorer.score([obs(SourceType.API, "100", updated)], now=now)
        assert result.score == 75

    def test_freshness_decay(self, scorer: DataQualityScorer, now: datetime) -> None:
        result = scorer.score([obs(SourceType.API, "100", now - timedelta(hours=12))], now=now)
        assert result.score == 75

    def test_freshness_floor(self, scorer: DataQualityScorer, now: datetime) -> None:
        result = scorer.score([obs(SourceType.API, "100", now - timedelta(hours=30))], now=now)
        assert result.score == 50
        assert result.level == QualityLevel.FAIR

    def test_future_timestamp_not_rewarded(self, scorer: DataQualityScorer, now: datetime) -> None:
        result = scorer.score([obs(SourceType.API, "100", now + timedelta(hours=5))], now=now)
        assert result.score == 100

    @pytest.mark.parametrize("level_score, level", [
        (80, QualityLevel.EXCELLENT),
        (79, QualityLevel.GOOD),
        (60, QualityLevel.GOOD),
        (59, QualityLevel.FAIR),
        (40, QualityLevel.FAIR),
        (39, QualityLevel.POOR),
        (20, QualityLevel.POOR),
        (19, QualityLevel.INSUFFICIENT),
    ])
    def test_level_boundaries(
        self, scorer: DataQualityScorer, now: datetime, level_score: int, level: QualityLevel
    ) -> None:
        result = scorer.get_quality_level(level_score, [obs(SourceType.API, "50", now)])
        assert result.level == level

    def test_recommendations_deduplicated(self, scorer: DataQualityScorer, now: datetime) -> None:
        result = scorer.score(
            [obs(SourceType.SCRAPING, "10", now), obs(SourceType.SCRAPING, "10", now)], now=now
        )
        assert len(result.recommendations) == len(set(result.recommendations))

    @pytest.mark.parametrize("reliability", ["-1", "100.5", "250"])
    def test_reliability_out_of_range(self, scorer: DataQualityScorer, now: datetime, reliability: str) -> None:
        with pytest.raises(DataQualityInputError):
            scorer.score([obs(SourceType.MANUAL, reliability, now)], now=now)

    def test_monotone_in_reliability(self, scorer: DataQualityScorer, now: datetime) -> None:
        scores = []
        for reliability in range(0, 101, 5):
            observations = [
                obs(SourceType.SCRAPING, str(reliability), now - timedelta(hours=6)),
                obs(SourceType.HISTORICAL, "70", now - timedelta(hours=20)),
            ]
            scores.append(scorer.score(observations, now=now).score)

        assert scores == sorted(scores)

    def test_deterministic(self, scorer: DataQualityScorer, sample_observations, now: datetime) -> None:
        assert scorer.score(sample_observations, now=now) == scorer.score(sample_observations, now=now)


class TestCompetitorGuidance:
    """Tests for platform guidance and URL validation."""

    def test_all_platforms(self, scorer: DataQualityScorer) -> None:
        platforms = [g.platform for g in scorer.get_competitor_guidance()]
        assert platforms == ["Amazon", "Walmart", "Target", "Best Buy", "eBay"]

    def test_filter_case_insensitive(self, scorer: DataQualityScorer) -> None:
        assert [g.platform for g in scorer.get_competitor_guidance("best")] == ["Best Buy"]
        assert [g.platform for g in scorer.get_competitor_guidance("AMAZON")] == ["Amazon"]
        assert scorer.get_competitor_guidance("etsy") == []

    @pytest.mark.parametrize("url, platform, product_id", [
        ("https://www.amazon.com/dp/B08N5WRWNW", "Amazon", "B08N5WRWNW"),
        ("https://www.walmart.com/ip/Instant-Pot-Duo/123456789", "Walmart", "123456789"),
        ("https://www.target.com/p/cozy-throw/-/A-12345678", "Target", "12345678"),
        ("https://www.bestbuy.com/site/oled-tv/6501234.p?skuId=6501234", "Best Buy", "6501234"),
        ("https://www.ebay.com/itm/1234567890", "eBay", "1234567890"),
    ])
    def test_validate_known_url(
        self, scorer: DataQualityScorer, url: str, platform: str, product_id: str
    ) -> None:
        result = scorer.validate_competitor_url(url)

        assert result.is_valid is True
        assert result.platform == platform
        assert result.product_id == product_id
        assert result.guidance is not None

    def test_validate_unknown_url(self, scorer: DataQualityScorer) -> None:
        result = scorer.validate_competitor_url("https://shop.example.com/product/1")
        assert result.is_valid is False
        assert result.platform is None
        assert result.to_dict()["guidance"] is None


class TestReport:
    """Tests for the text report."""

    def test_empty_report(self, scorer: DataQualityScorer) -> None:
        report = scorer.generate_report([])

        assert report.startswith(
            "Data Quality Report\n==================\n\n"
            "Overall Score: 0/100 (insufficient)\n"
            "Status: No data sources available\n"
        )
        assert "1. Provide competitor product URLs for automated data collection" in report

    def test_report_lists_all_recommendations(self, scorer: DataQualityScorer, now: datetime) -> None:
        observations = [obs(SourceType.MANUAL, "80", now)]
        report = scorer.generate_report(observations, now=now)
        result = scorer.score(observations, now=now)

        assert f"Overall Score: {result.score}/100 (good)" in report
        for i, rec in enumerate(result.recommendations, start=1):
            assert f"{i}. {rec}" in report
