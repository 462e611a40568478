"""Data quality scoring for competitor price sources."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from .exceptions import DataQualityInputError
from .models import (
    CompetitorGuidance,
    DataQualityResult,
    PriceObservation,
    QualityLevel,
    SourceType,
    UrlValidation,
    to_local_naive,
)

if TYPE_CHECKING:
    from .config import DataQualityConfig

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = Decimal("3600")

NO_SOURCES_RECOMMENDATIONS = [
    "Provide competitor product URLs for automated data collection",
    "Manually enter competitor prices as a fallback",
    "Consider using official APIs (Amazon SP-API, Walmart API)",
]

COMPETITOR_GUIDANCE = [
    CompetitorGuidance(
        platform="Amazon",
        url_pattern="https://www.amazon.com/dp/{ASIN}",
        instructions="Copy the product URL from Amazon product page. Look for the ASIN in the URL.",
        data_quality="high",
        api_available=True,
    ),
    CompetitorGuidance(
        platform="Walmart",
        url_pattern="https://www.walmart.com/ip/{product-name}/{item-id}",
        instructions="Copy the product URL from Walmart product page. The item ID is in the URL.",
        data_quality="high",
        api_available=True,
    ),
    CompetitorGuidance(
        platform="Target",
        url_pattern="https://www.target.com/p/{product-name}/-/{tcin}",
        instructions="Copy the product URL from Target product page. The TCIN is the product identifier.",
        data_quality="medium",
        api_available=False,
    ),
    CompetitorGuidance(
        platform="Best Buy",
        url_pattern="https://www.bestbuy.com/site/{product-name}/{sku}.p",
        instructions="Copy the product URL from Best Buy product page. The SKU is in the URL.",
        data_quality="medium",
        api_available=False,
    ),
    CompetitorGuidance(
        platform="eBay",
        url_pattern="https://www.ebay.com/itm/{item-id}",
        instructions="Copy the product URL from eBay listing. Note: eBay prices may vary significantly.",
        data_quality="low",
        api_available=False,
    ),
]

# Product id extractors, keyed by platform
PRODUCT_ID_PATTERNS = {
    "Amazon": re.compile(r"/dp/([A-Z0-9]{10})"),
    "Walmart": re.compile(r"/ip/[^/]+/(\d+)"),
    "Target": re.compile(r"/-/(?:A-)?(\d+)"),
    "Best Buy": re.compile(r"/(\d+)\.p"),
    "eBay": re.compile(r"/itm/(\d+)"),
}


def _pattern_to_regex(url_pattern: str) -> re.Pattern[str]:
    """Turn a guidance URL pattern into a regex, placeholders match one path segment."""
    parts = re.split(r"\{[^}]+\}", url_pattern)
    return re.compile("[^/]+".join(re.escape(p) for p in parts))


class DataQualityScorer:
    """Scores how trustworthy a set of competitor price observations is."""

    def __init__(self, config: DataQualityConfig) -> None:
        self.config = config
        self._guidance_regexes = [
            (g, _pattern_to_regex(g.url_pattern)) for g in COMPETITOR_GUIDANCE
        ]

    def validate(self, observation: PriceObservation) -> None:
        """Raise DataQualityInputError if the observation is malformed."""
        if not isinstance(observation.source_type, SourceType):
            raise DataQualityInputError(f"Unknown source type: {observation.source_type}")
        if observation.reliability < 0 or observation.reliability > 100:
            raise DataQualityInputError(
                f"Reliability must be between 0 and 100, got {observation.reliability}"
            )

    def base_score(self, observation: PriceObservation) -> Decimal:
        """Reliability adjusted for how trustworthy the source type is."""
        multiplier = self.config.source_multipliers.get(observation.source_type.value, Decimal("1"))
        return min(Decimal(observation.reliability) * multiplier, Decimal("100"))

    def source_weight(self, source_type: SourceType) -> Decimal:
        return self.config.source_weights.get(source_type.value, Decimal("1"))

    def freshness(self, last_updated: datetime, now: datetime) -> Decimal:
        """Freshness multiplier, decaying linearly and floored at min_freshness."""
        age = to_local_naive(now) - to_local_naive(last_updated)
        age_seconds = max(age.total_seconds(), 0.0)
        hours_old = Decimal(str(age_seconds)) / SECONDS_PER_HOUR
        decayed = Decimal("1") - hours_old / self.config.freshness_window_hours
        return max(self.config.min_freshness, decayed)

    def score(
        self, observations: list[PriceObservation], now: datetime | None = None
    ) -> DataQualityResult:
        """Calculate the weighted data quality score for a set of observations."""
        if not observations:
            return DataQualityResult(
                score=0,
                level=QualityLevel.INSUFFICIENT,
                message="No data sources available",
                recommendations=list(NO_SOURCES_RECOMMENDATIONS),
            )

        now = now or datetime.now()
        total_score = Decimal("0")
        total_weight = Decimal("0")

        for observation in observations:
            self.validate(observation)
            weight = self.source_weight(observation.source_type)
            total_score += (
                self.base_score(observation) * weight * self.freshness(observation.last_updated, now)
            )
            total_weight += weight

        final_score = int((total_score / total_weight).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return self.get_quality_level(final_score, observations)

    def get_quality_level(
        self, score: int, observations: list[PriceObservation]
    ) -> DataQualityResult:
        """Map a score to its level, message and recommendations."""
        cfg = self.config
        recommendations: list[str] = []

        if score >= cfg.excellent_threshold:
            level = QualityLevel.EXCELLENT
            message = "High-quality data from reliable sources"
        elif score >= cfg.good_threshold:
            level = QualityLevel.GOOD
            message = "Good data quality with minor improvements possible"
            recommendations.append("Consider adding more data sources for better accuracy")
        elif score >= cfg.fair_threshold:
            level = QualityLevel.FAIR
            message = "Fair data quality - results may have some uncertainty"
            recommendations += ["Add more reliable data sources", "Consider using official APIs"]
        elif score >= cfg.poor_threshold:
            level = QualityLevel.POOR
            message = "Poor data quality - results should be used with caution"
            recommendations += [
                "Provide competitor URLs for automated collection",
                "Use official APIs where available",
                "Manually verify key competitor prices",
            ]
        else:
            level = QualityLevel.INSUFFICIENT
            message = "Insufficient data quality - cannot provide reliable recommendations"
            recommendations += [
                "Provide competitor product URLs",
                "Manually enter competitor prices",
                "Consider using third-party data providers",
            ]

        types = {o.source_type for o in observations}
        has_api = SourceType.API in types
        if not has_api:
            recommendations.append(
                "Consider using official APIs (Amazon SP-API, Walmart API) for better data quality"
            )
        if SourceType.SCRAPING in types and not has_api:
            recommendations.append("Web scraping data may be unreliable - consider manual verification")
        if SourceType.MANUAL in types and len(observations) == 1:
            recommendations.append("Add more data sources beyond manual entry for better accuracy")

        return DataQualityResult(
            score=score,
            level=level,
            message=message,
            recommendations=list(dict.fromkeys(recommendations)),
        )

    def get_competitor_guidance(self, platform: str | None = None) -> list[CompetitorGuidance]:
        """Get collection guidance, optionally filtered by platform name."""
        if platform:
            needle = platform.lower()
            return [g for g in COMPETITOR_GUIDANCE if needle in g.platform.lower()]
        return list(COMPETITOR_GUIDANCE)

    def validate_competitor_url(self, url: str) -> UrlValidation:
        """Identify the platform and product id of a competitor URL."""
        for guidance, regex in self._guidance_regexes:
            if regex.search(url):
                match = PRODUCT_ID_PATTERNS[guidance.platform].search(url)
                return UrlValidation(
                    is_valid=True,
                    platform=guidance.platform,
                    product_id=match.group(1) if match else None,
                    guidance=guidance,
                )
        return UrlValidation(is_valid=False)

    def generate_report(
        self, observations: list[PriceObservation], now: datetime | None = None
    ) -> str:
        """Render a plain-text data quality report."""
        quality = self.score(observations, now=now)

        lines = [
            "Data Quality Report",
            "==================",
            "",
            f"Overall Score: {quality.score}/100 ({quality.level.value})",
            f"Status: {quality.message}",
            "",
        ]
        if quality.recommendations:
            lines.append("Recommendations:")
            lines.extend(f"{i}. {rec}" for i, rec in enumerate(quality.recommendations, start=1))

        return "\n".join(lines) + "\n"
