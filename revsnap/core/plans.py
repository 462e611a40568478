"""Subscription plan limits and feature checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .exceptions import PlanLimitError
from .models import PlanId, Subscription

logger = logging.getLogger(__name__)

UNLIMITED = -1
DEFAULT_UPDATE_INTERVAL = 60

BASE_SOURCES = ["Amazon", "Best Buy", "Walmart", "Target"]
PROFESSIONAL_SOURCES = BASE_SOURCES + ["Newegg", "B&H Photo", "Micro Center", "Fry's Electronics"]
ENTERPRISE_SOURCES = PROFESSIONAL_SOURCES + ["Custom Sources", "API Integrations"]

PLAN_ORDER = [PlanId.STARTER, PlanId.PROFESSIONAL, PlanId.ENTERPRISE]

FEATURES = (
    "api_access",
    "custom_alerts",
    "data_export",
    "mobile_dashboard",
    "team_collaboration",
    "white_label",
    "sla_guarantee",
    "custom_integrations",
    "custom_ai_models",
)

ACTIONS = ("add_product", "update_frequency", "api_access", "custom_alerts")


@dataclass(frozen=True)
class PlanLimits:
    """What a subscription plan allows."""

    plan_id: PlanId
    name: str
    price: int
    max_products: int
    update_interval_minutes: int
    competitor_sources: list[str] = field(default_factory=list)
    support_level: str = "email"
    api_access: bool = False
    custom_alerts: bool = False
    data_export: bool = False
    mobile_dashboard: bool = False
    team_collaboration: bool = False
    white_label: bool = False
    sla_guarantee: bool = False
    custom_integrations: bool = False
    custom_ai_models: bool = False

    @property
    def is_unlimited(self) -> bool:
        return self.max_products == UNLIMITED

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.plan_id.value,
            "name": self.name,
            "price": self.price,
            "max_products": self.max_products,
            "update_interval_minutes": self.update_interval_minutes,
            "competitor_sources": list(self.competitor_sources),
            "support_level": self.support_level,
        }
        data.update({feature: getattr(self, feature) for feature in FEATURES})
        return data


PLAN_LIMITS: dict[PlanId, PlanLimits] = {
    PlanId.STARTER: PlanLimits(
        plan_id=PlanId.STARTER,
        name="Starter",
        price=49,
        max_products=25,
        update_interval_minutes=60,
        competitor_sources=BASE_SOURCES,
        support_level="priority_email",
        data_export=True,
        mobile_dashboard=True,
    ),
    PlanId.PROFESSIONAL: PlanLimits(
        plan_id=PlanId.PROFESSIONAL,
        name="Professional",
        price=149,
        max_products=200,
        update_interval_minutes=15,
        competitor_sources=PROFESSIONAL_SOURCES,
        support_level="phone",
        api_access=True,
        custom_alerts=True,
        data_export=True,
        mobile_dashboard=True,
        team_collaboration=True,
    ),
    PlanId.ENTERPRISE: PlanLimits(
        plan_id=PlanId.ENTERPRISE,
        name="Enterprise",
        price=399,
        max_products=UNLIMITED,
        update_interval_minutes=5,
        competitor_sources=ENTERPRISE_SOURCES,
        support_level="dedicated",
        api_access=True,
        custom_alerts=True,
        data_export=True,
        mobile_dashboard=True,
        team_collaboration=True,
        white_label=True,
        sla_guarantee=True,
        custom_integrations=True,
        custom_ai_models=True,
    ),
}


@dataclass
class ActionCheck:
    """Outcome of checking an action against a plan."""

    allowed: bool
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "reason": self.reason}


@dataclass
class UpgradeRecommendation:
    """Whether an organization should move to a bigger plan."""

    recommended: bool
    reason: str
    suggested_plan: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommended": self.recommended,
            "reason": self.reason,
            "suggested_plan": self.suggested_plan,
        }


def _lookup(plan_id: PlanId | str) -> PlanLimits | None:
    if isinstance(plan_id, PlanId):
        return PLAN_LIMITS.get(plan_id)
    try:
        return PLAN_LIMITS.get(PlanId.from_string(plan_id))
    except (AttributeError, ValueError):
        return None


class PlanService:
    """Answers what a plan allows."""

    @staticmethod
    def get_plan_limits(plan_id: PlanId | str) -> PlanLimits | None:
        return _lookup(plan_id)

    @staticmethod
    def get_all_plans() -> list[PlanLimits]:
        return [PLAN_LIMITS[p] for p in PLAN_ORDER]

    @staticmethod
    def effective_plan(subscription: Subscription | None) -> PlanId:
        """Plan whose limits apply, starter unless the subscription is in good standing."""
        if subscription is None or not subscription.is_in_good_standing:
            return PlanId.STARTER
        return subscription.plan

    @staticmethod
    def can_add_product(current_count: int, plan_id: PlanId | str) -> bool:
        plan = _lookup(plan_id)
        if plan is None:
            return False
        return plan.is_unlimited or current_count < plan.max_products

    @staticmethod
    def get_update_interval(plan_id: PlanId | str) -> int:
        plan = _lookup(plan_id)
        return plan.update_interval_minutes if plan else DEFAULT_UPDATE_INTERVAL

    @staticmethod
    def get_competitor_sources(plan_id: PlanId | str) -> list[str]:
        plan = _lookup(plan_id)
        return list(plan.competitor_sources) if plan else []

    @staticmethod
    def has_feature(plan_id: PlanId | str, feature: str) -> bool:
        plan = _lookup(plan_id)
        if plan is None or feature not in FEATURES:
            return False
        return getattr(plan, feature) is True

    @staticmethod
    def next_plan(plan_id: PlanId | str) -> PlanId:
        """Next plan up, or the same plan when already at the top."""
        plan = _lookup(plan_id)
        if plan is None:
            return PlanId.PROFESSIONAL
        index = PLAN_ORDER.index(plan.plan_id)
        return PLAN_ORDER[min(index + 1, len(PLAN_ORDER) - 1)]

    @staticmethod
    def validate_action(
        plan_id: PlanId | str, action: str, current_count: int = 0
    ) -> ActionCheck:
        """Check whether a plan permits an action."""
        plan = _lookup(plan_id)
        if plan is None:
            return ActionCheck(False, "Invalid plan")

        if action == "add_product":
            if not plan.is_unlimited and current_count >= plan.max_products:
                return ActionCheck(
                    False, f"Plan limit reached. Maximum {plan.max_products} products allowed."
                )
            return ActionCheck(True)
        if action == "update_frequency":
            return ActionCheck(True)
        if action == "api_access":
            return ActionCheck(
                plan.api_access, None if plan.api_access else "API access not available in this plan"
            )
        if action == "custom_alerts":
            return ActionCheck(
                plan.custom_alerts,
                None if plan.custom_alerts else "Custom alerts not available in this plan",
            )
        return ActionCheck(False, "Unknown action")

    @staticmethod
    def require_products(plan_id: PlanId | str, current_count: int, adding: int) -> None:
        """Raise PlanLimitError if adding products would exceed the plan."""
        plan = _lookup(plan_id)
        if plan is None:
            raise PlanLimitError("Invalid plan", str(plan_id))
        if plan.is_unlimited or adding <= 0:
            return
        if current_count + adding > plan.max_products:
            logger.warning(
                f"Plan {plan.plan_id.value} limit hit: {current_count} + {adding} > {plan.max_products}"
            )
            raise PlanLimitError(
                f"Plan limit reached. Maximum {plan.max_products} products allowed.",
                plan.plan_id.value,
            )

    @staticmethod
    def get_upgrade_recommendation(
        plan_id: PlanId | str,
        product_count: int,
        needs_api_access: bool = False,
        needs_custom_alerts: bool = False,
    ) -> UpgradeRecommendation:
        """Suggest a plan upgrade from usage and feature needs."""
        plan = _lookup(plan_id)
        if plan is None:
            return UpgradeRecommendation(False, "Invalid plan", PlanId.PROFESSIONAL.value)

        if not plan.is_unlimited and product_count >= plan.max_products * 0.8:
            return UpgradeRecommendation(
                True,
                f"Approaching product limit ({product_count}/{plan.max_products})",
                PlanService.next_plan(plan.plan_id).value,
            )
        if needs_api_access and not plan.api_access:
            return UpgradeRecommendation(
                True, "API access required for automation", PlanId.PROFESSIONAL.value
            )
        if needs_custom_alerts and not plan.custom_alerts:
            return UpgradeRecommendation(
                True, "Custom alert thresholds required", PlanId.PROFESSIONAL.value
            )
        return UpgradeRecommendation(False, "Current plan meets needs", plan.plan_id.value)
