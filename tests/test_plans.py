"""Tests for subscription plan limits."""

import pytest

from revsnap.core.exceptions import PlanLimitError
from revsnap.core.models import PlanId, Subscription, SubscriptionStatus
from revsnap.core.plans import PLAN_LIMITS, UNLIMITED, PlanService


class TestPlanLimits:
    """Tests for the plan table."""

    def test_all_plans_in_order(self):
        plans = PlanService.get_all_plans()
        assert [p.plan_id for p in plans] == [PlanId.STARTER, PlanId.PROFESSIONAL, PlanId.ENTERPRISE]
        assert [p.price for p in plans] == [49, 149, 399]

    def test_product_limits(self):
        assert PLAN_LIMITS[PlanId.STARTER].max_products == 25
        assert PLAN_LIMITS[PlanId.PROFESSIONAL].max_products == 200
        assert PLAN_LIMITS[PlanId.ENTERPRISE].max_products == UNLIMITED
        assert PLAN_LIMITS[PlanId.ENTERPRISE].is_unlimited

    def test_lookup_by_string(self):
        assert PlanService.get_plan_limits("Professional").plan_id == PlanId.PROFESSIONAL
        assert PlanService.get_plan_limits("gold") is None

    def test_to_dict(self):
        data = PLAN_LIMITS[PlanId.STARTER].to_dict()
        assert data["id"] == "starter"
        assert data["data_export"] is True
        assert data["api_access"] is False


class TestPlanService:
    """Tests for plan checks."""

    @pytest.mark.parametrize(
        "count, plan, expected",
        [
            (0, PlanId.STARTER, True),
            (24, PlanId.STARTER, True),
            (25, PlanId.STARTER, False),
            (199, PlanId.PROFESSIONAL, True),
            (200, PlanId.PROFESSIONAL, False),
            (100000, PlanId.ENTERPRISE, True),
            (0, "platinum", False),
        ],
    )
    def test_can_add_product(self, count, plan, expected):
        assert PlanService.can_add_product(count, plan) is expected

    def test_update_interval(self):
        assert PlanService.get_update_interval(PlanId.STARTER) == 60
        assert PlanService.get_update_interval(PlanId.PROFESSIONAL) == 15
        assert PlanService.get_update_interval(PlanId.ENTERPRISE) == 5
        assert PlanService.get_update_interval("unknown") == 60

    def test_competitor_sources_grow(self):
        starter = PlanService.get_competitor_sources(PlanId.STARTER)
        professional = PlanService.get_competitor_sources(PlanId.PROFESSIONAL)
        enterprise = PlanService.get_competitor_sources(PlanId.ENTERPRISE)

        assert set(starter) < set(professional) < set(enterprise)
        assert PlanService.get_competitor_sources("unknown") == []

    def test_has_feature(self):
        assert PlanService.has_feature(PlanId.STARTER, "data_export")
        assert not PlanService.has_feature(PlanId.STARTER, "api_access")
        assert PlanService.has_feature(PlanId.ENTERPRISE, "white_label")
        assert not PlanService.has_feature(PlanId.ENTERPRISE, "time_travel")
        assert not PlanService.has_feature("unknown", "data_export")

    def test_next_plan(self):
        assert PlanService.next_plan(PlanId.STARTER) == PlanId.PROFESSIONAL
        assert PlanService.next_plan(PlanId.PROFESSIONAL) == PlanId.ENTERPRISE
        assert PlanService.next_plan(PlanId.ENTERPRISE) == PlanId.ENTERPRISE
        assert PlanService.next_plan("unknown") == PlanId.PROFESSIONAL

    @pytest.mark.parametrize(
        "status, expected",
        [
            (SubscriptionStatus.ACTIVE, PlanId.ENTERPRISE),
            (SubscriptionStatus.TRIALING, PlanId.ENTERPRISE),
            (SubscriptionStatus.PAST_DUE, PlanId.STARTER),
            (SubscriptionStatus.CANCELED, PlanId.STARTER),
        ],
    )
    def test_effective_plan(self, status, expected):
        sub = Subscription(organization_id=1, plan=PlanId.ENTERPRISE, status=status)
        assert PlanService.effective_plan(sub) == expected

    def test_effective_plan_without_subscription(self):
        assert PlanService.effective_plan(None) == PlanId.STARTER


class TestValidateAction:
    """Tests for action checks."""

    def test_add_product_at_limit(self):
        check = PlanService.validate_action(PlanId.STARTER, "add_product", current_count=25)
        assert check.allowed is False
        assert check.reason == "Plan limit reached. Maximum 25 products allowed."

    def test_add_product_enterprise(self):
        assert PlanService.validate_action(PlanId.ENTERPRISE, "add_product", current_count=5000).allowed

    def test_api_access(self):
        check = PlanService.validate_action(PlanId.STARTER, "api_access")
        assert check.to_dict() == {"allowed": False, "reason": "API access not available in this plan"}
        assert PlanService.validate_action(PlanId.PROFESSIONAL, "api_access").allowed

    def test_custom_alerts(self):
        assert not PlanService.validate_action(PlanId.STARTER, "custom_alerts").allowed
        assert PlanService.validate_action(PlanId.ENTERPRISE, "custom_alerts").allowed

    def test_update_frequency_always_allowed(self):
        assert PlanService.validate_action(PlanId.STARTER, "update_frequency").allowed

    def test_unknown(self):
        assert PlanService.validate_action(PlanId.STARTER, "teleport").reason == "Unknown action"
        assert PlanService.validate_action("gold", "add_product").reason == "Invalid plan"


class TestRequireProducts:
    """Tests for the product limit guard."""

    def test_within_limit(self):
        PlanService.require_products(PlanId.STARTER, 20, 5)

    def test_over_limit(self):
        with pytest.raises(PlanLimitError) as exc_info:
            PlanService.require_products(PlanId.STARTER, 20, 6)

        assert exc_info.value.status_code == 403
        assert exc_info.value.plan == "starter"
        assert exc_info.value.message == "Plan limit reached. Maximum 25 products allowed."

    def test_enterprise_unlimited(self):
        PlanService.require_products(PlanId.ENTERPRISE, 10000, 10000)

    def test_adding_nothing(self):
        PlanService.require_products(PlanId.STARTER, 30, 0)


class TestUpgradeRecommendation:
    """Tests for upgrade suggestions."""

    def test_approaching_limit(self):
        rec = PlanService.get_upgrade_recommendation(PlanId.STARTER, 20)
        assert rec.recommended is True
        assert rec.reason == "Approaching product limit (20/25)"
        assert rec.suggested_plan == "professional"

    def test_professional_near_limit(self):
        rec = PlanService.get_upgrade_recommendation(PlanId.PROFESSIONAL, 160)
        assert rec.suggested_plan == "enterprise"

    def test_needs_api(self):
        rec = PlanService.get_upgrade_recommendation(PlanId.STARTER, 3, needs_api_access=True)
        assert rec.recommended is True
        assert rec.suggested_plan == "professional"

    def test_needs_custom_alerts(self):
        rec = PlanService.get_upgrade_recommendation(PlanId.STARTER, 3, needs_custom_alerts=True)
        assert rec.reason == "Custom alert thresholds required"

    def test_meets_needs(self):
        rec = PlanService.get_upgrade_recommendation(PlanId.ENTERPRISE, 5000, needs_api_access=True)
        assert rec.to_dict() == {
            "recommended": False,
            "reason": "Current plan meets needs",
            "suggested_plan": "enterprise",
        }
