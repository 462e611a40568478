#!/usr/bin/env python
"""Seed a demo organization with a subscription, products and competitor prices."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from decimal import Decimal


DEMO_PRODUCTS = [
    ("Wireless Earbuds Pro", "Electronics", "79.99", "32.00", 420),
    ("Organic Cotton Tee", "Fashion", "24.50", "9.80", 860),
    ("Daily Multivitamin", "Health", "18.00", "15.20", 1300),
    ("Cold Brew Concentrate", "Food & Beverage", "14.99", "10.50", 540),
    ("Adjustable Dumbbell Set", "Fitness", "249.00", "150.00", 75),
    ("Leather Card Wallet", "Accessories", "39.00", "12.00", 310),
    ("Lavender Sleep Mist", "Wellness", "22.00", "14.30", 190),
]

DEMO_COMPETITORS = [
    ("Amazon", "api", "95"),
    ("Walmart", "api", "90"),
    ("Target", "scraping", "70"),
]


def main() -> int:
    """Create the demo data."""
    from revsnap.core.models import (
        CompetitorPrice,
        Organization,
        PlanId,
        ProductInput,
        SourceType,
        Subscription,
        SubscriptionStatus,
    )
    from revsnap.db.repository import Repository
    from revsnap.db.session import init_database

    init_database()
    repo = Repository()

    if repo.get_organization_by_slug("demo-brand"):
        print("Demo organization already exists")
        return 0

    org = repo.create_organization(
        Organization(name="Demo Brand", slug="demo-brand", industry="Consumer Goods")
    )
    repo.save_subscription(
        Subscription(
            organization_id=org.id,
            plan=PlanId.PROFESSIONAL,
            status=SubscriptionStatus.TRIALING,
            current_period_end=datetime.now() + timedelta(days=14),
        )
    )
    print(f"✓ Created organization {org.name} (id {org.id})")

    created, _ = repo.upsert_products(
        org.id,
        [
            ProductInput(
                name=name,
                category=category,
                current_price=Decimal(price),
                cost=Decimal(cost),
                units_sold=units,
            )
            for name, category, price, cost, units in DEMO_PRODUCTS
        ],
    )
    print(f"✓ Created {created} products")

    now = datetime.now()
    for product in repo.get_products(org.id):
        prices = []
        for offset, (competitor, source_type, reliability) in enumerate(DEMO_COMPETITORS):
            factor = Decimal("0.92") + Decimal(offset) * Decimal("0.06")
            prices.append(
                CompetitorPrice(
                    product_id=product.id,
                    competitor=competitor,
                    product_name=product.name,
                    price=(product.current_price * factor).quantize(Decimal("0.01")),
                    source_type=SourceType(source_type),
                    reliability=Decimal(reliability),
                    observed_at=now - timedelta(hours=offset),
                )
            )
        repo.save_competitor_prices(prices)
    print("✓ Added competitor prices")

    return 0


if __name__ == "__main__":
    sys.exit(main())
