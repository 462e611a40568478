"""Repository pattern for database operations."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, desc, func, select, update

from revsnap.core.models import (
    AlertSeverity,
    CompetitorPrice,
    Organization,
    PlanId,
    PriceAlert,
    PricingAnalysis,
    PricingRecommendation,
    PricingSummary,
    Product,
    ProductInput,
    SourceType,
    Subscription,
    SubscriptionStatus,
)

from .models import (
    CompetitorPriceDB,
    OrganizationDB,
    PriceAlertDB,
    PricingAnalysisDB,
    ProductDB,
    SubscriptionDB,
)
from .session import session_scope


class Repository:
    """Data access repository for all database operations."""

    # ==================== Organizations ====================

    def create_organization(self, org: Organization) -> Organization:
        """Save a new organization."""
        with session_scope() as session:
            db_org = OrganizationDB(name=org.name, slug=org.slug, industry=org.industry)
            session.add(db_org)
            session.flush()
            org.id = db_org.id
            org.created_at = db_org.created_at
            org.updated_at = db_org.updated_at
            return org

    def get_organization(self, org_id: int) -> Organization | None:
        """Get an organization by ID."""
        with session_scope() as session:
            db_org = session.get(OrganizationDB, org_id)
            if db_org:
                return self._db_to_organization(db_org)
            return None

    def get_organization_by_slug(self, slug: str) -> Organization | None:
        """Get an organization by its unique slug."""
        with session_scope() as session:
            query = select(OrganizationDB).where(OrganizationDB.slug == slug)
            db_org = session.execute(query).scalar_one_or_none()
            if db_org:
                return self._db_to_organization(db_org)
            return None

    def _db_to_organization(self, db: OrganizationDB) -> Organization:
        """Convert database model to domain model."""
        return Organization(
            id=db.id,
            name=db.name,
            slug=db.slug,
            industry=db.industry or "",
            created_at=db.created_at,
            updated_at=db.updated_at,
        )

    # ==================== Subscriptions ====================

    def save_subscription(self, subscription: Subscription) -> Subscription:
        """Save a subscription for an organization."""
        with session_scope() as session:
            db_sub = SubscriptionDB(
                organization_id=subscription.organization_id,
                plan=subscription.plan.value,
                status=subscription.status.value,
                current_period_end=subscription.current_period_end,
                created_at=subscription.created_at,
            )
            session.add(db_sub)
            session.flush()
            subscription.id = db_sub.id
            return subscription

    def get_current_subscription(self, org_id: int) -> Subscription | None:
        """Get the most recently created subscription of an organization."""
        with session_scope() as session:
            query = (
                select(SubscriptionDB)
                .where(SubscriptionDB.organization_id == org_id)
                .order_by(desc(SubscriptionDB.created_at), desc(SubscriptionDB.id))
                .limit(1)
            )
            db_sub = session.execute(query).scalar_one_or_none()
            if db_sub:
                return self._db_to_subscription(db_sub)
            return None

    def _db_to_subscription(self, db: SubscriptionDB) -> Subscription:
        """Convert database model to domain model."""
        return Subscription(
            id=db.id,
            organization_id=db.organization_id,
            plan=PlanId.from_string(db.plan),
            status=SubscriptionStatus(db.status),
            current_period_end=db.current_period_end,
            created_at=db.created_at,
            updated_at=db.updated_at,
        )

    # ==================== Products ====================

    def save_product(self, product: Product) -> Product:
        """Save a new product."""
        with session_scope() as session:
            db_product = ProductDB(
                organization_id=product.organization_id,
                name=product.name,
                sku=product.sku,
                category=product.category,
                current_price=product.current_price,
                cost=product.cost,
                units_sold=product.units_sold,
                currency=product.currency,
                is_active=product.is_active,
            )
            session.add(db_product)
            session.flush()
            product.id = db_product.id
            return product

    def get_product(self, product_id: int) -> Product | None:
        """Get a product by ID."""
        with session_scope() as session:
            db_product = session.get(ProductDB, product_id)
            if db_product:
                return self._db_to_product(db_product)
            return None

    def get_products(self, org_id: int, active_only: bool = True) -> list[Product]:
        """Get all products of an organization."""
        with session_scope() as session:
            query = select(ProductDB).where(ProductDB.organization_id == org_id)
            if active_only:
                query = query.where(ProductDB.is_active == True)
            query = query.order_by(ProductDB.name)

            result = session.execute(query).scalars().all()
            return [self._db_to_product(db) for db in result]

    def count_products(self, org_id: int, active_only: bool = True) -> int:
        """Count the products of an organization."""
        with session_scope() as session:
            query = select(func.count(ProductDB.id)).where(ProductDB.organization_id == org_id)
            if active_only:
                query = query.where(ProductDB.is_active == True)
            return session.execute(query).scalar() or 0

    def get_active_product_names(self, org_id: int) -> set[str]:
        """Get the names of an organization's active products."""
        with session_scope() as session:
            query = select(ProductDB.name).where(
                and_(ProductDB.organization_id == org_id, ProductDB.is_active == True)
            )
            return set(session.execute(query).scalars().all())

    def upsert_products(self, org_id: int, items: list[ProductInput]) -> tuple[int, int]:
        """Update active products by name or create new ones.

        Returns tuple of (created, updated).
        """
        created = 0
        updated = 0
        with session_scope() as session:
            query = select(ProductDB).where(
                and_(ProductDB.organization_id == org_id, ProductDB.is_active == True)
            )
            existing = {p.name: p for p in session.execute(query).scalars().all()}

            for item in items:
                db_product = existing.get(item.name)
                if db_product is None:
                    db_product = ProductDB(organization_id=org_id, name=item.name)
                    session.add(db_product)
                    existing[item.name] = db_product
                    created += 1
                else:
                    db_product.updated_at = datetime.now()
                    updated += 1

                db_product.current_price = item.current_price
                db_product.cost = item.cost
                if item.units_sold is not None:
                    db_product.units_sold = item.units_sold
                if item.category:
                    db_product.category = item.category

        return created, updated

    def deactivate_product(self, product_id: int) -> bool:
        """Mark a product inactive."""
        with session_scope() as session:
            stmt = (
                update(ProductDB)
                .where(ProductDB.id == product_id)
                .values(is_active=False, updated_at=datetime.now())
            )
            return session.execute(stmt).rowcount > 0

    def _db_to_product(self, db: ProductDB) -> Product:
        """Convert database model to domain model."""
        return Product(
            id=db.id,
            organization_id=db.organization_id,
            name=db.name,
            sku=db.sku or "",
            category=db.category or "General",
            current_price=Decimal(db.current_price or 0),
            cost=Decimal(db.cost or 0),
            units_sold=db.units_sold,
            currency=db.currency,
            is_active=db.is_active,
            created_at=db.created_at,
            updated_at=db.updated_at,
        )

    # ==================== Competitor Prices ====================

    def save_competitor_prices(self, prices: list[CompetitorPrice]) -> list[CompetitorPrice]:
        """Save a batch of competitor prices."""
        with session_scope() as session:
            db_prices = []
            for price in prices:
                db_price = CompetitorPriceDB(
                    product_id=price.product_id,
                    competitor=price.competitor,
                    product_name=price.product_name,
                    price=price.price,
                    previous_price=price.previous_price,
                    price_change=price.price_change,
                    price_change_pct=price.price_change_pct,
                    currency=price.currency,
                    availability=price.availability,
                    shipping=price.shipping,
                    rating=price.rating,
                    review_count=price.review_count,
                    url=price.url,
                    source_type=price.source_type.value,
                    reliability=price.reliability,
                    observed_at=price.observed_at,
                )
                db_prices.append(db_price)
                session.add(db_price)

            session.flush()

            for price, db_price in zip(prices, db_prices):
                price.id = db_price.id

            return prices

    def get_latest_competitor_prices(self, product_id: int) -> list[CompetitorPrice]:
        """Get the most recent price of each competitor for a product."""
        with session_scope() as session:
            query = (
                select(CompetitorPriceDB)
                .where(CompetitorPriceDB.product_id == product_id)
                .order_by(desc(CompetitorPriceDB.observed_at), desc(CompetitorPriceDB.id))
            )
            latest: dict[str, CompetitorPrice] = {}
            for db in session.execute(query).scalars():
                if db.competitor not in latest:
                    latest[db.competitor] = self._db_to_competitor_price(db)
            return list(latest.values())

    def get_competitor_price_history(
        self, product_id: int, days: int = 30, competitor: str | None = None
    ) -> list[CompetitorPrice]:
        """Get competitor prices observed within the last N days, oldest first."""
        cutoff = datetime.now() - timedelta(days=days)
        with session_scope() as session:
            query = select(CompetitorPriceDB).where(
                and_(
                    CompetitorPriceDB.product_id == product_id,
                    CompetitorPriceDB.observed_at >= cutoff,
                )
            )
            if competitor:
                query = query.where(CompetitorPriceDB.competitor == competitor)
            query = query.order_by(CompetitorPriceDB.observed_at, CompetitorPriceDB.id)

            result = session.execute(query).scalars().all()
            return [self._db_to_competitor_price(db) for db in result]

    def _db_to_competitor_price(self, db: CompetitorPriceDB) -> CompetitorPrice:
        """Convert database model to domain model."""
        return CompetitorPrice(
            id=db.id,
            product_id=db.product_id,
            competitor=db.competitor,
            product_name=db.product_name or "",
            price=Decimal(db.price or 0),
            previous_price=Decimal(db.previous_price or 0),
            price_change=Decimal(db.price_change or 0),
            price_change_pct=Decimal(db.price_change_pct or 0),
            shipping=Decimal(db.shipping or 0),
            currency=db.currency,
            availability=db.availability,
            rating=db.rating,
            review_count=db.review_count,
            url=db.url or "",
            source_type=SourceType(db.source_type),
            reliability=Decimal(db.reliability or 0),
            observed_at=db.observed_at,
        )

    # ==================== Price Alerts ====================

    def save_alerts(self, alerts: list[PriceAlert]) -> list[PriceAlert]:
        """Save a batch of price alerts."""
        with session_scope() as session:
            db_alerts = []
            for alert in alerts:
                db_alert = PriceAlertDB(
                    product_id=alert.product_id,
                    competitor=alert.competitor,
                    product_name=alert.product_name,
                    old_price=alert.old_price,
                    new_price=alert.new_price,
                    change_pct=alert.change_pct,
                    severity=alert.severity.value,
                    threshold=alert.threshold,
                    is_read=alert.is_read,
                    created_at=alert.created_at,
                )
                db_alerts.append(db_alert)
                session.add(db_alert)

            session.flush()

            for alert, db_alert in zip(alerts, db_alerts):
                alert.id = db_alert.id

            return alerts

    def get_unread_alerts(self, product_id: int | None = None, limit: int = 50) -> list[PriceAlert]:
        """Get unread alerts, newest first."""
        with session_scope() as session:
            query = select(PriceAlertDB).where(PriceAlertDB.is_read == False)
            if product_id is not None:
                query = query.where(PriceAlertDB.product_id == product_id)
            query = query.order_by(desc(PriceAlertDB.created_at), desc(PriceAlertDB.id)).limit(limit)

            result = session.execute(query).scalars().all()
            return [self._db_to_alert(db) for db in result]

    def mark_alerts_read(self, alert_ids: list[int]) -> int:
        """Mark alerts as read, returning how many changed."""
        if not alert_ids:
            return 0
        with session_scope() as session:
            stmt = update(PriceAlertDB).where(PriceAlertDB.id.in_(alert_ids)).values(is_read=True)
            return session.execute(stmt).rowcount

    def _db_to_alert(self, db: PriceAlertDB) -> PriceAlert:
        """Convert database model to domain model."""
        return PriceAlert(
            id=db.id,
            product_id=db.product_id,
            competitor=db.competitor,
            product_name=db.product_name or "",
            old_price=Decimal(db.old_price or 0),
            new_price=Decimal(db.new_price or 0),
            change_pct=Decimal(db.change_pct or 0),
            severity=AlertSeverity(db.severity),
            threshold=Decimal(db.threshold or 0),
            is_read=db.is_read,
            created_at=db.created_at,
        )

    # ==================== Pricing Analyses ====================

    def save_analysis(self, analysis: PricingAnalysis) -> PricingAnalysis:
        """Save a pricing analysis with its recommendations."""
        positions = {id(r): i for i, r in enumerate(analysis.recommendations)}
        summary_data = {
            "summary": analysis.summary.to_dict(),
            "top_opportunities": [positions[id(r)] for r in analysis.top_opportunities],
            "risk_products": [positions[id(r)] for r in analysis.risk_products],
        }

        with session_scope() as session:
            db_analysis = PricingAnalysisDB(
                organization_id=analysis.organization_id,
                total_products=analysis.summary.total_products,
                total_current_revenue=analysis.summary.total_current_revenue,
                total_projected_revenue=analysis.summary.total_projected_revenue,
                revenue_uplift=analysis.summary.revenue_uplift,
                avg_margin_improvement=analysis.summary.avg_margin_improvement,
                summary_json=json.dumps(summary_data),
                recommendations_json=json.dumps([r.to_dict() for r in analysis.recommendations]),
                created_at=analysis.created_at,
            )
            session.add(db_analysis)
            session.flush()
            analysis.id = db_analysis.id
            return analysis

    def get_analysis(self, analysis_id: int) -> PricingAnalysis | None:
        """Get a saved pricing analysis by ID."""
        with session_scope() as session:
            db_analysis = session.get(PricingAnalysisDB, analysis_id)
            if db_analysis:
                return self._db_to_analysis(db_analysis)
            return None

    def _db_to_analysis(self, db: PricingAnalysisDB) -> PricingAnalysis:
        """Convert database model to domain model."""
        summary_data: dict[str, Any] = json.loads(db.summary_json or "{}")
        recommendations = [
            PricingRecommendation.from_dict(r) for r in json.loads(db.recommendations_json or "[]")
        ]

        def dec(key: str) -> Decimal:
            return Decimal(str(summary_data.get("summary", {}).get(key) or 0))

        summary = PricingSummary(
            total_products=db.total_products,
            total_current_revenue=dec("total_current_revenue"),
            total_projected_revenue=dec("total_projected_revenue"),
            revenue_uplift=dec("revenue_uplift"),
            revenue_uplift_pct=dec("revenue_uplift_pct"),
            avg_margin_improvement=dec("avg_margin_improvement"),
            high_confidence_count=int(summary_data.get("summary", {}).get("high_confidence_count") or 0),
        )

        return PricingAnalysis(
            id=db.id,
            organization_id=db.organization_id,
            summary=summary,
            recommendations=recommendations,
            top_opportunities=[recommendations[i] for i in summary_data.get("top_opportunities", [])],
            risk_products=[recommendations[i] for i in summary_data.get("risk_products", [])],
            created_at=db.created_at,
        )
