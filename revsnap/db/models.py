"""SQLAlchemy database models for RevSnap."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class OrganizationDB(Base):
    """A tenant organization."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    industry: Mapped[str] = mapped_column(String(100), default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    subscriptions: Mapped[list[SubscriptionDB]] = relationship(
        "SubscriptionDB", back_populates="organization", cascade="all, delete-orphan"
    )
    products: Mapped[list[ProductDB]] = relationship(
        "ProductDB", back_populates="organization", cascade="all, delete-orphan"
    )


class SubscriptionDB(Base):
    """Plan subscription of an organization."""

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan: Mapped[str] = mapped_column(String(20), nullable=False, default="starter")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    organization: Mapped[OrganizationDB] = relationship("OrganizationDB", back_populates="subscriptions")


class ProductDB(Base):
    """Product in an organization's catalog."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), default="")
    category: Mapped[str] = mapped_column(String(100), default="General")
    current_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    units_sold: Mapped[int] = mapped_column(Integer, default=100)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    organization: Mapped[OrganizationDB] = relationship("OrganizationDB", back_populates="products")
    competitor_prices: Mapped[list[CompetitorPriceDB]] = relationship(
        "CompetitorPriceDB", back_populates="product", cascade="all, delete-orphan"
    )
    alerts: Mapped[list[PriceAlertDB]] = relationship(
        "PriceAlertDB", back_populates="product", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_products_org_name", "organization_id", "name"),)


class CompetitorPriceDB(Base):
    """Observed competitor price for a product."""

    __tablename__ = "competitor_prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    competitor: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[str] = mapped_column(String(300), default="")

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    previous_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    price_change: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    price_change_pct: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    availability: Mapped[bool] = mapped_column(Boolean, default=True)
    shipping: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    review_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    url: Mapped[str] = mapped_column(Text, default="")
    source_type: Mapped[str] = mapped_column(String(20), default="manual")
    reliability: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("80"))

    observed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)

    product: Mapped[ProductDB] = relationship("ProductDB", back_populates="competitor_prices")

    __table_args__ = (
        Index("ix_competitor_prices_product_comp_time", "product_id", "competitor", "observed_at"),
    )


class PriceAlertDB(Base):
    """Alert raised by a competitor price change."""

    __tablename__ = "price_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    competitor: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[str] = mapped_column(String(300), default="")
    old_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    new_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    change_pct: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    severity: Mapped[str] = mapped_column(String(10), default="low")
    threshold: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("2"))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)

    product: Mapped[ProductDB] = relationship("ProductDB", back_populates="alerts")


class PricingAnalysisDB(Base):
    """Saved pricing analysis."""

    __tablename__ = "pricing_analyses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    total_products: Mapped[int] = mapped_column(Integer, default=0)
    total_current_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total_projected_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    revenue_uplift: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    avg_margin_improvement: Mapped[Decimal] = mapped_column(Numeric(8, 4), default=Decimal("0"))

    # JSON fields for full detail
    summary_json: Mapped[str] = mapped_column(Text, default="{}")
    recommendations_json: Mapped[str] = mapped_column(Text, default="[]")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)
