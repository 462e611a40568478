"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Organizations table
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("industry", sa.String(100), default=""),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )

    # Subscriptions table
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("plan", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("current_period_end", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_subscriptions_organization_id", "subscriptions", ["organization_id"])

    # Products table
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("sku", sa.String(100), default=""),
        sa.Column("category", sa.String(100), default="General"),
        sa.Column("current_price", sa.Numeric(12, 2), default=0),
        sa.Column("cost", sa.Numeric(12, 2), default=0),
        sa.Column("units_sold", sa.Integer(), default=100),
        sa.Column("currency", sa.String(3), default="USD"),
        sa.Column("is_active", sa.Boolean(), default=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_products_organization_id", "products", ["organization_id"])
    op.create_index("ix_products_is_active", "products", ["is_active"])
    op.create_index("ix_products_org_name", "products", ["organization_id", "name"])

    # Competitor prices table
    op.create_table(
        "competitor_prices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("competitor", sa.String(100), nullable=False),
        sa.Column("product_name", sa.String(300), default=""),
        sa.Column("price", sa.Numeric(12, 2), default=0),
        sa.Column("previous_price", sa.Numeric(12, 2), default=0),
        sa.Column("price_change", sa.Numeric(12, 2), default=0),
        sa.Column("price_change_pct", sa.Numeric(8, 2), default=0),
        sa.Column("currency", sa.String(3), default="USD"),
        sa.Column("availability", sa.Boolean(), default=True),
        sa.Column("shipping", sa.Numeric(10, 2), default=0),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("review_count", sa.Integer(), nullable=True),
        sa.Column("url", sa.Text(), default=""),
        sa.Column("source_type", sa.String(20), default="manual"),
        sa.Column("reliability", sa.Numeric(5, 2), default=80),
        sa.Column("observed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_competitor_prices_product_id", "competitor_prices", ["product_id"])
    op.create_index("ix_competitor_prices_observed_at", "competitor_prices", ["observed_at"])
    op.create_index(
        "ix_competitor_prices_product_comp_time",
        "competitor_prices",
        ["product_id", "competitor", "observed_at"],
    )

    # Price alerts table
    op.create_table(
        "price_alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("competitor", sa.String(100), nullable=False),
        sa.Column("product_name", sa.String(300), default=""),
        sa.Column("old_price", sa.Numeric(12, 2), default=0),
        sa.Column("new_price", sa.Numeric(12, 2), default=0),
        sa.Column("change_pct", sa.Numeric(8, 2), default=0),
        sa.Column("severity", sa.String(10), default="low"),
        sa.Column("threshold", sa.Numeric(6, 2), default=2),
        sa.Column("is_read", sa.Boolean(), default=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_price_alerts_product_id", "price_alerts", ["product_id"])
    op.create_index("ix_price_alerts_is_read", "price_alerts", ["is_read"])
    op.create_index("ix_price_alerts_created_at", "price_alerts", ["created_at"])

    # Pricing analyses table
    op.create_table(
        "pricing_analyses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=True),
        sa.Column("total_products", sa.Integer(), default=0),
        sa.Column("total_current_revenue", sa.Numeric(14, 2), default=0),
        sa.Column("total_projected_revenue", sa.Numeric(14, 2), default=0),
        sa.Column("revenue_uplift", sa.Numeric(14, 2), default=0),
        sa.Column("avg_margin_improvement", sa.Numeric(8, 4), default=0),
        sa.Column("summary_json", sa.Text(), default="{}"),
        sa.Column("recommendations_json", sa.Text(), default="[]"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_pricing_analyses_organization_id", "pricing_analyses", ["organization_id"])
    op.create_index("ix_pricing_analyses_created_at", "pricing_analyses", ["created_at"])


def downgrade() -> None:
    op.drop_table("pricing_analyses")
    op.drop_table("price_alerts")
    op.drop_table("competitor_prices")
    op.drop_table("products")
    op.drop_table("subscriptions")
    op.drop_table("organizations")
