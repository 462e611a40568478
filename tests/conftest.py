"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path

# Keep tests away from the user's ~/.revsnap
os.environ["REVSNAP_HOME"] = tempfile.mkdtemp(prefix="revsnap-test-")

import pytest

from revsnap.core.config import Settings
from revsnap.core.models import (
    Organization,
    PlanId,
    PriceObservation,
    ProductInput,
    SourceType,
    Subscription,
    SubscriptionStatus,
)


@pytest.fixture
def settings() -> Settings:
    """Create default settings for testing."""
    return Settings()


@pytest.fixture
def now() -> datetime:
    """A fixed reference time."""
    return datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def sample_products() -> list[ProductInput]:
    """One product for each pricing rule."""
    return [
        # 60% margin
        ProductInput(
            name="Ceramic Pour-Over Set",
            current_price=Decimal("100.00"),
            cost=Decimal("40.00"),
            units_sold=100,
            category="General",
        ),
        # 15% margin
        ProductInput(
            name="Bamboo Toothbrush 4-Pack",
            current_price=Decimal("10.00"),
            cost=Decimal("8.50"),
            units_sold=200,
            category="Health",
        ),
        # 40% margin
        ProductInput(
            name="USB-C Charging Hub",
            current_price=Decimal("50.00"),
            cost=Decimal("30.00"),
            units_sold=50,
            category="Electronics",
        ),
    ]


@pytest.fixture
def sample_observations(now: datetime) -> list[PriceObservation]:
    """Fresh observations from an API and a manual source."""
    return [
        PriceObservation(
            source_type=SourceType.API,
            reliability=Decimal("90"),
            last_updated=now,
            price=Decimal("49.99"),
            competitor="Amazon",
        ),
        PriceObservation(
            source_type=SourceType.MANUAL,
            reliability=Decimal("50"),
            last_updated=now,
            price=Decimal("52.00"),
            competitor="Target",
        ),
    ]


@pytest.fixture
def db(tmp_path: Path):
    """Point the global engine at a fresh SQLite database."""
    from revsnap.db.session import close_database, init_database

    close_database()
    init_database(database_url=f"sqlite:///{tmp_path / 'test.db'}", use_migrations=False)
    yield
    close_database()


@pytest.fixture
def repo(db):
    """Repository bound to the test database."""
    from revsnap.db.repository import Repository

    return Repository()


@pytest.fixture
def organization(repo) -> Organization:
    """An organization on an active starter subscription."""
    org = repo.create_organization(
        Organization(name="Acme Goods", slug="acme-goods", industry="Home")
    )
    repo.save_subscription(
        Subscription(
            organization_id=org.id,
            plan=PlanId.STARTER,
            status=SubscriptionStatus.ACTIVE,
        )
    )
    return org


@pytest.fixture
def app(db, settings: Settings):
    """Flask app wired to the test database."""
    from revsnap.web.server import create_app

    app = create_app(settings)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create a test client."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def sample_csv_path(tmp_path: Path) -> Path:
    """Create a sample catalog CSV file for testing."""
    csv_content = (
        "Product Name,Current Price,Cost,Units Sold,Category\n"
        "Trail Water Bottle,29.99,12.00,150,Fitness\n"
        ",15.00,9.00,,\n"
        "Free Sticker,0,1.00,10,General\n"
        'Standing Desk,"$1,200.00",650.00,20,Electronics\n'
    )
    csv_file = tmp_path / "catalog.csv"
    csv_file.write_text(csv_content, encoding="utf-8")
    return csv_file


@pytest.fixture
def invalid_csv_path(tmp_path: Path) -> Path:
    """Create a CSV file without a name or cost column."""
    csv_content = "Name,Price,SKU\nTest,10.00,ABC123\n"
    csv_file = tmp_path / "invalid.csv"
    csv_file.write_text(csv_content, encoding="utf-8")
    return csv_file
