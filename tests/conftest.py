import os
from datetime import datetime, timezone

import pytest

# Test configuration must be in place before config.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from modules.catalog.models import Product
from modules.discount.models import (
    Discount, DiscountTarget, DiscountKind, DiscountType, StackPolicy,
)
from modules.inventory.models import Inventory, InventoryMovement  # noqa: F401
from modules.pricing.schemas import DiscountRule, ProductSnapshot

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope='function')
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope='function')
def session(engine):
    """Create database session for testing."""
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def client(session):
    """FastAPI test client bound to the test session."""
    from fastapi.testclient import TestClient
    from main import app

    def _get_db():
        yield session

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)


@pytest.fixture
def now():
    return NOW


# ==========================================
# Pure-core builders
# ==========================================

@pytest.fixture
def make_rule():
    """Build a DiscountRule with sensible defaults (promo, best_only, all products)."""
    def _make(id=1, **overrides):
        data = dict(
            id=id,
            name=f"Discount {id}",
            kind=DiscountKind.PROMO,
            discount_type=DiscountType.PERCENTAGE,
            value=10,
            stack_policy=StackPolicy.BEST_ONLY,
            active=True,
            applies_to_all_products=True,
        )
        data.update(overrides)
        return DiscountRule(**data)
    return _make


class FakeCatalog:
    """In-memory CatalogLookup that records every call."""

    def __init__(self, products=(), discounts=None, usage=None):
        self.products = {p.id: p for p in products}
        self.discounts = discounts or {}
        self.usage = usage or {}
        self.calls = []

    def get_product(self, product_id):
        self.calls.append(("get_product", product_id))
        from common.exceptions import NotFoundError
        if product_id not in self.products:
            raise NotFoundError(f"Product not found: {product_id}")
        return self.products[product_id]

    def get_active_discounts_for_product(self, product_id, as_of):
        self.calls.append(("get_active_discounts_for_product", product_id))
        return list(self.discounts.get(product_id, []))

    def get_discount_usage_count(self, discount_id):
        self.calls.append(("get_discount_usage_count", discount_id))
        return self.usage.get(discount_id, 0)


@pytest.fixture
def fake_catalog():
    def _make(products=(), discounts=None, usage=None):
        return FakeCatalog(products, discounts, usage)
    return _make


@pytest.fixture
def snapshot():
    def _make(id=1, base_price=100_000, autoship_eligible=True, published=True):
        return ProductSnapshot(
            id=id, base_price=base_price, autoship_eligible=autoship_eligible,
            published=published, name=f"Product {id}",
        )
    return _make


# ==========================================
# Database builders
# ==========================================

@pytest.fixture
def product_factory(session):
    def _make(name="Salmon Kibble 2kg", base_price=100_000, autoship_eligible=True, published=True, stock=None):
        product = Product(
            name=name, base_price=base_price,
            autoship_eligible=autoship_eligible, published=published,
        )
        session.add(product)
        session.flush()
        if stock is not None:
            session.add(Inventory(product_id=product.id, stock_quantity=stock))
            session.flush()
        return product
    return _make


@pytest.fixture
def discount_factory(session):
    """Insert a Discount row directly (bypasses admin preconditions)."""
    def _make(product_ids=None, all_products=False, **fields):
        data = dict(
            name="Test discount",
            kind=DiscountKind.PROMO.value,
            discount_type=DiscountType.PERCENTAGE.value,
            value=10,
            active=True,
            stack_policy=StackPolicy.BEST_ONLY.value,
        )
        data.update(fields)
        discount = Discount(**data)
        session.add(discount)
        session.flush()
        if all_products:
            session.add(DiscountTarget(discount_id=discount.id, applies_to_all_products=True))
        for pid in product_ids or []:
            session.add(DiscountTarget(discount_id=discount.id, product_id=pid, applies_to_all_products=False))
        session.flush()
        session.expire(discount, ["targets"])
        return discount
    return _make
