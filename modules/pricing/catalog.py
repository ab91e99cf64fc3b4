"""
Pricing Module - Discount Catalog
===================================
Read-only lookups the pricing core depends on, and the SQLAlchemy-backed
implementation used by the service layer.

Every call reads current state; nothing is cached between quotes.
"""

from datetime import datetime
from typing import List, Protocol

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from common.exceptions import NotFoundError
from modules.catalog.models import Product
from modules.discount.models import (
    Discount, DiscountTarget, DiscountKind, DiscountType, StackPolicy,
)
from modules.pricing.schemas import DiscountRule, ProductSnapshot


class CatalogLookup(Protocol):
    def get_product(self, product_id) -> ProductSnapshot: ...

    def get_active_discounts_for_product(self, product_id, as_of: datetime) -> List[DiscountRule]: ...

    def get_discount_usage_count(self, discount_id) -> int: ...


def product_snapshot(product: Product) -> ProductSnapshot:
    return ProductSnapshot(
        id=product.id,
        base_price=int(product.base_price),
        autoship_eligible=bool(product.autoship_eligible),
        published=bool(product.published),
        name=product.name or "",
    )


def discount_rule(discount: Discount) -> DiscountRule:
    """Copy a Discount row (with targets loaded) into an immutable rule."""
    return DiscountRule(
        id=discount.id,
        name=discount.name or "",
        kind=DiscountKind(discount.kind),
        discount_type=DiscountType(discount.discount_type),
        value=int(discount.value),
        stack_policy=StackPolicy(discount.stack_policy),
        active=bool(discount.active),
        starts_at=discount.starts_at,
        ends_at=discount.ends_at,
        min_order_subtotal=discount.min_order_subtotal,
        usage_limit=discount.usage_limit,
        applies_to_all_products=discount.applies_to_all_products,
        product_ids=tuple(discount.product_ids),
    )


class SqlCatalog:
    """CatalogLookup over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id) -> ProductSnapshot:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product not found: {product_id}")
        return product_snapshot(product)

    def get_active_discounts_for_product(self, product_id, as_of: datetime) -> List[DiscountRule]:
        """
        Active discounts targeting the product (or all products) whose window
        contains as_of. The eligibility filter re-checks every rule.
        """
        targeted = (
            select(DiscountTarget.discount_id)
            .where(or_(
                DiscountTarget.product_id == product_id,
                DiscountTarget.applies_to_all_products.is_(True),
            ))
        )
        discounts = (
            self.db.query(Discount)
            .options(selectinload(Discount.targets))
            .filter(
                Discount.active.is_(True),
                Discount.id.in_(targeted),
                or_(Discount.starts_at.is_(None), Discount.starts_at <= as_of),
                or_(Discount.ends_at.is_(None), Discount.ends_at >= as_of),
            )
            .order_by(Discount.id)
            .all()
        )
        return [discount_rule(d) for d in discounts]

    def get_discount_usage_count(self, discount_id) -> int:
        count = self.db.query(Discount.usage_count).filter(Discount.id == discount_id).scalar()
        return int(count or 0)
