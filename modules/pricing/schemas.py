"""
Pricing Module - Snapshot Types
=================================
Immutable inputs and outputs of the pricing core.

The core never sees SQLAlchemy rows: the catalog adapter copies them into
these frozen dataclasses so one quote computation works on a fixed snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

from common.helpers import percent_of
from modules.discount.models import DiscountKind, DiscountType, StackPolicy


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    base_price: int
    autoship_eligible: bool = False
    published: bool = True
    name: str = ""


@dataclass(frozen=True)
class DiscountRule:
    id: int
    kind: DiscountKind
    discount_type: DiscountType
    value: int
    stack_policy: StackPolicy
    active: bool = True
    name: str = ""
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    min_order_subtotal: Optional[int] = None
    usage_limit: Optional[int] = None
    applies_to_all_products: bool = False
    product_ids: Tuple[int, ...] = ()

    def targets(self, product_id) -> bool:
        return self.applies_to_all_products or product_id in self.product_ids


@dataclass(frozen=True)
class QuoteContext:
    product_id: int
    as_of: datetime
    is_autoship: bool = False
    order_subtotal: Optional[int] = None
    usage_counts: Dict[int, int] = field(default_factory=dict)

    def usage_count(self, discount_id) -> int:
        return self.usage_counts.get(discount_id, 0)


@dataclass(frozen=True)
class AppliedDiscount:
    discount_id: int
    name: str
    kind: DiscountKind
    discount_type: DiscountType
    stack_policy: StackPolicy
    value: int
    amount: int  # per unit

    def to_dict(self) -> dict:
        return {
            "discount_id": self.discount_id,
            "name": self.name,
            "kind": DiscountKind(self.kind).value,
            "type": DiscountType(self.discount_type).value,
            "stack_policy": StackPolicy(self.stack_policy).value,
            "value": self.value,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class PriceQuote:
    product_id: Optional[int]
    quantity: int
    unit_price: int
    final_price: int
    discounts_applied: Tuple[AppliedDiscount, ...] = ()

    @property
    def base_price(self) -> int:
        """Undiscounted line amount (unit price x quantity)."""
        return self.unit_price * self.quantity

    @property
    def unit_discount(self) -> int:
        return self.unit_price - self.final_price

    @property
    def discount_total(self) -> int:
        return self.unit_discount * self.quantity

    @property
    def line_total(self) -> int:
        return self.final_price * self.quantity

    @property
    def savings_percent(self) -> int:
        return percent_of(self.unit_discount, self.unit_price)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "base_price": self.base_price,
            "final_price": self.final_price,
            "unit_discount": self.unit_discount,
            "discount_total": self.discount_total,
            "line_total": self.line_total,
            "savings_percent": self.savings_percent,
            "discounts_applied": [d.to_dict() for d in self.discounts_applied],
        }


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int = 1
    is_autoship: bool = False


@dataclass(frozen=True)
class CartPricing:
    lines: Tuple[PriceQuote, ...]

    @property
    def subtotal(self) -> int:
        return sum(q.base_price for q in self.lines)

    @property
    def discount_total(self) -> int:
        return sum(q.discount_total for q in self.lines)

    @property
    def total(self) -> int:
        return self.subtotal - self.discount_total

    @property
    def item_count(self) -> int:
        return sum(q.quantity for q in self.lines)

    def to_dict(self) -> dict:
        return {
            "lines": [q.to_dict() for q in self.lines],
            "subtotal": self.subtotal,
            "discount_total": self.discount_total,
            "total": self.total,
            "item_count": self.item_count,
        }
