"""
Discount Module - Models
==========================
Promo and autoship discount rules.

Features:
  - Promo (any purchase) or Autoship (recurring purchases only)
  - Percentage or Fixed amount (IDR)
  - Global (all products) or per-product targets
  - Date range (starts_at / ends_at, inclusive)
  - Minimum order subtotal
  - Usage limit (total)
  - Stacking policy: best_only competes, stack combines
"""

import enum
from sqlalchemy import (
    Column, Integer, String, BigInteger, Boolean,
    DateTime, ForeignKey, Index, CheckConstraint, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


# ==========================================
# Enums
# ==========================================

class DiscountKind(str, enum.Enum):
    PROMO = "promo"          # any purchase mode
    AUTOSHIP = "autoship"    # recurring purchases only


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"          # IDR per unit


class StackPolicy(str, enum.Enum):
    BEST_ONLY = "best_only"  # competes for the single best discount
    STACK = "stack"          # applied on top of the remaining price


# ==========================================
# Discount
# ==========================================

class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)

    kind = Column(String, default=DiscountKind.PROMO.value, nullable=False)
    discount_type = Column(String, default=DiscountType.PERCENTAGE.value, nullable=False)
    value = Column(BigInteger, nullable=False)  # percent (0-100) or fixed IDR
    active = Column(Boolean, default=True, nullable=False)

    # Date range (inclusive)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)

    min_order_subtotal = Column(BigInteger, nullable=True)
    stack_policy = Column(String, default=StackPolicy.BEST_ONLY.value, nullable=False)

    # Usage
    usage_limit = Column(Integer, nullable=True)  # NULL = unlimited
    usage_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    targets = relationship("DiscountTarget", back_populates="discount", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_discounts_active_time", "active", "starts_at", "ends_at"),
        CheckConstraint("value >= 0", name="ck_discount_value"),
        CheckConstraint("usage_limit IS NULL OR usage_limit >= 1", name="ck_discount_usage_limit"),
        # at most one active autoship discount (autoship always targets all products)
        Index(
            "uq_discounts_one_active_autoship", "kind",
            unique=True,
            postgresql_where=text("kind = 'autoship' AND active"),
            sqlite_where=text("kind = 'autoship' AND active = 1"),
        ),
    )

    @property
    def applies_to_all_products(self) -> bool:
        return any(t.applies_to_all_products for t in self.targets)

    @property
    def product_ids(self) -> list:
        return [t.product_id for t in self.targets if t.product_id is not None]

    @property
    def discount_display(self) -> str:
        """Human-readable discount value."""
        if self.discount_type == DiscountType.PERCENTAGE.value:
            return f"{self.value}%"
        return f"Rp {self.value:,}".replace(",", ".")

    @property
    def usage_remaining(self):
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - (self.usage_count or 0))


# ==========================================
# DiscountTarget (all products, or one product per row)
# ==========================================

class DiscountTarget(Base):
    __tablename__ = "discount_targets"

    id = Column(Integer, primary_key=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=True, index=True)
    applies_to_all_products = Column(Boolean, default=False, nullable=False)

    discount = relationship("Discount", back_populates="targets")
    product = relationship("Product")

    __table_args__ = (
        # exactly one targeting method per row
        CheckConstraint(
            "(product_id IS NOT NULL AND applies_to_all_products = false) "
            "OR (product_id IS NULL AND applies_to_all_products = true)",
            name="ck_discount_target_method",
        ),
    )
