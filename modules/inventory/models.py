"""
Inventory Module - Models
==========================
Inventory: current stock level per product (one row per product).
InventoryMovement: immutable audit trail of every stock change.
AdjustmentReason: fixed set of reasons an admin may give for a change.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from config.settings import LOW_STOCK_THRESHOLD


# ==========================================
# Adjustment enums
# ==========================================

class AdjustmentMode(str, enum.Enum):
    ADJUST = "adjust"   # add/remove a relative amount
    SET = "set"         # set stock to an exact count


class AdjustmentDirection(str, enum.Enum):
    ADD = "add"
    REMOVE = "remove"


class AdjustmentReason(str, enum.Enum):
    RESTOCK = "restock"
    DAMAGED = "damaged"
    LOST = "lost"
    AUDIT_CORRECTION = "audit_correction"
    RETURN = "return"
    MANUAL_ADJUSTMENT = "manual_adjustment"

    @property
    def allowed_directions(self) -> frozenset:
        return _REASON_DIRECTIONS[self]

    @property
    def label(self) -> str:
        return {
            "restock": "Restock",
            "damaged": "Damaged",
            "lost": "Lost",
            "audit_correction": "Audit Correction",
            "return": "Customer Return",
            "manual_adjustment": "Manual Adjustment",
        }[self.value]


_BOTH = frozenset({AdjustmentDirection.ADD, AdjustmentDirection.REMOVE})

_REASON_DIRECTIONS = {
    AdjustmentReason.RESTOCK: frozenset({AdjustmentDirection.ADD}),
    AdjustmentReason.DAMAGED: frozenset({AdjustmentDirection.REMOVE}),
    AdjustmentReason.LOST: frozenset({AdjustmentDirection.REMOVE}),
    AdjustmentReason.AUDIT_CORRECTION: _BOTH,
    AdjustmentReason.RETURN: frozenset({AdjustmentDirection.ADD}),
    AdjustmentReason.MANUAL_ADJUSTMENT: _BOTH,
}


# ==========================================
# Inventory
# ==========================================

class Inventory(Base):
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="inventory")

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_inventory_non_negative"),
    )

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock_quantity <= 0

    @property
    def is_low_stock(self) -> bool:
        return 0 < self.stock_quantity <= LOW_STOCK_THRESHOLD

    @property
    def stock_status(self) -> str:
        if self.is_out_of_stock:
            return "out_of_stock"
        if self.is_low_stock:
            return "low_stock"
        return "in_stock"


# ==========================================
# InventoryMovement (audit trail)
# ==========================================

class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    change_quantity = Column(Integer, nullable=False)  # positive = add, negative = remove
    reason = Column(String(40), nullable=False)
    reference_id = Column(String(64), nullable=True)  # order id etc.
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("change_quantity <> 0", name="ck_movement_non_zero"),
    )
