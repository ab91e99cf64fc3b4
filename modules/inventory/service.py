"""
Inventory Module - Service Layer
==================================
Row-locked stock changes with an audit trail.

Usage:
    inventory_service.adjust_inventory(db, product_id=1, delta=-2, reason="damaged")
    inventory_service.apply(db, product_id=1, mode="set", direction="add", amount=40, reason="audit_correction")
    inventory_service.add_stock(db, product_id=1, quantity=25)
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from common.exceptions import InvalidAdjustment, NotFoundError
from common.helpers import now_utc
from modules.catalog.models import Product
from modules.inventory.adjustment import adjustment_delta, check_reason
from modules.inventory.models import AdjustmentMode, AdjustmentReason, Inventory, InventoryMovement

logger = logging.getLogger("storefront.inventory")


class InventoryService:
    """Stateless service: call methods with db session."""

    # ------------------------------------------
    # Query
    # ------------------------------------------

    def get_stock(self, db: Session, product_id: int) -> int:
        qty = db.query(Inventory.stock_quantity).filter(Inventory.product_id == product_id).scalar()
        return int(qty or 0)

    def list_movements(self, db: Session, product_id: int, limit: int = 50, offset: int = 0) -> List[InventoryMovement]:
        return (
            db.query(InventoryMovement)
            .filter(InventoryMovement.product_id == product_id)
            .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    # ------------------------------------------
    # Core writer
    # ------------------------------------------

    def _locked_inventory(self, db: Session, product_id: int) -> Inventory:
        """Get the inventory row under a row lock, creating it at zero if missing."""
        inv = (
            db.query(Inventory)
            .filter(Inventory.product_id == product_id)
            .with_for_update()
            .first()
        )
        if not inv:
            inv = Inventory(product_id=product_id, stock_quantity=0)
            db.add(inv)
            db.flush()
        return inv

    def adjust_inventory(
        self,
        db: Session,
        product_id: int,
        delta: int,
        reason: str,
        reference_id: Optional[str] = None,
        check_direction: bool = True,
    ) -> Dict[str, Any]:
        """
        Apply a signed stock change atomically and log a movement.
        Raises InvalidAdjustment (zero delta, negative result, bad reason)
        or NotFoundError. Nothing is written on failure.
        """
        if not reason or not str(reason).strip():
            raise InvalidAdjustment("Reason is required for inventory adjustments")
        if delta == 0:
            raise InvalidAdjustment("Adjustment cannot be zero")
        reason = check_reason(str(reason).strip(), delta, check_direction)

        if not db.query(Product.id).filter(Product.id == product_id).first():
            raise NotFoundError(f"Product not found: {product_id}")

        inv = self._locked_inventory(db, product_id)
        previous = inv.stock_quantity
        new_stock = previous + delta
        if new_stock < 0:
            logger.warning(
                f"Rejected stock change for product #{product_id}: {previous} {delta:+d} would go negative"
            )
            raise InvalidAdjustment(
                "Inventory cannot go negative",
                current_stock=previous, requested=delta,
            )

        inv.stock_quantity = new_stock
        inv.updated_at = now_utc()
        movement = InventoryMovement(
            product_id=product_id,
            change_quantity=delta,
            reason=reason.value,
            reference_id=reference_id,
        )
        db.add(movement)
        db.flush()

        logger.info(f"Stock product #{product_id}: {previous} -> {new_stock} ({delta:+d}, {reason.value})")
        return {
            "success": True,
            "product_id": product_id,
            "previous_stock": previous,
            "adjustment": delta,
            "new_stock": new_stock,
            "movement_id": movement.id,
        }

    # ------------------------------------------
    # Admin helpers
    # ------------------------------------------

    def apply(
        self,
        db: Session,
        product_id: int,
        mode: str,
        direction: str,
        amount: int,
        reason: str,
    ) -> Dict[str, Any]:
        """Translate an admin adjust/set request into a signed delta and apply it."""
        if not db.query(Product.id).filter(Product.id == product_id).first():
            raise NotFoundError(f"Product not found: {product_id}")
        current = self._locked_inventory(db, product_id).stock_quantity
        delta = adjustment_delta(current, mode, direction, amount)
        # set mode: any reason may accompany the new count
        return self.adjust_inventory(
            db, product_id, delta, reason, check_direction=(mode != AdjustmentMode.SET),
        )

    def add_stock(self, db: Session, product_id: int, quantity: int) -> Dict[str, Any]:
        """Restock shortcut."""
        if quantity <= 0:
            raise InvalidAdjustment("Quantity must be positive")
        return self.adjust_inventory(db, product_id, quantity, AdjustmentReason.RESTOCK.value)


# Singleton
inventory_service = InventoryService()
