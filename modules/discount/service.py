"""
Discount Service
==================
Admin-side management of discount rules.

Write-time preconditions (never checked at quote time):
  1. Name present, kind / type / stack policy valid
  2. Value in range (percentage 0-100, fixed >= 0)
  3. starts_at < ends_at when both set
  4. usage_limit >= 1, min_order_subtotal >= 0
  5. At least one target (all products, or product ids)
  6. Autoship discounts target all products
  7. At most one active global autoship discount (also a partial unique
     index, so concurrent writers cannot both pass the check)
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from common.exceptions import (
    DuplicateError, NotFoundError, UsageLimitExceededError, ValidationError,
)
from common.helpers import as_utc, now_utc
from modules.catalog.models import Product
from modules.discount.models import (
    Discount, DiscountTarget, DiscountKind, DiscountType, StackPolicy,
)

logger = logging.getLogger("storefront.discount")

UPDATABLE_FIELDS = (
    "name", "kind", "discount_type", "value", "active", "starts_at", "ends_at",
    "min_order_subtotal", "stack_policy", "usage_limit",
)


def _enum_value(enum_cls, raw, field: str) -> str:
    try:
        return enum_cls(raw).value
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}", field=field)


def _optional_int(data: dict, key: str) -> Optional[int]:
    val = data.get(key)
    if val is None or val == "":
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", field=key)


class DiscountService:

    # ------------------------------------------
    # Query
    # ------------------------------------------

    def list_discounts(
        self,
        db: Session,
        active: Optional[bool] = None,
        kind: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Discount]:
        query = db.query(Discount).options(selectinload(Discount.targets)).order_by(Discount.created_at.desc(), Discount.id.desc())
        if active is not None:
            query = query.filter(Discount.active.is_(active))
        if kind:
            query = query.filter(Discount.kind == _enum_value(DiscountKind, kind, "kind"))
        return query.offset(offset).limit(limit).all()

    def get(self, db: Session, discount_id: int) -> Discount:
        discount = (
            db.query(Discount)
            .options(selectinload(Discount.targets))
            .filter(Discount.id == discount_id)
            .first()
        )
        if not discount:
            raise NotFoundError(f"Discount not found: {discount_id}")
        return discount

    def has_active_global_autoship(self, db: Session, exclude_id: Optional[int] = None) -> bool:
        query = (
            db.query(Discount.id)
            .join(DiscountTarget, DiscountTarget.discount_id == Discount.id)
            .filter(
                Discount.kind == DiscountKind.AUTOSHIP.value,
                Discount.active.is_(True),
                DiscountTarget.applies_to_all_products.is_(True),
            )
        )
        if exclude_id is not None:
            query = query.filter(Discount.id != exclude_id)
        return query.first() is not None

    # ------------------------------------------
    # Validation
    # ------------------------------------------

    def validate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize and validate creation data. Returns clean field dict."""
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Discount name is required", field="name")

        kind = _enum_value(DiscountKind, data.get("kind", DiscountKind.PROMO.value), "kind")
        discount_type = _enum_value(DiscountType, data.get("discount_type"), "discount_type")
        stack_policy = _enum_value(StackPolicy, data.get("stack_policy", StackPolicy.BEST_ONLY.value), "stack_policy")

        value = _optional_int(data, "value")
        if value is None:
            raise ValidationError("Discount value is required", field="value")
        if value < 0:
            raise ValidationError("Discount value cannot be negative", field="value")
        if discount_type == DiscountType.PERCENTAGE.value and value > 100:
            raise ValidationError("Percentage discount cannot exceed 100", field="value")

        starts_at = as_utc(data.get("starts_at")) if data.get("starts_at") else None
        ends_at = as_utc(data.get("ends_at")) if data.get("ends_at") else None
        if starts_at and ends_at and starts_at >= ends_at:
            raise ValidationError("End date must be after start date", field="ends_at")

        usage_limit = _optional_int(data, "usage_limit")
        if usage_limit is not None and usage_limit < 1:
            raise ValidationError("Usage limit must be at least 1", field="usage_limit")

        min_order_subtotal = _optional_int(data, "min_order_subtotal")
        if min_order_subtotal is not None and min_order_subtotal < 0:
            raise ValidationError("Minimum order subtotal cannot be negative", field="min_order_subtotal")

        return {
            "name": name,
            "kind": kind,
            "discount_type": discount_type,
            "value": value,
            "active": bool(data.get("active", True)),
            "starts_at": starts_at,
            "ends_at": ends_at,
            "min_order_subtotal": min_order_subtotal,
            "stack_policy": stack_policy,
            "usage_limit": usage_limit,
        }

    # ------------------------------------------
    # Create / update / delete
    # ------------------------------------------

    def create_discount(self, db: Session, data: Dict[str, Any]) -> Discount:
        """
        Create a discount with its targets.

        data keys: name, kind, discount_type, value, active, starts_at, ends_at,
        min_order_subtotal, stack_policy, usage_limit,
        applies_to_all_products, product_ids
        """
        fields = self.validate_data(data)
        all_products = bool(data.get("applies_to_all_products"))
        product_ids = data.get("product_ids") or []
        self._check_autoship(db, fields, all_products)

        discount = Discount(**fields)
        db.add(discount)
        self._flush_unique(db)
        self._replace_targets(db, discount, product_ids, all_products)

        logger.info(
            f"Discount #{discount.id} created: {discount.name} "
            f"({discount.kind}/{discount.discount_type} {discount.value}, {discount.stack_policy})"
        )
        return discount

    def update_discount(self, db: Session, discount_id: int, data: Dict[str, Any]) -> Discount:
        """
        Partial update. Only keys present in data change; the merged result
        is validated as a whole. Targets are replaced only when
        applies_to_all_products or product_ids is given.
        """
        discount = self.get(db, discount_id)

        merged = {key: getattr(discount, key) for key in UPDATABLE_FIELDS}
        merged.update({key: value for key, value in data.items() if key in UPDATABLE_FIELDS})
        fields = self.validate_data(merged)

        retarget = "applies_to_all_products" in data or "product_ids" in data
        if retarget:
            all_products = bool(data.get("applies_to_all_products"))
            product_ids = data.get("product_ids") or []
        else:
            all_products = discount.applies_to_all_products
            product_ids = discount.product_ids
        self._check_autoship(db, fields, all_products, exclude_id=discount.id)

        for key, value in fields.items():
            setattr(discount, key, value)
        discount.updated_at = now_utc()
        self._flush_unique(db)
        if retarget:
            self._replace_targets(db, discount, product_ids, all_products)

        logger.info(f"Discount #{discount.id} updated: {', '.join(sorted(data)) or 'no fields'}")
        return discount

    def delete_discount(self, db: Session, discount_id: int) -> None:
        """Delete a discount; its targets go with it."""
        discount = self.get(db, discount_id)
        name = discount.name
        db.delete(discount)
        db.flush()
        logger.info(f"Discount #{discount_id} deleted ({name})")

    def set_targets(
        self,
        db: Session,
        discount_id: int,
        product_ids: Optional[List[int]] = None,
        applies_to_all_products: bool = False,
    ) -> Discount:
        """Replace all targets of a discount."""
        discount = self.get(db, discount_id)
        if discount.kind == DiscountKind.AUTOSHIP.value and not applies_to_all_products:
            raise ValidationError("Autoship discounts must target all products", field="applies_to_all_products")
        self._replace_targets(db, discount, product_ids or [], applies_to_all_products)
        logger.info(f"Discount #{discount.id} targets replaced")
        return discount

    def toggle_active(self, db: Session, discount_id: int, active: bool) -> Discount:
        discount = self.get(db, discount_id)
        if (
            active
            and discount.kind == DiscountKind.AUTOSHIP.value
            and self.has_active_global_autoship(db, exclude_id=discount.id)
        ):
            raise DuplicateError(
                "A global autoship discount is already active. Deactivate it first."
            )
        discount.active = bool(active)
        discount.updated_at = now_utc()
        self._flush_unique(db)
        logger.info(f"Discount #{discount.id} {'activated' if active else 'deactivated'}")
        return discount

    # ------------------------------------------
    # Usage (order placement only)
    # ------------------------------------------

    def record_usage(self, db: Session, discount_id: int) -> Discount:
        """Increment usage under a row lock. Never called while quoting."""
        discount = db.query(Discount).filter(Discount.id == discount_id).with_for_update().first()
        if not discount:
            raise NotFoundError(f"Discount not found: {discount_id}")
        if discount.usage_limit is not None and discount.usage_count >= discount.usage_limit:
            raise UsageLimitExceededError(f"Discount #{discount.id} has reached its usage limit")
        discount.usage_count = (discount.usage_count or 0) + 1
        db.flush()
        logger.info(f"Discount #{discount.id} usage recorded ({discount.usage_count}/{discount.usage_limit or '∞'})")
        return discount

    # ==========================================
    # Private helpers
    # ==========================================

    def _check_autoship(
        self,
        db: Session,
        fields: Dict[str, Any],
        all_products: bool,
        exclude_id: Optional[int] = None,
    ):
        if fields["kind"] != DiscountKind.AUTOSHIP.value:
            return
        if not all_products:
            raise ValidationError("Autoship discounts must target all products", field="applies_to_all_products")
        if fields["active"] and self.has_active_global_autoship(db, exclude_id=exclude_id):
            raise DuplicateError(
                "A global autoship discount already exists. Deactivate it first or edit the existing one."
            )

    def _flush_unique(self, db: Session):
        """Flush; a concurrent write that slipped past the check hits the unique index."""
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.warning("Rejected discount write: another active autoship discount exists")
            raise DuplicateError("A global autoship discount is already active.")

    def _replace_targets(self, db: Session, discount: Discount, product_ids: List[int], all_products: bool):
        if not all_products and not product_ids:
            raise ValidationError("At least one target must be specified", field="product_ids")

        if not all_products:
            ids = sorted({int(pid) for pid in product_ids})
            found = {pid for (pid,) in db.query(Product.id).filter(Product.id.in_(ids)).all()}
            missing = [pid for pid in ids if pid not in found]
            if missing:
                raise NotFoundError(f"Products not found: {missing}")

        db.query(DiscountTarget).filter(DiscountTarget.discount_id == discount.id).delete()
        if all_products:
            db.add(DiscountTarget(discount_id=discount.id, applies_to_all_products=True))
        else:
            for pid in ids:
                db.add(DiscountTarget(discount_id=discount.id, product_id=pid, applies_to_all_products=False))
        db.flush()
        db.expire(discount, ["targets"])

    def to_dict(self, discount: Discount) -> Dict[str, Any]:
        return {
            "id": discount.id,
            "name": discount.name,
            "kind": discount.kind,
            "discount_type": discount.discount_type,
            "value": discount.value,
            "discount_display": discount.discount_display,
            "active": discount.active,
            "starts_at": discount.starts_at.isoformat() if discount.starts_at else None,
            "ends_at": discount.ends_at.isoformat() if discount.ends_at else None,
            "min_order_subtotal": discount.min_order_subtotal,
            "stack_policy": discount.stack_policy,
            "usage_limit": discount.usage_limit,
            "usage_count": discount.usage_count,
            "usage_remaining": discount.usage_remaining,
            "applies_to_all_products": discount.applies_to_all_products,
            "product_ids": discount.product_ids,
        }


# Singleton
discount_service = DiscountService()
