"""
Discount Module - Admin API Routes
====================================
JSON management of discount rules.
Auth: X-Admin-Key header.

Endpoints:
  GET  /api/admin/discounts                List (filters: active, kind)
  POST /api/admin/discounts                Create with targets
  GET  /api/admin/discounts/{id}           Detail
  PATCH /api/admin/discounts/{id}          Partial update
  DELETE /api/admin/discounts/{id}         Delete (targets cascade)
  POST /api/admin/discounts/{id}/toggle    Activate / deactivate
  PUT  /api/admin/discounts/{id}/targets   Replace targets
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from common.security import require_admin_key
from config.database import get_db
from modules.discount.service import discount_service


router = APIRouter(
    prefix="/api/admin/discounts",
    tags=["admin-discounts"],
    dependencies=[Depends(require_admin_key)],
)


# ==========================================
# Schemas
# ==========================================

class DiscountCreate(BaseModel):
    name: str = Field(..., min_length=1)
    kind: str = "promo"
    discount_type: str
    value: int
    active: bool = True
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    min_order_subtotal: Optional[int] = None
    stack_policy: str = "best_only"
    usage_limit: Optional[int] = None
    applies_to_all_products: bool = False
    product_ids: List[int] = []


class DiscountUpdate(BaseModel):
    name: Optional[str] = None
    kind: Optional[str] = None
    discount_type: Optional[str] = None
    value: Optional[int] = None
    active: Optional[bool] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    min_order_subtotal: Optional[int] = None
    stack_policy: Optional[str] = None
    usage_limit: Optional[int] = None
    applies_to_all_products: Optional[bool] = None
    product_ids: Optional[List[int]] = None


class ToggleRequest(BaseModel):
    active: bool


class TargetsRequest(BaseModel):
    applies_to_all_products: bool = False
    product_ids: List[int] = []


# ==========================================
# Routes
# ==========================================

@router.get("")
async def list_discounts(
    active: Optional[bool] = None,
    kind: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    discounts = discount_service.list_discounts(db, active=active, kind=kind, limit=limit, offset=offset)
    return {"success": True, "discounts": [discount_service.to_dict(d) for d in discounts]}


@router.post("", status_code=201)
async def create_discount(
    body: DiscountCreate,
    db: Session = Depends(get_db),
):
    discount = discount_service.create_discount(db, body.model_dump())
    db.commit()
    return {"success": True, "discount": discount_service.to_dict(discount)}


@router.get("/{discount_id}")
async def get_discount(
    discount_id: int,
    db: Session = Depends(get_db),
):
    discount = discount_service.get(db, discount_id)
    return {"success": True, "discount": discount_service.to_dict(discount)}


@router.post("/{discount_id}/toggle")
async def toggle_discount(
    discount_id: int,
    body: ToggleRequest,
    db: Session = Depends(get_db),
):
    discount = discount_service.toggle_active(db, discount_id, body.active)
    db.commit()
    return {"success": True, "discount": discount_service.to_dict(discount)}


@router.put("/{discount_id}/targets")
async def replace_targets(
    discount_id: int,
    body: TargetsRequest,
    db: Session = Depends(get_db),
):
    discount = discount_service.set_targets(
        db, discount_id,
        product_ids=body.product_ids,
        applies_to_all_products=body.applies_to_all_products,
    )
    db.commit()
    return {"success": True, "discount": discount_service.to_dict(discount)}


@router.patch("/{discount_id}")
async def update_discount(
    discount_id: int,
    body: DiscountUpdate,
    db: Session = Depends(get_db),
):
    discount = discount_service.update_discount(db, discount_id, body.model_dump(exclude_unset=True))
    db.commit()
    return {"success": True, "discount": discount_service.to_dict(discount)}


@router.delete("/{discount_id}")
async def delete_discount(
    discount_id: int,
    db: Session = Depends(get_db),
):
    discount_service.delete_discount(db, discount_id)
    db.commit()
    return {"success": True, "deleted": discount_id}
