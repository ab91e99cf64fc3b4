"""
Inventory Module - Admin API Routes
=====================================
Stock adjustments and movement history.
Auth: X-Admin-Key header.

Endpoints:
  GET  /api/admin/inventory/{product_id}            Stock level + status
  POST /api/admin/inventory/{product_id}/adjust     Adjust / set stock
  GET  /api/admin/inventory/{product_id}/movements  Audit trail
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from common.exceptions import NotFoundError
from common.security import require_admin_key
from config.database import get_db
from modules.catalog.service import catalog_service
from modules.inventory.models import AdjustmentReason
from modules.inventory.service import inventory_service


router = APIRouter(
    prefix="/api/admin/inventory",
    tags=["admin-inventory"],
    dependencies=[Depends(require_admin_key)],
)


class AdjustRequest(BaseModel):
    mode: str = "adjust"
    direction: str = "add"
    amount: int
    reason: str = Field(..., min_length=1)


@router.get("/{product_id}")
async def stock_level(
    product_id: int,
    db: Session = Depends(get_db),
):
    product = catalog_service.get_by_id(db, product_id)
    if not product:
        raise NotFoundError(f"Product not found: {product_id}")
    inv = product.inventory
    return {
        "success": True,
        "product_id": product.id,
        "stock_quantity": product.stock_quantity,
        "stock_status": inv.stock_status if inv else "out_of_stock",
    }


@router.post("/{product_id}/adjust")
async def adjust_stock(
    product_id: int,
    body: AdjustRequest,
    db: Session = Depends(get_db),
):
    result = inventory_service.apply(
        db, product_id,
        mode=body.mode,
        direction=body.direction,
        amount=body.amount,
        reason=body.reason,
    )
    db.commit()
    return result


@router.get("/{product_id}/movements")
async def movements(
    product_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    rows = inventory_service.list_movements(db, product_id, limit=limit, offset=offset)
    return {
        "success": True,
        "movements": [
            {
                "id": m.id,
                "change_quantity": m.change_quantity,
                "reason": m.reason,
                "reason_label": AdjustmentReason(m.reason).label,
                "reference_id": m.reference_id,
                "created_at": m.created_at.isoformat() if m.created_at else None,
            }
            for m in rows
        ],
    }
