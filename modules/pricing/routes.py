"""
Pricing Module - REST API Routes
==================================
Stateless JSON quotes for the storefront apps.

Endpoints:
  GET  /api/pricing/products/{id}/quote            Single product quote
  GET  /api/pricing/products/{id}/autoship-savings  One-time vs autoship
  POST /api/pricing/cart                           Cart pricing summary
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from common.helpers import format_idr
from config.database import get_db
from config.settings import CURRENCY_CODE
from modules.cart.service import cart_service
from modules.pricing.schemas import CartLine
from modules.pricing.service import pricing_service


router = APIRouter(prefix="/api/pricing", tags=["pricing"])


# ==========================================
# Schemas
# ==========================================

class CartLineIn(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)
    is_autoship: bool = False


class CartRequest(BaseModel):
    lines: List[CartLineIn] = Field(..., min_length=1)


# ==========================================
# GET /api/pricing/products/{id}/quote
# ==========================================

@router.get("/products/{product_id}/quote")
async def product_quote(
    product_id: int,
    autoship: bool = False,
    quantity: int = Query(1, ge=1),
    cart_total: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    """Price breakdown for one product."""
    quote = pricing_service.compute_product_price(
        db, product_id, is_autoship=autoship, quantity=quantity, cart_total=cart_total,
    )
    return {
        "success": True,
        "currency": CURRENCY_CODE,
        "quote": quote.to_dict(),
        "line_total_display": format_idr(quote.line_total),
    }


# ==========================================
# GET /api/pricing/products/{id}/autoship-savings
# ==========================================

@router.get("/products/{product_id}/autoship-savings")
async def autoship_savings(
    product_id: int,
    quantity: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """How much an autoship subscription saves over a one-time purchase."""
    data = pricing_service.autoship_savings(db, product_id, quantity=quantity)
    return {"success": True, "currency": CURRENCY_CODE, **data}


# ==========================================
# POST /api/pricing/cart
# ==========================================

@router.post("/cart")
async def cart_pricing(
    body: CartRequest,
    db: Session = Depends(get_db),
):
    """Quote every cart line and return cart totals."""
    lines = [CartLine(product_id=l.product_id, quantity=l.quantity, is_autoship=l.is_autoship) for l in body.lines]
    pricing = pricing_service.compute_cart(db, lines)
    return {
        "success": True,
        "currency": CURRENCY_CODE,
        "lines": cart_service.line_summaries(pricing),
        "subtotal": pricing.subtotal,
        "discount_total": pricing.discount_total,
        "total": pricing.total,
        "item_count": pricing.item_count,
        "total_display": format_idr(pricing.total),
    }
