"""
Pricing Service
=================
Quote products and carts against the current discount catalog.

Usage:
    pricing_service.compute_product_price(db, product_id=1, is_autoship=True, quantity=2)
    pricing_service.compute_cart(db, [CartLine(product_id=1, quantity=2)])
    pricing_service.autoship_savings(db, product_id=1)
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from common.exceptions import ProductNotPublishedError, ValidationError
from common.helpers import now_utc, percent_of
from config.settings import MAX_QUOTE_QUANTITY
from modules.cart.service import cart_service
from modules.pricing.calculator import resolve_price
from modules.pricing.catalog import CatalogLookup, SqlCatalog
from modules.pricing.eligibility import filter_eligible
from modules.pricing.schemas import CartLine, CartPricing, PriceQuote, QuoteContext

logger = logging.getLogger("storefront.pricing")


def _check_quantity(quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_QUOTE_QUANTITY:
        raise ValidationError(
            f"Quantity must be between 1 and {MAX_QUOTE_QUANTITY} (got {quantity})", field="quantity",
        )


class PricingService:
    """Stateless service: call methods with db session."""

    # ------------------------------------------
    # Single product
    # ------------------------------------------

    def quote(
        self,
        catalog: CatalogLookup,
        product_id,
        is_autoship: bool = False,
        quantity: int = 1,
        cart_total: Optional[int] = None,
        as_of: Optional[datetime] = None,
    ) -> PriceQuote:
        """Quote one product against any CatalogLookup."""
        _check_quantity(quantity)

        product = catalog.get_product(product_id)
        if not product.published:
            raise ProductNotPublishedError(f"Product is not published: {product_id}")

        as_of = as_of or now_utc()
        candidates = catalog.get_active_discounts_for_product(product.id, as_of)
        usage_counts = {
            rule.id: catalog.get_discount_usage_count(rule.id)
            for rule in candidates
            if rule.usage_limit is not None
        }
        context = QuoteContext(
            product_id=product.id,
            as_of=as_of,
            is_autoship=bool(is_autoship and product.autoship_eligible),
            order_subtotal=cart_total,
            usage_counts=usage_counts,
        )
        eligible = filter_eligible(candidates, context)
        quote = resolve_price(product.base_price, eligible, quantity, product_id=product.id)

        logger.debug(
            f"Quote product #{product.id} autoship={context.is_autoship} qty={quantity}: "
            f"{product.base_price} -> {quote.final_price} "
            f"({len(eligible)}/{len(candidates)} discounts eligible)"
        )
        return quote

    def compute_product_price(
        self,
        db: Session,
        product_id,
        is_autoship: bool = False,
        quantity: int = 1,
        cart_total: Optional[int] = None,
        as_of: Optional[datetime] = None,
    ) -> PriceQuote:
        return self.quote(SqlCatalog(db), product_id, is_autoship, quantity, cart_total, as_of)

    # ------------------------------------------
    # Cart
    # ------------------------------------------

    def compute_cart(
        self,
        db: Session,
        lines: Iterable[CartLine],
        as_of: Optional[datetime] = None,
    ) -> CartPricing:
        lines = list(lines)
        for line in lines:
            _check_quantity(line.quantity)
        return cart_service.aggregate(lines, SqlCatalog(db), as_of=as_of)

    # ------------------------------------------
    # Autoship vs one-time comparison
    # ------------------------------------------

    def autoship_savings(
        self,
        db: Session,
        product_id,
        quantity: int = 1,
        as_of: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Compare one-time and autoship prices for a product.
        savings_percent is relative to the one-time final price.
        """
        catalog = SqlCatalog(db)
        as_of = as_of or now_utc()
        one_time = self.quote(catalog, product_id, False, quantity, as_of=as_of)
        autoship = self.quote(catalog, product_id, True, quantity, as_of=as_of)

        savings = max(0, one_time.final_price - autoship.final_price)
        return {
            "product_id": one_time.product_id,
            "eligible": catalog.get_product(product_id).autoship_eligible,
            "base_price": one_time.unit_price,
            "one_time_price": one_time.final_price,
            "autoship_price": autoship.final_price,
            "savings_amount": savings,
            "savings_percent": percent_of(savings, one_time.final_price) if savings else 0,
            "one_time": one_time.to_dict(),
            "autoship": autoship.to_dict(),
        }


# Singleton
pricing_service = PricingService()
