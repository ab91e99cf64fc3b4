"""
Cart Module - Service Layer
==============================
Cart pricing: quote every line and sum into cart totals.

All catalog reads for the cart complete before any line is resolved.
Nothing here records discount usage; that happens at order placement.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from common.exceptions import ProductNotPublishedError, ValidationError
from common.helpers import format_idr, now_utc
from config.settings import MAX_CART_LINES
from modules.pricing.calculator import resolve_price
from modules.pricing.catalog import CatalogLookup
from modules.pricing.eligibility import filter_eligible
from modules.pricing.schemas import CartLine, CartPricing, QuoteContext

logger = logging.getLogger("storefront.cart")


class CartService:

    def aggregate(
        self,
        lines: Iterable[CartLine],
        catalog: CatalogLookup,
        as_of: Optional[datetime] = None,
    ) -> CartPricing:
        """
        Price every line and return the cart summary.

        The undiscounted cart subtotal is the order subtotal used for
        minimum-order eligibility on every line.
        """
        lines = list(lines)
        if len(lines) > MAX_CART_LINES:
            raise ValidationError(f"Cart has too many lines (max {MAX_CART_LINES})", field="lines")
        for line in lines:
            if line.quantity is None or line.quantity < 1:
                raise ValidationError(
                    f"Quantity must be >= 1 for product {line.product_id}", field="quantity",
                )

        as_of = as_of or now_utc()

        # Fetch everything first
        products = {}
        discounts = {}
        for line in lines:
            if line.product_id not in products:
                products[line.product_id] = catalog.get_product(line.product_id)
                if not products[line.product_id].published:
                    raise ProductNotPublishedError(f"Product is not published: {line.product_id}")
                discounts[line.product_id] = catalog.get_active_discounts_for_product(line.product_id, as_of)

        usage_counts = {}
        for rules in discounts.values():
            for rule in rules:
                if rule.usage_limit is not None and rule.id not in usage_counts:
                    usage_counts[rule.id] = catalog.get_discount_usage_count(rule.id)

        subtotal = sum(products[line.product_id].base_price * line.quantity for line in lines)

        quotes = []
        for line in lines:
            product = products[line.product_id]
            context = QuoteContext(
                product_id=product.id,
                as_of=as_of,
                is_autoship=bool(line.is_autoship and product.autoship_eligible),
                order_subtotal=subtotal,
                usage_counts=usage_counts,
            )
            eligible = filter_eligible(discounts[line.product_id], context)
            quotes.append(resolve_price(product.base_price, eligible, line.quantity, product_id=product.id))

        pricing = CartPricing(lines=tuple(quotes))
        logger.debug(
            f"Cart priced: {len(quotes)} lines, subtotal={pricing.subtotal}, "
            f"discount={pricing.discount_total}, total={pricing.total}"
        )
        return pricing

    def line_summaries(self, pricing: CartPricing) -> List[dict]:
        """Flat per-line rows for display (quote dict plus formatted amounts)."""
        rows = []
        for quote in pricing.lines:
            row = quote.to_dict()
            row["line_total_display"] = format_idr(quote.line_total)
            row["final_price_display"] = format_idr(quote.final_price)
            rows.append(row)
        return rows


# Singleton
cart_service = CartService()
