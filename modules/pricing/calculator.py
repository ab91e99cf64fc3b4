"""
Pricing Module - Calculator
=============================
Resolves a unit price against a set of eligible discounts.

Stacking policy:
  - best_only: each candidate is measured against the ORIGINAL unit price;
    the largest saving wins, ties go to the lowest discount id.
  - stack: applied after the best_only pick, against the REMAINING price,
    percentage discounts first then fixed, ascending id within each group.

Rounding: percentage amounts are floored to whole rupiah.
A fixed amount never takes the price below zero.
"""

from typing import Iterable, List, Optional, Tuple

from common.exceptions import ValidationError
from modules.discount.models import DiscountType, StackPolicy
from modules.pricing.eligibility import validate_rule
from modules.pricing.schemas import AppliedDiscount, DiscountRule, PriceQuote


def discount_amount(rule: DiscountRule, price: int) -> int:
    """Per-unit saving of one discount against `price`, in whole rupiah."""
    if price <= 0:
        return 0
    if rule.discount_type == DiscountType.PERCENTAGE:
        return (price * rule.value) // 100
    elif rule.discount_type == DiscountType.FIXED:
        return min(rule.value, price)
    raise ValidationError(
        f"Discount {rule.id} has unknown type {rule.discount_type}",
        discount_id=rule.id, field="discount_type",
    )


def pick_best(unit_price: int, candidates: Iterable[DiscountRule]) -> Optional[Tuple[DiscountRule, int]]:
    """Return (rule, amount) for the best_only winner, or None."""
    best = None
    for rule in sorted(candidates, key=lambda r: r.id):
        amount = discount_amount(rule, unit_price)
        if best is None or amount > best[1]:
            best = (rule, amount)
    return best


def stack_order(rules: Iterable[DiscountRule]) -> List[DiscountRule]:
    """Deterministic application order for stackable discounts."""
    def key(rule):
        type_rank = 0 if rule.discount_type == DiscountType.PERCENTAGE else 1
        return (type_rank, rule.id)
    return sorted(rules, key=key)


def _applied(rule: DiscountRule, amount: int) -> AppliedDiscount:
    return AppliedDiscount(
        discount_id=rule.id,
        name=rule.name,
        kind=rule.kind,
        discount_type=rule.discount_type,
        stack_policy=rule.stack_policy,
        value=rule.value,
        amount=amount,
    )


def resolve_price(
    unit_price: int,
    eligible: Iterable[DiscountRule],
    quantity: int = 1,
    product_id=None,
) -> PriceQuote:
    """
    Apply the stacking policy to already-eligible discounts.

    Args:
        unit_price: Undiscounted price of one unit (IDR)
        eligible: Discounts that passed the eligibility filter
        quantity: Units on the line (>= 1)
        product_id: Carried through to the quote for display

    Returns:
        PriceQuote with final unit price and ordered discount breakdown

    Raises:
        ValidationError: negative price, quantity < 1, or corrupt discount data
    """
    if unit_price is None or unit_price < 0:
        raise ValidationError(f"Unit price must be >= 0 (got {unit_price})", field="unit_price")
    if quantity is None or quantity < 1:
        raise ValidationError(f"Quantity must be >= 1 (got {quantity})", field="quantity")

    rules = list(eligible)
    for rule in rules:
        validate_rule(rule)

    best_only = [r for r in rules if r.stack_policy == StackPolicy.BEST_ONLY]
    stackable = [r for r in rules if r.stack_policy == StackPolicy.STACK]

    applied = []
    price = unit_price

    best = pick_best(unit_price, best_only)
    if best is not None:
        rule, amount = best
        price -= amount
        applied.append(_applied(rule, amount))

    for rule in stack_order(stackable):
        amount = discount_amount(rule, price)
        price -= amount
        applied.append(_applied(rule, amount))

    return PriceQuote(
        product_id=product_id,
        quantity=quantity,
        unit_price=unit_price,
        final_price=max(0, price),
        discounts_applied=tuple(applied),
    )
