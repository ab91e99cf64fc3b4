"""
Pricing Module - Eligibility Filter
=====================================
Narrows a discount snapshot to the rules that apply to one product/order.

Rules (all must hold):
  1. Discount is active
  2. as_of inside [starts_at, ends_at] (open ends allowed)
  3. Kind matches purchase mode (promo: always, autoship: autoship lines only)
  4. Targets the product (or all products)
  5. Order subtotal >= min_order_subtotal (skipped when subtotal unknown)
  6. Usage count below usage_limit

A discount failing a rule is dropped silently. Malformed data raises.
"""

from typing import Iterable, List

from common.exceptions import ValidationError
from common.helpers import as_utc
from modules.discount.models import DiscountKind, DiscountType
from modules.pricing.schemas import DiscountRule, QuoteContext


def validate_rule(rule: DiscountRule) -> None:
    """Raise ValidationError if the rule's data is corrupt."""
    if rule.value is None or rule.value < 0:
        raise ValidationError(
            f"Discount {rule.id} has a negative value ({rule.value})",
            discount_id=rule.id, field="value",
        )
    if rule.discount_type == DiscountType.PERCENTAGE and rule.value > 100:
        raise ValidationError(
            f"Discount {rule.id} has a percentage above 100 ({rule.value})",
            discount_id=rule.id, field="value",
        )
    if rule.starts_at and rule.ends_at and as_utc(rule.starts_at) >= as_utc(rule.ends_at):
        raise ValidationError(
            f"Discount {rule.id} ends before it starts",
            discount_id=rule.id, field="ends_at",
        )


def kind_matches(kind: DiscountKind, is_autoship: bool) -> bool:
    if kind == DiscountKind.PROMO:
        return True
    elif kind == DiscountKind.AUTOSHIP:
        return is_autoship
    raise ValidationError(f"Unknown discount kind: {kind}", field="kind")


def is_eligible(rule: DiscountRule, context: QuoteContext) -> bool:
    if not rule.active:
        return False

    as_of = as_utc(context.as_of)
    if rule.starts_at and as_of < as_utc(rule.starts_at):
        return False
    if rule.ends_at and as_of > as_utc(rule.ends_at):
        return False

    if not kind_matches(rule.kind, context.is_autoship):
        return False

    if not rule.targets(context.product_id):
        return False

    if (
        rule.min_order_subtotal is not None
        and context.order_subtotal is not None
        and context.order_subtotal < rule.min_order_subtotal
    ):
        return False

    if rule.usage_limit is not None and context.usage_count(rule.id) >= rule.usage_limit:
        return False

    return True


def filter_eligible(discounts: Iterable[DiscountRule], context: QuoteContext) -> List[DiscountRule]:
    """Return the eligible discounts, in input order."""
    eligible = []
    for rule in discounts:
        validate_rule(rule)
        if is_eligible(rule, context):
            eligible.append(rule)
    return eligible
