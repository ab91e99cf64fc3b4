"""
Inventory Module - Adjustment Arithmetic
==========================================
Pure stock arithmetic for admin adjustments. No database access.

Modes:
  - adjust: add or remove a positive amount; removing more than is on hand fails
  - set:    stock becomes the given non-negative count; direction is ignored
"""

from common.exceptions import InvalidAdjustment
from modules.inventory.models import AdjustmentDirection, AdjustmentMode, AdjustmentReason


def _mode(mode) -> AdjustmentMode:
    try:
        return AdjustmentMode(mode)
    except ValueError:
        raise InvalidAdjustment(f"Unknown adjustment mode: {mode}")


def _direction(direction) -> AdjustmentDirection:
    try:
        return AdjustmentDirection(direction)
    except ValueError:
        raise InvalidAdjustment(f"Unknown adjustment direction: {direction}")


def apply_adjustment(current_stock: int, mode, direction, amount: int) -> int:
    """Return the new stock level, or raise InvalidAdjustment."""
    if current_stock is None or current_stock < 0:
        raise InvalidAdjustment(f"Current stock must be >= 0 (got {current_stock})", current_stock=current_stock)
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAdjustment(f"Amount must be an integer (got {amount!r})", current_stock=current_stock)

    mode = _mode(mode)
    if mode == AdjustmentMode.SET:
        if amount < 0:
            raise InvalidAdjustment(
                f"Stock cannot be set below zero (got {amount})",
                current_stock=current_stock, requested=amount,
            )
        return amount

    direction = _direction(direction)
    if amount <= 0:
        raise InvalidAdjustment(
            f"Adjustment amount must be positive (got {amount})",
            current_stock=current_stock, requested=amount,
        )
    if direction == AdjustmentDirection.ADD:
        return current_stock + amount
    if amount > current_stock:
        raise InvalidAdjustment(
            f"Cannot remove more than available stock ({current_stock} units)",
            current_stock=current_stock, requested=amount,
        )
    return current_stock - amount


def adjustment_delta(current_stock: int, mode, direction, amount: int) -> int:
    """Signed change the store must apply (new stock - current stock)."""
    return apply_adjustment(current_stock, mode, direction, amount) - current_stock


def check_reason(reason, delta: int, check_direction: bool = True) -> AdjustmentReason:
    """
    Validate the audit reason. Unless check_direction is False (set mode),
    the reason must also allow the direction of the change.
    """
    try:
        reason = AdjustmentReason(reason)
    except ValueError:
        allowed = ", ".join(r.value for r in AdjustmentReason)
        raise InvalidAdjustment(f"Reason must be one of: {allowed}")
    if not check_direction:
        return reason
    direction = AdjustmentDirection.ADD if delta > 0 else AdjustmentDirection.REMOVE
    if direction not in reason.allowed_directions:
        raise InvalidAdjustment(f"Reason '{reason.value}' cannot be used to {direction.value} stock")
    return reason
