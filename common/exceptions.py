"""
Storefront - Custom Exceptions
===============================
Business-level exceptions that can be caught and converted to HTTP responses.
"""

from typing import Optional


class StorefrontError(Exception):
    """Base exception for all business logic errors."""
    def __init__(self, message: str = "An internal error occurred."):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message}


class ValidationError(StorefrontError):
    """Raised for malformed pricing data (bad discount value, inverted window, bad quantity)."""
    def __init__(self, message: str, discount_id=None, field: Optional[str] = None):
        self.discount_id = discount_id
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.discount_id is not None:
            data["discount_id"] = self.discount_id
        if self.field:
            data["field"] = self.field
        return data


class InvalidAdjustment(StorefrontError):
    """Raised when an inventory adjustment is rejected. No partial mutation happens."""
    def __init__(self, message: str, current_stock: Optional[int] = None, requested: Optional[int] = None):
        self.current_stock = current_stock
        self.requested = requested
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.current_stock is not None:
            data["current_stock"] = self.current_stock
        if self.requested is not None:
            data["requested"] = self.requested
        return data


class NotFoundError(StorefrontError):
    """Raised when a requested resource doesn't exist."""
    pass


class ProductNotPublishedError(StorefrontError):
    """Raised when quoting a product that is not published."""
    pass


class DuplicateError(StorefrontError):
    """Raised for unique constraint violations at the business level."""
    pass


class UsageLimitExceededError(StorefrontError):
    """Raised when recording usage of a discount whose usage limit is reached."""
    pass


HTTP_STATUS_BY_ERROR = {
    ValidationError: 400,
    InvalidAdjustment: 400,
    NotFoundError: 404,
    ProductNotPublishedError: 404,
    DuplicateError: 409,
    UsageLimitExceededError: 409,
}


def status_code_for(error: StorefrontError) -> int:
    for cls in type(error).__mro__:
        if cls in HTTP_STATUS_BY_ERROR:
            return HTTP_STATUS_BY_ERROR[cls]
    return 500

