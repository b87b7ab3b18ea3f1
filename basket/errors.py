"""
Cart Errors

Centralized error messages and the exceptions raised by the cart engine.
Adapter-level failures (network, timeouts) are never wrapped in these; they
reach the caller of ``CartEngine.add`` unchanged.
"""
from enum import Enum

# Quantity errors
ERROR_INVALID_QUANTITY = "Count must be greater than 0"

# Product errors
ERROR_PRODUCT_NOT_FOUND = "Product not found"


class ErrorKind(str, Enum):
    """Machine-readable kind carried by every cart error."""
    INVALID_QUANTITY = "invalid_quantity"
    PRODUCT_NOT_FOUND = "product_not_found"


class CartServiceError(Exception):
    """Base class for errors reported by the cart engine."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidQuantity(CartServiceError, ValueError):
    """Requested count to add or remove is less than 1."""

    kind = ErrorKind.INVALID_QUANTITY

    def __init__(self, count: int, action: str = "add"):
        super().__init__(f"{ERROR_INVALID_QUANTITY} (count to {action} is {count})")
        self.count = count
        self.action = action


class ProductNotFound(CartServiceError, LookupError):
    """The price source has no price for a simple item request."""

    kind = ErrorKind.PRODUCT_NOT_FOUND

    def __init__(self, request):
        super().__init__(f"{ERROR_PRODUCT_NOT_FOUND}: {request.item_id}")
        self.request = request


__all__ = [
    "ERROR_INVALID_QUANTITY",
    "ERROR_PRODUCT_NOT_FOUND",
    "ErrorKind",
    "CartServiceError",
    "InvalidQuantity",
    "ProductNotFound",
]
