from __future__ import annotations


class StorefrontError(Exception):
    """Base class for every error raised by the storefront core."""


class OutOfStock(StorefrontError):
    def __init__(self, product_name: str, color: str, size: str, available: int):
        self.product_name = product_name
        self.color = color
        self.size = size
        self.available = available
        super().__init__(
            f"{product_name} ({color}, {size}) is out of stock: only {available} available"
        )


class InvalidCoupon(StorefrontError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Invalid coupon: {code}")


class ValidationFailure(StorefrontError):
    pass


class InvalidTransition(StorefrontError):
    pass


class CartLineNotFound(StorefrontError):
    def __init__(self, index: int):
        self.index = index
        super().__init__(f"No cart line at position {index}")


class ProductNotFound(StorefrontError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class Unauthorized(StorefrontError):
    pass


class PersistenceFailure(StorefrontError):
    """A background backend call failed. Logged, never raised into the shopper flow."""

    def __init__(self, action: str, cause: BaseException):
        self.action = action
        self.cause = cause
        super().__init__(f"{action} failed: {cause}")
