"""Order domain exceptions.

Raised by the order and catalog layer when a business rule is violated.
``main`` registers a handler that turns them into JSON error responses.
"""

from __future__ import annotations


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 400

    def extra(self) -> dict:
        return {}


class EmptyOrder(StorefrontError):
    def __init__(self):
        super().__init__("No order items")


class ProductNotFound(StorefrontError):
    status_code = 404

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")

    def extra(self) -> dict:
        return {"product_id": self.product_id}


class InsufficientStock(StorefrontError):
    def __init__(self, product_id: int, available: int, name: str | None = None):
        self.product_id = product_id
        self.available = available
        label = name or f"product {product_id}"
        super().__init__(f"Insufficient stock for {label}. Available: {available}")

    def extra(self) -> dict:
        return {"product_id": self.product_id, "available": self.available}


class OrderNotFound(StorefrontError):
    status_code = 404

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order with id {order_id} not found")


class Forbidden(StorefrontError):
    """Wrong role or ownership for the requested action."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InvalidStatus(StorefrontError):
    def __init__(self, value, valid: list[str]):
        self.value = value
        self.valid = valid
        super().__init__(f"Invalid status. Must be one of: {', '.join(valid)}")

    def extra(self) -> dict:
        return {"valid_statuses": self.valid}


class OrderNotEditable(StorefrontError):
    def __init__(self, status: str):
        self.status = status
        super().__init__(f'Orders with status "{status}" cannot be edited')
