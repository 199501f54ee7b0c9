from typing import Optional


class DomainException(Exception):
    pass


class ValidationError(DomainException):
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidStatusError(ValidationError):
    def __init__(self, status):
        self.status = status
        super().__init__(f"Invalid status: {status}", field="status")


class InvalidTransitionError(ValidationError):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move order from {current} to {requested}", field="status"
        )


class NotFoundError(DomainException):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_ref: str):
        self.order_ref = order_ref
        super().__init__(f"Order {order_ref} not found")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class CartItemNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Item {product_id} not found in cart")


class OutOfStockError(DomainException):
    def __init__(self, product_id: str, available: int, required: int):
        self.product_id = product_id
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient stock for product {product_id}. Available: {available}, required: {required}"
        )


class ConflictError(DomainException):
    pass


class OrderNumberConflictError(ConflictError):
    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order number {order_number} already exists")


class OrderNotDeletableError(ConflictError):
    def __init__(self, order_ref: str, status):
        self.order_ref = order_ref
        self.status = status
        super().__init__(
            f"Order {order_ref} is {status}; only Cancelled orders can be deleted"
        )


class UserNotDeletableError(ConflictError):
    def __init__(self, user_id: str, reason: str):
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"User {user_id} cannot be deleted: {reason}")


class AuthError(DomainException):
    pass


class ForbiddenError(AuthError):
    pass


class StorageError(DomainException):
    pass
