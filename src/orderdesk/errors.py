"""Error taxonomy shared by the order, customer and product services."""

from __future__ import annotations

from typing import Iterable


class OrderDeskError(Exception):
    """Base exception for all domain errors."""

    pass


class ValidationError(OrderDeskError):
    """Raised when input is missing or malformed. Carries field-level messages."""

    def __init__(self, errors: str | Iterable[str]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(OrderDeskError):
    """Raised when a referenced customer, product or order does not exist."""

    def __init__(self, entity: str, ids: int | Iterable[int]):
        if isinstance(ids, int):
            ids = [ids]
        self.entity = entity
        self.ids = sorted(ids)
        joined = ", ".join(str(i) for i in self.ids)
        super().__init__(f"{entity.capitalize()} not found: {joined}")


class InsufficientStockError(OrderDeskError):
    """Raised when a product cannot cover the quantity an order needs."""

    def __init__(self, product_id: int, product_name: str, available: int, required: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}, Required: {required}"
        )


class ConflictError(OrderDeskError):
    """Raised on duplicate keys or when a delete is blocked by references."""

    pass


class DataIntegrityError(OrderDeskError):
    """Raised when persisted data contradicts itself, e.g. an order line
    pointing at a product that no longer exists."""

    pass
