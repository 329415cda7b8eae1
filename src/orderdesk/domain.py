from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Literal, Optional

PaymentMethod = Literal["cash", "nequi", "bank", "link"]
PaymentStatus = Literal["pending", "partial", "paid"]
ShippingStatus = Literal["preparing", "shipped", "delivered"]
OrderType = Literal["standard", "promomix"]
StockStatus = Literal["in-stock", "low-stock", "out-of-stock"]

PAYMENT_METHODS: tuple[str, ...] = ("cash", "nequi", "bank", "link")
PAYMENT_STATUSES: tuple[str, ...] = ("pending", "partial", "paid")
SHIPPING_STATUSES: tuple[str, ...] = ("preparing", "shipped", "delivered")
ORDER_TYPES: tuple[str, ...] = ("standard", "promomix")

PAYMENT_METHOD_LABELS = {"cash": "Cash", "nequi": "Nequi", "bank": "Bank transfer", "link": "Payment link"}
PAYMENT_STATUS_LABELS = {"pending": "Pending", "partial": "Partial", "paid": "Paid"}
SHIPPING_STATUS_LABELS = {"preparing": "To ship", "shipped": "Shipped", "delivered": "Delivered"}


def _from_row(cls, row: dict):
    return cls(**{f.name: row[f.name] for f in fields(cls) if f.name in row})


@dataclass(frozen=True)
class Customer:
    id: int
    national_id: str
    name: str
    email: Optional[str]
    phone: str
    address: Optional[str] = None
    city: Optional[str] = None
    active: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> Customer:
        return _from_row(cls, row)


def stock_status(stock: int, min_stock: int) -> StockStatus:
    if stock == 0:
        return "out-of-stock"
    if stock < min_stock:
        return "low-stock"
    return "in-stock"


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    category: str
    price: int
    stock: int
    min_stock: int
    product_type: str = "simple"
    unit: str = "und"
    active: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> Product:
        return _from_row(cls, row)

    @property
    def stock_status(self) -> StockStatus:
        return stock_status(self.stock, self.min_stock)


@dataclass(frozen=True)
class OrderItem:
    id: int
    order_id: int
    product_id: int
    quantity: int
    unit_price: int
    subtotal: int
    product_name: Optional[str] = None
    unit: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> OrderItem:
        return _from_row(cls, row)


@dataclass(frozen=True)
class Order:
    id: int
    order_number: str
    customer_id: int
    order_date: datetime
    subtotal: int
    tax: int
    total: int
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    shipping_status: ShippingStatus
    order_type: OrderType = "standard"
    payment_date: Optional[datetime] = None
    shipping_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> Order:
        return _from_row(cls, row)


@dataclass(frozen=True)
class OrderDetail:
    order: Order
    customer: Customer
    items: tuple[OrderItem, ...]

    def to_dict(self) -> dict:
        data = _asdict(self.order)
        data["customer"] = _asdict(self.customer)
        data["items"] = [_asdict(i) for i in self.items]
        return data


def _asdict(obj) -> dict:
    out = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        out[f.name] = value.isoformat() if isinstance(value, datetime) else value
    return out


def product_to_dict(product: Product) -> dict:
    data = _asdict(product)
    data["stock_status"] = product.stock_status
    return data


def customer_to_dict(customer: Customer) -> dict:
    return _asdict(customer)
