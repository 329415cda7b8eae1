from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from psycopg import Connection

from .. import promotions
from ..domain import (
    ORDER_TYPES,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    SHIPPING_STATUSES,
    Customer,
    Order,
    OrderDetail,
    OrderItem,
)
from ..errors import DataIntegrityError, InsufficientStockError, NotFoundError, ValidationError
from ..lifecycle import StockEffect, plan_transition, status_message, validate_targets
from ..pricing import compute_totals, line_subtotal
from ..repositories.customer_repo import CustomerRepository
from ..repositories.order_item_repo import OrderItemRepository
from ..repositories.order_repo import OrderRepository
from ..repositories.product_repo import ProductRepository
from ..validators import check_order_line, clean, is_id

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_order_number(year: int, sequence: int) -> str:
    return f"ORD-{year}-{sequence:04d}"


@dataclass
class CreateOrderItemInput:
    product_id: int
    quantity: int
    unit_price: int


@dataclass(frozen=True)
class StatusUpdate:
    order: OrderDetail
    message: str
    stock_effect: StockEffect


def _quantities_by_product(lines: Iterable) -> Counter:
    required: Counter = Counter()
    for ln in lines:
        if isinstance(ln, dict):
            required[int(ln["product_id"])] += int(ln["quantity"])
        else:
            required[ln.product_id] += ln.quantity
    return required


class OrderService:
    """Order creation and the payment/shipping lifecycle.

    Every method takes the connection of the caller's transaction; stock
    and status writes for one call land in that same transaction.
    """

    def __init__(
        self,
        *,
        customer_repo: CustomerRepository,
        product_repo: ProductRepository,
        order_repo: OrderRepository,
        order_item_repo: OrderItemRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.customer_repo = customer_repo
        self.product_repo = product_repo
        self.order_repo = order_repo
        self.order_item_repo = order_item_repo
        self.clock = clock

    def create_order(
        self,
        conn: Connection,
        *,
        customer_id: int,
        items: list[CreateOrderItemInput],
        payment_method: str,
        notes: str | None = None,
        order_type: str = "standard",
    ) -> OrderDetail:
        errors: list[str] = []
        if not is_id(customer_id):
            errors.append("Customer is required.")
        if not items:
            errors.append("At least one product is required.")
        if not clean(payment_method):
            errors.append("Payment method is required.")
        elif payment_method not in PAYMENT_METHODS:
            errors.append(f"Invalid payment method: {payment_method!r}")
        if order_type not in ORDER_TYPES:
            errors.append(f"Invalid order type: {order_type!r}")
        for i, it in enumerate(items or []):
            errors.extend(check_order_line(i, it.product_id, it.quantity, it.unit_price))
        if errors:
            raise ValidationError(errors)

        if self.customer_repo.get(conn, customer_id) is None:
            raise NotFoundError("customer", customer_id)

        required = _quantities_by_product(items)
        products = {int(p["id"]): p for p in self.product_repo.get_many(conn, required)}
        missing = set(required) - set(products)
        if missing:
            raise NotFoundError("product", missing)

        # Advisory check only: nothing is reserved until the order is paid.
        for product_id, qty in required.items():
            p = products[product_id]
            if int(p["stock"]) < qty:
                raise InsufficientStockError(product_id, p["name"], int(p["stock"]), qty)

        if order_type == "promomix":
            promo_errors = promotions.validate_names(
                (products[pid]["name"], qty) for pid, qty in required.items()
            )
            if promo_errors:
                raise ValidationError(promo_errors)

        now = self.clock()
        sequence = self.order_repo.next_sequence(conn, now.year)
        order_number = format_order_number(now.year, sequence)
        totals = compute_totals((it.quantity, it.unit_price) for it in items)

        order_id = self.order_repo.create(
            conn,
            order_number=order_number,
            customer_id=customer_id,
            order_date=now,
            order_type=order_type,
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            payment_method=payment_method,
            notes=clean(notes),
        )
        for it in items:
            self.order_item_repo.add(
                conn,
                order_id=order_id,
                product_id=it.product_id,
                quantity=it.quantity,
                unit_price=it.unit_price,
                subtotal=line_subtotal(it.quantity, it.unit_price),
            )

        logger.info(
            "Created order %s for customer %s (%d lines, total=%d)",
            order_number, customer_id, len(items), totals.total,
        )
        return self.get_order(conn, order_id)

    def update_status(
        self,
        conn: Connection,
        *,
        order_id: int,
        payment_status: str | None = None,
        shipping_status: str | None = None,
    ) -> StatusUpdate:
        validate_targets(payment_status, shipping_status)

        row = self.order_repo.get(conn, order_id, for_update=True)
        if row is None:
            raise NotFoundError("order", order_id)
        order = Order.from_row(row)

        plan = plan_transition(
            order,
            payment_status=payment_status,
            shipping_status=shipping_status,
            now=self.clock(),
        )
        if not plan.changed:
            return StatusUpdate(self.get_order(conn, order_id), status_message(plan), "none")

        if plan.stock != "none":
            lines = self.order_item_repo.list_for_order(conn, order_id)
            if plan.stock == "deduct":
                self._deduct_stock(conn, order, lines)
            else:
                self._restore_stock(conn, order, lines)

        self.order_repo.update_status(
            conn,
            order_id,
            payment_status=plan.payment_status,
            payment_date=plan.payment_date,
            shipping_status=plan.shipping_status,
            shipping_date=plan.shipping_date,
            delivery_date=plan.delivery_date,
        )
        logger.info(
            "Order %s: payment %s -> %s, shipping %s -> %s",
            order.order_number, order.payment_status, plan.payment_status,
            order.shipping_status, plan.shipping_status,
        )
        return StatusUpdate(self.get_order(conn, order_id), status_message(plan), plan.stock)

    def set_invoice_number(self, conn: Connection, *, order_id: int, invoice_number: str | None) -> OrderDetail:
        if self.order_repo.get(conn, order_id) is None:
            raise NotFoundError("order", order_id)
        self.order_repo.set_invoice_number(conn, order_id, clean(invoice_number))
        return self.get_order(conn, order_id)

    def delete_order(self, conn: Connection, *, order_id: int) -> str:
        row = self.order_repo.get(conn, order_id, for_update=True)
        if row is None:
            raise NotFoundError("order", order_id)
        order = Order.from_row(row)

        restored = order.payment_status == "paid"
        if restored:
            self._restore_stock(conn, order, self.order_item_repo.list_for_order(conn, order_id))
        self.order_repo.delete(conn, order_id)

        logger.info("Deleted order %s (stock restored: %s)", order.order_number, restored)
        if restored:
            return f"Order {order.order_number} deleted. Stock restored."
        return f"Order {order.order_number} deleted."

    def get_order(self, conn: Connection, order_id: int) -> OrderDetail:
        row = self.order_repo.get(conn, order_id)
        if row is None:
            raise NotFoundError("order", order_id)
        customer_row = self.customer_repo.get(conn, int(row["customer_id"]))
        if customer_row is None:
            raise DataIntegrityError(f"Order {row['order_number']} references a missing customer.")
        items = self.order_item_repo.list_for_order(conn, order_id)
        return OrderDetail(
            order=Order.from_row(row),
            customer=Customer.from_row(customer_row),
            items=tuple(OrderItem.from_row(i) for i in items),
        )

    def list_orders(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        payment_status: str | None = None,
        shipping_status: str | None = None,
        period: str | None = None,
        limit: int = 200,
    ) -> list[dict]:
        errors = []
        if payment_status and payment_status not in PAYMENT_STATUSES:
            errors.append(f"Invalid payment status: {payment_status!r}")
        if shipping_status and shipping_status not in SHIPPING_STATUSES:
            errors.append(f"Invalid shipping status: {shipping_status!r}")
        if period not in (None, "", "week"):
            errors.append(f"Invalid period: {period!r}")
        if errors:
            raise ValidationError(errors)

        since = self.clock() - timedelta(days=7) if period == "week" else None
        return self.order_repo.list(
            conn,
            search=clean(search),
            payment_status=payment_status or None,
            shipping_status=shipping_status or None,
            since=since,
            limit=limit,
        )

    def _deduct_stock(self, conn: Connection, order: Order, lines: list[dict]) -> None:
        required = _quantities_by_product(lines)
        locked = {int(p["id"]): p for p in self.product_repo.lock_many(conn, required)}

        missing = set(required) - set(locked)
        if missing:
            logger.error(
                "Order %s references missing products %s; aborting payment",
                order.order_number, sorted(missing),
            )
            raise DataIntegrityError(f"Order {order.order_number} references missing products.")

        # Verify every line before touching any row.
        for product_id, qty in required.items():
            p = locked[product_id]
            if int(p["stock"]) < qty:
                raise InsufficientStockError(product_id, p["name"], int(p["stock"]), qty)

        for product_id, qty in required.items():
            if not self.product_repo.decrease_stock(conn, product_id=product_id, qty=qty):
                p = locked[product_id]
                raise InsufficientStockError(product_id, p["name"], int(p["stock"]), qty)
            logger.info("Deducted %d units of product %s for order %s", qty, product_id, order.order_number)

    def _restore_stock(self, conn: Connection, order: Order, lines: list[dict]) -> None:
        for product_id, qty in sorted(_quantities_by_product(lines).items()):
            if not self.product_repo.increase_stock(conn, product_id=product_id, qty=qty):
                logger.error(
                    "Order %s references missing product %s; aborting stock restore",
                    order.order_number, product_id,
                )
                raise DataIntegrityError(f"Order {order.order_number} references missing products.")
            logger.info("Restored %d units of product %s for order %s", qty, product_id, order.order_number)
