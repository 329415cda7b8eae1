"""Payment and shipping status transitions.

Every ``(current, target)`` pair is listed explicitly in the two tables
below so the whole state machine can be enumerated. A transition only
takes effect when ``target != current``; same-state entries exist so a
lookup never misses and they carry no effects.

Stock is tied to payment status only: entering ``paid`` deducts every line,
leaving ``paid`` restores it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from .domain import PAYMENT_STATUSES, SHIPPING_STATUSES, Order
from .errors import ValidationError

StockEffect = Literal["none", "deduct", "restore"]
# keep: leave as is; set: now; set_if_missing: now unless already set; clear: None
DateEffect = Literal["keep", "set", "set_if_missing", "clear"]


@dataclass(frozen=True)
class PaymentEffect:
    payment_date: DateEffect
    stock: StockEffect


@dataclass(frozen=True)
class ShippingEffect:
    shipping_date: DateEffect
    delivery_date: DateEffect


_NOOP_PAYMENT = PaymentEffect(payment_date="keep", stock="none")
_NOOP_SHIPPING = ShippingEffect(shipping_date="keep", delivery_date="keep")

PAYMENT_TRANSITIONS: dict[tuple[str, str], PaymentEffect] = {
    ("pending", "pending"): _NOOP_PAYMENT,
    ("pending", "partial"): PaymentEffect(payment_date="keep", stock="none"),
    ("pending", "paid"): PaymentEffect(payment_date="set", stock="deduct"),
    ("partial", "pending"): PaymentEffect(payment_date="clear", stock="none"),
    ("partial", "partial"): _NOOP_PAYMENT,
    ("partial", "paid"): PaymentEffect(payment_date="set", stock="deduct"),
    ("paid", "pending"): PaymentEffect(payment_date="clear", stock="restore"),
    ("paid", "partial"): PaymentEffect(payment_date="keep", stock="restore"),
    ("paid", "paid"): _NOOP_PAYMENT,
}

SHIPPING_TRANSITIONS: dict[tuple[str, str], ShippingEffect] = {
    ("preparing", "preparing"): _NOOP_SHIPPING,
    ("preparing", "shipped"): ShippingEffect(shipping_date="set_if_missing", delivery_date="clear"),
    ("preparing", "delivered"): ShippingEffect(shipping_date="set_if_missing", delivery_date="set"),
    ("shipped", "preparing"): ShippingEffect(shipping_date="clear", delivery_date="clear"),
    ("shipped", "shipped"): _NOOP_SHIPPING,
    ("shipped", "delivered"): ShippingEffect(shipping_date="set_if_missing", delivery_date="set"),
    ("delivered", "preparing"): ShippingEffect(shipping_date="clear", delivery_date="clear"),
    ("delivered", "shipped"): ShippingEffect(shipping_date="set_if_missing", delivery_date="clear"),
    ("delivered", "delivered"): _NOOP_SHIPPING,
}


def _apply(effect: DateEffect, current: Optional[datetime], now: datetime) -> Optional[datetime]:
    if effect == "keep":
        return current
    if effect == "set":
        return now
    if effect == "set_if_missing":
        return current if current is not None else now
    return None


@dataclass(frozen=True)
class TransitionPlan:
    """Field values an order should end up with, plus the stock side effect."""

    payment_status: str
    payment_date: Optional[datetime]
    shipping_status: str
    shipping_date: Optional[datetime]
    delivery_date: Optional[datetime]
    stock: StockEffect
    payment_changed: bool
    shipping_changed: bool

    @property
    def changed(self) -> bool:
        return self.payment_changed or self.shipping_changed


def validate_targets(payment_status: str | None, shipping_status: str | None) -> None:
    errors = []
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        errors.append(f"Invalid payment status: {payment_status!r}")
    if shipping_status is not None and shipping_status not in SHIPPING_STATUSES:
        errors.append(f"Invalid shipping status: {shipping_status!r}")
    if errors:
        raise ValidationError(errors)


def plan_transition(
    order: Order,
    *,
    payment_status: str | None,
    shipping_status: str | None,
    now: datetime,
) -> TransitionPlan:
    validate_targets(payment_status, shipping_status)

    pay_target = payment_status or order.payment_status
    ship_target = shipping_status or order.shipping_status

    pay = PAYMENT_TRANSITIONS[(order.payment_status, pay_target)]
    ship = SHIPPING_TRANSITIONS[(order.shipping_status, ship_target)]

    return TransitionPlan(
        payment_status=pay_target,
        payment_date=_apply(pay.payment_date, order.payment_date, now),
        shipping_status=ship_target,
        shipping_date=_apply(ship.shipping_date, order.shipping_date, now),
        delivery_date=_apply(ship.delivery_date, order.delivery_date, now),
        stock=pay.stock,
        payment_changed=pay_target != order.payment_status,
        shipping_changed=ship_target != order.shipping_status,
    )


def status_message(plan: TransitionPlan) -> str:
    if plan.stock == "deduct":
        return "Order marked as paid. Stock deducted."
    if plan.stock == "restore":
        return "Payment status reverted. Stock restored."
    if plan.changed:
        return "Order updated."
    return "No changes."
