"""Order totals.

Amounts are integers in the currency's minor unit. Tax is rounded half-up
to a whole unit, so ``0.5`` becomes ``1`` rather than Python's
round-half-even result.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

TAX_RATE = Decimal("0.19")


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tax_for(subtotal: int) -> int:
    return round_half_up(Decimal(subtotal) * TAX_RATE)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    tax: int
    total: int


def line_subtotal(quantity: int, unit_price: int) -> int:
    return quantity * unit_price


def compute_totals(lines: Iterable[tuple[int, int]]) -> OrderTotals:
    """Totals for ``(quantity, unit_price)`` pairs."""
    subtotal = sum(line_subtotal(q, p) for q, p in lines)
    tax = tax_for(subtotal)
    return OrderTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def format_money(amount: int, currency: str = "COP") -> str:
    # es-CO style: dot thousands separator, no decimals
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    if currency == "COP":
        return f"{sign}${grouped}"
    return f"{sign}{grouped} {currency}"
