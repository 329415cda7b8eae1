"""PromoMix 2026 promotional pricing.

Eligible products are matched by name against the catalog. Promo orders
must reach ``PROMOMIX_MINIMUM`` at promo prices before tax.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional

from .pricing import tax_for

PROMOMIX_MINIMUM = 300_000
PROMOMIX_YEAR = 2026
# home products are 20% off, hair products 40% off, tax included

PromoCategory = Literal["home", "hair"]


@dataclass(frozen=True)
class PromoProduct:
    slug: str
    name: str
    category: PromoCategory
    size: str
    base_price: int
    promo_price: int

    @property
    def savings(self) -> int:
        return self.base_price - self.promo_price


HOME_PRODUCTS: tuple[PromoProduct, ...] = (
    PromoProduct("desengrasante-multiusos", "Desengrasante Multiusos", "home", "250 ml", 55200, 44160),
    PromoProduct("detergente-lavavajillas", "Detergente Lavavajillas", "home", "250 ml", 55200, 44160),
    PromoProduct("limpia-vidrios", "Limpia Vidrios", "home", "250 ml", 51750, 41400),
    PromoProduct("limpia-pisos", "Limpia Pisos", "home", "250 ml", 51750, 41400),
    PromoProduct("lustra-muebles", "Lustra Muebles", "home", "250 ml", 51750, 41400),
)

HAIR_PRODUCTS: tuple[PromoProduct, ...] = (
    PromoProduct("shampoo-suave-y-liso", "Shampoo Suave y Liso (237 ml)", "hair", "237 ml", 51750, 31050),
    PromoProduct("mascarilla-suave-y-liso", "Mascarilla Suave y Liso (177 ml)", "hair", "177 ml", 69000, 41400),
    PromoProduct("locion-suave-y-liso", "Loción Suave y Liso (177 ml)", "hair", "177 ml", 60950, 36570),
    PromoProduct("shampoo-revitalizante", "Shampoo Revitalizante (237 ml)", "hair", "237 ml", 51750, 31050),
    PromoProduct("mascarilla-reparacion-intensa", "Mascarilla Reparación intensa (177 ml)", "hair", "177 ml", 69000, 41400),
    PromoProduct("locion-revitalizante", "Loción Revitalizante (177 ml)", "hair", "177 ml", 60950, 36570),
    PromoProduct("shampoo-reparacion-intensa", "Shampoo Reparación intensa (237 ml)", "hair", "237 ml", 51750, 31050),
    PromoProduct("locion-reparacion-intensa", "Loción Reparación intensa (177 ml)", "hair", "177 ml", 60950, 36570),
)

ALL_PROMO_PRODUCTS: tuple[PromoProduct, ...] = HOME_PRODUCTS + HAIR_PRODUCTS


def find_by_slug(slug: str) -> Optional[PromoProduct]:
    return next((p for p in ALL_PROMO_PRODUCTS if p.slug == slug), None)


def find_by_name(name: str) -> Optional[PromoProduct]:
    normalized = name.strip().lower()
    return next((p for p in ALL_PROMO_PRODUCTS if p.name.lower() == normalized), None)


@dataclass(frozen=True)
class PromoQuote:
    subtotal_promo: int
    subtotal_regular: int
    tax: int
    total: int
    savings: int
    is_valid: bool
    remaining: int
    overage: int


def quote(items: Iterable[tuple[PromoProduct, int]]) -> PromoQuote:
    """Totals for ``(promo product, quantity)`` pairs."""
    subtotal_promo = 0
    subtotal_regular = 0
    for product, quantity in items:
        subtotal_promo += product.promo_price * quantity
        subtotal_regular += product.base_price * quantity

    tax = tax_for(subtotal_promo)
    is_valid = subtotal_promo >= PROMOMIX_MINIMUM
    return PromoQuote(
        subtotal_promo=subtotal_promo,
        subtotal_regular=subtotal_regular,
        tax=tax,
        total=subtotal_promo + tax,
        savings=subtotal_regular - subtotal_promo,
        is_valid=is_valid,
        remaining=0 if is_valid else PROMOMIX_MINIMUM - subtotal_promo,
        overage=max(subtotal_promo - PROMOMIX_MINIMUM, 0),
    )


def validate_names(lines: Iterable[tuple[str, int]]) -> list[str]:
    """Validation messages for ``(product name, quantity)`` pairs. Empty means valid."""
    lines = list(lines)
    if not lines:
        return ["A PromoMix order needs at least one product."]

    resolved = []
    errors = []
    for name, quantity in lines:
        product = find_by_name(name)
        if product is None:
            errors.append(f"Product not eligible for PromoMix: {name}")
            continue
        if quantity < 1:
            errors.append(f"Invalid quantity for {product.name}")
            continue
        resolved.append((product, quantity))
    if errors:
        return errors

    q = quote(resolved)
    if not q.is_valid:
        return [f"PromoMix requires a minimum of {PROMOMIX_MINIMUM}. Missing {q.remaining}."]
    return []


def order_savings(lines: Iterable[tuple[str, int]]) -> int:
    """Savings against regular prices for the eligible lines of an order."""
    total = 0
    for name, quantity in lines:
        product = find_by_name(name)
        if product is not None:
            total += product.savings * quantity
    return total
