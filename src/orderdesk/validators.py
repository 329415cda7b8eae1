"""Input checks shared by the services.

Each ``check_*`` function returns a list of messages; an empty list means
the input is valid. Services collect the messages and raise a single
``ValidationError``.
"""

from __future__ import annotations

import re

NATIONAL_ID_RE = re.compile(r"^\d{8,10}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_QUANTITY = 10_000


def is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_id(value) -> bool:
    return is_int(value) and value > 0


def clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def check_required(value: str | None, label: str) -> list[str]:
    if not clean(value):
        return [f"{label} is required."]
    return []


def check_national_id(national_id: str | None) -> list[str]:
    value = clean(national_id)
    if not value:
        return ["National ID is required."]
    if not NATIONAL_ID_RE.match(value):
        return ["National ID must have between 8 and 10 digits."]
    return []


def check_email(email: str | None) -> list[str]:
    value = clean(email)
    if value and not EMAIL_RE.match(value):
        return ["Email is not valid."]
    return []


def check_non_negative_int(value, label: str) -> list[str]:
    if not is_int(value) or value < 0:
        return [f"{label} must be a non-negative integer."]
    return []


def check_order_line(index: int, product_id, quantity, unit_price) -> list[str]:
    errors = []
    prefix = f"Item {index + 1}"
    if not is_id(product_id):
        errors.append(f"{prefix}: product id must be a positive integer.")
    if not is_int(quantity) or quantity <= 0:
        errors.append(f"{prefix}: quantity must be a positive integer.")
    elif quantity > MAX_QUANTITY:
        errors.append(f"{prefix}: quantity exceeds maximum ({MAX_QUANTITY}).")
    if not is_int(unit_price) or unit_price < 0:
        errors.append(f"{prefix}: unit price must be a non-negative integer.")
    return errors
