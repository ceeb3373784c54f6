from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Upper bound on units per order line
MAX_LINE_QUANTITY = 10_000

ADDRESS_FIELDS = ("street", "city", "state", "pincode")


class DomainError(ValueError):
    """Base for errors reported to the caller verbatim, with an HTTP-equivalent status."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(DomainError):
    """400-level input problem."""


class NotFoundError(DomainError):
    """404-level missing resource."""
    status_code = 404


class ConflictError(DomainError):
    """409-level business rule conflict (e.g., order already claimed)."""
    status_code = 409


@dataclass(frozen=True)
class OrderLineInput:
    product_id: int
    quantity: int
    variant_id: int | None = None


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for request payloads.

    Rejects booleans, floats, decimals and scientific notation so that
    "12.5" or "1e3" never silently become a quantity or an id.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_positive_int(value: Any, field: str) -> int:
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be > 0")
    return number


def coerce_percentage(value: Any, field: str) -> float:
    """Percentages are numbers in [0, 100]."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"{field} must be a number")
    try:
        pct = float(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if pct != pct or pct < 0 or pct > 100:
        raise ValidationError(f"{field} must be between 0 and 100")
    return pct


def coerce_price_cents(value: Any, field: str) -> int:
    cents = coerce_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return cents


def parse_order_lines(raw_lines: Any) -> list[OrderLineInput]:
    """
    Validate the `items` array of an order request.

    Each entry needs product_id and a positive quantity; variant_id is
    optional. An empty list is rejected.
    """
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("items must be a non-empty list")

    lines: list[OrderLineInput] = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if "product_id" not in raw or "quantity" not in raw:
            raise ValidationError(f"items[{index}] requires product_id and quantity")

        quantity = coerce_positive_int(raw["quantity"], f"items[{index}].quantity")
        if quantity > MAX_LINE_QUANTITY:
            raise ValidationError(f"items[{index}].quantity cannot exceed {MAX_LINE_QUANTITY}")

        variant_id = raw.get("variant_id")
        lines.append(OrderLineInput(
            product_id=coerce_positive_int(raw["product_id"], f"items[{index}].product_id"),
            quantity=quantity,
            variant_id=coerce_positive_int(variant_id, f"items[{index}].variant_id") if variant_id is not None else None,
        ))
    return lines


def parse_address(raw: Any) -> dict:
    """Delivery address: street, city, state and pincode are all required strings."""
    if not isinstance(raw, dict):
        raise ValidationError("address must be an object")

    address = {}
    missing = []
    for field in ADDRESS_FIELDS:
        value = raw.get(field)
        if value is None or not str(value).strip():
            missing.append(field)
            continue
        address[field] = str(value).strip()

    if missing:
        raise ValidationError(f"Missing address fields: {', '.join(missing)}")
    return address
