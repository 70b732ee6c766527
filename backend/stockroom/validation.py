from __future__ import annotations

from collections.abc import Mapping
from typing import Any


PRODUCT_FIELDS = ("name", "category", "price", "quantity")

MAX_TEXT_LENGTH = 255


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, field: str | None = None, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = list(fields or ([field] if field else []))

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.fields:
            body["fields"] = self.fields
        return body


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., not enough stock)."""


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_integer(name: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{name} must be a whole number", field=name)
    if isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain whole number", field=name)
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be a whole number", field=name)
    raise ValidationError(f"{name} must be a whole number", field=name)


def coerce_number(name: str, value: Any) -> int | float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number", field=name)
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        stripped = value.strip()
        try:
            number = int(stripped)
        except ValueError:
            try:
                number = float(stripped)
            except ValueError:
                raise ValidationError(f"{name} must be a number", field=name)
    else:
        raise ValidationError(f"{name} must be a number", field=name)

    # NaN and infinities
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{name} must be a number", field=name)
    return number


def _clean_text(name: str, value: Any) -> str:
    text = str(value).strip()
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(f"{name} exceeds max length {MAX_TEXT_LENGTH}", field=name)
    return text


def validate_product_form(payload: Any) -> dict:
    """
    Validate the add/edit product form.

    All four fields are required; price must be > 0 and quantity a whole
    number >= 0. Returns the cleaned field map.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid JSON payload")

    missing = [f for f in PRODUCT_FIELDS if _is_blank(payload.get(f))]
    if missing:
        raise ValidationError("All fields are required", fields=missing)

    price = coerce_number("price", payload["price"])
    if price <= 0:
        raise ValidationError("Price must be greater than 0", field="price")

    quantity = coerce_integer("quantity", payload["quantity"])
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative", field="quantity")

    return {
        "name": _clean_text("name", payload["name"]),
        "category": _clean_text("category", payload["category"]),
        "price": price,
        "quantity": quantity,
    }


def validate_sale_quantity(value: Any) -> int:
    if _is_blank(value):
        raise ValidationError("Quantity is required", field="quantity")
    quantity = coerce_integer("quantity", value)
    if quantity <= 0:
        raise ValidationError("Quantity must be at least 1", field="quantity")
    return quantity
