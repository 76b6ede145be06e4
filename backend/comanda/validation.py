from __future__ import annotations

from typing import Any

from .time_utils import parse_iso_datetime


class ValidationError(ValueError):
    """400-level input problem."""


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def coerce_int(value: Any, field: str, *, minimum: int | None = None, allow_none: bool = False) -> int | None:
    """
    Strict integer coercion for JSON/query input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals and
    scientific notation so that cent amounts are never silently truncated.
    """
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if 'e' in stripped.lower() or '.' in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def coerce_datetime(value: str | None, field: str):
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_order_items(raw_items: Any) -> list[dict]:
    """Normalize the items array of an order placement request."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        item = {
            "product_id": coerce_int(raw.get("product_id"), f"items[{index}].product_id", minimum=1),
            "quantity": coerce_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1),
        }
        price = coerce_int(raw.get("unit_price_cents"), f"items[{index}].unit_price_cents", minimum=0, allow_none=True)
        if price is not None:
            item["unit_price_cents"] = price
        observations = raw.get("observations")
        if observations is not None:
            observations = str(observations).strip()
            if len(observations) > 255:
                raise ValidationError(f"items[{index}].observations exceeds max length 255")
            item["observations"] = observations or None
        items.append(item)
    return items
