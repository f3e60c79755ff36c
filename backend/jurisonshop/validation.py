from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Upper bound for any single price or amount (PHP 99,999,999.99)
MAX_AMOUNT = Decimal("99999999.99")

PAYMENT_METHODS = ("cash", "gcash", "card", "bank_transfer")


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level: the referenced row does not exist."""


class ConflictError(ValueError):
    """Invalid state transition (e.g., refunding twice). Reported as 400."""


class UpstreamStoreError(RuntimeError):
    """The database call itself failed."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - default_on_create: values filled in when a field is absent (or null) on POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    default_on_create: dict[str, Any] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_decimal(value: Any, field: str) -> Decimal:
    """Coerce JSON numbers and numeric strings to Decimal; reject bools, NaN, inf."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(f"{field} must be a finite number")
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def to_cents(value: Decimal, field: str) -> Decimal:
    """Round a money amount to the 2 decimal places the columns store."""
    try:
        return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT:,}")


def parse_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects floats with fractions, bools, and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    if isinstance(coltype, Numeric):
        return parse_decimal(value, col.key)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create and default_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = dict(payload)
    if not partial:
        for k, default in (policy.default_on_create or {}).items():
            if payload.get(k) is None:
                payload[k] = default

        required = policy.required_on_create or set()
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    """
    for field in ("capital_price", "retail_price"):
        price = patch.get(field)
        if price is None:
            continue
        price = patch[field] = to_cents(price, field)
        if price < 0:
            raise ValidationError(f"{field} must be >= 0")
        if price > MAX_AMOUNT:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT:,}")

    stock = patch.get("stock_quantity")
    if stock is not None and stock < 0:
        raise ValidationError("stock_quantity must be >= 0")


def enforce_rules_transaction(payload: dict) -> tuple[Decimal, list[dict]]:
    """
    Checks a sale payload and returns the normalized (total_amount, items).

    total_amount must be present, numeric and > 0; items must be a non-empty
    list whose entries carry a SKU and a positive integer quantity.
    """
    raw_total = payload.get("total_amount")
    if raw_total is None or raw_total == "":
        raise ValidationError("total_amount is required and must be a positive number")
    try:
        total = parse_decimal(raw_total, "total_amount")
    except ValidationError:
        raise ValidationError("total_amount is required and must be a positive number")
    # Columns hold cents; compare the value as it will be stored
    total = to_cents(total, "total_amount")
    if total <= 0:
        raise ValidationError("total_amount is required and must be a positive number")
    if total > MAX_AMOUNT:
        raise ValidationError(f"total_amount cannot exceed {MAX_AMOUNT:,}")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item must be included")

    normalized = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {index} must be an object")
        sku = str(item.get("sku") or "").strip()
        if not sku:
            raise ValidationError(f"Item {index} is missing a sku")
        quantity = parse_int(item.get("quantity", 1), f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")

        line = dict(item)
        line["sku"] = sku
        line["quantity"] = quantity
        if line.get("retail_price") is not None:
            field = f"items[{index}].retail_price"
            line["retail_price"] = float(to_cents(parse_decimal(line["retail_price"], field), field))
        normalized.append(line)

    method = payload.get("payment_method") or "cash"
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    return total, normalized
