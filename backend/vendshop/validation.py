from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .money import to_cents


GROW_ID_MIN_LENGTH = 3
GROW_ID_MAX_LENGTH = 20
GROW_ID_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input or business rule problem."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """404-level missing user, product or purchase."""


class ForbiddenError(PermissionError):
    """403-level refusal (banned account, non-admin actor)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and booleans
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Stock lists: ordered list of opaque unit strings
    if isinstance(coltype, JSON):
        if not isinstance(value, list):
            raise ValidationError(f"{col.key} must be a list of strings")
        for item in value:
            if not isinstance(item, str) or not item.strip():
                raise ValidationError(f"{col.key} must contain non-empty strings")
        return list(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, str):
            raise ValidationError(f"{col.key} must be a string")
        return value.strip()

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
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
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

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "image", "stock_data", "category"},
    required_on_create={"name", "price_cents"},
)

# Client field name -> column key
PRODUCT_FIELD_ALIASES = {
    "price": "price_cents",
    "stockData": "stock_data",
}


def normalize_product_payload(payload: dict) -> dict:
    """
    Translate the client's product body into column keys.

    price arrives as a decimal amount and is converted to cents here;
    everything else is passed through for validate_payload.
    """
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    out = {}
    for key, value in payload.items():
        col_key = PRODUCT_FIELD_ALIASES.get(key, key)
        if col_key == "price_cents" and value is not None:
            value = parse_amount_cents(value, field="price")
        out[col_key] = value
    return out


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch:
        price = patch["price_cents"]
        if price is None or price <= 0:
            raise ValidationError("price must be positive")

    if "stock_data" in patch and patch["stock_data"] is not None:
        units = patch["stock_data"]
        if len(set(units)) != len(units):
            raise ValidationError("stockData contains duplicate units")


def parse_amount_cents(value: Any, *, field: str = "amount") -> int:
    """
    Parse a client-supplied money amount into positive integer cents.

    Accepts JSON numbers only (not strings or booleans). The amount is
    rounded half-up to the cent and must come out >= 0.01.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Invalid {field}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"Invalid {field}")
    try:
        cents = to_cents(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}")
    if cents <= 0:
        raise ValidationError(f"Invalid {field}")
    return cents


def validate_grow_id(value: Any) -> str:
    """Boundary check for a GrowID; returns the value unchanged (not normalised)."""
    if not isinstance(value, str):
        raise ValidationError("GrowID is required")
    value = value.strip()
    if len(value) < GROW_ID_MIN_LENGTH:
        raise ValidationError(f"GrowID must be at least {GROW_ID_MIN_LENGTH} characters")
    if len(value) > GROW_ID_MAX_LENGTH:
        raise ValidationError(f"GrowID must be at most {GROW_ID_MAX_LENGTH} characters")
    if not GROW_ID_PATTERN.match(value):
        raise ValidationError("GrowID can only contain letters, numbers, and underscores")
    return value


def validate_email(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        raise ValidationError("Invalid email address")
    return value.strip().lower()


def validate_stock_units(value: Any) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ValidationError("units must be a non-empty list of strings")
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError("units must contain non-empty strings")
    return list(value)
