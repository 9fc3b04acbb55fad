from __future__ import annotations
from datetime import datetime
from sareepos.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate transport invoice)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - field_map: JSON key -> model column key; only these keys are writable
    - required_on_create: JSON keys required for POST
    - money_fields: column keys holding minor units; JSON carries rupees
    """
    field_map: dict[str, str]
    required_on_create: set[str] = field(default_factory=set)
    money_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any, label: str):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{label} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{label} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{label} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{label} must be an integer")
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{label} must be an integer, not a decimal")
        raise ValidationError(f"{label} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{label} must be an ISO-8601 date or datetime")
            if dt is None:
                raise ValidationError(f"{label} must be an ISO-8601 date or datetime")
            return dt
        raise ValidationError(f"{label} must be a datetime")

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
    - the policy field map (writable fields, JSON -> column names)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    from .money import to_cents

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.field_map:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        key = policy.field_map[k]
        col = cols[key]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[key] = None
            continue

        if key in policy.money_fields:
            patch[key] = to_cents(raw, k)
            continue

        val = _coerce_value(col, raw, k)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_rules_stock(patch: dict, *, partial: bool) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "quantity" in patch:
        qty = patch["quantity"]
        # intake needs a positive count; warehouse adjustments may zero it out
        if partial and qty < 0:
            raise ValidationError("quantity must be >= 0")
        if not partial and qty <= 0:
            raise ValidationError("quantity must be a positive integer")

    if "unit_price_cents" in patch and patch["unit_price_cents"] is not None:
        if patch["unit_price_cents"] <= 0:
            raise ValidationError("unitPrice must be positive")

    if patch.get("selling_price_cents") is not None and patch["selling_price_cents"] <= 0:
        raise ValidationError("sellingPrice must be positive")


def enforce_rules_transport(patch: dict) -> None:
    if "number_of_bundles" in patch and patch["number_of_bundles"] <= 0:
        raise ValidationError("numberOfBundles must be a positive integer")

    for key, label in (("freight_charges_cents", "freightCharges"), ("amount_cents", "amount")):
        if key in patch and patch[key] <= 0:
            raise ValidationError(f"{label} must be positive")

    if "gst_cents" in patch and patch["gst_cents"] < 0:
        raise ValidationError("gst cannot be negative")
