"""
Checkout request parsing.

Turns the POST /api/billing JSON body into a frozen PurchaseRequest, or
raises PurchaseValidationError listing every problem found. Amounts are
converted to paise here; nothing downstream sees floats.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from ..models.sales import WALK_IN_CUSTOMER
from ..money import amounts_match, to_cents
from ..validation import ValidationError
from .purchase_errors import PurchaseValidationError, SplitPaymentMismatch


TENDER_CASH = "cash"
TENDER_CARD = "card"
TENDER_UPI = "upi"
PAYMENT_SPLIT = "split"

TENDER_METHODS = (TENDER_CASH, TENDER_CARD, TENDER_UPI)
PAYMENT_METHODS = TENDER_METHODS + (PAYMENT_SPLIT,)

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_AMOUNT = "amount"
# older POS builds sent "price" for a flat discount
_DISCOUNT_ALIASES = {"price": DISCOUNT_AMOUNT}
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_AMOUNT)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class PurchaseLineRequest:
    stock_id: str
    quantity: int
    unit_price_cents: int

    @property
    def total_price_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass(frozen=True)
class SplitPaymentRequest:
    payment_method: str
    amount_cents: int


@dataclass(frozen=True)
class PurchaseRequest:
    items: tuple[PurchaseLineRequest, ...]
    subtotal_cents: int
    total_amount_cents: int
    payment_method: str
    discount_amount_cents: int = 0
    tax_amount_cents: int = 0
    discount_type: str | None = None
    discount_value: Decimal | None = None
    customer_name: str = WALK_IN_CUSTOMER
    customer_phone: str | None = None
    customer_email: str | None = None
    notes: str | None = None
    is_split_payment: bool = False
    split_payments: tuple[SplitPaymentRequest, ...] = field(default_factory=tuple)

    def stock_demand(self) -> dict[str, int]:
        """Requested quantity per stock id, duplicate cart lines summed."""
        demand: dict[str, int] = {}
        for line in self.items:
            demand[line.stock_id] = demand.get(line.stock_id, 0) + line.quantity
        return demand


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("must be a positive integer")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, float) and value.is_integer():
        qty = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        qty = int(value.strip())
    else:
        raise ValidationError("must be a positive integer")
    if qty <= 0:
        raise ValidationError("must be a positive integer")
    return qty


class _Errors:
    def __init__(self):
        self.items: list[dict] = []

    def add(self, path: str, message: str) -> None:
        self.items.append({"field": path, "message": message})

    def amount(self, payload: dict, key: str, *, required: bool, default: int | None = None,
               path: str | None = None) -> int | None:
        path = path or key
        raw = payload.get(key)
        if raw is None or raw == "":
            if required:
                self.add(path, "is required")
            return default
        try:
            cents = to_cents(raw, path)
        except ValidationError as exc:
            self.add(path, str(exc))
            return default
        if cents < 0:
            self.add(path, "cannot be negative")
            return default
        return cents


def _expected_discount_cents(discount_type: str, discount_value: Decimal, subtotal_cents: int) -> int:
    if discount_type == DISCOUNT_PERCENTAGE:
        raw = (Decimal(subtotal_cents) * discount_value / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return min(int(raw), subtotal_cents)
    flat = int((discount_value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return min(flat, subtotal_cents)


def _parse_lines(raw_items: Any, errors: _Errors) -> list[PurchaseLineRequest]:
    if not isinstance(raw_items, list) or not raw_items:
        errors.add("items", "At least one item is required")
        return []

    lines: list[PurchaseLineRequest] = []
    for i, raw in enumerate(raw_items):
        path = f"items[{i}]"
        if not isinstance(raw, dict):
            errors.add(path, "must be an object")
            continue

        stock_id = _text(raw.get("stockId"))
        if not stock_id:
            errors.add(f"{path}.stockId", "Stock ID is required")

        try:
            quantity = _quantity(raw.get("quantity"))
        except ValidationError as exc:
            errors.add(f"{path}.quantity", str(exc))
            quantity = None

        unit_price = errors.amount(raw, "unitPrice", required=True, path=f"{path}.unitPrice")
        if unit_price is not None and unit_price == 0:
            errors.add(f"{path}.unitPrice", "Unit price must be positive")
            unit_price = None

        total_price = errors.amount(raw, "totalPrice", required=False, path=f"{path}.totalPrice")

        if stock_id is None or quantity is None or unit_price is None:
            continue

        line = PurchaseLineRequest(stock_id=stock_id, quantity=quantity, unit_price_cents=unit_price)
        if total_price is not None and not amounts_match(total_price, line.total_price_cents):
            errors.add(f"{path}.totalPrice", "must equal quantity x unitPrice")
            continue
        lines.append(line)
    return lines


def _parse_split_payments(raw_payments: Any, errors: _Errors) -> list[SplitPaymentRequest]:
    if not isinstance(raw_payments, list) or not raw_payments:
        errors.add("splitPayments", "At least one payment is required for a split payment")
        return []

    payments: list[SplitPaymentRequest] = []
    for i, raw in enumerate(raw_payments):
        path = f"splitPayments[{i}]"
        if not isinstance(raw, dict):
            errors.add(path, "must be an object")
            continue
        method = _text(raw.get("paymentMethod"))
        if method not in TENDER_METHODS:
            errors.add(f"{path}.paymentMethod", f"must be one of {', '.join(TENDER_METHODS)}")
            method = None
        amount = errors.amount(raw, "amount", required=True, path=f"{path}.amount")
        if amount == 0:
            errors.add(f"{path}.amount", "Amount must be positive")
            amount = None
        if method is None or amount is None:
            continue
        payments.append(SplitPaymentRequest(payment_method=method, amount_cents=amount))
    return payments


def parse_purchase_request(payload: Any) -> PurchaseRequest:
    """
    Validate a checkout body eagerly, before any transaction is opened.

    Raises PurchaseValidationError with a `details` list of
    {"field", "message"} entries, or SplitPaymentMismatch when an otherwise
    valid split payment does not add up to totalAmount.
    """
    if not isinstance(payload, dict):
        raise PurchaseValidationError("Validation failed", details=[{"field": "", "message": "Invalid JSON payload"}])

    errors = _Errors()

    customer_name = _text(payload.get("customerName")) or WALK_IN_CUSTOMER
    if len(customer_name) > 255:
        errors.add("customerName", "exceeds max length 255")
    customer_phone = _text(payload.get("customerPhone"))
    customer_email = _text(payload.get("customerEmail"))
    if customer_email and not _EMAIL_RE.match(customer_email):
        errors.add("customerEmail", "Invalid email address")
    notes = _text(payload.get("notes"))

    lines = _parse_lines(payload.get("items"), errors)

    subtotal = errors.amount(payload, "subtotal", required=True)
    tax = errors.amount(payload, "taxAmount", required=False, default=0)
    total = errors.amount(payload, "totalAmount", required=True)

    discount_type = _text(payload.get("discountType"))
    if discount_type is not None:
        discount_type = _DISCOUNT_ALIASES.get(discount_type, discount_type)
        if discount_type not in DISCOUNT_TYPES:
            errors.add("discountType", f"must be one of {', '.join(DISCOUNT_TYPES)}")
            discount_type = None

    discount_value = None
    raw_discount_value = payload.get("discountValue")
    if raw_discount_value not in (None, ""):
        try:
            discount_value = Decimal(to_cents(raw_discount_value, "discountValue")) / 100
        except ValidationError as exc:
            errors.add("discountValue", str(exc))
        else:
            if discount_value < 0:
                errors.add("discountValue", "cannot be negative")
                discount_value = None

    discount = errors.amount(payload, "discountAmount", required=False)

    payment_method = _text(payload.get("paymentMethod"))
    if payment_method not in PAYMENT_METHODS:
        errors.add("paymentMethod", f"must be one of {', '.join(PAYMENT_METHODS)}")
        payment_method = None

    is_split = bool(payload.get("isSplitPayment")) or payment_method == PAYMENT_SPLIT
    split_payments: list[SplitPaymentRequest] = []
    if is_split:
        split_payments = _parse_split_payments(payload.get("splitPayments"), errors)
    elif payload.get("splitPayments"):
        errors.add("splitPayments", "only allowed when isSplitPayment is true")

    # Cross-field totals; only meaningful once the individual amounts parsed
    if subtotal is not None and lines and len(lines) == len(payload.get("items") or []):
        line_sum = sum(line.total_price_cents for line in lines)
        if not amounts_match(subtotal, line_sum):
            errors.add("subtotal", "must equal the sum of item totals")

    if subtotal is not None:
        if discount_type is not None and discount_value is not None:
            expected = _expected_discount_cents(discount_type, discount_value, subtotal)
            if discount is None:
                discount = expected
            elif not amounts_match(discount, expected):
                errors.add("discountAmount", "does not match discountType/discountValue")
        if discount is None:
            discount = 0
        if discount > subtotal:
            errors.add("discountAmount", "cannot exceed subtotal")

        if total is not None and tax is not None and discount <= subtotal:
            if not amounts_match(total, subtotal - discount + tax):
                errors.add("totalAmount", "must equal subtotal - discountAmount + taxAmount")

    if errors.items:
        raise PurchaseValidationError("Validation failed", details=errors.items)

    if is_split:
        paid = sum(p.amount_cents for p in split_payments)
        if not amounts_match(paid, total):
            raise SplitPaymentMismatch(expected_cents=total, actual_cents=paid)

    return PurchaseRequest(
        items=tuple(lines),
        subtotal_cents=subtotal,
        discount_amount_cents=discount,
        tax_amount_cents=tax,
        total_amount_cents=total,
        payment_method=PAYMENT_SPLIT if is_split else payment_method,
        discount_type=discount_type,
        discount_value=discount_value,
        customer_name=customer_name,
        customer_phone=customer_phone,
        customer_email=customer_email,
        notes=notes,
        is_split_payment=is_split,
        split_payments=tuple(split_payments),
    )
