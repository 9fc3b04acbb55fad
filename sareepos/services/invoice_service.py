# Overview: Service-layer operations for invoice numbering.

"""
Invoice Number Allocator

FORMAT: {prefix}-YYYYMMDD-NNNN, e.g. INV-20250101-0001. The date is the
shop-local calendar day; NNNN restarts at 0001 every day.

PROPOSE, DON'T GUARANTEE: the candidate is derived from what is already
stored for the day, so two checkouts reading the same state propose the same
number. Uniqueness is enforced by uq_purchases_invoice_number; the checkout
orchestrator retries on a collision, and the retry sees the winner's row.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Purchase
from sareepos.time_utils import shop_day_bounds, shop_now
from .purchase_errors import InvoiceSequenceExhausted

SEQUENCE_WIDTH = 4
MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1


def invoice_prefix_for(now: datetime | None = None) -> str:
    """'INV-20250101-' for the shop-local day containing `now`."""
    prefix = current_app.config.get("INVOICE_PREFIX", "INV")
    return f"{prefix}-{shop_now(now):%Y%m%d}-"


def format_invoice_number(day_prefix: str, sequence: int) -> str:
    return f"{day_prefix}{sequence:0{SEQUENCE_WIDTH}d}"


def count_purchases_for_day(now: datetime | None = None) -> int:
    """Purchases created within the shop-local day containing `now`."""
    start, end = shop_day_bounds(now)
    return (
        db.session.query(func.count(Purchase.id))
        .filter(Purchase.created_at >= start, Purchase.created_at < end)
        .scalar()
    ) or 0


def highest_sequence_for_day(day_prefix: str) -> int:
    """Largest NNNN already issued under `day_prefix`, 0 if none."""
    # Fixed-width suffix, so the lexical max is the numeric max
    latest = (
        db.session.query(func.max(Purchase.invoice_number))
        .filter(Purchase.invoice_number.like(f"{day_prefix}%"))
        .scalar()
    )
    if not latest:
        return 0
    suffix = latest[len(day_prefix):]
    return int(suffix) if suffix.isdigit() else 0


def allocate_invoice_number(now: datetime | None = None) -> str:
    """
    Propose the next invoice number for the day containing `now`.

    sequence = max(purchases created today, highest suffix issued today) + 1.
    The suffix term covers rows numbered for today whose created_at fell on
    the previous day (clock skew around midnight).

    Raises InvoiceSequenceExhausted instead of producing a 5-digit suffix.
    Must run inside the caller's transaction; it does not commit.
    """
    day_prefix = invoice_prefix_for(now)
    sequence = max(count_purchases_for_day(now), highest_sequence_for_day(day_prefix)) + 1
    if sequence > MAX_SEQUENCE:
        raise InvoiceSequenceExhausted(day=day_prefix.strip("-"), limit=MAX_SEQUENCE)
    return format_invoice_number(day_prefix, sequence)
