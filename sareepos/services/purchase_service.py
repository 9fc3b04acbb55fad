# Overview: Service-layer checkout orchestration and purchase history queries.

"""
Purchase Service - counter checkout

One call to complete_purchase() is one sale:

1. parse + validate the request (no database access)
2. open a write transaction
3. stock guard: batch read, check, decrement (stock_ledger.reserve_stock)
4. propose an invoice number (invoice_service.allocate_invoice_number)
5. insert purchase, items and split payments
6. commit

A unique-constraint collision on the invoice number restarts steps 2-6
from scratch, up to PURCHASE_MAX_ATTEMPTS. Every other failure rolls the
whole attempt back and is raised as one of the purchase_errors classes.

NOT IDEMPOTENT: submitting the same cart twice sells it twice.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Purchase, PurchaseItem, Payment
from ..validation import ValidationError
from sareepos.time_utils import parse_iso_datetime, shop_now, to_utc_naive
from .concurrency import begin_write_transaction, is_unique_violation, run_with_retry
from .invoice_service import allocate_invoice_number
from .purchase_errors import InvoiceAllocationFailed, PurchaseError, TransactionFailed
from .purchase_schemas import PurchaseRequest, parse_purchase_request
from .stock_ledger import reserve_stock

logger = logging.getLogger(__name__)


class _InvoiceCollision(Exception):
    """Internal: the proposed invoice number was taken before we committed."""

    def __init__(self, candidate: str | None):
        super().__init__(candidate)
        self.candidate = candidate


def _build_purchase(request: PurchaseRequest, invoice_number: str, created_at: datetime) -> Purchase:
    purchase = Purchase(
        invoice_number=invoice_number,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        customer_email=request.customer_email,
        notes=request.notes,
        subtotal_cents=request.subtotal_cents,
        discount_type=request.discount_type,
        discount_value=request.discount_value,
        discount_amount_cents=request.discount_amount_cents,
        tax_amount_cents=request.tax_amount_cents,
        total_amount_cents=request.total_amount_cents,
        payment_method=request.payment_method,
        payment_status="completed",
        is_split_payment=request.is_split_payment,
        created_at=created_at,
        updated_at=created_at,
    )

    for position, line in enumerate(request.items):
        purchase.items.append(PurchaseItem(
            stock_id=line.stock_id,
            position=position,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            total_price_cents=line.total_price_cents,
            created_at=created_at,
        ))

    if request.is_split_payment:
        for position, tender in enumerate(request.split_payments):
            purchase.payments.append(Payment(
                payment_method=tender.payment_method,
                amount_cents=tender.amount_cents,
                position=position,
                status="completed",
                created_at=created_at,
            ))

    return purchase


def complete_purchase(request: PurchaseRequest | dict, *, now: datetime | None = None) -> Purchase:
    """
    Atomically sell a cart.

    Args:
        request: a parsed PurchaseRequest, or the raw JSON body
        now: checkout time; naive values are shop-local. Defaults to the clock
            at the start of each attempt.

    Returns:
        The committed Purchase (items, their stock rows and payments load on access).

    Raises:
        PurchaseValidationError / SplitPaymentMismatch: before any transaction
        StockItemNotFound, InsufficientStock, InvoiceSequenceExhausted: attempt rolled back
        InvoiceAllocationFailed: invoice collisions on every attempt
        TransactionFailed: database failure (lock timeout, deadlock, connection)
    """
    if not isinstance(request, PurchaseRequest):
        request = parse_purchase_request(request)

    attempts = int(current_app.config.get("PURCHASE_MAX_ATTEMPTS", 3))
    demand = request.stock_demand()
    last_candidate: str | None = None

    def _attempt() -> Purchase:
        nonlocal last_candidate
        # Start from a clean transaction; nothing pending in the session survives
        db.session.rollback()
        candidate = None
        try:
            begin_write_transaction()
            reserve_stock(demand)

            checkout_time = shop_now(now)
            candidate = allocate_invoice_number(checkout_time)
            last_candidate = candidate

            purchase = _build_purchase(request, candidate, to_utc_naive(checkout_time))
            db.session.add(purchase)
            db.session.flush()
            db.session.commit()
            return purchase
        except PurchaseError:
            db.session.rollback()
            raise
        except IntegrityError as exc:
            db.session.rollback()
            if is_unique_violation(exc, "invoice_number", "uq_purchases_invoice_number"):
                logger.warning("Invoice number %s already taken, retrying checkout", candidate)
                raise _InvoiceCollision(candidate) from exc
            logger.exception("Checkout failed on a constraint")
            raise TransactionFailed(details={"reason": "constraint"}) from exc
        except (DBAPIError, StaleDataError) as exc:
            db.session.rollback()
            logger.exception("Checkout transaction failed")
            raise TransactionFailed(details={"reason": type(exc).__name__}) from exc

    try:
        purchase = run_with_retry(
            _attempt,
            attempts=attempts,
            backoff_base=0.02,
            retry_on=(_InvoiceCollision,),
        )
    except _InvoiceCollision as exc:
        raise InvoiceAllocationFailed(attempts=attempts, last_candidate=exc.candidate or last_candidate) from exc

    logger.info(
        "Purchase %s committed: %d line(s), total_cents=%d, method=%s",
        purchase.invoice_number,
        len(request.items),
        request.total_amount_cents,
        request.payment_method,
    )
    return purchase


def _purchase_query():
    return db.session.query(Purchase).options(
        selectinload(Purchase.items).selectinload(PurchaseItem.stock),
        selectinload(Purchase.payments),
    )


def get_purchase(purchase_id: str) -> Purchase | None:
    return _purchase_query().filter(Purchase.id == purchase_id).first()


def get_purchase_by_invoice(invoice_number: str) -> Purchase | None:
    return _purchase_query().filter(Purchase.invoice_number == invoice_number.strip().upper()).first()


def list_purchases(
    page: int = 1,
    limit: int = 10,
    customer_name: str | None = None,
    payment_method: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict:
    """
    Purchase history, newest first.

    Args:
        customer_name: case-insensitive substring match
        payment_method: exact match (cash, card, upi, split)
        start_date / end_date: ISO-8601, inclusive bounds on created_at

    Returns:
        Dict with 'items' and 'pagination'.
    """
    try:
        start = parse_iso_datetime(start_date)
        end = parse_iso_datetime(end_date)
    except ValueError:
        raise ValidationError("startDate and endDate must be ISO-8601 dates")

    q = _purchase_query()
    if customer_name:
        q = q.filter(Purchase.customer_name.ilike(f"%{customer_name.strip()}%"))
    if payment_method:
        q = q.filter(Purchase.payment_method == payment_method.strip().lower())
    if start is not None:
        q = q.filter(Purchase.created_at >= start)
    if end is not None:
        q = q.filter(Purchase.created_at <= end)

    limit = min(max(limit or 10, 1), 100)
    page = max(page or 1, 1)

    total = q.order_by(None).count()
    purchases = (
        q.order_by(Purchase.created_at.desc(), Purchase.invoice_number.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "items": [p.to_dict() for p in purchases],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }
