# Overview: Service-layer operations for inbound transport (freight) records.

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Transport
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_transport,
    validate_payload,
)
from sareepos.time_utils import parse_iso_datetime

TRANSPORT_POLICY = ModelValidationPolicy(
    field_map={
        "inDate": "in_date",
        "numberOfBundles": "number_of_bundles",
        "freightCharges": "freight_charges_cents",
        "invoiceNo": "invoice_no",
        "amount": "amount_cents",
        "gst": "gst_cents",
        "notes": "notes",
    },
    required_on_create={"inDate", "numberOfBundles", "freightCharges", "invoiceNo", "amount", "gst"},
    money_fields={"freight_charges_cents", "amount_cents", "gst_cents"},
)


def _invoice_taken(invoice_no: str, exclude_id: str | None = None) -> bool:
    q = db.session.query(Transport.id).filter(Transport.invoice_no == invoice_no)
    if exclude_id:
        q = q.filter(Transport.id != exclude_id)
    return q.first() is not None


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Invoice number already exists")


def create_transport(payload: dict) -> Transport:
    patch = validate_payload(model=Transport, payload=payload, policy=TRANSPORT_POLICY, partial=False)
    enforce_rules_transport(patch)

    if _invoice_taken(patch["invoice_no"]):
        raise ConflictError("Invoice number already exists")

    transport = Transport(**patch)
    transport.total_amount_cents = transport.amount_cents + transport.gst_cents
    db.session.add(transport)
    _commit_or_conflict()
    return transport


def list_transports(
    page: int = 1,
    limit: int = 50,
    search: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
) -> dict:
    """
    Transport records, most recent in_date first.

    search matches the invoice number (case-insensitive substring) or, when
    numeric, the exact bundle count.
    """
    try:
        start = parse_iso_datetime(date_from)
        end = parse_iso_datetime(date_to)
    except ValueError:
        raise ValidationError("dateFrom and dateTo must be ISO-8601 dates")

    q = db.session.query(Transport)
    if search:
        term = search.strip()
        clauses = [Transport.invoice_no.ilike(f"%{term}%")]
        if term.isdigit():
            clauses.append(Transport.number_of_bundles == int(term))
        q = q.filter(or_(*clauses))
    if start is not None:
        q = q.filter(Transport.in_date >= start)
    if end is not None:
        q = q.filter(Transport.in_date <= end)

    limit = min(max(limit or 50, 1), 200)
    page = max(page or 1, 1)

    total = q.count()
    rows = q.order_by(Transport.in_date.desc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "items": [t.to_dict() for t in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }


def get_transport(transport_id: str) -> Transport | None:
    return db.session.get(Transport, transport_id)


def update_transport(transport_id: str, payload: dict) -> Transport | None:
    patch = validate_payload(model=Transport, payload=payload, policy=TRANSPORT_POLICY, partial=True)
    enforce_rules_transport(patch)

    transport = db.session.get(Transport, transport_id)
    if transport is None:
        return None

    new_invoice = patch.get("invoice_no")
    if new_invoice and new_invoice != transport.invoice_no and _invoice_taken(new_invoice, exclude_id=transport.id):
        raise ConflictError("Invoice number already exists")

    for k, v in patch.items():
        setattr(transport, k, v)
    transport.total_amount_cents = transport.amount_cents + transport.gst_cents
    _commit_or_conflict()
    return transport


def delete_transport(transport_id: str) -> bool:
    transport = db.session.get(Transport, transport_id)
    if transport is None:
        return False
    db.session.delete(transport)
    db.session.commit()
    return True
