from __future__ import annotations

import uuid

from ..extensions import db
from ..money import from_cents
from sareepos.time_utils import to_utc_z, utcnow


class Transport(db.Model):
    """Inbound freight record for a supplier consignment."""
    __tablename__ = "transports"
    __table_args__ = (
        db.UniqueConstraint("invoice_no", name="uq_transports_invoice_no"),
        db.Index("ix_transports_in_date", "in_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    in_date = db.Column(db.DateTime, nullable=False)
    number_of_bundles = db.Column(db.Integer, nullable=False)
    invoice_no = db.Column(db.String(64), nullable=False)

    # Paise; total is always amount + gst
    freight_charges_cents = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    gst_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inDate": to_utc_z(self.in_date),
            "numberOfBundles": self.number_of_bundles,
            "freightCharges": from_cents(self.freight_charges_cents),
            "invoiceNo": self.invoice_no,
            "amount": from_cents(self.amount_cents),
            "gst": from_cents(self.gst_cents),
            "totalAmount": from_cents(self.total_amount_cents),
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
