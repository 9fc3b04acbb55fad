from __future__ import annotations

import uuid

from ..extensions import db
from ..money import from_cents
from sareepos.time_utils import to_utc_z, utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class StockItem(db.Model):
    """
    A sellable stock line (one saree design/colour from one supplier).

    STOCK CODE: stock_code is the shop-facing identifier printed on labels and
    scanned at the counter (e.g. "HS-0007"). It is allocated once from
    DocumentSequence("STOCK") and never reused.

    QUANTITY: quantity is mutated only by warehouse edits and by the checkout
    stock guard. The CHECK constraint is the storage-level backstop for the
    non-negative invariant.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
        db.Index("ix_stocks_category", "category"),
        db.Index("ix_stocks_created_at", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    stock_code = db.Column(db.String(32), nullable=False, unique=True)
    # Optional supplier/catalogue code typed in at intake
    item_code = db.Column(db.String(64), nullable=True)

    item_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    color = db.Column(db.String(64), nullable=False, default="Not Specified")
    supplier = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Paise
    unit_price_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def profit_amount_cents(self) -> int | None:
        if self.selling_price_cents is None:
            return None
        return self.selling_price_cents - self.unit_price_cents

    @property
    def profit_percentage(self) -> float | None:
        if self.selling_price_cents is None or not self.unit_price_cents:
            return None
        return round(self.profit_amount_cents * 100 / self.unit_price_cents, 2)

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} code={self.stock_code!r} qty={self.quantity}>"

    def to_summary(self) -> dict:
        """Display fields joined onto purchase lines."""
        return {
            "id": self.id,
            "stockCode": self.stock_code,
            "itemCode": self.item_code,
            "itemName": self.item_name,
            "category": self.category,
            "color": self.color,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stockCode": self.stock_code,
            "itemCode": self.item_code,
            "itemName": self.item_name,
            "category": self.category,
            "color": self.color,
            "supplier": self.supplier,
            "quantity": self.quantity,
            "unitPrice": from_cents(self.unit_price_cents),
            "sellingPrice": from_cents(self.selling_price_cents),
            "profitAmount": from_cents(self.profit_amount_cents),
            "profitPercentage": self.profit_percentage,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class DocumentSequence(db.Model):
    """Monotonic counters for human-readable codes, one row per sequence name."""
    __tablename__ = "document_sequences"

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, unique=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
