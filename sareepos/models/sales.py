from __future__ import annotations

import uuid

from ..extensions import db
from ..money import from_cents
from sareepos.time_utils import to_utc_z, utcnow

WALK_IN_CUSTOMER = "Walk-in Customer"


def _new_id() -> str:
    return str(uuid.uuid4())


class Purchase(db.Model):
    """
    A completed counter sale (the customer's purchase).

    IMMUTABLE: written once by the checkout orchestrator together with its
    items and payments; there is no edit or void flow.

    INVOICE NUMBER: INV-YYYYMMDD-NNNN, unique across the table. The unique
    index is what makes concurrent checkouts safe; the allocator only proposes.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_purchases_invoice_number"),
        db.CheckConstraint("subtotal_cents >= 0", name="ck_purchases_subtotal"),
        db.CheckConstraint(
            "discount_amount_cents >= 0 AND discount_amount_cents <= subtotal_cents",
            name="ck_purchases_discount_capped",
        ),
        db.CheckConstraint("tax_amount_cents >= 0", name="ck_purchases_tax"),
        db.CheckConstraint("total_amount_cents >= 0", name="ck_purchases_total"),
        db.Index("ix_purchases_created_at", "created_at"),
        db.Index("ix_purchases_customer_name", "customer_name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    invoice_number = db.Column(db.String(32), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False, default=WALK_IN_CUSTOMER)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # All amounts in paise
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_type = db.Column(db.String(16), nullable=True)  # percentage | amount
    discount_value = db.Column(db.Numeric(12, 2), nullable=True)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)  # cash | card | upi | split
    payment_status = db.Column(db.String(16), nullable=False, default="completed")
    is_split_payment = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PurchaseItem.position",
    )
    payments = db.relationship(
        "Payment",
        back_populates="purchase",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Payment.position",
    )

    def __repr__(self) -> str:
        return f"<Purchase {self.invoice_number} total_cents={self.total_amount_cents}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "notes": self.notes,
            "subtotal": from_cents(self.subtotal_cents),
            "discountType": self.discount_type,
            "discountValue": float(self.discount_value) if self.discount_value is not None else None,
            "discountAmount": from_cents(self.discount_amount_cents),
            "taxAmount": from_cents(self.tax_amount_cents),
            "totalAmount": from_cents(self.total_amount_cents),
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "isSplitPayment": self.is_split_payment,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class PurchaseItem(db.Model):
    """
    One line of a purchase. Price is frozen at sale time and never
    recomputed from the stock row.

    DELETE SEMANTICS: owned by the purchase (CASCADE), references stock
    without owning it (RESTRICT).
    """
    __tablename__ = "purchase_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_items_quantity_positive"),
        db.Index("ix_purchase_items_created_at", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    purchase_id = db.Column(
        db.String(36),
        db.ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stock_id = db.Column(
        db.String(36),
        db.ForeignKey("stocks.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    # Cart order of the line
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    purchase = db.relationship("Purchase", back_populates="items")
    stock = db.relationship("StockItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchaseId": self.purchase_id,
            "stockId": self.stock_id,
            "quantity": self.quantity,
            "unitPrice": from_cents(self.unit_price_cents),
            "totalPrice": from_cents(self.total_price_cents),
            "createdAt": to_utc_z(self.created_at),
            "stock": self.stock.to_summary() if self.stock else None,
        }


class Payment(db.Model):
    """One tender of a split payment (cash, card or upi)."""
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    purchase_id = db.Column(
        db.String(36),
        db.ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="completed")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    purchase = db.relationship("Purchase", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchaseId": self.purchase_id,
            "paymentMethod": self.payment_method,
            "amount": from_cents(self.amount_cents),
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
        }
