"""Initial schema: stock, purchases, payments, transport

Revision ID: 20251018_initial
Revises:
Create Date: 2025-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20251018_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_type", sa.String(length=32), nullable=False, unique=True),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
    )

    op.create_table(
        "stocks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("stock_code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("item_code", sa.String(length=64), nullable=True),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("color", sa.String(length=64), nullable=False, server_default="Not Specified"),
        sa.Column("supplier", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("selling_price_cents", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
    )
    op.create_index("ix_stocks_category", "stocks", ["category"])
    op.create_index("ix_stocks_created_at", "stocks", ["created_at"])

    op.create_table(
        "purchases",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("invoice_number", sa.String(length=32), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=32), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("discount_type", sa.String(length=16), nullable=True),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("discount_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tax_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(length=16), nullable=False),
        sa.Column("payment_status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("is_split_payment", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("invoice_number", name="uq_purchases_invoice_number"),
        sa.CheckConstraint("subtotal_cents >= 0", name="ck_purchases_subtotal"),
        sa.CheckConstraint(
            "discount_amount_cents >= 0 AND discount_amount_cents <= subtotal_cents",
            name="ck_purchases_discount_capped",
        ),
        sa.CheckConstraint("tax_amount_cents >= 0", name="ck_purchases_tax"),
        sa.CheckConstraint("total_amount_cents >= 0", name="ck_purchases_total"),
    )
    op.create_index("ix_purchases_created_at", "purchases", ["created_at"])
    op.create_index("ix_purchases_customer_name", "purchases", ["customer_name"])

    op.create_table(
        "purchase_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("purchase_id", sa.String(length=36),
                  sa.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("stock_id", sa.String(length=36),
                  sa.ForeignKey("stocks.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("total_price_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_purchase_items_quantity_positive"),
    )
    op.create_index("ix_purchase_items_purchase_id", "purchase_items", ["purchase_id"])
    op.create_index("ix_purchase_items_stock_id", "purchase_items", ["stock_id"])
    op.create_index("ix_purchase_items_created_at", "purchase_items", ["created_at"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("purchase_id", sa.String(length=36),
                  sa.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(length=16), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
    )
    op.create_index("ix_payments_purchase_id", "payments", ["purchase_id"])

    op.create_table(
        "transports",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("in_date", sa.DateTime(), nullable=False),
        sa.Column("number_of_bundles", sa.Integer(), nullable=False),
        sa.Column("invoice_no", sa.String(length=64), nullable=False),
        sa.Column("freight_charges_cents", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("gst_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("invoice_no", name="uq_transports_invoice_no"),
    )
    op.create_index("ix_transports_in_date", "transports", ["in_date"])


def downgrade():
    op.drop_table("transports")
    op.drop_table("payments")
    op.drop_table("purchase_items")
    op.drop_table("purchases")
    op.drop_table("stocks")
    op.drop_table("document_sequences")
