"""
Checkout orchestration tests.

Verifies:
- A successful checkout decrements stock and persists purchase, items, payments
- Any failure leaves stock and purchases untouched
- Invoice numbers follow INV-YYYYMMDD-NNNN, reset daily, and survive collisions
- Duplicate submissions are not deduplicated
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from sareepos.extensions import db
from sareepos.models import Payment, Purchase, PurchaseItem, StockItem
from sareepos.services import purchase_service
from sareepos.services.purchase_errors import (
    InsufficientStock,
    InvoiceAllocationFailed,
    InvoiceSequenceExhausted,
    PurchaseValidationError,
    SplitPaymentMismatch,
    StockItemNotFound,
    TransactionFailed,
)
from sareepos.services.purchase_service import complete_purchase

from conftest import CHECKOUT_TIME, checkout_payload, line


def _purchase_count():
    return db.session.query(Purchase).count()


# =============================================================================
# HAPPY PATH
# =============================================================================


class TestCompletePurchase:

    def test_two_line_cart_with_percentage_discount(self, db_session, make_stock):
        item_a = make_stock(itemName="Cotton Saree", quantity=5, unitPrice=500)
        item_b = make_stock(itemName="Silk Saree", quantity=5, unitPrice=1500)
        payload = checkout_payload(
            [line(item_a, 2), line(item_b, 1)],
            discount=250,
            discountType="percentage",
            discountValue=10,
        )

        purchase = complete_purchase(payload, now=CHECKOUT_TIME)

        assert purchase.invoice_number == "INV-20250101-0001"
        assert purchase.subtotal_cents == 250000
        assert purchase.discount_amount_cents == 25000
        assert purchase.total_amount_cents == 225000
        assert purchase.to_dict()["totalAmount"] == 2250.0
        assert item_a.quantity == 3
        assert item_b.quantity == 4
        assert _purchase_count() == 1

    def test_percentage_discount_over_hundred_is_capped(self, db_session, make_stock):
        stock = make_stock(quantity=2, unitPrice=1000)
        payload = checkout_payload(
            [line(stock, 1)],
            discount=1000,
            discountType="percentage",
            discountValue=150,
        )

        purchase = complete_purchase(payload, now=CHECKOUT_TIME)

        assert purchase.discount_amount_cents == purchase.subtotal_cents == 100000
        assert purchase.total_amount_cents == 0
        assert stock.quantity == 1

    def test_single_line_decrements_stock(self, db_session, make_stock):
        stock = make_stock(quantity=5, unitPrice=1500)

        purchase = complete_purchase(checkout_payload([line(stock, 2)]), now=CHECKOUT_TIME)

        assert purchase.invoice_number == "INV-20250101-0001"
        assert purchase.subtotal_cents == 300000
        assert purchase.total_amount_cents == 300000
        assert purchase.payment_status == "completed"
        assert stock.quantity == 3

    def test_items_snapshot_prices(self, db_session, make_stock):
        stock = make_stock(quantity=5, unitPrice=1500)

        purchase = complete_purchase(checkout_payload([line(stock, 2, unit_price=1400)]), now=CHECKOUT_TIME)

        [item] = purchase.items
        assert item.unit_price_cents == 140000
        assert item.total_price_cents == 280000
        assert stock.unit_price_cents == 150000
        assert item.stock.id == stock.id

    def test_multi_line_cart(self, db_session, make_stock):
        silk = make_stock(quantity=4, unitPrice=5000)
        cotton = make_stock(itemName="Chanderi Cotton", category="Cotton", quantity=10, unitPrice=900)

        purchase = complete_purchase(
            checkout_payload([line(silk, 1), line(cotton, 3)], tax=100),
            now=CHECKOUT_TIME,
        )

        assert [i.position for i in purchase.items] == [0, 1]
        assert purchase.subtotal_cents == 500000 + 270000
        assert purchase.total_amount_cents == 500000 + 270000 + 10000
        assert silk.quantity == 3
        assert cotton.quantity == 7

    def test_duplicate_lines_are_summed_against_stock(self, db_session, make_stock):
        stock = make_stock(quantity=4)

        complete_purchase(checkout_payload([line(stock, 2), line(stock, 2)]), now=CHECKOUT_TIME)

        assert stock.quantity == 0
        assert db.session.query(PurchaseItem).count() == 2

    def test_walk_in_customer_default(self, db_session, make_stock):
        stock = make_stock()
        payload = checkout_payload([line(stock, 1)])
        payload.pop("customerName")

        purchase = complete_purchase(payload, now=CHECKOUT_TIME)

        assert purchase.customer_name == "Walk-in Customer"

    def test_split_payment_persists_tenders(self, db_session, make_stock):
        stock = make_stock(quantity=3, unitPrice=1000)
        payload = checkout_payload(
            [line(stock, 2)],
            payment_method="split",
            isSplitPayment=True,
            splitPayments=[
                {"paymentMethod": "cash", "amount": 500},
                {"paymentMethod": "upi", "amount": 1500},
            ],
        )

        purchase = complete_purchase(payload, now=CHECKOUT_TIME)

        assert purchase.payment_method == "split"
        assert purchase.is_split_payment is True
        assert [(p.payment_method, p.amount_cents) for p in purchase.payments] == [
            ("cash", 50000),
            ("upi", 150000),
        ]
        assert sum(p.amount_cents for p in purchase.payments) == purchase.total_amount_cents

    def test_non_split_has_no_payment_rows(self, db_session, make_stock):
        stock = make_stock()

        complete_purchase(checkout_payload([line(stock, 1)], payment_method="card"), now=CHECKOUT_TIME)

        assert db.session.query(Payment).count() == 0

    def test_same_cart_twice_sells_twice(self, db_session, make_stock):
        stock = make_stock(quantity=5)
        payload = checkout_payload([line(stock, 2)])

        first = complete_purchase(payload, now=CHECKOUT_TIME)
        second = complete_purchase(payload, now=CHECKOUT_TIME)

        assert first.invoice_number == "INV-20250101-0001"
        assert second.invoice_number == "INV-20250101-0002"
        assert stock.quantity == 1


# =============================================================================
# FAILURES ARE ALL OR NOTHING
# =============================================================================


class TestCheckoutFailures:

    def test_insufficient_stock(self, db_session, make_stock):
        stock = make_stock(quantity=2)

        with pytest.raises(InsufficientStock) as exc_info:
            complete_purchase(checkout_payload([line(stock, 3)]), now=CHECKOUT_TIME)

        assert exc_info.value.stock_id == stock.id
        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        assert stock.quantity == 2
        assert _purchase_count() == 0

    def test_one_short_line_fails_whole_cart(self, db_session, make_stock):
        plenty = make_stock(quantity=10)
        scarce = make_stock(itemName="Mysore Crepe", quantity=1)

        with pytest.raises(InsufficientStock):
            complete_purchase(checkout_payload([line(plenty, 2), line(scarce, 2)]), now=CHECKOUT_TIME)

        assert plenty.quantity == 10
        assert scarce.quantity == 1
        assert _purchase_count() == 0
        assert db.session.query(PurchaseItem).count() == 0

    def test_unknown_stock_id(self, db_session, make_stock):
        stock = make_stock()
        ghost = {"stockId": "does-not-exist", "quantity": 1, "unitPrice": 100, "totalPrice": 100}

        with pytest.raises(StockItemNotFound) as exc_info:
            complete_purchase(checkout_payload([line(stock, 1), ghost]), now=CHECKOUT_TIME)

        assert exc_info.value.stock_ids == ["does-not-exist"]
        assert exc_info.value.http_status == 404
        assert stock.quantity == 10
        assert _purchase_count() == 0

    def test_split_mismatch_rejected_before_stock_is_touched(self, db_session, make_stock):
        stock = make_stock(quantity=3, unitPrice=1000)
        payload = checkout_payload(
            [line(stock, 1)],
            payment_method="split",
            splitPayments=[{"paymentMethod": "cash", "amount": 400}, {"paymentMethod": "card", "amount": 500}],
        )

        with pytest.raises(SplitPaymentMismatch) as exc_info:
            complete_purchase(payload, now=CHECKOUT_TIME)

        assert exc_info.value.details == {"expected": 1000.0, "actual": 900.0}
        assert stock.quantity == 3
        assert _purchase_count() == 0

    def test_validation_error_lists_fields(self, db_session):
        with pytest.raises(PurchaseValidationError) as exc_info:
            complete_purchase({"items": [], "paymentMethod": "cheque"}, now=CHECKOUT_TIME)

        fields = {d["field"] for d in exc_info.value.details}
        assert {"items", "paymentMethod", "subtotal", "totalAmount"} <= fields

    def test_database_failure_is_retryable_transaction_failure(self, db_session, make_stock, monkeypatch):
        stock = make_stock(quantity=3)

        def locked():
            raise OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))

        monkeypatch.setattr(purchase_service, "begin_write_transaction", locked)

        with pytest.raises(TransactionFailed) as exc_info:
            complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)

        assert exc_info.value.http_status == 503
        assert exc_info.value.retryable is True
        assert stock.quantity == 3
        assert _purchase_count() == 0

    def test_failed_checkout_does_not_consume_invoice_number(self, db_session, make_stock):
        stock = make_stock(quantity=1)

        with pytest.raises(InsufficientStock):
            complete_purchase(checkout_payload([line(stock, 2)]), now=CHECKOUT_TIME)
        purchase = complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)

        assert purchase.invoice_number == "INV-20250101-0001"


# =============================================================================
# INVOICE NUMBERS
# =============================================================================


class TestInvoiceNumbers:

    def test_sequence_resets_each_day(self, db_session, make_stock):
        stock = make_stock(quantity=10)

        complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)
        complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)
        next_day = complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME + timedelta(days=1))

        assert next_day.invoice_number == "INV-20250102-0001"

    def test_collision_is_retried_with_fresh_number(self, db_session, make_stock, monkeypatch):
        stock = make_stock(quantity=10)
        complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)

        real_allocate = purchase_service.allocate_invoice_number
        calls = []

        def stale_first(now=None):
            calls.append(now)
            if len(calls) == 1:
                return "INV-20250101-0001"
            return real_allocate(now)

        monkeypatch.setattr(purchase_service, "allocate_invoice_number", stale_first)

        purchase = complete_purchase(checkout_payload([line(stock, 2)]), now=CHECKOUT_TIME)

        assert len(calls) == 2
        assert purchase.invoice_number == "INV-20250101-0002"
        # the rolled-back attempt must not have decremented stock
        assert stock.quantity == 7
        assert _purchase_count() == 2

    def test_collision_on_every_attempt_fails_cleanly(self, db_session, make_stock, monkeypatch):
        stock = make_stock(quantity=10)
        complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)

        monkeypatch.setattr(purchase_service, "allocate_invoice_number", lambda now=None: "INV-20250101-0001")

        with pytest.raises(InvoiceAllocationFailed) as exc_info:
            complete_purchase(checkout_payload([line(stock, 2)]), now=CHECKOUT_TIME)

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_candidate == "INV-20250101-0001"
        assert exc_info.value.retryable is True
        assert stock.quantity == 9
        assert _purchase_count() == 1

    def test_sequence_exhausted(self, db_session, make_stock):
        stock = make_stock(quantity=10)
        db_session.add(Purchase(
            invoice_number="INV-20250101-9999",
            subtotal_cents=100,
            discount_amount_cents=0,
            tax_amount_cents=0,
            total_amount_cents=100,
            payment_method="cash",
            created_at=CHECKOUT_TIME - timedelta(hours=5, minutes=30),
        ))
        db_session.commit()

        with pytest.raises(InvoiceSequenceExhausted):
            complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)

        assert stock.quantity == 10
        assert _purchase_count() == 1


# =============================================================================
# HISTORY
# =============================================================================


class TestPurchaseHistory:

    def test_list_filters_and_paginates(self, db_session, make_stock):
        stock = make_stock(quantity=10)
        complete_purchase(checkout_payload([line(stock, 1)], customerName="Meena"), now=CHECKOUT_TIME)
        complete_purchase(checkout_payload([line(stock, 1)], payment_method="upi"), now=CHECKOUT_TIME)
        complete_purchase(checkout_payload([line(stock, 1)], payment_method="upi"), now=CHECKOUT_TIME)

        by_method = purchase_service.list_purchases(payment_method="upi")
        assert by_method["pagination"]["total"] == 2

        by_name = purchase_service.list_purchases(customer_name="meena")
        assert [p["customerName"] for p in by_name["items"]] == ["Meena"]

        page = purchase_service.list_purchases(page=2, limit=2)
        assert page["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}
        assert len(page["items"]) == 1

    def test_lookup_by_invoice(self, db_session, make_stock):
        stock = make_stock()
        purchase = complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)

        found = purchase_service.get_purchase_by_invoice("inv-20250101-0001")

        assert found.id == purchase.id
        assert found.to_dict()["items"][0]["stock"]["stockCode"] == stock.stock_code

    def test_stock_row_state_matches_sales(self, db_session, make_stock):
        stock = make_stock(quantity=6)
        for qty in (1, 2, 3):
            complete_purchase(checkout_payload([line(stock, qty)]), now=CHECKOUT_TIME)

        sold = db.session.query(db.func.sum(PurchaseItem.quantity)).scalar()
        assert sold == 6
        assert db.session.get(StockItem, stock.id).quantity == 0
