"""
Checkout failure taxonomy.

Every way complete_purchase can fail is one of these classes. Routes map
them to HTTP responses through `http_status` and `to_dict()`; callers that
need to branch on a failure match on the class, never on the message.

    PurchaseError
    ├── PurchaseValidationError      400  request rejected before any transaction
    │   └── SplitPaymentMismatch     400  tenders do not add up to the total
    ├── StockItemNotFound            404  unknown stock id(s)
    ├── InsufficientStock            409  demand exceeds quantity on hand
    ├── InvoiceSequenceExhausted     409  more than 9999 invoices in one day
    ├── InvoiceAllocationFailed      409  invoice collisions outlasted the retries
    └── TransactionFailed            503  timeout, lock, connection loss
"""

from __future__ import annotations

from ..money import from_cents


class PurchaseError(Exception):
    """Base class for checkout failures."""
    code = "PURCHASE_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {
            "success": False,
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class PurchaseValidationError(PurchaseError):
    code = "VALIDATION_ERROR"
    http_status = 400


class SplitPaymentMismatch(PurchaseValidationError):
    code = "SPLIT_PAYMENT_MISMATCH"

    def __init__(self, expected_cents: int, actual_cents: int):
        self.expected_cents = expected_cents
        self.actual_cents = actual_cents
        expected = from_cents(expected_cents)
        actual = from_cents(actual_cents)
        super().__init__(
            f"Split payments total {actual:.2f} but the purchase total is {expected:.2f}",
            details={"expected": expected, "actual": actual},
        )


class StockItemNotFound(PurchaseError):
    code = "STOCK_ITEM_NOT_FOUND"
    http_status = 404

    def __init__(self, stock_ids: list[str]):
        self.stock_ids = list(stock_ids)
        super().__init__(
            f"Stock item with ID {', '.join(self.stock_ids)} not found",
            details={"stockIds": self.stock_ids},
        )


class InsufficientStock(PurchaseError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(self, shortages: list[dict]):
        # each shortage: {"stockId", "itemName", "available", "requested"}
        self.shortages = list(shortages)
        first = self.shortages[0]
        super().__init__(
            f"Insufficient stock for {first['itemName']}. "
            f"Available: {first['available']}, Required: {first['requested']}",
            details={"items": self.shortages},
        )

    @property
    def stock_id(self) -> str:
        return self.shortages[0]["stockId"]

    @property
    def available(self) -> int:
        return self.shortages[0]["available"]

    @property
    def requested(self) -> int:
        return self.shortages[0]["requested"]


class InvoiceSequenceExhausted(PurchaseError):
    code = "INVOICE_SEQUENCE_EXHAUSTED"
    http_status = 409

    def __init__(self, day: str, limit: int):
        self.day = day
        self.limit = limit
        super().__init__(
            f"Invoice sequence for {day} is exhausted ({limit} invoices)",
            details={"day": day, "limit": limit},
        )


class InvoiceAllocationFailed(PurchaseError):
    code = "INVOICE_ALLOCATION_FAILED"
    http_status = 409
    retryable = True

    def __init__(self, attempts: int, last_candidate: str | None = None):
        self.attempts = attempts
        self.last_candidate = last_candidate
        super().__init__(
            "Could not allocate a unique invoice number. Please try again.",
            details={"attempts": attempts, "lastCandidate": last_candidate},
        )


class TransactionFailed(PurchaseError):
    code = "TRANSACTION_FAILED"
    http_status = 503
    retryable = True

    def __init__(self, message: str = "Database transaction failed. Please try again.", details=None):
        super().__init__(message, details=details)
