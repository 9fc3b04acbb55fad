# Overview: Flask API routes for checkout and purchase history; parses input and returns JSON responses.

# sareepos/routes/billing.py
"""Billing API routes (counter checkout + transaction history)"""

from flask import Blueprint, current_app, jsonify, request

from ..services import purchase_service
from ..services.purchase_errors import PurchaseError
from ..validation import ValidationError
from .responses import failure, success


billing_bp = Blueprint("billing", __name__)


@billing_bp.post("/api/billing")
@billing_bp.post("/api/purchases")
def create_purchase_route():
    """
    Complete a checkout.

    201 with the purchase (items joined to stock, payments) on success.
    400 validation / split mismatch, 404 unknown stock, 409 insufficient stock
    or invoice allocation exhausted, 503 database failure.
    """
    payload = request.get_json(silent=True)
    try:
        purchase = purchase_service.complete_purchase(payload)
        return success(purchase.to_dict(), 201, message="Purchase completed successfully")

    except PurchaseError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to process purchase")
        return failure("Failed to process purchase", 500)


@billing_bp.get("/api/billing")
def list_purchases_route():
    """
    Purchase history.

    Query params: page, limit, customerName, paymentMethod, startDate, endDate
    """
    try:
        result = purchase_service.list_purchases(
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", 10, type=int),
            customer_name=request.args.get("customerName"),
            payment_method=request.args.get("paymentMethod"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return success(result["items"], pagination=result["pagination"])

    except ValidationError as e:
        return failure(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to fetch purchases")
        return failure("Failed to fetch purchases", 500)


@billing_bp.get("/api/billing/<purchase_id>")
def get_purchase_route(purchase_id: str):
    purchase = purchase_service.get_purchase(purchase_id)
    if purchase is None:
        return failure("Purchase not found", 404)
    return success(purchase.to_dict())


@billing_bp.get("/api/billing/invoice/<invoice_number>")
def get_purchase_by_invoice_route(invoice_number: str):
    purchase = purchase_service.get_purchase_by_invoice(invoice_number)
    if purchase is None:
        return failure("Purchase not found", 404)
    return success(purchase.to_dict())
