# Overview: Flask API routes for stock operations; parses input and returns JSON responses.

# sareepos/routes/stock.py
"""
Warehouse stock routes.

Stock codes are assigned by the server on create and cannot be edited.
Deleting an item that appears on a purchase returns 409.
"""
from flask import Blueprint, current_app, request

from ..services import stock_service
from ..validation import ConflictError, ValidationError
from .responses import failure, success

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
def list_stock_route():
    """
    List stock with optional filters.

    Query params:
    - page, limit: pagination (limit max 100)
    - category: exact category
    - search: item name, item code, stock code or supplier
    """
    result = stock_service.list_stocks(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 10, type=int),
        category=request.args.get("category"),
        search=request.args.get("search"),
    )
    return success(result["items"], pagination=result["pagination"])


@stock_bp.get("/categories")
def list_categories_route():
    return success(stock_service.list_categories())


@stock_bp.post("")
def create_stock_route():
    payload = request.get_json(silent=True) or {}
    try:
        stock = stock_service.create_stock(payload)
    except ValidationError as e:
        return failure("Validation failed", 400, details=str(e))
    except Exception:
        current_app.logger.exception("Failed to create stock item")
        return failure("Failed to create stock item", 500)

    return success(stock.to_dict(), 201, message="Stock item created successfully")


@stock_bp.get("/barcode/<stock_code>")
def get_stock_by_code_route(stock_code: str):
    stock = stock_service.get_stock_by_code(stock_code)
    if stock is None:
        return failure("Product not found with this barcode", 404)
    return success(stock.to_dict())


@stock_bp.get("/<stock_id>")
def get_stock_route(stock_id: str):
    stock = stock_service.get_stock(stock_id)
    if stock is None:
        return failure("Stock item not found", 404)
    return success(stock.to_dict())


@stock_bp.put("/<stock_id>")
def update_stock_route(stock_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        stock = stock_service.update_stock(stock_id, payload)
    except ValidationError as e:
        return failure("Validation failed", 400, details=str(e))
    except ConflictError as e:
        return failure(str(e), 409)

    if stock is None:
        return failure("Stock item not found", 404)
    return success(stock.to_dict(), message="Stock item updated successfully")


@stock_bp.delete("/<stock_id>")
def delete_stock_route(stock_id: str):
    try:
        deleted = stock_service.delete_stock(stock_id)
    except ConflictError as e:
        return failure(str(e), 409)

    if not deleted:
        return failure("Stock item not found", 404)
    return success(None, message="Stock item deleted successfully")
