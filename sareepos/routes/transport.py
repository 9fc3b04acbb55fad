# Overview: Flask API routes for transport records; parses input and returns JSON responses.

from flask import Blueprint, current_app, request

from ..services import transport_service
from ..validation import ConflictError, ValidationError
from .responses import failure, success

transport_bp = Blueprint("transport", __name__, url_prefix="/api/transport")


@transport_bp.get("")
def list_transport_route():
    """
    Query params: search, dateFrom, dateTo, page, limit (default 50)
    """
    try:
        result = transport_service.list_transports(
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", 50, type=int),
            search=request.args.get("search"),
            date_from=request.args.get("dateFrom"),
            date_to=request.args.get("dateTo"),
        )
    except ValidationError as e:
        return failure(str(e), 400)
    return success(result["items"], pagination=result["pagination"])


@transport_bp.post("")
def create_transport_route():
    payload = request.get_json(silent=True) or {}
    try:
        transport = transport_service.create_transport(payload)
    except ValidationError as e:
        return failure("Validation error", 400, details=str(e))
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to create transport record")
        return failure("Failed to create transport record", 500)

    return success(transport.to_dict(), 201)


@transport_bp.get("/<transport_id>")
def get_transport_route(transport_id: str):
    transport = transport_service.get_transport(transport_id)
    if transport is None:
        return failure("Transport record not found", 404)
    return success(transport.to_dict())


@transport_bp.put("/<transport_id>")
def update_transport_route(transport_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        transport = transport_service.update_transport(transport_id, payload)
    except ValidationError as e:
        return failure("Validation error", 400, details=str(e))
    except ConflictError as e:
        return failure(str(e), 409)

    if transport is None:
        return failure("Transport record not found", 404)
    return success(transport.to_dict())


@transport_bp.delete("/<transport_id>")
def delete_transport_route(transport_id: str):
    if not transport_service.delete_transport(transport_id):
        return failure("Transport record not found", 404)
    return success(None, message="Transport record deleted successfully")
