# sareepos/services/stock_service.py
"""
Stock Service

Warehouse-side stock CRUD. Checkout never goes through here; it decrements
quantities through stock_ledger.reserve_stock.

RESTRICT DELETE: a stock row referenced by any purchase line cannot be
deleted. Sales history must keep pointing at a real item.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import PurchaseItem, StockItem
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    enforce_rules_stock,
    validate_payload,
)
from .document_service import next_stock_code

logger = logging.getLogger(__name__)

STOCK_POLICY = ModelValidationPolicy(
    field_map={
        "itemCode": "item_code",
        "itemName": "item_name",
        "category": "category",
        "color": "color",
        "quantity": "quantity",
        "unitPrice": "unit_price_cents",
        "sellingPrice": "selling_price_cents",
        "supplier": "supplier",
    },
    required_on_create={"itemName", "category", "quantity", "unitPrice", "supplier"},
    money_fields={"unit_price_cents", "selling_price_cents"},
)


def apply_stock_patch(stock: StockItem, patch: dict) -> None:
    for k, v in patch.items():
        setattr(stock, k, v)


def create_stock(payload: dict) -> StockItem:
    """Validate an intake payload and create the stock row with a fresh stock code."""
    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_POLICY, partial=False)
    enforce_rules_stock(patch, partial=False)
    if not patch.get("color"):
        patch["color"] = "Not Specified"
    if patch.get("item_code") == "":
        patch["item_code"] = None

    stock = StockItem(stock_code=next_stock_code())
    apply_stock_patch(stock, patch)
    db.session.add(stock)
    db.session.commit()
    logger.info("Stock %s created: %s x%d", stock.stock_code, stock.item_name, stock.quantity)
    return stock


def list_stocks(
    page: int = 1,
    limit: int = 10,
    category: str | None = None,
    search: str | None = None,
) -> dict:
    """
    Stock listing, newest first, with pagination.

    search: case-insensitive match on item name, item code, stock code or supplier.
    """
    q = db.session.query(StockItem)
    if category:
        q = q.filter(StockItem.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            StockItem.item_name.ilike(pattern),
            StockItem.item_code.ilike(pattern),
            StockItem.stock_code.ilike(pattern),
            StockItem.supplier.ilike(pattern),
        ))

    limit = min(max(limit or 10, 1), 100)
    page = max(page or 1, 1)

    total = q.count()
    stocks = (
        q.order_by(StockItem.created_at.desc(), StockItem.stock_code.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": [s.to_dict() for s in stocks],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


def get_stock(stock_id: str) -> StockItem | None:
    return db.session.get(StockItem, stock_id)


def get_stock_by_code(stock_code: str) -> StockItem | None:
    """Barcode scan lookup."""
    code = (stock_code or "").strip().upper()
    if not code:
        return None
    return db.session.query(StockItem).filter(StockItem.stock_code == code).first()


def update_stock(stock_id: str, payload: dict) -> StockItem | None:
    """Partial update. Returns None when the stock row does not exist."""
    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_POLICY, partial=True)
    enforce_rules_stock(patch, partial=True)

    stock = db.session.get(StockItem, stock_id)
    if stock is None:
        return None

    apply_stock_patch(stock, patch)
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        logger.info("Stock %s changed during edit (concurrent checkout)", stock_id)
        raise ConflictError("Stock item was changed by another transaction. Reload and try again.")
    return stock


def delete_stock(stock_id: str) -> bool:
    """
    Delete a stock row. Returns False when it does not exist.

    Raises ConflictError when the item appears on any purchase.
    """
    stock = db.session.get(StockItem, stock_id)
    if stock is None:
        return False

    referenced = (
        db.session.query(func.count(PurchaseItem.id))
        .filter(PurchaseItem.stock_id == stock_id)
        .scalar()
    )
    if referenced:
        logger.info("Refusing to delete stock %s: referenced by %d purchase line(s)", stock.stock_code, referenced)
        raise ConflictError("Stock item has sales history and cannot be deleted")

    db.session.delete(stock)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Stock item has sales history and cannot be deleted")
    except StaleDataError:
        db.session.rollback()
        raise ConflictError("Stock item was changed by another transaction. Reload and try again.")
    return True


def list_categories() -> list[str]:
    rows = db.session.query(StockItem.category).distinct().order_by(StockItem.category).all()
    return [row[0] for row in rows]
