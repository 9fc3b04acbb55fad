# Overview: Service-layer stock guard used by checkout; validates and decrements stock.

"""
Stock Ledger Guard

ALL OR NOTHING: every requested stock row is read in one batch, every
requirement is checked, and only then are the decrements issued. A failure
raises before any row changes; a failure after some decrements is undone by
the caller's rollback. The guard never commits.

LOST UPDATES: each decrement is a conditional UPDATE
(quantity = quantity - n WHERE quantity >= n), so a concurrent checkout that
slipped past the read cannot drive quantity below zero on any backend.
"""

from __future__ import annotations

import logging

from sqlalchemy import update

from ..extensions import db
from ..models import StockItem
from sareepos.time_utils import utcnow
from .concurrency import lock_for_update
from .purchase_errors import InsufficientStock, StockItemNotFound

logger = logging.getLogger(__name__)


def _shortage(stock: StockItem, requested: int) -> dict:
    return {
        "stockId": stock.id,
        "stockCode": stock.stock_code,
        "itemName": stock.item_name,
        "available": stock.quantity,
        "requested": requested,
    }


def merge_demand(lines) -> dict[str, int]:
    """Sum requested quantities per stock id across (stock_id, quantity) pairs."""
    demand: dict[str, int] = {}
    for stock_id, quantity in lines:
        demand[stock_id] = demand.get(stock_id, 0) + quantity
    return demand


def load_stock_for_update(stock_ids) -> dict[str, StockItem]:
    """Batch read of the given stock rows, locked where the backend supports it."""
    # Stable lock order so two checkouts touching the same rows cannot deadlock
    ids = sorted(set(stock_ids))
    rows = lock_for_update(
        db.session.query(StockItem).filter(StockItem.id.in_(ids)).order_by(StockItem.id)
    ).all()
    return {row.id: row for row in rows}


def reserve_stock(demand: dict[str, int]) -> dict[str, StockItem]:
    """
    Check and apply stock decrements for a checkout.

    Args:
        demand: stock id -> total requested quantity (duplicates already merged)

    Returns:
        The affected StockItem rows keyed by id (expired; they reload current
        quantities on next access).

    Raises:
        StockItemNotFound: one or more ids do not exist
        InsufficientStock: on-hand quantity is below demand for one or more ids
    """
    if not demand:
        raise ValueError("demand must not be empty")
    for stock_id, quantity in demand.items():
        if quantity <= 0:
            raise ValueError(f"requested quantity for {stock_id} must be positive")

    stocks = load_stock_for_update(demand.keys())

    missing = sorted(stock_id for stock_id in demand if stock_id not in stocks)
    if missing:
        logger.info("Checkout rejected: unknown stock ids %s", missing)
        raise StockItemNotFound(missing)

    shortages = [
        _shortage(stocks[stock_id], requested)
        for stock_id, requested in sorted(demand.items())
        if stocks[stock_id].quantity < requested
    ]
    if shortages:
        logger.info("Checkout rejected: insufficient stock %s", shortages)
        raise InsufficientStock(shortages)

    now = utcnow()
    for stock_id, requested in sorted(demand.items()):
        result = db.session.execute(
            update(StockItem)
            .where(StockItem.id == stock_id, StockItem.quantity >= requested)
            .values(
                quantity=StockItem.quantity - requested,
                version_id=StockItem.version_id + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Another transaction won the row between our read and this write
            db.session.refresh(stocks[stock_id])
            raise InsufficientStock([_shortage(stocks[stock_id], requested)])

    for stock in stocks.values():
        db.session.expire(stock)
    return stocks
