# Overview: Service-layer read-only aggregations for the shop dashboard.

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import BigInteger, cast, func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Purchase, PurchaseItem, StockItem, Transport
from ..money import from_cents
from sareepos.time_utils import shop_day_bounds, shop_midnight, shop_now, to_utc_naive, to_utc_z

TOP_ITEMS_WINDOW_DAYS = 30
ANALYTICS_TOP_LIMIT = 10
MAX_ANALYTICS_PERIOD_DAYS = 3660


def _period_totals(start: datetime, end: datetime) -> dict:
    revenue_cents, orders = (
        db.session.query(
            func.coalesce(func.sum(Purchase.total_amount_cents), 0),
            func.count(Purchase.id),
        )
        .filter(Purchase.created_at >= start, Purchase.created_at < end)
        .one()
    )
    return {"revenue": from_cents(int(revenue_cents)), "orders": int(orders), "_cents": int(revenue_cents)}


def _growth_percentage(current_cents: int, previous_cents: int) -> float:
    if previous_cents <= 0:
        return 0.0
    return round((current_cents - previous_cents) * 100 / previous_cents, 2)


def top_selling_items(since: datetime, limit: int = 5) -> list[dict]:
    rows = (
        db.session.query(
            StockItem,
            func.sum(PurchaseItem.quantity).label("quantity"),
            func.sum(PurchaseItem.total_price_cents).label("revenue_cents"),
        )
        .join(PurchaseItem, PurchaseItem.stock_id == StockItem.id)
        .filter(PurchaseItem.created_at >= since)
        .group_by(StockItem.id)
        .order_by(func.sum(PurchaseItem.quantity).desc(), StockItem.item_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "stock": stock.to_summary(),
            "name": stock.item_name,
            "category": stock.category,
            "quantity": int(quantity),
            "revenue": from_cents(int(revenue_cents)),
        }
        for stock, quantity, revenue_cents in rows
    ]


def payment_method_breakdown(start: datetime, end: datetime) -> list[dict]:
    rows = (
        db.session.query(
            Purchase.payment_method,
            func.count(Purchase.id),
            func.coalesce(func.sum(Purchase.total_amount_cents), 0),
        )
        .filter(Purchase.created_at >= start, Purchase.created_at < end)
        .group_by(Purchase.payment_method)
        .order_by(Purchase.payment_method)
        .all()
    )
    return [
        {"paymentMethod": method, "orders": int(count), "revenue": from_cents(int(cents))}
        for method, count, cents in rows
    ]


def dashboard_summary(now: datetime | None = None) -> dict:
    """
    Sales and stock overview for the dashboard.

    Periods use shop-local calendar boundaries; the week starts on Sunday.
    """
    local_now = shop_now(now)
    today = local_now.date()
    day_start, day_end = shop_day_bounds(local_now)

    days_since_sunday = (today.weekday() + 1) % 7
    week_start = to_utc_naive(shop_midnight(today - timedelta(days=days_since_sunday)))
    month_start = to_utc_naive(shop_midnight(today.replace(day=1)))
    year_start = to_utc_naive(shop_midnight(today.replace(month=1, day=1)))
    yesterday_start = to_utc_naive(shop_midnight(today - timedelta(days=1)))

    today_totals = _period_totals(day_start, day_end)
    yesterday_totals = _period_totals(yesterday_start, day_start)
    periods = {
        "today": today_totals,
        "week": _period_totals(week_start, day_end),
        "month": _period_totals(month_start, day_end),
        "year": _period_totals(year_start, day_end),
    }
    growth = _growth_percentage(today_totals["_cents"], yesterday_totals["_cents"])
    for totals in periods.values():
        totals.pop("_cents")

    recent = (
        db.session.query(Purchase)
        .options(selectinload(Purchase.items).selectinload(PurchaseItem.stock), selectinload(Purchase.payments))
        .order_by(Purchase.created_at.desc(), Purchase.invoice_number.desc())
        .limit(10)
        .all()
    )

    threshold = int(current_app.config.get("LOW_STOCK_THRESHOLD", 10))
    low_stock = (
        db.session.query(StockItem)
        .filter(StockItem.quantity <= threshold)
        .order_by(StockItem.quantity.asc(), StockItem.item_name.asc())
        .limit(5)
        .all()
    )
    out_of_stock = (
        db.session.query(StockItem)
        .filter(StockItem.quantity == 0)
        .order_by(StockItem.item_name.asc())
        .limit(5)
        .all()
    )

    since = to_utc_naive(local_now) - timedelta(days=TOP_ITEMS_WINDOW_DAYS)

    return {
        "periods": periods,
        "revenueGrowth": growth,
        "recentPurchases": [p.to_dict() for p in recent],
        "lowStockItems": [s.to_dict() for s in low_stock],
        "outOfStockItems": [s.to_dict() for s in out_of_stock],
        "topSellingItems": top_selling_items(since),
        "paymentMethods": payment_method_breakdown(month_start, day_end),
        "lowStockThreshold": threshold,
    }


def _sold_lines(start: datetime, end: datetime):
    return (
        db.session.query(PurchaseItem)
        .join(StockItem, PurchaseItem.stock_id == StockItem.id)
        .filter(PurchaseItem.created_at >= start, PurchaseItem.created_at <= end)
    )


def daily_sales(start: datetime, end: datetime) -> list[dict]:
    """Revenue and order count per shop-local calendar day, oldest first."""
    rows = (
        db.session.query(Purchase.created_at, Purchase.total_amount_cents)
        .filter(Purchase.created_at >= start, Purchase.created_at <= end)
        .all()
    )
    days: dict[str, list[int]] = {}
    for created_at, total_cents in rows:
        day = shop_now(created_at.replace(tzinfo=timezone.utc)).date().isoformat()
        bucket = days.setdefault(day, [0, 0])
        bucket[0] += total_cents
        bucket[1] += 1
    return [
        {"date": day, "revenue": from_cents(cents), "orders": orders}
        for day, (cents, orders) in sorted(days.items())
    ]


def category_performance(start: datetime, end: datetime) -> list[dict]:
    rows = (
        _sold_lines(start, end)
        .with_entities(
            StockItem.category,
            func.coalesce(func.sum(PurchaseItem.total_price_cents), 0),
            func.coalesce(func.sum(PurchaseItem.quantity), 0),
            func.count(func.distinct(PurchaseItem.purchase_id)),
        )
        .group_by(StockItem.category)
        .order_by(func.sum(PurchaseItem.total_price_cents).desc(), StockItem.category.asc())
        .all()
    )
    return [
        {"category": category, "revenue": from_cents(int(cents)), "quantity": int(qty), "orders": int(orders)}
        for category, cents, qty, orders in rows
    ]


def top_items_by_revenue(start: datetime, end: datetime, limit: int = ANALYTICS_TOP_LIMIT) -> list[dict]:
    rows = (
        db.session.query(
            StockItem,
            func.sum(PurchaseItem.total_price_cents).label("revenue_cents"),
            func.sum(PurchaseItem.quantity).label("quantity"),
        )
        .join(PurchaseItem, PurchaseItem.stock_id == StockItem.id)
        .filter(PurchaseItem.created_at >= start, PurchaseItem.created_at <= end)
        .group_by(StockItem.id)
        .order_by(func.sum(PurchaseItem.total_price_cents).desc(), StockItem.item_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "name": f"{stock.item_name} ({stock.color or 'N/A'})",
            "revenue": from_cents(int(revenue_cents)),
            "quantity": int(quantity),
            "stock": stock.to_summary(),
        }
        for stock, revenue_cents, quantity in rows
    ]


def profit_analysis(start: datetime, end: datetime) -> dict:
    """Sale revenue against the current unit cost of the quantities sold."""
    revenue_cents, cost_cents = (
        _sold_lines(start, end)
        .with_entities(
            func.coalesce(func.sum(PurchaseItem.total_price_cents), 0),
            func.coalesce(func.sum(cast(PurchaseItem.quantity, BigInteger) * StockItem.unit_price_cents), 0),
        )
        .one()
    )
    revenue_cents, cost_cents = int(revenue_cents), int(cost_cents)
    profit_cents = revenue_cents - cost_cents
    margin = round(profit_cents * 100 / revenue_cents, 2) if revenue_cents > 0 else 0.0
    return {
        "totalProfit": from_cents(profit_cents),
        "totalRevenue": from_cents(revenue_cents),
        "totalCost": from_cents(cost_cents),
        "profitMargin": margin,
    }


def customer_summary(start: datetime, end: datetime, limit: int = ANALYTICS_TOP_LIMIT) -> dict:
    window = (Purchase.created_at >= start, Purchase.created_at <= end)
    total_customers = (
        db.session.query(func.count(func.distinct(Purchase.customer_name)))
        .filter(*window)
        .scalar()
    ) or 0
    spent = func.sum(Purchase.total_amount_cents)
    rows = (
        db.session.query(
            Purchase.customer_name,
            func.count(Purchase.id),
            spent,
            func.max(Purchase.created_at),
        )
        .filter(*window)
        .group_by(Purchase.customer_name)
        .order_by(spent.desc(), Purchase.customer_name.asc())
        .limit(limit)
        .all()
    )
    return {
        "totalCustomers": int(total_customers),
        "topCustomers": [
            {
                "name": name,
                "orders": int(orders),
                "totalSpent": from_cents(int(cents)),
                "lastOrder": to_utc_z(last_order),
            }
            for name, orders, cents, last_order in rows
        ],
    }


def transport_costs(start: datetime, end: datetime) -> dict:
    total_cents, bundles, invoices = (
        db.session.query(
            func.coalesce(func.sum(Transport.total_amount_cents), 0),
            func.coalesce(func.sum(Transport.number_of_bundles), 0),
            func.count(Transport.id),
        )
        .filter(Transport.created_at >= start, Transport.created_at <= end)
        .one()
    )
    total_cents, invoices = int(total_cents), int(invoices)
    average = from_cents(round(total_cents / invoices)) if invoices else 0.0
    return {
        "totalCost": from_cents(total_cents),
        "averageCost": average,
        "totalBundles": int(bundles),
        "totalInvoices": invoices,
    }


def inventory_summary() -> dict:
    threshold = int(current_app.config.get("LOW_STOCK_THRESHOLD", 10))
    total_items, value_cents = db.session.query(
        func.count(StockItem.id),
        func.coalesce(func.sum(cast(StockItem.quantity, BigInteger) * StockItem.unit_price_cents), 0),
    ).one()
    low = (
        db.session.query(StockItem)
        .filter(StockItem.quantity <= threshold)
        .order_by(StockItem.quantity.asc(), StockItem.item_name.asc())
        .all()
    )
    return {
        "totalItems": int(total_items),
        "totalValue": from_cents(int(value_cents)),
        "lowStockItems": len(low),
        "outOfStockItems": sum(1 for s in low if s.quantity == 0),
        "lowStockList": [
            {
                "id": s.id,
                "itemName": s.item_name,
                "category": s.category,
                "quantity": s.quantity,
                "unitPrice": from_cents(s.unit_price_cents),
            }
            for s in low
        ],
        "outOfStockList": [
            {
                "id": s.id,
                "itemName": s.item_name,
                "category": s.category,
                "unitPrice": from_cents(s.unit_price_cents),
            }
            for s in low
            if s.quantity == 0
        ],
    }


def analytics_summary(period_days: int = 30, now: datetime | None = None) -> dict:
    """
    Sales, inventory, profit, customer and transport figures for the
    trailing `period_days` ending at `now`.

    Inventory figures are current, not windowed. Daily sales are bucketed by
    shop-local date.
    """
    if period_days < 1 or period_days > MAX_ANALYTICS_PERIOD_DAYS:
        raise ValueError(f"period must be between 1 and {MAX_ANALYTICS_PERIOD_DAYS} days")

    end = to_utc_naive(shop_now(now))
    start = end - timedelta(days=period_days)

    totals = _period_totals(start, end + timedelta(microseconds=1))
    revenue_cents, orders = totals["_cents"], totals["orders"]
    average = from_cents(round(revenue_cents / orders)) if orders else 0.0

    return {
        "period": {"startDate": to_utc_z(start), "endDate": to_utc_z(end), "days": period_days},
        "sales": {
            "totalRevenue": from_cents(revenue_cents),
            "totalOrders": orders,
            "averageOrderValue": average,
            "paymentMethods": payment_method_breakdown(start, end + timedelta(microseconds=1)),
            "dailySales": daily_sales(start, end),
        },
        "inventory": inventory_summary(),
        "performance": {
            "categoryPerformance": category_performance(start, end),
            "topSellingItems": top_items_by_revenue(start, end),
        },
        "profit": profit_analysis(start, end),
        "customers": customer_summary(start, end),
        "transport": transport_costs(start, end),
    }
