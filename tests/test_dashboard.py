"""Dashboard aggregation."""

from datetime import timedelta

from sareepos.services.purchase_service import complete_purchase
from sareepos.services import transport_service
from sareepos.services.reporting_service import analytics_summary, dashboard_summary

from conftest import CHECKOUT_TIME, checkout_payload, line


def test_periods_growth_and_stock_lists(db_session, make_stock):
    popular = make_stock(itemName="Kanjivaram Silk", quantity=20, unitPrice=1000)
    rare = make_stock(itemName="Paithani", quantity=1, unitPrice=500)

    complete_purchase(checkout_payload([line(popular, 1)]), now=CHECKOUT_TIME - timedelta(days=1))
    complete_purchase(checkout_payload([line(popular, 2)], payment_method="upi"), now=CHECKOUT_TIME)
    complete_purchase(checkout_payload([line(rare, 1)]), now=CHECKOUT_TIME)

    summary = dashboard_summary(now=CHECKOUT_TIME)

    assert summary["periods"]["today"] == {"revenue": 2500.0, "orders": 2}
    assert summary["periods"]["year"]["orders"] == 2
    # 2500 today vs 1000 yesterday
    assert summary["revenueGrowth"] == 150.0

    assert [s["itemName"] for s in summary["outOfStockItems"]] == ["Paithani"]
    assert summary["lowStockItems"][0]["itemName"] == "Paithani"
    assert summary["topSellingItems"][0]["name"] == "Kanjivaram Silk"
    assert summary["topSellingItems"][0]["quantity"] == 3

    methods = {m["paymentMethod"]: m["orders"] for m in summary["paymentMethods"]}
    assert methods == {"cash": 1, "upi": 1}
    assert len(summary["recentPurchases"]) == 3


def test_no_growth_without_yesterday(db_session, make_stock):
    stock = make_stock()
    complete_purchase(checkout_payload([line(stock, 1)]), now=CHECKOUT_TIME)

    assert dashboard_summary(now=CHECKOUT_TIME)["revenueGrowth"] == 0.0


def test_dashboard_route(client, db_session):
    resp = client.get("/api/dashboard")

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["periods"]["today"]["orders"] == 0
    assert data["lowStockThreshold"] == 10


class TestAnalytics:

    def test_sales_profit_and_customers_in_window(self, db_session, make_stock):
        silk = make_stock(quantity=10, unitPrice=1000)
        cotton = make_stock(itemName="Chanderi Cotton", category="Cotton", quantity=10, unitPrice=400)

        complete_purchase(
            checkout_payload([line(silk, 1, unit_price=1200)], customerName="Meena"),
            now=CHECKOUT_TIME - timedelta(days=2),
        )
        complete_purchase(
            checkout_payload([line(silk, 2), line(cotton, 1)], payment_method="upi"),
            now=CHECKOUT_TIME,
        )
        # outside the 30-day window
        complete_purchase(checkout_payload([line(cotton, 1)]), now=CHECKOUT_TIME - timedelta(days=40))

        summary = analytics_summary(period_days=30, now=CHECKOUT_TIME)

        sales = summary["sales"]
        assert sales["totalRevenue"] == 3600.0
        assert sales["totalOrders"] == 2
        assert sales["averageOrderValue"] == 1800.0
        assert {m["paymentMethod"]: m["revenue"] for m in sales["paymentMethods"]} == {"cash": 1200.0, "upi": 2400.0}
        assert sales["dailySales"] == [
            {"date": "2024-12-30", "revenue": 1200.0, "orders": 1},
            {"date": "2025-01-01", "revenue": 2400.0, "orders": 1},
        ]

        categories = summary["performance"]["categoryPerformance"]
        assert categories[0] == {"category": "Silk", "revenue": 3200.0, "quantity": 3, "orders": 2}
        assert categories[1] == {"category": "Cotton", "revenue": 400.0, "quantity": 1, "orders": 1}
        assert summary["performance"]["topSellingItems"][0]["name"] == "Kanjivaram Silk Saree (Maroon)"

        assert summary["profit"] == {
            "totalProfit": 200.0,
            "totalRevenue": 3600.0,
            "totalCost": 3400.0,
            "profitMargin": 5.56,
        }

        customers = summary["customers"]
        assert customers["totalCustomers"] == 2
        assert [c["name"] for c in customers["topCustomers"]] == ["Lakshmi", "Meena"]

        inventory = summary["inventory"]
        assert inventory["totalItems"] == 2
        assert inventory["totalValue"] == 7 * 1000 + 8 * 400
        assert inventory["lowStockItems"] == 2
        assert inventory["outOfStockItems"] == 0

        assert summary["period"]["days"] == 30

    def test_transport_costs_and_empty_sales(self, db_session):
        transport_service.create_transport({
            "inDate": "2025-01-05",
            "numberOfBundles": 3,
            "freightCharges": 450,
            "invoiceNo": "TR-1001",
            "amount": 12000,
            "gst": 600,
        })

        summary = analytics_summary(period_days=7)

        assert summary["transport"] == {
            "totalCost": 12600.0,
            "averageCost": 12600.0,
            "totalBundles": 3,
            "totalInvoices": 1,
        }
        assert summary["sales"]["averageOrderValue"] == 0.0
        assert summary["profit"]["profitMargin"] == 0.0
        assert summary["customers"]["topCustomers"] == []

    def test_analytics_route(self, client, db_session):
        resp = client.get("/api/analytics?period=7")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["period"]["days"] == 7

        assert client.get("/api/analytics").get_json()["data"]["period"]["days"] == 30
        assert client.get("/api/analytics?period=abc").status_code == 400
        assert client.get("/api/analytics?period=0").status_code == 400
