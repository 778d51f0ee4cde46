"""
Profit and revenue report tests.

grossProfit = revenue - café cost of goods sold
netProfit = grossProfit - expenses
"""

import pytest

from coworkpos.services import inventory_service


@pytest.fixture
def march_activity(client, coffee, admin, admin_headers, cashier_headers):
    """
    Revenue 1000 (entry 700 + café 10 x 30), COGS 10 x 20 = 200,
    expenses 150 (rent), all on 2024-03-05.
    """
    inventory_service.create_inventory(
        {"product_id": coffee.id, "quantity": 20, "purchase_price_cents": 2000}, user_id=admin.id
    )
    resp = client.post(
        "/api/transactions",
        json={"type": "entry", "paymentMethod": "cash", "amount": 700, "date": "2024-03-05T09:00:00Z"},
        headers=cashier_headers,
    )
    assert resp.status_code == 201
    resp = client.post(
        "/api/transactions",
        json={
            "type": "cafe",
            "paymentMethod": "card",
            "date": "2024-03-05T10:00:00Z",
            "items": [{"id": coffee.id, "name": coffee.name, "price": 30, "quantity": 10}],
        },
        headers=cashier_headers,
    )
    assert resp.status_code == 201
    resp = client.post(
        "/api/expenses",
        json={"amount": 150, "category": "rent", "date": "2024-03-05T12:00:00Z"},
        headers=admin_headers,
    )
    assert resp.status_code == 201


class TestNetProfit:

    def test_net_profit_report(self, client, march_activity, admin_headers):
        resp = client.get(
            "/api/stats/net-profit?startDate=2024-03-01&endDate=2024-03-31", headers=admin_headers
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["startDate"] == "2024-03-01"
        assert body["endDate"] == "2024-03-31"
        assert body["revenue"] == {"entries": 700, "subscriptions": 0, "cafe": 300, "total": 1000}
        assert body["costs"] == {"cafeProducts": 200, "expenses": 150, "total": 350}
        assert body["grossProfit"] == 800
        assert body["netProfit"] == 650

    def test_range_outside_activity_is_zero(self, client, march_activity, admin_headers):
        resp = client.get(
            "/api/stats/net-profit?startDate=2024-04-01&endDate=2024-04-30", headers=admin_headers
        )
        body = resp.get_json()
        assert body["revenue"]["total"] == 0
        assert body["netProfit"] == 0

    def test_reversed_range_rejected(self, client, admin_headers):
        resp = client.get(
            "/api/stats/net-profit?startDate=2024-03-31&endDate=2024-03-01", headers=admin_headers
        )
        assert resp.status_code == 400

    def test_daily_breakdown(self, client, march_activity, admin_headers):
        resp = client.get(
            "/api/stats/net-profit/daily?startDate=2024-03-04&endDate=2024-03-06", headers=admin_headers
        )
        days = resp.get_json()
        assert [d["date"] for d in days] == ["2024-03-04", "2024-03-05", "2024-03-06"]
        assert [d["netProfit"] for d in days] == [0, 650, 0]

    def test_monthly_breakdown(self, client, march_activity, admin_headers):
        resp = client.get(
            "/api/stats/net-profit/monthly?startDate=2024-02-15&endDate=2024-03-10", headers=admin_headers
        )
        months = resp.get_json()
        assert [m["month"] for m in months] == ["2024-02", "2024-03"]
        assert months[1]["monthName"] == "mars 2024"
        # Buckets are clipped to the requested range
        assert months[0]["startDate"] == "2024-02-15"
        assert months[1]["endDate"] == "2024-03-10"
        assert months[1]["netProfit"] == 650


class TestNetRevenue:

    def test_net_revenue_uses_daily_stats(self, client, march_activity, cashier_headers):
        resp = client.get(
            "/api/stats/net-revenue?startDate=2024-03-01&endDate=2024-03-31", headers=cashier_headers
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["totalRevenue"] == 1000
        assert body["totalExpenses"] == 150
        assert body["netRevenue"] == 850
        assert body["expenseBreakdown"] == {"rent": 150}

    def test_defaults_to_current_month(self, client, cashier_headers):
        resp = client.get("/api/stats/net-revenue", headers=cashier_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["startDate"].endswith("-01")
        assert body["totalRevenue"] == 0

    def test_half_open_range_rejected(self, client, cashier_headers):
        resp = client.get("/api/stats/net-revenue?startDate=2024-03-01", headers=cashier_headers)
        assert resp.status_code == 400


class TestStatsRange:

    def test_range_lists_rows_in_order(self, client, cashier_headers):
        for day in ("2024-03-02", "2024-03-01"):
            client.post(
                "/api/transactions",
                json={"type": "entry", "paymentMethod": "cash", "date": f"{day}T10:00:00Z"},
                headers=cashier_headers,
            )
        resp = client.get("/api/stats/range?startDate=2024-03-01&endDate=2024-03-31", headers=cashier_headers)
        assert [row["date"] for row in resp.get_json()] == ["2024-03-01", "2024-03-02"]
