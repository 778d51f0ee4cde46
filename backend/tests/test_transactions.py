"""
Sales and daily statistics tests.

Every create/update/delete of a transaction must leave the DailyStats row of
each affected day equal to the sums of that day's transactions.
"""

from datetime import date

from coworkpos.extensions import db
from coworkpos.models import DailyStats, Transaction
from coworkpos.services import stats_service


def _stats(client, headers, day: str) -> dict:
    resp = client.get(f"/api/stats/daily?date={day}", headers=headers)
    assert resp.status_code == 200
    return resp.get_json()


def _entry(client, headers, when: str, **extra):
    payload = {"type": "entry", "paymentMethod": "cash", "date": when}
    payload.update(extra)
    return client.post("/api/transactions", json=payload, headers=headers)


class TestCreateTransaction:

    def test_two_entries_roll_into_daily_stats(self, client, cashier_headers):
        for hour in ("09", "15"):
            resp = _entry(client, cashier_headers, f"2024-03-01T{hour}:00:00Z", amount=25)
            assert resp.status_code == 201

        stats = _stats(client, cashier_headers, "2024-03-01")
        assert stats["date"] == "2024-03-01"
        assert stats["entriesRevenue"] == 50
        assert stats["entriesCount"] == 2
        assert stats["totalRevenue"] == 50
        assert stats["cafeOrdersCount"] == 0

    def test_entry_amount_defaults_to_fee(self, client, cashier_headers):
        resp = _entry(client, cashier_headers, "2024-03-01T10:00:00Z")
        assert resp.status_code == 201
        assert resp.get_json()["amount"] == 25

    def test_subscription_defaults(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={
                "type": "subscription",
                "paymentMethod": "card",
                "date": "2024-01-31T10:00:00Z",
                "clientName": "Salma",
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["amount"] == 300
        # Month arithmetic clamps to the last day of February
        assert body["subscriptionEndDate"] == "2024-02-29T10:00:00Z"

        stats = _stats(client, cashier_headers, "2024-01-31")
        assert stats["subscriptionsCount"] == 1
        assert stats["subscriptionsRevenue"] == 300

    def test_subscription_end_before_start_rejected(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={
                "type": "subscription",
                "paymentMethod": "card",
                "date": "2024-03-10T10:00:00Z",
                "subscriptionEndDate": "2024-03-01T10:00:00Z",
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_cafe_amount_is_item_total(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={
                "type": "cafe",
                "paymentMethod": "cash",
                "date": "2024-03-02T08:30:00Z",
                "items": [
                    {"id": 999, "name": "Thé", "price": 8.5, "quantity": 2},
                    {"id": 998, "name": "Croissant", "price": 6, "quantity": 1},
                ],
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["amount"] == 23
        assert body["items"][0]["price"] == 8.5
        assert body["stockStatus"] == "not_applicable"

        stats = _stats(client, cashier_headers, "2024-03-02")
        assert stats["cafeRevenue"] == 23
        assert stats["cafeOrdersCount"] == 1

    def test_cafe_amount_mismatch_rejected(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={
                "type": "cafe",
                "paymentMethod": "cash",
                "amount": 50,
                "items": [{"id": 1, "name": "Thé", "price": 8, "quantity": 1}],
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_cafe_without_items_rejected(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={"type": "cafe", "paymentMethod": "cash"},
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_items_on_entry_rejected(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={
                "type": "entry",
                "paymentMethod": "cash",
                "items": [{"id": 1, "name": "Thé", "price": 8, "quantity": 1}],
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_invalid_type_rejected(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions", json={"type": "refund", "paymentMethod": "cash"}, headers=cashier_headers
        )
        assert resp.status_code == 400
        assert db.session.query(Transaction).count() == 0

    def test_unknown_field_rejected(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={"type": "entry", "paymentMethod": "cash", "createdById": 1},
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_created_by_is_recorded(self, client, cashier, cashier_headers):
        resp = _entry(client, cashier_headers, "2024-03-01T10:00:00Z")
        assert resp.get_json()["createdById"] == cashier.id


class TestUpdateTransaction:

    def test_amount_change_updates_same_day(self, client, cashier_headers, super_admin_headers):
        tx_id = _entry(client, cashier_headers, "2024-03-01T10:00:00Z").get_json()["id"]

        resp = client.patch(f"/api/transactions/{tx_id}", json={"amount": 30}, headers=super_admin_headers)
        assert resp.status_code == 200

        stats = _stats(client, cashier_headers, "2024-03-01")
        assert stats["entriesRevenue"] == 30
        assert stats["entriesCount"] == 1
        assert stats["totalRevenue"] == 30

    def test_date_change_moves_contribution(self, client, cashier_headers, super_admin_headers):
        tx_id = _entry(client, cashier_headers, "2024-03-01T10:00:00Z").get_json()["id"]

        resp = client.patch(
            f"/api/transactions/{tx_id}",
            json={"date": "2024-03-02T10:00:00Z"},
            headers=super_admin_headers,
        )
        assert resp.status_code == 200

        old_day = _stats(client, cashier_headers, "2024-03-01")
        new_day = _stats(client, cashier_headers, "2024-03-02")
        assert old_day["entriesCount"] == 0
        assert old_day["totalRevenue"] == 0
        assert new_day["entriesCount"] == 1
        assert new_day["totalRevenue"] == 25

    def test_type_change_moves_between_buckets(self, client, cashier_headers, super_admin_headers):
        tx_id = _entry(client, cashier_headers, "2024-03-01T10:00:00Z").get_json()["id"]

        resp = client.patch(
            f"/api/transactions/{tx_id}", json={"type": "subscription"}, headers=super_admin_headers
        )
        assert resp.status_code == 200
        assert resp.get_json()["amount"] == 300

        stats = _stats(client, cashier_headers, "2024-03-01")
        assert stats["entriesCount"] == 0
        assert stats["subscriptionsCount"] == 1
        assert stats["totalRevenue"] == 300

    def test_invalid_update_leaves_stats_untouched(self, client, cashier_headers, super_admin_headers):
        tx_id = _entry(client, cashier_headers, "2024-03-01T10:00:00Z").get_json()["id"]

        resp = client.patch(
            f"/api/transactions/{tx_id}",
            json={"items": [{"id": 1, "name": "Thé", "price": 8, "quantity": 1}]},
            headers=super_admin_headers,
        )
        assert resp.status_code == 400

        stats = _stats(client, cashier_headers, "2024-03-01")
        assert stats["entriesCount"] == 1
        assert stats["totalRevenue"] == 25

    def test_update_missing_transaction(self, client, super_admin_headers):
        resp = client.patch("/api/transactions/4242", json={"amount": 1}, headers=super_admin_headers)
        assert resp.status_code == 404


class TestDeleteTransaction:

    def test_delete_reverses_contribution(self, client, cashier_headers, super_admin_headers):
        first = _entry(client, cashier_headers, "2024-03-01T10:00:00Z").get_json()["id"]
        _entry(client, cashier_headers, "2024-03-01T11:00:00Z")

        resp = client.delete(f"/api/transactions/{first}", headers=super_admin_headers)
        assert resp.status_code == 200

        stats = _stats(client, cashier_headers, "2024-03-01")
        assert stats["entriesCount"] == 1
        assert stats["totalRevenue"] == 25

        resp = client.get(f"/api/transactions/{first}", headers=cashier_headers)
        assert resp.status_code == 404

    def test_delete_never_drives_count_negative(self, client, cashier_headers, super_admin_headers):
        tx_id = _entry(client, cashier_headers, "2024-03-01T10:00:00Z").get_json()["id"]

        # Drifted row: the count no longer reflects the recorded sale
        row = db.session.query(DailyStats).filter_by(date=date(2024, 3, 1)).one()
        row.entries_count = 0
        db.session.commit()

        resp = client.delete(f"/api/transactions/{tx_id}", headers=super_admin_headers)
        assert resp.status_code == 200

        stats = _stats(client, cashier_headers, "2024-03-01")
        assert stats["entriesCount"] == 0
        assert stats["totalRevenue"] == 0


class TestListTransactions:

    def test_list_newest_first_with_paging(self, client, cashier_headers):
        for day in ("01", "02", "03"):
            _entry(client, cashier_headers, f"2024-03-{day}T10:00:00Z")

        resp = client.get("/api/transactions?limit=2", headers=cashier_headers)
        dates = [tx["date"] for tx in resp.get_json()]
        assert dates == ["2024-03-03T10:00:00Z", "2024-03-02T10:00:00Z"]

        resp = client.get("/api/transactions?limit=2&offset=2", headers=cashier_headers)
        assert [tx["date"] for tx in resp.get_json()] == ["2024-03-01T10:00:00Z"]

    def test_by_date_is_inclusive(self, client, cashier_headers):
        _entry(client, cashier_headers, "2024-03-01T00:00:00Z")
        _entry(client, cashier_headers, "2024-03-02T23:59:59Z")
        _entry(client, cashier_headers, "2024-03-03T00:00:00Z")

        resp = client.get(
            "/api/transactions/byDate?startDate=2024-03-01&endDate=2024-03-02", headers=cashier_headers
        )
        assert resp.status_code == 200
        assert len(resp.get_json()) == 2

    def test_by_date_requires_both_bounds(self, client, cashier_headers):
        resp = client.get("/api/transactions/byDate?startDate=2024-03-01", headers=cashier_headers)
        assert resp.status_code == 400

    def test_by_type(self, client, cashier_headers):
        _entry(client, cashier_headers, "2024-03-01T10:00:00Z")
        client.post(
            "/api/transactions",
            json={"type": "subscription", "paymentMethod": "card"},
            headers=cashier_headers,
        )
        resp = client.get("/api/transactions/byType/subscription", headers=cashier_headers)
        assert [tx["type"] for tx in resp.get_json()] == ["subscription"]

        resp = client.get("/api/transactions/byType/refund", headers=cashier_headers)
        assert resp.status_code == 400


class TestCloseDay:

    def test_close_day_repairs_drift(self, client, cashier_headers, admin_headers):
        _entry(client, cashier_headers, "2024-03-01T10:00:00Z")
        _entry(client, cashier_headers, "2024-03-01T11:00:00Z")

        row = db.session.query(DailyStats).filter_by(date=date(2024, 3, 1)).one()
        row.total_revenue_cents = 99
        row.entries_count = 7
        db.session.commit()

        resp = client.post("/api/close-day", json={"date": "2024-03-01"}, headers=admin_headers)
        assert resp.status_code == 200
        stats = resp.get_json()["stats"]
        assert stats["totalRevenue"] == 50
        assert stats["entriesCount"] == 2

    def test_close_day_without_sales(self, client, admin_headers):
        resp = client.post("/api/close-day", json={"date": "2024-05-05"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["stats"]["totalRevenue"] == 0

    def test_close_day_bad_date(self, client, admin_headers):
        resp = client.post("/api/close-day", json={"date": "hier"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_compute_day_totals_matches_incremental_row(self, client, cashier_headers):
        _entry(client, cashier_headers, "2024-03-01T10:00:00Z")
        client.post(
            "/api/transactions",
            json={
                "type": "cafe",
                "paymentMethod": "cash",
                "date": "2024-03-01T12:00:00Z",
                "items": [{"id": 999, "name": "Thé", "price": 8, "quantity": 2}],
            },
            headers=cashier_headers,
        )

        row = db.session.query(DailyStats).filter_by(date=date(2024, 3, 1)).one()
        totals = stats_service.compute_day_totals(date(2024, 3, 1))
        assert totals["total_revenue_cents"] == row.total_revenue_cents == 4100
        assert totals["cafe_orders_count"] == row.cafe_orders_count == 1
