"""
Unit stock tests: inventory records, stock operations, movement log and
purchase expenses.
"""

from datetime import timedelta

import pytest

from coworkpos.extensions import db
from coworkpos.models import Expense, Inventory, StockMovement
from coworkpos.services import inventory_service
from coworkpos.services.inventory_service import InsufficientStockError
from coworkpos.time_utils import utcnow
from coworkpos.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def stocked_coffee(coffee, admin):
    """Café noir with 10 units on hand and a low-stock threshold of 5."""
    inventory_service.create_inventory(
        {"product_id": coffee.id, "quantity": 10, "min_threshold": 5}, user_id=admin.id
    )
    return coffee


class TestStockService:

    def test_remove_more_than_available_fails(self, stocked_coffee, admin):
        with pytest.raises(InsufficientStockError):
            inventory_service.remove_stock(product_id=stocked_coffee.id, quantity=15, user_id=admin.id)

        inventory = db.session.query(Inventory).filter_by(product_id=stocked_coffee.id).one()
        assert inventory.quantity == 10
        removals = db.session.query(StockMovement).filter_by(action_type="remove").count()
        assert removals == 0

    def test_remove_records_negative_movement(self, stocked_coffee, admin):
        result = inventory_service.remove_stock(
            product_id=stocked_coffee.id, quantity=6, user_id=admin.id, reason="Casse"
        )
        assert result["inventory"]["quantity"] == 4
        assert result["movement"]["quantity"] == -6
        assert result["movement"]["actionType"] == "remove"
        assert result["movement"]["performedById"] == admin.id

        low = inventory_service.get_low_stock_items()
        assert [i.product_id for i in low] == [stocked_coffee.id]

    def test_add_then_remove_restores_quantity(self, stocked_coffee, admin):
        inventory_service.add_stock(product_id=stocked_coffee.id, quantity=7, user_id=admin.id)
        inventory_service.remove_stock(product_id=stocked_coffee.id, quantity=7, user_id=admin.id)

        inventory = db.session.query(Inventory).filter_by(product_id=stocked_coffee.id).one()
        assert inventory.quantity == 10
        movements = (
            db.session.query(StockMovement)
            .filter(StockMovement.action_type.in_(("add", "remove")))
            .order_by(StockMovement.id.asc())
            .all()
        )
        assert [(m.action_type, m.quantity) for m in movements] == [("add", 7), ("remove", -7)]

    def test_initial_quantity_is_an_adjust_movement(self, stocked_coffee):
        movements = inventory_service.list_stock_movements_for_product(stocked_coffee.id)
        assert len(movements) == 1
        assert movements[0].action_type == "adjust"
        assert movements[0].quantity == 10
        assert db.session.query(Expense).count() == 0

    def test_add_with_purchase_price_records_expense(self, stocked_coffee, admin):
        inventory = db.session.query(Inventory).filter_by(product_id=stocked_coffee.id).one()
        inventory_service.update_inventory(inventory.id, {"purchase_price_cents": 450})

        result = inventory_service.add_stock(product_id=stocked_coffee.id, quantity=4, user_id=admin.id)
        assert result["inventory"]["quantity"] == 14
        assert result["inventory"]["lastRestockDate"] is not None

        expense = db.session.query(Expense).one()
        assert expense.category == "supplies"
        assert expense.amount_cents == 1800
        assert expense.created_by_id == admin.id

    def test_add_creates_missing_inventory(self, coffee, admin):
        result = inventory_service.add_stock(product_id=coffee.id, quantity=3, user_id=admin.id)
        assert result["inventory"]["quantity"] == 3
        assert result["inventory"]["minThreshold"] == 5
        assert db.session.query(Expense).count() == 0

    def test_remove_without_inventory(self, coffee, admin):
        with pytest.raises(NotFoundError):
            inventory_service.remove_stock(product_id=coffee.id, quantity=1, user_id=admin.id)

    def test_quantity_must_be_positive(self, stocked_coffee, admin):
        with pytest.raises(ValidationError):
            inventory_service.add_stock(product_id=stocked_coffee.id, quantity=0, user_id=admin.id)
        with pytest.raises(ValidationError):
            inventory_service.remove_stock(product_id=stocked_coffee.id, quantity=-2, user_id=admin.id)

    def test_adjust_records_delta(self, stocked_coffee, admin):
        result = inventory_service.adjust_stock(
            product_id=stocked_coffee.id, new_quantity=7, user_id=admin.id, reason="Inventaire"
        )
        assert result["inventory"]["quantity"] == 7
        assert result["movement"]["quantity"] == -3
        assert result["movement"]["actionType"] == "adjust"

    def test_adjust_rejects_negative(self, stocked_coffee, admin):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(product_id=stocked_coffee.id, new_quantity=-1, user_id=admin.id)

    def test_duplicate_inventory_conflict(self, stocked_coffee, admin):
        with pytest.raises(ConflictError):
            inventory_service.create_inventory({"product_id": stocked_coffee.id}, user_id=admin.id)

    def test_delete_blocked_by_movements(self, stocked_coffee):
        inventory = db.session.query(Inventory).filter_by(product_id=stocked_coffee.id).one()
        with pytest.raises(ConflictError):
            inventory_service.delete_inventory(inventory.id)


class TestStockApi:

    def test_stock_add_endpoint(self, client, stocked_coffee, admin_headers):
        resp = client.post(
            "/api/stock/add",
            json={"productId": stocked_coffee.id, "quantity": 5, "reason": "Livraison"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["inventory"]["quantity"] == 15
        assert body["movement"]["reason"] == "Livraison"

    def test_stock_remove_insufficient_returns_400(self, client, stocked_coffee, admin_headers):
        resp = client.post(
            "/api/stock/remove",
            json={"productId": stocked_coffee.id, "quantity": 15},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "Stock insuffisant" in resp.get_json()["message"]

    def test_stock_adjust_endpoint(self, client, stocked_coffee, admin_headers):
        resp = client.post(
            "/api/stock/adjust",
            json={"productId": stocked_coffee.id, "newQuantity": 2},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["inventory"]["quantity"] == 2

    def test_low_stock_endpoint_embeds_product(self, client, stocked_coffee, admin_headers):
        client.post(
            "/api/stock/remove",
            json={"productId": stocked_coffee.id, "quantity": 6},
            headers=admin_headers,
        )
        resp = client.get("/api/inventory/low-stock", headers=admin_headers)
        assert resp.status_code == 200
        rows = resp.get_json()
        assert len(rows) == 1
        assert rows[0]["quantity"] == 4
        assert rows[0]["product"]["name"] == "Café noir"

    def test_expiring_endpoint(self, client, coffee, admin, admin_headers):
        soon = (utcnow() + timedelta(days=3)).strftime("%Y-%m-%dT%H:%M:%SZ")
        resp = client.post(
            "/api/inventory",
            json={"productId": coffee.id, "quantity": 3, "expirationDate": soon},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        resp = client.get("/api/inventory/expiring?days=7", headers=admin_headers)
        assert [row["productId"] for row in resp.get_json()] == [coffee.id]

    def test_movement_log_newest_first(self, client, stocked_coffee, admin_headers):
        client.post("/api/stock/add", json={"productId": stocked_coffee.id, "quantity": 1}, headers=admin_headers)
        resp = client.get("/api/stock-movements", headers=admin_headers)
        movements = resp.get_json()
        assert [m["actionType"] for m in movements] == ["add", "adjust"]

        resp = client.get(f"/api/stock-movements/product/{stocked_coffee.id}", headers=admin_headers)
        assert len(resp.get_json()) == 2
