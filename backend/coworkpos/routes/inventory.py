# backend/coworkpos/routes/inventory.py
"""
Unit stock routes (admin): inventory records, stock operations and the
movement log.

Quantities only change through /api/stock/add|remove|adjust so that every
change leaves a StockMovement behind.
"""
from flask import Blueprint, g, jsonify

from ..services import inventory_service
from ..services.inventory_service import StockError
from ..models import Inventory
from ..permissions import Role
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role
from .params import json_body, int_arg, body_int, body_reason

INVENTORY_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "min_threshold", "purchase_price", "expiration_date"},
    required_on_create={"product_id"},
    money_fields={"purchase_price": "purchase_price_cents"},
    non_negative={"quantity", "min_threshold"},
)

INVENTORY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"min_threshold", "purchase_price", "expiration_date"},
    money_fields={"purchase_price": "purchase_price_cents"},
    non_negative={"min_threshold"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api")


@inventory_bp.get("/inventory")
@require_auth
@require_role(Role.ADMIN)
def list_inventory():
    return jsonify([i.to_dict(include_product=True) for i in inventory_service.list_inventory()])


@inventory_bp.get("/inventory/low-stock")
@require_auth
@require_role(Role.ADMIN)
def low_stock():
    return jsonify([i.to_dict(include_product=True) for i in inventory_service.get_low_stock_items()])


@inventory_bp.get("/inventory/expiring")
@require_auth
@require_role(Role.ADMIN)
def expiring():
    """Query param: days (default 7)."""
    try:
        days = int_arg("days", 7)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify([i.to_dict(include_product=True) for i in inventory_service.get_expiring_items(days)])


@inventory_bp.get("/inventory/<int:inventory_id>")
@require_auth
@require_role(Role.ADMIN)
def get_inventory(inventory_id: int):
    try:
        return inventory_service.get_inventory(inventory_id).to_dict(include_product=True)
    except NotFoundError as e:
        return {"message": str(e)}, 404


@inventory_bp.post("/inventory")
@require_auth
@require_role(Role.ADMIN)
def create_inventory_route():
    try:
        patch = validate_payload(
            model=Inventory, payload=json_body(), policy=INVENTORY_CREATE_POLICY, partial=False
        )
        inventory = inventory_service.create_inventory(patch, user_id=g.current_user.id)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409
    return inventory.to_dict(include_product=True), 201


@inventory_bp.patch("/inventory/<int:inventory_id>")
@require_auth
@require_role(Role.ADMIN)
def update_inventory_route(inventory_id: int):
    try:
        patch = validate_payload(
            model=Inventory, payload=json_body(), policy=INVENTORY_UPDATE_POLICY, partial=True
        )
        inventory = inventory_service.update_inventory(inventory_id, patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return inventory.to_dict(include_product=True), 200


@inventory_bp.delete("/inventory/<int:inventory_id>")
@require_auth
@require_role(Role.ADMIN)
def delete_inventory_route(inventory_id: int):
    try:
        inventory_service.delete_inventory(inventory_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409
    return {"message": "Inventaire supprimé avec succès"}, 200


@inventory_bp.get("/stock-movements")
@require_auth
@require_role(Role.ADMIN)
def list_stock_movements():
    try:
        limit = int_arg("limit", 50, minimum=1)
        offset = int_arg("offset", 0)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify([m.to_dict() for m in inventory_service.list_stock_movements(limit, offset)])


@inventory_bp.get("/stock-movements/product/<int:product_id>")
@require_auth
@require_role(Role.ADMIN)
def list_product_movements(product_id: int):
    return jsonify([m.to_dict() for m in inventory_service.list_stock_movements_for_product(product_id)])


@inventory_bp.post("/stock/add")
@require_auth
@require_role(Role.ADMIN)
def add_stock_route():
    """Body: {productId, quantity, reason?}"""
    try:
        payload = json_body()
        result = inventory_service.add_stock(
            product_id=body_int(payload, "productId"),
            quantity=payload.get("quantity"),
            user_id=g.current_user.id,
            reason=body_reason(payload),
        )
    except (ValidationError, StockError) as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return result, 201


@inventory_bp.post("/stock/remove")
@require_auth
@require_role(Role.ADMIN)
def remove_stock_route():
    """Body: {productId, quantity, reason?}"""
    try:
        payload = json_body()
        result = inventory_service.remove_stock(
            product_id=body_int(payload, "productId"),
            quantity=payload.get("quantity"),
            user_id=g.current_user.id,
            reason=body_reason(payload),
        )
    except (ValidationError, StockError) as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return result, 200


@inventory_bp.post("/stock/adjust")
@require_auth
@require_role(Role.ADMIN)
def adjust_stock_route():
    """Body: {productId, newQuantity, reason?}"""
    try:
        payload = json_body()
        result = inventory_service.adjust_stock(
            product_id=body_int(payload, "productId"),
            new_quantity=payload.get("newQuantity"),
            user_id=g.current_user.id,
            reason=body_reason(payload),
        )
    except (ValidationError, StockError) as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return result, 200
