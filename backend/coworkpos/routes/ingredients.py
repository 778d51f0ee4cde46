# backend/coworkpos/routes/ingredients.py
"""
Ingredient routes (admin): records, stock operations and movement log.
"""
from flask import Blueprint, g, jsonify, request

from ..services import ingredient_service
from ..services.inventory_service import StockError
from ..models import Ingredient
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

INGREDIENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "unit", "purchase_price", "quantity_in_stock",
        "min_threshold", "expiration_date",
    },
    required_on_create={"name", "unit"},
    money_fields={"purchase_price": "purchase_price_cents"},
    non_negative={"quantity_in_stock", "min_threshold"},
)

INGREDIENT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "unit", "purchase_price", "min_threshold", "expiration_date"},
    money_fields={"purchase_price": "purchase_price_cents"},
    non_negative={"min_threshold"},
)

ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api")


@ingredients_bp.get("/ingredients")
@require_auth
@require_role(Role.ADMIN)
def list_ingredients():
    return jsonify([i.to_dict() for i in ingredient_service.list_ingredients()])


@ingredients_bp.get("/ingredients/low-stock")
@require_auth
@require_role(Role.ADMIN)
def low_stock_ingredients():
    """Query param: threshold (optional; each ingredient's own minimum otherwise)."""
    raw = request.args.get("threshold")
    threshold = None
    if raw:
        try:
            threshold = float(raw)
        except ValueError:
            return {"message": "Le paramètre threshold doit être un nombre"}, 400
    return jsonify([i.to_dict() for i in ingredient_service.get_low_stock_ingredients(threshold)])


@ingredients_bp.get("/ingredients/<int:ingredient_id>")
@require_auth
@require_role(Role.ADMIN)
def get_ingredient(ingredient_id: int):
    try:
        return ingredient_service.get_ingredient(ingredient_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@ingredients_bp.post("/ingredients")
@require_auth
@require_role(Role.ADMIN)
def create_ingredient_route():
    try:
        patch = validate_payload(model=Ingredient, payload=json_body(), policy=INGREDIENT_POLICY, partial=False)
        ingredient = ingredient_service.create_ingredient(patch, user_id=g.current_user.id)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return ingredient.to_dict(), 201


@ingredients_bp.patch("/ingredients/<int:ingredient_id>")
@require_auth
@require_role(Role.ADMIN)
def update_ingredient_route(ingredient_id: int):
    try:
        patch = validate_payload(
            model=Ingredient, payload=json_body(), policy=INGREDIENT_UPDATE_POLICY, partial=True
        )
        ingredient = ingredient_service.update_ingredient(ingredient_id, patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return ingredient.to_dict(), 200


@ingredients_bp.delete("/ingredients/<int:ingredient_id>")
@require_auth
@require_role(Role.ADMIN)
def delete_ingredient_route(ingredient_id: int):
    try:
        ingredient_service.delete_ingredient(ingredient_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409
    return {"message": "Ingrédient supprimé avec succès"}, 200


@ingredients_bp.post("/ingredients/<int:ingredient_id>/add-stock")
@require_auth
@require_role(Role.ADMIN)
def add_ingredient_stock_route(ingredient_id: int):
    """Body: {quantity, reason?}"""
    try:
        payload = json_body()
        result = ingredient_service.add_ingredient_stock(
            ingredient_id=ingredient_id,
            quantity=payload.get("quantity"),
            user_id=g.current_user.id,
            reason=body_reason(payload),
        )
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return result, 200


@ingredients_bp.post("/ingredients/<int:ingredient_id>/remove-stock")
@require_auth
@require_role(Role.ADMIN)
def remove_ingredient_stock_route(ingredient_id: int):
    """Body: {quantity, reason?, transactionId?, recipeId?}"""
    try:
        payload = json_body()
        result = ingredient_service.remove_ingredient_stock(
            ingredient_id=ingredient_id,
            quantity=payload.get("quantity"),
            user_id=g.current_user.id,
            reason=body_reason(payload),
            transaction_id=body_int(payload, "transactionId", required=False),
            recipe_id=body_int(payload, "recipeId", required=False),
        )
    except (ValidationError, StockError) as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return result, 200


@ingredients_bp.post("/ingredients/<int:ingredient_id>/adjust-stock")
@require_auth
@require_role(Role.ADMIN)
def adjust_ingredient_stock_route(ingredient_id: int):
    """Body: {newQuantity, reason?}"""
    try:
        payload = json_body()
        result = ingredient_service.adjust_ingredient_stock(
            ingredient_id=ingredient_id,
            new_quantity=payload.get("newQuantity"),
            user_id=g.current_user.id,
            reason=body_reason(payload),
        )
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return result, 200


@ingredients_bp.get("/ingredient-movements")
@require_auth
@require_role(Role.ADMIN)
def list_ingredient_movements():
    try:
        limit = int_arg("limit", 50, minimum=1)
        offset = int_arg("offset", 0)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify([m.to_dict() for m in ingredient_service.list_ingredient_movements(limit, offset)])


@ingredients_bp.get("/ingredient-movements/<int:ingredient_id>")
@require_auth
@require_role(Role.ADMIN)
def list_movements_for_ingredient(ingredient_id: int):
    return jsonify([m.to_dict() for m in ingredient_service.list_movements_for_ingredient(ingredient_id)])
