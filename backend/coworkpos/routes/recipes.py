# backend/coworkpos/routes/recipes.py
"""
Recipe routes.

Create/update bodies carry the recipe and its ingredient list side by side:
    {"recipe": {"productId", "name", "description"?},
     "ingredients": [{"ingredientId", "quantity"}]}
On update, a provided ingredient list replaces the previous one.
"""
from flask import Blueprint, g, jsonify

from ..services import recipe_service
from ..services.inventory_service import StockError
from ..models import Recipe
from ..permissions import Role
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role
from .params import json_body, body_int

RECIPE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "name", "description"},
    required_on_create={"product_id", "name"},
)

recipes_bp = Blueprint("recipes", __name__, url_prefix="/api/recipes")


def _recipe_part(payload: dict) -> dict:
    recipe = payload.get("recipe")
    if not isinstance(recipe, dict):
        raise ValidationError("Données de recette invalides")
    return recipe


@recipes_bp.get("")
@require_auth
@require_role(Role.ADMIN)
def list_recipes():
    return jsonify([r.to_dict() for r in recipe_service.list_recipes()])


@recipes_bp.get("/<int:recipe_id>")
@require_auth
@require_role(Role.ADMIN)
def get_recipe(recipe_id: int):
    try:
        return recipe_service.get_recipe(recipe_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@recipes_bp.get("/by-product/<int:product_id>")
@require_auth
@require_role(Role.ADMIN)
def get_recipe_for_product(product_id: int):
    recipe = recipe_service.find_recipe_for_product(product_id)
    if recipe is None:
        return {"message": "Aucune recette trouvée pour ce produit"}, 404
    return recipe.to_dict()


@recipes_bp.post("")
@require_auth
@require_role(Role.ADMIN)
def create_recipe_route():
    try:
        payload = json_body()
        patch = validate_payload(model=Recipe, payload=_recipe_part(payload), policy=RECIPE_POLICY, partial=False)
        ingredients = recipe_service.normalize_recipe_ingredients(payload.get("ingredients", []))
        recipe = recipe_service.create_recipe(patch, ingredients)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409
    return recipe.to_dict(), 201


@recipes_bp.patch("/<int:recipe_id>")
@require_auth
@require_role(Role.ADMIN)
def update_recipe_route(recipe_id: int):
    try:
        payload = json_body()
        patch = validate_payload(
            model=Recipe, payload=payload.get("recipe") or {}, policy=RECIPE_POLICY, partial=True
        )
        ingredients = None
        if payload.get("ingredients") is not None:
            ingredients = recipe_service.normalize_recipe_ingredients(payload["ingredients"])
        recipe = recipe_service.update_recipe(recipe_id, patch, ingredients)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409
    return recipe.to_dict(), 200


@recipes_bp.delete("/<int:recipe_id>")
@require_auth
@require_role(Role.ADMIN)
def delete_recipe_route(recipe_id: int):
    try:
        recipe_service.delete_recipe(recipe_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return {"message": "Recette supprimée avec succès"}, 200


@recipes_bp.post("/<int:recipe_id>/use")
@require_auth
def use_recipe_route(recipe_id: int):
    """Body: {transactionId, units?}"""
    try:
        payload = json_body()
        transaction_id = body_int(payload, "transactionId")
        units = body_int(payload, "units", required=False) or 1
        movements = recipe_service.use_recipe_for_transaction(
            recipe_id, g.current_user.id, transaction_id, units=units
        )
    except (ValidationError, StockError) as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return {"success": True, "movements": movements}, 200
