# Overview: Recipes binding products to ingredients, and all-or-nothing ingredient consumption.

from __future__ import annotations

import math

from ..extensions import db
from ..models import Ingredient, Product, Recipe, RecipeIngredient
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry
from .ingredient_service import remove_ingredient_stock_inner
from .inventory_service import InsufficientStockError

RECIPE_MUTABLE_FIELDS = {"product_id", "name", "description"}


def list_recipes() -> list[Recipe]:
    return db.session.query(Recipe).order_by(Recipe.name.asc(), Recipe.id.asc()).all()


def get_recipe(recipe_id: int) -> Recipe:
    recipe = db.session.get(Recipe, recipe_id)
    if recipe is None:
        raise NotFoundError("Recette non trouvée")
    return recipe


def find_recipe_for_product(product_id: int) -> Recipe | None:
    return (
        db.session.query(Recipe)
        .filter_by(product_id=product_id)
        .order_by(Recipe.id.asc())
        .first()
    )


def normalize_recipe_ingredients(raw) -> list[dict]:
    """
    [{ingredientId, quantity}] -> [{"ingredient_id", "quantity"}].

    At least one line. Each ingredient must exist, appear once, and have a
    per-unit quantity > 0.
    """
    if not isinstance(raw, list):
        raise ValidationError("ingredients doit être une liste")
    if not raw:
        raise ValidationError("Une recette doit contenir au moins un ingrédient")

    normalized = []
    seen: set[int] = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"ingredients[{index}] doit être un objet")
        ingredient_id = entry.get("ingredientId", entry.get("ingredient_id"))
        if isinstance(ingredient_id, bool) or not isinstance(ingredient_id, int):
            raise ValidationError(f"ingredients[{index}].ingredientId est obligatoire")

        quantity = entry.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise ValidationError(f"ingredients[{index}].quantity doit être un nombre")
        if not math.isfinite(quantity) or quantity <= 0:
            raise ValidationError(f"ingredients[{index}].quantity doit être supérieure à zéro")

        if ingredient_id in seen:
            raise ConflictError("Un ingrédient ne peut apparaître qu'une fois par recette")
        seen.add(ingredient_id)

        if db.session.get(Ingredient, ingredient_id) is None:
            raise NotFoundError(f"Ingrédient {ingredient_id} non trouvé")

        normalized.append({"ingredient_id": ingredient_id, "quantity": float(quantity)})
    return normalized


def _require_product(product_id: int) -> None:
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Produit non trouvé")


def create_recipe(patch: dict, ingredients: list[dict]) -> Recipe:
    def _op():
        _require_product(patch["product_id"])
        recipe = Recipe(
            product_id=patch["product_id"],
            name=patch["name"],
            description=patch.get("description"),
        )
        recipe.ingredients = [RecipeIngredient(**entry) for entry in ingredients]
        db.session.add(recipe)
        db.session.commit()
        return recipe

    return run_with_retry(_op)


def update_recipe(recipe_id: int, patch: dict, ingredients: list[dict] | None) -> Recipe:
    """Update recipe fields; a provided ingredient list replaces the old one entirely."""
    def _op():
        recipe = get_recipe(recipe_id)
        if "product_id" in patch:
            _require_product(patch["product_id"])
        for key, value in patch.items():
            if key in RECIPE_MUTABLE_FIELDS:
                setattr(recipe, key, value)

        if ingredients is not None:
            # Old rows go first so re-adding an ingredient does not hit the unique constraint
            recipe.ingredients.clear()
            db.session.flush()
            recipe.ingredients.extend(RecipeIngredient(**entry) for entry in ingredients)

        db.session.commit()
        return recipe

    return run_with_retry(_op)


def delete_recipe(recipe_id: int) -> None:
    def _op():
        recipe = get_recipe(recipe_id)
        db.session.delete(recipe)
        db.session.commit()

    run_with_retry(_op)


def consume_recipe_inner(recipe: Recipe, *, user_id: int, transaction_id: int | None, units: int = 1) -> list:
    """
    Deduct `units` servings of the recipe from ingredient stock (no commit).

    All ingredients are locked and checked before any is touched, so an
    InsufficientStockError leaves every quantity unchanged.
    """
    required = []
    for line in recipe.ingredients:
        ingredient = lock_for_update(db.session.query(Ingredient).filter_by(id=line.ingredient_id)).first()
        if ingredient is None:
            raise NotFoundError(f"Ingrédient {line.ingredient_id} non trouvé")
        needed = line.quantity * units
        if ingredient.quantity_in_stock < needed:
            raise InsufficientStockError(
                f"Stock insuffisant pour {ingredient.name} (recette {recipe.name}): "
                f"{ingredient.quantity_in_stock:g} {ingredient.unit} disponible(s), {needed:g} requis"
            )
        required.append((ingredient.id, needed))

    movements = []
    for ingredient_id, needed in required:
        _, movement = remove_ingredient_stock_inner(
            ingredient_id=ingredient_id,
            quantity=needed,
            user_id=user_id,
            reason=f"Utilisé pour {recipe.name}",
            transaction_id=transaction_id,
            recipe_id=recipe.id,
        )
        movements.append(movement)
    return movements


def use_recipe_for_transaction(recipe_id: int, user_id: int, transaction_id: int | None, units: int = 1) -> list:
    if isinstance(units, bool) or not isinstance(units, int) or units <= 0:
        raise ValidationError("units doit être un entier positif")

    def _op():
        recipe = get_recipe(recipe_id)
        movements = consume_recipe_inner(recipe, user_id=user_id, transaction_id=transaction_id, units=units)
        db.session.commit()
        return [m.to_dict() for m in movements]

    return run_with_retry(_op)
