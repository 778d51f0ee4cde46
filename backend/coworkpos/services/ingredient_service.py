# Overview: Measured ingredient stock; CRUD, fractional quantity bookkeeping and movements.

"""
Ingredient bookkeeping mirrors inventory_service for measured quantities:

- quantity_in_stock never goes below zero
- every change appends one IngredientMovement in the same DB transaction
- a restock with a known purchase price writes a "supplies" Expense
"""
from __future__ import annotations

from ..extensions import db
from ..models import Ingredient, IngredientMovement, RecipeIngredient
from ..validation import ConflictError, NotFoundError, ValidationError, require_positive_quantity
from coworkpos.money import from_cents, to_cents
from coworkpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .expense_service import record_expense
from .inventory_service import InsufficientStockError

INGREDIENT_MUTABLE_FIELDS = {
    "name", "description", "unit", "purchase_price_cents", "min_threshold", "expiration_date",
}


def get_ingredient(ingredient_id: int, *, lock: bool = False) -> Ingredient:
    query = db.session.query(Ingredient).filter_by(id=ingredient_id)
    if lock:
        query = lock_for_update(query)
    ingredient = query.first()
    if ingredient is None:
        raise NotFoundError("Ingrédient non trouvé")
    return ingredient


def list_ingredients() -> list[Ingredient]:
    return db.session.query(Ingredient).order_by(Ingredient.name.asc(), Ingredient.id.asc()).all()


def create_ingredient(patch: dict, user_id: int) -> Ingredient:
    def _op():
        initial_quantity = patch.get("quantity_in_stock") or 0.0
        ingredient = Ingredient(
            name=patch["name"],
            description=patch.get("description"),
            unit=patch["unit"],
            purchase_price_cents=patch.get("purchase_price_cents"),
            quantity_in_stock=0.0,
            min_threshold=patch["min_threshold"] if patch.get("min_threshold") is not None else 5.0,
            expiration_date=patch.get("expiration_date"),
        )
        db.session.add(ingredient)
        db.session.flush()

        if initial_quantity > 0:
            ingredient.quantity_in_stock = initial_quantity
            ingredient.last_restock_date = utcnow()
            _append_movement(
                ingredient,
                quantity=initial_quantity,
                action_type="adjust",
                user_id=user_id,
                reason="Stock initial",
            )

        db.session.commit()
        return ingredient

    return run_with_retry(_op)


def update_ingredient(ingredient_id: int, patch: dict) -> Ingredient:
    def _op():
        ingredient = get_ingredient(ingredient_id, lock=True)
        for key, value in patch.items():
            if key in INGREDIENT_MUTABLE_FIELDS:
                setattr(ingredient, key, value)
        db.session.commit()
        return ingredient

    return run_with_retry(_op)


def delete_ingredient(ingredient_id: int) -> None:
    def _op():
        ingredient = get_ingredient(ingredient_id)
        in_recipe = (
            db.session.query(RecipeIngredient.id).filter_by(ingredient_id=ingredient.id).first() is not None
        )
        if in_recipe:
            raise ConflictError("Cet ingrédient est utilisé dans une recette")
        has_movements = (
            db.session.query(IngredientMovement.id).filter_by(ingredient_id=ingredient.id).first() is not None
        )
        if has_movements:
            raise ConflictError("Impossible de supprimer un ingrédient qui a des mouvements de stock")
        db.session.delete(ingredient)
        db.session.commit()

    run_with_retry(_op)


def _append_movement(
    ingredient: Ingredient,
    *,
    quantity: float,
    action_type: str,
    user_id: int,
    reason: str | None,
    transaction_id: int | None = None,
    recipe_id: int | None = None,
) -> IngredientMovement:
    movement = IngredientMovement(
        ingredient_id=ingredient.id,
        quantity=quantity,
        action_type=action_type,
        reason=reason,
        transaction_id=transaction_id,
        recipe_id=recipe_id,
        performed_by_id=user_id,
        timestamp=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def add_ingredient_stock_inner(*, ingredient_id: int, quantity: float, user_id: int, reason: str | None = None):
    ingredient = get_ingredient(ingredient_id, lock=True)

    now = utcnow()
    ingredient.quantity_in_stock += quantity
    ingredient.last_restock_date = now
    movement = _append_movement(
        ingredient, quantity=quantity, action_type="add", user_id=user_id, reason=reason
    )

    if ingredient.purchase_price_cents is not None:
        # Price is per unit; quantities may be fractional
        amount_cents = to_cents(ingredient.purchase_price_cents * quantity / 100)
        record_expense(
            amount_cents=amount_cents,
            category="supplies",
            description=(
                f"Achat d'ingrédient: {quantity:g} {ingredient.unit} de {ingredient.name} "
                f"à {from_cents(ingredient.purchase_price_cents)} DH/{ingredient.unit}"
            ),
            user_id=user_id,
            when=now,
        )
    return ingredient, movement


def remove_ingredient_stock_inner(
    *,
    ingredient_id: int,
    quantity: float,
    user_id: int,
    reason: str | None = None,
    transaction_id: int | None = None,
    recipe_id: int | None = None,
):
    ingredient = get_ingredient(ingredient_id, lock=True)
    if ingredient.quantity_in_stock < quantity:
        raise InsufficientStockError(
            f"Stock insuffisant pour {ingredient.name}: {ingredient.quantity_in_stock:g} {ingredient.unit} "
            f"disponible(s), {quantity:g} demandé(s)"
        )

    ingredient.quantity_in_stock -= quantity
    movement = _append_movement(
        ingredient,
        quantity=-quantity,
        action_type="remove",
        user_id=user_id,
        reason=reason,
        transaction_id=transaction_id,
        recipe_id=recipe_id,
    )
    return ingredient, movement


def _result(ingredient: Ingredient, movement: IngredientMovement) -> dict:
    return {"ingredient": ingredient.to_dict(), "movement": movement.to_dict()}


def add_ingredient_stock(*, ingredient_id: int, quantity, user_id: int, reason: str | None = None) -> dict:
    quantity = require_positive_quantity(quantity, integer=False)

    def _op():
        ingredient, movement = add_ingredient_stock_inner(
            ingredient_id=ingredient_id, quantity=quantity, user_id=user_id, reason=reason
        )
        db.session.commit()
        return _result(ingredient, movement)

    return run_with_retry(_op)


def remove_ingredient_stock(
    *,
    ingredient_id: int,
    quantity,
    user_id: int,
    reason: str | None = None,
    transaction_id: int | None = None,
    recipe_id: int | None = None,
) -> dict:
    quantity = require_positive_quantity(quantity, integer=False)

    def _op():
        ingredient, movement = remove_ingredient_stock_inner(
            ingredient_id=ingredient_id,
            quantity=quantity,
            user_id=user_id,
            reason=reason,
            transaction_id=transaction_id,
            recipe_id=recipe_id,
        )
        db.session.commit()
        return _result(ingredient, movement)

    return run_with_retry(_op)


def adjust_ingredient_stock(*, ingredient_id: int, new_quantity, user_id: int, reason: str | None = None) -> dict:
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, (int, float)):
        raise ValidationError("La nouvelle quantité doit être un nombre")
    if new_quantity < 0:
        raise ValidationError("La nouvelle quantité ne peut pas être négative")

    def _op():
        ingredient = get_ingredient(ingredient_id, lock=True)
        delta = float(new_quantity) - ingredient.quantity_in_stock
        ingredient.quantity_in_stock = float(new_quantity)
        if delta > 0:
            ingredient.last_restock_date = utcnow()
        movement = _append_movement(
            ingredient, quantity=delta, action_type="adjust", user_id=user_id, reason=reason
        )
        db.session.commit()
        return _result(ingredient, movement)

    return run_with_retry(_op)


def get_low_stock_ingredients(threshold: float | None = None) -> list[Ingredient]:
    """At or below their own min_threshold, or at or below an explicit threshold."""
    query = db.session.query(Ingredient)
    if threshold is None:
        query = query.filter(Ingredient.quantity_in_stock <= Ingredient.min_threshold)
    else:
        query = query.filter(Ingredient.quantity_in_stock <= threshold)
    return query.order_by(Ingredient.quantity_in_stock.asc(), Ingredient.id.asc()).all()


def list_ingredient_movements(limit: int = 50, offset: int = 0) -> list[IngredientMovement]:
    return (
        db.session.query(IngredientMovement)
        .order_by(IngredientMovement.timestamp.desc(), IngredientMovement.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def list_movements_for_ingredient(ingredient_id: int) -> list[IngredientMovement]:
    return (
        db.session.query(IngredientMovement)
        .filter_by(ingredient_id=ingredient_id)
        .order_by(IngredientMovement.timestamp.desc(), IngredientMovement.id.desc())
        .all()
    )
