# Overview: Unit stock bookkeeping for products; quantities, movements and restock expenses.

"""
Inventory invariants (authoritative)

- Inventory.quantity never goes below zero. remove_stock fails with
  InsufficientStockError and leaves the quantity untouched.
- Every quantity change appends exactly one StockMovement in the same DB
  transaction:
    add     -> +qty
    remove  -> -qty (optionally tagged with the sale's transaction_id)
    adjust  -> new_quantity - old_quantity
- A restock with a known purchase price writes a "supplies" Expense for
  purchase_price x qty in the same DB transaction.
- StockMovement rows are never updated or deleted; an Inventory record with
  movements cannot be deleted.

The *_inner functions do the work without committing so that a café sale can
run them inside its own unit of work. The public functions validate, lock,
commit and retry.
"""
from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import Inventory, Product, StockMovement
from ..validation import ConflictError, NotFoundError, ValidationError, require_positive_quantity
from coworkpos.money import from_cents
from coworkpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .expense_service import record_expense

INVENTORY_MUTABLE_FIELDS = {"min_threshold", "purchase_price_cents", "expiration_date"}


class StockError(ValueError):
    """Stock rule violation (400)."""


class InsufficientStockError(StockError):
    """Requested quantity exceeds what is on hand."""


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Produit non trouvé")
    return product


def _get_inventory_for_product(product_id: int, *, lock: bool = False) -> Inventory | None:
    query = db.session.query(Inventory).filter_by(product_id=product_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def has_inventory(product_id: int) -> bool:
    return db.session.query(Inventory.id).filter_by(product_id=product_id).first() is not None


def _append_movement(
    inventory: Inventory,
    *,
    quantity: int,
    action_type: str,
    user_id: int,
    reason: str | None,
    transaction_id: int | None = None,
) -> StockMovement:
    movement = StockMovement(
        inventory_id=inventory.id,
        product_id=inventory.product_id,
        quantity=quantity,
        action_type=action_type,
        reason=reason,
        transaction_id=transaction_id,
        performed_by_id=user_id,
        timestamp=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def add_stock_inner(*, product_id: int, quantity: int, user_id: int, reason: str | None = None):
    product = _get_product(product_id)
    inventory = _get_inventory_for_product(product_id, lock=True)
    if inventory is None:
        inventory = Inventory(product_id=product_id, quantity=0, min_threshold=5)
        db.session.add(inventory)
        db.session.flush()

    now = utcnow()
    inventory.quantity += quantity
    inventory.last_restock_date = now
    movement = _append_movement(
        inventory, quantity=quantity, action_type="add", user_id=user_id, reason=reason
    )

    if inventory.purchase_price_cents is not None:
        record_expense(
            amount_cents=inventory.purchase_price_cents * quantity,
            category="supplies",
            description=(
                f"Achat de stock: {quantity} x {product.name} "
                f"à {from_cents(inventory.purchase_price_cents)} DH"
            ),
            user_id=user_id,
            when=now,
        )
    return inventory, movement


def remove_stock_inner(
    *,
    product_id: int,
    quantity: int,
    user_id: int,
    reason: str | None = None,
    transaction_id: int | None = None,
):
    product = _get_product(product_id)
    inventory = _get_inventory_for_product(product_id, lock=True)
    if inventory is None:
        raise NotFoundError(f"Aucun inventaire pour le produit {product.name}")

    if inventory.quantity < quantity:
        raise InsufficientStockError(
            f"Stock insuffisant pour {product.name}: {inventory.quantity} disponible(s), {quantity} demandé(s)"
        )

    inventory.quantity -= quantity
    movement = _append_movement(
        inventory,
        quantity=-quantity,
        action_type="remove",
        user_id=user_id,
        reason=reason,
        transaction_id=transaction_id,
    )
    return inventory, movement


def adjust_stock_inner(*, product_id: int, new_quantity: int, user_id: int, reason: str | None = None):
    inventory = _get_inventory_for_product(product_id, lock=True)
    if inventory is None:
        raise NotFoundError("Aucun inventaire pour ce produit")

    delta = new_quantity - inventory.quantity
    inventory.quantity = new_quantity
    if delta > 0:
        inventory.last_restock_date = utcnow()
    movement = _append_movement(
        inventory, quantity=delta, action_type="adjust", user_id=user_id, reason=reason
    )
    return inventory, movement


def _result(inventory: Inventory, movement: StockMovement) -> dict:
    return {"inventory": inventory.to_dict(), "movement": movement.to_dict()}


def add_stock(*, product_id: int, quantity, user_id: int, reason: str | None = None) -> dict:
    quantity = require_positive_quantity(quantity, integer=True)

    def _op():
        inventory, movement = add_stock_inner(
            product_id=product_id, quantity=quantity, user_id=user_id, reason=reason
        )
        db.session.commit()
        return _result(inventory, movement)

    return run_with_retry(_op)


def remove_stock(
    *,
    product_id: int,
    quantity,
    user_id: int,
    reason: str | None = None,
    transaction_id: int | None = None,
) -> dict:
    quantity = require_positive_quantity(quantity, integer=True)

    def _op():
        inventory, movement = remove_stock_inner(
            product_id=product_id,
            quantity=quantity,
            user_id=user_id,
            reason=reason,
            transaction_id=transaction_id,
        )
        db.session.commit()
        return _result(inventory, movement)

    return run_with_retry(_op)


def adjust_stock(*, product_id: int, new_quantity, user_id: int, reason: str | None = None) -> dict:
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
        raise ValidationError("La nouvelle quantité doit être un entier")
    if new_quantity < 0:
        raise ValidationError("La nouvelle quantité ne peut pas être négative")

    def _op():
        inventory, movement = adjust_stock_inner(
            product_id=product_id, new_quantity=new_quantity, user_id=user_id, reason=reason
        )
        db.session.commit()
        return _result(inventory, movement)

    return run_with_retry(_op)


# --- Inventory records ---------------------------------------------------


def list_inventory() -> list[Inventory]:
    return db.session.query(Inventory).order_by(Inventory.id.asc()).all()


def get_inventory(inventory_id: int) -> Inventory:
    inventory = db.session.get(Inventory, inventory_id)
    if inventory is None:
        raise NotFoundError("Inventaire non trouvé")
    return inventory


def create_inventory(patch: dict, user_id: int) -> Inventory:
    """
    Create the stock record for a product. An initial quantity is recorded
    as an "adjust" movement from zero.
    """
    def _op():
        _get_product(patch["product_id"])
        if _get_inventory_for_product(patch["product_id"]) is not None:
            raise ConflictError("Un inventaire existe déjà pour ce produit")

        initial_quantity = patch.get("quantity") or 0
        inventory = Inventory(
            product_id=patch["product_id"],
            quantity=0,
            min_threshold=patch["min_threshold"] if patch.get("min_threshold") is not None else 5,
            purchase_price_cents=patch.get("purchase_price_cents"),
            expiration_date=patch.get("expiration_date"),
        )
        db.session.add(inventory)
        db.session.flush()

        if initial_quantity > 0:
            inventory.quantity = initial_quantity
            inventory.last_restock_date = utcnow()
            _append_movement(
                inventory,
                quantity=initial_quantity,
                action_type="adjust",
                user_id=user_id,
                reason="Stock initial",
            )

        db.session.commit()
        return inventory

    return run_with_retry(_op)


def update_inventory(inventory_id: int, patch: dict) -> Inventory:
    def _op():
        inventory = lock_for_update(db.session.query(Inventory).filter_by(id=inventory_id)).first()
        if inventory is None:
            raise NotFoundError("Inventaire non trouvé")
        for key, value in patch.items():
            if key in INVENTORY_MUTABLE_FIELDS:
                setattr(inventory, key, value)
        db.session.commit()
        return inventory

    return run_with_retry(_op)


def delete_inventory(inventory_id: int) -> None:
    def _op():
        inventory = get_inventory(inventory_id)
        has_movements = (
            db.session.query(StockMovement.id).filter_by(inventory_id=inventory.id).first() is not None
        )
        if has_movements:
            raise ConflictError("Impossible de supprimer un inventaire qui a des mouvements de stock")
        db.session.delete(inventory)
        db.session.commit()

    run_with_retry(_op)


def get_low_stock_items() -> list[Inventory]:
    return (
        db.session.query(Inventory)
        .filter(Inventory.quantity <= Inventory.min_threshold)
        .order_by(Inventory.quantity.asc(), Inventory.id.asc())
        .all()
    )


def get_expiring_items(days: int = 7) -> list[Inventory]:
    """Records expiring within `days` days that have not expired yet."""
    now = utcnow()
    return (
        db.session.query(Inventory)
        .filter(
            Inventory.expiration_date.isnot(None),
            Inventory.expiration_date >= now,
            Inventory.expiration_date <= now + timedelta(days=days),
        )
        .order_by(Inventory.expiration_date.asc())
        .all()
    )


def list_stock_movements(limit: int = 50, offset: int = 0) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .order_by(StockMovement.timestamp.desc(), StockMovement.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def list_stock_movements_for_product(product_id: int) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.timestamp.desc(), StockMovement.id.desc())
        .all()
    )


def get_purchase_prices_cents(product_ids) -> dict[int, int]:
    """product_id -> unit purchase price, for products whose inventory has one."""
    ids = set(product_ids)
    if not ids:
        return {}
    rows = (
        db.session.query(Inventory.product_id, Inventory.purchase_price_cents)
        .filter(Inventory.product_id.in_(ids), Inventory.purchase_price_cents.isnot(None))
        .all()
    )
    return {product_id: price for product_id, price in rows}
