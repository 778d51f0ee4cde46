# Overview: Sales (entries, subscriptions, café orders) kept in lockstep with DailyStats and stock.

"""
Transaction bookkeeping

Every write is one unit of work:
- create: insert row -> apply its contribution to DailyStats -> café stock
  deduction -> commit
- update: reverse the original contribution from its original day -> merge
  and re-validate -> apply the new contribution to the (possibly different)
  day -> commit
- delete: reverse the contribution -> delete -> commit

Café stock deduction follows STOCK_DEDUCTION_POLICY:
- "flag" (default): deductions run in a savepoint; on a stock failure the
  savepoint is rolled back, the sale still commits and is marked
  needs_reconciliation with the failure message.
- "fail": a stock failure rejects the whole sale.

Stock consumed by a sale is not restored when the sale is edited or deleted;
the movements keep the transaction id for manual follow-up.
"""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import (
    Product,
    Transaction,
    TRANSACTION_TYPES,
    STOCK_STATUS_NOT_APPLICABLE,
    STOCK_STATUS_SYNCED,
    STOCK_STATUS_NEEDS_RECONCILIATION,
)
from ..validation import NotFoundError, ValidationError, enforce_rules_transaction
from coworkpos.money import to_cents
from coworkpos.time_utils import utcnow, range_bounds
from . import stats_service
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import StockError, has_inventory, remove_stock_inner
from .recipe_service import consume_recipe_inner, find_recipe_for_product

# Columns making up a transaction's validated state
_STATE_FIELDS = (
    "date", "type", "amount_cents", "payment_method", "client_name", "client_email",
    "notes", "items", "subscription_end_date",
)

# Product categories tracked as discrete units in Inventory
UNIT_STOCK_CATEGORIES = ("beverage", "other")


def _fee_kwargs() -> dict:
    return {
        "entry_fee_cents": to_cents(current_app.config["ENTRY_FEE"]),
        "subscription_fee_cents": to_cents(current_app.config["SUBSCRIPTION_FEE"]),
    }


def _deduct_items(tx: Transaction, user_id: int) -> bool:
    """Deduct stock for every tracked line item. Returns True if anything was tracked."""
    tracked = False
    for item in tx.items or []:
        recipe = find_recipe_for_product(item["id"])
        if recipe is not None and recipe.ingredients:
            consume_recipe_inner(recipe, user_id=user_id, transaction_id=tx.id, units=item["quantity"])
            tracked = True
            continue

        product = db.session.get(Product, item["id"])
        if product is None or product.category not in UNIT_STOCK_CATEGORIES:
            continue
        if not has_inventory(product.id):
            continue

        remove_stock_inner(
            product_id=product.id,
            quantity=item["quantity"],
            user_id=user_id,
            reason=f"Vente café #{tx.id}",
            transaction_id=tx.id,
        )
        tracked = True
    return tracked


def _apply_stock_deduction(tx: Transaction, user_id: int) -> None:
    if current_app.config["STOCK_DEDUCTION_POLICY"] == "fail":
        tracked = _deduct_items(tx, user_id)
    else:
        try:
            with db.session.begin_nested():
                tracked = _deduct_items(tx, user_id)
        except StockError as exc:
            current_app.logger.warning("Stock deduction failed for transaction %s: %s", tx.id, exc)
            tx.stock_status = STOCK_STATUS_NEEDS_RECONCILIATION
            tx.stock_note = str(exc)
            return

    tx.stock_status = STOCK_STATUS_SYNCED if tracked else STOCK_STATUS_NOT_APPLICABLE


def create_transaction(patch: dict, user_id: int | None) -> Transaction:
    """
    Record a sale. `patch` is a validated payload keyed by column name, with
    café items already normalized.
    """
    def _op():
        state = {name: None for name in _STATE_FIELDS}
        state.update(patch)
        if state["date"] is None:
            state["date"] = utcnow()
        enforce_rules_transaction(state, **_fee_kwargs())

        tx = Transaction(
            **state,
            stock_status=STOCK_STATUS_NOT_APPLICABLE,
            created_by_id=user_id,
        )
        db.session.add(tx)
        db.session.flush()

        stats_service.apply_transaction(tx.type, tx.amount_cents, tx.date)

        if tx.type == "cafe":
            _apply_stock_deduction(tx, user_id)

        db.session.commit()
        return tx

    tx = run_with_retry(_op)
    current_app.logger.info("Recorded %s transaction %s (%s cents)", tx.type, tx.id, tx.amount_cents)
    return tx


def update_transaction(transaction_id: int, patch: dict) -> Transaction:
    def _op():
        tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if tx is None:
            raise NotFoundError("Transaction non trouvée")

        stats_service.reverse_transaction(tx.type, tx.amount_cents, tx.date)

        state = {name: getattr(tx, name) for name in _STATE_FIELDS}
        if "type" in patch and patch["type"] != tx.type:
            # Type-specific fields of the old type do not carry over
            state["amount_cents"] = None
            state["subscription_end_date"] = None
            state["items"] = None
        if "items" in patch and "amount_cents" not in patch:
            state["amount_cents"] = None
        if "date" in patch and "subscription_end_date" not in patch:
            state["subscription_end_date"] = None
        state.update(patch)
        enforce_rules_transaction(state, **_fee_kwargs())

        for name, value in state.items():
            setattr(tx, name, value)
        if tx.type != "cafe":
            tx.stock_status = STOCK_STATUS_NOT_APPLICABLE
            tx.stock_note = None

        stats_service.apply_transaction(tx.type, tx.amount_cents, tx.date)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def delete_transaction(transaction_id: int) -> None:
    def _op():
        tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if tx is None:
            raise NotFoundError("Transaction non trouvée")
        stats_service.reverse_transaction(tx.type, tx.amount_cents, tx.date)
        db.session.delete(tx)
        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("Deleted transaction %s", transaction_id)


def get_transaction(transaction_id: int) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if tx is None:
        raise NotFoundError("Transaction non trouvée")
    return tx


def list_transactions(limit: int | None = None, offset: int = 0) -> list[Transaction]:
    query = db.session.query(Transaction).order_by(Transaction.date.desc(), Transaction.id.desc())
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_transactions_by_date(start_day: date, end_day: date) -> list[Transaction]:
    """Transactions dated from start_day through end_day inclusive."""
    start, end = range_bounds(start_day, end_day)
    return (
        db.session.query(Transaction)
        .filter(Transaction.date >= start, Transaction.date < end)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


def list_transactions_by_type(tx_type: str) -> list[Transaction]:
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Type de transaction invalide: {tx_type}")
    return (
        db.session.query(Transaction)
        .filter(Transaction.type == tx_type)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


def list_needing_reconciliation() -> list[Transaction]:
    return (
        db.session.query(Transaction)
        .filter(Transaction.stock_status == STOCK_STATUS_NEEDS_RECONCILIATION)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )
