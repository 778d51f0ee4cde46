# backend/coworkpos/routes/transactions.py
"""
Sales routes (entries, subscriptions, café orders).

Any signed-in user may record and read sales. Editing or deleting a recorded
sale changes past revenue, so it is reserved to super_admin.
"""
from flask import Blueprint, g, jsonify

from ..services import transaction_service
from ..services.inventory_service import StockError
from ..models import Transaction, TRANSACTION_TYPES, PAYMENT_METHODS
from ..permissions import Role
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    normalize_transaction_items,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_role
from .params import json_body, day_range_args, int_arg

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={
        "date", "type", "amount", "payment_method", "client_name", "client_email",
        "notes", "items", "subscription_end_date",
    },
    required_on_create={"type", "payment_method"},
    money_fields={"amount": "amount_cents"},
    choices={"type": TRANSACTION_TYPES, "payment_method": PAYMENT_METHODS},
)

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _parse_transaction_payload(partial: bool) -> dict:
    patch = validate_payload(model=Transaction, payload=json_body(), policy=TRANSACTION_POLICY, partial=partial)
    if patch.get("items") is not None:
        patch["items"] = normalize_transaction_items(patch["items"])
    return patch


def _serialize(transactions) -> list[dict]:
    return [tx.to_dict() for tx in transactions]


@transactions_bp.get("")
@require_auth
def list_transactions():
    """
    Newest first. Query params: limit (optional), offset (default 0).
    """
    try:
        limit = int_arg("limit", minimum=1)
        offset = int_arg("offset", 0)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify(_serialize(transaction_service.list_transactions(limit=limit, offset=offset)))


@transactions_bp.get("/byDate")
@require_auth
def list_by_date():
    try:
        start_day, end_day = day_range_args()
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify(_serialize(transaction_service.list_transactions_by_date(start_day, end_day)))


@transactions_bp.get("/byType/<tx_type>")
@require_auth
def list_by_type(tx_type: str):
    try:
        transactions = transaction_service.list_transactions_by_type(tx_type)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify(_serialize(transactions))


@transactions_bp.get("/needs-reconciliation")
@require_auth
@require_role(Role.ADMIN)
def list_needing_reconciliation():
    return jsonify(_serialize(transaction_service.list_needing_reconciliation()))


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction(transaction_id: int):
    try:
        return transaction_service.get_transaction(transaction_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    try:
        patch = _parse_transaction_payload(partial=False)
        tx = transaction_service.create_transaction(patch, user_id=g.current_user.id)
    except (ValidationError, StockError) as e:
        # StockError only escapes under STOCK_DEDUCTION_POLICY=fail
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return tx.to_dict(), 201


@transactions_bp.patch("/<int:transaction_id>")
@require_auth
@require_role(Role.SUPER_ADMIN)
def update_transaction_route(transaction_id: int):
    try:
        patch = _parse_transaction_payload(partial=True)
        tx = transaction_service.update_transaction(transaction_id, patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return tx.to_dict(), 200


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
@require_role(Role.SUPER_ADMIN)
def delete_transaction_route(transaction_id: int):
    try:
        transaction_service.delete_transaction(transaction_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return {"message": "Transaction supprimée avec succès"}, 200
