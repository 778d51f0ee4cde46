# backend/coworkpos/routes/expenses.py
"""
Expense routes. Reads for any signed-in user, writes for admin.
"""
from flask import Blueprint, g, jsonify

from ..services import expense_service
from ..models import Expense, EXPENSE_CATEGORIES, PAYMENT_METHODS
from ..permissions import Role
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, NotFoundError
from ..decorators import require_auth, require_role
from .params import json_body, day_range_args

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"date", "amount", "category", "description", "payment_method"},
    required_on_create={"amount", "category"},
    money_fields={"amount": "amount_cents"},
    choices={"category": EXPENSE_CATEGORIES, "payment_method": PAYMENT_METHODS},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
def list_expenses():
    return jsonify([e.to_dict() for e in expense_service.list_expenses()])


@expenses_bp.get("/byDate")
@require_auth
def list_by_date():
    try:
        start_day, end_day = day_range_args()
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify([e.to_dict() for e in expense_service.list_expenses_by_date(start_day, end_day)])


@expenses_bp.get("/byCategory/<category>")
@require_auth
def list_by_category(category: str):
    try:
        expenses = expense_service.list_expenses_by_category(category)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify([e.to_dict() for e in expenses])


@expenses_bp.get("/<int:expense_id>")
@require_auth
def get_expense(expense_id: int):
    try:
        return expense_service.get_expense(expense_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@expenses_bp.post("")
@require_auth
@require_role(Role.ADMIN)
def create_expense_route():
    try:
        patch = validate_payload(model=Expense, payload=json_body(), policy=EXPENSE_POLICY, partial=False)
        expense = expense_service.create_expense(patch, user_id=g.current_user.id)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return expense.to_dict(), 201


@expenses_bp.patch("/<int:expense_id>")
@require_auth
@require_role(Role.ADMIN)
def update_expense_route(expense_id: int):
    try:
        patch = validate_payload(model=Expense, payload=json_body(), policy=EXPENSE_POLICY, partial=True)
        expense = expense_service.update_expense(expense_id, patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return expense.to_dict(), 200


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_role(Role.ADMIN)
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(expense_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return {"message": "Dépense supprimée avec succès"}, 200
