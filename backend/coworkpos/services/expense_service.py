# Overview: Expense records; admin CRUD plus the automatic supplies expense written by restocks.

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Expense, EXPENSE_CATEGORIES
from ..validation import NotFoundError, ValidationError
from coworkpos.time_utils import utcnow, range_bounds
from .concurrency import run_with_retry

EXPENSE_MUTABLE_FIELDS = {"date", "amount_cents", "category", "description", "payment_method"}


def record_expense(
    *,
    amount_cents: int,
    category: str,
    description: str | None,
    user_id: int | None,
    when: datetime | None = None,
    payment_method: str = "cash",
) -> Expense:
    """Add an Expense to the current unit of work (no commit)."""
    expense = Expense(
        date=when or utcnow(),
        amount_cents=amount_cents,
        category=category,
        description=description,
        payment_method=payment_method,
        created_by_id=user_id,
    )
    db.session.add(expense)
    db.session.flush()
    return expense


def list_expenses() -> list[Expense]:
    return db.session.query(Expense).order_by(Expense.date.desc(), Expense.id.desc()).all()


def get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Dépense non trouvée")
    return expense


def list_expenses_by_date(start_day: date, end_day: date) -> list[Expense]:
    start, end = range_bounds(start_day, end_day)
    return (
        db.session.query(Expense)
        .filter(Expense.date >= start, Expense.date < end)
        .order_by(Expense.date.desc(), Expense.id.desc())
        .all()
    )


def list_expenses_by_category(category: str) -> list[Expense]:
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Catégorie invalide: {category}")
    return (
        db.session.query(Expense)
        .filter(Expense.category == category)
        .order_by(Expense.date.desc(), Expense.id.desc())
        .all()
    )


def create_expense(patch: dict, user_id: int) -> Expense:
    def _op():
        expense = record_expense(
            amount_cents=patch["amount_cents"],
            category=patch["category"],
            description=patch.get("description"),
            user_id=user_id,
            when=patch.get("date"),
            payment_method=patch.get("payment_method") or "cash",
        )
        db.session.commit()
        return expense

    return run_with_retry(_op)


def update_expense(expense_id: int, patch: dict) -> Expense:
    def _op():
        expense = get_expense(expense_id)
        for key, value in patch.items():
            if key in EXPENSE_MUTABLE_FIELDS:
                setattr(expense, key, value)
        db.session.commit()
        return expense

    return run_with_retry(_op)


def delete_expense(expense_id: int) -> None:
    def _op():
        expense = get_expense(expense_id)
        db.session.delete(expense)
        db.session.commit()

    run_with_retry(_op)


def sum_expenses_cents(start: datetime, end: datetime) -> int:
    """Total of expenses dated in the half-open range [start, end)."""
    total = (
        db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
        .filter(Expense.date >= start, Expense.date < end)
        .scalar()
    )
    return int(total or 0)


def expense_breakdown_cents(start: datetime, end: datetime) -> dict[str, int]:
    rows = (
        db.session.query(Expense.category, func.coalesce(func.sum(Expense.amount_cents), 0))
        .filter(Expense.date >= start, Expense.date < end)
        .group_by(Expense.category)
        .all()
    )
    return {category: int(total) for category, total in rows}
