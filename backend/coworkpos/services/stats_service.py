# Overview: DailyStats maintenance; incremental deltas per transaction and full re-derivation per day.

"""
Daily statistics bookkeeping.

INVARIANT: for every calendar day D, the DailyStats row for D equals the
per-type sums and counts of the Transactions dated on D.

- apply_transaction / reverse_transaction adjust one row incrementally and
  never commit; callers run them inside their own unit of work.
- close_day re-derives a row from the transactions themselves and is the
  repair path when the incremental row drifted.
"""
from __future__ import annotations

from datetime import date, datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import DailyStats, Transaction, TRANSACTION_TYPES
from coworkpos.time_utils import as_day, day_bounds
from .concurrency import lock_for_update, run_with_retry

# type -> (revenue column, count column)
_FIELDS_BY_TYPE = {
    "entry": ("entries_revenue_cents", "entries_count"),
    "subscription": ("subscriptions_revenue_cents", "subscriptions_count"),
    "cafe": ("cafe_revenue_cents", "cafe_orders_count"),
}

_REVENUE_FIELDS = ("total_revenue_cents",) + tuple(f[0] for f in _FIELDS_BY_TYPE.values())
_COUNT_FIELDS = tuple(f[1] for f in _FIELDS_BY_TYPE.values())


def _zero_values() -> dict:
    return {name: 0 for name in _REVENUE_FIELDS + _COUNT_FIELDS}


def _get_or_create_locked(day: date) -> DailyStats:
    row = lock_for_update(db.session.query(DailyStats).filter_by(date=day)).first()
    if row is None:
        row = DailyStats(date=day, **_zero_values())
        db.session.add(row)
        db.session.flush()
    return row


def _fields_for(tx_type: str) -> tuple[str, str]:
    try:
        return _FIELDS_BY_TYPE[tx_type]
    except KeyError:
        raise ValueError(f"unknown transaction type: {tx_type}")


def apply_transaction(tx_type: str, amount_cents: int, when: date | datetime) -> DailyStats:
    """Add one transaction's contribution to its day's row (created with zeros if absent)."""
    revenue_field, count_field = _fields_for(tx_type)
    row = _get_or_create_locked(as_day(when))

    row.total_revenue_cents += amount_cents
    setattr(row, revenue_field, getattr(row, revenue_field) + amount_cents)
    setattr(row, count_field, getattr(row, count_field) + 1)
    return row


def reverse_transaction(tx_type: str, amount_cents: int, when: date | datetime) -> DailyStats:
    """
    Remove one transaction's contribution from its day's row.

    Counts are floored at zero. Revenue is not clamped so the row keeps
    matching the transaction sums exactly; a negative value means the row had
    already drifted and is logged for close-day repair.
    """
    revenue_field, count_field = _fields_for(tx_type)
    day = as_day(when)
    row = _get_or_create_locked(day)

    row.total_revenue_cents -= amount_cents
    setattr(row, revenue_field, getattr(row, revenue_field) - amount_cents)
    setattr(row, count_field, max(0, getattr(row, count_field) - 1))

    if row.total_revenue_cents < 0 or getattr(row, revenue_field) < 0:
        current_app.logger.warning(
            "Daily stats for %s went negative after reversing a %s transaction; run close-day to repair",
            day.isoformat(),
            tx_type,
        )
    return row


def compute_day_totals(day: date) -> dict:
    """Sums and counts per type straight from the day's transactions."""
    start, end = day_bounds(day)
    rows = (
        db.session.query(
            Transaction.type,
            func.coalesce(func.sum(Transaction.amount_cents), 0),
            func.count(Transaction.id),
        )
        .filter(Transaction.date >= start, Transaction.date < end)
        .group_by(Transaction.type)
        .all()
    )

    totals = _zero_values()
    for tx_type, revenue, count in rows:
        if tx_type not in TRANSACTION_TYPES:
            continue
        revenue_field, count_field = _FIELDS_BY_TYPE[tx_type]
        totals[revenue_field] = int(revenue)
        totals[count_field] = int(count)
        totals["total_revenue_cents"] += int(revenue)
    return totals


def close_day(day: date) -> DailyStats:
    """Re-derive the day's row from its transactions and overwrite it."""
    def _op():
        row = _get_or_create_locked(day)
        for name, value in compute_day_totals(day).items():
            setattr(row, name, value)
        db.session.commit()
        return row

    row = run_with_retry(_op)
    current_app.logger.info("Closed day %s: total revenue %s cents", day.isoformat(), row.total_revenue_cents)
    return row


def get_daily_stats(day: date) -> dict:
    """Serialized row for the day; an all-zero row when nothing was sold."""
    row = db.session.query(DailyStats).filter_by(date=day).first()
    if row is not None:
        return row.to_dict()
    return DailyStats(date=day, **_zero_values()).to_dict()


def list_daily_stats(start_day: date, end_day: date) -> list[DailyStats]:
    return (
        db.session.query(DailyStats)
        .filter(DailyStats.date >= start_day, DailyStats.date <= end_day)
        .order_by(DailyStats.date.asc())
        .all()
    )


def sum_total_revenue_cents(start_day: date, end_day: date) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(DailyStats.total_revenue_cents), 0))
        .filter(DailyStats.date >= start_day, DailyStats.date <= end_day)
        .scalar()
    )
    return int(total or 0)
