# Overview: Net-profit and net-revenue reports over date ranges, per day and per month.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Transaction
from coworkpos.money import from_cents
from coworkpos.time_utils import (
    range_bounds,
    iter_days,
    iter_months,
    month_start,
    month_end,
    to_iso_date,
    utcnow,
)
from .expense_service import expense_breakdown_cents, sum_expenses_cents
from .inventory_service import get_purchase_prices_cents
from .stats_service import sum_total_revenue_cents

MONTH_NAMES_FR = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)


class ReportError(ValueError):
    """Raised when report parameters are unusable."""


def _check_range(start_day: date, end_day: date) -> None:
    if end_day < start_day:
        raise ReportError("La date de fin doit être postérieure ou égale à la date de début")


def _profit_cents(start_day: date, end_day: date) -> dict:
    """Revenue by type, café cost of goods sold and expenses for one bucket (cents)."""
    start, end = range_bounds(start_day, end_day)
    transactions = (
        db.session.query(Transaction)
        .filter(Transaction.date >= start, Transaction.date < end)
        .all()
    )

    revenue = {"entry": 0, "subscription": 0, "cafe": 0}
    cafe_items = []
    for tx in transactions:
        revenue[tx.type] = revenue.get(tx.type, 0) + tx.amount_cents
        if tx.type == "cafe":
            cafe_items.extend(tx.items or [])

    prices = get_purchase_prices_cents(item["id"] for item in cafe_items)
    cogs = sum(prices[item["id"]] * item["quantity"] for item in cafe_items if item["id"] in prices)

    expenses = sum_expenses_cents(start, end)
    total_revenue = sum(revenue.values())
    gross_profit = total_revenue - cogs

    return {
        "entries": revenue["entry"],
        "subscriptions": revenue["subscription"],
        "cafe": revenue["cafe"],
        "total_revenue": total_revenue,
        "cogs": cogs,
        "expenses": expenses,
        "gross_profit": gross_profit,
        "net_profit": gross_profit - expenses,
    }


def _serialize_profit(start_day: date, end_day: date, cents: dict) -> dict:
    return {
        "startDate": to_iso_date(start_day),
        "endDate": to_iso_date(end_day),
        "revenue": {
            "entries": from_cents(cents["entries"]),
            "subscriptions": from_cents(cents["subscriptions"]),
            "cafe": from_cents(cents["cafe"]),
            "total": from_cents(cents["total_revenue"]),
        },
        "costs": {
            "cafeProducts": from_cents(cents["cogs"]),
            "expenses": from_cents(cents["expenses"]),
            "total": from_cents(cents["cogs"] + cents["expenses"]),
        },
        "grossProfit": from_cents(cents["gross_profit"]),
        "netProfit": from_cents(cents["net_profit"]),
    }


def net_profit_report(start_day: date, end_day: date) -> dict:
    """
    grossProfit = revenue - COGS, netProfit = grossProfit - expenses.

    COGS counts café items whose product has an inventory purchase price.
    """
    _check_range(start_day, end_day)
    return _serialize_profit(start_day, end_day, _profit_cents(start_day, end_day))


def net_profit_daily(start_day: date, end_day: date) -> list[dict]:
    _check_range(start_day, end_day)
    days = []
    for day in iter_days(start_day, end_day):
        entry = _serialize_profit(day, day, _profit_cents(day, day))
        entry["date"] = to_iso_date(day)
        days.append(entry)
    return days


def net_profit_monthly(start_day: date, end_day: date) -> list[dict]:
    """One bucket per calendar month, clipped to the requested range."""
    _check_range(start_day, end_day)
    months = []
    for first_day in iter_months(start_day, end_day):
        bucket_start = max(first_day, start_day)
        bucket_end = min(month_end(first_day), end_day)
        entry = _serialize_profit(bucket_start, bucket_end, _profit_cents(bucket_start, bucket_end))
        entry["month"] = first_day.strftime("%Y-%m")
        entry["monthName"] = f"{MONTH_NAMES_FR[first_day.month - 1]} {first_day.year}"
        months.append(entry)
    return months


def net_revenue_report(start_day: date | None = None, end_day: date | None = None) -> dict:
    """DailyStats revenue minus expenses; defaults to the current month."""
    if start_day is None or end_day is None:
        today = utcnow().date()
        start_day, end_day = month_start(today), month_end(today)
    _check_range(start_day, end_day)

    start, end = range_bounds(start_day, end_day)
    total_revenue = sum_total_revenue_cents(start_day, end_day)
    total_expenses = sum_expenses_cents(start, end)

    return {
        "startDate": to_iso_date(start_day),
        "endDate": to_iso_date(end_day),
        "totalRevenue": from_cents(total_revenue),
        "totalExpenses": from_cents(total_expenses),
        "netRevenue": from_cents(total_revenue - total_expenses),
        "expenseBreakdown": {
            category: from_cents(amount)
            for category, amount in expense_breakdown_cents(start, end).items()
        },
    }
