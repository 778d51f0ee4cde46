# backend/coworkpos/routes/stats.py
"""
Revenue statistics, profit reports and the manual day close.
"""
from flask import Blueprint, jsonify

from ..services import stats_service, reporting_service
from ..services.reporting_service import ReportError
from ..permissions import Role
from ..validation import ValidationError
from ..decorators import require_auth, require_role
from coworkpos.time_utils import utcnow, parse_day
from .params import json_body, day_arg, day_range_args

stats_bp = Blueprint("stats", __name__, url_prefix="/api")


def _body_day(payload: dict):
    raw = payload.get("date")
    if raw is None:
        return utcnow().date()
    if not isinstance(raw, str):
        raise ValidationError("date doit être une date ISO-8601")
    try:
        day = parse_day(raw)
    except ValueError:
        raise ValidationError("date doit être une date ISO-8601")
    if day is None:
        raise ValidationError("date doit être une date ISO-8601")
    return day


@stats_bp.get("/stats/daily")
@require_auth
def daily_stats():
    """Query param: date (defaults to today, UTC)."""
    try:
        day = day_arg("date", default=utcnow().date())
    except ValidationError as e:
        return {"message": str(e)}, 400
    return stats_service.get_daily_stats(day)


@stats_bp.get("/stats/range")
@require_auth
def stats_range():
    try:
        start_day, end_day = day_range_args()
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify([row.to_dict() for row in stats_service.list_daily_stats(start_day, end_day)])


@stats_bp.get("/stats/net-profit")
@require_auth
@require_role(Role.ADMIN)
def net_profit():
    try:
        start_day, end_day = day_range_args()
        return reporting_service.net_profit_report(start_day, end_day)
    except (ValidationError, ReportError) as e:
        return {"message": str(e)}, 400


@stats_bp.get("/stats/net-profit/daily")
@require_auth
@require_role(Role.ADMIN)
def net_profit_daily():
    try:
        start_day, end_day = day_range_args()
        rows = reporting_service.net_profit_daily(start_day, end_day)
    except (ValidationError, ReportError) as e:
        return {"message": str(e)}, 400
    return jsonify(rows)


@stats_bp.get("/stats/net-profit/monthly")
@require_auth
@require_role(Role.ADMIN)
def net_profit_monthly():
    try:
        start_day, end_day = day_range_args()
        rows = reporting_service.net_profit_monthly(start_day, end_day)
    except (ValidationError, ReportError) as e:
        return {"message": str(e)}, 400
    return jsonify(rows)


@stats_bp.get("/stats/net-revenue")
@require_auth
def net_revenue():
    """startDate/endDate are optional together; the current month otherwise."""
    try:
        start_day = day_arg("startDate")
        end_day = day_arg("endDate")
        if (start_day is None) != (end_day is None):
            return {"message": "startDate et endDate doivent être fournis ensemble"}, 400
        return reporting_service.net_revenue_report(start_day, end_day)
    except (ValidationError, ReportError) as e:
        return {"message": str(e)}, 400


@stats_bp.post("/close-day")
@require_auth
@require_role(Role.ADMIN)
def close_day():
    """
    Re-derive a day's statistics from its transactions.

    Body (optional): {"date": "YYYY-MM-DD"}; defaults to today (UTC).
    """
    try:
        day = _body_day(json_body())
    except ValidationError as e:
        return {"message": str(e)}, 400

    row = stats_service.close_day(day)
    return {"message": "Journée clôturée", "stats": row.to_dict()}, 200
