# Overview: Query-string and body argument parsing shared by the route modules.

from __future__ import annotations

from datetime import date

from flask import request

from ..validation import ValidationError
from coworkpos.time_utils import parse_day


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Données JSON invalides")
    return payload


def day_arg(name: str, *, required: bool = False, default: date | None = None) -> date | None:
    """`?name=YYYY-MM-DD` (or any ISO-8601 datetime) as a UTC calendar day."""
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        if required:
            raise ValidationError(f"Le paramètre {name} est obligatoire")
        return default
    try:
        return parse_day(raw)
    except ValueError:
        raise ValidationError(f"Format de date invalide pour {name}")


def day_range_args() -> tuple[date, date]:
    start_day = day_arg("startDate", required=True)
    end_day = day_arg("endDate", required=True)
    if end_day < start_day:
        raise ValidationError("endDate doit être postérieure ou égale à startDate")
    return start_day, end_day


def int_arg(name: str, default: int | None = None, *, minimum: int = 0) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Le paramètre {name} doit être un entier")
    if value < minimum:
        raise ValidationError(f"Le paramètre {name} doit être supérieur ou égal à {minimum}")
    return value


def body_int(payload: dict, key: str, *, required: bool = True) -> int | None:
    value = payload.get(key)
    if value is None:
        if required:
            raise ValidationError(f"{key} est obligatoire")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} doit être un entier")
    return value


def body_reason(payload: dict) -> str | None:
    reason = payload.get("reason")
    if reason is None:
        return None
    if not isinstance(reason, str):
        raise ValidationError("reason doit être une chaîne de caractères")
    return reason.strip() or None
