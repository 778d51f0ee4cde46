# Overview: Request payload validation against model metadata plus per-entity business rules.

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Integer, Float, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from coworkpos.money import MAX_AMOUNT_CENTS, to_cents
from coworkpos.time_utils import parse_iso_datetime, add_months


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""


class NotFoundError(LookupError):
    """404-level: the referenced record does not exist."""


class ForbiddenError(PermissionError):
    """403-level: the caller's role may not act on this record."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer. Field names are the snake_case form of the JSON keys.

    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - money_fields: JSON amount field -> *_cents column it is stored in
    - choices: closed value sets (type, category, payment method...)
    - non_negative: numeric columns that may not go below zero
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    money_fields: dict[str, str] = field(default_factory=dict)
    choices: dict[str, tuple] = field(default_factory=dict)
    non_negative: set[str] = field(default_factory=set)


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(key: str) -> str:
    """clientName -> client_name; already-snake keys pass through."""
    return _CAMEL_RE.sub("_", key).lower()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any, label: str):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationError(f"{label} doit être un entier")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{label} doit être un entier")
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise ValidationError(f"{label} doit être un entier")

    # Floats (ingredient quantities)
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{label} doit être un nombre")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{label} doit être un nombre")
        if not math.isfinite(number):
            raise ValidationError(f"{label} doit être un nombre")
        return number

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{label} doit être un booléen")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{label} doit être une date ISO-8601")
            if dt is None:
                raise ValidationError(f"{label} doit être une date ISO-8601")
            return dt
        raise ValidationError(f"{label} doit être une date ISO-8601")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{label} doit être une chaîne de caractères")
        return str(value).strip()

    # Default: leave as-is (JSON columns are checked by entity rules)
    return value


def _coerce_money(value: Any, label: str) -> int:
    try:
        cents = to_cents(value)
    except ValueError:
        raise ValidationError(f"{label} doit être un montant valide")
    if cents < 0:
        raise ValidationError(f"{label} ne peut pas être négatif")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{label} dépasse le montant maximal autorisé")
    return cents


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Données JSON invalides")

    # Keep the client's key for error messages
    labels = {to_snake(k): k for k in payload.keys()}
    data = {to_snake(k): v for k, v in payload.items()}

    if not partial:
        missing = sorted(f for f in policy.required_on_create if data.get(f) is None)
        if missing:
            raise ValidationError(f"Champs obligatoires manquants: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in data.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Champ non autorisé: {labels[k]}")
        if policy.money_fields.get(k, k) not in cols:
            raise ValidationError(f"Champ inconnu: {labels[k]}")

    patch: dict = {}

    for k, raw in data.items():
        label = labels[k]
        col_key = policy.money_fields.get(k, k)
        col = cols[col_key]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{label} ne peut pas être nul")
            patch[col_key] = None
            continue

        if k in policy.money_fields:
            patch[col_key] = _coerce_money(raw, label)
            continue

        val = _coerce_value(col, raw, label)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{label} ne peut pas être vide")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{label} dépasse la longueur maximale de {col.type.length}")

        if k in policy.choices and val not in policy.choices[k]:
            raise ValidationError(f"{label} doit être l'une des valeurs: {', '.join(policy.choices[k])}")

        if k in policy.non_negative and val < 0:
            raise ValidationError(f"{label} ne peut pas être négatif")

        patch[col_key] = val

    return patch


def require_positive_quantity(value: Any, *, integer: bool) -> int | float:
    """Quantity argument of stock operations: must be a number > 0."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("La quantité doit être un nombre positif")
    if integer:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            raise ValidationError("La quantité doit être un entier positif")
    else:
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError("La quantité doit être un nombre positif")
        if not math.isfinite(value):
            raise ValidationError("La quantité doit être un nombre positif")
    if value <= 0:
        raise ValidationError("La quantité doit être supérieure à zéro")
    return value


def normalize_transaction_items(items: Any) -> list[dict]:
    """
    Café line items from the client: [{id, name, price, quantity}].

    Returns the stored form [{id, name, price_cents, quantity}].
    """
    if not isinstance(items, list):
        raise ValidationError("items doit être une liste")

    normalized = []
    for index, raw in enumerate(items):
        label = f"items[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{label} doit être un objet")

        product_id = raw.get("id")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError(f"{label}.id doit être un identifiant de produit")

        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"{label}.name est obligatoire")

        if raw.get("price") is None:
            raise ValidationError(f"{label}.price est obligatoire")
        price_cents = _coerce_money(raw["price"], f"{label}.price")

        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"{label}.quantity doit être un entier positif")

        normalized.append({
            "id": product_id,
            "name": name.strip(),
            "price_cents": price_cents,
            "quantity": quantity,
        })
    return normalized


def enforce_rules_transaction(state: dict, *, entry_fee_cents: int, subscription_fee_cents: int) -> dict:
    """
    Shape rules per transaction type, applied to the full (merged) state.

    - entry / subscription: no items; amount defaults to the configured fee
    - subscription: end date defaults to date + 1 month and must follow date
    - cafe: at least one item; amount is the sum of line totals
    Returns the normalized state.
    """
    tx_type = state.get("type")
    items = state.get("items")
    amount = state.get("amount_cents")

    if tx_type in ("entry", "subscription"):
        if items:
            raise ValidationError("Les articles ne sont autorisés que pour les ventes café")
        state["items"] = None
        if amount is None:
            state["amount_cents"] = entry_fee_cents if tx_type == "entry" else subscription_fee_cents

    if tx_type == "subscription":
        if state.get("subscription_end_date") is None:
            state["subscription_end_date"] = add_months(state["date"], 1)
        elif state["subscription_end_date"] <= state["date"]:
            raise ValidationError("La date de fin d'abonnement doit être postérieure à la date de début")
    elif state.get("subscription_end_date") is not None:
        raise ValidationError("subscriptionEndDate n'est autorisé que pour les abonnements")

    if tx_type == "cafe":
        if not items:
            raise ValidationError("Une vente café doit contenir au moins un article")
        computed = sum(item["price_cents"] * item["quantity"] for item in items)
        if amount is not None and amount != computed:
            raise ValidationError("Le montant ne correspond pas au total des articles")
        if computed > MAX_AMOUNT_CENTS:
            raise ValidationError("amount dépasse le montant maximal autorisé")
        state["amount_cents"] = computed

    return state


def enforce_rules_room_rental(state: dict) -> None:
    if state["end_time"] <= state["start_time"]:
        raise ValidationError("L'heure de fin doit être postérieure à l'heure de début")
