"""
Money conversion, payload validation and date helpers.
"""

from datetime import date, datetime

import pytest

from coworkpos.models import Transaction
from coworkpos.money import from_cents, to_cents
from coworkpos.time_utils import add_months, iter_months, parse_iso_datetime
from coworkpos.validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_transaction,
    normalize_transaction_items,
    validate_payload,
)

POLICY = ModelValidationPolicy(
    writable_fields={"type", "amount", "payment_method", "client_name", "date"},
    required_on_create={"type", "payment_method"},
    money_fields={"amount": "amount_cents"},
    choices={"type": ("entry", "subscription", "cafe")},
)

FEES = {"entry_fee_cents": 2500, "subscription_fee_cents": 30000}


class TestMoney:

    @pytest.mark.parametrize("value,cents", [(25, 2500), (12.5, 1250), ("8.005", 801), (0.1, 10)])
    def test_to_cents(self, value, cents):
        assert to_cents(value) == cents

    @pytest.mark.parametrize("value", [True, None, "", "abc", float("nan"), [1]])
    def test_to_cents_rejects(self, value):
        with pytest.raises(ValueError):
            to_cents(value)

    def test_from_cents_keeps_whole_amounts_integral(self):
        assert from_cents(2500) == 25
        assert isinstance(from_cents(2500), int)
        assert from_cents(1250) == 12.5
        assert from_cents(None) is None


class TestValidatePayload:

    def test_camel_case_keys_map_to_columns(self):
        patch = validate_payload(
            model=Transaction,
            payload={"type": "entry", "paymentMethod": "cash", "clientName": "  Nadia ", "amount": "25"},
            policy=POLICY,
            partial=False,
        )
        assert patch == {"type": "entry", "payment_method": "cash", "client_name": "Nadia", "amount_cents": 2500}

    def test_missing_required(self):
        with pytest.raises(ValidationError, match="payment_method"):
            validate_payload(model=Transaction, payload={"type": "entry"}, policy=POLICY, partial=False)

    def test_partial_skips_required(self):
        patch = validate_payload(model=Transaction, payload={"amount": 10}, policy=POLICY, partial=True)
        assert patch == {"amount_cents": 1000}

    def test_non_writable_field(self):
        with pytest.raises(ValidationError, match="notes"):
            validate_payload(model=Transaction, payload={"notes": "x"}, policy=POLICY, partial=True)

    def test_choice_enforced(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Transaction, payload={"type": "refund"}, policy=POLICY, partial=True)

    def test_negative_amount(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Transaction, payload={"amount": -5}, policy=POLICY, partial=True)

    def test_datetime_normalized_to_utc(self):
        patch = validate_payload(
            model=Transaction, payload={"date": "2024-03-01T10:00:00+01:00"}, policy=POLICY, partial=True
        )
        assert patch["date"] == datetime(2024, 3, 1, 9, 0, 0)

    def test_bad_datetime(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Transaction, payload={"date": "hier"}, policy=POLICY, partial=True)


class TestTransactionRules:

    def test_item_quantity_must_be_positive_int(self):
        with pytest.raises(ValidationError):
            normalize_transaction_items([{"id": 1, "name": "Thé", "price": 8, "quantity": 0}])
        with pytest.raises(ValidationError):
            normalize_transaction_items([{"id": 1, "name": "Thé", "price": 8, "quantity": 1.5}])

    def test_cafe_total_is_computed(self):
        items = normalize_transaction_items([
            {"id": 1, "name": "Thé", "price": 8.5, "quantity": 3},
        ])
        state = {"type": "cafe", "date": datetime(2024, 3, 1), "items": items,
                 "amount_cents": None, "subscription_end_date": None}
        enforce_rules_transaction(state, **FEES)
        assert state["amount_cents"] == 2550

    def test_subscription_end_date_only_for_subscriptions(self):
        state = {"type": "entry", "date": datetime(2024, 3, 1), "items": None,
                 "amount_cents": None, "subscription_end_date": datetime(2024, 4, 1)}
        with pytest.raises(ValidationError):
            enforce_rules_transaction(state, **FEES)


class TestTimeUtils:

    def test_add_months_clamps(self):
        assert add_months(datetime(2024, 1, 31, 8), 1) == datetime(2024, 2, 29, 8)
        assert add_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)

    def test_parse_naive_is_utc(self):
        assert parse_iso_datetime("2024-03-01T10:00:00") == datetime(2024, 3, 1, 10)
        assert parse_iso_datetime("") is None

    def test_iter_months(self):
        months = list(iter_months(date(2023, 11, 20), date(2024, 2, 3)))
        assert months == [date(2023, 11, 1), date(2023, 12, 1), date(2024, 1, 1), date(2024, 2, 1)]
