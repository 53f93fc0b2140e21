"""Tests for record models."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pydantic as pdt
import pytest

import fraudstore.records as records


class TestRiskCategory:
    """Tests for the default probability thresholds."""

    @pytest.mark.parametrize(
        ("probability", "expected"),
        [
            (0.95, "High"),
            (0.81, "High"),
            (0.8, "Medium"),
            (0.51, "Medium"),
            (0.5, "Low"),
            (0.0, "Low"),
        ],
    )
    def test_thresholds(self, probability, expected) -> None:
        """High above 0.8, Medium above 0.5, Low otherwise."""
        assert records.risk_category_for(probability) == expected


class TestTimestamps:
    """Tests for database timestamp rendering."""

    def test_naive_timestamp_kept(self) -> None:
        assert records.to_db_timestamp(datetime(2024, 1, 15, 10, 30)) == (
            "2024-01-15 10:30:00"
        )

    def test_aware_timestamp_converted_to_utc(self) -> None:
        """Aware datetimes are stored as naive UTC."""
        value = datetime(2024, 1, 15, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        assert records.to_db_timestamp(value) == "2024-01-15 10:00:00"


class TestCustomer:
    """Tests for Customer records."""

    def test_defaults(self) -> None:
        customer = records.Customer(customer_id=1)

        assert customer.total_transactions == 0
        assert customer.total_fraud_cases == 0
        assert customer.risk_score == 0.0
        assert customer.registration_date is None

    def test_risk_score_rounded_to_two_places(self) -> None:
        assert records.Customer(customer_id=1, risk_score=0.4567).risk_score == 0.46

    def test_fraud_cases_cannot_exceed_transactions(self) -> None:
        with pytest.raises(pdt.ValidationError, match="cannot exceed"):
            records.Customer(customer_id=1, total_transactions=1, total_fraud_cases=2)

    def test_negative_totals_rejected(self) -> None:
        with pytest.raises(pdt.ValidationError):
            records.Customer(customer_id=1, total_transactions=-1)

    def test_to_row_excludes_generated_columns(self) -> None:
        row = records.Customer(
            customer_id=7, registration_date=date(2023, 5, 1)
        ).to_row()

        assert "created_at" not in row
        assert "updated_at" not in row
        assert row["registration_date"] == "2023-05-01"

    def test_records_are_frozen(self) -> None:
        customer = records.Customer(customer_id=1)

        with pytest.raises(pdt.ValidationError):
            customer.risk_score = 0.9


class TestTransaction:
    """Tests for Transaction records."""

    def _transaction(self, **overrides) -> records.Transaction:
        values = {
            "transaction_id": "T1",
            "customer_id": 1,
            "transaction_date": datetime(2024, 1, 15, 10, 30),
            "transaction_amount": 100,
        }
        values.update(overrides)
        return records.Transaction(**values)

    def test_amounts_rounded(self) -> None:
        """Amount and risk score keep 2 places, amount_vs_avg keeps 4."""
        txn = self._transaction(
            transaction_amount=10.456, risk_score=0.12345, amount_vs_avg=1.234567
        )

        assert txn.transaction_amount == 10.46
        assert txn.risk_score == 0.12
        assert txn.amount_vs_avg == 1.2346

    def test_hour_and_weekday_ranges(self) -> None:
        with pytest.raises(pdt.ValidationError):
            self._transaction(transaction_hour=24)
        with pytest.raises(pdt.ValidationError):
            self._transaction(day_of_week=7)

    def test_identifier_length(self) -> None:
        with pytest.raises(pdt.ValidationError):
            self._transaction(transaction_id="")
        with pytest.raises(pdt.ValidationError):
            self._transaction(transaction_id="T" * 51)

    def test_numeric_identifier_coerced_to_string(self) -> None:
        """Identifiers read from files as numbers are kept as text."""
        assert self._transaction(transaction_id=1001).transaction_id == "1001"

    def test_to_row_stores_flags_as_integers(self) -> None:
        row = self._transaction(is_fraud=True, is_night=False).to_row()

        assert row["is_fraud"] == 1
        assert row["is_night"] == 0
        assert row["location_match"] is None
        assert row["transaction_date"] == "2024-01-15 10:30:00"
        assert "created_at" not in row


class TestPrediction:
    """Tests for Prediction records."""

    def test_risk_category_filled_from_probability(self) -> None:
        prediction = records.Prediction(
            transaction_id="T1", model_name="Random Forest", fraud_probability=0.9
        )

        assert prediction.risk_category == "High"

    def test_explicit_risk_category_kept(self) -> None:
        prediction = records.Prediction(
            transaction_id="T1",
            model_name="Random Forest",
            fraud_probability=0.9,
            risk_category="Review",
        )

        assert prediction.risk_category == "Review"

    def test_no_probability_no_category(self) -> None:
        prediction = records.Prediction(transaction_id="T1", model_name="Random Forest")

        assert prediction.risk_category is None

    def test_probability_range(self) -> None:
        with pytest.raises(pdt.ValidationError):
            records.Prediction(
                transaction_id="T1", model_name="Random Forest", fraud_probability=1.5
            )

    def test_probability_rounded_to_five_places(self) -> None:
        prediction = records.Prediction(
            transaction_id="T1", model_name="RF", fraud_probability=0.1234567
        )

        assert prediction.fraud_probability == 0.12346

    def test_prediction_date_defaults_to_now(self) -> None:
        prediction = records.Prediction(transaction_id="T1", model_name="RF")

        assert prediction.prediction_date.tzinfo is None
        assert "prediction_id" not in prediction.to_row()


class TestModelRun:
    """Tests for ModelRun records."""

    def test_metrics_range(self) -> None:
        with pytest.raises(pdt.ValidationError):
            records.ModelRun(model_name="RF", accuracy=1.2)

    def test_fraud_samples_cannot_exceed_total(self) -> None:
        with pytest.raises(pdt.ValidationError, match="cannot exceed"):
            records.ModelRun(model_name="RF", total_samples=10, fraud_samples=11)

    def test_to_row_excludes_generated_columns(self) -> None:
        row = records.ModelRun(model_name="RF", f1_score=0.812345678).to_row()

        assert "model_id" not in row
        assert "created_at" not in row
        assert row["f1_score"] == 0.81235


def test_record_types_cover_all_tables() -> None:
    assert set(records.RECORD_TYPES) == {
        "customers",
        "transactions",
        "predictions",
        "model_performance",
    }
