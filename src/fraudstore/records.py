"""Record models for the four stored tables.

Records are the unit of exchange between callers and a store: they validate
value ranges, round decimal columns to their declared precision, and convert
to and from database rows. Flags are booleans in Python and 0/1 integers in
the database. Timestamps are stored as naive UTC ``YYYY-MM-DD HH:MM:SS[.ffffff]``
text.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, ClassVar

import pydantic as pdt

# Risk category thresholds applied when a scorer omits the category.
HIGH_RISK_ABOVE = 0.8
MEDIUM_RISK_ABOVE = 0.5


def risk_category_for(probability: float) -> str:
    """Map a fraud probability to its High/Medium/Low risk category."""
    if probability > HIGH_RISK_ABOVE:
        return "High"
    if probability > MEDIUM_RISK_ABOVE:
        return "Medium"
    return "Low"


def to_db_timestamp(value: datetime) -> str:
    """Render a datetime as naive UTC text for storage."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(sep=" ")


def _round(value: float | None, digits: int) -> float | None:
    return None if value is None else round(value, digits)


class Record(pdt.BaseModel):
    """Base record: frozen, closed to unknown fields."""

    model_config = pdt.ConfigDict(
        frozen=True,
        extra="forbid",
        coerce_numbers_to_str=True,
        protected_namespaces=(),
    )

    table: ClassVar[str]
    # Columns filled by the database and never written by callers
    generated: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_row(cls, row: Any) -> Record:
        """Build a record from a mapping-like database row."""
        return cls.model_validate(dict(row))

    def to_row(self) -> dict[str, Any]:
        """Return column values ready to bind as SQL parameters."""
        row: dict[str, Any] = {}
        for name, value in self.model_dump(exclude=set(self.generated)).items():
            if isinstance(value, bool):
                value = int(value)
            elif isinstance(value, datetime):
                value = to_db_timestamp(value)
            elif isinstance(value, date):
                value = value.isoformat()
            row[name] = value
        return row


class Customer(Record):
    """A customer and its running risk aggregates."""

    table: ClassVar[str] = "customers"
    generated: ClassVar[tuple[str, ...]] = ("created_at", "updated_at")

    customer_id: int
    registration_date: date | None = None
    total_transactions: int = pdt.Field(default=0, ge=0)
    total_fraud_cases: int = pdt.Field(default=0, ge=0)
    risk_score: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @pdt.field_validator("risk_score")
    @classmethod
    def _risk_score_precision(cls, v: float) -> float:
        return round(v, 2)

    @pdt.model_validator(mode="after")
    def validate_fraud_cases(self) -> Customer:
        """Fraud cases are a subset of transactions."""
        if self.total_fraud_cases > self.total_transactions:
            raise ValueError(
                f"total_fraud_cases ({self.total_fraud_cases}) cannot exceed "
                f"total_transactions ({self.total_transactions})"
            )
        return self


class Transaction(Record):
    """One card transaction with its engineered features and fraud label.

    Features are stored exactly as the feature-engineering step produced them.
    """

    table: ClassVar[str] = "transactions"
    generated: ClassVar[tuple[str, ...]] = ("created_at",)

    transaction_id: str = pdt.Field(min_length=1, max_length=50)
    customer_id: int
    transaction_date: datetime
    transaction_amount: float
    transaction_hour: int | None = pdt.Field(default=None, ge=0, le=23)
    day_of_week: int | None = pdt.Field(default=None, ge=0, le=6)
    merchant_category: str | None = pdt.Field(default=None, max_length=50)
    transaction_type: str | None = pdt.Field(default=None, max_length=50)
    location_match: bool | None = None
    device_type: str | None = pdt.Field(default=None, max_length=50)
    is_weekend: bool | None = None
    is_night: bool | None = None
    is_high_risk_category: bool | None = None
    amount_vs_avg: float | None = None
    transaction_count: int | None = pdt.Field(default=None, ge=0)
    risk_score: float | None = None
    is_fraud: bool = False
    created_at: datetime | None = None

    @pdt.field_validator("transaction_amount", "risk_score")
    @classmethod
    def _two_decimals(cls, v: float | None) -> float | None:
        return _round(v, 2)

    @pdt.field_validator("amount_vs_avg")
    @classmethod
    def _four_decimals(cls, v: float | None) -> float | None:
        return _round(v, 4)


class Prediction(Record):
    """A model's verdict on one transaction."""

    table: ClassVar[str] = "predictions"
    generated: ClassVar[tuple[str, ...]] = ("prediction_id",)

    prediction_id: int | None = None
    transaction_id: str = pdt.Field(min_length=1, max_length=50)
    model_name: str = pdt.Field(min_length=1, max_length=50)
    predicted_fraud: bool | None = None
    fraud_probability: float | None = pdt.Field(default=None, ge=0, le=1)
    risk_category: str | None = pdt.Field(default=None, max_length=20)
    prediction_date: datetime = pdt.Field(
        default_factory=lambda: datetime.now(timezone.utc).replace(tzinfo=None)
    )

    @pdt.field_validator("fraud_probability")
    @classmethod
    def _five_decimals(cls, v: float | None) -> float | None:
        return _round(v, 5)

    @pdt.model_validator(mode="before")
    @classmethod
    def default_risk_category(cls, data: Any) -> Any:
        """Derive the risk category from the probability when it is missing."""
        if isinstance(data, dict) and data.get("risk_category") is None:
            probability = data.get("fraud_probability")
            if isinstance(probability, (int, float)) and 0 <= probability <= 1:
                data = {**data, "risk_category": risk_category_for(probability)}
        return data


class ModelRun(Record):
    """Evaluation metrics of one training run."""

    table: ClassVar[str] = "model_performance"
    generated: ClassVar[tuple[str, ...]] = ("model_id", "created_at")

    model_id: int | None = None
    model_name: str = pdt.Field(min_length=1, max_length=50)
    training_date: datetime | None = None
    accuracy: float | None = pdt.Field(default=None, ge=0, le=1)
    precision_score: float | None = pdt.Field(default=None, ge=0, le=1)
    recall_score: float | None = pdt.Field(default=None, ge=0, le=1)
    f1_score: float | None = pdt.Field(default=None, ge=0, le=1)
    roc_auc: float | None = pdt.Field(default=None, ge=0, le=1)
    total_samples: int | None = pdt.Field(default=None, ge=0)
    fraud_samples: int | None = pdt.Field(default=None, ge=0)
    created_at: datetime | None = None

    @pdt.field_validator(
        "accuracy", "precision_score", "recall_score", "f1_score", "roc_auc"
    )
    @classmethod
    def _five_decimals(cls, v: float | None) -> float | None:
        return _round(v, 5)

    @pdt.model_validator(mode="after")
    def validate_sample_counts(self) -> ModelRun:
        """Fraud samples are a subset of all samples."""
        if (
            self.total_samples is not None
            and self.fraud_samples is not None
            and self.fraud_samples > self.total_samples
        ):
            raise ValueError(
                f"fraud_samples ({self.fraud_samples}) cannot exceed "
                f"total_samples ({self.total_samples})"
            )
        return self


RECORD_TYPES: dict[str, type[Record]] = {
    cls.table: cls for cls in (Customer, Transaction, Prediction, ModelRun)
}
