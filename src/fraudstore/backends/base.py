"""Base class for fraudstore storage backends.

A backend owns the four stored tables (customer ledger, transaction log,
prediction log, model registry) and hands the reporting layer an Ibis
connection over the same data. Each environment in fraudstore.yaml names the
backend it uses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import pydantic as pdt

if TYPE_CHECKING:
    import ibis

    import fraudstore.records as records


@dataclass(frozen=True)
class PurgeResult:
    """Rows removed by a cascading customer purge."""

    customer_id: int
    transactions: int
    predictions: int


class BaseStore(pdt.BaseModel, strict=True, frozen=True, extra="forbid"):
    """Storage backend interface.

    Methods raise NotImplementedError here so configuration can be loaded and
    validated without a concrete backend.
    """

    def initialize(self) -> None:
        """Create tables and indexes if they don't exist.

        Must be called before any other operation. Idempotent.
        """
        raise NotImplementedError("Store.initialize() not implemented")

    def reset(self) -> None:
        """Drop every table and installed view, then re-initialize."""
        raise NotImplementedError("Store.reset() not implemented")

    def counts(self) -> dict[str, int]:
        """Return the row count of each stored table."""
        raise NotImplementedError("Store.counts() not implemented")

    def get_meta(self, key: str) -> str | None:
        """Get a store metadata value (schema_version, fraudstore_version)."""
        raise NotImplementedError("Store.get_meta() not implemented")

    # --- Customer ledger ---

    def upsert_customer(self, customer: "records.Customer") -> bool:
        """Insert a customer if absent, otherwise update its descriptive fields.

        On update, registration_date is replaced only when provided and
        risk_score is always replaced. Running totals are never overwritten.

        Args:
            customer: Customer record to store.

        Returns:
            True if the customer was inserted, False if it already existed.
        """
        raise NotImplementedError("Store.upsert_customer() not implemented")

    def get_customer(self, customer_id: int) -> "records.Customer | None":
        """Fetch a customer by id, or None."""
        raise NotImplementedError("Store.get_customer() not implemented")

    def list_customers(self, *, limit: int = 500) -> "list[records.Customer]":
        """List customers ordered by id."""
        raise NotImplementedError("Store.list_customers() not implemented")

    def update_customer_risk(self, customer_id: int, risk_score: float) -> None:
        """Set a customer's risk score.

        Raises:
            CustomerNotFoundError: If the customer does not exist.
        """
        raise NotImplementedError("Store.update_customer_risk() not implemented")

    def refresh_customer_aggregates(self, customer_id: int | None = None) -> int:
        """Recompute running totals from the transaction log.

        Args:
            customer_id: Refresh one customer, or all when None.

        Returns:
            Number of customers updated.

        Raises:
            CustomerNotFoundError: If a specific customer does not exist.
        """
        raise NotImplementedError(
            "Store.refresh_customer_aggregates() not implemented"
        )

    def preview_purge(self, customer_id: int) -> PurgeResult:
        """Count the rows purge_customer would remove, without deleting.

        Raises:
            CustomerNotFoundError: If the customer does not exist.
        """
        raise NotImplementedError("Store.preview_purge() not implemented")

    def purge_customer(self, customer_id: int) -> PurgeResult:
        """Delete a customer, cascading to its transactions and predictions.

        Raises:
            CustomerNotFoundError: If the customer does not exist.
        """
        raise NotImplementedError("Store.purge_customer() not implemented")

    # --- Transaction log ---

    def record_transaction(self, transaction: "records.Transaction") -> None:
        """Append a transaction and update the owning customer's totals.

        Raises:
            CustomerNotFoundError: If the customer does not exist.
            DuplicateRecordError: If the transaction id is already stored.
        """
        raise NotImplementedError("Store.record_transaction() not implemented")

    def get_transaction(self, transaction_id: str) -> "records.Transaction | None":
        """Fetch a transaction by id, or None."""
        raise NotImplementedError("Store.get_transaction() not implemented")

    def list_transactions(
        self,
        *,
        customer_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        is_fraud: bool | None = None,
        min_amount: float | None = None,
        max_amount: float | None = None,
        limit: int = 500,
    ) -> "list[records.Transaction]":
        """List transactions newest first, filtered on the indexed columns.

        Args:
            customer_id: Only this customer's transactions.
            start: Inclusive lower bound on transaction_date.
            end: Exclusive upper bound on transaction_date.
            is_fraud: Only fraud (True) or legitimate (False) transactions.
            min_amount: Inclusive lower bound on transaction_amount.
            max_amount: Inclusive upper bound on transaction_amount.
            limit: Maximum number of rows.
        """
        raise NotImplementedError("Store.list_transactions() not implemented")

    # --- Prediction log ---

    def record_prediction(self, prediction: "records.Prediction") -> int:
        """Store a model's prediction for a transaction.

        A second prediction by the same model for the same transaction
        replaces the first and keeps its prediction_id.

        Returns:
            The prediction_id.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
        """
        raise NotImplementedError("Store.record_prediction() not implemented")

    def get_predictions(self, transaction_id: str) -> "list[records.Prediction]":
        """All predictions for a transaction, ordered by model name."""
        raise NotImplementedError("Store.get_predictions() not implemented")

    def top_predictions(
        self, *, limit: int = 10, model_name: str | None = None
    ) -> "list[records.Prediction]":
        """Riskiest predictions first, optionally for a single model."""
        raise NotImplementedError("Store.top_predictions() not implemented")

    # --- Model registry ---

    def record_model_run(self, run: "records.ModelRun") -> int:
        """Append a training run's metrics. Returns the model_id."""
        raise NotImplementedError("Store.record_model_run() not implemented")

    # --- Bulk writes ---

    def write_records(self, table: str, rows: "list[records.Record]") -> list[bool]:
        """Write validated records to one table in a single transaction.

        Each record goes through the same logic as its single-row operation
        (customer upsert, ledger totals, prediction upsert). If any record
        fails, no record of the batch is stored.

        Returns:
            One flag per record: True if it inserted a row, False if it
            updated an existing one.

        Raises:
            UnknownTableError: If table is not a stored table.
            CustomerNotFoundError, TransactionNotFoundError, DuplicateRecordError:
                For the first record violating a constraint.
        """
        raise NotImplementedError("Store.write_records() not implemented")

    def list_model_runs(
        self, *, model_name: str | None = None, limit: int = 100
    ) -> "list[records.ModelRun]":
        """List training runs, newest training date first."""
        raise NotImplementedError("Store.list_model_runs() not implemented")

    def latest_model_run(self, model_name: str) -> "records.ModelRun | None":
        """The run with the latest training date for a model, or None."""
        raise NotImplementedError("Store.latest_model_run() not implemented")

    # --- Reporting ---

    def connect_ibis(self) -> "ibis.BaseBackend":
        """Open an Ibis connection over the stored tables."""
        raise NotImplementedError("Store.connect_ibis() not implemented")

    def execute_script(self, statements: list[str]) -> None:
        """Run raw DDL statements in a single transaction."""
        raise NotImplementedError("Store.execute_script() not implemented")
