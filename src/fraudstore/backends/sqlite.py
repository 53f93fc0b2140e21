"""SQLite store implementation.

One database file holds the customer ledger, transaction log, prediction log
and model registry. Every operation opens its own connection with foreign
keys enabled and runs in a single transaction.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger
from typing_extensions import override

import fraudstore.backends.base as base
import fraudstore.errors as errors
import fraudstore.records as records
import fraudstore.schema as schema

if TYPE_CHECKING:
    import ibis

_FRAUDSTORE_VERSION = "0.1.0"

# Declared column types the Ibis SQLite backend should read as temporal.
_IBIS_TYPE_MAP = {"TIMESTAMP": "timestamp", "DATE": "date"}


def _insert_sql(table: str, row: dict[str, Any]) -> str:
    columns = ", ".join(row)
    values = ", ".join(f":{name}" for name in row)
    return f"INSERT INTO {table} ({columns}) VALUES ({values})"


class SqliteStore(base.BaseStore):
    """SQLite-backed fraud store.

    Example:
        store = SqliteStore(path=".fraudstore/fraud_detection.db")
        store.initialize()
        store.upsert_customer(Customer(customer_id=1))
    """

    kind: Literal["sqlite"] = "sqlite"
    path: str
    timeout: float = 5.0

    def _connect(self, *, create: bool = False) -> sqlite3.Connection:
        """Create a database connection with foreign keys enforced.

        Unless create is set, the store file and its meta table must exist.
        """
        if not create and not Path(self.path).exists():
            raise errors.StoreNotInitializedError(self.path)

        conn = sqlite3.connect(self.path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")

        if not create:
            meta = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'meta'"
            ).fetchone()
            if meta is None:
                conn.close()
                raise errors.StoreNotInitializedError(self.path)
        return conn

    @contextmanager
    def _session(self, *, create: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back on error."""
        conn = self._connect(create=create)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @override
    def initialize(self) -> None:
        """Create tables, indexes and metadata if they don't exist."""
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        with self._session(create=True) as conn:
            for ddl in schema.TABLES.values():
                conn.execute(ddl)
            for ddl in schema.INDEXES:
                conn.execute(ddl)
            conn.execute(schema.META)
            conn.execute(
                "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
                (schema.SCHEMA_VERSION,),
            )
            conn.execute(
                "INSERT OR IGNORE INTO meta (key, value) VALUES ('fraudstore_version', ?)",
                (_FRAUDSTORE_VERSION,),
            )
        logger.debug(f"Initialized fraud store at {self.path}")

    @override
    def reset(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        with self._session(create=True) as conn:
            views = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'view' AND name LIKE 'vw\\_%' ESCAPE '\\'"
            ).fetchall()
            for row in views:
                conn.execute(f'DROP VIEW IF EXISTS "{row["name"]}"')
            for table in reversed(schema.DATA_TABLES):
                conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.execute("DROP TABLE IF EXISTS meta")
        logger.warning(f"Dropped all tables in {self.path}")
        self.initialize()

    @override
    def counts(self) -> dict[str, int]:
        with self._session() as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in schema.DATA_TABLES
            }

    @override
    def get_meta(self, key: str) -> str | None:
        with self._session() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    # --- Customer ledger ---

    def _write_customer(
        self, conn: sqlite3.Connection, customer: records.Customer
    ) -> bool:
        row = customer.to_row()
        existing = conn.execute(
            "SELECT 1 FROM customers WHERE customer_id = ?",
            (customer.customer_id,),
        ).fetchone()
        if existing is None:
            conn.execute(_insert_sql("customers", row), row)
            return True

        conn.execute(
            """
            UPDATE customers SET
                registration_date = COALESCE(:registration_date, registration_date),
                risk_score = :risk_score,
                updated_at = CURRENT_TIMESTAMP
            WHERE customer_id = :customer_id
            """,
            row,
        )
        return False

    @override
    def upsert_customer(self, customer: records.Customer) -> bool:
        with self._session() as conn:
            inserted = self._write_customer(conn, customer)
        action = "Inserted" if inserted else "Updated"
        logger.debug(f"{action} customer {customer.customer_id}")
        return inserted

    @override
    def get_customer(self, customer_id: int) -> records.Customer | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM customers WHERE customer_id = ?", (customer_id,)
            ).fetchone()
        return None if row is None else records.Customer.from_row(row)

    @override
    def list_customers(self, *, limit: int = 500) -> list[records.Customer]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM customers ORDER BY customer_id LIMIT ?", (limit,)
            ).fetchall()
        return [records.Customer.from_row(row) for row in rows]

    @override
    def update_customer_risk(self, customer_id: int, risk_score: float) -> None:
        with self._session() as conn:
            cursor = conn.execute(
                """
                UPDATE customers
                SET risk_score = ?, updated_at = CURRENT_TIMESTAMP
                WHERE customer_id = ?
                """,
                (round(risk_score, 2), customer_id),
            )
            if cursor.rowcount == 0:
                raise errors.CustomerNotFoundError(customer_id)

    @override
    def refresh_customer_aggregates(self, customer_id: int | None = None) -> int:
        sql = """
            UPDATE customers SET
                total_transactions = (
                    SELECT COUNT(*) FROM transactions t
                    WHERE t.customer_id = customers.customer_id
                ),
                total_fraud_cases = (
                    SELECT COALESCE(SUM(t.is_fraud), 0) FROM transactions t
                    WHERE t.customer_id = customers.customer_id
                ),
                updated_at = CURRENT_TIMESTAMP
        """
        params: tuple[Any, ...] = ()
        if customer_id is not None:
            sql += " WHERE customer_id = ?"
            params = (customer_id,)

        with self._session() as conn:
            updated = conn.execute(sql, params).rowcount
            if customer_id is not None and updated == 0:
                raise errors.CustomerNotFoundError(customer_id)
        logger.debug(f"Refreshed aggregates for {updated} customer(s)")
        return updated

    def _purge_counts(
        self, conn: sqlite3.Connection, customer_id: int
    ) -> base.PurgeResult:
        """Count the rows a purge of customer_id cascades to."""
        exists = conn.execute(
            "SELECT 1 FROM customers WHERE customer_id = ?", (customer_id,)
        ).fetchone()
        if exists is None:
            raise errors.CustomerNotFoundError(customer_id)

        n_transactions = conn.execute(
            "SELECT COUNT(*) FROM transactions WHERE customer_id = ?",
            (customer_id,),
        ).fetchone()[0]
        n_predictions = conn.execute(
            """
            SELECT COUNT(*) FROM predictions p
            JOIN transactions t ON t.transaction_id = p.transaction_id
            WHERE t.customer_id = ?
            """,
            (customer_id,),
        ).fetchone()[0]
        return base.PurgeResult(
            customer_id=customer_id,
            transactions=n_transactions,
            predictions=n_predictions,
        )

    @override
    def preview_purge(self, customer_id: int) -> base.PurgeResult:
        with self._session() as conn:
            return self._purge_counts(conn, customer_id)

    @override
    def purge_customer(self, customer_id: int) -> base.PurgeResult:
        with self._session() as conn:
            result = self._purge_counts(conn, customer_id)
            conn.execute("DELETE FROM customers WHERE customer_id = ?", (customer_id,))

        logger.warning(
            f"Purged customer {customer_id}: {result.transactions} transaction(s), "
            f"{result.predictions} prediction(s) removed"
        )
        return result

    # --- Transaction log ---

    def _write_transaction(
        self, conn: sqlite3.Connection, transaction: records.Transaction
    ) -> None:
        row = transaction.to_row()
        try:
            conn.execute(_insert_sql("transactions", row), row)
        except sqlite3.IntegrityError as e:
            if "FOREIGN KEY" in str(e):
                raise errors.CustomerNotFoundError(transaction.customer_id) from e
            if "UNIQUE" in str(e):
                raise errors.DuplicateRecordError(
                    "transactions", transaction.transaction_id
                ) from e
            raise
        conn.execute(
            """
            UPDATE customers SET
                total_transactions = total_transactions + 1,
                total_fraud_cases = total_fraud_cases + ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE customer_id = ?
            """,
            (int(transaction.is_fraud), transaction.customer_id),
        )

    @override
    def record_transaction(self, transaction: records.Transaction) -> None:
        with self._session() as conn:
            self._write_transaction(conn, transaction)
        logger.debug(
            f"Recorded transaction {transaction.transaction_id} "
            f"for customer {transaction.customer_id}"
        )

    @override
    def get_transaction(self, transaction_id: str) -> records.Transaction | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM transactions WHERE transaction_id = ?",
                (transaction_id,),
            ).fetchone()
        return None if row is None else records.Transaction.from_row(row)

    @override
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
    ) -> list[records.Transaction]:
        sql = "SELECT * FROM transactions WHERE 1 = 1"
        params: list[Any] = []
        if customer_id is not None:
            sql += " AND customer_id = ?"
            params.append(customer_id)
        if start is not None:
            sql += " AND transaction_date >= ?"
            params.append(records.to_db_timestamp(start))
        if end is not None:
            sql += " AND transaction_date < ?"
            params.append(records.to_db_timestamp(end))
        if is_fraud is not None:
            sql += " AND is_fraud = ?"
            params.append(int(is_fraud))
        if min_amount is not None:
            sql += " AND transaction_amount >= ?"
            params.append(min_amount)
        if max_amount is not None:
            sql += " AND transaction_amount <= ?"
            params.append(max_amount)
        sql += " ORDER BY transaction_date DESC, transaction_id DESC LIMIT ?"
        params.append(limit)

        with self._session() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [records.Transaction.from_row(row) for row in rows]

    # --- Prediction log ---

    def _write_prediction(
        self, conn: sqlite3.Connection, prediction: records.Prediction
    ) -> tuple[int, bool]:
        """Upsert a prediction. Returns (prediction_id, inserted)."""
        row = prediction.to_row()
        existing = conn.execute(
            "SELECT 1 FROM predictions WHERE transaction_id = ? AND model_name = ?",
            (prediction.transaction_id, prediction.model_name),
        ).fetchone()
        sql = (
            _insert_sql("predictions", row)
            + """
            ON CONFLICT (transaction_id, model_name) DO UPDATE SET
                predicted_fraud = excluded.predicted_fraud,
                fraud_probability = excluded.fraud_probability,
                risk_category = excluded.risk_category,
                prediction_date = excluded.prediction_date
            RETURNING prediction_id
            """
        )
        try:
            (prediction_id,) = conn.execute(sql, row).fetchall()[0]
        except sqlite3.IntegrityError as e:
            if "FOREIGN KEY" in str(e):
                raise errors.TransactionNotFoundError(prediction.transaction_id) from e
            raise
        return prediction_id, existing is None

    @override
    def record_prediction(self, prediction: records.Prediction) -> int:
        with self._session() as conn:
            prediction_id, _ = self._write_prediction(conn, prediction)
        logger.debug(
            f"Recorded {prediction.model_name} prediction {prediction_id} "
            f"for transaction {prediction.transaction_id}"
        )
        return prediction_id

    @override
    def get_predictions(self, transaction_id: str) -> list[records.Prediction]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM predictions WHERE transaction_id = ? ORDER BY model_name",
                (transaction_id,),
            ).fetchall()
        return [records.Prediction.from_row(row) for row in rows]

    @override
    def top_predictions(
        self, *, limit: int = 10, model_name: str | None = None
    ) -> list[records.Prediction]:
        sql = "SELECT * FROM predictions WHERE fraud_probability IS NOT NULL"
        params: list[Any] = []
        if model_name is not None:
            sql += " AND model_name = ?"
            params.append(model_name)
        sql += " ORDER BY fraud_probability DESC, prediction_id LIMIT ?"
        params.append(limit)

        with self._session() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [records.Prediction.from_row(row) for row in rows]

    # --- Model registry ---

    def _write_model_run(self, conn: sqlite3.Connection, run: records.ModelRun) -> int:
        row = run.to_row()
        return conn.execute(_insert_sql("model_performance", row), row).lastrowid

    @override
    def record_model_run(self, run: records.ModelRun) -> int:
        with self._session() as conn:
            model_id = self._write_model_run(conn, run)
        logger.debug(f"Recorded training run {model_id} for {run.model_name}")
        return model_id

    # --- Bulk writes ---

    @override
    def write_records(self, table: str, rows: list[records.Record]) -> list[bool]:
        if table not in schema.DATA_TABLES:
            raise errors.UnknownTableError(table, list(schema.DATA_TABLES))

        inserted: list[bool] = []
        with self._session() as conn:
            for record in rows:
                if table == "customers":
                    inserted.append(self._write_customer(conn, record))
                elif table == "transactions":
                    self._write_transaction(conn, record)
                    inserted.append(True)
                elif table == "predictions":
                    inserted.append(self._write_prediction(conn, record)[1])
                else:
                    self._write_model_run(conn, record)
                    inserted.append(True)
        logger.debug(f"Wrote {len(rows)} row(s) to {table} in one transaction")
        return inserted

    @override
    def list_model_runs(
        self, *, model_name: str | None = None, limit: int = 100
    ) -> list[records.ModelRun]:
        sql = "SELECT * FROM model_performance"
        params: list[Any] = []
        if model_name is not None:
            sql += " WHERE model_name = ?"
            params.append(model_name)
        sql += " ORDER BY training_date IS NULL, training_date DESC, model_id DESC LIMIT ?"
        params.append(limit)

        with self._session() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [records.ModelRun.from_row(row) for row in rows]

    @override
    def latest_model_run(self, model_name: str) -> records.ModelRun | None:
        runs = self.list_model_runs(model_name=model_name, limit=1)
        return runs[0] if runs else None

    # --- Reporting ---

    @override
    def connect_ibis(self) -> "ibis.BaseBackend":
        """Open an Ibis SQLite connection over the store file.

        Raises:
            StoreNotInitializedError: If the store has not been initialized.
        """
        import ibis

        self._connect().close()
        return ibis.sqlite.connect(self.path, type_map=_IBIS_TYPE_MAP)

    @override
    def execute_script(self, statements: list[str]) -> None:
        with self._session() as conn:
            for statement in statements:
                conn.execute(statement)
