"""Ibis reporting views over the fraud store.

Each view is a pure function of the four stored tables, built as an Ibis
expression and recomputed on every read. The same expressions execute against
a store connection (ReportEngine.run), render to SQLite SQL for auditing
(ReportEngine.compile), and back the installed ``vw_<name>`` SQL views
(ReportEngine.install_views).
"""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import ibis
import ibis.expr.types as ir
from loguru import logger

import fraudstore.errors as errors
import fraudstore.schema as schema
import fraudstore.settings as settings

if TYPE_CHECKING:
    import pyarrow as pa

    import fraudstore.backends as backends

VIEW_PREFIX = "vw_"

# Ibis types of the stored columns, matching the SQLite declarations.
TABLE_SCHEMAS: dict[str, dict[str, str]] = {
    "customers": {
        "customer_id": "int64",
        "registration_date": "date",
        "total_transactions": "int64",
        "total_fraud_cases": "int64",
        "risk_score": "float64",
        "created_at": "timestamp",
        "updated_at": "timestamp",
    },
    "transactions": {
        "transaction_id": "string",
        "customer_id": "int64",
        "transaction_date": "timestamp",
        "transaction_amount": "float64",
        "transaction_hour": "int64",
        "day_of_week": "int64",
        "merchant_category": "string",
        "transaction_type": "string",
        "location_match": "int64",
        "device_type": "string",
        "is_weekend": "int64",
        "is_night": "int64",
        "is_high_risk_category": "int64",
        "amount_vs_avg": "float64",
        "transaction_count": "int64",
        "risk_score": "float64",
        "is_fraud": "int64",
        "created_at": "timestamp",
    },
    "predictions": {
        "prediction_id": "int64",
        "transaction_id": "string",
        "model_name": "string",
        "predicted_fraud": "int64",
        "fraud_probability": "float64",
        "risk_category": "string",
        "prediction_date": "timestamp",
    },
    "model_performance": {
        "model_id": "int64",
        "model_name": "string",
        "training_date": "timestamp",
        "accuracy": "float64",
        "precision_score": "float64",
        "recall_score": "float64",
        "f1_score": "float64",
        "roc_auc": "float64",
        "total_samples": "int64",
        "fraud_samples": "int64",
        "created_at": "timestamp",
    },
}


@dataclasses.dataclass(frozen=True)
class ReportTables:
    """The stored tables as Ibis expressions, bound or unbound."""

    customers: ir.Table
    transactions: ir.Table
    predictions: ir.Table
    model_performance: ir.Table

    @classmethod
    def from_connection(cls, con: ibis.BaseBackend) -> ReportTables:
        """Bind to the tables of a live store connection."""
        return cls(**{name: con.table(name) for name in schema.DATA_TABLES})

    @classmethod
    def unbound(cls) -> ReportTables:
        """Declare the tables by schema alone, for SQL rendering."""
        return cls(
            **{
                name: ibis.table(TABLE_SCHEMAS[name], name=name)
                for name in schema.DATA_TABLES
            }
        )


def _percentage(part: ir.IntegerValue, whole: ir.IntegerValue) -> ir.FloatingValue:
    """part / whole x 100 rounded to 2 places; null when whole is 0."""
    return (part.cast("float64") / whole.nullif(0) * 100).round(2)


def _model_predictions(
    tables: ReportTables, reporting: settings.ReportingSettings
) -> ir.Table:
    p = tables.predictions
    return p.filter(p.model_name == reporting.model_name)


def transaction_summary(
    tables: ReportTables, reporting: settings.ReportingSettings
) -> ir.Table:
    """Every transaction with the reporting model's verdict and its outcome.

    Predictions are restricted to the reporting model before the left join,
    so transactions it never scored keep their row with null prediction
    columns and a null prediction_category.
    """
    t = tables.transactions
    p = _model_predictions(tables, reporting)

    actual, predicted = t.is_fraud, p.predicted_fraud
    no_category = ibis.literal(None, type="string")
    category = ibis.ifelse(
        (actual == 1) & (predicted == 1),
        "True Positive",
        ibis.ifelse(
            (actual == 0) & (predicted == 0),
            "True Negative",
            ibis.ifelse(
                (actual == 0) & (predicted == 1),
                "False Positive",
                ibis.ifelse(
                    (actual == 1) & (predicted == 0), "False Negative", no_category
                ),
            ),
        ),
    )

    summary = t.left_join(p, t.transaction_id == p.transaction_id).select(
        t.transaction_id,
        t.customer_id,
        t.transaction_date,
        t.transaction_date.date().name("transaction_day"),
        t.transaction_amount,
        t.transaction_hour,
        t.day_of_week,
        t.merchant_category,
        t.transaction_type,
        t.device_type,
        t.is_fraud,
        t.risk_score,
        p.model_name,
        p.predicted_fraud,
        p.fraud_probability,
        p.risk_category,
        category.name("prediction_category"),
    )
    return summary.order_by(["transaction_date", "transaction_id"])


def daily_fraud_summary(
    tables: ReportTables, reporting: settings.ReportingSettings
) -> ir.Table:
    """Transaction counts, fraud counts and amounts per calendar day."""
    t = tables.transactions
    daily = t.group_by(date=t.transaction_date.date()).aggregate(
        total_transactions=t.count(),
        fraud_cases=t.is_fraud.sum(),
        total_amount=t.transaction_amount.sum().round(2),
        fraud_amount=ibis.ifelse(t.is_fraud == 1, t.transaction_amount, 0.0)
        .sum()
        .round(2),
    )
    return daily.select(
        "date",
        "total_transactions",
        "fraud_cases",
        _percentage(daily.fraud_cases, daily.total_transactions).name("fraud_rate"),
        "total_amount",
        "fraud_amount",
    ).order_by("date")


def high_risk_transactions(
    tables: ReportTables, reporting: settings.ReportingSettings
) -> ir.Table:
    """Transactions the reporting model scored above the high-risk threshold."""
    t = tables.transactions
    p = _model_predictions(tables, reporting)
    p = p.filter(p.fraud_probability > reporting.high_risk_threshold)

    risky = t.join(p, t.transaction_id == p.transaction_id).select(
        t.transaction_id,
        t.customer_id,
        t.transaction_date,
        t.transaction_amount,
        t.merchant_category,
        t.transaction_type,
        p.model_name,
        p.fraud_probability,
        p.risk_category,
        t.is_fraud.name("actual_fraud"),
    )
    return risky.order_by([ibis.desc("fraud_probability"), "transaction_id"])


def customer_risk_profile(
    tables: ReportTables, reporting: settings.ReportingSettings
) -> ir.Table:
    """Per-customer fraud statistics over customers with transactions."""
    c, t = tables.customers, tables.transactions
    p = _model_predictions(tables, reporting)

    scored = (
        c.join(t, c.customer_id == t.customer_id)
        .left_join(p, t.transaction_id == p.transaction_id)
        .select(
            c.customer_id,
            t.transaction_id,
            t.transaction_date,
            t.transaction_amount,
            t.is_fraud,
            p.fraud_probability,
        )
    )
    profile = scored.group_by("customer_id").aggregate(
        total_transactions=scored.transaction_id.count(),
        fraud_cases=scored.is_fraud.sum(),
        avg_transaction_amount=scored.transaction_amount.mean().round(2),
        max_transaction_amount=scored.transaction_amount.max().round(2),
        avg_fraud_probability=scored.fraud_probability.mean().round(4),
        last_transaction_date=scored.transaction_date.max(),
    )
    return profile.select(
        "customer_id",
        "total_transactions",
        "fraud_cases",
        _percentage(profile.fraud_cases, profile.total_transactions).name(
            "customer_fraud_rate"
        ),
        "avg_transaction_amount",
        "max_transaction_amount",
        "avg_fraud_probability",
        "last_transaction_date",
    ).order_by("customer_id")


def model_performance(
    tables: ReportTables, reporting: settings.ReportingSettings
) -> ir.Table:
    """The latest training run of each model.

    Runs are ranked per model by training_date (nulls last), then by
    model_id, and only the first-ranked row is kept.
    """
    m = tables.model_performance
    window = ibis.window(
        group_by=m.model_name,
        order_by=[m.training_date.isnull(), ibis.desc(m.training_date), ibis.desc(m.model_id)],
    )
    ranked = m.mutate(run_rank=ibis.row_number().over(window))
    latest = ranked.filter(ranked.run_rank == 0)
    return latest.select(
        latest.model_name,
        latest.training_date.name("last_training_date"),
        latest.accuracy,
        latest.precision_score,
        latest.recall_score,
        latest.f1_score,
        latest.roc_auc,
        latest.total_samples,
        latest.fraud_samples,
    ).order_by("model_name")


ViewBuilder = Callable[[ReportTables, settings.ReportingSettings], ir.Table]


@dataclasses.dataclass(frozen=True)
class ViewDefinition:
    """A named reporting view and the stored tables it reads."""

    name: str
    builder: ViewBuilder
    source_tables: tuple[str, ...]

    @property
    def sql_name(self) -> str:
        return f"{VIEW_PREFIX}{self.name}"


VIEWS: dict[str, ViewDefinition] = {
    view.name: view
    for view in (
        ViewDefinition(
            "transaction_summary",
            transaction_summary,
            ("transactions", "predictions"),
        ),
        ViewDefinition(
            "daily_fraud_summary",
            daily_fraud_summary,
            ("transactions",),
        ),
        ViewDefinition(
            "high_risk_transactions",
            high_risk_transactions,
            ("transactions", "predictions"),
        ),
        ViewDefinition(
            "customer_risk_profile",
            customer_risk_profile,
            ("customers", "transactions", "predictions"),
        ),
        ViewDefinition(
            "model_performance",
            model_performance,
            ("model_performance",),
        ),
    )
}


@dataclasses.dataclass(frozen=True)
class CompiledView:
    """Result of compiling a reporting view to SQL via Ibis."""

    name: str
    sql: str
    ibis_expr: ir.Table
    source_tables: list[str]


def get_view(name: str) -> ViewDefinition:
    """Look up a view definition by name.

    Raises:
        UnknownViewError: If no view has this name.
    """
    try:
        return VIEWS[name]
    except KeyError:
        raise errors.UnknownViewError(name, list(VIEWS)) from None


class ReportEngine:
    """Builds, executes and installs the reporting views of one store.

    Example:
        engine = ReportEngine(store, settings.ReportingSettings())
        table = engine.run("high_risk_transactions", limit=20)
    """

    def __init__(
        self,
        store: backends.BaseStore,
        reporting: settings.ReportingSettings | None = None,
    ) -> None:
        self.store = store
        self.reporting = reporting or settings.ReportingSettings()

    def build(self, name: str, tables: ReportTables | None = None) -> ir.Table:
        """Build a view's Ibis expression.

        Args:
            name: View name.
            tables: Tables to build over. Defaults to unbound tables.
        """
        view = get_view(name)
        return view.builder(tables or ReportTables.unbound(), self.reporting)

    def run(self, name: str, limit: int | None = None) -> pa.Table:
        """Execute a view against the store and return its rows.

        Raises:
            UnknownViewError: If no view has this name.
            StoreNotInitializedError: If the store has not been initialized.
        """
        view = get_view(name)
        con = self.store.connect_ibis()
        try:
            expr = view.builder(ReportTables.from_connection(con), self.reporting)
            if limit is not None:
                expr = expr.limit(limit)
            t0 = time.perf_counter()
            result = con.to_pyarrow(expr)
            elapsed = time.perf_counter() - t0
        finally:
            con.disconnect()

        logger.debug(f"View {name}: {elapsed * 1000:.1f}ms ({result.num_rows} rows)")
        return result

    def compile(self, name: str) -> CompiledView:
        """Compile a view to SQLite SQL."""
        view = get_view(name)
        expr = self.build(name)
        return CompiledView(
            name=name,
            sql=str(ibis.to_sql(expr, dialect="sqlite")),
            ibis_expr=expr,
            source_tables=list(view.source_tables),
        )

    def install_views(self) -> list[str]:
        """Create or replace the vw_<name> SQL views in the store.

        Returns:
            Names of the installed SQL views.
        """
        statements: list[str] = []
        installed: list[str] = []
        for name, view in VIEWS.items():
            compiled = self.compile(name)
            statements.append(f'DROP VIEW IF EXISTS "{view.sql_name}"')
            statements.append(f'CREATE VIEW "{view.sql_name}" AS {compiled.sql}')
            installed.append(view.sql_name)

        self.store.execute_script(statements)
        logger.info(f"Installed {len(installed)} view(s): {', '.join(installed)}")
        return installed
