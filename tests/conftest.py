"""Global test configuration and fixtures.

Applies workarounds that must be in place before any test module imports.
"""

from __future__ import annotations

import decimal

# ---------------------------------------------------------------------------
# Python 3.14 workaround for sqlglot / ibis
# ---------------------------------------------------------------------------
# sqlglot's Oracle compiler triggers decimal.InvalidOperation when parsing
# the literal "binary_double_nan" during ibis backend initialization. The
# trap must be off before the first ibis import in the session.
# ---------------------------------------------------------------------------
decimal.getcontext().traps[decimal.InvalidOperation] = False

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402

import fraudstore.backends.sqlite as sqlite  # noqa: E402
import fraudstore.records as records  # noqa: E402

CONFIG = """
name: test-project
default_env: dev
environments:
  dev:
    store:
      kind: sqlite
      path: .fraudstore/dev.db
  prd:
    store:
      kind: sqlite
      path: .fraudstore/prd.db
      timeout: 10.0
    reporting:
      model_name: XGBoost
      high_risk_threshold: 0.9
"""


@pytest.fixture
def store(tmp_path) -> sqlite.SqliteStore:
    """An initialized, empty store."""
    s = sqlite.SqliteStore(path=str(tmp_path / "fraud.db"))
    s.initialize()
    return s


@pytest.fixture
def scenario_store(store) -> sqlite.SqliteStore:
    """Customer 1 with T1 (100, legitimate) and T2 (500, fraud), both scored."""
    store.upsert_customer(records.Customer(customer_id=1))
    store.record_transaction(
        records.Transaction(
            transaction_id="T1",
            customer_id=1,
            transaction_date=datetime(2024, 1, 15, 10, 30),
            transaction_amount=100,
            merchant_category="grocery",
            transaction_type="purchase",
            is_fraud=False,
        )
    )
    store.record_transaction(
        records.Transaction(
            transaction_id="T2",
            customer_id=1,
            transaction_date=datetime(2024, 1, 16, 23, 45),
            transaction_amount=500,
            merchant_category="electronics",
            transaction_type="online",
            is_fraud=True,
        )
    )
    store.record_prediction(
        records.Prediction(
            transaction_id="T1",
            model_name="Random Forest",
            predicted_fraud=False,
            fraud_probability=0.1,
        )
    )
    store.record_prediction(
        records.Prediction(
            transaction_id="T2",
            model_name="Random Forest",
            predicted_fraud=True,
            fraud_probability=0.9,
        )
    )
    return store


@pytest.fixture
def project_dir(tmp_path):
    """A project directory holding fraudstore.yaml."""
    (tmp_path / "fraudstore.yaml").write_text(CONFIG)
    return tmp_path
