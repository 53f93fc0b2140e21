"""Relational schema for the fraud store (SQLite dialect).

Tables are listed parent-first; cascading foreign keys run
customers -> transactions -> predictions. Decimal columns are REAL with their
precision enforced by the record models. TIMESTAMP and DATE declarations are
kept so query layers can recover temporal types from the catalog.
"""

from __future__ import annotations

SCHEMA_VERSION = "1"

CUSTOMERS = """
CREATE TABLE IF NOT EXISTS customers (
    customer_id INTEGER PRIMARY KEY,
    registration_date DATE,
    total_transactions INTEGER NOT NULL DEFAULT 0,
    total_fraud_cases INTEGER NOT NULL DEFAULT 0,
    risk_score REAL DEFAULT 0.00,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

TRANSACTIONS = """
CREATE TABLE IF NOT EXISTS transactions (
    transaction_id VARCHAR(50) PRIMARY KEY,
    customer_id INTEGER NOT NULL,
    transaction_date TIMESTAMP NOT NULL,
    transaction_amount REAL NOT NULL,
    transaction_hour INTEGER,
    day_of_week INTEGER,
    merchant_category VARCHAR(50),
    transaction_type VARCHAR(50),
    location_match INTEGER,
    device_type VARCHAR(50),
    is_weekend INTEGER,
    is_night INTEGER,
    is_high_risk_category INTEGER,
    amount_vs_avg REAL,
    transaction_count INTEGER,
    risk_score REAL,
    is_fraud INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (customer_id)
        REFERENCES customers(customer_id)
        ON DELETE CASCADE
)
"""

PREDICTIONS = """
CREATE TABLE IF NOT EXISTS predictions (
    prediction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    transaction_id VARCHAR(50) NOT NULL,
    model_name VARCHAR(50) NOT NULL,
    predicted_fraud INTEGER,
    fraud_probability REAL,
    risk_category VARCHAR(20),
    prediction_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (transaction_id, model_name),
    FOREIGN KEY (transaction_id)
        REFERENCES transactions(transaction_id)
        ON DELETE CASCADE
)
"""

MODEL_PERFORMANCE = """
CREATE TABLE IF NOT EXISTS model_performance (
    model_id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_name VARCHAR(50) NOT NULL,
    training_date TIMESTAMP,
    accuracy REAL,
    precision_score REAL,
    recall_score REAL,
    f1_score REAL,
    roc_auc REAL,
    total_samples INTEGER,
    fraud_samples INTEGER,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

META = """
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_customer ON transactions(customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_date ON transactions(transaction_date)",
    "CREATE INDEX IF NOT EXISTS idx_fraud ON transactions(is_fraud)",
    "CREATE INDEX IF NOT EXISTS idx_amount ON transactions(transaction_amount)",
    "CREATE INDEX IF NOT EXISTS idx_transaction ON predictions(transaction_id)",
    "CREATE INDEX IF NOT EXISTS idx_probability ON predictions(fraud_probability)",
    "CREATE INDEX IF NOT EXISTS idx_model_name_date ON model_performance(model_name, training_date)",
)

# Parent-first creation order; drop in reverse.
TABLES: dict[str, str] = {
    "customers": CUSTOMERS,
    "transactions": TRANSACTIONS,
    "predictions": PREDICTIONS,
    "model_performance": MODEL_PERFORMANCE,
}

DATA_TABLES = tuple(TABLES)
