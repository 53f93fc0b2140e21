"""Project handle for fraudstore connections.

Provides the fraudstore.connect() entry point. A FraudProject resolves the
active environment's store and reporting settings from fraudstore.yaml.

Usage:
    import fraudstore

    project = fraudstore.connect(env="dev")
    project.store.record_transaction(txn)
    risky = project.report("high_risk_transactions", limit=20)
"""

from __future__ import annotations

from pathlib import Path

import pyarrow as pa

import fraudstore.loader as loader
import fraudstore.settings as settings
import fraudstore.views as views


class FraudProject:
    """Runtime handle for a fraudstore project.

    Not a Pydantic model -- this is a runtime handle, not configuration.
    """

    def __init__(self, fraud_settings: settings.FraudStoreSettings) -> None:
        self._settings = fraud_settings
        env_config = fraud_settings.active_environment
        self.store = env_config.store
        self.reports = views.ReportEngine(self.store, env_config.reporting)

    @property
    def name(self) -> str:
        """Project name from fraudstore.yaml."""
        return self._settings.name

    @property
    def env(self) -> str:
        """Active environment name."""
        return self._settings.active_env

    def report(self, name: str, limit: int | None = None) -> pa.Table:
        """Run a reporting view and return its rows."""
        return self.reports.run(name, limit=limit)

    def load(self, table: str, data: pa.Table) -> loader.LoadResult:
        """Validate and bulk-load rows into a stored table."""
        return loader.load_table(self.store, table, data)


def connect(
    env: str | None = None,
    config_path: str | Path | None = None,
    *,
    initialize: bool = True,
) -> FraudProject:
    """Connect to a fraudstore project.

    Loads fraudstore.yaml, resolves the target environment, and returns a
    project handle. The store schema is created unless initialize is False.

    Args:
        env: Environment name (uses FRAUDSTORE_ENV, then default_env if None).
        config_path: Path to fraudstore.yaml (uses FRAUDSTORE_CONFIG if None).
        initialize: Create missing tables and indexes.

    Returns:
        FraudProject instance.
    """
    fraud_settings = settings.load_settings(path=config_path, env=env)
    project = FraudProject(fraud_settings)
    if initialize:
        project.store.initialize()
    return project
