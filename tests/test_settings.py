"""Tests for configuration loading and validation."""

from __future__ import annotations

import pytest

import fraudstore.backends as backends
import fraudstore.errors as errors
import fraudstore.settings as settings


@pytest.fixture
def valid_config() -> str:
    """Minimal valid configuration."""
    return """
name: test-project
default_env: dev
environments:
  dev:
    store:
      kind: sqlite
      path: .fraudstore/dev.db
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep FRAUDSTORE_* variables of the host out of the tests."""
    for name in ("FRAUDSTORE_CONFIG", "FRAUDSTORE_ENV", "FRAUDSTORE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    """Tests for load_settings function."""

    def test_load_valid_config(self, tmp_path, valid_config) -> None:
        """Loads minimal config with defaults applied."""
        path = tmp_path / "fraudstore.yaml"
        path.write_text(valid_config)

        s = settings.load_settings(path)

        assert s.name == "test-project"
        assert s.active_env == "dev"
        store = s.active_environment.store
        assert isinstance(store, backends.SqliteStore)
        assert store.path == ".fraudstore/dev.db"
        assert store.timeout == 5.0
        assert s.active_environment.reporting.model_name == "Random Forest"
        assert s.active_environment.reporting.high_risk_threshold == 0.7
        assert s.project_root == tmp_path

    def test_load_named_environment(self, project_dir) -> None:
        s = settings.load_settings(project_dir / "fraudstore.yaml", env="prd")

        assert s.active_env == "prd"
        assert s.active_environment.store.timeout == 10.0
        assert s.active_environment.reporting.model_name == "XGBoost"
        assert s.active_environment.reporting.high_risk_threshold == 0.9

    def test_environment_from_env_var(self, project_dir, monkeypatch) -> None:
        monkeypatch.setenv("FRAUDSTORE_ENV", "prd")

        s = settings.load_settings(project_dir / "fraudstore.yaml")

        assert s.active_env == "prd"

    def test_explicit_env_beats_env_var(self, project_dir, monkeypatch) -> None:
        monkeypatch.setenv("FRAUDSTORE_ENV", "prd")

        s = settings.load_settings(project_dir / "fraudstore.yaml", env="dev")

        assert s.active_env == "dev"

    def test_config_path_from_env_var(self, project_dir, monkeypatch) -> None:
        monkeypatch.setenv("FRAUDSTORE_CONFIG", str(project_dir / "fraudstore.yaml"))

        assert settings.load_settings().name == "test-project"

    def test_default_path_is_cwd(self, project_dir, monkeypatch) -> None:
        monkeypatch.chdir(project_dir)

        assert settings.load_settings().name == "test-project"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(errors.ConfigNotFoundError):
            settings.load_settings(tmp_path / "missing.yaml")

    def test_unknown_environment(self, project_dir) -> None:
        with pytest.raises(errors.EnvironmentNotFoundError, match="dev, prd"):
            settings.load_settings(project_dir / "fraudstore.yaml", env="qa")

    def test_interpolation(self, tmp_path, monkeypatch) -> None:
        """OmegaConf interpolation is resolved before validation."""
        monkeypatch.setenv("FRAUD_DATA_DIR", "/var/fraud")
        path = tmp_path / "fraudstore.yaml"
        path.write_text(
            """
name: fraud
default_env: dev
environments:
  dev:
    store:
      kind: sqlite
      path: ${oc.env:FRAUD_DATA_DIR}/dev.db
"""
        )

        s = settings.load_settings(path)

        assert s.active_environment.store.path == "/var/fraud/dev.db"

    def test_unresolvable_interpolation(self, tmp_path) -> None:
        path = tmp_path / "fraudstore.yaml"
        path.write_text(
            """
name: fraud
default_env: dev
environments:
  dev:
    store:
      kind: sqlite
      path: ${missing_key}/dev.db
"""
        )

        with pytest.raises(errors.ConfigValidationError):
            settings.load_settings(path)


class TestSettingsValidation:
    """Tests for schema validation failures."""

    def _write(self, tmp_path, text: str):
        path = tmp_path / "fraudstore.yaml"
        path.write_text(text)
        return path

    def test_default_env_must_exist(self, tmp_path) -> None:
        path = self._write(
            tmp_path,
            """
name: fraud
default_env: prd
environments:
  dev:
    store:
      kind: sqlite
      path: dev.db
""",
        )

        with pytest.raises(errors.ConfigValidationError, match="default_env"):
            settings.load_settings(path)

    def test_unknown_store_kind(self, tmp_path) -> None:
        path = self._write(
            tmp_path,
            """
name: fraud
default_env: dev
environments:
  dev:
    store:
      kind: mysql
      path: dev.db
""",
        )

        with pytest.raises(errors.ConfigValidationError, match="kind"):
            settings.load_settings(path)

    def test_threshold_range(self, tmp_path) -> None:
        path = self._write(
            tmp_path,
            """
name: fraud
default_env: dev
environments:
  dev:
    store:
      kind: sqlite
      path: dev.db
    reporting:
      high_risk_threshold: 1.5
""",
        )

        with pytest.raises(errors.ConfigValidationError, match="high_risk_threshold"):
            settings.load_settings(path)

    def test_extra_fields_forbidden(self, tmp_path) -> None:
        path = self._write(
            tmp_path,
            """
name: fraud
default_env: dev
environments:
  dev:
    store:
      kind: sqlite
      path: dev.db
    warehouse: snowflake
""",
        )

        with pytest.raises(errors.ConfigValidationError, match="warehouse"):
            settings.load_settings(path)


class TestResolveEnvironment:
    """Tests for switching the active environment."""

    def test_resolve_switches_active_environment(self, project_dir) -> None:
        s = settings.load_settings(project_dir / "fraudstore.yaml")

        s.resolve_environment("prd")

        assert s.active_env == "prd"
        assert s.active_environment.store.path == ".fraudstore/prd.db"

    def test_resolve_none_uses_default(self, project_dir) -> None:
        s = settings.load_settings(project_dir / "fraudstore.yaml", env="prd")

        s.resolve_environment(None)

        assert s.active_env == "dev"


class TestRuntimeSettings:
    """Tests for FRAUDSTORE_* overrides."""

    def test_defaults(self) -> None:
        runtime = settings.RuntimeSettings()

        assert str(runtime.config) == "fraudstore.yaml"
        assert runtime.env is None
        assert runtime.log_level == "WARNING"

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("FRAUDSTORE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("FRAUDSTORE_ENV", "prd")

        runtime = settings.RuntimeSettings()

        assert runtime.log_level == "DEBUG"
        assert runtime.env == "prd"
