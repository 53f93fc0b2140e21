"""Configuration loading and validation for fraudstore projects.

Project configuration is loaded from fraudstore.yaml with OmegaConf and
validated using Pydantic. Each environment names its store and its reporting
parameters. Process-level overrides come from FRAUDSTORE_* environment
variables.
"""

from __future__ import annotations

from pathlib import Path

import omegaconf as oc
import pydantic as pdt
import pydantic_settings as pdts

import fraudstore.backends as backends
import fraudstore.errors as errors


class Settings(pdts.BaseSettings, strict=True, frozen=True, extra="forbid"):
    """Base settings class with strict validation."""

    pass


class ReportingSettings(Settings):
    """Parameters of the reporting views.

    model_name selects the predictions the views join against; transactions
    scored above high_risk_threshold appear in high_risk_transactions.
    """

    model_name: str = "Random Forest"
    high_risk_threshold: float = pdt.Field(default=0.7, ge=0, le=1)


class EnvironmentSettings(Settings):
    """Configuration for a single environment (dev, stg, prd)."""

    store: backends.StoreKind
    reporting: ReportingSettings = pdt.Field(default_factory=ReportingSettings)


class FraudStoreSettings(Settings):
    """Root configuration loaded from fraudstore.yaml.

    Example fraudstore.yaml:
        name: fraud-dashboard
        default_env: dev
        environments:
          dev:
            store:
              kind: sqlite
              path: .fraudstore/fraud_detection.db
            reporting:
              model_name: Random Forest
              high_risk_threshold: 0.7
    """

    name: str
    default_env: str
    environments: dict[str, EnvironmentSettings]

    _active_env: str | None = pdt.PrivateAttr(default=None)
    _config_path: Path | None = pdt.PrivateAttr(default=None)

    @pdt.model_validator(mode="after")
    def validate_default_env_exists(self) -> FraudStoreSettings:
        """default_env must name one of the configured environments."""
        if self.default_env not in self.environments:
            raise ValueError(
                f"default_env '{self.default_env}' not found in environments: "
                f"{list(self.environments.keys())}"
            )
        return self

    @property
    def active_env(self) -> str:
        """Name of the environment commands operate on."""
        return self._active_env or self.default_env

    @property
    def active_environment(self) -> EnvironmentSettings:
        """Store and reporting settings of the active environment."""
        return self.environments[self.active_env]

    @property
    def project_root(self) -> Path:
        """Directory holding fraudstore.yaml (cwd when loaded from a dict)."""
        return self._config_path.parent if self._config_path else Path.cwd()

    def resolve_environment(self, env: str | None = None) -> FraudStoreSettings:
        """Switch the active environment (default_env when env is None).

        Raises:
            EnvironmentNotFoundError: If env is not configured.
        """
        target = env or self.default_env
        if target not in self.environments:
            raise errors.EnvironmentNotFoundError(
                env=target,
                available=list(self.environments.keys()),
            )
        object.__setattr__(self, "_active_env", target)
        return self


class RuntimeSettings(pdts.BaseSettings):
    """Process-level overrides read from FRAUDSTORE_* environment variables.

    FRAUDSTORE_CONFIG: path to fraudstore.yaml
    FRAUDSTORE_ENV: environment to activate instead of default_env
    FRAUDSTORE_LOG_LEVEL: loguru level for CLI output
    """

    model_config = pdts.SettingsConfigDict(env_prefix="FRAUDSTORE_", extra="ignore")

    config: Path = Path("fraudstore.yaml")
    env: str | None = None
    log_level: str = "WARNING"


def load_settings(
    path: Path | str | None = None,
    env: str | None = None,
) -> FraudStoreSettings:
    """Load and validate fraudstore configuration from a YAML file.

    Args:
        path: Path to fraudstore.yaml. Defaults to FRAUDSTORE_CONFIG.
        env: Environment to activate. Defaults to FRAUDSTORE_ENV, then default_env.

    Returns:
        Validated FraudStoreSettings instance.

    Raises:
        ConfigNotFoundError: If config file doesn't exist.
        ConfigValidationError: If config fails validation.
        EnvironmentNotFoundError: If the requested environment is not defined.
    """
    runtime = RuntimeSettings()
    path = Path(path) if path is not None else runtime.config

    if not path.exists():
        raise errors.ConfigNotFoundError(str(path))

    try:
        config = oc.OmegaConf.load(path)
        config_dict = oc.OmegaConf.to_container(config, resolve=True)
        settings = FraudStoreSettings.model_validate(config_dict)
    except pdt.ValidationError as e:
        raise errors.ConfigValidationError(
            path=str(path),
            details=_format_validation_errors(e),
        ) from e
    except oc.errors.OmegaConfBaseException as e:
        raise errors.ConfigValidationError(
            path=str(path),
            details=str(e),
        ) from e

    object.__setattr__(settings, "_config_path", path)
    settings.resolve_environment(env or runtime.env)
    return settings


def _format_validation_errors(error: pdt.ValidationError) -> str:
    """One "  - location: message" line per validation failure."""
    return "\n".join(
        f"  - {'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )

