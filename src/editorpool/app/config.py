"""Application configuration using pydantic-settings.

All settings models are frozen: configuration is loaded once at startup and
handed to each component at construction.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class HerokuConfig(BaseSettings):
    """Heroku Platform API connection configuration."""

    model_config = SettingsConfigDict(env_prefix="HEROKU_", frozen=True)

    # Never logged; use .get_secret_value() only when building headers
    api_key: SecretStr
    api_url: str = Field(default="https://api.heroku.com")
    timeout: float = Field(default=30.0, gt=0)  # seconds (per API call)


class PoolConfig(BaseSettings):
    """Warm pool sizing and reconciliation cadence.

    Scale guide (claims per hour = C):
      C < 10  → size=5,  batch_size=2
      C ~ 30  → size=15, batch_size=5
      C ~ 100 → size=40, batch_size=10
    """

    model_config = SettingsConfigDict(env_prefix="POOL_", frozen=True)

    size: int = Field(default=5, ge=0)
    batch_size: int = Field(default=2, ge=0)  # max adds and max removes per cycle
    check_interval: float = Field(default=60.0, gt=0)  # seconds
    template_dir: Path
    # Overrides the content hash of template_dir as the version tag
    template_version: str | None = Field(default=None)
    app_prefix: str = Field(default="editor-")


class DeployConfig(BaseSettings):
    """Single-instance deploy timing."""

    model_config = SettingsConfigDict(env_prefix="DEPLOY_", frozen=True)

    poll_interval: float = Field(default=5.0, gt=0)  # seconds (build status)
    timeout: float = Field(default=600.0, gt=0)  # seconds (waiting for a build)


class MetricsConfig(BaseSettings):
    """Prometheus metrics configuration."""

    model_config = SettingsConfigDict(env_prefix="METRICS_", frozen=True)

    enabled: bool = Field(default=False)
    port: int = Field(default=9100)


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Standard fields added to all logs:
    - schema_version: Log schema version for backwards compatibility
    - service: Service name (editor-pool)

    Rate limiting:
    - Prevents log storms from repeated messages
    - ERROR logs bypass rate limiting (always logged)
    """

    model_config = SettingsConfigDict(env_prefix="LOGGING_", frozen=True)

    level: str = Field(default="INFO")
    schema_version: str = Field(default="1.0")
    slow_threshold_ms: float = Field(default=120000.0)  # a cycle over 2 minutes is WARN
    rate_limit_per_minute: int = Field(default=100)
    service_name: str = Field(default="editor-pool")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EDITORPOOL_",
        env_nested_delimiter="__",
        frozen=True,
    )

    heroku: HerokuConfig = Field(default_factory=HerokuConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> Settings:
    return Settings()
