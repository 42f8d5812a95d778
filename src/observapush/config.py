"""Configuration management using Pydantic Settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings loaded from ``OBSERVAPUSH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVAPUSH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Log backend
    logging_url: str = "http://localhost:3100/loki/api/v1/push"
    logging_user_id: str = ""
    logging_api_key: str = ""
    logging_source: str = "observapush"

    # Metrics backend
    metrics_url: str = "http://localhost:4318/v1/metrics"
    metrics_api_key: str = ""
    metrics_source: str = "observapush"

    # Reporting
    report_interval_seconds: float = Field(default=10.0, gt=0)
    business_metric_prefix: str = "pizza"
    business_unit: str = "pizzas"
    cpu_fallback: Literal["none", "synthetic"] = "none"

    # Push transport
    push_timeout_seconds: float = Field(default=5.0, gt=0)
    push_max_workers: int = Field(default=4, ge=1)
    push_max_pending: int = Field(default=1000, ge=1)

    # Request capture
    auth_path_prefix: str = "/api/auth"
    sensitive_keys: list[str] = ["password", "token"]
    max_body_bytes: int = Field(default=65536, ge=0)

    # Local diagnostics
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @property
    def logging_credential(self) -> str:
        """Bearer credential of the log backend, ``<user id>:<api key>``."""
        return f"{self.logging_user_id}:{self.logging_api_key}"


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
