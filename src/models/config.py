"""Application configuration model using pydantic-settings."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    organization_id: str = "default"
    log_level: str = "INFO"
    log_format: str = "console"
    scan_interval_seconds: int = 60
    review_sync_interval_seconds: int = 300
    metrics_interval_seconds: int = 300
    insight_interval_seconds: int = 3600
    widget_refresh_interval_seconds: int = 60
    digest_check_interval_seconds: int = 60
    fetch_timeout_seconds: float = 10.0
    notification_timeout_seconds: float = 5.0
    threat_window_days: int = 7
    recent_change_window: int = 50
    positive_response_percent: int = 70
    metrics_history_limit: int = 90
    anthropic_api_key: str | None = None
    llm_model: str = "claude-haiku-4-5-20251001"
    llm_responses_enabled: bool = False
    notification_webhook_url: str | None = None
    escalation_webhook_url: str | None = None
    alert_digest_frequency: str | None = None

    @field_validator("organization_id")
    @classmethod
    def validate_organization_id(cls, value: str) -> str:
        """Organization id must be non-empty."""
        if not value.strip():
            msg = "organization_id must not be empty"
            raise ValueError(msg)
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """Log format must be console or json."""
        lowered = value.lower()
        if lowered not in ("console", "json"):
            msg = "log_format must be one of console, json"
            raise ValueError(msg)
        return lowered

    @field_validator("alert_digest_frequency")
    @classmethod
    def validate_alert_digest_frequency(cls, value: str | None) -> str | None:
        """Digest frequency is daily, weekly, or unset for no digest."""
        if value is None or not value.strip():
            return None
        lowered = value.strip().lower()
        if lowered not in ("daily", "weekly"):
            msg = "alert_digest_frequency must be one of daily, weekly"
            raise ValueError(msg)
        return lowered

    @field_validator(
        "scan_interval_seconds",
        "review_sync_interval_seconds",
        "metrics_interval_seconds",
        "insight_interval_seconds",
        "widget_refresh_interval_seconds",
        "digest_check_interval_seconds",
        "threat_window_days",
        "recent_change_window",
        "metrics_history_limit",
    )
    @classmethod
    def validate_positive_int(cls, value: int) -> int:
        """Intervals, windows and limits must be positive."""
        if value <= 0:
            msg = "value must be greater than 0"
            raise ValueError(msg)
        return value

    @field_validator("fetch_timeout_seconds", "notification_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Timeouts must be between 0 and 120 seconds."""
        if value <= 0 or value > 120:
            msg = "timeout must be greater than 0 and at most 120 seconds"
            raise ValueError(msg)
        return value

    @field_validator("positive_response_percent")
    @classmethod
    def validate_positive_response_percent(cls, value: int) -> int:
        """Positive response percent must be between 0 and 100."""
        if value < 0 or value > 100:
            msg = "positive_response_percent must be between 0 and 100"
            raise ValueError(msg)
        return value
