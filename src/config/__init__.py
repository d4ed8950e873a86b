"""
Configuration Module
====================

Settings of the alerting engine (pydantic-settings, read from the
environment and `.env`) and the domain constants shared by every layer.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List


class NotificationChannel(str):
    """Built-in delivery channels."""
    EMAIL = "email"
    SMS = "sms"


class Settings(BaseSettings):
    """
    Engine settings.

    Every field can be overridden by the upper-cased environment variable
    of the same name, e.g. ``DATABASE_URL`` or ``ALERT_CATALOG_PATH``.
    """

    # ========== Application ==========
    app_name: str = Field(default="alert-sla-engine", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/alerts",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Alert Catalog ==========
    alert_catalog_path: Path = Field(
        default=Path("alert_catalog.yaml"),
        description="Path to the alert catalog YAML file"
    )

    # ========== Windows & History ==========
    default_window_days: int = Field(
        default=30,
        description="Length of the trailing window used when none is requested",
        ge=1
    )
    history_default_limit: int = Field(
        default=50,
        description="Default number of alert events returned by history queries",
        ge=1
    )
    history_max_limit: int = Field(
        default=500,
        description="Upper bound for history query limits",
        ge=1
    )

    # ========== Notifications ==========
    notification_channels: List[str] = Field(
        default=[NotificationChannel.EMAIL, NotificationChannel.SMS],
        description="Delivery channels known to the notification component"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Only known deployment environments."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("notification_channels")
    @classmethod
    def validate_channels(cls, v: List[str]) -> List[str]:
        """Channels are lower-case and must not be empty."""
        channels = [c.strip().lower() for c in v if c and c.strip()]
        if not channels:
            raise ValueError("at least one notification channel is required")
        return channels


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Severity(str):
    """Alert severities, most urgent first."""
    CRITICAL = "critical"
    WARN = "warn"
    INFO = "info"


class Comparator(str):
    """Comparators allowed in alert definitions."""
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    EQ = "=="
    NE = "!="


class WindowToken(str):
    """Named reporting windows."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    CUSTOM = "custom"


class TrendGroupBy(str):
    """Bucket sizes for trend aggregation."""
    DAY = "day"
    WEEK = "week"


class EscalationRuleType(str):
    """How an escalation override applies to an organization."""
    PERMANENT = "permanent"
    TEMPORARY = "temporary"
    REMOVE = "remove"


# ========== Lists for validation ==========

VALID_SEVERITIES = [Severity.CRITICAL, Severity.WARN, Severity.INFO]
VALID_COMPARATORS = [
    Comparator.GT, Comparator.GTE, Comparator.LT,
    Comparator.LTE, Comparator.EQ, Comparator.NE
]
ORDERING_COMPARATORS = [Comparator.GT, Comparator.GTE, Comparator.LT, Comparator.LTE]
VALID_WINDOW_TOKENS = [
    WindowToken.DAY, WindowToken.WEEK, WindowToken.MONTH,
    WindowToken.QUARTER, WindowToken.CUSTOM
]
WINDOW_TOKEN_DAYS = {
    WindowToken.DAY: 1,
    WindowToken.WEEK: 7,
    WindowToken.MONTH: 30,
    WindowToken.QUARTER: 90,
}
VALID_TREND_GROUPS = [TrendGroupBy.DAY, TrendGroupBy.WEEK]
VALID_ESCALATION_RULE_TYPES = [
    EscalationRuleType.PERMANENT, EscalationRuleType.TEMPORARY,
    EscalationRuleType.REMOVE
]

# Severities notified for an organization that has never configured preferences
DEFAULT_ENABLED_SEVERITIES = {
    Severity.CRITICAL: True,
    Severity.WARN: True,
    Severity.INFO: False,
}
