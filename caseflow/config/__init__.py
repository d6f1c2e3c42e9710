"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="caseflow-sla", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")
    app_base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the CRM front end, used for breach deep links"
    )

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/caseflow",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    db_create_tables_on_startup: bool = Field(
        default=False,
        description="Create missing tables at startup (local development only)"
    )

    # ========== SLA Monitoring ==========
    sla_evaluation_interval: int = Field(
        default=60,
        description="Seconds between SLA evaluation ticks",
        ge=10
    )
    sla_tick_timeout_seconds: float = Field(
        default=30.0,
        description="Time budget for a single SLA tick",
        gt=0
    )
    sla_breach_display_limit: int = Field(
        default=10,
        description="Maximum number of breaches published per snapshot",
        ge=1,
        le=100
    )
    sla_config_source: str = Field(
        default="database",
        description="Where SLA threshold overrides are read from (database or yaml)"
    )
    sla_config_path: Path = Field(
        default=Path("sla_overrides.yaml"),
        description="Path to SLA overrides YAML file (yaml source only)"
    )

    # ========== Breach Alerts ==========
    sla_alert_min_severity: str = Field(
        default="critical",
        description="Lowest breach severity that triggers a notification"
    )
    sla_alert_ttl_hours: int = Field(
        default=24,
        description="Hours before the same breach may be notified again",
        ge=1
    )
    sla_alert_cache_size: int = Field(
        default=1000,
        description="Maximum number of remembered notified breaches",
        ge=1
    )

    # ========== Slack Integration ==========
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for notifications"
    )
    slack_channel: str = Field(
        default="#sla-alerts",
        description="Slack channel for SLA notifications"
    )
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
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
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("sla_config_source")
    @classmethod
    def validate_config_source(cls, v: str) -> str:
        allowed = {"database", "yaml"}
        if v not in allowed:
            raise ValueError(f"sla_config_source must be one of {allowed}")
        return v

    @field_validator("sla_alert_min_severity")
    @classmethod
    def validate_alert_severity(cls, v: str) -> str:
        if v not in VALID_SEVERITIES:
            raise ValueError(f"sla_alert_min_severity must be one of {VALID_SEVERITIES}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class LeadStatus(str):
    """Lead statuses as stored in the CRM database."""
    NEW = "NOVO"
    INCOMPLETE_DATA = "DADOS_INCOMPLETOS"


class ContractStatus(str):
    """Contract statuses as stored in the CRM database."""
    SENT = "ENVIADO"


class PaymentStatus(str):
    """Payment statuses as stored in the CRM database."""
    PENDING = "PENDENTE"


class RequirementStatus(str):
    """Authority requirement statuses as stored in the CRM database."""
    OPEN = "ABERTA"


class DocumentStatus(str):
    """Service document statuses as stored in the CRM database."""
    SUBMITTED = "ENVIADO"


class Severity(str):
    """Breach severities, lowest first."""
    WARNING = "warning"
    CRITICAL = "critical"


class BreachCategory(str):
    """Business record categories a breach can belong to."""
    LEAD = "lead"
    CONTRACT = "contract"
    PAYMENT = "payment"
    REQUIREMENT = "requirement"
    DOCUMENT = "document"
    ONBOARDING = "onboarding"
    TIE = "tie"


class HealthStatus(str):
    """Health score bands."""
    HEALTHY = "healthy"
    ATTENTION = "attention"
    CRITICAL = "critical"


class MonitorState(str):
    """SLA monitor lifecycle states."""
    IDLE = "idle"
    SCANNING = "scanning"
    READY = "ready"
    FAILED = "failed"


# ========== Lists for validation ==========

VALID_SEVERITIES = [Severity.WARNING, Severity.CRITICAL]
VALID_BREACH_CATEGORIES = [
    BreachCategory.LEAD, BreachCategory.CONTRACT, BreachCategory.PAYMENT,
    BreachCategory.REQUIREMENT, BreachCategory.DOCUMENT,
    BreachCategory.ONBOARDING, BreachCategory.TIE
]


# Global settings instance
settings = get_settings()
