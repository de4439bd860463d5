"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from msp_itsm.core import ValidationException


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="msp-itsm", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/msp_itsm",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Configuration ==========
    sla_policy_source: Literal["database", "file"] = Field(
        default="database",
        description="Where active SLA policies are read from"
    )
    sla_policy_file: Path = Field(
        default=Path("sla_policies.yaml"),
        description="Path to SLA policy YAML file (file source only)"
    )
    sla_warning_fraction: float = Field(
        default=0.2,
        description="Fraction of a clock's total duration that counts as at-risk",
        gt=0.0,
        lt=1.0
    )
    sla_warning_window_hours: Optional[float] = Field(
        default=None,
        description="Fixed at-risk window in hours, applied in addition to the fraction",
        ge=0.0
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
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class Priority(str, Enum):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ClientType(str, Enum):
    """How the MSP serves the client owning a team."""
    DIRECT = "direct"
    VIA_ESN = "via_esn"


class TicketKind(str, Enum):
    """ITSM ticket types, each backed by its own table."""
    INCIDENT = "incident"
    CHANGE_REQUEST = "change_request"
    SERVICE_REQUEST = "service_request"


class IncidentStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ChangeRequestStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    IMPLEMENTED = "implemented"
    FAILED = "failed"


class ServiceRequestStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class SLAHealth(str, Enum):
    """SLA badge states."""
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BREACHED = "breached"
    NOT_APPLICABLE = "not_applicable"


# ========== Lists for validation ==========

VALID_PRIORITIES = [p.value for p in Priority]
VALID_CLIENT_TYPES = [c.value for c in ClientType]

STATUSES_BY_KIND = {
    TicketKind.INCIDENT: [s.value for s in IncidentStatus],
    TicketKind.CHANGE_REQUEST: [s.value for s in ChangeRequestStatus],
    TicketKind.SERVICE_REQUEST: [s.value for s in ServiceRequestStatus],
}


def parse_priority(value: str) -> Priority:
    """Reject unknown priorities before they reach the SLA engine."""
    try:
        return Priority(value)
    except ValueError:
        raise ValidationException(
            f"Unknown priority '{value}'",
            {"allowed": VALID_PRIORITIES}
        )


def parse_client_type(value: str) -> ClientType:
    """Reject unknown client relationship types."""
    try:
        return ClientType(value)
    except ValueError:
        raise ValidationException(
            f"Unknown client type '{value}'",
            {"allowed": VALID_CLIENT_TYPES}
        )
