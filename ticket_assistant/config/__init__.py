"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="ai-ticket-assistant", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/tickets",
        description="Async SQLAlchemy connection URL (postgresql+asyncpg or sqlite+aiosqlite)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Classification Providers ==========
    primary_provider: str = Field(
        default="zai",
        description="Primary classifier provider kind (openai, zai, mock)"
    )
    primary_api_key: Optional[str] = Field(
        default=None,
        description="API key for the primary provider; the provider is disabled without it"
    )
    primary_model: str = Field(default="glm-4.7", description="Model used by the primary provider")
    primary_base_url: Optional[str] = Field(
        default=None,
        description="Override base URL for OpenAI-compatible hosts (e.g. https://api.groq.com/openai/v1)"
    )
    secondary_provider: str = Field(
        default="openai",
        description="Secondary classifier provider kind (openai, zai, mock)"
    )
    secondary_api_key: Optional[str] = Field(
        default=None,
        description="API key for the secondary provider; the provider is disabled without it"
    )
    secondary_model: str = Field(default="gpt-4o-mini", description="Model used by the secondary provider")
    secondary_base_url: Optional[str] = Field(default=None, description="Override base URL for the secondary provider")
    provider_timeout_seconds: float = Field(
        default=20.0,
        description="Upper bound for a single provider attempt",
        gt=0,
        le=120
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for classification",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=800,
        description="Max tokens for a classification completion",
        ge=1,
        le=8000
    )

    # ========== Triage ==========
    triage_policy: str = Field(
        default="lenient",
        description=(
            "lenient: missing providers, parse errors and exhausted providers fall back "
            "to heuristic classification. strict: missing providers fail at startup, "
            "exhausted providers raise ClassificationFailed."
        )
    )
    processing_mode: str = Field(
        default="queued",
        description="direct: triage inline with ticket creation. queued: publish ticket/created to the event bus"
    )
    event_workers: int = Field(default=2, description="Event bus worker tasks", ge=1, le=32)
    event_max_attempts: int = Field(default=3, description="Delivery attempts per event", ge=1, le=10)
    event_retry_base_seconds: float = Field(
        default=1.0,
        description="Base delay for exponential retry backoff",
        ge=0.0
    )
    triage_recovery_interval_seconds: int = Field(
        default=120,
        description="Seconds between stalled-triage sweeps (0 disables the job)",
        ge=0
    )
    triage_recovery_stale_seconds: int = Field(
        default=300,
        description="A non-terminal triage older than this is considered stalled",
        ge=1
    )

    # ========== Mail Notifications ==========
    mail_api_url: Optional[str] = Field(
        default=None,
        description="Transactional mail HTTP endpoint (e.g. https://send.api.mailtrap.io/api/send)"
    )
    mail_api_token: Optional[str] = Field(default=None, description="Bearer token for the mail API")
    mail_from: str = Field(default="triage@example.com", description="Sender address")
    mail_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for mail API calls",
        ge=0.1,
        le=30
    )

    # ========== Identity ==========
    bootstrap_admin_email: Optional[str] = Field(
        default=None,
        description="Admin identity created at startup when missing"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
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
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("triage_policy")
    @classmethod
    def validate_triage_policy(cls, v: str) -> str:
        if v not in VALID_TRIAGE_POLICIES:
            raise ValueError(f"triage_policy must be one of {VALID_TRIAGE_POLICIES}")
        return v

    @field_validator("processing_mode")
    @classmethod
    def validate_processing_mode(cls, v: str) -> str:
        if v not in VALID_PROCESSING_MODES:
            raise ValueError(f"processing_mode must be one of {VALID_PROCESSING_MODES}")
        return v

    @field_validator("primary_provider", "secondary_provider")
    @classmethod
    def validate_provider_kind(cls, v: str) -> str:
        if v not in VALID_PROVIDER_KINDS:
            raise ValueError(f"provider must be one of {VALID_PROVIDER_KINDS}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class TicketStatus(str):
    """Ticket lifecycle statuses (null before triage starts)."""
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class Priority(str):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str):
    """Account roles."""
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class TriageState(str):
    """Persisted triage pipeline states."""
    CREATED = "CREATED"
    CLASSIFYING = "CLASSIFYING"
    ASSIGNING = "ASSIGNING"
    NOTIFYING = "NOTIFYING"
    ASSIGNED = "ASSIGNED"
    UNASSIGNED = "UNASSIGNED"


class TriagePolicy(str):
    """What happens when classification providers are missing or fail."""
    LENIENT = "lenient"
    STRICT = "strict"


class ProcessingMode(str):
    """How triage is started after a ticket is created."""
    DIRECT = "direct"
    QUEUED = "queued"


class ProviderKind(str):
    """Supported classification provider SDKs."""
    OPENAI = "openai"
    ZAI = "zai"
    MOCK = "mock"


# ========== Lists for validation ==========

VALID_STATUSES = [TicketStatus.TODO, TicketStatus.IN_PROGRESS, TicketStatus.DONE]
VALID_PRIORITIES = [Priority.LOW, Priority.MEDIUM, Priority.HIGH]
VALID_ROLES = [UserRole.USER, UserRole.MODERATOR, UserRole.ADMIN]
ASSIGNABLE_ROLES = [UserRole.MODERATOR, UserRole.ADMIN]
TERMINAL_TRIAGE_STATES = [TriageState.ASSIGNED, TriageState.UNASSIGNED]
PENDING_TRIAGE_STATES = [
    TriageState.CREATED, TriageState.CLASSIFYING,
    TriageState.ASSIGNING, TriageState.NOTIFYING
]
VALID_TRIAGE_POLICIES = [TriagePolicy.LENIENT, TriagePolicy.STRICT]
VALID_PROCESSING_MODES = [ProcessingMode.DIRECT, ProcessingMode.QUEUED]
VALID_PROVIDER_KINDS = [ProviderKind.OPENAI, ProviderKind.ZAI, ProviderKind.MOCK]

TICKET_CREATED_EVENT = "ticket/created"


# Global settings instance
settings = get_settings()
