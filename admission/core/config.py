"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from admission.core.constants import DEFAULT_MAX_COMPLEXITY, DEFAULT_MAX_DEPTH, DEFAULT_RATE_LIMITS


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_auth_settings() -> "AuthSettings":
    return AuthSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_pagination_settings() -> "PaginationSettings":
    return PaginationSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


def _build_graphql_settings() -> "GraphQLSettings":
    return GraphQLSettings()  # type: ignore[call-arg]


def _default_policies() -> dict[str, "RateLimitPolicySettings"]:
    return {
        operation: RateLimitPolicySettings(limit=limit, window_seconds=window)
        for operation, (limit, window) in DEFAULT_RATE_LIMITS.items()
    }


class RateLimitPolicySettings(BaseModel):
    """Quota for a single operation."""

    limit: int = Field(..., ge=1)
    window_seconds: int = Field(..., ge=1)


class AuthorizationRuleSettings(BaseModel):
    """Declared rule for a single operation.

    ``minimum_role`` is a role name (any casing) or None for public
    operations; ``relationship`` names a registered relationship predicate.
    """

    minimum_role: str | None = None
    relationship: str | None = None


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    authorization_rules: dict[str, AuthorizationRuleSettings] = Field(
        default_factory=dict,
        description="Per-operation authorization rules (JSON mapping)",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Credential verification settings.

    Tokens are issued elsewhere; this service only verifies them.
    """

    jwt_secret: str = Field(
        "change-me",
        description="Shared secret used to verify bearer tokens",
    )
    jwt_algorithm: str = Field(
        "HS256",
        description="Signing algorithm expected on bearer tokens",
    )
    min_token_length: int = Field(
        10,
        description="Tokens shorter than this are rejected before verification",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration."""

    enabled: bool = Field(
        True,
        description="Enable per-identity, per-operation rate limiting",
    )
    backend: str = Field(
        "memory",
        description="Window store backend: memory (single process) or redis",
    )
    redis_url: str | None = Field(
        None,
        description="Redis URL used when backend=redis",
    )
    default_limit: int = Field(
        100,
        description="Requests allowed per window for operations without a policy",
        ge=1,
    )
    default_window_seconds: int = Field(
        60,
        description="Window size in seconds for operations without a policy",
        ge=1,
    )
    policies: dict[str, RateLimitPolicySettings] = Field(
        default_factory=_default_policies,
        description="Per-operation policies keyed by 'METHOD /path/template' or field name",
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Interval between expired-window sweeps",
        gt=0,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    bypass_admins_outside_production: bool = Field(
        True,
        description="Skip rate limiting for administrators when not in production",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class PaginationSettings(BaseSettings):
    """Cursor pagination defaults."""

    default_limit: int = Field(20, ge=1)
    max_limit: int = Field(100, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        case_sensitive=False,
    )


class GraphQLSettings(BaseSettings):
    """Limits applied to incoming GraphQL documents."""

    max_complexity: int = Field(DEFAULT_MAX_COMPLEXITY, ge=1)
    max_depth: int = Field(DEFAULT_MAX_DEPTH, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="GRAPHQL_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate log file at this size (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    pagination: PaginationSettings = Field(default_factory=_build_pagination_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    graphql: GraphQLSettings = Field(default_factory=_build_graphql_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
