"""
Configuration management for the GitHub workflow plugin.

This module provides environment-based configuration using Pydantic Settings.
Supports loading from .env files, environment variables, and provides
startup validation with clear error messages.

Per-instance module and step options (owner, repo, token, ...) are not
settings; they arrive from the workflow engine as raw mappings. The values
here configure the process hosting the plugin: logging, the GitHub API
endpoint, the message broker and the webhook module served by the bundled
FastAPI application.
"""

from functools import lru_cache
from typing import Any, Optional, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_plugin_github.utils.logging import get_logger

logger = get_logger(__name__)


class AppSettings(BaseSettings):
    """
    Plugin settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    Priority: Environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown environment variables
    )

    # ======================
    # GitHub API
    # ======================
    github_api_url: str = "https://api.github.com"
    """Base URL of the GitHub REST API (override for GitHub Enterprise)."""
    github_timeout_seconds: float = 30.0
    """Timeout applied to every GitHub API request."""
    github_max_retries: int = 2
    """Retries for transient GitHub API failures (5xx, connection errors)."""

    # ======================
    # Webhook module (git.webhook)
    # ======================
    webhook_provider: str = "github"
    """Source platform identifier stamped on published events."""
    webhook_secret: Optional[str] = None
    """Shared secret; when set, X-Hub-Signature-256 is enforced."""
    webhook_events: List[str] = []
    """Allow-list of event types; empty accepts every event."""
    webhook_topic: str = "git.events"
    """Broker topic normalized events are published to."""

    # ======================
    # Message broker
    # ======================
    redis_url: str = "redis://localhost:6379/0"
    """Redis connection URL for the event publisher."""
    publisher_fallback_to_memory: bool = True
    """Fall back to an in-memory publisher when Redis is unreachable."""

    # ======================
    # Server
    # ======================
    host: str = "0.0.0.0"
    port: int = 8080

    # ======================
    # Application Settings
    # ======================
    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""
    environment: str = "development"
    """Deployment environment (development, staging, production)."""

    # ======================
    # Validators
    # ======================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        return upper_v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production"}
        lower_v = v.lower()
        if lower_v not in valid_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(sorted(valid_envs))}"
            )
        return lower_v

    @field_validator("github_timeout_seconds")
    @classmethod
    def validate_github_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"github_timeout_seconds must be positive, got {v}")
        return v

    @field_validator("github_max_retries")
    @classmethod
    def validate_github_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"github_max_retries must be at least 0, got {v}")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def has_webhook_secret(self) -> bool:
        """Check if webhook secret is configured."""
        return bool(self.webhook_secret and self.webhook_secret != "your_webhook_secret_here")

    def webhook_module_config(self) -> dict[str, Any]:
        """Build the raw ``git.webhook`` module config served by the bundled app."""
        config: dict[str, Any] = {
            "provider": self.webhook_provider,
            "events": list(self.webhook_events),
            "topic": self.webhook_topic,
        }
        if self.has_webhook_secret:
            config["secret"] = self.webhook_secret
        return config

    def validate_for_startup(self) -> list[str]:
        """
        Validate configuration for startup and return warnings.

        Returns a list of warning messages for missing optional configurations.
        Raises ValueError for critical missing configurations in production.
        """
        warnings = []
        errors = []

        if not self.has_webhook_secret:
            if self.is_production:
                errors.append("WEBHOOK_SECRET is required in production")
            else:
                warnings.append(
                    "WEBHOOK_SECRET not configured - webhook signature validation disabled"
                )

        if self.is_production and self.publisher_fallback_to_memory:
            warnings.append(
                "PUBLISHER_FALLBACK_TO_MEMORY is enabled - events are lost if Redis is down"
            )

        if errors:
            error_msg = "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ValueError(error_msg)

        return warnings

    def log_configuration_summary(self) -> None:
        """Log a summary of the current configuration (without secrets)."""
        logger.info(
            "configuration_summary",
            environment=self.environment,
            log_level=self.log_level,
            github_api_url=self.github_api_url,
            github_timeout_seconds=self.github_timeout_seconds,
            github_max_retries=self.github_max_retries,
            redis_url=self.redis_url,
            webhook_provider=self.webhook_provider,
            webhook_topic=self.webhook_topic,
            webhook_events=self.webhook_events or "all",
            verify_deliveries=self.has_webhook_secret,
        )


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get the global plugin settings (cached).

    Returns:
        AppSettings: The configured settings.
    """
    return AppSettings()
