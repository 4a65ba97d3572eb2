"""Configuration management for the DSPC provider."""

from dataclasses import dataclass

import structlog
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 30


class Settings(BaseSettings):
    """Provider settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="DSPC_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    endpoint: str | None = Field(default=None, description="DSPC VM Deployer API endpoint URL")
    api_key: str | None = Field(default=None, description="API key for bearer authentication")
    timeout: str | None = Field(default=None, description="Request timeout in seconds")


@dataclass(frozen=True)
class EndpointConfig:
    """Resolved, immutable endpoint configuration shared by every call."""

    endpoint: str
    api_key: str
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.endpoint.strip():
            raise ConfigurationError("endpoint must not be empty")
        if not self.api_key.strip():
            raise ConfigurationError("API key must not be empty")
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout must be a positive number of seconds, got {self.timeout_seconds}"
            )

    def __repr__(self) -> str:
        return (
            f"EndpointConfig(endpoint={self.endpoint!r}, api_key='***', "
            f"timeout_seconds={self.timeout_seconds})"
        )


def get_settings() -> Settings:
    """Read settings from the environment."""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid DSPC environment configuration: {e}") from e


def resolve_timeout(explicit: int | None, from_env: str | None) -> int:
    """Pick the request timeout: explicit value, then environment, then the default.

    ``None`` means "not specified". An explicit zero or negative value is
    rejected rather than treated as a request for the default. DSPC_TIMEOUT
    is only read without an explicit value, and is ignored when it is not
    a positive integer.
    """
    if explicit is not None:
        if explicit <= 0:
            raise ConfigurationError(f"timeout must be a positive number of seconds, got {explicit}")
        return explicit

    if from_env is None or not from_env.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = int(from_env.strip())
    except ValueError:
        value = 0
    if value <= 0:
        logger.warning("Ignoring invalid DSPC_TIMEOUT", value=from_env, default=DEFAULT_TIMEOUT_SECONDS)
        return DEFAULT_TIMEOUT_SECONDS
    return value


def load_config(
    endpoint: str | None = None,
    api_key: str | None = None,
    timeout: int | None = None,
    settings: Settings | None = None,
) -> EndpointConfig:
    """Resolve endpoint configuration with environment fallbacks.

    Args:
        endpoint: Explicit endpoint URL, overrides DSPC_ENDPOINT
        api_key: Explicit API key, overrides DSPC_API_KEY
        timeout: Explicit timeout in seconds, overrides DSPC_TIMEOUT
        settings: Pre-loaded settings, read from the environment when omitted

    Returns:
        EndpointConfig with every value resolved

    Raises:
        ConfigurationError: If endpoint or API key is empty after all fallbacks
    """
    settings = settings if settings is not None else get_settings()

    resolved_endpoint = (endpoint or settings.endpoint or "").strip()
    if not resolved_endpoint:
        raise ConfigurationError(
            "endpoint is required but not provided. Please set the 'endpoint' attribute "
            "in the provider configuration or set the DSPC_ENDPOINT environment variable"
        )

    resolved_key = (api_key or settings.api_key or "").strip()
    if not resolved_key:
        raise ConfigurationError(
            "API key is required but not provided. Please set the 'api_key' attribute "
            "in the provider configuration or set the DSPC_API_KEY environment variable"
        )

    return EndpointConfig(
        endpoint=resolved_endpoint,
        api_key=resolved_key,
        timeout_seconds=resolve_timeout(timeout, settings.timeout),
    )
