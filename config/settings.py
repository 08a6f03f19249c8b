"""
Configuration management for the Driver Location Service.

Settings come from environment variables layered over ``.env`` files.
The files read depend on ENVIRONMENT: ``.env`` first, then
``.env.<environment>``, with later files taking precedence.

Environment variables:
- PORT: HTTP listen port
- DB_NAME / COLLECTION_DL: together name the driver-location index
- ELASTIC_ENDPOINT / ELASTIC_API_KEY: document store connection
- MIN_POOL_SIZE / MAX_POOL_SIZE: connection pool bounds
- CORS_ORIGINS: exact origins, or ``["*"]`` for any origin
"""

import os
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, List, Tuple

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


ENV_FILES: Dict[Environment, Tuple[str, ...]] = {
    environment: (".env", f".env.{environment.value}") for environment in Environment
}

ANY_ORIGIN = "*"


def current_environment() -> Environment:
    """Environment named by ENVIRONMENT; unset or unknown values mean development."""
    value = os.environ.get("ENVIRONMENT", "").strip().lower()
    known = {environment.value for environment in Environment}
    return Environment(value) if value in known else Environment.DEVELOPMENT


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    ELASTIC_ENDPOINT is the only required value. The application will fail
    to start if it is missing or if any field is invalid.

    The ENVIRONMENT variable determines which environment-specific .env
    file is layered over the base .env file.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment (development, staging, production)"
    )

    # HTTP server
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on"
    )

    # Document store
    db_name: str = Field(
        default="locationdb",
        description="Logical database name, used as the index name prefix"
    )
    collection_dl: str = Field(
        default="driverlocation",
        description="Driver location collection, used as the index name suffix"
    )
    elastic_endpoint: str = Field(
        ...,
        description="Elasticsearch endpoint URL"
    )
    elastic_api_key: Optional[str] = Field(
        default=None,
        description="Elasticsearch API key, omitted for unsecured clusters"
    )
    min_pool_size: int = Field(
        default=1,
        ge=0,
        description="Lower bound of the store connection pool"
    )
    max_pool_size: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Upper bound of connections per store node"
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Store request timeout in seconds"
    )

    # Observability
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("elastic_endpoint")
    @classmethod
    def validate_elastic_endpoint(cls, v: str) -> str:
        """Validate that elastic_endpoint is not empty and is a valid URL format."""
        if not v or not v.strip():
            raise ValueError("elastic_endpoint cannot be empty")
        v = v.strip().strip('"')
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("elastic_endpoint must be a valid HTTP/HTTPS URL")
        return v

    @field_validator("elastic_api_key")
    @classmethod
    def validate_elastic_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank API key as not configured."""
        if v is None:
            return None
        v = v.strip().strip('"')
        return v or None

    @field_validator("db_name", "collection_dl")
    @classmethod
    def validate_index_part(cls, v: str) -> str:
        """Index name parts must be non-empty and free of whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        if any(ch.isspace() for ch in v):
            raise ValueError("must not contain whitespace")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: List[str]) -> List[str]:
        """
        Validate CORS origins.

        Either exact http(s) origins, or ``["*"]`` alone to allow any origin.
        Partial wildcards such as ``https://*.example.com`` are rejected.
        """
        origins = [origin.strip() for origin in v]
        if origins == [ANY_ORIGIN]:
            return origins

        validated_origins = []
        for origin in origins:
            if "*" in origin:
                raise ValueError(
                    f"Wildcard patterns are not allowed in CORS origins: {origin}. "
                    f'Use exact origins, or ["{ANY_ORIGIN}"] alone to allow any origin.'
                )
            if not (origin.startswith("http://") or origin.startswith("https://")):
                raise ValueError(
                    f"Invalid CORS origin format: {origin}. "
                    "Must start with http:// or https://"
                )
            validated_origins.append(origin)
        return validated_origins

    @model_validator(mode="after")
    def validate_pool_bounds(self) -> "Settings":
        """The pool lower bound may not exceed the upper bound."""
        if self.min_pool_size > self.max_pool_size:
            raise ValueError(
                f"min_pool_size ({self.min_pool_size}) cannot exceed "
                f"max_pool_size ({self.max_pool_size})"
            )
        return self

    @property
    def index_name(self) -> str:
        """Elasticsearch index holding driver location records."""
        return f"{self.db_name}-{self.collection_dl}".lower()




class ConfigurationError(Exception):
    """
    Settings could not be loaded or cannot be used.

    The exception message lists every missing and invalid field so a
    failed start can be fixed in one pass.
    """

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[Dict[str, str]] = None):
        self.message = message
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or {}

        lines = [message]
        if self.missing_fields:
            lines.append(f"Missing required fields: {', '.join(self.missing_fields)}")
        if self.invalid_fields:
            lines.append("Invalid field values:")
            lines.extend(f"  - {field}: {error}" for field, error in self.invalid_fields.items())
        super().__init__("\n".join(lines))

    @classmethod
    def from_validation_error(cls, message: str, error: ValidationError) -> "ConfigurationError":
        missing_fields = []
        invalid_fields = {}
        for item in error.errors():
            # Model-level validators report an empty location
            field_name = ".".join(str(loc) for loc in item.get("loc", ())) or "settings"
            if item.get("type") == "missing":
                missing_fields.append(field_name)
            else:
                invalid_fields[field_name] = item.get("msg", "")
        return cls(message, missing_fields=missing_fields, invalid_fields=invalid_fields)


def create_settings_for_environment(environment: Optional[Environment] = None) -> Settings:
    """
    Load settings for an environment, reading whichever of its .env files exist.

    Args:
        environment: Environment to load; taken from ENVIRONMENT when omitted

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    environment = environment or current_environment()
    env_files = tuple(path for path in ENV_FILES[environment] if Path(path).exists())

    try:
        return Settings(_env_file=env_files or None)
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(
            f"Failed to load configuration for environment '{environment.value}'", e
        ) from e


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the application settings, loading them on first use.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings_cache
    _settings_cache = None


def validate_startup(settings: Optional[Settings] = None) -> None:
    """
    Check settings that are valid in general but unusable in this environment.

    Production requires an https:// Elasticsearch endpoint.

    Raises:
        ConfigurationError: If the settings cannot be used in this environment
    """
    settings = settings or get_settings()

    if settings.environment == Environment.PRODUCTION and not settings.elastic_endpoint.startswith("https://"):
        raise ConfigurationError(
            "Configuration validation failed during startup",
            invalid_fields={
                "elastic_endpoint": "Production environment requires an https:// Elasticsearch endpoint"
            },
        )
