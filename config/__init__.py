# Configuration module for the Driver Location Service
from .settings import (
    Settings,
    Environment,
    ConfigurationError,
    get_settings,
    clear_settings_cache,
    validate_startup,
)

__all__ = [
    "Settings",
    "Environment",
    "ConfigurationError",
    "get_settings",
    "clear_settings_cache",
    "validate_startup",
]
