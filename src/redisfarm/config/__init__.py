"""Configuration management module.

This module provides:
- Environment-based configuration with validation
- Redis and store registry settings
- Cached settings access via get_settings()
"""

from .settings import (
    Environment,
    FarmSettings,
    LogFormat,
    LogLevel,
    RedisSettings,
    Settings,
    get_settings,
)

__all__ = [
    # Main settings
    "Settings",
    "get_settings",
    # Enums
    "Environment",
    "LogLevel",
    "LogFormat",
    # Component settings
    "RedisSettings",
    "FarmSettings",
]
