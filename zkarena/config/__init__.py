"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from zkarena.config import settings

    print(settings.environment)
    print(settings.zk.backend)
"""

from zkarena.config.settings import (
    Environment,
    LogLevel,
    ProofBackendKind,
    Settings,
    get_settings,
)


# Global settings instance (singleton)
settings = get_settings()

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "Environment",
    "LogLevel",
    "ProofBackendKind",
]
