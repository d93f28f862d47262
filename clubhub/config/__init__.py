"""
Configuration package for the clubhub validation engine.

Exposes the environment-driven ValidationSettings and the cached accessor
used by every entity schema.
"""

from .settings import (
    ConfigurationError,
    ValidationSettings,
    get_validation_settings,
    reload_validation_settings,
)

__all__ = [
    'ConfigurationError',
    'ValidationSettings',
    'get_validation_settings',
    'reload_validation_settings',
]
