"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Usage:
    from nested_set.core.settings import get_nested_set_settings

    settings = get_nested_set_settings()  # First call: loads and validates
    settings = get_nested_set_settings()  # Subsequent calls: cached instance

Testing:
    Clear the caches to force a reload after changing the environment:
    clear_all_caches()
"""

from __future__ import annotations

from functools import lru_cache

from .database import DatabaseSettings
from .logs import LoggingSettings
from .nested_set import NestedSetSettings


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_nested_set_settings() -> NestedSetSettings:
    """Get cached nested-set engine settings.

    Returns:
        Validated and frozen NestedSetSettings instance.
    """
    return NestedSetSettings()


def clear_all_caches() -> None:
    """Clear all settings caches (tests, or after changing the environment)."""
    get_db_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_nested_set_settings.cache_clear()
