"""Pydantic Settings v2 configuration.

Settings are split by domain (database, logging, nested-set engine), frozen,
and loaded through LRU-cached loaders:

    from nested_set.core.settings import get_db_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional)
    3. Environment variables
    4. .env file
    5. secrets_dir
"""

from __future__ import annotations

from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
    get_db_settings,
    get_logging_settings,
    get_nested_set_settings,
)
from .logs import LoggingSettings
from .nested_set import NestedSetSettings

__all__ = [
    "DatabaseSettings",
    "LoggingSettings",
    "NestedSetSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_logging_settings",
    "get_nested_set_settings",
]
