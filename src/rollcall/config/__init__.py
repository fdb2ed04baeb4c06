"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_number, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import DeskContextFilter, configure_logging, desk_context
from .registry import RegistryConfig, get_registry_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_http_cache_path,
    get_storage_config,
)
from .sync import RateLimitConfig, SyncConfig, get_rate_limit_config, get_sync_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "DeskContextFilter",
    "MissingConfigurationError",
    "RateLimit",
    "RateLimitConfig",
    "RegistryConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "desk_context",
    "get_database_config",
    "get_database_uri",
    "get_http_cache_path",
    "get_rate_limit_config",
    "get_registry_config",
    "get_storage_config",
    "get_sync_config",
    "optional_env_number",
    "require_env_var",
    "require_env_vars",
]
