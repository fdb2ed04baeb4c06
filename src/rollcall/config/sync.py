"""Defaults for registry synchronisation and front-desk throttling."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import optional_env_number

DEFAULT_RATE_LIMIT_MAX_REQUESTS = 30
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60.0
_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class SyncConfig:
    overwrite: bool = False


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS
    window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS


def get_sync_config() -> SyncConfig:
    raw = os.getenv("ROLLCALL_SYNC_OVERWRITE", "")
    return SyncConfig(overwrite=raw.strip().lower() in _TRUTHY)


def get_rate_limit_config() -> RateLimitConfig:
    max_requests = optional_env_number("ROLLCALL_RATE_LIMIT_MAX", DEFAULT_RATE_LIMIT_MAX_REQUESTS)
    window = optional_env_number("ROLLCALL_RATE_LIMIT_WINDOW", DEFAULT_RATE_LIMIT_WINDOW_SECONDS)
    return RateLimitConfig(max_requests=int(max_requests), window_seconds=window)
