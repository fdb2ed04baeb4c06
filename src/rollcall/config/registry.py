"""External registry configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_number, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, ShouldCacheHook

REGISTRY_TIMEOUT_SECONDS = 15.0
REGISTRY_API_KEY_HEADER = "x-req"


@dataclass(frozen=True)
class RegistryConfig:
    """Holds the registry endpoint, credentials and organisation code."""

    base_url: str
    api_key: str
    org_code: str
    resilience: ResilienceConfig


def get_registry_config(
    *,
    resilience: ResilienceConfig | None = None,
    cache_predicate: ShouldCacheHook | None = None,
) -> RegistryConfig:
    values = require_env_vars(("REGISTRY_BASE_URL", "REGISTRY_API_KEY", "REGISTRY_ORG_CODE"))
    base_url = values["REGISTRY_BASE_URL"].rstrip("/") + "/"
    timeout = optional_env_number("REGISTRY_TIMEOUT_SECONDS", REGISTRY_TIMEOUT_SECONDS)
    return RegistryConfig(
        base_url=base_url,
        api_key=values["REGISTRY_API_KEY"],
        org_code=values["REGISTRY_ORG_CODE"],
        resilience=resilience
        or ResilienceConfig(
            name="registry",
            base_url=base_url,
            timeout_seconds=timeout,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            cache=CacheConfig(
                backend="memory",
                default_ttl_seconds=300.0,
                should_cache=cache_predicate,
            ),
            default_headers={REGISTRY_API_KEY_HEADER: values["REGISTRY_API_KEY"]},
        ),
    )
