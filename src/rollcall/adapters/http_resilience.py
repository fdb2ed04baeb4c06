"""httpx client with bounded retries, client-side throttling and optional caching."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Any, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from rollcall.config.storage import get_http_cache_path

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import HeaderTypes, QueryParamTypes, TimeoutTypes, URLTypes

    from rollcall.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        RetryPolicy,
        ShouldCacheHook,
    )

log = getLogger(__name__)


class RequestOptions(TypedDict, total=False):
    params: QueryParamTypes | None
    json: object
    headers: HeaderTypes | None
    timeout: TimeoutTypes


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
        backoff_jitter=policy.backoff_jitter,
    )


class ResilientClient:
    """Async httpx client configured from a :class:`ResilienceConfig`.

    Requests go through a retrying transport and, when ``config.ratelimit`` is
    set, an ``aiolimiter`` throttle. With a cache configured the underlying
    client is a hishel ``AsyncCacheClient`` whose response filter consults
    ``config.cache.should_cache``.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )

        options: dict[str, Any] = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(retry=build_retry(config.retry)),
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url
        if config.default_headers:
            options["headers"] = dict(config.default_headers)

        storage = _cache_storage(config.cache)
        if storage is None:
            self._client: httpx.AsyncClient = httpx.AsyncClient(**options)
        else:
            log.debug("HTTP cache enabled for %s", config.name)
            self._client = AsyncCacheClient(
                **options, storage=storage, policy=_cache_policy(config.cache)
            )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self, method: str, url: URLTypes, **kwargs: Unpack[RequestOptions]
    ) -> httpx.Response:
        if self._limiter is None:
            return await self._client.request(method, url, **kwargs)
        async with self._limiter:
            return await self._client.request(method, url, **kwargs)

    async def get(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def get_json(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> object:
        """GET ``url`` and decode the body.

        Raises ``httpx.HTTPError`` for transport failures and error statuses,
        ``ValueError`` when the body is not JSON.
        """

        response = await self.get(url, **kwargs)
        response.raise_for_status()
        return response.json()


class _PayloadFilter(BaseFilter[HishelCacheResponse]):
    """Stores a response only when its decoded JSON satisfies ``predicate``."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if not body:
            return False
        try:
            return bool(self._predicate(json.loads(body)))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False


def _cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    if config is None or not config.enabled:
        return None
    match config.backend:
        case "sqlite":
            database_path = config.sqlite_path or str(get_http_cache_path())
        case "memory":
            database_path = ":memory:"
        case _:
            msg = f"Unsupported cache backend: {config.backend}"
            raise ValueError(msg)
    return AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.default_ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )


def _cache_policy(config: CacheConfig | None) -> FilterPolicy | None:
    if config is None or config.should_cache is None:
        return None
    return FilterPolicy(response_filters=[_PayloadFilter(config.should_cache)])
