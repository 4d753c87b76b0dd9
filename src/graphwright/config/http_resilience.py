"""Resilience settings for the clients of the external extraction and rights services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import httpx

from .env import env_float, env_int

if TYPE_CHECKING:
    from collections.abc import Mapping

# Network errors worth another attempt before the stage sees a TransientError.
RETRYABLE_EXCEPTIONS: tuple[type[httpx.HTTPError], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.5


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries; the pipeline retry budget applies on top of these."""

    total: int = DEFAULT_RETRIES
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    max_backoff_wait: float = 30.0
    backoff_jitter: float = 1.0
    respect_retry_after_header: bool = True
    # extraction and inference are pure functions of the request body, so POST is safe
    allowed_methods: frozenset[str] = frozenset({"GET", "POST"})
    status_forcelist: frozenset[int] = frozenset({429, 502, 503, 504})
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = RETRYABLE_EXCEPTIONS

    @classmethod
    def from_environment(cls) -> RetryPolicy:
        return cls(
            total=max(0, env_int("GRAPHWRIGHT_HTTP_RETRIES", DEFAULT_RETRIES)),
            backoff_factor=env_float("GRAPHWRIGHT_HTTP_BACKOFF", DEFAULT_BACKOFF_FACTOR),
        )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """HTTP response cache; only responses cacheable under RFC 9111 are stored."""

    enabled: bool = True
    backend: Literal["sqlite", "memory"] = "memory"
    sqlite_path: str | None = None
    default_ttl_seconds: float | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = None
    default_headers: Mapping[str, str] | None = None
