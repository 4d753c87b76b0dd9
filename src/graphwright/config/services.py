"""Endpoints of the external extraction and rights-inference services."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import env_float, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

EXTRACTION_TIMEOUT_SECONDS = 120.0
RIGHTS_TIMEOUT_SECONDS = 30.0


def _auth_headers(api_key: str | None) -> dict[str, str] | None:
    if not api_key:
        return None
    return {"Authorization": f"Bearer {api_key}"}


def _cache_from_environment() -> CacheConfig | None:
    backend = os.getenv("GRAPHWRIGHT_HTTP_CACHE", "").strip().lower()
    if backend == "sqlite":
        return CacheConfig(backend="sqlite")
    if backend == "memory":
        return CacheConfig(backend="memory")
    return None


@dataclass(frozen=True)
class ExtractionServiceConfig:
    """Holds the extraction service endpoint and client resilience settings."""

    base_url: str
    resilience: ResilienceConfig
    api_key: str | None = None

    @classmethod
    def from_environment(cls) -> ExtractionServiceConfig:
        values = require_env_vars(("GRAPHWRIGHT_EXTRACTION_URL",))
        base_url = values["GRAPHWRIGHT_EXTRACTION_URL"]
        api_key = os.getenv("GRAPHWRIGHT_EXTRACTION_API_KEY")
        return cls(
            base_url=base_url,
            api_key=api_key,
            resilience=ResilienceConfig(
                name="extraction",
                base_url=base_url,
                timeout_seconds=env_float(
                    "GRAPHWRIGHT_EXTRACTION_TIMEOUT", EXTRACTION_TIMEOUT_SECONDS
                ),
                retry=RetryPolicy.from_environment(),
                ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
                cache=_cache_from_environment(),
                default_headers=_auth_headers(api_key),
            ),
        )


@dataclass(frozen=True)
class RightsServiceConfig:
    """Holds the rights-inference service endpoint and client resilience settings."""

    base_url: str
    resilience: ResilienceConfig
    api_key: str | None = None

    @classmethod
    def from_environment(cls) -> RightsServiceConfig | None:
        base_url = os.getenv("GRAPHWRIGHT_RIGHTS_URL")
        if not base_url or not base_url.strip():
            return None
        api_key = os.getenv("GRAPHWRIGHT_RIGHTS_API_KEY")
        return cls(
            base_url=base_url,
            api_key=api_key,
            resilience=ResilienceConfig(
                name="rights",
                base_url=base_url,
                timeout_seconds=RIGHTS_TIMEOUT_SECONDS,
                retry=RetryPolicy.from_environment(),
                ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
                default_headers=_auth_headers(api_key),
            ),
        )
