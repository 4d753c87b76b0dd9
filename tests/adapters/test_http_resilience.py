from __future__ import annotations

import asyncio

import httpx
import pytest

from graphwright.adapters.http_resilience import ResilientClient, build_retry
from graphwright.config.http_resilience import CacheConfig, ResilienceConfig, RetryPolicy
from graphwright.domain.errors import InvalidDataError, TransientError
from tests.support.http import RecordingService, resilience


def _post(service: RecordingService, config: ResilienceConfig | None = None) -> object:
    async def call() -> object:
        factory = service.client_factory()
        async with factory(config or resilience("svc")) as client:
            return await client.post_json("/call", {"value": 1})

    return asyncio.run(call())


def test_post_json_returns_decoded_body() -> None:
    service = RecordingService([httpx.Response(200, json={"ok": True})])

    assert _post(service) == {"ok": True}
    assert str(service.requests[0].url) == "http://svc.test/call"
    assert service.bodies == [{"value": 1}]


def test_default_headers_are_sent() -> None:
    service = RecordingService([httpx.Response(200, json={})])
    config = ResilienceConfig(
        name="svc",
        base_url="http://svc.test",
        retry=RetryPolicy(total=0),
        default_headers={"Authorization": "Bearer secret"},
    )

    _post(service, config)

    assert service.requests[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (429, TransientError),
        (500, TransientError),
        (503, TransientError),
        (400, InvalidDataError),
        (404, InvalidDataError),
        (422, InvalidDataError),
    ],
)
def test_status_codes_map_to_error_kinds(status: int, error: type[Exception]) -> None:
    service = RecordingService([httpx.Response(status)])

    with pytest.raises(error, match=f"HTTP {status}"):
        _post(service)


def test_non_json_body_is_invalid_data() -> None:
    service = RecordingService([httpx.Response(200, text="<html>oops</html>")])

    with pytest.raises(InvalidDataError, match="not JSON"):
        _post(service)


def test_network_failures_are_transient() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def call() -> object:
        client = ResilientClient(resilience("svc"), transport=httpx.MockTransport(refuse))
        async with client:
            return await client.post_json("/call", {})

    with pytest.raises(TransientError, match="svc request failed") as info:
        asyncio.run(call())

    assert info.value.details == {"service": "svc"}


def test_unsupported_cache_backend_is_rejected() -> None:
    config = ResilienceConfig(
        name="svc",
        cache=CacheConfig(backend="redis"),  # type: ignore[arg-type]
    )

    with pytest.raises(ValueError, match="Unsupported cache backend"):
        ResilientClient(config)


def test_build_retry_copies_policy() -> None:
    policy = RetryPolicy(total=5, backoff_factor=1.5, status_forcelist=frozenset({503}))

    retry = build_retry(policy)

    assert retry.total == 5
    assert retry.backoff_factor == 1.5
    assert retry.is_retryable_status_code(503)
    assert not retry.is_retryable_status_code(500)
