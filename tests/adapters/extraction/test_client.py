from __future__ import annotations

from uuid import uuid4

import httpx
import pytest

from graphwright.adapters.extraction import HttpExtractionGateway
from graphwright.adapters.extraction.client import EXTRACT_PATH
from graphwright.config.services import ExtractionServiceConfig
from graphwright.domain.errors import InvalidDataError, TransientError
from graphwright.domain.model import Pool
from graphwright.domain.ports.gateways import ExtractionContext
from tests.support.http import RecordingService, resilience

PAYLOAD = {
    "entities": [
        {
            "id": "e1",
            "pool": "idea",
            "label": " Radical Inclusion ",
            "representation": "Radical inclusion as a design value",
            "time_bounds": {"valid_from": "2024-01-01T00:00:00+00:00", "valid_to": ""},
            "confidence": 0.8,
        },
        {"id": "e2", "pool": "Manifest", "label": "Community Garden"},
    ],
    "relations": [{"source": "e1", "verb": "implements", "target": "e2"}],
}


def _gateway(service: RecordingService, *, retries: int = 0) -> HttpExtractionGateway:
    config = ExtractionServiceConfig(
        base_url="http://extraction.test", resilience=resilience("extraction", retries=retries)
    )
    return HttpExtractionGateway(config=config, client_factory=service.client_factory())


def _context() -> ExtractionContext:
    return ExtractionContext(
        run_id=uuid4(),
        item_id=uuid4(),
        knowledge_base="garden",
        media_type="text/markdown",
        uri="notes/garden.md",
    )


def test_extract_translates_service_payload() -> None:
    service = RecordingService([httpx.Response(200, json=PAYLOAD)])

    result = _gateway(service).extract("Some text", _context())

    idea, manifest = result.entities
    assert idea.pool is Pool.IDEA
    assert idea.label == "Radical Inclusion"
    assert idea.repr_text == "Radical inclusion as a design value"
    assert idea.time_bounds.valid_from is not None
    assert idea.time_bounds.valid_to is None
    assert idea.confidence == 0.8
    assert manifest.pool is Pool.MANIFEST
    assert manifest.repr_text == "Community Garden"
    (relation,) = result.relations
    assert (relation.source_ref, relation.verb, relation.target_ref) == ("e1", "implements", "e2")


def test_request_carries_call_context() -> None:
    service = RecordingService([httpx.Response(200, json={"entities": [], "relations": []})])
    context = _context()

    _gateway(service).extract("Some text", context)

    (request,) = service.requests
    assert request.method == "POST"
    assert request.url.path == EXTRACT_PATH
    assert service.bodies == [
        {
            "content": "Some text",
            "run_id": str(context.run_id),
            "item_id": str(context.item_id),
            "knowledge_base": "garden",
            "media_type": "text/markdown",
            "uri": "notes/garden.md",
        }
    ]


def test_malformed_payload_is_invalid_data() -> None:
    broken = {"entities": [{"id": "e1", "pool": "idea", "label": "", "confidence": 3}]}
    service = RecordingService([httpx.Response(200, json=broken)])

    with pytest.raises(InvalidDataError, match="malformed payload") as info:
        _gateway(service).extract("Some text", _context())

    assert len(info.value.details["errors"]) == 2  # type: ignore[arg-type]


def test_server_errors_are_transient_after_retries() -> None:
    service = RecordingService([httpx.Response(503)])

    with pytest.raises(TransientError, match="HTTP 503"):
        _gateway(service, retries=2).extract("Some text", _context())

    assert len(service.requests) == 3


def test_retry_recovers_from_a_single_server_error() -> None:
    service = RecordingService([httpx.Response(502), httpx.Response(200, json=PAYLOAD)])

    result = _gateway(service, retries=1).extract("Some text", _context())

    assert len(result.entities) == 2
    assert len(service.requests) == 2


def test_client_errors_are_invalid_data() -> None:
    service = RecordingService([httpx.Response(400, text="content too large")])

    with pytest.raises(InvalidDataError, match="content too large"):
        _gateway(service).extract("Some text", _context())
