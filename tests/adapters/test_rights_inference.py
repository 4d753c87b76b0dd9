from __future__ import annotations

from datetime import UTC, datetime
from pathlib import PurePosixPath

import httpx
import pytest

from graphwright.adapters.rights_inference import HttpRightsInferenceGateway
from graphwright.config.services import RightsServiceConfig
from graphwright.domain.errors import InvalidDataError, TransientError
from graphwright.domain.model import ConsentStatus, LicenseType
from tests.support.http import RecordingService, resilience


def _gateway(service: RecordingService) -> HttpRightsInferenceGateway:
    config = RightsServiceConfig(base_url="http://rights.test", resilience=resilience("rights"))
    return HttpRightsInferenceGateway(config=config, client_factory=service.client_factory())


def test_infer_normalizes_license_and_consent_tokens() -> None:
    service = RecordingService(
        [
            httpx.Response(
                200,
                json={
                    "license": "CC-BY SA",
                    "consent": "Explicit Consent",
                    "publishable": True,
                    "confidence": 0.92,
                },
            )
        ]
    )

    inference = _gateway(service).infer({"filename": "garden.md"}, "Some text")

    assert inference.license is LicenseType.CC_BY_SA
    assert inference.consent_status is ConsentStatus.EXPLICIT_CONSENT
    assert inference.publishable is True
    assert inference.trainable is None
    assert inference.confidence == 0.92


def test_metadata_is_sent_as_json_scalars() -> None:
    service = RecordingService([httpx.Response(200, json={"confidence": 0.5})])
    modified = datetime(2025, 3, 1, tzinfo=UTC)

    inference = _gateway(service).infer(
        {"filename": "garden.md", "size": 12, "modified": modified, "path": PurePosixPath("a/b")},
        "Some text",
    )

    assert inference.license is LicenseType.UNSPECIFIED
    assert inference.consent_status is ConsentStatus.UNKNOWN
    assert service.bodies == [
        {
            "metadata": {
                "filename": "garden.md",
                "size": 12,
                "modified": str(modified),
                "path": "a/b",
            },
            "content_sample": "Some text",
        }
    ]


@pytest.mark.parametrize(
    "payload",
    [
        {"license": "cc_by"},
        {"license": "cc_by", "confidence": 1.5},
        {"license": "open-ish", "confidence": 0.5},
    ],
)
def test_malformed_inference_is_invalid_data(payload: dict[str, object]) -> None:
    service = RecordingService([httpx.Response(200, json=payload)])

    with pytest.raises(InvalidDataError, match="malformed payload"):
        _gateway(service).infer({}, "Some text")


def test_rate_limited_service_is_transient() -> None:
    service = RecordingService([httpx.Response(429)])

    with pytest.raises(TransientError, match="HTTP 429"):
        _gateway(service).infer({}, "Some text")
