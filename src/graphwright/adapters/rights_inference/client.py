"""HTTP gateway to the external rights-inference service."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from graphwright.adapters.http_resilience import ResilientClient
from graphwright.domain.errors import InvalidDataError
from graphwright.domain.ports.gateways import RightsInference

from .schema import InferenceRequest, InferenceResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from graphwright.config.http_resilience import ResilienceConfig
    from graphwright.config.services import RightsServiceConfig

log = getLogger(__name__)

INFER_PATH = "/infer"
_SCALARS = (str, int, float, bool)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _json_safe(metadata: Mapping[str, object]) -> dict[str, object]:
    return {
        str(key): value if value is None or isinstance(value, _SCALARS) else str(value)
        for key, value in metadata.items()
    }


@dataclass(slots=True)
class HttpRightsInferenceGateway:
    config: RightsServiceConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def infer(self, item_metadata: Mapping[str, object], content_sample: str) -> RightsInference:
        return asyncio.run(self._infer_async(item_metadata, content_sample))

    async def _infer_async(
        self, item_metadata: Mapping[str, object], content_sample: str
    ) -> RightsInference:
        request = InferenceRequest(
            metadata=_json_safe(item_metadata), content_sample=content_sample
        )
        async with self.client_factory(self.config.resilience) as client:
            payload = await client.post_json(INFER_PATH, request.model_dump())

        try:
            response = InferenceResponse.model_validate(payload)
        except ValidationError as exc:
            log.error("Malformed rights inference payload: %s", exc)
            raise InvalidDataError(
                "Rights inference service returned a malformed payload",
                details={"errors": [error["msg"] for error in exc.errors()]},
            ) from exc

        return RightsInference(
            license=response.license,
            consent_status=response.consent_status,
            publishable=response.publishable,
            trainable=response.trainable,
            confidence=response.confidence,
        )

