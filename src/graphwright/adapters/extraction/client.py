"""HTTP gateway to the external extraction service."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from graphwright.adapters.http_resilience import ResilientClient
from graphwright.config.services import ExtractionServiceConfig
from graphwright.domain.errors import InvalidDataError
from graphwright.domain.ports.gateways import ExtractionGateway

from .schema import ExtractionRequest, ExtractionResponse
from .translator import translate_response

if TYPE_CHECKING:
    from collections.abc import Callable

    from graphwright.config.http_resilience import ResilienceConfig
    from graphwright.domain.ports.gateways import ExtractionContext, ExtractionResult

log = getLogger(__name__)

EXTRACT_PATH = "/extract"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpExtractionGateway:
    """Calls ``POST /extract`` and validates the response with pydantic.

    The call context (run, item, knowledge base) travels in the request body so
    the service can attribute its work without any ambient state.
    """

    config: ExtractionServiceConfig = field(
        default_factory=ExtractionServiceConfig.from_environment
    )
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def extract(self, content: str, context: ExtractionContext) -> ExtractionResult:
        return asyncio.run(self._extract_async(content, context))

    async def _extract_async(self, content: str, context: ExtractionContext) -> ExtractionResult:
        request = ExtractionRequest(
            content=content,
            run_id=str(context.run_id),
            item_id=str(context.item_id),
            knowledge_base=context.knowledge_base,
            media_type=context.media_type,
            uri=context.uri,
        )
        async with self.client_factory(self.config.resilience) as client:
            payload = await client.post_json(EXTRACT_PATH, request.model_dump())

        try:
            response = ExtractionResponse.model_validate(payload)
        except ValidationError as exc:
            log.error(
                "[run %s] malformed extraction payload for item %s",
                context.run_id,
                context.item_id,
            )
            raise InvalidDataError(
                f"Extraction service returned a malformed payload: {exc.error_count()} error(s)",
                details={
                    "item_id": str(context.item_id),
                    "errors": [error["msg"] for error in exc.errors()],
                },
            ) from exc

        result = translate_response(response)
        log.debug(
            "[run %s] extracted %s entities and %s relations from %s",
            context.run_id,
            len(result.entities),
            len(result.relations),
            context.uri or context.item_id,
        )
        return result


if TYPE_CHECKING:
    _gateway_check: ExtractionGateway = HttpExtractionGateway()
