"""Public interface for the extraction service adapter."""

from __future__ import annotations

from .client import HttpExtractionGateway
from .schema import EntityPayload, ExtractionResponse, RelationPayload
from .translator import translate_response

__all__ = [
    "EntityPayload",
    "ExtractionResponse",
    "HttpExtractionGateway",
    "RelationPayload",
    "translate_response",
]
