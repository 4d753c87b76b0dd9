"""Translate extraction service payloads into domain extraction results."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from graphwright.domain.model import Pool
from graphwright.domain.ports.gateways import (
    ExtractedEntity,
    ExtractedRelation,
    ExtractionResult,
    TimeBounds,
)

if TYPE_CHECKING:
    from .schema import EntityPayload, ExtractionResponse, RelationPayload

log = getLogger(__name__)


def parse_entity(payload: EntityPayload) -> ExtractedEntity | None:
    try:
        pool = Pool.parse(payload.pool)
    except ValueError:
        log.warning("Dropping entity %s with unknown pool %r", payload.ref, payload.pool)
        return None
    if not pool.is_content:
        log.warning("Dropping entity %s claiming system pool %s", payload.ref, pool)
        return None
    bounds = payload.time_bounds
    return ExtractedEntity(
        ref=payload.ref,
        pool=pool,
        label=payload.label.strip(),
        repr_text=payload.repr_text or payload.label.strip(),
        time_bounds=TimeBounds(
            valid_from=bounds.valid_from,
            valid_to=bounds.valid_to,
            observed_at=bounds.observed_at,
        ),
        attributes=dict(payload.attributes),
        confidence=payload.confidence,
    )


def parse_relation(payload: RelationPayload) -> ExtractedRelation:
    return ExtractedRelation(
        source_ref=payload.source_ref,
        verb=payload.verb,
        target_ref=payload.target_ref,
        evidence=payload.evidence,
        confidence=payload.confidence,
    )


def translate_response(response: ExtractionResponse) -> ExtractionResult:
    """Build the domain result; entities of unknown pools are dropped with a warning."""

    entities = tuple(
        entity for entity in (parse_entity(item) for item in response.entities) if entity
    )
    return ExtractionResult(
        entities=entities,
        relations=tuple(parse_relation(item) for item in response.relations),
    )
