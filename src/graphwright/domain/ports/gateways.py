"""External services consumed by the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, cast, runtime_checkable

from graphwright.domain.model import ConsentStatus, LicenseType, Pool

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class ExtractionContext:
    """Explicit call context handed to the extraction service."""

    run_id: UUID
    item_id: UUID
    knowledge_base: str
    media_type: str | None = None
    uri: str | None = None


@dataclass(frozen=True, slots=True)
class TimeBounds:
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    observed_at: datetime | None = None

    def to_payload(self) -> dict[str, str | None]:
        return {
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
            "observed_at": self.observed_at.isoformat() if self.observed_at else None,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> TimeBounds:
        def _parse(name: str) -> datetime | None:
            value = payload.get(name)
            return datetime.fromisoformat(value) if isinstance(value, str) else None

        return cls(
            valid_from=_parse("valid_from"),
            valid_to=_parse("valid_to"),
            observed_at=_parse("observed_at"),
        )


@dataclass(frozen=True, slots=True)
class ExtractedEntity:
    ref: str
    pool: Pool
    label: str
    repr_text: str
    time_bounds: TimeBounds = field(default_factory=TimeBounds)
    attributes: Mapping[str, object] = field(default_factory=dict)
    confidence: float = 1.0


@dataclass(frozen=True, slots=True)
class ExtractedRelation:
    source_ref: str
    verb: str
    target_ref: str
    evidence: str | None = None
    confidence: float = 1.0


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    entities: tuple[ExtractedEntity, ...] = ()
    relations: tuple[ExtractedRelation, ...] = ()

    def to_payload(self) -> dict[str, object]:
        """Plain JSON form, cached on the source item between stages."""

        return {
            "entities": [
                {
                    "ref": entity.ref,
                    "pool": entity.pool.value,
                    "label": entity.label,
                    "repr_text": entity.repr_text,
                    "time_bounds": entity.time_bounds.to_payload(),
                    "attributes": dict(entity.attributes),
                    "confidence": entity.confidence,
                }
                for entity in self.entities
            ],
            "relations": [
                {
                    "source_ref": relation.source_ref,
                    "verb": relation.verb,
                    "target_ref": relation.target_ref,
                    "evidence": relation.evidence,
                    "confidence": relation.confidence,
                }
                for relation in self.relations
            ],
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> ExtractionResult:
        raw_entities = cast("list[Mapping[str, object]]", payload.get("entities") or [])
        raw_relations = cast("list[Mapping[str, object]]", payload.get("relations") or [])
        entities = tuple(
            ExtractedEntity(
                ref=str(raw["ref"]),
                pool=Pool.parse(str(raw["pool"])),
                label=str(raw["label"]),
                repr_text=str(raw.get("repr_text") or raw["label"]),
                time_bounds=TimeBounds.from_payload(
                    cast("Mapping[str, object]", raw.get("time_bounds") or {})
                ),
                attributes=dict(cast("Mapping[str, object]", raw.get("attributes") or {})),
                confidence=float(cast(float, raw.get("confidence", 1.0))),
            )
            for raw in raw_entities
        )
        relations = tuple(
            ExtractedRelation(
                source_ref=str(raw["source_ref"]),
                verb=str(raw["verb"]),
                target_ref=str(raw["target_ref"]),
                evidence=cast("str | None", raw.get("evidence")),
                confidence=float(cast(float, raw.get("confidence", 1.0))),
            )
            for raw in raw_relations
        )
        return cls(entities=entities, relations=relations)


@runtime_checkable
class ExtractionGateway(Protocol):
    """Turns raw content into typed entities and relations.

    Implementations raise :class:`graphwright.domain.errors.TransientError` for
    failures worth retrying and :class:`~graphwright.domain.errors.InvalidDataError`
    for malformed responses.
    """

    def extract(self, content: str, context: ExtractionContext) -> ExtractionResult: ...


@dataclass(frozen=True, slots=True)
class RightsInference:
    license: LicenseType
    consent_status: ConsentStatus
    publishable: bool | None
    trainable: bool | None
    confidence: float


@runtime_checkable
class RightsInferenceGateway(Protocol):
    def infer(
        self, item_metadata: Mapping[str, object], content_sample: str
    ) -> RightsInference: ...


@runtime_checkable
class EmbeddingGateway(Protocol):
    def embed(self, texts: Sequence[str]) -> Sequence[Sequence[float]]: ...


@runtime_checkable
class DeliverableSink(Protocol):
    def publish(self, run_id: UUID, name: str, payload: Mapping[str, object]) -> str:
        """Store ``payload`` and return where it was written."""
        ...
