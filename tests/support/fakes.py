from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from graphwright.domain.model import (
    ConsentStatus,
    LicenseType,
    Pool,
    RightsTerms,
    RunOptions,
    SourceInput,
)
from graphwright.domain.ports.gateways import (
    ExtractedEntity,
    ExtractedRelation,
    ExtractionResult,
    RightsInference,
    TimeBounds,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from graphwright.domain.ports.gateways import ExtractionContext

START = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


@dataclass
class FrozenClock:
    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


def declared_cc_by() -> RightsTerms:
    return RightsTerms(license=LicenseType.CC_BY, consent=ConsentStatus.EXPLICIT_CONSENT)


def declared_options(
    *, auto_advance: bool = True, skip_failed_items: bool = False, knowledge_base: str = "default"
) -> RunOptions:
    return RunOptions(
        knowledge_base=knowledge_base,
        auto_advance=auto_advance,
        skip_failed_items=skip_failed_items,
        declared_rights=declared_cc_by(),
        started_by="tests",
    )


def make_sources(count: int, *, prefix: str = "notes/item") -> list[SourceInput]:
    return [
        SourceInput(
            uri=f"{prefix}-{index}.md",
            content=f"# Note {index}\n\nRadical Inclusion shapes the Community Garden.",
            metadata={"filename": f"item-{index}.md"},
        )
        for index in range(count)
    ]


def idea_manifest_result(
    *,
    idea: str = "Radical Inclusion",
    manifest: str = "Community Garden",
    verb: str = "implements",
    observed: datetime | None = None,
) -> ExtractionResult:
    """One idea embodied by one manifest, the relation phrased with a free-form verb."""

    return ExtractionResult(
        entities=(
            ExtractedEntity(
                ref="e1",
                pool=Pool.IDEA,
                label=idea,
                repr_text=f"The idea of {idea.lower()}",
                time_bounds=TimeBounds(valid_from=observed),
            ),
            ExtractedEntity(
                ref="e2",
                pool=Pool.MANIFEST,
                label=manifest,
                repr_text=f"{manifest}, a neighbourhood project",
                attributes={"type": "project"},
            ),
        ),
        relations=(ExtractedRelation(source_ref="e1", verb=verb, target_ref="e2"),),
    )


@dataclass
class FakeExtractionGateway:
    """Returns canned results per uri; queued exceptions are raised first."""

    default: ExtractionResult = field(default_factory=idea_manifest_result)
    by_uri: dict[str, ExtractionResult] = field(default_factory=dict)
    failures: list[Exception] = field(default_factory=list)
    calls: list[ExtractionContext] = field(default_factory=list)

    def extract(self, content: str, context: ExtractionContext) -> ExtractionResult:
        self.calls.append(context)
        if self.failures:
            raise self.failures.pop(0)
        return self.by_uri.get(context.uri or "", self.default)


@dataclass
class FakeRightsInferenceGateway:
    confidence: float = 0.9
    license: LicenseType = LicenseType.CC_BY_SA
    by_filename: dict[str, float] = field(default_factory=dict)
    calls: int = 0

    def infer(self, item_metadata: Mapping[str, object], content_sample: str) -> RightsInference:
        _ = content_sample
        self.calls += 1
        filename = str(item_metadata.get("filename", ""))
        return RightsInference(
            license=self.license,
            consent_status=ConsentStatus.IMPLICIT_CONSENT,
            publishable=None,
            trainable=None,
            confidence=self.by_filename.get(filename, self.confidence),
        )


@dataclass
class FakeEmbeddingGateway:
    dimensions: int = 3
    batches: list[int] = field(default_factory=list)

    def embed(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        self.batches.append(len(texts))
        return [[float(len(text))] * self.dimensions for text in texts]


@dataclass
class RecordingDeliverableSink:
    published: dict[tuple[UUID, str], Mapping[str, object]] = field(default_factory=dict)

    def publish(self, run_id: UUID, name: str, payload: Mapping[str, object]) -> str:
        self.published[(run_id, name)] = payload
        return f"memory://{run_id}/{name}"
