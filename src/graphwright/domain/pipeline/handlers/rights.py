"""Rights: attach exactly one rights record to every item before extraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphwright.domain.errors import InvalidDataError
from graphwright.domain.model import RightsTerms, Stage
from graphwright.domain.rights import RightsRegistry, declared_context_key, item_context_key

from ..stages import ITEMS_PROCESSED

if TYPE_CHECKING:
    from graphwright.domain.model import SourceItem
    from graphwright.domain.ports.gateways import RightsInferenceGateway

    from ..context import RunContext

log = logging.getLogger(__name__)


def _unfailed(items: list[SourceItem]) -> list[SourceItem]:
    return [item for item in items if not item.failed]


class RightsHandler:
    """Register declared rights once per run, or infer them per item.

    Items whose inferred rights fall below the quarantine confidence keep their
    record (so provenance is complete) but are excluded from extraction.
    """

    stage = Stage.RIGHTS
    required_metrics = (ITEMS_PROCESSED, "items_quarantined", "records_created")

    def expected_items(self, context: RunContext) -> int:
        with context.unit_of_work() as uow:
            return len(_unfailed(uow.repositories.items.for_run(context.run_id)))

    def run(self, context: RunContext) -> dict[str, float]:
        declared = context.options.declared_rights
        gateway = context.services.rights_inference
        if declared is None and gateway is None:
            raise InvalidDataError(
                "No declared rights and no rights inference service; refusing to ingest",
                details={"run_id": str(context.run_id)},
            )

        processed = quarantined = created = 0
        now = context.now()
        with context.unit_of_work() as uow:
            registry = RightsRegistry(uow.repositories.rights)
            items = _unfailed(uow.repositories.items.for_run(context.run_id))
            if declared is not None:
                record, was_created = registry.register(
                    declared_context_key(context.run_id), declared, now=now
                )
                created += int(was_created)
                for item in items:
                    item.rights_id = record.id
                    processed += 1
            elif gateway is not None:
                for item in items:
                    was_created, was_quarantined = self._infer(
                        context, registry, gateway, item
                    )
                    created += int(was_created)
                    quarantined += int(was_quarantined)
                    processed += 1
            uow.commit()

        return {
            ITEMS_PROCESSED: processed,
            "items_quarantined": quarantined,
            "records_created": created,
        }

    @staticmethod
    def _infer(
        context: RunContext,
        registry: RightsRegistry,
        gateway: RightsInferenceGateway,
        item: SourceItem,
    ) -> tuple[bool, bool]:
        key = item_context_key(context.run_id, item.id)
        existing = registry.repository.get_by_context(key)
        if existing is not None:
            item.rights_id = existing.id
            return False, item.quarantined

        inference = gateway.infer(item.source_metadata, item.content_sample())
        threshold = context.config.quarantine_confidence
        low_confidence = inference.confidence < threshold
        terms = RightsTerms(
            license=inference.license,
            consent=inference.consent_status,
            confidence=inference.confidence,
            publishable=inference.publishable,
            trainable=inference.trainable,
            source="inferred",
        )
        record, created = registry.register(
            key, terms, quarantined=low_confidence, now=context.now()
        )
        item.rights_id = record.id
        if low_confidence:
            item.quarantine(
                f"rights confidence {inference.confidence:.2f} below {threshold:.2f}"
            )
            log.warning(
                "%s quarantined %s: rights confidence %.2f",
                context.prefix,
                item.uri,
                inference.confidence,
            )
        return created, low_confidence
