"""Lexicon and pools: turn extraction output into terms, entities and relations."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from graphwright.domain.errors import InvalidDataError, MissingRightsError
from graphwright.domain.model import (
    LexiconTerm,
    PoolEntity,
    PoolRelation,
    Stage,
    normalize_label,
    stable_id,
)
from graphwright.domain.ports.gateways import ExtractionResult

from ..stages import ITEMS_PROCESSED

if TYPE_CHECKING:
    from uuid import UUID

    from graphwright.domain.model import SourceItem
    from graphwright.domain.ports.gateways import ExtractedEntity

    from ..context import RunContext

log = logging.getLogger(__name__)


def _eligible(items: list[SourceItem]) -> list[SourceItem]:
    return [item for item in items if item.eligible]


class LexiconHandler:
    """Extract each eligible item once and derive the run's canonical terms.

    The extraction result is cached on the item and committed per item, so a
    retry after a transient failure only calls the service for the remainder.
    """

    stage = Stage.LEXICON
    required_metrics = (ITEMS_PROCESSED, "terms_extracted")

    def expected_items(self, context: RunContext) -> int:
        with context.unit_of_work() as uow:
            return len(_eligible(uow.repositories.items.for_run(context.run_id)))

    def run(self, context: RunContext) -> dict[str, float]:
        gateway = context.services.extraction
        if gateway is None:
            raise InvalidDataError("No extraction service configured")

        processed = failed = 0
        surface_forms: dict[str, set[str]] = defaultdict(set)
        pools: dict[str, set[str]] = defaultdict(set)
        with context.unit_of_work() as uow:
            for item in _eligible(uow.repositories.items.for_run(context.run_id)):
                if item.extraction is None:
                    try:
                        result = gateway.extract(item.content, context.extraction_context(item))
                    except InvalidDataError as exc:
                        if not context.options.skip_failed_items:
                            raise
                        item.failed = True
                        failed += 1
                        uow.commit()
                        log.warning("%s extraction rejected %s: %s", context.prefix, item.uri, exc)
                        continue
                    item.extraction = result.to_payload()
                    uow.commit()
                else:
                    result = ExtractionResult.from_payload(item.extraction)
                processed += 1
                for entity in result.entities:
                    canonical = normalize_label(entity.label)
                    if not canonical:
                        continue
                    surface_forms[canonical].add(entity.label.strip())
                    pools[canonical].add(entity.pool.value)

            terms = uow.repositories.terms.for_run(context.run_id)
            existing = {term.canonical: term for term in terms}
            for canonical, forms in surface_forms.items():
                term = existing.get(canonical)
                if term is None:
                    uow.repositories.terms.add(
                        LexiconTerm(
                            id=stable_id(context.run_id, "term", canonical),
                            run_id=context.run_id,
                            canonical=canonical,
                            surface_forms=sorted(forms),
                            pools=sorted(pools[canonical]),
                            created_at=context.now(),
                        )
                    )
                else:
                    term.surface_forms = sorted(forms | set(term.surface_forms))
                    term.pools = sorted(pools[canonical] | set(term.pools))
            uow.commit()

        return {
            ITEMS_PROCESSED: processed,
            "items_failed": failed,
            "terms_extracted": len(surface_forms),
        }


class PoolsHandler:
    """Build pool entities and relations from the cached extraction results.

    Identifiers are derived from run, item and the extractor's local reference,
    so re-running the stage finds and keeps the rows written the first time.
    """

    stage = Stage.POOLS
    required_metrics = (
        ITEMS_PROCESSED,
        "entities_extracted",
        "relations_extracted",
        "entities_excluded",
    )

    def expected_items(self, context: RunContext) -> int:
        with context.unit_of_work() as uow:
            items = _eligible(uow.repositories.items.for_run(context.run_id))
            return sum(1 for item in items if item.extraction is not None)

    def run(self, context: RunContext) -> dict[str, float]:
        processed = entities = relations = excluded = dropped = 0
        with context.unit_of_work() as uow:
            repositories = uow.repositories
            known_entities = {entity.id for entity in repositories.entities.for_run(context.run_id)}
            known_relations = {rel.id for rel in repositories.relations.for_run(context.run_id)}

            for item in _eligible(repositories.items.for_run(context.run_id)):
                if item.extraction is None:
                    continue
                processed += 1
                result = ExtractionResult.from_payload(item.extraction)
                if item.rights_id is None:
                    error = MissingRightsError(
                        f"Item {item.uri} has no rights reference",
                        details={"item_id": str(item.id), "entities": len(result.entities)},
                    )
                    log.warning(
                        "%s excluding %s entities: %s", context.prefix, len(result.entities), error
                    )
                    excluded += len(result.entities)
                    continue

                ids: dict[str, UUID] = {}
                for extracted in result.entities:
                    entity = self._entity(context, item, extracted)
                    ids[extracted.ref] = entity.id
                    entities += 1
                    if entity.id not in known_entities:
                        repositories.entities.add(entity)
                        known_entities.add(entity.id)

                for extracted in result.relations:
                    source_id = ids.get(extracted.source_ref)
                    target_id = ids.get(extracted.target_ref)
                    if source_id is None or target_id is None:
                        dropped += 1
                        log.warning(
                            "%s relation %s -%s-> %s references an unknown entity",
                            context.prefix,
                            extracted.source_ref,
                            extracted.verb,
                            extracted.target_ref,
                        )
                        continue
                    relation_id = stable_id(
                        context.run_id,
                        item.id,
                        "relation",
                        extracted.source_ref,
                        extracted.verb,
                        extracted.target_ref,
                    )
                    relations += 1
                    if relation_id in known_relations:
                        continue
                    repositories.relations.add(
                        PoolRelation(
                            id=relation_id,
                            run_id=context.run_id,
                            item_id=item.id,
                            source_id=source_id,
                            target_id=target_id,
                            raw_verb=extracted.verb,
                            evidence=extracted.evidence,
                            confidence=extracted.confidence,
                            created_at=context.now(),
                        )
                    )
                    known_relations.add(relation_id)
            uow.commit()

        return {
            ITEMS_PROCESSED: processed,
            "entities_extracted": entities,
            "relations_extracted": relations,
            "relations_dropped": dropped,
            "entities_excluded": excluded,
        }

    @staticmethod
    def _entity(context: RunContext, item: SourceItem, extracted: ExtractedEntity) -> PoolEntity:
        bounds = extracted.time_bounds
        return PoolEntity(
            id=stable_id(context.run_id, item.id, extracted.ref),
            run_id=context.run_id,
            item_id=item.id,
            local_ref=extracted.ref,
            pool=extracted.pool,
            label=extracted.label.strip(),
            repr_text=extracted.repr_text,
            rights_id=item.rights_id,
            valid_time_start=bounds.valid_from,
            valid_time_end=bounds.valid_to,
            observed_at=bounds.observed_at,
            attributes=dict(extracted.attributes),
            confidence=extracted.confidence,
            created_at=context.now(),
        )
