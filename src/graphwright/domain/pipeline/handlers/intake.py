"""Intake: normalise submitted items before anything else touches them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphwright.domain.errors import InvalidDataError
from graphwright.domain.model import Stage, content_hash, detect_media_type

from ..stages import ITEMS_PROCESSED

if TYPE_CHECKING:
    from ..context import RunContext

log = logging.getLogger(__name__)


class IntakeHandler:
    stage = Stage.INTAKE
    required_metrics = (ITEMS_PROCESSED, "items_failed")

    def expected_items(self, context: RunContext) -> int:
        with context.unit_of_work() as uow:
            return len(uow.repositories.items.for_run(context.run_id))

    def run(self, context: RunContext) -> dict[str, float]:
        processed = failed = 0
        with context.unit_of_work() as uow:
            for item in uow.repositories.items.for_run(context.run_id):
                if not item.content.strip():
                    if not context.options.skip_failed_items:
                        raise InvalidDataError(
                            f"Source item {item.uri} has no content",
                            details={"item_id": str(item.id), "uri": item.uri},
                        )
                    item.failed = True
                    failed += 1
                    log.warning("%s skipping empty item %s", context.prefix, item.uri)
                    continue
                item.media_type = item.media_type or detect_media_type(item.uri)
                item.content_hash = content_hash(item.content)
                processed += 1
            uow.commit()
        return {ITEMS_PROCESSED: processed, "items_failed": failed}
