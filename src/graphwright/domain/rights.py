"""Append-only registry of rights records shared across ingestion contexts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from graphwright.domain.model.rights import RightsRecord

if TYPE_CHECKING:
    from uuid import UUID

    from graphwright.domain.model.rights import RightsTerms
    from graphwright.domain.ports.persistence import RightsRepository

log = logging.getLogger(__name__)


def declared_context_key(run_id: UUID) -> str:
    return f"run:{run_id}:declared"


def item_context_key(run_id: UUID, item_id: UUID) -> str:
    return f"run:{run_id}:item:{item_id}"


@dataclass(slots=True)
class RightsRegistry:
    """Register rights once per ingestion context; never update or delete them."""

    repository: RightsRepository

    def register(
        self,
        context_key: str,
        terms: RightsTerms,
        *,
        quarantined: bool = False,
        now: datetime | None = None,
    ) -> tuple[RightsRecord, bool]:
        """Return the record for ``context_key``, creating it on first use.

        The boolean is ``True`` when a new record was written. A retried stage
        gets the existing record back, so registration is idempotent.
        """

        existing = self.repository.get_by_context(context_key)
        if existing is not None:
            return existing, False
        record = RightsRecord.from_terms(
            context_key, terms, quarantined=quarantined, now=now or datetime.now(tz=UTC)
        )
        self.repository.add(record)
        log.info(
            "Registered rights %s for %s (license=%s, consent=%s, publishable=%s, trainable=%s)",
            record.id,
            context_key,
            record.license,
            record.consent,
            record.publishable,
            record.trainable,
        )
        return record, True
