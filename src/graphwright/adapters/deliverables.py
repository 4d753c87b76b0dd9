"""Filesystem sink writing run deliverables as JSON documents."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from graphwright.config.storage import get_storage_config

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

log = getLogger(__name__)


def _default_root() -> Path:
    return get_storage_config().deliverables_path()


@dataclass(slots=True)
class JsonFileDeliverableSink:
    """Write ``<root>/<run_id>/<name>.json``; re-publishing overwrites the file."""

    root: Path = field(default_factory=_default_root)

    def publish(self, run_id: UUID, name: str, payload: Mapping[str, object]) -> str:
        directory = self.root / str(run_id)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / f"{name}.json"
        staging = target.with_suffix(".json.tmp")
        staging.write_text(
            json.dumps(payload, indent=2, sort_keys=True, default=str), encoding="utf-8"
        )
        staging.replace(target)
        log.debug("Wrote deliverable %s", target)
        return str(target)
