"""Source items handed to a run for ingestion."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import Final
from uuid import UUID, uuid4

MEDIA_TYPES: Final[dict[str, str]] = {
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".txt": "text/plain",
    ".rst": "text/x-rst",
    ".html": "text/html",
    ".htm": "text/html",
    ".json": "application/json",
    ".yaml": "application/yaml",
    ".yml": "application/yaml",
    ".csv": "text/csv",
    ".py": "text/x-python",
    ".rb": "text/x-ruby",
    ".js": "text/javascript",
    ".ts": "text/typescript",
    ".pdf": "application/pdf",
}
DEFAULT_MEDIA_TYPE: Final[str] = "text/plain"


def detect_media_type(uri: str) -> str:
    suffix = PurePosixPath(uri.replace("\\", "/")).suffix.lower()
    return MEDIA_TYPES.get(suffix, DEFAULT_MEDIA_TYPE)


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class SourceInput:
    """Raw material submitted when a run is created."""

    uri: str
    content: str
    metadata: dict[str, object] = field(default_factory=dict)


@dataclass(eq=False, kw_only=True)
class SourceItem:
    id: UUID = field(default_factory=uuid4)
    run_id: UUID
    uri: str
    content: str
    source_metadata: dict[str, object] = field(default_factory=dict)
    media_type: str | None = None
    content_hash: str | None = None
    rights_id: UUID | None = None
    quarantined: bool = False
    quarantine_reason: str | None = None
    failed: bool = False
    extraction: dict[str, object] | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def eligible(self) -> bool:
        """Whether downstream stages should process this item."""

        return not (self.quarantined or self.failed)

    def quarantine(self, reason: str) -> None:
        self.quarantined = True
        self.quarantine_reason = reason

    def content_sample(self, limit: int = 2000) -> str:
        return self.content[:limit]
