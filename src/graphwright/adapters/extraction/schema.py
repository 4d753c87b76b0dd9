"""Pydantic models describing the extraction service payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class ExtractionBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TimeBoundsPayload(ExtractionBaseModel):
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    observed_at: datetime | None = None

    _blank_dates = field_validator("valid_from", "valid_to", "observed_at", mode="before")(
        _blank_to_none
    )


class EntityPayload(ExtractionBaseModel):
    ref: str = Field(alias="id")
    pool: str
    label: str = Field(min_length=1)
    repr_text: str | None = Field(default=None, alias="representation")
    time_bounds: TimeBoundsPayload = Field(default_factory=TimeBoundsPayload)
    attributes: dict[str, object] = Field(default_factory=dict)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    _blank_repr = field_validator("repr_text", mode="before")(_blank_to_none)


class RelationPayload(ExtractionBaseModel):
    source_ref: str = Field(alias="source")
    verb: str = Field(min_length=1)
    target_ref: str = Field(alias="target")
    evidence: str | None = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class ExtractionResponse(ExtractionBaseModel):
    entities: list[EntityPayload] = Field(default_factory=list)
    relations: list[RelationPayload] = Field(default_factory=list)


class ExtractionRequest(ExtractionBaseModel):
    content: str
    run_id: str
    item_id: str
    knowledge_base: str
    media_type: str | None = None
    uri: str | None = None
