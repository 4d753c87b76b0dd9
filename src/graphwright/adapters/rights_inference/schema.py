"""Pydantic models describing the rights-inference service payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from graphwright.domain.model import ConsentStatus, LicenseType


def _normalize_token(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower().replace("-", "_").replace(" ", "_")
    return value


class RightsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class InferenceRequest(RightsBaseModel):
    metadata: dict[str, object] = Field(default_factory=dict)
    content_sample: str


class InferenceResponse(RightsBaseModel):
    license: LicenseType = LicenseType.UNSPECIFIED
    consent_status: ConsentStatus = Field(default=ConsentStatus.UNKNOWN, alias="consent")
    publishable: bool | None = None
    trainable: bool | None = None
    confidence: float = Field(ge=0.0, le=1.0)

    _normalize_tokens = field_validator("license", "consent_status", mode="before")(
        _normalize_token
    )
