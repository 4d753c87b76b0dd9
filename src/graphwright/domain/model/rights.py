"""Rights records and the rules deriving publishability and training eligibility."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast
from uuid import UUID, uuid4

from .enums import ConsentStatus, LicenseType

if TYPE_CHECKING:
    from collections.abc import Mapping

OPEN_LICENSES: frozenset[LicenseType] = frozenset(
    {LicenseType.CC0, LicenseType.CC_BY, LicenseType.CC_BY_SA, LicenseType.PUBLIC_DOMAIN}
)
NON_COMMERCIAL_LICENSES: frozenset[LicenseType] = frozenset(
    {LicenseType.CC_BY_NC, LicenseType.CC_BY_NC_SA}
)
NO_DERIVATIVES_LICENSES: frozenset[LicenseType] = frozenset(
    {LicenseType.CC_BY_ND, LicenseType.CC_BY_NC_ND}
)
ATTRIBUTION_FREE_LICENSES: frozenset[LicenseType] = frozenset(
    {LicenseType.CC0, LicenseType.PUBLIC_DOMAIN}
)


@dataclass(frozen=True, slots=True)
class RightsTerms:
    """Rights as declared by an operator or inferred by the rights service.

    ``publishable`` and ``trainable`` are optional overrides from the inference
    service; the license and consent rules still veto them.
    """

    license: LicenseType = LicenseType.UNSPECIFIED
    consent: ConsentStatus = ConsentStatus.UNKNOWN
    confidence: float = 1.0
    embargo_until: datetime | None = None
    custom_terms: Mapping[str, object] = field(default_factory=dict)
    publishable: bool | None = None
    trainable: bool | None = None
    source: str = "declared"

    def to_payload(self) -> dict[str, object]:
        return {
            "license": self.license.value,
            "consent": self.consent.value,
            "confidence": self.confidence,
            "embargo_until": self.embargo_until.isoformat() if self.embargo_until else None,
            "custom_terms": dict(self.custom_terms),
            "publishable": self.publishable,
            "trainable": self.trainable,
            "source": self.source,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> RightsTerms:
        embargo = payload.get("embargo_until")
        custom_terms = payload.get("custom_terms") or {}
        publishable = payload.get("publishable")
        trainable = payload.get("trainable")
        return cls(
            license=LicenseType(str(payload.get("license", LicenseType.UNSPECIFIED))),
            consent=ConsentStatus(str(payload.get("consent", ConsentStatus.UNKNOWN))),
            confidence=float(cast(float, payload.get("confidence", 1.0))),
            embargo_until=datetime.fromisoformat(embargo) if isinstance(embargo, str) else None,
            custom_terms=dict(cast("Mapping[str, object]", custom_terms)),
            publishable=publishable if isinstance(publishable, bool) else None,
            trainable=trainable if isinstance(trainable, bool) else None,
            source=str(payload.get("source", "declared")),
        )


def is_embargoed(terms: RightsTerms, *, now: datetime) -> bool:
    return terms.embargo_until is not None and terms.embargo_until > now


def derive_publishable(terms: RightsTerms, *, quarantined: bool, now: datetime) -> bool:
    if quarantined or is_embargoed(terms, now=now) or terms.consent.denied:
        return False
    if terms.publishable is not None:
        return terms.publishable
    if terms.license in OPEN_LICENSES:
        return True
    return bool(terms.custom_terms.get("allow_public_display", False))


def derive_trainable(terms: RightsTerms, *, quarantined: bool) -> bool:
    if quarantined or terms.consent.denied:
        return False
    if terms.trainable is not None:
        return terms.trainable
    if terms.license in OPEN_LICENSES or terms.license in NON_COMMERCIAL_LICENSES:
        return True
    if terms.license in NO_DERIVATIVES_LICENSES:
        return False
    return bool(terms.custom_terms.get("allow_training", False))


def requires_attribution(license_type: LicenseType) -> bool:
    return license_type not in ATTRIBUTION_FREE_LICENSES


@dataclass(eq=False, kw_only=True)
class RightsRecord:
    """Immutable rights record shared by every entity of one ingestion context."""

    id: UUID = field(default_factory=uuid4)
    context_key: str
    license: LicenseType
    consent: ConsentStatus
    publishable: bool
    trainable: bool
    attribution_required: bool
    confidence: float
    embargo_until: datetime | None = None
    custom_terms: dict[str, object] = field(default_factory=dict)
    source: str = "declared"
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @classmethod
    def from_terms(
        cls,
        context_key: str,
        terms: RightsTerms,
        *,
        quarantined: bool = False,
        now: datetime | None = None,
    ) -> RightsRecord:
        moment = now or datetime.now(tz=UTC)
        return cls(
            context_key=context_key,
            license=terms.license,
            consent=terms.consent,
            publishable=derive_publishable(terms, quarantined=quarantined, now=moment),
            trainable=derive_trainable(terms, quarantined=quarantined),
            attribution_required=requires_attribution(terms.license),
            confidence=terms.confidence,
            embargo_until=terms.embargo_until,
            custom_terms=dict(terms.custom_terms),
            source=terms.source,
            created_at=moment,
        )

    @property
    def label(self) -> str:
        return f"rights:{self.license.value}:{self.consent.value}"
