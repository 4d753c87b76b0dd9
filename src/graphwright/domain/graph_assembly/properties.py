"""Node property construction and merging rules."""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from graphwright.domain.errors import MissingRightsError
from graphwright.domain.model import Pool, PoolKind

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping
    from datetime import datetime
    from uuid import UUID

    from graphwright.domain.model import GraphNode, LexiconTerm, PoolEntity, RightsRecord

# Properties that accumulate across loads and merges instead of being overwritten.
LIST_PROPERTIES: frozenset[str] = frozenset(
    {"run_ids", "source_item_ids", "surface_forms", "entity_ids", "pools"}
)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def union_values(*values: object) -> list[object]:
    """Order-preserving union of list-like property values."""

    merged: list[object] = []
    for value in values:
        items = value if isinstance(value, list) else ([] if value is None else [value])
        for item in items:
            if item not in merged:
                merged.append(item)
    return merged


def accumulate(
    existing: Mapping[str, object] | None, update: Mapping[str, object]
) -> dict[str, object]:
    """Apply ``update`` on top of ``existing``: scalars are replaced, lists unioned."""

    base = dict(existing or {})
    for name, value in update.items():
        if name in LIST_PROPERTIES:
            base[name] = union_values(base.get(name), value)
        else:
            base[name] = value
    return base


def merge_node_properties(nodes: Iterable[GraphNode]) -> dict[str, object]:
    """Merge duplicate nodes; the most recently updated node wins scalar conflicts."""

    merged: dict[str, object] = {}
    for node in sorted(nodes, key=lambda item: (item.updated_at, item.ref.key)):
        merged = accumulate(merged, node.properties)
    return merged


def _temporal_properties(entity: PoolEntity) -> dict[str, object]:
    fallback = entity.valid_time_start or entity.observed_at or entity.created_at
    match entity.pool.kind:
        case PoolKind.CORE | PoolKind.EXTENSION:
            if entity.pool.temporal_field == "observed_at":
                return {
                    "observed_at": iso(entity.observed_at or fallback),
                    "valid_time_start": iso(entity.valid_time_start),
                    "valid_time_end": iso(entity.valid_time_end),
                }
            return {
                "valid_time_start": iso(entity.valid_time_start or fallback),
                "valid_time_end": iso(entity.valid_time_end),
                "observed_at": iso(entity.observed_at),
            }
        case PoolKind.SYSTEM:
            return {"valid_time_start": iso(fallback)}
        case _:
            assert_never(entity.pool.kind)


def entity_properties(
    entity: PoolEntity, *, run_id: UUID, known_rights: Collection[UUID]
) -> dict[str, object]:
    """Build node properties for ``entity``; refuses entities without a rights reference."""

    if entity.rights_id is None:
        raise MissingRightsError(
            f"Entity {entity.id} ({entity.pool.value} '{entity.label}') has no rights reference",
            details={"entity_id": str(entity.id)},
        )
    if entity.rights_id not in known_rights:
        raise MissingRightsError(
            f"Entity {entity.id} references unknown rights record {entity.rights_id}",
            details={"entity_id": str(entity.id), "rights_id": str(entity.rights_id)},
        )
    properties: dict[str, object] = {
        "canonical_name": entity.label.strip(),
        "repr_text": entity.repr_text,
        "rights_id": str(entity.rights_id),
        "confidence": entity.confidence,
        "attributes": dict(entity.attributes),
        "run_ids": [str(run_id)],
        "source_item_ids": [str(entity.item_id)],
        "entity_ids": [str(entity.id)],
        "temporal_inferred": not (
            entity.valid_time_start or entity.valid_time_end or entity.observed_at
        ),
        **_temporal_properties(entity),
    }
    if entity.pool is Pool.MANIFEST:
        manifest_type = entity.attributes.get("type")
        properties["type"] = str(manifest_type) if manifest_type is not None else None
    return properties


def rights_properties(record: RightsRecord, *, run_id: UUID) -> dict[str, object]:
    return {
        "canonical_name": record.label,
        "repr_text": f"{record.license.value} ({record.consent.value})",
        "license": record.license.value,
        "consent": record.consent.value,
        "publishable": record.publishable,
        "trainable": record.trainable,
        "attribution_required": record.attribution_required,
        "confidence": record.confidence,
        "embargo_until": iso(record.embargo_until),
        "valid_time_start": iso(record.created_at),
        "run_ids": [str(run_id)],
    }


def term_properties(term: LexiconTerm, *, run_id: UUID) -> dict[str, object]:
    return {
        "canonical_name": term.canonical,
        "repr_text": ", ".join(term.surface_forms) or term.canonical,
        "surface_forms": list(term.surface_forms),
        "pools": list(term.pools),
        "valid_time_start": iso(term.created_at),
        "run_ids": [str(run_id)],
    }
