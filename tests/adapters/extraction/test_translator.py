from __future__ import annotations

import pytest

from graphwright.adapters.extraction import ExtractionResponse, translate_response
from graphwright.domain.model import Pool


def _response(*entities: dict[str, object]) -> ExtractionResponse:
    return ExtractionResponse.model_validate({"entities": list(entities)})


def test_entities_accept_field_names_and_aliases() -> None:
    response = _response(
        {"id": "e1", "pool": "Idea", "label": "Commons"},
        {"ref": "e2", "pool": "practical", "label": "Seed swap", "repr_text": "Seed swap day"},
    )

    result = translate_response(response)

    assert [(entity.ref, entity.pool) for entity in result.entities] == [
        ("e1", Pool.IDEA),
        ("e2", Pool.PRACTICAL),
    ]
    assert result.entities[1].repr_text == "Seed swap day"


@pytest.mark.parametrize("pool", ["Folklore", "Rights", "lexicon"])
def test_unknown_and_system_pools_are_dropped(pool: str) -> None:
    response = _response(
        {"id": "e1", "pool": pool, "label": "Dropped"},
        {"id": "e2", "pool": "Manifest", "label": "Kept"},
    )

    result = translate_response(response)

    assert [entity.ref for entity in result.entities] == ["e2"]


def test_blank_representation_falls_back_to_label() -> None:
    response = _response(
        {"id": "e1", "pool": "Actor", "label": "Garden Collective", "representation": "  "}
    )

    (entity,) = translate_response(response).entities

    assert entity.repr_text == "Garden Collective"
    assert entity.time_bounds.valid_from is None


def test_relations_keep_raw_verbs() -> None:
    response = ExtractionResponse.model_validate(
        {
            "relations": [
                {"source": "e1", "verb": "Inspired By", "target": "e2", "evidence": "p. 3"},
            ]
        }
    )

    (relation,) = translate_response(response).relations

    assert relation.verb == "Inspired By"
    assert relation.evidence == "p. 3"
    assert relation.confidence == 1.0
