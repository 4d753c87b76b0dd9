from __future__ import annotations

import pytest

from graphwright.domain.errors import PoolConstraintError, SelfLoopError, UnknownVerbError
from graphwright.domain.model import NodeRef, Pool
from graphwright.domain.verbs import (
    DEFAULT_GLOSSARY,
    FALLBACK_VERB,
    VerbGlossary,
    VerbGlossaryEntry,
    normalize_verb,
)


def test_exact_verb_resolves_at_full_confidence() -> None:
    resolution = DEFAULT_GLOSSARY.resolve("embodies", Pool.IDEA, Pool.MANIFEST)

    assert resolution.verb == "embodies"
    assert resolution.reverse_verb == "is_embodiment_of"
    assert resolution.confidence == 1.0
    assert resolution.warning is None
    assert not resolution.inverted


def test_alternate_verb_maps_with_advisory_warning() -> None:
    resolution = DEFAULT_GLOSSARY.resolve("implements", Pool.IDEA, Pool.MANIFEST)

    assert resolution.verb == "embodies"
    assert resolution.reverse_verb == "is_embodiment_of"
    assert resolution.confidence == 0.9
    assert resolution.warning is not None
    assert "implements" in resolution.warning


def test_reverse_form_is_recognised_and_inverted() -> None:
    resolution = DEFAULT_GLOSSARY.resolve("Is Embodiment Of", Pool.MANIFEST, Pool.IDEA)

    assert resolution.verb == "embodies"
    assert resolution.inverted
    assert resolution.confidence == 1.0


def test_alternate_outside_pool_constraints_falls_through() -> None:
    resolution = DEFAULT_GLOSSARY.resolve("implements", Pool.ACTOR, Pool.RISK)

    assert resolution.verb == FALLBACK_VERB
    assert resolution.confidence == 0.5
    assert resolution.is_fallback


def test_heuristic_match() -> None:
    resolution = DEFAULT_GLOSSARY.resolve("is based on", Pool.IDEA, Pool.IDEA)

    assert resolution.verb == "derived_from"
    assert resolution.confidence == 0.7


def test_unknown_verb_falls_back_to_connects_to() -> None:
    resolution = DEFAULT_GLOSSARY.resolve("frobnicates", Pool.IDEA, Pool.MANIFEST)

    assert resolution.verb == FALLBACK_VERB
    assert resolution.reverse_verb == "is_connected_to"
    assert resolution.warning is not None
    assert "manual review" in resolution.warning


def test_symmetric_verbs_have_no_reverse() -> None:
    resolution = DEFAULT_GLOSSARY.resolve("co-occurs with", Pool.RELATIONAL, Pool.RELATIONAL)

    assert resolution.verb == "co_occurs_with"
    assert resolution.symmetric
    assert resolution.reverse_verb is None


def test_validate_rejects_self_loops_and_pool_mismatches() -> None:
    idea = NodeRef(Pool.IDEA, "a")
    manifest = NodeRef(Pool.MANIFEST, "b")

    assert DEFAULT_GLOSSARY.validate("embodies", idea, manifest).verb == "embodies"
    with pytest.raises(SelfLoopError):
        DEFAULT_GLOSSARY.validate("cites", idea, idea)
    with pytest.raises(PoolConstraintError):
        DEFAULT_GLOSSARY.validate("embodies", manifest, idea)
    with pytest.raises(UnknownVerbError):
        DEFAULT_GLOSSARY.validate("frobnicates", idea, manifest)


def test_system_verbs_are_not_structural() -> None:
    assert DEFAULT_GLOSSARY.is_structural("embodies")
    assert DEFAULT_GLOSSARY.is_structural("is_embodiment_of")
    assert not DEFAULT_GLOSSARY.is_structural("has_rights")
    assert not DEFAULT_GLOSSARY.is_structural("normalized_by")
    assert not DEFAULT_GLOSSARY.is_structural("frobnicates")


def test_glossary_rejects_inconsistent_entries() -> None:
    with pytest.raises(ValueError, match="Symmetric"):
        VerbGlossary([VerbGlossaryEntry(FALLBACK_VERB), VerbGlossaryEntry("x", "y", True)])
    with pytest.raises(ValueError, match="shadow"):
        VerbGlossary([VerbGlossaryEntry(FALLBACK_VERB), VerbGlossaryEntry("a", FALLBACK_VERB)])
    with pytest.raises(ValueError, match="fallback"):
        VerbGlossary([VerbGlossaryEntry("a")])


def test_normalize_verb() -> None:
    assert normalize_verb("  Depends-On ") == "depends_on"
    assert "embodies" in DEFAULT_GLOSSARY
    assert DEFAULT_GLOSSARY.is_known("is_embodiment_of")
    assert "is_embodiment_of" not in DEFAULT_GLOSSARY
