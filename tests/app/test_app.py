from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from graphwright.adapters.deliverables import JsonFileDeliverableSink
from graphwright.adapters.extraction import HttpExtractionGateway
from graphwright.adapters.rights_inference import HttpRightsInferenceGateway
from graphwright.adapters.sqlalchemy import shutdown
from graphwright.app import build_runtime, read_sources

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


def test_read_sources_walks_directories_in_order(tmp_path: Path) -> None:
    notes = tmp_path / "notes"
    (notes / "b").mkdir(parents=True)
    (notes / "b" / "two.md").write_text("two")
    (notes / "a.txt").write_text("one")
    single = tmp_path / "single.md"
    single.write_text("three")

    sources = read_sources([notes, single])

    assert [source.content for source in sources] == ["one", "two", "three"]
    assert sources[0].uri == (notes / "a.txt").as_posix()
    assert sources[1].metadata == {"filename": "two.md", "size_bytes": 3}


def test_build_runtime_wires_services_from_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("GRAPHWRIGHT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GRAPHWRIGHT_RIGHTS_URL", "http://rights.local")
    monkeypatch.delenv("GRAPHWRIGHT_EXTRACTION_URL", raising=False)
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    try:
        runtime = build_runtime(engine=engine)
    finally:
        shutdown()

    services = runtime.services
    assert services.extraction is None
    assert isinstance(services.rights_inference, HttpRightsInferenceGateway)
    assert isinstance(services.deliverables, JsonFileDeliverableSink)
    assert services.deliverables.root == tmp_path.resolve() / "deliverables"
    assert services.graph_store_factory("garden").graph == "garden"


def test_build_runtime_uses_configured_extraction(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("GRAPHWRIGHT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GRAPHWRIGHT_EXTRACTION_URL", "http://extraction.local")
    monkeypatch.delenv("GRAPHWRIGHT_RIGHTS_URL", raising=False)
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    try:
        runtime = build_runtime(engine=engine)
    finally:
        shutdown()

    extraction = runtime.services.extraction
    assert isinstance(extraction, HttpExtractionGateway)
    assert extraction.config.base_url == "http://extraction.local"
    assert runtime.services.rights_inference is None
