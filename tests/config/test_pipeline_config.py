from __future__ import annotations

from datetime import timedelta

import pytest

from graphwright.config import ConfigurationError, PipelineConfig


def test_from_environment_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GRAPHWRIGHT_MAX_RETRIES", "5")
    monkeypatch.setenv("GRAPHWRIGHT_STUCK_MINUTES", "45")
    monkeypatch.setenv("GRAPHWRIGHT_MIN_VERB_CONFIDENCE", "0.6")
    monkeypatch.setenv("GRAPHWRIGHT_BLOCK_ON_INTEGRITY", "false")

    config = PipelineConfig.from_environment()

    assert config.max_retries == 5
    assert config.stuck_threshold == timedelta(minutes=45)
    assert config.min_verb_confidence == 0.6
    assert config.block_on_integrity_violations is False
    assert config.literacy_threshold == 70.0


def test_defaults_without_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("GRAPHWRIGHT_MAX_RETRIES", "GRAPHWRIGHT_ORPHAN_GRACE_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    config = PipelineConfig.from_environment()

    assert config.max_retries == 3
    assert config.orphan_grace == timedelta(hours=1)


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_retries": -1},
        {"backoff_base_seconds": -1.0},
        {"min_verb_confidence": 1.5},
        {"quarantine_confidence": -0.1},
    ],
)
def test_invalid_values_are_rejected(overrides: dict[str, float]) -> None:
    with pytest.raises(ConfigurationError):
        PipelineConfig(**overrides)  # type: ignore[arg-type]


def test_invalid_environment_value_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GRAPHWRIGHT_MAX_RETRIES", "many")

    with pytest.raises(ConfigurationError, match="GRAPHWRIGHT_MAX_RETRIES"):
        PipelineConfig.from_environment()


def test_backoff_doubles_up_to_the_cap() -> None:
    config = PipelineConfig(backoff_base_seconds=2.0, backoff_max_seconds=10.0)

    delays = [config.backoff_delay(count).total_seconds() for count in range(5)]

    assert delays == [0.0, 2.0, 4.0, 8.0, 10.0]
    assert PipelineConfig(backoff_base_seconds=0.0).backoff_delay(3) == timedelta(0)
