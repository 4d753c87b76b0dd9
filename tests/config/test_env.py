from __future__ import annotations

import pytest

from graphwright.config import ConfigurationError, MissingConfigurationError, require_env_vars
from graphwright.config.env import env_bool, env_float, env_int


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_names_every_missing_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert str(exc.value) == "Missing configuration for: MISSING_A, MISSING_B"


def test_typed_loaders_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_INT", raising=False)
    monkeypatch.setenv("EXAMPLE_FLOAT", " ")

    assert env_int("EXAMPLE_INT", 3) == 3
    assert env_float("EXAMPLE_FLOAT", 0.5) == 0.5
    assert env_bool("EXAMPLE_FLAG", True) is True


@pytest.mark.parametrize(("raw", "expected"), [("yes", True), ("OFF", False), ("1", True)])
def test_env_bool_accepts_common_flags(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", raw)

    assert env_bool("EXAMPLE_FLAG", not expected) is expected


def test_unparseable_values_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_INT", "three")
    monkeypatch.setenv("EXAMPLE_FLAG", "maybe")

    with pytest.raises(ConfigurationError, match="EXAMPLE_INT must be an integer"):
        env_int("EXAMPLE_INT", 3)
    with pytest.raises(ConfigurationError, match="EXAMPLE_FLAG must be a boolean"):
        env_bool("EXAMPLE_FLAG", True)
