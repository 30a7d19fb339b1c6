from __future__ import annotations

import pytest

from typedupe.config import (
    ConfigurationError,
    MissingConfigurationError,
    env_bool,
    env_float,
    env_int,
    optional_env,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert exc.value.names == ("BLANK_VAR", "MISSING_VAR")
    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_optional_env_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "  ")

    assert optional_env("EXAMPLE_VAR") is None


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("Yes", True), ("off", False), ("FALSE", False)])
def test_env_bool(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("FLAG", raw)

    assert env_bool("FLAG", default=not expected) is expected


def test_env_parsers_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FLAG", raising=False)

    assert env_bool("FLAG", default=True) is True
    assert env_int("FLAG", default=7) == 7
    assert env_float("FLAG", default=None) is None


@pytest.mark.parametrize("parser", [env_bool, env_int, env_float])
def test_env_parsers_reject_garbage(monkeypatch: pytest.MonkeyPatch, parser: object) -> None:
    monkeypatch.setenv("FLAG", "sometimes")

    with pytest.raises(ConfigurationError, match="FLAG"):
        parser("FLAG", default=None)  # pyright: ignore[reportCallIssue, reportOptionalCall]
