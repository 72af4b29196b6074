from __future__ import annotations

import pytest

from publish_preflight.config import (
    DEFAULT_PING_TIMEOUT,
    ExecutionMode,
    PreflightSettings,
)
from publish_preflight.errors import ConfigurationError


def test_defaults_without_environment() -> None:
    settings = PreflightSettings.from_env({})

    assert settings.mode is ExecutionMode.INTERACTIVE
    assert settings.ping_timeout == DEFAULT_PING_TIMEOUT
    assert settings.default_tag_prefix == "v"


def test_node_env_test_selects_test_mode() -> None:
    assert PreflightSettings.from_env({"NODE_ENV": "test"}).mode is ExecutionMode.TEST


def test_explicit_mode_wins_over_node_env() -> None:
    settings = PreflightSettings.from_env({"NODE_ENV": "test", "PUBLISH_PREFLIGHT_MODE": "interactive"})

    assert settings.mode is ExecutionMode.INTERACTIVE


def test_ping_timeout_from_environment() -> None:
    settings = PreflightSettings.from_env({"PUBLISH_PREFLIGHT_PING_TIMEOUT": "2.5"})

    assert settings.ping_timeout == 2.5


@pytest.mark.parametrize("value", ["soon", "0", "-3"])
def test_invalid_ping_timeout(value: str) -> None:
    with pytest.raises(ConfigurationError):
        PreflightSettings.from_env({"PUBLISH_PREFLIGHT_PING_TIMEOUT": value})


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Unknown execution mode"):
        PreflightSettings.from_env({"PUBLISH_PREFLIGHT_MODE": "ci"})


def test_overrides_ignore_unset_values() -> None:
    settings = PreflightSettings().with_overrides(mode="test", ping_timeout=None)

    assert settings.mode is ExecutionMode.TEST
    assert settings.ping_timeout == DEFAULT_PING_TIMEOUT
