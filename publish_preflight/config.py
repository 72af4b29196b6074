"""Settings for a preflight run, resolved once at startup."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping, Optional

from .errors import ConfigurationError

MODE_ENV = "PUBLISH_PREFLIGHT_MODE"
PING_TIMEOUT_ENV = "PUBLISH_PREFLIGHT_PING_TIMEOUT"

DEFAULT_PING_TIMEOUT = 15.0
DEFAULT_RUNTIME_THRESHOLD = "6.0.0"
DEFAULT_NPM_COMPATIBLE_RANGE = ">=2.15.8 <3.0.0 || >=3.10.1"
DEFAULT_TAG_PREFIX = "v"


class ExecutionMode(str, Enum):
    INTERACTIVE = "interactive"
    TEST = "test"


@dataclass(frozen=True)
class PreflightSettings:
    ping_timeout: float = DEFAULT_PING_TIMEOUT
    runtime_threshold: str = DEFAULT_RUNTIME_THRESHOLD
    npm_compatible_range: str = DEFAULT_NPM_COMPATIBLE_RANGE
    default_tag_prefix: str = DEFAULT_TAG_PREFIX
    mode: ExecutionMode = ExecutionMode.INTERACTIVE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PreflightSettings":
        env = os.environ if environ is None else environ
        settings = cls(mode=_resolve_mode(env))
        raw_timeout = env.get(PING_TIMEOUT_ENV)
        if raw_timeout:
            settings = settings.with_overrides(ping_timeout=_parse_timeout(raw_timeout))
        return settings

    def with_overrides(self, **changes: object) -> "PreflightSettings":
        clean = {key: value for key, value in changes.items() if value is not None}
        if "mode" in clean and not isinstance(clean["mode"], ExecutionMode):
            clean["mode"] = _parse_mode(str(clean["mode"]))
        if "ping_timeout" in clean:
            clean["ping_timeout"] = _parse_timeout(clean["ping_timeout"])
        return replace(self, **clean)


def _resolve_mode(env: Mapping[str, str]) -> ExecutionMode:
    explicit = env.get(MODE_ENV)
    if explicit:
        return _parse_mode(explicit)
    if env.get("NODE_ENV", "").strip().lower() == "test":
        return ExecutionMode.TEST
    return ExecutionMode.INTERACTIVE


def _parse_mode(value: str) -> ExecutionMode:
    try:
        return ExecutionMode(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in ExecutionMode)
        raise ConfigurationError(f"Unknown execution mode '{value}'. Expected one of: {choices}.") from exc


def _parse_timeout(value: object) -> float:
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Ping timeout must be a number of seconds (got '{value}').") from exc
    if seconds <= 0:
        raise ConfigurationError(f"Ping timeout must be positive (got {seconds}).")
    return seconds


__all__ = [
    "DEFAULT_NPM_COMPATIBLE_RANGE",
    "DEFAULT_PING_TIMEOUT",
    "DEFAULT_RUNTIME_THRESHOLD",
    "DEFAULT_TAG_PREFIX",
    "ExecutionMode",
    "PreflightSettings",
]
