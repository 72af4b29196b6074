"""Failure taxonomy raised by preflight checks."""

from __future__ import annotations


class PreflightError(RuntimeError):
    """Raised when a preflight check fails validation or runtime checks."""


class ConnectivityError(PreflightError):
    """Registry or git remote unreachable or timed out."""


class AuthorizationError(PreflightError):
    """Operator is not logged in or lacks write permission."""


class VersionInputError(PreflightError):
    """Malformed version input, non-increasing version or missing dist-tag."""


class ToolchainError(PreflightError):
    """Package manager version is known to be unable to publish."""


class TagConflictError(PreflightError):
    """The git tag for the new version already exists."""


class ConfigurationError(PreflightError):
    """Package descriptor or settings could not be read."""


__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "ConnectivityError",
    "PreflightError",
    "TagConflictError",
    "ToolchainError",
    "VersionInputError",
]
