"""Prerequisite checks to run before a package version bump and publish."""

from .checks import build_prerequisite_checks
from .config import ExecutionMode, PreflightSettings
from .errors import (
    AuthorizationError,
    ConfigurationError,
    ConnectivityError,
    PreflightError,
    TagConflictError,
    ToolchainError,
    VersionInputError,
)
from .executor import CommandError, CommandExecutor, FailureShape, SubprocessExecutor, classify_failure
from .pipeline import (
    Check,
    CheckReport,
    CheckStatus,
    Failure,
    Outcome,
    PublishOptions,
    RunContext,
    Success,
    run,
    run_checks,
)
from .schemas import PackageDescriptor
from .versioning import SEMVER_INCREMENTS, SemverOracle

__version__ = "0.1.0"

__all__ = [
    "AuthorizationError",
    "Check",
    "CheckReport",
    "CheckStatus",
    "CommandError",
    "CommandExecutor",
    "ConfigurationError",
    "ConnectivityError",
    "ExecutionMode",
    "Failure",
    "FailureShape",
    "Outcome",
    "PackageDescriptor",
    "PreflightError",
    "PreflightSettings",
    "PublishOptions",
    "RunContext",
    "SEMVER_INCREMENTS",
    "SemverOracle",
    "SubprocessExecutor",
    "Success",
    "TagConflictError",
    "ToolchainError",
    "VersionInputError",
    "build_prerequisite_checks",
    "classify_failure",
    "run",
    "run_checks",
    "__version__",
]
