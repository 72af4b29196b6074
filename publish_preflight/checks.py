"""Prerequisite checks run before a version bump and publish."""

from __future__ import annotations

import logging
from functools import partial
from typing import List, Optional

from .config import ExecutionMode, PreflightSettings
from .errors import (
    AuthorizationError,
    ConnectivityError,
    PreflightError,
    TagConflictError,
    ToolchainError,
    VersionInputError,
)
from .executor import CommandError, CommandExecutor, FailureShape, classify_failure, with_deadline
from .pipeline import Check, RunContext
from .schemas import Collaborators, ManagerVersions, parse_command_json
from .versioning import SemverOracle

logger = logging.getLogger(__name__)

REGISTRY_LABEL = "npm registry"

LOGIN_REQUIRED_MESSAGE = "You must be logged in to publish packages. Use `npm login` and try again."
AUTH_ERROR_MESSAGE = "Authentication error. Use `npm whoami` to troubleshoot."
WRITE_PERMISSION_MESSAGE = "You do not have write permissions required to publish this package."
PRERELEASE_TAG_MESSAGE = (
    "You must specify a dist-tag using --tag when publishing a pre-release version. "
    'This prevents accidentally tagging unstable versions as "latest". https://docs.npmjs.com/cli/dist-tag'
)


def _private_or_external(context: RunContext) -> bool:
    return context.is_private or context.is_external_registry


def _require_new_version(context: RunContext) -> str:
    if context.new_version is None:
        raise PreflightError("New version has not been resolved; the version check must run first.")
    return context.new_version


async def ping_registry(context: RunContext, *, executor: CommandExecutor, timeout: float) -> None:
    async def _ping() -> None:
        try:
            await executor.run("npm", ["ping"])
        except CommandError as exc:
            raise ConnectivityError(f"Connection to {REGISTRY_LABEL} failed") from exc

    await with_deadline(_ping(), timeout, f"Connection to {REGISTRY_LABEL} timed out")


async def verify_authentication(context: RunContext, *, executor: CommandExecutor) -> None:
    try:
        username = await executor.run("npm", ["whoami"])
    except CommandError as exc:
        if "ENEEDAUTH" in exc.stderr:
            raise AuthorizationError(LOGIN_REQUIRED_MESSAGE) from exc
        raise AuthorizationError(AUTH_ERROR_MESSAGE) from exc

    try:
        output = await executor.run("npm", ["access", "ls-collaborators", context.package.name])
    except CommandError as exc:
        if classify_failure(exc) is FailureShape.NOT_FOUND:
            logger.info("Package %s is not published yet; skipping write permission check", context.package.name)
            return
        raise

    collaborators = parse_command_json(Collaborators, output, source="npm access ls-collaborators")
    if not collaborators.can_write(username):
        raise AuthorizationError(WRITE_PERMISSION_MESSAGE)


async def check_git_remote(context: RunContext, *, executor: CommandExecutor) -> None:
    try:
        await executor.run("git", ["ls-remote", "origin", "HEAD"])
    except CommandError as exc:
        message = exc.stderr.replace("fatal:", "Git fatal error:", 1) if exc.stderr else str(exc)
        raise ConnectivityError(message) from exc


def validate_version(context: RunContext, *, oracle: SemverOracle) -> None:
    if not oracle.is_valid_version_input(context.input_version):
        raise VersionInputError(
            f"Version should be either {', '.join(oracle.increments)}, or a valid semver version."
        )

    new_version = oracle.get_new_version(context.current_version, context.input_version)
    context.set_new_version(new_version)

    if not oracle.is_version_greater(context.current_version, new_version):
        raise VersionInputError(
            f"New version `{new_version}` should be higher than current version `{context.current_version}`"
        )


def check_prerelease_tag(context: RunContext, *, oracle: SemverOracle) -> None:
    new_version = _require_new_version(context)
    if oracle.is_prerelease_version(new_version) and not context.options.tag:
        raise VersionInputError(PRERELEASE_TAG_MESSAGE)


async def check_npm_version(
    context: RunContext,
    *,
    executor: CommandExecutor,
    oracle: SemverOracle,
    compatible_range: str,
) -> None:
    output = await executor.run("npm", ["version", "--json"])
    versions = parse_command_json(ManagerVersions, output, source="npm version --json")
    if not oracle.satisfies(versions.npm, compatible_range):
        raise ToolchainError(
            f"npm@{versions.npm} has known issues publishing when running Node.js 6. "
            "Please upgrade npm or downgrade Node and publish again. https://github.com/npm/npm/issues/5082"
        )


async def resolve_tag_prefix(context: RunContext, *, executor: CommandExecutor) -> str:
    """Read the configured tag prefix, keeping the current one when the lookup fails."""

    if context.options.yarn:
        command, args = "yarn", ["config", "get", "version-tag-prefix"]
    else:
        command, args = "npm", ["config", "get", "tag-version-prefix"]
    try:
        return await executor.run(command, args)
    except CommandError:
        logger.debug("Could not read tag prefix from %s; using '%s'", command, context.tag_prefix)
        return context.tag_prefix


async def check_tag_existence(context: RunContext, *, executor: CommandExecutor) -> None:
    new_version = _require_new_version(context)
    try:
        await executor.run("git", ["fetch"])
    except CommandError as exc:
        logger.debug("git fetch failed, checking local tags with prefix '%s': %s", context.tag_prefix, exc)
    else:
        context.tag_prefix = await resolve_tag_prefix(context, executor=executor)

    tag = f"{context.tag_prefix}{new_version}"
    try:
        output = await executor.run("git", ["rev-parse", "--quiet", "--verify", f"refs/tags/{tag}"])
    except CommandError as exc:
        # rev-parse exits 1 without output when the ref is missing, even with --quiet.
        if classify_failure(exc) is FailureShape.SILENT:
            return
        raise

    if output:
        raise TagConflictError(f"Git tag `{tag}` already exists.")


def build_prerequisite_checks(
    executor: CommandExecutor,
    *,
    oracle: Optional[SemverOracle] = None,
    settings: Optional[PreflightSettings] = None,
) -> List[Check]:
    """Return the prerequisite checks in the order they must run.

    The pre-release and tag checks read ``new_version``, which only the
    version check writes, so the version check has to come before them.
    """

    version_oracle = oracle or SemverOracle()
    resolved = settings or PreflightSettings()

    def _runtime_below_threshold(context: RunContext) -> bool:
        if context.runtime_version is None:
            return True
        return version_oracle.is_version_lower(resolved.runtime_threshold, context.runtime_version)

    def _auth_not_applicable(context: RunContext) -> bool:
        return context.mode is ExecutionMode.TEST or _private_or_external(context)

    return [
        Check(
            title="Ping npm registry",
            skip=_private_or_external,
            action=partial(ping_registry, executor=executor, timeout=resolved.ping_timeout),
        ),
        Check(
            title="Verify user is authenticated",
            skip=_auth_not_applicable,
            action=partial(verify_authentication, executor=executor),
        ),
        Check(
            title="Check git remote",
            action=partial(check_git_remote, executor=executor),
        ),
        Check(
            title="Validate version",
            action=partial(validate_version, oracle=version_oracle),
        ),
        Check(
            title="Check for pre-release version",
            enabled=lambda context: context.options.publish,
            skip=lambda context: context.is_private,
            action=partial(check_prerelease_tag, oracle=version_oracle),
        ),
        Check(
            title="Check npm version",
            skip=_runtime_below_threshold,
            action=partial(
                check_npm_version,
                executor=executor,
                oracle=version_oracle,
                compatible_range=resolved.npm_compatible_range,
            ),
        ),
        Check(
            title="Check git tag existence",
            action=partial(check_tag_existence, executor=executor),
        ),
    ]


__all__ = [
    "REGISTRY_LABEL",
    "build_prerequisite_checks",
    "check_git_remote",
    "check_npm_version",
    "check_prerelease_tag",
    "check_tag_existence",
    "ping_registry",
    "resolve_tag_prefix",
    "validate_version",
    "verify_authentication",
]
