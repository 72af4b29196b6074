"""Command line entry point: run the prerequisite checks and print a JSON report."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .checks import build_prerequisite_checks
from .config import ExecutionMode, PreflightSettings
from .errors import ConfigurationError
from .executor import CommandError, CommandExecutor, SubprocessExecutor
from .pipeline import Outcome, PublishOptions, RunContext, run_checks
from .schemas import PackageDescriptor

logger = logging.getLogger(__name__)


def _load_local_env() -> None:
    """Best-effort load of a working-directory .env for convenience."""

    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def _resolve_runtime_version(executor: CommandExecutor) -> Optional[str]:
    try:
        return await executor.run("node", ["--version"])
    except CommandError as exc:
        logger.debug("Unable to resolve node version: %s", exc)
        return None


async def run_preflight(
    *,
    version: str,
    package: PackageDescriptor,
    options: PublishOptions,
    settings: PreflightSettings,
    executor: CommandExecutor,
) -> tuple[RunContext, Outcome]:
    runtime_version = await _resolve_runtime_version(executor)
    context = RunContext.create(
        version,
        package,
        options,
        settings=settings,
        runtime_version=runtime_version,
    )
    checks = build_prerequisite_checks(executor, settings=settings)
    outcome = await run_checks(checks, context)
    return context, outcome


def _run(args: argparse.Namespace) -> int:
    try:
        settings = PreflightSettings.from_env().with_overrides(mode=args.mode, ping_timeout=args.ping_timeout)
        package_dir = Path(args.package_dir).resolve()
        package = PackageDescriptor.load(package_dir)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    options = PublishOptions(publish=args.publish, tag=args.tag, yarn=args.yarn)
    executor = SubprocessExecutor(cwd=package_dir)
    context, outcome = asyncio.run(
        run_preflight(
            version=args.version,
            package=package,
            options=options,
            settings=settings,
            executor=executor,
        )
    )

    payload = {**outcome.to_dict(), "context": context.to_dict()}
    print(json.dumps(payload, indent=2))
    return 0 if outcome.ok else 1


def _list_checks() -> int:
    checks = build_prerequisite_checks(SubprocessExecutor())
    print(json.dumps([check.title for check in checks], indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    _load_local_env()
    parser = argparse.ArgumentParser(
        prog="publish-preflight",
        description="Prerequisite checks to run before bumping and publishing a package version",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the prerequisite checks")
    run_parser.add_argument("version", help="Increment keyword (patch, minor, ...) or an exact semver version")
    run_parser.add_argument("--package-dir", default=".", help="Directory containing package.json")
    run_parser.add_argument("--tag", help="Dist-tag the release will be published under")
    run_parser.add_argument("--publish", action=argparse.BooleanOptionalAction, default=True)
    run_parser.add_argument("--yarn", action="store_true", help="Read the tag prefix from yarn instead of npm")
    run_parser.add_argument("--mode", choices=[mode.value for mode in ExecutionMode])
    run_parser.add_argument("--ping-timeout", type=float, help="Seconds to wait for the registry ping")
    run_parser.add_argument("--verbose", action="store_true")

    subparsers.add_parser("checks", help="List the prerequisite checks in run order")

    args = parser.parse_args(argv)

    if args.command == "run":
        _configure_logging(args.verbose)
        return _run(args)

    if args.command == "checks":
        return _list_checks()

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
