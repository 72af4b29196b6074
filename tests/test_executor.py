from __future__ import annotations

import asyncio
import os
import sys
import time
from pathlib import Path

import pytest

from publish_preflight.checks import build_prerequisite_checks
from publish_preflight.config import PreflightSettings
from publish_preflight.errors import ConnectivityError
from publish_preflight.executor import (
    CommandError,
    FailureShape,
    SubprocessExecutor,
    classify_failure,
    with_deadline,
)
from publish_preflight.pipeline import Failure, run

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as a fake binary")


def _python(code: str) -> list[str]:
    return ["-c", code]


def test_subprocess_executor_returns_stdout_without_final_newline(tmp_path: Path) -> None:
    executor = SubprocessExecutor(cwd=tmp_path, env={"PREFLIGHT_GREETING": "alice"})
    code = "import os; print(os.environ['PREFLIGHT_GREETING']); print(os.getcwd())"

    output = asyncio.run(executor.run(sys.executable, _python(code)))

    greeting, cwd = output.split("\n")
    assert greeting == "alice"
    assert Path(cwd).resolve() == tmp_path.resolve()


def test_subprocess_executor_raises_command_error() -> None:
    executor = SubprocessExecutor()
    code = "import sys; sys.stderr.write('fatal: no remote\\n'); sys.exit(128)"

    with pytest.raises(CommandError) as excinfo:
        asyncio.run(executor.run(sys.executable, _python(code)))

    error = excinfo.value
    assert error.exit_code == 128
    assert error.stderr == "fatal: no remote"
    assert error.stdout == ""
    assert error.command == sys.executable
    assert error.args_list == _python(code)
    assert "fatal: no remote" in str(error)


def test_missing_binary_becomes_command_error(tmp_path: Path) -> None:
    executor = SubprocessExecutor()

    with pytest.raises(CommandError) as excinfo:
        asyncio.run(executor.run(str(tmp_path / "yarn"), ["config", "get", "version-tag-prefix"]))

    assert excinfo.value.exit_code == 127
    assert "yarn" in excinfo.value.stderr


@posix_only
def test_hung_registry_ping_does_not_hold_the_run(tmp_path: Path, make_context) -> None:
    fake_npm = tmp_path / "npm"
    fake_npm.write_text("#!/bin/sh\nexec sleep 6\n", encoding="utf-8")
    fake_npm.chmod(0o755)
    executor = SubprocessExecutor(env={"PATH": f"{tmp_path}{os.pathsep}{os.environ.get('PATH', '')}"})
    settings = PreflightSettings(ping_timeout=0.5)

    started = time.monotonic()
    outcome = run(build_prerequisite_checks(executor, settings=settings), make_context())
    elapsed = time.monotonic() - started

    assert isinstance(outcome, Failure)
    assert outcome.message == "Connection to npm registry timed out"
    assert elapsed < 3


def test_classify_failure_shapes() -> None:
    silent = CommandError("git", ["rev-parse"], exit_code=1)
    not_found = CommandError("npm", ["access"], stderr="npm ERR! code E404", exit_code=1)
    generic = CommandError("git", ["rev-parse"], stderr="fatal: bad revision", exit_code=128)

    assert classify_failure(silent) is FailureShape.SILENT
    assert classify_failure(not_found) is FailureShape.NOT_FOUND
    assert classify_failure(generic) is FailureShape.GENERIC


def test_with_deadline_translates_expiry() -> None:
    async def _slow() -> str:
        await asyncio.sleep(1)
        return "late"

    with pytest.raises(ConnectivityError, match="timed out"):
        asyncio.run(with_deadline(_slow(), 0.01, "Connection to npm registry timed out"))


def test_with_deadline_passes_result_through() -> None:
    async def _fast() -> str:
        return "pong"

    assert asyncio.run(with_deadline(_fast(), 1, "unused")) == "pong"


@pytest.mark.parametrize(
    "stderr",
    [
        "npm ERR! code E404",
        "npm ERR! 404 Not Found - GET https://registry.npmjs.org/-/package/unicorn/collaborators",
    ],
)
def test_registry_not_found_responses(stderr: str) -> None:
    error = CommandError("npm", ["access", "ls-collaborators", "unicorn"], stderr=stderr, exit_code=1)

    assert classify_failure(error) is FailureShape.NOT_FOUND


def test_shell_command_not_found_is_generic() -> None:
    error = CommandError("npm", ["access"], stderr="sh: npm: command not found", exit_code=127)

    assert classify_failure(error) is FailureShape.GENERIC
