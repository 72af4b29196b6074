"""External command execution for preflight checks."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Awaitable, Dict, Optional, Protocol, Sequence, TypeVar

from .errors import ConnectivityError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOT_FOUND_RE = re.compile(r"\bE404\b|\b404 Not Found\b", re.IGNORECASE)


class CommandError(RuntimeError):
    """Raised when an external command exits non-zero or cannot be started."""

    def __init__(
        self,
        command: str,
        args: Sequence[str],
        *,
        stdout: str = "",
        stderr: str = "",
        exit_code: Optional[int] = None,
    ) -> None:
        self.command = command
        self.args_list = list(args)
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        rendered = " ".join([command, *self.args_list])
        detail = stderr or stdout or f"exit code {exit_code}"
        super().__init__(f"Command `{rendered}` failed: {detail}")


class FailureShape(str, Enum):
    """How a failed command looked, for the checks that tolerate some failures."""

    SILENT = "silent"
    NOT_FOUND = "not_found"
    GENERIC = "generic"


def classify_failure(error: CommandError) -> FailureShape:
    if error.stdout == "" and error.stderr == "":
        return FailureShape.SILENT
    if _NOT_FOUND_RE.search(error.stderr) or _NOT_FOUND_RE.search(error.stdout):
        return FailureShape.NOT_FOUND
    return FailureShape.GENERIC


class CommandExecutor(Protocol):
    async def run(self, command: str, args: Sequence[str]) -> str:  # pragma: no cover - interface
        ...


class SubprocessExecutor:
    """Run commands as asyncio child processes.

    Nothing blocks the event loop while a command runs, so a deadline can
    expire mid-command. A command whose wait is cancelled is left running on
    its own rather than being killed or joined.
    """

    def __init__(self, cwd: str | Path | None = None, env: Optional[Dict[str, str]] = None) -> None:
        self.cwd = Path(cwd) if cwd is not None else None
        self.env = env or {}

    async def run(self, command: str, args: Sequence[str]) -> str:
        argv = list(args)
        logger.debug("Running %s %s", command, " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *argv,
                cwd=str(self.cwd) if self.cwd else None,
                env={**os.environ, **self.env},
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise CommandError(command, argv, stderr=str(exc), exit_code=127) from exc
        raw_stdout, raw_stderr = await proc.communicate()
        stdout = _strip_final_newline(raw_stdout.decode("utf-8", errors="replace"))
        stderr = _strip_final_newline(raw_stderr.decode("utf-8", errors="replace"))
        if proc.returncode != 0:
            logger.debug("%s exited with %s", command, proc.returncode)
            raise CommandError(command, argv, stdout=stdout, stderr=stderr, exit_code=proc.returncode)
        return stdout


async def with_deadline(awaitable: Awaitable[T], seconds: float, message: str) -> T:
    """Await ``awaitable`` for at most ``seconds``; expiry raises ``ConnectivityError(message)``."""

    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise ConnectivityError(message) from exc


def _strip_final_newline(value: Optional[str]) -> str:
    if not value:
        return ""
    if value.endswith("\r\n"):
        return value[:-2]
    if value.endswith("\n"):
        return value[:-1]
    return value


__all__ = [
    "CommandError",
    "CommandExecutor",
    "FailureShape",
    "SubprocessExecutor",
    "classify_failure",
    "with_deadline",
]
