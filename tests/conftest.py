from __future__ import annotations

import inspect
from typing import Callable, Dict, List, Sequence, Tuple, Union

import pytest

from publish_preflight.executor import CommandError
from publish_preflight.pipeline import PublishOptions, RunContext
from publish_preflight.schemas import PackageDescriptor

Response = Union[str, CommandError, Callable[[], object]]


class FakeExecutor:
    """Scripted stand-in for the subprocess executor, keyed by full argv."""

    def __init__(self, responses: Dict[Tuple[str, ...], Response] | None = None) -> None:
        self.responses: Dict[Tuple[str, ...], Response] = dict(responses or {})
        self.calls: List[Tuple[str, ...]] = []

    def on(self, *argv: str, stdout: str = "", error: CommandError | None = None) -> "FakeExecutor":
        self.responses[tuple(argv)] = error if error is not None else stdout
        return self

    async def run(self, command: str, args: Sequence[str]) -> str:
        key = (command, *args)
        self.calls.append(key)
        response = self.responses.get(key, "")
        if callable(response):
            response = response()
            if inspect.isawaitable(response):
                response = await response
        if isinstance(response, CommandError):
            raise response
        return str(response)


def command_error(*argv: str, stdout: str = "", stderr: str = "", exit_code: int = 1) -> CommandError:
    return CommandError(argv[0], argv[1:], stdout=stdout, stderr=stderr, exit_code=exit_code)


def tag_lookup(tag: str) -> Tuple[str, ...]:
    return ("git", "rev-parse", "--quiet", "--verify", f"refs/tags/{tag}")


@pytest.fixture()
def executor() -> FakeExecutor:
    fake = FakeExecutor()
    fake.on("npm", "whoami", stdout="alice")
    fake.on("npm", "access", "ls-collaborators", "unicorn", stdout='{"alice": ["read", "write"]}')
    fake.on("npm", "version", "--json", stdout='{"npm": "6.14.4", "node": "12.16.1"}')
    fake.on("npm", "config", "get", "tag-version-prefix", stdout="v")
    fake.on(*tag_lookup("v1.2.4"), error=command_error(*tag_lookup("v1.2.4")))
    return fake


@pytest.fixture()
def package() -> PackageDescriptor:
    return PackageDescriptor(name="unicorn", version="1.2.3")


@pytest.fixture()
def make_context(package: PackageDescriptor) -> Callable[..., RunContext]:
    def _make(
        version: str = "patch",
        *,
        descriptor: PackageDescriptor | None = None,
        runtime_version: str | None = "v12.16.1",
        **options: object,
    ) -> RunContext:
        return RunContext.create(
            version,
            descriptor or package,
            PublishOptions(**options),  # type: ignore[arg-type]
            runtime_version=runtime_version,
        )

    return _make
