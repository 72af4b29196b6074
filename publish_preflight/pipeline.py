"""Run context, check definitions and the sequential check runner."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from .config import DEFAULT_TAG_PREFIX, ExecutionMode, PreflightSettings
from .errors import PreflightError
from .schemas import PackageDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishOptions:
    publish: bool = True
    tag: Optional[str] = None
    yarn: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {"publish": self.publish, "tag": self.tag, "yarn": self.yarn}


@dataclass
class RunContext:
    """State shared by every check of one preflight run.

    Only two fields change during a run: ``new_version`` (written once by the
    version check through :meth:`set_new_version`) and ``tag_prefix``
    (resolved by the tag check, ``"v"`` until then).
    """

    input_version: str
    package: PackageDescriptor
    options: PublishOptions = field(default_factory=PublishOptions)
    mode: ExecutionMode = ExecutionMode.INTERACTIVE
    runtime_version: Optional[str] = None
    tag_prefix: str = DEFAULT_TAG_PREFIX
    is_external_registry: bool = field(init=False)
    _new_version: Optional[str] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.is_external_registry = self.package.is_external_registry

    @classmethod
    def create(
        cls,
        input_version: str,
        package: PackageDescriptor,
        options: Optional[PublishOptions] = None,
        *,
        settings: Optional[PreflightSettings] = None,
        runtime_version: Optional[str] = None,
    ) -> "RunContext":
        resolved = settings or PreflightSettings()
        return cls(
            input_version=input_version,
            package=package,
            options=options or PublishOptions(),
            mode=resolved.mode,
            runtime_version=runtime_version,
            tag_prefix=resolved.default_tag_prefix,
        )

    @property
    def current_version(self) -> str:
        return self.package.version

    @property
    def is_private(self) -> bool:
        return self.package.private

    @property
    def new_version(self) -> Optional[str]:
        return self._new_version

    def set_new_version(self, value: str) -> None:
        if self._new_version is not None and self._new_version != value:
            raise PreflightError(
                f"New version already resolved to `{self._new_version}`; refusing to change it to `{value}`."
            )
        self._new_version = value

    def to_dict(self) -> Dict[str, object]:
        return {
            "package": self.package.name,
            "input_version": self.input_version,
            "current_version": self.current_version,
            "new_version": self.new_version,
            "tag_prefix": self.tag_prefix,
            "is_private": self.is_private,
            "is_external_registry": self.is_external_registry,
            "mode": self.mode.value,
            "runtime_version": self.runtime_version,
            "options": self.options.to_dict(),
        }


Predicate = Callable[[RunContext], bool]
Action = Callable[[RunContext], Optional[Awaitable[None]]]


@dataclass(frozen=True)
class Check:
    title: str
    action: Action
    skip: Optional[Predicate] = None
    enabled: Optional[Predicate] = None

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValueError("Check title cannot be empty.")

    def should_run(self, context: RunContext) -> bool:
        if self.skip is not None and self.skip(context):
            return False
        if self.enabled is not None and not self.enabled(context):
            return False
        return True


class CheckStatus(str, Enum):
    PASSED = "passed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class CheckReport:
    title: str
    status: CheckStatus
    message: Optional[str] = None
    duration: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "title": self.title,
            "status": self.status.value,
            "duration": round(self.duration, 3),
        }
        if self.message:
            payload["message"] = self.message
        return payload


@dataclass(slots=True)
class Success:
    reports: List[CheckReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, object]:
        return {"status": "ok", "checks": [report.to_dict() for report in self.reports]}


@dataclass(slots=True)
class Failure:
    check_title: str
    message: str
    reports: List[CheckReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": "failed",
            "check": self.check_title,
            "message": self.message,
            "checks": [report.to_dict() for report in self.reports],
        }


Outcome = Union[Success, Failure]


async def run_checks(checks: Sequence[Check], context: RunContext) -> Outcome:
    """Run ``checks`` one at a time in declaration order.

    The first check that raises stops the run; later checks never start.
    """

    if not checks:
        raise ValueError("At least one check is required.")

    reports: List[CheckReport] = []
    for check in checks:
        started = time.monotonic()
        try:
            if not check.should_run(context):
                logger.info("Skipping check '%s'", check.title)
                reports.append(CheckReport(title=check.title, status=CheckStatus.SKIPPED))
                continue
            logger.info("Running check '%s'", check.title)
            result = check.action(context)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("Check '%s' failed: %s", check.title, message)
            logger.debug("Failure details for '%s'", check.title, exc_info=True)
            reports.append(
                CheckReport(
                    title=check.title,
                    status=CheckStatus.FAILED,
                    message=message,
                    duration=time.monotonic() - started,
                )
            )
            return Failure(check_title=check.title, message=message, reports=reports)
        reports.append(
            CheckReport(title=check.title, status=CheckStatus.PASSED, duration=time.monotonic() - started)
        )
    return Success(reports=reports)


def run(checks: Sequence[Check], context: RunContext) -> Outcome:
    return asyncio.run(run_checks(checks, context))


__all__ = [
    "Check",
    "CheckReport",
    "CheckStatus",
    "Failure",
    "Outcome",
    "PublishOptions",
    "RunContext",
    "Success",
    "run",
    "run_checks",
]
