"""Semantic version helpers used to validate and compute release versions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

SEMVER_INCREMENTS: Tuple[str, ...] = (
    "patch",
    "minor",
    "major",
    "prepatch",
    "preminor",
    "premajor",
    "prerelease",
)

_NUMERIC = r"0|[1-9]\d*"
_IDENTIFIER = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
_VERSION_RE = re.compile(
    rf"^\s*[v=]*\s*({_NUMERIC})\.({_NUMERIC})\.({_NUMERIC})"
    rf"(?:-({_IDENTIFIER}(?:\.{_IDENTIFIER})*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?\s*$"
)
# Comparator inside a range: operator plus a possibly partial version ("3", "2.15", "1.2.x").
_COMPARATOR_RE = re.compile(
    r"(<=|>=|<|>|=|~|\^)?\s*[v=]*"
    r"(\*|[xX]|\d+)(?:\.(\*|[xX]|\d+))?(?:\.(\*|[xX]|\d+))?"
    r"(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?"
)


@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text


def parse_version(value: str) -> SemVer:
    match = _VERSION_RE.match(value or "")
    if not match:
        raise ValueError(f"Version '{value}' is not a valid semver version.")
    major, minor, patch, prerelease, build = match.groups()
    return SemVer(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        build=tuple(build.split(".")) if build else (),
    )


def is_valid_version(value: str) -> bool:
    return bool(value) and _VERSION_RE.match(value) is not None


def is_valid_version_input(value: str) -> bool:
    return value in SEMVER_INCREMENTS or is_valid_version(value)


def bump_version(version: str, bump: str = "patch", identifier: Optional[str] = None) -> str:
    """Apply an increment keyword to ``version`` the way npm does.

    ``patch``/``minor``/``major`` on a pre-release promote it to the release it
    precedes (``1.2.4-0`` + patch is ``1.2.4``). The ``pre*`` keywords start a
    new pre-release line at ``identifier.0`` (or ``0`` without identifier), and
    ``prerelease`` increments the trailing numeric identifier.
    """

    current = parse_version(version)
    major, minor, patch = current.core
    pre = current.prerelease
    bump_lower = bump.lower()

    if bump_lower == "major":
        if minor != 0 or patch != 0 or not pre:
            major += 1
        return str(SemVer(major, 0, 0))
    if bump_lower == "minor":
        if patch != 0 or not pre:
            minor += 1
        return str(SemVer(major, minor, 0))
    if bump_lower == "patch":
        if not pre:
            patch += 1
        return str(SemVer(major, minor, patch))
    if bump_lower == "premajor":
        return str(SemVer(major + 1, 0, 0, _start_prerelease(identifier)))
    if bump_lower == "preminor":
        return str(SemVer(major, minor + 1, 0, _start_prerelease(identifier)))
    if bump_lower == "prepatch":
        return str(SemVer(major, minor, patch + 1, _start_prerelease(identifier)))
    if bump_lower == "prerelease":
        if not pre:
            return str(SemVer(major, minor, patch + 1, _start_prerelease(identifier)))
        return str(SemVer(major, minor, patch, _next_prerelease(pre, identifier)))
    raise ValueError(f"Unknown bump type '{bump}'. Expected {'|'.join(SEMVER_INCREMENTS)}.")


def get_new_version(current: str, version_input: str) -> str:
    if not is_valid_version_input(version_input):
        raise ValueError(
            f"Version should be either {', '.join(SEMVER_INCREMENTS)}, or a valid semver version."
        )
    if version_input in SEMVER_INCREMENTS:
        return bump_version(current, version_input)
    return str(parse_version(version_input))


def compare_versions(left: str | SemVer, right: str | SemVer) -> int:
    """Return -1, 0 or 1 following semver precedence (build metadata ignored)."""

    a = left if isinstance(left, SemVer) else parse_version(left)
    b = right if isinstance(right, SemVer) else parse_version(right)
    if a.core != b.core:
        return -1 if a.core < b.core else 1
    if a.prerelease == b.prerelease:
        return 0
    if not a.prerelease:
        return 1
    if not b.prerelease:
        return -1
    for ours, theirs in zip(a.prerelease, b.prerelease):
        result = _compare_identifiers(ours, theirs)
        if result:
            return result
    return -1 if len(a.prerelease) < len(b.prerelease) else 1


def is_version_greater(old_version: str, new_version: str) -> bool:
    """True when ``new_version`` sorts after ``old_version``."""

    return compare_versions(new_version, old_version) > 0


def is_version_lower(old_version: str, new_version: str) -> bool:
    """True when ``new_version`` sorts before ``old_version``."""

    return compare_versions(new_version, old_version) < 0


def is_prerelease_version(version: str) -> bool:
    return bool(parse_version(version).prerelease)


def satisfies(version: str, range_expr: str) -> bool:
    """Check ``version`` against an npm-style range such as ``>=2.15.8 <3.0.0 || >=3.10.1``."""

    target = parse_version(version)
    for alternative in range_expr.split("||"):
        comparators = _parse_comparator_set(alternative)
        if _test_set(target, comparators):
            return True
    return False


class SemverOracle:
    """Version oracle handed to the preflight checks."""

    increments: Tuple[str, ...] = SEMVER_INCREMENTS

    def is_valid_version_input(self, value: str) -> bool:
        return is_valid_version_input(value)

    def get_new_version(self, current: str, version_input: str) -> str:
        return get_new_version(current, version_input)

    def is_version_greater(self, old_version: str, new_version: str) -> bool:
        return is_version_greater(old_version, new_version)

    def is_version_lower(self, old_version: str, new_version: str) -> bool:
        return is_version_lower(old_version, new_version)

    def is_prerelease_version(self, version: str) -> bool:
        return is_prerelease_version(version)

    def satisfies(self, version: str, range_expr: str) -> bool:
        return satisfies(version, range_expr)


Comparator = Tuple[str, SemVer]


def _start_prerelease(identifier: Optional[str]) -> Tuple[str, ...]:
    return (identifier, "0") if identifier else ("0",)


def _next_prerelease(pre: Sequence[str], identifier: Optional[str]) -> Tuple[str, ...]:
    parts = list(pre)
    for index in range(len(parts) - 1, -1, -1):
        if parts[index].isdigit():
            parts[index] = str(int(parts[index]) + 1)
            break
    else:
        parts.append("0")
    if identifier and parts[0] != identifier:
        return (identifier, "0")
    return tuple(parts)


def _compare_identifiers(left: str, right: str) -> int:
    left_numeric, right_numeric = left.isdigit(), right.isdigit()
    if left_numeric and right_numeric:
        a, b = int(left), int(right)
        return (a > b) - (a < b)
    if left_numeric:
        return -1
    if right_numeric:
        return 1
    return (left > right) - (left < right)


def _is_wildcard(part: Optional[str]) -> bool:
    return part is None or part in {"*", "x", "X"}


def _parse_comparator_set(text: str) -> List[Comparator]:
    stripped = text.strip()
    if stripped in {"", "*", "x", "X"}:
        return [(">=", SemVer(0, 0, 0))]

    comparators: List[Comparator] = []
    position = 0
    while position < len(stripped):
        if stripped[position].isspace():
            position += 1
            continue
        match = _COMPARATOR_RE.match(stripped, position)
        if not match or match.end() == position:
            raise ValueError(f"Invalid version range '{text.strip()}'.")
        comparators.extend(_desugar(*match.groups()))
        position = match.end()
    return comparators


def _desugar(
    operator: Optional[str],
    major: str,
    minor: Optional[str],
    patch: Optional[str],
    prerelease: Optional[str],
) -> List[Comparator]:
    op = operator or "="
    if _is_wildcard(major):
        if op in {"<", ">"}:
            return [("<", SemVer(0, 0, 0, ("0",)))]
        return [(">=", SemVer(0, 0, 0))]

    x = int(major)
    pre = tuple(prerelease.split(".")) if prerelease else ()
    partial_minor = _is_wildcard(minor)
    partial_patch = partial_minor or _is_wildcard(patch)
    y = 0 if partial_minor else int(minor)
    z = 0 if partial_patch else int(patch)
    floor = SemVer(x, y, z, pre)

    if op == "~":
        ceiling = SemVer(x + 1, 0, 0, ("0",)) if partial_minor else SemVer(x, y + 1, 0, ("0",))
        return [(">=", floor), ("<", ceiling)]
    if op == "^":
        if x != 0 or partial_minor:
            ceiling = SemVer(x + 1, 0, 0, ("0",))
        elif y != 0 or partial_patch:
            ceiling = SemVer(0, y + 1, 0, ("0",))
        else:
            ceiling = SemVer(0, 0, z + 1, ("0",))
        return [(">=", floor), ("<", ceiling)]

    if not partial_patch:
        return [(op, floor)]

    # Partial versions cover every release inside the missing components.
    next_up = SemVer(x + 1, 0, 0) if partial_minor else SemVer(x, y + 1, 0)
    if op == "=":
        return [(">=", floor), ("<", SemVer(next_up.major, next_up.minor, 0, ("0",)))]
    if op == ">":
        return [(">=", next_up)]
    if op == "<=":
        return [("<", SemVer(next_up.major, next_up.minor, 0, ("0",)))]
    if op == "<":
        return [("<", SemVer(x, y, 0, ("0",)))]
    return [(">=", floor)]


def _test_comparator(target: SemVer, comparator: Comparator) -> bool:
    op, bound = comparator
    result = compare_versions(target, bound)
    if op == "=":
        return result == 0
    if op == ">":
        return result > 0
    if op == ">=":
        return result >= 0
    if op == "<":
        return result < 0
    return result <= 0


def _test_set(target: SemVer, comparators: Sequence[Comparator]) -> bool:
    if not all(_test_comparator(target, comparator) for comparator in comparators):
        return False
    if not target.prerelease:
        return True
    # Pre-releases only match when a comparator opts into that exact release line.
    return any(
        bound.prerelease and bound.core == target.core
        for _, bound in comparators
    )


__all__ = [
    "SEMVER_INCREMENTS",
    "SemVer",
    "SemverOracle",
    "bump_version",
    "compare_versions",
    "get_new_version",
    "is_prerelease_version",
    "is_valid_version",
    "is_valid_version_input",
    "is_version_greater",
    "is_version_lower",
    "parse_version",
    "satisfies",
]
