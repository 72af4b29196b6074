"""Pydantic models for package descriptors and package manager output."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Set, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError

from .errors import ConfigurationError

_PERMISSION_SPLIT_RE = re.compile(r"[-,\s]+")


class PublishConfig(BaseModel):
    registry: Optional[str] = Field(default=None, description="Custom registry the package publishes to.")

    model_config = ConfigDict(extra="allow")


class PackageDescriptor(BaseModel):
    """The subset of ``package.json`` the preflight checks read."""

    name: str
    version: str
    private: bool = False
    publish_config: Optional[PublishConfig] = Field(default=None, alias="publishConfig")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def is_external_registry(self) -> bool:
        return self.publish_config is not None and isinstance(self.publish_config.registry, str)

    @classmethod
    def load(cls, path: str | Path) -> "PackageDescriptor":
        descriptor_path = Path(path)
        if descriptor_path.is_dir():
            descriptor_path = descriptor_path / "package.json"
        try:
            return cls.model_validate_json(descriptor_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Package descriptor not found: {descriptor_path}") from exc
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid package descriptor {descriptor_path}: {exc}") from exc


class Collaborators(RootModel[Dict[str, Union[List[str], str]]]):
    """``npm access ls-collaborators`` output.

    Older npm releases list permissions (``["read", "write"]``), newer ones
    print a single label (``"read-write"``). Both forms are split into
    individual permission words before lookup.
    """

    def permissions_for(self, username: str) -> Set[str]:
        raw = self.root.get(username, [])
        labels = [raw] if isinstance(raw, str) else raw
        return {word for label in labels for word in _PERMISSION_SPLIT_RE.split(label.lower()) if word}

    def can_write(self, username: str) -> bool:
        return "write" in self.permissions_for(username)


class ManagerVersions(BaseModel):
    """``npm version --json`` output; only the ``npm`` entry is required."""

    npm: str

    model_config = ConfigDict(extra="allow")


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_command_json(model: type[ModelT], output: str, *, source: str) -> ModelT:
    try:
        return model.model_validate(json.loads(output))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Unexpected output from `{source}`: {exc}") from exc


__all__ = [
    "Collaborators",
    "ManagerVersions",
    "PackageDescriptor",
    "PublishConfig",
    "parse_command_json",
]
