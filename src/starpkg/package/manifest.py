"""Package manifest (starpkg.yaml).

    name: my_package
    version: 0.1.0
    dependencies:
      other_package:
        path: ../other_package
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from starpkg.errors import StarpkgError

SEMVER_PATTERN = re.compile(
    r"(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
)


class ManifestError(StarpkgError, ValueError):
    """Raised when manifest data is structurally invalid."""

    pass


def parse_version(value: object) -> str:
    """Validate a semantic version string and return it.

    YAML reads `1.0` as a float, so only strings are accepted.

    Raises:
        ManifestError: If the value is not MAJOR.MINOR.PATCH[-pre][+build]
    """
    if not isinstance(value, str) or not SEMVER_PATTERN.fullmatch(value):
        raise ManifestError(f"version must be semver format (got: {value!r})")
    return value


@dataclass
class Dependency:
    """A dependency declaration: where to find the package."""

    path: Path

    @classmethod
    def from_dict(cls, name: str, data: object) -> Dependency:
        if not isinstance(data, dict) or not isinstance(data.get("path"), str):
            raise ManifestError(f"dependency '{name}' requires a path")
        return cls(path=Path(data["path"]))

    def to_dict(self) -> dict:
        return {"path": self.path.as_posix()}


@dataclass
class Manifest:
    """Parsed starpkg.yaml."""

    name: str
    version: str
    dependencies: dict[str, Dependency] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: object) -> Manifest:
        """Create from a parsed YAML document.

        Raises:
            ManifestError: If required fields are missing or ill-typed
        """
        if not isinstance(data, dict):
            raise ManifestError("manifest must be a mapping")

        if "name" not in data:
            raise ManifestError("Missing required field: name")
        if not isinstance(data["name"], str):
            raise ManifestError("name must be a string")

        if "version" not in data:
            raise ManifestError("Missing required field: version")
        version = parse_version(data["version"])

        deps = data.get("dependencies") or {}
        if not isinstance(deps, dict):
            raise ManifestError("dependencies must be a mapping")

        return cls(
            name=data["name"],
            version=version,
            dependencies={
                str(name): Dependency.from_dict(str(name), dep)
                for name, dep in deps.items()
            },
        )

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "version": self.version,
            "dependencies": {
                name: dep.to_dict() for name, dep in self.dependencies.items()
            },
        }

    @classmethod
    def load(cls, path: Path) -> Manifest:
        """Read a manifest file.

        Raises:
            FileNotFoundError: If the file does not exist
            yaml.YAMLError: If the file is not valid YAML
            ManifestError: If the document is not a valid manifest
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        """Write the manifest file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
