"""Fully-qualified export identifiers.

Every export lives in a global namespace keyed by (package, name). Scripts and
sidecar files refer to exports with a shorthand:

  name            an export of the package the text was written in
  package/name    an export of a dependency

Names beginning with an underscore are private: they can only be referenced
unqualified, i.e. from within their own package.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, TypeVar

from starpkg import sanitize
from starpkg.errors import StarpkgError

T = TypeVar("T")


class IdentifierErrorKind(Enum):
    EMPTY = "empty"
    NAME_REQUIRED = "name_required"
    PRIVATE = "private"
    PACKAGE_NAME_UNNEEDED = "package_name_unneeded"
    DEPENDENCY_NAME = "dependency_name"
    EXPORT_NAME = "export_name"


class IdentifierError(StarpkgError, ValueError):
    """Raised when identifier text cannot be parsed."""

    def __init__(self, kind: IdentifierErrorKind, text: str, message: str):
        self.kind = kind
        self.text = text
        super().__init__(message)

    @property
    def cause(self) -> sanitize.NameValidationError | None:
        """The sanitizer failure behind this error, if any."""
        cause = self.__cause__
        return cause if isinstance(cause, sanitize.NameValidationError) else None


@dataclass(frozen=True)
class Identifier:
    """A fully-qualified (package, name) export identifier."""

    package: str
    name: str

    def __str__(self) -> str:
        return f"{self.package}_{self.name}"

    @property
    def qualified(self) -> str:
        """The `package/name` form, used in messages."""
        return f"{self.package}/{self.name}"

    @property
    def is_private(self) -> bool:
        return self.name.startswith("_")

    @property
    def sort_key(self) -> tuple[str, str]:
        """Total order used wherever exports are enumerated."""
        return (str(self), self.package)

    def reference_from(self, source_package: str) -> str:
        """Text a script in `source_package` writes to refer to this export."""
        if self.package == source_package:
            return self.name
        return self.qualified

    def resolve(self, registry: Mapping[Identifier, T]) -> T | None:
        """Look this identifier up in a registry."""
        return registry.get(self)

    @classmethod
    def parse(cls, text: str, source_package: str) -> Identifier:
        """Parse `name` or `package/name` written inside `source_package`.

        Args:
            text: Identifier text
            source_package: Name of the package the text appears in

        Returns:
            The fully-qualified identifier

        Raises:
            IdentifierError: If the text is empty, malformed, needlessly
                qualified, or references another package's private export
        """
        if not text:
            raise IdentifierError(
                IdentifierErrorKind.EMPTY, text, "identifier cannot be empty"
            )

        if "/" not in text:
            try:
                sanitize.export_name(text)
            except sanitize.ExportNameError as e:
                raise IdentifierError(
                    IdentifierErrorKind.EXPORT_NAME,
                    text,
                    f"identifier '{text}': {e}",
                ) from e
            return cls(source_package, text)

        package, name = text.split("/", 1)

        if not name:
            raise IdentifierError(
                IdentifierErrorKind.NAME_REQUIRED,
                text,
                f"identifier '{text}' requires an export name after the slash",
            )

        try:
            sanitize.export_name(name)
        except sanitize.ExportNameError as e:
            raise IdentifierError(
                IdentifierErrorKind.EXPORT_NAME,
                text,
                f"identifier '{text}': {e}",
            ) from e

        if name.startswith("_"):
            raise IdentifierError(
                IdentifierErrorKind.PRIVATE,
                text,
                f"identifier '{name}' references a private export",
            )

        try:
            sanitize.dependency_name(package, source_package)
        except sanitize.DependencyNameError as e:
            if e.reason is sanitize.DependencyNameReason.SAME_AS_CURRENT_PACKAGE:
                raise IdentifierError(
                    IdentifierErrorKind.PACKAGE_NAME_UNNEEDED,
                    text,
                    f"identifier '{text}' needlessly references the current "
                    "package explicitly",
                ) from e
            raise IdentifierError(
                IdentifierErrorKind.DEPENDENCY_NAME,
                text,
                f"identifier '{text}': {e}",
            ) from e

        return cls(package, name)
