"""Machinery shared by the three export kinds (sprites, actors, strings).

Each kind implements the same capability set:

  load_all(source_package, path)  discover exports in a source directory
  assemble(out_dir, index)        write build output and take a final index
  resolve                         look up by Identifier in an ExportRegistry

An export's final index is only known once the package is assembled. The
`state` field models that explicitly: Unassembled until assemble() moves it to
Assembled(index), exactly once.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Iterable, Iterator, Mapping, TypeVar, Union

from starpkg.package.id import Identifier


@dataclass(frozen=True)
class Unassembled:
    """The export has not been given a final index yet."""


@dataclass(frozen=True)
class Assembled:
    """The export was assembled with the given index."""

    index: int


AssemblyState = Union[Unassembled, Assembled]

UNASSEMBLED = Unassembled()


class NotAssembledError(RuntimeError):
    """An export's index was read before the package was assembled."""


class AlreadyAssembledError(RuntimeError):
    """An export was assembled twice."""


class Export(ABC):
    """Base class for sprites, actors and strings."""

    #: Expression keyword and display name, e.g. "Sprite"
    kind: ClassVar[str]

    #: Export name local to its package
    name: str

    state: AssemblyState

    @classmethod
    @abstractmethod
    def load_all(cls, source_package: str, path: Path) -> list[Export]:
        """Load every export defined at `path` (a directory or file)."""

    @property
    def is_assembled(self) -> bool:
        return isinstance(self.state, Assembled)

    @property
    def assembled_index(self) -> int:
        """Final index of this export.

        Raises:
            NotAssembledError: If the export has not been assembled
        """
        if not isinstance(self.state, Assembled):
            raise NotAssembledError(f"{self.kind} '{self.name}' was not assembled")
        return self.state.index

    def _mark_assembled(self, index: int) -> None:
        if isinstance(self.state, Assembled):
            raise AlreadyAssembledError(
                f"{self.kind} '{self.name}' was already assembled "
                f"with index {self.state.index:02X}"
            )
        self.state = Assembled(index)


E = TypeVar("E", bound=Export)


class ExportRegistry(Mapping[Identifier, E]):
    """Identifier -> export mapping for a package and its dependencies.

    Iteration always follows Identifier.sort_key so that index assignment
    does not depend on load order.
    """

    def __init__(self, items: Iterable[tuple[Identifier, E]] = ()):
        self._exports: dict[Identifier, E] = {}
        for key, export in items:
            self._exports[key] = export

    def __getitem__(self, key: Identifier) -> E:
        return self._exports[key]

    def __iter__(self) -> Iterator[Identifier]:
        return iter(sorted(self._exports, key=lambda key: key.sort_key))

    def __len__(self) -> int:
        return len(self._exports)

    def __repr__(self) -> str:
        keys = ", ".join(key.qualified for key in self)
        return f"ExportRegistry([{keys}])"

    def insert(self, key: Identifier, export: E) -> E | None:
        """Insert an export, returning the entry it replaced, if any."""
        previous = self._exports.get(key)
        self._exports[key] = export
        return previous

    def merge(self, other: ExportRegistry[E]) -> None:
        """Merge another registry into this one; `other` wins ties.

        Exports are copied so that assembling this registry never touches the
        records held by `other`.
        """
        for key, export in other._exports.items():
            self._exports[key] = copy.copy(export)
