"""Actor exports.

An actor is a directory under src/actor/ named after the actor:

    src/actor/goomba/
      goomba.yaml     name: goomba_name
                      tattle: goomba_tattle
      goomba.bscr     battle script

`name` and `tattle` are string identifiers (see starpkg.package.id). The
battle script is written to the build directory at assembly with its
expressions resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from starpkg import sanitize
from starpkg.package.errors import LoadError
from starpkg.package.exports import UNASSEMBLED, AssemblyState, Export
from starpkg.package.id import Identifier, IdentifierError
from starpkg.package.script import Script

SIDECAR_SUFFIX = ".yaml"
SCRIPT_SUFFIX = ".bscr"
ASSEMBLED_SCRIPT_SUFFIX = ".bpat"


class ActorLoadError(LoadError):
    """Raised when an actor directory cannot be loaded."""


@dataclass
class Actor(Export):
    """A battle actor directory."""

    kind = "Actor"

    dir: Path
    source_package: str
    display_name: Identifier
    tattle: Identifier
    state: AssemblyState = field(default=UNASSEMBLED)

    @property
    def name(self) -> str:
        return self.dir.name

    @property
    def sidecar_path(self) -> Path:
        return self.dir / f"{self.name}{SIDECAR_SUFFIX}"

    @property
    def script_path(self) -> Path:
        return self.dir / f"{self.name}{SCRIPT_SUFFIX}"

    @classmethod
    def load(cls, source_package: str, dir: Path) -> Actor:
        """Load one actor directory.

        Args:
            source_package: Package the actor belongs to
            dir: Actor directory

        Raises:
            ActorLoadError
        """
        dir = Path(dir)
        name = dir.name

        try:
            sanitize.export_name(name)
        except sanitize.ExportNameError as e:
            raise ActorLoadError(dir, str(e)) from e

        sidecar = dir / f"{name}{SIDECAR_SUFFIX}"
        try:
            with open(sidecar, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ActorLoadError(dir, f"{sidecar.name} not found") from e
        except yaml.YAMLError as e:
            raise ActorLoadError(sidecar, f"parse error: {e}") from e

        if not isinstance(data, dict):
            raise ActorLoadError(sidecar, "expected a mapping with name and tattle")

        ids = {}
        for key in ("name", "tattle"):
            text = data.get(key)
            if not isinstance(text, str):
                raise ActorLoadError(sidecar, f"missing string field: {key}")
            try:
                ids[key] = Identifier.parse(text, source_package)
            except IdentifierError as e:
                raise ActorLoadError(sidecar, f"{key}: {e}") from e

        return cls(
            dir=dir,
            source_package=source_package,
            display_name=ids["name"],
            tattle=ids["tattle"],
        )

    @classmethod
    def load_all(cls, source_package: str, path: Path) -> list[Actor]:
        return [cls.load(source_package, path)]

    def assemble(self, actors_dir: Path, index: int) -> Script:
        """Take a final index and prepare the actor's battle script.

        The script is read and retargeted into `actors_dir` but not saved:
        its expressions can only be resolved once every export is assembled.

        Returns:
            The script, with its path set to the build output location

        Raises:
            ScriptParseError: If the battle script cannot be read
        """
        script = Script.load(self.source_package, self.script_path)
        script.path = actors_dir / f"{index:02X}_{self.name}{ASSEMBLED_SCRIPT_SUFFIX}"

        self._mark_assembled(index)
        return script
