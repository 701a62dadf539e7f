"""Sprite exports.

A sprite is a directory under src/sprite/ holding a Star Rod sprite:

    src/sprite/goomba/
      SpriteSheet.xml
      ...image and animation files...

Only SpriteSheet.xml is read. Its PaletteList and AnimationList give the
palette and animation slots that {Sprite:id:anim:palette} expressions refer to
by name:

    <SpriteSheet>
      <PaletteList>
        <Palette id="0" name="Default" src="..."/>
      </PaletteList>
      <AnimationList>
        <Animation name="Idle">...</Animation>
      </AnimationList>
    </SpriteSheet>

A slot without a name attribute is named by its index in hex ("0", "1", ...
"A").
"""

from __future__ import annotations

import logging
import shutil
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from starpkg import sanitize
from starpkg.package.errors import LoadError
from starpkg.package.exports import UNASSEMBLED, AssemblyState, Export

logger = logging.getLogger(__name__)

SPRITESHEET_FILE = "SpriteSheet.xml"


class SpriteLoadError(LoadError):
    """Raised when a sprite directory cannot be loaded."""


class MissingSpriteSheetError(SpriteLoadError):
    def __init__(self, path: Path):
        super().__init__(path, f"missing {SPRITESHEET_FILE}")


class MalformedSpriteSheetError(SpriteLoadError):
    def __init__(self, path: Path, detail: str):
        super().__init__(path, f"malformed {SPRITESHEET_FILE}: {detail}")


class MissingPaletteListError(SpriteLoadError):
    def __init__(self, path: Path):
        super().__init__(path, f"{SPRITESHEET_FILE} has no PaletteList")


class MissingAnimationListError(SpriteLoadError):
    def __init__(self, path: Path):
        super().__init__(path, f"{SPRITESHEET_FILE} has no AnimationList")


def _slot_names(list_elem: ET.Element) -> list[str]:
    """Name every child of a PaletteList/AnimationList, in document order."""
    return [
        child.get("name") or f"{index:X}" for index, child in enumerate(list_elem)
    ]


@dataclass
class Sprite(Export):
    """An NPC sprite directory."""

    kind = "Sprite"

    dir: Path
    palettes: list[str] = field(default_factory=list)
    animations: list[str] = field(default_factory=list)
    state: AssemblyState = field(default=UNASSEMBLED)

    @property
    def name(self) -> str:
        return self.dir.name

    @classmethod
    def load(cls, dir: Path) -> Sprite:
        """Load one sprite directory.

        Raises:
            SpriteLoadError: If the directory name is not a valid export
                name, or SpriteSheet.xml is missing, malformed, or lacks a
                palette or animation list
        """
        dir = Path(dir)
        try:
            sanitize.export_name(dir.name)
        except sanitize.ExportNameError as e:
            raise SpriteLoadError(dir, str(e)) from e

        sheet_path = dir / SPRITESHEET_FILE
        if not sheet_path.is_file():
            raise MissingSpriteSheetError(dir)

        try:
            root = ET.parse(sheet_path).getroot()
        except ET.ParseError as e:
            raise MalformedSpriteSheetError(dir, str(e)) from e

        palette_list = next(root.iter("PaletteList"), None)
        if palette_list is None:
            raise MissingPaletteListError(dir)

        animation_list = next(root.iter("AnimationList"), None)
        if animation_list is None:
            raise MissingAnimationListError(dir)

        sprite = cls(
            dir=dir,
            palettes=_slot_names(palette_list),
            animations=_slot_names(animation_list),
        )
        logger.debug(
            "%s: %d palettes, %d animations",
            dir,
            len(sprite.palettes),
            len(sprite.animations),
        )
        return sprite

    @classmethod
    def load_all(cls, source_package: str, path: Path) -> list[Sprite]:
        return [cls.load(path)]

    def animation_index(self, name: str) -> int | None:
        """Slot of the named animation, or None."""
        try:
            return self.animations.index(name)
        except ValueError:
            return None

    def palette_index(self, name: str) -> int | None:
        """Slot of the named palette, or None."""
        try:
            return self.palettes.index(name)
        except ValueError:
            return None

    def assemble(self, out_dir: Path, index: int) -> None:
        """Copy the sprite's files into `out_dir` under the given index."""
        out_dir.mkdir(parents=True, exist_ok=True)

        for path in sorted(self.dir.iterdir()):
            target = out_dir / path.name
            if path.is_dir():
                shutil.copytree(path, target, dirs_exist_ok=True)
            else:
                shutil.copy2(path, target)

        self._mark_assembled(index)
