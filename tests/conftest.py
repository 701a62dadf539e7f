"""Shared fixtures for starpkg tests."""

from __future__ import annotations

import logging
from pathlib import Path
from textwrap import dedent

import pytest
import yaml

from starpkg.logger import ROOT_LOGGER


def sprite_sheet(palettes=("Default",), animations=("Idle",)) -> str:
    """A minimal SpriteSheet.xml with named palette and animation slots."""
    palette_rows = "".join(
        f'    <Palette id="{i:X}" name="{name}" src="pal{i}.png"/>\n'
        for i, name in enumerate(palettes)
    )
    animation_rows = "".join(
        f'    <Animation name="{name}"/>\n' for name in animations
    )
    return (
        "<SpriteSheet>\n"
        "  <PaletteList>\n"
        f"{palette_rows}"
        "  </PaletteList>\n"
        "  <AnimationList>\n"
        f"{animation_rows}"
        "  </AnimationList>\n"
        "</SpriteSheet>\n"
    )


class PackageTree:
    """Writes package directories under a root for tests.

    Every method takes `at`, the package directory relative to the root
    ("" for the root itself).
    """

    def __init__(self, root: Path):
        self.root = root

    def path(self, at: str = "") -> Path:
        return self.root / at if at else self.root

    def file(self, relpath: str, text: str) -> Path:
        path = self.root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(text).lstrip("\n"), encoding="utf-8")
        return path

    def manifest(
        self,
        name: str,
        version: str = "0.1.0",
        dependencies: dict[str, str] | None = None,
        at: str = "",
    ) -> Path:
        data: dict = {"name": name, "version": version}
        if dependencies:
            data["dependencies"] = {
                dep: {"path": path} for dep, path in dependencies.items()
            }

        dir = self.path(at)
        dir.mkdir(parents=True, exist_ok=True)
        path = dir / "starpkg.yaml"
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return dir

    def strings(self, text: str, filename: str = "strings.str", at: str = "") -> Path:
        return self.file(self._rel(at, f"src/string/{filename}"), text)

    def sprite(
        self,
        name: str,
        palettes=("Default",),
        animations=("Idle",),
        at: str = "",
    ) -> Path:
        sheet = self.file(
            self._rel(at, f"src/sprite/{name}/SpriteSheet.xml"),
            sprite_sheet(palettes, animations),
        )
        return sheet.parent

    def actor(
        self,
        name: str,
        display_name: str,
        tattle: str,
        script: str = "#new:Actor $Actor\n",
        at: str = "",
    ) -> Path:
        self.file(
            self._rel(at, f"src/actor/{name}/{name}.yaml"),
            yaml.safe_dump({"name": display_name, "tattle": tattle}),
        )
        script_path = self.file(self._rel(at, f"src/actor/{name}/{name}.bscr"), script)
        return script_path.parent

    @staticmethod
    def _rel(at: str, relpath: str) -> str:
        return f"{at}/{relpath}" if at else relpath


@pytest.fixture
def tree(tmp_path) -> PackageTree:
    """Package tree builder rooted at a temporary directory."""
    return PackageTree(tmp_path)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the command line installs so tests stay independent."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
