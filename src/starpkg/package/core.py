"""Packages: loading, discovery, creation and assembly.

A package is a directory holding a manifest and a src/ tree of exports:

    my_package/
      starpkg.yaml
      src/
        sprite/<name>/SpriteSheet.xml
        actor/<name>/<name>.yaml
        actor/<name>/<name>.bscr
        string/<any file>

Loading a package loads its dependencies too, and flattens every export of
the whole dependency graph into one registry per export kind. Assembly turns
those registries into a Star Rod mod directory.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import yaml

from starpkg import sanitize
from starpkg.config import settings
from starpkg.logger import TRACE
from starpkg.package.actor import Actor
from starpkg.package.errors import (
    AssemblyError,
    BadDependencyNameError,
    BadPackageNameError,
    CyclicDependencyError,
    MalformedManifestError,
    MultiDependencyVersionMismatchError,
    NotDirectoryError,
    PackageExistsError,
    PackageNotFoundError,
    UnfoundManifestError,
    UnfoundRootError,
    UnresolvedReferenceError,
)
from starpkg.package.exports import Export, ExportRegistry
from starpkg.package.expressions import resolve_expressions
from starpkg.package.id import Identifier
from starpkg.package.manifest import Manifest, ManifestError
from starpkg.package.script import Script
from starpkg.package.sprite import Sprite
from starpkg.package.text import MAX_INDEX, Text

logger = logging.getLogger(__name__)

# Export directories under src/
SPRITE_DIR = "sprite"
ACTOR_DIR = "actor"
STRING_DIR = "string"

# Index 0 is not a valid NPC sprite
FIRST_SPRITE_INDEX = 1
MAX_SPRITE_INDEX = 0xFF
MAX_ACTOR_INDEX = 0xFF

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="no"?>'

PLAYER_SPRITES = """\
<PlayerSprites>
    <Sprite id="1" src="01" name="Mario 1"/>
    <Sprite id="2" src="02" name="Mario 2"/>
    <Sprite id="3" src="03" name="Mario 3"/>
    <Sprite id="4" src="04" name="Mario 4"/>
    <Sprite id="5" src="05" name="Mario 5"/>
    <Sprite id="6" src="06" name="Mario 6"/>
    <Sprite id="7" src="07" name="Mario 7"/>
    <Sprite id="8" src="08" name="Mario 8"/>
    <Sprite id="9" src="09" name="Mario 9"/>
    <Sprite id="A" src="0A" name="Peach 1"/>
    <Sprite id="B" src="0B" name="Peach 2"/>
    <Sprite id="C" src="0C" name="Peach 3"/>
    <Sprite id="D" src="0D" name="Peach 4"/>
</PlayerSprites>"""


def export_label(kind: str, id: Identifier) -> str:
    """Human-readable label for an export, e.g. `{Sprite:pkg/goomba}`."""
    return f"{{{kind}:{id.qualified}}}"


class Package:
    """A loaded package together with its flattened dependency graph.

    Usage:
        package = Package.find(Path.cwd())
        package.assemble(package.build_dir)
    """

    def __init__(
        self,
        dir: Path,
        manifest: Manifest,
        dependencies: list[Package] | None = None,
    ):
        self.dir = Path(dir)
        self.manifest = manifest

        #: Every package this one depends on, transitively, dependencies first
        self.dependencies: list[Package] = dependencies or []

        self.sprites: ExportRegistry[Sprite] = ExportRegistry()
        self.actors: ExportRegistry[Actor] = ExportRegistry()
        self.texts: ExportRegistry[Text] = ExportRegistry()

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def version(self) -> str:
        return self.manifest.version

    @property
    def identity(self) -> tuple[str, str]:
        """Two packages with the same name and version are the same package."""
        return (self.name, self.version)

    @property
    def manifest_path(self) -> Path:
        return self.dir / settings.manifest_name

    @property
    def build_dir(self) -> Path:
        return self.dir / settings.build_dir_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"

    def __repr__(self) -> str:
        return (
            f"Package({self.name!r}, {self.version!r}, dir={str(self.dir)!r}, "
            f"dependencies={[str(dep) for dep in self.dependencies]}, "
            f"sprites={self.sprites!r}, actors={self.actors!r}, "
            f"texts={self.texts!r})"
        )

    # ========================================================================
    # Loading
    # ========================================================================

    @classmethod
    def load(cls, dir: Path, _stack: list[Path] | None = None) -> Package:
        """Load the package at `dir` and, recursively, its dependencies.

        Args:
            dir: Package directory
            _stack: Canonical directories of the packages currently being
                loaded further up the dependency chain

        Raises:
            LoadError: If this package, a dependency, or any export in them
                cannot be loaded
        """
        dir = Path(dir)
        if not dir.is_dir():
            raise NotDirectoryError(dir)

        stack = _stack if _stack is not None else []
        canonical = dir.resolve()
        if canonical in stack:
            raise CyclicDependencyError(dir, list(stack))

        logger.debug("loading package: %s", dir)
        manifest = cls._read_manifest(dir)

        try:
            sanitize.package_name(manifest.name)
        except sanitize.PackageNameError as e:
            raise BadPackageNameError(dir / settings.manifest_name, str(e)) from e

        stack.append(canonical)
        try:
            direct = cls._load_dependencies(dir, manifest, stack)
        finally:
            stack.pop()

        package = cls(dir, manifest, _flatten(dir / settings.manifest_name, direct))

        for dep in package.dependencies:
            package.sprites.merge(dep.sprites)
            package.actors.merge(dep.actors)
            package.texts.merge(dep.texts)

        src = dir / settings.source_dir_name
        package._load_exports(Sprite, src / SPRITE_DIR, package.sprites, dirs=True)
        package._load_exports(Actor, src / ACTOR_DIR, package.actors, dirs=True)
        package._load_exports(Text, src / STRING_DIR, package.texts, dirs=False)

        return package

    @staticmethod
    def _read_manifest(dir: Path) -> Manifest:
        path = dir / settings.manifest_name
        try:
            return Manifest.load(path)
        except FileNotFoundError as e:
            raise UnfoundManifestError(dir, settings.manifest_name) from e
        except yaml.YAMLError as e:
            raise MalformedManifestError(path, str(e)) from e
        except ManifestError as e:
            raise MalformedManifestError(path, str(e)) from e

    @classmethod
    def _load_dependencies(
        cls, dir: Path, manifest: Manifest, stack: list[Path]
    ) -> list[Package]:
        packages = []

        for name, dep in manifest.dependencies.items():
            try:
                sanitize.dependency_name(name, manifest.name)
            except sanitize.DependencyNameError as e:
                raise BadDependencyNameError(
                    dir / settings.manifest_name, str(e)
                ) from e

            if dep.path.is_absolute():
                logger.warning("dependency '%s' uses an absolute path", name)

            path = dir / dep.path
            logger.debug("loading dependency '%s' from path: %s", name, path)

            package = cls.load(path, stack)
            if package.name != name:
                logger.warning(
                    "dependency '%s' actually has name '%s'", name, package.name
                )

            packages.append(package)

        return packages

    def _load_exports(
        self,
        export_cls: type[Export],
        source_dir: Path,
        registry: ExportRegistry,
        dirs: bool,
    ) -> None:
        """Load every export under `source_dir` into `registry`.

        Entries are visited in name order. Entries of the wrong type (files
        where directories are expected, and the reverse) are skipped.
        """
        if not source_dir.is_dir():
            return

        for path in sorted(source_dir.iterdir()):
            if path.is_dir() != dirs:
                logger.debug("skipping %s", path)
                continue

            for export in export_cls.load_all(self.name, path):
                id = Identifier(self.name, export.name)
                if registry.insert(id, export) is not None:
                    logger.warning(
                        "%s redefined by %s", export_label(export.kind, id), path
                    )
                logger.info("loaded %s", export_label(export.kind, id))

    # ========================================================================
    # Discovery and creation
    # ========================================================================

    @classmethod
    def find(cls, root: Path) -> Package:
        """Load the nearest package at or above `root`.

        Raises:
            UnfoundRootError: If `root` does not exist
            PackageNotFoundError: If no directory up to the filesystem root
                holds a manifest
            LoadError: If a package was found but could not be loaded
        """
        root = Path(root)
        try:
            path = root.resolve(strict=True)
        except OSError as e:
            raise UnfoundRootError(root) from e

        while True:
            try:
                return cls.load(path)
            except UnfoundManifestError as e:
                # Only a missing manifest *here* means "keep looking"
                if e.path != path:
                    raise

            if path.parent == path:
                raise PackageNotFoundError(root, settings.manifest_name)
            path = path.parent

    @classmethod
    def new(cls, dir: Path, name: str) -> Package:
        """Create a package called `name` at `dir`.

        If `dir` already has files in it the package is placed in the
        subdirectory `dir/name` instead.

        Raises:
            PackageNameError: If `name` is not a valid package name
            PackageExistsError: If the chosen directory is already a package
        """
        sanitize.package_name(name)

        dir = Path(dir)
        if not dir.exists():
            dir.mkdir(parents=True)
        elif any(dir.iterdir()):
            if (dir / settings.manifest_name).exists():
                logger.warning("a package is here already - creating a subdirectory")
            logger.debug("package dir %s already has files - using subdirectory", dir)

            dir = dir / name
            dir.mkdir(exist_ok=True)

        if (dir / settings.manifest_name).exists():
            raise PackageExistsError(dir)

        package = cls(dir, Manifest(name=name, version=settings.initial_version))
        package.write_manifest()
        (dir / settings.ignore_file_name).write_text(
            settings.ignore_file_contents, encoding="utf-8"
        )
        (dir / settings.source_dir_name).mkdir(exist_ok=True)

        return package

    def write_manifest(self) -> None:
        """Write `self.manifest` to the package's manifest file."""
        self.manifest.save(self.manifest_path)

    # ========================================================================
    # Assembly
    # ========================================================================

    def assemble(self, build_dir: Path) -> None:
        """Assemble the package into a Star Rod mod directory.

        Exports are given their final indices first; scripts may refer to
        any export, so they are resolved and saved only after that.
        Output written before a failure is left in place.

        Raises:
            AssemblyError: If an index space overflows, a reference does not
                resolve, or a script expression is invalid
            ScriptParseError: If an actor's battle script cannot be read
        """
        build_dir = Path(build_dir)
        build_dir.mkdir(parents=True, exist_ok=True)

        self._assemble_sprites(build_dir / "sprite")
        self._assemble_strings(build_dir / "strings")
        scripts = self._assemble_actors(build_dir / "battle")

        for script in scripts:
            resolve_expressions(script, self.sprites, self.texts, self.actors)
            script.save()
            logger.debug("wrote %s", script.path)

    def _assemble_sprites(self, sprites_dir: Path) -> None:
        count = len(self.sprites)
        if count > MAX_SPRITE_INDEX - FIRST_SPRITE_INDEX + 1:
            raise AssemblyError(
                f"too many sprites: {count} "
                f"(max {MAX_SPRITE_INDEX - FIRST_SPRITE_INDEX + 1})"
            )

        sprites_dir.mkdir(parents=True, exist_ok=True)

        rows = []
        for index, (id, sprite) in enumerate(
            self.sprites.items(), start=FIRST_SPRITE_INDEX
        ):
            sprite.assemble(sprites_dir / "npc" / "src" / f"{index:02X}", index)
            rows.append(
                f'        <Sprite id="{index:X}" src="{index:02X}" name="{id}"/>'
            )
            logger.debug("npc sprite %02X = %s", index, id.qualified)

        _write_xml(
            sprites_dir / "SpriteTable.xml",
            [
                "<SpriteTable>",
                "    <NpcSprites>",
                *rows,
                "    </NpcSprites>",
                PLAYER_SPRITES,
                "</SpriteTable>",
            ],
        )

    def _assemble_strings(self, strings_dir: Path) -> None:
        if strings_dir.exists():
            shutil.rmtree(strings_dir)
        strings_dir.mkdir(parents=True)

        # Next free index in each section
        sections: dict[int, int] = {}

        for id, text in self.texts.items():
            index = sections.get(text.section, 0)
            if index > MAX_INDEX:
                raise AssemblyError(
                    f"too many strings in section {text.section:02X} "
                    f"(max {MAX_INDEX + 1}) at {export_label(text.kind, id)}"
                )

            text.assemble(strings_dir, index)
            sections[text.section] = index + 1
            logger.log(TRACE, "string %s = %s", text.hex_id, id.qualified)

    def _assemble_actors(self, battle_dir: Path) -> list[Script]:
        count = len(self.actors)
        if count > MAX_ACTOR_INDEX + 1:
            raise AssemblyError(f"too many actors: {count} (max {MAX_ACTOR_INDEX + 1})")

        actors_dir = battle_dir / "formation" / "import" / "actor"
        actors_dir.mkdir(parents=True, exist_ok=True)

        rows = []
        scripts = []
        for index, (id, actor) in enumerate(self.actors.items()):
            name = self._actor_text(id, "name", actor.display_name)
            tattle = self._actor_text(id, "tattle", actor.tattle)

            rows.append(
                f'   <Actor id="{index:02X}" name="{name.hex_id}" '
                f'tattle="{tattle.hex_id}"/>'
            )
            scripts.append(actor.assemble(actors_dir, index))
            logger.debug("actor %02X = %s", index, id.qualified)

        _write_xml(
            battle_dir / "ActorTypes.xml",
            ["<ActorTypes>", *rows, "</ActorTypes>"],
        )
        return scripts

    def _actor_text(self, actor_id: Identifier, field: str, id: Identifier) -> Text:
        text = id.resolve(self.texts)
        if text is None:
            raise UnresolvedReferenceError(
                f"actor {actor_id.qualified}", field, Text.kind, id
            )
        return text


def _flatten(manifest_path: Path, direct: list[Package]) -> list[Package]:
    """Flatten direct dependencies into the full dependency list.

    Each dependency's own dependencies come before it. Repeats of the same
    package (name and version) are dropped, keeping the first.

    Raises:
        MultiDependencyVersionMismatchError: If two different versions of a
            package are required
    """
    flat: list[Package] = []
    seen: set[tuple[str, str]] = set()

    for dep in direct:
        for package in [*dep.dependencies, dep]:
            if package.identity not in seen:
                seen.add(package.identity)
                flat.append(package)

    versions: dict[str, list[str]] = {}
    for package in flat:
        versions.setdefault(package.name, []).append(package.version)

    for name in sorted(versions):
        if len(versions[name]) > 1:
            raise MultiDependencyVersionMismatchError(
                manifest_path, name, sorted(versions[name])
            )

    return flat


def _write_xml(path: Path, lines: list[str]) -> None:
    path.write_text("\n".join([XML_DECLARATION, *lines]), encoding="utf-8")
