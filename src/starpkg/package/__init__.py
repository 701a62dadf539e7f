"""Packages and the exports they define.

- core.py: Package - load, find, new, assemble
- manifest.py: starpkg.yaml
- id.py: Identifier - the (package, name) export namespace
- exports.py: Export base class and ExportRegistry
- sprite.py, actor.py, text.py: the three export kinds
- script.py: Star Rod script reader/writer
- expressions.py: {Sprite:...}/{String:...}/{Actor:...} resolution
"""

from starpkg.package.core import Package
from starpkg.package.errors import (
    AssemblyError,
    CyclicDependencyError,
    FindError,
    LoadError,
    MultiDependencyVersionMismatchError,
    PackageExistsError,
    PackageNotFoundError,
    UnfoundManifestError,
    UnresolvedReferenceError,
)
from starpkg.package.exports import (
    Assembled,
    Export,
    ExportRegistry,
    Unassembled,
)
from starpkg.package.expressions import ResolveError, resolve_expressions
from starpkg.package.id import Identifier, IdentifierError, IdentifierErrorKind
from starpkg.package.manifest import Dependency, Manifest
from starpkg.package.script import Script, ScriptParseError
from starpkg.package.sprite import Sprite
from starpkg.package.actor import Actor
from starpkg.package.text import Text

__all__ = [
    "Package",
    "Manifest",
    "Dependency",
    "Identifier",
    "IdentifierError",
    "IdentifierErrorKind",
    "Export",
    "ExportRegistry",
    "Assembled",
    "Unassembled",
    "Sprite",
    "Actor",
    "Text",
    "Script",
    "resolve_expressions",
    "LoadError",
    "FindError",
    "AssemblyError",
    "CyclicDependencyError",
    "MultiDependencyVersionMismatchError",
    "PackageExistsError",
    "PackageNotFoundError",
    "UnfoundManifestError",
    "UnresolvedReferenceError",
    "ResolveError",
    "ScriptParseError",
]
