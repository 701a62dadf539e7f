"""Errors raised while loading, finding, creating and assembling packages."""

from __future__ import annotations

from pathlib import Path

from starpkg.errors import StarpkgError
from starpkg.package.id import Identifier


class LoadError(StarpkgError):
    """Raised when a package, or anything inside it, cannot be loaded.

    Attributes:
        path: File or directory the failure is about
        line: Line number within `path`, when known
    """

    def __init__(self, path: Path, message: str, line: int | None = None):
        self.path = path
        self.line = line
        location = f"{path}:{line}" if line is not None else str(path)
        super().__init__(f"{location}: {message}")


class NotDirectoryError(LoadError):
    def __init__(self, path: Path):
        super().__init__(path, "not a directory")


class UnfoundManifestError(LoadError):
    """The directory has no manifest - it is not a package."""

    def __init__(self, path: Path, manifest_name: str):
        super().__init__(path, f"missing {manifest_name} - not a package?")


class MalformedManifestError(LoadError):
    def __init__(self, path: Path, detail: str):
        super().__init__(path, f"malformed manifest: {detail}")


class BadPackageNameError(LoadError):
    """The manifest declares an invalid package name."""


class BadDependencyNameError(LoadError):
    """The manifest declares a dependency under an invalid name."""


class MultiDependencyVersionMismatchError(LoadError):
    """Two dependencies share a name but not a version."""

    def __init__(self, path: Path, name: str, versions: list[str]):
        self.name = name
        self.versions = versions
        super().__init__(
            path,
            "dependencies with the same name but different versions found: "
            f"'{name}' ({', '.join(versions)})",
        )


class CyclicDependencyError(LoadError):
    """A dependency chain leads back to a package already being loaded."""

    def __init__(self, path: Path, chain: list[Path]):
        self.chain = chain
        cycle = " -> ".join(str(p) for p in chain + [path])
        super().__init__(path, f"cyclic dependency: {cycle}")


class FindError(StarpkgError):
    """Raised when no package can be found from a starting directory."""

    def __init__(self, root: Path, message: str):
        self.root = root
        super().__init__(message)


class UnfoundRootError(FindError):
    def __init__(self, root: Path):
        super().__init__(root, f"root path {root} does not exist")


class PackageNotFoundError(FindError):
    def __init__(self, root: Path, manifest_name: str):
        super().__init__(
            root,
            f"could not find {manifest_name} in '{root}' or any parent directory",
        )


class PackageExistsError(StarpkgError):
    """Raised when creating a package where one already exists."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"directory {path} is already a package")


class AssemblyError(StarpkgError):
    """Raised when a loaded package cannot be assembled."""

    pass


class UnresolvedReferenceError(AssemblyError):
    """An export refers to another export that does not exist."""

    def __init__(self, referrer: str, field: str, kind: str, id: Identifier):
        self.referrer = referrer
        self.field = field
        self.id = id
        super().__init__(f"{referrer} {field} not found: {{{kind}:{id.qualified}}}")
