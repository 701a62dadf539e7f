"""Tests for loading, finding and creating packages."""

from __future__ import annotations

import logging

import pytest
import yaml

from starpkg import sanitize
from starpkg.package import Identifier, Package
from starpkg.package.errors import (
    BadDependencyNameError,
    BadPackageNameError,
    CyclicDependencyError,
    LoadError,
    MalformedManifestError,
    MultiDependencyVersionMismatchError,
    NotDirectoryError,
    PackageExistsError,
    PackageNotFoundError,
    UnfoundManifestError,
    UnfoundRootError,
)
from starpkg.package.text import TextLoadError


# ============================================================================
# Loading
# ============================================================================


class TestLoad:
    """Package.load reads a package and its exports."""

    def test_load_exports(self, tree):
        tree.manifest("test_pkg")
        tree.sprite("goomba")
        tree.actor("goomba", "namestring", "tattlestring")
        tree.strings("#string:01:(namestring)\n[END]\n\n#string:01:(tattlestring)\n[END]\n")

        package = Package.load(tree.root)

        assert package.name == "test_pkg"
        assert package.version == "0.1.0"
        assert list(package.sprites) == [Identifier("test_pkg", "goomba")]
        assert list(package.actors) == [Identifier("test_pkg", "goomba")]
        assert list(package.texts) == [
            Identifier("test_pkg", "namestring"),
            Identifier("test_pkg", "tattlestring"),
        ]

    def test_logs_loaded_exports(self, tree, caplog):
        tree.manifest("test_pkg")
        tree.sprite("goomba")

        with caplog.at_level(logging.INFO, logger="starpkg"):
            Package.load(tree.root)

        assert "loaded {Sprite:test_pkg/goomba}" in caplog.text

    def test_no_src_directory(self, tree):
        tree.manifest("test_pkg")

        package = Package.load(tree.root)

        assert len(package.sprites) == len(package.actors) == len(package.texts) == 0

    def test_stray_entries_skipped(self, tree):
        """Files among sprite directories are ignored."""
        tree.manifest("test_pkg")
        tree.sprite("goomba")
        tree.file("src/sprite/README.txt", "notes")

        package = Package.load(tree.root)

        assert list(package.sprites) == [Identifier("test_pkg", "goomba")]

    def test_not_a_directory(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")

        with pytest.raises(NotDirectoryError):
            Package.load(path)

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(UnfoundManifestError) as excinfo:
            Package.load(tmp_path)

        assert excinfo.value.path == tmp_path
        assert "missing starpkg.yaml - not a package?" in str(excinfo.value)

    @pytest.mark.parametrize(
        "content",
        [
            "name: [unclosed\n",
            "",
            "name: test_pkg\n",
            "name: test_pkg\nversion: 1.0\n",
            "name: test_pkg\nversion: banana\n",
            "name: 12\nversion: 0.1.0\n",
            "name: test_pkg\nversion: 0.1.0\ndependencies:\n  other: {}\n",
        ],
    )
    def test_malformed_manifest(self, tree, content):
        tree.file("starpkg.yaml", content)

        with pytest.raises(MalformedManifestError, match="malformed manifest"):
            Package.load(tree.root)

    @pytest.mark.parametrize("name", ["terrible package name", "", "pm64", "_hidden"])
    def test_bad_package_name(self, tree, name):
        tree.manifest(name)

        with pytest.raises(BadPackageNameError, match="invalid package name"):
            Package.load(tree.root)

    def test_bad_export_fails_load(self, tree):
        tree.manifest("test_pkg")
        tree.strings("#string:01:(this is very naughty)\nSample text[WAIT][END]\n")

        with pytest.raises(TextLoadError, match="invalid export name"):
            Package.load(tree.root)


class TestDependencies:
    """Dependency loading and flattening."""

    def test_dependency_exports_visible(self, tree):
        tree.manifest("test_pkg", dependencies={"outside": "outside"})
        tree.manifest("outside", at="outside")
        tree.strings("#string:01:(namestring)\n[END]\n", at="outside")

        package = Package.load(tree.root)

        assert [str(dep) for dep in package.dependencies] == ["outside v0.1.0"]
        assert Identifier("outside", "namestring") in package.texts

    @pytest.mark.parametrize("name", ["_lol_", "bad name"])
    def test_bad_dependency_name(self, tree, name):
        tree.manifest("ok", dependencies={name: ".."})

        with pytest.raises(BadDependencyNameError, match="invalid dependency name"):
            Package.load(tree.root)

    def test_dependency_named_after_self(self, tree):
        tree.manifest("word", dependencies={"word": ".."})

        with pytest.raises(BadDependencyNameError, match="invalid dependency name"):
            Package.load(tree.root)

    def test_name_mismatch_warns(self, tree, caplog):
        tree.manifest("test_pkg", dependencies={"other": "outside"})
        tree.manifest("outside", at="outside")

        with caplog.at_level(logging.WARNING, logger="starpkg"):
            Package.load(tree.root)

        assert "dependency 'other' actually has name 'outside'" in caplog.text

    def test_absolute_path_warns(self, tree, caplog):
        outside = tree.manifest("outside", at="outside")
        tree.manifest("test_pkg", dependencies={"outside": str(outside)})

        with caplog.at_level(logging.WARNING, logger="starpkg"):
            package = Package.load(tree.root)

        assert "dependency 'outside' uses an absolute path" in caplog.text
        assert package.dependencies[0].name == "outside"

    def test_missing_dependency_propagates(self, tree):
        tree.manifest("test_pkg", dependencies={"outside": "outside"})
        tree.path("outside").mkdir()

        with pytest.raises(UnfoundManifestError) as excinfo:
            Package.load(tree.root)

        assert excinfo.value.path == tree.root / "outside"

    def test_flattened_dependencies_first(self, tree):
        """Transitive dependencies come before the packages needing them."""
        tree.manifest("test_pkg", dependencies={"a": "a", "b": "b"})
        tree.manifest("a", dependencies={"shared": "../shared"}, at="a")
        tree.manifest("b", dependencies={"shared": "../shared"}, at="b")
        tree.manifest("shared", at="shared")
        tree.strings("#string:02:(common)\n[END]\n", at="shared")

        package = Package.load(tree.root)

        assert [dep.name for dep in package.dependencies] == ["shared", "a", "b"]
        assert Identifier("shared", "common") in package.texts

    @pytest.mark.parametrize("order", [("a", "b"), ("b", "a")])
    def test_version_mismatch(self, tree, order):
        """Conflicting versions fail regardless of declaration order."""
        tree.manifest("test_pkg", dependencies={name: name for name in order})
        tree.manifest("a", dependencies={"shared": "../shared1"}, at="a")
        tree.manifest("b", dependencies={"shared": "../shared2"}, at="b")
        tree.manifest("shared", version="0.1.0", at="shared1")
        tree.manifest("shared", version="0.2.0", at="shared2")

        with pytest.raises(MultiDependencyVersionMismatchError) as excinfo:
            Package.load(tree.root)

        assert excinfo.value.name == "shared"
        assert excinfo.value.versions == ["0.1.0", "0.2.0"]
        assert "'shared' (0.1.0, 0.2.0)" in str(excinfo.value)

    def test_cycle(self, tree):
        tree.manifest("parent", dependencies={"child": "child"})
        tree.manifest("child", dependencies={"parent": ".."}, at="child")

        with pytest.raises(CyclicDependencyError, match="cyclic dependency"):
            Package.load(tree.root)

    def test_depends_on_itself(self, tree):
        tree.manifest("me", dependencies={"also_me": "."})

        with pytest.raises(CyclicDependencyError):
            Package.load(tree.root)

    def test_dependency_records_untouched_by_assembly(self, tree, tmp_path_factory):
        tree.manifest("test_pkg", dependencies={"outside": "outside"})
        tree.manifest("outside", at="outside")
        tree.strings("#string:01:(namestring)\n[END]\n", at="outside")

        package = Package.load(tree.root)
        package.assemble(tmp_path_factory.mktemp("build"))

        id = Identifier("outside", "namestring")
        assert package.texts[id].is_assembled
        assert not package.dependencies[0].texts[id].is_assembled


class TestIdentity:
    """Packages are equal when name and version match."""

    def test_equal_by_name_and_version(self, tree):
        tree.manifest("shared", at="one")
        tree.manifest("shared", at="two")
        tree.manifest("shared", version="0.2.0", at="three")

        one = Package.load(tree.path("one"))
        two = Package.load(tree.path("two"))
        three = Package.load(tree.path("three"))

        assert one == two
        assert hash(one) == hash(two)
        assert one != three

    def test_str(self, tree):
        tree.manifest("test_pkg", version="1.2.3")

        assert str(Package.load(tree.root)) == "test_pkg v1.2.3"


# ============================================================================
# Finding
# ============================================================================


class TestFind:
    """Package.find searches upward for a manifest."""

    def test_find_in_parent(self, tree):
        tree.manifest("test_pkg")
        tree.sprite("goomba")

        package = Package.find(tree.path("src/sprite/goomba"))

        assert package.name == "test_pkg"
        assert package.dir == tree.root.resolve()

    def test_find_here(self, tree):
        tree.manifest("test_pkg")

        assert Package.find(tree.root).name == "test_pkg"

    def test_root_missing(self, tmp_path):
        with pytest.raises(UnfoundRootError):
            Package.find(tmp_path / "nope")

    def test_not_found(self, tmp_path):
        with pytest.raises(PackageNotFoundError) as excinfo:
            Package.find(tmp_path)

        assert excinfo.value.root == tmp_path

    def test_broken_package_not_skipped(self, tree):
        """Only a missing manifest moves the search upward."""
        tree.manifest("test_pkg")
        tree.file("inner/starpkg.yaml", "name: [unclosed\n")

        with pytest.raises(MalformedManifestError):
            Package.find(tree.path("inner"))

    def test_missing_dependency_not_skipped(self, tree):
        tree.manifest("test_pkg", dependencies={"outside": "outside"})
        tree.path("outside").mkdir()

        with pytest.raises(LoadError):
            Package.find(tree.root)


# ============================================================================
# Creating
# ============================================================================


class TestNew:
    """Package.new lays out a fresh package."""

    def test_empty_dir(self, tmp_path):
        package = Package.new(tmp_path, "test_pkg")

        assert package.dir == tmp_path
        assert (tmp_path / "src").is_dir()
        assert (tmp_path / ".gitignore").read_text(encoding="utf-8") == "/.build\n"
        assert yaml.safe_load((tmp_path / "starpkg.yaml").read_text()) == {
            "name": "test_pkg",
            "version": "0.1.0",
            "dependencies": {},
        }

    def test_new_package_loads(self, tmp_path):
        Package.new(tmp_path, "test_pkg")

        package = Package.load(tmp_path)

        assert package.name == "test_pkg"
        assert package.dependencies == []

    def test_missing_dir_created(self, tmp_path):
        package = Package.new(tmp_path / "a" / "b", "test_pkg")

        assert (tmp_path / "a" / "b" / "starpkg.yaml").is_file()
        assert package.dir == tmp_path / "a" / "b"

    def test_unempty_dir_uses_subdirectory(self, tmp_path):
        (tmp_path / "somefile.txt").touch()

        package = Package.new(tmp_path, "test_pkg")

        assert package.dir == tmp_path / "test_pkg"
        assert (tmp_path / "test_pkg" / "starpkg.yaml").is_file()

    def test_inside_existing_package(self, tmp_path, caplog):
        Package.new(tmp_path, "parent")

        with caplog.at_level(logging.WARNING, logger="starpkg"):
            package = Package.new(tmp_path, "child")

        assert package.dir == tmp_path / "child"
        assert "a package is here already" in caplog.text

    def test_subdirectory_already_package(self, tmp_path):
        (tmp_path / "somefile.txt").touch()
        Package.new(tmp_path, "test_pkg")

        with pytest.raises(PackageExistsError):
            Package.new(tmp_path, "test_pkg")

    @pytest.mark.parametrize(
        "name", ["bad name for package", "_not_allowed", "not_allowed_", "not/ok", "pm64"]
    )
    def test_bad_name(self, tmp_path, name):
        """Names are checked before anything is written."""
        target = tmp_path / "target"

        with pytest.raises(sanitize.PackageNameError):
            Package.new(target, name)

        assert not target.exists()
