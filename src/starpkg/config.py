"""Configuration settings for starpkg."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


# Environment override for the build directory name
BUILD_DIR_ENV = "STARPKG_BUILD_DIR"


@dataclass
class Settings:
    """Package layout settings."""

    # Package files
    manifest_name: str = "starpkg.yaml"
    ignore_file_name: str = ".gitignore"
    source_dir_name: str = "src"

    # Build output
    build_dir_name: str = field(
        default_factory=lambda: os.environ.get(BUILD_DIR_ENV, ".build")
    )

    # New packages
    initial_version: str = "0.1.0"

    # Package names owned by the base game
    reserved_package_names: tuple[str, ...] = ("pm64",)

    @property
    def ignore_file_contents(self) -> str:
        """Contents of the ignore file written into new packages."""
        return f"/{self.build_dir_name}\n"


settings = Settings()
