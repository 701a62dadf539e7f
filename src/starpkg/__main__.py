"""CLI entry point for starpkg."""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from starpkg import __version__
from starpkg import logger as log
from starpkg.errors import StarpkgError, cause_chain
from starpkg.logger import TRACE
from starpkg.package import Package
from starpkg.package.errors import PackageNotFoundError

logger = logging.getLogger(log.ROOT_LOGGER)

err_console = Console(stderr=True, soft_wrap=True, highlight=False)


def fail(error: BaseException, verbosity: int) -> None:
    """Report an error on stderr and exit with status 1.

    Only the top-level message is shown unless -vv was given, in which case
    every underlying cause follows it.
    """
    err_console.print(f"[red]Error: {escape(str(error))}[/red]")

    if verbosity >= 2:
        for cause in cause_chain(error):
            err_console.print(f"[dim]  caused by: {escape(str(cause))}[/dim]")

    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-d",
    "--dir",
    "package_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Path to package directory",
)
@click.option(
    "-v",
    "verbosity",
    count=True,
    help="Verbosity level (-v: debug, -vv: trace)",
)
@click.pass_context
def cli(ctx: click.Context, package_dir: Path | None, verbosity: int):
    """starpkg - a tool for creating composable Paper Mario mods."""
    log.init(verbosity)

    ctx.ensure_object(dict)
    ctx.obj["package_dir"] = package_dir
    ctx.obj["verbosity"] = verbosity


def _load_package(package_dir: Path | None) -> Package:
    """Load the package at --dir, or the one enclosing the working directory."""
    if package_dir is not None:
        return Package.load(package_dir)
    return Package.find(Path.cwd())


@cli.command()
@click.argument("name")
@click.pass_context
def new(ctx: click.Context, name: str):
    """Set up a new package.

    Without --dir, the package goes in the enclosing package's directory if
    there is one, else in the working directory. Either way a directory
    that already has files in it gets a NAME subdirectory.
    """
    package_dir: Path | None = ctx.obj["package_dir"]
    verbosity: int = ctx.obj["verbosity"]

    try:
        if package_dir is None:
            try:
                package_dir = Package.find(Path.cwd()).dir
            except PackageNotFoundError:
                package_dir = Path.cwd()

        package = Package.new(package_dir, name)
    except (StarpkgError, OSError) as e:
        fail(e, verbosity)

    logger.info("created package %s at %s", package, package.dir)


@cli.command()
@click.pass_context
def build(ctx: click.Context):
    """Assemble the package and its dependencies into a mod directory."""
    verbosity: int = ctx.obj["verbosity"]

    try:
        package = _load_package(ctx.obj["package_dir"])
        logger.log(TRACE, "assembling package:\n%r", package)

        build_dir = package.build_dir
        if not build_dir.is_dir():
            logger.debug("creating build directory")

        start = time.perf_counter()
        package.assemble(build_dir)
        elapsed = time.perf_counter() - start
    except (StarpkgError, OSError) as e:
        fail(e, verbosity)

    logger.info("assembled %s in %.3fs", package, elapsed)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
