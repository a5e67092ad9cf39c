"""CLI entry point for the Taproom package browser."""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import typer

from taproom.cli.renderers import console, package_details, package_table
from taproom.core.catalog import Catalog
from taproom.core.config import Settings, discover_env, load_settings
from taproom.core.errors import (
    EXIT_SYSTEM_ERROR,
    EXIT_TRANSIENT_ERROR,
    EXIT_USER_ERROR,
    BrewError,
    PackageNotFoundError,
    SystemError,
    TransientError,
    UserError,
    format_error_message,
)
from taproom.core.filtering import FilterEngine
from taproom.core.logging import configure_logging, get_logger
from taproom.core.models import PackageKey, PackageKind
from taproom.providers.brew import BrewBackend

log = get_logger(__name__)

app = typer.Typer(help="Taproom: browse and manage installed Homebrew packages.")


def handle_error(error: Exception) -> int:
    """Report an error and return the matching exit code.

    Args:
        error: The exception to handle.

    Returns:
        An integer exit code.
    """
    if isinstance(error, BrewError):
        log.error(
            "cli_error",
            error_type=type(error).__name__,
            message=error.message,
            context=error.context,
        )
        console.print(f"\n{format_error_message(error)}\n", style="bold red")

        if isinstance(error, TransientError):
            return EXIT_TRANSIENT_ERROR
        elif isinstance(error, UserError):
            return EXIT_USER_ERROR
        elif isinstance(error, SystemError):
            return EXIT_SYSTEM_ERROR
        return EXIT_USER_ERROR

    log.error("unexpected_error", error=str(error), exc_info=True)
    console.print(f"\n⚠️ Unexpected error occurred: {error}\n", style="bold red")
    return EXIT_SYSTEM_ERROR


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else load_settings()


def _backend(settings: Settings) -> BrewBackend:
    discover_env(settings)
    return BrewBackend(settings.brew_bin, timeout=settings.command_timeout)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="DEBUG | INFO | WARNING | ERROR"
    ),
) -> None:
    """Browse installed packages. Runs the interactive browser by default."""
    settings = load_settings()
    if log_level:
        settings.log_level = log_level.upper()
    ctx.obj = settings

    interactive = ctx.invoked_subcommand in (None, "browse")
    configure_logging(
        level=settings.log_level,
        log_file=settings.log_dir / "taproom.log",
        enable_console=not interactive,
        force=True,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(browse, ctx)


@app.command()
def browse(ctx: typer.Context) -> None:
    """Open the interactive package browser."""
    settings = _settings(ctx)
    try:
        env = discover_env(settings)
    except BrewError as e:
        sys.exit(handle_error(e))
    log.info("brew_env", prefix=str(env.prefix), brew=settings.brew_bin)

    from taproom.app.main import run

    run(settings)


@app.command("list")
def list_packages(
    ctx: typer.Context,
    kind: Optional[PackageKind] = typer.Option(
        None, "--kind", "-k", help="formula | cask"
    ),
    outdated: bool = typer.Option(False, help="Only outdated"),
    search: Optional[str] = typer.Option(
        None, "--search", "-s", help="Filter by name"
    ),
) -> None:
    """List installed packages.

    Args:
        kind: Only show this kind of package.
        outdated: If true, only show outdated packages.
        search: Case-insensitive text the package name must contain.
    """
    settings = _settings(ctx)
    try:
        backend = _backend(settings)
        catalog = Catalog()
        catalog.load(asyncio.run(backend.list_installed()))

        filters = FilterEngine(catalog)
        filters.set_query(search or "")
        pkgs = [catalog.get(k) for k in filters.filtered_view()]
        if kind is not None:
            pkgs = [p for p in pkgs if p.kind is kind]
        if outdated:
            pkgs = [p for p in pkgs if p.is_stale]

        console.print(package_table(pkgs))
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def info(
    ctx: typer.Context,
    name: str,
    kind: PackageKind = typer.Option(PackageKind.FORMULA, "--kind", "-k"),
) -> None:
    """Show detailed information about an installed package.

    Args:
        name: Name of the package.
        kind: Kind of the package (formula or cask).
    """
    settings = _settings(ctx)
    try:
        backend = _backend(settings)
        pkg = asyncio.run(backend.info(PackageKey(kind, name)))
        if pkg is None:
            raise PackageNotFoundError(
                f"Package {kind.value} '{name}' is not installed",
                package=name,
                kind=kind.value,
            )

        console.print(package_details(pkg))
    except Exception as e:
        sys.exit(handle_error(e))


if __name__ == "__main__":
    app()
