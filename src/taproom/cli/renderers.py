"""Renderers for displaying package information using Rich."""

from typing import Iterable

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from taproom.core.models import Package

console = Console()


def status_to_str(pkg: Package) -> str:
    """Describe whether a package is current, using Rich markup.

    Args:
        pkg: The package to describe.

    Returns:
        A markup string such as ``[red]Outdated[/red]``.
    """
    if pkg.is_stale:
        return "[red]Outdated[/red]"
    if pkg.latest_version is None:
        return "[dim]Unknown[/dim]"
    return "[green]Up-to-date[/green]"


def package_table(pkgs: Iterable[Package]) -> Table:
    """Create a Rich Table listing packages.

    Args:
        pkgs: An iterable of Package instances to display.

    Returns:
        A Rich Table with one row per package.
    """
    table = Table(box=box.MINIMAL_HEAVY_HEAD)
    table.add_column("Kind", style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Installed")
    table.add_column("Latest")
    table.add_column("Status")
    table.add_column("Description", style="dim", overflow="ellipsis", no_wrap=True)

    for p in pkgs:
        table.add_row(
            p.kind.value,
            p.name,
            p.installed_version or "",
            p.latest_version or "",
            status_to_str(p),
            p.description,
        )

    return table


def package_details(pkg: Package) -> Table:
    """Display detailed information about a package.

    Args:
        pkg: The package to display information for.

    Returns:
        A Rich Table displaying detailed information about the package.
    """
    t = Table(box=box.MINIMAL_HEAVY_HEAD, show_header=False, expand=True)
    t.add_column("Field", style="bold", no_wrap=True)
    t.add_column("Value")
    t.add_row("Name", pkg.name)
    t.add_row("Kind", pkg.kind.value)
    t.add_row("Description", Text(pkg.description))
    t.add_row("Homepage", pkg.homepage or "No homepage available")
    t.add_row("Installed", pkg.installed_version or "Not installed")
    t.add_row("Latest", pkg.latest_version or "Unknown")
    t.add_row("Status", status_to_str(pkg))
    if pkg.tap:
        t.add_row("Tap", pkg.tap)
    if pkg.installed_on:
        t.add_row("Installed On", pkg.installed_on.strftime("%Y-%m-%d %H:%M"))
    if pkg.caveats:
        t.add_row("Caveats", Text(pkg.caveats.strip()))

    return t
