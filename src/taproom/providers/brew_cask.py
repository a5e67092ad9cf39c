"""Homebrew Cask parsing."""

from __future__ import annotations

from typing import Any, List

from taproom.core.models import Package, PackageKind


def parse_cask(c: dict[str, Any]) -> Package:
    """Build a Package from one ``brew info --json=v2`` cask entry."""
    names = c.get("name") or []
    token = c.get("token") or (names[0] if names else "?")
    description = c.get("desc") or (", ".join(names) if names else "No description available")

    return Package(
        name=token,
        kind=PackageKind.CASK,
        description=description,
        homepage=c.get("homepage"),
        installed_version=c.get("installed"),
        latest_version=c.get("version"),
        tap=c.get("tap"),
        caveats=c.get("caveats"),
    )


def parse_casks(items: List[dict[str, Any]]) -> List[Package]:
    return [parse_cask(c) for c in items]
