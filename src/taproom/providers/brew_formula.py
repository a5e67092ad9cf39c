"""Homebrew formula parsing."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List

from taproom.core.models import Package, PackageKind


def _install_time(record: dict[str, Any]) -> int:
    return record.get("time") or record.get("installed_time") or 0


def is_requested(formula: dict[str, Any]) -> bool:
    """True when the formula was installed directly rather than as a dependency."""
    return any(
        record.get("installed_on_request") or not record.get("installed_as_dependency")
        for record in formula.get("installed", [])
    )


def parse_formula(f: dict[str, Any]) -> Package:
    """Build a Package from one ``brew info --json=v2`` formula entry.

    The installed version is taken from the most recent install record;
    the latest version is the stable release, else HEAD. A non-zero formula
    revision is appended as ``_N``, matching how brew names installed kegs.
    """
    installed = f.get("installed", [])
    installed_version = None
    installed_on = None
    if installed:
        newest = max(installed, key=_install_time)
        installed_version = newest.get("version")
        if t := _install_time(newest):
            installed_on = datetime.fromtimestamp(t)

    versions = f.get("versions") or {}
    latest = versions.get("stable")
    if latest and f.get("revision"):
        latest = f"{latest}_{f['revision']}"
    latest = latest or versions.get("head")

    return Package(
        name=f["name"],
        kind=PackageKind.FORMULA,
        description=f.get("desc") or "",
        homepage=f.get("homepage"),
        installed_version=installed_version,
        latest_version=latest,
        tap=f.get("tap"),
        caveats=f.get("caveats"),
        installed_on=installed_on,
    )


def parse_formulae(items: List[dict[str, Any]], requested_only: bool = True) -> List[Package]:
    """Parse formula entries, by default skipping ones pulled in as dependencies."""
    return [parse_formula(f) for f in items if not requested_only or is_requested(f)]
