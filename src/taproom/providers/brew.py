"""Homebrew backend driving the ``brew`` command line."""

from __future__ import annotations

import time
from typing import List, Optional

from taproom.core.errors import PackageNotFoundError
from taproom.core.logging import get_logger
from taproom.core.models import Package, PackageKey, PackageKind
from taproom.core.shell import run_checked, run_json
from taproom.providers.brew_cask import parse_cask, parse_casks
from taproom.providers.brew_formula import parse_formula, parse_formulae

log = get_logger(__name__)


def _kind_flag(kind: PackageKind) -> str:
    return "--cask" if kind is PackageKind.CASK else "--formula"


class BrewBackend:
    """Package backend for Homebrew formulae and casks."""

    def __init__(self, brew_bin: str = "brew", timeout: Optional[float] = None) -> None:
        self.brew_bin = brew_bin
        self.timeout = timeout

    async def refresh_index(self) -> None:
        """Run ``brew update`` to fetch the latest package metadata."""
        start = time.perf_counter()
        log.info("index_refresh_start")

        await run_checked(self.brew_bin, "update", timeout=self.timeout)

        duration_ms = int((time.perf_counter() - start) * 1000)
        log.info("index_refresh_complete", duration_ms=duration_ms)

    async def list_installed(self) -> List[Package]:
        """List installed formulae and casks.

        Formulae installed only as dependencies of something else are left out.
        """
        start = time.perf_counter()
        log.info("fetch_packages_start")

        data = await run_json(
            self.brew_bin, "info", "--json=v2", "--installed", timeout=self.timeout
        )
        pkgs = parse_formulae(data.get("formulae", [])) + parse_casks(data.get("casks", []))

        duration_ms = int((time.perf_counter() - start) * 1000)
        log.info("fetch_packages_complete", count=len(pkgs), duration_ms=duration_ms)

        return pkgs

    async def info(self, key: PackageKey) -> Optional[Package]:
        """Get fresh metadata for one package.

        Returns:
            The package, or ``None`` if it is no longer installed.

        Raises:
            PackageNotFoundError: If brew does not report the package at all.
        """
        start = time.perf_counter()
        log.debug("fetch_package_details_start", package=key.name, kind=key.kind.value)

        data = await run_json(
            self.brew_bin, "info", "--json=v2", _kind_flag(key.kind), key.name,
            timeout=self.timeout,
        )

        pkg: Optional[Package] = None
        if key.kind is PackageKind.FORMULA:
            entry = next((f for f in data.get("formulae", []) if f.get("name") == key.name), None)
            if entry is not None and entry.get("installed"):
                pkg = parse_formula(entry)
        else:
            entry = next((c for c in data.get("casks", []) if c.get("token") == key.name), None)
            if entry is not None and entry.get("installed"):
                pkg = parse_cask(entry)

        if entry is None:
            log.error("package_not_found", package=key.name, kind=key.kind.value)
            raise PackageNotFoundError(package=key.name, kind=key.kind.value)

        duration_ms = int((time.perf_counter() - start) * 1000)
        log.info(
            "fetch_package_details_complete",
            package=key.name,
            kind=key.kind.value,
            installed=pkg is not None,
            duration_ms=duration_ms,
        )

        return pkg

    async def upgrade(self, key: PackageKey) -> None:
        await run_checked(
            self.brew_bin, "upgrade", _kind_flag(key.kind), key.name, timeout=self.timeout
        )

    async def uninstall(self, key: PackageKey) -> None:
        await run_checked(
            self.brew_bin, "uninstall", _kind_flag(key.kind), key.name, timeout=self.timeout
        )
