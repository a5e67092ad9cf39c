"""In-memory catalog of installed packages."""

from __future__ import annotations

import time
from typing import Callable, Iterable, Iterator

from taproom.core.logging import get_logger
from taproom.core.models import Package, PackageKey

log = get_logger(__name__)


class Catalog:
    """Authoritative set of packages for a session.

    Packages are keyed by identity and exposed in display order:
    formulae before casks, alphabetical by name within each kind.
    Every mutation bumps ``revision`` so derived views know to recompute.

    Packages removed by an uninstall are remembered for ``tombstone_ttl``
    seconds and skipped by ``load``, so a listing captured before the
    uninstall finished cannot bring them back.
    """

    def __init__(
        self,
        tombstone_ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._packages: dict[PackageKey, Package] = {}
        self._order: list[PackageKey] = []
        self._tombstones: dict[PackageKey, float] = {}
        self._tombstone_ttl = tombstone_ttl
        self._clock = clock
        self.revision = 0

    def __len__(self) -> int:
        return len(self._packages)

    def __contains__(self, key: object) -> bool:
        return key in self._packages

    def __iter__(self) -> Iterator[Package]:
        return (self._packages[k] for k in self._order)

    def get(self, key: PackageKey) -> Package | None:
        return self._packages.get(key)

    def ordered(self) -> tuple[PackageKey, ...]:
        return tuple(self._order)

    def load(self, entries: Iterable[Package], keep: Iterable[PackageKey] = ()) -> None:
        """Replace the whole package set from a fresh listing.

        Args:
            entries: Packages parsed from the package manager. When an
                identity appears twice the last entry wins.
            keep: Identities whose current entry is newer than the listing,
                such as packages updated while the listing was fetched. They
                keep their current entry if the listing still has them.
        """
        self._expire_tombstones()
        newer = {k: self._packages[k] for k in keep if k in self._packages}

        packages: dict[PackageKey, Package] = {}
        skipped = 0
        for pkg in entries:
            if pkg.key in self._tombstones:
                skipped += 1
                continue
            packages[pkg.key] = newer.get(pkg.key, pkg)

        self._packages = packages
        self._reorder()
        log.info("catalog_loaded", count=len(packages), skipped=skipped or None)

    def apply_update(
        self,
        key: PackageKey,
        new_version: str | None,
        new_description: str | None,
        latest_version: str | None = None,
    ) -> None:
        """Update one package in place; no-op when it is no longer present."""
        pkg = self._packages.get(key)
        if pkg is None:
            log.debug("catalog_update_missing", package=key.name, kind=key.kind.value)
            return

        if new_version is not None:
            pkg.installed_version = new_version
        if new_description is not None:
            pkg.description = new_description
        if latest_version is not None:
            pkg.latest_version = latest_version
        self.revision += 1

    def remove(self, key: PackageKey) -> None:
        """Remove one package. Removing an absent package does nothing."""
        self._tombstones[key] = self._clock()
        if self._packages.pop(key, None) is None:
            return

        self._order.remove(key)
        self.revision += 1
        log.debug("catalog_removed", package=key.name, kind=key.kind.value)

    def _reorder(self) -> None:
        self._order = sorted(self._packages, key=lambda k: self._packages[k].sort_key())
        self.revision += 1

    def _expire_tombstones(self) -> None:
        now = self._clock()
        self._tombstones = {
            k: ts for k, ts in self._tombstones.items() if now - ts < self._tombstone_ttl
        }
