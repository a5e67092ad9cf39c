"""Protocol definitions for package backends."""

from __future__ import annotations

from typing import List, Optional, Protocol

from taproom.core.models import Package, PackageKey


class PackageBackend(Protocol):
    """Protocol for package manager backends."""

    async def refresh_index(self) -> None:
        """Sync the package manager's metadata index."""
        ...

    async def list_installed(self) -> List[Package]:
        """List installed packages."""
        ...

    async def info(self, key: PackageKey) -> Optional[Package]:
        """Get current metadata for one package, ``None`` if not installed."""
        ...

    async def upgrade(self, key: PackageKey) -> None:
        """Upgrade one package."""
        ...

    async def uninstall(self, key: PackageKey) -> None:
        """Uninstall one package."""
        ...
