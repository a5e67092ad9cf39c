"""Data models for the package browser."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple


class PackageKind(Enum):
    """Enumeration of package kinds."""

    FORMULA = "formula"
    CASK = "cask"


# Formulae are listed before casks.
KIND_ORDER = {PackageKind.FORMULA: 0, PackageKind.CASK: 1}


class PackageKey(NamedTuple):
    """Identity of a package: names are unique within a kind."""

    kind: PackageKind
    name: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.name}"


@dataclass
class Package:
    """Represents an installed Homebrew package."""

    name: str
    kind: PackageKind
    description: str = ""
    homepage: str | None = None
    installed_version: str | None = None
    latest_version: str | None = None
    tap: str | None = None
    caveats: str | None = None
    installed_on: datetime | None = None

    @property
    def key(self) -> PackageKey:
        return PackageKey(self.kind, self.name)

    @property
    def is_stale(self) -> bool:
        """True when a newer version is known to be available."""
        if self.latest_version is None or self.installed_version is None:
            return False
        return self.installed_version != self.latest_version

    def sort_key(self) -> tuple[int, str, str]:
        return (KIND_ORDER[self.kind], self.name.lower(), self.name)


class ActionKind(Enum):
    """Package manager operations the session can run."""

    REFRESH = "refresh"
    UPDATE = "update"
    UNINSTALL = "uninstall"


@dataclass(frozen=True)
class PendingAction:
    """One in-flight package manager invocation.

    ``target`` is ``None`` for the catalog-wide refresh.
    """

    kind: ActionKind
    target: PackageKey | None = None
    started: float = field(default=0.0, compare=False)

    @property
    def label(self) -> str:
        return self.target.name if self.target else "catalog"


@dataclass(frozen=True)
class ActionSuccess:
    """Result of a successful action.

    ``packages`` carries a fresh listing for refresh, ``package`` the
    re-read metadata after an update (``None`` when the package is gone).
    """

    packages: tuple[Package, ...] = ()
    package: Package | None = None
    note: str | None = None


@dataclass(frozen=True)
class ActionFailure:
    """Result of a failed action, with a human-readable diagnostic."""

    diagnostic: str
    exit_status: int | None = None


@dataclass(frozen=True)
class ActionCompleted:
    """Completion message delivered once per requested action."""

    action: PendingAction
    outcome: ActionSuccess | ActionFailure

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, ActionSuccess)
