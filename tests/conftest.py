from __future__ import annotations

import asyncio
import os
import tempfile
from dataclasses import replace
from typing import Optional

import pytest

# Keep log files out of the real home directory.
os.environ.setdefault("TAPROOM_HOME", tempfile.mkdtemp(prefix="taproom-tests-"))

from taproom.core.config import Settings  # noqa: E402
from taproom.core.models import Package, PackageKey, PackageKind  # noqa: E402


def make_package(
    name: str,
    installed: Optional[str] = "1.0",
    latest: Optional[str] = None,
    kind: PackageKind = PackageKind.FORMULA,
    description: str = "",
) -> Package:
    return Package(
        name=name,
        kind=kind,
        description=description or f"{name} package",
        installed_version=installed,
        latest_version=latest if latest is not None else installed,
    )


def formula(name: str) -> PackageKey:
    return PackageKey(PackageKind.FORMULA, name)


class FakeBackend:
    """In-memory package manager.

    Operations are recorded in ``calls`` as ``"op"`` or ``"op:name"``.
    ``hold(label)`` returns an event the operation waits on, ``fail(label, exc)``
    makes it raise.
    """

    def __init__(self, packages: list[Package] | tuple[Package, ...] = ()) -> None:
        self.packages = {p.key: p for p in packages}
        self.calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}

    def hold(self, label: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[label] = gate
        return gate

    def fail(self, label: str, error: Exception) -> None:
        self.failures[label] = error

    async def _step(self, op: str, key: Optional[PackageKey] = None) -> None:
        label = f"{op}:{key.name}" if key else op
        self.calls.append(label)
        gate = self.gates.get(label)
        if gate is not None:
            await gate.wait()
        if label in self.failures:
            raise self.failures[label]

    async def refresh_index(self) -> None:
        await self._step("refresh_index")

    async def list_installed(self) -> list[Package]:
        await self._step("list")
        return [replace(p) for p in self.packages.values()]

    async def info(self, key: PackageKey) -> Optional[Package]:
        await self._step("info", key)
        pkg = self.packages.get(key)
        return replace(pkg) if pkg else None

    async def upgrade(self, key: PackageKey) -> None:
        await self._step("upgrade", key)
        pkg = self.packages[key]
        pkg.installed_version = pkg.latest_version

    async def uninstall(self, key: PackageKey) -> None:
        await self._step("uninstall", key)
        self.packages.pop(key, None)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(page_size=3)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend(
        [
            make_package("wget", installed="1.1", latest="1.1"),
            make_package("git", installed="2.0", latest="2.1"),
        ]
    )
