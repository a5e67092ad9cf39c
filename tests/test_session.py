from __future__ import annotations

import asyncio

import pytest
from conftest import FakeBackend, FakeClock, formula, make_package

from taproom.core.config import Settings
from taproom.core.errors import BrewCommandError
from taproom.core.navigation import Cursor
from taproom.core.session import (
    KEY_BACKSPACE,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_RIGHT,
    KEY_UP,
    KeyPress,
    SessionController,
    SessionSnapshot,
)


def press(session: SessionController, *keys: str) -> SessionSnapshot:
    snapshot = session.snapshot()
    for key in keys:
        snapshot = session.handle_event(KeyPress(key))
    return snapshot


async def settle(session: SessionController, count: int = 1) -> SessionSnapshot:
    snapshot = session.snapshot()
    for _ in range(count):
        done = await asyncio.wait_for(session.executor.next_completion(), timeout=1)
        snapshot = session.handle_event(done)
    return snapshot


async def started(
    backend: FakeBackend, settings: Settings, columns: int = 1, clock: FakeClock | None = None
) -> SessionController:
    kwargs = {"clock": clock} if clock else {}
    session = SessionController(backend, settings, columns=columns, **kwargs)
    session.start()
    await settle(session)
    return session


async def test_start_shows_loading_until_refresh_completes(
    backend: FakeBackend, settings: Settings
) -> None:
    session = SessionController(backend, settings)

    snapshot = session.start()
    assert snapshot.loading
    assert snapshot.cursor is None
    assert snapshot.banners == ("🔄 Refreshing package list...",)

    snapshot = await settle(session)
    assert not snapshot.loading
    assert [p.name for p in snapshot.packages] == ["git", "wget"]
    assert snapshot.cursor == Cursor(0, 0)
    assert snapshot.selected.name == "git"
    assert snapshot.banners == ()


async def test_update_scenario(backend: FakeBackend, settings: Settings) -> None:
    session = await started(backend, settings)

    assert press(session, KEY_DOWN).selected.name == "wget"
    snapshot = press(session, KEY_UP)
    assert snapshot.selected.name == "git"
    assert snapshot.selected.is_stale

    snapshot = press(session, "u")
    assert snapshot.banners == ("⬆️ Updating git...",)
    assert session.executor.is_pending(formula("git"))

    snapshot = await settle(session)
    git = session.catalog.get(formula("git"))
    assert git.installed_version == "2.1"
    assert not git.is_stale
    assert snapshot.status == "✅ git updated to 2.1"
    assert not session.executor.in_flight()


async def test_update_of_current_package_is_skipped(
    backend: FakeBackend, settings: Settings
) -> None:
    session = await started(backend, settings)

    snapshot = press(session, KEY_DOWN, "u")

    assert snapshot.status == "wget is already up to date"
    assert session.executor.in_flight() == []
    assert "upgrade:wget" not in backend.calls


async def test_duplicate_update_reports_in_flight(
    backend: FakeBackend, settings: Settings
) -> None:
    backend.hold("upgrade:git")
    session = await started(backend, settings)

    press(session, "u")
    snapshot = press(session, "u")

    assert "git" in snapshot.status
    assert len(session.executor.in_flight()) == 1


async def test_search_filters_and_reclamps_selection(
    backend: FakeBackend, settings: Settings
) -> None:
    session = await started(backend, settings)
    press(session, KEY_DOWN)

    snapshot = press(session, "/", "g", "i", "t")
    assert snapshot.searching
    assert snapshot.query == "git"
    assert [p.name for p in snapshot.packages] == ["git"]
    assert snapshot.cursor == Cursor(0, 0)
    assert snapshot.selected.name == "git"

    snapshot = press(session, KEY_ENTER)
    assert not snapshot.searching
    assert snapshot.query == "git"


async def test_search_mode_treats_commands_as_text(
    backend: FakeBackend, settings: Settings
) -> None:
    session = await started(backend, settings)

    snapshot = press(session, "/", "q", "u", "x")
    assert snapshot.query == "qux"
    assert not snapshot.should_quit
    assert snapshot.packages == ()
    assert snapshot.selected is None

    snapshot = press(session, KEY_BACKSPACE, KEY_BACKSPACE, KEY_BACKSPACE, KEY_ESCAPE)
    assert snapshot.query == ""
    assert len(snapshot.packages) == 2
    assert snapshot.cursor == Cursor(0, 0)
    assert session.executor.in_flight() == []


async def test_uninstall_removes_package_and_reclamps(
    backend: FakeBackend, settings: Settings
) -> None:
    session = await started(backend, settings)

    press(session, KEY_DOWN, "x")
    snapshot = await settle(session)
    assert [p.name for p in snapshot.packages] == ["git"]
    assert snapshot.cursor == Cursor(0, 0)
    assert snapshot.status == "✅ Successfully uninstalled wget"

    press(session, "x")
    snapshot = await settle(session)
    assert snapshot.packages == ()
    assert snapshot.cursor is None
    assert snapshot.selected is None
    assert press(session, "x", "u", KEY_DOWN).selected is None


async def test_uninstall_of_filtered_selection(backend: FakeBackend, settings: Settings) -> None:
    session = await started(backend, settings)

    press(session, "/", "g", "i", "t", KEY_ENTER, "x")
    snapshot = await settle(session)

    assert formula("git") not in session.catalog
    assert snapshot.packages == ()
    assert snapshot.cursor is None


async def test_failed_action_leaves_catalog_unchanged(
    backend: FakeBackend, settings: Settings
) -> None:
    backend.fail(
        "uninstall:git",
        BrewCommandError(command="brew uninstall --formula git", returncode=1, error="in use"),
    )
    session = await started(backend, settings)

    press(session, "x")
    snapshot = await settle(session)

    assert formula("git") in session.catalog
    assert "in use" in snapshot.status
    assert not session.executor.is_pending(formula("git"))


async def test_refresh_failure_ends_loading(settings: Settings) -> None:
    backend = FakeBackend()
    backend.fail("list", BrewCommandError(command="brew info", returncode=1))
    session = SessionController(backend, settings)
    session.start()

    snapshot = await settle(session)

    assert not snapshot.loading
    assert snapshot.packages == ()
    assert "brew info" in snapshot.status


async def test_manual_refresh_and_refresh_in_flight(backend: FakeBackend, settings: Settings) -> None:
    session = await started(backend, settings)
    backend.packages[formula("jq")] = make_package("jq")
    gate = backend.hold("list")

    press(session, "r")
    snapshot = press(session, "r")
    assert "catalog" in snapshot.status
    assert not snapshot.loading

    gate.set()
    snapshot = await settle(session)
    assert [p.name for p in snapshot.packages] == ["git", "jq", "wget"]


async def test_multi_column_navigation(settings: Settings) -> None:
    backend = FakeBackend([make_package(name) for name in "abcde"])
    session = await started(backend, settings, columns=2)

    snapshot = press(session, KEY_DOWN, KEY_DOWN, KEY_RIGHT)
    assert [[p.name for p in col] for col in snapshot.columns] == [["a", "b", "c"], ["d", "e"]]
    assert snapshot.cursor == Cursor(1, 1)
    assert snapshot.selected.name == "e"

    snapshot = session.resize(1)
    assert snapshot.selected.name == "e"
    assert snapshot.cursor == Cursor(0, 4)


async def test_pump_applies_waiting_completions(backend: FakeBackend, settings: Settings) -> None:
    session = SessionController(backend, settings)
    session.start()
    for _ in range(5):
        await asyncio.sleep(0)

    snapshot = session.pump()

    assert not snapshot.loading
    assert len(snapshot.packages) == 2


async def test_status_messages_expire(backend: FakeBackend, clock: FakeClock) -> None:
    settings = Settings(status_ttl=10.0)
    session = await started(backend, settings, clock=clock)
    press(session, KEY_DOWN, "u")
    assert session.snapshot().status == "wget is already up to date"

    clock.advance(11)

    assert session.snapshot().status is None


async def test_quit_and_shutdown(backend: FakeBackend, settings: Settings) -> None:
    session = await started(backend, settings)
    backend.hold("uninstall:git")

    press(session, "x")
    snapshot = press(session, "q")
    assert snapshot.should_quit

    session.shutdown()
    assert not session.running
    after = session.handle_event(KeyPress(KEY_DOWN))
    assert after is session.snapshot()
    assert formula("git") in session.catalog


async def test_unknown_event_type_is_rejected(backend: FakeBackend, settings: Settings) -> None:
    session = await started(backend, settings)

    with pytest.raises(TypeError):
        session.handle_event("down")


async def test_update_of_vanished_package_removes_it(
    backend: FakeBackend, settings: Settings
) -> None:
    session = await started(backend, settings)
    gate = backend.hold("info:git")

    press(session, "u")
    await asyncio.sleep(0)
    backend.packages.pop(formula("git"))
    gate.set()
    snapshot = await settle(session)

    assert [p.name for p in snapshot.packages] == ["wget"]
    assert snapshot.status == "📦 git no longer found"
    assert session.executor.in_flight() == []


async def test_refresh_listing_does_not_undo_concurrent_update(
    backend: FakeBackend, settings: Settings
) -> None:
    session = await started(backend, settings)
    gate = backend.hold("list")

    press(session, "r", "u")
    await settle(session)
    assert session.catalog.get(formula("git")).installed_version == "2.1"

    # The listing was taken before the upgrade landed.
    backend.packages[formula("git")] = make_package("git", installed="2.0", latest="2.1")
    gate.set()
    snapshot = await settle(session)

    git = session.catalog.get(formula("git"))
    assert git.installed_version == "2.1"
    assert not git.is_stale
    assert not snapshot.loading
    assert [p.name for p in snapshot.packages] == ["git", "wget"]
