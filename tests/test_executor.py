from __future__ import annotations

import asyncio

import pytest
from conftest import FakeBackend, formula

from taproom.core.errors import AlreadyInFlightError, BrewCommandError
from taproom.core.executor import ActionExecutor
from taproom.core.models import ActionFailure, ActionKind, ActionSuccess


async def _next(executor: ActionExecutor):
    return await asyncio.wait_for(executor.next_completion(), timeout=1)


async def test_refresh_syncs_index_then_lists(backend: FakeBackend) -> None:
    executor = ActionExecutor(backend)

    action = executor.request(ActionKind.REFRESH)
    done = await _next(executor)

    assert done.action is action
    assert isinstance(done.outcome, ActionSuccess)
    assert {p.name for p in done.outcome.packages} == {"git", "wget"}
    assert backend.calls == ["refresh_index", "list"]


async def test_request_returns_before_the_action_finishes(backend: FakeBackend) -> None:
    gate = backend.hold("upgrade:git")
    executor = ActionExecutor(backend)

    executor.request(ActionKind.UPDATE, formula("git"))
    await asyncio.sleep(0)

    assert executor.poll() is None
    assert executor.is_pending(formula("git"))

    gate.set()
    done = await _next(executor)
    assert done.outcome.package.installed_version == "2.1"


async def test_second_request_for_same_package_is_rejected(backend: FakeBackend) -> None:
    backend.hold("upgrade:wget")
    executor = ActionExecutor(backend)

    executor.request(ActionKind.UPDATE, formula("wget"))
    with pytest.raises(AlreadyInFlightError) as excinfo:
        executor.request(ActionKind.UPDATE, formula("wget"))
    with pytest.raises(AlreadyInFlightError):
        executor.request(ActionKind.UNINSTALL, formula("wget"))

    await asyncio.sleep(0)
    assert excinfo.value.context["target"] == "wget"
    assert len(executor.in_flight()) == 1
    assert backend.calls == ["upgrade:wget"]


async def test_target_stays_busy_until_settled(backend: FakeBackend) -> None:
    executor = ActionExecutor(backend)
    executor.request(ActionKind.UNINSTALL, formula("git"))
    done = await _next(executor)

    with pytest.raises(AlreadyInFlightError):
        executor.request(ActionKind.UNINSTALL, formula("git"))

    executor.settle(done)
    assert not executor.is_pending(formula("git"))


async def test_refresh_and_per_package_actions_run_concurrently(backend: FakeBackend) -> None:
    gate = backend.hold("list")
    executor = ActionExecutor(backend)

    executor.request(ActionKind.REFRESH)
    executor.request(ActionKind.UNINSTALL, formula("git"))
    executor.request(ActionKind.UNINSTALL, formula("wget"))
    with pytest.raises(AlreadyInFlightError):
        executor.request(ActionKind.REFRESH)

    first = await _next(executor)
    second = await _next(executor)
    assert {first.action.target, second.action.target} == {formula("git"), formula("wget")}

    gate.set()
    third = await _next(executor)
    assert third.action.kind is ActionKind.REFRESH


async def test_command_failure_becomes_failure_outcome(backend: FakeBackend) -> None:
    backend.fail(
        "uninstall:git",
        BrewCommandError(command="brew uninstall --formula git", returncode=1, error="Error: boom"),
    )
    executor = ActionExecutor(backend)

    executor.request(ActionKind.UNINSTALL, formula("git"))
    done = await _next(executor)

    assert isinstance(done.outcome, ActionFailure)
    assert done.outcome.exit_status == 1
    assert "Error: boom" in done.outcome.diagnostic
    assert not done.ok


async def test_unexpected_exception_is_reported_once(backend: FakeBackend) -> None:
    backend.fail("upgrade:git", RuntimeError("disk on fire"))
    executor = ActionExecutor(backend)

    executor.request(ActionKind.UPDATE, formula("git"))
    done = await _next(executor)

    assert isinstance(done.outcome, ActionFailure)
    assert "disk on fire" in done.outcome.diagnostic
    assert executor.poll() is None


async def test_index_failure_still_lists_packages(backend: FakeBackend) -> None:
    backend.fail("refresh_index", BrewCommandError(command="brew update", returncode=1))
    executor = ActionExecutor(backend)

    executor.request(ActionKind.REFRESH)
    done = await _next(executor)

    assert isinstance(done.outcome, ActionSuccess)
    assert len(done.outcome.packages) == 2
    assert "brew update" in done.outcome.note


async def test_update_reports_vanished_package(backend: FakeBackend) -> None:
    gate = backend.hold("info:git")
    executor = ActionExecutor(backend)
    executor.request(ActionKind.UPDATE, formula("git"))
    await asyncio.sleep(0)

    backend.packages.pop(formula("git"))
    gate.set()
    done = await _next(executor)

    assert isinstance(done.outcome, ActionSuccess)
    assert done.outcome.package is None


async def test_target_must_match_action_kind(backend: FakeBackend) -> None:
    executor = ActionExecutor(backend)

    with pytest.raises(ValueError):
        executor.request(ActionKind.REFRESH, formula("git"))
    with pytest.raises(ValueError):
        executor.request(ActionKind.UPDATE)


async def test_results_after_shutdown_are_discarded(backend: FakeBackend) -> None:
    gate = backend.hold("uninstall:git")
    executor = ActionExecutor(backend)
    executor.request(ActionKind.UNINSTALL, formula("git"))

    executor.shutdown()
    gate.set()
    for _ in range(5):
        await asyncio.sleep(0)

    assert executor.poll() is None
    with pytest.raises(RuntimeError):
        executor.request(ActionKind.REFRESH)
