"""Asynchronous execution of package manager actions.

Each requested action runs as its own asyncio task and produces exactly one
``ActionCompleted`` message on the completion queue. The session drains the
queue on its own turn, applies the outcome, then calls ``settle`` to release
the target. Until then the target stays busy, so at most one action per
package (and one catalog refresh) exists at any time.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from taproom.core.errors import AlreadyInFlightError, BrewError, format_error_message
from taproom.core.logging import get_logger
from taproom.core.models import (
    ActionCompleted,
    ActionFailure,
    ActionKind,
    ActionSuccess,
    PackageKey,
    PendingAction,
)
from taproom.providers.base import PackageBackend

log = get_logger(__name__)


class ActionExecutor:
    """Runs refresh, update and uninstall actions without blocking the caller."""

    def __init__(self, backend: PackageBackend) -> None:
        self._backend = backend
        self._pending: dict[Optional[PackageKey], PendingAction] = {}
        self._completions: asyncio.Queue[ActionCompleted] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def in_flight(self) -> list[PendingAction]:
        """Pending actions in the order they were requested."""
        return list(self._pending.values())

    def is_pending(self, target: Optional[PackageKey]) -> bool:
        return target in self._pending

    def request(self, kind: ActionKind, target: Optional[PackageKey] = None) -> PendingAction:
        """Start an action and return immediately.

        Args:
            kind: The action to run.
            target: Package to act on; ``None`` for a catalog refresh.

        Raises:
            AlreadyInFlightError: If the target already has a pending action.
            ValueError: If the target does not fit the action kind.
            RuntimeError: If the executor was shut down.
        """
        if self._closed:
            raise RuntimeError("executor is shut down")
        if (kind is ActionKind.REFRESH) != (target is None):
            raise ValueError(f"{kind.value} action cannot target {target}")

        if target in self._pending:
            log.info(
                "action_rejected_in_flight",
                action=kind.value,
                target=str(target) if target else "catalog",
            )
            raise AlreadyInFlightError(action=kind.value, target=target.name if target else None)

        action = PendingAction(kind=kind, target=target, started=time.monotonic())
        self._pending[target] = action

        task = asyncio.get_running_loop().create_task(self._run(action))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        log.info("action_requested", action=kind.value, target=action.label)
        return action

    async def next_completion(self) -> ActionCompleted:
        """Wait for the next completed action."""
        return await self._completions.get()

    def poll(self) -> ActionCompleted | None:
        """Return a completed action if one is ready, without waiting."""
        try:
            return self._completions.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def settle(self, completion: ActionCompleted) -> None:
        """Release the target of an action whose outcome has been applied."""
        target = completion.action.target
        if self._pending.get(target) is completion.action:
            del self._pending[target]

    def shutdown(self) -> None:
        """Stop accepting work. Running actions are abandoned, not awaited."""
        if self._closed:
            return
        self._closed = True
        log.info("executor_shutdown", abandoned=len(self._tasks))

    async def _run(self, action: PendingAction) -> None:
        start = time.perf_counter()
        try:
            outcome = await self._execute(action)
        except BrewError as e:
            log.warning(
                "action_failed",
                action=action.kind.value,
                target=action.label,
                error=str(e),
            )
            outcome = ActionFailure(
                diagnostic=format_error_message(e),
                exit_status=e.context.get("returncode"),
            )
        except Exception as e:
            log.error(
                "action_crashed",
                action=action.kind.value,
                target=action.label,
                error=str(e),
                exc_info=True,
            )
            outcome = ActionFailure(diagnostic=f"❌ {action.kind.value} {action.label}: {e}")

        duration_ms = int((time.perf_counter() - start) * 1000)
        if self._closed:
            log.debug("action_result_discarded", action=action.kind.value, target=action.label)
            return

        log.info(
            "action_complete",
            action=action.kind.value,
            target=action.label,
            ok=isinstance(outcome, ActionSuccess),
            duration_ms=duration_ms,
        )
        self._completions.put_nowait(ActionCompleted(action=action, outcome=outcome))

    async def _execute(self, action: PendingAction) -> ActionSuccess:
        backend = self._backend

        if action.kind is ActionKind.REFRESH:
            note = None
            try:
                await backend.refresh_index()
            except BrewError as e:
                # A failed index sync still leaves the local listing usable.
                log.warning("index_refresh_failed", error=str(e))
                note = format_error_message(e)
            packages = await backend.list_installed()
            return ActionSuccess(packages=tuple(packages), note=note)

        assert action.target is not None
        if action.kind is ActionKind.UPDATE:
            await backend.upgrade(action.target)
            return ActionSuccess(package=await backend.info(action.target))

        await backend.uninstall(action.target)
        return ActionSuccess()
