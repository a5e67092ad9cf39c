"""Session controller: the single owner of all interactive state.

The controller consumes one event at a time, either a key press or an
action completion, and answers with a fresh ``SessionSnapshot`` for the
renderer. All catalog mutations happen here, on the event loop's thread.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional, Union

from taproom.core.catalog import Catalog
from taproom.core.config import Settings
from taproom.core.errors import AlreadyInFlightError, format_error_message
from taproom.core.executor import ActionExecutor
from taproom.core.filtering import FilterEngine
from taproom.core.logging import get_logger
from taproom.core.models import (
    ActionCompleted,
    ActionFailure,
    ActionKind,
    ActionSuccess,
    Package,
    PackageKey,
    PendingAction,
)
from taproom.core.navigation import Cursor, Navigator
from taproom.providers.base import PackageBackend

log = get_logger(__name__)

# Normalised key names; printable characters are passed as themselves.
KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_PAGE_UP = "pageup"
KEY_PAGE_DOWN = "pagedown"
KEY_HOME = "home"
KEY_END = "end"
KEY_ENTER = "enter"
KEY_ESCAPE = "escape"
KEY_BACKSPACE = "backspace"

NAVIGATION: dict[str, Callable[[Navigator], None]] = {
    KEY_UP: Navigator.up,
    KEY_DOWN: Navigator.down,
    KEY_LEFT: Navigator.left,
    KEY_RIGHT: Navigator.right,
    KEY_PAGE_UP: Navigator.page_up,
    KEY_PAGE_DOWN: Navigator.page_down,
    KEY_HOME: Navigator.home,
    KEY_END: Navigator.end,
}

BANNERS = {
    ActionKind.REFRESH: "🔄 Refreshing package list...",
    ActionKind.UPDATE: "⬆️ Updating {name}...",
    ActionKind.UNINSTALL: "🗑️ Uninstalling {name}...",
}


@dataclass(frozen=True)
class KeyPress:
    """A key press, named with the ``KEY_*`` constants or a single character."""

    key: str


Event = Union[KeyPress, ActionCompleted]


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the renderer needs for one frame."""

    packages: tuple[Package, ...]
    columns: tuple[tuple[Package, ...], ...]
    cursor: Optional[Cursor]
    selected: Optional[Package]
    query: str
    searching: bool
    loading: bool
    banners: tuple[str, ...]
    status: Optional[str]
    should_quit: bool


class SessionController:
    """Drives the catalog, filter, navigation and executor from input events."""

    def __init__(
        self,
        backend: PackageBackend,
        settings: Settings | None = None,
        columns: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or Settings()
        self._clock = clock
        self.catalog = Catalog(tombstone_ttl=self.settings.tombstone_ttl, clock=clock)
        self.filters = FilterEngine(self.catalog)
        self.navigator = Navigator(columns=columns, page_size=self.settings.page_size)
        self.executor = ActionExecutor(backend)

        self._status: deque[tuple[str, float]] = deque(maxlen=self.settings.status_history)
        # Packages updated while a refresh is in flight; its listing may predate them.
        self._updated_during_refresh: set[PackageKey] = set()
        self._searching = False
        self._loading = False
        self._quit = False
        self._started = False
        self._stopped = False
        self._snapshot = self._render()

    # Lifecycle

    def start(self) -> SessionSnapshot:
        """Request the startup refresh. Must be called from a running event loop."""
        if not self._started:
            self._started = True
            self._loading = True
            self.executor.request(ActionKind.REFRESH)
            log.info("session_started", columns=self.navigator.columns)
        return self._render()

    def shutdown(self) -> None:
        """End the session. In-flight actions are abandoned."""
        if self._stopped:
            return
        self._stopped = True
        self.executor.shutdown()
        log.info("session_stopped", packages=len(self.catalog))

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    # Events

    def handle_event(self, event: Event) -> SessionSnapshot:
        """Apply one event and return the resulting snapshot."""
        if self._stopped:
            return self._snapshot

        if isinstance(event, ActionCompleted):
            self._on_completed(event)
        elif isinstance(event, KeyPress):
            self._on_key(event.key)
        else:
            raise TypeError(f"unsupported event: {event!r}")

        return self._render()

    def pump(self) -> SessionSnapshot:
        """Apply every completion that is already waiting."""
        while not self._stopped and (done := self.executor.poll()) is not None:
            self.handle_event(done)
        return self.snapshot()

    def resize(self, columns: int) -> SessionSnapshot:
        """Change the number of grid columns the renderer can show."""
        if not self._stopped:
            self.navigator.resize(columns)
        return self._render()

    def snapshot(self) -> SessionSnapshot:
        """Current snapshot, with expired status messages dropped."""
        if self._stopped:
            return self._snapshot
        return self._render()

    def notify(self, message: str) -> None:
        """Show a transient status message."""
        self._status.append((message, self._clock()))

    # Keys

    def _on_key(self, key: str) -> None:
        move = NAVIGATION.get(key)
        if move is not None:
            move(self.navigator)
            return

        if self._searching:
            self._on_search_key(key)
            return

        if key == "/":
            self._searching = True
        elif key == "q":
            self._quit = True
            log.info("session_quit_requested")
        elif key == "u":
            self._update_selected()
        elif key == "x":
            self._uninstall_selected()
        elif key == "r":
            self._request(ActionKind.REFRESH, None)

    def _on_search_key(self, key: str) -> None:
        query = self.filters.query
        if key in (KEY_ENTER, KEY_ESCAPE):
            self._searching = False
        elif key == KEY_BACKSPACE:
            if query:
                self.filters.set_query(query[:-1])
        elif len(key) == 1 and key.isprintable():
            self.filters.set_query(query + key)

    def _selected_package(self) -> Optional[Package]:
        key = self.navigator.selected(self.filters.filtered_view())
        return self.catalog.get(key) if key is not None else None

    def _update_selected(self) -> None:
        pkg = self._selected_package()
        if pkg is None:
            return
        if pkg.latest_version is not None and not pkg.is_stale:
            self.notify(f"{pkg.name} is already up to date")
            return
        if self._request(ActionKind.UPDATE, pkg.key):
            self.notify(f"Starting update for {pkg.name}")

    def _uninstall_selected(self) -> None:
        pkg = self._selected_package()
        if pkg is None:
            return
        if self._request(ActionKind.UNINSTALL, pkg.key):
            self.notify(f"Starting uninstall for {pkg.name}")

    def _request(self, kind: ActionKind, target: Optional[PackageKey]) -> Optional[PendingAction]:
        try:
            return self.executor.request(kind, target)
        except AlreadyInFlightError as e:
            self.notify(format_error_message(e))
            return None

    # Completions

    def _on_completed(self, done: ActionCompleted) -> None:
        action = done.action
        try:
            if isinstance(done.outcome, ActionFailure):
                self.notify(done.outcome.diagnostic)
            else:
                self._apply(action, done.outcome)
        finally:
            self.executor.settle(done)
            if action.kind is ActionKind.REFRESH:
                self._loading = False
                self._updated_during_refresh.clear()

    def _apply(self, action: PendingAction, outcome: ActionSuccess) -> None:
        target = action.target

        if action.kind is ActionKind.REFRESH:
            self.catalog.load(outcome.packages, keep=self._updated_during_refresh)
            if outcome.note:
                self.notify(outcome.note)
            else:
                self.notify(f"📦 {len(self.catalog)} packages installed")
            return

        assert target is not None
        if action.kind is ActionKind.UNINSTALL:
            self.catalog.remove(target)
            self.notify(f"✅ Successfully uninstalled {target.name}")
            return

        pkg = outcome.package
        if pkg is None:
            self.catalog.remove(target)
            self.notify(f"📦 {target.name} no longer found")
            return

        self.catalog.apply_update(
            target, pkg.installed_version, pkg.description, latest_version=pkg.latest_version
        )
        if self.executor.is_pending(None):
            self._updated_during_refresh.add(target)
        self.notify(f"✅ {target.name} updated to {pkg.installed_version}")

    # Snapshot

    def _current_status(self) -> Optional[str]:
        now = self._clock()
        while self._status and now - self._status[0][1] > self.settings.status_ttl:
            self._status.popleft()
        return self._status[-1][0] if self._status else None

    def _render(self) -> SessionSnapshot:
        view = self.filters.filtered_view()
        self.navigator.reflow(len(view))

        packages = tuple(self.catalog.get(k) for k in view)
        selected = self.navigator.selected(packages)
        banners = tuple(
            BANNERS[a.kind].format(name=a.label) for a in self.executor.in_flight()
        )

        self._snapshot = SessionSnapshot(
            packages=packages,
            columns=tuple(tuple(col) for col in self.navigator.partition(packages)),
            cursor=self.navigator.cursor,
            selected=selected,
            query=self.filters.query,
            searching=self._searching,
            loading=self._loading,
            banners=banners,
            status=self._current_status(),
            should_quit=self._quit,
        )
        return self._snapshot
