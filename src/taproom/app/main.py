"""Main application module for Taproom."""

from __future__ import annotations

from typing import Optional

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import Header

from taproom.app.keymap import translate
from taproom.app.widgets.details_panel import DetailsPanel
from taproom.app.widgets.logs_panel import LogsPanel
from taproom.app.widgets.package_grid import PackageGrid
from taproom.app.widgets.search_bar import SearchBar
from taproom.core.config import Settings, load_settings
from taproom.core.logging import get_logger
from taproom.core.session import SessionController, SessionSnapshot
from taproom.providers.base import PackageBackend
from taproom.providers.brew import BrewBackend

log = get_logger(__name__)

# Share of the terminal width given to the package grid.
GRID_FRACTION = 0.6


class Taproom(App):
    """Terminal browser for installed Homebrew packages."""

    CSS = """
    Screen { background: black; color: white; }
    #search { height: 1; padding: 0 1; }
    #main { height: 1fr; }
    #grid { width: 60%; padding: 0 1; }
    #details { width: 40%; border: round $accent; padding: 0 1; }
    #logs { height: 6; border: round $panel; }
    """

    def __init__(
        self, settings: Settings | None = None, backend: Optional[PackageBackend] = None
    ) -> None:
        super().__init__()
        self.settings = settings or load_settings()
        backend = backend or BrewBackend(
            self.settings.brew_bin, timeout=self.settings.command_timeout
        )
        self.session = SessionController(backend, self.settings)
        self._mounted = False

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield SearchBar(id="search")
        with Horizontal(id="main"):
            yield PackageGrid("Loading packages...", id="grid")
            yield DetailsPanel(id="details")
        yield LogsPanel(id="logs")

    def on_mount(self) -> None:
        self.title = "Taproom"
        self._mounted = True
        self.session.resize(self._columns_for(self.size.width))
        self.paint(self.session.start())
        self.run_worker(self._pump_completions(), name="completions", exclusive=True)
        self.set_interval(1.0, self._tick)

    def on_unmount(self) -> None:
        self.session.shutdown()

    async def _pump_completions(self) -> None:
        """Feed action completions into the session on the UI loop."""
        while self.session.running:
            done = await self.session.executor.next_completion()
            self.paint(self.session.handle_event(done))

    def _tick(self) -> None:
        self.paint(self.session.snapshot())

    def on_key(self, event: events.Key) -> None:
        press = translate(event.key, event.character)
        if press is None:
            return
        event.stop()
        event.prevent_default()

        snapshot = self.session.handle_event(press)
        self.paint(snapshot)
        if snapshot.should_quit:
            self.exit()

    def on_resize(self, event: events.Resize) -> None:
        self.paint(self.session.resize(self._columns_for(event.size.width)))

    @staticmethod
    def _columns_for(width: int) -> int:
        return max(1, int(width * GRID_FRACTION) // PackageGrid.COLUMN_WIDTH)

    def paint(self, snapshot: SessionSnapshot) -> None:
        """Push a session snapshot to every widget."""
        if not self._mounted:
            return
        self.query_one(SearchBar).show(snapshot)
        self.query_one(PackageGrid).show(snapshot)
        self.query_one(DetailsPanel).show_details(snapshot.selected)
        self.query_one(LogsPanel).show(snapshot)


def run(settings: Settings | None = None) -> None:
    """Run the Taproom application."""
    Taproom(settings).run()


if __name__ == "__main__":
    run()
