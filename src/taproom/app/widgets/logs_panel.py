"""Widget listing status messages and running actions."""

from __future__ import annotations

from textual.widgets import Log

from taproom.core.session import SessionSnapshot


class LogsPanel(Log, can_focus=False):
    """Scrolling history of status messages."""

    _last_status: str | None = None
    _last_banners: tuple[str, ...] = ()

    def on_mount(self) -> None:
        self.border_title = "Activity"

    def show(self, snapshot: SessionSnapshot) -> None:
        """Append banners and status messages that changed since the last frame."""
        for banner in snapshot.banners:
            if banner not in self._last_banners:
                self.write_line(banner)
        self._last_banners = snapshot.banners

        if snapshot.status and snapshot.status != self._last_status:
            self.write_line(snapshot.status)
        self._last_status = snapshot.status
