"""Search bar and key help line."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from taproom.app.keymap import HELP
from taproom.core.session import SessionSnapshot


class SearchBar(Static):
    """Shows the search query while searching, else the key help."""

    def show(self, snapshot: SessionSnapshot) -> None:
        line = Text()
        if snapshot.searching:
            line.append("Search: ", style="bold cyan")
            line.append(snapshot.query)
            line.append("▏", style="blink")
        elif snapshot.query:
            line.append(f"Filter: {snapshot.query}", style="cyan")
            line.append(f"  ({len(snapshot.packages)} matches)  ", style="dim")
            line.append(HELP, style="dim")
        else:
            line.append(HELP, style="dim")

        if snapshot.banners:
            line.append("  " + snapshot.banners[-1], style="bold yellow")
        self.update(line)
