"""Details panel widget for displaying package information."""

from __future__ import annotations

from typing import Optional

from textual.widgets import Static

from taproom.cli.renderers import package_details
from taproom.core.models import Package


class DetailsPanel(Static):
    """Panel to show details of the selected package."""

    def on_mount(self) -> None:
        self.border_title = "Details"

    def show_details(self, pkg: Optional[Package]) -> None:
        """Show the given package, or a placeholder when nothing is selected."""
        if pkg is None:
            self.update("No package selected")
            return
        self.update(package_details(pkg))
