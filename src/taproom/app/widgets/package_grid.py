"""Widget showing the filtered packages as a multi-column grid."""

from __future__ import annotations

from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from taproom.core.models import Package, PackageKind
from taproom.core.session import SessionSnapshot

ICONS = {PackageKind.FORMULA: "⚙", PackageKind.CASK: "🍺"}


def grid_cell(pkg: Package, selected: bool) -> Text:
    """Render one package name with its kind icon and staleness marker."""
    cell = Text(f"{ICONS[pkg.kind]} {pkg.name}", no_wrap=True, overflow="ellipsis")
    if pkg.is_stale:
        cell.append(" ↑", style="bold yellow")
    if selected:
        cell.stylize("reverse")
    return cell


class PackageGrid(Static):
    """Grid of package names; columns come from the session snapshot."""

    COLUMN_WIDTH = 28
    _top = 0

    def show(self, snapshot: SessionSnapshot) -> None:
        """Paint the snapshot, scrolling vertically to keep the cursor visible."""
        if snapshot.loading and not snapshot.packages:
            self.update(Text("⏳ Loading packages...", style="bold"))
            return
        if not snapshot.packages:
            message = (
                f"No packages match '{snapshot.query}'" if snapshot.query else "No packages installed"
            )
            self.update(Text(message, style="dim"))
            return

        height = max(1, self.size.height)
        cursor = snapshot.cursor
        if cursor is not None:
            if cursor.row < self._top:
                self._top = cursor.row
            elif cursor.row >= self._top + height:
                self._top = cursor.row - height + 1

        table = Table.grid(padding=(0, 2))
        for _ in snapshot.columns:
            table.add_column(width=self.COLUMN_WIDTH - 2, no_wrap=True)

        rows = len(snapshot.columns[0])
        for row in range(self._top, min(rows, self._top + height)):
            cells = []
            for col, packages in enumerate(snapshot.columns):
                if row < len(packages):
                    selected = cursor is not None and cursor == (col, row)
                    cells.append(grid_cell(packages[row], selected))
                else:
                    cells.append(Text(""))
            table.add_row(*cells)

        self.update(table)
