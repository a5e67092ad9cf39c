"""Cursor state machine for the multi-column package grid.

The visible items are split into contiguous blocks, one block per column:
with ``n`` items and ``c`` columns every column holds ``ceil(n / c)`` rows,
except the trailing ones which may be shorter or empty. Item ``i`` lives at
``(i // rows_per_column, i % rows_per_column)``.

The machine only knows the item count and the column count. It never wraps
and never leaves the valid range: after any transition the cursor either
points at an existing item or is ``None`` when there are no items.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10


class Cursor(NamedTuple):
    column: int
    row: int


class Navigator:
    """Tracks the selected ``(column, row)`` over a block-partitioned list."""

    def __init__(self, columns: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._columns = max(1, columns)
        self._page_size = max(1, page_size)
        self._count = 0
        self._cursor: Cursor | None = None

    @property
    def cursor(self) -> Cursor | None:
        return self._cursor

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def count(self) -> int:
        return self._count

    @property
    def rows_per_column(self) -> int:
        if self._count == 0:
            return 0
        return math.ceil(self._count / self._columns)

    @property
    def index(self) -> int | None:
        """Linear position of the cursor in the visible list."""
        if self._cursor is None:
            return None
        return self._cursor.column * self.rows_per_column + self._cursor.row

    def column_length(self, column: int) -> int:
        rows = self.rows_per_column
        if rows == 0:
            return 0
        return max(0, min(rows, self._count - column * rows))

    def used_columns(self) -> int:
        rows = self.rows_per_column
        return math.ceil(self._count / rows) if rows else 0

    def selected(self, items: Sequence[T]) -> T | None:
        """Resolve the cursor against the list it was laid out for."""
        index = self.index
        if index is None or index >= len(items):
            return None
        return items[index]

    def partition(self, items: Sequence[T]) -> list[list[T]]:
        """Split ``items`` into the columns the cursor moves over."""
        rows = math.ceil(len(items) / self._columns) if items else 0
        if rows == 0:
            return []
        return [list(items[i:i + rows]) for i in range(0, len(items), rows)]

    # Layout changes

    def reflow(self, count: int) -> None:
        """Re-validate the cursor after the visible list changed."""
        self._count = max(0, count)
        if self._count == 0:
            self._cursor = None
            return
        if self._cursor is None:
            self._cursor = Cursor(0, 0)
            return

        column = min(self._cursor.column, self.used_columns() - 1)
        row = min(self._cursor.row, self.column_length(column) - 1)
        self._cursor = Cursor(column, row)

    def resize(self, columns: int) -> None:
        """Change the column count, keeping the same item selected."""
        columns = max(1, columns)
        if columns == self._columns:
            return

        index = self.index
        self._columns = columns
        if index is not None:
            self._select_index(index)

    # Transitions

    def up(self) -> None:
        self._move_row(-1)

    def down(self) -> None:
        self._move_row(1)

    def page_up(self) -> None:
        self._move_row(-self._page_size)

    def page_down(self) -> None:
        self._move_row(self._page_size)

    def home(self) -> None:
        if self._cursor is not None:
            self._cursor = Cursor(self._cursor.column, 0)

    def end(self) -> None:
        if self._cursor is not None:
            last = self.column_length(self._cursor.column) - 1
            self._cursor = Cursor(self._cursor.column, last)

    def left(self) -> None:
        self._move_column(-1)

    def right(self) -> None:
        self._move_column(1)

    def _move_row(self, delta: int) -> None:
        if self._cursor is None:
            return
        last = self.column_length(self._cursor.column) - 1
        row = min(max(self._cursor.row + delta, 0), last)
        self._cursor = Cursor(self._cursor.column, row)

    def _move_column(self, delta: int) -> None:
        if self._cursor is None:
            return
        column = self._cursor.column + delta
        if column < 0 or column >= self.used_columns():
            return
        row = min(self._cursor.row, self.column_length(column) - 1)
        self._cursor = Cursor(column, row)

    def _select_index(self, index: int) -> None:
        index = min(index, self._count - 1)
        rows = self.rows_per_column
        self._cursor = Cursor(index // rows, index % rows)
