"""Grid geometry for process groups on the flow canvas.

Process groups are drawn by the NiFi UI with a fixed footprint, so a grid cell
maps to canvas coordinates with plain arithmetic.
"""

from __future__ import annotations

from typing import Tuple

from .models import Position


# Fixed footprint of a process group component on the canvas (pixels).
GROUP_WIDTH = 384
GROUP_HEIGHT = 176
# Gap between neighbouring aligned groups.
GROUP_GAP = 10


def grid_cell(index: int, max_columns: int) -> Tuple[int, int]:
    """Return the row-major (row, col) cell of the `index`-th sibling."""
    return (index // max_columns, index % max_columns)


def position_for(
    row: int,
    col: int,
    *,
    width: int = GROUP_WIDTH,
    height: int = GROUP_HEIGHT,
    gap: int = GROUP_GAP,
) -> Position:
    return Position(x=float(col * (width + gap)), y=float(row * (height + gap)))
