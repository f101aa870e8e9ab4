"""
ASCII rendering for the tilecycle simulator.

TerminalCanvas is a render sink that remembers the last fill of every tile;
render_canvas turns it into text, coloured with ANSI codes via simple_chalk.
"""

from __future__ import annotations

import logging
from typing import Callable

import simple_chalk as chalk  # type: ignore[import-untyped]

from directions import OFFSETS
from grid_types import Cell, DirectionGrid, Fill, MovementMode

logger = logging.getLogger(__name__)


# Glyph and colour per fill role
GLYPHS: dict[Fill, str] = {
    Fill.DEFAULT: "#",
    Fill.FORCED_MERGE: "*",
    Fill.ANIMATION: "@",
    Fill.TRAIL: "o",
    Fill.SEARCH_SOURCE: "S",
    Fill.SEARCH_CURRENT: "D",
    Fill.SEARCH_VISITED: "x",
}

COLORS: dict[Fill, Callable[[str], str]] = {
    Fill.DEFAULT: chalk.magenta,
    Fill.FORCED_MERGE: chalk.redBright,
    Fill.ANIMATION: chalk.greenBright,
    Fill.TRAIL: chalk.green,
    Fill.SEARCH_SOURCE: chalk.blue,
    Fill.SEARCH_CURRENT: chalk.cyan,
    Fill.SEARCH_VISITED: chalk.red,
}

# Arrow for each compass offset; knight moves fall back to the fill glyph
ARROWS: dict[tuple[int, int], str] = {
    (0, -1): "^",
    (1, -1): "/",
    (1, 0): ">",
    (1, 1): "\\",
    (0, 1): "v",
    (-1, 1): "/",
    (-1, 0): "<",
    (-1, -1): "\\",
}

BLANK = "."


class TerminalCanvas:
    """A cols x rows buffer of fills, addressed in tile units."""

    def __init__(self, cols: int, rows: int) -> None:
        self.cols = cols
        self.rows = rows
        self.fills: list[list[Fill | None]] = [[None] * cols for _ in range(rows)]
        self.fill_count = 0

    def fill(self, x: int, y: int, fill: Fill) -> None:
        # Fills outside the surface are ignored
        if not (0 <= x < self.cols and 0 <= y < self.rows):
            return
        self.fills[y][x] = fill
        self.fill_count += 1

    def clear(self) -> None:
        logger.debug("Canvas cleared after %d fill(s)", self.fill_count)
        self.fills = [[None] * self.cols for _ in range(self.rows)]

    def fill_at(self, cell: Cell) -> Fill | None:
        return self.fills[cell.y][cell.x]

    def cells_with(self, fill: Fill) -> list[Cell]:
        return [
            Cell(x, y)
            for y, row in enumerate(self.fills)
            for x, current in enumerate(row)
            if current is fill
        ]


def cell_glyph(
    fill: Fill | None,
    code: int | None = None,
    mode: MovementMode | None = None,
) -> str:
    """Pick the character for one tile: an arrow for populated tiles when the code is known."""
    if fill is None:
        return BLANK
    if fill in (Fill.DEFAULT, Fill.FORCED_MERGE) and code is not None and mode is not None:
        arrow = ARROWS.get(OFFSETS[mode][code])
        if arrow is not None:
            return arrow
    return GLYPHS[fill]


def render_canvas(
    canvas: TerminalCanvas,
    grid: DirectionGrid | None = None,
    mode: MovementMode | None = None,
    color: bool = True,
    cell_width: int = 2,
) -> str:
    """
    Render a canvas to a multi-line string.

    Args:
        canvas: The fill buffer to render
        grid: Optional direction grid; populated tiles then show their arrow
        mode: Movement mode used to pick arrows (required with grid)
        color: Wrap glyphs in ANSI colours
        cell_width: Characters per tile, to roughly square up terminal cells

    Returns:
        Rendered string, one line per grid row
    """
    lines: list[str] = []
    for y, row in enumerate(canvas.fills):
        parts: list[str] = []
        for x, fill in enumerate(row):
            code = grid.get(Cell(x, y)) if grid is not None and grid.contains(Cell(x, y)) else None
            glyph = cell_glyph(fill, code, mode) * cell_width
            if color and fill is not None:
                glyph = COLORS[fill](glyph)
            parts.append(glyph)
        lines.append("".join(parts))
    return "\n".join(lines)
