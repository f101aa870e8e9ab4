"""
Direction resolution on a toroidal grid.

A direction code is an integer 0..7. The active MovementMode decides which
(dx, dy) offset a code stands for; every result is wrapped back into the grid
so movement off one edge re-enters from the opposite edge.
"""

from __future__ import annotations

import logging
from typing import Callable

from grid_types import DIRECTION_COUNT, Cell, DirectionGrid, MovementMode

logger = logging.getLogger(__name__)


# Offset tables indexed by direction code: (dx, dy), y grows southwards
OFFSETS: dict[MovementMode, tuple[tuple[int, int], ...]] = {
    MovementMode.EIGHT: (
        (0, -1),  # N
        (1, -1),  # NE
        (1, 0),  # E
        (1, 1),  # SE
        (0, 1),  # S
        (-1, 1),  # SW
        (-1, 0),  # W
        (-1, -1),  # NW
    ),
    MovementMode.FOUR: (
        (0, -1),  # N
        (0, -1),
        (1, 0),  # E
        (1, 0),
        (0, 1),  # S
        (0, 1),
        (-1, 0),  # W
        (-1, 0),
    ),
    MovementMode.TWO: (
        (0, 1),  # S
        (0, 1),
        (0, 1),
        (0, 1),
        (1, 0),  # E
        (1, 0),
        (1, 0),
        (1, 0),
    ),
    MovementMode.KNIGHT: (
        (1, -2),  # NNE
        (2, -1),  # ENE
        (2, 1),  # ESE
        (1, 2),  # SSE
        (-1, 2),  # SSW
        (-2, 1),  # WSW
        (-2, -1),  # WNW
        (-1, -2),  # NNW
    ),
}


def wrap(x: int, y: int, cols: int, rows: int) -> Cell:
    """Wrap raw coordinates into the grid. Python's % is already non-negative."""
    return Cell(x % cols, y % rows)


def offset(code: int, mode: MovementMode) -> tuple[int, int]:
    """Return the (dx, dy) offset for a direction code under a mode."""
    if not 0 <= code < DIRECTION_COUNT:
        raise ValueError(f"Direction code must be in 0..{DIRECTION_COUNT - 1}, got {code}")
    return OFFSETS[mode][code]


class DirectionResolver:
    """Maps (cell, direction code) to destination cells for one mode and grid size."""

    def __init__(self, mode: MovementMode, cols: int, rows: int) -> None:
        self.mode = mode
        self.cols = cols
        self.rows = rows

    def resolve(self, cell: Cell, code: int) -> Cell:
        """Return the cell reached from `cell` by `code`."""
        dx, dy = offset(code, self.mode)
        return wrap(cell.x + dx, cell.y + dy, self.cols, self.rows)

    def predecessor(self, cell: Cell, code: int) -> Cell:
        """Return the cell that reaches `cell` by `code`."""
        dx, dy = offset(code, self.mode)
        return wrap(cell.x - dx, cell.y - dy, self.cols, self.rows)

    def follow(self, grid: DirectionGrid, cell: Cell) -> Cell | None:
        """Follow a cell's pointer. Returns None for an unassigned cell."""
        code = grid.get(cell)
        if code is None:
            return None
        return self.resolve(cell, code)

    def find_direction(self, src: Cell, dst: Cell) -> int | None:
        """
        Find the first direction code that steps from src to dst.

        Returns None (and logs a warning) when no code connects the two cells
        under the current mode.
        """
        for code in range(DIRECTION_COUNT):
            if self.resolve(src, code) == dst:
                return code
        logger.warning(
            "No %s direction leads from %s to %s on a %dx%d grid",
            self.mode.value,
            src,
            dst,
            self.cols,
            self.rows,
        )
        return None

    def _distinct(self, cell: Cell, start: int, step_fn: Callable[[Cell, int], Cell]) -> list[Cell]:
        seen: list[Cell] = []
        for i in range(DIRECTION_COUNT):
            target = step_fn(cell, (start + i) % DIRECTION_COUNT)
            if target not in seen:
                seen.append(target)
        return seen

    def neighbours(self, cell: Cell, start: int = 0) -> list[Cell]:
        """Distinct cells reachable in one step, scanning codes from `start`."""
        return self._distinct(cell, start, self.resolve)

    def predecessors(self, cell: Cell, start: int = 0) -> list[Cell]:
        """Distinct cells that reach `cell` in one step, scanning codes from `start`."""
        return self._distinct(cell, start, self.predecessor)
