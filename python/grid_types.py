"""
Shared type definitions for the tilecycle simulator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class MovementMode(Enum):
    """How a direction code maps to a coordinate delta."""

    EIGHT = "eight"  # All eight compass directions
    FOUR = "four"  # Cardinal only, two codes per direction
    TWO = "two"  # South or east only
    KNIGHT = "knight"  # Chess knight offsets


class Fill(Enum):
    """Colour roles handed to the render sink."""

    DEFAULT = "#FF6699"  # Populated cell
    FORCED_MERGE = "#FF0099"  # Target of an accepted collision
    ANIMATION = "#33CC33"  # Animation head
    TRAIL = "#33BB33"  # Cells the animation has passed
    SEARCH_SOURCE = "#6600CC"
    SEARCH_CURRENT = "#66FFFF"
    SEARCH_VISITED = "#800000"


DIRECTION_COUNT = 8


# =============================================================================
# Grid Definition Types
# =============================================================================


@dataclass(frozen=True)
class Cell:
    """A grid tile addressed by column (x) and row (y)."""

    x: int
    y: int

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


Path = list[Cell]


class DirectionGrid:
    """
    A cols x rows array of direction codes.

    Each cell is either None (unassigned) or an integer code in 0..7.
    Storage is row-major, so ``cells[y][x]`` holds the code for Cell(x, y).
    """

    def __init__(self, cols: int, rows: int) -> None:
        if cols <= 0 or rows <= 0:
            raise ValueError(
                f"Grid dimensions must be positive\n"
                f"  cols: {cols}\n"
                f"  rows: {rows}"
            )
        self.cols = cols
        self.rows = rows
        self.cells: list[list[int | None]] = [[None] * cols for _ in range(rows)]

    @property
    def size(self) -> int:
        return self.cols * self.rows

    def contains(self, cell: Cell) -> bool:
        return 0 <= cell.x < self.cols and 0 <= cell.y < self.rows

    def get(self, cell: Cell) -> int | None:
        return self.cells[cell.y][cell.x]

    def set(self, cell: Cell, code: int | None) -> None:
        if code is not None and not 0 <= code < DIRECTION_COUNT:
            raise ValueError(f"Direction code out of range at {cell}: {code}")
        self.cells[cell.y][cell.x] = code

    def is_assigned(self, cell: Cell) -> bool:
        return self.cells[cell.y][cell.x] is not None

    def __iter__(self) -> Iterator[Cell]:
        """Iterate over every cell in row-major order."""
        for y in range(self.rows):
            for x in range(self.cols):
                yield Cell(x, y)

    def unassigned(self) -> list[Cell]:
        return [cell for cell in self if not self.is_assigned(cell)]

    def assigned_count(self) -> int:
        return sum(1 for row in self.cells for code in row if code is not None)

    def is_complete(self) -> bool:
        return all(code is not None for row in self.cells for code in row)

    def copy(self) -> DirectionGrid:
        clone = DirectionGrid(self.cols, self.rows)
        clone.cells = [list(row) for row in self.cells]
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DirectionGrid):
            return NotImplemented
        return self.cols == other.cols and self.rows == other.rows and self.cells == other.cells

    def __repr__(self) -> str:
        return f"DirectionGrid(cols={self.cols}, rows={self.rows}, assigned={self.assigned_count()})"
