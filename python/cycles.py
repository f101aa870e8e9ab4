"""
Cycle analysis for a populated direction grid.

Every assigned cell has exactly one successor, so the grid is a functional
graph: one or more cycles with trees of tail cells draining into them. A
population run succeeds when the whole grid is a single cycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from directions import DirectionResolver
from grid_types import Cell, DirectionGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleReport:
    """Summary of the cycle structure of a grid."""

    cycles: tuple[tuple[Cell, ...], ...]  # Each cycle in walk order
    tail_cells: int  # Assigned cells that are not on any cycle
    unassigned: int  # Cells with no direction
    total_cells: int

    @property
    def is_hamiltonian(self) -> bool:
        return len(self.cycles) == 1 and len(self.cycles[0]) == self.total_cells

    @property
    def longest_cycle(self) -> int:
        return max((len(c) for c in self.cycles), default=0)

    def summary(self) -> str:
        return (
            f"{len(self.cycles)} cycle(s), longest {self.longest_cycle}/{self.total_cells}, "
            f"{self.tail_cells} tail cell(s), {self.unassigned} unassigned"
            + (" [hamiltonian]" if self.is_hamiltonian else "")
        )


def analyze_cycles(grid: DirectionGrid, resolver: DirectionResolver) -> CycleReport:
    """
    Find every cycle reachable by following pointers.

    Walks from each unexplored cell, tracking the current walk's positions;
    reaching a cell on the current walk closes a new cycle, reaching one
    explored by an earlier walk joins existing structure.
    """
    explored: set[Cell] = set()
    cycles: list[tuple[Cell, ...]] = []
    on_cycle: set[Cell] = set()

    for start in grid:
        if start in explored:
            continue
        walk: list[Cell] = []
        position: dict[Cell, int] = {}
        current: Cell | None = start
        while current is not None and current not in explored and current not in position:
            position[current] = len(walk)
            walk.append(current)
            current = resolver.follow(grid, current)

        # A walk may also end on an unassigned cell (follow returns None)
        if current is not None and current in position:
            cycle = tuple(walk[position[current]:])
            cycles.append(cycle)
            on_cycle.update(cycle)
        explored.update(walk)

    unassigned = len(grid.unassigned())
    report = CycleReport(
        cycles=tuple(cycles),
        tail_cells=grid.size - unassigned - len(on_cycle),
        unassigned=unassigned,
        total_cells=grid.size,
    )
    logger.debug("analyze_cycles: %s", report.summary())
    return report
