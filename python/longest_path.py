"""
Randomized longest-path search between two cells.

The search walks backwards from the destination towards the source over
predecessor cells, trying every unvisited predecessor in a randomly rotated
order and keeping the longest branch that reaches the source. It is
exponential, so it is bounded by depth and by the number of node expansions.

Each expansion is a suspension point: iterating a LongestPathSearch yields
(cell, visited) once per expanded node, which lets a scheduler stage the search
one step at a time and a renderer show its progress.

Branches are kept on an explicit stack of frames rather than the Python call
stack, so max_depth may exceed the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Generator, Iterator, Union

from directions import DirectionResolver
from grid_types import DIRECTION_COUNT, Cell, Path

logger = logging.getLogger(__name__)


class SearchTermination(Enum):
    """Reason why a search stopped."""

    COMPLETED = "completed"  # Every branch explored
    DEPTH_LIMIT = "depth_limit"  # A branch hit max_depth
    EXPANSION_LIMIT = "expansion_limit"  # Hit max_expansions


@dataclass(frozen=True)
class SearchResult:
    """
    Outcome of a longest-path search.

    `path` excludes the source and ends at the destination; each cell steps
    to the next, and the source steps to path[0]. It is empty both when the
    destination is the source and when no path was found; `reached_source`
    tells the two apart.
    """

    path: Path
    reached_source: bool
    termination: SearchTermination
    expansions: int


@dataclass
class _Frame:
    """One expanded cell whose predecessors are still being explored."""

    cell: Cell
    depth: int
    pending: Iterator[Cell]  # Predecessors not yet tried
    best: Path | None = None  # Longest branch back to the source so far

    def offer(self, candidate: Path | None) -> None:
        if candidate is not None and (self.best is None or len(candidate) > len(self.best)):
            self.best = candidate


# A cell either resolves at once (a path or None) or opens a new frame
_Visit = Union[_Frame, Path, None]

_Steps = Generator[tuple[Cell, frozenset[Cell]], None, "Path | None"]


class LongestPathSearch:
    """
    Iterator wrapper around the staged search that records its result.

    Usage:
        search = LongestPathSearch(resolver, source, dest, rng)
        for cell, visited in search:
            draw(cell, visited)
        print(search.result)
    """

    def __init__(
        self,
        resolver: DirectionResolver,
        source: Cell,
        dest: Cell,
        rng: random.Random,
        max_depth: int = 48,
        max_expansions: int = 5000,
    ) -> None:
        self.resolver = resolver
        self.source = source
        self.dest = dest
        self.rng = rng
        self.max_depth = max_depth
        self.max_expansions = max_expansions
        self.expansions = 0
        self.result: SearchResult | None = None
        self._limit: SearchTermination | None = None
        self._iterator = self._run()

    def __iter__(self) -> Iterator[tuple[Cell, frozenset[Cell]]]:
        return self

    def __next__(self) -> tuple[Cell, frozenset[Cell]]:
        return next(self._iterator)

    def run(self) -> SearchResult:
        """Drive the search to completion without pausing."""
        for _ in self:
            pass
        if self.result is None:
            raise RuntimeError(f"Longest-path search from {self.dest} stopped without a result")
        return self.result

    def _hit_limit(self, reason: SearchTermination) -> None:
        if self._limit is None:  # Only record the first reason
            self._limit = reason
            logger.warning(
                "Longest-path search exhausted (%s) after %d expansions",
                reason.value,
                self.expansions,
            )

    def _run(self) -> Iterator[tuple[Cell, frozenset[Cell]]]:
        path = yield from self._search()
        self.result = SearchResult(
            path=path if path is not None else [],
            reached_source=path is not None,
            termination=self._limit or SearchTermination.COMPLETED,
            expansions=self.expansions,
        )
        logger.info(
            "Longest-path search %s: %d cell(s), reached_source=%s, %d expansions",
            self.result.termination.value,
            len(self.result.path),
            self.result.reached_source,
            self.expansions,
        )

    def _visit(self, cell: Cell, on_path: set[Cell], depth: int) -> _Visit:
        """Resolve a base case, or count an expansion and open a frame for `cell`."""
        if cell == self.source:
            return []
        if cell in on_path:
            return None
        if depth >= self.max_depth:
            self._hit_limit(SearchTermination.DEPTH_LIMIT)
            return None
        if self.expansions >= self.max_expansions:
            self._hit_limit(SearchTermination.EXPANSION_LIMIT)
            return None

        self.expansions += 1
        start = self.rng.randrange(DIRECTION_COUNT)
        return _Frame(cell, depth, iter(self.resolver.predecessors(cell, start)))

    def _search(self) -> _Steps:
        on_path: set[Cell] = set()  # Cells of every frame on the stack
        root = self._visit(self.dest, on_path, 0)
        if not isinstance(root, _Frame):
            return root
        yield root.cell, frozenset(on_path)
        on_path.add(root.cell)
        stack = [root]

        while True:
            frame = stack[-1]
            previous = next(frame.pending, None)
            if previous is not None:
                child = self._visit(previous, on_path, frame.depth + 1)
                if isinstance(child, _Frame):
                    yield child.cell, frozenset(on_path)
                    on_path.add(child.cell)
                    stack.append(child)
                else:
                    frame.offer(child)
                continue

            # Every predecessor tried; hand the best branch to the parent
            stack.pop()
            on_path.discard(frame.cell)
            branch = None if frame.best is None else frame.best + [frame.cell]
            if not stack:
                return branch
            stack[-1].offer(branch)


def longest_path(
    resolver: DirectionResolver,
    source: Cell,
    dest: Cell,
    rng: random.Random,
    max_depth: int = 48,
    max_expansions: int = 5000,
) -> SearchResult:
    """Run a bounded longest-path search synchronously."""
    return LongestPathSearch(resolver, source, dest, rng, max_depth, max_expansions).run()
