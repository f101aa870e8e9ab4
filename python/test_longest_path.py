"""Tests for the bounded longest-path search."""

import logging
import random
import sys

import pytest

from directions import DirectionResolver
from grid_types import Cell, MovementMode
from longest_path import LongestPathSearch, SearchTermination, longest_path


def assert_valid_path(resolver: DirectionResolver, source: Cell, dest: Cell, path: list[Cell]) -> None:
    """The path starts one step from the source, steps cell to cell and ends at dest."""
    assert path[-1] == dest
    assert source not in path
    assert len(set(path)) == len(path)
    assert path[0] in resolver.neighbours(source)
    for here, there in zip(path, path[1:]):
        assert there in resolver.neighbours(here)


class TestBaseCases:
    """Tests for the search's base cases."""

    def test_source_equals_destination(self) -> None:
        """Searching from a cell to itself returns an empty path without expanding."""
        resolver = DirectionResolver(MovementMode.EIGHT, 5, 5)
        result = longest_path(resolver, Cell(2, 2), Cell(2, 2), random.Random(0))
        assert result.path == []
        assert result.reached_source
        assert result.expansions == 0
        assert result.termination is SearchTermination.COMPLETED

    def test_one_cell_apart_on_two_cell_grid(self) -> None:
        """With nothing else to visit the path is just the destination."""
        resolver = DirectionResolver(MovementMode.FOUR, 2, 1)
        result = longest_path(resolver, Cell(0, 0), Cell(1, 0), random.Random(0))
        assert result.path == [Cell(1, 0)]
        assert result.reached_source
        assert result.termination is SearchTermination.COMPLETED

    def test_self_loop_predecessor_is_skipped(self) -> None:
        """A cell that is its own predecessor does not revisit itself."""
        # On a 1x3 column east wraps onto the same cell
        resolver = DirectionResolver(MovementMode.TWO, 1, 3)
        result = longest_path(resolver, Cell(0, 0), Cell(0, 1), random.Random(0))
        assert result.path == [Cell(0, 1)]
        assert result.expansions == 1


class TestExhaustiveSearch:
    """Small grids where the search runs to completion."""

    def test_two_by_two_four_mode_visits_every_cell(self) -> None:
        """The longest loop on 2x2 FOUR covers all three non-source cells."""
        resolver = DirectionResolver(MovementMode.FOUR, 2, 2)
        for seed in range(5):
            result = longest_path(resolver, Cell(0, 0), Cell(1, 0), random.Random(seed))
            assert result.termination is SearchTermination.COMPLETED
            assert len(result.path) == 3
            assert_valid_path(resolver, Cell(0, 0), Cell(1, 0), result.path)

    def test_three_by_three_eight_mode_is_hamiltonian(self) -> None:
        """On 3x3 EIGHT a path through all eight other cells exists and is found."""
        resolver = DirectionResolver(MovementMode.EIGHT, 3, 3)
        result = longest_path(
            resolver, Cell(1, 1), Cell(1, 0), random.Random(3), max_depth=16, max_expansions=10**6
        )
        assert result.termination is SearchTermination.COMPLETED
        assert len(result.path) == 8
        assert_valid_path(resolver, Cell(1, 1), Cell(1, 0), result.path)

    def test_two_mode_paths_respect_direction(self) -> None:
        """Backward search keeps TWO-mode paths walkable forwards."""
        resolver = DirectionResolver(MovementMode.TWO, 3, 3)
        result = longest_path(resolver, Cell(0, 0), Cell(2, 2), random.Random(1))
        assert result.reached_source
        assert result.termination is SearchTermination.COMPLETED
        assert_valid_path(resolver, Cell(0, 0), Cell(2, 2), result.path)
        for here, there in zip([Cell(0, 0)] + result.path, result.path):
            assert resolver.find_direction(here, there) is not None


class TestLimits:
    """The search stops at its depth and expansion bounds."""

    def test_expansion_limit(self, caplog: pytest.LogCaptureFixture) -> None:
        """One expansion is not enough to reach a distant source."""
        resolver = DirectionResolver(MovementMode.EIGHT, 5, 5)
        with caplog.at_level(logging.WARNING, logger="longest_path"):
            result = longest_path(resolver, Cell(0, 0), Cell(2, 2), random.Random(0), max_expansions=1)
        assert result.termination is SearchTermination.EXPANSION_LIMIT
        assert result.expansions == 1
        assert result.path == []
        assert not result.reached_source
        assert "exhausted (expansion_limit)" in caplog.text

    def test_depth_limit(self) -> None:
        """A depth of one stops every branch below the destination."""
        resolver = DirectionResolver(MovementMode.EIGHT, 5, 5)
        result = longest_path(resolver, Cell(0, 0), Cell(2, 2), random.Random(0), max_depth=1)
        assert result.termination is SearchTermination.DEPTH_LIMIT
        assert not result.reached_source

    def test_source_still_found_after_limit(self) -> None:
        """A neighbouring source is recognised even once the budget is spent."""
        resolver = DirectionResolver(MovementMode.EIGHT, 6, 6)
        result = longest_path(resolver, Cell(2, 2), Cell(2, 1), random.Random(5), max_expansions=20)
        assert result.termination is SearchTermination.EXPANSION_LIMIT
        assert result.reached_source
        assert_valid_path(resolver, Cell(2, 2), Cell(2, 1), result.path)

    @pytest.mark.parametrize("mode", [MovementMode.EIGHT, MovementMode.FOUR, MovementMode.KNIGHT])
    def test_bounded_search_paths_are_valid(self, mode: MovementMode) -> None:
        """Whatever the bound, a returned path is a valid simple path."""
        resolver = DirectionResolver(mode, 7, 7)
        source = Cell(2, 2)
        dest = resolver.resolve(source, 0)
        result = longest_path(resolver, source, dest, random.Random(9), max_depth=20, max_expansions=500)
        assert result.reached_source
        assert len(result.path) <= 20
        assert_valid_path(resolver, source, dest, result.path)


class TestStaging:
    """Iterating the search yields one suspension point per expansion."""

    def test_yields_each_expansion(self) -> None:
        """Frames carry the expanded cell and the visited set above it."""
        resolver = DirectionResolver(MovementMode.FOUR, 2, 2)
        search = LongestPathSearch(resolver, Cell(0, 0), Cell(1, 0), random.Random(0))
        frames = list(search)
        assert search.result is not None
        assert len(frames) == search.result.expansions
        first_cell, first_visited = frames[0]
        assert first_cell == Cell(1, 0)
        assert first_visited == frozenset()
        for cell, visited in frames[1:]:
            assert Cell(1, 0) in visited
            assert cell not in visited

    def test_result_only_after_exhausting_iterator(self) -> None:
        """The result is recorded when the last frame has been consumed."""
        resolver = DirectionResolver(MovementMode.EIGHT, 4, 4)
        search = LongestPathSearch(resolver, Cell(0, 0), Cell(2, 2), random.Random(0), max_expansions=3)
        next(search)
        assert search.result is None
        result = search.run()
        assert result is search.result
        assert result.expansions == 3

    def test_same_seed_same_result(self) -> None:
        """The search is deterministic for a given random source."""
        resolver = DirectionResolver(MovementMode.EIGHT, 6, 6)
        first = longest_path(resolver, Cell(2, 2), Cell(2, 1), random.Random(21), max_expansions=400)
        second = longest_path(resolver, Cell(2, 2), Cell(2, 1), random.Random(21), max_expansions=400)
        assert first == second


class TestDeepSearch:
    """Search depth is not tied to the interpreter's recursion limit."""

    def test_column_longer_than_recursion_limit(self) -> None:
        """A single backward chain deeper than the recursion limit completes."""
        rows = sys.getrecursionlimit() * 3
        resolver = DirectionResolver(MovementMode.TWO, 1, rows)
        result = longest_path(
            resolver, Cell(0, 0), Cell(0, rows - 1), random.Random(0), max_depth=rows, max_expansions=rows
        )
        assert result.termination is SearchTermination.COMPLETED
        assert result.reached_source
        assert result.path == [Cell(0, y) for y in range(1, rows)]
        assert result.expansions == rows - 1

    def test_large_grid_with_generous_bounds(self) -> None:
        """A 60x60 search with thousands of allowed levels stops at its expansion limit."""
        resolver = DirectionResolver(MovementMode.FOUR, 60, 60)
        result = longest_path(
            resolver, Cell(2, 2), Cell(2, 1), random.Random(0), max_depth=5000, max_expansions=3000
        )
        assert result.termination is SearchTermination.EXPANSION_LIMIT
        assert result.expansions == 3000
        assert result.reached_source
        assert len(result.path) <= 3000
        assert_valid_path(resolver, Cell(2, 2), Cell(2, 1), result.path)
