"""
Grid path simulator.

Populates a toroidal grid with random pointer directions, trying to keep a
single closed path through every tile, then animates a walk along the
resulting linked list. Every phase is a chain of scheduled steps; grid state
changes are pure, and each change is reported to a render sink afterwards.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import Protocol

from cycles import CycleReport, analyze_cycles
from directions import DirectionResolver
from grid_types import DIRECTION_COUNT, Cell, DirectionGrid, Fill, MovementMode, Path
from longest_path import LongestPathSearch, SearchResult
from scheduler import DONE, Continue, Scheduler, StepResult

logger = logging.getLogger(__name__)


class RenderSink(Protocol):
    """Drawing surface addressed in tile units."""

    def fill(self, x: int, y: int, fill: Fill) -> None: ...

    def clear(self) -> None: ...


class NullSink:
    """Render sink that draws nothing."""

    def fill(self, x: int, y: int, fill: Fill) -> None:
        pass

    def clear(self) -> None:
        pass


class Phase(Enum):
    """What the simulator is currently doing."""

    IDLE = "idle"
    RESTARTING = "restarting"
    POPULATING = "populating"
    SEARCHING = "searching"
    ANIMATING = "animating"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SimulationConfig:
    """Settings for a simulation run. Delays are in milliseconds."""

    cols: int = 40
    rows: int = 24
    mode: MovementMode = MovementMode.EIGHT
    retry_budget: int = 32
    population_delay: float = 1.0
    animation_interval: float = 100.0
    restart_delay: float = 10.0
    search_delay: float = 20.0
    search_source: tuple[int, int] | None = None  # None = (2, 2), clamped into the grid
    search_max_depth: int = 48
    search_max_expansions: int = 5000
    step_limit: int | None = None  # None = cols * rows * (retry_budget + 1)

    def __post_init__(self) -> None:
        problems: list[str] = []
        if self.cols <= 0 or self.rows <= 0:
            problems.append(f"grid must be at least 1x1, got {self.cols}x{self.rows}")
        if self.retry_budget < 0:
            problems.append(f"retry_budget must be >= 0, got {self.retry_budget}")
        for name in ("population_delay", "animation_interval", "restart_delay", "search_delay"):
            if getattr(self, name) < 0:
                problems.append(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.search_source is not None and not (
            0 <= self.search_source[0] < self.cols and 0 <= self.search_source[1] < self.rows
        ):
            problems.append(f"search_source {self.search_source} lies outside the {self.cols}x{self.rows} grid")
        if self.search_max_depth < 1 or self.search_max_expansions < 1:
            problems.append("search limits must be at least 1")
        if self.step_limit is not None and self.step_limit < 1:
            problems.append(f"step_limit must be >= 1, got {self.step_limit}")
        if problems:
            raise ValueError("Invalid simulation config:\n" + "\n".join(f"  - {p}" for p in problems))

    @classmethod
    def from_surface(cls, width: int, height: int, tile_size: int = 8, **kwargs: object) -> SimulationConfig:
        """Derive the grid size from a drawing surface in pixels."""
        if tile_size <= 0:
            raise ValueError(f"tile_size must be positive, got {tile_size}")
        return cls(cols=width // tile_size, rows=height // tile_size, **kwargs)  # type: ignore[arg-type]

    @property
    def path_source(self) -> tuple[int, int]:
        if self.search_source is not None:
            return self.search_source
        return (min(2, self.cols - 1), min(2, self.rows - 1))

    @property
    def population_step_limit(self) -> int:
        if self.step_limit is not None:
            return self.step_limit
        return self.cols * self.rows * (self.retry_budget + 1)


class GridSimulator:
    """
    Owns the grid, the cursor state and the active movement mode.

    All work happens in step methods scheduled on `scheduler`; nothing runs
    until the caller drives the scheduler.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        scheduler: Scheduler | None = None,
        sink: RenderSink | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.scheduler = scheduler or Scheduler()
        self.sink: RenderSink = sink or NullSink()
        self.rng = rng or random.Random()
        self.phase = Phase.IDLE
        self._reset_state()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> MovementMode:
        return self.config.mode

    @property
    def resolver(self) -> DirectionResolver:
        return DirectionResolver(self.config.mode, self.config.cols, self.config.rows)

    def _reset_state(self) -> None:
        self.grid = DirectionGrid(self.config.cols, self.config.rows)
        self.populated = 0
        self.retries = 0
        self.population_steps = 0
        self.forced_completion = False
        self.forced_merges: list[Cell] = []
        self.history: list[tuple[Cell, int]] = []
        self.head: Cell | None = None
        self.animation_steps = 0
        self.report: CycleReport | None = None
        self.search: LongestPathSearch | None = None
        self.search_result: SearchResult | None = None

    def _fill(self, cell: Cell, fill: Fill) -> None:
        self.sink.fill(cell.x, cell.y, fill)

    def _random_code(self) -> int:
        return self.rng.randrange(DIRECTION_COUNT)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def stop(self) -> None:
        """Halt whatever phase is running."""
        self.scheduler.cancel()
        self.phase = Phase.STOPPED

    def _interrupt(self) -> None:
        self.scheduler.cancel()
        self.scheduler.reset()
        self.sink.clear()
        self._reset_state()
        self.phase = Phase.RESTARTING

    def restart(self, mode: MovementMode | None = None) -> None:
        """Stop, clear, switch mode and start a new population run after restart_delay."""
        if mode is not None and mode != self.config.mode:
            self.config = replace(self.config, mode=mode)
        self._interrupt()
        logger.info("Restarting population in %s mode", self.config.mode.value)
        self.scheduler.schedule(self._begin_population, self.config.restart_delay)

    def start_path(self) -> None:
        """Stop, clear and start the longest-path demonstration after restart_delay."""
        self._interrupt()
        logger.info("Starting longest-path demonstration in %s mode", self.config.mode.value)
        self.scheduler.schedule(self._begin_search, self.config.restart_delay)

    # -------------------------------------------------------------------------
    # Population phase
    # -------------------------------------------------------------------------

    def start_population(self, seed: Cell | None = None) -> None:
        """Allocate a fresh grid and schedule population from `seed` (default: centre)."""
        self._reset_state()
        if seed is None:
            seed = Cell(self.config.cols // 2, self.config.rows // 2)
        if not self.grid.contains(seed):
            raise ValueError(f"Seed cell {seed} lies outside the {self.grid.cols}x{self.grid.rows} grid")
        self.phase = Phase.POPULATING
        logger.info(
            "Populating %dx%d grid in %s mode from %s",
            self.grid.cols,
            self.grid.rows,
            self.config.mode.value,
            seed,
        )
        self.scheduler.schedule(partial(self._populate, seed))

    def _begin_population(self) -> StepResult:
        self.start_population()
        return DONE

    def _populate(self, cell: Cell) -> StepResult:
        self.population_steps += 1
        if not self.grid.is_assigned(cell):
            self._fill(cell, Fill.DEFAULT)
        code = self._random_code()
        self.grid.set(cell, code)
        self.history.append((cell, code))

        target = self.resolver.resolve(cell, code)
        if self.grid.is_assigned(target):
            if self.retries < self.config.retry_budget:
                # Closing a loop early; try another direction from the same cell
                self.retries += 1
                return self._continue_population(cell)
            self.forced_merges.append(target)
            self._fill(target, Fill.FORCED_MERGE)
            logger.debug("Forced merge %s -> %s after %d retries", cell, target, self.retries)
        else:
            self.populated += 1
            logger.debug("%d/%d", self.populated, self.grid.size)

        if self.populated < self.grid.size - 1:
            self.retries = 0
            return self._continue_population(target)
        return self._complete_population(target)

    def _continue_population(self, cell: Cell) -> StepResult:
        if self.population_steps >= self.config.population_step_limit:
            logger.warning(
                "Population step limit (%d) reached with %d/%d cells visited; forcing completion",
                self.config.population_step_limit,
                self.populated + 1,
                self.grid.size,
            )
            self.forced_completion = True
            return self._complete_population(cell)
        return Continue(self.config.population_delay, partial(self._populate, cell))

    def _complete_population(self, last: Cell) -> StepResult:
        """Assign the final cell (and any stragglers) and hand over to animation."""
        if not self.grid.is_assigned(last):
            self.grid.set(last, self._random_code())
            self._fill(last, Fill.DEFAULT)
        for cell in self.grid.unassigned():
            self.grid.set(cell, self._random_code())
            self._fill(cell, Fill.DEFAULT)

        self.report = analyze_cycles(self.grid, self.resolver)
        logger.info(
            "Population finished after %d steps (%d forced merges%s): %s",
            self.population_steps,
            len(self.forced_merges),
            ", forced completion" if self.forced_completion else "",
            self.report.summary(),
        )
        return self.start_animation()

    # -------------------------------------------------------------------------
    # Animation phase
    # -------------------------------------------------------------------------

    def start_animation(self, start: Cell | None = None, fill: Fill = Fill.ANIMATION) -> StepResult:
        """
        Begin walking the linked list from `start` (random if omitted).

        The first step runs immediately; its continuation is returned so a
        calling step can hand it to the scheduler.
        """
        if start is None:
            start = Cell(self.rng.randrange(self.config.cols), self.rng.randrange(self.config.rows))
        self.phase = Phase.ANIMATING
        self.head = start
        self._fill(start, fill)
        logger.info("Animating from %s", start)
        return self._animate(start, fill)

    def _animate(self, cell: Cell, fill: Fill) -> StepResult:
        following = self.resolver.follow(self.grid, cell)
        if following is None:
            logger.info("Animation reached unassigned cell %s; stopping", cell)
            self.phase = Phase.IDLE
            return DONE
        self._fill(cell, Fill.TRAIL)
        self._fill(following, fill)
        self.head = following
        self.animation_steps += 1
        return Continue(self.config.animation_interval, partial(self._animate, following, fill))

    # -------------------------------------------------------------------------
    # Longest-path phase
    # -------------------------------------------------------------------------

    def default_path_endpoints(self) -> tuple[Cell, Cell]:
        """
        Source and destination for the demonstration path.

        The destination is a predecessor of the source, so the finished path
        always closes into a loop. Code 4 (south of the source in EIGHT and
        FOUR modes) is preferred; on grids where that predecessor is the source
        itself, such as a single row, the next code that leads elsewhere is
        used. On a 1x1 grid both endpoints are the only cell and the search
        returns an empty path.
        """
        source = Cell(*self.config.path_source)
        resolver = self.resolver
        for step in range(DIRECTION_COUNT):
            dest = resolver.predecessor(source, (4 + step) % DIRECTION_COUNT)
            if dest != source:
                return source, dest
        return source, source

    def _begin_search(self) -> StepResult:
        source, dest = self.default_path_endpoints()
        self.phase = Phase.SEARCHING
        search = LongestPathSearch(
            self.resolver,
            source,
            dest,
            self.rng,
            max_depth=self.config.search_max_depth,
            max_expansions=self.config.search_max_expansions,
        )
        self.search = search
        self._fill(source, Fill.DEFAULT)
        return self._search_step(search)

    def _search_step(self, search: LongestPathSearch) -> StepResult:
        try:
            current, visited = next(search)
        except StopIteration:
            result = search.run()
            self.search_result = result
            if not result.reached_source:
                logger.warning("No path from %s to %s was found", search.source, search.dest)
            return self.populate_from_path(search.source, result.path)

        self.sink.clear()
        for cell in visited:
            self._fill(cell, Fill.SEARCH_VISITED)
        self._fill(current, Fill.SEARCH_CURRENT)
        self._fill(search.source, Fill.SEARCH_SOURCE)
        return Continue(self.config.search_delay, partial(self._search_step, search))

    def populate_from_path(self, source: Cell, path: Path) -> StepResult:
        """
        Point the source at path[0], each path cell at the next, and the last back at the source.

        Pairs that no direction connects are logged and left unassigned.
        Animation then starts at the source.
        """
        self.grid = DirectionGrid(self.config.cols, self.config.rows)
        self.sink.clear()
        if not path:
            logger.warning("Empty path from %s; nothing to animate", source)
            self.phase = Phase.IDLE
            return DONE

        resolver = self.resolver
        loop = [source] + list(path)
        for index, cell in enumerate(loop):
            following = loop[(index + 1) % len(loop)]
            self.grid.set(cell, resolver.find_direction(cell, following))
            self._fill(cell, Fill.DEFAULT)
        self.report = analyze_cycles(self.grid, resolver)
        logger.info("Path-seeded grid: %s", self.report.summary())
        return self.start_animation(source)
