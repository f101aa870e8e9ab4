"""
Interactive terminal front end for the tilecycle simulator.

Shows the grid live while population and animation run, and accepts single
key commands to switch movement mode or start the longest-path demo. Also
provides a headless run and a Monte Carlo trial mode that measures how often
each movement mode fills the grid with one closed loop.
"""

from __future__ import annotations

import argparse
import logging
import queue
import random
import threading
import time
from dataclasses import dataclass, replace
from typing import Sequence

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ascii_render import TerminalCanvas, render_canvas
from grid_types import MovementMode
from simulator import GridSimulator, Phase, SimulationConfig

logger = logging.getLogger(__name__)

MODE_KEYS: dict[str, MovementMode] = {
    "8": MovementMode.EIGHT,
    "4": MovementMode.FOUR,
    "2": MovementMode.TWO,
    "k": MovementMode.KNIGHT,
}

SETTLED_PHASES = (Phase.ANIMATING, Phase.IDLE, Phase.STOPPED)


def _read_keys(keys: queue.Queue[str]) -> None:
    """Blocking key reader; runs on a daemon thread and feeds the UI loop."""
    while True:
        try:
            key = readchar.readkey()
        except KeyboardInterrupt:
            key = "q"
        if key == readchar.key.CTRL_C:
            key = "q"
        keys.put(key)
        if key.lower() == "q":
            return


class InteractiveDemo:
    """Live view of a simulator driven by wall-clock time."""

    def __init__(
        self,
        config: SimulationConfig,
        rng: random.Random | None = None,
        speed: float = 1.0,
        color: bool = True,
        fps: int = 20,
        max_steps_per_frame: int = 500,
        path: bool = False,
    ) -> None:
        self.canvas = TerminalCanvas(config.cols, config.rows)
        self.simulator = GridSimulator(config, sink=self.canvas, rng=rng)
        self.console = Console()
        self.speed = speed
        self.color = color
        self.fps = fps
        self.max_steps_per_frame = max_steps_per_frame
        self.path = path
        self.running = True
        self.status_message = "Ready"

    def generate_display(self) -> Panel:
        """Generate the current display with grid and status."""
        sim = self.simulator
        grid_text = render_canvas(self.canvas, sim.grid, sim.mode, color=self.color)

        status = Text()
        status.append(Text.from_ansi(grid_text))
        status.append("\n\n")
        status.append("Mode: ", style="bold")
        status.append(f"{sim.mode.value}   ")
        status.append("Phase: ", style="bold")
        status.append(f"{sim.phase.value}\n")
        status.append("Visited: ", style="bold")
        status.append(f"{sim.populated + 1 if sim.population_steps else 0}/{sim.grid.size}   ")
        status.append("Retries: ", style="bold")
        status.append(f"{sim.retries}   ")
        status.append("Forced merges: ", style="bold")
        status.append(f"{len(sim.forced_merges)}\n")
        if sim.report is not None:
            status.append("Cycles: ", style="bold")
            style = "bold green" if sim.report.is_hamiltonian else "yellow"
            status.append(f"{sim.report.summary()}\n", style=style)
        if sim.search_result is not None:
            status.append("Search: ", style="bold")
            status.append(
                f"{len(sim.search_result.path)} cell(s), {sim.search_result.termination.value}, "
                f"{sim.search_result.expansions} expansions\n"
            )
        status.append("\n")
        status.append("Keys:\n", style="bold cyan")
        status.append("  8 / 4 / 2 / K - Restart in EIGHT / FOUR / TWO / KNIGHT mode\n")
        status.append("  P - Longest-path demonstration\n")
        status.append("  R - Restart in current mode\n")
        status.append("  Q - Quit\n\n")

        # Status line at the bottom
        status.append("─" * 40 + "\n", style="dim")
        status.append("Status: ", style="bold")
        status.append(self.status_message)

        return Panel(status, title="tilecycle", border_style="green")

    def handle_key(self, key: str) -> None:
        key = key.lower()
        if key == "q":
            self.status_message = "Quitting..."
            self.running = False
        elif key in MODE_KEYS:
            self.simulator.restart(MODE_KEYS[key])
            self.status_message = f"Restarted in {MODE_KEYS[key].value} mode"
        elif key == "r":
            self.simulator.restart()
            self.status_message = "Restarted"
        elif key == "p":
            self.simulator.start_path()
            self.status_message = "Searching for a long path"
        else:
            self.status_message = f"Unknown key: {repr(key)}"

    def start(self) -> None:
        """Kick off the first phase: population, or the path demo when `path` is set."""
        if self.path:
            self.simulator.start_path()
            self.status_message = "Searching for a long path"
        else:
            self.simulator.start_population()

    def run(self) -> None:
        """Run the live view until the user quits."""
        keys: queue.Queue[str] = queue.Queue()
        threading.Thread(target=_read_keys, args=(keys,), daemon=True).start()

        self.start()
        last = time.monotonic()
        with Live(self.generate_display(), console=self.console, refresh_per_second=self.fps) as live:
            try:
                while self.running:
                    while not keys.empty():
                        self.handle_key(keys.get_nowait())
                    now = time.monotonic()
                    self.simulator.scheduler.advance(
                        (now - last) * 1000.0 * self.speed, max_steps=self.max_steps_per_frame
                    )
                    last = now
                    live.update(self.generate_display())
                    time.sleep(1.0 / self.fps)
            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())
        self.simulator.stop()


# =============================================================================
# Headless runs
# =============================================================================


def settle(simulator: GridSimulator) -> bool:
    """Drive the scheduler until population (or the path search) has finished."""
    config = simulator.config
    budget = config.population_step_limit + config.search_max_expansions + 2
    return simulator.scheduler.run_until(lambda: simulator.phase in SETTLED_PHASES, budget)


def run_headless(
    config: SimulationConfig,
    rng: random.Random | None = None,
    path: bool = False,
    color: bool = True,
) -> str:
    """Run one population (or path demo) on the virtual clock and render the result."""
    canvas = TerminalCanvas(config.cols, config.rows)
    simulator = GridSimulator(config, sink=canvas, rng=rng)
    if path:
        simulator.start_path()
    else:
        simulator.start_population()
    settle(simulator)

    lines = [render_canvas(canvas, simulator.grid, simulator.mode, color=color), ""]
    lines.append(f"mode: {simulator.mode.value}, phase: {simulator.phase.value}")
    if path and simulator.search_result is not None:
        result = simulator.search_result
        lines.append(
            f"search: {len(result.path)} cell(s), reached_source={result.reached_source}, "
            f"{result.termination.value}, {result.expansions} expansions"
        )
    else:
        lines.append(
            f"population: {simulator.population_steps} steps, "
            f"{len(simulator.forced_merges)} forced merges"
            + (", forced completion" if simulator.forced_completion else "")
        )
    if simulator.report is not None:
        lines.append(f"cycles: {simulator.report.summary()}")
    return "\n".join(lines)


@dataclass
class TrialStats:
    """Aggregated outcome of repeated population runs in one mode."""

    mode: MovementMode
    trials: int = 0
    hamiltonian: int = 0
    cycles: int = 0
    forced_merges: int = 0
    forced_completions: int = 0

    @property
    def success_rate(self) -> float:
        return self.hamiltonian / self.trials if self.trials else 0.0

    @property
    def mean_cycles(self) -> float:
        return self.cycles / self.trials if self.trials else 0.0

    @property
    def mean_forced_merges(self) -> float:
        return self.forced_merges / self.trials if self.trials else 0.0


def run_trials(
    config: SimulationConfig,
    trials: int,
    rng: random.Random | None = None,
    modes: Sequence[MovementMode] = tuple(MovementMode),
) -> list[TrialStats]:
    """Populate the grid `trials` times per mode and tally single-loop successes."""
    rng = rng or random.Random()
    results: list[TrialStats] = []
    for mode in modes:
        stats = TrialStats(mode)
        mode_config = replace(config, mode=mode)
        for _ in range(trials):
            simulator = GridSimulator(mode_config, rng=rng)
            simulator.start_population()
            finished = settle(simulator)
            simulator.stop()
            report = simulator.report
            if not finished or report is None:
                logger.warning("%s trial did not finish population within its step budget", mode.value)
                continue
            stats.trials += 1
            stats.hamiltonian += report.is_hamiltonian
            stats.cycles += len(report.cycles)
            stats.forced_merges += len(simulator.forced_merges)
            stats.forced_completions += simulator.forced_completion
        logger.info("%s: %d/%d hamiltonian", mode.value, stats.hamiltonian, stats.trials)
        results.append(stats)
    return results


def trials_table(results: Sequence[TrialStats]) -> Table:
    table = Table(title="Single-loop success by movement mode")
    table.add_column("Mode")
    table.add_column("Trials", justify="right")
    table.add_column("Hamiltonian", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Mean cycles", justify="right")
    table.add_column("Mean forced merges", justify="right")
    table.add_column("Forced completions", justify="right")
    for stats in results:
        table.add_row(
            stats.mode.value,
            str(stats.trials),
            str(stats.hamiltonian),
            f"{stats.success_rate:.1%}",
            f"{stats.mean_cycles:.2f}",
            f"{stats.mean_forced_merges:.2f}",
            str(stats.forced_completions),
        )
    return table


# =============================================================================
# Command line
# =============================================================================


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--cols", type=int, default=40, help="Grid width in tiles (default: 40)")
    parser.add_argument("--rows", type=int, default=24, help="Grid height in tiles (default: 24)")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in MovementMode],
        default=MovementMode.EIGHT.value,
        help="Movement mode (default: eight)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument(
        "--retry-budget",
        type=int,
        default=32,
        help="Retries per cell before a collision is accepted (default: 32)",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Multiplier applied to the wall clock in the live view",
    )
    parser.add_argument("--headless", action="store_true", help="Run once without the live view and print the result")
    parser.add_argument("--path", action="store_true", help="Start with the longest-path demonstration instead of population")
    parser.add_argument("--trials", type=int, default=0, help="Run N population trials per mode and report success rates")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colours")
    parser.add_argument("--verbose", action="store_true", help="Log at INFO level")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    level = logging.INFO if args.verbose or args.headless else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    config = SimulationConfig(
        cols=args.cols,
        rows=args.rows,
        mode=MovementMode(args.mode),
        retry_budget=args.retry_budget,
    )
    rng = random.Random(args.seed)

    if args.trials > 0:
        Console().print(trials_table(run_trials(config, args.trials, rng)))
    elif args.headless:
        print(run_headless(config, rng, path=args.path, color=not args.no_color))
    else:
        InteractiveDemo(config, rng, speed=args.speed, color=not args.no_color, path=args.path).run()


if __name__ == "__main__":
    main()
