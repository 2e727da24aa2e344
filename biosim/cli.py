"""Command-line driver for BioSim.

Usage:
    biosim                                  # default island, 1000 years
    biosim --config configs/default.yaml --years 200 --plot results/pop.png
    biosim --benchmark 5 --years 1000       # time 5 independent runs
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from biosim.config import SimulationConfig, default_config, load_config
from biosim.perf import benchmark
from biosim.simulation import Simulation
from biosim.types import ALL_SPECIES

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biosim",
        description="Simulate forager/predator population dynamics on an island.",
        epilog="Example: biosim --years 500 --seed 7 --plot population.png",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Base config YAML (default: built-in defaults)",
    )
    parser.add_argument(
        "--scenario", type=str, default=None,
        help="Scenario YAML merged over the base config",
    )
    parser.add_argument(
        "--years", type=int, default=None,
        help="Years to simulate (default: from config)",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed (default: from config)",
    )
    parser.add_argument(
        "--plot", type=str, nargs="?", default=None, const="",
        help="Write the population time series to this PNG "
             "(no value: output.directory/output.plot_file)",
    )
    parser.add_argument(
        "--map", type=str, default=None,
        help="Write the final spatial distribution to this PNG",
    )
    parser.add_argument(
        "--benchmark", type=int, default=None, metavar="REPEATS",
        help="Time REPEATS independent runs instead of a single run",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="More log output (-v info, -vv debug)",
    )
    return parser


def _configure_logging(verbosity: int, config_level: str) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = getattr(logging, str(config_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _default_plot_path(config: SimulationConfig) -> Path:
    if not config.output.plot_file:
        raise ValueError("--plot without a path needs output.plot_file in the config")
    return Path(config.output.directory) / config.output.plot_file


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.config is not None:
        config = load_config(args.config, scenario_path=args.scenario)
    else:
        config = default_config()
    _configure_logging(args.verbose, config.output.log_level)

    years = args.years if args.years is not None else config.simulation.years
    seed = args.seed if args.seed is not None else config.simulation.seed

    if args.benchmark is not None:
        result = benchmark(
            config.simulation.geography,
            [e.as_tuple() for e in config.simulation.initial_population],
            years=years,
            repeats=args.benchmark,
            seed=seed,
            species_params=config.species_parameters,
        )
        print(f"{args.benchmark} run(s) of {years} years: "
              f"mean {result.mean_seconds:.3f}s "
              f"({result.seconds_per_year * 1000:.3f} ms/year)")
        for phase, secs in sorted(result.phase_seconds.items()):
            print(f"  {phase:<12} {secs:.3f}s")
        return 0

    sim = Simulation.from_config(config, seed=seed)
    logger.info("Simulating %d years (seed=%d)", years, seed)
    result = sim.simulate(years)

    census = result.final_census
    print(f"Year {sim.year}: " + ", ".join(
        f"{s.label}s={census.total(s)}" for s in ALL_SPECIES
    ) + f" in {len(census.per_cell)} cells")

    if args.plot is not None:
        plot_path = Path(args.plot) if args.plot else _default_plot_path(config)
        plot_path.parent.mkdir(parents=True, exist_ok=True)
        sim.graph(save_path=plot_path)
        logger.info("Saved population plot to %s", plot_path)
    if args.map:
        from biosim.viz import plot_distribution

        Path(args.map).parent.mkdir(parents=True, exist_ok=True)
        plot_distribution(census, sim.island.n_rows, sim.island.n_cols,
                          save_path=args.map)
        logger.info("Saved distribution map to %s", args.map)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
