"""Multi-year runs with recorded history.

Simulation wraps an Island, calls the metrics query before the first
year and after every year, and keeps:
  - per-species yearly totals
  - per-cell, per-species yearly counts (0 while a cell is empty)

It owns no simulation rules; everything biological lives in the island.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from biosim.config import SimulationConfig, default_config
from biosim.island import Island, PopulationSpec
from biosim.perf import PhaseTimer
from biosim.rng import make_rng
from biosim.types import ALL_SPECIES, Census, Coordinate, Species

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Recorded history. Index 0 is the state before the first year."""
    years: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    counts: Dict[Species, np.ndarray] = field(default_factory=dict)
    cell_counts: Dict[Coordinate, Dict[Species, np.ndarray]] = field(default_factory=dict)
    final_census: Optional[Census] = None

    @property
    def n_records(self) -> int:
        return len(self.years)

    def final_count(self, species: Species) -> int:
        series = self.counts.get(species)
        return int(series[-1]) if series is not None and len(series) else 0


class Simulation:
    """Run an island for many years and keep its population history.

    Args:
        geography: Terrain rows. Defaults to the config's map.
        config: Full configuration; `default_config()` when omitted.
        rng: Random generator. Built from `seed` (or the config seed).
        seed: Overrides the config seed when `rng` is None.
        timer: Optional PhaseTimer handed to the island.
    """

    def __init__(
        self,
        geography: Optional[Sequence[str]] = None,
        config: Optional[SimulationConfig] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        timer: Optional[PhaseTimer] = None,
    ):
        self.config = config if config is not None else default_config()
        if rng is None:
            rng = make_rng(seed if seed is not None else self.config.simulation.seed)

        self.island = Island.from_config(self.config, rng=rng, timer=timer,
                                         geography=geography)

        self._years: List[int] = []
        self._counts: Dict[Species, List[int]] = {s: [] for s in ALL_SPECIES}
        self._placement: Dict[Coordinate, Dict[Species, List[int]]] = {}

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        seed: Optional[int] = None,
        timer: Optional[PhaseTimer] = None,
    ) -> Simulation:
        """Simulation on the config's map, seeded with its initial population."""
        sim = cls(config=config, seed=seed, timer=timer)
        sim.add_population(
            entry.as_tuple() for entry in config.simulation.initial_population
        )
        return sim

    @property
    def year(self) -> int:
        return self.island.year

    def add_population(self, population: PopulationSpec) -> None:
        self.island.add_population(population)

    # ── Running ──────────────────────────────────────────────────────

    def simulate(
        self,
        years: int,
        graph: bool = False,
        save_path: Optional[Union[str, Path]] = None,
    ) -> SimulationResult:
        """Advance `years` years, recording the census after each.

        The starting state is recorded too if nothing has been recorded
        yet, so a fresh run of n years yields n + 1 records.
        """
        if years < 0:
            raise ValueError(f"years must be >= 0, got {years}")

        if not self._years:
            self._record(self.island.animals())

        interval = self.config.simulation.log_interval
        for _ in range(years):
            self.island.yearly_cycle()
            census = self.island.animals()
            self._record(census)
            if self.island.year % interval == 0:
                logger.info(
                    "Year %d: %s",
                    self.island.year,
                    ", ".join(f"{s.label}s={census.total(s)}" for s in ALL_SPECIES),
                )

        if graph:
            self.graph(save_path)
        return self.result()

    def _record(self, census: Census) -> None:
        n_before = len(self._years)
        self._years.append(self.island.year)
        for s in ALL_SPECIES:
            self._counts[s].append(census.total(s))

        for coordinate, counts in census.per_cell.items():
            if coordinate not in self._placement:
                self._placement[coordinate] = {s: [0] * n_before for s in ALL_SPECIES}
            for s in ALL_SPECIES:
                self._placement[coordinate][s].append(counts.get(s, 0))
        for coordinate, series in self._placement.items():
            if coordinate not in census.per_cell:
                for s in ALL_SPECIES:
                    series[s].append(0)

    def reset(self) -> None:
        """Forget recorded history. Island state is untouched."""
        self._years.clear()
        for series in self._counts.values():
            series.clear()
        self._placement.clear()

    def result(self) -> SimulationResult:
        return SimulationResult(
            years=np.array(self._years, dtype=np.int64),
            counts={s: np.array(v, dtype=np.int64) for s, v in self._counts.items()},
            cell_counts={
                coord: {s: np.array(v, dtype=np.int64) for s, v in series.items()}
                for coord, series in self._placement.items()
            },
            final_census=self.island.animals(),
        )

    def graph(self, save_path: Optional[Union[str, Path]] = None):
        """Plot the recorded per-species totals.

        Returns:
            matplotlib Figure (closed if it was saved).
        """
        from biosim.viz import plot_population_dynamics

        return plot_population_dynamics(
            {s: self._counts[s] for s in ALL_SPECIES},
            years=self._years,
            save_path=save_path,
        )
