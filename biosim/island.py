"""The island: terrain, cells and the yearly cycle.

Yearly cycle (fixed order, each phase only visits inhabited cells):
  1. Procreation  : births, appended after the parents
  2. Feeding      : fodder regrowth, grazing, predation
  3. Migration    : see migration.py
  4. Aging & death: birthday, metabolic loss, death check
then year += 1.

Random draws are consumed in exactly that order, cell by cell in
ascending row-major index and animal by animal in roster order, so a
seeded island replays bit-for-bit.

The inhabited-cell cache is recomputed from the rosters after seeding,
procreation, migration and death.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from biosim.animals import age_one_year, attempt_birth, dies, spawn
from biosim.config import (
    SimulationConfig,
    SpeciesParameters,
    default_species_parameters,
)
from biosim.landscape import (
    Cell,
    build_cells,
    compute_inhabited,
    coordinate_of,
    linear_index,
    parse_geography,
)
from biosim.migration import MigrationGrid, migrate
from biosim.perf import PhaseTimer
from biosim.rng import make_rng
from biosim.types import ALL_SPECIES, Census, Coordinate, Species

logger = logging.getLogger(__name__)

PopulationSpec = Iterable[Tuple[Coordinate, Union[Species, str], int]]


# ═══════════════════════════════════════════════════════════════════════
# PHASES
# ═══════════════════════════════════════════════════════════════════════

def procreation_phase(
    cells: Sequence[Cell],
    inhabited: Sequence[int],
    rng: np.random.Generator,
) -> int:
    """Births in every inhabited cell. Newborns don't breed this year.

    Returns:
        Number of newborns.
    """
    n_born = 0
    for idx in inhabited:
        cell = cells[idx]
        for species in ALL_SPECIES:
            roster = cell.roster(species)
            n = len(roster)
            if n == 0:
                continue
            babies = []
            for parent in roster:
                baby = attempt_birth(parent, n, rng)
                if baby is not None:
                    babies.append(baby)
            roster.extend(babies)
            n_born += len(babies)
    return n_born


def feeding_phase(
    cells: Sequence[Cell],
    inhabited: Sequence[int],
    rng: np.random.Generator,
) -> None:
    for idx in inhabited:
        cells[idx].feed(rng)


def death_phase(
    cells: Sequence[Cell],
    inhabited: Sequence[int],
    rng: np.random.Generator,
) -> int:
    """Age every animal, then remove the starved and the unlucky.

    Returns:
        Number of deaths.
    """
    n_dead = 0
    for idx in inhabited:
        cell = cells[idx]
        for species in ALL_SPECIES:
            roster = cell.roster(species)
            survivors = []
            for animal in roster:
                age_one_year(animal)
                if dies(animal, rng):
                    n_dead += 1
                else:
                    survivors.append(animal)
            roster[:] = survivors
    return n_dead


# ═══════════════════════════════════════════════════════════════════════
# ISLAND
# ═══════════════════════════════════════════════════════════════════════

class Island:
    """Grid of cells plus the yearly update rules.

    Args:
        geography: Terrain rows, e.g. ["WWW", "WLW", "WWW"].
        species_params: Parameter table; defaults for missing species.
        rng: Random generator. Built from `seed` when omitted.
        seed: Seed used only when `rng` is None.
        timer: Optional PhaseTimer for per-phase timings.

    Raises:
        GeographyError: If the map is not a valid island.
    """

    def __init__(
        self,
        geography: Sequence[str],
        species_params: Optional[Dict[Species, SpeciesParameters]] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        timer: Optional[PhaseTimer] = None,
    ):
        self.geography: List[str] = parse_geography(geography)
        self.n_rows = len(self.geography)
        self.n_cols = len(self.geography[0])

        params = {s: default_species_parameters(s) for s in ALL_SPECIES}
        if species_params:
            params.update(species_params)
        self.species_params: Dict[Species, SpeciesParameters] = params

        self.rng = rng if rng is not None else make_rng(seed)
        self.timer = timer if timer is not None else PhaseTimer(enabled=False)
        self.year = 0

        self._cells: List[Cell] = build_cells(self.geography)
        self._grid = MigrationGrid(self.geography)
        self._inhabited: List[int] = []

        logger.debug("Island %dx%d built, %d passable cells",
                     self.n_rows, self.n_cols, int(self._grid.passable.sum()))

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        rng: Optional[np.random.Generator] = None,
        timer: Optional[PhaseTimer] = None,
        geography: Optional[Sequence[str]] = None,
    ) -> Island:
        """Island for a config's parameter table (not yet seeded).

        The map is `geography` when given, otherwise the config's.
        """
        if rng is None:
            rng = make_rng(config.simulation.seed)
        if geography is None:
            geography = config.simulation.geography
        return cls(geography,
                   species_params=config.species_parameters,
                   rng=rng, timer=timer)

    # ── Cell access ──────────────────────────────────────────────────

    @property
    def cells(self) -> List[Cell]:
        """Row-major cell list. Index with `linear_index`."""
        return self._cells

    def in_bounds(self, coordinate: Coordinate) -> bool:
        row, col = coordinate
        return 0 <= row < self.n_rows and 0 <= col < self.n_cols

    def cell(self, coordinate: Coordinate) -> Cell:
        """Cell at (row, col).

        Raises:
            ValueError: If the coordinate is outside the map.
        """
        if not self.in_bounds(coordinate):
            raise ValueError(
                f"Coordinate {coordinate} is outside the "
                f"{self.n_rows}x{self.n_cols} island"
            )
        return self._cells[linear_index(coordinate, self.n_cols)]

    @property
    def inhabited(self) -> List[Coordinate]:
        """Cached inhabited coordinates, row-major."""
        return [coordinate_of(i, self.n_cols) for i in self._inhabited]

    def update_inhabited(self) -> None:
        self._inhabited = compute_inhabited(self._cells)

    def inhabited_is_consistent(self) -> bool:
        """True if the cache matches the rosters."""
        return self._inhabited == compute_inhabited(self._cells)

    # ── Seeding ──────────────────────────────────────────────────────

    def add_population(self, population: PopulationSpec) -> None:
        """Place freshly spawned animals.

        Args:
            population: (coordinate, species, count) triples. Species may be
                a Species or a species name.

        Raises:
            ValueError: For an out-of-bounds or water coordinate, a negative
                count or an unknown species name.
        """
        # Validate every entry before spawning, so a bad entry leaves no trace
        entries = []
        for coordinate, species, count in population:
            coordinate = (int(coordinate[0]), int(coordinate[1]))
            if not isinstance(species, Species):
                species = Species.from_name(species)
            if count < 0:
                raise ValueError(f"Animal count must be >= 0, got {count}")
            cell = self.cell(coordinate)
            if not cell.passable:
                raise ValueError(
                    f"Cannot place animals at {coordinate}: terrain "
                    f"'{cell.terrain}' is impassable"
                )
            entries.append((cell, species, int(count)))

        for cell, species, count in entries:
            params = self.species_params[species]
            roster = cell.roster(species)
            for _ in range(count):
                roster.append(spawn(params, self.rng))
        self.update_inhabited()

    # ── Yearly cycle ─────────────────────────────────────────────────

    def procreate(self) -> int:
        with self.timer.track('procreation'):
            n_born = procreation_phase(self._cells, self._inhabited, self.rng)
            self.update_inhabited()
        return n_born

    def feed(self) -> None:
        with self.timer.track('feeding'):
            feeding_phase(self._cells, self._inhabited, self.rng)

    def migrate(self) -> int:
        with self.timer.track('migration'):
            moved = migrate(self._cells, self._inhabited, self._grid,
                            self.species_params, self.rng)
            self.update_inhabited()
        return moved

    def age_and_die(self) -> int:
        with self.timer.track('aging'):
            n_dead = death_phase(self._cells, self._inhabited, self.rng)
            self.update_inhabited()
        return n_dead

    def yearly_cycle(self) -> None:
        """Advance the island by one year."""
        n_born = self.procreate()
        self.feed()
        moved = self.migrate()
        n_dead = self.age_and_die()
        self.year += 1
        logger.debug("Year %d: %d born, %d moved, %d died, %d cells inhabited",
                     self.year, n_born, moved, n_dead, len(self._inhabited))

    # ── Metrics ──────────────────────────────────────────────────────

    def animals(self) -> Census:
        """Per-species totals and per-cell counts. Does not mutate state."""
        totals = {s: 0 for s in ALL_SPECIES}
        per_cell: Dict[Coordinate, Dict[Species, int]] = {}
        for idx in self._inhabited:
            counts = self._cells[idx].counts()
            per_cell[coordinate_of(idx, self.n_cols)] = counts
            for s, n in counts.items():
                totals[s] += n
        return Census(totals=totals, per_cell=per_cell)
