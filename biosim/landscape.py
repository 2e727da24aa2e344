"""Island terrain and cells.

Handles: parsing and validating the terrain map, the per-cell fodder
resource, the per-species animal rosters, and the once-a-year feeding
sequence inside a cell.

Cells are stored in a flat list in row-major order:
    index = row × n_cols + col
"""

from __future__ import annotations

from dataclasses import dataclass, field
from operator import attrgetter
from typing import Dict, Iterable, List, Sequence

import numpy as np

from biosim.animals import Animal, graze, predation_round
from biosim.types import (
    ALL_SPECIES,
    TERRAIN_FODDER,
    WATER,
    Coordinate,
    Species,
    is_passable,
)


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

V_MAX = 800.0   # maximum yearly regrowth
ALPHA = 0.1     # regrowth slowdown with depletion


class GeographyError(ValueError):
    """The terrain map cannot describe an island."""


# ═══════════════════════════════════════════════════════════════════════
# TERRAIN MAP
# ═══════════════════════════════════════════════════════════════════════

def parse_geography(rows: Sequence[str]) -> List[str]:
    """Validate a terrain map.

    Rules:
      - at least one row, all rows the same non-zero length
      - first and last row entirely water
      - first and last column of every row water
      - only known terrain codes

    Args:
        rows: Terrain rows, one character per cell.

    Returns:
        The rows as a list of str.

    Raises:
        GeographyError: On any violated rule.
    """
    rows = [str(r) for r in rows]
    if not rows or not rows[0]:
        raise GeographyError("Geography must have at least one row and column")

    width = len(rows[0])
    for i, row in enumerate(rows):
        if len(row) != width:
            raise GeographyError(
                f"Geography must be rectangular: row {i} has length "
                f"{len(row)}, expected {width}"
            )
        unknown = set(row) - set(TERRAIN_FODDER)
        if unknown:
            raise GeographyError(
                f"Unknown terrain code(s) {sorted(unknown)} in row {i}; "
                f"known codes are {sorted(TERRAIN_FODDER)}"
            )

    for i in (0, len(rows) - 1):
        if set(rows[i]) != {WATER}:
            raise GeographyError(f"Edges must be '{WATER}': row {i} is '{rows[i]}'")
    for i, row in enumerate(rows):
        if row[0] != WATER or row[-1] != WATER:
            raise GeographyError(
                f"Edges must be '{WATER}': row {i} starts/ends with "
                f"'{row[0]}'/'{row[-1]}'"
            )
    return rows


def linear_index(coordinate: Coordinate, n_cols: int) -> int:
    row, col = coordinate
    return row * n_cols + col


def coordinate_of(index: int, n_cols: int) -> Coordinate:
    return divmod(index, n_cols)


# ═══════════════════════════════════════════════════════════════════════
# CELL
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Cell:
    """One map location: its fodder and the animals living on it."""
    terrain: str
    capacity: float
    fodder: float
    foragers: List[Animal] = field(default_factory=list)
    predators: List[Animal] = field(default_factory=list)

    @classmethod
    def from_terrain(cls, code: str) -> Cell:
        capacity = TERRAIN_FODDER[code]
        return cls(terrain=code, capacity=capacity, fodder=capacity)

    @property
    def passable(self) -> bool:
        return is_passable(self.terrain)

    @property
    def is_inhabited(self) -> bool:
        return bool(self.foragers) or bool(self.predators)

    def roster(self, species: Species) -> List[Animal]:
        """Roster for rules that treat both species alike."""
        return self.foragers if species == Species.FORAGER else self.predators

    def counts(self) -> Dict[Species, int]:
        return {s: len(self.roster(s)) for s in ALL_SPECIES}

    def forager_biomass(self) -> float:
        return sum(a.weight for a in self.foragers)

    def grow_fodder(self) -> None:
        """Yearly regrowth toward capacity.

        f ← min(f_max, f + V_MAX · (1 − α (f_max − f) / f_max))
        """
        if self.capacity == 0.0 or self.fodder == self.capacity:
            return
        growth = V_MAX * (1.0 - ALPHA * (self.capacity - self.fodder) / self.capacity)
        self.fodder = min(self.capacity, self.fodder + growth)

    def feed(self, rng: np.random.Generator) -> None:
        """Regrow fodder, let foragers graze, then let predators hunt.

        Foragers are left sorted by ascending fitness and eat fittest
        first until the fodder runs out. Predators hunt in a freshly
        shuffled order against the post-grazing forager roster, which
        shrinks as prey are eaten.
        """
        self.grow_fodder()

        self.foragers.sort(key=attrgetter('fitness'))
        for forager in reversed(self.foragers):
            if self.fodder <= 0.0:
                break
            self.fodder -= graze(forager, self.fodder)

        rng.shuffle(self.predators)
        for predator in self.predators:
            if not self.foragers:
                break
            self.foragers = predation_round(predator, self.foragers, rng)


# ═══════════════════════════════════════════════════════════════════════
# CELL ARRAY
# ═══════════════════════════════════════════════════════════════════════

def build_cells(geography: Sequence[str]) -> List[Cell]:
    """Cells for a validated map, row-major."""
    return [Cell.from_terrain(code) for row in geography for code in row]


def compute_inhabited(cells: Iterable[Cell]) -> List[int]:
    """Linear indices of cells holding at least one animal, ascending.

    Pure function of the rosters; the island caches its result and tests
    use it to check that cache.
    """
    return [i for i, cell in enumerate(cells) if cell.is_inhabited]
