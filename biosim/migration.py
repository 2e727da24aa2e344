"""Yearly migration between cells.

Two passes over the inhabited cells:

  1. Flagging: every animal draws U; it wants to move if U ≤ μ · Φ.
  2. Moving: per cell, per species, flagged animals are taken from the
     highest roster index down (so earlier removals never shift a later
     index) and sent to a destination chosen as below.

Destination for an animal of species S at (x, y):
  - candidates: passable in-grid cells (i, j) ≠ (x, y) with
    (i − x)² + (j − y)² ≤ stride_S²
  - propensity: food / max(F, (n + 1) F, n + 1, 1), where food is the
    fodder (foragers) or the forager biomass (predators) and n is the
    number of S already in the candidate
  - keep the 4 highest, pick one uniformly, accept with probability
    π_k / Σπ (0.5 if Σπ = 0); otherwise stay

All propensities in a year come from a PropensitySnapshot taken before
the first move, so the order in which animals move does not matter to
where they want to go.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from biosim.config import SpeciesParameters
from biosim.landscape import Cell
from biosim.types import ALL_SPECIES, Species, is_passable


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

MAX_OPTIONS = 4      # best candidates an animal considers
P_ACCEPT_EMPTY = 0.5  # acceptance when every option has zero propensity


# ═══════════════════════════════════════════════════════════════════════
# NEIGHBOURHOODS
# ═══════════════════════════════════════════════════════════════════════

@lru_cache(maxsize=None)
def circular_offsets(stride: int) -> Tuple[Tuple[int, int], ...]:
    """Offsets (di, dj) ≠ (0, 0) with di² + dj² ≤ stride², row-major."""
    r2 = stride * stride
    return tuple(
        (di, dj)
        for di in range(-stride, stride + 1)
        for dj in range(-stride, stride + 1)
        if (di, dj) != (0, 0) and di * di + dj * dj <= r2
    )


class MigrationGrid:
    """Static geometry for migration: bounds, passability, neighbourhoods.

    Candidate lists depend only on the map, so they are computed once per
    (cell, stride) and reused every year.
    """

    def __init__(self, geography: Sequence[str]):
        self.n_rows = len(geography)
        self.n_cols = len(geography[0])
        self.passable = np.array(
            [[is_passable(code) for code in row] for row in geography],
            dtype=bool,
        )
        self._candidates: Dict[Tuple[int, int], np.ndarray] = {}

    def candidates(self, index: int, stride: int) -> np.ndarray:
        """Linear indices of legal destinations from cell `index`."""
        key = (index, stride)
        cached = self._candidates.get(key)
        if cached is not None:
            return cached

        x, y = divmod(index, self.n_cols)
        out = []
        for di, dj in circular_offsets(stride):
            i, j = x + di, y + dj
            if 0 <= i < self.n_rows and 0 <= j < self.n_cols and self.passable[i, j]:
                out.append(i * self.n_cols + j)
        cached = np.array(out, dtype=np.int64)
        self._candidates[key] = cached
        return cached


# ═══════════════════════════════════════════════════════════════════════
# PROPENSITY SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class PropensitySnapshot:
    """Read-only copy of the cell state that drives destination choice."""
    fodder: np.ndarray            # (n_cells,)
    forager_biomass: np.ndarray   # (n_cells,)
    counts: np.ndarray            # (n_species, n_cells)

    @classmethod
    def take(cls, cells: Sequence[Cell], inhabited: Sequence[int]) -> PropensitySnapshot:
        n = len(cells)
        fodder = np.fromiter((c.fodder for c in cells), dtype=np.float64, count=n)
        biomass = np.zeros(n, dtype=np.float64)
        counts = np.zeros((len(ALL_SPECIES), n), dtype=np.int64)
        # Empty cells contribute zero biomass and zero counts
        for idx in inhabited:
            cell = cells[idx]
            biomass[idx] = cell.forager_biomass()
            for s in ALL_SPECIES:
                counts[s, idx] = len(cell.roster(s))
        return cls(fodder=fodder, forager_biomass=biomass, counts=counts)

    def food(self, species: Species) -> np.ndarray:
        return self.fodder if species == Species.FORAGER else self.forager_biomass


def propensities(
    candidates: np.ndarray,
    params: SpeciesParameters,
    snapshot: PropensitySnapshot,
) -> np.ndarray:
    """Food abundance per candidate, relative to the local competition."""
    hunger = params.appetite
    n_plus_one = snapshot.counts[params.species, candidates] + 1.0
    denom = np.maximum.reduce([
        np.full(len(candidates), hunger),
        n_plus_one * hunger,
        n_plus_one,
        np.ones(len(candidates)),
    ])
    return snapshot.food(params.species)[candidates] / denom


def select_destination(
    candidates: np.ndarray,
    props: np.ndarray,
    rng: np.random.Generator,
) -> Optional[int]:
    """Pick a destination among the best options, or None to stay.

    Draws: one integer (which option) and one uniform (accept or not).
    No draws are made when there are no candidates.
    """
    if len(candidates) == 0:
        return None

    if len(candidates) > MAX_OPTIONS:
        best = np.argsort(-props, kind='stable')[:MAX_OPTIONS]
        candidates = candidates[best]
        props = props[best]

    chosen = int(rng.integers(len(candidates)))
    total = float(props.sum())
    p_accept = P_ACCEPT_EMPTY if total == 0.0 else float(props[chosen]) / total

    if rng.random() < p_accept:
        return int(candidates[chosen])
    return None


# ═══════════════════════════════════════════════════════════════════════
# MIGRATION PHASE
# ═══════════════════════════════════════════════════════════════════════

def flag_migrants(
    cells: Sequence[Cell],
    inhabited: Sequence[int],
    rng: np.random.Generator,
) -> List[Tuple[int, Species, List[int]]]:
    """First pass: one draw per animal, in cell → species → roster order.

    Returns:
        (cell index, species, ascending roster indices) for every roster
        with at least one flagged animal.
    """
    flagged = []
    for idx in inhabited:
        cell = cells[idx]
        for species in ALL_SPECIES:
            roster = cell.roster(species)
            if not roster:
                continue
            draws = rng.random(len(roster))
            mu = roster[0].params.mu
            wanted = [k for k, animal in enumerate(roster)
                      if draws[k] <= mu * animal.fitness]
            if wanted:
                flagged.append((idx, species, wanted))
    return flagged


def migrate(
    cells: List[Cell],
    inhabited: Sequence[int],
    grid: MigrationGrid,
    species_params: Dict[Species, SpeciesParameters],
    rng: np.random.Generator,
) -> int:
    """Run the migration phase in place.

    Args:
        cells: Row-major cell list (rosters are mutated).
        inhabited: Inhabited cell indices at the start of the phase.
        grid: Map geometry.
        species_params: Parameter table.
        rng: Random generator.

    Returns:
        Number of animals that moved.
    """
    flagged = flag_migrants(cells, inhabited, rng)
    if not flagged:
        return 0

    snapshot = PropensitySnapshot.take(cells, inhabited)
    moved = 0
    for idx, species, wanted in flagged:
        params = species_params[species]
        candidates = grid.candidates(idx, params.stride)
        props = propensities(candidates, params, snapshot)
        source = cells[idx].roster(species)
        for k in reversed(wanted):
            dest = select_destination(candidates, props, rng)
            if dest is None:
                continue
            animal = source.pop(k)
            cells[dest].roster(species).append(animal)
            moved += 1
    return moved
