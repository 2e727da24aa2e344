"""Core data types for BioSim.

This module is the single source of truth for:
  - Species: the closed set of animal kinds living on the island
  - Terrain codes and their fodder capacities
  - Census: the read-only population summary returned by the metrics query

All modules import these types from here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Tuple


# ═══════════════════════════════════════════════════════════════════════
# SPECIES
# ═══════════════════════════════════════════════════════════════════════

class Species(IntEnum):
    """Animal kinds. Adding a third species is an explicit code change."""
    FORAGER  = 0   # grazes fodder
    PREDATOR = 1   # hunts foragers

    @classmethod
    def from_name(cls, name: str) -> Species:
        """Look up a species by name (case-insensitive).

        Accepts the canonical names as well as the historical aliases
        'herbivore' and 'carnivore'.

        Raises:
            ValueError: If the name is not a known species.
        """
        key = str(name).strip().lower()
        if key in _SPECIES_ALIASES:
            return _SPECIES_ALIASES[key]
        raise ValueError(
            f"Unknown species '{name}'. "
            f"Expected one of {sorted(_SPECIES_ALIASES)}"
        )

    @property
    def label(self) -> str:
        return self.name.capitalize()


_SPECIES_ALIASES = {
    'forager': Species.FORAGER,
    'herbivore': Species.FORAGER,
    'predator': Species.PREDATOR,
    'carnivore': Species.PREDATOR,
}

ALL_SPECIES: Tuple[Species, ...] = tuple(Species)


# ═══════════════════════════════════════════════════════════════════════
# TERRAIN
# ═══════════════════════════════════════════════════════════════════════

WATER    = 'W'   # impassable, no fodder
HIGHLAND = 'H'
LOWLAND  = 'L'
MOUNTAIN = 'M'   # passable, no fodder

# Maximum fodder per terrain code
TERRAIN_FODDER: Dict[str, float] = {
    WATER:    0.0,
    HIGHLAND: 300.0,
    LOWLAND:  800.0,
    MOUNTAIN: 0.0,
}

IMPASSABLE = frozenset({WATER})


def is_passable(code: str) -> bool:
    return code not in IMPASSABLE


# (row, col) on the island map
Coordinate = Tuple[int, int]


# ═══════════════════════════════════════════════════════════════════════
# METRICS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Census:
    """Population counts at one moment in time.

    totals:   species → live count over the whole island.
    per_cell: inhabited coordinate → species → live count.
    """
    totals: Dict[Species, int] = field(default_factory=dict)
    per_cell: Dict[Coordinate, Dict[Species, int]] = field(default_factory=dict)

    def total(self, species: Species) -> int:
        return self.totals.get(species, 0)

    @property
    def n_animals(self) -> int:
        return sum(self.totals.values())
