"""BioSim: island population dynamics of foragers and predators.

An individual-based, grid-based model coupling:
  - Fodder regrowth per terrain cell (lowland, highland, mountain, water)
  - Fitness-driven procreation, feeding, predation and death
  - Propensity-weighted migration within a circular stride radius
  - Yearly census of per-species and per-cell counts
"""

__version__ = "0.1.0"

from biosim.config import SimulationConfig, SpeciesParameters, default_config, load_config
from biosim.island import Island
from biosim.landscape import GeographyError
from biosim.simulation import Simulation, SimulationResult
from biosim.types import Census, Species

__all__ = [
    "Census",
    "GeographyError",
    "Island",
    "SimulationConfig",
    "Simulation",
    "SimulationResult",
    "Species",
    "SpeciesParameters",
    "default_config",
    "load_config",
]
