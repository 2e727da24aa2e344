"""Configuration system for BioSim.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → programmatic overrides

The per-species parameter table (SpeciesParameters) is immutable once
built; derived quantities such as the log-normal birth-weight parameters
and the procreation threshold are computed once at construction.
"""

from __future__ import annotations

import dataclasses
import math
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from biosim.types import Coordinate, Species


# ═══════════════════════════════════════════════════════════════════════
# PARAMETER TABLE
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SpeciesParameters:
    """Per-species constants.

    Fitness curve:
        Φ = 1 / (1 + exp(φ_age (a − a½))) × 1 / (1 + exp(−φ_weight (w − w½)))
    """
    species: Species
    w_birth: float           # nominal birth weight
    sigma_birth: float       # birth weight standard deviation
    beta: float              # weight gained per unit of fodder eaten
    eta: float               # yearly metabolic loss rate
    a_half: float            # age midpoint of fitness curve
    phi_age: float
    w_half: float            # weight midpoint of fitness curve
    phi_weight: float
    mu: float                # migration factor
    gamma: float             # density-dependent procreation factor
    zeta: float              # procreation threshold factor
    xi: float                # birth cost factor
    omega: float             # death factor
    appetite: float          # F: max food per year (also migration hunger)
    delta_phi_max: float = 10.0
    stride: int = 1          # migration radius in cells (Euclidean)

    # Derived, filled in __post_init__
    birth_log_mean: float = field(init=False, repr=False)
    birth_log_std: float = field(init=False, repr=False)
    procreation_threshold: float = field(init=False, repr=False)

    def __post_init__(self):
        if self.w_birth <= 0:
            raise ValueError(
                f"{self.species.name.lower()}.w_birth must be positive, "
                f"got {self.w_birth}"
            )
        w2 = self.w_birth ** 2
        s2 = self.sigma_birth ** 2
        object.__setattr__(self, 'birth_log_mean',
                           math.log(w2 / math.sqrt(w2 + s2)))
        object.__setattr__(self, 'birth_log_std',
                           math.sqrt(math.log(1.0 + s2 / w2)))
        object.__setattr__(self, 'procreation_threshold',
                           self.zeta * (self.w_birth + self.sigma_birth))

    @classmethod
    def from_dict(cls, species: Species, data: Dict) -> SpeciesParameters:
        """Build from a (partial) dict, filling gaps from the species defaults."""
        base = dataclasses.asdict(default_species_parameters(species))
        for derived in ('birth_log_mean', 'birth_log_std', 'procreation_threshold'):
            base.pop(derived)
        init_fields = {f.name for f in dataclasses.fields(cls) if f.init}
        base.update({k: v for k, v in data.items()
                     if k in init_fields and k != 'species'})
        base['species'] = species
        base['stride'] = int(base['stride'])
        return cls(**base)

    def to_dict(self) -> Dict[str, Any]:
        out = {f.name: getattr(self, f.name)
               for f in dataclasses.fields(self) if f.init}
        out['species'] = self.species.name.lower()
        return out


# μ · Φ is above 1 for most foragers, so they are flagged to migrate every year
FORAGER_DEFAULTS = dict(
    w_birth=10.0, sigma_birth=4.0, beta=0.05, eta=0.2,
    a_half=2.5, phi_age=5.0, w_half=3.0, phi_weight=0.09,
    mu=17.0, gamma=0.9, zeta=0.22, xi=0.42, omega=0.4,
    appetite=20.0, delta_phi_max=10.0, stride=1,
)

PREDATOR_DEFAULTS = dict(
    w_birth=6.0, sigma_birth=1.0, beta=0.6, eta=0.125,
    a_half=40.0, phi_age=0.45, w_half=4.0, phi_weight=0.28,
    mu=0.4, gamma=0.8, zeta=3.5, xi=1.1, omega=0.3,
    appetite=70.0, delta_phi_max=10.0, stride=3,
)


def default_species_parameters(species: Species) -> SpeciesParameters:
    defaults = FORAGER_DEFAULTS if species == Species.FORAGER else PREDATOR_DEFAULTS
    return SpeciesParameters(species=species, **defaults)


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION SECTIONS
# ═══════════════════════════════════════════════════════════════════════

# Island map used by the default driver run
DEFAULT_GEOGRAPHY: List[str] = [
    "WWWWWWWWWWWWW",
    "WWWLHHWWWHHWW",
    "WWLLLHWLWHLLW",
    "WWLLLLLLLMLMW",
    "WWHHLLLHLHMMW",
    "WHHLLLHWHHLMW",
    "WWWHHWWWWWMWW",
    "WWWWWWWWWWWWW",
]


@dataclass
class PopulationEntry:
    """Seed `count` freshly spawned animals of `species` at `coordinate`."""
    coordinate: Coordinate
    species: Species
    count: int

    @classmethod
    def from_dict(cls, data: Dict) -> PopulationEntry:
        if 'coordinate' in data:
            row, col = data['coordinate']
        else:
            row, col = data['row'], data['col']
        return cls(
            coordinate=(int(row), int(col)),
            species=Species.from_name(data['species']),
            count=int(data['count']),
        )

    def as_tuple(self) -> Tuple[Coordinate, Species, int]:
        return (self.coordinate, self.species, self.count)


def _default_population() -> List[PopulationEntry]:
    return [
        PopulationEntry((2, 2), Species.FORAGER, 100),
        PopulationEntry((2, 2), Species.PREDATOR, 10),
    ]


@dataclass
class SimulationSection:
    """Run length, seed, map and initial population."""
    seed: int = 42
    years: int = 1000
    log_interval: int = 100      # years between progress log lines
    geography: List[str] = field(default_factory=lambda: list(DEFAULT_GEOGRAPHY))
    initial_population: List[PopulationEntry] = field(
        default_factory=_default_population
    )


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    plot_file: Optional[str] = "population.png"
    log_level: str = "INFO"


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    forager: SpeciesParameters = field(
        default_factory=lambda: default_species_parameters(Species.FORAGER)
    )
    predator: SpeciesParameters = field(
        default_factory=lambda: default_species_parameters(Species.PREDATOR)
    )
    output: OutputSection = field(default_factory=OutputSection)

    @property
    def species_parameters(self) -> Dict[Species, SpeciesParameters]:
        return {Species.FORAGER: self.forager, Species.PREDATOR: self.predator}


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values (lists included) are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls) if f.init}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sim_data = data.get('simulation')
    if isinstance(sim_data, dict):
        sim_data = dict(sim_data)  # don't mutate original
        if 'geography' in sim_data:
            geo = sim_data['geography']
            if isinstance(geo, str):
                geo = geo.split()
            sim_data['geography'] = [str(row).strip() for row in geo]
        if 'initial_population' in sim_data:
            sim_data['initial_population'] = [
                PopulationEntry.from_dict(entry)
                for entry in (sim_data['initial_population'] or [])
            ]
        simulation = _dict_to_section(SimulationSection, sim_data)
    else:
        simulation = SimulationSection()

    species_sections = {}
    for key, species in (('forager', Species.FORAGER),
                         ('predator', Species.PREDATOR)):
        if isinstance(data.get(key), dict):
            species_sections[key] = SpeciesParameters.from_dict(species, data[key])
        else:
            species_sections[key] = default_species_parameters(species)

    if isinstance(data.get('output'), dict):
        output = _dict_to_section(OutputSection, data['output'])
    else:
        output = OutputSection()

    return SimulationConfig(simulation=simulation, output=output,
                            **species_sections)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Seed and run length are non-negative
      - Species constants are in range
      - Initial population entries are well-formed
    Geography is validated when the island is built.
    """
    sim = config.simulation
    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.years < 0:
        raise ValueError(f"simulation.years must be >= 0, got {sim.years}")
    if sim.log_interval < 1:
        raise ValueError(
            f"simulation.log_interval must be >= 1, got {sim.log_interval}"
        )

    for key in ('forager', 'predator'):
        p: SpeciesParameters = getattr(config, key)
        if p.appetite <= 0:
            raise ValueError(f"{key}.appetite must be positive")
        if p.delta_phi_max <= 0:
            raise ValueError(f"{key}.delta_phi_max must be positive")
        if p.stride < 1:
            raise ValueError(f"{key}.stride must be >= 1, got {p.stride}")
        for name in ('sigma_birth', 'beta', 'eta', 'phi_age', 'phi_weight',
                     'mu', 'gamma', 'zeta', 'xi', 'omega'):
            if getattr(p, name) < 0:
                raise ValueError(
                    f"{key}.{name} must be >= 0, got {getattr(p, name)}"
                )
        if p.eta > 1:
            raise ValueError(f"{key}.eta must be <= 1, got {p.eta}")

    for i, entry in enumerate(sim.initial_population):
        if entry.count < 0:
            raise ValueError(
                f"simulation.initial_population[{i}].count must be >= 0, "
                f"got {entry.count}"
            )
    if not sim.initial_population:
        warnings.warn(
            "simulation.initial_population is empty; the island will stay "
            "uninhabited.",
            UserWarning,
            stacklevel=2,
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
