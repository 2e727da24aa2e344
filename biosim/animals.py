"""Individual animals: state, fitness and life-cycle rules.

Each Animal carries a reference to its species' SpeciesParameters, so
every rule below reads its constants from the animal itself. Behaviour
that only one species has (grazing for foragers, hunting for predators)
is exposed as a plain function that the cell applies to the matching
per-species roster; there is no code path that hands a predator to
`graze` or a forager to `predation_round`.

Fitness (both species):
    Φ = 0                                               if w ≤ 0
    Φ = expit(−φ_age (a − a½)) · expit(φ_weight (w − w½))  otherwise

expit is the logistic function; scipy's implementation saturates cleanly
to 0/1 for large arguments instead of overflowing exp().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from scipy.special import expit

from biosim.config import SpeciesParameters
from biosim.types import Species


# ═══════════════════════════════════════════════════════════════════════
# FITNESS & BIRTH WEIGHT
# ═══════════════════════════════════════════════════════════════════════

def compute_fitness(params: SpeciesParameters, age: int, weight: float) -> float:
    """Fitness in [0, 1] from age and weight."""
    if weight <= 0.0:
        return 0.0
    q_age = expit(-params.phi_age * (age - params.a_half))
    q_weight = expit(params.phi_weight * (weight - params.w_half))
    return float(q_age * q_weight)


def sample_birth_weight(params: SpeciesParameters,
                        rng: np.random.Generator) -> float:
    """Draw a birth weight from the species' log-normal distribution.

    The underlying normal parameters are precomputed on the parameter
    table so the mean of the draws equals w_birth and their standard
    deviation equals σ_birth.
    """
    return float(rng.lognormal(params.birth_log_mean, params.birth_log_std))


# ═══════════════════════════════════════════════════════════════════════
# ANIMAL
# ═══════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class Animal:
    """One individual. `fitness` is kept in sync with weight and age.

    Animals compare by identity: two individuals with equal state are
    still different animals.
    """
    params: SpeciesParameters = field(repr=False)
    weight: float
    age: int = 0
    fitness: float = field(init=False)

    def __post_init__(self):
        self.recompute_fitness()

    @property
    def species(self) -> Species:
        return self.params.species

    def recompute_fitness(self) -> None:
        self.fitness = compute_fitness(self.params, self.age, self.weight)

    def gain_weight(self, amount: float) -> None:
        self.weight += amount
        self.recompute_fitness()

    def lose_weight(self, amount: float) -> None:
        self.weight -= amount
        self.recompute_fitness()


def spawn(params: SpeciesParameters, rng: np.random.Generator) -> Animal:
    """Create a newborn (age 0) with a sampled birth weight."""
    return Animal(params=params, weight=sample_birth_weight(params, rng), age=0)


# ═══════════════════════════════════════════════════════════════════════
# LIFE-CYCLE RULES
# ═══════════════════════════════════════════════════════════════════════

def attempt_birth(
    parent: Animal,
    n_same_species: int,
    rng: np.random.Generator,
) -> Optional[Animal]:
    """Try to give birth; the chance scales with fitness and local density.

    Two stages:
      1. Trigger: parent.weight ≥ threshold and U < Φ · γ · N.
      2. Affordability: the sampled offspring is discarded unless
         parent.weight > ξ · offspring.weight.
    A successful birth costs the parent ξ · offspring.weight.

    Args:
        parent: Prospective parent.
        n_same_species: Number of animals of the parent's species in the
            cell at the start of the procreation phase.
        rng: Random generator.

    Returns:
        The newborn, or None.
    """
    p = parent.params
    if parent.weight < p.procreation_threshold:
        return None
    if rng.random() >= parent.fitness * p.gamma * n_same_species:
        return None

    baby_weight = sample_birth_weight(p, rng)
    cost = p.xi * baby_weight
    if parent.weight <= cost:
        return None

    parent.lose_weight(cost)
    return Animal(params=p, weight=baby_weight, age=0)


def graze(forager: Animal, available_fodder: float) -> float:
    """Eat up to the appetite from the cell's fodder.

    Returns:
        Amount of fodder consumed.
    """
    consumed = min(available_fodder, forager.params.appetite)
    forager.gain_weight(forager.params.beta * consumed)
    return consumed


def kill_probability(predator: Animal, prey: Animal) -> float:
    """Linear in the fitness gap, saturating at Δφ_max."""
    diff = predator.fitness - prey.fitness
    if diff <= 0.0:
        return 0.0
    delta_max = predator.params.delta_phi_max
    if diff >= delta_max:
        return 1.0
    return diff / delta_max


def predation_round(
    predator: Animal,
    prey: List[Animal],
    rng: np.random.Generator,
) -> List[Animal]:
    """One year of hunting against an ordered prey list.

    Prey are tried in list order, one uniform draw each, until the
    predator's appetite is used up. A kill adds min(remaining appetite,
    prey weight) to the predator. Unused appetite is not carried over.

    Returns:
        The prey that survived, in their original order.
    """
    remaining = predator.params.appetite
    survivors: List[Animal] = []
    for idx, target in enumerate(prey):
        if rng.random() < kill_probability(predator, target):
            eaten = min(remaining, target.weight)
            predator.gain_weight(eaten)
            remaining -= eaten
            if remaining <= 0.0:
                survivors.extend(prey[idx + 1:])
                break
        else:
            survivors.append(target)
    return survivors


def age_one_year(animal: Animal) -> None:
    """Birthday followed by yearly metabolic weight loss."""
    animal.age += 1
    animal.weight -= animal.params.eta * animal.weight
    animal.recompute_fitness()


def dies(animal: Animal, rng: np.random.Generator) -> bool:
    """Death check after aging. Starved animals die without a draw."""
    if animal.weight <= 0.0:
        return True
    return bool(rng.random() < animal.params.omega * (1.0 - animal.fitness))
