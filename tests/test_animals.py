"""Tests for biosim.animals — fitness, birth, feeding, predation, death."""

import dataclasses

import numpy as np
import pytest

from biosim.animals import (
    Animal,
    age_one_year,
    attempt_birth,
    compute_fitness,
    dies,
    graze,
    kill_probability,
    predation_round,
    sample_birth_weight,
    spawn,
)
from biosim.config import default_species_parameters
from biosim.rng import make_rng
from biosim.types import Species

FORAGER = default_species_parameters(Species.FORAGER)
PREDATOR = default_species_parameters(Species.PREDATOR)


class ScriptedRng:
    """Stand-in generator that replays fixed draws and fails when exhausted."""

    def __init__(self, uniforms=(), lognormals=()):
        self.uniforms = list(uniforms)
        self.lognormals = list(lognormals)

    def random(self):
        return self.uniforms.pop(0)

    def lognormal(self, mean, sigma):
        return self.lognormals.pop(0)


# ── Fitness ───────────────────────────────────────────────────────────

class TestFitness:
    def test_zero_weight(self):
        assert compute_fitness(FORAGER, 3, 0.0) == 0.0
        assert compute_fitness(FORAGER, 3, -1.0) == 0.0

    def test_midpoints(self):
        """At a½ and w½ both sigmoids equal one half."""
        for p in (FORAGER, PREDATOR):
            assert compute_fitness(p, p.a_half, p.w_half) == pytest.approx(0.25)

    def test_known_value(self):
        p = PREDATOR
        expected = (1 / (1 + np.exp(p.phi_age * (3 - p.a_half)))
                    / (1 + np.exp(-p.phi_weight * (8 - p.w_half))))
        assert compute_fitness(p, 3, 8.0) == pytest.approx(expected)

    def test_bounds(self):
        for age in (0, 10, 40, 100):
            for weight in (0.1, 5.0, 50.0, 500.0):
                phi = compute_fitness(PREDATOR, age, weight)
                assert 0.0 <= phi <= 1.0

    def test_monotone(self):
        assert compute_fitness(PREDATOR, 10, 20.0) > compute_fitness(PREDATOR, 60, 20.0)
        assert compute_fitness(PREDATOR, 10, 30.0) > compute_fitness(PREDATOR, 10, 5.0)

    def test_extreme_arguments_saturate(self):
        assert compute_fitness(FORAGER, 100000, 1.0) == pytest.approx(0.0)
        assert compute_fitness(PREDATOR, 0, 1e7) == pytest.approx(1.0)
        assert np.isfinite(compute_fitness(PREDATOR, 10 ** 6, 1e9))


class TestBirthWeight:
    def test_positive(self):
        rng = make_rng(1)
        assert all(sample_birth_weight(FORAGER, rng) > 0 for _ in range(200))

    def test_mean_matches_w_birth(self):
        rng = make_rng(12345)
        draws = [sample_birth_weight(FORAGER, rng) for _ in range(5000)]
        assert np.mean(draws) == pytest.approx(FORAGER.w_birth, abs=0.3)

    def test_spawn(self):
        animal = spawn(PREDATOR, make_rng(3))
        assert animal.age == 0
        assert animal.weight > 0
        assert animal.species is Species.PREDATOR


# ── Animal ────────────────────────────────────────────────────────────

class TestAnimal:
    def test_fitness_on_creation(self):
        a = Animal(FORAGER, weight=8.0, age=2)
        assert a.fitness == compute_fitness(FORAGER, 2, 8.0)

    def test_weight_changes_update_fitness(self):
        a = Animal(FORAGER, weight=8.0)
        before = a.fitness
        a.gain_weight(10.0)
        assert a.weight == 18.0
        assert a.fitness > before
        a.lose_weight(18.0)
        assert a.fitness == 0.0

    def test_identity_equality(self):
        assert Animal(FORAGER, weight=8.0) != Animal(FORAGER, weight=8.0)


# ── Procreation ──────────────────────────────────────────────────────

class TestAttemptBirth:
    def test_below_threshold_makes_no_draw(self):
        parent = Animal(PREDATOR, weight=PREDATOR.procreation_threshold - 0.1, age=5)
        assert attempt_birth(parent, 50, ScriptedRng()) is None

    def test_successful_birth(self):
        parent = Animal(PREDATOR, weight=50.0, age=5)
        rng = ScriptedRng(uniforms=[0.5], lognormals=[6.0])
        baby = attempt_birth(parent, 10, rng)
        assert baby is not None
        assert baby.species is Species.PREDATOR
        assert baby.age == 0
        assert baby.weight == 6.0
        assert parent.weight == pytest.approx(50.0 - PREDATOR.xi * 6.0)
        assert parent.fitness == compute_fitness(PREDATOR, 5, parent.weight)

    def test_trigger_draw_rejects(self):
        parent = Animal(PREDATOR, weight=50.0, age=5)
        rng = ScriptedRng(uniforms=[0.99])
        assert attempt_birth(parent, 1, rng) is None
        assert parent.weight == 50.0

    def test_unaffordable_offspring(self):
        parent = Animal(PREDATOR, weight=30.0, age=5)
        rng = ScriptedRng(uniforms=[0.0], lognormals=[30.0])
        assert attempt_birth(parent, 10, rng) is None
        assert parent.weight == 30.0
        assert rng.lognormals == []

    def test_single_animal_can_breed(self):
        """Probability is Φγ with one animal, not zero."""
        parent = Animal(PREDATOR, weight=50.0, age=5)
        rng = ScriptedRng(uniforms=[0.01], lognormals=[6.0])
        assert attempt_birth(parent, 1, rng) is not None


# ── Feeding ──────────────────────────────────────────────────────────

class TestGraze:
    def test_limited_by_fodder(self):
        a = Animal(FORAGER, weight=10.0)
        assert graze(a, 4.0) == 4.0
        assert a.weight == pytest.approx(10.0 + FORAGER.beta * 4.0)

    def test_limited_by_appetite(self):
        a = Animal(FORAGER, weight=10.0)
        assert graze(a, 500.0) == FORAGER.appetite
        assert a.weight == pytest.approx(10.0 + FORAGER.beta * FORAGER.appetite)

    def test_no_fodder(self):
        a = Animal(FORAGER, weight=10.0)
        assert graze(a, 0.0) == 0.0
        assert a.weight == 10.0


# ── Predation ────────────────────────────────────────────────────────

def _prey(n, weight=20.0, fitness=0.0):
    animals = [Animal(FORAGER, weight=weight, age=1) for _ in range(n)]
    for a in animals:
        a.fitness = fitness
    return animals


class TestKillProbability:
    def test_fitter_prey(self):
        pred = Animal(PREDATOR, weight=1.0, age=80)
        prey = _prey(1, fitness=pred.fitness + 0.1)[0]
        assert kill_probability(pred, prey) == 0.0

    def test_linear(self):
        pred = Animal(PREDATOR, weight=20.0, age=5)
        pred.fitness = 0.8
        prey = _prey(1, fitness=0.3)[0]
        assert kill_probability(pred, prey) == pytest.approx(0.5 / 10.0)

    def test_saturates(self):
        params = dataclasses.replace(PREDATOR, delta_phi_max=0.4)
        pred = Animal(params, weight=20.0, age=5)
        pred.fitness = 0.9
        prey = _prey(1, fitness=0.3)[0]
        assert kill_probability(pred, prey) == 1.0


class TestPredationRound:
    def _hungry_hunter(self):
        params = dataclasses.replace(PREDATOR, delta_phi_max=1e-6)
        return Animal(params, weight=20.0, age=5)

    def test_stops_when_satiated(self):
        pred = self._hungry_hunter()
        prey = _prey(5, weight=20.0)
        rng = ScriptedRng(uniforms=[0.5, 0.5, 0.5, 0.5])
        survivors = predation_round(pred, prey, rng)
        # 20 + 20 + 20 + 10 fills an appetite of 70; the 5th prey is never tried
        assert survivors == [prey[4]]
        assert pred.weight == pytest.approx(20.0 + PREDATOR.appetite)
        assert rng.uniforms == []

    def test_failed_draws_keep_order(self):
        pred = Animal(PREDATOR, weight=20.0, age=5)
        prey = _prey(3)
        rng = ScriptedRng(uniforms=[0.99, 0.99, 0.99])
        survivors = predation_round(pred, prey, rng)
        assert survivors == prey
        assert pred.weight == 20.0

    def test_one_draw_per_prey_even_when_hopeless(self):
        pred = Animal(PREDATOR, weight=20.0, age=5)
        prey = _prey(2, fitness=1.0)
        rng = ScriptedRng(uniforms=[0.0, 0.0])
        assert predation_round(pred, prey, rng) == prey
        assert rng.uniforms == []

    def test_empty_prey(self):
        pred = Animal(PREDATOR, weight=20.0, age=5)
        assert predation_round(pred, [], ScriptedRng()) == []

    def test_survivors_keep_relative_order(self):
        pred = Animal(PREDATOR, weight=20.0, age=5)
        prey = _prey(4, weight=5.0)
        # 0.99 always misses, 0.0 always hits
        rng = ScriptedRng(uniforms=[0.99, 0.0, 0.99, 0.0])
        survivors = predation_round(pred, prey, rng)
        assert survivors == [prey[0], prey[2]]


# ── Aging & death ────────────────────────────────────────────────────

class TestAging:
    def test_age_then_metabolic_loss(self):
        a = Animal(FORAGER, weight=10.0, age=3)
        age_one_year(a)
        assert a.age == 4
        assert a.weight == pytest.approx(10.0 * (1 - FORAGER.eta))
        assert a.fitness == compute_fitness(FORAGER, 4, a.weight)


class TestDies:
    def test_starved_without_draw(self):
        a = Animal(FORAGER, weight=0.0)
        assert dies(a, ScriptedRng()) is True

    def test_draw_below_threshold(self):
        a = Animal(FORAGER, weight=5.0, age=60)
        assert dies(a, ScriptedRng(uniforms=[0.0])) is True

    def test_perfect_fitness_never_dies(self):
        a = Animal(FORAGER, weight=5.0)
        a.fitness = 1.0
        assert dies(a, ScriptedRng(uniforms=[0.0])) is False
