"""Tests for biosim.types — species, terrain codes and the census."""

import numpy as np
import pytest

from biosim.types import (
    ALL_SPECIES,
    HIGHLAND,
    LOWLAND,
    MOUNTAIN,
    TERRAIN_FODDER,
    WATER,
    Census,
    Species,
    is_passable,
)


# ── Species ───────────────────────────────────────────────────────────

class TestSpeciesEnum:
    def test_values(self):
        assert Species.FORAGER == 0
        assert Species.PREDATOR == 1

    def test_count(self):
        assert len(Species) == 2
        assert ALL_SPECIES == (Species.FORAGER, Species.PREDATOR)

    def test_integer_compatible(self):
        """Species can index numpy arrays."""
        arr = np.zeros(2)
        arr[Species.PREDATOR] = 1.0
        assert arr[1] == 1.0

    def test_label(self):
        assert Species.FORAGER.label == 'Forager'
        assert Species.PREDATOR.label == 'Predator'


class TestSpeciesFromName:
    @pytest.mark.parametrize('name,expected', [
        ('forager', Species.FORAGER),
        ('Herbivore', Species.FORAGER),
        ('PREDATOR', Species.PREDATOR),
        (' carnivore ', Species.PREDATOR),
    ])
    def test_known_names(self, name, expected):
        assert Species.from_name(name) is expected

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown species"):
            Species.from_name('omnivore')


# ── Terrain ───────────────────────────────────────────────────────────

class TestTerrain:
    def test_capacities(self):
        assert TERRAIN_FODDER[WATER] == 0.0
        assert TERRAIN_FODDER[HIGHLAND] == 300.0
        assert TERRAIN_FODDER[LOWLAND] == 800.0
        assert TERRAIN_FODDER[MOUNTAIN] == 0.0

    def test_only_water_is_impassable(self):
        assert not is_passable(WATER)
        for code in (HIGHLAND, LOWLAND, MOUNTAIN):
            assert is_passable(code)


# ── Census ────────────────────────────────────────────────────────────

class TestCensus:
    def test_total_missing_species_is_zero(self):
        census = Census(totals={Species.FORAGER: 3})
        assert census.total(Species.FORAGER) == 3
        assert census.total(Species.PREDATOR) == 0

    def test_n_animals(self):
        census = Census(totals={Species.FORAGER: 3, Species.PREDATOR: 2})
        assert census.n_animals == 5

    def test_empty(self):
        census = Census()
        assert census.n_animals == 0
        assert census.per_cell == {}
