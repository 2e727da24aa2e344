"""Tests for biosim.landscape — terrain map, fodder and per-cell feeding."""

import numpy as np
import pytest

from biosim.animals import Animal
from biosim.config import default_species_parameters
from biosim.landscape import (
    ALPHA,
    V_MAX,
    Cell,
    GeographyError,
    build_cells,
    compute_inhabited,
    coordinate_of,
    linear_index,
    parse_geography,
)
from biosim.rng import make_rng
from biosim.types import Species

FORAGER = default_species_parameters(Species.FORAGER)
PREDATOR = default_species_parameters(Species.PREDATOR)


# ── Terrain map ───────────────────────────────────────────────────────

class TestParseGeography:
    def test_valid(self):
        rows = parse_geography(["WWWW", "WLHW", "WMLW", "WWWW"])
        assert rows == ["WWWW", "WLHW", "WMLW", "WWWW"]

    def test_all_water(self):
        assert parse_geography(["WWW", "WWW", "WWW"]) == ["WWW", "WWW", "WWW"]

    def test_empty(self):
        with pytest.raises(GeographyError):
            parse_geography([])
        with pytest.raises(GeographyError):
            parse_geography([""])

    def test_not_rectangular(self):
        with pytest.raises(GeographyError, match="rectangular"):
            parse_geography(["WWW", "WLLW", "WWW"])

    def test_unknown_code(self):
        with pytest.raises(GeographyError, match="Unknown terrain"):
            parse_geography(["WWW", "WXW", "WWW"])

    def test_land_on_top_row(self):
        """A border that is not entirely water aborts construction."""
        with pytest.raises(GeographyError, match="Edges"):
            parse_geography(["WLW", "WLW", "WWW"])

    def test_land_on_bottom_row(self):
        with pytest.raises(GeographyError):
            parse_geography(["WWW", "WLW", "WHW"])

    def test_land_on_side_column(self):
        with pytest.raises(GeographyError):
            parse_geography(["WWWW", "LLLW", "WWWW"])
        with pytest.raises(GeographyError):
            parse_geography(["WWWW", "WLLM", "WWWW"])

    def test_is_value_error(self):
        assert issubclass(GeographyError, ValueError)


class TestIndexing:
    def test_roundtrip(self):
        n_cols = 7
        for idx in range(5 * n_cols):
            assert linear_index(coordinate_of(idx, n_cols), n_cols) == idx

    def test_row_major(self):
        assert linear_index((2, 3), 5) == 13
        assert coordinate_of(13, 5) == (2, 3)


# ── Fodder ────────────────────────────────────────────────────────────

class TestFodder:
    def test_initial_fodder_is_capacity(self):
        for code, cap in (('W', 0.0), ('H', 300.0), ('L', 800.0), ('M', 0.0)):
            cell = Cell.from_terrain(code)
            assert cell.capacity == cap
            assert cell.fodder == cap

    def test_passable(self):
        assert not Cell.from_terrain('W').passable
        assert Cell.from_terrain('M').passable

    def test_regrowth_formula(self):
        cell = Cell.from_terrain('L')
        cell.fodder = 0.0
        cell.grow_fodder()
        assert cell.fodder == pytest.approx(V_MAX * (1 - ALPHA))

    def test_regrowth_caps_at_capacity(self):
        cell = Cell.from_terrain('H')
        cell.fodder = 0.0
        cell.grow_fodder()
        assert cell.fodder == 300.0

    def test_full_cell_unchanged(self):
        cell = Cell.from_terrain('L')
        cell.grow_fodder()
        assert cell.fodder == 800.0

    def test_zero_capacity_never_grows(self):
        for code in ('W', 'M'):
            cell = Cell.from_terrain(code)
            for _ in range(5):
                cell.grow_fodder()
            assert cell.fodder == 0.0

    @pytest.mark.parametrize('code', ['H', 'L'])
    def test_bounds_property(self, code):
        """0 ≤ f ≤ f_max before and after growth, and growth never shrinks f."""
        rng = make_rng(11)
        for start in rng.uniform(0.0, 1.0, size=50):
            cell = Cell.from_terrain(code)
            cell.fodder = start * cell.capacity
            before = cell.fodder
            cell.grow_fodder()
            assert before <= cell.fodder <= cell.capacity


# ── Cell rosters & feeding ────────────────────────────────────────────

class TestCellRosters:
    def test_roster_dispatch(self):
        cell = Cell.from_terrain('L')
        assert cell.roster(Species.FORAGER) is cell.foragers
        assert cell.roster(Species.PREDATOR) is cell.predators

    def test_counts_and_inhabited(self):
        cell = Cell.from_terrain('L')
        assert not cell.is_inhabited
        cell.predators.append(Animal(PREDATOR, weight=5.0))
        assert cell.is_inhabited
        assert cell.counts() == {Species.FORAGER: 0, Species.PREDATOR: 1}

    def test_forager_biomass(self):
        cell = Cell.from_terrain('L')
        cell.foragers.extend([Animal(FORAGER, weight=3.0),
                              Animal(FORAGER, weight=4.5)])
        assert cell.forager_biomass() == pytest.approx(7.5)


class TestFeed:
    def test_fittest_eat_first(self):
        cell = Cell('L', capacity=FORAGER.appetite + 5.0,
                    fodder=FORAGER.appetite + 5.0)
        weak = Animal(FORAGER, weight=5.0)
        strong = Animal(FORAGER, weight=30.0)
        cell.foragers.extend([strong, weak])

        cell.feed(make_rng(0))

        assert strong.weight == pytest.approx(30.0 + FORAGER.beta * FORAGER.appetite)
        assert weak.weight == pytest.approx(5.0 + FORAGER.beta * 5.0)
        assert cell.fodder == 0.0
        assert cell.foragers == [weak, strong]

    def test_no_grazing_without_fodder(self):
        cell = Cell.from_terrain('M')
        forager = Animal(FORAGER, weight=10.0)
        cell.foragers.append(forager)
        cell.feed(make_rng(0))
        assert forager.weight == 10.0

    def test_fodder_stays_in_bounds(self):
        cell = Cell.from_terrain('H')
        cell.foragers.extend(Animal(FORAGER, weight=10.0) for _ in range(50))
        for _ in range(3):
            cell.feed(make_rng(1))
            assert 0.0 <= cell.fodder <= cell.capacity

    def test_predators_only_remove_foragers(self):
        rng = make_rng(5)
        cell = Cell.from_terrain('L')
        cell.foragers.extend(Animal(FORAGER, weight=w, age=30)
                             for w in rng.uniform(1.0, 5.0, size=20))
        cell.predators.extend(Animal(PREDATOR, weight=40.0, age=3)
                              for _ in range(5))
        foragers_before = set(map(id, cell.foragers))

        cell.feed(rng)

        assert len(cell.predators) == 5
        assert set(map(id, cell.foragers)) <= foragers_before

    def test_predators_without_prey(self):
        cell = Cell.from_terrain('L')
        hunter = Animal(PREDATOR, weight=10.0)
        cell.predators.append(hunter)
        cell.feed(make_rng(2))
        assert hunter.weight == 10.0


# ── Cell array ────────────────────────────────────────────────────────

class TestCellArray:
    def test_build_cells_row_major(self):
        cells = build_cells(["WWW", "WLW", "WHW", "WWW"])
        assert len(cells) == 12
        assert cells[4].terrain == 'L'
        assert cells[7].terrain == 'H'

    def test_compute_inhabited(self):
        cells = build_cells(["WWWW", "WLLW", "WLLW", "WWWW"])
        assert compute_inhabited(cells) == []
        cells[10].foragers.append(Animal(FORAGER, weight=1.0))
        cells[5].predators.append(Animal(PREDATOR, weight=1.0))
        assert compute_inhabited(cells) == [5, 10]
