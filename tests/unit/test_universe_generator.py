"""
Unit tests for UniverseGenerator and RandomSource.

A fixed seed must reproduce the same coordinates and the same sectors.
"""

import pytest

from nexium.domain.models.sector import (
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    ORIGIN,
    Coordinate,
)
from nexium.modules.shared.random_source import RandomSource
from nexium.modules.universe import constants
from nexium.modules.universe.generator import UniverseGenerator


class TestRandomSource:
    """Seeded, isolated pseudo-random draws."""

    def test_same_seed_same_sequence(self):
        a, b = RandomSource(seed=11), RandomSource(seed=11)
        assert [a.randint(0, 1000) for _ in range(20)] == [b.randint(0, 1000) for _ in range(20)]

    def test_reseed_replays(self):
        rng = RandomSource(seed=5)
        first = [rng.random() for _ in range(5)]
        rng.reseed(5)
        assert [rng.random() for _ in range(5)] == first

    def test_empty_range_rejected(self):
        with pytest.raises(ValueError):
            RandomSource(seed=1).randint(5, 4)

    def test_empty_choice_rejected(self):
        with pytest.raises(ValueError):
            RandomSource(seed=1).choice([])

    def test_chance_bounds(self):
        rng = RandomSource(seed=3)
        assert not any(rng.chance(0.0) for _ in range(100))
        assert all(rng.chance(1.0) for _ in range(100))

    def test_sample_is_distinct(self):
        picked = RandomSource(seed=8).sample(range(10), 4)
        assert len(set(picked)) == 4


class TestCoordinates:
    """Universe bounds and distance."""

    def test_generated_coordinates_in_bounds(self):
        generator = UniverseGenerator(RandomSource(seed=21))
        for _ in range(200):
            coordinate = generator.generate_coordinates()
            assert Coordinate.in_bounds(coordinate.x, coordinate.y, coordinate.z)

    def test_nearby_coordinate_is_clamped(self):
        """Offsets from a corner never leave the universe."""
        generator = UniverseGenerator(RandomSource(seed=4))
        corner = Coordinate(1000, -1000, 100)

        for _ in range(100):
            nearby = generator.nearby_coordinate(corner, max_distance=50)
            assert 950 <= nearby.x <= 1000
            assert -1000 <= nearby.y <= -950
            assert 50 <= nearby.z <= 100

    def test_nearby_rejects_negative_distance(self):
        with pytest.raises(ValueError):
            UniverseGenerator(RandomSource(seed=1)).nearby_coordinate(ORIGIN, -1)

    def test_euclidean_distance(self):
        assert UniverseGenerator.distance(ORIGIN, Coordinate(3, 4, 12)) == pytest.approx(13.0)


class TestSectorDrafts:
    """Procedural sector attributes."""

    def test_same_seed_same_sector(self):
        coordinate = Coordinate(10, -20, 3)
        first = UniverseGenerator(RandomSource(seed=99)).generate_sector(coordinate)
        second = UniverseGenerator(RandomSource(seed=99)).generate_sector(coordinate)

        assert first == second
        assert first.resources == second.resources
        assert first.hazards == second.hazards

    def test_draft_ranges(self):
        generator = UniverseGenerator(RandomSource(seed=123))
        for index in range(100):
            draft = generator.generate_sector(Coordinate(index, 0, 0))

            assert MIN_DIFFICULTY <= draft.difficulty <= MAX_DIFFICULTY
            assert len(draft.resources) <= constants.MAX_RESOURCES
            assert len(draft.hazards) <= constants.MAX_HAZARDS
            assert all(50 <= amount <= 549 for amount in draft.resources.values())
            assert all(1 <= level <= 10 for level in draft.hazards.values())

    def test_name_shape(self):
        generator = UniverseGenerator(RandomSource(seed=6))
        for _ in range(50):
            parts = generator.generate_name().split(" ")
            assert parts[0] in constants.SECTOR_PREFIXES
            assert parts[1] in constants.SECTOR_SUFFIXES
            assert len(parts) in (2, 3)

    def test_encounter_description_has_fallback(self):
        generator = UniverseGenerator(RandomSource(seed=6))
        for sector_type in constants.SECTOR_TYPES:
            assert generator.encounter_description(sector_type)
