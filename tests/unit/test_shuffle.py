"""Unit tests for randomized ordering (scientist/utils/shuffle.py)."""

import random

from scientist.utils.shuffle import fisher_yates_shuffle, shuffled


class AlwaysZero:
    """Random source that always picks the first index."""

    def __init__(self):
        self.calls = []

    def randrange(self, stop):
        self.calls.append(stop)
        return 0


class TestFisherYatesShuffle:
    """Tests for fisher_yates_shuffle."""

    def test_shuffles_in_place(self):
        """Test the input list is mutated and returned."""
        items = ["a", "b", "c"]
        assert fisher_yates_shuffle(items, AlwaysZero()) is items

    def test_walks_from_the_end(self):
        """Test each position swaps with an index drawn from [0, i]."""
        rng = AlwaysZero()
        items = fisher_yates_shuffle(["a", "b", "c"], rng)
        assert rng.calls == [3, 2]
        assert items == ["b", "c", "a"]

    def test_is_a_permutation(self):
        """Test the shuffle keeps every element exactly once."""
        items = list(range(50))
        fisher_yates_shuffle(items, random.Random(3))
        assert sorted(items) == list(range(50))

    def test_seeded_is_deterministic(self):
        """Test the same seed gives the same order."""
        first = fisher_yates_shuffle(list(range(10)), random.Random(99))
        second = fisher_yates_shuffle(list(range(10)), random.Random(99))
        assert first == second

    def test_short_sequences(self):
        """Test empty and single item sequences are untouched."""
        rng = AlwaysZero()
        assert fisher_yates_shuffle([], rng) == []
        assert fisher_yates_shuffle(["only"], rng) == ["only"]
        assert rng.calls == []

    def test_default_random_source(self):
        """Test a random source is created when none is given."""
        assert sorted(fisher_yates_shuffle([3, 1, 2])) == [1, 2, 3]


class TestShuffled:
    """Tests for shuffled."""

    def test_returns_copy(self):
        """Test the original iterable is left unchanged."""
        items = ("a", "b", "c")
        result = shuffled(items, AlwaysZero())
        assert result == ["b", "c", "a"]
        assert items == ("a", "b", "c")
