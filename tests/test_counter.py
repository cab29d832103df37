"""Tests for the counter module."""

import random

import pytest

from top_few.counter import Counter, KeyCount, sum_counters


def counter_of(pairs: list[tuple[str, int]], capacity: int = 0) -> Counter:
    counter = Counter(capacity)
    for key, amount in pairs:
        counter.add(key, amount)
    return counter


class TestExactCounter:
    """Test cases for Counter in exact mode (capacity 0)."""

    def test_add_returns_running_total(self) -> None:
        counter = Counter()
        assert counter.add("a") == 1
        assert counter.add("a", 4) == 5
        assert counter.add("b", 2) == 2

    def test_counts_are_exact_sums(self) -> None:
        rng = random.Random(7)
        expected: dict[str, int] = {}
        counter = Counter()
        for _ in range(5000):
            key = f"k{rng.randrange(300)}"
            amount = rng.randrange(1, 5)
            expected[key] = expected.get(key, 0) + amount
            counter.add(key, amount)

        assert dict(counter.counts) == expected
        assert counter.total() == sum(expected.values())
        assert len(counter) == len(expected)

    def test_never_tracks_candidates(self) -> None:
        counter = counter_of([(f"k{i}", i) for i in range(100)])
        assert counter.is_exact
        assert dict(counter.candidates) == {}
        assert counter.threshold == 0

    def test_top_returns_every_key_ranked(self) -> None:
        counter = counter_of([("a", 3), ("b", 2), ("c", 3), ("d", 1)])
        assert counter.top() == [
            KeyCount(3, "c"),
            KeyCount(3, "a"),
            KeyCount(2, "b"),
            KeyCount(1, "d"),
        ]

    def test_merge_is_associative(self) -> None:
        a = [("x", 3), ("y", 1)]
        b = [("y", 4), ("z", 2)]
        c = [("x", 1), ("w", 9)]

        left = counter_of(a).merge(counter_of(b)).merge(counter_of(c))
        right = counter_of(a).merge(counter_of(b).merge(counter_of(c)))

        assert dict(left.counts) == dict(right.counts) == {"x": 4, "y": 5, "z": 2, "w": 9}

    def test_merge_is_commutative(self) -> None:
        a = [("x", 3), ("y", 1)]
        b = [("y", 4), ("z", 2)]
        assert dict(counter_of(a).merge(counter_of(b)).counts) == dict(
            counter_of(b).merge(counter_of(a)).counts
        )

    def test_sum_counters_merges_into_left(self) -> None:
        left = counter_of([("a", 1)])
        result = sum_counters(left, counter_of([("a", 2), ("b", 1)]))
        assert result is left
        assert dict(left.counts) == {"a": 3, "b": 1}

    def test_rejects_negative_capacity(self) -> None:
        with pytest.raises(ValueError):
            Counter(-1)


class TestApproximateCounter:
    """Test cases for Counter with a capacity."""

    def test_prune_keeps_keys_above_cutoff(self) -> None:
        """Reaching 2*capacity candidates prunes to keys above the capacity-th largest."""
        counter = counter_of([("a", 5), ("b", 4), ("c", 3)], capacity=2)
        assert counter.threshold == 0
        assert len(counter.candidates) == 3

        counter.add("d", 1)

        assert counter.threshold == 4
        assert dict(counter.candidates) == {"a": 5}
        # Counts stay exact even for evicted keys.
        assert dict(counter.counts) == {"a": 5, "b": 4, "c": 3, "d": 1}

    def test_ties_at_cutoff_are_evicted(self) -> None:
        """With capacity 1 a prune keeps only keys strictly above the largest count."""
        counter = counter_of([("a", 2), ("b", 1)], capacity=1)
        assert counter.threshold == 2
        assert dict(counter.candidates) == {}
        assert counter.top() == []

    def test_key_below_threshold_is_not_a_candidate(self) -> None:
        counter = counter_of([("a", 5), ("b", 4), ("c", 3), ("d", 1)], capacity=2)
        counter.add("e", 3)
        assert "e" not in counter.candidates
        assert "e" in counter

    def test_key_reaching_threshold_becomes_candidate_again(self) -> None:
        counter = counter_of([("a", 5), ("b", 4), ("c", 3), ("d", 1)], capacity=2)
        counter.add("b", 1)
        assert dict(counter.candidates) == {"a": 5, "b": 5}
        assert counter.top() == [KeyCount(5, "b"), KeyCount(5, "a")]

    def test_threshold_never_decreases(self) -> None:
        rng = random.Random(3)
        counter = Counter(4)
        last = 0
        for _ in range(3000):
            counter.add(f"k{rng.randrange(50)}", rng.randrange(1, 4))
            assert counter.threshold >= last
            last = counter.threshold

    def test_output_and_memory_are_bounded(self) -> None:
        rng = random.Random(11)
        counter = Counter(3)
        for _ in range(2000):
            counter.add(f"k{rng.randrange(500)}")
            assert len(counter.candidates) < 6
        assert len(counter.top()) <= 3

    def test_top_truncates_to_capacity(self) -> None:
        counter = counter_of([("a", 1), ("b", 2), ("c", 3), ("d", 4), ("e", 5)], capacity=3)
        assert counter.top() == [KeyCount(5, "e"), KeyCount(4, "d"), KeyCount(3, "c")]

    def test_scenario_from_lines(self) -> None:
        lines = ["a", "b", "a", "c", "a", "b"]
        exact = Counter()
        for line in lines:
            exact.add(line)

        ranking = Counter(2).merge(exact)
        assert ranking.top() == [KeyCount(3, "a"), KeyCount(2, "b")]


class TestKeyCount:
    """Test cases for KeyCount ordering."""

    def test_ranking_order(self) -> None:
        entries = [KeyCount(1, "z"), KeyCount(3, "a"), KeyCount(3, "b"), KeyCount(2, "m")]
        assert sorted(entries, reverse=True) == [
            KeyCount(3, "b"),
            KeyCount(3, "a"),
            KeyCount(2, "m"),
            KeyCount(1, "z"),
        ]
