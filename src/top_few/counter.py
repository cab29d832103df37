"""Key tallies: exact counting and capacity-bounded heavy-hitter tracking."""

import heapq
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True, slots=True, order=True)
class KeyCount:
    """A key with its count. Natural ordering is (count, key); rankings sort it in reverse."""

    count: int
    key: str


class Counter:
    """
    Mutable key -> count tally.

    With capacity 0 the counter is exact: every key is kept and nothing is ever
    pruned. With capacity N > 0 it additionally tracks a bounded set of
    candidates for the top N. Once the candidate set grows to 2N members it is
    pruned to the keys strictly above the N-th largest candidate count, and that
    count becomes the minimum a key must reach to become a candidate again.
    Keys tied at the cutoff are evicted too.
    """

    def __init__(self, capacity: int = 0):
        if capacity < 0:
            raise ValueError(f"capacity must not be negative, got {capacity}")
        self._capacity = capacity
        self._counts: dict[str, int] = {}
        self._candidates: dict[str, int] = {}
        self._threshold = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_exact(self) -> bool:
        return self._capacity == 0

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def counts(self) -> Mapping[str, int]:
        return MappingProxyType(self._counts)

    @property
    def candidates(self) -> Mapping[str, int]:
        return MappingProxyType(self._candidates)

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, key: object) -> bool:
        return key in self._counts

    def total(self) -> int:
        """Sum of all counts."""
        return sum(self._counts.values())

    def add(self, key: str, amount: int = 1) -> int:
        """Add `amount` to `key` and return its new total."""
        count = self._counts.get(key, 0) + amount
        self._counts[key] = count

        if self._capacity == 0 or count < self._threshold:
            return count

        self._candidates[key] = count
        if len(self._candidates) >= 2 * self._capacity:
            self._prune()
        return count

    def _prune(self) -> None:
        cutoff = heapq.nlargest(self._capacity, self._candidates.values())[-1]
        self._threshold = cutoff
        self._candidates = {k: v for k, v in self._candidates.items() if v > cutoff}

    def merge(self, other: "Counter") -> "Counter":
        """
        Fold the exact counts of `other` into this counter and return self.

        This re-runs `add` for every key, so candidacy is judged against this
        counter's threshold. Between two exact counters the result does not
        depend on merge order.
        """
        for key, count in other._counts.items():
            self.add(key, count)
        return self

    def top(self) -> list[KeyCount]:
        """Ranked keys: count descending, then key descending."""
        source = self._counts if self._capacity == 0 else self._candidates
        ranked = sorted((KeyCount(count, key) for key, count in source.items()), reverse=True)
        if self._capacity:
            del ranked[self._capacity :]
        return ranked


def sum_counters(left: Counter, right: Counter) -> Counter:
    """Reduction step: merge `right` into `left`."""
    return left.merge(right)
