"""Per-operation counters keyed by host address or queue name."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from .classifier import OPERATIONS, Operation

OperationCounts = Dict[Operation, int]


def zeroed_counts() -> OperationCounts:
    return {operation: 0 for operation in OPERATIONS}


class TallyBucket:
    """Maps a key to a full set of operation counters.

    Keys are created on first observation with every operation set to zero, so
    readers never have to guard against missing operations.
    """

    def __init__(self) -> None:
        self._counts: Dict[str, OperationCounts] = {}

    def counts_for(self, key: str) -> OperationCounts:
        counts = self._counts.get(key)
        if counts is None:
            counts = zeroed_counts()
            self._counts[key] = counts
        return counts

    def increment(self, key: str, operation: Operation) -> None:
        self.counts_for(key)[operation] += 1

    def get(self, key: str) -> Optional[Mapping[Operation, int]]:
        return self._counts.get(key)

    def keys(self, sort_key: Optional[Callable[[str], Any]] = None) -> List[str]:
        return sorted(self._counts, key=sort_key)

    def total(self, operation: Operation) -> int:
        return sum(counts[operation] for counts in self._counts.values())

    def __contains__(self, key: object) -> bool:
        return key in self._counts

    def __len__(self) -> int:
        return len(self._counts)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


class TotalsBucket:
    """Operation counters for every data packet, split by the content filter."""

    ALL = "all"
    MATCHED = "matched"
    FILTERED = "filtered"
    ROWS = (ALL, MATCHED, FILTERED)

    def __init__(self) -> None:
        self.all: OperationCounts = zeroed_counts()
        self.matched: OperationCounts = zeroed_counts()
        self.filtered: OperationCounts = zeroed_counts()

    def record(self, operation: Operation, matched: bool) -> None:
        self.all[operation] += 1
        if matched:
            self.matched[operation] += 1
        else:
            self.filtered[operation] += 1

    def row(self, name: str) -> OperationCounts:
        if name not in self.ROWS:
            raise KeyError(name)
        return getattr(self, name)


__all__ = ["OperationCounts", "zeroed_counts", "TallyBucket", "TotalsBucket"]
