"""Nearest-rank percentile computation over payload size samples."""

from __future__ import annotations

from typing import Iterable, List, Sequence

import numpy as np

SMALL_SAMPLE_THRESHOLD = 100
DEFAULT_PERCENTILES = (50.0, 90.0, 99.0)


def normalize_percentiles(values: Iterable[float]) -> List[float]:
    """Clamp into [0, 100], drop duplicates and sort ascending."""
    clamped = {min(max(float(value), 0.0), 100.0) for value in values}
    return sorted(clamped)


def percentile_index(length: int, p: float) -> int:
    # numpy rounds half to even: 5 samples at p=50 select index 2.
    index = int(np.rint(length * p / 100.0))
    return int(np.clip(index, 0, length - 1))


def percentile_value(sorted_samples: Sequence[int], p: float) -> int:
    if len(sorted_samples) == 0:
        raise ValueError("percentile of an empty sample set is undefined")
    return int(sorted_samples[percentile_index(len(sorted_samples), p)])


def compute_percentiles(samples: Sequence[int], percentiles: Sequence[float]) -> List[int]:
    """Sort a copy of ``samples`` and return one value per percentile."""
    ordered = np.sort(np.asarray(samples, dtype=np.int64))
    return [percentile_value(ordered, p) for p in percentiles]


def percentile_label(p: float) -> str:
    if p == 0:
        return "min"
    if p == 100:
        return "max"
    return f"p{p:g}"


def is_small_sample(samples: Sequence[int]) -> bool:
    return len(samples) < SMALL_SAMPLE_THRESHOLD


__all__ = [
    "SMALL_SAMPLE_THRESHOLD",
    "DEFAULT_PERCENTILES",
    "normalize_percentiles",
    "percentile_index",
    "percentile_value",
    "compute_percentiles",
    "percentile_label",
    "is_small_sample",
]
