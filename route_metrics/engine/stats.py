"""
Summary statistics over elapsed-time samples.

Percentiles use the nearest-rank method: the value reported is always one of
the samples, never an interpolation between two.

The rank is `ceil(n * p)` with `n * p` first rounded to 9 decimal places,
so float noise does not push it up a rank. The 70th percentile of 1..10 is
therefore 7. Reports from the Node.js route-metrics tool, which takes the
ceiling of the raw float product, show 8 for the same input.
"""
import math
import statistics
from dataclasses import dataclass
from typing import List, Sequence

from route_metrics.common.models import Sample


@dataclass(frozen=True)
class SampleStats:
    n: int
    total: float
    mean: float
    stddev: float


def describe(samples: Sequence[Sample]) -> SampleStats:
    if not samples:
        raise ValueError("cannot describe an empty sample list")
    n = len(samples)
    total = sum(samples)
    # population standard deviation: divisor n, not n - 1
    return SampleStats(n=n, total=total, mean=total / n, stddev=statistics.pstdev(samples))


def percentile(p: float, sorted_samples: Sequence[Sample]) -> Sample:
    """`sorted_samples` must already be in ascending order."""
    if not sorted_samples:
        raise ValueError("cannot take a percentile of an empty sample list")
    if not 0 <= p <= 1:
        raise ValueError(f"percentile {p} is outside [0, 1]")
    if p == 0:
        return sorted_samples[0]
    # round first so 10 * 0.7 == 7.000000000000001 still ranks 7th
    rank = math.ceil(round(len(sorted_samples) * p, 9))
    return sorted_samples[max(rank, 1) - 1]


def percentiles(ps: Sequence[float], samples: Sequence[Sample]) -> List[Sample]:
    ordered = sorted(samples)
    return [percentile(p, ordered) for p in ps]


def to_milliseconds(samples: Sequence[Sample]) -> List[int]:
    """Microseconds to whole milliseconds, halves rounded up. Returns a new list."""
    return [math.floor(t / 1000 + 0.5) for t in samples]
