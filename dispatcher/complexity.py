"""
Timing-based complexity estimate.

This is a heuristic over a handful of wall-clock samples, not a proof of
complexity. Every surface that shows the labels must say so; the summary
carries ``COMPLEXITY_NOTE`` for that purpose.
"""

import math
from typing import Optional, Sequence, Tuple

from .constant import TimeComplexity

COMPLEXITY_NOTE = ("approximate: inferred from the growth of measured time "
                   "and memory across test cases, not from the algorithm")

DEFAULT_ESTIMATE = (TimeComplexity.LINEAR.value,
                    TimeComplexity.CONSTANT.value)

# fixed ratio thresholds, used when input sizes do not grow enough
QUADRATIC_RATIO = 4.0
LINEARITHMIC_RATIO = 2.0
CONSTANT_RATIO = 1.5
# below this size ratio the size-relative thresholds are meaningless
MIN_SIZE_RATIO = 2.0


def _ratio(values: Sequence[float], floor: float) -> float:
    return max(values) / max(min(values), floor)


def _size_ratio(sizes: Optional[Sequence[int]]) -> Optional[float]:
    if not sizes or len(sizes) < 2:
        return None
    ratio = max(sizes) / max(min(sizes), 1)
    return ratio if ratio >= MIN_SIZE_RATIO else None


def _time_label(growth: float, size_ratio: Optional[float]) -> str:
    if growth < CONSTANT_RATIO:
        return TimeComplexity.CONSTANT.value
    if size_ratio is None:
        quadratic, linearithmic = QUADRATIC_RATIO, LINEARITHMIC_RATIO
    else:
        quadratic = size_ratio**2
        linearithmic = size_ratio * math.log2(size_ratio)
    if growth > quadratic:
        return TimeComplexity.QUADRATIC.value
    if growth > linearithmic:
        return TimeComplexity.LINEARITHMIC.value
    return TimeComplexity.LINEAR.value


def _space_label(memories: Sequence[float],
                 size_ratio: Optional[float]) -> str:
    samples = [m for m in memories if m and m > 0]
    if len(samples) < 2:
        return TimeComplexity.CONSTANT.value
    growth = _ratio(samples, floor=1e-6)
    if size_ratio is not None and growth > size_ratio**2:
        return TimeComplexity.QUADRATIC.value
    if growth > CONSTANT_RATIO:
        return TimeComplexity.LINEAR.value
    return TimeComplexity.CONSTANT.value


def estimate(
    times: Sequence[float],
    memories: Sequence[float] = (),
    sizes: Optional[Sequence[int]] = None,
) -> Tuple[str, str]:
    """Classify (time, space) from samples ordered by ascending input size.

    ``times`` are in ms, ``memories`` in MB, ``sizes`` the input lengths.
    """
    if len(times) < 2:
        return DEFAULT_ESTIMATE
    size_ratio = _size_ratio(sizes)
    # the fastest sample is floored at 1 ms
    growth = _ratio(times, floor=1.0)
    return _time_label(growth, size_ratio), _space_label(memories, size_ratio)
