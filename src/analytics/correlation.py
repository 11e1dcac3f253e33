"""Paired time-series Pearson correlation for trigger and lifestyle analysis."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Tuple

import numpy as np

from constants import MIN_MATCHED_PAIRS

log = logging.getLogger("correlation")

DatedValue = Mapping[str, Any]  # {"date": "YYYY-MM-DD", "value": number}


def match_by_date(
    series_x: Iterable[DatedValue], series_y: Iterable[DatedValue]
) -> List[Tuple[float, float]]:
    """Pair values that share an exact date key.

    Every x entry is paired with the first y entry on the same date; x entries
    without a same-day counterpart are dropped.
    """
    first_y = {}
    for point in series_y:
        first_y.setdefault(point["date"], float(point["value"]))
    return [
        (float(point["value"]), first_y[point["date"]])
        for point in series_x
        if point["date"] in first_y
    ]


def _is_zero_spread(spread: float, scale: float) -> bool:
    return spread <= 1e-12 * max(1.0, abs(scale))


def pearson(pairs: List[Tuple[float, float]]) -> float:
    """Pearson r over (x, y) pairs; 0.0 for < 3 pairs or zero variance."""
    n = len(pairs)
    if n < MIN_MATCHED_PAIRS:
        return 0.0

    arr = np.asarray(pairs, dtype=np.float64)
    x, y = arr[:, 0], arr[:, 1]
    sum_x, sum_y = x.sum(), y.sum()

    numerator = n * (x * y).sum() - sum_x * sum_y
    spread_x = n * (x * x).sum() - sum_x ** 2
    spread_y = n * (y * y).sum() - sum_y ** 2
    # constant series leave only float cancellation residue here
    if _is_zero_spread(spread_x, n * (x * x).sum()) or _is_zero_spread(spread_y, n * (y * y).sum()):
        return 0.0
    denominator = np.sqrt(spread_x * spread_y)

    r = float(numerator / denominator)
    return max(-1.0, min(1.0, r))


def correlate_series(series_x: Iterable[DatedValue], series_y: Iterable[DatedValue]) -> float:
    """Date-matched Pearson correlation in [-1, 1]."""
    pairs = match_by_date(series_x, series_y)
    r = pearson(pairs)
    log.debug("correlate_series: %d matched pairs, r=%.3f", len(pairs), r)
    return r
