"""Numeric helpers and bin definitions shared by the rollups."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

import pandas as pd

from dinein_core.core import fields as F

# Order value histogram: width-50 bins, the last bin is open-ended
VALUE_BIN_WIDTH = 50
VALUE_BIN_COUNT = 9
VALUE_BIN_LABELS = (
    "0-50",
    "50-100",
    "100-150",
    "150-200",
    "200-250",
    "250-300",
    "300-350",
    "350-400",
    "400+",
)

BASKET_BIN_LABELS = ("1-2", "3-4", "5-6", "7-8", "9-10", "11+")
MAINS_BUCKETS = ("0", "1", "2", "3", "4", "5+")
ROUNDS_BUCKETS = ("1", "2", "3", "4", "5+")

# 5+ rounds are estimated at 5.5 when averaging
ROUNDS_WEIGHTS = {"1": 1.0, "2": 2.0, "3": 3.0, "4": 4.0, "5+": 5.5}

TOP_ITEMS = 30
TOP_ADDONS = 10


def safe_div(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 when the denominator is 0.

    Examples:
        >>> safe_div(100, 4)
        25.0
        >>> safe_div(100, 0)
        0.0
    """
    if not denominator:
        return 0.0
    return float(numerator) / float(denominator)


def pct(part: float, whole: float) -> float:
    return safe_div(part * 100.0, whole)


def median(values: Iterable[float]) -> float:
    """Exact median by full sort. Empty input gives 0.

    Examples:
        >>> median([])
        0.0
        >>> median([10, 20])
        15.0
        >>> median([30, 10, 20])
        20.0
    """
    ordered = sorted(float(v) for v in values)
    n = len(ordered)
    if n == 0:
        return 0.0
    mid = n // 2
    if n % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def value_bin_index(bill: float) -> int:
    """Histogram bin for an order value, clamped to ``[0, 8]``.

    Examples:
        >>> value_bin_index(49.99), value_bin_index(50), value_bin_index(449)
        (0, 1, 8)
    """
    index = int(math.floor(bill / VALUE_BIN_WIDTH))
    return max(0, min(index, VALUE_BIN_COUNT - 1))


def value_histogram(values: Iterable[float]) -> list[int]:
    """Count order values into the 9 value bins."""
    bins = [0] * VALUE_BIN_COUNT
    for value in values:
        bins[value_bin_index(value)] += 1
    return bins


def basket_bin_index(size: int) -> int:
    """Basket-size bin: 1-2, 3-4, 5-6, 7-8, 9-10, 11+ (sizes below 1 fall in 1-2)."""
    if size <= 2:
        return 0
    if size > 10:
        return len(BASKET_BIN_LABELS) - 1
    return (int(size) - 1) // 2


def count_bucket(count: int, buckets: Sequence[str]) -> str:
    """Bucket a count into labels like ``("0", ..., "4", "5+")``.

    Counts below the first bucket land in the first bucket.

    Examples:
        >>> count_bucket(7, MAINS_BUCKETS)
        '5+'
        >>> count_bucket(0, ROUNDS_BUCKETS)
        '1'
    """
    low = int(buckets[0])
    top = int(buckets[-1].rstrip("+"))
    if count >= top:
        return buckets[-1]
    return str(max(int(count), low))


def pivot_channels(frame: pd.DataFrame, keys: list[str], values: list[str]) -> pd.DataFrame:
    """Sum ``values`` per key and channel into ``<channel>_<value>`` columns.

    Both channels are always present, filled with 0 when absent.

    Args:
        frame: Lines or orders with a ``channel`` column.
        keys: Grouping columns kept as regular columns in the result.
        values: Numeric columns to sum.

    Returns:
        DataFrame with ``keys`` followed by ``waiter_<v>`` / ``api_<v>`` columns.
    """
    columns = [f"{channel}_{value}" for channel in F.CHANNELS for value in values]
    if frame.empty:
        return pd.DataFrame(columns=keys + columns)

    sums = frame.groupby(keys + ["channel"], sort=False)[values].sum().unstack("channel")
    sums = sums.fillna(0)
    out = pd.DataFrame(index=sums.index)
    for channel in F.CHANNELS:
        for value in values:
            col = (value, channel)
            out[f"{channel}_{value}"] = sums[col] if col in sums.columns else 0
    return out.reset_index()


def sort_desc(frame: pd.DataFrame, column: str) -> pd.DataFrame:
    """Stable descending sort, ties keep first-seen order."""
    return frame.sort_values(column, ascending=False, kind="mergesort").reset_index(drop=True)
