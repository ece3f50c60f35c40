"""Marts (Gold) layer: table-size estimation from mains per order.

Mains are COMBO_ITEM lines in the "Mains" group; addons never count. The
estimate is the average number of mains over orders that have at least one
main ("1+" mode). Orders without mains, usually flat-billed AYCE tables, are
left out of the denominator. The "2+" mode also leaves out single-main orders
to approximate multi-guest tables and reports how many it skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.filters import MIN_MAINS_VALUES, FilterState, build_predicate
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.exceptions import ConfigError
from dinein_core.marts.categories import order_item_mix
from dinein_core.marts.stats import MAINS_BUCKETS, count_bucket, pct

logger = logging.getLogger(__name__)

DISTRIBUTION_COLUMNS = ["mains", "waiter", "api", "waiter_pct", "api_pct"]


@dataclass(frozen=True)
class TableSizeEstimate:
    """Average mains over the orders a mode keeps.

    Attributes:
        avg_mains: Mean mains per kept order (0 when none are kept).
        order_count: Orders kept.
        excluded_single_main: Single-main orders skipped ("2+" mode only).
    """

    avg_mains: float = 0.0
    order_count: int = 0
    excluded_single_main: int = 0


def estimate_table_size(mains: Iterable[int], min_mains: int = 1) -> TableSizeEstimate:
    """Estimate table size from per-order mains counts.

    Args:
        mains: Mains count of each order.
        min_mains: 1 keeps orders with mains > 0; 2 keeps orders with mains >= 2.

    Returns:
        TableSizeEstimate.

    Raises:
        ConfigError: If ``min_mains`` is not 1 or 2.

    Examples:
        >>> estimate_table_size([0, 1, 2, 3]).avg_mains
        2.0
        >>> estimate_table_size([0, 1, 2, 3], min_mains=2).avg_mains
        2.5
    """
    if min_mains not in MIN_MAINS_VALUES:
        raise ConfigError(f"Invalid min_mains {min_mains}. Must be 1 or 2.")
    counts = [int(m) for m in mains]
    kept = [m for m in counts if m >= min_mains]
    excluded = sum(1 for m in counts if m == 1) if min_mains == 2 else 0
    if not kept:
        return TableSizeEstimate(excluded_single_main=excluded)
    return TableSizeEstimate(
        avg_mains=sum(kept) / len(kept),
        order_count=len(kept),
        excluded_single_main=excluded,
    )


@dataclass(frozen=True)
class ChannelTableSize:
    """Mains distribution and both estimates for one channel."""

    distribution: dict[str, int] = field(default_factory=lambda: dict.fromkeys(MAINS_BUCKETS, 0))
    one_plus: TableSizeEstimate = field(default_factory=TableSizeEstimate)
    two_plus: TableSizeEstimate = field(default_factory=TableSizeEstimate)

    @classmethod
    def from_mains(cls, mains: Iterable[int]) -> ChannelTableSize:
        counts = [int(m) for m in mains]
        distribution = dict.fromkeys(MAINS_BUCKETS, 0)
        for m in counts:
            distribution[count_bucket(m, MAINS_BUCKETS)] += 1
        return cls(
            distribution=distribution,
            one_plus=estimate_table_size(counts, 1),
            two_plus=estimate_table_size(counts, 2),
        )

    @property
    def orders_without_mains(self) -> int:
        return self.distribution["0"]

    @property
    def single_main_orders(self) -> int:
        return self.distribution["1"]

    @property
    def orders_with_mains(self) -> int:
        return sum(count for bucket, count in self.distribution.items() if bucket != "0")

    def estimate(self, min_mains: int) -> TableSizeEstimate:
        return self.two_plus if min_mains == 2 else self.one_plus


@dataclass(frozen=True, eq=False)
class TableSizeRollup:
    waiter: ChannelTableSize = field(default_factory=ChannelTableSize)
    api: ChannelTableSize = field(default_factory=ChannelTableSize)
    min_mains: int = 1

    def selected(self, channel: str) -> TableSizeEstimate:
        """Estimate for ``channel`` in the active min-mains mode."""
        side = self.api if channel == F.API else self.waiter
        return side.estimate(self.min_mains)

    @property
    def distribution(self) -> pd.DataFrame:
        """Orders per mains bucket (1 to 5+) with shares of orders that have mains."""
        buckets = [b for b in MAINS_BUCKETS if b != "0"]
        waiter_base = self.waiter.orders_with_mains
        api_base = self.api.orders_with_mains
        return pd.DataFrame(
            {
                "mains": buckets,
                "waiter": [self.waiter.distribution[b] for b in buckets],
                "api": [self.api.distribution[b] for b in buckets],
                "waiter_pct": [pct(self.waiter.distribution[b], waiter_base) for b in buckets],
                "api_pct": [pct(self.api.distribution[b], api_base) for b in buckets],
            },
            columns=DISTRIBUTION_COLUMNS,
        )


def table_size_rollup(dataset: NormalizedDataset, filters: FilterState | None = None) -> TableSizeRollup:
    """Mains distribution and table-size estimates per channel.

    Args:
        dataset: Normalized dataset.
        filters: Active filters; ``min_mains`` picks the selected mode.

    Returns:
        TableSizeRollup, empty for order-level data.
    """
    filters = filters or FilterState()
    if not dataset.is_item_level:
        logger.warning("Table-size rollup needs item-level data; returning empty result")
        return TableSizeRollup(min_mains=filters.min_mains)

    rows = build_predicate(dataset, filters).select_items(dataset.frame)
    mix = order_item_mix(rows)
    is_api = mix["channel"] == F.API
    rollup = TableSizeRollup(
        waiter=ChannelTableSize.from_mains(mix.loc[~is_api, "mains"]),
        api=ChannelTableSize.from_mains(mix.loc[is_api, "mains"]),
        min_mains=filters.min_mains,
    )
    logger.debug(
        "Table size (%d+): waiter=%.2f api=%.2f",
        filters.min_mains,
        rollup.selected(F.WAITER).avg_mains,
        rollup.selected(F.API).avg_mains,
    )
    return rollup
