"""Marts (Gold) layer: category and category-group breakdown.

Two levels over the item-scoped lines of the shared predicate:

- **categories**: literal category name (empty names read as "Unknown")
- **groups**: coarse group from ``dinein_core.core.taxonomy``

Both carry per-channel item count and revenue. Per-order averages divide the
group totals by the number of distinct order ids per channel seen in the same
pass of lines, not by the Order Aggregator's count.

Order-level exports have no item granularity; the rollup is empty for them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState, build_predicate
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.core.taxonomy import MIX_GROUPS
from dinein_core.marts.stats import pct, pivot_channels, safe_div, sort_desc

logger = logging.getLogger(__name__)

MIX_COLUMNS = list(MIX_GROUPS.values())

CATEGORY_COLUMNS = [
    "category",
    "group",
    "waiter_count",
    "api_count",
    "waiter_revenue",
    "api_revenue",
    "total",
    "total_revenue",
    "api_pct",
]
GROUP_COLUMNS = [
    "group",
    "waiter_count",
    "api_count",
    "waiter_revenue",
    "api_revenue",
    "total",
    "total_revenue",
    "api_pct",
    "waiter_avg_per_order",
    "api_avg_per_order",
    "total_avg_per_order",
    "waiter_pct_of_total",
    "api_pct_of_total",
]


@dataclass(frozen=True)
class ItemMix:
    """Average combo items per order, by coarse group, for one channel."""

    mains: float = 0.0
    drinks: float = 0.0
    sides: float = 0.0
    desserts: float = 0.0
    kids: float = 0.0
    total: float = 0.0
    order_count: int = 0

    @classmethod
    def from_orders(cls, orders: pd.DataFrame) -> ItemMix:
        n = len(orders)
        if not n:
            return cls()
        means = {col: float(orders[col].sum()) / n for col in MIX_COLUMNS + ["total"]}
        return cls(order_count=n, **means)


@dataclass(frozen=True, eq=False)
class CategoryRollup:
    categories: pd.DataFrame
    groups: pd.DataFrame
    waiter_mix: ItemMix = field(default_factory=ItemMix)
    api_mix: ItemMix = field(default_factory=ItemMix)
    order_counts: dict[str, int] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> CategoryRollup:
        return cls(
            categories=pd.DataFrame(columns=CATEGORY_COLUMNS),
            groups=pd.DataFrame(columns=GROUP_COLUMNS),
            order_counts={channel: 0 for channel in F.CHANNELS},
        )

    @property
    def is_empty(self) -> bool:
        return self.categories.empty


def order_item_mix(rows: pd.DataFrame) -> pd.DataFrame:
    """Per-order combo-item counts by group.

    Args:
        rows: Item-scoped lines.

    Returns:
        DataFrame with ``order_id, channel`` (first line wins), one column per
        mix group (mains, drinks, sides, desserts, kids) and ``total``. Only
        ``COMBO_ITEM`` quantities are counted; orders without any still appear
        with zeros.
    """
    orders = rows.drop_duplicates("order_id", keep="first")[["order_id", "channel"]]
    orders = orders.set_index("order_id")

    combo = rows.loc[rows["item_kind"] == F.COMBO_ITEM]
    mixed = combo.assign(mix=combo["group"].map(MIX_GROUPS)).dropna(subset=["mix"])
    if mixed.empty:
        counts = pd.DataFrame(0, index=orders.index, columns=MIX_COLUMNS)
    else:
        counts = mixed.groupby(["order_id", "mix"])["quantity"].sum().unstack("mix")
        counts = counts.reindex(index=orders.index, columns=MIX_COLUMNS).fillna(0)

    out = orders.join(counts.astype(int))
    out["total"] = combo.groupby("order_id")["quantity"].sum().reindex(orders.index).fillna(0).astype(int)
    return out.reset_index()


def _channel_table(rows: pd.DataFrame, keys: list[str]) -> pd.DataFrame:
    table = pivot_channels(rows.rename(columns={"quantity": "count"}), keys, ["count", "revenue"])
    table["waiter_count"] = table["waiter_count"].astype(int)
    table["api_count"] = table["api_count"].astype(int)
    table["total"] = table["waiter_count"] + table["api_count"]
    table["total_revenue"] = table["waiter_revenue"] + table["api_revenue"]
    table["api_pct"] = [pct(a, t) for a, t in zip(table["api_count"], table["total"])]
    return table


def category_rollup(dataset: NormalizedDataset, filters: FilterState | None = None) -> CategoryRollup:
    """Category and group tables plus per-order item mix.

    Args:
        dataset: Normalized dataset.
        filters: Active filters.

    Returns:
        CategoryRollup, empty for order-level data.
    """
    if not dataset.is_item_level:
        logger.warning("Category rollup needs item-level data; returning empty result")
        return CategoryRollup.empty()

    rows = build_predicate(dataset, filters).select_items(dataset.frame)
    if rows.empty:
        return CategoryRollup.empty()

    # Denominator: distinct order ids per channel in this same pass
    firsts = rows.drop_duplicates("order_id", keep="first")
    order_counts = {channel: int((firsts["channel"] == channel).sum()) for channel in F.CHANNELS}
    total_orders = sum(order_counts.values())

    categories = _channel_table(rows, ["category", "group"])
    categories = sort_desc(categories[CATEGORY_COLUMNS], "total")

    groups = _channel_table(rows, ["group"])
    waiter_items = groups["waiter_count"].sum()
    api_items = groups["api_count"].sum()
    groups["waiter_avg_per_order"] = [safe_div(c, order_counts[F.WAITER]) for c in groups["waiter_count"]]
    groups["api_avg_per_order"] = [safe_div(c, order_counts[F.API]) for c in groups["api_count"]]
    groups["total_avg_per_order"] = [safe_div(t, total_orders) for t in groups["total"]]
    groups["waiter_pct_of_total"] = [pct(c, waiter_items) for c in groups["waiter_count"]]
    groups["api_pct_of_total"] = [pct(c, api_items) for c in groups["api_count"]]
    groups = sort_desc(groups[GROUP_COLUMNS], "total")

    mix = order_item_mix(rows)
    result = CategoryRollup(
        categories=categories,
        groups=groups,
        waiter_mix=ItemMix.from_orders(mix.loc[mix["channel"] == F.WAITER]),
        api_mix=ItemMix.from_orders(mix.loc[mix["channel"] == F.API]),
        order_counts=order_counts,
    )
    logger.debug(
        "Category rollup: %d categor(ies), %d group(s), orders waiter=%d api=%d",
        len(categories),
        len(groups),
        order_counts[F.WAITER],
        order_counts[F.API],
    )
    return result
