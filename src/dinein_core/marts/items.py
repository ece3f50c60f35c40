"""Marts (Gold) layer: item, combo and AYCE analytics.

All tables are built from the item-scoped lines of the shared predicate and
are empty for order-level exports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState, build_predicate
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.marts.stats import TOP_ITEMS, sort_desc

logger = logging.getLogger(__name__)

STAT_COLUMNS = ["name", "count", "revenue", "price", "is_ayce"]
TYPE_COLUMNS = ["item_kind", "count", "revenue"]
AYCE_COLUMNS = ["name", "count", "revenue"]

AYCE_LABEL = "AYCE"
NON_AYCE_LABEL = "Non-AYCE"


@dataclass(frozen=True, eq=False)
class ItemAnalytics:
    """Top item/combo tables and distributions.

    Attributes:
        item_sales: Top items by quantity.
        item_revenue: Top items by revenue.
        item_types: Quantity and revenue per item kind, by quantity descending.
        combo_sales: Top combos by position quantity.
        combo_revenue: Top combos by combo revenue.
        ayce: Quantity and revenue of AYCE vs non-AYCE lines.
    """

    item_sales: pd.DataFrame
    item_revenue: pd.DataFrame
    item_types: pd.DataFrame
    combo_sales: pd.DataFrame
    combo_revenue: pd.DataFrame
    ayce: pd.DataFrame

    @classmethod
    def empty(cls) -> ItemAnalytics:
        return cls(
            item_sales=pd.DataFrame(columns=STAT_COLUMNS),
            item_revenue=pd.DataFrame(columns=STAT_COLUMNS),
            item_types=pd.DataFrame(columns=TYPE_COLUMNS),
            combo_sales=pd.DataFrame(columns=STAT_COLUMNS),
            combo_revenue=pd.DataFrame(columns=STAT_COLUMNS),
            ayce=pd.DataFrame(columns=AYCE_COLUMNS),
        )


def _last_positive(prices: pd.Series) -> float:
    """Most recent non-zero price, else the first price seen."""
    positive = prices[prices > 0]
    if not positive.empty:
        return float(positive.iloc[-1])
    return float(prices.iloc[0])


def _name_stats(lines: pd.DataFrame, name: str, count: str, price: str, ayce: str) -> pd.DataFrame:
    """Aggregate lines by ``name`` in first-seen order."""
    if lines.empty:
        return pd.DataFrame(columns=STAT_COLUMNS)
    work = lines.assign(_count=lines[count], _revenue=lines[price] * lines[count])
    grouped = work.groupby(name, sort=False)
    stats = pd.DataFrame(
        {
            "count": grouped["_count"].sum().astype(int),
            "revenue": grouped["_revenue"].sum().astype(float),
            "price": grouped[price].agg(_last_positive),
            "is_ayce": grouped[ayce].first().astype(bool),
        }
    )
    stats.index.name = "name"
    return stats.reset_index()[STAT_COLUMNS]


def _top(stats: pd.DataFrame, column: str, n: int = TOP_ITEMS) -> pd.DataFrame:
    return sort_desc(stats, column).head(n)


def ayce_distribution(rows: pd.DataFrame) -> pd.DataFrame:
    """Quantity and revenue split between AYCE and other lines."""
    is_ayce = rows["is_ayce"].astype(bool)
    records = []
    for label, mask in ((AYCE_LABEL, is_ayce), (NON_AYCE_LABEL, ~is_ayce)):
        records.append(
            {
                "name": label,
                "count": int(rows.loc[mask, "quantity"].sum()),
                "revenue": float(rows.loc[mask, "revenue"].sum()),
            }
        )
    return pd.DataFrame(records, columns=AYCE_COLUMNS)


def item_analytics(dataset: NormalizedDataset, filters: FilterState | None = None) -> ItemAnalytics:
    """Build the item, item-type, combo and AYCE tables.

    Args:
        dataset: Normalized dataset.
        filters: Active filters.

    Returns:
        ItemAnalytics, empty for order-level data.
    """
    if not dataset.is_item_level:
        logger.warning("Item analytics need item-level data; returning empty result")
        return ItemAnalytics.empty()

    rows = build_predicate(dataset, filters).select_items(dataset.frame)
    if rows.empty:
        return ItemAnalytics.empty()

    items = _name_stats(rows, "item_name", "quantity", "price", "is_ayce")

    types = rows.groupby("item_kind", sort=False).agg(count=("quantity", "sum"), revenue=("revenue", "sum"))
    types = sort_desc(types.reset_index()[TYPE_COLUMNS], "count")

    # One COMBO_ITEM line per position carries the combo
    combo_lines = rows.loc[(rows["item_kind"] == F.COMBO_ITEM) & (rows["combo_name"] != F.UNKNOWN_NAME)]
    combos = _name_stats(combo_lines, "combo_name", "position_quantity", "combo_price", "is_combo_ayce")

    logger.debug("Item analytics: %d item(s), %d combo(s)", len(items), len(combos))
    return ItemAnalytics(
        item_sales=_top(items, "count"),
        item_revenue=_top(items, "revenue"),
        item_types=types,
        combo_sales=_top(combos, "count"),
        combo_revenue=_top(combos, "revenue"),
        ayce=ayce_distribution(rows),
    )
