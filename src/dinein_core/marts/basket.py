"""Marts (Gold) layer: basket composition and addon attach rates.

Per order (from the item-scoped lines of the shared predicate):

- ``total_items``: COMBO_ITEM quantity
- ``total_addons``: COMBO_ADDON quantity, free or paid
- ``total_paid_addons`` / ``addon_revenue``: COMBO_ADDON lines with price > 0
- ``item_revenue``: COMBO_ITEM price x quantity
- ``bill``: order total from the first line of the order

Free options (size, milk type, ...) are addons with a zero price and are kept
out of every addon metric except ``total_addons``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState, build_predicate
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.marts.stats import (
    BASKET_BIN_LABELS,
    TOP_ADDONS,
    basket_bin_index,
    pct,
    safe_div,
    sort_desc,
)

logger = logging.getLogger(__name__)

ORDER_COLUMNS = [
    "order_id",
    "channel",
    "bill",
    "total_items",
    "total_addons",
    "total_paid_addons",
    "item_revenue",
    "addon_revenue",
    "basket_size",
]
ADDON_COLUMNS = ["name", "count", "revenue", "avg_price", "prices"]


@dataclass(frozen=True)
class BasketMetrics:
    """Basket averages for one channel.

    ``avg_paid_addons`` divides by every order; ``avg_paid_addons_when_present``
    only by orders with at least one paid addon.
    """

    order_count: int = 0
    avg_items: float = 0.0
    avg_paid_addons: float = 0.0
    avg_paid_addons_when_present: float = 0.0
    addon_rate: float = 0.0
    avg_item_revenue: float = 0.0
    avg_addon_revenue: float = 0.0
    avg_basket_size: float = 0.0
    avg_order_value: float = 0.0
    orders_with_addons: int = 0
    total_addon_revenue: float = 0.0

    @classmethod
    def from_orders(cls, orders: pd.DataFrame) -> BasketMetrics:
        n = len(orders)
        if not n:
            return cls()
        with_addons = orders.loc[orders["total_paid_addons"] > 0]
        paid_addons = int(orders["total_paid_addons"].sum())
        return cls(
            order_count=n,
            avg_items=orders["total_items"].sum() / n,
            avg_paid_addons=paid_addons / n,
            avg_paid_addons_when_present=safe_div(with_addons["total_paid_addons"].sum(), len(with_addons)),
            addon_rate=pct(len(with_addons), n),
            avg_item_revenue=orders["item_revenue"].sum() / n,
            avg_addon_revenue=orders["addon_revenue"].sum() / n,
            avg_basket_size=orders["basket_size"].sum() / n,
            avg_order_value=orders["bill"].sum() / n,
            orders_with_addons=len(with_addons),
            total_addon_revenue=float(orders["addon_revenue"].sum()),
        )


@dataclass(frozen=True, eq=False)
class BasketRollup:
    """Per-order basket frame plus the channel comparisons built from it."""

    orders: pd.DataFrame
    waiter: BasketMetrics = field(default_factory=BasketMetrics)
    api: BasketMetrics = field(default_factory=BasketMetrics)
    distribution: pd.DataFrame = field(
        default_factory=lambda: basket_distribution(pd.DataFrame(columns=ORDER_COLUMNS))
    )
    top_addons: dict[str, pd.DataFrame] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> BasketRollup:
        return cls(
            orders=pd.DataFrame(columns=ORDER_COLUMNS),
            top_addons={channel: pd.DataFrame(columns=ADDON_COLUMNS) for channel in F.CHANNELS},
        )

    def metrics(self, channel: str) -> BasketMetrics:
        return self.api if channel == F.API else self.waiter


def order_baskets(rows: pd.DataFrame) -> pd.DataFrame:
    """One row per order with item/addon counts and revenues.

    Args:
        rows: Item-scoped lines carrying a ``revenue`` column.

    Returns:
        DataFrame with columns ``ORDER_COLUMNS`` in first-seen order.
    """
    is_item = rows["item_kind"] == F.COMBO_ITEM
    is_addon = rows["item_kind"] == F.COMBO_ADDON
    is_paid = is_addon & (rows["price"] > 0)
    work = pd.DataFrame(
        {
            "order_id": rows["order_id"],
            "total_items": rows["quantity"].where(is_item, 0),
            "total_addons": rows["quantity"].where(is_addon, 0),
            "total_paid_addons": rows["quantity"].where(is_paid, 0),
            "item_revenue": rows["revenue"].where(is_item, 0.0),
            "addon_revenue": rows["revenue"].where(is_paid, 0.0),
        }
    )
    sums = work.groupby("order_id", sort=False).sum()
    firsts = rows.drop_duplicates("order_id", keep="first").set_index("order_id")[["channel", "bill"]]
    orders = firsts.join(sums)
    orders["basket_size"] = orders["total_items"] + orders["total_paid_addons"]
    return orders.reset_index()[ORDER_COLUMNS]


def basket_distribution(orders: pd.DataFrame) -> pd.DataFrame:
    """Order counts per basket-size bin and channel."""
    waiter = [0] * len(BASKET_BIN_LABELS)
    api = [0] * len(BASKET_BIN_LABELS)
    for size, channel in zip(orders["basket_size"], orders["channel"]):
        target = api if channel == F.API else waiter
        target[basket_bin_index(int(size))] += 1
    return pd.DataFrame({"bin": list(BASKET_BIN_LABELS), "waiter": waiter, "api": api})


def top_addons(rows: pd.DataFrame, channel: str, n: int = TOP_ADDONS) -> pd.DataFrame:
    """Top paid addons by quantity for one channel.

    Each row carries the average price (revenue / quantity) and the sorted
    distinct prices the addon was sold at.
    """
    paid = rows.loc[
        (rows["item_kind"] == F.COMBO_ADDON) & (rows["price"] > 0) & (rows["channel"] == channel)
    ]
    if paid.empty:
        return pd.DataFrame(columns=ADDON_COLUMNS)

    grouped = paid.groupby("item_name", sort=False)
    table = pd.DataFrame(
        {
            "count": grouped["quantity"].sum().astype(int),
            "revenue": grouped["revenue"].sum().astype(float),
        }
    )
    table.index.name = "name"
    table = table.reset_index()
    prices = {name: sorted(set(group.astype(float))) for name, group in grouped["price"]}
    table["prices"] = table["name"].map(prices)
    table["avg_price"] = [safe_div(r, c) for r, c in zip(table["revenue"], table["count"])]
    return sort_desc(table[ADDON_COLUMNS], "count").head(n)


def basket_rollup(dataset: NormalizedDataset, filters: FilterState | None = None) -> BasketRollup:
    """Basket metrics, size distribution and top addons per channel.

    Args:
        dataset: Normalized dataset.
        filters: Active filters.

    Returns:
        BasketRollup, empty for order-level data.
    """
    if not dataset.is_item_level:
        logger.warning("Basket rollup needs item-level data; returning empty result")
        return BasketRollup.empty()

    rows = build_predicate(dataset, filters).select_items(dataset.frame)
    if rows.empty:
        return BasketRollup.empty()

    orders = order_baskets(rows)
    is_api = orders["channel"] == F.API
    rollup = BasketRollup(
        orders=orders,
        waiter=BasketMetrics.from_orders(orders.loc[~is_api]),
        api=BasketMetrics.from_orders(orders.loc[is_api]),
        distribution=basket_distribution(orders),
        top_addons={channel: top_addons(rows, channel) for channel in F.CHANNELS},
    )
    if not dataset.has_addon_pricing:
        logger.warning("No addon price column; every addon counts as free")
    logger.debug(
        "Basket rollup: %d order(s), paid-addon rate waiter=%.1f%% api=%.1f%%",
        len(orders),
        rollup.waiter.addon_rate,
        rollup.api.addon_rate,
    )
    return rollup
