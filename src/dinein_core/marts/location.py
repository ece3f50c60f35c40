"""Marts (Gold) layer: AOV by location category and kitchen.

Orders that are dated, survive the shared predicate and have a positive bill
are grouped by location category, then by kitchen id inside each category.
Both levels carry per-channel total value, order count and AOV and are sorted
by total orders descending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from dinein_core.core.filters import FilterState
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.core.orders import orders_for
from dinein_core.marts.stats import pivot_channels, safe_div, sort_desc

logger = logging.getLogger(__name__)

CATEGORY_COLUMNS = [
    "location_category",
    "waiter_value",
    "api_value",
    "waiter_orders",
    "api_orders",
    "total_orders",
    "waiter_aov",
    "api_aov",
    "kitchen_count",
]
KITCHEN_COLUMNS = [
    "location_category",
    "kitchen_id",
    "kitchen",
    "waiter_value",
    "api_value",
    "waiter_orders",
    "api_orders",
    "total_orders",
    "waiter_aov",
    "api_aov",
]


@dataclass(frozen=True, eq=False)
class LocationBreakdown:
    categories: pd.DataFrame
    kitchens: pd.DataFrame

    def kitchens_in(self, location_category: str) -> pd.DataFrame:
        rows = self.kitchens.loc[self.kitchens["location_category"] == location_category]
        return rows.reset_index(drop=True)


def _with_aov(table: pd.DataFrame) -> pd.DataFrame:
    table = table.rename(
        columns={
            "waiter_bill": "waiter_value",
            "api_bill": "api_value",
            "waiter_one": "waiter_orders",
            "api_one": "api_orders",
        }
    )
    table["waiter_orders"] = table["waiter_orders"].astype(int)
    table["api_orders"] = table["api_orders"].astype(int)
    table["total_orders"] = table["waiter_orders"] + table["api_orders"]
    table["waiter_aov"] = [safe_div(v, n) for v, n in zip(table["waiter_value"], table["waiter_orders"])]
    table["api_aov"] = [safe_div(v, n) for v, n in zip(table["api_value"], table["api_orders"])]
    return table


def location_breakdown(
    dataset: NormalizedDataset, filters: FilterState | None = None
) -> LocationBreakdown:
    """Build the location-category and kitchen AOV tables.

    Args:
        dataset: Normalized dataset.
        filters: Active filters.

    Returns:
        LocationBreakdown with one row per location category and one per
        (location category, kitchen id).
    """
    orders = orders_for(dataset, filters).dated
    orders = orders.loc[orders["bill"] > 0].assign(one=1)
    if orders.empty:
        return LocationBreakdown(
            categories=pd.DataFrame(columns=CATEGORY_COLUMNS),
            kitchens=pd.DataFrame(columns=KITCHEN_COLUMNS),
        )

    # kitchen id -> display name of its first order
    names = orders.drop_duplicates(["location_category", "kitchen_id"])
    names = names.set_index(["location_category", "kitchen_id"])["kitchen"]

    kitchens = _with_aov(pivot_channels(orders, ["location_category", "kitchen_id"], ["bill", "one"]))
    kitchens["kitchen"] = [names[key] for key in zip(kitchens["location_category"], kitchens["kitchen_id"])]
    kitchens = sort_desc(kitchens[KITCHEN_COLUMNS], "total_orders")

    categories = _with_aov(pivot_channels(orders, ["location_category"], ["bill", "one"]))
    kitchen_count = kitchens.groupby("location_category").size()
    categories["kitchen_count"] = categories["location_category"].map(kitchen_count).astype(int)
    categories = sort_desc(categories[CATEGORY_COLUMNS], "total_orders")

    logger.debug(
        "Location breakdown: %d categor(ies), %d kitchen(s)", len(categories), len(kitchens)
    )
    return LocationBreakdown(categories=categories, kitchens=kitchens)
