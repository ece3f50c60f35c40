"""Marts (Gold) layer: rollups over the normalized lines and orders.

Every rollup is a pure function of ``(dataset, filters)`` and builds its own
predicate through ``dinein_core.core.filters.build_predicate``.

- ``daily``: daily/kitchen series, period summary, value histogram, kitchen AOV
- ``location``: AOV by location category and kitchen
- ``categories``: category and group breakdown, per-order item mix
- ``items``: top items and combos, item types, AYCE split
- ``basket``: basket composition, addon attach rates, top addons
- ``table_size``: mains distribution and table-size estimate
- ``rounds``: order rounds
"""

from dinein_core.marts.basket import BasketRollup, basket_rollup
from dinein_core.marts.categories import CategoryRollup, category_rollup
from dinein_core.marts.daily import DailyRollup, daily_series, date_extent, overall_summary
from dinein_core.marts.items import ItemAnalytics, item_analytics
from dinein_core.marts.location import LocationBreakdown, location_breakdown
from dinein_core.marts.rounds import RoundsRollup, average_rounds, rounds_rollup
from dinein_core.marts.table_size import TableSizeRollup, estimate_table_size, table_size_rollup

__all__ = [
    "BasketRollup",
    "CategoryRollup",
    "DailyRollup",
    "ItemAnalytics",
    "LocationBreakdown",
    "RoundsRollup",
    "TableSizeRollup",
    "average_rounds",
    "basket_rollup",
    "category_rollup",
    "daily_series",
    "date_extent",
    "estimate_table_size",
    "item_analytics",
    "location_breakdown",
    "overall_summary",
    "rounds_rollup",
    "table_size_rollup",
]
