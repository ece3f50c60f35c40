"""Dine-in analytics: waiter vs self-order (API) channel metrics.

This package turns a CSV export of restaurant dine-in orders into comparative
metrics between the two ordering channels, across layers:

- **Bronze (raw)**: CSV decoding and the blob store holding uploaded exports
- **Silver (core)**: canonical lines, the shared filter predicate, orders
- **Gold (marts)**: daily/kitchen series, categories, baskets, table size, rounds

Module Structure:
    dinein_core.raw: csv_reader, blob_store
    dinein_core.core: fields, taxonomy, normalize, filters, orders
    dinein_core.marts: daily, location, categories, items, basket, table_size, rounds
    dinein_core.api: build_dashboard, filter_options, load_dataset
    dinein_core.cli: ``dinein-dashboard`` command

Quick Start:
    >>> from dinein_core import FilterState, build_dashboard
    >>>
    >>> filters = FilterState(start_date="2024-01-01", end_date="2024-01-31", show_ayce=False)
    >>> dashboard = build_dashboard("orders.csv", filters)  # doctest: +SKIP
    >>> dashboard.kitchen_aov.head()  # doctest: +SKIP

Grain Reference:
    - core lines: one row per raw export row (item, addon or order)
    - orders: one row per order id, first line wins
    - daily: date x channel, nested kitchen x channel
"""

__version__ = "0.1.0"

from dinein_core.api import Dashboard, build_dashboard, filter_options, load_dataset
from dinein_core.core.filters import FilterState
from dinein_core.exceptions import ConfigError, DataQualityError, DineInError, StorageError

__all__ = [
    "ConfigError",
    "Dashboard",
    "DataQualityError",
    "DineInError",
    "FilterState",
    "StorageError",
    "__version__",
    "build_dashboard",
    "filter_options",
    "load_dataset",
]
