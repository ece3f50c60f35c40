"""Core (silver) layer: canonical lines, shared filters, and orders.

- ``normalize``: Row Normalizer and file-shape detection
- ``filters``: FilterState and the shared RowPredicate
- ``orders``: Order Aggregator (first line wins)
- ``taxonomy``: category -> coarse group rules
- ``fields``: source column fallback chains and domain constants
"""

from dinein_core.core.filters import FilterState, RowPredicate, build_predicate
from dinein_core.core.normalize import (
    CanonicalRow,
    NormalizedDataset,
    detect_file_shape,
    normalize_frame,
    normalize_row,
    normalize_rows,
)
from dinein_core.core.orders import Order, OrderSet, aggregate_orders, orders_for

__all__ = [
    "CanonicalRow",
    "FilterState",
    "NormalizedDataset",
    "Order",
    "OrderSet",
    "RowPredicate",
    "aggregate_orders",
    "build_predicate",
    "detect_file_shape",
    "normalize_frame",
    "normalize_row",
    "normalize_rows",
    "orders_for",
]
