"""Public API for the dine-in analytics pipeline.

This module wires the layers together: a raw source (CSV path, URL, DataFrame
or row mappings) is normalized once, and every rollup is recomputed from it for
the given FilterState. Nothing is cached between calls; a new filter state is
a fresh pass over the whole dataset.

Examples:
    >>> from dinein_core import FilterState, build_dashboard
    >>> dashboard = build_dashboard("orders.csv", FilterState(day_type="weekend"))  # doctest: +SKIP
    >>> dashboard.summary.api.aov  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Union

import numpy as np
import pandas as pd

from dinein_core.config import BlobStoreConfig
from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState, clamp_range, preset_range
from dinein_core.core.normalize import NormalizedDataset, normalize_frame, normalize_rows
from dinein_core.core.orders import orders_for
from dinein_core.marts.basket import BasketRollup, basket_rollup
from dinein_core.marts.categories import CategoryRollup, category_rollup
from dinein_core.marts.daily import (
    DailyRollup,
    PeriodSummary,
    aov_table,
    channel_split,
    daily_series,
    date_extent,
    kitchen_aov_table,
    overall_summary,
    value_histogram_table,
)
from dinein_core.marts.items import ItemAnalytics, item_analytics
from dinein_core.marts.location import LocationBreakdown, location_breakdown
from dinein_core.marts.rounds import ChannelRounds, RoundsRollup, rounds_rollup
from dinein_core.marts.table_size import TableSizeRollup, table_size_rollup
from dinein_core.raw.blob_store import BlobStore
from dinein_core.raw.csv_reader import parse_csv_text, read_csv_rows

logger = logging.getLogger(__name__)

Source = Union[NormalizedDataset, pd.DataFrame, str, Path, Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class FilterOptions:
    """Values the filter controls can offer for a dataset."""

    kitchens: list[str]
    categories: list[str]
    item_types: list[str]


def filter_options(dataset: NormalizedDataset) -> FilterOptions:
    """Distinct sorted kitchens, categories and selectable item types.

    Categories and item types are empty for order-level data.
    """
    frame = dataset.frame
    kitchens = sorted(frame["kitchen"].unique()) if not frame.empty else []
    if not dataset.is_item_level or frame.empty:
        return FilterOptions(kitchens=kitchens, categories=[], item_types=[])
    present = set(frame["item_kind"])
    return FilterOptions(
        kitchens=kitchens,
        categories=sorted(frame["category"].unique()),
        item_types=[kind for kind in (F.COMBO_ITEM, F.COMBO_ADDON) if kind in present],
    )


def load_dataset(source: Source, store: BlobStore | None = None) -> NormalizedDataset:
    """Normalize any supported source.

    Args:
        source: A NormalizedDataset (returned as-is), a raw DataFrame, a CSV
            path, an ``http(s)://`` URL of a stored file, or an iterable of row
            mappings.
        store: Blob store used to download URLs. Defaults to a store rooted
            at the URL's parent.

    Returns:
        NormalizedDataset.

    Raises:
        FileNotFoundError: If a path does not exist.
        DataQualityError: If the CSV cannot be decoded.
        StorageError: If a URL cannot be downloaded.
    """
    if isinstance(source, NormalizedDataset):
        return source
    if isinstance(source, pd.DataFrame):
        return normalize_frame(source)
    if isinstance(source, (str, Path)):
        text = str(source)
        if text.startswith(("http://", "https://")):
            store = store or BlobStore(BlobStoreConfig(base_url=text.rsplit("/", 1)[0]))
            return normalize_frame(parse_csv_text(store.download(text), label=text))
        return normalize_frame(read_csv_rows(source))
    return normalize_rows(source)


def resolve_preset(
    dataset: NormalizedDataset,
    filters: FilterState,
    preset: str,
    today: date | None = None,
) -> FilterState:
    """Apply a quick date preset, clamped to the dates present in the data."""
    start, end = preset_range(preset, today)
    low, high = clamp_range(start, end, date_extent(dataset, filters))
    # A window entirely outside the data stays as-is and selects nothing
    if low and high and low <= high:
        start, end = low, high
    return dataclasses.replace(filters, start_date=start, end_date=end)


@dataclass(frozen=True, eq=False)
class Dashboard:
    """Every rollup for one dataset and one filter state."""

    filters: FilterState
    shape: str
    line_count: int
    order_count: int
    date_extent: tuple[str, str] | None
    options: FilterOptions
    daily: DailyRollup
    summary: PeriodSummary
    channel_split: pd.DataFrame
    value_histogram: pd.DataFrame
    aov_series: pd.DataFrame
    kitchen_aov: pd.DataFrame
    location: LocationBreakdown
    categories: CategoryRollup
    items: ItemAnalytics
    basket: BasketRollup
    table_size: TableSizeRollup
    rounds: RoundsRollup

    @property
    def undated_orders(self) -> int:
        return self.daily.undated_orders

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation (tables as lists of records)."""
        return _jsonable(
            {
                "filters": dataclasses.asdict(self.filters),
                "shape": self.shape,
                "line_count": self.line_count,
                "order_count": self.order_count,
                "undated_orders": self.undated_orders,
                "date_extent": self.date_extent,
                "options": dataclasses.asdict(self.options),
                "summary": dataclasses.asdict(self.summary),
                "channel_split": self.channel_split,
                "value_histogram": self.value_histogram,
                "aov_series": self.aov_series,
                "kitchen_aov": self.kitchen_aov,
                "location": {
                    "categories": self.location.categories,
                    "kitchens": self.location.kitchens,
                },
                "categories": {
                    "categories": self.categories.categories,
                    "groups": self.categories.groups,
                    "order_counts": self.categories.order_counts,
                    "waiter_mix": dataclasses.asdict(self.categories.waiter_mix),
                    "api_mix": dataclasses.asdict(self.categories.api_mix),
                },
                "items": {
                    "item_sales": self.items.item_sales,
                    "item_revenue": self.items.item_revenue,
                    "item_types": self.items.item_types,
                    "combo_sales": self.items.combo_sales,
                    "combo_revenue": self.items.combo_revenue,
                    "ayce": self.items.ayce,
                },
                "basket": {
                    "waiter": dataclasses.asdict(self.basket.waiter),
                    "api": dataclasses.asdict(self.basket.api),
                    "distribution": self.basket.distribution,
                    "top_addons": self.basket.top_addons,
                },
                "table_size": {
                    "min_mains": self.table_size.min_mains,
                    "distribution": self.table_size.distribution,
                    **{c: _table_size_side(self.table_size, c) for c in F.CHANNELS},
                },
                "rounds": {
                    "available": self.rounds.available,
                    "table": self.rounds.table,
                    **{c: _rounds_side(self.rounds.channel(c)) for c in F.CHANNELS},
                },
            }
        )


def _table_size_side(rollup: TableSizeRollup, channel: str) -> dict[str, Any]:
    side = rollup.api if channel == F.API else rollup.waiter
    return {
        "one_plus": dataclasses.asdict(side.one_plus),
        "two_plus": dataclasses.asdict(side.two_plus),
        "selected": dataclasses.asdict(rollup.selected(channel)),
        "orders_without_mains": side.orders_without_mains,
        "single_main_orders": side.single_main_orders,
    }


def _rounds_side(side: ChannelRounds) -> dict[str, Any]:
    return {
        "orders": side.orders,
        "avg_rounds": side.avg_rounds,
        "multi_round_orders": side.multi_round_orders,
        "multi_round_pct": side.multi_round_pct,
        "avg_round_value": side.avg_round_value,
        "valued_rounds": side.valued_rounds,
    }


def _jsonable(value: Any) -> Any:
    """Convert DataFrames, numpy scalars, sets and NaN into JSON-safe values."""
    if isinstance(value, pd.DataFrame):
        return [_jsonable(r) for r in value.to_dict(orient="records")]
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(v) for v in value)
    if isinstance(value, (list, tuple, np.ndarray)):
        return [_jsonable(v) for v in value]
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def build_dashboard(data: Source, filters: FilterState | None = None) -> Dashboard:
    """Run every rollup for ``data`` under ``filters``.

    Args:
        data: Any source accepted by ``load_dataset``.
        filters: Active filters. Defaults to no filtering.

    Returns:
        Dashboard.
    """
    dataset = load_dataset(data)
    filters = filters or FilterState()

    daily = daily_series(dataset, filters)
    orders = orders_for(dataset, filters)
    logger.info(
        "Dashboard: %d line(s), %d order(s) after filters (%s-level export)",
        len(dataset.frame),
        len(orders),
        dataset.shape,
    )
    return Dashboard(
        filters=filters,
        shape=dataset.shape,
        line_count=len(dataset.frame),
        order_count=len(orders),
        date_extent=date_extent(dataset, filters),
        options=filter_options(dataset),
        daily=daily,
        summary=overall_summary(daily),
        channel_split=channel_split(daily),
        value_histogram=value_histogram_table(daily),
        aov_series=aov_table(daily),
        kitchen_aov=kitchen_aov_table(daily),
        location=location_breakdown(dataset, filters),
        categories=category_rollup(dataset, filters),
        items=item_analytics(dataset, filters),
        basket=basket_rollup(dataset, filters),
        table_size=table_size_rollup(dataset, filters),
        rounds=rounds_rollup(dataset, filters),
    )
