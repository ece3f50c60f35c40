"""Filter state and the shared inclusion predicate.

Every rollup decides which lines it may consume through one RowPredicate
built by ``build_predicate``. No rollup re-implements a filter inline, so the
order counts produced by different rollups cannot drift apart.

Two scopes exist:

- **order scope** (``order_mask``): date range, day type, kitchen set and the
  whole-order exclusions. Used by the Order Aggregator and every order-level
  rollup.
- **item scope** (``item_mask``): order scope plus the category set and the
  item-type set. Used by item-level rollups.

AYCE visibility and the category set are order-scoped exclusions. Deciding
them needs a first pass over all of an order's lines, which is why
``build_predicate`` takes the whole dataset and precomputes the excluded
order ids before any rollup reads a line.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.exceptions import ConfigError

logger = logging.getLogger(__name__)

ALL = "all"
ALL_SELECTED: frozenset[str] = frozenset({ALL})

DAY_ALL = "all"
DAY_WEEKDAY = "weekday"
DAY_WEEKEND = "weekend"
DAY_TYPES = (DAY_ALL, DAY_WEEKDAY, DAY_WEEKEND)

SELECTABLE_ITEM_TYPES = (F.COMBO_ITEM, F.COMBO_ADDON)
MIN_MAINS_VALUES = (1, 2)

DATE_PRESETS = (
    "today",
    "yesterday",
    "thisWeek",
    "lastWeek",
    "last7Days",
    "last30Days",
    "thisMonth",
    "lastMonth",
)


# ---------- selections ----------
def normalize_selection(values: Iterable[str] | str | None) -> frozenset[str]:
    """Coerce a selection to ``{"all"}`` or a set of names.

    Examples:
        >>> sorted(normalize_selection(None))
        ['all']
        >>> sorted(normalize_selection(["Marina", "all"]))
        ['all']
        >>> sorted(normalize_selection("Marina"))
        ['Marina']
    """
    if values is None:
        return ALL_SELECTED
    if isinstance(values, str):
        values = [values]
    selection = frozenset(str(v) for v in values)
    if not selection or ALL in selection:
        return ALL_SELECTED
    return selection


def toggle_selection(selection: Iterable[str], value: str) -> frozenset[str]:
    """Toggle one value in a multi-select that has an "all" option.

    Picking "all" resets the selection. Picking a value drops "all" and flips
    that value. An empty selection falls back to "all".

    Examples:
        >>> sorted(toggle_selection({"all"}, "Marina"))
        ['Marina']
        >>> sorted(toggle_selection({"Marina"}, "Marina"))
        ['all']
    """
    if value == ALL:
        return ALL_SELECTED
    current = set(selection) - {ALL}
    if value in current:
        current.remove(value)
    else:
        current.add(value)
    return frozenset(current) if current else ALL_SELECTED


def _date_bound(value: Any, name: str) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    try:
        parsed = pd.to_datetime(text, format="%Y-%m-%d")
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid {name} '{value}'. Expected YYYY-MM-DD.") from e
    return parsed.date().isoformat()


def _min_mains(value: Any) -> int:
    try:
        return int(value)
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid min_mains '{value}'. Must be 1 or 2.") from e


# ---------- filter state ----------
@dataclass(frozen=True)
class FilterState:
    """Active dashboard filters.

    Attributes:
        start_date: Inclusive lower bound (YYYY-MM-DD) or None for unbounded.
        end_date: Inclusive upper bound (YYYY-MM-DD) or None for unbounded.
        day_type: "all", "weekday" or "weekend".
        kitchens: ``{"all"}`` or a set of kitchen names.
        categories: ``{"all"}`` or a set of category names.
        show_ayce: When False, every order containing an AYCE line is dropped.
        item_types: ``{"all"}`` or a subset of COMBO_ITEM / COMBO_ADDON.
        min_mains: 1 or 2, the table-size estimation mode.
    """

    start_date: str | None = None
    end_date: str | None = None
    day_type: str = DAY_ALL
    kitchens: frozenset[str] = field(default=ALL_SELECTED)
    categories: frozenset[str] = field(default=ALL_SELECTED)
    show_ayce: bool = True
    item_types: frozenset[str] = field(default=ALL_SELECTED)
    min_mains: int = 1

    def __post_init__(self) -> None:
        start = _date_bound(self.start_date, "start_date")
        end = _date_bound(self.end_date, "end_date")
        if start and end and start > end:
            raise ConfigError(f"start_date {start} is after end_date {end}")
        if self.day_type not in DAY_TYPES:
            raise ConfigError(f"Invalid day_type '{self.day_type}'. Must be one of {DAY_TYPES}.")
        item_types = normalize_selection(self.item_types)
        unknown = item_types - ALL_SELECTED - set(SELECTABLE_ITEM_TYPES)
        if unknown:
            raise ConfigError(f"Invalid item_types {sorted(unknown)}")
        if self.min_mains not in MIN_MAINS_VALUES:
            raise ConfigError(f"Invalid min_mains {self.min_mains}. Must be 1 or 2.")

        # frozen: normalized values are written back through object.__setattr__
        object.__setattr__(self, "start_date", start)
        object.__setattr__(self, "end_date", end)
        object.__setattr__(self, "kitchens", normalize_selection(self.kitchens))
        object.__setattr__(self, "categories", normalize_selection(self.categories))
        object.__setattr__(self, "item_types", item_types)
        object.__setattr__(self, "show_ayce", bool(self.show_ayce))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterState:
        """Build filters from a plain mapping.

        Accepts either ``start_date``/``end_date`` keys or a ``date_range``
        mapping with ``start``/``end``. Unknown keys are ignored.

        Examples:
            >>> f = FilterState.from_dict({"date_range": {"start": "2024-01-01", "end": ""}})
            >>> f.start_date, f.end_date
            ('2024-01-01', None)
        """
        date_range = data.get("date_range") or {}
        return cls(
            start_date=data.get("start_date", date_range.get("start")),
            end_date=data.get("end_date", date_range.get("end")),
            day_type=data.get("day_type", DAY_ALL),
            kitchens=data.get("kitchens"),
            categories=data.get("categories"),
            show_ayce=data.get("show_ayce", True),
            item_types=data.get("item_types"),
            min_mains=_min_mains(data.get("min_mains", 1)),
        )

    @property
    def all_kitchens(self) -> bool:
        return ALL in self.kitchens

    @property
    def all_categories(self) -> bool:
        return ALL in self.categories

    @property
    def all_item_types(self) -> bool:
        return ALL in self.item_types

    def with_all_kitchens(self) -> FilterState:
        return replace(self, kitchens=ALL_SELECTED)

    def without_dates(self) -> FilterState:
        """Same filters with the date window and day type cleared."""
        return replace(self, start_date=None, end_date=None, day_type=DAY_ALL)


# ---------- predicate ----------
@dataclass(frozen=True, eq=False)
class RowPredicate:
    """Inclusion predicate over a canonical frame.

    Attributes:
        filters: The filter state this predicate was built from.
        excluded_orders: Order ids removed as a whole (AYCE / category pass).
        item_level: Whether the dataset has item granularity.
    """

    filters: FilterState
    excluded_orders: frozenset[str] = frozenset()
    item_level: bool = True

    def date_mask(self, frame: pd.DataFrame) -> pd.Series:
        """Date window and day type. Undated lines fail any active date filter."""
        f = self.filters
        mask = pd.Series(True, index=frame.index)
        has_date = frame["order_date"].notna()
        dates = frame["order_date"].where(has_date, "")
        if f.start_date:
            mask &= has_date & (dates >= f.start_date)
        if f.end_date:
            mask &= has_date & (dates <= f.end_date)
        if f.day_type == DAY_WEEKEND:
            mask &= has_date & frame["is_weekend"]
        elif f.day_type == DAY_WEEKDAY:
            mask &= has_date & ~frame["is_weekend"]
        return mask

    def order_mask(self, frame: pd.DataFrame) -> pd.Series:
        mask = self.date_mask(frame)
        if self.excluded_orders:
            mask &= ~frame["order_id"].isin(self.excluded_orders)
        if not self.filters.all_kitchens:
            mask &= frame["kitchen"].isin(self.filters.kitchens)
        return mask

    def item_mask(self, frame: pd.DataFrame) -> pd.Series:
        mask = self.order_mask(frame)
        if not self.item_level:
            return mask
        if not self.filters.all_categories:
            mask &= frame["category"].isin(self.filters.categories)
        if not self.filters.all_item_types:
            mask &= frame["item_kind"].isin(self.filters.item_types)
        return mask

    def select_orders(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Lines belonging to included orders."""
        return frame.loc[self.order_mask(frame)]

    def select_items(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Lines included by the item-scoped predicate, with a revenue column."""
        rows = frame.loc[self.item_mask(frame)]
        return rows.assign(revenue=rows["price"] * rows["quantity"])


def build_predicate(dataset: NormalizedDataset, filters: FilterState | None = None) -> RowPredicate:
    """Run the order-scoped first pass and return the shared predicate.

    Args:
        dataset: Normalized dataset.
        filters: Active filters. Defaults to no filtering.

    Returns:
        RowPredicate holding the filters and the excluded order ids.
    """
    filters = filters or FilterState()
    frame = dataset.frame
    excluded: set[str] = set()

    # Order-level exports have no item lines to inspect
    if dataset.is_item_level and not frame.empty:
        if not filters.show_ayce:
            ayce_orders = set(frame.loc[frame["is_ayce"], "order_id"])
            excluded |= ayce_orders
            logger.debug("AYCE hidden: excluding %d order(s)", len(ayce_orders))

        if not filters.all_categories:
            matching = frame["category"].isin(filters.categories)
            if not filters.show_ayce:
                matching &= ~frame["is_ayce"]
            keep = set(frame.loc[matching, "order_id"])
            no_match = set(frame["order_id"]) - keep
            excluded |= no_match
            logger.debug("Category filter: %d order(s) without a matching line", len(no_match))

    return RowPredicate(
        filters=filters,
        excluded_orders=frozenset(excluded),
        item_level=dataset.is_item_level,
    )


# ---------- date helpers ----------
def preset_range(preset: str, today: date | None = None) -> tuple[str, str]:
    """Resolve a quick date preset relative to ``today``. Weeks start Monday.

    Examples:
        >>> preset_range("lastWeek", date(2024, 1, 10))
        ('2024-01-01', '2024-01-07')
    """
    today = today or date.today()
    weekday = today.weekday()
    if preset == "today":
        start, end = today, today
    elif preset == "yesterday":
        start = end = today - timedelta(days=1)
    elif preset == "thisWeek":
        start, end = today - timedelta(days=weekday), today
    elif preset == "lastWeek":
        start = today - timedelta(days=weekday + 7)
        end = today - timedelta(days=weekday + 1)
    elif preset == "last7Days":
        start, end = today - timedelta(days=6), today
    elif preset == "last30Days":
        start, end = today - timedelta(days=29), today
    elif preset == "thisMonth":
        start, end = today.replace(day=1), today
    elif preset == "lastMonth":
        end = today.replace(day=1) - timedelta(days=1)
        start = end.replace(day=1)
    else:
        raise ConfigError(f"Unknown date preset '{preset}'. Must be one of {DATE_PRESETS}.")
    return start.isoformat(), end.isoformat()


def clamp_range(
    start: str | None,
    end: str | None,
    extent: tuple[str, str] | None,
) -> tuple[str | None, str | None]:
    """Clamp a requested range to the (min, max) dates available in the data."""
    if not extent:
        return start, end
    low, high = extent
    if start and start < low:
        start = low
    if end and end > high:
        end = high
    return start, end
