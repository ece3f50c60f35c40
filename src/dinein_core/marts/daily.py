"""Marts (Gold) layer: daily and per-kitchen order-value rollups.

Input: OrderSet from the Order Aggregator (one row per order).
Output: per-day channel totals with a nested per-kitchen breakdown, plus the
period summaries, histograms and kitchen AOV table derived from them.

Each day carries, per channel, the bill sum, the order count, a 9-bin value
histogram and the list of individual order values. The same shape is kept for
every kitchen inside the day, so a kitchen subset can be answered by summing
the nested entries of the selected kitchens (``restrict_to_kitchens``) and
rebuilding the histogram from the retained order values.

Undated orders never enter a day bucket; their count is carried on the rollup
as ``undated_orders``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState, build_predicate
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.core.orders import OrderSet, aggregate_orders
from dinein_core.marts.stats import (
    VALUE_BIN_LABELS,
    median,
    pct,
    safe_div,
    sort_desc,
    value_histogram,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelTotals:
    """Bill sum, order count, value histogram and order values for one channel."""

    bill: float = 0.0
    orders: int = 0
    value_bins: tuple[int, ...] = (0,) * len(VALUE_BIN_LABELS)
    order_values: tuple[float, ...] = ()

    @classmethod
    def from_values(cls, values: Iterable[float]) -> ChannelTotals:
        values = tuple(float(v) for v in values)
        return cls(
            bill=sum(values),
            orders=len(values),
            value_bins=tuple(value_histogram(values)),
            order_values=values,
        )

    @classmethod
    def combine(cls, parts: Iterable[ChannelTotals]) -> ChannelTotals:
        """Sum bills and counts; the histogram is rebuilt from the pooled values."""
        parts = list(parts)
        values = tuple(v for part in parts for v in part.order_values)
        return cls(
            bill=sum(part.bill for part in parts),
            orders=sum(part.orders for part in parts),
            value_bins=tuple(value_histogram(values)),
            order_values=values,
        )

    @property
    def aov(self) -> float:
        return safe_div(self.bill, self.orders)

    @property
    def median(self) -> float:
        return median(self.order_values)


@dataclass(frozen=True)
class ChannelPair:
    waiter: ChannelTotals = field(default_factory=ChannelTotals)
    api: ChannelTotals = field(default_factory=ChannelTotals)

    @classmethod
    def from_orders(cls, orders: pd.DataFrame) -> ChannelPair:
        is_api = orders["channel"] == F.API
        return cls(
            waiter=ChannelTotals.from_values(orders.loc[~is_api, "bill"]),
            api=ChannelTotals.from_values(orders.loc[is_api, "bill"]),
        )

    @classmethod
    def combine(cls, pairs: Iterable[ChannelPair]) -> ChannelPair:
        pairs = list(pairs)
        return cls(
            waiter=ChannelTotals.combine(p.waiter for p in pairs),
            api=ChannelTotals.combine(p.api for p in pairs),
        )

    def channel(self, name: str) -> ChannelTotals:
        if name == F.API:
            return self.api
        if name == F.WAITER:
            return self.waiter
        raise KeyError(name)

    @property
    def total_orders(self) -> int:
        return self.waiter.orders + self.api.orders


@dataclass(frozen=True)
class DailyBucket:
    """Totals for one date, with the same shape nested per kitchen."""

    date: str
    is_weekend: bool
    totals: ChannelPair
    kitchens: dict[str, ChannelPair] = field(default_factory=dict)


@dataclass(frozen=True)
class DailyRollup:
    """Date-ascending day buckets plus flat per-kitchen totals.

    Attributes:
        days: One bucket per date that has at least one order.
        kitchen_totals: Kitchen -> channel totals across all days.
        undated_orders: Orders that survived filtering but have no usable date.
    """

    days: list[DailyBucket] = field(default_factory=list)
    kitchen_totals: dict[str, ChannelPair] = field(default_factory=dict)
    undated_orders: int = 0

    @property
    def dates(self) -> list[str]:
        return [day.date for day in self.days]


@dataclass(frozen=True)
class ChannelSummary:
    bill: float
    orders: int
    aov: float
    median: float

    @classmethod
    def from_totals(cls, totals: ChannelTotals) -> ChannelSummary:
        return cls(bill=totals.bill, orders=totals.orders, aov=totals.aov, median=totals.median)


@dataclass(frozen=True)
class PeriodSummary:
    """Per-channel totals across every selected day."""

    waiter: ChannelSummary
    api: ChannelSummary

    @property
    def total_orders(self) -> int:
        return self.waiter.orders + self.api.orders


# ---------- build ----------
def build_daily_rollup(orders: OrderSet) -> DailyRollup:
    """Accumulate dated orders into day buckets and kitchen totals.

    Args:
        orders: OrderSet (one row per order).

    Returns:
        DailyRollup sorted by date ascending.
    """
    dated = orders.dated
    days: list[DailyBucket] = []
    for date, day_orders in dated.groupby("order_date", sort=True):
        kitchens = {
            kitchen: ChannelPair.from_orders(kitchen_orders)
            for kitchen, kitchen_orders in day_orders.groupby("kitchen", sort=False)
        }
        days.append(
            DailyBucket(
                date=date,
                is_weekend=bool(day_orders["is_weekend"].iloc[0]),
                totals=ChannelPair.from_orders(day_orders),
                kitchens=kitchens,
            )
        )

    kitchen_totals = {
        kitchen: ChannelPair.from_orders(kitchen_orders)
        for kitchen, kitchen_orders in dated.groupby("kitchen", sort=False)
    }
    logger.debug("Daily rollup: %d day(s), %d kitchen(s)", len(days), len(kitchen_totals))
    return DailyRollup(days=days, kitchen_totals=kitchen_totals, undated_orders=orders.undated_count)


def restrict_to_kitchens(day: DailyBucket, kitchens: Iterable[str]) -> DailyBucket:
    """Recompute a day's totals from the nested entries of the selected kitchens."""
    selected = {k: day.kitchens[k] for k in kitchens if k in day.kitchens}
    return DailyBucket(
        date=day.date,
        is_weekend=day.is_weekend,
        totals=ChannelPair.combine(selected.values()),
        kitchens=selected,
    )


def daily_series(dataset: NormalizedDataset, filters: FilterState | None = None) -> DailyRollup:
    """Daily series for the active filters.

    The orders are aggregated with every kitchen included; a kitchen subset is
    then applied as a second pass over the nested per-kitchen entries.
    """
    filters = filters or FilterState()
    predicate = build_predicate(dataset, filters.with_all_kitchens())
    rollup = build_daily_rollup(aggregate_orders(dataset, predicate))
    if filters.all_kitchens:
        return rollup

    kitchens = sorted(filters.kitchens)
    return DailyRollup(
        days=[restrict_to_kitchens(day, kitchens) for day in rollup.days],
        kitchen_totals={k: v for k, v in rollup.kitchen_totals.items() if k in filters.kitchens},
        undated_orders=rollup.undated_orders,
    )


def date_extent(
    dataset: NormalizedDataset, filters: FilterState | None = None
) -> tuple[str, str] | None:
    """(min, max) order date, ignoring the date window, day type and kitchens."""
    filters = (filters or FilterState()).without_dates().with_all_kitchens()
    dates = aggregate_orders(dataset, build_predicate(dataset, filters)).dated["order_date"]
    if dates.empty:
        return None
    return dates.min(), dates.max()


# ---------- derived views ----------
def overall_summary(rollup: DailyRollup) -> PeriodSummary:
    total = ChannelPair.combine(day.totals for day in rollup.days)
    return PeriodSummary(
        waiter=ChannelSummary.from_totals(total.waiter),
        api=ChannelSummary.from_totals(total.api),
    )


def channel_split(rollup: DailyRollup) -> pd.DataFrame:
    """Order count and share (%) per channel over the selected days."""
    summary = overall_summary(rollup)
    counts = {F.WAITER: summary.waiter.orders, F.API: summary.api.orders}
    total = summary.total_orders
    return pd.DataFrame(
        {
            "channel": list(counts),
            "orders": list(counts.values()),
            "share": [pct(count, total) for count in counts.values()],
        }
    )


def value_histogram_table(rollup: DailyRollup) -> pd.DataFrame:
    """Order-value histogram summed over the selected days."""
    waiter = [0] * len(VALUE_BIN_LABELS)
    api = [0] * len(VALUE_BIN_LABELS)
    for day in rollup.days:
        for i, count in enumerate(day.totals.waiter.value_bins):
            waiter[i] += count
        for i, count in enumerate(day.totals.api.value_bins):
            api[i] += count
    return pd.DataFrame({"label": list(VALUE_BIN_LABELS), "waiter": waiter, "api": api})


def aov_table(rollup: DailyRollup) -> pd.DataFrame:
    """Per-day AOV and order counts for both channels."""
    records = [
        {
            "date": day.date,
            "is_weekend": day.is_weekend,
            "waiter_aov": day.totals.waiter.aov,
            "api_aov": day.totals.api.aov,
            "waiter_orders": day.totals.waiter.orders,
            "api_orders": day.totals.api.orders,
            "waiter_bill": day.totals.waiter.bill,
            "api_bill": day.totals.api.bill,
        }
        for day in rollup.days
    ]
    columns = [
        "date",
        "is_weekend",
        "waiter_aov",
        "api_aov",
        "waiter_orders",
        "api_orders",
        "waiter_bill",
        "api_bill",
    ]
    return pd.DataFrame(records, columns=columns)


def kitchen_aov_table(rollup: DailyRollup) -> pd.DataFrame:
    """Per-kitchen AOV, order counts and API adoption across the selected days.

    Only kitchens with at least one order are listed, busiest first.
    """
    per_kitchen: dict[str, list[ChannelPair]] = {}
    for day in rollup.days:
        for kitchen, pair in day.kitchens.items():
            per_kitchen.setdefault(kitchen, []).append(pair)

    records = []
    for kitchen, pairs in per_kitchen.items():
        pair = ChannelPair.combine(pairs)
        total = pair.total_orders
        if not total:
            continue
        records.append(
            {
                "kitchen": kitchen,
                "waiter_aov": pair.waiter.aov,
                "api_aov": pair.api.aov,
                "waiter_orders": pair.waiter.orders,
                "api_orders": pair.api.orders,
                "total_orders": total,
                "adoption_rate": pct(pair.api.orders, total),
            }
        )
    columns = [
        "kitchen",
        "waiter_aov",
        "api_aov",
        "waiter_orders",
        "api_orders",
        "total_orders",
        "adoption_rate",
    ]
    table = pd.DataFrame(records, columns=columns)
    return sort_desc(table, "total_orders")
