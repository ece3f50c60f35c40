"""Marts (Gold) layer: order rounds (items added after the first order).

A round is one distinct item-creation timestamp among an order's COMBO_ITEM
and COMBO_ADDON lines. Orders with no such timestamp count as a single round.
Only item-level exports carrying ``ITEM_CREATED_AT`` can be analysed; any
other dataset yields an empty rollup.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState, build_predicate
from dinein_core.core.normalize import NormalizedDataset
from dinein_core.marts.stats import ROUNDS_BUCKETS, ROUNDS_WEIGHTS, count_bucket, pct, safe_div

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["rounds", "waiter", "api", "waiter_pct", "api_pct", "waiter_avg_value", "api_avg_value"]


def average_rounds(distribution: Mapping[str | int, int]) -> float:
    """Weighted average rounds per order; the 5+ bucket is weighted 5.5.

    Examples:
        >>> round(average_rounds({1: 2, 2: 1}), 2)
        1.33
    """
    counts = {str(bucket): int(n) for bucket, n in distribution.items()}
    total = sum(counts.values())
    weighted = sum(ROUNDS_WEIGHTS[bucket] * n for bucket, n in counts.items())
    return safe_div(weighted, total)


@dataclass(frozen=True)
class ChannelRounds:
    """Rounds statistics for one channel.

    Attributes:
        distribution: Orders per rounds bucket ("1" .. "5+").
        bucket_values: Per bucket, mean of (order value / rounds) over orders
            with a nonzero value.
        avg_round_value: Mean value of every round with a nonzero value,
            pooled across orders.
        valued_rounds: Number of rounds behind ``avg_round_value``.
    """

    distribution: dict[str, int] = field(default_factory=lambda: dict.fromkeys(ROUNDS_BUCKETS, 0))
    bucket_values: dict[str, float] = field(default_factory=lambda: dict.fromkeys(ROUNDS_BUCKETS, 0.0))
    avg_round_value: float = 0.0
    valued_rounds: int = 0

    @property
    def orders(self) -> int:
        return sum(self.distribution.values())

    @property
    def avg_rounds(self) -> float:
        return average_rounds(self.distribution)

    @property
    def multi_round_orders(self) -> int:
        return self.orders - self.distribution["1"]

    @property
    def multi_round_pct(self) -> float:
        return pct(self.multi_round_orders, self.orders)


@dataclass(frozen=True, eq=False)
class RoundsRollup:
    waiter: ChannelRounds = field(default_factory=ChannelRounds)
    api: ChannelRounds = field(default_factory=ChannelRounds)
    available: bool = False

    def channel(self, name: str) -> ChannelRounds:
        return self.api if name == F.API else self.waiter

    @property
    def table(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "rounds": list(ROUNDS_BUCKETS),
                "waiter": [self.waiter.distribution[b] for b in ROUNDS_BUCKETS],
                "api": [self.api.distribution[b] for b in ROUNDS_BUCKETS],
                "waiter_pct": [pct(self.waiter.distribution[b], self.waiter.orders) for b in ROUNDS_BUCKETS],
                "api_pct": [pct(self.api.distribution[b], self.api.orders) for b in ROUNDS_BUCKETS],
                "waiter_avg_value": [self.waiter.bucket_values[b] for b in ROUNDS_BUCKETS],
                "api_avg_value": [self.api.bucket_values[b] for b in ROUNDS_BUCKETS],
            },
            columns=TABLE_COLUMNS,
        )


def order_rounds(rows: pd.DataFrame) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Split item-scoped lines into rounds.

    Args:
        rows: Item-scoped lines carrying a ``revenue`` column.

    Returns:
        ``(rounds, orders)``: one row per (order, timestamp) with ``item_count``
        and ``value``; one row per order with ``channel``, ``rounds`` (at
        least 1) and ``value``.
    """
    timed = rows.loc[
        rows["item_kind"].isin([F.COMBO_ITEM, F.COMBO_ADDON]) & (rows["item_created_at"] != "")
    ]
    rounds = (
        timed.groupby(["order_id", "item_created_at"], sort=False)
        .agg(item_count=("quantity", "sum"), value=("revenue", "sum"))
        .reset_index()
    )

    orders = rows.drop_duplicates("order_id", keep="first").set_index("order_id")[["channel"]].copy()
    per_order = rounds.groupby("order_id", sort=False)
    orders["rounds"] = per_order.size().reindex(orders.index).fillna(0).astype(int).clip(lower=1)
    orders["value"] = per_order["value"].sum().reindex(orders.index).fillna(0.0)
    return rounds, orders.reset_index()


def _channel_rounds(rounds: pd.DataFrame, orders: pd.DataFrame) -> ChannelRounds:
    buckets = [count_bucket(n, ROUNDS_BUCKETS) for n in orders["rounds"]]
    distribution = dict.fromkeys(ROUNDS_BUCKETS, 0)
    for bucket in buckets:
        distribution[bucket] += 1

    per_round = orders.assign(bucket=buckets, per_round=orders["value"] / orders["rounds"])
    per_round = per_round.loc[per_round["value"] > 0]
    means = per_round.groupby("bucket")["per_round"].mean()
    bucket_values = {b: float(means.get(b, 0.0)) for b in ROUNDS_BUCKETS}

    valued = rounds.loc[rounds["value"] > 0, "value"]
    return ChannelRounds(
        distribution=distribution,
        bucket_values=bucket_values,
        avg_round_value=float(valued.mean()) if len(valued) else 0.0,
        valued_rounds=len(valued),
    )


def rounds_rollup(dataset: NormalizedDataset, filters: FilterState | None = None) -> RoundsRollup:
    """Rounds distribution, averages and round values per channel.

    Args:
        dataset: Normalized dataset.
        filters: Active filters.

    Returns:
        RoundsRollup; ``available`` is False when the data cannot express rounds.
    """
    if not dataset.is_item_level or not dataset.has_item_timestamps:
        logger.warning("Rounds need item-level data with %s; returning empty result", F.ITEM_CREATED_AT)
        return RoundsRollup()

    rows = build_predicate(dataset, filters).select_items(dataset.frame)
    rounds, orders = order_rounds(rows)
    channels = {}
    for channel in F.CHANNELS:
        channel_orders = orders.loc[orders["channel"] == channel]
        channel_rounds = rounds.loc[rounds["order_id"].isin(channel_orders["order_id"])]
        channels[channel] = _channel_rounds(channel_rounds, channel_orders)

    rollup = RoundsRollup(waiter=channels[F.WAITER], api=channels[F.API], available=True)
    logger.debug(
        "Rounds: avg waiter=%.2f api=%.2f", rollup.waiter.avg_rounds, rollup.api.avg_rounds
    )
    return rollup
