"""Order Aggregator: fold filtered lines into one record per order.

The first line seen for an order id is authoritative for every order-level
field (date, kitchen, channel, bill). Later lines of the same order only
feed item-level rollups and never overwrite these fields.

Orders whose date is missing or unparseable are kept in the OrderSet (they
still count for order-count-only metrics) and are reported separately so
date-windowed rollups can drop them explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState, RowPredicate, build_predicate
from dinein_core.core.normalize import NormalizedDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Order:
    """Order-level facts taken from the first line of an order."""

    order_id: str
    date: str | None
    kitchen: str
    kitchen_id: str
    location_category: str
    channel: str
    bill: float

    @property
    def is_api(self) -> bool:
        return self.channel == F.API


@dataclass(frozen=True, eq=False)
class OrderSet:
    """One row per distinct surviving order id, columns ``fields.ORDER_COLUMNS``."""

    frame: pd.DataFrame

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def dated(self) -> pd.DataFrame:
        """Orders usable by date-windowed rollups."""
        return self.frame.loc[self.frame["order_date"].notna()]

    @property
    def undated_count(self) -> int:
        return int(self.frame["order_date"].isna().sum())

    def count(self, channel: str | None = None) -> int:
        if channel is None:
            return len(self.frame)
        return int((self.frame["channel"] == channel).sum())

    def as_dict(self) -> dict[str, Order]:
        """Map order id -> Order, in first-seen order."""
        orders: dict[str, Order] = {}
        for row in self.frame.itertuples(index=False):
            orders[row.order_id] = Order(
                order_id=row.order_id,
                date=row.order_date if pd.notna(row.order_date) else None,
                kitchen=row.kitchen,
                kitchen_id=row.kitchen_id,
                location_category=row.location_category,
                channel=row.channel,
                bill=float(row.bill),
            )
        return orders


def aggregate_orders(dataset: NormalizedDataset, predicate: RowPredicate) -> OrderSet:
    """Build the OrderSet for the lines the predicate includes.

    Args:
        dataset: Normalized dataset.
        predicate: Shared predicate (order scope is applied).

    Returns:
        OrderSet with exactly one row per surviving order id.
    """
    rows = predicate.select_orders(dataset.frame)
    orders = rows.drop_duplicates("order_id", keep="first")[F.ORDER_COLUMNS].reset_index(drop=True)

    result = OrderSet(frame=orders)
    logger.debug(
        "Aggregated %d line(s) into %d order(s) (waiter=%d, api=%d)",
        len(rows),
        len(result),
        result.count(F.WAITER),
        result.count(F.API),
    )
    if result.undated_count:
        logger.warning(
            "%d order(s) have no usable date and are left out of date-based rollups",
            result.undated_count,
        )
    return result


def orders_for(dataset: NormalizedDataset, filters: FilterState | None = None) -> OrderSet:
    """Convenience: build the predicate and aggregate in one call."""
    return aggregate_orders(dataset, build_predicate(dataset, filters))
