"""Tests for the order-rounds rollup."""

import pandas as pd
import pytest

from dinein_core.core import fields as F
from dinein_core.core.normalize import NormalizedDataset, normalize_frame
from dinein_core.marts.rounds import average_rounds, rounds_rollup


def test_average_rounds() -> None:
    assert average_rounds({1: 2, 2: 1}) == pytest.approx(4 / 3)
    assert round(average_rounds({1: 2, 2: 1}), 2) == 1.33


def test_five_plus_weighted() -> None:
    assert average_rounds({"5+": 2}) == pytest.approx(5.5)
    assert average_rounds({}) == 0.0


def test_rollup(dataset: NormalizedDataset) -> None:
    rollup = rounds_rollup(dataset)
    assert rollup.available
    assert rollup.waiter.distribution["1"] == 2
    assert rollup.waiter.avg_rounds == pytest.approx(1.0)
    assert rollup.api.distribution == {"1": 1, "2": 1, "3": 0, "4": 0, "5+": 0}
    assert rollup.api.avg_rounds == pytest.approx(1.5)
    assert rollup.api.multi_round_orders == 1
    assert rollup.api.multi_round_pct == pytest.approx(50.0)


def test_round_values(dataset: NormalizedDataset) -> None:
    rollup = rounds_rollup(dataset)
    # API rounds: A1 145 + 30, A2 260
    assert rollup.api.valued_rounds == 3
    assert rollup.api.avg_round_value == pytest.approx(145.0)
    assert rollup.api.bucket_values["2"] == pytest.approx(87.5)
    assert rollup.api.bucket_values["1"] == pytest.approx(260.0)
    assert rollup.waiter.avg_round_value == pytest.approx(72.5)


def test_table(dataset: NormalizedDataset) -> None:
    table = rounds_rollup(dataset).table.set_index("rounds")
    assert table.loc["2", "api"] == 1
    assert table.loc["2", "api_pct"] == pytest.approx(50.0)
    assert table.loc["1", "waiter_pct"] == pytest.approx(100.0)


def test_orders_without_timestamps_are_one_round() -> None:
    raw = pd.DataFrame(
        {
            "ORDER_ID": ["A1", "A1"],
            "CREATED_BY_FULL_NAME": ["DINE IN API"] * 2,
            "ORDER_TOTAL_LCY": ["50", "50"],
            "ITEM_ADDON_FLG": ["COMBO_ITEM", "COMBO_ITEM"],
            "ITEM_CREATED_AT": ["", ""],
        }
    )
    rollup = rounds_rollup(normalize_frame(raw))
    assert rollup.channel(F.API).distribution["1"] == 1
    assert rollup.channel(F.API).valued_rounds == 0


def test_unavailable_without_item_timestamps(order_level_export: pd.DataFrame) -> None:
    assert not rounds_rollup(normalize_frame(order_level_export)).available

    raw = pd.DataFrame({"ORDER_ID": ["A1"], "ORDER_TOTAL_LCY": ["10"], "ITEM_ADDON_FLG": ["COMBO_ITEM"]})
    rollup = rounds_rollup(normalize_frame(raw))
    assert not rollup.available
    assert rollup.api.orders == 0
