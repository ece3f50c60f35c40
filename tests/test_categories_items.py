"""Tests for the category/group rollup and item analytics."""

import pandas as pd
import pytest

from dinein_core.core import fields as F
from dinein_core.core.filters import FilterState
from dinein_core.core.normalize import NormalizedDataset, normalize_frame
from dinein_core.core.taxonomy import category_group
from dinein_core.marts.categories import category_rollup, order_item_mix
from dinein_core.marts.items import item_analytics


@pytest.mark.parametrize(
    "category, group",
    [
        ("Hot Coffee", "Drinks"),
        ("Fresh Juices", "Drinks"),
        ("Cakes & Pastry", "Desserts"),
        ("Soups", "Starters & Sides"),
        ("Kid's Menu", "Kids"),
        ("AYCE Brunch", "AYCE"),
        ("Add-ons", "Add-ons"),
        ("Breakfast Combo", "Mains"),
        ("Fit Fuel", "Mains"),
        ("Merchandise", "Other"),
        ("", "Other"),
    ],
)
def test_category_group(category: str, group: str) -> None:
    assert category_group(category) == group


class TestCategoryRollup:
    def test_group_counts(self, dataset: NormalizedDataset) -> None:
        groups = category_rollup(dataset).groups.set_index("group")
        assert groups.loc["Mains", "waiter_count"] == 2
        assert groups.loc["Mains", "api_count"] == 2
        assert groups.loc["Drinks", "total"] == 5
        assert groups.loc["Mains", "api_revenue"] == pytest.approx(140.0)

    def test_groups_sorted_by_total(self, dataset: NormalizedDataset) -> None:
        groups = category_rollup(dataset).groups
        assert groups["group"].iloc[0] == "Drinks"
        assert groups["total"].is_monotonic_decreasing

    def test_per_order_averages(self, dataset: NormalizedDataset) -> None:
        rollup = category_rollup(dataset)
        assert rollup.order_counts == {F.WAITER: 2, F.API: 2}
        mains = rollup.groups.set_index("group").loc["Mains"]
        assert mains["waiter_avg_per_order"] == pytest.approx(1.0)
        assert mains["total_avg_per_order"] == pytest.approx(1.0)
        assert mains["waiter_pct_of_total"] == pytest.approx(40.0)

    def test_category_table(self, dataset: NormalizedDataset) -> None:
        categories = category_rollup(dataset).categories.set_index("category")
        assert categories.loc["Coffee", "waiter_count"] == 3
        assert categories.loc["Coffee", "waiter_revenue"] == pytest.approx(40.0)
        assert categories.loc["Burgers", "api_pct"] == pytest.approx(100.0)
        assert categories.loc["Cake", "group"] == "Desserts"

    def test_item_mix(self, dataset: NormalizedDataset) -> None:
        rollup = category_rollup(dataset)
        assert rollup.waiter_mix.mains == pytest.approx(1.0)
        assert rollup.waiter_mix.drinks == pytest.approx(1.0)
        assert rollup.waiter_mix.total == pytest.approx(2.0)
        assert rollup.api_mix.desserts == pytest.approx(0.5)
        assert rollup.api_mix.total == pytest.approx(3.0)
        assert rollup.api_mix.order_count == 2

    def test_order_item_mix_counts_items_only(self, dataset: NormalizedDataset) -> None:
        mix = order_item_mix(dataset.frame).set_index("order_id")
        assert mix.loc["A1", "mains"] == 2
        assert mix.loc["A1", "total"] == 3
        assert mix.loc["A2", "mains"] == 0

    def test_hidden_ayce_changes_denominator(self, dataset: NormalizedDataset) -> None:
        rollup = category_rollup(dataset, FilterState(show_ayce=False))
        assert rollup.order_counts == {F.WAITER: 2, F.API: 1}
        assert "AYCE Brunch" not in set(rollup.categories["category"])
        assert "Fresh Juices" not in set(rollup.categories["category"])

    def test_category_filter(self, dataset: NormalizedDataset) -> None:
        rollup = category_rollup(dataset, FilterState(categories=["Cake"]))
        assert rollup.categories["category"].tolist() == ["Cake"]
        assert rollup.order_counts == {F.WAITER: 0, F.API: 1}

    def test_order_level_is_empty(self, order_level_export: pd.DataFrame) -> None:
        rollup = category_rollup(normalize_frame(order_level_export))
        assert rollup.is_empty
        assert rollup.groups.empty


class TestItemAnalytics:
    def test_top_items(self, dataset: NormalizedDataset) -> None:
        items = item_analytics(dataset)
        assert items.item_sales["name"].tolist()[:3] == ["Latte", "Classic Burger", "Orange Juice"]
        assert items.item_revenue["name"].iloc[0] == "AYCE Brunch"
        assert bool(items.item_revenue["is_ayce"].iloc[0])

    def test_hidden_ayce(self, dataset: NormalizedDataset) -> None:
        items = item_analytics(dataset, FilterState(show_ayce=False))
        assert items.item_revenue["name"].iloc[0] == "Classic Burger"
        assert "Orange Juice" not in set(items.item_sales["name"])

    def test_item_types(self, dataset: NormalizedDataset) -> None:
        types = item_analytics(dataset).item_types.set_index("item_kind")
        assert types.loc[F.COMBO_ITEM, "count"] == 10
        assert types.loc[F.COMBO_ADDON, "count"] == 2
        assert types.loc[F.COMBO_ADDON, "revenue"] == pytest.approx(5.0)

    def test_combos(self, dataset: NormalizedDataset) -> None:
        combos = item_analytics(dataset).combo_sales.set_index("name")
        assert "Extra Cheese" not in combos.index
        assert combos.loc["Classic Burger", "count"] == 2
        assert combos.loc["Classic Burger", "revenue"] == pytest.approx(140.0)

    def test_ayce_distribution(self, dataset: NormalizedDataset) -> None:
        ayce = item_analytics(dataset).ayce.set_index("name")
        assert ayce.loc["AYCE", "count"] == 1
        assert ayce.loc["AYCE", "revenue"] == pytest.approx(200.0)
        assert ayce.loc["Non-AYCE", "count"] == 11
        assert ayce.loc["Non-AYCE", "revenue"] == pytest.approx(380.0)

    def test_price_is_last_positive(self) -> None:
        raw = pd.DataFrame(
            {
                "ORDER_ID": ["A1", "A2", "A3"],
                "ORDER_TOTAL_LCY": ["10", "10", "10"],
                "ITEM_NAME_CLEAN": ["Latte", "Latte", "Latte"],
                "ITEM_ADDON_FLG": ["COMBO_ITEM"] * 3,
                "I_MENU_PRICE_B_TAX": ["18", "20", "0"],
            }
        )
        items = item_analytics(normalize_frame(raw)).item_sales
        assert items.loc[0, "price"] == pytest.approx(20.0)
        assert items.loc[0, "count"] == 3

    def test_order_level_is_empty(self, order_level_export: pd.DataFrame) -> None:
        items = item_analytics(normalize_frame(order_level_export))
        assert items.item_sales.empty
        assert items.ayce.empty
