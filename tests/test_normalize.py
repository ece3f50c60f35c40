"""Tests for the Row Normalizer (silver layer).

Covers file-shape detection, the field fallback chains, safe numeric parsing,
addon pricing rules and the single-row contract.
"""

import pandas as pd
import pytest

from dinein_core.api import build_dashboard
from dinein_core.core import fields as F
from dinein_core.core.normalize import (
    NormalizedDataset,
    detect_file_shape,
    normalize_frame,
    normalize_row,
    normalize_rows,
)


def _line(**overrides: str) -> dict[str, str]:
    row = {
        "ORDER_ID": "A1",
        "ORDER_CREATED_AT": "2024-01-06 12:00:00",
        "CREATED_BY_FULL_NAME": "Sara Waiter",
        "KITCHEN_NAME_CLEAN": "Marina",
        "CATEGORY_NAME": "Burgers",
        "ITEM_NAME_CLEAN": "Classic Burger",
        "ITEM_ADDON_FLG": "COMBO_ITEM",
        "I_MENU_PRICE_B_TAX": "70",
        "ITEM_QUANTITY": "1",
        "ORDER_TOTAL_LCY": "150",
    }
    row.update(overrides)
    return row


class TestFileShape:
    def test_order_total_means_item_level(self) -> None:
        assert detect_file_shape(["ORDER_ID", "ORDER_TOTAL_LCY"]) == F.ITEM_LEVEL

    def test_final_bill_means_item_level(self) -> None:
        assert detect_file_shape(["ORDER_ID", "O_PRICE_FINAL_BILL"]) == F.ITEM_LEVEL

    def test_anything_else_is_order_level(self) -> None:
        assert detect_file_shape(["ORDER_ID", "TOTAL_PARTED_BILL_AMOUNT"]) == F.ORDER_LEVEL
        assert detect_file_shape([]) == F.ORDER_LEVEL

    def test_dataset_flags(self, dataset: NormalizedDataset, order_level_export: pd.DataFrame) -> None:
        """Capability flags follow the header."""
        assert dataset.is_item_level
        assert dataset.has_addon_pricing
        assert dataset.has_item_timestamps

        orders = normalize_frame(order_level_export)
        assert not orders.is_item_level
        assert not orders.has_addon_pricing
        assert not orders.has_item_timestamps


class TestCanonicalFields:
    def test_one_line_per_raw_row(self, dataset: NormalizedDataset) -> None:
        assert len(dataset.frame) == 9
        assert list(dataset.frame.columns) == F.CANONICAL_COLUMNS

    def test_channel_from_creator(self, dataset: NormalizedDataset) -> None:
        firsts = dataset.frame.drop_duplicates("order_id").set_index("order_id")["channel"]
        assert firsts.to_dict() == {"W1": F.WAITER, "A1": F.API, "A2": F.API, "W2": F.WAITER}

    def test_date_and_weekend(self, dataset: NormalizedDataset) -> None:
        firsts = dataset.frame.drop_duplicates("order_id").set_index("order_id")
        assert firsts.loc["W1", "order_date"] == "2024-01-05"
        assert not firsts.loc["W1", "is_weekend"]
        assert firsts.loc["A1", "is_weekend"]
        assert not firsts.loc["W2", "is_weekend"]

    def test_unparseable_date_is_missing(self) -> None:
        """A bad timestamp leaves the line undated and not weekend."""
        ds = normalize_rows([_line(ORDER_CREATED_AT="not a date"), _line(ORDER_ID="A2", ORDER_CREATED_AT="")])
        assert ds.frame["order_date"].isna().all()
        assert not ds.frame["is_weekend"].any()

    def test_group_from_category(self, dataset: NormalizedDataset) -> None:
        groups = dict(zip(dataset.frame["category"], dataset.frame["group"]))
        assert groups["Breakfast"] == "Mains"
        assert groups["Coffee"] == "Drinks"
        assert groups["Cake"] == "Desserts"
        assert groups["AYCE Brunch"] == "AYCE"
        assert groups["Add-ons"] == "Add-ons"

    def test_empty_category_reads_unknown(self) -> None:
        ds = normalize_rows([_line(CATEGORY_NAME="")])
        row = ds.frame.iloc[0]
        assert row["category"] == F.UNKNOWN_CATEGORY
        assert row["group"] == "Other"

    def test_kitchen_fallback_chain(self) -> None:
        """First present, non-empty kitchen column wins; Unknown otherwise."""
        rows = [
            _line(ORDER_ID="A1", KITCHEN_NAME_CLEAN="", DIM_KITCHEN_NAME="Dim Marina", KITCHEN_NAME="Raw"),
            _line(ORDER_ID="A2", KITCHEN_NAME_CLEAN="", DIM_KITCHEN_NAME="", KITCHEN_NAME="Raw JBR"),
            _line(ORDER_ID="A3", KITCHEN_NAME_CLEAN="", DIM_KITCHEN_NAME="", KITCHEN_NAME=""),
        ]
        kitchens = normalize_rows(rows).frame["kitchen"].tolist()
        assert kitchens == ["Dim Marina", "Raw JBR", F.UNKNOWN_KITCHEN]

    def test_kitchen_id_and_location_defaults(self) -> None:
        row = normalize_rows([_line()]).frame.iloc[0]
        assert row["kitchen_id"] == "Marina"
        assert row["location_category"] == F.UNCATEGORIZED

    def test_ayce_from_item_or_category(self) -> None:
        rows = [
            _line(ORDER_ID="A1", ITEM_NAME_CLEAN="AYCE Brunch"),
            _line(ORDER_ID="A2", CATEGORY_NAME="AYCE Weekend"),
            _line(ORDER_ID="A3"),
        ]
        assert normalize_rows(rows).frame["is_ayce"].tolist() == [True, True, False]

    def test_unknown_item_kind_collapses_to_other(self) -> None:
        ds = normalize_rows([_line(ITEM_ADDON_FLG="MODIFIER"), _line(ORDER_ID="A2", ITEM_ADDON_FLG="")])
        assert ds.frame["item_kind"].tolist() == [F.OTHER, F.OTHER]


class TestNumbers:
    def test_quantity_defaults_to_one(self) -> None:
        """Zero, missing and garbage quantities count as 1; decimals truncate."""
        rows = [
            _line(ORDER_ID="A1", ITEM_QUANTITY="0"),
            _line(ORDER_ID="A2", ITEM_QUANTITY=""),
            _line(ORDER_ID="A3", ITEM_QUANTITY="two"),
            _line(ORDER_ID="A4", ITEM_QUANTITY="3.7"),
        ]
        assert normalize_rows(rows).frame["quantity"].tolist() == [1, 1, 1, 3]

    def test_position_quantity_falls_back_to_quantity(self) -> None:
        rows = [
            _line(ORDER_ID="A1", ITEM_QUANTITY="2", POSITION_QUANTITY=""),
            _line(ORDER_ID="A2", ITEM_QUANTITY="2", POSITION_QUANTITY="3"),
        ]
        assert normalize_rows(rows).frame["position_quantity"].tolist() == [2, 3]

    def test_bill_with_thousands_separator(self, order_level_export: pd.DataFrame) -> None:
        ds = normalize_frame(order_level_export)
        assert ds.frame["bill"].tolist() == [100.0, 80.0, 1200.0]

    def test_bill_chain_sums_final_bill_and_wallet(self) -> None:
        raw = pd.DataFrame(
            {
                "ORDER_ID": ["A1"],
                "O_PRICE_FINAL_BILL": ["90.5"],
                "WALLET_PAYMENT_AMOUNT": ["9.5"],
                "SUBTOTAL_USD": ["999"],
            }
        )
        assert normalize_frame(raw).frame["bill"].iloc[0] == pytest.approx(100.0)

    def test_bill_chain_subtotal_plus_tax(self) -> None:
        raw = pd.DataFrame({"ORDER_ID": ["A1"], "SUBTOTAL_USD": ["40"], "TAX_AMOUNT_USD": ["2"]})
        assert normalize_frame(raw).frame["bill"].iloc[0] == pytest.approx(42.0)

    def test_no_bill_column_is_zero(self) -> None:
        raw = pd.DataFrame({"ORDER_ID": ["A1"]})
        assert normalize_frame(raw).frame["bill"].iloc[0] == 0.0

    def test_garbage_numbers_are_zero(self) -> None:
        ds = normalize_rows([_line(I_MENU_PRICE_B_TAX="n/a", ORDER_TOTAL_LCY="??")])
        row = ds.frame.iloc[0]
        assert row["price"] == 0.0
        assert row["bill"] == 0.0

    @pytest.mark.parametrize("value", ["inf", "-Infinity", "Infinity", "1e400"])
    def test_infinite_numbers_are_zero(self, value: str) -> None:
        """Overflowing or infinite cells parse like garbage."""
        ds = normalize_rows(
            [_line(ITEM_QUANTITY=value, ORDER_TOTAL_LCY=value, I_MENU_PRICE_B_TAX=value)]
        )
        row = ds.frame.iloc[0]
        assert row["quantity"] == 1
        assert row["position_quantity"] == 1
        assert row["bill"] == 0.0
        assert row["price"] == 0.0

    def test_infinite_cells_do_not_break_the_dashboard(self) -> None:
        rows = [
            _line(ORDER_ID="A1", ITEM_QUANTITY="Infinity", ORDER_TOTAL_LCY="Infinity"),
            _line(ORDER_ID="A2", ITEM_QUANTITY="1", ORDER_TOTAL_LCY="1e400"),
        ]
        dashboard = build_dashboard(normalize_rows(rows))
        assert dashboard.order_count == 2
        assert dashboard.summary.waiter.bill == 0.0


class TestPricing:
    def test_item_price_falls_back_to_combo_net(self) -> None:
        ds = normalize_rows([_line(I_MENU_PRICE_B_TAX="0", COMBO_PRICE_NET="65")])
        assert ds.frame["price"].iloc[0] == 65.0

    def test_addon_never_uses_combo_or_parent_price(self) -> None:
        """Addons use the line price only; a missing price means free."""
        ds = normalize_rows(
            [
                _line(
                    ITEM_ADDON_FLG="COMBO_ADDON",
                    I_MENU_PRICE_B_TAX="",
                    COMBO_PRICE_NET="65",
                    P_MENU_PRICE_B_TAX="70",
                )
            ]
        )
        assert ds.frame["price"].iloc[0] == 0.0

    def test_addon_without_price_column(self) -> None:
        row = _line(ITEM_ADDON_FLG="COMBO_ADDON", COMBO_PRICE_NET="12")
        del row["I_MENU_PRICE_B_TAX"]
        ds = normalize_rows([row])
        assert not ds.has_addon_pricing
        assert ds.frame["price"].iloc[0] == 0.0

    def test_sample_addon_prices(self, dataset: NormalizedDataset) -> None:
        addons = dataset.frame.loc[dataset.frame["item_kind"] == F.COMBO_ADDON]
        assert dict(zip(addons["item_name"], addons["price"])) == {"Oat Milk": 0.0, "Extra Cheese": 5.0}


class TestMissingOrderId:
    def test_rows_without_order_id_are_dropped(self) -> None:
        ds = normalize_rows([_line(), _line(ORDER_ID=""), _line(ORDER_ID="  ")])
        assert len(ds.frame) == 1
        assert ds.dropped_rows == 2

    def test_empty_frame(self) -> None:
        ds = normalize_frame(pd.DataFrame(columns=["ORDER_ID", "ORDER_TOTAL_LCY"]))
        assert ds.is_empty
        assert ds.is_item_level


class TestNormalizeRow:
    def test_single_row(self) -> None:
        row = normalize_row(_line(CREATED_BY_FULL_NAME="DINE IN API"))
        assert row is not None
        assert row.order_id == "A1"
        assert row.channel == F.API
        assert row.order_date == "2024-01-06"
        assert row.is_weekend is True
        assert row.price == 70.0
        assert row.quantity == 1
        assert row.bill == 150.0

    def test_single_row_without_id(self) -> None:
        assert normalize_row({"ORDER_ID": ""}) is None

    def test_single_row_undated(self) -> None:
        row = normalize_row(_line(ORDER_CREATED_AT="garbage"))
        assert row is not None
        assert row.order_date is None
