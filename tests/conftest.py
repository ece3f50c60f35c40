"""Shared fixtures: a small item-level dine-in export.

Four orders across two kitchens and three days:

- W1 (Fri 2024-01-05, waiter, Marina): breakfast main, 2 lattes, a free oat milk
- A1 (Sat 2024-01-06, API, Marina): 2 burgers + paid cheese, a cake in a second round
- A2 (Sat 2024-01-06, API, JBR): one AYCE brunch and 2 juices
- W2 (Mon 2024-01-08, waiter, JBR): one salad

Every value is a string, the way the CSV reader hands rows over.
"""

import pandas as pd
import pytest

from dinein_core.core.normalize import NormalizedDataset, normalize_frame

COLUMNS = [
    "ORDER_ID",
    "ORDER_CREATED_AT",
    "CREATED_BY_FULL_NAME",
    "KITCHEN_NAME_CLEAN",
    "FK_SKOS_KITCHEN_ID",
    "LOCATION_CATEGORY",
    "CATEGORY_NAME",
    "ITEM_NAME_CLEAN",
    "ITEM_ADDON_FLG",
    "I_MENU_PRICE_B_TAX",
    "COMBO_PRICE_NET",
    "ITEM_QUANTITY",
    "ORDER_TOTAL_LCY",
    "ITEM_CREATED_AT",
]

ROWS = [
    # W1
    ["W1", "2024-01-05 09:00:00", "Sara Waiter", "Marina", "K1", "Mall", "Breakfast", "Eggs Benedict",
     "COMBO_ITEM", "60", "60", "1", "120", "2024-01-05 09:00:00"],
    ["W1", "2024-01-05 09:00:00", "Sara Waiter", "Marina", "K1", "Mall", "Coffee", "Latte",
     "COMBO_ITEM", "20", "20", "2", "120", "2024-01-05 09:00:00"],
    ["W1", "2024-01-05 09:00:00", "Sara Waiter", "Marina", "K1", "Mall", "Coffee", "Oat Milk",
     "COMBO_ADDON", "0", "", "1", "120", "2024-01-05 09:00:00"],
    # A1
    ["A1", "2024-01-06 12:00:00", "DINE IN API", "Marina", "K1", "Mall", "Burgers", "Classic Burger",
     "COMBO_ITEM", "70", "70", "2", "150", "2024-01-06 12:00:00"],
    ["A1", "2024-01-06 12:00:00", "DINE IN API", "Marina", "K1", "Mall", "Add-ons", "Extra Cheese",
     "COMBO_ADDON", "5", "", "1", "150", "2024-01-06 12:00:00"],
    ["A1", "2024-01-06 12:00:00", "DINE IN API", "Marina", "K1", "Mall", "Cake", "Cheesecake",
     "COMBO_ITEM", "30", "30", "1", "150", "2024-01-06 12:30:00"],
    # A2
    ["A2", "2024-01-06 11:00:00", "DINE IN API", "JBR", "K2", "Street", "AYCE Brunch", "AYCE Brunch",
     "COMBO_ITEM", "200", "200", "1", "260", "2024-01-06 11:00:00"],
    ["A2", "2024-01-06 11:00:00", "DINE IN API", "JBR", "K2", "Street", "Fresh Juices", "Orange Juice",
     "COMBO_ITEM", "30", "30", "2", "260", "2024-01-06 11:00:00"],
    # W2
    ["W2", "2024-01-08 13:00:00", "Omar Waiter", "JBR", "K2", "Street", "Salads", "Caesar Salad",
     "COMBO_ITEM", "45", "45", "1", "45", "2024-01-08 13:00:00"],
]


@pytest.fixture
def raw_export() -> pd.DataFrame:
    """Raw item-level export as decoded from CSV (all columns str)."""
    return pd.DataFrame(ROWS, columns=COLUMNS)


@pytest.fixture
def dataset(raw_export: pd.DataFrame) -> NormalizedDataset:
    """The sample export, normalized."""
    return normalize_frame(raw_export)


@pytest.fixture
def order_level_export() -> pd.DataFrame:
    """Order-level export: one row per order, no item columns."""
    return pd.DataFrame(
        {
            "ORDER_ID": ["O1", "O2", "O3"],
            "ORDER_CREATED_AT": ["2024-01-05 10:00:00", "2024-01-05 11:00:00", "2024-01-06 12:00:00"],
            "CREATED_BY_FULL_NAME": ["Sara Waiter", "DINE IN API", "DINE IN API"],
            "KITCHEN_NAME_CLEAN": ["Marina", "Marina", "JBR"],
            "TOTAL_PARTED_BILL_AMOUNT": ["100", "80", "1,200"],
        }
    )
