"""Source column names, fallback chains and domain constants.

Every canonical field is resolved from an ordered tuple of export columns.
The first column that is present *and* non-empty for a row wins. Keeping the
chains here, as data, makes the contract auditable in one place.
"""

from __future__ import annotations

# ---------- source columns ----------
ORDER_ID = "ORDER_ID"
ORDER_CREATED_AT = "ORDER_CREATED_AT"
CREATED_BY = "CREATED_BY_FULL_NAME"
ITEM_KIND = "ITEM_ADDON_FLG"
ITEM_CREATED_AT = "ITEM_CREATED_AT"
CATEGORY_NAME = "CATEGORY_NAME"
LOCATION_CATEGORY = "LOCATION_CATEGORY"
KITCHEN_ID = "FK_SKOS_KITCHEN_ID"
ITEM_QUANTITY = "ITEM_QUANTITY"
POSITION_QUANTITY = "POSITION_QUANTITY"

# Tax-inclusive menu price of the line itself. For addons this is the only
# trustworthy price; P_MENU_PRICE_B_TAX is the parent position price.
ADDON_PRICE = "I_MENU_PRICE_B_TAX"
COMBO_PRICE = "COMBO_PRICE_NET"

ORDER_TOTAL = "ORDER_TOTAL_LCY"
FINAL_BILL = "O_PRICE_FINAL_BILL"
WALLET_PAYMENT = "WALLET_PAYMENT_AMOUNT"
PARTED_BILL = "TOTAL_PARTED_BILL_AMOUNT"
SUBTOTAL = "SUBTOTAL_USD"
TAX_AMOUNT = "TAX_AMOUNT_USD"

# ---------- fallback chains ----------
KITCHEN_SOURCES = ("KITCHEN_NAME_CLEAN", "DIM_KITCHEN_NAME", "KITCHEN_NAME")
ITEM_NAME_SOURCES = ("ITEM_NAME_CLEAN", "ITEM_NAME")
COMBO_NAME_SOURCES = ("COMBO_NAME", "POSITION_NAME_CLEAN", "ITEM_NAME_CLEAN")

# Order bill: the first column set whose leading column exists in the file
# wins. Members of the set are summed, missing members count as 0.
BILL_SOURCES = (
    (ORDER_TOTAL,),
    (FINAL_BILL, WALLET_PAYMENT),
    (PARTED_BILL,),
    (SUBTOTAL, TAX_AMOUNT),
)

# A file exposing either of these is an item-level export.
ITEM_LEVEL_MARKERS = (ORDER_TOTAL, FINAL_BILL)

# ---------- file shapes ----------
ITEM_LEVEL = "item"
ORDER_LEVEL = "order"

# ---------- channels ----------
WAITER = "waiter"
API = "api"
CHANNELS = (WAITER, API)
API_CREATOR = "DINE IN API"

# ---------- item kinds ----------
COMBO_ITEM = "COMBO_ITEM"
COMBO_ADDON = "COMBO_ADDON"
OTHER = "OTHER"
ITEM_KINDS = (COMBO_ITEM, COMBO_ADDON, OTHER)

# ---------- defaults ----------
AYCE_MARKER = "AYCE"
UNKNOWN_KITCHEN = "Unknown"
UNKNOWN_CATEGORY = "Unknown"
UNKNOWN_NAME = "Unknown"
UNCATEGORIZED = "UNCATEGORIZED"

# ---------- canonical frame ----------
CANONICAL_COLUMNS = [
    "order_id",
    "order_date",
    "is_weekend",
    "channel",
    "kitchen",
    "kitchen_id",
    "location_category",
    "category",
    "group",
    "item_name",
    "combo_name",
    "item_kind",
    "price",
    "combo_price",
    "quantity",
    "position_quantity",
    "bill",
    "item_created_at",
    "is_ayce",
    "is_combo_ayce",
]

ORDER_COLUMNS = [
    "order_id",
    "order_date",
    "is_weekend",
    "kitchen",
    "kitchen_id",
    "location_category",
    "channel",
    "bill",
]
