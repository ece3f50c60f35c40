"""Silver layer: turn raw export rows into canonical order/item lines.

Overview
--------
The dashboard accepts two export shapes:

- **item-level**: one row per item or addon line. Detected when the file has
  an order-total (``ORDER_TOTAL_LCY``) or final-bill (``O_PRICE_FINAL_BILL``)
  column.
- **order-level**: one row per order. Only order aggregates are possible;
  item, category and basket rollups degrade to empty results.

Shape is decided once per dataset from its header and assumed stable.

Every canonical field is resolved through the fallback chains declared in
``dinein_core.core.fields``. Numeric fields are safe-parsed: anything that is
not a number becomes 0 and nothing here raises on bad data.

Price derivation
----------------
- ``COMBO_ADDON`` lines use the tax-inclusive line price (``I_MENU_PRICE_B_TAX``)
  or 0 when the file does not carry it. They never fall back to the parent
  position price.
- Other lines use the line price when non-zero, else the combo net price.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from dinein_core.core import fields as F
from dinein_core.core.taxonomy import category_group

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class NormalizedDataset:
    """Canonical lines plus what the source file was able to express.

    Attributes:
        frame: One row per surviving raw row, columns ``fields.CANONICAL_COLUMNS``.
        shape: ``"item"`` or ``"order"``.
        has_addon_pricing: The file carries the addon line-price column.
        has_item_timestamps: The file carries item creation timestamps.
        dropped_rows: Raw rows discarded because they had no order id.
    """

    frame: pd.DataFrame
    shape: str
    has_addon_pricing: bool = False
    has_item_timestamps: bool = False
    dropped_rows: int = 0

    @property
    def is_item_level(self) -> bool:
        return self.shape == F.ITEM_LEVEL

    @property
    def is_empty(self) -> bool:
        return self.frame.empty


@dataclass(frozen=True)
class CanonicalRow:
    """A single normalized line (see ``normalize_row``)."""

    order_id: str
    order_date: str | None
    is_weekend: bool
    channel: str
    kitchen: str
    kitchen_id: str
    location_category: str
    category: str
    group: str
    item_name: str
    combo_name: str
    item_kind: str
    price: float
    combo_price: float
    quantity: int
    position_quantity: int
    bill: float
    item_created_at: str
    is_ayce: bool
    is_combo_ayce: bool


# ---------- helpers ----------
def detect_file_shape(columns: Iterable[str]) -> str:
    """Return ``"item"`` if any item-level marker column exists, else ``"order"``.

    Examples:
        >>> detect_file_shape(["ORDER_ID", "ORDER_TOTAL_LCY"])
        'item'
        >>> detect_file_shape(["ORDER_ID", "TOTAL_PARTED_BILL_AMOUNT"])
        'order'
    """
    cols = set(columns)
    if any(marker in cols for marker in F.ITEM_LEVEL_MARKERS):
        return F.ITEM_LEVEL
    return F.ORDER_LEVEL


def _text(df: pd.DataFrame, col: str) -> pd.Series:
    """Column as stripped strings; a missing column reads as all-empty."""
    if col not in df.columns:
        return pd.Series("", index=df.index, dtype=object)
    return df[col].fillna("").astype(str).str.strip()


def _first_non_empty(df: pd.DataFrame, columns: Iterable[str], default: str = "") -> pd.Series:
    """Resolve a fallback chain: first present, non-empty column per row."""
    result = pd.Series("", index=df.index, dtype=object)
    for col in columns:
        if col not in df.columns:
            continue
        result = result.where(result != "", _text(df, col))
    if default:
        result = result.where(result != "", default)
    return result


def _number(df: pd.DataFrame, col: str) -> pd.Series:
    """Safe float parse. Missing column, blanks, garbage and infinities become 0."""
    raw = _text(df, col).str.replace(",", "", regex=False)
    values = pd.to_numeric(raw, errors="coerce").astype(float)
    return values.replace([np.inf, -np.inf], np.nan).fillna(0.0)


def _count(df: pd.DataFrame, col: str) -> pd.Series:
    """Safe integer parse (truncating). Missing/garbage/zero/infinite become NaN."""
    raw = _text(df, col).str.replace(",", "", regex=False)
    values = pd.to_numeric(raw, errors="coerce").astype(float)
    values = values.replace([np.inf, -np.inf], np.nan)
    values = np.trunc(values)
    return values.where(values != 0)


def _bill(df: pd.DataFrame) -> pd.Series:
    """Order total from the first bill column set the file carries."""
    for sources in F.BILL_SOURCES:
        if sources[0] in df.columns:
            total = pd.Series(0.0, index=df.index)
            for col in sources:
                total = total + _number(df, col)
            return total
    return pd.Series(0.0, index=df.index)


def _contains(values: pd.Series, marker: str) -> pd.Series:
    return values.str.contains(marker, regex=False)


# ---------- core ----------
def normalize_frame(raw: pd.DataFrame) -> NormalizedDataset:
    """Normalize a raw export frame into canonical lines.

    Args:
        raw: Rows as decoded from the CSV, ideally with every column as ``str``.

    Returns:
        NormalizedDataset. Rows without an order id are dropped.
    """
    shape = detect_file_shape(raw.columns)
    has_addon_pricing = F.ADDON_PRICE in raw.columns
    has_item_timestamps = F.ITEM_CREATED_AT in raw.columns

    logger.debug(
        "Normalizing %d row(s): shape=%s addon_pricing=%s item_timestamps=%s",
        len(raw),
        shape,
        has_addon_pricing,
        has_item_timestamps,
    )

    order_id = _text(raw, F.ORDER_ID)
    keep = order_id != ""
    dropped = int((~keep).sum())
    if dropped:
        logger.warning("Dropped %d row(s) without %s", dropped, F.ORDER_ID)

    df = raw.loc[keep]
    out = pd.DataFrame(index=df.index)
    out["order_id"] = order_id[keep]

    # Order date: first 10 characters of the created timestamp, if it is a real date
    created = _text(df, F.ORDER_CREATED_AT).str[:10]
    parsed = pd.to_datetime(created, format="%Y-%m-%d", errors="coerce")
    out["order_date"] = created.where(parsed.notna(), None)
    out["is_weekend"] = (parsed.dt.dayofweek >= 5).fillna(False).astype(bool)

    out["channel"] = np.where(_text(df, F.CREATED_BY) == F.API_CREATOR, F.API, F.WAITER)

    kitchen = _first_non_empty(df, F.KITCHEN_SOURCES, F.UNKNOWN_KITCHEN)
    out["kitchen"] = kitchen
    kitchen_id = _text(df, F.KITCHEN_ID)
    out["kitchen_id"] = kitchen_id.where(kitchen_id != "", kitchen)
    out["location_category"] = _first_non_empty(df, (F.LOCATION_CATEGORY,), F.UNCATEGORIZED)

    category = _text(df, F.CATEGORY_NAME)
    out["category"] = category.where(category != "", F.UNKNOWN_CATEGORY)
    groups = {value: category_group(value) for value in category.unique()}
    out["group"] = category.map(groups)

    item_name = _first_non_empty(df, F.ITEM_NAME_SOURCES)
    combo_name = _first_non_empty(df, F.COMBO_NAME_SOURCES, F.UNKNOWN_NAME)
    out["item_name"] = item_name.where(item_name != "", F.UNKNOWN_NAME)
    out["combo_name"] = combo_name

    kind = _text(df, F.ITEM_KIND)
    out["item_kind"] = kind.where(kind.isin([F.COMBO_ITEM, F.COMBO_ADDON]), F.OTHER)

    line_price = _number(df, F.ADDON_PRICE)
    combo_price = _number(df, F.COMBO_PRICE)
    item_price = line_price.where(line_price != 0, combo_price)
    out["price"] = line_price.where(out["item_kind"] == F.COMBO_ADDON, item_price)
    out["combo_price"] = combo_price

    quantity = _count(df, F.ITEM_QUANTITY)
    out["quantity"] = quantity.fillna(1).astype(int)
    out["position_quantity"] = (
        _count(df, F.POSITION_QUANTITY).fillna(quantity).fillna(1).astype(int)
    )

    out["bill"] = _bill(df)
    out["item_created_at"] = _text(df, F.ITEM_CREATED_AT)

    category_ayce = _contains(category, F.AYCE_MARKER)
    out["is_ayce"] = _contains(item_name, F.AYCE_MARKER) | category_ayce
    out["is_combo_ayce"] = _contains(combo_name, F.AYCE_MARKER) | category_ayce

    frame = out[F.CANONICAL_COLUMNS].reset_index(drop=True)

    logger.info(
        "Normalized %d line(s) across %d order(s) (%s-level export)",
        len(frame),
        frame["order_id"].nunique(),
        shape,
    )

    return NormalizedDataset(
        frame=frame,
        shape=shape,
        has_addon_pricing=has_addon_pricing,
        has_item_timestamps=has_item_timestamps,
        dropped_rows=dropped,
    )


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> NormalizedDataset:
    """Normalize an iterable of row mappings (header name -> value)."""
    raw = pd.DataFrame(list(rows))
    return normalize_frame(raw)


def normalize_row(row: Mapping[str, Any]) -> CanonicalRow | None:
    """Normalize a single row, or return None when it has no order id.

    The row's own keys decide which fallback columns are present, exactly as
    a one-row file would.

    Examples:
        >>> r = normalize_row({"ORDER_ID": "A1", "CREATED_BY_FULL_NAME": "DINE IN API"})
        >>> r.channel
        'api'
        >>> normalize_row({"ORDER_ID": ""}) is None
        True
    """
    dataset = normalize_rows([row])
    if dataset.is_empty:
        return None
    record = dataset.frame.iloc[0].to_dict()
    values = {k: _scalar(v) for k, v in record.items()}
    return CanonicalRow(**values)


def _scalar(value: Any) -> Any:
    """Convert numpy scalars to Python and missing values to None."""
    if pd.isna(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value
