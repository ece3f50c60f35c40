"""Raw (Bronze) layer: decode CSV exports into raw rows.

Every column is read as ``str`` and empty cells stay ``""`` so that field
presence means "column exists in the header", the same way a header-row CSV
decoder hands rows to the Row Normalizer. Numeric parsing happens later, in
``dinein_core.core.normalize``.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

from dinein_core.exceptions import DataQualityError

logger = logging.getLogger(__name__)


def _read(source: io.StringIO | Path | str, label: str) -> pd.DataFrame:
    try:
        df = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError as e:
        raise DataQualityError(f"{label} is empty or has no header row") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DataQualityError(f"{label} could not be decoded as CSV: {e}") from e
    # Header cells sometimes carry stray whitespace
    df.columns = [str(c).strip() for c in df.columns]
    logger.info("Read %d row(s) with %d column(s) from %s", len(df), len(df.columns), label)
    return df


def parse_csv_text(text: str | bytes, label: str = "CSV text") -> pd.DataFrame:
    """Decode CSV text (or UTF-8 bytes) with a header row into a raw frame.

    Args:
        text: CSV content.
        label: Name used in log and error messages.

    Returns:
        DataFrame with every column as ``str``.

    Raises:
        DataQualityError: If the content is empty, has no header, or cannot
            be decoded.

    Examples:
        >>> parse_csv_text("ORDER_ID,ITEM_QUANTITY\\nA1,2\\n").iloc[0].to_dict()
        {'ORDER_ID': 'A1', 'ITEM_QUANTITY': '2'}
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DataQualityError(f"{label} is not valid UTF-8: {e}") from e
    return _read(io.StringIO(text), label)


def read_csv_rows(path: str | Path) -> pd.DataFrame:
    """Read a CSV export from disk into a raw frame.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        DataQualityError: If the file cannot be decoded.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    return _read(path, path.name)
