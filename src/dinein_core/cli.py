"""Dine-in dashboard CLI.

Overview
--------
Reads a dine-in order export (item-level or order-level CSV), applies the
requested filters and writes every rollup as JSON. It can also list and upload
files in the blob store configured through ``DINEIN_BLOB_*`` variables.

Usage (CLI)
-----------
Dashboard from a local file:
    dinein-dashboard orders.csv -o dashboard.json

Weekend API adoption for two kitchens, AYCE orders hidden:
    dinein-dashboard orders.csv --day-type weekend --kitchen Marina --kitchen JBR --hide-ayce

Last week, relative to today:
    dinein-dashboard orders.csv --preset lastWeek

Dashboard from a stored file:
    dinein-dashboard https://blob.example.com/2024-01-06_orders.csv

Blob store:
    dinein-dashboard --list-files
    dinein-dashboard --upload orders.csv

Exit codes:
    0 on success
    2 on argument, configuration, data or storage errors
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from dinein_core.api import build_dashboard, load_dataset, resolve_preset
from dinein_core.core.filters import (
    DATE_PRESETS,
    DAY_TYPES,
    MIN_MAINS_VALUES,
    SELECTABLE_ITEM_TYPES,
    FilterState,
)
from dinein_core.exceptions import DineInError
from dinein_core.raw.blob_store import BlobStore

logger = logging.getLogger(__name__)


# ---------- CLI ----------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dinein-dashboard",
        description="Compare waiter and self-order (API) dine-in metrics from a CSV export.",
    )
    p.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Input CSV path or URL of a stored file.",
    )
    p.add_argument("--start", default=None, help="Start date (YYYY-MM-DD), inclusive.")
    p.add_argument("--end", default=None, help="End date (YYYY-MM-DD), inclusive.")
    p.add_argument(
        "--preset",
        choices=DATE_PRESETS,
        default=None,
        help="Quick date range relative to today; overrides --start/--end.",
    )
    p.add_argument("--day-type", choices=DAY_TYPES, default="all", help="Weekday/weekend filter.")
    p.add_argument(
        "--kitchen",
        action="append",
        default=None,
        help="Kitchen to include (repeatable). Default: all kitchens.",
    )
    p.add_argument(
        "--category",
        action="append",
        default=None,
        help="Category to include (repeatable). Default: all categories.",
    )
    p.add_argument(
        "--item-type",
        action="append",
        choices=SELECTABLE_ITEM_TYPES,
        default=None,
        help="Item type to include in item rollups (repeatable). Default: all.",
    )
    p.add_argument("--hide-ayce", action="store_true", help="Drop every order containing an AYCE item.")
    p.add_argument(
        "--min-mains",
        type=int,
        choices=MIN_MAINS_VALUES,
        default=1,
        help="Table-size mode: 1 = orders with any main, 2 = multi-main orders only.",
    )
    p.add_argument("-o", "--output", default=None, help="Output JSON path. Default: stdout.")
    p.add_argument("--list-files", action="store_true", help="List CSV files in the blob store and exit.")
    p.add_argument("--upload", default=None, metavar="CSV", help="Upload a CSV to the blob store and exit.")
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Less logging output.",
    )
    p.add_argument(
        "--verbose",
        "--debug",
        action="store_true",
        dest="verbose",
        help="Verbose/debug logging output.",
    )
    return p


def _filters_from_args(args: argparse.Namespace) -> FilterState:
    return FilterState(
        start_date=args.start,
        end_date=args.end,
        day_type=args.day_type,
        kitchens=args.kitchen,
        categories=args.category,
        show_ayce=not args.hide_ayce,
        item_types=args.item_type,
        min_mains=args.min_mains,
    )


def _list_files() -> int:
    files = BlobStore.from_env().list_files()
    for f in files:
        print(f"{f.uploaded_at}\t{f.size}\t{f.filename}\t{f.url}")
    return 0


def _upload(path: str) -> int:
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Input file not found: {source}")
    result = BlobStore.from_env().upload(source.name, source.read_bytes())
    if not result.success:
        print(f"ERROR: upload failed: {result.error}", file=sys.stderr)
        return 2
    print(f"Uploaded {result.filename}: {result.url}")
    return 0


def _write(payload: dict, output: str | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output is None:
        print(text)
        return
    out = Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text + "\n", encoding="utf-8")
    print(f"Successfully wrote dashboard to: {out}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    try:
        if args.list_files:
            return _list_files()
        if args.upload:
            return _upload(args.upload)
        if not args.input:
            print("ERROR: Must provide an input CSV, --list-files or --upload", file=sys.stderr)
            return 2

        filters = _filters_from_args(args)
        dataset = load_dataset(args.input)
        if args.preset:
            filters = resolve_preset(dataset, filters, args.preset)
            logger.info("Preset %s -> %s .. %s", args.preset, filters.start_date, filters.end_date)
        dashboard = build_dashboard(dataset, filters)
        _write(dashboard.to_dict(), args.output)
        return 0
    except (DineInError, FileNotFoundError) as e:
        logger.error("Error: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
