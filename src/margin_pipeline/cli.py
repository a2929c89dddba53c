"""Command-line interface for orchestrating the pipeline.

Provides subcommands: `inspect`, `report`, and `all`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

import pandas as pd
from dotenv import load_dotenv

from margin_pipeline.config import Settings, get_settings
from margin_pipeline.logging_config import configure_logging
from margin_pipeline.db import get_client, get_db

# INPUT
from margin_pipeline.ingest.load_source import (
    read_financial_figures,
    read_flat_source,
    read_orders,
    read_products,
)
from margin_pipeline.ingest.products import build_product_dimension

# CLEAN
from margin_pipeline.clean.transform import clean_financial_ddf
from margin_pipeline.clean.validate import drop_invalid
from margin_pipeline.clean.inspect import inspect_financials

# GOLD
from margin_pipeline.aggregate.reports import GOLD_REPORTS, ReportInputs
from margin_pipeline.aggregate.load_gold import export_gold_csv, load_gold

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _load_clean(s: Settings) -> pd.DataFrame:
    """Read the financial figures and return the validated Clean view.

    Rows that fail `CleanRecord` validation are dropped before any report
    sees them.

    Raises:
        RuntimeError: if the input holds no rows.
    """
    ddf = clean_financial_ddf(read_financial_figures(s.financials_path))
    pdf = ddf.compute()
    if pdf.empty:
        raise RuntimeError(f"No financial figures found at {s.financials_path}.")

    pdf = drop_invalid(pdf)
    log.info("Clean view: %d rows", len(pdf))
    return pdf.reset_index(drop=True)


def _load_products(s: Settings) -> pd.DataFrame | None:
    if s.products_path is not None:
        return read_products(s.products_path)
    if s.flat_source_path is not None:
        return build_product_dimension(read_flat_source(s.flat_source_path))
    log.warning("Neither PRODUCTS_PATH nor FLAT_SOURCE_PATH set; product names fall back to ids")
    return None


def _load_orders(s: Settings) -> pd.DataFrame | None:
    if s.orders_path is None:
        return None
    return read_orders(s.orders_path)


def _report_names(args: argparse.Namespace) -> list[str]:
    names = args.only or list(GOLD_REPORTS)
    unknown = sorted(set(names) - set(GOLD_REPORTS))
    if unknown:
        raise RuntimeError(f"Unknown reports: {unknown}. Known: {sorted(GOLD_REPORTS)}")
    return names


def _open_db(args: argparse.Namespace, s: Settings) -> Any:
    """Return the Gold database for the Mongo sink, or None for CSV."""
    if args.sink != "mongo":
        return None
    if not s.mongo_uri:
        raise RuntimeError("MONGO_URI is required for --sink mongo (or use --sink csv).")
    return get_db(get_client(s.mongo_uri), s.mongo_db)


def _log_inspection(clean: pd.DataFrame) -> None:
    result = inspect_financials(clean)
    for check, count in result.model_dump().items():
        log.info("%-24s %d", check, count)


def _publish(
    args: argparse.Namespace, s: Settings, names: list[str], db: Any, clean: pd.DataFrame
) -> None:
    inputs = ReportInputs(
        clean=clean,
        products=_load_products(s),
        orders=_load_orders(s),
        top_n=args.top_n or s.top_n,
    )
    out_dir = Path(args.out_dir) if args.out_dir else s.gold_export_dir

    for name in names:
        report = GOLD_REPORTS[name]
        pdf = report.build(inputs)
        if db is not None:
            load_gold(db[name], pdf, report.key_fields, report.model)
        else:
            export_gold_csv(pdf, out_dir, name)

    log.info("Gold layer successfully generated (%d reports).", len(names))


# --------------------------------------------------
# INSPECT
# --------------------------------------------------
def cmd_inspect(_: argparse.Namespace) -> None:
    """Run the data inspection checks and log the counts."""
    _log_inspection(_load_clean(get_settings()))


# --------------------------------------------------
# REPORT
# --------------------------------------------------
def cmd_report(args: argparse.Namespace) -> None:
    """Compute Gold reports from the Clean view and publish them.

    Args:
        args: argparse namespace with `top_n`, `sink`, `out_dir`, `only`.

    Raises:
        RuntimeError: on an unknown report name, or a Mongo sink without
            `MONGO_URI`.
    """
    s = get_settings()
    names = _report_names(args)
    db = _open_db(args, s)
    _publish(args, s, names, db, _load_clean(s))


# --------------------------------------------------
# ALL
# --------------------------------------------------
def cmd_all(args: argparse.Namespace) -> None:
    """Convenience: inspect → report over a single load of the Clean view."""
    s = get_settings()
    names = _report_names(args)
    db = _open_db(args, s)
    clean = _load_clean(s)
    _log_inspection(clean)
    _publish(args, s, names, db, clean)


# --------------------------------------------------
# CLI
# --------------------------------------------------
def _add_report_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--top-n", type=int, default=None, help="Top-N cutoff (default: TOP_N)")
    p.add_argument("--sink", choices=["mongo", "csv"], default="mongo")
    p.add_argument("--out-dir", default=None, help="CSV export directory for --sink csv")
    p.add_argument("--only", nargs="+", metavar="REPORT", default=None)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="margin_pipeline")
    p.add_argument("--log-level", default="INFO")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("inspect")

    p_report = sub.add_parser("report")
    _add_report_args(p_report)

    p_all = sub.add_parser("all")
    _add_report_args(p_all)

    return p


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(Path("logs/pipeline.log"), args.log_level)

    top_n = getattr(args, "top_n", None)
    if top_n is not None and top_n < 1:
        raise SystemExit("--top-n must be positive")

    if args.cmd == "inspect":
        cmd_inspect(args)
    elif args.cmd == "report":
        cmd_report(args)
    elif args.cmd == "all":
        cmd_all(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
