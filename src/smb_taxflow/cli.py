# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB TaxFlow.

This module wires together the main building blocks of SMB TaxFlow:

- global configuration (business, session, fiscal year, data directory,
  forecast defaults, display options),
- CSV data access scoped to the session user,
- tax, GST-3B and cash-flow engines (through reports_service.py),
- view helpers (tabular rendering and CSV export).

The CLI is intentionally thin: it does not implement tax or forecasting
logic itself. It parses arguments, resolves configuration overrides, calls
one service and renders the result.


Commands
--------

    gst --amount A --rate R [--interstate]
        GST split of a single amount. Does not need any data.

    gst3b [period options]
        GST-3B return built from paid invoices.

    gstr3b-summary [period options]
        GSTR-3B summary card: outward supplies, inward supplies (ITC),
        tax liability and net payable.

    tds [period options]
        TDS summary with a per-category breakdown.

    forecast [--growth-rate G] [--expense-increase E] [--months N]
             [--payment-delays D]
        Current cash position, six months of history and the forecast.
        N must be between 3 and 6.

    reconcile [period options] [--tolerance T]
        Stored vs recomputed invoice totals.

    export {invoices,quotations} [period options]
        Listings for spreadsheets.


Configuration and overrides
---------------------------

By default, the CLI reads ``smb_taxflow_config.toml`` from the current
directory. When that file does not exist and ``--config`` is not given,
documented defaults are used with the ``data`` directory.

    --config PATH        main TOML configuration file
    --data-dir DIR       override [data].directory
    --user ID            override [session].user_id
    --client ID          work on a CA client's records
    --as-of YYYY-MM-DD   reference date of the cash-flow forecast


Period selection
----------------

Predefined periods (``--period``): fy, ytd, mtd, last-month, last-fy.
Custom periods: ``--from-date`` / ``--to-date``; a missing bound is taken
from the fiscal year. Without either, the full fiscal year is used.


Display modes and output
------------------------

``--display-mode table|csv|both`` overrides ``display.mode``:

- ``table``: render results to stdout (pandas.DataFrame.to_string),
- ``csv``:   write CSV files only,
- ``both``:  do both.

CSV files are written to ``--output DIR`` (default ``data/output``) with a
timestamp-based name, e.g. ``gst3b_YYYY-MM-DD-HH-MM-SS.csv``.


Examples
--------

    python -m smb_taxflow.cli gst --amount 1000 --rate 18
    python -m smb_taxflow.cli gst3b --period last-month
    python -m smb_taxflow.cli forecast --growth-rate 8 --months 3
    python -m smb_taxflow.cli export quotations --display-mode csv
"""

import argparse
import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import (
    DEFAULT_CONFIG_FILE,
    AppConfig,
    default_app_config,
    load_app_config,
    validate_forecast_months,
)
from .models import MAX_FORECAST_MONTHS, MIN_FORECAST_MONTHS, ForecastAssumptions
from .periods import Period, determine_period_from_args
from .reports_service import (
    cash_flow_report,
    gst3b_for_period,
    gstr3b_summary_for_period,
    list_invoices,
    list_quotations,
    reconcile_invoices,
    tds_summary_for_period,
)
from .tax import compute_gst, is_standard_gst_rate
from .views import (
    cash_flow_to_dataframe,
    cash_position_to_dataframe,
    gst3b_to_dataframe,
    gst_split_to_dataframe,
    gstr3b_summary_to_dataframe,
    invoices_to_dataframe,
    quotations_to_dataframe,
    reconciliation_to_dataframe,
    tds_summary_to_dataframe,
    to_csv_text,
)

logger = logging.getLogger(__name__)


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    """Attach the period selection options to a subcommand parser."""
    parser.add_argument(
        "--period",
        choices=["fy", "ytd", "mtd", "last-month", "last-fy"],
        help=(
            "Predefined reporting period. "
            "If not provided, the full fiscal year from config is used."
        ),
    )
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help=(
            "Custom period start date (YYYY-MM-DD). If provided without "
            "--to-date, the fiscal year end_date is used."
        ),
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help=(
            "Custom period end date (YYYY-MM-DD). If provided without "
            "--from-date, the fiscal year start_date is used."
        ),
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_taxflow.cli",
        description=(
            "SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs. "
            "Reads business records from a CSV data directory and renders "
            "GST returns, TDS summaries and cash-flow forecasts."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_taxflow and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used "
            "when it exists."
        ),
    )
    ap.add_argument(
        "--data-dir",
        dest="data_dir",
        help="Override the data directory holding the CSV records.",
    )
    ap.add_argument(
        "--user",
        dest="user_id",
        help="Override the session user id whose records are visible.",
    )
    ap.add_argument(
        "--client",
        dest="ca_client_id",
        help="Work on the records of a CA client instead of the session user.",
    )
    ap.add_argument(
        "--as-of",
        dest="as_of",
        help="Reference date for the cash-flow forecast (YYYY-MM-DD, default today).",
    )
    ap.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # gst
    gst_parser = subparsers.add_parser("gst", help="GST split of a single amount.")
    gst_parser.add_argument("--amount", type=float, required=True, help="Pre-tax amount.")
    gst_parser.add_argument("--rate", type=float, required=True, help="GST rate in percent.")
    gst_parser.add_argument(
        "--interstate",
        action="store_true",
        help="Report the tax as IGST instead of CGST + SGST.",
    )

    # gst3b
    gst3b_parser = subparsers.add_parser(
        "gst3b", help="GST-3B return built from paid invoices."
    )
    _add_period_arguments(gst3b_parser)

    # gstr3b-summary
    summary_parser = subparsers.add_parser(
        "gstr3b-summary", help="GSTR-3B summary with input tax credit."
    )
    _add_period_arguments(summary_parser)

    # tds
    tds_parser = subparsers.add_parser("tds", help="TDS summary by category.")
    _add_period_arguments(tds_parser)

    # forecast
    forecast_parser = subparsers.add_parser(
        "forecast", help="Cash position, history and forecast."
    )
    forecast_parser.add_argument(
        "--growth-rate",
        dest="growth_rate",
        type=float,
        help="Monthly growth of inflows, in percent (default from config).",
    )
    forecast_parser.add_argument(
        "--expense-increase",
        dest="expense_increase",
        type=float,
        help="Monthly increase of outflows, in percent (default from config).",
    )
    forecast_parser.add_argument(
        "--months",
        dest="forecast_months",
        type=int,
        help=(
            f"Number of months to forecast ({MIN_FORECAST_MONTHS} to "
            f"{MAX_FORECAST_MONTHS}, default from config)."
        ),
    )
    forecast_parser.add_argument(
        "--payment-delays",
        dest="payment_delay_days",
        type=int,
        help="Average customer payment delay in days (default from config).",
    )

    # reconcile
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Check stored invoice totals against their components."
    )
    _add_period_arguments(reconcile_parser)
    reconcile_parser.add_argument(
        "--tolerance",
        type=float,
        help="Maximum accepted difference (default from config).",
    )

    # export
    export_parser = subparsers.add_parser(
        "export", help="Export invoices or quotations."
    )
    export_parser.add_argument("kind", choices=["invoices", "quotations"])
    _add_period_arguments(export_parser)

    return ap


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an optional CLI date argument (YYYY-MM-DD).

    Raises
    ------
    SystemExit
        If the date format is invalid.
    """
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    """
    Load the configuration and apply the CLI overrides.

    Without --config, a missing default file falls back to the built-in
    defaults instead of failing.
    """
    if args.config_path:
        config = load_app_config(args.config_path)
    elif Path(DEFAULT_CONFIG_FILE).is_file():
        config = load_app_config()
    else:
        logger.info("%s not found, using default settings.", DEFAULT_CONFIG_FILE)
        config = default_app_config(Path("data"))

    overrides: dict[str, object] = {}
    if args.data_dir:
        overrides["data_dir"] = Path(args.data_dir).resolve()
    session = config.session
    if args.user_id:
        session = replace(session, user_id=args.user_id)
    if args.ca_client_id:
        session = session.switch_client(args.ca_client_id)
    if session != config.session:
        overrides["session"] = session
    if args.display_mode:
        overrides["display_mode"] = args.display_mode

    if not overrides:
        return config
    return replace(config, **overrides)


def _configure_logging(args: argparse.Namespace, config: Optional[AppConfig]) -> None:
    level = "DEBUG" if args.verbose else (config.log_level if config else "WARNING")
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _print_period(period: Period) -> None:
    print(
        f"Applied period: {period.label} "
        f"({period.start.isoformat()} → {period.end.isoformat()})"
    )


def _report_heading(config: AppConfig) -> list[str]:
    """Identity lines printed above table output (business, organization, client)."""
    session = config.session
    lines = []
    if session.business_name:
        line = session.business_name
        if config.business.gst_number:
            line += f" (GSTIN: {config.business.gst_number})"
        lines.append(line)
    if session.organization_id:
        lines.append(f"Organization: {session.organization_id}")
    if session.ca_client_id:
        lines.append(f"CA client: {session.ca_client_id}")
    return lines


def _render(
    tables: list[tuple[str, str, pd.DataFrame]],
    display_mode: str,
    output_dir: Optional[str],
    heading: Iterable[str] = (),
) -> None:
    """
    Render (title, file stem, DataFrame) triples to stdout and/or CSV files.

    In table mode the ``heading`` lines are printed first.
    """
    if display_mode in {"table", "both"}:
        for line in heading:
            print(line)
        for title, _, df in tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("No records found for the given criteria.")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        out = Path(output_dir) if output_dir else Path("data/output")
        out.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, stem, df in tables:
            path = out / f"{stem}_{timestamp}.csv"
            with path.open("w", encoding="utf-8", newline="") as fh:
                fh.write(to_csv_text(df))
            print(f"Wrote {path} ({len(df)} rows)")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_gst(args: argparse.Namespace, config: AppConfig) -> list:
    split = compute_gst(args.amount, args.rate, interstate=args.interstate)
    if not is_standard_gst_rate(args.rate):
        print(f"Warning: {args.rate:g}% is not a standard GST rate (0, 5, 12, 18, 28).")
    return [("GST split", "gst_split", gst_split_to_dataframe(split, config.decimals))]


def _handle_gst3b(args: argparse.Namespace, config: AppConfig) -> list:
    period = determine_period_from_args(args, config.fiscal_year)
    _print_period(period)
    result = gst3b_for_period(config, period)
    print(f"Paid invoices considered: {result.invoices_considered}")
    print(f"Note: {result.inter_state_supplies.uin_holders_message}.")
    print(f"Note: {result.eligible_itc.inward_from_isd_message}.")
    return [("GST-3B return", "gst3b", gst3b_to_dataframe(result, config.decimals))]


def _handle_gstr3b_summary(args: argparse.Namespace, config: AppConfig) -> list:
    period = determine_period_from_args(args, config.fiscal_year)
    _print_period(period)
    summary = gstr3b_summary_for_period(config, period)
    return [
        (
            "GSTR-3B summary",
            "gstr3b_summary",
            gstr3b_summary_to_dataframe(summary, config.decimals),
        )
    ]


def _handle_tds(args: argparse.Namespace, config: AppConfig) -> list:
    period = determine_period_from_args(args, config.fiscal_year)
    _print_period(period)
    summary = tds_summary_for_period(config, period)
    return [("TDS summary", "tds_summary", tds_summary_to_dataframe(summary, config.decimals))]


def _handle_forecast(args: argparse.Namespace, config: AppConfig) -> list:
    defaults = config.forecast
    months = (
        args.forecast_months
        if args.forecast_months is not None
        else defaults.forecast_months
    )
    validate_forecast_months(months)

    assumptions = ForecastAssumptions(
        growth_rate=(
            args.growth_rate if args.growth_rate is not None else defaults.growth_rate
        ),
        expense_increase=(
            args.expense_increase
            if args.expense_increase is not None
            else defaults.expense_increase
        ),
        payment_delay_days=(
            args.payment_delay_days
            if args.payment_delay_days is not None
            else defaults.payment_delay_days
        ),
        forecast_months=months,
    )
    as_of = _parse_optional_date(args.as_of)
    report = cash_flow_report(config, assumptions=assumptions, as_of=as_of)

    print(f"Cash flow as of {report.as_of.isoformat()}")
    return [
        (
            "Cash position",
            "cash_position",
            cash_position_to_dataframe(report, config.decimals),
        ),
        ("Cash flow", "cash_flow", cash_flow_to_dataframe(report, config.decimals)),
    ]


def _handle_reconcile(args: argparse.Namespace, config: AppConfig) -> list:
    period = determine_period_from_args(args, config.fiscal_year)
    _print_period(period)
    results = reconcile_invoices(config, period, tolerance=args.tolerance)
    mismatches = sum(1 for r in results if not r.is_consistent)
    print(f"Invoices checked: {len(results)} | Mismatches: {mismatches}")
    return [
        (
            "Invoice reconciliation",
            "invoice_reconciliation",
            reconciliation_to_dataframe(results, config.decimals),
        )
    ]


def _handle_export(args: argparse.Namespace, config: AppConfig) -> list:
    period = determine_period_from_args(args, config.fiscal_year)
    _print_period(period)
    if args.kind == "quotations":
        df = quotations_to_dataframe(list_quotations(config, period))
        return [("Quotations", "quotations", df)]
    df = invoices_to_dataframe(list_invoices(config, period))
    return [("Invoices", "invoices", df)]


_HANDLERS = {
    "gst": _handle_gst,
    "gst3b": _handle_gst3b,
    "gstr3b-summary": _handle_gstr3b_summary,
    "tds": _handle_tds,
    "forecast": _handle_forecast,
    "reconcile": _handle_reconcile,
    "export": _handle_export,
}


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB TaxFlow CLI.

    This function parses command-line arguments, loads the application
    configuration and its overrides, runs the requested command and renders
    its tables as console output and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_taxflow version {__version__}")
        return

    if not args.command:
        parser.error(
            "No command specified. Available commands are: "
            + ", ".join(f"'{name}'" for name in _HANDLERS)
            + "."
        )

    try:
        config = _resolve_config(args)
    except (FileNotFoundError, ValueError) as exc:
        _configure_logging(args, None)
        parser.error(str(exc))

    _configure_logging(args, config)

    try:
        tables = _HANDLERS[args.command](args, config)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    _render(tables, config.display_mode, args.output_dir, _report_heading(config))


if __name__ == "__main__":
    main()
