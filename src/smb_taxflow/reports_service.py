# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level reporting services for SMB TaxFlow.

This module sits between:
- the data access layer in `io.py` and the computation engines
  (`tax.py`, `gst3b.py`, `cashflow.py`), and
- user-facing layers such as the CLI.

Each service takes the application configuration, loads the records of the
configured data directory for the configured session, narrows them to the
requested reporting period where relevant, and returns the engine result.
Rendering is left to `views.py` and the caller.

Responsibilities
----------------
1) GST
   - GST-3B return for a period (paid invoices only).
   - GSTR-3B summary card for a period (invoices, purchase bills and
     credit/debit notes).

2) TDS
   - Re-derive each expense's TDS from its vendor's linked rule, then
     summarize by category.

3) Cash flow
   - Current position, six months of reconstructed history and the
     forecast for the requested assumptions.

4) Invoices and quotations
   - Reconcile stored invoice totals with their components.
   - List invoices and quotations for export.

Design notes
------------
- Services never mutate records and never cache: calling a service twice
  with unchanged inputs returns equal results.
- The session (user / organization / CA client) comes from the
  configuration unless the caller passes an explicit SessionContext.
"""

import logging
from datetime import date
from typing import Optional

from .cashflow import CashFlowReport, build_cash_flow_report
from .config import AppConfig
from .context import SessionContext
from .gst3b import GST3BReturn, GSTR3BSummary, compute_gst3b, compute_gstr3b_summary
from .io import Ledger, load_ledger
from .models import Expense, ForecastAssumptions, Invoice, Quotation, Vendor
from .periods import Period, filter_by_period
from .tax import (
    InvoiceReconciliation,
    TDSSummary,
    apply_expense_tds,
    reconcile_invoice,
    summarize_tds,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def load_session_ledger(
    app_config: AppConfig, context: Optional[SessionContext] = None
) -> Ledger:
    """Load the records of the configured data directory for a session."""
    session = context if context is not None else app_config.session
    return load_ledger(app_config.data_dir, session)


def _find_vendor(expense: Expense, vendors: tuple[Vendor, ...]) -> Optional[Vendor]:
    """Vendor of an expense, by id first, then by exact name."""
    if expense.vendor_id:
        for vendor in vendors:
            if vendor.id == expense.vendor_id:
                return vendor
    for vendor in vendors:
        if vendor.name == expense.vendor_name:
            return vendor
    return None


def expenses_with_tds(ledger: Ledger) -> list[Expense]:
    """
    Re-derive TDS on every expense whose vendor is known.

    Expenses without a matching vendor keep their stored TDS fields.
    """
    result = []
    for expense in ledger.expenses:
        vendor = _find_vendor(expense, ledger.vendors)
        if vendor is None:
            logger.debug(
                "Expense %s: vendor %r not found, keeping stored TDS.",
                expense.expense_number,
                expense.vendor_name,
            )
            result.append(expense)
            continue
        result.append(apply_expense_tds(expense, vendor, ledger.tds_rules))
    return result


# ---------------------------------------------------------------------------
# GST
# ---------------------------------------------------------------------------


def gst3b_for_period(
    app_config: AppConfig,
    period: Optional[Period],
    context: Optional[SessionContext] = None,
) -> GST3BReturn:
    """GST-3B return built from the paid invoices of ``period``."""
    ledger = load_session_ledger(app_config, context)
    return compute_gst3b(ledger.invoices, period)


def gstr3b_summary_for_period(
    app_config: AppConfig,
    period: Optional[Period],
    context: Optional[SessionContext] = None,
) -> GSTR3BSummary:
    """GSTR-3B summary card for ``period``."""
    ledger = load_session_ledger(app_config, context)
    return compute_gstr3b_summary(
        ledger.invoices,
        bills=ledger.purchase_bills,
        credit_notes=ledger.credit_notes,
        debit_notes=ledger.debit_notes,
        period=period,
    )


# ---------------------------------------------------------------------------
# TDS
# ---------------------------------------------------------------------------


def tds_summary_for_period(
    app_config: AppConfig,
    period: Optional[Period],
    context: Optional[SessionContext] = None,
) -> TDSSummary:
    """TDS totals and category breakdown over the expenses of ``period``."""
    ledger = load_session_ledger(app_config, context)
    expenses = filter_by_period(expenses_with_tds(ledger), period, lambda e: e.expense_date)
    return summarize_tds(expenses, ledger.tds_rules)


# ---------------------------------------------------------------------------
# Cash flow
# ---------------------------------------------------------------------------


def cash_flow_report(
    app_config: AppConfig,
    assumptions: Optional[ForecastAssumptions] = None,
    as_of: Optional[date] = None,
    context: Optional[SessionContext] = None,
) -> CashFlowReport:
    """
    Cash-flow dashboard as of ``as_of`` (today by default).

    Assumptions default to the [forecast] section of the configuration.
    """
    ledger = load_session_ledger(app_config, context)
    return build_cash_flow_report(
        invoices=ledger.invoices,
        accounts=ledger.accounts,
        lines=ledger.journal_lines,
        assumptions=assumptions if assumptions is not None else app_config.forecast,
        as_of=as_of if as_of is not None else date.today(),
    )


# ---------------------------------------------------------------------------
# Invoices and quotations
# ---------------------------------------------------------------------------


def reconcile_invoices(
    app_config: AppConfig,
    period: Optional[Period] = None,
    tolerance: Optional[float] = None,
    context: Optional[SessionContext] = None,
) -> list[InvoiceReconciliation]:
    """Compare stored and recomputed totals of every invoice of ``period``."""
    ledger = load_session_ledger(app_config, context)
    tol = app_config.reconciliation_tolerance if tolerance is None else tolerance
    invoices = filter_by_period(ledger.invoices, period, lambda i: i.invoice_date)
    results = [reconcile_invoice(inv, tol) for inv in invoices]

    mismatches = sum(1 for r in results if not r.is_consistent)
    if mismatches:
        logger.warning(
            "%d of %d invoice(s) have a stored total that differs from their components.",
            mismatches,
            len(results),
        )
    return results


def list_invoices(
    app_config: AppConfig,
    period: Optional[Period] = None,
    context: Optional[SessionContext] = None,
) -> list[Invoice]:
    """Invoices of ``period`` (all statuses)."""
    ledger = load_session_ledger(app_config, context)
    return filter_by_period(ledger.invoices, period, lambda i: i.invoice_date)


def list_quotations(
    app_config: AppConfig,
    period: Optional[Period] = None,
    context: Optional[SessionContext] = None,
) -> list[Quotation]:
    """Quotations of ``period``."""
    ledger = load_session_ledger(app_config, context)
    return filter_by_period(ledger.quotations, period, lambda q: q.quotation_date)
