# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB TaxFlow.

This module turns the results of the computation engines into pandas
DataFrames ready for display (``df.to_string(index=False)``) or CSV export.
It does not compute anything itself: every figure comes from tax.py,
gst3b.py or cashflow.py, and the views only lay the figures out and round
them to the requested number of decimals.

The main views are:

- GST split:          one row per tax head for a single amount,
- GST-3B return:      one row per section of table 3.1 plus 3.2 rows and a
                      totals row,
- GSTR-3B summary:    outward / inward / liability / ITC card,
- cash flow:          historical and forecast months in one table,
- TDS summary:        per-category breakdown with a totals row,
- reconciliation:     stored vs recomputed invoice totals,
- listings:           invoices and quotations, with line items flattened.

CSV text is produced by ``to_csv_text``: a header line followed by one line
per row, with minimal RFC 4180 quoting (a field is double-quoted only when
it contains a comma, a double quote or a line break, and inner double
quotes are doubled). Carriage returns inside text cells are turned into
line feeds first, so a bare CR is quoted like any other line break.
"""

from collections.abc import Iterable
from datetime import date
from typing import Optional

import pandas as pd

from .cashflow import CashFlowMonth, CashFlowReport
from .gst3b import GST3BReturn, GSTR3BSummary, TaxAmounts
from .models import Invoice, LineItem, Quotation
from .tax import GSTSplit, InvoiceReconciliation, TDSSummary

GST3B_COLUMNS = [
    "section",
    "description",
    "taxable_value",
    "integrated_tax",
    "central_tax",
    "state_ut_tax",
    "cess_tax",
]

CASH_FLOW_COLUMNS = [
    "Month",
    "Opening Balance",
    "Inflows",
    "Outflows",
    "Closing Balance",
    "Type",
]

QUOTATION_EXPORT_COLUMNS = [
    "Quotation Number",
    "Client Name",
    "Client Email",
    "Client Phone",
    "Client Address",
    "Date",
    "Validity Period (Days)",
    "Subtotal",
    "Discount",
    "Tax Amount",
    "Total Amount",
    "Status",
    "Terms & Conditions",
    "Items",
]

INVOICE_EXPORT_COLUMNS = [
    "Invoice Number",
    "Client Name",
    "Client GST Number",
    "Invoice Date",
    "Due Date",
    "Amount",
    "GST Rate",
    "GST Amount",
    "Discount",
    "Advance",
    "Roundoff",
    "Total Amount",
    "Status",
    "Items",
]


def _normalize_line_breaks(df: pd.DataFrame) -> pd.DataFrame:
    text_columns = [
        c for c in df.columns if not pd.api.types.is_numeric_dtype(df[c])
    ]
    if not text_columns:
        return df
    out = df.copy()
    for col in text_columns:
        out[col] = out[col].map(
            lambda v: v.replace("\r\n", "\n").replace("\r", "\n")
            if isinstance(v, str)
            else v
        )
    return out


def to_csv_text(df: pd.DataFrame) -> str:
    """Render a DataFrame as CSV text (header + rows, minimal quoting)."""
    return _normalize_line_breaks(df).to_csv(index=False, lineterminator="\n")


def _r(value: float, decimals: int) -> float:
    return round(float(value), decimals)


def _iso(value: Optional[date]) -> str:
    return value.isoformat() if value is not None else ""


def format_items(items: Iterable[LineItem]) -> str:
    """Flatten line items as 'name (Qty: q, Price: p); ...' for exports."""
    return "; ".join(
        f"{item.description} (Qty: {item.quantity:g}, Price: {item.rate:g})"
        for item in items
    )


# ---------------------------------------------------------------------------
# Tax views
# ---------------------------------------------------------------------------


def gst_split_to_dataframe(split: GSTSplit, decimals: int = 2) -> pd.DataFrame:
    """One row per tax head for a single GST computation."""
    rows = [
        ("Taxable value", split.taxable_value),
        (f"GST @ {split.gst_rate:g}%", split.gst_amount),
        ("CGST", split.cgst),
        ("SGST", split.sgst),
        ("IGST", split.igst),
        ("Total", split.total_amount),
    ]
    return pd.DataFrame(
        [{"component": name, "amount": _r(value, decimals)} for name, value in rows]
    )


def _gst3b_row(
    section: str, description: str, amounts: TaxAmounts, decimals: int
) -> dict[str, object]:
    return {
        "section": section,
        "description": description,
        "taxable_value": _r(amounts.taxable_value, decimals),
        "integrated_tax": _r(amounts.integrated_tax, decimals),
        "central_tax": _r(amounts.central_tax, decimals),
        "state_ut_tax": _r(amounts.state_ut_tax, decimals),
        "cess_tax": _r(amounts.cess_tax, decimals),
    }


def gst3b_to_dataframe(result: GST3BReturn, decimals: int = 2) -> pd.DataFrame:
    """
    Lay out a GST-3B return as a table.

    Rows, in form order:
        3.1(a) ... 3.1(e), 3.2 rows (one per place of supply), 4 (all
        other ITC) and the totals of table 3.1.

    Returns
    -------
    pandas.DataFrame
        Columns: section, description, taxable_value, integrated_tax,
        central_tax, state_ut_tax, cess_tax.
    """
    outward = result.outward_supplies
    rows = [
        _gst3b_row(
            "3.1(a)",
            "Outward taxable supplies (other than zero rated, nil rated and exempted)",
            outward.outward_taxable_other,
            decimals,
        ),
        _gst3b_row(
            "3.1(b)",
            "Outward taxable supplies (zero rated)",
            outward.outward_taxable_zero,
            decimals,
        ),
        _gst3b_row(
            "3.1(c)",
            "Other outward supplies (nil rated, exempted)",
            outward.other_outward_nil_exempt,
            decimals,
        ),
        _gst3b_row(
            "3.1(d)",
            "Inward supplies (liable to reverse charge)",
            outward.inward_liable_reverse,
            decimals,
        ),
        _gst3b_row(
            "3.1(e)",
            "Non-GST outward supplies",
            outward.non_gst_outward,
            decimals,
        ),
    ]

    for pos in result.inter_state_supplies.unregistered_persons:
        rows.append(
            _gst3b_row(
                "3.2",
                f"Inter-state supplies to unregistered persons ({pos.place_of_supply})",
                TaxAmounts(
                    taxable_value=pos.taxable_value,
                    integrated_tax=pos.integrated_tax,
                ),
                decimals,
            )
        )

    rows.append(
        _gst3b_row(
            "4(A)(5)", "All other ITC", result.eligible_itc.all_other_itc, decimals
        )
    )
    rows.append(_gst3b_row("Total", "Total of table 3.1", result.totals, decimals))

    return pd.DataFrame(rows, columns=GST3B_COLUMNS)


def gstr3b_summary_to_dataframe(
    summary: GSTR3BSummary, decimals: int = 2
) -> pd.DataFrame:
    """GSTR-3B summary card as a Section / Taxable / GST table."""
    rows = [
        ("Outward Supplies", summary.outward_taxable, summary.outward_gst),
        ("Inward Supplies (ITC)", summary.inward_taxable, summary.inward_gst),
        ("Reverse Charge", summary.reverse_charge, 0.0),
        ("Exempted", summary.exempted, 0.0),
        ("Nil Rated", summary.nil_rated, 0.0),
        ("Non-GST", summary.non_gst, 0.0),
        ("Tax Liability", 0.0, summary.tax_liability),
        ("ITC Available", 0.0, summary.itc_available),
        ("Net GST Payable", 0.0, summary.net_payable),
    ]
    return pd.DataFrame(
        [
            {
                "Section": section,
                "Taxable": _r(taxable, decimals),
                "GST": _r(gst, decimals),
            }
            for section, taxable, gst in rows
        ]
    )


# ---------------------------------------------------------------------------
# Cash-flow views
# ---------------------------------------------------------------------------


def _cash_flow_row(month: CashFlowMonth, decimals: int) -> dict[str, object]:
    return {
        "Month": month.label,
        "Opening Balance": _r(month.opening_balance, decimals),
        "Inflows": _r(month.inflows, decimals),
        "Outflows": _r(month.outflows, decimals),
        "Closing Balance": _r(month.closing_balance, decimals),
        "Type": "Historical" if month.is_historical else "Forecast",
    }


def cash_flow_to_dataframe(report: CashFlowReport, decimals: int = 2) -> pd.DataFrame:
    """Historical months followed by forecast months, oldest first."""
    months = list(report.historical) + list(report.forecast)
    return pd.DataFrame(
        [_cash_flow_row(m, decimals) for m in months], columns=CASH_FLOW_COLUMNS
    )


def cash_position_to_dataframe(
    report: CashFlowReport, decimals: int = 2
) -> pd.DataFrame:
    """Current position, averages and assumptions as a metric/value table."""
    a = report.assumptions
    rp = report.receivables_payables
    rows = [
        ("Cash", report.balances.cash),
        ("Bank", report.balances.bank),
        ("Total cash & bank", report.balances.total),
        ("Receivables", rp.receivables),
        ("Payables", rp.payables),
        ("Net position", report.net_position),
        ("Average monthly inflows", report.averages.avg_inflows),
        ("Average monthly outflows", report.averages.avg_outflows),
        ("Months averaged", report.averages.months_used),
        ("Growth rate (%)", a.growth_rate),
        ("Expense increase (%)", a.expense_increase),
        ("Payment delay (days)", a.payment_delay_days),
        ("Forecast months", a.forecast_months),
    ]
    return pd.DataFrame(
        [{"metric": name, "value": _r(value, decimals)} for name, value in rows]
    )


# ---------------------------------------------------------------------------
# TDS and reconciliation
# ---------------------------------------------------------------------------


def tds_summary_to_dataframe(summary: TDSSummary, decimals: int = 2) -> pd.DataFrame:
    """Per-category TDS breakdown followed by a totals row."""
    columns = ["category", "transactions", "amount", "tds", "net_payable"]
    rows = [
        {
            "category": b.category,
            "transactions": b.transaction_count,
            "amount": _r(b.total_amount, decimals),
            "tds": _r(b.total_tds, decimals),
            "net_payable": _r(b.total_amount - b.total_tds, decimals),
        }
        for b in summary.category_breakdown
    ]
    rows.append(
        {
            "category": "Total",
            "transactions": summary.transaction_count,
            "amount": _r(summary.total_transaction_amount, decimals),
            "tds": _r(summary.total_tds_deducted, decimals),
            "net_payable": _r(summary.total_net_payable, decimals),
        }
    )
    return pd.DataFrame(rows, columns=columns)


def reconciliation_to_dataframe(
    results: Iterable[InvoiceReconciliation], decimals: int = 2
) -> pd.DataFrame:
    """Stored vs expected invoice totals, one row per invoice."""
    columns = ["invoice_number", "stored_total", "expected_total", "difference", "status"]
    rows = [
        {
            "invoice_number": r.invoice_number,
            "stored_total": _r(r.stored_total, decimals),
            "expected_total": _r(r.expected_total, decimals),
            "difference": _r(r.difference, decimals),
            "status": "ok" if r.is_consistent else "mismatch",
        }
        for r in results
    ]
    return pd.DataFrame(rows, columns=columns)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def invoices_to_dataframe(invoices: Iterable[Invoice]) -> pd.DataFrame:
    """Invoice listing for export, sorted by invoice date."""
    rows = [
        {
            "Invoice Number": inv.invoice_number,
            "Client Name": inv.client_name,
            "Client GST Number": inv.client_gst_number or "",
            "Invoice Date": _iso(inv.invoice_date),
            "Due Date": _iso(inv.due_date),
            "Amount": inv.amount,
            "GST Rate": inv.gst_rate,
            "GST Amount": inv.gst_amount,
            "Discount": inv.discount,
            "Advance": inv.advance,
            "Roundoff": inv.roundoff,
            "Total Amount": inv.total_amount,
            "Status": inv.status,
            "Items": format_items(inv.items),
        }
        for inv in sorted(invoices, key=lambda i: (i.invoice_date, i.invoice_number))
    ]
    return pd.DataFrame(rows, columns=INVOICE_EXPORT_COLUMNS)


def quotations_to_dataframe(quotations: Iterable[Quotation]) -> pd.DataFrame:
    """Quotation listing for export, sorted by quotation date."""
    rows = [
        {
            "Quotation Number": q.quotation_number,
            "Client Name": q.client_name,
            "Client Email": q.client_email or "",
            "Client Phone": q.client_phone or "",
            "Client Address": q.client_address or "",
            "Date": _iso(q.quotation_date),
            "Validity Period (Days)": (
                "" if q.validity_period is None else q.validity_period
            ),
            "Subtotal": q.subtotal,
            "Discount": q.discount,
            "Tax Amount": q.tax_amount,
            "Total Amount": q.total_amount,
            "Status": q.status,
            "Terms & Conditions": q.terms_conditions,
            "Items": format_items(q.items),
        }
        for q in sorted(quotations, key=lambda q: (q.quotation_date, q.quotation_number))
    ]
    return pd.DataFrame(rows, columns=QUOTATION_EXPORT_COLUMNS)
