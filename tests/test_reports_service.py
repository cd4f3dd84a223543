from datetime import date
from pathlib import Path

import pytest

from smb_taxflow.config import default_app_config
from smb_taxflow.context import SessionContext
from smb_taxflow.models import ForecastAssumptions
from smb_taxflow.periods import Period
from smb_taxflow.reports_service import (
    cash_flow_report,
    expenses_with_tds,
    gst3b_for_period,
    gstr3b_summary_for_period,
    list_quotations,
    load_session_ledger,
    reconcile_invoices,
    tds_summary_for_period,
)

JUNE = Period(start=date(2025, 6, 1), end=date(2025, 6, 30), label="June 2025")


def make_data_dir(tmp_path: Path) -> Path:
    """Helper writing a small but complete data directory."""
    data = tmp_path / "data"
    data.mkdir()
    files = {
        "invoices.csv": (
            "invoice_number,user_id,client_name,amount,gst_rate,gst_amount,total_amount,"
            "status,invoice_date,client_gst_number\n"
            "INV-1,u1,Client A,1000,18,180,1180,paid,2025-06-05,27AAA\n"
            "INV-2,u1,Client B,500,0,0,500,paid,2025-06-10,\n"
            "INV-3,u1,Client C,2000,18,360,2300,pending,2025-06-12,\n"
            "INV-4,u1,Client D,100,18,18,118,paid,2025-07-01,\n"
            "INV-5,u2,Other user,9999,18,1800,11799,paid,2025-06-05,\n"
        ),
        "tds_rules.csv": (
            "id,user_id,category,rate_percentage\n"
            "r10,u1,Professional fees,10\n"
        ),
        "vendors.csv": (
            "id,user_id,name,tds_enabled,linked_tds_rule_id\n"
            "v1,u1,Acme Consulting,true,r10\n"
            "v2,u1,Paper Co,false,\n"
        ),
        "expenses.csv": (
            "expense_number,user_id,vendor_id,vendor_name,category_name,amount,"
            "expense_date,payment_mode,status,tds_amount,tds_rule_id\n"
            "E1,u1,v1,Acme Consulting,Services,5000,2025-06-03,bank,approved,,\n"
            "E2,u1,,Paper Co,Office,800,2025-06-04,cash,approved,,\n"
            "E3,u1,,Unknown Vendor,Misc,1000,2025-06-05,cash,approved,20,\n"
        ),
        "accounts.csv": (
            "id,user_id,account_name,account_type,role\n"
            "A1,u1,HDFC Current,Asset,bank\n"
            "A2,u1,Trade debtors,Asset,receivable\n"
        ),
        "journal_lines.csv": (
            "journal_id,user_id,journal_date,account_id,debit,credit\n"
            "J1,u1,2025-06-05,A1,1180,0\n"
            "J2,u1,2025-06-20,A1,0,400\n"
            "J3,u1,2025-06-12,A2,2300,0\n"
        ),
        "purchase_bills.csv": (
            "number,user_id,document_date,amount,gst_amount\n"
            "B1,u1,2025-06-08,600,108\n"
        ),
        "credit_notes.csv": (
            "number,user_id,document_date,amount,gst_amount,status\n"
            "CN1,u1,2025-06-15,100,18,issued\n"
        ),
        "quotations.csv": (
            "quotation_number,user_id,client_name,quotation_date,subtotal,total_amount\n"
            "Q1,u1,Client A,2025-06-01,1000,1180\n"
            "Q2,u1,Client B,2025-07-01,500,590\n"
        ),
    }
    for name, text in files.items():
        (data / name).write_text(text, encoding="utf-8")
    return data


def test_gst3b_for_period_uses_session_and_period(tmp_path) -> None:
    """Only u1's paid June invoices are aggregated."""
    config = default_app_config(make_data_dir(tmp_path), user_id="u1")

    result = gst3b_for_period(config, JUNE)

    assert result.invoices_considered == 2
    assert result.outward_supplies.outward_taxable_other.taxable_value == pytest.approx(1000)
    assert result.outward_supplies.outward_taxable_zero.taxable_value == pytest.approx(500)
    assert result.inter_state_supplies.unregistered_persons[0].place_of_supply == "State Code: 27"


def test_gstr3b_summary_for_period(tmp_path) -> None:
    config = default_app_config(make_data_dir(tmp_path), user_id="u1")

    summary = gstr3b_summary_for_period(config, JUNE)

    assert summary.outward_taxable == pytest.approx(1000 + 500 + 2000 - 100)
    assert summary.outward_gst == pytest.approx(180 + 360 - 18)
    assert summary.itc_available == pytest.approx(108)


def test_expenses_with_tds_derives_from_vendor(tmp_path) -> None:
    """Known vendors drive TDS; unknown vendors keep the stored values."""
    config = default_app_config(make_data_dir(tmp_path), user_id="u1")

    expenses = {e.expense_number: e for e in expenses_with_tds(load_session_ledger(config))}

    assert expenses["E1"].tds_amount == pytest.approx(500)
    assert expenses["E1"].tds_rule_id == "r10"
    assert expenses["E2"].tds_amount == 0.0
    assert expenses["E3"].tds_amount == pytest.approx(20)


def test_tds_summary_for_period(tmp_path) -> None:
    config = default_app_config(make_data_dir(tmp_path), user_id="u1")

    summary = tds_summary_for_period(config, JUNE)

    assert summary.transaction_count == 2
    assert summary.total_tds_deducted == pytest.approx(520)
    assert [b.category for b in summary.category_breakdown] == ["Professional fees", "Other"]


def test_cash_flow_report_defaults_to_config_assumptions(tmp_path) -> None:
    config = default_app_config(make_data_dir(tmp_path), user_id="u1")

    report = cash_flow_report(config, as_of=date(2025, 6, 30))

    assert report.assumptions == ForecastAssumptions()
    assert report.balances.bank == pytest.approx(780)
    assert report.receivables_payables.receivables == pytest.approx(2300)
    assert len(report.forecast) == 6

    custom = cash_flow_report(
        config, assumptions=ForecastAssumptions(forecast_months=3), as_of=date(2025, 6, 30)
    )
    assert len(custom.forecast) == 3


def test_reconcile_invoices_flags_mismatch(tmp_path) -> None:
    config = default_app_config(make_data_dir(tmp_path), user_id="u1")

    results = {r.invoice_number: r for r in reconcile_invoices(config, JUNE)}

    assert set(results) == {"INV-1", "INV-2", "INV-3"}
    assert results["INV-1"].is_consistent
    assert not results["INV-3"].is_consistent
    assert results["INV-3"].difference == pytest.approx(-60)


def test_explicit_context_overrides_config_session(tmp_path) -> None:
    config = default_app_config(make_data_dir(tmp_path), user_id="u1")

    result = gst3b_for_period(config, JUNE, context=SessionContext(user_id="u2"))

    assert result.invoices_considered == 1
    assert [q.quotation_number for q in list_quotations(config, JUNE)] == ["Q1"]
