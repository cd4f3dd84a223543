from datetime import date

import pytest

from smb_taxflow.cashflow import (
    build_cash_flow_report,
    current_balances,
    forecast_cash_flow,
    historical_averages,
    historical_cash_flow,
    monthly_activity,
    receivables_payables,
)
from smb_taxflow.models import (
    Account,
    AccountRole,
    ForecastAssumptions,
    Invoice,
    JournalLine,
)


def make_accounts() -> list[Account]:
    """Helper chart of accounts, one account per role."""
    return [
        Account(id="A1", user_id="u1", account_name="Petty cash", account_type="Asset", role=AccountRole.CASH),
        Account(id="A2", user_id="u1", account_name="HDFC Current", account_type="Asset", role=AccountRole.BANK),
        Account(id="A3", user_id="u1", account_name="Trade debtors", account_type="Asset", role=AccountRole.RECEIVABLE),
        Account(id="A4", user_id="u1", account_name="Trade creditors", account_type="Liability", role=AccountRole.PAYABLE),
        Account(id="A5", user_id="u1", account_name="Sales", account_type="Income", role=AccountRole.OTHER),
    ]


def line(jid: str, day: date, account_id: str, debit: float = 0.0, credit: float = 0.0) -> JournalLine:
    return JournalLine(
        journal_id=jid,
        user_id="u1",
        journal_date=day,
        account_id=account_id,
        debit=debit,
        credit=credit,
    )


def paid_invoice(number: str, day: date, total: float, status: str = "paid") -> Invoice:
    return Invoice(
        invoice_number=number,
        user_id="u1",
        client_name="Client",
        amount=total,
        gst_rate=0,
        gst_amount=0,
        total_amount=total,
        status=status,
        invoice_date=day,
    )


def test_forecast_scenario_three_months() -> None:
    """5% growth / 2% expense increase over 3 months from a 5000 balance."""
    assumptions = ForecastAssumptions(growth_rate=5, expense_increase=2, forecast_months=3)

    months = forecast_cash_flow(
        opening_balance=5000,
        avg_inflows=10000,
        avg_outflows=7000,
        receivables=0,
        payables=0,
        assumptions=assumptions,
        start=date(2025, 7, 1),
    )

    assert len(months) == 3
    assert months[0].inflows == pytest.approx(10000)
    assert months[0].outflows == pytest.approx(7000)
    assert months[0].closing_balance == pytest.approx(8000)
    assert months[1].inflows == pytest.approx(10500)
    assert months[1].outflows == pytest.approx(7140)
    assert months[1].closing_balance == pytest.approx(11360)
    assert months[2].inflows == pytest.approx(11025)
    assert months[2].outflows == pytest.approx(7282.8)
    assert months[2].closing_balance == pytest.approx(15102.2)
    assert [m.label for m in months] == ["Jul 2025", "Aug 2025", "Sep 2025"]
    assert not any(m.is_historical for m in months)


def test_forecast_closing_balance_identity_and_chaining() -> None:
    """closing = opening + inflows - outflows, and each month opens on the previous close."""
    months = forecast_cash_flow(
        opening_balance=-1200,
        avg_inflows=4321,
        avg_outflows=5000,
        receivables=9000,
        payables=3000,
        assumptions=ForecastAssumptions(growth_rate=3.5, expense_increase=1.25, forecast_months=6),
        start=date(2025, 11, 15),
    )

    assert len(months) == 6
    for i, m in enumerate(months):
        assert m.closing_balance == pytest.approx(m.opening_balance + m.inflows - m.outflows)
        if i:
            assert m.opening_balance == pytest.approx(months[i - 1].closing_balance)
    assert months[0].month == date(2025, 11, 1)
    assert months[2].month == date(2026, 1, 1)


def test_forecast_releases_receivables_and_payables_on_schedule() -> None:
    """60/30/10% of receivables and 80/20% of payables, then nothing."""
    months = forecast_cash_flow(
        opening_balance=0,
        avg_inflows=0,
        avg_outflows=0,
        receivables=1000,
        payables=500,
        assumptions=ForecastAssumptions(forecast_months=4),
        start=date(2025, 1, 1),
    )

    assert [m.inflows for m in months] == pytest.approx([600, 300, 100, 0])
    assert [m.outflows for m in months] == pytest.approx([400, 100, 0, 0])
    assert months[-1].closing_balance == pytest.approx(500)


def test_current_balances_and_receivables_payables_use_roles() -> None:
    """Balances are classified by role only, not by account name."""
    accounts = make_accounts()
    lines = [
        line("J1", date(2025, 5, 2), "A1", debit=1000),
        line("J1", date(2025, 5, 2), "A5", credit=1000),
        line("J2", date(2025, 5, 3), "A2", debit=5000),
        line("J3", date(2025, 5, 4), "A2", credit=1500),
        line("J4", date(2025, 5, 5), "A3", debit=2500),
        line("J5", date(2025, 5, 6), "A3", credit=500),
        line("J6", date(2025, 5, 7), "A4", credit=800),
        line("J7", date(2025, 5, 8), "A4", debit=300),
    ]

    balances = current_balances(accounts, lines)
    rp = receivables_payables(accounts, lines)

    assert balances.cash == pytest.approx(1000)
    assert balances.bank == pytest.approx(3500)
    assert balances.total == pytest.approx(4500)
    assert rp.receivables == pytest.approx(2000)
    assert rp.payables == pytest.approx(500)


def test_monthly_activity_buckets_invoices_and_cash_lines() -> None:
    """Paid invoices and cash/bank movements are bucketed by YYYY-MM."""
    accounts = make_accounts()
    invoices = [
        paid_invoice("I1", date(2025, 4, 10), 1000),
        paid_invoice("I2", date(2025, 4, 20), 700, status="pending"),
        paid_invoice("I3", date(2025, 5, 2), 300),
    ]
    lines = [
        line("J1", date(2025, 4, 3), "A2", debit=200),
        line("J2", date(2025, 5, 9), "A1", credit=450),
        line("J3", date(2025, 6, 1), "A5", credit=999),
    ]

    activity = monthly_activity(invoices, lines, accounts)

    assert list(activity.index) == ["2025-04", "2025-05", "2025-06"]
    assert activity.loc["2025-04", "inflows"] == pytest.approx(1200)
    assert activity.loc["2025-05", "inflows"] == pytest.approx(300)
    assert activity.loc["2025-05", "outflows"] == pytest.approx(450)
    assert activity.loc["2025-06", "inflows"] == 0.0


def test_monthly_activity_empty() -> None:
    activity = monthly_activity([], [], [])

    assert activity.empty
    assert list(activity.columns) == ["inflows", "outflows"]


def test_historical_cash_flow_walks_back_from_current_balance() -> None:
    """Openings are inferred backward; the last month closes on the current balance."""
    accounts = make_accounts()
    lines = [
        line("J1", date(2025, 4, 5), "A2", debit=1000),
        line("J2", date(2025, 5, 5), "A2", credit=300),
        line("J3", date(2025, 6, 5), "A2", debit=500),
    ]
    activity = monthly_activity([], lines, accounts)

    history = historical_cash_flow(activity, current_balance=1200, as_of=date(2025, 7, 15))

    assert [m.label for m in history] == [
        "Jan 2025",
        "Feb 2025",
        "Mar 2025",
        "Apr 2025",
        "May 2025",
        "Jun 2025",
    ]
    assert history[-1].closing_balance == pytest.approx(1200)
    assert history[-1].opening_balance == pytest.approx(700)
    assert history[-2].closing_balance == pytest.approx(700)
    assert history[-2].opening_balance == pytest.approx(1000)
    assert history[-3].opening_balance == pytest.approx(0)
    assert history[0].opening_balance == pytest.approx(0)
    for m in history:
        assert m.is_historical
        assert m.closing_balance == pytest.approx(m.opening_balance + m.inflows - m.outflows)


def test_historical_averages_use_recent_active_months_up_to_as_of() -> None:
    """Only the last six active months up to as_of are averaged."""
    accounts = make_accounts()
    lines = [
        line(f"J{m}", date(2025, m, 10), "A2", debit=100 * m, credit=10 * m)
        for m in range(1, 10)
    ]
    activity = monthly_activity([], lines, accounts)

    averages = historical_averages(activity, as_of=date(2025, 8, 31))

    # March to August.
    assert averages.months_used == 6
    assert averages.avg_inflows == pytest.approx(100 * (3 + 4 + 5 + 6 + 7 + 8) / 6)
    assert averages.avg_outflows == pytest.approx(10 * (3 + 4 + 5 + 6 + 7 + 8) / 6)


def test_empty_data_gives_zero_averages_and_flat_forecast() -> None:
    report = build_cash_flow_report(
        invoices=[],
        accounts=[],
        lines=[],
        assumptions=ForecastAssumptions(forecast_months=3),
        as_of=date(2025, 7, 15),
    )

    assert report.averages.avg_inflows == 0.0
    assert report.averages.avg_outflows == 0.0
    assert report.balances.total == 0.0
    assert len(report.historical) == 6
    assert len(report.forecast) == 3
    assert all(m.closing_balance == 0.0 for m in report.forecast)
    assert report.net_position == 0.0


def test_build_cash_flow_report_end_to_end() -> None:
    """The forecast starts the month after as_of from the current cash + bank."""
    accounts = make_accounts()
    invoices = [paid_invoice("I1", date(2025, 6, 3), 2000)]
    lines = [
        line("J1", date(2025, 6, 3), "A2", debit=2000),
        line("J2", date(2025, 6, 10), "A1", debit=500),
        line("J3", date(2025, 6, 12), "A2", credit=1000),
        line("J4", date(2025, 6, 15), "A3", debit=1000),
        line("J5", date(2025, 6, 16), "A4", credit=400),
    ]

    report = build_cash_flow_report(
        invoices,
        accounts,
        lines,
        ForecastAssumptions(growth_rate=0, expense_increase=0, forecast_months=3),
        as_of=date(2025, 6, 30),
    )

    assert report.balances.total == pytest.approx(1500)
    assert report.net_position == pytest.approx(1500 + 1000 - 400)
    assert report.averages.months_used == 1
    assert report.averages.avg_inflows == pytest.approx(4500)
    assert report.averages.avg_outflows == pytest.approx(1000)
    assert report.forecast[0].month == date(2025, 7, 1)
    assert report.forecast[0].opening_balance == pytest.approx(1500)
    assert report.forecast[0].inflows == pytest.approx(4500 + 600)
    assert report.forecast[0].outflows == pytest.approx(1000 + 320)
