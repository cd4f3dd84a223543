# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow forecasting for SMB TaxFlow.

This module projects the monthly cash position forward from historical
ledger activity and a small set of user-tunable assumptions. Every
function is a pure recomputation of its inputs: there is no state machine,
no caching, and no error state. Missing or empty data yields zero balances,
zero averages and therefore a flat forecast.

1. Current position
   ----------------
   Accounts are classified by their explicit role (see accounts.py):

   - cash and bank balances: debit - credit over 'cash' / 'bank' accounts,
   - receivables:            debit - credit over 'receivable' accounts,
   - payables:               credit - debit over 'payable' accounts.

2. Historical pass
   ---------------
   ``monthly_activity`` buckets activity by month ('YYYY-MM'):

   - inflow:  total_amount of a paid invoice (bucketed on invoice_date),
              or a debit posted to a cash/bank account,
   - outflow: a credit posted to a cash/bank account.

   ``historical_cash_flow`` reconstructs the last six months by walking
   backward from the *current* cash + bank balance, subtracting each
   month's net change to infer its opening balance. Historical balances are
   therefore derived, not recorded snapshots, and drift whenever the current
   balance or the monthly activity is approximate.

3. Forecast pass
   -------------
   For i = 0 ... forecast_months - 1:

       inflow(i)  = avg_inflow  * (1 + growth_rate / 100) ** i
                    + RECEIVABLE_SCHEDULE[i] * receivables
       outflow(i) = avg_outflow * (1 + expense_increase / 100) ** i
                    + PAYABLE_SCHEDULE[i] * payables
       closing(i) = opening(i) + inflow(i) - outflow(i)
       opening(i + 1) = closing(i)

   60% / 30% / 10% of current receivables are collected in the first three
   forecast months; 80% / 20% of current payables are paid in the first two.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

import pandas as pd

from .accounts import accounts_with_role, role_balance
from .models import (
    Account,
    AccountRole,
    ForecastAssumptions,
    Invoice,
    JournalLine,
)
from .periods import add_months, month_key, month_label

RECEIVABLE_SCHEDULE: tuple[float, ...] = (0.6, 0.3, 0.1)
PAYABLE_SCHEDULE: tuple[float, ...] = (0.8, 0.2)

HISTORY_MONTHS = 6

ACTIVITY_COLUMNS = ["inflows", "outflows"]


@dataclass(frozen=True)
class CashBalances:
    """Current cash and bank position."""

    cash: float
    bank: float

    @property
    def total(self) -> float:
        return self.cash + self.bank


@dataclass(frozen=True)
class ReceivablesPayables:
    """Outstanding receivables and payables."""

    receivables: float
    payables: float


@dataclass(frozen=True)
class CashFlowMonth:
    """One month of cash flow, historical or projected."""

    month: date
    label: str
    opening_balance: float
    inflows: float
    outflows: float
    closing_balance: float
    is_historical: bool

    @property
    def net_change(self) -> float:
        return self.inflows - self.outflows


@dataclass(frozen=True)
class HistoricalAverages:
    """Average monthly inflow and outflow over the averaging window."""

    avg_inflows: float
    avg_outflows: float
    months_used: int


@dataclass(frozen=True)
class CashFlowReport:
    """Everything the cash-flow dashboard displays, computed in one pass."""

    as_of: date
    assumptions: ForecastAssumptions
    balances: CashBalances
    receivables_payables: ReceivablesPayables
    averages: HistoricalAverages
    historical: tuple[CashFlowMonth, ...]
    forecast: tuple[CashFlowMonth, ...]

    @property
    def net_position(self) -> float:
        """Cash and bank after settling all receivables and payables."""
        rp = self.receivables_payables
        return self.balances.total + rp.receivables - rp.payables


def current_balances(
    accounts: Iterable[Account], lines: Iterable[JournalLine]
) -> CashBalances:
    """Cash and bank balances (debit - credit) from journal lines."""
    accounts = list(accounts)
    lines = list(lines)
    return CashBalances(
        cash=role_balance(accounts, lines, AccountRole.CASH),
        bank=role_balance(accounts, lines, AccountRole.BANK),
    )


def receivables_payables(
    accounts: Iterable[Account], lines: Iterable[JournalLine]
) -> ReceivablesPayables:
    """Receivables (debit - credit) and payables (credit - debit)."""
    accounts = list(accounts)
    lines = list(lines)
    return ReceivablesPayables(
        receivables=role_balance(accounts, lines, AccountRole.RECEIVABLE),
        payables=role_balance(accounts, lines, AccountRole.PAYABLE, credit_normal=True),
    )


def monthly_activity(
    invoices: Iterable[Invoice],
    lines: Iterable[JournalLine],
    accounts: Iterable[Account],
) -> pd.DataFrame:
    """
    Bucket cash inflows and outflows by month.

    Every invoice and every journal line opens its month bucket, even when
    it contributes nothing (unpaid invoice, line on a non-cash account): a
    month with recorded activity counts towards the historical averages.

    Returns
    -------
    pandas.DataFrame
        Indexed by month key ('YYYY-MM', sorted ascending) with float
        columns 'inflows' and 'outflows'. Empty when there is no data.
    """
    cash_bank_ids = {
        a.id for a in accounts_with_role(accounts, AccountRole.CASH, AccountRole.BANK)
    }

    rows: list[dict[str, object]] = []
    for inv in invoices:
        rows.append(
            {
                "month": month_key(inv.invoice_date),
                "inflows": float(inv.total_amount) if inv.status == "paid" else 0.0,
                "outflows": 0.0,
            }
        )

    for line in lines:
        inflow = 0.0
        outflow = 0.0
        if line.account_id in cash_bank_ids:
            # Debit to cash/bank is money in, credit is money out.
            if line.debit and line.debit > 0:
                inflow = float(line.debit)
            if line.credit and line.credit > 0:
                outflow = float(line.credit)
        rows.append(
            {
                "month": month_key(line.journal_date),
                "inflows": inflow,
                "outflows": outflow,
            }
        )

    if not rows:
        empty = pd.DataFrame(columns=ACTIVITY_COLUMNS, dtype=float)
        empty.index.name = "month"
        return empty

    df = pd.DataFrame(rows)
    return df.groupby("month", sort=True)[ACTIVITY_COLUMNS].sum()


def _month_values(activity: pd.DataFrame, key: str) -> tuple[float, float]:
    if key not in activity.index:
        return 0.0, 0.0
    row = activity.loc[key]
    return float(row["inflows"]), float(row["outflows"])


def historical_cash_flow(
    activity: pd.DataFrame,
    current_balance: float,
    as_of: date,
    months: int = HISTORY_MONTHS,
) -> list[CashFlowMonth]:
    """
    Reconstruct the last ``months`` complete months before ``as_of``.

    The month immediately before ``as_of``'s month closes on
    ``current_balance``; each month's opening balance is its closing
    balance minus its net change, and becomes the previous month's closing
    balance.

    Returns
    -------
    list[CashFlowMonth]
        Chronological (oldest first), flagged ``is_historical=True``.
    """
    result: list[CashFlowMonth] = []
    running = float(current_balance)

    for i in range(1, months + 1):
        month = add_months(as_of, -i)
        inflows, outflows = _month_values(activity, month_key(month))
        opening = running - (inflows - outflows)
        result.append(
            CashFlowMonth(
                month=month,
                label=month_label(month),
                opening_balance=opening,
                inflows=inflows,
                outflows=outflows,
                closing_balance=running,
                is_historical=True,
            )
        )
        running = opening

    result.reverse()
    return result


def historical_averages(
    activity: pd.DataFrame,
    as_of: date,
    window: int = HISTORY_MONTHS,
) -> HistoricalAverages:
    """
    Average monthly inflows/outflows over the most recent active months.

    The window holds the last ``window`` months with recorded activity up to
    and including ``as_of``'s month. Months after ``as_of`` are ignored.
    Without activity, both averages are zero.
    """
    if activity.empty:
        return HistoricalAverages(avg_inflows=0.0, avg_outflows=0.0, months_used=0)

    cutoff = month_key(as_of)
    recent = activity[activity.index <= cutoff].sort_index().tail(window)
    if recent.empty:
        return HistoricalAverages(avg_inflows=0.0, avg_outflows=0.0, months_used=0)

    return HistoricalAverages(
        avg_inflows=float(recent["inflows"].mean()),
        avg_outflows=float(recent["outflows"].mean()),
        months_used=len(recent),
    )


def _scheduled_share(schedule: tuple[float, ...], index: int) -> float:
    return schedule[index] if index < len(schedule) else 0.0


def forecast_cash_flow(
    opening_balance: float,
    avg_inflows: float,
    avg_outflows: float,
    receivables: float,
    payables: float,
    assumptions: ForecastAssumptions,
    start: date,
) -> list[CashFlowMonth]:
    """
    Project the cash position forward, month by month.

    Args:
        opening_balance: Cash + bank balance at the start of the first
            forecast month.
        avg_inflows: Historical average monthly inflow.
        avg_outflows: Historical average monthly outflow.
        receivables: Current receivables, released 60/30/10%.
        payables: Current payables, released 80/20%.
        assumptions: Growth, expense increase and horizon.
        start: Any date in the first forecast month.

    Returns:
        ``assumptions.forecast_months`` CashFlowMonth rows where every
        closing balance equals opening + inflows - outflows and each
        opening balance equals the previous closing balance.
    """
    growth = 1 + float(assumptions.growth_rate) / 100
    increase = 1 + float(assumptions.expense_increase) / 100

    result: list[CashFlowMonth] = []
    balance = float(opening_balance)

    for i in range(int(assumptions.forecast_months)):
        month = add_months(start, i)
        inflows = float(avg_inflows) * growth**i
        inflows += _scheduled_share(RECEIVABLE_SCHEDULE, i) * float(receivables)
        outflows = float(avg_outflows) * increase**i
        outflows += _scheduled_share(PAYABLE_SCHEDULE, i) * float(payables)

        closing = balance + inflows - outflows
        result.append(
            CashFlowMonth(
                month=month,
                label=month_label(month),
                opening_balance=balance,
                inflows=inflows,
                outflows=outflows,
                closing_balance=closing,
                is_historical=False,
            )
        )
        balance = closing

    return result


def build_cash_flow_report(
    invoices: Iterable[Invoice],
    accounts: Iterable[Account],
    lines: Iterable[JournalLine],
    assumptions: ForecastAssumptions,
    as_of: date,
) -> CashFlowReport:
    """
    Run the full cash-flow pipeline.

    Steps:
        1. current cash/bank balances and receivables/payables,
        2. monthly activity buckets,
        3. historical reconstruction (last six months),
        4. historical averages,
        5. forecast starting the month after ``as_of``.
    """
    invoices = list(invoices)
    accounts = list(accounts)
    lines = list(lines)

    balances = current_balances(accounts, lines)
    rp = receivables_payables(accounts, lines)
    activity = monthly_activity(invoices, lines, accounts)
    historical = historical_cash_flow(activity, balances.total, as_of)
    averages = historical_averages(activity, as_of)
    forecast = forecast_cash_flow(
        opening_balance=balances.total,
        avg_inflows=averages.avg_inflows,
        avg_outflows=averages.avg_outflows,
        receivables=rp.receivables,
        payables=rp.payables,
        assumptions=assumptions,
        start=add_months(as_of, 1),
    )

    return CashFlowReport(
        as_of=as_of,
        assumptions=assumptions,
        balances=balances,
        receivables_payables=rp,
        averages=averages,
        historical=tuple(historical),
        forecast=tuple(forecast),
    )
