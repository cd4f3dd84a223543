# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Account utilities for SMB TaxFlow.

This module contains helpers related to the chart of accounts (ledger
accounts), which is a user-maintained CSV (e.g. data/accounts.csv).

Responsibilities:
- Parse the explicit cash-flow role of an account (cash, bank, receivable,
  payable, other).
- Suggest a role for legacy charts of accounts that do not carry one yet.
  The suggestion is a creation-time aid only: computations never look at
  account names.
- Select accounts by role and compute role balances from journal lines.
"""

from collections.abc import Iterable
from typing import Optional

from .models import Account, AccountRole, JournalLine

# Keywords used only by suggest_role(), in priority order.
_ROLE_KEYWORDS: tuple[tuple[AccountRole, tuple[str, ...]], ...] = (
    (AccountRole.RECEIVABLE, ("receivable", "debtors")),
    (AccountRole.PAYABLE, ("payable", "creditors")),
    (AccountRole.CASH, ("cash",)),
    (AccountRole.BANK, ("bank",)),
)


def parse_role(value: Optional[str]) -> Optional[AccountRole]:
    """
    Convert a raw role value (case-insensitive) into an AccountRole.

    Returns None for blank values.

    Raises:
        ValueError: if the value is not a known role.
    """
    if value is None:
        return None
    raw = str(value).strip().lower()
    if not raw or raw == "nan":
        return None
    try:
        return AccountRole(raw)
    except ValueError as exc:
        allowed = ", ".join(r.value for r in AccountRole)
        raise ValueError(
            f"Unknown account role {value!r}. Expected one of: {allowed}."
        ) from exc


def suggest_role(account_name: str, account_type: str = "") -> AccountRole:
    """Suggest a role for an account from its free-text name and type.

    Intended for migrating legacy charts of accounts: the suggested role is
    stored on the account and becomes its explicit role.

    Matching rule (case-insensitive substring, first match wins):
    - 'receivable' / 'debtors'   → receivable
    - 'payable' / 'creditors'    → payable
    - 'cash'                     → cash
    - 'bank'                     → bank
    - anything else              → other

    Args:
        account_name: Account label (e.g. 'HDFC Bank Current Account').
        account_type: Optional account type (e.g. 'Bank').

    Returns:
        The suggested AccountRole.
    """
    text = f"{account_name} {account_type}".lower()
    for role, keywords in _ROLE_KEYWORDS:
        if any(k in text for k in keywords):
            return role
    return AccountRole.OTHER


def accounts_with_role(
    accounts: Iterable[Account], *roles: AccountRole
) -> list[Account]:
    """Return the accounts whose role is one of ``roles``."""
    wanted = set(roles)
    return [a for a in accounts if a.role in wanted]


def role_balance(
    accounts: Iterable[Account],
    lines: Iterable[JournalLine],
    role: AccountRole,
    credit_normal: bool = False,
) -> float:
    """
    Sum journal lines posted to accounts with the given role.

    Args:
        accounts: Chart of accounts.
        lines: Journal lines.
        role: Role to select.
        credit_normal: If False (asset roles), the balance is debit - credit;
            if True (liability roles), credit - debit.

    Returns:
        The balance as a float (0.0 when nothing matches).
    """
    account_ids = {a.id for a in accounts_with_role(accounts, role)}
    balance = 0.0
    for line in lines:
        if line.account_id not in account_ids:
            continue
        if credit_normal:
            balance += float(line.credit or 0) - float(line.debit or 0)
        else:
            balance += float(line.debit or 0) - float(line.credit or 0)
    return balance
