# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB TaxFlow.

This module reads the business records of a data directory (one CSV file
per collection) and normalizes them into the typed records of models.py.

Data directory layout
---------------------

    invoices.csv         invoice_number, client_name, amount, gst_rate,
                         gst_amount, total_amount, status, invoice_date
                         [, due_date, client_gst_number, client_email,
                          discount, advance, roundoff, user_id]
    invoice_items.csv    invoice_number, description, quantity, rate, amount
                         [, hsn_sac, user_id]
    expenses.csv         expense_number, vendor_name, category_name, amount,
                         expense_date, payment_mode, status
                         [, tax_amount, total_amount, tds_amount,
                          tds_rule_id, vendor_id, description, user_id]
    vendors.csv          id, name [, gst_number, tds_enabled,
                         linked_tds_rule_id, payment_terms, user_id]
    tds_rules.csv        id, category, rate_percentage
                         [, description, is_active, user_id]
    accounts.csv         id, account_name [, account_type, role, user_id]
    journal_lines.csv    journal_id, journal_date, account_id, debit, credit
                         [, user_id]
    purchase_bills.csv   number, document_date, amount, gst_amount
    credit_notes.csv     [, status, user_id]
    debit_notes.csv
    quotations.csv       quotation_number, client_name, quotation_date,
                         subtotal, total_amount [, discount, tax_amount,
                         validity_period, status, client_email,
                         client_phone, client_address, terms_conditions,
                         user_id]
    quotation_items.csv  quotation_number, description, quantity, rate,
                         amount [, hsn_sac, user_id]

Rules
-----
- Column names are case-insensitive.
- A missing file is an empty collection: input gaps degrade to zero-valued
  reports, they never fail.
- Blank optional numbers default to 0; blank optional dates to None.
- Malformed numbers, dates or enumerated values raise a ValueError naming
  the file and the column.
- Records without a ``user_id`` column belong to the loading user.
- An account without a role gets the role suggested from its name
  (accounts.suggest_role) and a warning is logged.
"""

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .accounts import parse_role, suggest_role
from .context import SessionContext
from .models import (
    EXPENSE_STATUSES,
    INVOICE_STATUSES,
    PAYMENT_MODES,
    Account,
    Expense,
    Invoice,
    JournalLine,
    LineItem,
    Quotation,
    TaxDocument,
    TDSRule,
    Vendor,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

INVOICES_FILE = "invoices.csv"
INVOICE_ITEMS_FILE = "invoice_items.csv"
EXPENSES_FILE = "expenses.csv"
VENDORS_FILE = "vendors.csv"
TDS_RULES_FILE = "tds_rules.csv"
ACCOUNTS_FILE = "accounts.csv"
JOURNAL_LINES_FILE = "journal_lines.csv"
PURCHASE_BILLS_FILE = "purchase_bills.csv"
CREDIT_NOTES_FILE = "credit_notes.csv"
DEBIT_NOTES_FILE = "debit_notes.csv"
QUOTATIONS_FILE = "quotations.csv"
QUOTATION_ITEMS_FILE = "quotation_items.csv"

NOTE_STATUSES: tuple[str, ...] = ("draft", "issued", "cancelled")

_TRUE_VALUES = {"true", "1", "yes", "y"}

_ITEM_COLUMNS = {"description", "quantity", "rate", "amount"}
_DOCUMENT_COLUMNS = {"number", "document_date", "amount", "gst_amount"}


# ---------------------------------------------------------------------------
# Column helpers
# ---------------------------------------------------------------------------


def _read_table(path: Path, required: set[str]) -> pd.DataFrame:
    """
    Read a CSV file as text columns with lowercase names.

    A missing or empty file yields an empty DataFrame with the required
    columns.

    Raises:
        ValueError: if a required column is missing.
    """
    if not path.is_file():
        logger.debug("%s not found, using an empty collection.", path)
        return pd.DataFrame(columns=sorted(required), dtype=str)

    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        logger.debug("%s is empty.", path)
        return pd.DataFrame(columns=sorted(required), dtype=str)

    df.columns = [str(c).lower().strip() for c in df.columns]
    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"{path.name} is missing required column(s): {', '.join(sorted(missing))}."
        )
    return df


def _text(df: pd.DataFrame, col: str, default: str = "") -> list[str]:
    if col not in df.columns:
        return [default] * len(df)
    return [str(v).strip() or default for v in df[col]]


def _optional_text(df: pd.DataFrame, col: str) -> list[Optional[str]]:
    return [v or None for v in _text(df, col)]


def _numbers(
    df: pd.DataFrame, col: str, source: str, default: float = 0.0
) -> list[float]:
    """Convert a column to floats; blanks take ``default``."""
    if col not in df.columns:
        return [default] * len(df)

    raw = df[col].astype(str).str.strip().str.replace(",", "", regex=False)
    blank = raw == ""
    values = pd.to_numeric(raw.where(~blank), errors="coerce")
    if (values.isna() & ~blank).any():
        raise ValueError(f"Invalid numeric values in '{col}' column of {source}.")
    return [default if b else float(v) for v, b in zip(values, blank)]


def _dates(
    df: pd.DataFrame, col: str, source: str, required: bool = True
) -> list[Optional[date]]:
    """Convert a column to dates; blanks are errors unless optional."""
    if col not in df.columns:
        return [None] * len(df)

    raw = df[col].astype(str).str.strip()
    blank = raw == ""
    if required and blank.any():
        raise ValueError(f"Missing values in '{col}' column of {source}.")

    try:
        parsed = pd.to_datetime(raw.where(~blank), errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Invalid values in '{col}' column of {source}.") from exc

    return [None if pd.isna(v) else v.date() for v in parsed]


def _flags(df: pd.DataFrame, col: str, default: bool) -> list[bool]:
    if col not in df.columns:
        return [default] * len(df)
    result = []
    for v in df[col]:
        raw = str(v).strip().lower()
        result.append(default if not raw else raw in _TRUE_VALUES)
    return result


def _choices(
    df: pd.DataFrame,
    col: str,
    source: str,
    allowed: tuple[str, ...],
    default: Optional[str] = None,
) -> list[str]:
    values = [v.lower() for v in _text(df, col, default or "")]
    invalid = sorted({v for v in values if v not in allowed})
    if invalid:
        raise ValueError(
            f"Invalid values in '{col}' column of {source}: {', '.join(invalid)}. "
            f"Expected one of: {', '.join(allowed)}."
        )
    return values


def _owners(df: pd.DataFrame, default_user_id: str) -> list[str]:
    return _text(df, "user_id", default_user_id)


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


def _read_items(
    path: Path, key: str, default_user_id: str
) -> dict[tuple[str, str], tuple[LineItem, ...]]:
    """
    Read line items grouped by (owner, parent document number).

    Document numbers are only unique per user, so items are keyed on both.
    """
    df = _read_table(path, _ITEM_COLUMNS | {key})
    source = path.name

    grouped: dict[tuple[str, str], list[LineItem]] = {}
    for owner, parent, description, quantity, rate, amount, hsn in zip(
        _owners(df, default_user_id),
        _text(df, key),
        _text(df, "description"),
        _numbers(df, "quantity", source, default=1.0),
        _numbers(df, "rate", source),
        _numbers(df, "amount", source),
        _optional_text(df, "hsn_sac"),
    ):
        grouped.setdefault((owner, parent), []).append(
            LineItem(
                description=description,
                quantity=quantity,
                rate=rate,
                amount=amount,
                hsn_sac=hsn,
            )
        )
    return {k: tuple(v) for k, v in grouped.items()}


def read_invoices(data_dir: PathLike, default_user_id: str = "local") -> list[Invoice]:
    """
    Read invoices and attach their line items.

    ``total_amount`` is kept as stored, even when it differs from the total
    of its components (see tax.reconcile_invoice).

    Raises
    ------
    ValueError
        If a required column is missing or a value cannot be parsed.
    """
    base = Path(data_dir)
    source = INVOICES_FILE
    df = _read_table(
        base / source,
        {
            "invoice_number",
            "client_name",
            "amount",
            "gst_rate",
            "gst_amount",
            "total_amount",
            "status",
            "invoice_date",
        },
    )
    items = _read_items(
        base / INVOICE_ITEMS_FILE, "invoice_number", default_user_id
    )

    invoices = []
    for row in zip(
        _text(df, "invoice_number"),
        _owners(df, default_user_id),
        _text(df, "client_name"),
        _numbers(df, "amount", source),
        _numbers(df, "gst_rate", source),
        _numbers(df, "gst_amount", source),
        _numbers(df, "total_amount", source),
        _choices(df, "status", source, INVOICE_STATUSES),
        _dates(df, "invoice_date", source),
        _dates(df, "due_date", source, required=False),
        _optional_text(df, "client_gst_number"),
        _optional_text(df, "client_email"),
        _numbers(df, "discount", source),
        _numbers(df, "advance", source),
        _numbers(df, "roundoff", source),
    ):
        (number, owner, client, amount, rate, gst, total, status,
         invoice_date, due_date, client_gst, email, discount, advance,
         roundoff) = row
        invoices.append(
            Invoice(
                invoice_number=number,
                user_id=owner,
                client_name=client,
                amount=amount,
                gst_rate=rate,
                gst_amount=gst,
                total_amount=total,
                status=status,  # type: ignore[arg-type]
                invoice_date=invoice_date,  # type: ignore[arg-type]
                due_date=due_date,
                client_gst_number=client_gst,
                client_email=email,
                discount=discount,
                advance=advance,
                roundoff=roundoff,
                items=items.get((owner, number), ()),
            )
        )

    logger.debug("Loaded %d invoice(s) from %s.", len(invoices), base / source)
    return invoices


def read_expenses(data_dir: PathLike, default_user_id: str = "local") -> list[Expense]:
    """
    Read expenses.

    A blank ``total_amount`` is derived as ``amount + tax_amount``. TDS
    fields are kept as stored; re-deriving them from the vendor is done by
    tax.apply_expense_tds.
    """
    path = Path(data_dir) / EXPENSES_FILE
    source = EXPENSES_FILE
    df = _read_table(
        path,
        {
            "expense_number",
            "vendor_name",
            "category_name",
            "amount",
            "expense_date",
            "payment_mode",
            "status",
        },
    )

    amounts = _numbers(df, "amount", source)
    taxes = _numbers(df, "tax_amount", source)
    totals = _numbers(df, "total_amount", source, default=float("nan"))

    expenses = []
    for row in zip(
        _text(df, "expense_number"),
        _owners(df, default_user_id),
        _text(df, "vendor_name"),
        _text(df, "category_name"),
        amounts,
        taxes,
        totals,
        _dates(df, "expense_date", source),
        _choices(df, "payment_mode", source, PAYMENT_MODES),
        _choices(df, "status", source, EXPENSE_STATUSES),
        _numbers(df, "tds_amount", source),
        _optional_text(df, "tds_rule_id"),
        _optional_text(df, "vendor_id"),
        _text(df, "description"),
    ):
        (number, owner, vendor_name, category, amount, tax, total,
         expense_date, mode, status, tds, rule_id, vendor_id, description) = row
        if pd.isna(total):
            total = amount + tax
        expenses.append(
            Expense(
                expense_number=number,
                user_id=owner,
                vendor_name=vendor_name,
                category_name=category,
                amount=amount,
                expense_date=expense_date,  # type: ignore[arg-type]
                payment_mode=mode,  # type: ignore[arg-type]
                status=status,  # type: ignore[arg-type]
                tax_amount=tax,
                total_amount=total,
                tds_amount=tds,
                tds_rule_id=rule_id,
                vendor_id=vendor_id,
                description=description,
            )
        )
    return expenses


def read_vendors(data_dir: PathLike, default_user_id: str = "local") -> list[Vendor]:
    """Read vendors. ``tds_enabled`` accepts true/false, yes/no or 1/0."""
    source = VENDORS_FILE
    df = _read_table(Path(data_dir) / source, {"id", "name"})
    return [
        Vendor(
            id=vid,
            user_id=owner,
            name=name,
            gst_number=gst,
            tds_enabled=enabled,
            linked_tds_rule_id=rule_id,
            payment_terms=int(terms),
        )
        for vid, owner, name, gst, enabled, rule_id, terms in zip(
            _text(df, "id"),
            _owners(df, default_user_id),
            _text(df, "name"),
            _optional_text(df, "gst_number"),
            _flags(df, "tds_enabled", default=False),
            _optional_text(df, "linked_tds_rule_id"),
            _numbers(df, "payment_terms", source, default=30.0),
        )
    ]


def read_tds_rules(data_dir: PathLike, default_user_id: str = "local") -> list[TDSRule]:
    """
    Read TDS rules.

    Inactive rules are loaded too (``is_active=False``) so that past TDS
    entries keep their category; they are never applied to new amounts.
    """
    source = TDS_RULES_FILE
    df = _read_table(Path(data_dir) / source, {"id", "category", "rate_percentage"})
    return [
        TDSRule(
            id=rid,
            user_id=owner,
            category=category,
            rate_percentage=rate,
            description=description,
            is_active=active,
        )
        for rid, owner, category, rate, description, active in zip(
            _text(df, "id"),
            _owners(df, default_user_id),
            _text(df, "category"),
            _numbers(df, "rate_percentage", source),
            _text(df, "description"),
            _flags(df, "is_active", default=True),
        )
    ]


def read_accounts(data_dir: PathLike, default_user_id: str = "local") -> list[Account]:
    """
    Read the chart of accounts with the cash-flow role of each account.

    Raises
    ------
    ValueError
        If a role value is not one of cash, bank, receivable, payable, other.
    """
    source = ACCOUNTS_FILE
    df = _read_table(Path(data_dir) / source, {"id", "account_name"})

    accounts = []
    for aid, owner, name, account_type, raw_role in zip(
        _text(df, "id"),
        _owners(df, default_user_id),
        _text(df, "account_name"),
        _text(df, "account_type"),
        _text(df, "role"),
    ):
        try:
            role = parse_role(raw_role)
        except ValueError as exc:
            raise ValueError(f"{source}, account {aid!r}: {exc}") from exc
        if role is None:
            role = suggest_role(name, account_type)
            logger.warning(
                "Account %r (%s) has no role; using suggested role %r.",
                aid,
                name,
                role.value,
            )
        accounts.append(
            Account(
                id=aid,
                user_id=owner,
                account_name=name,
                account_type=account_type,
                role=role,
            )
        )
    return accounts


def read_journal_lines(
    data_dir: PathLike, default_user_id: str = "local"
) -> list[JournalLine]:
    """Read posted journal lines (one debit or credit per line)."""
    source = JOURNAL_LINES_FILE
    df = _read_table(
        Path(data_dir) / source,
        {"journal_id", "journal_date", "account_id", "debit", "credit"},
    )
    return [
        JournalLine(
            journal_id=jid,
            user_id=owner,
            journal_date=jdate,  # type: ignore[arg-type]
            account_id=account_id,
            debit=debit,
            credit=credit,
        )
        for jid, owner, jdate, account_id, debit, credit in zip(
            _text(df, "journal_id"),
            _owners(df, default_user_id),
            _dates(df, "journal_date", source),
            _text(df, "account_id"),
            _numbers(df, "debit", source),
            _numbers(df, "credit", source),
        )
    ]


def read_tax_documents(
    path: PathLike, default_user_id: str = "local"
) -> list[TaxDocument]:
    """Read purchase bills, credit notes or debit notes from one CSV file."""
    path = Path(path)
    source = path.name
    df = _read_table(path, _DOCUMENT_COLUMNS)
    return [
        TaxDocument(
            number=number,
            user_id=owner,
            document_date=ddate,  # type: ignore[arg-type]
            amount=amount,
            gst_amount=gst,
            status=status,  # type: ignore[arg-type]
        )
        for number, owner, ddate, amount, gst, status in zip(
            _text(df, "number"),
            _owners(df, default_user_id),
            _dates(df, "document_date", source),
            _numbers(df, "amount", source),
            _numbers(df, "gst_amount", source),
            _choices(df, "status", source, NOTE_STATUSES, default="issued"),
        )
    ]


def read_quotations(
    data_dir: PathLike, default_user_id: str = "local"
) -> list[Quotation]:
    """Read quotations and attach their line items."""
    base = Path(data_dir)
    source = QUOTATIONS_FILE
    df = _read_table(
        base / source,
        {"quotation_number", "client_name", "quotation_date", "subtotal", "total_amount"},
    )
    items = _read_items(
        base / QUOTATION_ITEMS_FILE, "quotation_number", default_user_id
    )
    validity = _numbers(df, "validity_period", source, default=float("nan"))

    quotations = []
    for row in zip(
        _text(df, "quotation_number"),
        _owners(df, default_user_id),
        _text(df, "client_name"),
        _dates(df, "quotation_date", source),
        _numbers(df, "subtotal", source),
        _numbers(df, "total_amount", source),
        _numbers(df, "discount", source),
        _numbers(df, "tax_amount", source),
        validity,
        _text(df, "status", "draft"),
        _optional_text(df, "client_email"),
        _optional_text(df, "client_phone"),
        _optional_text(df, "client_address"),
        _text(df, "terms_conditions"),
    ):
        (number, owner, client, qdate, subtotal, total, discount, tax, days,
         status, email, phone, address, terms) = row
        quotations.append(
            Quotation(
                quotation_number=number,
                user_id=owner,
                client_name=client,
                quotation_date=qdate,  # type: ignore[arg-type]
                subtotal=subtotal,
                total_amount=total,
                discount=discount,
                tax_amount=tax,
                validity_period=None if pd.isna(days) else int(days),
                status=status.lower(),
                client_email=email,
                client_phone=phone,
                client_address=address,
                terms_conditions=terms,
                items=items.get((owner, number), ()),
            )
        )
    return quotations


# ---------------------------------------------------------------------------
# Ledger bundle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ledger:
    """All records of a data directory, scoped to one session."""

    invoices: tuple[Invoice, ...] = ()
    expenses: tuple[Expense, ...] = ()
    vendors: tuple[Vendor, ...] = ()
    tds_rules: tuple[TDSRule, ...] = ()
    accounts: tuple[Account, ...] = ()
    journal_lines: tuple[JournalLine, ...] = ()
    purchase_bills: tuple[TaxDocument, ...] = ()
    credit_notes: tuple[TaxDocument, ...] = ()
    debit_notes: tuple[TaxDocument, ...] = ()
    quotations: tuple[Quotation, ...] = ()


def _scoped(context: SessionContext, records: Iterable) -> tuple:
    return tuple(context.scope(records))


def load_ledger(data_dir: PathLike, context: SessionContext) -> Ledger:
    """
    Load every collection of ``data_dir`` visible to ``context``.

    Records without an explicit owner are attributed to the context's
    effective user, then every collection is scoped with
    ``SessionContext.scope``.

    Raises
    ------
    FileNotFoundError
        If ``data_dir`` does not exist.
    ValueError
        If any file is malformed.
    """
    base = Path(data_dir)
    if not base.is_dir():
        raise FileNotFoundError(f"Data directory not found: {base}")

    owner = context.effective_user_id
    logger.info("Loading records for user %r from %s", owner, base)

    return Ledger(
        invoices=_scoped(context, read_invoices(base, owner)),
        expenses=_scoped(context, read_expenses(base, owner)),
        vendors=_scoped(context, read_vendors(base, owner)),
        tds_rules=_scoped(context, read_tds_rules(base, owner)),
        accounts=_scoped(context, read_accounts(base, owner)),
        journal_lines=_scoped(context, read_journal_lines(base, owner)),
        purchase_bills=_scoped(
            context, read_tax_documents(base / PURCHASE_BILLS_FILE, owner)
        ),
        credit_notes=_scoped(context, read_tax_documents(base / CREDIT_NOTES_FILE, owner)),
        debit_notes=_scoped(context, read_tax_documents(base / DEBIT_NOTES_FILE, owner)),
        quotations=_scoped(context, read_quotations(base, owner)),
    )
