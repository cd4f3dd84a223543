# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Business records for SMB TaxFlow.

This module defines the typed records consumed by the computation engines
(tax.py, gst3b.py, cashflow.py). Records are plain, immutable dataclasses:
they are produced by the data access layer (io.py) from the storage
collaborator and are never mutated in place. Recomputations (for example,
re-deriving the TDS amount of an expense) return new records via
``dataclasses.replace``.

Every record carries the ``user_id`` of its owner. Scoping to the current
user is performed once, by the session context (context.py), before the
engines see the data.

Monetary values are plain floats in the presentation currency (INR by
default). Rounding is applied at display time only (views.py).
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Literal, Optional

InvoiceStatus = Literal["paid", "pending", "overdue"]
ExpenseStatus = Literal["pending", "approved", "rejected", "posted"]
PaymentMode = Literal["cash", "bank", "credit_card", "debit_card", "upi", "cheque"]
NoteStatus = Literal["draft", "issued", "cancelled"]

INVOICE_STATUSES: tuple[str, ...] = ("paid", "pending", "overdue")
EXPENSE_STATUSES: tuple[str, ...] = ("pending", "approved", "rejected", "posted")
PAYMENT_MODES: tuple[str, ...] = (
    "cash",
    "bank",
    "credit_card",
    "debit_card",
    "upi",
    "cheque",
)


class AccountRole(str, Enum):
    """
    Role of a ledger account in cash-flow computations.

    The role is an explicit attribute of every account, set when the account
    is created. Computations classify balances by role only and never
    inspect account names.
    """

    CASH = "cash"
    BANK = "bank"
    RECEIVABLE = "receivable"
    PAYABLE = "payable"
    OTHER = "other"


@dataclass(frozen=True)
class LineItem:
    """One line of an invoice or quotation."""

    description: str
    quantity: float
    rate: float
    amount: float
    hsn_sac: Optional[str] = None


@dataclass(frozen=True)
class Invoice:
    """
    Sales invoice.

    ``amount`` is the pre-tax value. ``total_amount`` is stored as entered
    and is expected to equal
    ``amount + gst_amount - discount - advance + roundoff``; this is not
    enforced at creation time (see tax.reconcile_invoice).
    """

    invoice_number: str
    user_id: str
    client_name: str
    amount: float
    gst_rate: float
    gst_amount: float
    total_amount: float
    status: InvoiceStatus
    invoice_date: date
    due_date: Optional[date] = None
    client_gst_number: Optional[str] = None
    client_email: Optional[str] = None
    discount: float = 0.0
    advance: float = 0.0
    roundoff: float = 0.0
    items: tuple[LineItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TDSRule:
    """Withholding (TDS) rule: a category and its rate in percent."""

    id: str
    user_id: str
    category: str
    rate_percentage: float
    description: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class Vendor:
    """Supplier. A TDS-enabled vendor may be linked to one TDS rule."""

    id: str
    user_id: str
    name: str
    gst_number: Optional[str] = None
    tds_enabled: bool = False
    linked_tds_rule_id: Optional[str] = None
    payment_terms: int = 30


@dataclass(frozen=True)
class Expense:
    """
    Purchase-side expense.

    ``total_amount`` is ``amount + tax_amount``. ``tds_amount`` and
    ``tds_rule_id`` are derived from the vendor's linked TDS rule (see
    tax.apply_expense_tds).
    """

    expense_number: str
    user_id: str
    vendor_name: str
    category_name: str
    amount: float
    expense_date: date
    payment_mode: PaymentMode
    status: ExpenseStatus
    tax_amount: float = 0.0
    total_amount: float = 0.0
    tds_amount: float = 0.0
    tds_rule_id: Optional[str] = None
    vendor_id: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class Account:
    """Ledger account with its explicit cash-flow role."""

    id: str
    user_id: str
    account_name: str
    account_type: str
    role: AccountRole


@dataclass(frozen=True)
class JournalLine:
    """One debit/credit line of a posted journal."""

    journal_id: str
    user_id: str
    journal_date: date
    account_id: str
    debit: float = 0.0
    credit: float = 0.0


@dataclass(frozen=True)
class TaxDocument:
    """
    Purchase bill, credit note or debit note.

    These documents only feed the GSTR-3B summary: their pre-tax ``amount``
    and ``gst_amount`` are netted against invoices (credit notes) or
    purchase bills (debit notes).
    """

    number: str
    user_id: str
    document_date: date
    amount: float
    gst_amount: float
    status: NoteStatus = "issued"


@dataclass(frozen=True)
class Quotation:
    """Quotation sent to a client. Only listed and exported."""

    quotation_number: str
    user_id: str
    client_name: str
    quotation_date: date
    subtotal: float
    total_amount: float
    discount: float = 0.0
    tax_amount: float = 0.0
    validity_period: Optional[int] = None
    status: str = "draft"
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    client_address: Optional[str] = None
    terms_conditions: str = ""
    items: tuple[LineItem, ...] = field(default_factory=tuple)


MIN_FORECAST_MONTHS = 3
MAX_FORECAST_MONTHS = 6


@dataclass(frozen=True)
class ForecastAssumptions:
    """
    User-tunable cash-flow forecast assumptions.

    This is the only mutable state of the cash-flow dashboard: the user
    edits it, and every edit produces a new instance and a full recompute.

    Attributes:
        growth_rate: Monthly growth of inflows, in percent.
        expense_increase: Monthly increase of outflows, in percent.
        payment_delay_days: Average customer payment delay, in days.
            Reported alongside the forecast; the receivables collection
            schedule itself is fixed (see cashflow.RECEIVABLE_SCHEDULE).
        forecast_months: Number of months to project (3 to 6 in the UI).
    """

    growth_rate: float = 5.0
    expense_increase: float = 2.0
    payment_delay_days: int = 30
    forecast_months: int = 6
