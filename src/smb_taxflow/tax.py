# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tax computation engine for SMB TaxFlow.

This module converts raw amounts and rates into consistent tax figures.
It is the lowest layer of the computation core: the GST-3B aggregator
(gst3b.py) and the reporting services build on top of it.

1. GST split
   ---------
   ``compute_gst(amount, gst_rate)`` returns a GSTSplit with:

       gst_amount = amount * gst_rate / 100
       cgst = sgst = gst_amount / 2      (intrastate, the default)
       igst = 0

   The application does not determine interstate status from the seller's
   registered state and the buyer's place of supply. Every split is
   therefore intrastate unless the caller explicitly asks for an
   interstate split (igst = gst_amount, cgst = sgst = 0).

   Rates are not validated against the standard slabs (0, 5, 12, 18, 28)
   at computation time; ``is_standard_gst_rate`` is available to callers
   that want to check them.

2. TDS
   ---
   ``compute_tds(amount, rule)`` returns the withholding amount
   ``amount * rule.rate_percentage / 100``. Without a rule, the amount is
   zero and no rule reference is kept. ``apply_expense_tds`` re-derives an
   expense's TDS fields from its vendor, the way the expense form does on
   every change of amount or vendor.

3. Invoice totals
   --------------
   ``invoice_expected_total`` recomputes an invoice total from its
   components; ``reconcile_invoice`` compares it with the stored total.
   Aggregations (gst3b.py, cashflow.py) trust the stored ``total_amount``;
   reconciliation is the explicit place where discrepancies surface.

4. TDS summary
   -----------
   ``summarize_tds`` rolls up expenses into totals and a per-category
   breakdown for the TDS report.

None of these functions raise on missing data: absent rules, vendors or
zero amounts simply produce zero-valued results. Negative amounts are not
rejected here; validation belongs to the input layer.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Optional

from .models import Expense, Invoice, TDSRule, Vendor

STANDARD_GST_RATES: tuple[float, ...] = (0.0, 5.0, 12.0, 18.0, 28.0)

DEFAULT_TDS_CATEGORY = "Other"


@dataclass(frozen=True)
class GSTSplit:
    """
    GST computed on a pre-tax amount.

    Attributes:
        taxable_value: Pre-tax amount the rate was applied to.
        gst_rate: Rate in percent.
        gst_amount: Total GST (cgst + sgst + igst).
        cgst: Central tax.
        sgst: State / union territory tax.
        igst: Integrated tax (interstate supplies only).
    """

    taxable_value: float
    gst_rate: float
    gst_amount: float
    cgst: float
    sgst: float
    igst: float

    @property
    def total_amount(self) -> float:
        """Taxable value plus GST."""
        return self.taxable_value + self.gst_amount


@dataclass(frozen=True)
class TDSResult:
    """Withholding computed on an amount, with the rule that produced it."""

    amount: float
    tds_amount: float
    rate_percentage: float
    rule_id: Optional[str]
    category: Optional[str]

    @property
    def net_payable(self) -> float:
        """Amount payable to the vendor after withholding."""
        return self.amount - self.tds_amount


@dataclass(frozen=True)
class InvoiceReconciliation:
    """Comparison between an invoice's stored and recomputed totals."""

    invoice_number: str
    stored_total: float
    expected_total: float
    difference: float
    is_consistent: bool


@dataclass(frozen=True)
class TDSCategoryBreakdown:
    """TDS totals for one rule category."""

    category: str
    total_amount: float
    total_tds: float
    transaction_count: int


@dataclass(frozen=True)
class TDSSummary:
    """TDS totals over a set of expenses."""

    total_transaction_amount: float
    total_tds_deducted: float
    total_net_payable: float
    transaction_count: int
    category_breakdown: tuple[TDSCategoryBreakdown, ...]


def is_standard_gst_rate(gst_rate: float) -> bool:
    """Return True if the rate is one of the standard GST slabs."""
    return float(gst_rate) in STANDARD_GST_RATES


def compute_gst(amount: float, gst_rate: float, interstate: bool = False) -> GSTSplit:
    """
    Compute the GST split for a pre-tax amount.

    Args:
        amount: Pre-tax amount. Zero yields an all-zero split.
        gst_rate: GST rate in percent (e.g. 18 for 18%).
        interstate: If True, the whole GST is integrated tax (IGST).
            Defaults to False (intrastate: half CGST, half SGST).

    Returns:
        A GSTSplit instance.
    """
    taxable = float(amount)
    rate = float(gst_rate)
    gst_amount = taxable * rate / 100

    if interstate:
        return GSTSplit(
            taxable_value=taxable,
            gst_rate=rate,
            gst_amount=gst_amount,
            cgst=0.0,
            sgst=0.0,
            igst=gst_amount,
        )

    half = gst_amount / 2
    return GSTSplit(
        taxable_value=taxable,
        gst_rate=rate,
        gst_amount=gst_amount,
        cgst=half,
        sgst=half,
        igst=0.0,
    )


def compute_tds(amount: float, rule: Optional[TDSRule]) -> TDSResult:
    """
    Compute the TDS withheld on an amount.

    Args:
        amount: Transaction amount (pre-tax).
        rule: Applicable TDS rule, or None when no withholding applies.

    Returns:
        A TDSResult. Without a rule, ``tds_amount`` is 0.0 and ``rule_id``
        is None.
    """
    value = float(amount)
    if rule is None:
        return TDSResult(
            amount=value,
            tds_amount=0.0,
            rate_percentage=0.0,
            rule_id=None,
            category=None,
        )

    rate = float(rule.rate_percentage)
    return TDSResult(
        amount=value,
        tds_amount=value * rate / 100,
        rate_percentage=rate,
        rule_id=rule.id,
        category=rule.category,
    )


def resolve_vendor_tds_rule(
    vendor: Optional[Vendor],
    rules: Iterable[TDSRule],
) -> Optional[TDSRule]:
    """
    Return the TDS rule linked to a vendor, if any.

    A rule applies only when the vendor is TDS-enabled and its linked rule
    exists among ``rules`` and is active. A missing vendor, a disabled
    vendor, a dangling reference or a deactivated rule resolve to None.
    """
    if vendor is None or not vendor.tds_enabled or not vendor.linked_tds_rule_id:
        return None

    for rule in rules:
        if rule.id == vendor.linked_tds_rule_id:
            return rule if rule.is_active else None
    return None


def apply_expense_tds(
    expense: Expense,
    vendor: Optional[Vendor],
    rules: Iterable[TDSRule],
) -> Expense:
    """
    Return a copy of ``expense`` with its derived tax fields recomputed.

    - ``tds_amount`` / ``tds_rule_id`` come from the vendor's linked rule
      (zero and None when no rule applies),
    - ``total_amount`` is ``amount + tax_amount``.
    """
    rule = resolve_vendor_tds_rule(vendor, rules)
    tds = compute_tds(expense.amount, rule)
    return replace(
        expense,
        tds_amount=tds.tds_amount,
        tds_rule_id=tds.rule_id,
        total_amount=float(expense.amount) + float(expense.tax_amount),
    )


def invoice_expected_total(invoice: Invoice) -> float:
    """Recompute ``amount + gst_amount - discount - advance + roundoff``."""
    return (
        float(invoice.amount)
        + float(invoice.gst_amount)
        - float(invoice.discount)
        - float(invoice.advance)
        + float(invoice.roundoff)
    )


def reconcile_invoice(invoice: Invoice, tolerance: float = 0.01) -> InvoiceReconciliation:
    """
    Compare an invoice's stored total with the total of its components.

    Args:
        invoice: Invoice to check.
        tolerance: Maximum absolute difference still considered consistent.

    Returns:
        An InvoiceReconciliation. ``difference`` is stored minus expected.
    """
    expected = invoice_expected_total(invoice)
    stored = float(invoice.total_amount)
    difference = stored - expected
    return InvoiceReconciliation(
        invoice_number=invoice.invoice_number,
        stored_total=stored,
        expected_total=expected,
        difference=difference,
        is_consistent=abs(difference) <= tolerance,
    )


def summarize_tds(
    expenses: Iterable[Expense],
    rules: Iterable[TDSRule],
) -> TDSSummary:
    """
    Summarize withholding over expenses that carry a TDS amount.

    Only expenses with a TDS rule reference or a non-zero ``tds_amount``
    are counted as TDS transactions. Expenses whose rule cannot be found
    are grouped under the "Other" category.
    """
    category_by_rule: Mapping[str, str] = {rule.id: rule.category for rule in rules}

    total_amount = 0.0
    total_tds = 0.0
    count = 0
    buckets: dict[str, list[float]] = {}

    for expense in expenses:
        if expense.tds_rule_id is None and not expense.tds_amount:
            continue

        amount = float(expense.amount)
        tds_amount = float(expense.tds_amount)
        total_amount += amount
        total_tds += tds_amount
        count += 1

        category = DEFAULT_TDS_CATEGORY
        if expense.tds_rule_id is not None:
            category = category_by_rule.get(expense.tds_rule_id, DEFAULT_TDS_CATEGORY)

        bucket = buckets.setdefault(category, [0.0, 0.0, 0])
        bucket[0] += amount
        bucket[1] += tds_amount
        bucket[2] += 1

    breakdown = tuple(
        TDSCategoryBreakdown(
            category=category,
            total_amount=values[0],
            total_tds=values[1],
            transaction_count=int(values[2]),
        )
        for category, values in buckets.items()
    )

    return TDSSummary(
        total_transaction_amount=total_amount,
        total_tds_deducted=total_tds,
        total_net_payable=total_amount - total_tds,
        transaction_count=count,
        category_breakdown=breakdown,
    )
