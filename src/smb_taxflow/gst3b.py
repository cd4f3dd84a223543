# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
GST-3B return aggregation for SMB TaxFlow.

This module rolls invoices up into the sections of the monthly GST-3B
return. The aggregate is never persisted: it is recomputed from the
current invoice set on every call, and recomputing with unchanged input
yields an identical result.

Supply rules
------------
- Only invoices whose status is exactly ``"paid"`` are treated as supplied
  for the period. Pending and overdue invoices are excluded entirely (no
  pro-rata handling).

- 3.1(a) Outward taxable supplies (other than zero/nil rated):
  every paid invoice with a non-zero GST rate adds
  ``total_amount - gst_amount`` to the taxable value and half of its
  ``gst_amount`` to both central tax and state/UT tax. Integrated tax is
  never populated from this path.

- 3.1(b) Zero-rated supplies:
  paid invoices with a zero GST rate add their ``total_amount`` to the
  taxable value, without tax.

- 3.1(c) Nil rated / exempted, 3.1(d) inward supplies liable to reverse
  charge and 3.1(e) non-GST supplies are not tracked and reported as zero.

- 3.2 Interstate supplies to unregistered persons:
  an invoice is treated as interstate when its client GST number has at
  least two characters; the first two characters are used as a state code
  bucket (``"State Code: NN"``). This is an approximation: a real
  place-of-supply determination compares the seller's registered state
  with the buyer's place of supply. It is reported as computed, not fixed.

- Sections 3.1.1 (e-commerce), 4 (eligible ITC) and 5 (exempt supplies)
  are hard-coded to zero or to a static "not tracked" message. The
  aggregator does not claim completeness for those sections.

Totals
------
The totals row sums the taxable value of all 3.1 subsections, and each tax
head over the subsections that carry it.

GSTR-3B summary
---------------
``compute_gstr3b_summary`` produces the lighter summary card: outward
supplies net of credit notes, inward supplies (ITC) net of debit notes,
tax liability and ITC available.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from .models import Invoice, TaxDocument
from .periods import Period, filter_by_period

PAID_STATUS = "paid"
CANCELLED_STATUS = "cancelled"

UIN_HOLDERS_MESSAGE = "We are not tracking supplies made to UIN holders"
ISD_MESSAGE = "Inward supplies from ISD are not supported"


@dataclass(frozen=True)
class TaxAmounts:
    """Taxable value and the four tax heads of a GST-3B cell group."""

    taxable_value: float = 0.0
    integrated_tax: float = 0.0
    central_tax: float = 0.0
    state_ut_tax: float = 0.0
    cess_tax: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "taxableValue": self.taxable_value,
            "integratedTax": self.integrated_tax,
            "centralTax": self.central_tax,
            "stateUTTax": self.state_ut_tax,
            "cessTax": self.cess_tax,
        }


@dataclass(frozen=True)
class PlaceOfSupplyRow:
    """Interstate supplies grouped by (approximate) place of supply."""

    place_of_supply: str
    taxable_value: float
    integrated_tax: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "placeOfSupply": self.place_of_supply,
            "taxableValue": self.taxable_value,
            "integratedTax": self.integrated_tax,
        }


@dataclass(frozen=True)
class InterIntraSplit:
    """Value split between interstate and intrastate supplies."""

    inter_state: float = 0.0
    intra_state: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"interState": self.inter_state, "intraState": self.intra_state}


@dataclass(frozen=True)
class OutwardSupplies:
    """Section 3.1: outward and reverse-charge inward supplies."""

    outward_taxable_other: TaxAmounts
    outward_taxable_zero: TaxAmounts
    other_outward_nil_exempt: TaxAmounts
    inward_liable_reverse: TaxAmounts
    non_gst_outward: TaxAmounts

    def subsections(self) -> tuple[TaxAmounts, ...]:
        """The five 3.1 subsections, in form order (a) to (e)."""
        return (
            self.outward_taxable_other,
            self.outward_taxable_zero,
            self.other_outward_nil_exempt,
            self.inward_liable_reverse,
            self.non_gst_outward,
        )


@dataclass(frozen=True)
class InterStateSupplies:
    """Section 3.2: interstate supplies by place of supply."""

    unregistered_persons: tuple[PlaceOfSupplyRow, ...]
    composition_taxable_persons: tuple[PlaceOfSupplyRow, ...] = ()
    uin_holders_message: str = UIN_HOLDERS_MESSAGE


@dataclass(frozen=True)
class EligibleITC:
    """Section 4: eligible input tax credit (not tracked)."""

    import_goods: TaxAmounts = field(default_factory=TaxAmounts)
    import_services: TaxAmounts = field(default_factory=TaxAmounts)
    inward_liable_reverse: TaxAmounts = field(default_factory=TaxAmounts)
    all_other_itc: TaxAmounts = field(default_factory=TaxAmounts)
    inward_from_isd_message: str = ISD_MESSAGE


@dataclass(frozen=True)
class ExemptSupplies:
    """Section 5: exempt, nil-rated and non-GST inward supplies (not tracked)."""

    composition_scheme: InterIntraSplit = field(default_factory=InterIntraSplit)
    non_gst_supply: InterIntraSplit = field(default_factory=InterIntraSplit)


@dataclass(frozen=True)
class GST3BReturn:
    """
    Complete GST-3B aggregate for a period.

    ``totals`` is the summary row across the 3.1 subsections.
    """

    period: Optional[Period]
    invoices_considered: int
    outward_supplies: OutwardSupplies
    supplies_notified: tuple[TaxAmounts, TaxAmounts]
    inter_state_supplies: InterStateSupplies
    eligible_itc: EligibleITC
    exempt_supplies: ExemptSupplies
    totals: TaxAmounts

    def to_dict(self) -> dict[str, Any]:
        """Nested structure mirroring the GST-3B form layout."""
        outward = self.outward_supplies
        itc = self.eligible_itc
        return {
            "period": {
                "start": self.period.start.isoformat() if self.period else None,
                "end": self.period.end.isoformat() if self.period else None,
            },
            "outwardSupplies": {
                "outwardTaxableOther": outward.outward_taxable_other.to_dict(),
                "outwardTaxableZero": outward.outward_taxable_zero.to_dict(),
                "otherOutwardNilExempt": {
                    "taxableValue": outward.other_outward_nil_exempt.taxable_value
                },
                "inwardLiableReverse": outward.inward_liable_reverse.to_dict(),
                "nonGSTOutward": {
                    "taxableValue": outward.non_gst_outward.taxable_value
                },
            },
            "suppliesNotified": {
                "electronicCommerceOperatorPays": self.supplies_notified[0].to_dict(),
                "registeredPersonThroughECommerce": {
                    "taxableValue": self.supplies_notified[1].taxable_value
                },
            },
            "interStateSupplies": {
                "unregisteredPersons": [
                    row.to_dict()
                    for row in self.inter_state_supplies.unregistered_persons
                ],
                "compositionTaxablePersons": [
                    row.to_dict()
                    for row in self.inter_state_supplies.composition_taxable_persons
                ],
                "uinHolders": {
                    "message": self.inter_state_supplies.uin_holders_message
                },
            },
            "eligibleITC": {
                "importGoods": {
                    "integratedTax": itc.import_goods.integrated_tax,
                    "cessTax": itc.import_goods.cess_tax,
                },
                "importServices": {
                    "integratedTax": itc.import_services.integrated_tax,
                    "cessTax": itc.import_services.cess_tax,
                },
                "inwardLiableReverse": _tax_heads(itc.inward_liable_reverse),
                "inwardFromISD": {"message": itc.inward_from_isd_message},
                "allOtherITC": _tax_heads(itc.all_other_itc),
            },
            "exemptSupplies": {
                "compositionScheme": self.exempt_supplies.composition_scheme.to_dict(),
                "nonGSTSupply": self.exempt_supplies.non_gst_supply.to_dict(),
            },
            "totals": self.totals.to_dict(),
        }


@dataclass(frozen=True)
class GSTR3BSummary:
    """Summary card of the GSTR-3B return, including ITC from purchases."""

    outward_taxable: float
    outward_gst: float
    inward_taxable: float
    inward_gst: float
    reverse_charge: float
    exempted: float
    nil_rated: float
    non_gst: float
    tax_liability: float
    itc_available: float

    @property
    def net_payable(self) -> float:
        """Tax liability after ITC set-off, floored at zero."""
        return max(0.0, self.tax_liability - self.itc_available)


def _tax_heads(amounts: TaxAmounts) -> dict[str, float]:
    data = amounts.to_dict()
    data.pop("taxableValue")
    return data


def paid_invoices(
    invoices: Iterable[Invoice],
    period: Optional[Period] = None,
) -> list[Invoice]:
    """Invoices with status exactly 'paid', optionally restricted to a period."""
    in_period = filter_by_period(invoices, period, lambda inv: inv.invoice_date)
    return [inv for inv in in_period if inv.status == PAID_STATUS]


def state_code_bucket(client_gst_number: Optional[str]) -> Optional[str]:
    """
    Place-of-supply bucket derived from a client GST number.

    Returns ``"State Code: NN"`` built from the first two characters when
    the number has at least two characters, otherwise None.
    """
    gst_number = client_gst_number or ""
    if len(gst_number) < 2:
        return None
    return f"State Code: {gst_number[:2]}"


def _interstate_rows(invoices: Iterable[Invoice]) -> tuple[PlaceOfSupplyRow, ...]:
    """Group invoices into place-of-supply rows, in first-seen order."""
    buckets: dict[str, list[float]] = {}
    for inv in invoices:
        place = state_code_bucket(inv.client_gst_number)
        if place is None:
            continue
        bucket = buckets.setdefault(place, [0.0, 0.0])
        bucket[0] += float(inv.total_amount) - float(inv.gst_amount)
        bucket[1] += float(inv.gst_amount)

    return tuple(
        PlaceOfSupplyRow(
            place_of_supply=place,
            taxable_value=values[0],
            integrated_tax=values[1],
        )
        for place, values in buckets.items()
    )


def compute_totals(outward: OutwardSupplies) -> TaxAmounts:
    """Summary row across the section 3.1 subsections."""
    subsections = outward.subsections()
    return TaxAmounts(
        taxable_value=sum(s.taxable_value for s in subsections),
        integrated_tax=sum(s.integrated_tax for s in subsections),
        central_tax=sum(s.central_tax for s in subsections),
        state_ut_tax=sum(s.state_ut_tax for s in subsections),
        cess_tax=sum(s.cess_tax for s in subsections),
    )


def compute_gst3b(
    invoices: Iterable[Invoice],
    period: Optional[Period] = None,
) -> GST3BReturn:
    """
    Aggregate invoices into the GST-3B return sections.

    Args:
        invoices: Invoice records (any status). Only paid invoices are used.
        period: Optional inclusive period on ``invoice_date``. None uses
            every invoice.

    Returns:
        A GST3BReturn instance, including the totals row.
    """
    paid = paid_invoices(invoices, period)

    other_taxable = 0.0
    other_central = 0.0
    other_state = 0.0
    zero_taxable = 0.0

    for inv in paid:
        gst_rate = float(inv.gst_rate or 0)
        total_amount = float(inv.total_amount or 0)
        gst_amount = float(inv.gst_amount or 0)

        if gst_rate == 0:
            zero_taxable += total_amount
            continue

        other_taxable += total_amount - gst_amount
        other_central += gst_amount / 2
        other_state += gst_amount / 2

    outward = OutwardSupplies(
        outward_taxable_other=TaxAmounts(
            taxable_value=other_taxable,
            central_tax=other_central,
            state_ut_tax=other_state,
        ),
        outward_taxable_zero=TaxAmounts(taxable_value=zero_taxable),
        # Zero-rated supplies are reported under 3.1(b) only.
        other_outward_nil_exempt=TaxAmounts(),
        inward_liable_reverse=TaxAmounts(),
        non_gst_outward=TaxAmounts(),
    )

    return GST3BReturn(
        period=period,
        invoices_considered=len(paid),
        outward_supplies=outward,
        supplies_notified=(TaxAmounts(), TaxAmounts()),
        inter_state_supplies=InterStateSupplies(
            unregistered_persons=_interstate_rows(paid),
        ),
        eligible_itc=EligibleITC(),
        exempt_supplies=ExemptSupplies(),
        totals=compute_totals(outward),
    )


def compute_gstr3b_summary(
    invoices: Iterable[Invoice],
    bills: Iterable[TaxDocument] = (),
    credit_notes: Iterable[TaxDocument] = (),
    debit_notes: Iterable[TaxDocument] = (),
    period: Optional[Period] = None,
) -> GSTR3BSummary:
    """
    Compute the GSTR-3B summary card.

    - Outward taxable value / GST: invoices in the period (any status),
      minus non-cancelled credit notes, floored at zero.
    - Inward taxable value / GST (ITC): purchase bills in the period, minus
      non-cancelled debit notes, floored at zero.
    - Tax liability is the outward GST; ITC available is the inward GST.
    - Reverse charge, exempted, nil-rated and non-GST are not tracked.
    """
    inv = filter_by_period(invoices, period, lambda i: i.invoice_date)
    pbs = filter_by_period(bills, period, lambda b: b.document_date)
    cns = [
        n
        for n in filter_by_period(credit_notes, period, lambda n: n.document_date)
        if n.status != CANCELLED_STATUS
    ]
    dns = [
        n
        for n in filter_by_period(debit_notes, period, lambda n: n.document_date)
        if n.status != CANCELLED_STATUS
    ]

    outward_taxable = max(
        0.0, sum(float(i.amount) for i in inv) - sum(float(n.amount) for n in cns)
    )
    outward_gst = max(
        0.0,
        sum(float(i.gst_amount) for i in inv) - sum(float(n.gst_amount) for n in cns),
    )
    inward_taxable = max(
        0.0, sum(float(b.amount) for b in pbs) - sum(float(n.amount) for n in dns)
    )
    inward_gst = max(
        0.0,
        sum(float(b.gst_amount) for b in pbs) - sum(float(n.gst_amount) for n in dns),
    )

    return GSTR3BSummary(
        outward_taxable=outward_taxable,
        outward_gst=outward_gst,
        inward_taxable=inward_taxable,
        inward_gst=inward_gst,
        reverse_charge=0.0,
        exempted=0.0,
        nil_rated=0.0,
        non_gst=0.0,
        tax_liability=outward_gst,
        itc_available=inward_gst,
    )
