from dataclasses import replace
from datetime import date

import pytest

from smb_taxflow.gst3b import (
    ISD_MESSAGE,
    UIN_HOLDERS_MESSAGE,
    compute_gst3b,
    compute_gstr3b_summary,
    paid_invoices,
    state_code_bucket,
)
from smb_taxflow.models import Invoice, TaxDocument
from smb_taxflow.periods import Period


def make_invoice(number: str, total: float, rate: float, gst: float, **kwargs) -> Invoice:
    """Helper to build an invoice; amount is total - gst unless given."""
    params = dict(
        invoice_number=number,
        user_id="u1",
        client_name="Client",
        amount=total - gst,
        gst_rate=rate,
        gst_amount=gst,
        total_amount=total,
        status="paid",
        invoice_date=date(2025, 6, 15),
    )
    params.update(kwargs)
    return Invoice(**params)


def make_doc(number: str, amount: float, gst: float, **kwargs) -> TaxDocument:
    params = dict(
        number=number,
        user_id="u1",
        document_date=date(2025, 6, 20),
        amount=amount,
        gst_amount=gst,
    )
    params.update(kwargs)
    return TaxDocument(**params)


def test_gst3b_two_paid_invoices_scenario() -> None:
    """An 18% invoice feeds 3.1(a) with total - gst; a 0% invoice feeds 3.1(b)."""
    invoices = [
        make_invoice("INV-1", 1000, 18, 180),
        make_invoice("INV-2", 500, 0, 0),
    ]

    result = compute_gst3b(invoices)
    outward = result.outward_supplies

    assert outward.outward_taxable_other.taxable_value == pytest.approx(820.0)
    assert outward.outward_taxable_other.central_tax == pytest.approx(90.0)
    assert outward.outward_taxable_other.state_ut_tax == pytest.approx(90.0)
    assert outward.outward_taxable_other.integrated_tax == 0.0
    assert outward.outward_taxable_zero.taxable_value == pytest.approx(500.0)
    assert outward.other_outward_nil_exempt.taxable_value == 0.0
    assert result.invoices_considered == 2


def test_gst3b_zero_rated_supplies_are_not_reported_as_nil_exempt() -> None:
    """Zero-rated invoices land in 3.1(b) once; 3.1(c) stays zero."""
    result = compute_gst3b(
        [
            make_invoice("INV-1", 1000, 18, 180),
            make_invoice("INV-2", 500, 0, 0),
        ]
    )

    assert result.outward_supplies.outward_taxable_zero.taxable_value == pytest.approx(500.0)
    assert result.outward_supplies.other_outward_nil_exempt.taxable_value == 0.0
    assert result.totals.taxable_value == pytest.approx(820.0 + 500.0)
    assert result.to_dict()["outwardSupplies"]["otherOutwardNilExempt"]["taxableValue"] == 0.0


def test_gst3b_totals_match_subsections() -> None:
    """totals.taxable_value equals the sum of the 3.1 subsections."""
    invoices = [
        make_invoice("INV-1", 1180, 18, 180),
        make_invoice("INV-2", 560, 12, 60),
        make_invoice("INV-3", 300, 0, 0),
    ]

    result = compute_gst3b(invoices)
    subsections = result.outward_supplies.subsections()

    assert result.totals.taxable_value == pytest.approx(
        sum(s.taxable_value for s in subsections)
    )
    assert result.totals.central_tax == pytest.approx(120.0)
    assert result.totals.state_ut_tax == pytest.approx(120.0)
    assert result.totals.taxable_value == pytest.approx(1000 + 500 + 300)


def test_gst3b_only_paid_invoices_contribute() -> None:
    """Switching an invoice from paid to pending removes its contribution."""
    paid = make_invoice("INV-1", 1180, 18, 180)
    other = make_invoice("INV-2", 2360, 18, 360)

    before = compute_gst3b([paid, other])
    after = compute_gst3b([paid, replace(other, status="pending")])

    assert before.outward_supplies.outward_taxable_other.taxable_value == pytest.approx(3000.0)
    assert after.outward_supplies.outward_taxable_other.taxable_value == pytest.approx(1000.0)
    assert after.invoices_considered == 1

    overdue = compute_gst3b([replace(paid, status="overdue")])
    assert overdue.totals.taxable_value == 0.0


def test_gst3b_is_idempotent() -> None:
    invoices = [make_invoice("INV-1", 1180, 18, 180, client_gst_number="27ABCDE1234F1Z5")]

    assert compute_gst3b(invoices) == compute_gst3b(invoices)
    assert compute_gst3b(invoices).to_dict() == compute_gst3b(invoices).to_dict()


def test_gst3b_period_filter_is_inclusive() -> None:
    invoices = [
        make_invoice("INV-1", 1180, 18, 180, invoice_date=date(2025, 6, 1)),
        make_invoice("INV-2", 1180, 18, 180, invoice_date=date(2025, 6, 30)),
        make_invoice("INV-3", 1180, 18, 180, invoice_date=date(2025, 7, 1)),
    ]
    june = Period(start=date(2025, 6, 1), end=date(2025, 6, 30), label="June")

    assert [i.invoice_number for i in paid_invoices(invoices, june)] == ["INV-1", "INV-2"]
    assert compute_gst3b(invoices, june).invoices_considered == 2


def test_state_code_bucket_uses_first_two_characters() -> None:
    assert state_code_bucket("27ABCDE1234F1Z5") == "State Code: 27"
    assert state_code_bucket("2") is None
    assert state_code_bucket("") is None
    assert state_code_bucket(None) is None


def test_gst3b_interstate_rows_grouped_by_state_code() -> None:
    """Invoices with a GST number are bucketed under 3.2 by its prefix."""
    invoices = [
        make_invoice("INV-1", 1180, 18, 180, client_gst_number="27AAA"),
        make_invoice("INV-2", 590, 18, 90, client_gst_number="27BBB"),
        make_invoice("INV-3", 1120, 12, 120, client_gst_number="29CCC"),
        make_invoice("INV-4", 1180, 18, 180),
    ]

    rows = compute_gst3b(invoices).inter_state_supplies.unregistered_persons

    assert [r.place_of_supply for r in rows] == ["State Code: 27", "State Code: 29"]
    assert rows[0].taxable_value == pytest.approx(1500.0)
    assert rows[0].integrated_tax == pytest.approx(270.0)
    assert rows[1].taxable_value == pytest.approx(1000.0)


def test_gst3b_to_dict_layout() -> None:
    """The nested dictionary mirrors the form layout and static messages."""
    data = compute_gst3b([make_invoice("INV-1", 1180, 18, 180)]).to_dict()

    assert data["outwardSupplies"]["outwardTaxableOther"] == {
        "taxableValue": pytest.approx(1000.0),
        "integratedTax": 0.0,
        "centralTax": pytest.approx(90.0),
        "stateUTTax": pytest.approx(90.0),
        "cessTax": 0.0,
    }
    assert data["interStateSupplies"]["uinHolders"]["message"] == UIN_HOLDERS_MESSAGE
    assert data["eligibleITC"]["inwardFromISD"]["message"] == ISD_MESSAGE
    assert data["eligibleITC"]["allOtherITC"]["integratedTax"] == 0.0
    assert data["totals"]["taxableValue"] == pytest.approx(1000.0)
    assert data["period"] == {"start": None, "end": None}


def test_gst3b_empty_input_is_all_zero() -> None:
    result = compute_gst3b([])

    assert result.invoices_considered == 0
    assert result.totals.taxable_value == 0.0
    assert result.inter_state_supplies.unregistered_persons == ()


def test_gstr3b_summary_nets_credit_and_debit_notes() -> None:
    """Outward is net of credit notes, inward net of debit notes; cancelled notes are ignored."""
    invoices = [
        make_invoice("INV-1", 1180, 18, 180),
        make_invoice("INV-2", 2360, 18, 360, status="pending"),
    ]
    bills = [make_doc("B-1", 800, 144)]
    credit_notes = [
        make_doc("CN-1", 200, 36),
        make_doc("CN-2", 999, 99, status="cancelled"),
    ]
    debit_notes = [make_doc("DN-1", 100, 18)]

    summary = compute_gstr3b_summary(invoices, bills, credit_notes, debit_notes)

    assert summary.outward_taxable == pytest.approx(3000 - 200)
    assert summary.outward_gst == pytest.approx(540 - 36)
    assert summary.inward_taxable == pytest.approx(700.0)
    assert summary.inward_gst == pytest.approx(126.0)
    assert summary.tax_liability == pytest.approx(504.0)
    assert summary.itc_available == pytest.approx(126.0)
    assert summary.net_payable == pytest.approx(378.0)
    assert summary.reverse_charge == 0.0


def test_gstr3b_summary_floors_at_zero() -> None:
    summary = compute_gstr3b_summary(
        [make_invoice("INV-1", 118, 18, 18)],
        credit_notes=[make_doc("CN-1", 500, 90)],
    )

    assert summary.outward_taxable == 0.0
    assert summary.outward_gst == 0.0
    assert summary.net_payable == 0.0
