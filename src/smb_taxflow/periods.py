# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB TaxFlow.

This module defines a Period value object and helpers to derive
reporting periods (fiscal year, YTD, MTD, last month, last fiscal year)
from the current fiscal year and CLI arguments, as well as the month
arithmetic used by the cash-flow forecaster.
"""

from calendar import monthrange
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, TypeVar

from .config import FiscalYear

T = TypeVar("T")


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str

    def contains(self, value: date) -> bool:
        """Return True if ``value`` falls within [start, end]."""
        return self.start <= value <= self.end


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def month_start(value: date) -> date:
    """First day of the month containing ``value``."""
    return value.replace(day=1)


def add_months(value: date, months: int) -> date:
    """Return the first day of the month ``months`` after ``value``'s month."""
    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_key(value: date) -> str:
    """Month bucket key in 'YYYY-MM' format."""
    return f"{value.year:04d}-{value.month:02d}"


def month_label(value: date) -> str:
    """Short display label, e.g. 'Jan 2025'."""
    return value.strftime("%b %Y")


def period_month(value: date) -> Period:
    """Full calendar month containing ``value``."""
    start = month_start(value)
    end = date(start.year, start.month, monthrange(start.year, start.month)[1])
    return Period(start=start, end=end, label=month_label(start))


def period_fy(fy: FiscalYear) -> Period:
    """Full current fiscal year."""
    return Period(
        start=fy.start_date,
        end=fy.end_date,
        label=f"Fiscal year {fy.start_date.year}-{str(fy.end_date.year)[-2:]}",
    )


def period_ytd(fy: FiscalYear) -> Period:
    """Year-to-date within the fiscal year."""
    today = _today()
    start = fy.start_date
    end = min(max(today, fy.start_date), fy.end_date)
    return Period(start=start, end=end, label="Year to date")


def period_mtd(fy: FiscalYear) -> Period:
    """Month-to-date within the fiscal year."""
    today = _today()

    # Outside the fiscal year, fall back to the full fiscal year.
    if today < fy.start_date or today > fy.end_date:
        return period_fy(fy)

    start = today.replace(day=1)
    return Period(start=start, end=today, label="Month to date")


def period_last_month(fy: FiscalYear) -> Period:
    """
    Full previous calendar month, clamped to the fiscal year if needed.

    GST-3B is a monthly return, so this is the usual filing period.
    """
    today = _today()
    previous = period_month(add_months(today, -1))

    # No overlap with the fiscal year: fall back to the full fiscal year.
    if previous.end < fy.start_date or previous.start > fy.end_date:
        return period_fy(fy)

    return Period(
        start=max(previous.start, fy.start_date),
        end=min(previous.end, fy.end_date),
        label="Last month",
    )


def period_last_fy(fy: FiscalYear) -> Period:
    """Previous fiscal year, shifted back by one year from the current one."""
    start = fy.start_date.replace(year=fy.start_date.year - 1)
    end_year = fy.end_date.year - 1
    end_day = min(fy.end_date.day, monthrange(end_year, fy.end_date.month)[1])
    end = date(end_year, fy.end_date.month, end_day)
    return Period(
        start=start,
        end=end,
        label=f"Previous fiscal year ({start.year}-{str(end.year)[-2:]})",
    )


def determine_period_from_args(
    args,
    fy: FiscalYear,
) -> Period:
    """
    Determine the reporting period to use based on CLI args and the fiscal year.

    Priority (highest to lowest):

        1. args.period (fy, ytd, mtd, last-month, last-fy)
        2. args.from_date / args.to_date (custom period)
        3. fiscal year by default
    """
    # 1) Predefined period wins over everything else
    if getattr(args, "period", None):
        p = args.period
        if p == "fy":
            return period_fy(fy)
        if p == "ytd":
            return period_ytd(fy)
        if p == "mtd":
            return period_mtd(fy)
        if p == "last-month":
            return period_last_month(fy)
        if p == "last-fy":
            return period_last_fy(fy)
        raise ValueError(f"Unknown period: {p!r}")

    # 2) Custom from/to dates
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        start = date.fromisoformat(from_raw) if from_raw else fy.start_date
        end = date.fromisoformat(to_raw) if to_raw else fy.end_date

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({start} → {end})"
        return Period(start=start, end=end, label=label)

    # 3) Default: full fiscal year
    return period_fy(fy)


def filter_by_period(
    records: Iterable[T],
    period: Optional[Period],
    date_of: Callable[[T], date],
) -> list[T]:
    """
    Keep only records whose date falls within the period (inclusive).

    Parameters
    ----------
    records:
        Any iterable of records.
    period:
        Period bounds. None keeps every record.
    date_of:
        Accessor returning the date of a record, e.g.
        ``lambda inv: inv.invoice_date``.
    """
    if period is None:
        return list(records)
    return [r for r in records if period.contains(date_of(r))]
