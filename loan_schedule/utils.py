"""Utility functions for the loan schedule engine.

This module provides the date arithmetic the period generator is built on
(billing-day stepping and calendar day counts), helpers for parsing user input
into Python data types, and the label helpers shared by the splicer and the
overdue-interest injector.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Union

from .config import MONEY_PLACES
from .data_models import PaymentKind, RepaymentMethod
from .errors import DataConsistencyError, ValidationError

_DATE_PATTERN = re.compile(r"^\s*(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})\s*$")

_METHOD_ALIASES = {
    "先息后本": RepaymentMethod.INTEREST_ONLY,
    "等额本金": RepaymentMethod.EQUAL_PRINCIPAL,
    "等额本息": RepaymentMethod.EQUAL_INSTALLMENT,
}

_KIND_ALIASES = {
    "本金": PaymentKind.PRINCIPAL,
    "利息": PaymentKind.INTEREST,
    "逾期利息": PaymentKind.OVERDUE_INTEREST,
}


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse ``YYYY-MM-DD`` (``/`` and ``.`` separators also accepted).

    ``date`` and ``datetime`` instances are returned as dates unchanged.

    Raises
    ------
    ValidationError
        If the value is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    match = _DATE_PATTERN.match(str(value))
    if not match:
        raise ValidationError(f"Invalid date: {value!r}")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def billing_date(year: int, month: int, billing_day: int) -> date:
    """Return the billing day of a month, clamped to the month's last day."""
    return date(year, month, min(billing_day, calendar.monthrange(year, month)[1]))


def next_billing_date(dt: date, billing_day: int) -> date:
    """Return the first billing date strictly after ``dt``.

    When the billing date of ``dt``'s own month is not after ``dt`` (the day
    is already past the billing day, or equal to it) the next cycle ends in
    the following month.
    """
    candidate = billing_date(dt.year, dt.month, billing_day)
    if candidate > dt:
        return candidate
    following = add_months(date(dt.year, dt.month, 1), 1)
    return billing_date(following.year, following.month, billing_day)


def add_billing_cycles(dt: date, cycles: int, billing_day: int) -> date:
    """Return the end of the ``cycles``-th billing cycle starting at ``dt``.

    The first cycle ends on the next billing date after ``dt``; each further
    cycle adds one month. The result always falls on the (clamped) billing
    day, so stepping from Jan 31 with billing day 31 gives Feb 28/29 and then
    Mar 31 rather than drifting to the 28th.
    """
    if cycles < 1:
        raise ValueError("cycles must be at least 1")
    first = next_billing_date(dt, billing_day)
    return shift_billing_date(first, cycles - 1, billing_day)


def shift_billing_date(dt: date, months: int, billing_day: int) -> date:
    """Move a billing date by whole months, keeping the billing day."""
    target = add_months(date(dt.year, dt.month, 1), months)
    return billing_date(target.year, target.month, billing_day)


def day_count(start: date, end: date) -> int:
    """Calendar days from ``start`` to ``end`` (no 30/360 adjustment)."""
    return (end - start).days


def decimal_from_str(value: Any) -> Decimal:
    """Convert a numeric value or string into a ``Decimal``.

    Strings may contain thousands separators. Floats go through ``str`` so
    that ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.

    Raises
    ------
    ValidationError
        If conversion fails.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Invalid numeric value: {value!r}")
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid numeric value: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"Invalid numeric value: {value!r}")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round half-up to cents, like a spreadsheet ``ROUND(x, 2)``."""
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def parse_repayment_method(value: Union[str, RepaymentMethod]) -> RepaymentMethod:
    """Parse a repayment method from its value, name or spreadsheet tag."""
    if isinstance(value, RepaymentMethod):
        return value
    text = str(value or "").strip()
    for tag, method in _METHOD_ALIASES.items():
        if tag in text:
            return method
    normalized = text.lower().replace("-", "_").replace(" ", "_")
    for method in RepaymentMethod:
        if normalized == method.value:
            return method
    raise ValidationError(
        "Repayment method must be one of "
        f"{', '.join(m.value for m in RepaymentMethod)}; got {value!r}"
    )


def parse_payment_kind(value: Union[str, PaymentKind]) -> PaymentKind:
    """Parse a payment kind from its value, name or spreadsheet tag."""
    if isinstance(value, PaymentKind):
        return value
    text = str(value or "").strip()
    if text in _KIND_ALIASES:
        return _KIND_ALIASES[text]
    normalized = text.lower().replace("-", "_").replace(" ", "_")
    for kind in PaymentKind:
        if normalized == kind.value:
            return kind
    raise DataConsistencyError(f"Unknown payment kind: {value!r}")


def range_label(first: int, last: int) -> str:
    return str(first) if first == last else f"{first}-{last}"


def sub_period_label(base: Union[int, str], index: int) -> str:
    return f"{base}({index})"


def next_sub_label(previous: str) -> str:
    """Return the label of a row inserted directly after ``previous``.

    ``"9"`` becomes ``"9(1)"``, ``"9(2)"`` becomes ``"9(3)"`` and a range
    ``"1-7"`` becomes ``"7(1)"``. Any other label gets ``"(1)"`` appended.
    """
    text = str(previous).strip()
    match = re.match(r"^(\d+)\((\d+)\)$", text)
    if match:
        return f"{match.group(1)}({int(match.group(2)) + 1})"
    if re.match(r"^\d+$", text):
        return f"{text}(1)"
    match = re.match(r"^(\d+)-(\d+)$", text)
    if match:
        return f"{match.group(2)}(1)"
    return f"{text}(1)"


def parse_rate(value: Any) -> Decimal:
    """Parse an annual rate given as a fraction (``0.12``) or percent (``"12%"``)."""
    text = str(value).strip()
    if text.endswith("%"):
        return decimal_from_str(text[:-1]) / Decimal(100)
    return decimal_from_str(value)
