"""Data models for the loan schedule engine.

This module defines the dataclasses that flow through the calculation
pipeline: the loan terms and payment events supplied by the caller, the
schedule rows produced by each stage, and the totals and payoff aggregates
handed to the presentation layer. All of them are frozen; a stage that needs
to change a row builds a new one with :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

ZERO = Decimal("0")


class RepaymentMethod(str, Enum):
    """How the principal and interest of a loan fall due."""

    INTEREST_ONLY = "interest_only"  # interest each cycle, principal at maturity
    EQUAL_PRINCIPAL = "equal_principal"
    EQUAL_INSTALLMENT = "equal_installment"


class PaymentKind(str, Enum):
    PRINCIPAL = "principal"
    INTEREST = "interest"
    OVERDUE_INTEREST = "overdue_interest"


class RowKind(str, Enum):
    """Where a schedule row came from.

    ``ORIGINAL`` and ``GRACE`` rows are billing cycles produced by the period
    generator. ``INSERTED`` and ``POST_MATURITY`` rows are sub-periods created
    by the payment splicer. ``OVERDUE_INTEREST`` rows are zero-duration
    markers added by the injector and ``TAIL`` is the "after last payment" row
    appended by the projector.
    """

    OPENING = "opening"
    GRACE = "grace"
    ORIGINAL = "original"
    INSERTED = "inserted"
    POST_MATURITY = "post_maturity"
    OVERDUE_INTEREST = "overdue_interest"
    TAIL = "tail"

    @property
    def is_billing_cycle(self) -> bool:
        return self in (RowKind.GRACE, RowKind.ORIGINAL)

    @property
    def is_sub_period(self) -> bool:
        return self in (RowKind.INSERTED, RowKind.POST_MATURITY)


@dataclass(frozen=True)
class LoanTerms:
    """The terms of one loan.

    Attributes
    ----------
    principal: Decimal
        The amount lent.
    nominal_rate: Decimal
        Annual contractual interest rate as a fraction (``0.12`` for 12 %).
    overdue_rate: Decimal
        Annual rate charged on overdue principal and, after maturity, on
        overdue interest.
    term_count: int
        Number of billing cycles of the loan.
    start_date / maturity_date: date
        Value date and contractual maturity.
    billing_day: int
        Day of month on which a cycle ends (clamped to short months).
    repayment_method: RepaymentMethod
        Interest-only, equal principal or equal installment.
    early_repayment_terms: int
        Number of initial cycles settled up front. For interest-only loans
        they collapse into a single grace period; for amortising loans they
        are marked as paid on schedule.
    as_of_date: date
        The date up to which the schedule is computed.
    extended_first_period: bool
        When the loan does not start on its billing day, let the first cycle
        run to the billing day of the following month instead of the next
        billing day.
    """

    principal: Decimal
    nominal_rate: Decimal
    overdue_rate: Decimal
    term_count: int
    start_date: date
    maturity_date: date
    billing_day: int
    repayment_method: RepaymentMethod
    as_of_date: date
    early_repayment_terms: int = 0
    extended_first_period: bool = False


@dataclass(frozen=True)
class PaymentEvent:
    """A dated repayment against principal, interest or overdue interest."""

    date: date
    amount: Decimal
    kind: PaymentKind


@dataclass(frozen=True)
class Period:
    """One row of the schedule.

    The generator and splicer only fill the identity, the dates and the paid
    amounts; the projector fills every computed field. Money fields default
    to zero so that rows outside the balance chain (the opening row and
    injected overdue-interest rows) stay well defined.
    """

    label: str
    kind: RowKind
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    cycle: Optional[int] = None
    opening_principal: Decimal = ZERO
    due_days: int = 0
    due_principal: Decimal = ZERO
    due_interest: Decimal = ZERO
    paid_principal: Decimal = ZERO
    paid_interest: Decimal = ZERO
    cumulative_unpaid_principal: Decimal = ZERO
    cumulative_unpaid_interest: Decimal = ZERO
    compound_interest: Decimal = ZERO
    current_unpaid_interest: Decimal = ZERO
    compound_rate: Decimal = ZERO
    compound_start: Optional[date] = None
    compound_end: Optional[date] = None
    compound_days: int = 0
    penalty_interest: Decimal = ZERO
    current_unpaid_principal: Decimal = ZERO
    penalty_rate: Decimal = ZERO
    penalty_start: Optional[date] = None
    penalty_end: Optional[date] = None
    penalty_days: int = 0
    overdue_interest: Decimal = ZERO
    paid_overdue_interest: Decimal = ZERO
    unpaid_overdue_interest: Decimal = ZERO


@dataclass(frozen=True)
class PeriodPlan:
    """Output of the period generator.

    ``horizon`` is the end of the last generated cycle, i.e. the earlier of
    the maturity date and the as-of date. ``accelerated`` is True when the
    as-of date cut the schedule short before maturity.
    """

    periods: Tuple[Period, ...]
    horizon: date
    accelerated: bool
    cycle_count: int


@dataclass(frozen=True)
class SplicedSchedule:
    """Output of the payment splicer: rows plus unplaced overdue payments."""

    rows: Tuple[Period, ...]
    pending_overdue: Tuple[PaymentEvent, ...] = ()
    skipped: Tuple[PaymentEvent, ...] = ()


@dataclass(frozen=True)
class ScheduleTotals:
    """Column sums over the whole schedule (the totals row)."""

    due_interest: Decimal = ZERO
    paid_principal: Decimal = ZERO
    paid_interest: Decimal = ZERO
    compound_interest: Decimal = ZERO
    penalty_interest: Decimal = ZERO
    overdue_interest: Decimal = ZERO
    paid_overdue_interest: Decimal = ZERO
    unpaid_overdue_interest: Decimal = ZERO
    arrears_principal: Decimal = ZERO
    arrears_interest: Decimal = ZERO


@dataclass(frozen=True)
class Payoff:
    """Amounts needed to settle the loan as of the as-of date."""

    arrears_principal: Decimal
    arrears_interest: Decimal
    compound_interest: Decimal
    penalty_interest: Decimal
    total: Decimal
    principal_and_interest: Decimal
    unpaid_overdue_interest: Decimal


@dataclass(frozen=True)
class Schedule:
    terms: LoanTerms
    periods: Tuple[Period, ...]
    totals: ScheduleTotals
    payoff: Payoff
    accelerated: bool = False
    skipped_events: Tuple[PaymentEvent, ...] = ()
