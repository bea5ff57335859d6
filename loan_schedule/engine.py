"""Core calculation engine for the loan schedule.

This module wires the pipeline stages together: the period generator, the
payment splicer, the balance projector and the overdue-interest injector.
It also aggregates the finished rows into the totals row and the payoff
figures. Results are returned as a :class:`Schedule`.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Sequence

from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import ZERO, LoanTerms, Payoff, PaymentEvent, Period, RowKind, Schedule, ScheduleTotals
from .injector import inject_overdue_interest, label_after_maturity
from .periods import generate_periods
from .projector import project_balances
from .splicer import sort_events, splice_payments

logger = logging.getLogger(__name__)


def _column(periods: Iterable[Period], name: str) -> Decimal:
    return sum((getattr(p, name) for p in periods), ZERO)


def _last_balance_row(periods: Sequence[Period]) -> Period:
    for period in reversed(periods):
        if period.kind != RowKind.OVERDUE_INTEREST:
            return period
    return periods[-1]


def compute_totals(periods: Sequence[Period]) -> ScheduleTotals:
    """Sum the schedule columns into the totals row.

    Paid overdue interest is applied against compound interest first; only
    the part exceeding it reduces the penalty total.
    """
    compound = _column(periods, "compound_interest")
    penalty = _column(periods, "penalty_interest")
    paid_overdue = _column(periods, "paid_overdue_interest")
    if compound >= paid_overdue:
        compound_total = compound - paid_overdue
        penalty_total = penalty
    else:
        compound_total = ZERO
        penalty_total = penalty - paid_overdue + compound
    last = _last_balance_row(periods)
    return ScheduleTotals(
        due_interest=_column(periods, "due_interest"),
        paid_principal=_column(periods, "paid_principal"),
        paid_interest=_column(periods, "paid_interest"),
        compound_interest=compound_total,
        penalty_interest=penalty_total,
        overdue_interest=_column(periods, "overdue_interest"),
        paid_overdue_interest=paid_overdue,
        unpaid_overdue_interest=_column(periods, "unpaid_overdue_interest"),
        arrears_principal=last.cumulative_unpaid_principal,
        arrears_interest=last.cumulative_unpaid_interest,
    )


def compute_payoff(totals: ScheduleTotals) -> Payoff:
    """Amount needed to settle the loan as of the as-of date."""
    principal_and_interest = totals.arrears_principal + totals.arrears_interest
    return Payoff(
        arrears_principal=totals.arrears_principal,
        arrears_interest=totals.arrears_interest,
        compound_interest=totals.compound_interest,
        penalty_interest=totals.penalty_interest,
        total=principal_and_interest + totals.compound_interest + totals.penalty_interest,
        principal_and_interest=principal_and_interest,
        unpaid_overdue_interest=totals.unpaid_overdue_interest,
    )


def compute_schedule(
    terms: LoanTerms,
    events: Sequence[PaymentEvent] = (),
    limits: EngineLimits = DEFAULT_LIMITS,
) -> Schedule:
    """Compute the repayment schedule of a loan.

    Parameters
    ----------
    terms: LoanTerms
        The loan. Validation errors are raised before any work is done.
    events: Sequence[PaymentEvent]
        Payments in any order; they are sorted by date, keeping the input
        order of payments on the same date.
    limits: EngineLimits
        Input size limits.

    Returns
    -------
    Schedule
        The rows (opening row first), the totals row and the payoff figures.
        Payments dated after the as-of date are listed in
        ``skipped_events``.

    Raises
    ------
    ValidationError
        If the terms are out of range, a payment predates the loan or a limit
        is exceeded.
    DataConsistencyError
        If a payment cannot be placed on the schedule.
    """
    plan = generate_periods(terms, limits)
    spliced = splice_payments(plan, sort_events(events), terms.as_of_date, limits)
    projected = project_balances(terms, plan, spliced)
    periods = inject_overdue_interest(projected, spliced.pending_overdue, limits)
    periods = label_after_maturity(periods, plan.accelerated)
    totals = compute_totals(periods)
    payoff = compute_payoff(totals)
    logger.debug(
        "Computed %d rows for %s loan of %s (accelerated=%s)",
        len(periods),
        terms.repayment_method.value,
        terms.principal,
        plan.accelerated,
    )
    return Schedule(
        terms=terms,
        periods=periods,
        totals=totals,
        payoff=payoff,
        accelerated=plan.accelerated,
        skipped_events=spliced.skipped,
    )
