"""Period generator.

Builds the canonical list of billing cycles of a loan between its start date
and the earlier of its maturity date and the as-of date. Payments are not
considered here; they are spliced in by :mod:`loan_schedule.splicer`.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List

from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import LoanTerms, Period, PeriodPlan, RepaymentMethod, RowKind
from .errors import ValidationError
from .utils import add_billing_cycles, billing_date, range_label, shift_billing_date

logger = logging.getLogger(__name__)


def validate_terms(terms: LoanTerms, limits: EngineLimits = DEFAULT_LIMITS) -> None:
    """Raise :class:`ValidationError` if the loan terms cannot be scheduled."""
    if terms.term_count < 1:
        raise ValidationError(f"Term count must be positive; got {terms.term_count}")
    if terms.term_count > limits.max_terms:
        raise ValidationError(
            f"Term count {terms.term_count} exceeds the limit of {limits.max_terms}"
        )
    k = terms.early_repayment_terms
    if k < 0 or k > terms.term_count:
        raise ValidationError(
            f"Early repayment terms ({k}) out of range; must be between 0 and {terms.term_count}"
        )
    if k == terms.term_count:
        raise ValidationError(
            f"Early repayment terms ({k}) equal the term count; no regular periods would remain"
        )
    if not 1 <= terms.billing_day <= 31:
        raise ValidationError(f"Billing day must be between 1 and 31; got {terms.billing_day}")
    if terms.principal <= 0:
        raise ValidationError("Principal must be positive")
    if terms.nominal_rate < 0 or terms.overdue_rate < 0:
        raise ValidationError("Interest rates must not be negative")
    if terms.maturity_date <= terms.start_date:
        raise ValidationError("Maturity date must be after the start date")
    if terms.as_of_date <= terms.start_date:
        raise ValidationError("As-of date must be after the start date")


def starts_on_billing_day(terms: LoanTerms) -> bool:
    start = terms.start_date
    return start == billing_date(start.year, start.month, terms.billing_day)


def cycle_count(terms: LoanTerms) -> int:
    """Number of billing cycles the loan runs for.

    A loan that does not start on its billing day gets a short stub cycle up
    to the first billing day, on top of ``term_count`` full cycles, unless the
    first period is extended to absorb it.
    """
    if starts_on_billing_day(terms) or terms.extended_first_period:
        return terms.term_count
    return terms.term_count + 1


def _first_boundary(terms: LoanTerms, cycles: int) -> date:
    boundary = add_billing_cycles(terms.start_date, cycles, terms.billing_day)
    if terms.extended_first_period and not starts_on_billing_day(terms):
        boundary = shift_billing_date(boundary, 1, terms.billing_day)
    return boundary


def generate_periods(terms: LoanTerms, limits: EngineLimits = DEFAULT_LIMITS) -> PeriodPlan:
    """Generate the billing cycles of a loan.

    Parameters
    ----------
    terms: LoanTerms
        The loan to schedule.
    limits: EngineLimits
        Input size limits.

    Returns
    -------
    PeriodPlan
        One ``GRACE`` row (interest-only loans with early repayment terms)
        followed by one ``ORIGINAL`` row per cycle. Generation stops at the
        first boundary that reaches the as-of date (the loan is then
        accelerated) or the maturity date.
    """
    validate_terms(terms, limits)
    maturity = terms.maturity_date
    as_of = terms.as_of_date
    day = terms.billing_day
    cycles = cycle_count(terms)

    periods: List[Period] = []
    cursor = terms.start_date
    first_cycle = 1
    accelerated = False

    grace = terms.early_repayment_terms if terms.repayment_method == RepaymentMethod.INTEREST_ONLY else 0
    if grace > 0:
        end = _first_boundary(terms, grace)
        final = False
        if as_of < maturity and end >= as_of:
            end, accelerated, final = as_of, True, True
        elif end >= maturity:
            end, final = maturity, True
        periods.append(
            Period(
                label=range_label(1, grace),
                kind=RowKind.GRACE,
                start_date=cursor,
                end_date=end,
                cycle=grace,
            )
        )
        logger.debug("Grace period %s: %s ~ %s", periods[-1].label, cursor, end)
        cursor = end
        first_cycle = grace + 1
        if final:
            return PeriodPlan(tuple(periods), cursor, accelerated, cycles)

    for cycle in range(first_cycle, cycles + 1):
        if cycle == 1:
            boundary = _first_boundary(terms, 1)
        else:
            boundary = shift_billing_date(cursor, 1, day)
        final = False
        if as_of < maturity and boundary >= as_of:
            boundary, accelerated, final = as_of, True, True
            logger.debug("Cycle %d reaches the as-of date %s", cycle, as_of)
        elif boundary >= maturity:
            boundary, final = maturity, True
            logger.debug("Cycle %d reaches the maturity date %s", cycle, maturity)
        periods.append(
            Period(
                label=str(cycle),
                kind=RowKind.ORIGINAL,
                start_date=cursor,
                end_date=boundary,
                cycle=cycle,
            )
        )
        logger.debug("Cycle %d: %s ~ %s", cycle, cursor, boundary)
        cursor = boundary
        if final:
            break

    return PeriodPlan(tuple(periods), cursor, accelerated, cycles)


