"""Batch computation over several loans.

A batch is a list of loan groups, typically every loan of one borrower as of
the same date. Each group is computed independently; a group whose data is
invalid is reported with its position and name while the others still
produce schedules. Successful groups are summarised into one row per loan,
batch totals, a grand total and the claim bases grouped by overdue rate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import ZERO, LoanTerms, PaymentEvent, RepaymentMethod, Schedule
from .engine import compute_schedule
from .errors import LoanScheduleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoanGroup:
    """One loan of a batch with its payment history."""

    name: Optional[str]
    terms: LoanTerms
    events: Tuple[PaymentEvent, ...] = ()


@dataclass(frozen=True)
class GroupResult:
    index: int
    name: Optional[str]
    schedule: Schedule


@dataclass(frozen=True)
class GroupFailure:
    index: int
    name: Optional[str]
    message: str


@dataclass(frozen=True)
class LoanSummary:
    """Summary row of one loan.

    ``matured`` is False for a loan accelerated at the as-of date and True
    for a loan that ran to its contractual maturity.
    """

    index: int
    name: Optional[str]
    start_date: date
    maturity_date: date
    matured: bool
    term_count: int
    repayment_method: RepaymentMethod
    principal: Decimal
    nominal_rate: Decimal
    overdue_rate: Decimal
    paid_principal: Decimal
    due_interest: Decimal
    paid_interest: Decimal
    paid_overdue_interest: Decimal
    unpaid_principal: Decimal
    unpaid_interest: Decimal
    compound_interest: Decimal
    penalty_interest: Decimal
    unpaid_overdue_interest: Decimal


@dataclass
class BatchTotals:
    principal: Decimal = ZERO
    paid_principal: Decimal = ZERO
    due_interest: Decimal = ZERO
    paid_interest: Decimal = ZERO
    paid_overdue_interest: Decimal = ZERO
    unpaid_principal: Decimal = ZERO
    unpaid_interest: Decimal = ZERO
    compound_interest: Decimal = ZERO
    penalty_interest: Decimal = ZERO
    unpaid_overdue_interest: Decimal = ZERO

    @property
    def grand_total(self) -> Decimal:
        """Everything still owed: principal, interest and overdue interest."""
        return self.unpaid_principal + self.unpaid_interest + self.unpaid_overdue_interest

    def add(self, row: LoanSummary) -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(row, f.name))


@dataclass
class BatchReport:
    results: List[GroupResult] = field(default_factory=list)
    failures: List[GroupFailure] = field(default_factory=list)
    summaries: List[LoanSummary] = field(default_factory=list)
    totals: BatchTotals = field(default_factory=BatchTotals)
    rate_bases: Dict[Decimal, Decimal] = field(default_factory=dict)

    @property
    def grand_total(self) -> Decimal:
        return self.totals.grand_total

    @property
    def ok(self) -> bool:
        return not self.failures


def summarize(index: int, name: Optional[str], schedule: Schedule) -> LoanSummary:
    """Build the summary row of one computed loan."""
    terms, totals = schedule.terms, schedule.totals
    return LoanSummary(
        index=index,
        name=name,
        start_date=terms.start_date,
        maturity_date=terms.maturity_date,
        matured=not schedule.accelerated,
        term_count=terms.term_count,
        repayment_method=terms.repayment_method,
        principal=terms.principal,
        nominal_rate=terms.nominal_rate,
        overdue_rate=terms.overdue_rate,
        paid_principal=totals.paid_principal,
        due_interest=totals.due_interest,
        paid_interest=totals.paid_interest,
        paid_overdue_interest=totals.paid_overdue_interest,
        unpaid_principal=totals.arrears_principal,
        unpaid_interest=totals.arrears_interest,
        compound_interest=totals.compound_interest,
        penalty_interest=totals.penalty_interest,
        unpaid_overdue_interest=totals.unpaid_overdue_interest,
    )


def compute_batch(groups: Sequence[LoanGroup], limits: EngineLimits = DEFAULT_LIMITS) -> BatchReport:
    """Compute every loan group of a batch.

    Parameters
    ----------
    groups: Sequence[LoanGroup]
        The loans to compute, in presentation order.
    limits: EngineLimits
        Input size limits applied to each group.

    Returns
    -------
    BatchReport
        Schedules and summary rows for the groups that computed, and a
        failure entry (zero-based index, name, message) for each group that
        raised a :class:`LoanScheduleError`.
    """
    report = BatchReport()
    for index, group in enumerate(groups):
        try:
            schedule = compute_schedule(group.terms, group.events, limits)
        except LoanScheduleError as exc:
            exc.for_group(index, group.name)
            logger.error("Failed to compute %s", exc)
            report.failures.append(GroupFailure(index=index, name=group.name, message=exc.message))
            continue
        report.results.append(GroupResult(index=index, name=group.name, schedule=schedule))
        row = summarize(index, group.name, schedule)
        report.summaries.append(row)
        report.totals.add(row)
        basis = row.unpaid_principal + row.unpaid_interest
        report.rate_bases[row.overdue_rate] = report.rate_bases.get(row.overdue_rate, ZERO) + basis
    return report
