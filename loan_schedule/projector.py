"""Balance and interest projector.

Walks the spliced rows in order and fills every computed field: opening
principal, due principal and interest, the running unpaid balances, compound
interest on unpaid interest and penalty interest on unpaid principal. The
opening row "0" is prepended and, when the loan is accelerated or the as-of
date lies after the last row, the "after last payment" tail row is appended.

Relationships between rows are expressed by position: row ``i`` is computed
from row ``i - 1`` (already computed) and from the rows of its own billing
cycle, never from persisted formulas.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from .data_models import LoanTerms, Period, PeriodPlan, RowKind, SplicedSchedule
from .methods import RepaymentStrategy, RowContext, accrue, strategy_for
from .utils import day_count

logger = logging.getLogger(__name__)

TAIL_LABEL = "after last payment"
OPENING_LABEL = "0"


def needs_tail(plan: PeriodPlan, rows: Tuple[Period, ...], as_of: date) -> bool:
    """Whether the "after last payment" row belongs on the schedule.

    An accelerated loan always gets one: it is where the remaining principal
    falls due. A loan that ran to maturity gets one when the as-of date lies
    after its last row, to carry the overdue interest up to that date.
    """
    if plan.accelerated:
        return True
    last_end = rows[-1].end_date if rows else plan.horizon
    return as_of > last_end


def _terminal_index(rows: List[Period], accelerated: bool) -> Optional[int]:
    if accelerated:
        return None
    for i in range(len(rows) - 1, -1, -1):
        if rows[i].kind.is_billing_cycle:
            return i
    return None


def _accrual_window(row: Period, horizon: date) -> Tuple[date, date]:
    if row.kind.is_sub_period or row.kind == RowKind.TAIL:
        return row.start_date, row.end_date
    return row.start_date, max(horizon, row.start_date)


def _compound_basis(row: Period, previous: Period) -> Decimal:
    if row.kind in (RowKind.POST_MATURITY, RowKind.TAIL):
        return previous.cumulative_unpaid_interest
    if previous.kind == RowKind.INSERTED:
        return previous.current_unpaid_interest - previous.paid_interest
    return previous.due_interest - previous.paid_interest


def project_row(
    row: Period,
    previous: Period,
    segments: Tuple[Tuple[Decimal, int], ...],
    strategy: RepaymentStrategy,
    horizon: date,
    is_terminal: bool,
    is_final_cycle: bool,
) -> Period:
    """Compute one row from its predecessor.

    ``segments`` are the ``(opening_principal, days)`` pairs of the rows of
    this billing cycle that precede ``row``; the row's own segment is added
    here once its opening principal is known.
    """
    terms = strategy.terms
    opening = previous.opening_principal - previous.due_principal
    days = day_count(row.start_date, row.end_date)
    ctx = RowContext(
        row=row,
        previous=previous,
        opening_principal=opening,
        days=days,
        segments=segments + ((opening, days),),
        is_terminal=is_terminal,
        is_final_cycle=is_final_cycle,
    )
    due_principal = strategy.due_principal(ctx)
    due_interest = strategy.due_interest(ctx)
    paid_principal, paid_interest = strategy.settle(row, due_principal, due_interest)

    cumulative_principal = previous.cumulative_unpaid_principal + due_principal - paid_principal
    cumulative_interest = previous.cumulative_unpaid_interest + due_interest - paid_interest

    window_start, window_end = _accrual_window(row, horizon)
    window_days = day_count(window_start, window_end)
    post_maturity = row.kind in (RowKind.POST_MATURITY, RowKind.TAIL)
    compound_rate = terms.overdue_rate if post_maturity else terms.nominal_rate
    compound_basis = _compound_basis(row, previous)
    compound = accrue(compound_basis, compound_rate, window_days)

    penalty_basis = strategy.penalty_basis(replace(ctx, cumulative_unpaid_principal=cumulative_principal))
    penalty = accrue(penalty_basis, terms.overdue_rate, window_days)

    overdue = penalty + compound
    return replace(
        row,
        opening_principal=opening,
        due_days=days,
        due_principal=due_principal,
        due_interest=due_interest,
        paid_principal=paid_principal,
        paid_interest=paid_interest,
        cumulative_unpaid_principal=cumulative_principal,
        cumulative_unpaid_interest=cumulative_interest,
        compound_interest=compound,
        current_unpaid_interest=compound_basis,
        compound_rate=compound_rate,
        compound_start=window_start,
        compound_end=window_end,
        compound_days=window_days,
        penalty_interest=penalty,
        current_unpaid_principal=penalty_basis,
        penalty_rate=terms.overdue_rate,
        penalty_start=window_start,
        penalty_end=window_end,
        penalty_days=window_days,
        overdue_interest=overdue,
        unpaid_overdue_interest=overdue - row.paid_overdue_interest,
    )


def project_balances(terms: LoanTerms, plan: PeriodPlan, spliced: SplicedSchedule) -> Tuple[Period, ...]:
    """Compute the full schedule from the spliced rows.

    Parameters
    ----------
    terms: LoanTerms
        The loan being scheduled.
    plan: PeriodPlan
        The generator's output, for the horizon and the acceleration flag.
    spliced: SplicedSchedule
        The splicer's output.

    Returns
    -------
    Tuple[Period, ...]
        The opening row, every spliced row with its computed fields, and the
        tail row when :func:`needs_tail` says so.
    """
    strategy = strategy_for(terms, plan.cycle_count)
    rows = list(spliced.rows)
    if needs_tail(plan, spliced.rows, terms.as_of_date):
        tail_start = rows[-1].end_date if rows else plan.horizon
        rows.append(Period(label=TAIL_LABEL, kind=RowKind.TAIL, start_date=tail_start, end_date=terms.as_of_date))
    terminal = _terminal_index(rows, plan.accelerated)

    opening = Period(label=OPENING_LABEL, kind=RowKind.OPENING, opening_principal=terms.principal)
    projected: List[Period] = [opening]
    segments: Tuple[Tuple[Decimal, int], ...] = ()
    for i, row in enumerate(rows):
        is_terminal = i == terminal or (terminal is None and row.kind == RowKind.TAIL)
        computed = project_row(
            row,
            projected[-1],
            segments,
            strategy,
            plan.horizon,
            is_terminal=is_terminal,
            is_final_cycle=i == terminal,
        )
        projected.append(computed)
        if row.kind.is_billing_cycle:
            segments = ()
        else:
            segments += ((computed.opening_principal, computed.due_days),)
        logger.debug(
            "Row %s: %s ~ %s principal %s due %s/%s",
            computed.label,
            computed.start_date,
            computed.end_date,
            computed.opening_principal,
            computed.due_principal,
            computed.due_interest,
        )
    return tuple(projected)
