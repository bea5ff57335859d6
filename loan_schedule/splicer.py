"""Payment splicer.

Merges a chronologically sorted list of payment events into the billing
cycles produced by :mod:`loan_schedule.periods`. A payment that falls on a
cycle boundary is recorded on that cycle's row; a payment that falls inside a
cycle splits it, creating a sub-period row that ends on the payment date.
Overdue-interest payments never split a cycle: when they do not land on an
existing boundary they are returned on a side list for the injector.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import List, Optional, Sequence

from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import PaymentEvent, PaymentKind, Period, PeriodPlan, RowKind, SplicedSchedule
from .errors import DataConsistencyError, ValidationError
from .utils import sub_period_label

logger = logging.getLogger(__name__)


def apply_payment(row: Period, event: PaymentEvent) -> Period:
    """Record ``event`` on ``row``.

    The paid field is overwritten, so a second payment of the same kind on the
    same date replaces the first one.
    """
    if event.kind == PaymentKind.PRINCIPAL:
        return replace(row, paid_principal=event.amount)
    if event.kind == PaymentKind.INTEREST:
        return replace(row, paid_interest=event.amount)
    if event.kind == PaymentKind.OVERDUE_INTEREST:
        return replace(row, paid_overdue_interest=event.amount)
    raise DataConsistencyError(f"Unknown payment kind: {event.kind!r}")


def sort_events(events: Sequence[PaymentEvent]) -> List[PaymentEvent]:
    """Sort events by date; events on the same date keep their input order."""
    return sorted(events, key=lambda e: e.date)


class _Splicer:
    def __init__(self, events: Sequence[PaymentEvent], as_of: date, limits: EngineLimits) -> None:
        self.events = list(events)
        self.index = 0
        self.as_of = as_of
        self.limits = limits
        self.rows: List[Period] = []
        self.pending: List[PaymentEvent] = []

    def peek(self) -> Optional[PaymentEvent]:
        if self.index < len(self.events):
            return self.events[self.index]
        return None

    def emit(self, row: Period) -> None:
        if len(self.rows) >= self.limits.max_rows:
            raise ValidationError(f"Schedule exceeds the limit of {self.limits.max_rows} rows")
        self.rows.append(row)

    def update_last(self, event: PaymentEvent) -> None:
        if not self.rows:
            raise DataConsistencyError(
                f"Cannot record the {event.kind.value} payment of {event.date}: no period ends on that date"
            )
        self.rows[-1] = apply_payment(self.rows[-1], event)
        logger.debug("Recorded %s %s on period %s", event.kind.value, event.amount, self.rows[-1].label)

    def split(self, event: PaymentEvent, label: str, kind: RowKind, fallback_start: date) -> None:
        start = self.rows[-1].end_date if self.rows else fallback_start
        row = apply_payment(Period(label=label, kind=kind, start_date=start, end_date=event.date), event)
        self.emit(row)
        logger.debug("Inserted sub-period %s: %s ~ %s", label, start, event.date)

    def fold_into_grace(self, grace: Period) -> Period:
        """Fold payments made during the grace period into the grace row."""
        while True:
            event = self.peek()
            if event is None or event.date > grace.end_date:
                return grace
            self.index += 1
            if event.kind == PaymentKind.PRINCIPAL:
                grace = replace(grace, paid_principal=grace.paid_principal + event.amount)
            elif event.kind == PaymentKind.OVERDUE_INTEREST:
                self.pending.append(event)
            else:
                logger.debug("Interest payment of %s is covered by the grace settlement", event.date)

    def pre_periods(self, period: Period) -> None:
        """Split off payments dated before the end of the first regular cycle."""
        sub_index = 1
        while True:
            event = self.peek()
            if event is None or event.date >= period.end_date:
                return
            self.index += 1
            if event.kind == PaymentKind.OVERDUE_INTEREST:
                self.pending.append(event)
                continue
            last_end = self.rows[-1].end_date if self.rows else period.start_date
            if event.date == last_end:
                # raises when nothing has been emitted yet
                self.update_last(event)
                continue
            label = sub_period_label((period.cycle or 1) - 1, sub_index)
            self.split(event, label, RowKind.INSERTED, period.start_date)
            sub_index += 1

    def absorb(self, period: Period, next_end: Optional[date]) -> None:
        """Place the payments that follow ``period``.

        ``next_end`` is the end of the following cycle, or None when
        ``period`` is the last one; payments after the last cycle become
        post-maturity sub-periods up to the as-of date.
        """
        sub_index = 1
        while True:
            event = self.peek()
            if event is None:
                return
            if event.date == self.rows[-1].end_date:
                self.index += 1
                self.update_last(event)
                continue
            if next_end is not None:
                if event.date >= next_end:
                    return
                kind = RowKind.INSERTED
            else:
                if event.date > self.as_of:
                    return
                kind = RowKind.POST_MATURITY
            self.index += 1
            if event.kind == PaymentKind.OVERDUE_INTEREST:
                self.pending.append(event)
                continue
            self.split(event, sub_period_label(period.label, sub_index), kind, period.end_date)
            sub_index += 1


def splice_payments(
    plan: PeriodPlan,
    events: Sequence[PaymentEvent],
    as_of: date,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> SplicedSchedule:
    """Merge payment events into the generated cycles.

    Parameters
    ----------
    plan: PeriodPlan
        Output of :func:`loan_schedule.periods.generate_periods`.
    events: Sequence[PaymentEvent]
        Payments sorted ascending by date (ties in input order).
    as_of: date
        Payments after this date are left out of the schedule and returned
        in ``SplicedSchedule.skipped``.

    Raises
    ------
    ValidationError
        If a payment is dated before the first period or a limit is exceeded.
    DataConsistencyError
        If a payment dated on the loan start date has no row to land on.
    """
    if len(events) > limits.max_events:
        raise ValidationError(f"Too many payment events ({len(events)}); the limit is {limits.max_events}")
    periods = list(plan.periods)
    if not periods:
        return SplicedSchedule(rows=(), pending_overdue=(), skipped=tuple(events))
    first_start = periods[0].start_date
    for event in events:
        if event.date < first_start:
            raise ValidationError(f"Payment dated {event.date} is before the loan start date {first_start}")

    splicer = _Splicer(events, as_of, limits)

    if periods[0].kind == RowKind.GRACE:
        grace = splicer.fold_into_grace(periods.pop(0))
        splicer.emit(grace)
        if not periods:
            splicer.absorb(grace, None)

    for i, period in enumerate(periods):
        if i == 0:
            splicer.pre_periods(period)
        start = splicer.rows[-1].end_date if splicer.rows else period.start_date
        splicer.emit(replace(period, start_date=start))
        next_end = periods[i + 1].end_date if i + 1 < len(periods) else None
        splicer.absorb(period, next_end)

    skipped = tuple(splicer.events[splicer.index:])
    for event in skipped:
        logger.warning("Ignoring %s payment of %s dated after the as-of date %s", event.kind.value, event.amount, as_of)
    return SplicedSchedule(rows=tuple(splicer.rows), pending_overdue=tuple(splicer.pending), skipped=skipped)
