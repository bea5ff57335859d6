"""Overdue-interest injector.

Overdue-interest payments are tracked apart from the balance chain. One that
lands on the end date of an existing row is recorded on that row; any other
becomes a zero-duration marker row placed in date order. Marker rows carry
only the payment, so inserting them leaves every computed value of the
surrounding rows unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Sequence, Tuple

from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import PaymentEvent, Period, RowKind
from .errors import ValidationError
from .splicer import sort_events
from .utils import next_sub_label

logger = logging.getLogger(__name__)


def _scan_bounds(rows: Sequence[Period]) -> Tuple[int, int]:
    """Return the index range ``[first, stop)`` eligible for matching."""
    first = 1 if rows and rows[0].kind == RowKind.OPENING else 0
    stop = len(rows)
    if stop > first and rows[-1].kind == RowKind.TAIL:
        stop -= 1
    return first, stop


def inject_overdue_interest(
    rows: Sequence[Period],
    events: Sequence[PaymentEvent],
    limits: EngineLimits = DEFAULT_LIMITS,
) -> Tuple[Period, ...]:
    """Place overdue-interest payments that the splicer set aside.

    Parameters
    ----------
    rows: Sequence[Period]
        The projected schedule, opening row first.
    events: Sequence[PaymentEvent]
        Overdue-interest payments; they are processed in date order.
    limits: EngineLimits
        ``max_injected_rows`` bounds the number of marker rows.

    Returns
    -------
    Tuple[Period, ...]
        A new tuple of rows. An event dated on a row's end date overwrites
        that row's paid overdue interest; every other event adds an
        ``OVERDUE_INTEREST`` row before the first row ending after it.
    """
    result: List[Period] = list(rows)
    injected = 0
    for event in sort_events(events):
        first, stop = _scan_bounds(result)
        position = None
        for i in range(first, stop):
            row = result[i]
            if row.end_date == event.date:
                result[i] = replace(
                    row,
                    paid_overdue_interest=event.amount,
                    unpaid_overdue_interest=row.overdue_interest - event.amount,
                )
                logger.debug("Recorded overdue interest %s on period %s", event.amount, row.label)
                break
            if row.end_date > event.date:
                position = i
                break
        else:
            position = stop
        if position is None:
            continue

        injected += 1
        if injected > limits.max_injected_rows:
            raise ValidationError(
                f"Too many overdue-interest rows; the limit is {limits.max_injected_rows}"
            )
        label = next_sub_label(result[position - 1].label)
        marker = Period(
            label=label,
            kind=RowKind.OVERDUE_INTEREST,
            start_date=event.date,
            end_date=event.date,
            paid_overdue_interest=event.amount,
            unpaid_overdue_interest=-event.amount,
        )
        result.insert(position, marker)
        logger.debug("Injected overdue-interest row %s on %s", label, event.date)
    return tuple(result)


AFTER_MATURITY_LABEL = "repayment after maturity {}"


def label_after_maturity(rows: Sequence[Period], accelerated: bool) -> Tuple[Period, ...]:
    """Number the rows between the final cycle and the tail.

    Once the loan has run to maturity, the post-maturity repayments and the
    overdue-interest markers that follow the final cycle are labelled
    "repayment after maturity 1", "repayment after maturity 2", and so on.
    """
    if accelerated:
        return tuple(rows)
    last_cycle = max((i for i, row in enumerate(rows) if row.kind.is_billing_cycle), default=None)
    if last_cycle is None:
        return tuple(rows)
    result: List[Period] = list(rows)
    number = 0
    for i in range(last_cycle + 1, len(result)):
        if result[i].kind in (RowKind.POST_MATURITY, RowKind.OVERDUE_INTEREST):
            number += 1
            result[i] = replace(result[i], label=AFTER_MATURITY_LABEL.format(number))
    return tuple(result)
