"""Output helpers for the loan schedule.

This module provides simple functions to render schedules, payoff figures
and batch summaries in a tabular text format using built-in printing and
string formatting.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from .batch import BatchReport
from .data_models import Period, RowKind, Schedule


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


def _date(value) -> str:
    return value.isoformat() if value is not None else ""


def print_summary(schedule: Schedule) -> None:
    """Print the payoff figures of a schedule in a human-readable format."""
    terms, totals, payoff = schedule.terms, schedule.totals, schedule.payoff
    print("Summary")
    print("-" * 72)
    print(f"Principal            : {_money(terms.principal)}")
    print(f"Repayment method     : {terms.repayment_method.value}")
    print(f"Term                 : {terms.term_count} cycles, billing day {terms.billing_day}")
    print(f"Start / maturity     : {terms.start_date} ~ {terms.maturity_date}")
    print(f"As of                : {terms.as_of_date}")
    print(f"Status               : {'accelerated' if schedule.accelerated else 'ran to maturity'}")
    print(f"Due interest         : {_money(totals.due_interest)}")
    print(f"Paid principal       : {_money(totals.paid_principal)}")
    print(f"Paid interest        : {_money(totals.paid_interest)}")
    print(f"Paid overdue interest: {_money(totals.paid_overdue_interest)}")
    print("-" * 72)
    print(f"Unpaid principal     : {_money(payoff.arrears_principal)}")
    print(f"Unpaid interest      : {_money(payoff.arrears_interest)}")
    print(f"Compound interest    : {_money(payoff.compound_interest)}")
    print(f"Penalty interest     : {_money(payoff.penalty_interest)}")
    print(f"Principal + interest : {_money(payoff.principal_and_interest)}")
    print(f"Total to settle      : {_money(payoff.total)}")
    if schedule.skipped_events:
        print(f"Ignored payments     : {len(schedule.skipped_events)} dated after the as-of date")
    print("-" * 72)


def print_schedule(periods: Iterable[Period], limit: Optional[int] = None) -> None:
    """Print schedule rows as a simple table.

    Parameters
    ----------
    periods: Iterable[Period]
        The rows to print, opening row first.
    limit: Optional[int]
        Print at most this many rows.
    """
    headers = [
        "Period",
        "Start",
        "End",
        "Days",
        "Opening",
        "DuePrin",
        "DueInt",
        "PaidPrin",
        "PaidInt",
        "Compound",
        "Penalty",
        "PaidOvd",
        "UnpaidOvd",
    ]
    print("\t".join(headers))
    for i, row in enumerate(periods):
        if limit is not None and i >= limit:
            break
        if row.kind == RowKind.OPENING:
            cells = [row.label, "", "", "", _money(row.opening_principal)] + [""] * 8
        else:
            cells = [
                row.label,
                _date(row.start_date),
                _date(row.end_date),
                str(row.due_days),
                _money(row.opening_principal),
                _money(row.due_principal),
                _money(row.due_interest),
                _money(row.paid_principal),
                _money(row.paid_interest),
                _money(row.compound_interest),
                _money(row.penalty_interest),
                _money(row.paid_overdue_interest),
                _money(row.unpaid_overdue_interest),
            ]
        print("\t".join(cells))


def print_batch(report: BatchReport) -> None:
    """Print one summary line per loan, the batch totals and any failures."""
    print("Batch summary")
    print("=" * 72)
    print(
        f"{'#':>3s} {'Loan':16s} {'Status':12s} {'Unpaid P':>14s} {'Unpaid I':>12s} "
        f"{'Compound':>12s} {'Penalty':>12s}"
    )
    for row in report.summaries:
        status = "matured" if row.matured else "accelerated"
        print(
            f"{row.index + 1:3d} {str(row.name or '')[:16]:16s} {status:12s} "
            f"{_money(row.unpaid_principal):>14s} {_money(row.unpaid_interest):>12s} "
            f"{_money(row.compound_interest):>12s} {_money(row.penalty_interest):>12s}"
        )
    print("=" * 72)
    totals = report.totals
    print(f"Unpaid principal        : {_money(totals.unpaid_principal)}")
    print(f"Unpaid interest         : {_money(totals.unpaid_interest)}")
    print(f"Unpaid overdue interest : {_money(totals.unpaid_overdue_interest)}")
    print(f"Grand total             : {_money(report.grand_total)}")
    for rate, basis in sorted(report.rate_bases.items()):
        print(f"Basis at {float(rate) * 100:.2f}% overdue   : {_money(basis)}")
    for failure in report.failures:
        label = f"loan group {failure.index + 1}"
        if failure.name:
            label += f" ({failure.name})"
        print(f"FAILED {label}: {failure.message}")
