"""Repayment method strategies.

The three repayment methods share the projector's row walk but differ in what
falls due on each row and in which unpaid principal attracts penalty
interest. Each method is one :class:`RepaymentStrategy` subclass; the
projector asks the strategy for the method-specific figures and computes the
running balances itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple, Type

from .config import DAYS_IN_YEAR, MONTHS_IN_YEAR
from .data_models import ZERO, LoanTerms, Period, RepaymentMethod, RowKind
from .utils import round_money


def calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise ValueError("Term must be positive")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def installment_split(principal: Decimal, rate_per_month: Decimal, term: int, period: int) -> Tuple[Decimal, Decimal]:
    """Split the ``period``-th level payment into principal and interest.

    Equivalent to the spreadsheet pair ``PPMT``/``IPMT`` with a present value
    of ``-principal`` and payments at the end of each month.
    """
    if not 1 <= period <= term:
        raise ValueError(f"Period must be between 1 and {term}; got {period}")
    payment = calculate_annuity_payment(principal, rate_per_month, term)
    if rate_per_month == 0:
        return payment, ZERO
    growth = (1 + rate_per_month) ** (period - 1)
    balance = principal * growth - payment * (growth - 1) / rate_per_month
    interest = balance * rate_per_month
    return payment - interest, interest


def accrue(balance: Decimal, annual_rate: Decimal, days: int) -> Decimal:
    """Simple interest on ``balance`` for ``days`` over a 360-day year."""
    return balance * annual_rate * days / DAYS_IN_YEAR


@dataclass(frozen=True)
class RowContext:
    """What a strategy needs to know about the row being projected.

    ``segments`` holds ``(opening_principal, days)`` for every row of the
    current billing cycle: the sub-periods since the previous cycle row plus
    the row itself. ``cumulative_unpaid_principal`` is the row's own running
    figure and is only meaningful when asking for the penalty basis.
    """

    row: Period
    previous: Period
    opening_principal: Decimal
    days: int
    segments: Tuple[Tuple[Decimal, int], ...]
    is_terminal: bool
    is_final_cycle: bool
    cumulative_unpaid_principal: Decimal = ZERO


class RepaymentStrategy:
    method: RepaymentMethod

    def __init__(self, terms: LoanTerms, cycle_count: int) -> None:
        self.terms = terms
        self.cycle_count = cycle_count

    def amortization_index(self, row: Period) -> Optional[int]:
        """Position of a billing cycle in the amortisation table.

        A loan with a stub cycle has one cycle more than ``term_count``; the
        stub gets index 0 and the last cycle index ``term_count``.
        """
        if row.cycle is None:
            return None
        return row.cycle - (self.cycle_count - self.terms.term_count)

    def cycle_interest(self, segments: Sequence[Tuple[Decimal, int]]) -> Decimal:
        return sum((accrue(opening, self.terms.nominal_rate, days) for opening, days in segments), ZERO)

    def due_principal(self, ctx: RowContext) -> Decimal:
        raise NotImplementedError

    def due_interest(self, ctx: RowContext) -> Decimal:
        raise NotImplementedError

    def settle(self, row: Period, due_principal: Decimal, due_interest: Decimal) -> Tuple[Decimal, Decimal]:
        """Return the paid principal and paid interest recorded on ``row``."""
        return row.paid_principal, row.paid_interest

    def penalty_basis(self, ctx: RowContext) -> Decimal:
        raise NotImplementedError


class InterestOnlyStrategy(RepaymentStrategy):
    """Interest every cycle, the whole principal at the terminal row.

    Principal repaid early falls due when it is paid, so it lowers the
    balance that later interest is computed on without ever being overdue.
    Penalty interest only accrues once the principal is overdue.
    """

    method = RepaymentMethod.INTEREST_ONLY

    def due_principal(self, ctx: RowContext) -> Decimal:
        if ctx.is_terminal or ctx.row.kind == RowKind.TAIL:
            return ctx.opening_principal
        if ctx.row.kind == RowKind.POST_MATURITY:
            return ZERO
        return ctx.row.paid_principal

    def due_interest(self, ctx: RowContext) -> Decimal:
        if ctx.row.kind.is_billing_cycle:
            return self.cycle_interest(ctx.segments)
        if ctx.row.kind == RowKind.TAIL:
            return accrue(ctx.opening_principal, self.terms.nominal_rate, ctx.days)
        return ZERO

    def settle(self, row: Period, due_principal: Decimal, due_interest: Decimal) -> Tuple[Decimal, Decimal]:
        if row.kind == RowKind.GRACE:
            return row.paid_principal, due_interest
        return row.paid_principal, row.paid_interest

    def penalty_basis(self, ctx: RowContext) -> Decimal:
        if ctx.row.kind == RowKind.POST_MATURITY:
            return ctx.previous.cumulative_unpaid_principal
        if ctx.row.kind == RowKind.TAIL:
            return ctx.cumulative_unpaid_principal
        return ZERO


class AmortizingStrategy(RepaymentStrategy):
    """Shared behaviour of the equal-principal and equal-installment methods.

    Principal and interest fall due on every billing cycle. The final cycle of
    a loan that ran to maturity takes whatever principal is left, so rounding
    residue ends up there. Each cycle's unpaid principal attracts penalty
    interest from its due date.
    """

    def scheduled_principal(self, index: int) -> Decimal:
        raise NotImplementedError

    def scheduled_interest(self, index: int, ctx: RowContext) -> Decimal:
        return round_money(self.cycle_interest(ctx.segments))

    def due_principal(self, ctx: RowContext) -> Decimal:
        row = ctx.row
        if row.kind == RowKind.TAIL:
            return ctx.opening_principal
        if not row.kind.is_billing_cycle:
            return ZERO
        if ctx.is_final_cycle:
            return ctx.opening_principal
        index = self.amortization_index(row)
        if index is None or index < 1:
            return ZERO
        return self.scheduled_principal(index)

    def due_interest(self, ctx: RowContext) -> Decimal:
        row = ctx.row
        if row.kind == RowKind.TAIL:
            return accrue(ctx.opening_principal, self.terms.nominal_rate, ctx.days)
        if not row.kind.is_billing_cycle:
            return ZERO
        index = self.amortization_index(row)
        if index is None or not 1 <= index <= self.terms.term_count:
            return round_money(self.cycle_interest(ctx.segments))
        return self.scheduled_interest(index, ctx)

    def settle(self, row: Period, due_principal: Decimal, due_interest: Decimal) -> Tuple[Decimal, Decimal]:
        if row.kind.is_billing_cycle and row.cycle is not None and row.cycle <= self.terms.early_repayment_terms:
            return due_principal, due_interest
        return row.paid_principal, row.paid_interest

    def penalty_basis(self, ctx: RowContext) -> Decimal:
        row, previous = ctx.row, ctx.previous
        if row.kind == RowKind.POST_MATURITY:
            return previous.cumulative_unpaid_principal
        if row.kind == RowKind.TAIL:
            return ctx.cumulative_unpaid_principal
        if previous.kind == RowKind.INSERTED:
            return previous.current_unpaid_principal - previous.paid_principal
        return previous.due_principal - previous.paid_principal


class EqualPrincipalStrategy(AmortizingStrategy):
    method = RepaymentMethod.EQUAL_PRINCIPAL

    def scheduled_principal(self, index: int) -> Decimal:
        return round_money(self.terms.principal / Decimal(self.terms.term_count))


class EqualInstallmentStrategy(AmortizingStrategy):
    method = RepaymentMethod.EQUAL_INSTALLMENT

    @property
    def rate_per_month(self) -> Decimal:
        return self.terms.nominal_rate / Decimal(MONTHS_IN_YEAR)

    def scheduled_principal(self, index: int) -> Decimal:
        principal_part, _ = installment_split(self.terms.principal, self.rate_per_month, self.terms.term_count, index)
        return round_money(principal_part)

    def scheduled_interest(self, index: int, ctx: RowContext) -> Decimal:
        _, interest_part = installment_split(self.terms.principal, self.rate_per_month, self.terms.term_count, index)
        return round_money(interest_part)


_STRATEGIES: Dict[RepaymentMethod, Type[RepaymentStrategy]] = {
    RepaymentMethod.INTEREST_ONLY: InterestOnlyStrategy,
    RepaymentMethod.EQUAL_PRINCIPAL: EqualPrincipalStrategy,
    RepaymentMethod.EQUAL_INSTALLMENT: EqualInstallmentStrategy,
}


def strategy_for(terms: LoanTerms, cycle_count: int) -> RepaymentStrategy:
    return _STRATEGIES[terms.repayment_method](terms, cycle_count)
