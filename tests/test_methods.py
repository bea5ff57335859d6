"""Tests for the repayment method strategies and level-payment math."""

from decimal import Decimal

import pytest

from loan_schedule.data_models import Period, RepaymentMethod, RowKind
from loan_schedule.methods import (
    EqualInstallmentStrategy,
    EqualPrincipalStrategy,
    InterestOnlyStrategy,
    accrue,
    calculate_annuity_payment,
    installment_split,
    strategy_for,
)


class TestLevelPayment:
    def test_zero_rate(self):
        assert calculate_annuity_payment(Decimal("1200"), Decimal("0"), 12) == Decimal("100")
        assert installment_split(Decimal("1200"), Decimal("0"), 12, 5) == (Decimal("100"), Decimal("0"))

    def test_known_payment(self):
        payment = calculate_annuity_payment(Decimal("100000"), Decimal("0.01"), 12)
        assert payment.quantize(Decimal("0.01")) == Decimal("8884.88")

    def test_split_adds_up_to_payment(self):
        principal, rate, term = Decimal("100000"), Decimal("0.01"), 12
        payment = calculate_annuity_payment(principal, rate, term)
        first_principal, first_interest = installment_split(principal, rate, term, 1)
        assert first_interest == Decimal("1000.00")
        assert abs(first_principal + first_interest - payment) < Decimal("1e-18")

    def test_principal_parts_repay_the_loan(self):
        principal, rate, term = Decimal("100000"), Decimal("0.01"), 12
        total = sum(installment_split(principal, rate, term, n)[0] for n in range(1, term + 1))
        assert abs(total - principal) < Decimal("1e-15")

    def test_split_period_out_of_range(self):
        with pytest.raises(ValueError):
            installment_split(Decimal("1000"), Decimal("0.01"), 12, 13)

    def test_invalid_term(self):
        with pytest.raises(ValueError):
            calculate_annuity_payment(Decimal("1000"), Decimal("0.01"), 0)


def test_accrue_uses_360_day_year():
    assert accrue(Decimal("100000"), Decimal("0.18"), 30) == Decimal("1500")


@pytest.mark.parametrize(
    "method, strategy",
    [
        (RepaymentMethod.INTEREST_ONLY, InterestOnlyStrategy),
        (RepaymentMethod.EQUAL_PRINCIPAL, EqualPrincipalStrategy),
        (RepaymentMethod.EQUAL_INSTALLMENT, EqualInstallmentStrategy),
    ],
)
def test_strategy_for(make_terms, method, strategy):
    assert isinstance(strategy_for(make_terms(repayment_method=method), 12), strategy)


def test_amortisation_index_with_stub_cycle(make_terms):
    strategy = strategy_for(make_terms(repayment_method=RepaymentMethod.EQUAL_PRINCIPAL), 13)
    assert strategy.amortization_index(Period(label="1", kind=RowKind.ORIGINAL, cycle=1)) == 0
    assert strategy.amortization_index(Period(label="13", kind=RowKind.ORIGINAL, cycle=13)) == 12
    assert strategy.amortization_index(Period(label="1(1)", kind=RowKind.INSERTED)) is None


def test_equal_principal_installment(make_terms):
    strategy = strategy_for(make_terms(repayment_method=RepaymentMethod.EQUAL_PRINCIPAL), 12)
    assert strategy.scheduled_principal(1) == Decimal("8333.33")
