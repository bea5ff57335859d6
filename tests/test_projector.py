"""Tests for the balance and interest projector."""

from datetime import date
from decimal import Decimal

from loan_schedule.data_models import RepaymentMethod, RowKind
from loan_schedule.periods import generate_periods
from loan_schedule.projector import TAIL_LABEL, needs_tail, project_balances
from loan_schedule.splicer import sort_events, splice_payments
from loan_schedule.utils import round_money


def project(terms, events=()):
    plan = generate_periods(terms)
    spliced = splice_payments(plan, sort_events(events), terms.as_of_date)
    return project_balances(terms, plan, spliced)


def cents(value) -> Decimal:
    return round_money(value)


class TestInterestOnly:
    def test_accelerated_loan_gets_zero_length_tail(self, make_terms):
        rows = project(make_terms())
        assert [r.label for r in rows] == ["0", "1", "2", "3", "4", "5", "6", TAIL_LABEL]
        opening, tail = rows[0], rows[-1]
        assert opening.kind == RowKind.OPENING
        assert opening.opening_principal == Decimal("100000")
        assert tail.kind == RowKind.TAIL
        assert tail.start_date == tail.end_date == date(2024, 7, 21)
        assert tail.due_principal == Decimal("100000")
        assert tail.due_days == 0
        assert all(r.due_principal == 0 for r in rows[1:-1])

    def test_interest_per_cycle(self, make_terms):
        rows = project(make_terms())
        assert cents(rows[1].due_interest) == Decimal("1033.33")
        assert cents(rows[2].due_interest) == Decimal("966.67")
        assert rows[2].due_days == 29
        assert cents(rows[-1].cumulative_unpaid_interest) == Decimal("6066.67")

    def test_compound_interest_runs_to_horizon(self, make_terms):
        row = project(make_terms())[2]
        assert cents(row.current_unpaid_interest) == Decimal("1033.33")
        assert row.compound_rate == Decimal("0.12")
        assert row.compound_start == date(2024, 2, 21)
        assert row.compound_end == date(2024, 7, 21)
        assert row.compound_days == 151
        assert cents(row.compound_interest) == Decimal("52.01")
        assert row.penalty_interest == 0
        assert row.overdue_interest == row.compound_interest
        assert row.unpaid_overdue_interest == row.overdue_interest

    def test_boundary_principal_payment_lowers_later_balances(self, make_terms, make_payment):
        rows = project(make_terms(), [make_payment(date(2024, 4, 21), "30000")])
        assert rows[3].due_principal == Decimal("30000")
        assert rows[3].cumulative_unpaid_principal == 0
        assert [r.opening_principal for r in rows[4:7]] == [Decimal("70000")] * 3
        assert rows[-1].due_principal == Decimal("70000")
        assert cents(rows[-1].cumulative_unpaid_interest) == Decimal("5156.67")

    def test_inserted_row_splits_cycle_interest(self, make_terms, make_payment):
        rows = project(make_terms(), [make_payment(date(2024, 3, 5), "20000")])
        inserted, cycle = rows[2], rows[3]
        assert inserted.label == "1(1)"
        assert inserted.due_interest == 0
        assert inserted.due_days == 13
        assert inserted.compound_end == date(2024, 3, 5)
        assert cycle.opening_principal == Decimal("80000")
        assert cycle.due_days == 16
        assert cents(cycle.due_interest) == Decimal("860.00")
        assert cents(cycle.current_unpaid_interest) == Decimal("1033.33")

    def test_overdue_tail_after_maturity(self, make_terms):
        rows = project(make_terms(as_of_date=date(2025, 3, 1)))
        final, tail = rows[-2], rows[-1]
        assert final.label == "12"
        assert final.due_principal == Decimal("100000")
        assert tail.label == TAIL_LABEL
        assert tail.start_date == date(2025, 1, 21)
        assert tail.end_date == date(2025, 3, 1)
        assert tail.due_days == 39
        assert tail.opening_principal == 0
        assert tail.due_principal == 0
        assert tail.current_unpaid_principal == Decimal("100000")
        assert tail.penalty_interest == Decimal("1950")
        assert tail.compound_rate == Decimal("0.18")
        assert cents(tail.current_unpaid_interest) == Decimal("12200.00")
        assert cents(tail.compound_interest) == Decimal("237.90")

    def test_no_tail_when_as_of_is_maturity(self, make_terms):
        rows = project(make_terms(as_of_date=date(2025, 1, 21)))
        assert rows[-1].label == "12"
        assert rows[-1].due_principal == Decimal("100000")

    def test_grace_period_is_settled(self, make_terms):
        rows = project(make_terms(early_repayment_terms=3))
        grace = rows[1]
        assert grace.label == "1-3"
        assert grace.due_days == 91
        assert cents(grace.due_interest) == Decimal("3033.33")
        assert grace.paid_interest == grace.due_interest
        assert grace.cumulative_unpaid_interest == 0
        assert rows[2].current_unpaid_interest == 0


class TestAmortising:
    def test_equal_principal_sums_to_principal(self, make_terms):
        terms = make_terms(repayment_method=RepaymentMethod.EQUAL_PRINCIPAL, as_of_date=date(2025, 1, 21))
        rows = project(terms)
        assert len(rows) == 13
        assert rows[1].due_principal == Decimal("8333.33")
        assert rows[-1].due_principal == Decimal("8333.37")
        assert sum(r.due_principal for r in rows) == Decimal("100000")
        assert rows[1].due_interest == Decimal("1033.33")

    def test_equal_installment_sums_to_principal(self, make_terms):
        terms = make_terms(repayment_method=RepaymentMethod.EQUAL_INSTALLMENT, as_of_date=date(2025, 1, 21))
        rows = project(terms)
        assert rows[1].due_interest == Decimal("1000.00")
        assert rows[1].due_principal == Decimal("7884.88")
        assert sum(r.due_principal for r in rows) == Decimal("100000")

    def test_stub_cycle_is_interest_only(self, make_terms):
        terms = make_terms(
            repayment_method=RepaymentMethod.EQUAL_PRINCIPAL,
            start_date=date(2024, 1, 5),
            maturity_date=date(2025, 1, 5),
            as_of_date=date(2025, 1, 5),
        )
        rows = project(terms)
        assert len(rows) == 14
        assert rows[1].due_principal == 0
        assert rows[1].due_interest == Decimal("533.33")
        assert rows[2].due_principal == Decimal("8333.33")
        assert sum(r.due_principal for r in rows) == Decimal("100000")

    def test_early_terms_are_paid_on_schedule(self, make_terms):
        terms = make_terms(repayment_method=RepaymentMethod.EQUAL_PRINCIPAL, early_repayment_terms=3)
        rows = project(terms)
        for row in rows[1:4]:
            assert row.paid_principal == row.due_principal
            assert row.paid_interest == row.due_interest
        assert rows[3].cumulative_unpaid_principal == 0
        assert rows[4].paid_principal == 0
        assert rows[4].cumulative_unpaid_principal == Decimal("8333.33")

    def test_unpaid_installment_attracts_penalty(self, make_terms):
        terms = make_terms(repayment_method=RepaymentMethod.EQUAL_PRINCIPAL)
        row = project(terms)[2]
        assert row.current_unpaid_principal == Decimal("8333.33")
        assert row.penalty_days == 151
        assert cents(row.penalty_interest) == cents(Decimal("8333.33") * Decimal("0.18") * 151 / 360)

    def test_accelerated_tail_takes_remaining_principal(self, make_terms):
        terms = make_terms(repayment_method=RepaymentMethod.EQUAL_PRINCIPAL)
        rows = project(terms)
        tail = rows[-1]
        assert tail.label == TAIL_LABEL
        assert tail.opening_principal == Decimal("100000") - 6 * Decimal("8333.33")
        assert tail.due_principal == tail.opening_principal
        assert tail.cumulative_unpaid_principal == Decimal("100000")


def test_needs_tail(make_terms):
    terms = make_terms(as_of_date=date(2025, 1, 21))
    plan = generate_periods(terms)
    assert not needs_tail(plan, plan.periods, terms.as_of_date)
    assert needs_tail(plan, plan.periods, date(2025, 2, 1))


class TestAfterMaturity:
    """Interest-only loan past maturity, 40000 repaid on 2025-02-10, as of 2025-04-01."""

    def rows(self, make_terms, make_payment):
        terms = make_terms(as_of_date=date(2025, 4, 1))
        return project(terms, [make_payment(date(2025, 2, 10), "40000")])

    def test_post_maturity_row_owes_nothing_new(self, make_terms, make_payment):
        row = self.rows(make_terms, make_payment)[-2]
        assert row.kind == RowKind.POST_MATURITY
        assert row.opening_principal == 0
        assert row.due_principal == 0
        assert row.due_interest == 0
        assert row.paid_principal == Decimal("40000")
        assert row.cumulative_unpaid_principal == Decimal("60000")

    def test_post_maturity_row_accrues_over_its_own_window(self, make_terms, make_payment):
        row = self.rows(make_terms, make_payment)[-2]
        assert row.penalty_start == date(2025, 1, 21)
        assert row.penalty_end == date(2025, 2, 10)
        assert row.penalty_days == 20
        assert row.current_unpaid_principal == Decimal("100000")
        assert row.penalty_interest == Decimal("1000")
        assert row.compound_rate == Decimal("0.18")
        assert cents(row.current_unpaid_interest) == Decimal("12200.00")
        assert cents(row.compound_interest) == Decimal("122.00")

    def test_tail_uses_reduced_principal(self, make_terms, make_payment):
        tail = self.rows(make_terms, make_payment)[-1]
        assert tail.label == TAIL_LABEL
        assert tail.start_date == date(2025, 2, 10)
        assert tail.penalty_days == 50
        assert tail.due_principal == 0
        assert tail.current_unpaid_principal == Decimal("60000")
        assert tail.penalty_interest == Decimal("1500")
        assert cents(tail.compound_interest) == Decimal("305.00")


def test_amortising_penalty_after_partial_payment(make_terms, make_payment):
    terms = make_terms(repayment_method=RepaymentMethod.EQUAL_PRINCIPAL)
    rows = project(terms, [make_payment(date(2024, 3, 5), "3000")])
    inserted, cycle = rows[2], rows[3]
    assert inserted.kind == RowKind.INSERTED
    assert inserted.current_unpaid_principal == Decimal("8333.33")
    assert inserted.penalty_days == 13
    assert cycle.label == "2"
    assert cycle.current_unpaid_principal == Decimal("5333.33")
    assert cycle.penalty_start == date(2024, 3, 5)
    assert cycle.penalty_days == 138
    assert cents(cycle.penalty_interest) == cents(Decimal("5333.33") * Decimal("0.18") * 138 / 360)
