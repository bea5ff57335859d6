"""Tests for placing overdue-interest payments."""

from datetime import date
from decimal import Decimal

import pytest

from loan_schedule.config import EngineLimits
from loan_schedule.data_models import PaymentEvent, PaymentKind, Period, RowKind
from loan_schedule.errors import ValidationError
from loan_schedule.injector import inject_overdue_interest, label_after_maturity
from loan_schedule.projector import TAIL_LABEL


@pytest.fixture
def rows():
    return (
        Period(label="0", kind=RowKind.OPENING, opening_principal=Decimal("1000")),
        Period(
            label="1",
            kind=RowKind.ORIGINAL,
            start_date=date(2024, 1, 21),
            end_date=date(2024, 2, 21),
            overdue_interest=Decimal("10"),
            unpaid_overdue_interest=Decimal("10"),
        ),
        Period(
            label="2",
            kind=RowKind.ORIGINAL,
            start_date=date(2024, 2, 21),
            end_date=date(2024, 3, 21),
            overdue_interest=Decimal("8"),
            unpaid_overdue_interest=Decimal("8"),
        ),
        Period(label=TAIL_LABEL, kind=RowKind.TAIL, start_date=date(2024, 3, 21), end_date=date(2024, 4, 1)),
    )


def overdue(day, amount):
    return PaymentEvent(date=day, amount=Decimal(amount), kind=PaymentKind.OVERDUE_INTEREST)


def test_unaligned_payment_becomes_marker_row(rows):
    result = inject_overdue_interest(rows, [overdue(date(2024, 3, 5), "5")])
    assert len(result) == 5
    marker = result[2]
    assert marker.kind == RowKind.OVERDUE_INTEREST
    assert marker.label == "1(1)"
    assert marker.start_date == marker.end_date == date(2024, 3, 5)
    assert marker.paid_overdue_interest == Decimal("5")
    assert marker.unpaid_overdue_interest == Decimal("-5")
    assert [r for r in result if r is not marker] == list(rows)


def test_aligned_payment_overwrites_row(rows):
    result = inject_overdue_interest(rows, [overdue(date(2024, 3, 21), "3")])
    assert len(result) == 4
    assert result[2].paid_overdue_interest == Decimal("3")
    assert result[2].unpaid_overdue_interest == Decimal("5")


def test_payment_after_last_row_goes_before_tail(rows):
    result = inject_overdue_interest(rows, [overdue(date(2024, 3, 25), "2")])
    assert [r.label for r in result] == ["0", "1", "2", "2(1)", TAIL_LABEL]


def test_second_payment_on_marker_date_overwrites(rows):
    events = [overdue(date(2024, 3, 5), "5"), overdue(date(2024, 3, 5), "7")]
    result = inject_overdue_interest(rows, events)
    markers = [r for r in result if r.kind == RowKind.OVERDUE_INTEREST]
    assert len(markers) == 1
    assert markers[0].paid_overdue_interest == Decimal("7")
    assert markers[0].unpaid_overdue_interest == Decimal("-7")


def test_markers_are_placed_in_date_order(rows):
    events = [overdue(date(2024, 3, 10), "1"), overdue(date(2024, 3, 5), "2")]
    result = inject_overdue_interest(rows, events)
    assert [r.label for r in result] == ["0", "1", "1(1)", "1(2)", "2", TAIL_LABEL]
    assert result[2].end_date == date(2024, 3, 5)
    assert result[3].end_date == date(2024, 3, 10)


def test_marker_limit(rows):
    events = [overdue(date(2024, 3, 5), "1"), overdue(date(2024, 3, 10), "1")]
    with pytest.raises(ValidationError, match="overdue-interest rows"):
        inject_overdue_interest(rows, events, EngineLimits(max_injected_rows=1))


def test_input_rows_are_not_mutated(rows):
    before = list(rows)
    inject_overdue_interest(rows, [overdue(date(2024, 3, 21), "3")])
    assert list(rows) == before


def test_label_after_maturity(rows):
    post = Period(
        label="2(1)",
        kind=RowKind.POST_MATURITY,
        start_date=date(2024, 3, 21),
        end_date=date(2024, 3, 25),
    )
    schedule = rows[:3] + (post,) + rows[3:]
    result = inject_overdue_interest(schedule, [overdue(date(2024, 3, 28), "2")])
    labelled = label_after_maturity(result, accelerated=False)
    assert [r.label for r in labelled] == [
        "0",
        "1",
        "2",
        "repayment after maturity 1",
        "repayment after maturity 2",
        TAIL_LABEL,
    ]
    assert label_after_maturity(result, accelerated=True) == result
