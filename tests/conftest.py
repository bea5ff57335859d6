from datetime import date
from decimal import Decimal

import pytest

from loan_schedule.data_models import LoanTerms, PaymentEvent, PaymentKind, RepaymentMethod


def build_terms(**overrides) -> LoanTerms:
    """Interest-only loan of 100,000 at 12 %, 12 cycles from 2024-01-21, as of 2024-07-21."""
    values = dict(
        principal=Decimal("100000"),
        nominal_rate=Decimal("0.12"),
        overdue_rate=Decimal("0.18"),
        term_count=12,
        start_date=date(2024, 1, 21),
        maturity_date=date(2025, 1, 21),
        billing_day=21,
        repayment_method=RepaymentMethod.INTEREST_ONLY,
        as_of_date=date(2024, 7, 21),
    )
    values.update(overrides)
    return LoanTerms(**values)


def payment(day: date, amount: str, kind: PaymentKind = PaymentKind.PRINCIPAL) -> PaymentEvent:
    return PaymentEvent(date=day, amount=Decimal(amount), kind=kind)


@pytest.fixture
def make_terms():
    return build_terms


@pytest.fixture
def make_payment():
    return payment


@pytest.fixture
def loan_document():
    """A batch document with one valid loan and one whose early terms equal its term."""
    return {
        "as_of_date": "2024-07-21",
        "loans": [
            {
                "name": "working capital",
                "principal": "100000",
                "nominal_rate": "0.12",
                "overdue_rate": "0.18",
                "term_count": 12,
                "start_date": "2024-01-21",
                "maturity_date": "2025-01-21",
                "billing_day": 21,
                "repayment_method": "先息后本",
                "payments": [{"date": "2024-04-21", "amount": "30000", "kind": "本金"}],
            },
            {
                "name": "bridge",
                "principal": "50000",
                "nominal_rate": "0.12",
                "overdue_rate": "0.18",
                "term_count": 6,
                "start_date": "2024-01-21",
                "maturity_date": "2024-07-21",
                "repayment_method": "interest_only",
                "early_repayment_terms": 6,
            },
        ],
    }
