"""Build engine inputs from plain dictionaries.

The command line and the web API both accept loans as JSON. A single loan
looks like::

    {
        "name": "loan A",
        "principal": "100000",
        "nominal_rate": "0.12",
        "overdue_rate": "18%",
        "term_count": 12,
        "start_date": "2024-01-21",
        "maturity_date": "2025-01-21",
        "billing_day": 21,
        "repayment_method": "interest_only",
        "early_repayment_terms": 0,
        "extended_first_period": false,
        "as_of_date": "2024-07-21",
        "payments": [{"date": "2024-04-21", "amount": "30000", "kind": "principal"}]
    }

A batch document is ``{"as_of_date": ..., "loans": [loan, ...]}``; a loan's
own ``as_of_date`` overrides the batch one.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .batch import LoanGroup
from .data_models import LoanTerms, PaymentEvent
from .errors import LoanScheduleError, ValidationError
from .utils import decimal_from_str, parse_date, parse_payment_kind, parse_rate, parse_repayment_method

DEFAULT_BILLING_DAY = 21


def _require(data: Mapping[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ValidationError(f"Missing required field {key!r}")
    return value


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Field {key!r} must be an integer; got {value!r}")
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"Field {key!r} must be an integer; got {value!r}") from exc


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


def terms_from_dict(data: Mapping[str, Any], as_of_date: Any = None) -> LoanTerms:
    """Build :class:`LoanTerms` from a mapping.

    ``as_of_date`` is used when the mapping has none of its own.

    Raises
    ------
    ValidationError
        If a required field is missing or a value cannot be parsed.
    """
    as_of = data.get("as_of_date") or as_of_date
    if as_of is None or as_of == "":
        raise ValidationError("Missing required field 'as_of_date'")
    return LoanTerms(
        principal=decimal_from_str(_require(data, "principal")),
        nominal_rate=parse_rate(_require(data, "nominal_rate")),
        overdue_rate=parse_rate(_require(data, "overdue_rate")),
        term_count=_as_int(_require(data, "term_count"), "term_count"),
        start_date=parse_date(_require(data, "start_date")),
        maturity_date=parse_date(_require(data, "maturity_date")),
        billing_day=_as_int(data.get("billing_day", DEFAULT_BILLING_DAY), "billing_day"),
        repayment_method=parse_repayment_method(_require(data, "repayment_method")),
        as_of_date=parse_date(as_of),
        early_repayment_terms=_as_int(data.get("early_repayment_terms", 0) or 0, "early_repayment_terms"),
        extended_first_period=_as_bool(data.get("extended_first_period", False)),
    )


def event_from_dict(data: Mapping[str, Any]) -> PaymentEvent:
    return PaymentEvent(
        date=parse_date(_require(data, "date")),
        amount=decimal_from_str(_require(data, "amount")),
        kind=parse_payment_kind(_require(data, "kind")),
    )


def events_from_list(items: Optional[Sequence[Mapping[str, Any]]]) -> List[PaymentEvent]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError(f"'payments' must be a list; got {type(items).__name__}")
    events = []
    for position, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Payment {position + 1} must be an object; got {type(item).__name__}")
        events.append(event_from_dict(item))
    return events


def group_from_dict(data: Mapping[str, Any], as_of_date: Any = None) -> LoanGroup:
    if not isinstance(data, Mapping):
        raise ValidationError(f"A loan must be an object; got {type(data).__name__}")
    return LoanGroup(
        name=data.get("name"),
        terms=terms_from_dict(data, as_of_date),
        events=tuple(events_from_list(data.get("payments"))),
    )


def groups_from_document(document: Mapping[str, Any]) -> List[LoanGroup]:
    """Build the loan groups of a batch document.

    Errors are tagged with the position and name of the offending loan.
    """
    if not isinstance(document, Mapping):
        raise ValidationError("A batch must be an object with a 'loans' list")
    loans = document.get("loans")
    if not isinstance(loans, list):
        raise ValidationError("A batch must be an object with a 'loans' list")
    as_of = document.get("as_of_date")
    groups: List[LoanGroup] = []
    for index, item in enumerate(loans):
        try:
            groups.append(group_from_dict(item, as_of))
        except LoanScheduleError as exc:
            name = item.get("name") if isinstance(item, Mapping) else None
            raise exc.for_group(index, name)
    return groups


def schedule_request(data: Dict[str, Any]) -> LoanGroup:
    """Build the single loan of a schedule request."""
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return group_from_dict(data)
