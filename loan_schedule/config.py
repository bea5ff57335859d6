"""Engine constants and limits.

Interest is annualised over a 360-day year regardless of the calendar day
count used for the numerator. The limits guard against inputs that would make
the splicer or the overdue-interest injector run for an unbounded time; they
can be raised through environment variables for unusually long loans.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, getcontext
from typing import Mapping, Optional

getcontext().prec = 28  # increase precision for financial calculations

DAYS_IN_YEAR = Decimal(360)
MONTHS_IN_YEAR = 12
MONEY_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class EngineLimits:
    max_terms: int = 1200
    max_events: int = 5000
    max_rows: int = 20000
    max_injected_rows: int = 5000


DEFAULT_LIMITS = EngineLimits()

_ENV_KEYS = {
    "max_terms": "LOAN_SCHEDULE_MAX_TERMS",
    "max_events": "LOAN_SCHEDULE_MAX_EVENTS",
    "max_rows": "LOAN_SCHEDULE_MAX_ROWS",
    "max_injected_rows": "LOAN_SCHEDULE_MAX_INJECTED_ROWS",
}


def limits_from_env(environ: Optional[Mapping[str, str]] = None) -> EngineLimits:
    """Build :class:`EngineLimits` from ``LOAN_SCHEDULE_*`` variables.

    Unset variables keep their defaults. A value that is not a positive
    integer raises ``ValueError`` naming the variable.
    """
    environ = os.environ if environ is None else environ
    values = {}
    for attr, key in _ENV_KEYS.items():
        raw = environ.get(key)
        if raw is None or not raw.strip():
            continue
        try:
            value = int(raw)
        except ValueError as exc:
            raise ValueError(f"{key} must be an integer; got {raw!r}") from exc
        if value <= 0:
            raise ValueError(f"{key} must be positive; got {value}")
        values[attr] = value
    return EngineLimits(**values)
