"""Serialisation of schedules and batch reports.

Money values are rounded to cents and written as floats, dates as ISO
strings. The same dictionaries back the JSON export, the web API and the
CSV writer.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from .batch import BatchReport, LoanSummary
from .data_models import Payoff, Period, Schedule, ScheduleTotals
from .utils import round_money

SCHEDULE_COLUMNS = [
    ("label", "Period"),
    ("kind", "Kind"),
    ("start_date", "Start"),
    ("end_date", "End"),
    ("opening_principal", "Opening_Principal"),
    ("due_days", "Days"),
    ("due_principal", "Due_Principal"),
    ("due_interest", "Due_Interest"),
    ("paid_principal", "Paid_Principal"),
    ("paid_interest", "Paid_Interest"),
    ("cumulative_unpaid_principal", "Unpaid_Principal"),
    ("cumulative_unpaid_interest", "Unpaid_Interest"),
    ("current_unpaid_interest", "Compound_Basis"),
    ("compound_rate", "Compound_Rate"),
    ("compound_start", "Compound_Start"),
    ("compound_end", "Compound_End"),
    ("compound_days", "Compound_Days"),
    ("compound_interest", "Compound_Interest"),
    ("current_unpaid_principal", "Penalty_Basis"),
    ("penalty_rate", "Penalty_Rate"),
    ("penalty_start", "Penalty_Start"),
    ("penalty_end", "Penalty_End"),
    ("penalty_days", "Penalty_Days"),
    ("penalty_interest", "Penalty_Interest"),
    ("overdue_interest", "Overdue_Interest"),
    ("paid_overdue_interest", "Paid_Overdue_Interest"),
    ("unpaid_overdue_interest", "Unpaid_Overdue_Interest"),
]

_RATE_FIELDS = {"compound_rate", "penalty_rate", "nominal_rate", "overdue_rate"}


def _value(name: str, value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value) if name in _RATE_FIELDS else float(round_money(value))
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def period_to_dict(period: Period) -> Dict[str, Any]:
    return {name: _value(name, getattr(period, name)) for name, _ in SCHEDULE_COLUMNS}


def _flat(obj: Any) -> Dict[str, Any]:
    return {name: _value(name, value) for name, value in vars(obj).items()}


def totals_to_dict(totals: ScheduleTotals) -> Dict[str, Any]:
    return _flat(totals)


def payoff_to_dict(payoff: Payoff) -> Dict[str, Any]:
    return _flat(payoff)


def schedule_to_dict(schedule: Schedule) -> Dict[str, Any]:
    """Convert a schedule to plain JSON-compatible data."""
    return {
        "terms": _flat(schedule.terms),
        "accelerated": schedule.accelerated,
        "periods": [period_to_dict(p) for p in schedule.periods],
        "totals": totals_to_dict(schedule.totals),
        "payoff": payoff_to_dict(schedule.payoff),
        "skipped_events": [_flat(e) for e in schedule.skipped_events],
    }


def summary_to_dict(row: LoanSummary) -> Dict[str, Any]:
    return _flat(row)


def batch_to_dict(report: BatchReport, include_schedules: bool = True) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "summaries": [summary_to_dict(row) for row in report.summaries],
        "totals": _flat(report.totals),
        "grand_total": _value("grand_total", report.grand_total),
        "rate_bases": [
            {"overdue_rate": float(rate), "basis": float(round_money(basis))}
            for rate, basis in sorted(report.rate_bases.items())
        ],
        "failures": [
            {"index": f.index, "name": f.name, "message": f.message} for f in report.failures
        ],
    }
    if include_schedules:
        data["schedules"] = [
            {"index": r.index, "name": r.name, "schedule": schedule_to_dict(r.schedule)}
            for r in report.results
        ]
    return data


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    """Write already serialised data to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def export_to_csv(path: Path, periods: List[Period]) -> None:
    """Export schedule rows to a CSV file."""
    header = [title for _, title in SCHEDULE_COLUMNS]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for period in periods:
            row = period_to_dict(period)
            writer.writerow(["" if row[name] is None else row[name] for name, _ in SCHEDULE_COLUMNS])
