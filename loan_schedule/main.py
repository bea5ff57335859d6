"""Command-line interface for the loan schedule engine.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute a full repayment schedule, view only the payoff
summary, or compute a batch of loans described in a JSON file. Results can be
printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .batch import compute_batch
from .config import limits_from_env
from .data_models import LoanTerms, PaymentEvent, RepaymentMethod, Schedule
from .engine import compute_schedule
from .errors import LoanScheduleError
from .export import batch_to_dict, export_to_csv, export_to_json, schedule_to_dict
from .formatter import print_batch, print_schedule, print_summary
from .loader import DEFAULT_BILLING_DAY, groups_from_document
from .utils import decimal_from_str, parse_date, parse_payment_kind, parse_rate, parse_repayment_method

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> str:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns the plain number as a string so
    that it converts to ``Decimal`` exactly.
    """
    text = value.strip().lower().replace(",", "")
    factor = 1
    if text.endswith("k"):
        factor = 1_000
        text = text[:-1]
    elif text.endswith("m"):
        factor = 1_000_000
        text = text[:-1]
    try:
        return str(decimal_from_str(text) * factor)
    except LoanScheduleError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_payment_strings(values: Tuple[str, ...]) -> List[PaymentEvent]:
    events: List[PaymentEvent] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 3:
            raise click.BadParameter(f"Payment must be in YYYY-MM-DD:AMOUNT:KIND format; got {item}")
        dt, amount, kind = parts
        try:
            events.append(
                PaymentEvent(
                    date=parse_date(dt),
                    amount=decimal_from_str(parse_amount(amount)),
                    kind=parse_payment_kind(kind),
                )
            )
        except LoanScheduleError as exc:
            raise click.BadParameter(str(exc))
    return events


def build_terms_from_options(
    principal: str,
    rate: str,
    overdue_rate: str,
    term: int,
    start_date: str,
    maturity_date: str,
    billing_day: int,
    method: str,
    early_terms: int,
    as_of: str,
    extended_first_period: bool,
) -> LoanTerms:
    try:
        return LoanTerms(
            principal=decimal_from_str(parse_amount(principal)),
            nominal_rate=parse_rate(rate),
            overdue_rate=parse_rate(overdue_rate),
            term_count=term,
            start_date=parse_date(start_date),
            maturity_date=parse_date(maturity_date),
            billing_day=billing_day,
            repayment_method=parse_repayment_method(method),
            as_of_date=parse_date(as_of),
            early_repayment_terms=early_terms,
            extended_first_period=extended_first_period,
        )
    except LoanScheduleError as exc:
        raise click.BadParameter(str(exc))


def loan_options(func):
    """Attach the options describing a single loan to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount (500k, 1.2m accepted)"),
        click.option("--rate", "-r", "rate", required=True, help="Annual nominal rate as a fraction (0.12) or percent (12%)"),
        click.option("--overdue-rate", "overdue_rate", required=True, help="Annual overdue rate as a fraction or percent"),
        click.option("--term", "-t", "term", required=True, type=int, help="Number of billing cycles"),
        click.option("--start-date", "-s", "start_date", required=True, help="Value date (YYYY-MM-DD)"),
        click.option("--maturity-date", "-m", "maturity_date", required=True, help="Maturity date (YYYY-MM-DD)"),
        click.option("--billing-day", "billing_day", type=int, default=DEFAULT_BILLING_DAY, show_default=True, help="Day of month a cycle ends"),
        click.option(
            "--method",
            "method",
            type=click.Choice([m.value for m in RepaymentMethod]),
            default=RepaymentMethod.INTEREST_ONLY.value,
            show_default=True,
            help="Repayment method",
        ),
        click.option("--early-terms", "early_terms", type=int, default=0, help="Initial cycles settled up front"),
        click.option("--as-of", "as_of", required=True, help="Compute the schedule as of this date (YYYY-MM-DD)"),
        click.option("--extended-first-period", "extended_first_period", is_flag=True, help="Let the first cycle run to the following month's billing day"),
        click.option("--payment", "payment", multiple=True, help="Payment in YYYY-MM-DD:AMOUNT:KIND format (kind: principal, interest, overdue_interest)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _compute(options: Dict[str, Any]) -> Schedule:
    payments = options.pop("payment")
    terms = build_terms_from_options(**options)
    events = parse_payment_strings(payments)
    try:
        return compute_schedule(terms, events, limits_from_env())
    except (LoanScheduleError, ValueError) as exc:
        raise click.ClickException(str(exc))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log the calculation steps")
def cli(verbose: bool) -> None:
    """Loan repayment schedules with overdue, compound and penalty interest."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(output: Optional[str], **options: Any) -> None:
    """Compute and print the full repayment schedule."""
    result = _compute(options)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule_to_dict(result))
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, list(result.periods))
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_summary(result)
        # Limit schedule length printed to avoid flooding the terminal
        if len(result.periods) > MAX_PRINTED_ROWS:
            click.echo(f"Schedule has {len(result.periods)} rows; showing first {MAX_PRINTED_ROWS} rows.")
        print_schedule(result.periods, limit=MAX_PRINTED_ROWS)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options: Any) -> None:
    """Compute and print only the payoff summary of a loan."""
    result = _compute(options)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        data = schedule_to_dict(result)
        export_to_json(path, {"totals": data["totals"], "payoff": data["payoff"]})
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--as-of", "as_of", help="Default as-of date for loans that have none")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def batch(input_file: Path, as_of: Optional[str], output: Optional[str]) -> None:
    """Compute every loan of a JSON batch file.

    The file holds ``{"as_of_date": "...", "loans": [...]}``; see
    :mod:`loan_schedule.loader` for the fields of a loan.
    """
    try:
        document = json.loads(input_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{input_file} is not valid JSON: {exc}")
    if as_of and isinstance(document, dict):
        document.setdefault("as_of_date", as_of)
    try:
        groups = groups_from_document(document)
        report = compute_batch(groups, limits_from_env())
    except (LoanScheduleError, ValueError) as exc:
        raise click.ClickException(str(exc))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Batch export must use .json extension")
        export_to_json(path, batch_to_dict(report))
        click.echo(f"Batch exported to {path}")
    else:
        print_batch(report)
    if report.failures:
        raise click.ClickException(f"{len(report.failures)} of {len(groups)} loans failed")


if __name__ == "__main__":
    cli()
