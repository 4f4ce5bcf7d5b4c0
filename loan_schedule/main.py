"""Command‑line interface for the repayment-schedule engine.

This module uses the ``click`` library to implement a multi‑command interface.
Loan officers can print a full repayment schedule, view only the totals,
compare the three calculation methods for the same terms, or produce the HTML
schedule table that goes into a loan contract. Schedules can be exported to
JSON or CSV.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

import click

from .data_models import CalculationMethod, LoanTerms, ScheduleEntry, Totals
from .engine import generate_schedule
from .exceptions import LoanScheduleError
from .formatter import (
    LOCALES,
    DEFAULT_LOCALE,
    print_comparison,
    print_schedule,
    print_summary,
    schedule_to_dicts,
    summary_to_dict,
    to_display_table,
)
from .logging_config import setup_logging
from .totals import summarize
from .utils import parse_amount, parse_date, percent_to_fraction

METHOD_CHOICES = [m.value for m in CalculationMethod] + ["emi"]


def build_terms_from_options(
    principal: str,
    rate: str,
    term: int,
    method: str,
    disbursement_date: Optional[str],
    fee_rate: Optional[str] = None,
    legacy_method_fallback: bool = False,
    today: Optional[date] = None,
) -> LoanTerms:
    """Turn raw option strings into ``LoanTerms``.

    Rates are percentages per month ("3.5" is 3.5 %). A missing disbursement
    date means ``today``, resolved here so the engine never reads the clock.
    """
    try:
        principal_value = parse_amount(principal)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--principal")
    try:
        rate_value = percent_to_fraction(rate)
        fee_value = percent_to_fraction(fee_rate) if fee_rate else percent_to_fraction("0")
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--rate/--fee-rate")
    if disbursement_date:
        try:
            disbursed = parse_date(disbursement_date)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--disbursement-date")
    else:
        disbursed = today or date.today()
    try:
        calculation_method = CalculationMethod.parse(method, legacy=legacy_method_fallback)
        return LoanTerms(
            principal=principal_value,
            monthly_interest_rate=rate_value,
            monthly_management_fee_rate=fee_value,
            term_months=term,
            disbursement_date=disbursed,
            calculation_method=calculation_method,
        )
    except LoanScheduleError as exc:
        raise click.BadParameter(str(exc))


def export_to_json(path: Path, schedule: List[ScheduleEntry], totals: Totals) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary_to_dict(totals), "schedule": schedule_to_dicts(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[ScheduleEntry]) -> None:
    """Export schedule to a CSV file."""
    rows = schedule_to_dicts(schedule)
    header = [
        "payment_number",
        "due_date",
        "principal_portion",
        "interest_portion",
        "management_fee_portion",
        "total_payment",
        "remaining_balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=header)
        writer.writeheader()
        writer.writerows(rows)


def loan_options(func):
    """Attach the options every command shares."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Disbursed amount (accepts 500k / 1.2m)"),
        click.option("--rate", "-r", "rate", required=True, help="Monthly interest rate (percent)"),
        click.option("--fee-rate", "fee_rate", default="0", show_default=True, help="Monthly management fee rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months"),
        click.option(
            "--method",
            "method",
            default=CalculationMethod.REDUCING_BALANCE.value,
            show_default=True,
            help=f"Calculation method ({', '.join(METHOD_CHOICES)})",
        ),
        click.option("--disbursement-date", "-d", "disbursement_date", help="Disbursement date (YYYY-MM-DD); defaults to today"),
        click.option(
            "--legacy-method-fallback",
            "legacy_method_fallback",
            is_flag=True,
            help="Treat unknown methods as reducing_balance instead of failing",
        ),
        click.option("--locale", "locale", type=click.Choice(sorted(LOCALES)), default=DEFAULT_LOCALE, show_default=True),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--log-level", "log_level", default="WARNING", show_default=True, help="Logging level")
def cli(log_level: str) -> None:
    """Repayment schedules for microfinance loans."""
    setup_logging(log_level)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: str,
    fee_rate: str,
    term: int,
    method: str,
    disbursement_date: Optional[str],
    legacy_method_fallback: bool,
    locale: str,
    output: Optional[str],
) -> None:
    """Compute and print the full repayment schedule."""
    terms = build_terms_from_options(
        principal, rate, term, method, disbursement_date, fee_rate, legacy_method_fallback
    )
    entries = generate_schedule(terms)
    totals = summarize(entries)
    if not entries:
        click.echo("Loan terms are incomplete; no schedule to show.")
        return
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, entries, totals)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(totals, locale)
        print_schedule(entries, locale)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: str,
    fee_rate: str,
    term: int,
    method: str,
    disbursement_date: Optional[str],
    legacy_method_fallback: bool,
    locale: str,
    output: Optional[str],
) -> None:
    """Compute and print only the totals for a loan."""
    terms = build_terms_from_options(
        principal, rate, term, method, disbursement_date, fee_rate, legacy_method_fallback
    )
    totals = summarize(generate_schedule(terms))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_to_dict(totals)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(totals, locale)


@cli.command()
@loan_options
def compare(
    principal: str,
    rate: str,
    fee_rate: str,
    term: int,
    method: str,
    disbursement_date: Optional[str],
    legacy_method_fallback: bool,
    locale: str,
) -> None:
    """Compare the three calculation methods for the same terms.

    ``--method`` is ignored; every method is computed.
    """
    rows: Dict[str, Totals] = {}
    for candidate in CalculationMethod:
        terms = build_terms_from_options(
            principal, rate, term, candidate.value, disbursement_date, fee_rate
        )
        rows[candidate.value] = summarize(generate_schedule(terms))
    print_comparison(rows, locale)


@cli.command("contract-table")
@loan_options
def contract_table(
    principal: str,
    rate: str,
    fee_rate: str,
    term: int,
    method: str,
    disbursement_date: Optional[str],
    legacy_method_fallback: bool,
    locale: str,
) -> None:
    """Print the HTML schedule table embedded in loan contracts."""
    terms = build_terms_from_options(
        principal, rate, term, method, disbursement_date, fee_rate, legacy_method_fallback
    )
    click.echo(to_display_table(generate_schedule(terms), locale))


if __name__ == "__main__":
    cli()
