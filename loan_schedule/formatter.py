"""Output helpers for repayment schedules.

The engine's only consumers see a schedule through this module:

* ``to_persistence_rows`` gives the flat records the repayment-schedule store
  inserts at disbursement time.
* ``to_display_table`` gives the HTML table spliced into the loan contract in
  place of its schedule placeholder. Escaping happens here, not in the
  template engine.
* ``to_text_table``, ``print_summary`` and ``print_schedule`` render the same
  figures for the terminal.

Money and dates are formatted per ``DisplayLocale``. Only presentation varies
between locales; the underlying amounts are the engine's rounded figures.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .data_models import ScheduleEntry, Totals
from .exceptions import UnknownLocaleError


@dataclass(frozen=True)
class DisplayLocale:
    """Currency and date presentation rules for one locale."""

    code: str
    currency_prefix: str = ""
    currency_suffix: str = ""
    decimal_places: int = 2
    thousands_separator: str = ","
    decimal_separator: str = "."
    date_format: str = "%Y-%m-%d"


LOCALES: Dict[str, DisplayLocale] = {
    "sw-TZ": DisplayLocale("sw-TZ", currency_prefix="TSh ", decimal_places=0, date_format="%d/%m/%Y"),
    "en-TZ": DisplayLocale("en-TZ", currency_prefix="TSh ", decimal_places=0, date_format="%d/%m/%Y"),
    "en-US": DisplayLocale("en-US", currency_prefix="$", date_format="%m/%d/%Y"),
    "en-GB": DisplayLocale("en-GB", currency_prefix="£", date_format="%d/%m/%Y"),
}

DEFAULT_LOCALE = "sw-TZ"

TABLE_HEADERS = [
    "Payment",
    "Due Date",
    "Principal",
    "Interest",
    "Mgmt Fee",
    "Total Payment",
    "Balance",
]

_TABLE_STYLE = "width: 100%; border-collapse: collapse; font-family: Arial, sans-serif; font-size: 12px;"
_HEAD_STYLE = "border: 1px solid #d1d5db; padding: 8px; text-align: left; font-weight: 600;"
_CELL_STYLE = "border: 1px solid #d1d5db; padding: 8px;"

EMPTY_SCHEDULE_MESSAGE = "No repayment schedule available"


def resolve_locale(locale: Union[DisplayLocale, str, None]) -> DisplayLocale:
    """Return ``locale`` itself, or the registered locale with that code."""
    if isinstance(locale, DisplayLocale):
        return locale
    code = locale or DEFAULT_LOCALE
    if not isinstance(code, str):
        raise UnknownLocaleError(code)
    try:
        return LOCALES[code]
    except KeyError:
        raise UnknownLocaleError(code) from None


def format_money(amount: Decimal, locale: DisplayLocale) -> str:
    """Format ``amount`` with the locale's separators and currency symbol."""
    quantum = Decimal(1).scaleb(-locale.decimal_places)
    value = Decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)
    text = f"{value:,.{locale.decimal_places}f}"
    # swap via a placeholder so "," and "." can trade places
    text = (
        text.replace(",", "\x00")
        .replace(".", locale.decimal_separator)
        .replace("\x00", locale.thousands_separator)
    )
    return f"{locale.currency_prefix}{text}{locale.currency_suffix}"


def format_date(value: date, locale: DisplayLocale) -> str:
    return value.strftime(locale.date_format)


def _row_cells(entry: ScheduleEntry, locale: DisplayLocale) -> List[str]:
    return [
        str(entry.payment_number),
        format_date(entry.due_date, locale),
        format_money(entry.principal_portion, locale),
        format_money(entry.interest_portion, locale),
        format_money(entry.management_fee_portion, locale),
        format_money(entry.total_payment, locale),
        format_money(entry.remaining_balance, locale),
    ]


def to_persistence_rows(schedule: Iterable[ScheduleEntry], loan_id: str) -> List[Dict[str, Any]]:
    """Map each entry to the flat record stored in the repayment-schedule table."""
    return [
        {
            "loan_id": loan_id,
            "payment_number": e.payment_number,
            "due_date": e.due_date,
            "principal_portion": e.principal_portion,
            "interest_portion": e.interest_portion,
            "management_fee_portion": e.management_fee_portion,
            "total_payment": e.total_payment,
            "remaining_balance": e.remaining_balance,
            "is_paid": False,
        }
        for e in schedule
    ]


def to_display_table(
    schedule: Iterable[ScheduleEntry], locale: Union[DisplayLocale, str, None] = None
) -> str:
    """Render the schedule as an HTML table safe to splice into a document.

    Every cell is escaped, including the currency symbols, so a locale with
    markup characters in its prefix cannot break the surrounding page.
    """
    loc = resolve_locale(locale)
    parts: List[str] = [f"<table style=\"{_TABLE_STYLE}\"><thead><tr>"]
    for header in TABLE_HEADERS:
        parts.append(f"<th style=\"{_HEAD_STYLE}\">{html.escape(header)}</th>")
    parts.append("</tr></thead><tbody>")
    entries = list(schedule)
    for entry in entries:
        parts.append("<tr>")
        for cell in _row_cells(entry, loc):
            parts.append(f"<td style=\"{_CELL_STYLE}\">{html.escape(cell)}</td>")
        parts.append("</tr>")
    if not entries:
        parts.append(
            f"<tr><td colspan=\"{len(TABLE_HEADERS)}\" style=\"{_CELL_STYLE} text-align: center;\">"
            f"{html.escape(EMPTY_SCHEDULE_MESSAGE)}</td></tr>"
        )
    parts.append("</tbody></table>")
    return "".join(parts)


def to_text_table(
    schedule: Iterable[ScheduleEntry], locale: Union[DisplayLocale, str, None] = None
) -> str:
    """Render the schedule as tab-separated text, one line per installment."""
    loc = resolve_locale(locale)
    lines = ["\t".join(TABLE_HEADERS)]
    for entry in schedule:
        lines.append("\t".join(_row_cells(entry, loc)))
    return "\n".join(lines)


def schedule_to_dicts(schedule: Iterable[ScheduleEntry]) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries.

    Amounts become strings so no precision is lost on the way to a client.
    """
    return [
        {
            "payment_number": e.payment_number,
            "due_date": e.due_date.isoformat(),
            "principal_portion": str(e.principal_portion),
            "interest_portion": str(e.interest_portion),
            "management_fee_portion": str(e.management_fee_portion),
            "total_payment": str(e.total_payment),
            "remaining_balance": str(e.remaining_balance),
        }
        for e in schedule
    ]


def summary_to_dict(totals: Totals) -> Dict[str, Any]:
    def _iso(value: Optional[date]) -> Optional[str]:
        return value.isoformat() if value else None

    return {
        "total_principal": str(totals.total_principal),
        "total_interest": str(totals.total_interest),
        "total_fees": str(totals.total_fees),
        "total_repayment": str(totals.total_repayment),
        "representative_installment": str(totals.representative_installment),
        "number_of_payments": totals.number_of_payments,
        "first_due_date": _iso(totals.first_due_date),
        "maturity_date": _iso(totals.maturity_date),
    }


def print_summary(totals: Totals, locale: Union[DisplayLocale, str, None] = None) -> None:
    """Print schedule totals in a human-readable format."""
    loc = resolve_locale(locale)
    print("Summary")
    print("-" * 72)
    print(f"Payments           : {totals.number_of_payments}")
    print(f"Monthly installment: {format_money(totals.representative_installment, loc)}")
    print(f"Total principal    : {format_money(totals.total_principal, loc)}")
    print(f"Total interest     : {format_money(totals.total_interest, loc)}")
    if totals.total_fees:
        print(f"Total mgmt fees    : {format_money(totals.total_fees, loc)}")
    print(f"Total repayment    : {format_money(totals.total_repayment, loc)}")
    if totals.first_due_date:
        print(f"First due date     : {format_date(totals.first_due_date, loc)}")
        print(f"Maturity date      : {format_date(totals.maturity_date, loc)}")
    print("-" * 72)


def print_schedule(schedule: Sequence[ScheduleEntry], locale: Union[DisplayLocale, str, None] = None) -> None:
    """Print the repayment schedule as a simple table."""
    print(to_text_table(schedule, locale))


def print_comparison(rows: Dict[str, Totals], locale: Union[DisplayLocale, str, None] = None) -> None:
    """Print totals for several calculation methods side by side."""
    loc = resolve_locale(locale)
    print("Comparison")
    print("=" * 72)
    print(f"{'Method':20s} {'Installment':>16s} {'Interest':>16s} {'Repayment':>16s}")
    for name, totals in rows.items():
        print(
            f"{name:20s} "
            f"{format_money(totals.representative_installment, loc):>16s} "
            f"{format_money(totals.total_interest + totals.total_fees, loc):>16s} "
            f"{format_money(totals.total_repayment, loc):>16s}"
        )
    print("=" * 72)
