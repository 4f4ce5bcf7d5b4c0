"""Aggregation of a generated schedule into summary figures."""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Sequence

from .data_models import ScheduleEntry, Totals


def summarize(schedule: Sequence[ScheduleEntry]) -> Totals:
    """Return totals for ``schedule``.

    ``representative_installment`` is the most common ``total_payment``, the
    single "monthly payment" figure quoted in summaries even for balloon or
    flat-rate loans whose last installment differs. Ties go to the earliest
    period. An empty schedule gives zero totals.
    """
    if not schedule:
        return Totals()

    total_principal = sum((e.principal_portion for e in schedule), Decimal("0"))
    total_interest = sum((e.interest_portion for e in schedule), Decimal("0"))
    total_fees = sum((e.management_fee_portion for e in schedule), Decimal("0"))
    # most_common keeps first-seen order among equal counts
    installment, _ = Counter(e.total_payment for e in schedule).most_common(1)[0]

    return Totals(
        total_principal=total_principal,
        total_interest=total_interest,
        total_fees=total_fees,
        total_repayment=total_principal + total_interest + total_fees,
        representative_installment=installment,
        number_of_payments=len(schedule),
        first_due_date=schedule[0].due_date,
        maturity_date=schedule[-1].due_date,
    )
