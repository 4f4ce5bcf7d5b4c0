"""Core schedule generator.

``generate_schedule`` is the single entry point shared by the disbursement
step (which persists the result) and contract generation (which embeds it in
the contract). It is a pure function of ``LoanTerms``: no clock, no I/O and no
shared state, so it is safe to call on every form change and from concurrent
requests.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from .data_models import LoanTerms, ScheduleEntry
from .methods import ReducingBalance, method_for
from .rounding import DEFAULT_ROUNDING, RoundingPolicy
from .utils import add_months

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def generate_schedule(terms: LoanTerms, rounding: RoundingPolicy = DEFAULT_ROUNDING) -> List[ScheduleEntry]:
    """Compute the repayment schedule for ``terms``.

    Parameters
    ----------
    terms: LoanTerms
        The loan terms. A principal or term of zero or less means the caller
        does not have complete terms yet; an empty list is returned instead of
        raising.
    rounding: RoundingPolicy
        Applied to every amount. The final period's principal is forced to the
        outstanding balance so the schedule always ends at exactly zero.

    Returns
    -------
    List[ScheduleEntry]
        One entry per month, ``payment_number`` 1..``term_months``. The
        principal portions sum to the rounded principal.
    """
    if not terms.is_complete:
        logger.debug(
            "Incomplete loan terms (principal=%s, term=%s); no schedule",
            terms.principal,
            terms.term_months,
        )
        return []

    method = method_for(terms.calculation_method, rounding)
    remaining_balance = rounding.round(terms.principal)
    schedule: List[ScheduleEntry] = []

    for period in range(1, terms.term_months + 1):
        split = method.compute_period(remaining_balance, terms, period)
        if period == terms.term_months:
            split = rounding.finalize_last_period(split, remaining_balance)

        principal_portion = min(rounding.round(split.principal), remaining_balance)
        interest_portion = rounding.round(split.interest)
        fee_portion = rounding.round(split.fee)
        remaining_balance = max(remaining_balance - principal_portion, _ZERO)

        schedule.append(
            ScheduleEntry(
                payment_number=period,
                due_date=add_months(terms.disbursement_date, period),
                principal_portion=principal_portion,
                interest_portion=interest_portion,
                management_fee_portion=fee_portion,
                total_payment=principal_portion + interest_portion + fee_portion,
                remaining_balance=remaining_balance,
            )
        )

    logger.debug(
        "Generated %d-period %s schedule for principal %s",
        len(schedule),
        terms.calculation_method.value,
        terms.principal,
    )
    return schedule


def level_installment(terms: LoanTerms, rounding: RoundingPolicy = DEFAULT_ROUNDING) -> Decimal:
    """Return the rounded level installment the terms would have as an EMI loan.

    This is the "monthly payment" quoted in contract text for reducing-balance
    loans, whatever method the schedule itself uses. Incomplete terms give zero.
    """
    if not terms.is_complete:
        return _ZERO
    return ReducingBalance(rounding).installment(terms)
