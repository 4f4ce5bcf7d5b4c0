"""Data models for the repayment-schedule engine.

This module defines the immutable inputs and outputs of the engine: the loan
terms supplied by a caller, the per-period split produced by a payment method,
the schedule entries handed to the persistence and contract layers, and the
aggregated totals shown in summaries. All amounts are ``Decimal`` so that the
same inputs always give byte-identical schedules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Union

from .exceptions import InvalidLoanTermsError, UnknownCalculationMethodError

logger = logging.getLogger(__name__)

# Older applications stored the level-installment method under this name.
_METHOD_ALIASES = {"emi": "reducing_balance"}

# Bounds that keep every amount representable in Numeric(18, 2) and in the
# 28-digit decimal context.
MAX_PRINCIPAL = Decimal("9999999999999999.99")
MAX_MONTHLY_RATE = Decimal("1")
MAX_TERM_MONTHS = 1200


class CalculationMethod(Enum):
    """How interest, fees and principal are spread over the term."""

    FLAT_RATE = "flat_rate"
    REDUCING_BALANCE = "reducing_balance"
    BALLOON_STRUCTURE = "balloon_structure"

    @classmethod
    def parse(
        cls, value: Union["CalculationMethod", str, None], legacy: bool = False
    ) -> "CalculationMethod":
        """Return the method named by ``value``.

        Names are matched case-insensitively and the legacy ``"emi"`` alias is
        accepted. Unrecognized values raise ``UnknownCalculationMethodError``
        unless ``legacy`` is set, in which case they fall back to
        ``REDUCING_BALANCE`` the way stored applications always have.
        """
        if isinstance(value, cls):
            return value
        key = (value or "").strip().lower() if isinstance(value, str) else ""
        key = _METHOD_ALIASES.get(key, key)
        for member in cls:
            if member.value == key:
                return member
        if legacy:
            logger.warning(
                "Unknown calculation method %r; falling back to reducing_balance", value
            )
            return cls.REDUCING_BALANCE
        raise UnknownCalculationMethodError(value)


def _to_decimal(name: str, value: object) -> Decimal:
    if isinstance(value, bool):
        raise InvalidLoanTermsError(f"{name} must be numeric; got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).replace(",", "").strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidLoanTermsError(f"{name} must be numeric; got {value!r}") from exc
    if not amount.is_finite():
        raise InvalidLoanTermsError(f"{name} must be a finite number; got {value!r}")
    return amount


@dataclass(frozen=True)
class LoanTerms:
    """The inputs of one schedule calculation.

    Attributes
    ----------
    principal: Decimal
        The disbursed amount. A value of zero or less means the terms are not
        complete yet and yields an empty schedule.
    monthly_interest_rate: Decimal
        Interest per month as a fraction, e.g. ``Decimal("0.035")`` for 3.5 %.
    term_months: int
        Number of monthly installments. Zero or less yields an empty schedule.
    disbursement_date: date
        Due dates fall whole months after this date. Callers resolve "today"
        themselves; the engine never reads the clock.
    calculation_method: CalculationMethod
        Strings are parsed strictly on construction.
    monthly_management_fee_rate: Decimal
        Management fee per month as a fraction. May be zero.
    """

    principal: Decimal
    monthly_interest_rate: Decimal
    term_months: int
    disbursement_date: date
    calculation_method: CalculationMethod = CalculationMethod.REDUCING_BALANCE
    monthly_management_fee_rate: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        principal = _to_decimal("principal", self.principal)
        rate = _to_decimal("monthly_interest_rate", self.monthly_interest_rate)
        fee_rate = _to_decimal("monthly_management_fee_rate", self.monthly_management_fee_rate)
        if rate < 0:
            raise InvalidLoanTermsError("monthly_interest_rate must not be negative")
        if fee_rate < 0:
            raise InvalidLoanTermsError("monthly_management_fee_rate must not be negative")
        if principal > MAX_PRINCIPAL:
            raise InvalidLoanTermsError(f"principal must not exceed {MAX_PRINCIPAL}; got {self.principal!r}")
        if rate > MAX_MONTHLY_RATE or fee_rate > MAX_MONTHLY_RATE:
            raise InvalidLoanTermsError("monthly rates must not exceed 100 %")
        if isinstance(self.term_months, bool) or not isinstance(self.term_months, int):
            raise InvalidLoanTermsError(f"term_months must be an integer; got {self.term_months!r}")
        if self.term_months > MAX_TERM_MONTHS:
            raise InvalidLoanTermsError(f"term_months must not exceed {MAX_TERM_MONTHS}")
        # datetime is a date subclass but would leak a time of day into due dates
        if isinstance(self.disbursement_date, datetime) or not isinstance(self.disbursement_date, date):
            raise InvalidLoanTermsError(
                f"disbursement_date must be a date; got {self.disbursement_date!r}"
            )
        object.__setattr__(self, "principal", principal)
        object.__setattr__(self, "monthly_interest_rate", rate)
        object.__setattr__(self, "monthly_management_fee_rate", fee_rate)
        object.__setattr__(
            self, "calculation_method", CalculationMethod.parse(self.calculation_method)
        )

    @property
    def combined_rate(self) -> Decimal:
        """Interest and management fee rates charged together each month."""
        return self.monthly_interest_rate + self.monthly_management_fee_rate

    @property
    def is_complete(self) -> bool:
        """False while the principal or the term is still missing."""
        return self.principal > 0 and self.term_months > 0


@dataclass(frozen=True)
class PeriodSplit:
    """One period's decomposition as computed by a payment method, unrounded."""

    principal: Decimal
    interest: Decimal
    fee: Decimal


@dataclass(frozen=True)
class ScheduleEntry:
    """An installment in the repayment schedule.

    ``total_payment`` is always the exact sum of the three rounded portions
    and ``remaining_balance`` is the balance after this installment.
    """

    payment_number: int
    due_date: date
    principal_portion: Decimal
    interest_portion: Decimal
    management_fee_portion: Decimal
    total_payment: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class Totals:
    """Aggregate figures of a schedule for summary cards and contract text."""

    total_principal: Decimal = Decimal("0")
    total_interest: Decimal = Decimal("0")
    total_fees: Decimal = Decimal("0")
    total_repayment: Decimal = Decimal("0")
    representative_installment: Decimal = Decimal("0")
    number_of_payments: int = 0
    first_due_date: Optional[date] = None
    maturity_date: Optional[date] = None
