"""Payment methods: how a single period's installment is split.

Each method answers one question: given the balance still owed before a
period, how much of that period's installment is principal, interest and
management fee. Iteration, due dates and the last-period fix-up belong to the
schedule generator in ``engine``.
"""

from __future__ import annotations

from decimal import Decimal, getcontext
from typing import Dict, Type

from .data_models import CalculationMethod, LoanTerms, PeriodSplit
from .rounding import DEFAULT_ROUNDING, RoundingPolicy

getcontext().prec = 28  # increase precision for financial calculations

_ZERO = Decimal("0")


def calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the level (annuity) monthly installment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly rate and ``n`` is the
    number of payments. When the rate is zero, the payment simplifies to
    ``P / n``.
    """
    if term <= 0:
        raise ValueError("Term must be positive")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


class PaymentMethod:
    """Base class for the per-period split strategies."""

    method: CalculationMethod

    def __init__(self, rounding: RoundingPolicy = DEFAULT_ROUNDING) -> None:
        self.rounding = rounding

    def compute_period(
        self, remaining_balance: Decimal, terms: LoanTerms, period_index: int
    ) -> PeriodSplit:
        raise NotImplementedError

    def _financed(self, terms: LoanTerms) -> Decimal:
        return self.rounding.round(terms.principal)


class FlatRate(PaymentMethod):
    """Interest and fee on the original principal, spread evenly.

    ``total_interest = P * rate * n`` and each period carries ``1/n`` of it,
    which is simply ``P * rate``. The principal portion is ``P / n``.
    """

    method = CalculationMethod.FLAT_RATE

    def compute_period(self, remaining_balance, terms, period_index):
        principal = self._financed(terms)
        return PeriodSplit(
            principal=principal / Decimal(terms.term_months),
            interest=principal * terms.monthly_interest_rate,
            fee=principal * terms.monthly_management_fee_rate,
        )


class ReducingBalance(PaymentMethod):
    """Level installment (EMI) with interest and fee on the declining balance.

    The installment is the annuity payment at the combined interest plus fee
    rate. Each period's principal is whatever is left of the rounded
    installment after the rounded interest and fee, so every period except
    the last totals exactly the installment.
    """

    method = CalculationMethod.REDUCING_BALANCE

    def __init__(self, rounding: RoundingPolicy = DEFAULT_ROUNDING) -> None:
        super().__init__(rounding)
        self._installments: Dict[LoanTerms, Decimal] = {}

    def installment(self, terms: LoanTerms) -> Decimal:
        """Return the rounded level installment, computed once per terms."""
        if terms not in self._installments:
            raw = calculate_annuity_payment(
                self._financed(terms), terms.combined_rate, terms.term_months
            )
            self._installments[terms] = self.rounding.round(raw)
        return self._installments[terms]

    def compute_period(self, remaining_balance, terms, period_index):
        interest = remaining_balance * terms.monthly_interest_rate
        fee = remaining_balance * terms.monthly_management_fee_rate
        principal = (
            self.installment(terms) - self.rounding.round(interest) - self.rounding.round(fee)
        )
        return PeriodSplit(principal=max(principal, _ZERO), interest=interest, fee=fee)


class BalloonStructure(PaymentMethod):
    """Interest and fee only, then the whole principal in the final period."""

    method = CalculationMethod.BALLOON_STRUCTURE

    def compute_period(self, remaining_balance, terms, period_index):
        principal = remaining_balance if period_index >= terms.term_months else _ZERO
        return PeriodSplit(
            principal=principal,
            interest=remaining_balance * terms.monthly_interest_rate,
            fee=remaining_balance * terms.monthly_management_fee_rate,
        )


_METHODS: Dict[CalculationMethod, Type[PaymentMethod]] = {
    CalculationMethod.FLAT_RATE: FlatRate,
    CalculationMethod.REDUCING_BALANCE: ReducingBalance,
    CalculationMethod.BALLOON_STRUCTURE: BalloonStructure,
}


def method_for(method: CalculationMethod, rounding: RoundingPolicy = DEFAULT_ROUNDING) -> PaymentMethod:
    """Return the payment method for ``method``; anything else gets ReducingBalance."""
    return _METHODS.get(method, ReducingBalance)(rounding)
