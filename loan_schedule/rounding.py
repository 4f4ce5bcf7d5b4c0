"""Currency rounding for schedule amounts.

Every monetary figure that leaves the engine goes through a single
``RoundingPolicy`` so that the disbursement ledger and the contract document
always agree to the cent.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal

from .data_models import PeriodSplit


@dataclass(frozen=True)
class RoundingPolicy:
    """Round-half-up to a fixed number of decimal places."""

    places: int = 2

    @property
    def unit(self) -> Decimal:
        return Decimal(1).scaleb(-self.places)

    def round(self, amount: Decimal) -> Decimal:
        return Decimal(amount).quantize(self.unit, rounding=ROUND_HALF_UP)

    def finalize_last_period(self, split: PeriodSplit, remaining_balance: Decimal) -> PeriodSplit:
        """Make the last period repay exactly what is still owed.

        The computed principal is replaced by ``remaining_balance`` (the
        balance before the period) so accumulated rounding never leaves a
        tail. Interest and fee are left untouched.
        """
        return replace(split, principal=remaining_balance)


DEFAULT_ROUNDING = RoundingPolicy()
