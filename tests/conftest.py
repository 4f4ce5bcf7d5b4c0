"""Shared fixtures for the repayment-schedule test suite."""

import os
from datetime import date
from decimal import Decimal

import pytest

# The web app opens its store at import time; keep it off the filesystem.
os.environ.setdefault("LOAN_SCHEDULE_DATABASE_URL", "sqlite://")

from loan_schedule.data_models import CalculationMethod, LoanTerms  # noqa: E402


@pytest.fixture
def make_terms():
    """Build LoanTerms with sensible defaults, overridable per test."""

    def _make(**overrides):
        values = {
            "principal": Decimal("1200000"),
            "monthly_interest_rate": Decimal("0.035"),
            "monthly_management_fee_rate": Decimal("0"),
            "term_months": 12,
            "disbursement_date": date(2025, 1, 1),
            "calculation_method": CalculationMethod.REDUCING_BALANCE,
        }
        values.update(overrides)
        return LoanTerms(**values)

    return _make
