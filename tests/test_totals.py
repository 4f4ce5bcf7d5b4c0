"""
Tests for schedule aggregation.
"""

from datetime import date
from decimal import Decimal

from loan_schedule.data_models import CalculationMethod, Totals
from loan_schedule.engine import generate_schedule
from loan_schedule.totals import summarize


class TestSummarize:

    def test_empty_schedule(self):
        totals = summarize([])
        assert totals == Totals()
        assert totals.total_repayment == Decimal("0")
        assert totals.maturity_date is None

    def test_flat_rate_totals(self, make_terms):
        terms = make_terms(
            principal=Decimal("1200"),
            monthly_interest_rate=Decimal("0.02"),
            monthly_management_fee_rate=Decimal("0.01"),
            term_months=12,
            calculation_method=CalculationMethod.FLAT_RATE,
        )
        totals = summarize(generate_schedule(terms))
        assert totals.total_principal == Decimal("1200")
        assert totals.total_interest == Decimal("288")
        assert totals.total_fees == Decimal("144")
        assert totals.total_repayment == Decimal("1632")
        assert totals.representative_installment == Decimal("136")
        assert totals.number_of_payments == 12
        assert totals.first_due_date == date(2025, 2, 1)
        assert totals.maturity_date == date(2026, 1, 1)

    def test_repayment_is_sum_of_totals(self, make_terms):
        schedule = generate_schedule(make_terms(monthly_management_fee_rate=Decimal("0.01")))
        totals = summarize(schedule)
        assert totals.total_repayment == sum(e.total_payment for e in schedule)
        assert totals.total_principal == Decimal("1200000")

    def test_representative_installment_for_balloon(self, make_terms):
        terms = make_terms(
            principal=Decimal("1000"),
            monthly_interest_rate=Decimal("0.05"),
            term_months=6,
            calculation_method=CalculationMethod.BALLOON_STRUCTURE,
        )
        totals = summarize(generate_schedule(terms))
        # five interest-only payments outnumber the single balloon
        assert totals.representative_installment == Decimal("50")
        assert totals.total_repayment == Decimal("1300")

    def test_tie_goes_to_earliest_period(self, make_terms):
        terms = make_terms(
            principal=Decimal("1000"),
            monthly_interest_rate=Decimal("0.05"),
            term_months=2,
            calculation_method=CalculationMethod.BALLOON_STRUCTURE,
        )
        schedule = generate_schedule(terms)
        assert summarize(schedule).representative_installment == schedule[0].total_payment

    def test_reducing_balance_installment_is_level_amount(self, make_terms):
        schedule = generate_schedule(make_terms())
        assert summarize(schedule).representative_installment == schedule[0].total_payment
