"""
Test suite for the schedule generator.

Covers the properties every schedule must have whatever the method (principal
conservation, exact zero-out, monthly due dates, exact component sums), the
shape of each method's schedule, and the degenerate inputs that yield no
schedule. All financial math must be exact to the cent.
"""

from datetime import date
from decimal import Decimal

import pytest

from loan_schedule.data_models import CalculationMethod
from loan_schedule.engine import generate_schedule, level_installment
from loan_schedule.methods import calculate_annuity_payment
from loan_schedule.utils import add_months

ALL_METHODS = list(CalculationMethod)
TERMS = [1, 2, 3, 7, 12, 24, 60, 120, 360]


class TestScheduleProperties:
    """Properties that hold for every method and term"""

    @pytest.mark.parametrize("method", ALL_METHODS)
    @pytest.mark.parametrize("term", TERMS)
    def test_principal_conserved_and_zeroed(self, make_terms, method, term):
        terms = make_terms(
            principal=Decimal("1234567.89"),
            monthly_interest_rate=Decimal("0.0275"),
            monthly_management_fee_rate=Decimal("0.015"),
            term_months=term,
            calculation_method=method,
        )
        schedule = generate_schedule(terms)

        assert len(schedule) == term
        assert sum(e.principal_portion for e in schedule) == Decimal("1234567.89")
        assert schedule[-1].remaining_balance == Decimal("0")
        assert all(e.remaining_balance >= 0 for e in schedule)
        assert str(schedule[-1].remaining_balance) == "0.00"

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_components_sum_to_total(self, make_terms, method):
        terms = make_terms(
            principal=Decimal("999999.99"),
            monthly_interest_rate=Decimal("0.0333"),
            monthly_management_fee_rate=Decimal("0.0111"),
            term_months=37,
            calculation_method=method,
        )
        for entry in generate_schedule(terms):
            assert entry.total_payment == (
                entry.principal_portion + entry.interest_portion + entry.management_fee_portion
            )
            for amount in (
                entry.principal_portion,
                entry.interest_portion,
                entry.management_fee_portion,
                entry.total_payment,
                entry.remaining_balance,
            ):
                assert amount >= 0
                assert amount == amount.quantize(Decimal("0.01"))

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_balance_declines_by_principal_portion(self, make_terms, method):
        terms = make_terms(term_months=18, calculation_method=method)
        schedule = generate_schedule(terms)
        previous = Decimal("1200000.00")
        for entry in schedule:
            assert entry.remaining_balance == previous - entry.principal_portion
            previous = entry.remaining_balance

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_due_dates_advance_one_month(self, make_terms, method):
        terms = make_terms(term_months=30, disbursement_date=date(2024, 11, 15), calculation_method=method)
        schedule = generate_schedule(terms)
        assert [e.payment_number for e in schedule] == list(range(1, 31))
        assert schedule[0].due_date == date(2024, 12, 15)
        for previous, current in zip(schedule, schedule[1:]):
            assert current.due_date == add_months(previous.due_date, 1)

    def test_month_end_disbursement_clamps_each_due_date(self, make_terms):
        terms = make_terms(term_months=4, disbursement_date=date(2024, 1, 31))
        due_dates = [e.due_date for e in generate_schedule(terms)]
        assert due_dates == [
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
            date(2024, 5, 31),
        ]

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_same_terms_same_schedule(self, make_terms, method):
        terms = make_terms(calculation_method=method, monthly_management_fee_rate=Decimal("0.02"))
        assert generate_schedule(terms) == generate_schedule(terms)
        assert repr(generate_schedule(terms)) == repr(generate_schedule(terms))


class TestDegenerateInputs:

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_zero_principal_gives_empty_schedule(self, make_terms, method):
        assert generate_schedule(make_terms(principal=0, calculation_method=method)) == []

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_zero_term_gives_empty_schedule(self, make_terms, method):
        assert generate_schedule(make_terms(term_months=0, calculation_method=method)) == []

    def test_negative_values_give_empty_schedule(self, make_terms):
        assert generate_schedule(make_terms(principal=Decimal("-100"))) == []
        assert generate_schedule(make_terms(term_months=-3)) == []

    def test_level_installment_of_incomplete_terms(self, make_terms):
        assert level_installment(make_terms(term_months=0)) == Decimal("0")


class TestReducingBalanceSchedule:

    def test_reference_scenario(self, make_terms):
        """1.2M at 3.5 % a month over a year, no management fee"""
        terms = make_terms()
        schedule = generate_schedule(terms)

        assert len(schedule) == 12
        assert schedule[0].due_date == date(2025, 2, 1)
        assert schedule[11].due_date == date(2026, 1, 1)
        assert schedule[11].remaining_balance == Decimal("0")
        assert sum(e.principal_portion for e in schedule) == Decimal("1200000")

        expected = calculate_annuity_payment(Decimal("1200000"), Decimal("0.035"), 12).quantize(Decimal("0.01"))
        assert Decimal("124000") < expected < Decimal("124400")
        assert level_installment(terms) == expected
        assert all(e.total_payment == expected for e in schedule[:-1])
        assert abs(schedule[-1].total_payment - expected) < Decimal("1.00")
        assert schedule[0].interest_portion == Decimal("42000.00")

    def test_zero_rate_spreads_principal_evenly(self, make_terms):
        terms = make_terms(principal=Decimal("1000"), monthly_interest_rate=0, term_months=3)
        schedule = generate_schedule(terms)
        assert [e.principal_portion for e in schedule] == [
            Decimal("333.33"),
            Decimal("333.33"),
            Decimal("333.34"),
        ]
        assert [e.remaining_balance for e in schedule] == [
            Decimal("666.67"),
            Decimal("333.34"),
            Decimal("0"),
        ]

    def test_interest_and_fee_follow_declining_balance(self, make_terms):
        terms = make_terms(
            principal=Decimal("10000"),
            monthly_interest_rate=Decimal("0.006"),
            monthly_management_fee_rate=Decimal("0.004"),
        )
        schedule = generate_schedule(terms)
        assert schedule[0].interest_portion == Decimal("60.00")
        assert schedule[0].management_fee_portion == Decimal("40.00")
        assert schedule[0].total_payment == Decimal("888.49")
        assert schedule[1].interest_portion == (schedule[0].remaining_balance * Decimal("0.006")).quantize(
            Decimal("0.01")
        )
        assert schedule[1].interest_portion < schedule[0].interest_portion

    def test_single_period_repays_everything(self, make_terms):
        terms = make_terms(principal=Decimal("5000"), monthly_interest_rate=Decimal("0.1"), term_months=1)
        (entry,) = generate_schedule(terms)
        assert entry.principal_portion == Decimal("5000")
        assert entry.interest_portion == Decimal("500.00")
        assert entry.total_payment == Decimal("5500.00")
        assert entry.remaining_balance == Decimal("0")

    def test_sub_cent_principal_is_rounded_once(self, make_terms):
        terms = make_terms(principal=Decimal("1000.005"), monthly_interest_rate=0, term_months=2)
        schedule = generate_schedule(terms)
        assert sum(e.principal_portion for e in schedule) == Decimal("1000.01")


class TestFlatRateSchedule:

    def test_constant_installments(self, make_terms):
        terms = make_terms(
            principal=Decimal("1200"),
            monthly_interest_rate=Decimal("0.02"),
            term_months=12,
            calculation_method=CalculationMethod.FLAT_RATE,
        )
        schedule = generate_schedule(terms)
        assert {e.principal_portion for e in schedule} == {Decimal("100")}
        assert {e.interest_portion for e in schedule} == {Decimal("24")}
        assert {e.total_payment for e in schedule} == {Decimal("124")}

    def test_last_period_absorbs_rounding(self, make_terms):
        terms = make_terms(
            principal=Decimal("1000"),
            monthly_interest_rate=Decimal("0.03"),
            monthly_management_fee_rate=Decimal("0.01"),
            term_months=3,
            calculation_method=CalculationMethod.FLAT_RATE,
        )
        schedule = generate_schedule(terms)
        assert [e.principal_portion for e in schedule] == [
            Decimal("333.33"),
            Decimal("333.33"),
            Decimal("333.34"),
        ]
        assert {e.interest_portion for e in schedule} == {Decimal("30.00")}
        assert {e.management_fee_portion for e in schedule} == {Decimal("10.00")}
        assert schedule[-1].total_payment == Decimal("373.34")

    @pytest.mark.parametrize("term", [5, 7, 11, 13, 360])
    def test_all_but_last_identical(self, make_terms, term):
        terms = make_terms(
            principal=Decimal("777777.77"),
            monthly_interest_rate=Decimal("0.041"),
            term_months=term,
            calculation_method=CalculationMethod.FLAT_RATE,
        )
        schedule = generate_schedule(terms)
        head = schedule[:-1]
        expected_principal = (Decimal("777777.77") / term).quantize(Decimal("0.01"))
        assert all(e.principal_portion == expected_principal for e in head)
        assert len({e.interest_portion for e in schedule}) == 1

    def test_tiny_principal_is_repaid_before_the_term_ends(self, make_terms):
        terms = make_terms(
            principal=Decimal("0.10"),
            monthly_interest_rate=Decimal("0.02"),
            term_months=15,
            calculation_method=CalculationMethod.FLAT_RATE,
        )
        schedule = generate_schedule(terms)
        assert [e.principal_portion for e in schedule] == [Decimal("0.01")] * 10 + [Decimal("0")] * 5
        assert sum(e.principal_portion for e in schedule) == Decimal("0.10")
        assert all(e.remaining_balance == 0 for e in schedule[9:])


class TestBalloonSchedule:

    def test_shape(self, make_terms):
        terms = make_terms(
            principal=Decimal("1000"),
            monthly_interest_rate=Decimal("0.05"),
            monthly_management_fee_rate=Decimal("0.01"),
            term_months=3,
            calculation_method=CalculationMethod.BALLOON_STRUCTURE,
        )
        schedule = generate_schedule(terms)
        assert [e.principal_portion for e in schedule] == [Decimal("0"), Decimal("0"), Decimal("1000")]
        assert [e.total_payment for e in schedule] == [Decimal("60"), Decimal("60"), Decimal("1060")]
        assert [e.remaining_balance for e in schedule] == [Decimal("1000"), Decimal("1000"), Decimal("0")]

    @pytest.mark.parametrize("term", [1, 2, 24, 360])
    def test_full_principal_on_last_period(self, make_terms, term):
        terms = make_terms(
            principal=Decimal("250000.50"),
            term_months=term,
            calculation_method=CalculationMethod.BALLOON_STRUCTURE,
        )
        schedule = generate_schedule(terms)
        assert all(e.principal_portion == 0 for e in schedule[:-1])
        assert schedule[-1].principal_portion == Decimal("250000.50")
