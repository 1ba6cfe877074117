from datetime import date
from decimal import Decimal

import pytest

from harborlist_finance.data_models import LoanParameters
from harborlist_finance.engine import (
    MAX_SCENARIOS,
    calculate_loan,
    calculate_scenarios,
    default_scenarios,
    generate_payment_schedule,
    monthly_rate_for,
    round_currency,
    suggested_interest_rates,
)
from harborlist_finance.validation import ValidationError


def params(price="100000", down="20000", rate="6.5", term=180):
    return LoanParameters(
        boat_price=Decimal(price),
        down_payment=Decimal(down),
        interest_rate=Decimal(rate),
        term_months=term,
    )


def test_fifteen_year_loan_known_case():
    result = calculate_loan(params())
    assert result.loan_amount == Decimal("80000")
    assert result.monthly_payment == Decimal("696.89")
    assert result.total_interest == Decimal("45439.46")
    assert result.total_cost == Decimal("145439.46")
    assert result.payment_schedule is None


def test_twenty_year_loan_known_case():
    result = calculate_loan(params(term=240))
    assert result.monthly_payment == Decimal("596.46")
    assert result.total_interest == Decimal("63150.04")
    assert result.total_cost == Decimal("163150.04")


def test_totals_rounded_from_unrounded_payment():
    # 696.89 * 180 - 80000 would give 45440.20
    result = calculate_loan(params())
    assert result.monthly_payment * 180 - result.loan_amount != result.total_interest


def test_total_cost_is_price_plus_interest():
    for p in (params(), params(term=60, rate="12.25"), params(price="250000", down="0", rate="3")):
        result = calculate_loan(p)
        assert result.total_cost == p.boat_price + result.total_interest


def test_zero_rate_is_straight_line():
    result = calculate_loan(params(rate="0", term=240))
    assert result.monthly_payment == Decimal("333.33")
    assert result.total_interest == 0
    assert str(result.total_interest) == "0.00"
    assert result.total_cost == Decimal("100000")


def test_zero_rate_exact_payment():
    result = calculate_loan(params(price="12000", down="0", rate="0", term=12))
    assert result.monthly_payment == Decimal("1000.00")
    assert result.total_interest == 0
    assert result.total_cost == Decimal("12000")


def test_fully_paid_down():
    result = calculate_loan(params(price="50000", down="50000"))
    assert result.loan_amount == 0
    assert result.monthly_payment == 0
    assert result.total_interest == 0
    assert result.total_cost == Decimal("50000")


def test_out_of_range_input_is_not_rejected():
    result = calculate_loan(params(price="500", down="100", rate="45", term=6))
    assert result.loan_amount == Decimal("400")
    assert result.monthly_payment > 0


def test_non_positive_term_raises():
    with pytest.raises(ValueError):
        calculate_loan(params(term=0))


def test_same_input_same_output():
    start = date(2025, 3, 15)
    first = calculate_loan(params(), include_schedule=True, start_date=start)
    second = calculate_loan(params(), include_schedule=True, start_date=start)
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_schedule_first_payment_breakdown():
    result = calculate_loan(params(term=240), include_schedule=True, start_date=date(2025, 1, 1))
    schedule = result.payment_schedule
    assert len(schedule) == 240
    first = schedule[0]
    assert first.payment_number == 1
    assert first.interest_amount == Decimal("433.33")
    assert first.principal_amount == Decimal("163.13")
    assert first.total_payment == Decimal("596.46")
    assert first.payment_date == date(2025, 2, 1)


def test_schedule_ends_at_zero_and_principal_sums_to_loan():
    for term in (12, 180, 360):
        result = calculate_loan(params(term=term), include_schedule=True, start_date=date(2025, 1, 1))
        schedule = result.payment_schedule
        assert [item.payment_number for item in schedule] == list(range(1, term + 1))
        assert schedule[-1].remaining_balance == 0
        principal_total = sum(item.principal_amount for item in schedule)
        assert abs(principal_total - result.loan_amount) <= Decimal("0.01") * term


def test_schedule_balance_never_negative():
    result = calculate_loan(params(rate="29.9", term=12), include_schedule=True, start_date=date(2025, 1, 1))
    assert all(item.remaining_balance >= 0 for item in result.payment_schedule)


def test_schedule_dates_clamp_to_month_end():
    schedule = list(
        generate_payment_schedule(
            Decimal("1200"), Decimal(0), Decimal("100"), 12, date(2024, 1, 31)
        )
    )
    assert schedule[0].payment_date == date(2024, 2, 29)
    assert schedule[1].payment_date == date(2024, 3, 31)
    assert schedule[-1].payment_date == date(2025, 1, 31)


def test_schedule_generator_is_restartable():
    args = (Decimal("80000"), monthly_rate_for(Decimal("6.5")), Decimal("696.8858922379"), 180, date(2025, 1, 1))
    assert list(generate_payment_schedule(*args)) == list(generate_payment_schedule(*args))


def test_round_currency_half_up():
    assert round_currency(Decimal("1.005")) == Decimal("1.01")
    assert round_currency(Decimal("2.675")) == Decimal("2.68")
    assert round_currency(Decimal("-0.001")) == Decimal("0.00")
    assert str(round_currency(Decimal("-0.001"))) == "0.00"


def test_calculate_scenarios_merges_variations():
    scenarios = calculate_scenarios(params(), [{"term_months": 240}, {"name": "Cheap", "interest_rate": "5"}])
    assert [s.name for s in scenarios] == ["Scenario 1", "Cheap"]
    assert scenarios[0].params.term_months == 240
    assert scenarios[0].result.monthly_payment == Decimal("596.46")
    assert scenarios[1].params.interest_rate == Decimal("5")
    assert scenarios[1].params.term_months == 180
    assert scenarios[0].scenario_id != scenarios[1].scenario_id


def test_calculate_scenarios_limits():
    with pytest.raises(ValidationError, match="At least one scenario"):
        calculate_scenarios(params(), [])
    with pytest.raises(ValidationError, match="Maximum of 10"):
        calculate_scenarios(params(), [{}] * (MAX_SCENARIOS + 1))


def test_default_scenarios():
    scenarios = default_scenarios(Decimal("100000"))
    assert len(scenarios) == 6
    by_name = {s.name: s for s in scenarios}
    conservative = by_name["Conservative (20% down, 15 years)"]
    assert conservative.params.down_payment == Decimal("20000")
    assert conservative.result.monthly_payment == Decimal("696.89")
    assert by_name["Lower Down Payment (10% down, 15 years)"].params.down_payment == Decimal("10000")
    assert by_name["Longer Term (20% down, 20 years)"].result.monthly_payment == Decimal("596.46")
    assert by_name["Premium Rate (20% down, 7.5%, 15 years)"].result.monthly_payment == Decimal("741.61")


def test_default_scenarios_round_down_payment_to_dollars():
    scenarios = default_scenarios(Decimal("33333"))
    assert scenarios[0].params.down_payment == Decimal("6667")


@pytest.mark.parametrize(
    "amount, term, expected",
    [
        ("80000", 180, ["5.5", "6.5", "7.5", "8.5"]),
        ("600000", 300, ["5", "6", "7", "8"]),
        ("150000", 240, ["5", "6", "7", "8"]),
        ("20000", 36, ["6.75", "7.75", "8.75", "9.75"]),
    ],
)
def test_suggested_interest_rates(amount, term, expected):
    assert suggested_interest_rates(Decimal(amount), term) == [Decimal(r) for r in expected]


def test_calculate_scenarios_validation_names_the_scenario():
    with pytest.raises(ValidationError, match="^Scenario 1: Interest rate must be between 0% and 30%$"):
        calculate_scenarios(params(), [{"interest_rate": "1e7000"}], validate=True)
    with pytest.raises(ValidationError, match="^Long haul: Loan term must be between 12 and 360 months$"):
        calculate_scenarios(params(), [{}, {"name": "Long haul", "term_months": 480}], validate=True)
    # unchecked by default
    assert calculate_scenarios(params(), [{"interest_rate": "35"}])[0].result.monthly_payment > 0


def test_calculate_scenarios_reject_fractional_term():
    with pytest.raises(ValueError, match="Expected a whole number"):
        calculate_scenarios(params(), [{"term_months": 180.9}])
    with pytest.raises(ValueError, match="Expected a whole number"):
        calculate_scenarios(params(), [{"term_months": True}])
    assert calculate_scenarios(params(), [{"term_months": "240"}])[0].params.term_months == 240
