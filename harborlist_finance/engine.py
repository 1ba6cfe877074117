"""Core calculation engine for the boat finance calculator.

This module implements the fixed-rate amortization math behind every finance
screen of the marketplace: the monthly payment and totals for a loan, the
optional month-by-month payment schedule, side-by-side loan scenarios and the
suggested interest rates shown next to the calculator.

All functions are pure. Money is computed in ``Decimal`` and only the
reported figures are rounded to the cent; see ``round_currency``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import Any, Iterator, List, Mapping, Optional, Sequence

from .data_models import CalculationResult, LoanParameters, LoanScenario, PaymentScheduleItem
from .utils import add_months, decimal_from_str, generate_id, int_from_value, now_millis
from .validation import ValidationError, validate_loan_parameters

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MAX_SCENARIOS = 10

_PARAM_FIELDS = ("boat_price", "down_payment", "interest_rate", "term_months")


def round_currency(value: Decimal) -> Decimal:
    """Round a money amount to the nearest cent, halves rounding up."""
    rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
    # no "-0.00" from tiny negative residuals
    return rounded.copy_abs() if rounded.is_zero() else rounded


def monthly_rate_for(interest_rate: Decimal) -> Decimal:
    """Convert an annual percentage rate into the monthly decimal rate."""
    return (interest_rate / Decimal(100)) / Decimal(12)


def _calculate_monthly_payment(loan_amount: Decimal, monthly_rate: Decimal, term: int) -> Decimal:
    """Return the fixed monthly payment that amortizes ``loan_amount``.

    The formula is:

        payment = L * r * (1 + r)^n / ((1 + r)^n - 1)

    where ``L`` is the loan amount, ``r`` the monthly rate and ``n`` the
    number of payments. With a zero rate the payment is simply ``L / n``.
    """
    if term <= 0:
        raise ValueError("Term must be positive")
    if monthly_rate == 0:
        return loan_amount / Decimal(term)
    factor = (1 + monthly_rate) ** term
    if factor == 1:
        # rate too small to register at this precision
        return loan_amount / Decimal(term)
    return loan_amount * monthly_rate * factor / (factor - 1)


def generate_payment_schedule(
    loan_amount: Decimal,
    monthly_rate: Decimal,
    monthly_payment: Decimal,
    term_months: int,
    start_date: date,
) -> Iterator[PaymentScheduleItem]:
    """Yield the month-by-month breakdown of a loan.

    Payment ``k`` falls ``k`` calendar months after ``start_date``. The
    running balance is carried unrounded; only the yielded items are rounded
    to cents. The balance never goes below zero and the final payment always
    leaves it at exactly zero.
    """
    balance = loan_amount
    for payment_number in range(1, term_months + 1):
        interest_amount = balance * monthly_rate
        principal_amount = monthly_payment - interest_amount
        balance -= principal_amount
        if balance < 0 or payment_number == term_months:
            balance = Decimal(0)
        yield PaymentScheduleItem(
            payment_number=payment_number,
            payment_date=add_months(start_date, payment_number),
            principal_amount=round_currency(principal_amount),
            interest_amount=round_currency(interest_amount),
            total_payment=round_currency(monthly_payment),
            remaining_balance=round_currency(balance),
        )


def calculate_loan(
    params: LoanParameters,
    include_schedule: bool = False,
    start_date: Optional[date] = None,
) -> CalculationResult:
    """Calculate the monthly payment and totals for a fixed-rate loan.

    Parameters
    ----------
    params: LoanParameters
        Boat price, down payment, annual rate in percent and term in months.
        Ranges are not checked here; see ``validation.validate_loan_parameters``.
    include_schedule: bool
        Whether to expand the full payment schedule.
    start_date: date, optional
        Date the schedule counts months from. Defaults to today.

    Returns
    -------
    CalculationResult
        ``monthly_payment``, ``total_interest`` and ``total_cost`` are each
        rounded to the cent on their own, so ``total_interest`` may differ by
        a cent from ``monthly_payment * term_months - loan_amount``.
    """
    loan_amount = params.loan_amount
    monthly_rate = monthly_rate_for(params.interest_rate)
    monthly_payment = _calculate_monthly_payment(loan_amount, monthly_rate, params.term_months)

    total_payments = monthly_payment * params.term_months
    total_interest = total_payments - loan_amount
    total_cost = params.boat_price + total_interest

    schedule = None
    if include_schedule:
        schedule = list(
            generate_payment_schedule(
                loan_amount,
                monthly_rate,
                monthly_payment,
                params.term_months,
                start_date or date.today(),
            )
        )

    result = CalculationResult(
        boat_price=params.boat_price,
        down_payment=params.down_payment,
        loan_amount=loan_amount,
        interest_rate=params.interest_rate,
        term_months=params.term_months,
        monthly_payment=round_currency(monthly_payment),
        total_interest=round_currency(total_interest),
        total_cost=round_currency(total_cost),
        payment_schedule=schedule,
    )
    logger.debug(
        "Calculated loan of %s at %s%% over %d months: payment %s",
        loan_amount,
        params.interest_rate,
        params.term_months,
        result.monthly_payment,
    )
    return result


def _apply_variation(base: LoanParameters, variation: Mapping[str, Any]) -> LoanParameters:
    changes = {}
    for name in _PARAM_FIELDS:
        value = variation.get(name)
        if value is None:
            continue
        changes[name] = int_from_value(value) if name == "term_months" else decimal_from_str(value)
    return replace(base, **changes)


def calculate_scenarios(
    base_params: LoanParameters,
    variations: Sequence[Mapping[str, Any]],
    listing_id: str = "",
    validate: bool = False,
) -> List[LoanScenario]:
    """Calculate several variations of a base loan for comparison.

    Each variation is a mapping of ``LoanParameters`` field names to override,
    plus an optional ``name``. Unnamed variations are called ``Scenario N``.
    Between one and ``MAX_SCENARIOS`` variations are accepted. With
    ``validate`` each merged scenario must pass ``validate_loan_parameters``;
    the error message is prefixed with the scenario name.
    """
    if not variations:
        raise ValidationError("At least one scenario is required")
    if len(variations) > MAX_SCENARIOS:
        raise ValidationError(f"Maximum of {MAX_SCENARIOS} scenarios allowed")

    created_at = now_millis()
    scenarios: List[LoanScenario] = []
    for index, variation in enumerate(variations, start=1):
        params = _apply_variation(base_params, variation)
        name = variation.get("name") or f"Scenario {index}"
        if validate:
            try:
                validate_loan_parameters(params)
            except ValidationError as exc:
                raise ValidationError(f"{name}: {exc}") from exc
        scenarios.append(
            LoanScenario(
                scenario_id=generate_id(),
                name=name,
                params=params,
                result=calculate_loan(params),
                calculation_id=generate_id(),
                listing_id=listing_id,
                created_at=created_at,
            )
        )
    return scenarios


def _whole_dollars(value: Decimal) -> Decimal:
    return value.quantize(Decimal(1), rounding=ROUND_HALF_UP)


def default_scenarios(boat_price: Decimal) -> List[LoanScenario]:
    """Return the standard comparison scenarios shown for a listing's price."""
    base = LoanParameters(
        boat_price=boat_price,
        down_payment=_whole_dollars(boat_price * Decimal("0.2")),
        interest_rate=Decimal("6.5"),
        term_months=180,
    )
    variations = [
        {"name": "Conservative (20% down, 15 years)"},
        {
            "name": "Lower Down Payment (10% down, 15 years)",
            "down_payment": _whole_dollars(boat_price * Decimal("0.1")),
        },
        {"name": "Shorter Term (20% down, 10 years)", "term_months": 120},
        {"name": "Longer Term (20% down, 20 years)", "term_months": 240},
        {
            "name": "Higher Down Payment (30% down, 15 years)",
            "down_payment": _whole_dollars(boat_price * Decimal("0.3")),
        },
        {"name": "Premium Rate (20% down, 7.5%, 15 years)", "interest_rate": Decimal("7.5")},
    ]
    return calculate_scenarios(base, variations)


def suggested_interest_rates(loan_amount: Decimal, term_months: int) -> List[Decimal]:
    """Return four indicative annual rates (percent) for a loan.

    Larger loans get a lower base rate and small loans a higher one; long
    terms add half a point and short terms take a quarter point off. The
    result brackets the base rate: one point below, the base, and one and two
    points above.
    """
    base_rate = Decimal("6.5")
    if loan_amount >= 500_000:
        base_rate = Decimal("5.5")
    elif loan_amount >= 100_000:
        base_rate = Decimal("6.0")
    elif loan_amount < 25_000:
        base_rate = Decimal("8.0")

    if term_months > 240:
        base_rate += Decimal("0.5")
    elif term_months < 60:
        base_rate -= Decimal("0.25")

    return [round_currency(base_rate + offset) for offset in (Decimal(-1), Decimal(0), Decimal(1), Decimal(2))]
