"""Output helpers for the finance calculator.

Plain-text rendering of calculation results, payment schedules and scenario
comparisons for the terminal, plus the short summary text a buyer copies when
sharing a calculation. Only built-in printing and string formatting is used.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from .data_models import CalculationResult, LoanScenario, PaymentScheduleItem


def format_currency(amount: Decimal, decimals: int = 2) -> str:
    """Format an amount as US dollars, e.g. ``$145,439.46``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.{decimals}f}"


def format_term(term_months: int) -> str:
    years, months = divmod(term_months, 12)
    if months == 0:
        return "1 year" if years == 1 else f"{years} years"
    return f"{term_months} months"


def print_summary(result: CalculationResult) -> None:
    """Print the key figures of a calculation in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Boat price         : {format_currency(result.boat_price)}")
    print(f"Down payment       : {format_currency(result.down_payment)}")
    print(f"Loan amount        : {format_currency(result.loan_amount)}")
    print(f"Interest rate      : {result.interest_rate}%")
    print(f"Term               : {result.term_months} months")
    print(f"Monthly payment    : {format_currency(result.monthly_payment)}")
    print(f"Total interest     : {format_currency(result.total_interest)}")
    print(f"Total cost         : {format_currency(result.total_cost)}")
    print("-" * 72)


def print_schedule(schedule: Iterable[PaymentScheduleItem]) -> None:
    """Print the payment schedule as a tab-separated table."""
    headers = ["Payment", "Date", "Principal", "Interest", "Total", "Balance"]
    print("\t".join(headers))
    for item in schedule:
        row = [
            str(item.payment_number),
            item.payment_date.isoformat(),
            f"{item.principal_amount:.2f}",
            f"{item.interest_amount:.2f}",
            f"{item.total_payment:.2f}",
            f"{item.remaining_balance:.2f}",
        ]
        print("\t".join(row))


def print_comparison(scenarios: Sequence[LoanScenario]) -> None:
    """Print loan scenarios side by side.

    The last column is the difference in total cost against the first
    scenario; a negative number means the scenario is cheaper overall.
    """
    print("Comparison")
    print("=" * 100)
    print(f"{'Scenario':42s} {'Down':>10s} {'Rate':>6s} {'Term':>5s} {'Monthly':>10s} {'Total cost':>12s} {'vs first':>10s}")
    if not scenarios:
        print("=" * 100)
        return
    baseline = scenarios[0].result.total_cost
    for scenario in scenarios:
        r = scenario.result
        diff = r.total_cost - baseline
        print(
            f"{scenario.name[:42]:42s} {r.down_payment:10.0f} {r.interest_rate:6.2f} "
            f"{r.term_months:5d} {r.monthly_payment:10.2f} {r.total_cost:12.2f} {diff:10.2f}"
        )
    print("=" * 100)


def share_text(result: CalculationResult) -> str:
    """Return the plain-text summary used when a calculation is shared."""
    lines = [
        "Boat Finance Calculation:",
        f"Boat Price: {format_currency(result.boat_price, 0)}",
        f"Down Payment: {format_currency(result.down_payment, 0)}",
        f"Loan Amount: {format_currency(result.loan_amount, 0)}",
        f"Interest Rate: {result.interest_rate}%",
        f"Term: {format_term(result.term_months)}",
        f"Monthly Payment: {format_currency(result.monthly_payment)}",
        f"Total Interest: {format_currency(result.total_interest)}",
        f"Total Cost: {format_currency(result.total_cost)}",
    ]
    return "\n".join(lines)
