"""Command-line interface for the boat finance calculator.

This module uses ``click`` to implement a multi-command interface. Buyers and
dealers can calculate a loan (optionally with its full payment schedule),
compare the standard financing scenarios for a boat price, and look up
suggested interest rates. Results print to the terminal or export to
JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import List, Optional

import click

from .data_models import CalculationResult, LoanParameters, PaymentScheduleItem
from .engine import calculate_loan, default_scenarios, round_currency, suggested_interest_rates
from .formatter import format_currency, print_comparison, print_schedule, print_summary, share_text
from .utils import decimal_from_str, parse_amount, parse_date
from .validation import ValidationError, validate_loan_parameters

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def _amount(value: str, name: str):
    try:
        return parse_amount(value)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}", param_hint=name)


def build_params_from_options(
    price: str,
    down_payment: Optional[str],
    down_percent: Optional[float],
    rate: float,
    term: int,
) -> LoanParameters:
    """Turn raw option values into ``LoanParameters``.

    The down payment may be given as an amount or as a percentage of the
    price; an amount wins when both are present. With neither, nothing is
    paid down.
    """
    boat_price = _amount(price, "--price")
    if down_payment:
        down = _amount(down_payment, "--down-payment")
    elif down_percent is not None:
        down = round_currency(boat_price * decimal_from_str(down_percent) / 100)
    else:
        down = decimal_from_str("0")
    return LoanParameters(
        boat_price=boat_price,
        down_payment=down,
        interest_rate=decimal_from_str(rate),
        term_months=term,
    )


def export_to_json(path: Path, result: CalculationResult) -> None:
    """Export a calculation (and its schedule, if any) to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump({"calculation": result.to_dict()}, f, indent=2)


def export_to_csv(path: Path, schedule: List[PaymentScheduleItem]) -> None:
    """Export a payment schedule to a CSV file."""
    header = [
        "Payment_Number",
        "Payment_Date",
        "Principal",
        "Interest",
        "Total_Payment",
        "Remaining_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for item in schedule:
            writer.writerow(
                [
                    item.payment_number,
                    item.payment_date.isoformat(),
                    f"{item.principal_amount:.2f}",
                    f"{item.interest_amount:.2f}",
                    f"{item.total_payment:.2f}",
                    f"{item.remaining_balance:.2f}",
                ]
            )


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """Boat loan calculator for HarborList listings."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@cli.command()
@click.option("--price", "-p", "price", required=True, help="Boat price (accepts 85k, 1.2m)")
@click.option("--down-payment", "-d", "down_payment", help="Down payment amount")
@click.option("--down-percent", "down_percent", type=float, help="Down payment as a percent of the price")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
@click.option("--schedule", "show_schedule", is_flag=True, help="Include the payment schedule")
@click.option("--start-date", "-s", "start_date", help="Schedule start date (YYYY-MM-DD); defaults to today")
@click.option("--share", "share", is_flag=True, help="Print the shareable text summary instead")
@click.option("--no-validate", "no_validate", is_flag=True, help="Skip marketplace range checks")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def calculate(
    price: str,
    down_payment: Optional[str],
    down_percent: Optional[float],
    rate: float,
    term: int,
    show_schedule: bool,
    start_date: Optional[str],
    share: bool,
    no_validate: bool,
    output: Optional[str],
) -> None:
    """Calculate the monthly payment and totals for a boat loan."""
    params = build_params_from_options(price, down_payment, down_percent, rate, term)
    if not no_validate:
        try:
            validate_loan_parameters(params)
        except ValidationError as exc:
            raise click.UsageError(str(exc))
    if term <= 0:
        raise click.BadParameter("Term must be positive", param_hint="--term")

    start: Optional[date] = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--start-date")

    want_schedule = show_schedule or bool(output and output.lower().endswith(".csv"))
    result = calculate_loan(params, include_schedule=want_schedule, start_date=start)

    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result.payment_schedule or [])
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        logger.info("Exported calculation to %s", path)
        click.echo(f"Calculation exported to {path}")
        return

    if share:
        click.echo(share_text(result))
        return

    print_summary(result)
    if result.payment_schedule:
        rows = result.payment_schedule
        if len(rows) > MAX_PRINTED_ROWS:
            click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_PRINTED_ROWS} rows.")
            rows = rows[:MAX_PRINTED_ROWS]
        print_schedule(rows)


@cli.command()
@click.option("--price", "-p", "price", required=True, help="Boat price (accepts 85k, 1.2m)")
def scenarios(price: str) -> None:
    """Compare the standard financing scenarios for a boat price."""
    boat_price = _amount(price, "--price")
    if boat_price <= 0:
        raise click.BadParameter("Boat price must be positive", param_hint="--price")
    print_comparison(default_scenarios(boat_price))


@cli.command()
@click.option("--loan-amount", "-l", "loan_amount", required=True, help="Amount to finance")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
def rates(loan_amount: str, term: int) -> None:
    """Show suggested interest rates for a loan amount and term."""
    amount = _amount(loan_amount, "--loan-amount")
    if amount < 1000:
        raise click.BadParameter("Valid loan amount is required (minimum $1,000)", param_hint="--loan-amount")
    if term < 12:
        raise click.BadParameter("Valid loan term is required (minimum 12 months)", param_hint="--term")
    suggested = suggested_interest_rates(amount, term)
    click.echo(f"Suggested rates for {format_currency(amount)} over {term} months:")
    for rate in suggested:
        click.echo(f"  {rate:.2f}%")


if __name__ == "__main__":
    cli()
