"""Input validation for finance calculations.

The calculator itself accepts any numbers. The marketplace's business rules
on price, down payment, rate and term are enforced here, by the callers that
take input from buyers (the CLI and the web API), before calculating.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Iterable, Mapping

from .data_models import LoanParameters

MIN_BOAT_PRICE = Decimal("1000")
MAX_BOAT_PRICE = Decimal("10000000")
MAX_DOWN_PAYMENT_RATIO = Decimal("0.9")
MAX_INTEREST_RATE = Decimal("30")
MIN_TERM_MONTHS = 12
MAX_TERM_MONTHS = 360
MIN_LOAN_AMOUNT = Decimal("1000")

CENT = Decimal("0.01")
RATE_STEP = Decimal("0.0001")


class ValidationError(ValueError):
    """Raised when loan input falls outside the marketplace's rules."""

    code = "VALIDATION_ERROR"


def _finer_than(value: Decimal, step: Decimal) -> bool:
    return value != value.quantize(step)


def validate_loan_parameters(params: LoanParameters) -> None:
    """Raise ``ValidationError`` for the first rule ``params`` breaks.

    Amounts may carry at most cents and the rate at most four decimal places,
    the precision calculations are stored with.
    """
    if not MIN_BOAT_PRICE <= params.boat_price <= MAX_BOAT_PRICE:
        raise ValidationError("Boat price must be between $1,000 and $10,000,000")
    if _finer_than(params.boat_price, CENT):
        raise ValidationError("Boat price must be a whole number of cents")
    if params.down_payment < 0 or params.down_payment > params.boat_price * MAX_DOWN_PAYMENT_RATIO:
        raise ValidationError("Down payment must be between $0 and 90% of boat price")
    if _finer_than(params.down_payment, CENT):
        raise ValidationError("Down payment must be a whole number of cents")
    if params.interest_rate is None or not 0 <= params.interest_rate <= MAX_INTEREST_RATE:
        raise ValidationError("Interest rate must be between 0% and 30%")
    if _finer_than(params.interest_rate, RATE_STEP):
        raise ValidationError("Interest rate must have at most 4 decimal places")
    if not MIN_TERM_MONTHS <= params.term_months <= MAX_TERM_MONTHS:
        raise ValidationError("Loan term must be between 12 and 360 months")
    if params.loan_amount < MIN_LOAN_AMOUNT:
        raise ValidationError("Loan amount must be at least $1,000")


def require_fields(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    missing = [name for name in fields if payload.get(name) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def sanitize_string(value: str) -> str:
    """Trim whitespace and drop angle brackets from free text."""
    return re.sub(r"[<>]", "", value.strip())
