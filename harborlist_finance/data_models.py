"""Data models for the boat finance calculator.

This module defines dataclasses for the entities the calculator works with:
the loan parameters collected from a buyer, the calculated result and its
optional payment schedule, and the saved calculation records and comparison
scenarios built on top of a result. Money is held as ``Decimal`` throughout;
``to_dict`` methods produce the camelCase JSON shape used by the marketplace
front end.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass
class LoanParameters:
    """Inputs for a single loan calculation.

    Attributes
    ----------
    boat_price: Decimal
        Purchase price of the boat.
    down_payment: Decimal
        Cash paid up front. The financed amount is ``boat_price - down_payment``.
    interest_rate: Decimal
        Annual nominal interest rate in percent (``6.5`` means 6.5 %).
    term_months: int
        Number of monthly payments.
    """

    boat_price: Decimal
    down_payment: Decimal
    interest_rate: Decimal
    term_months: int

    @property
    def loan_amount(self) -> Decimal:
        return self.boat_price - self.down_payment

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boatPrice": float(self.boat_price),
            "downPayment": float(self.down_payment),
            "interestRate": float(self.interest_rate),
            "termMonths": self.term_months,
        }


@dataclass
class PaymentScheduleItem:
    """One month of the amortization schedule, money rounded to cents."""

    payment_number: int
    payment_date: date
    principal_amount: Decimal
    interest_amount: Decimal
    total_payment: Decimal
    remaining_balance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paymentNumber": self.payment_number,
            "paymentDate": self.payment_date.isoformat(),
            "principalAmount": float(self.principal_amount),
            "interestAmount": float(self.interest_amount),
            "totalPayment": float(self.total_payment),
            "remainingBalance": float(self.remaining_balance),
        }


@dataclass
class CalculationResult:
    """Result of evaluating a set of ``LoanParameters``.

    The input parameters are echoed back so the result can be displayed or
    stored on its own. ``payment_schedule`` is ``None`` unless the schedule
    was requested.
    """

    boat_price: Decimal
    down_payment: Decimal
    loan_amount: Decimal
    interest_rate: Decimal
    term_months: int
    monthly_payment: Decimal
    total_interest: Decimal
    total_cost: Decimal
    payment_schedule: Optional[List[PaymentScheduleItem]] = None

    @property
    def params(self) -> LoanParameters:
        return LoanParameters(
            boat_price=self.boat_price,
            down_payment=self.down_payment,
            interest_rate=self.interest_rate,
            term_months=self.term_months,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "boatPrice": float(self.boat_price),
            "downPayment": float(self.down_payment),
            "loanAmount": float(self.loan_amount),
            "interestRate": float(self.interest_rate),
            "termMonths": self.term_months,
            "monthlyPayment": float(self.monthly_payment),
            "totalInterest": float(self.total_interest),
            "totalCost": float(self.total_cost),
        }
        if self.payment_schedule is not None:
            data["paymentSchedule"] = [item.to_dict() for item in self.payment_schedule]
        return data


@dataclass
class LenderInfo:
    """Optional lender details a buyer attaches to a saved calculation."""

    name: Optional[str] = None
    rate: Optional[Decimal] = None
    terms: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "rate": _money(self.rate), "terms": self.terms}


@dataclass
class FinanceCalculation:
    """A calculation result with identity and persistence metadata.

    ``created_at`` and ``updated_at`` are epoch milliseconds, matching the
    timestamps the rest of the marketplace stores.
    """

    calculation_id: str
    result: CalculationResult
    listing_id: str = ""
    user_id: Optional[str] = None
    saved: bool = False
    shared: bool = False
    share_token: Optional[str] = None
    calculation_notes: Optional[str] = None
    lender_info: Optional[LenderInfo] = None
    created_at: int = 0
    updated_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "calculationId": self.calculation_id,
            "listingId": self.listing_id,
            "userId": self.user_id,
            "saved": self.saved,
            "shared": self.shared,
            "createdAt": self.created_at,
        }
        data.update(self.result.to_dict())
        if self.share_token is not None:
            data["shareToken"] = self.share_token
        if self.calculation_notes is not None:
            data["calculationNotes"] = self.calculation_notes
        if self.lender_info is not None:
            data["lenderInfo"] = self.lender_info.to_dict()
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data


@dataclass
class LoanScenario:
    """A named variation of a base calculation, used for side-by-side comparison."""

    scenario_id: str
    name: str
    params: LoanParameters
    result: CalculationResult
    calculation_id: str = ""
    listing_id: str = ""
    created_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        calculation = {
            "calculationId": self.calculation_id,
            "listingId": self.listing_id,
            "userId": None,
            "saved": False,
            "shared": False,
            "createdAt": self.created_at,
        }
        calculation.update(self.result.to_dict())
        return {
            "scenarioId": self.scenario_id,
            "name": self.name,
            "params": self.params.to_dict(),
            "result": calculation,
        }
