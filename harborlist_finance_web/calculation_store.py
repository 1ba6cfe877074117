"""Persistence layer for saved finance calculations.

Saved calculations are kept in a relational database through SQLAlchemy. It
defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL) for deployments. The store
is created once by the application factory and handed to the web layer; it
holds no module-level state.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, BigInteger, Column, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from harborlist_finance.data_models import (
    CalculationResult,
    FinanceCalculation,
    LenderInfo,
    PaymentScheduleItem,
)
from harborlist_finance.utils import now_millis

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///finance_calculations.sqlite3"


class FinanceCalculationModel(Base):
    __tablename__ = "finance_calculations"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(128), index=True, nullable=True)
    listing_id = Column(String(128), nullable=False, default="")
    boat_price = Column(Numeric(14, 2), nullable=False)
    down_payment = Column(Numeric(14, 2), nullable=False)
    loan_amount = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False)
    term_months = Column(Integer, nullable=False)
    monthly_payment = Column(Numeric(14, 2), nullable=False)
    total_interest = Column(Numeric(14, 2), nullable=False)
    total_cost = Column(Numeric(14, 2), nullable=False)
    schedule_json = Column(Text, nullable=True)
    calculation_notes = Column(Text, nullable=True)
    lender_json = Column(Text, nullable=True)
    saved = Column(Boolean, nullable=False, default=True)
    shared = Column(Boolean, nullable=False, default=False)
    share_token = Column(String(64), unique=True, index=True, nullable=True)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=True)


class CalculationStore:
    """Database-backed store of saved calculations."""

    def __init__(self, url: str) -> None:
        engine_kwargs: Dict[str, Any] = {"future": True}
        if url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:"):
            # one shared connection, otherwise every session sees an empty database
            engine_kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)
        self._engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def add(self, calculation: FinanceCalculation) -> FinanceCalculation:
        """Persist a new calculation and return it with timestamps filled in."""
        now = now_millis()
        calculation.created_at = calculation.created_at or now
        calculation.updated_at = now
        with self._session_factory() as session:
            session.add(self._to_model(calculation))
            session.commit()
        logger.info("Saved calculation %s for user %s", calculation.calculation_id, calculation.user_id)
        return calculation

    def get(self, calculation_id: str) -> Optional[FinanceCalculation]:
        with self._session_factory() as session:
            row = session.get(FinanceCalculationModel, calculation_id)
            return self._from_model(row) if row else None

    def get_by_share_token(self, share_token: str) -> Optional[FinanceCalculation]:
        with self._session_factory() as session:
            row = session.execute(
                select(FinanceCalculationModel).where(FinanceCalculationModel.share_token == share_token)
            ).scalar_one_or_none()
            return self._from_model(row) if row else None

    def list_for_user(self, user_id: str, limit: int = 20) -> List[FinanceCalculation]:
        """Return a user's calculations, newest first."""
        if not user_id:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(FinanceCalculationModel)
                .where(FinanceCalculationModel.user_id == user_id)
                .order_by(FinanceCalculationModel.created_at.desc(), FinanceCalculationModel.id)
                .limit(limit)
            ).scalars()
            return [self._from_model(row) for row in rows]

    def mark_shared(self, calculation_id: str, share_token: str) -> Optional[FinanceCalculation]:
        with self._session_factory() as session:
            row = session.get(FinanceCalculationModel, calculation_id)
            if row is None:
                return None
            row.shared = True
            row.share_token = share_token
            row.updated_at = now_millis()
            session.commit()
            return self._from_model(row)

    def delete(self, calculation_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(FinanceCalculationModel, calculation_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted calculation %s", calculation_id)
        return True

    @staticmethod
    def _to_model(calculation: FinanceCalculation) -> FinanceCalculationModel:
        result = calculation.result
        schedule_json = None
        if result.payment_schedule is not None:
            schedule_json = json.dumps([item.to_dict() for item in result.payment_schedule])
        lender_json = None
        if calculation.lender_info is not None:
            lender_json = json.dumps(calculation.lender_info.to_dict())
        return FinanceCalculationModel(
            id=calculation.calculation_id,
            user_id=calculation.user_id,
            listing_id=calculation.listing_id,
            boat_price=result.boat_price,
            down_payment=result.down_payment,
            loan_amount=result.loan_amount,
            interest_rate=result.interest_rate,
            term_months=result.term_months,
            monthly_payment=result.monthly_payment,
            total_interest=result.total_interest,
            total_cost=result.total_cost,
            schedule_json=schedule_json,
            calculation_notes=calculation.calculation_notes,
            lender_json=lender_json,
            saved=calculation.saved,
            shared=calculation.shared,
            share_token=calculation.share_token,
            created_at=calculation.created_at,
            updated_at=calculation.updated_at,
        )

    @staticmethod
    def _from_model(row: FinanceCalculationModel) -> FinanceCalculation:
        schedule = None
        if row.schedule_json is not None:
            schedule = [
                PaymentScheduleItem(
                    payment_number=item["paymentNumber"],
                    payment_date=date.fromisoformat(item["paymentDate"]),
                    principal_amount=Decimal(str(item["principalAmount"])),
                    interest_amount=Decimal(str(item["interestAmount"])),
                    total_payment=Decimal(str(item["totalPayment"])),
                    remaining_balance=Decimal(str(item["remainingBalance"])),
                )
                for item in json.loads(row.schedule_json)
            ]
        lender = None
        if row.lender_json is not None:
            data = json.loads(row.lender_json)
            rate = data.get("rate")
            lender = LenderInfo(
                name=data.get("name"),
                rate=Decimal(str(rate)) if rate is not None else None,
                terms=data.get("terms"),
            )
        result = CalculationResult(
            boat_price=Decimal(row.boat_price),
            down_payment=Decimal(row.down_payment),
            loan_amount=Decimal(row.loan_amount),
            interest_rate=Decimal(row.interest_rate),
            term_months=row.term_months,
            monthly_payment=Decimal(row.monthly_payment),
            total_interest=Decimal(row.total_interest),
            total_cost=Decimal(row.total_cost),
            payment_schedule=schedule,
        )
        return FinanceCalculation(
            calculation_id=row.id,
            result=result,
            listing_id=row.listing_id,
            user_id=row.user_id,
            saved=row.saved,
            shared=row.shared,
            share_token=row.share_token,
            calculation_notes=row.calculation_notes,
            lender_info=lender,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def create_store_from_env(url: Optional[str]) -> CalculationStore:
    return CalculationStore(url or DEFAULT_DATABASE_URL)
