from datetime import date
from decimal import Decimal

from harborlist_finance.data_models import FinanceCalculation, LenderInfo, LoanParameters
from harborlist_finance.engine import calculate_loan
from harborlist_finance.validation import validate_loan_parameters


def make_calculation(calculation_id, user_id="user-1", created_at=0, schedule=False):
    result = calculate_loan(
        LoanParameters(Decimal("100000"), Decimal("20000"), Decimal("6.5"), 180),
        include_schedule=schedule,
        start_date=date(2025, 1, 1),
    )
    return FinanceCalculation(
        calculation_id=calculation_id,
        result=result,
        listing_id="listing-9",
        user_id=user_id,
        saved=True,
        created_at=created_at,
    )


def test_add_and_get_round_trip(store):
    calc = make_calculation("calc-1", schedule=True)
    calc.calculation_notes = "Credit union quote"
    calc.lender_info = LenderInfo(name="Harbor CU", rate=Decimal("6.25"), terms="15 years fixed")
    store.add(calc)

    loaded = store.get("calc-1")
    assert loaded is not None
    assert loaded.user_id == "user-1"
    assert loaded.listing_id == "listing-9"
    assert loaded.result.monthly_payment == Decimal("696.89")
    assert loaded.result.total_cost == Decimal("145439.46")
    assert loaded.result.interest_rate == Decimal("6.5")
    assert loaded.result.payment_schedule == calc.result.payment_schedule
    assert loaded.calculation_notes == "Credit union quote"
    assert loaded.lender_info == LenderInfo(name="Harbor CU", rate=Decimal("6.25"), terms="15 years fixed")
    assert loaded.created_at > 0
    assert loaded.updated_at is not None


def test_get_missing_returns_none(store):
    assert store.get("nope") is None
    assert store.get_by_share_token("nope") is None


def test_list_for_user_newest_first_with_limit(store):
    store.add(make_calculation("old", created_at=1_000))
    store.add(make_calculation("new", created_at=3_000))
    store.add(make_calculation("mid", created_at=2_000))
    store.add(make_calculation("other", user_id="user-2", created_at=4_000))

    assert [c.calculation_id for c in store.list_for_user("user-1")] == ["new", "mid", "old"]
    assert [c.calculation_id for c in store.list_for_user("user-1", limit=2)] == ["new", "mid"]
    assert store.list_for_user("") == []


def test_mark_shared(store):
    store.add(make_calculation("calc-1"))
    updated = store.mark_shared("calc-1", "token-abc")
    assert updated.shared is True
    assert updated.share_token == "token-abc"
    assert store.get_by_share_token("token-abc").calculation_id == "calc-1"
    assert store.mark_shared("missing", "token-x") is None


def test_delete(store):
    store.add(make_calculation("calc-1"))
    assert store.delete("calc-1") is True
    assert store.get("calc-1") is None
    assert store.delete("calc-1") is False


def test_round_trip_keeps_cents_and_four_place_rate(store):
    params = LoanParameters(Decimal("100000.55"), Decimal("20000.45"), Decimal("6.1234"), 180)
    validate_loan_parameters(params)
    store.add(
        FinanceCalculation(
            calculation_id="calc-precise",
            result=calculate_loan(params),
            user_id="user-1",
            saved=True,
            created_at=1,
        )
    )

    loaded = store.get("calc-precise").result
    assert loaded.params == params
    assert loaded.loan_amount == Decimal("80000.10")
