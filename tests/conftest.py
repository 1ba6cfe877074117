import pytest

from harborlist_finance_web.app import create_app
from harborlist_finance_web.calculation_store import CalculationStore


@pytest.fixture
def store():
    return CalculationStore("sqlite://")


@pytest.fixture
def app(store):
    return create_app(store=store, config={"TESTING": True, "FRONTEND_URL": "https://boats.example"})


@pytest.fixture
def client(app):
    return app.test_client()
