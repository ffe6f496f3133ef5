# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from proforma.api.http import app  # ensures imports resolve; run tests from repo root
from proforma.domain.inputs import ModelAssumptions, ModelInputs


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture
def reference_inputs() -> ModelInputs:
    """500k single-family, 20% down, 6.5% / 30y. Negative levered cash flow."""
    return ModelInputs(
        property_value=500_000.0,
        purchase_price=500_000.0,
        down_payment=100_000.0,
        loan_amount=400_000.0,
        interest_rate=6.5,
        loan_term=30,
        monthly_rent=3000.0,
        vacancy_rate=5.0,
        operating_expenses=12_000.0,
        capital_expenditures=0.0,
        appreciation_rate=3.0,
        tax_rate=0.0,
        depreciation_rate=0.0,
    )


@pytest.fixture
def reference_assumptions() -> ModelAssumptions:
    return ModelAssumptions(
        holding_period=10,
        exit_cap_rate=5.5,
        rent_growth_rate=2.0,
        expense_growth_rate=2.0,
        market_growth_rate=0.0,
        risk_free_rate=3.0,
        market_risk_premium=4.0,
        beta=1.0,
    )


@pytest.fixture
def cashflow_inputs() -> ModelInputs:
    """300k rental with positive cash flow from year one."""
    return ModelInputs(
        property_value=300_000.0,
        purchase_price=300_000.0,
        down_payment=60_000.0,
        loan_amount=240_000.0,
        interest_rate=5.0,
        loan_term=30,
        monthly_rent=3000.0,
        vacancy_rate=5.0,
        operating_expenses=8000.0,
        capital_expenditures=1000.0,
        appreciation_rate=3.0,
        metadata={"square_footage": 1500},
    )
