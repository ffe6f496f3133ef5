from __future__ import annotations

from dataclasses import dataclass

from proforma.domain.finance import calculate_monthly_payment
from proforma.domain.inputs import ModelInputs


@dataclass(frozen=True)
class OperatingMetrics:
    """Year-one, financing-aware snapshot of a property."""
    monthly_payment: float
    annual_payment: float
    gross_annual_rent: float
    vacancy_loss: float
    effective_gross_income: float
    net_operating_income: float
    annual_cash_flow: float
    monthly_cash_flow: float
    cap_rate: float
    cash_on_cash_return: float
    gross_rent_multiplier: float
    debt_service_coverage_ratio: float
    loan_to_value_ratio: float
    debt_yield: float
    return_on_equity: float
    return_on_investment: float
    price_per_square_foot: float


def calculate_operating_metrics(inputs: ModelInputs) -> OperatingMetrics:
    """
    Core underwriting ratios. Percent outputs are percentage points.

    Divisors are not guarded here; `calculate_model_outputs` validates them
    before calling in.
    """
    # --- financing basics ---
    monthly_payment = calculate_monthly_payment(
        inputs.loan_amount, inputs.interest_rate, inputs.loan_term
    )
    annual_payment = monthly_payment * 12.0

    # --- income side ---
    gross_annual_rent = inputs.monthly_rent * 12.0
    vacancy_loss = gross_annual_rent * (inputs.vacancy_rate / 100.0)
    effective_gross_income = gross_annual_rent - vacancy_loss

    # --- NOI ---
    # income after vacancy + operating expenses, BEFORE debt.
    noi = effective_gross_income - inputs.operating_expenses

    # --- cash flow after debt ---
    annual_cash_flow = noi - annual_payment

    sqft = inputs.square_footage
    price_per_sqft = inputs.property_value / sqft if sqft else 0.0

    return OperatingMetrics(
        monthly_payment=monthly_payment,
        annual_payment=annual_payment,
        gross_annual_rent=gross_annual_rent,
        vacancy_loss=vacancy_loss,
        effective_gross_income=effective_gross_income,
        net_operating_income=noi,
        annual_cash_flow=annual_cash_flow,
        monthly_cash_flow=annual_cash_flow / 12.0,
        cap_rate=noi / inputs.property_value * 100.0,
        cash_on_cash_return=annual_cash_flow / inputs.down_payment * 100.0,
        gross_rent_multiplier=inputs.property_value / gross_annual_rent,
        debt_service_coverage_ratio=noi / annual_payment,
        loan_to_value_ratio=inputs.loan_amount / inputs.property_value * 100.0,
        debt_yield=noi / inputs.loan_amount * 100.0,
        return_on_equity=annual_cash_flow / (inputs.property_value - inputs.loan_amount) * 100.0,
        return_on_investment=annual_cash_flow / inputs.down_payment * 100.0,
        price_per_square_foot=price_per_sqft,
    )
