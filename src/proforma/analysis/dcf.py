# src/proforma/analysis/dcf.py
"""
Discounted cash flow pieces: yearly projection, NPV, IRR, MIRR, exit value
and payback.

All rates crossing this module's boundary are percentage points (7.0 == 7%).
Year t of a cash-flow series sits at array index t-1; there is no year-0
initial-investment entry.
"""
from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike

from proforma.adapters.config import config
from proforma.domain.finance import calculate_monthly_payment
from proforma.domain.inputs import ModelAssumptions, ModelInputs
from proforma.domain.outputs import RateResult

# 1e4 == 1,000,000%; past this the search is diverging, not converging
MAX_IRR_RATE = 1e4


def _growth_factors(rate_percent: float, years: int) -> np.ndarray:
    """(1 + g)^(year-1) for year = 1..years."""
    return (1.0 + rate_percent / 100.0) ** np.arange(years, dtype=float)


def calculate_cash_flows(inputs: ModelInputs, assumptions: ModelAssumptions) -> np.ndarray:
    """
    Levered cash flow for each holding year.

    Rent and operating expenses grow from year one at their own rates; debt
    service and the capex reserve stay flat.
    """
    years = assumptions.holding_period
    annual_debt_service = (
        calculate_monthly_payment(inputs.loan_amount, inputs.interest_rate, inputs.loan_term) * 12.0
    )

    annual_rent = inputs.monthly_rent * 12.0 * _growth_factors(assumptions.rent_growth_rate, years)
    effective_income = annual_rent * (1.0 - inputs.vacancy_rate / 100.0)
    opex = inputs.operating_expenses * _growth_factors(assumptions.expense_growth_rate, years)
    noi = effective_income - opex

    return noi - annual_debt_service - inputs.capital_expenditures


def calculate_npv(cash_flows: ArrayLike, discount_rate_percent: float) -> float:
    """NPV = sum CF_t / (1 + r)^t, t = 1..N."""
    cf = np.asarray(cash_flows, dtype=float)
    t = np.arange(1, cf.shape[0] + 1, dtype=float)
    return float(np.sum(cf / (1.0 + discount_rate_percent / 100.0) ** t))


def calculate_irr(
    cash_flows: ArrayLike,
    guess: Optional[float] = None,
    tolerance: Optional[float] = None,
    max_iterations: Optional[int] = None,
) -> RateResult:
    """
    Newton-Raphson search for the rate that zeroes the NPV of `cash_flows`.

    Returns the rate in percent with an explicit convergence flag. A series
    without a sign change has no root. A vanishing derivative, or a step to a
    rate <= -100% or beyond MAX_IRR_RATE, ends the search unconverged with a
    NaN value; running out of iterations keeps the last estimate.
    """
    rate = config.IRR_INITIAL_GUESS if guess is None else guess
    tol = config.IRR_TOLERANCE if tolerance is None else tolerance
    max_iter = config.IRR_MAX_ITERATIONS if max_iterations is None else max_iterations

    cf = np.asarray(cash_flows, dtype=float)
    # no sign change -> no root; Newton would just walk off towards r = inf
    if cf.size == 0 or not (np.any(cf > 0) and np.any(cf < 0)):
        return RateResult(value=float("nan"), converged=False, iterations=0)
    t = np.arange(1, cf.shape[0] + 1, dtype=float)

    for i in range(1, max_iter + 1):
        discount = (1.0 + rate) ** t
        npv = float(np.sum(cf / discount))
        derivative = float(-np.sum(t * cf / (discount * (1.0 + rate))))

        if abs(npv) < tol:
            return RateResult(value=rate * 100.0, converged=True, iterations=i)

        if derivative == 0.0 or not math.isfinite(derivative):
            return RateResult(value=float("nan"), converged=False, iterations=i)

        rate = rate - npv / derivative
        if not math.isfinite(rate) or rate <= -1.0 or rate > MAX_IRR_RATE:
            return RateResult(value=float("nan"), converged=False, iterations=i)

    return RateResult(value=rate * 100.0, converged=False, iterations=max_iter)


def calculate_mirr(
    cash_flows: Sequence[float],
    finance_rate_percent: float,
    reinvest_rate_percent: float,
) -> RateResult:
    """
    Modified IRR.

    Costs (negative flows) are discounted one period at the finance rate;
    returns (flows >= 0) are compounded at the reinvestment rate by
    (N - k - 1), k being the position within the returns sub-series.
    MIRR = (FV_returns / PV_costs)^(1/N) - 1.

    Undefined (no costs, or returns with no value) -> NaN, converged=False.
    """
    cf = [float(x) for x in cash_flows]
    n = len(cf)
    costs = [abs(x) for x in cf if x < 0]
    returns = [x for x in cf if x >= 0]

    pv_costs = sum(c / (1.0 + finance_rate_percent / 100.0) for c in costs)
    fv_returns = sum(
        r * (1.0 + reinvest_rate_percent / 100.0) ** (n - k - 1)
        for k, r in enumerate(returns)
    )

    if n == 0 or pv_costs <= 0.0 or fv_returns <= 0.0:
        return RateResult(value=float("nan"), converged=False, iterations=0)

    mirr = (fv_returns / pv_costs) ** (1.0 / n) - 1.0
    return RateResult(value=mirr * 100.0, converged=True, iterations=0)


def calculate_exit_value(
    property_value: float,
    appreciation_rate: float,
    exit_cap_rate: float,
    holding_period: int,
    net_operating_income: float,
    rent_growth_rate: float,
    expense_growth_rate: float,
) -> float:
    """
    Sale price at the end of the hold.

    Capitalizes a projected NOI at the exit cap rate and then applies the
    appreciation factor on top, so the result mixes an income valuation with
    an appreciation one. `property_value` itself does not enter the result.
    """
    appreciation_factor = (1.0 + appreciation_rate / 100.0) ** holding_period
    rent_factor = (1.0 + rent_growth_rate / 100.0) ** holding_period
    expense_factor = (1.0 + expense_growth_rate / 100.0) ** holding_period

    future_noi = net_operating_income * rent_factor - net_operating_income * (1.0 - expense_factor)
    capitalized = future_noi / (exit_cap_rate / 100.0)
    return capitalized * appreciation_factor


def calculate_payback_period(cash_flows: ArrayLike, initial_investment: float) -> Optional[int]:
    """First 1-based year where cumulative cash flow covers the investment; None if never."""
    cumulative = np.cumsum(np.asarray(cash_flows, dtype=float))
    hits = np.nonzero(cumulative >= initial_investment)[0]
    if hits.size == 0:
        return None
    return int(hits[0]) + 1
