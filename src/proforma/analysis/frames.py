# src/proforma/analysis/frames.py

from __future__ import annotations

import numpy as np
import pandas as pd

from proforma.analysis.dcf import calculate_cash_flows
from proforma.domain.finance import calculate_monthly_payment
from proforma.domain.inputs import ModelAssumptions, ModelInputs
from proforma.domain.outputs import (
    ModelOutputs,
    MonteCarloResults,
    ScenarioAnalysis,
    SensitivityAnalysis,
)


def projection_frame(inputs: ModelInputs, assumptions: ModelAssumptions) -> pd.DataFrame:
    """
    Year-by-year pro forma behind the NPV.

    Columns: year, gross_rent, vacancy_loss, operating_expenses, noi,
    debt_service, capital_expenditures, cash_flow, discount_factor,
    present_value. `cash_flow` matches calculate_cash_flows exactly.
    """
    years = np.arange(1, assumptions.holding_period + 1)
    rent_growth = (1.0 + assumptions.rent_growth_rate / 100.0) ** (years - 1)
    expense_growth = (1.0 + assumptions.expense_growth_rate / 100.0) ** (years - 1)

    gross_rent = inputs.monthly_rent * 12.0 * rent_growth
    vacancy_loss = gross_rent * (inputs.vacancy_rate / 100.0)
    opex = inputs.operating_expenses * expense_growth
    debt_service = (
        calculate_monthly_payment(inputs.loan_amount, inputs.interest_rate, inputs.loan_term) * 12.0
    )

    df = pd.DataFrame(
        {
            "year": years,
            "gross_rent": gross_rent,
            "vacancy_loss": vacancy_loss,
            "operating_expenses": opex,
        }
    )
    df["noi"] = df["gross_rent"] - df["vacancy_loss"] - df["operating_expenses"]
    df["debt_service"] = debt_service
    df["capital_expenditures"] = inputs.capital_expenditures
    df["cash_flow"] = calculate_cash_flows(inputs, assumptions)
    df["discount_factor"] = 1.0 / (1.0 + assumptions.discount_rate / 100.0) ** df["year"]
    df["present_value"] = df["cash_flow"] * df["discount_factor"]
    return df


def outputs_frame(outputs: ModelOutputs) -> pd.DataFrame:
    """Flat metric/value table; rate results are split into value + converged rows."""
    rows = []
    for key, value in outputs.to_dict().items():
        if key == "cash_flows":
            continue
        if isinstance(value, dict):
            rows.append({"metric": key, "value": value["value"]})
            rows.append({"metric": f"{key}_converged", "value": value["converged"]})
        else:
            rows.append({"metric": key, "value": value})
    return pd.DataFrame(rows, columns=["metric", "value"])


def tornado_frame(analysis: SensitivityAnalysis) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "variable": bar.variable,
                "positive_impact": bar.positive_impact,
                "negative_impact": bar.negative_impact,
                "range": bar.range,
            }
            for bar in analysis.tornado_chart
        ],
        columns=["variable", "positive_impact", "negative_impact", "range"],
    )
    sens = {v.name.value: v.sensitivity for v in analysis.variables}
    df["sensitivity"] = df["variable"].map(sens)
    return df


def spider_frame(analysis: SensitivityAnalysis) -> pd.DataFrame:
    """Long format: one row per (variable, swept value)."""
    frames = [
        pd.DataFrame({"variable": s.variable, "value": list(s.values), "npv": list(s.npv_impact)})
        for s in analysis.spider_chart
    ]
    if not frames:
        return pd.DataFrame(columns=["variable", "value", "npv"])
    df = pd.concat(frames, ignore_index=True)
    df["npv_delta"] = df["npv"] - analysis.base_npv
    return df


def distribution_summary_frame(results: MonteCarloResults) -> pd.DataFrame:
    ci = results.confidence_intervals
    stats = {
        "iterations": results.iterations,
        "mean_npv": results.mean_npv,
        "median_npv": results.median_npv,
        "standard_deviation": results.standard_deviation,
        "p5": ci.p5,
        "p10": ci.p10,
        "p25": ci.p25,
        "p75": ci.p75,
        "p90": ci.p90,
        "p95": ci.p95,
        "probability_of_positive_return": results.probability_of_positive_return,
        "value_at_risk": results.value_at_risk,
        "expected_shortfall": results.expected_shortfall,
        "clamped_draws": results.clamped_draws,
    }
    return pd.DataFrame({"statistic": list(stats), "value": list(stats.values())})


def scenarios_frame(analysis: ScenarioAnalysis) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "name": s.name,
                "probability": s.probability,
                "npv": s.key_metrics.npv,
                "irr": s.key_metrics.irr,
                "irr_converged": s.key_metrics.irr_converged,
                "cash_flow": s.key_metrics.cash_flow,
                "risk": s.key_metrics.risk,
            }
            for s in analysis.scenarios
        ],
        columns=["name", "probability", "npv", "irr", "irr_converged", "cash_flow", "risk"],
    )
    df["weighted_npv"] = df["npv"] * df["probability"]
    return df
