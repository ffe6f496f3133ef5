import numpy as np
import pytest

from proforma.analysis.dcf import calculate_cash_flows, calculate_npv
from proforma.analysis.frames import (
    distribution_summary_frame,
    outputs_frame,
    projection_frame,
    scenarios_frame,
    spider_frame,
    tornado_frame,
)
from proforma.analysis.model import calculate_model_outputs
from proforma.analysis.scenarios import perform_scenario_analysis
from proforma.analysis.sensitivity import perform_sensitivity_analysis
from proforma.domain.variables import SensitivityVariable


def test_projection_matches_cash_flow_series(cashflow_inputs, reference_assumptions):
    df = projection_frame(cashflow_inputs, reference_assumptions)

    flows = calculate_cash_flows(cashflow_inputs, reference_assumptions)
    assert list(df["year"]) == list(range(1, 11))
    assert np.allclose(df["cash_flow"].to_numpy(), flows)
    assert np.allclose(df["noi"] - df["debt_service"] - df["capital_expenditures"], df["cash_flow"])
    assert df["present_value"].sum() == pytest.approx(calculate_npv(flows, 7.0))


def test_outputs_frame_splits_rate_results(reference_inputs, reference_assumptions):
    df = outputs_frame(calculate_model_outputs(reference_inputs, reference_assumptions))
    metrics = set(df["metric"])

    assert {"internal_rate_of_return", "internal_rate_of_return_converged", "cap_rate"} <= metrics
    assert "cash_flows" not in metrics


def test_sensitivity_frames(cashflow_inputs, reference_assumptions):
    variables = [
        SensitivityVariable("monthly_rent", 3000.0, 2500.0, 3500.0, 250.0),
        SensitivityVariable("vacancy_rate", 5.0, 0.0, 10.0, 5.0),
    ]
    analysis = perform_sensitivity_analysis(
        cashflow_inputs, reference_assumptions, variables, iterations=50, seed=2
    )

    tornado = tornado_frame(analysis)
    assert list(tornado["variable"]) == [bar.variable for bar in analysis.tornado_chart]
    assert tornado["sensitivity"].notna().all()

    spider = spider_frame(analysis)
    assert len(spider) == 5 + 3
    base_rows = spider[(spider["variable"] == "monthly_rent") & (spider["value"] == 3000.0)]
    assert base_rows["npv_delta"].iloc[0] == pytest.approx(0.0, abs=1e-6)

    summary = distribution_summary_frame(analysis.monte_carlo_results)
    assert summary.set_index("statistic").loc["iterations", "value"] == 50


def test_scenarios_frame_weights(cashflow_inputs, reference_assumptions):
    analysis = perform_scenario_analysis(
        cashflow_inputs,
        reference_assumptions,
        [
            {"name": "base", "probability": 0.6},
            {"name": "bear", "inputs": {"monthly_rent": 2700}, "probability": 0.4},
        ],
    )
    df = scenarios_frame(analysis)
    assert df["weighted_npv"].sum() == pytest.approx(analysis.summary.expected_npv)
