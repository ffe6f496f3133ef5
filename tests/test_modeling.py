import pytest

from proforma.analysis.model import calculate_model_outputs
from proforma.domain.variables import VariableName
from proforma.services.modeling import (
    create_financial_model,
    default_sensitivity_variables,
    update_financial_model,
)


def test_create_plain_model(cashflow_inputs, reference_assumptions):
    model = create_financial_model(
        "Elm St duplex", "dcf", cashflow_inputs, reference_assumptions, clock=lambda: 1_000
    )

    assert model.id.startswith("model_")
    assert model.created_at == model.updated_at == 1_000
    assert model.sensitivity_analysis is None
    assert model.scenario_analysis is None
    plain = calculate_model_outputs(cashflow_inputs, reference_assumptions)
    assert model.outputs.net_present_value == plain.net_present_value
    assert model.outputs.cash_flows == plain.cash_flows


def test_ids_are_unique(cashflow_inputs, reference_assumptions):
    a = create_financial_model("a", "dcf", cashflow_inputs, reference_assumptions)
    b = create_financial_model("b", "dcf", cashflow_inputs, reference_assumptions)
    assert a.id != b.id


def test_unknown_model_type(cashflow_inputs, reference_assumptions):
    with pytest.raises(ValueError):
        create_financial_model("x", "astrology", cashflow_inputs, reference_assumptions)


def test_create_with_analyses(cashflow_inputs, reference_assumptions):
    variables = default_sensitivity_variables(cashflow_inputs, reference_assumptions)
    model = create_financial_model(
        "full",
        "income",
        cashflow_inputs,
        reference_assumptions,
        sensitivity_variables=variables,
        scenarios=[
            {"name": "base", "probability": 0.7},
            {"name": "soft", "inputs": {"vacancy_rate": 12}, "probability": 0.3},
        ],
        iterations=100,
        seed=3,
    )

    assert len(model.sensitivity_analysis.variables) == len(variables)
    assert model.sensitivity_analysis.monte_carlo_results.iterations == 100
    assert model.scenario_analysis.summary.worst_case.name == "soft"

    d = model.to_dict()
    assert d["type"] == "income"
    assert "distribution" not in d["sensitivity_analysis"]["monte_carlo_results"]
    assert d["scenario_analysis"]["summary"]["best_case"] == "base"


def test_default_variables_stay_valid(cashflow_inputs, reference_inputs, reference_assumptions):
    for inputs in (cashflow_inputs, reference_inputs):
        variables = default_sensitivity_variables(inputs, reference_assumptions)
        by_name = {v.name: v for v in variables}

        assert by_name[VariableName.MONTHLY_RENT].min_value == pytest.approx(inputs.monthly_rent * 0.8)
        assert by_name[VariableName.PROPERTY_VALUE].min_value > inputs.loan_amount
        assert by_name[VariableName.EXIT_CAP_RATE].min_value > 0
        assert by_name[VariableName.VACANCY_RATE].min_value == 0.0

        # every swept point is a model the engine accepts
        for v in variables:
            for value in v.sweep_values():
                i, a = v.name.apply(inputs, reference_assumptions, value)
                calculate_model_outputs(i, a)


def test_update_recomputes_and_drops_stale_analyses(cashflow_inputs, reference_assumptions):
    model = create_financial_model(
        "m",
        "dcf",
        cashflow_inputs,
        reference_assumptions,
        scenarios=[{"name": "only", "probability": 1.0}],
        clock=lambda: 1_000,
    )
    richer = cashflow_inputs.model_copy(update={"monthly_rent": 3500.0})

    updated = update_financial_model(model, inputs=richer, clock=lambda: 2_000)

    assert updated.id == model.id
    assert updated.created_at == 1_000
    assert updated.updated_at == 2_000
    assert updated.outputs.net_present_value > model.outputs.net_present_value
    assert updated.scenario_analysis is None
    assert model.scenario_analysis is not None


def test_rename_keeps_outputs(cashflow_inputs, reference_assumptions):
    model = create_financial_model(
        "m",
        "dcf",
        cashflow_inputs,
        reference_assumptions,
        scenarios=[{"name": "only", "probability": 1.0}],
        clock=lambda: 1_000,
    )
    renamed = update_financial_model(model, name="renamed", clock=lambda: 1_500)

    assert renamed.name == "renamed"
    assert renamed.outputs is model.outputs
    assert renamed.scenario_analysis is model.scenario_analysis
