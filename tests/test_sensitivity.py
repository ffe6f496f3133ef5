import math

import pytest

from proforma.analysis.model import calculate_model_outputs
from proforma.analysis.sensitivity import (
    build_tornado_chart,
    perform_sensitivity_analysis,
    sweep_variable,
)
from proforma.domain.errors import RangeValidationError, UnknownVariableError
from proforma.domain.variables import SensitivityVariable, VariableName


def _rent_var(step=250.0):
    return SensitivityVariable("monthly_rent", 3000.0, 2500.0, 3500.0, step)


def test_sweep_includes_max_when_range_divides_evenly():
    assert _rent_var(250.0).sweep_values() == [2500.0, 2750.0, 3000.0, 3250.0, 3500.0]


def test_sweep_stops_short_when_range_does_not_divide():
    assert _rent_var(300.0).sweep_values() == [2500.0, 2800.0, 3100.0, 3400.0]


def test_sweep_tolerates_float_steps():
    v = SensitivityVariable("exit_cap_rate", 5.5, 4.0, 5.0, 0.1)
    values = v.sweep_values()
    assert len(values) == 11
    assert values[0] == 4.0
    assert values[-1] == 5.0


def test_zero_width_range_is_one_sample():
    v = SensitivityVariable("vacancy_rate", 5.0, 5.0, 5.0, 1.0)
    assert v.sweep_values() == [5.0]


def test_unknown_variable_name_rejected():
    with pytest.raises(UnknownVariableError) as exc:
        SensitivityVariable("hoa_fees", 0.0, 0.0, 1.0, 0.5)
    assert "hoa_fees" in str(exc.value)


def test_camel_case_names_accepted():
    v = SensitivityVariable("monthlyRent", 3000.0, 2500.0, 3500.0, 250.0)
    assert v.name is VariableName.MONTHLY_RENT
    assert VariableName.parse("exitCapRate").target == "assumptions"
    assert VariableName.parse("appreciationRate").target == "inputs"


@pytest.mark.parametrize(
    "min_value,max_value,step",
    [(10.0, 5.0, 1.0), (0.0, 5.0, 0.0), (0.0, 5.0, -1.0), (0.0, float("inf"), 1.0)],
)
def test_degenerate_ranges_rejected(min_value, max_value, step):
    with pytest.raises(RangeValidationError):
        SensitivityVariable("monthly_rent", 3000.0, min_value, max_value, step)


def test_sweep_variable_touches_only_its_field(cashflow_inputs, reference_assumptions):
    curve = sweep_variable(cashflow_inputs, reference_assumptions, _rent_var())

    assert curve.variable == "monthly_rent"
    assert len(curve.values) == len(curve.npv_impact) == 5
    base = calculate_model_outputs(cashflow_inputs, reference_assumptions).net_present_value
    # 3000 is the base rent, so the middle point is the base NPV
    assert curve.npv_impact[2] == pytest.approx(base)
    assert list(curve.npv_impact) == sorted(curve.npv_impact)


def test_sensitivity_analysis(cashflow_inputs, reference_assumptions):
    variables = [
        _rent_var(),
        SensitivityVariable("interest_rate", 5.0, 4.0, 6.0, 0.5),
        SensitivityVariable("exit_cap_rate", 5.5, 5.0, 6.0, 0.5),  # no effect on NPV
    ]

    analysis = perform_sensitivity_analysis(
        cashflow_inputs, reference_assumptions, variables, iterations=200, seed=11
    )

    base = calculate_model_outputs(cashflow_inputs, reference_assumptions).net_present_value
    assert analysis.base_npv == pytest.approx(base)

    by_name = {v.name.value: v for v in analysis.variables}
    rent = by_name["monthly_rent"]
    low = calculate_model_outputs(
        cashflow_inputs.model_copy(update={"monthly_rent": 2500.0}), reference_assumptions
    ).net_present_value
    high = calculate_model_outputs(
        cashflow_inputs.model_copy(update={"monthly_rent": 3500.0}), reference_assumptions
    ).net_present_value
    assert rent.impact == pytest.approx(high - low)
    assert rent.sensitivity == pytest.approx((high - low) / 1000.0)

    for v in analysis.variables:
        assert v.impact >= 0
        assert math.isfinite(v.sensitivity)

    # exit value is not part of the discounted series
    assert by_name["exit_cap_rate"].impact == pytest.approx(0.0, abs=1e-6)

    # caller's variables are left untouched
    assert variables[0].impact is None

    ranges = [bar.range for bar in analysis.tornado_chart]
    assert ranges == sorted(ranges, reverse=True)
    assert analysis.tornado_chart[-1].variable == "exit_cap_rate"

    assert [s.variable for s in analysis.spider_chart] == [
        "monthly_rent",
        "interest_rate",
        "exit_cap_rate",
    ]
    assert analysis.monte_carlo_results.iterations == 200


def test_tornado_splits_signed_impacts():
    up = SensitivityVariable("monthly_rent", 1.0, 0.0, 2.0, 1.0, impact=50.0)
    down = SensitivityVariable("vacancy_rate", 1.0, 0.0, 2.0, 1.0, impact=-80.0)
    flat = SensitivityVariable("interest_rate", 1.0, 0.0, 2.0, 1.0, impact=0.0)

    bars = build_tornado_chart([up, flat, down])

    assert [b.variable for b in bars] == ["vacancy_rate", "monthly_rent", "interest_rate"]
    assert bars[0].negative_impact == 80.0 and bars[0].positive_impact == 0.0
    assert bars[1].positive_impact == 50.0 and bars[1].negative_impact == 0.0
    assert bars[0].range == 80.0


def test_zero_width_variable_has_zero_sensitivity(cashflow_inputs, reference_assumptions):
    v = SensitivityVariable("vacancy_rate", 5.0, 5.0, 5.0, 1.0)
    analysis = perform_sensitivity_analysis(
        cashflow_inputs, reference_assumptions, [v], iterations=20, seed=1
    )
    assert analysis.variables[0].impact == 0.0
    assert analysis.variables[0].sensitivity == 0.0
