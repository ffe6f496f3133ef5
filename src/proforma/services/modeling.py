# src/proforma/services/modeling.py
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Union

from proforma.adapters.logging_utils import get_logger
from proforma.analysis.model import calculate_model_outputs
from proforma.analysis.scenarios import perform_scenario_analysis
from proforma.analysis.sensitivity import perform_sensitivity_analysis
from proforma.domain.inputs import ModelAssumptions, ModelInputs, ScenarioDefinition
from proforma.domain.outputs import ModelOutputs, ScenarioAnalysis, SensitivityAnalysis
from proforma.domain.variables import SensitivityVariable, VariableName

logger = get_logger(__name__)

ModelType = Literal["dcf", "comparable", "income", "cost", "hybrid"]
MODEL_TYPES = ("dcf", "comparable", "income", "cost", "hybrid")

Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class FinancialModel:
    """
    A complete, self-describing model run. Building one never touches
    storage; the id is opaque and only meant as a key for whoever persists it.
    """
    id: str
    name: str
    type: ModelType
    inputs: ModelInputs
    assumptions: ModelAssumptions
    outputs: ModelOutputs
    created_at: int
    updated_at: int
    sensitivity_analysis: Optional[SensitivityAnalysis] = None
    scenario_analysis: Optional[ScenarioAnalysis] = None

    def to_dict(self, include_distribution: bool = False) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "inputs": self.inputs.model_dump(),
            "assumptions": self.assumptions.model_dump(),
            "outputs": self.outputs.to_dict(),
            "sensitivity_analysis": (
                self.sensitivity_analysis.to_dict(include_distribution)
                if self.sensitivity_analysis is not None
                else None
            ),
            "scenario_analysis": (
                self.scenario_analysis.to_dict() if self.scenario_analysis is not None else None
            ),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def default_sensitivity_variables(
    inputs: ModelInputs,
    assumptions: ModelAssumptions,
) -> List[SensitivityVariable]:
    """
    A reasonable starting set: +/-20% on the money drivers, +/-2 points on
    the rate drivers. Floors keep the model valid (exit cap stays > 0,
    property value stays above the loan).
    """

    def _pct_band(
        name: VariableName, base: float, steps: int = 8, floor: Optional[float] = None
    ) -> SensitivityVariable:
        low, high = base * 0.8, base * 1.2
        low, high = min(low, high), max(low, high)
        if floor is not None:
            low = max(low, floor)
            high = max(low, high)
        step = (high - low) / steps if high > low else 1.0
        return SensitivityVariable(name, base, low, high, step)

    def _point_band(
        name: VariableName, base: float, floor: float = 0.0, width: float = 2.0, step: float = 0.5
    ) -> SensitivityVariable:
        low = max(floor, base - width)
        high = max(low, base + width)
        return SensitivityVariable(name, base, low, high, step)

    return [
        _pct_band(VariableName.MONTHLY_RENT, inputs.monthly_rent),
        _pct_band(VariableName.OPERATING_EXPENSES, inputs.operating_expenses),
        _pct_band(
            VariableName.PROPERTY_VALUE,
            inputs.property_value,
            floor=inputs.loan_amount + 0.05 * abs(inputs.property_value),
        ),
        _point_band(VariableName.INTEREST_RATE, inputs.interest_rate),
        _point_band(VariableName.VACANCY_RATE, inputs.vacancy_rate, width=5.0, step=1.0),
        _point_band(VariableName.RENT_GROWTH_RATE, assumptions.rent_growth_rate, floor=-5.0),
        _point_band(VariableName.EXPENSE_GROWTH_RATE, assumptions.expense_growth_rate, floor=-5.0),
        _point_band(VariableName.EXIT_CAP_RATE, assumptions.exit_cap_rate, floor=0.5),
    ]


def create_financial_model(
    name: str,
    model_type: ModelType,
    inputs: ModelInputs,
    assumptions: ModelAssumptions,
    *,
    sensitivity_variables: Optional[Sequence[SensitivityVariable]] = None,
    scenarios: Optional[Sequence[Union[ScenarioDefinition, Mapping[str, Any]]]] = None,
    iterations: Optional[int] = None,
    seed: Optional[int] = None,
    clock: Optional[Clock] = None,
) -> FinancialModel:
    """
    Compute outputs and, when variables / scenarios are supplied, the
    corresponding analyses, and stamp the result with an id and timestamps.
    """
    if model_type not in MODEL_TYPES:
        raise ValueError(f"unknown model type: {model_type!r}")
    clock = clock or _now_ms

    outputs = calculate_model_outputs(inputs, assumptions)

    sensitivity = None
    if sensitivity_variables:
        sensitivity = perform_sensitivity_analysis(
            inputs, assumptions, sensitivity_variables, iterations=iterations, seed=seed
        )

    scenario_analysis = None
    if scenarios:
        scenario_analysis = perform_scenario_analysis(inputs, assumptions, scenarios)

    ts = clock()
    model = FinancialModel(
        id=f"model_{uuid.uuid4().hex}",
        name=name,
        type=model_type,
        inputs=inputs,
        assumptions=assumptions,
        outputs=outputs,
        created_at=ts,
        updated_at=ts,
        sensitivity_analysis=sensitivity,
        scenario_analysis=scenario_analysis,
    )
    logger.info(
        "financial_model_created",
        extra={"context": {"model_id": model.id, "type": model_type, "npv": outputs.net_present_value}},
    )
    return model


def update_financial_model(
    model: FinancialModel,
    *,
    name: Optional[str] = None,
    inputs: Optional[ModelInputs] = None,
    assumptions: Optional[ModelAssumptions] = None,
    clock: Optional[Clock] = None,
) -> FinancialModel:
    """
    New record with the given fields replaced. Outputs are recomputed when
    inputs or assumptions change, and the analyses built on the old numbers
    are dropped.
    """
    clock = clock or _now_ms
    changes: Dict[str, Any] = {"updated_at": clock()}
    if name is not None:
        changes["name"] = name

    if inputs is not None or assumptions is not None:
        new_inputs = inputs if inputs is not None else model.inputs
        new_assumptions = assumptions if assumptions is not None else model.assumptions
        changes.update(
            inputs=new_inputs,
            assumptions=new_assumptions,
            outputs=calculate_model_outputs(new_inputs, new_assumptions),
            sensitivity_analysis=None,
            scenario_analysis=None,
        )

    return replace(model, **changes)
