from __future__ import annotations

import math
from typing import Any, List, Mapping, Sequence, Union

from proforma.adapters.config import config
from proforma.adapters.logging_utils import get_logger
from proforma.analysis.model import calculate_model_outputs
from proforma.domain.errors import RangeValidationError
from proforma.domain.inputs import ModelAssumptions, ModelInputs, ScenarioDefinition
from proforma.domain.outputs import (
    KeyMetrics,
    ModelOutputs,
    Scenario,
    ScenarioAnalysis,
    ScenarioSummary,
)

logger = get_logger(__name__)

LOW_CAP_RATE_THRESHOLD = 5.0  # percent


def calculate_risk_score(outputs: ModelOutputs, inputs: ModelInputs) -> float:
    """
    Composite 0..1-ish score: mean of leverage (loan / value), a negative
    cash-flow flag and a cap-rate-below-5% flag.
    """
    leverage = inputs.loan_amount / inputs.property_value
    cash_flow_risk = 1.0 if outputs.annual_cash_flow < 0 else 0.0
    cap_rate_risk = 1.0 if outputs.cap_rate < LOW_CAP_RATE_THRESHOLD else 0.0
    return (leverage + cash_flow_risk + cap_rate_risk) / 3.0


def _coerce(defn: Union[ScenarioDefinition, Mapping[str, Any]]) -> ScenarioDefinition:
    if isinstance(defn, ScenarioDefinition):
        return defn
    return ScenarioDefinition(**defn)


def validate_probabilities(definitions: Sequence[ScenarioDefinition]) -> None:
    if not definitions:
        raise RangeValidationError("scenario analysis needs at least one scenario")

    for d in definitions:
        if not (0.0 <= d.probability <= 1.0) or math.isnan(d.probability):
            raise RangeValidationError(
                f"scenario '{d.name}': probability must be within [0, 1] (got {d.probability})"
            )

    total = sum(d.probability for d in definitions)
    if not math.isclose(total, 1.0, rel_tol=0.0, abs_tol=config.SCENARIO_PROBABILITY_TOLERANCE):
        raise RangeValidationError(f"scenario probabilities must sum to 1 (got {total:.6f})")


def perform_scenario_analysis(
    inputs: ModelInputs,
    assumptions: ModelAssumptions,
    scenarios: Sequence[Union[ScenarioDefinition, Mapping[str, Any]]],
) -> ScenarioAnalysis:
    """
    Evaluate each probability-weighted scenario and aggregate.

    Overrides are shallow-merged onto the base inputs. Expected values are
    plain probability-weighted sums (probabilities are validated to sum to 1
    first). Best / worst are by NPV, most likely by probability; on ties the
    earliest scenario wins.
    """
    definitions = [_coerce(s) for s in scenarios]
    validate_probabilities(definitions)

    results: List[Scenario] = []
    for d in definitions:
        scenario_inputs = d.apply(inputs)
        outputs = calculate_model_outputs(scenario_inputs, assumptions)
        results.append(
            Scenario(
                name=d.name,
                description=d.description,
                inputs=dict(d.inputs),
                probability=d.probability,
                outputs=outputs,
                key_metrics=KeyMetrics(
                    npv=outputs.net_present_value,
                    irr=outputs.internal_rate_of_return.value,
                    irr_converged=outputs.internal_rate_of_return.converged,
                    cash_flow=outputs.annual_cash_flow,
                    risk=calculate_risk_score(outputs, scenario_inputs),
                ),
            )
        )

    best = results[0]
    worst = results[0]
    most_likely = results[0]
    for s in results[1:]:
        if s.outputs.net_present_value > best.outputs.net_present_value:
            best = s
        if s.outputs.net_present_value < worst.outputs.net_present_value:
            worst = s
        if s.probability > most_likely.probability:
            most_likely = s

    summary = ScenarioSummary(
        expected_npv=sum(s.outputs.net_present_value * s.probability for s in results),
        expected_irr=sum(s.key_metrics.irr * s.probability for s in results),
        expected_cash_flow=sum(s.outputs.annual_cash_flow * s.probability for s in results),
        risk_score=sum(s.key_metrics.risk * s.probability for s in results),
        best_case=best,
        worst_case=worst,
        most_likely=most_likely,
        expected_irr_converged=all(s.key_metrics.irr_converged for s in results),
    )

    logger.info(
        "scenario_analysis_complete",
        extra={
            "context": {
                "scenarios": [s.name for s in results],
                "expected_npv": summary.expected_npv,
                "best_case": best.name,
                "worst_case": worst.name,
            }
        },
    )
    return ScenarioAnalysis(scenarios=results, summary=summary)
