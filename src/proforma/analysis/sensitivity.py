from __future__ import annotations

from typing import List, Optional, Sequence

from proforma.adapters.logging_utils import get_logger
from proforma.analysis.model import calculate_model_outputs
from proforma.analysis.monte_carlo import UniformSource, perform_monte_carlo_simulation
from proforma.domain.inputs import ModelAssumptions, ModelInputs
from proforma.domain.outputs import SensitivityAnalysis, SpiderChartData, TornadoChartData
from proforma.domain.variables import SensitivityVariable

logger = get_logger(__name__)


def sweep_variable(
    inputs: ModelInputs,
    assumptions: ModelAssumptions,
    variable: SensitivityVariable,
) -> SpiderChartData:
    """
    One-at-a-time sweep of a single variable; everything else stays at base.
    Returns the (value, NPV) response curve.
    """
    values = variable.sweep_values()
    npvs: List[float] = []
    for value in values:
        i, a = variable.name.apply(inputs, assumptions, value)
        npvs.append(calculate_model_outputs(i, a).net_present_value)
    return SpiderChartData(
        variable=variable.name.value,
        values=tuple(values),
        npv_impact=tuple(npvs),
    )


def build_tornado_chart(variables: Sequence[SensitivityVariable]) -> List[TornadoChartData]:
    """Bars ordered by |impact|, largest first."""
    ranked = sorted(variables, key=lambda v: abs(v.impact or 0.0), reverse=True)
    bars: List[TornadoChartData] = []
    for v in ranked:
        impact = v.impact or 0.0
        bars.append(
            TornadoChartData(
                variable=v.name.value,
                positive_impact=impact if impact > 0 else 0.0,
                negative_impact=abs(impact) if impact < 0 else 0.0,
                range=abs(impact),
            )
        )
    return bars


def perform_sensitivity_analysis(
    inputs: ModelInputs,
    assumptions: ModelAssumptions,
    variables: Sequence[SensitivityVariable],
    *,
    iterations: Optional[int] = None,
    rng: Optional[UniformSource] = None,
    seed: Optional[int] = None,
    n_jobs: Optional[int] = None,
) -> SensitivityAnalysis:
    """
    Tornado + spider datasets for `variables`, plus a Monte Carlo run over
    the same variable set.

    impact = max - min of (NPV - base NPV) across the sweep, so it is never
    negative; sensitivity = impact / (max_value - min_value), 0 for a
    zero-width range.
    """
    base_npv = calculate_model_outputs(inputs, assumptions).net_present_value

    enriched: List[SensitivityVariable] = []
    spider: List[SpiderChartData] = []
    for variable in variables:
        curve = sweep_variable(inputs, assumptions, variable)
        deltas = [npv - base_npv for npv in curve.npv_impact]
        impact = max(deltas) - min(deltas)
        sensitivity = impact / variable.span if variable.span > 0 else 0.0

        enriched.append(variable.with_results(impact=impact, sensitivity=sensitivity))
        spider.append(curve)

    tornado = build_tornado_chart(enriched)

    monte_carlo = perform_monte_carlo_simulation(
        inputs,
        assumptions,
        variables,
        iterations,
        rng=rng,
        seed=seed,
        n_jobs=n_jobs,
    )

    logger.info(
        "sensitivity_complete",
        extra={
            "context": {
                "base_npv": base_npv,
                "ranking": [bar.variable for bar in tornado],
            }
        },
    )

    return SensitivityAnalysis(
        variables=enriched,
        tornado_chart=tornado,
        spider_chart=spider,
        monte_carlo_results=monte_carlo,
        base_npv=base_npv,
    )
