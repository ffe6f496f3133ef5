from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from proforma.domain.variables import SensitivityVariable


@dataclass(frozen=True)
class RateResult:
    value: float        # percent; NaN when the rate is undefined
    converged: bool
    iterations: int


@dataclass(frozen=True)
class ModelOutputs:
    net_present_value: float
    internal_rate_of_return: RateResult
    modified_internal_rate_of_return: RateResult
    cash_on_cash_return: float          # %
    cap_rate: float                     # %
    gross_rent_multiplier: float
    price_per_square_foot: float
    monthly_cash_flow: float
    annual_cash_flow: float
    total_cash_flow: float
    equity_multiple: float
    payback_period: Optional[int]       # years; None = never recovered in the hold
    net_operating_income: float
    debt_service_coverage_ratio: float
    loan_to_value_ratio: float          # %
    debt_yield: float                   # %
    return_on_equity: float             # %
    return_on_investment: float         # %

    monthly_payment: float
    exit_value: float
    cash_flows: Tuple[float, ...]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["cash_flows"] = list(self.cash_flows)
        return d


@dataclass(frozen=True)
class TornadoChartData:
    variable: str
    positive_impact: float
    negative_impact: float
    range: float


@dataclass(frozen=True)
class SpiderChartData:
    variable: str
    values: Tuple[float, ...]
    npv_impact: Tuple[float, ...]


@dataclass(frozen=True)
class ConfidenceIntervals:
    p5: float
    p10: float
    p25: float
    p75: float
    p90: float
    p95: float


@dataclass(frozen=True)
class MonteCarloResults:
    iterations: int
    mean_npv: float
    median_npv: float
    standard_deviation: float
    confidence_intervals: ConfidenceIntervals
    probability_of_positive_return: float
    value_at_risk: float
    expected_shortfall: float
    distribution: Tuple[float, ...]     # sorted ascending
    clamped_draws: int = 0              # draws that exhausted the rejection cap

    def to_dict(self, include_distribution: bool = True) -> Dict[str, Any]:
        d = asdict(self)
        if include_distribution:
            d["distribution"] = list(self.distribution)
        else:
            d.pop("distribution")
        return d


@dataclass(frozen=True)
class SensitivityAnalysis:
    variables: List[SensitivityVariable]
    tornado_chart: List[TornadoChartData]
    spider_chart: List[SpiderChartData]
    monte_carlo_results: MonteCarloResults
    base_npv: float = 0.0

    def to_dict(self, include_distribution: bool = True) -> Dict[str, Any]:
        return {
            "base_npv": self.base_npv,
            "variables": [v.to_dict() for v in self.variables],
            "tornado_chart": [asdict(t) for t in self.tornado_chart],
            "spider_chart": [
                {"variable": s.variable, "values": list(s.values), "npv_impact": list(s.npv_impact)}
                for s in self.spider_chart
            ],
            "monte_carlo_results": self.monte_carlo_results.to_dict(include_distribution),
        }


@dataclass(frozen=True)
class KeyMetrics:
    npv: float
    irr: float
    cash_flow: float
    risk: float     # composite 0..1
    irr_converged: bool = True


@dataclass(frozen=True)
class Scenario:
    name: str
    description: str
    inputs: Dict[str, Any]
    probability: float
    outputs: ModelOutputs
    key_metrics: KeyMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputs": dict(self.inputs),
            "probability": self.probability,
            "outputs": self.outputs.to_dict(),
            "key_metrics": asdict(self.key_metrics),
        }


@dataclass(frozen=True)
class ScenarioSummary:
    expected_npv: float
    expected_irr: float
    expected_cash_flow: float
    risk_score: float
    best_case: Scenario
    worst_case: Scenario
    most_likely: Scenario
    # False when any scenario IRR has no root; expected_irr is then NaN
    expected_irr_converged: bool = True


@dataclass(frozen=True)
class ScenarioAnalysis:
    scenarios: List[Scenario] = field(default_factory=list)
    summary: Optional[ScenarioSummary] = None

    def to_dict(self) -> Dict[str, Any]:
        summary = None
        if self.summary is not None:
            s = self.summary
            summary = {
                "expected_npv": s.expected_npv,
                "expected_irr": s.expected_irr,
                "expected_irr_converged": s.expected_irr_converged,
                "expected_cash_flow": s.expected_cash_flow,
                "risk_score": s.risk_score,
                # chart consumers key scenario cards by name
                "best_case": s.best_case.name,
                "worst_case": s.worst_case.name,
                "most_likely": s.most_likely.name,
            }
        return {"scenarios": [sc.to_dict() for sc in self.scenarios], "summary": summary}
