# src/proforma/analysis/monte_carlo.py
"""
Monte Carlo simulation of NPV.

Each iteration draws one value per variable from a normal centred on the
variable's base value (sigma = range / 6), rejection-sampled into
[min, max], applies the draws to fresh copies of the base inputs and
recomputes the NPV. Only the sorted outcome distribution and its summary
statistics are returned.

Draws are produced sequentially from a single uniform source so a seeded
run is reproducible; the NPV evaluation of those draws is what fans out
over the joblib pool.
"""
from __future__ import annotations

import math
import time
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed

from proforma.adapters.config import config
from proforma.adapters.logging_utils import get_logger
from proforma.analysis.model import calculate_model_outputs
from proforma.domain.errors import RangeValidationError
from proforma.domain.inputs import ModelAssumptions, ModelInputs
from proforma.domain.outputs import ConfidenceIntervals, MonteCarloResults
from proforma.domain.variables import SensitivityVariable, VariableName

logger = get_logger(__name__)

PERCENTILES = {"p5": 0.05, "p10": 0.10, "p25": 0.25, "p75": 0.75, "p90": 0.90, "p95": 0.95}
TAIL_FRACTION = 0.05


class UniformSource(Protocol):
    def random(self) -> float:
        ...


def standard_normal(rng: UniformSource) -> float:
    """Box-Muller: z0 = sqrt(-2 ln u1) * cos(2 pi u2)."""
    u1 = rng.random()
    while u1 <= 0.0:
        u1 = rng.random()
    u2 = rng.random()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def draw_in_range(
    rng: UniformSource,
    base: float,
    low: float,
    high: float,
    max_rejections: Optional[int] = None,
) -> Tuple[float, bool]:
    """
    One normal draw around `base` that lands inside [low, high].

    Returns (value, clamped). After `max_rejections` misses the last draw is
    clamped to the nearest bound and `clamped` is True.
    """
    if high == low:
        return low, False

    cap = config.MC_MAX_REJECTIONS if max_rejections is None else max_rejections
    std = (high - low) / 6.0

    value = base
    for _ in range(cap):
        value = base + standard_normal(rng) * std
        if low <= value <= high:
            return value, False

    return min(max(value, low), high), True


def _npv_for_draws(
    inputs: ModelInputs,
    assumptions: ModelAssumptions,
    names: Sequence[VariableName],
    rows: Sequence[Sequence[float]],
) -> List[float]:
    out: List[float] = []
    for row in rows:
        i, a = inputs, assumptions
        for name, value in zip(names, row):
            i, a = name.apply(i, a, value)
        out.append(calculate_model_outputs(i, a).net_present_value)
    return out


def summarize_distribution(npvs: Sequence[float], clamped_draws: int = 0) -> MonteCarloResults:
    """
    Reduce raw NPV outcomes into MonteCarloResults.

    Median and percentiles index the sorted array at floor(n * p); the
    standard deviation is the population one. Expected shortfall averages
    the worst floor(n * 5%) outcomes, or the single worst when that is zero.
    """
    raw = np.asarray(npvs, dtype=float)
    n = int(raw.shape[0])
    if n == 0:
        raise RangeValidationError("cannot summarize an empty NPV distribution")

    ordered = np.sort(raw)

    def _at(p: float) -> float:
        return float(ordered[int(math.floor(n * p))])

    intervals = ConfidenceIntervals(**{k: _at(p) for k, p in PERCENTILES.items()})

    tail_n = int(math.floor(n * TAIL_FRACTION))
    tail = ordered[:tail_n] if tail_n > 0 else ordered[:1]

    return MonteCarloResults(
        iterations=n,
        mean_npv=float(raw.mean()),
        median_npv=float(ordered[n // 2]),
        standard_deviation=float(raw.std()),
        confidence_intervals=intervals,
        probability_of_positive_return=float(np.count_nonzero(raw > 0) / n),
        value_at_risk=intervals.p5,
        expected_shortfall=float(tail.mean()),
        distribution=tuple(float(x) for x in ordered),
        clamped_draws=clamped_draws,
    )


def perform_monte_carlo_simulation(
    inputs: ModelInputs,
    assumptions: ModelAssumptions,
    variables: Sequence[SensitivityVariable],
    iterations: Optional[int] = None,
    *,
    rng: Optional[UniformSource] = None,
    seed: Optional[int] = None,
    n_jobs: Optional[int] = None,
) -> MonteCarloResults:
    """
    Simulate `iterations` NPV outcomes with every variable drawn at random.

    `rng` is any object with `random() -> float in [0, 1)`; without one a
    numpy Generator seeded with `seed` is used. The result does not depend
    on `n_jobs`.
    """
    n = config.MC_DEFAULT_ITERATIONS if iterations is None else int(iterations)
    if n <= 0:
        raise RangeValidationError(f"iterations must be > 0 (got {n})")
    jobs = config.MC_N_JOBS if n_jobs is None else n_jobs
    if rng is None:
        rng = np.random.default_rng(seed)

    names = [v.name for v in variables]
    t0 = time.perf_counter()

    draws: List[List[float]] = []
    clamped = 0
    for _ in range(n):
        row: List[float] = []
        for v in variables:
            value, was_clamped = draw_in_range(rng, v.base_value, v.min_value, v.max_value)
            clamped += was_clamped
            row.append(value)
        draws.append(row)

    if jobs == 1:
        npvs = _npv_for_draws(inputs, assumptions, names, draws)
    else:
        size = config.MC_CHUNK_SIZE
        chunks = [draws[i:i + size] for i in range(0, n, size)]
        with Parallel(n_jobs=jobs, backend="loky") as parallel:
            parts = parallel(
                delayed(_npv_for_draws)(inputs, assumptions, names, chunk) for chunk in chunks
            )
        npvs = [x for part in parts for x in part]

    results = summarize_distribution(npvs, clamped_draws=clamped)

    if clamped:
        logger.warning(
            "monte_carlo_clamped_draws",
            extra={"context": {"clamped_draws": clamped, "iterations": n}},
        )
    logger.info(
        "monte_carlo_complete",
        extra={
            "context": {
                "iterations": n,
                "variables": [name.value for name in names],
                "n_jobs": jobs,
                "elapsed_s": round(time.perf_counter() - t0, 4),
                "mean_npv": results.mean_npv,
                "p_positive": results.probability_of_positive_return,
            }
        },
    )
    return results
