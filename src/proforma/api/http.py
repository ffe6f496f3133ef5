# src/proforma/api/http.py
from __future__ import annotations

import math
from typing import Any

from fastapi import FastAPI, HTTPException

from proforma.adapters.logging_utils import get_logger
from proforma.analysis.model import calculate_model_outputs
from proforma.analysis.monte_carlo import perform_monte_carlo_simulation
from proforma.analysis.scenarios import perform_scenario_analysis
from proforma.analysis.sensitivity import perform_sensitivity_analysis
from proforma.domain.errors import ModelError
from proforma.services.modeling import create_financial_model, default_sensitivity_variables

from .schemas import (
    AnalysisResponse,
    CreateModelRequest,
    ModelRequest,
    MonteCarloRequest,
    ScenarioRequest,
    SensitivityRequest,
)

logger = get_logger(__name__)

app = FastAPI(title="proforma")


def _json_safe(obj: Any) -> Any:
    """NaN / inf have no JSON spelling; send them as null."""
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_json_safe(v) for v in obj]
    return obj


def _bad_request(err: ModelError) -> HTTPException:
    logger.info(
        "model_request_rejected",
        extra={"context": {"error": type(err).__name__, "detail": str(err)}},
    )
    return HTTPException(status_code=400, detail=str(err))


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/model/outputs", response_model=AnalysisResponse)
def model_outputs(payload: ModelRequest) -> AnalysisResponse:
    try:
        outputs = calculate_model_outputs(payload.inputs, payload.assumptions)
    except ModelError as e:
        raise _bad_request(e) from e
    return AnalysisResponse(result=_json_safe(outputs.to_dict()))


@app.post("/model/sensitivity", response_model=AnalysisResponse)
def sensitivity(payload: SensitivityRequest) -> AnalysisResponse:
    try:
        variables = [v.to_domain() for v in payload.variables]
        analysis = perform_sensitivity_analysis(
            payload.inputs,
            payload.assumptions,
            variables,
            iterations=payload.iterations,
            seed=payload.seed,
        )
    except ModelError as e:
        raise _bad_request(e) from e
    return AnalysisResponse(result=_json_safe(analysis.to_dict(include_distribution=False)))


@app.post("/model/monte-carlo", response_model=AnalysisResponse)
def monte_carlo(payload: MonteCarloRequest) -> AnalysisResponse:
    try:
        variables = [v.to_domain() for v in payload.variables]
        results = perform_monte_carlo_simulation(
            payload.inputs,
            payload.assumptions,
            variables,
            payload.iterations,
            seed=payload.seed,
        )
    except ModelError as e:
        raise _bad_request(e) from e
    return AnalysisResponse(result=_json_safe(results.to_dict(payload.include_distribution)))


@app.post("/model/scenarios", response_model=AnalysisResponse)
def scenarios(payload: ScenarioRequest) -> AnalysisResponse:
    try:
        analysis = perform_scenario_analysis(payload.inputs, payload.assumptions, payload.scenarios)
    except ModelError as e:
        raise _bad_request(e) from e
    return AnalysisResponse(result=_json_safe(analysis.to_dict()))


@app.post("/model", response_model=AnalysisResponse)
def create_model(payload: CreateModelRequest) -> AnalysisResponse:
    """
    Build a full model record. Nothing is stored; the caller keeps the id.
    """
    try:
        if payload.variables:
            variables = [v.to_domain() for v in payload.variables]
        elif payload.use_default_variables:
            variables = default_sensitivity_variables(payload.inputs, payload.assumptions)
        else:
            variables = None

        model = create_financial_model(
            payload.name,
            payload.type,
            payload.inputs,
            payload.assumptions,
            sensitivity_variables=variables,
            scenarios=payload.scenarios,
            iterations=payload.iterations,
            seed=payload.seed,
        )
    except ModelError as e:
        raise _bad_request(e) from e
    return AnalysisResponse(result=_json_safe(model.to_dict()))
