# src/proforma/api/schemas.py
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from proforma.domain.inputs import ModelAssumptions, ModelInputs, ScenarioDefinition
from proforma.domain.variables import SensitivityVariable


# --------------------------------------------
# Shared pieces
# --------------------------------------------

class VariableSpec(BaseModel):
    """
    Wire form of a sensitivity variable. The name is checked against the
    known model fields when converted, not here, so an unknown name comes
    back as a 400 with the engine's message.
    """
    name: str
    base_value: float
    min_value: float
    max_value: float
    step: float

    def to_domain(self) -> SensitivityVariable:
        return SensitivityVariable(
            name=self.name,
            base_value=self.base_value,
            min_value=self.min_value,
            max_value=self.max_value,
            step=self.step,
        )


class ModelRequest(BaseModel):
    inputs: ModelInputs
    assumptions: ModelAssumptions


# --------------------------------------------
# Analyses
# --------------------------------------------

class SensitivityRequest(ModelRequest):
    variables: list[VariableSpec] = Field(default_factory=list)
    iterations: int | None = Field(default=None, description="Monte Carlo draws; config default when omitted")
    seed: int | None = None


class MonteCarloRequest(ModelRequest):
    variables: list[VariableSpec] = Field(default_factory=list)
    iterations: int | None = None
    seed: int | None = None
    include_distribution: bool = True


class ScenarioRequest(ModelRequest):
    scenarios: list[ScenarioDefinition]


class CreateModelRequest(ModelRequest):
    name: str
    type: Literal["dcf", "comparable", "income", "cost", "hybrid"] = "dcf"
    variables: list[VariableSpec] | None = None
    use_default_variables: bool = False
    scenarios: list[ScenarioDefinition] | None = None
    iterations: int | None = None
    seed: int | None = None


class AnalysisResponse(BaseModel):
    """
    Results are plain dicts built by the engine's to_dict() methods.
    Keep this permissive so new output fields don't break clients.
    """
    model_config = ConfigDict(extra="allow")

    result: dict[str, Any]
