# src/proforma/domain/variables.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Literal

from proforma.domain.errors import RangeValidationError, UnknownVariableError
from proforma.domain.inputs import ModelAssumptions, ModelInputs

Target = Literal["inputs", "assumptions"]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class VariableName(str, Enum):
    """Model fields that sensitivity and Monte Carlo runs are allowed to perturb."""

    PROPERTY_VALUE = "property_value"
    PURCHASE_PRICE = "purchase_price"
    MONTHLY_RENT = "monthly_rent"
    VACANCY_RATE = "vacancy_rate"
    OPERATING_EXPENSES = "operating_expenses"
    CAPITAL_EXPENDITURES = "capital_expenditures"
    INTEREST_RATE = "interest_rate"
    APPRECIATION_RATE = "appreciation_rate"

    RENT_GROWTH_RATE = "rent_growth_rate"
    EXPENSE_GROWTH_RATE = "expense_growth_rate"
    EXIT_CAP_RATE = "exit_cap_rate"
    RISK_FREE_RATE = "risk_free_rate"
    MARKET_RISK_PREMIUM = "market_risk_premium"

    @property
    def target(self) -> Target:
        if self.value in ModelAssumptions.model_fields:
            return "assumptions"
        return "inputs"

    @classmethod
    def parse(cls, name: "str | VariableName") -> "VariableName":
        """
        Accept the enum itself, its snake_case value, or the camelCase spelling
        ("monthlyRent") used by JSON clients.
        """
        if isinstance(name, cls):
            return name
        key = _CAMEL_BOUNDARY.sub("_", str(name).strip()).lower()
        try:
            return cls(key)
        except ValueError:
            raise UnknownVariableError(str(name)) from None

    def apply(
        self,
        inputs: ModelInputs,
        assumptions: ModelAssumptions,
        value: float,
    ) -> tuple[ModelInputs, ModelAssumptions]:
        """Return copies of (inputs, assumptions) with this field set to `value`."""
        if self.target == "assumptions":
            return inputs, assumptions.with_value(self.value, float(value))
        return inputs.with_value(self.value, float(value)), assumptions


@dataclass(frozen=True)
class SensitivityVariable:
    """
    One perturbable model field and the range it is swept / sampled over.

    `impact` and `sensitivity` stay None until the sensitivity analyzer fills
    them in on a new instance.
    """
    name: VariableName
    base_value: float
    min_value: float
    max_value: float
    step: float
    impact: float | None = None
    sensitivity: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", VariableName.parse(self.name))
        for attr in ("base_value", "min_value", "max_value", "step"):
            v = float(getattr(self, attr))
            if not math.isfinite(v):
                raise RangeValidationError(f"{self.name.value}: {attr} must be finite")
            object.__setattr__(self, attr, v)
        if self.min_value > self.max_value:
            raise RangeValidationError(
                f"{self.name.value}: min_value {self.min_value} > max_value {self.max_value}"
            )
        if self.step <= 0:
            raise RangeValidationError(f"{self.name.value}: step must be > 0")

    @property
    def span(self) -> float:
        return self.max_value - self.min_value

    def sweep_values(self) -> list[float]:
        """
        Values min + k*step for k = 0..K. The max bound is included when the
        range divides evenly by step (with a small float tolerance); a
        zero-width range yields the single bound.
        """
        count = int(math.floor(self.span / self.step + 1e-9)) + 1
        values = [self.min_value + k * self.step for k in range(count)]
        # snap float drift on the last point
        if values and math.isclose(values[-1], self.max_value, rel_tol=1e-9, abs_tol=1e-12):
            values[-1] = self.max_value
        return values

    def with_results(self, impact: float, sensitivity: float) -> "SensitivityVariable":
        return replace(self, impact=impact, sensitivity=sensitivity)

    def to_dict(self) -> dict:
        return {
            "name": self.name.value,
            "base_value": self.base_value,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "step": self.step,
            "impact": self.impact,
            "sensitivity": self.sensitivity,
        }
