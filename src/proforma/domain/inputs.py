# src/proforma/domain/inputs.py
from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from proforma.domain.errors import InvalidInputError

# Fields that hold percentage points (6.5 means 6.5%), never fractions.
PERCENT_INPUT_FIELDS = (
    "interest_rate",
    "vacancy_rate",
    "appreciation_rate",
    "tax_rate",
    "depreciation_rate",
    "inflation_rate",
)

MONEY_INPUT_FIELDS = (
    "property_value",
    "purchase_price",
    "down_payment",
    "loan_amount",
    "monthly_rent",
    "operating_expenses",
    "capital_expenditures",
)

PERCENT_ASSUMPTION_FIELDS = (
    "exit_cap_rate",
    "rent_growth_rate",
    "expense_growth_rate",
    "market_growth_rate",
    "risk_free_rate",
    "market_risk_premium",
)


def _to_num(val: Any) -> Any:
    """
    Coerce values like:
      - 250000
      - "250,000"
      - "$250,000"
      - "6.5%"
    into float. The percent sign is only stripped; 6.5% stays 6.5.
    Anything else is handed to pydantic untouched so it reports the error.
    """
    if isinstance(val, str):
        s = val.strip().replace(",", "").replace("$", "")
        if s.endswith("%"):
            s = s[:-1].strip()
        try:
            return float(s)
        except ValueError:
            return val
    return val


class ModelInputs(BaseModel):
    """
    Property-level financial inputs.

    `loan_amount == purchase_price - down_payment` is expected but not
    enforced; callers own that consistency.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    property_value: float = Field(..., description="Current market value")
    purchase_price: float = Field(..., description="Price paid")
    down_payment: float = Field(..., description="Cash equity at purchase")
    loan_amount: float = Field(..., description="Mortgage principal")
    interest_rate: float = Field(..., description="Annual rate in percent, e.g. 6.5")
    loan_term: int = Field(..., description="Amortization period in years")

    monthly_rent: float
    vacancy_rate: float = Field(0.0, description="Percent of gross rent lost")
    operating_expenses: float = Field(0.0, description="Annual, excluding debt service")
    capital_expenditures: float = Field(0.0, description="Annual capex reserve")

    appreciation_rate: float = 0.0
    tax_rate: float = 0.0
    depreciation_rate: float = 0.0
    inflation_rate: float = 0.0

    metadata: dict[str, Any] | None = None

    @field_validator(*MONEY_INPUT_FIELDS, *PERCENT_INPUT_FIELDS, mode="before")
    @classmethod
    def _numeric(cls, v: Any) -> Any:
        return _to_num(v)

    @field_validator("loan_term", mode="before")
    @classmethod
    def _term_years(cls, v: Any) -> Any:
        v = _to_num(v)
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @property
    def square_footage(self) -> float | None:
        if not self.metadata:
            return None
        sqft = self.metadata.get("square_footage", self.metadata.get("squareFootage"))
        if sqft is None:
            return None
        value = _to_num(sqft)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidInputError(
                "metadata", f"metadata: square footage must be a finite number (got {sqft!r})"
            )
        return float(value)

    def with_value(self, field: str, value: float) -> "ModelInputs":
        return self.model_copy(update={field: value})


class ModelAssumptions(BaseModel):
    """Market and holding-period assumptions driving the DCF."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    holding_period: int = Field(..., ge=1, description="Years held before exit")
    exit_cap_rate: float = Field(..., description="Percent")
    rent_growth_rate: float = 0.0
    expense_growth_rate: float = 0.0
    market_growth_rate: float = 0.0
    risk_free_rate: float = 0.0
    market_risk_premium: float = 0.0
    beta: float = 1.0
    correlation_with_market: float = 0.0

    @field_validator(*PERCENT_ASSUMPTION_FIELDS, mode="before")
    @classmethod
    def _numeric(cls, v: Any) -> Any:
        return _to_num(v)

    @field_validator("holding_period", mode="before")
    @classmethod
    def _whole_years(cls, v: Any) -> Any:
        v = _to_num(v)
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @property
    def discount_rate(self) -> float:
        """
        Discount rate (percent) used for NPV.

        NOTE: beta is carried but not applied; this is risk-free + premium,
        not the CAPM risk-free + beta * premium.
        """
        return self.risk_free_rate + self.market_risk_premium

    def with_value(self, field: str, value: float) -> "ModelAssumptions":
        return self.model_copy(update={field: value})


class ScenarioDefinition(BaseModel):
    """
    A named, probability-weighted override of the base inputs.

    `inputs` is a partial ModelInputs: only the keys given replace the base.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    inputs: dict[str, Any] = Field(default_factory=dict)
    probability: float

    @field_validator("inputs")
    @classmethod
    def _known_fields(cls, v: dict[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(v) - set(ModelInputs.model_fields))
        if unknown:
            raise ValueError(f"unknown input override(s): {', '.join(unknown)}")
        return {k: _to_num(val) for k, val in v.items()}

    @field_validator("probability", mode="before")
    @classmethod
    def _probability(cls, v: Any) -> Any:
        # "25%" -> 0.25; bare numbers are already fractions
        n = _to_num(v)
        if isinstance(v, str) and v.strip().endswith("%") and isinstance(n, float):
            return n / 100.0
        return n

    def apply(self, base: ModelInputs) -> ModelInputs:
        """Shallow merge: `metadata` in an override replaces the base dict wholesale."""
        merged = base.model_dump()
        merged.update(self.inputs)
        try:
            return ModelInputs(**merged)
        except ValidationError as err:
            loc = err.errors()[0]["loc"]
            field = str(loc[0]) if loc else "inputs"
            raise InvalidInputError(field, f"scenario '{self.name}': invalid override for {field}") from err
