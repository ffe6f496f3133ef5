from __future__ import annotations

import logging
import math

from proforma.adapters.logging_utils import get_logger
from proforma.analysis.dcf import (
    calculate_cash_flows,
    calculate_exit_value,
    calculate_irr,
    calculate_mirr,
    calculate_npv,
    calculate_payback_period,
)
from proforma.analysis.metrics import calculate_operating_metrics
from proforma.domain.errors import InvalidInputError
from proforma.domain.inputs import (
    MONEY_INPUT_FIELDS,
    PERCENT_ASSUMPTION_FIELDS,
    PERCENT_INPUT_FIELDS,
    ModelAssumptions,
    ModelInputs,
)
from proforma.domain.outputs import ModelOutputs

logger = get_logger(__name__)


def validate_model_inputs(inputs: ModelInputs, assumptions: ModelAssumptions) -> None:
    """
    Fail fast on inputs that would turn a ratio into inf/NaN.
    The first offending field is reported.
    """
    for record, fields in (
        (inputs, MONEY_INPUT_FIELDS + PERCENT_INPUT_FIELDS),
        (assumptions, PERCENT_ASSUMPTION_FIELDS + ("beta", "correlation_with_market")),
    ):
        for field in fields:
            value = getattr(record, field)
            if not math.isfinite(value):
                raise InvalidInputError(field, f"{field} must be finite (got {value})")

    for field in ("property_value", "down_payment", "loan_amount"):
        value = getattr(inputs, field)
        if value <= 0:
            raise InvalidInputError(field, f"{field} must be > 0 (got {value})")

    if inputs.property_value - inputs.loan_amount == 0:
        raise InvalidInputError(
            "loan_amount", "loan_amount equals property_value; equity for ROE is zero"
        )
    if inputs.loan_term <= 0:
        raise InvalidInputError("loan_term", f"loan_term must be > 0 (got {inputs.loan_term})")
    if inputs.monthly_rent * 12.0 <= 0:
        raise InvalidInputError(
            "monthly_rent",
            f"monthly_rent: gross annual rent must be > 0 (got {inputs.monthly_rent * 12.0})",
        )
    if assumptions.exit_cap_rate <= 0:
        raise InvalidInputError(
            "exit_cap_rate", f"exit_cap_rate must be > 0 (got {assumptions.exit_cap_rate})"
        )


def calculate_model_outputs(inputs: ModelInputs, assumptions: ModelAssumptions) -> ModelOutputs:
    """
    Full metric pipeline: amortization -> operating ratios -> DCF.

    Pure function of its arguments; Sensitivity, Monte Carlo and scenario runs
    call this repeatedly with perturbed copies.
    """
    validate_model_inputs(inputs, assumptions)

    m = calculate_operating_metrics(inputs)

    cash_flows = calculate_cash_flows(inputs, assumptions)
    npv = calculate_npv(cash_flows, assumptions.discount_rate)
    irr = calculate_irr(cash_flows)
    mirr = calculate_mirr(cash_flows, assumptions.risk_free_rate, assumptions.market_risk_premium)

    exit_value = calculate_exit_value(
        property_value=inputs.property_value,
        appreciation_rate=inputs.appreciation_rate,
        exit_cap_rate=assumptions.exit_cap_rate,
        holding_period=assumptions.holding_period,
        net_operating_income=m.net_operating_income,
        rent_growth_rate=assumptions.rent_growth_rate,
        expense_growth_rate=assumptions.expense_growth_rate,
    )

    total_cash_flow = float(cash_flows.sum())
    equity_multiple = (total_cash_flow + exit_value) / inputs.down_payment
    payback = calculate_payback_period(cash_flows, inputs.down_payment)

    if not irr.converged and logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "irr_not_converged",
            extra={"context": {"iterations": irr.iterations, "cash_flows": cash_flows.tolist()}},
        )

    return ModelOutputs(
        net_present_value=npv,
        internal_rate_of_return=irr,
        modified_internal_rate_of_return=mirr,
        cash_on_cash_return=m.cash_on_cash_return,
        cap_rate=m.cap_rate,
        gross_rent_multiplier=m.gross_rent_multiplier,
        price_per_square_foot=m.price_per_square_foot,
        monthly_cash_flow=m.monthly_cash_flow,
        annual_cash_flow=m.annual_cash_flow,
        total_cash_flow=total_cash_flow,
        equity_multiple=equity_multiple,
        payback_period=payback,
        net_operating_income=m.net_operating_income,
        debt_service_coverage_ratio=m.debt_service_coverage_ratio,
        loan_to_value_ratio=m.loan_to_value_ratio,
        debt_yield=m.debt_yield,
        return_on_equity=m.return_on_equity,
        return_on_investment=m.return_on_investment,
        monthly_payment=m.monthly_payment,
        exit_value=exit_value,
        cash_flows=tuple(float(x) for x in cash_flows),
    )
