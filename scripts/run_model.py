"""
Run the financial model over a JSON file and print the results.

The file holds:
    {
      "inputs": {...ModelInputs...},
      "assumptions": {...ModelAssumptions...},
      "variables": [{"name": "monthly_rent", "base_value": ..., ...}],   # optional
      "scenarios": [{"name": "base", "probability": 0.5, "inputs": {...}}] # optional
    }

Usage:
    python scripts/run_model.py model.json --sensitivity --scenarios --seed 7
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd
from pydantic import ValidationError

from proforma.analysis.frames import (
    distribution_summary_frame,
    outputs_frame,
    projection_frame,
    scenarios_frame,
    spider_frame,
    tornado_frame,
)
from proforma.analysis.model import calculate_model_outputs
from proforma.analysis.scenarios import perform_scenario_analysis
from proforma.analysis.sensitivity import perform_sensitivity_analysis
from proforma.domain.errors import ModelError
from proforma.domain.inputs import ModelAssumptions, ModelInputs
from proforma.domain.variables import SensitivityVariable
from proforma.services.modeling import default_sensitivity_variables


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Real-estate investment model runner.")
    ap.add_argument("model", type=Path, help="JSON file with inputs / assumptions")
    ap.add_argument("--sensitivity", action="store_true", help="Run tornado / spider + Monte Carlo")
    ap.add_argument("--scenarios", action="store_true", help="Run the scenarios listed in the file")
    ap.add_argument("--iterations", type=int, default=None, help="Monte Carlo iterations")
    ap.add_argument("--seed", type=int, default=None, help="Seed for reproducible Monte Carlo")
    ap.add_argument("--projection", action="store_true", help="Print the yearly pro forma")
    ap.add_argument("--json", action="store_true", help="Emit JSON instead of tables")
    return ap.parse_args(argv)


def _section(title: str, df: pd.DataFrame) -> None:
    print(f"\n=== {title} ===")
    with pd.option_context("display.float_format", "{:,.2f}".format, "display.width", 140):
        print(df.to_string(index=False))


def _load_model_file(
    raw: Dict[str, Any],
) -> Tuple[ModelInputs, ModelAssumptions, List[SensitivityVariable]]:
    inputs = ModelInputs(**raw["inputs"])
    assumptions = ModelAssumptions(**raw["assumptions"])
    variables = [SensitivityVariable(**v) for v in raw.get("variables") or []]
    return inputs, assumptions, variables


def main(argv=None) -> int:
    args = parse_args(argv)

    raw: Dict[str, Any] = json.loads(args.model.read_text(encoding="utf-8"))

    try:
        inputs, assumptions, file_variables = _load_model_file(raw)
    except (KeyError, TypeError, ValidationError) as e:
        print(f"invalid model file {args.model}: {e}", file=sys.stderr)
        return 1
    except ModelError as e:
        print(f"model error: {e}", file=sys.stderr)
        return 1

    report: Dict[str, Any] = {}
    try:
        outputs = calculate_model_outputs(inputs, assumptions)
        report["outputs"] = outputs.to_dict()

        sensitivity = None
        if args.sensitivity:
            variables = file_variables or default_sensitivity_variables(inputs, assumptions)
            sensitivity = perform_sensitivity_analysis(
                inputs, assumptions, variables, iterations=args.iterations, seed=args.seed
            )
            report["sensitivity"] = sensitivity.to_dict(include_distribution=False)

        scenario_analysis = None
        if args.scenarios:
            if not raw.get("scenarios"):
                print("--scenarios given but the model file lists none", file=sys.stderr)
                return 2
            scenario_analysis = perform_scenario_analysis(inputs, assumptions, raw["scenarios"])
            report["scenarios"] = scenario_analysis.to_dict()
    except ModelError as e:
        print(f"model error: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        # malformed scenario definitions
        print(f"invalid model file {args.model}: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report, indent=2, default=str))
        return 0

    _section("Outputs", outputs_frame(outputs))
    if args.projection:
        _section("Projection", projection_frame(inputs, assumptions))
    if sensitivity is not None:
        _section("Tornado", tornado_frame(sensitivity))
        _section("Spider", spider_frame(sensitivity))
        _section("Monte Carlo", distribution_summary_frame(sensitivity.monte_carlo_results))
    if scenario_analysis is not None:
        _section("Scenarios", scenarios_frame(scenario_analysis))
        s = scenario_analysis.summary
        print(
            f"\nexpected NPV {s.expected_npv:,.2f} | best {s.best_case.name} | "
            f"worst {s.worst_case.name} | most likely {s.most_likely.name}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
