import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "run_model.py"


@pytest.fixture(scope="module")
def run_model():
    spec = importlib.util.spec_from_file_location("run_model", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def model_file(tmp_path, cashflow_inputs, reference_assumptions):
    def _write(**extra):
        body = {
            "inputs": cashflow_inputs.model_dump(),
            "assumptions": reference_assumptions.model_dump(),
        }
        body.update(extra)
        path = tmp_path / "model.json"
        path.write_text(json.dumps(body), encoding="utf-8")
        return path

    return _write


def test_json_report(run_model, model_file, capsys):
    path = model_file(
        scenarios=[
            {"name": "base", "probability": 0.5},
            {"name": "bear", "inputs": {"monthly_rent": 2600}, "probability": 0.5},
        ],
        variables=[
            {"name": "monthly_rent", "base_value": 3000, "min_value": 2500, "max_value": 3500, "step": 500}
        ],
    )

    code = run_model.main([str(path), "--sensitivity", "--scenarios", "--iterations", "25", "--seed", "1", "--json"])

    assert code == 0
    out = capsys.readouterr().out
    # JSON log lines may precede the indented report
    report = json.loads(out[out.index("{\n"):])
    assert set(report) == {"outputs", "sensitivity", "scenarios"}
    assert report["sensitivity"]["monte_carlo_results"]["iterations"] == 25
    assert report["scenarios"]["summary"]["worst_case"] == "bear"


def test_table_report(run_model, model_file, capsys):
    code = run_model.main([str(model_file()), "--projection"])

    assert code == 0
    out = capsys.readouterr().out
    assert "=== Outputs ===" in out
    assert "=== Projection ===" in out


def test_model_error_exit_code(run_model, model_file, capsys):
    path = model_file()
    body = json.loads(path.read_text(encoding="utf-8"))
    body["inputs"]["down_payment"] = 0
    path.write_text(json.dumps(body), encoding="utf-8")

    assert run_model.main([str(path)]) == 1
    assert "down_payment" in capsys.readouterr().err


def test_scenarios_flag_without_scenarios(run_model, model_file):
    assert run_model.main([str(model_file()), "--scenarios"]) == 2


def _rewrite(path, mutate):
    body = json.loads(path.read_text(encoding="utf-8"))
    mutate(body)
    path.write_text(json.dumps(body), encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "mutate",
    [
        lambda b: b["inputs"].pop("monthly_rent"),
        lambda b: b["assumptions"].update(holding_period="ten"),
        lambda b: b.pop("assumptions"),
        lambda b: b.update(
            variables=[
                {"name": "monthly_rent", "base_value": 3000, "min_value": 2500, "max_value": 3500, "step": 500, "unit": "usd"}
            ]
        ),
    ],
    ids=["missing-input", "bad-assumption", "missing-section", "extra-variable-key"],
)
def test_malformed_model_file_exit_code(run_model, model_file, capsys, mutate):
    path = _rewrite(model_file(), mutate)

    assert run_model.main([str(path), "--sensitivity", "--iterations", "10"]) == 1
    assert "invalid model file" in capsys.readouterr().err


def test_malformed_scenarios_exit_code(run_model, model_file, capsys):
    path = model_file(scenarios=[{"name": "x", "inputs": {"hoa_fees": 1}, "probability": 1.0}])

    assert run_model.main([str(path), "--scenarios"]) == 1
    assert "invalid model file" in capsys.readouterr().err
