import csv
import json

import pytest

from forcemixer.app.headless import run_headless
from forcemixer.sim.core.config import SimulationConfig
from forcemixer.sim.core.presets import PRESETS


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(steps=2, seed=1, log_path=log_path, deterministic_log=True, log_format="basic")
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == ["generation", "allele_frequency", "delta", "tick_ms"]
    assert [row[0] for row in rows[1:]] == ["1", "2"]


def test_headless_detailed_terms_add_up(tmp_path):
    log_path = tmp_path / "detailed.csv"
    run_headless(steps=3, seed=2, log_path=log_path, deterministic_log=True, log_format="detailed")
    rows = _read_csv(log_path)
    assert len(rows) == 4
    header = rows[0]
    assert header == [
        "generation",
        "previous_frequency",
        "allele_frequency",
        "raw_delta",
        "applied_delta",
        "clamped",
        "mutation",
        "selection",
        "gene_flow",
        "drift",
        "recombination",
        "tick_ms",
    ]

    idx = {name: i for i, name in enumerate(header)}
    for row in rows[1:]:
        terms = sum(float(row[idx[name]]) for name in ["mutation", "selection", "gene_flow", "drift", "recombination"])
        assert float(row[idx["raw_delta"]]) == pytest.approx(terms, abs=1e-5)
        assert 0.01 <= float(row[idx["allele_frequency"]]) <= 0.99
        assert float(row[idx["tick_ms"]]) == 0.0

    assert rows[2][idx["previous_frequency"]] == rows[1][idx["allele_frequency"]]


def test_headless_same_seed_same_log(tmp_path):
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    run_headless(steps=40, seed=5, log_path=first, deterministic_log=True)
    run_headless(steps=40, seed=5, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    driver = run_headless(
        steps=30,
        seed=3,
        log_path=None,
        deterministic_log=True,
        log_format="basic",
        summary_path=summary_path,
        summary_window=10,
        preset="hiv",
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 30
    assert payload["seed"] == 3
    assert payload["preset"] == "hiv"
    assert payload["generation"] == 30
    assert payload["final_frequency"] == driver.get_state().allele_frequency
    assert payload["parameters"]["mutation_rate"] == PRESETS["hiv"].parameters.mutation_rate
    assert payload["tail_window"]["window"] == 10
    assert payload["selection_regime"]["label"]
    stats = payload["allele_frequency"]
    assert 0.01 <= stats["min"] <= stats["p50"] <= stats["max"] <= 0.99


def test_headless_rejects_unknown_log_format(tmp_path):
    with pytest.raises(ValueError):
        run_headless(steps=1, seed=1, log_path=tmp_path / "x.csv", log_format="verbose")


def test_headless_rejects_unknown_preset():
    with pytest.raises(KeyError):
        run_headless(steps=1, seed=1, log_path=None, preset="plague")


def test_headless_seed_does_not_touch_callers_config():
    config = SimulationConfig(seed=3)
    driver = run_headless(steps=1, seed=11, log_path=None, config=config)
    assert config.seed == 3
    assert driver.simulation.config.seed == 11
