from __future__ import annotations

import math

import pytest

from forcemixer.sim.core.config import AppConfig, ForceParameters, SimulationConfig, load_config


def test_defaults_match_initial_sliders():
    params = ForceParameters()
    assert params == ForceParameters(30, 40, 20, 25, 15, 50, 50)
    config = SimulationConfig()
    assert config.initial_frequency == 0.5
    assert (config.min_frequency, config.max_frequency) == (0.01, 0.99)
    assert config.history_limit == 100
    assert AppConfig().simulation == config


def test_clamped_bounds_every_field():
    params = ForceParameters(-1, 101, 50, 1e6, -1e6, 0, 100).clamped()
    assert params == ForceParameters(0, 100, 50, 100, 0, 0, 100)


def test_clamped_replaces_nan_and_garbage_with_defaults():
    params = ForceParameters(mutation_rate=math.nan, selection_strength="lots").clamped()
    assert params.mutation_rate == 30
    assert params.selection_strength == 40


def test_merged_applies_partial_changes():
    params = ForceParameters().merged({"drift_strength": 250, "population_size": 10})
    assert params.drift_strength == 100
    assert params.population_size == 10
    assert params.mutation_rate == 30


def test_merged_rejects_unknown_fields():
    with pytest.raises(TypeError, match="viscosity"):
        ForceParameters().merged({"viscosity": 3})


def test_load_config_builds_nested_parameters():
    config = load_config({"seed": 5, "history_limit": 20, "parameters": {"mutation_rate": 140, "drift_strength": 60}})
    assert config.seed == 5
    assert config.history_limit == 20
    assert config.parameters.mutation_rate == 100
    assert config.parameters.drift_strength == 60
    assert config.parameters.selection_strength == 40


def test_load_config_validates_ranges():
    with pytest.raises(ValueError):
        load_config({"initial_frequency": 0.999})
    with pytest.raises(ValueError):
        load_config({"history_limit": 0})
    with pytest.raises(ValueError):
        load_config({"min_frequency": 0.0})
    with pytest.raises(ValueError):
        load_config({"max_frequency": 1.0})
    with pytest.raises(ValueError):
        load_config({"min_frequency": 0.6, "max_frequency": 0.4, "initial_frequency": 0.5})
    with pytest.raises(TypeError):
        load_config({"grid_size": 4})


def test_from_yaml(tmp_path):
    path = tmp_path / "sim.yaml"
    path.write_text(
        "seed: 9\n"
        "base_interval_ms: 20\n"
        "parameters:\n"
        "  selection_strength: 90\n"
        "  replication_speed: 75\n"
    )
    config = SimulationConfig.from_yaml(path)
    assert config.seed == 9
    assert config.base_interval_ms == 20
    assert config.parameters.selection_strength == 90
    assert config.parameters.replication_speed == 75


def test_from_empty_yaml(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert SimulationConfig.from_yaml(path) == SimulationConfig()
