from __future__ import annotations

from dataclasses import fields

import pytest

from forcemixer.sim.core.config import ForceParameters
from forcemixer.sim.core.presets import DEFAULT_PRESET, PRESETS, get_preset, list_presets


def test_shipped_presets():
    assert set(PRESETS) == {"influenza", "hiv", "bacteria", "fungal"}
    assert DEFAULT_PRESET in PRESETS
    assert [preset.key for preset in list_presets()] == list(PRESETS)


def test_preset_values_are_in_range():
    for preset in list_presets():
        assert preset.name
        assert preset.description
        for item in fields(ForceParameters):
            assert 0 <= getattr(preset.parameters, item.name) <= 100
        assert preset.parameters.clamped() == preset.parameters


def test_influenza_values():
    influenza = get_preset("influenza")
    assert influenza.name == "Influenza A (Antigenic Drift)"
    assert influenza.parameters == ForceParameters(60, 70, 65, 35, 80, 40, 60)


def test_unknown_preset_lists_choices():
    with pytest.raises(KeyError, match="influenza"):
        get_preset("measles")


def test_preset_to_dict_carries_all_seven_fields():
    payload = get_preset("hiv").to_dict()
    assert payload["key"] == "hiv"
    assert payload["parameters"] == {
        "mutation_rate": 70,
        "selection_strength": 85,
        "gene_flow_rate": 10,
        "drift_strength": 20,
        "recombination_rate": 30,
        "population_size": 80,
        "replication_speed": 90,
    }
