from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List

from .config import ForceParameters


@dataclass(frozen=True)
class PathogenPreset:
    key: str
    name: str
    description: str
    parameters: ForceParameters

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "parameters": asdict(self.parameters),
        }


PRESETS: Dict[str, PathogenPreset] = {
    "influenza": PathogenPreset(
        key="influenza",
        name="Influenza A (Antigenic Drift)",
        description="High mutation, strong selection, global gene flow, reassortment",
        parameters=ForceParameters(
            mutation_rate=60,
            selection_strength=70,
            gene_flow_rate=65,
            drift_strength=35,
            # reassortment
            recombination_rate=80,
            population_size=40,
            replication_speed=60,
        ),
    ),
    "hiv": PathogenPreset(
        key="hiv",
        name="HIV (Within-Host)",
        description="Very high mutation, strong selection, large Ne, bottlenecks at transmission",
        parameters=ForceParameters(
            mutation_rate=70,
            selection_strength=85,
            gene_flow_rate=10,
            drift_strength=20,
            recombination_rate=30,
            population_size=80,
            replication_speed=90,
        ),
    ),
    "bacteria": PathogenPreset(
        key="bacteria",
        name="Bacterial Pathogen",
        description="Moderate mutation, horizontal gene transfer, variable recombination",
        parameters=ForceParameters(
            mutation_rate=20,
            selection_strength=50,
            gene_flow_rate=40,
            drift_strength=40,
            recombination_rate=60,
            population_size=60,
            replication_speed=40,
        ),
    ),
    "fungal": PathogenPreset(
        key="fungal",
        name="Fungal Pathogen (Mixed)",
        description="Mixed sexual/asexual, spore dispersal, seasonal cycles",
        parameters=ForceParameters(
            mutation_rate=25,
            selection_strength=55,
            gene_flow_rate=50,
            drift_strength=45,
            recombination_rate=70,
            population_size=50,
            replication_speed=30,
        ),
    ),
}

DEFAULT_PRESET = "influenza"


def get_preset(key: str) -> PathogenPreset:
    try:
        return PRESETS[key]
    except KeyError:
        raise KeyError(f"Unknown pathogen preset: {key!r} (choose from {', '.join(PRESETS)})") from None


def list_presets() -> List[PathogenPreset]:
    return list(PRESETS.values())
