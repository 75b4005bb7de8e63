from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

PARAMETER_MIN = 0.0
PARAMETER_MAX = 100.0
FREQUENCY_FLOOR = 0.01
FREQUENCY_CEILING = 0.99


@dataclass(frozen=True)
class ForceParameters:
    mutation_rate: float = 30.0
    selection_strength: float = 40.0
    gene_flow_rate: float = 20.0
    drift_strength: float = 25.0
    recombination_rate: float = 15.0
    population_size: float = 50.0
    replication_speed: float = 50.0

    def clamped(self) -> "ForceParameters":
        """Return a copy with every field inside [0, 100].

        Non-numeric or NaN values fall back to the field default so a bad
        slider value never stalls the tick loop.
        """
        defaults = ForceParameters()
        values: dict[str, float] = {}
        for item in fields(self):
            raw = getattr(self, item.name)
            try:
                value = float(raw)
            except (TypeError, ValueError):
                value = math.nan
            if math.isnan(value):
                value = getattr(defaults, item.name)
            bounded = min(PARAMETER_MAX, max(PARAMETER_MIN, value))
            if bounded != raw:
                logger.debug("Clamped %s from %r to %s", item.name, raw, bounded)
            values[item.name] = bounded
        return ForceParameters(**values)

    def merged(self, changes: dict) -> "ForceParameters":
        known = {item.name for item in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown force parameters: {', '.join(sorted(unknown))}")
        return replace(self, **changes).clamped()


@dataclass
class SimulationConfig:
    seed: int = 42
    initial_frequency: float = 0.5
    min_frequency: float = 0.01
    max_frequency: float = 0.99
    history_limit: int = 100
    base_interval_ms: float = 100.0
    min_population_size: float = 1.0
    min_replication_speed: float = 1.0
    config_version: str = "v1"
    parameters: ForceParameters = field(default_factory=ForceParameters)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 1


def load_config(raw: dict) -> SimulationConfig:
    parameters = ForceParameters(**raw.get("parameters", {})).clamped()
    sim_values = {k: v for k, v in raw.items() if k != "parameters"}
    config = SimulationConfig(parameters=parameters, **sim_values)
    if not FREQUENCY_FLOOR <= config.min_frequency < config.max_frequency <= FREQUENCY_CEILING:
        raise ValueError(
            f"frequency bounds [{config.min_frequency}, {config.max_frequency}] must lie inside "
            f"[{FREQUENCY_FLOOR}, {FREQUENCY_CEILING}] with min below max"
        )
    if not config.min_frequency <= config.initial_frequency <= config.max_frequency:
        raise ValueError(
            f"initial_frequency {config.initial_frequency} outside "
            f"[{config.min_frequency}, {config.max_frequency}]"
        )
    if config.history_limit < 1:
        raise ValueError("history_limit must be at least 1")
    return config
