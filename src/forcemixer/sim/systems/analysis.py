from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from ..core.config import ForceParameters

REALISTIC_NE_SCALE = 10_000.0
SELECTION_COEFFICIENT_SCALE = 0.3

SELECTION_DOMINATES = "Selection dominates"
BOTH_MATTER = "Both matter"
DRIFT_DOMINATES = "Drift dominates"


@dataclass(frozen=True, slots=True)
class SelectionRegime:
    effective_population: float
    selection_coefficient: float
    two_ne_s: float
    label: str


def force_percentages(params: ForceParameters) -> Dict[str, float]:
    """Share of each force in the five-force total, in percent."""
    shares = {
        "mutation": params.mutation_rate,
        "selection": params.selection_strength,
        "gene_flow": params.gene_flow_rate,
        "drift": params.drift_strength,
        "recombination": params.recombination_rate,
    }
    total = sum(shares.values())
    if total <= 0:
        return {name: 0.0 for name in shares}
    return {name: value / total * 100.0 for name, value in shares.items()}


def selection_regime(params: ForceParameters) -> SelectionRegime:
    # |2 Ne s| > 10: selection wins, < 1: drift wins
    effective_population = (params.population_size / 50.0) * REALISTIC_NE_SCALE
    selection_coefficient = (params.selection_strength / 100.0 - 0.5) * SELECTION_COEFFICIENT_SCALE
    two_ne_s = abs(2.0 * effective_population * selection_coefficient)
    if two_ne_s > 10:
        label = SELECTION_DOMINATES
    elif two_ne_s > 1:
        label = BOTH_MATTER
    else:
        label = DRIFT_DOMINATES
    return SelectionRegime(
        effective_population=effective_population,
        selection_coefficient=selection_coefficient,
        two_ne_s=two_ne_s,
        label=label,
    )
