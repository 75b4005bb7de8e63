"""Force model: one generation of allele-frequency change.

Every function here is pure. Randomness comes in through a ``UniformSource``
so callers decide whether draws are seeded, replayed or truly random.
"""
from __future__ import annotations

import math

from .config import ForceParameters
from .rng import UniformSource
from ..types.metrics import FrequencyTerms
from ..types.snapshot import ColorEncoding

MUTATION_SCALE = 0.05
SELECTION_SCALE = 0.15
GENE_FLOW_SCALE = 0.08
RECOMBINATION_SCALE = 0.03
REFERENCE_POPULATION = 50.0
DEFAULT_MIN_POPULATION = 1.0


def _channel(value: float) -> int:
    # half-up rounding, not banker's rounding
    return int(math.floor(value / 100.0 * 255.0 + 0.5))


def compute_color_encoding(params: ForceParameters) -> ColorEncoding:
    """Map mutation, selection and gene flow to RGB and drift to opacity.

    Recombination is deliberately absent; presentation layers encode it some
    other way (texture, pattern).
    """
    return ColorEncoding(
        red=_channel(params.mutation_rate),
        green=_channel(params.selection_strength),
        blue=_channel(params.gene_flow_rate),
        alpha=1.0 - params.drift_strength / 200.0,
    )


def effective_population(population_size: float, min_population_size: float = DEFAULT_MIN_POPULATION) -> float:
    return max(population_size, min_population_size)


def frequency_terms(
    p: float,
    params: ForceParameters,
    rng: UniformSource,
    min_population_size: float = DEFAULT_MIN_POPULATION,
) -> FrequencyTerms:
    heterozygosity = p * (1.0 - p)
    population = effective_population(params.population_size, min_population_size)

    # draw order matters for replayed sequences: drift first, then recombination
    drift_draw = rng.next_float()
    recombination_draw = rng.next_float()

    mutation = (params.mutation_rate / 100.0 - 0.5) * MUTATION_SCALE
    selection = (params.selection_strength / 100.0 - 0.5) * SELECTION_SCALE * heterozygosity
    gene_flow = (params.gene_flow_rate / 100.0 - p) * GENE_FLOW_SCALE
    drift = (
        (drift_draw - 0.5)
        * (params.drift_strength / 100.0)
        * math.sqrt(max(heterozygosity, 0.0))
        / math.sqrt(population / REFERENCE_POPULATION)
    )
    recombination = (params.recombination_rate / 100.0) * RECOMBINATION_SCALE * (recombination_draw - 0.5)
    return FrequencyTerms(
        mutation=mutation,
        selection=selection,
        gene_flow=gene_flow,
        drift=drift,
        recombination=recombination,
    )


def compute_frequency_delta(
    p: float,
    params: ForceParameters,
    rng: UniformSource,
    min_population_size: float = DEFAULT_MIN_POPULATION,
) -> float:
    return frequency_terms(p, params, rng, min_population_size).total

