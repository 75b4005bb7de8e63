from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FrequencyTerms:
    mutation: float
    selection: float
    gene_flow: float
    drift: float
    recombination: float

    @property
    def total(self) -> float:
        return self.mutation + self.selection + self.gene_flow + self.drift + self.recombination


@dataclass(slots=True)
class TickMetrics:
    generation: int
    previous_frequency: float
    allele_frequency: float
    raw_delta: float
    applied_delta: float
    clamped: bool
    terms: FrequencyTerms
    tick_duration_ms: float = 0.0
