from __future__ import annotations

from ..types.metrics import FrequencyTerms, TickMetrics


def create_metrics(
    generation: int,
    previous_frequency: float,
    new_frequency: float,
    terms: FrequencyTerms,
    duration_ms: float,
) -> TickMetrics:
    raw_delta = terms.total
    applied_delta = new_frequency - previous_frequency
    return TickMetrics(
        generation=generation,
        previous_frequency=previous_frequency,
        allele_frequency=new_frequency,
        raw_delta=raw_delta,
        applied_delta=applied_delta,
        clamped=new_frequency != previous_frequency + raw_delta,
        terms=terms,
        tick_duration_ms=duration_ms,
    )
