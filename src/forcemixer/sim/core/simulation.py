from __future__ import annotations

import threading
from collections import deque
from time import perf_counter
from typing import Deque

from .config import ForceParameters, SimulationConfig
from .forces import frequency_terms
from .rng import UniformSource
from ..systems import metrics as metrics_system
from ..types.metrics import TickMetrics
from ..types.snapshot import SimulationState


def _clamp_value(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Simulation:
    """Single-locus allele-frequency state advanced one generation per tick.

    ``tick`` and ``snapshot`` share a lock, so a reader sees either the state
    before a generation or after it, never frequency and history out of step.
    """

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._lock = threading.Lock()
        self._frequency = config.initial_frequency
        self._generation = 0
        self._history: Deque[float] = deque([config.initial_frequency], maxlen=config.history_limit)
        self._running = False
        self._last_metrics: TickMetrics | None = None

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._running

    @running.setter
    def running(self, value: bool) -> None:
        with self._lock:
            self._running = bool(value)

    @property
    def last_metrics(self) -> TickMetrics | None:
        return self._last_metrics

    def reset(self) -> None:
        with self._lock:
            self._frequency = self._config.initial_frequency
            self._generation = 0
            self._history.clear()
            self._history.append(self._config.initial_frequency)
            self._running = False
            self._last_metrics = None

    def tick(self, params: ForceParameters, rng: UniformSource) -> TickMetrics:
        start = perf_counter()
        config = self._config
        with self._lock:
            previous = self._frequency
            terms = frequency_terms(previous, params, rng, config.min_population_size)
            new_frequency = _clamp_value(previous + terms.total, config.min_frequency, config.max_frequency)
            # deque maxlen evicts from the front
            self._history.append(new_frequency)
            self._frequency = new_frequency
            self._generation += 1
            generation = self._generation
        duration_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(generation, previous, new_frequency, terms, duration_ms)
        self._last_metrics = metrics
        return metrics

    def snapshot(self) -> SimulationState:
        with self._lock:
            return SimulationState(
                allele_frequency=self._frequency,
                generation=self._generation,
                history=tuple(self._history),
                running=self._running,
            )
