from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from .config import ForceParameters, SimulationConfig
from .forces import compute_color_encoding
from .presets import DEFAULT_PRESET, PathogenPreset, get_preset
from .rng import DeterministicRng, UniformSource
from .simulation import Simulation
from ..types.metrics import TickMetrics
from ..types.snapshot import ColorEncoding, SimulationState

logger = logging.getLogger(__name__)

TickCallback = Callable[[SimulationState, TickMetrics], None]


def tick_interval_ms(
    replication_speed: float,
    base_interval_ms: float = 100.0,
    min_replication_speed: float = 1.0,
) -> float:
    speed = max(replication_speed, min_replication_speed)
    return base_interval_ms / (speed / 50.0)


class SimulationDriver:
    """Runs a ``Simulation`` on an asyncio timer.

    All control methods are plain synchronous calls. ``start`` needs an event
    loop, either the one passed in or the one currently running; the pending
    tick is a ``loop.call_later`` handle that ``pause``, ``reset`` and cadence
    changes cancel.
    """

    def __init__(
        self,
        config: SimulationConfig,
        rng: Optional[UniformSource] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._config = config
        self._simulation = Simulation(config)
        self._rng = rng if rng is not None else DeterministicRng(config.seed)
        self._loop = loop
        self._params = config.parameters.clamped()
        self._handle: asyncio.TimerHandle | None = None
        self._active_loop: asyncio.AbstractEventLoop | None = None
        self._timer_token = 0
        self._subscribers: List[TickCallback] = []
        # last preset applied; slider edits and reset keep it
        self._active_preset = DEFAULT_PRESET

    @property
    def simulation(self) -> Simulation:
        return self._simulation

    @property
    def parameters(self) -> ForceParameters:
        return self._params

    @property
    def active_preset(self) -> str:
        return self._active_preset

    @property
    def running(self) -> bool:
        return self._simulation.running

    @property
    def interval_ms(self) -> float:
        return tick_interval_ms(
            self._params.replication_speed,
            self._config.base_interval_ms,
            self._config.min_replication_speed,
        )

    def start(self) -> None:
        if self._simulation.running:
            return
        loop = self._resolve_loop()
        self._simulation.running = True
        self._active_loop = loop
        self._arm(loop)
        logger.info("Simulation started (interval %.1f ms)", self.interval_ms)

    def pause(self) -> None:
        if not self._simulation.running:
            return
        self._simulation.running = False
        self._cancel()
        self._active_loop = None
        logger.info("Simulation paused at generation %d", self._simulation.snapshot().generation)

    def reset(self) -> None:
        self._cancel()
        self._active_loop = None
        self._simulation.reset()
        reset_rng = getattr(self._rng, "reset", None)
        if callable(reset_rng):
            reset_rng()
        logger.info("Simulation reset")

    def configure(self, params: ForceParameters) -> ForceParameters:
        previous_interval = self.interval_ms
        self._params = params.clamped()
        if self._active_loop is not None and self._simulation.running and self.interval_ms != previous_interval:
            logger.debug("Cadence changed %.1f -> %.1f ms, re-arming", previous_interval, self.interval_ms)
            self._cancel()
            self._arm(self._active_loop)
        return self._params

    def apply_preset(self, key: str) -> PathogenPreset:
        preset = get_preset(key)
        self.configure(preset.parameters)
        self._active_preset = preset.key
        logger.info("Applied preset %s", preset.name)
        return preset

    def get_state(self) -> SimulationState:
        return self._simulation.snapshot()

    def get_color_encoding(self, params: Optional[ForceParameters] = None) -> ColorEncoding:
        return compute_color_encoding((params if params is not None else self._params).clamped())

    def subscribe(self, callback: TickCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def step(self) -> TickMetrics:
        """Advance one generation immediately, whether or not the timer runs."""
        metrics = self._simulation.tick(self._params, self._rng)
        self._notify(metrics)
        return metrics

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def _arm(self, loop: asyncio.AbstractEventLoop) -> None:
        self._timer_token += 1
        self._handle = loop.call_later(self.interval_ms / 1000.0, self._on_timer, self._timer_token, loop)

    def _cancel(self) -> None:
        self._timer_token += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_timer(self, token: int, loop: asyncio.AbstractEventLoop) -> None:
        # a late callback from a cancelled or replaced timer must not commit
        if token != self._timer_token or not self._simulation.running:
            return
        self._handle = None
        metrics = self._simulation.tick(self._params, self._rng)
        self._arm(loop)
        self._notify(metrics)

    def _notify(self, metrics: TickMetrics) -> None:
        if not self._subscribers:
            return
        state = self._simulation.snapshot()
        for callback in list(self._subscribers):
            callback(state, metrics)
