from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Dict, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.driver import SimulationDriver
from ..sim.core.presets import list_presets
from ..sim.core.rng import UniformSource
from ..sim.systems.analysis import force_percentages, selection_regime
from ..sim.types.metrics import TickMetrics
from ..sim.types.snapshot import SimulationState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    generation: int
    payload: str


class SimulationController:
    def __init__(
        self,
        config: SimulationConfig,
        broadcast_interval: int = 1,
        rng: Optional[UniformSource] = None,
    ):
        self.config = config
        self.driver = SimulationDriver(config, rng=rng)
        self.broadcast_interval = max(1, broadcast_interval)
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._client_locks: Dict[WebSocket, asyncio.Lock] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=config.history_limit)
        self._queue_lock = asyncio.Lock()
        self._broadcast_tasks: Set[asyncio.Task] = set()
        # bumped on reset; broadcasts stamped with an older epoch are dropped
        self._epoch = 0
        self.driver.subscribe(self._on_tick)

    @classmethod
    def from_app_config(cls, app_config: AppConfig) -> "SimulationController":
        return cls(app_config.simulation, broadcast_interval=app_config.broadcast_interval)

    def register(self, client: WebSocket) -> None:
        self.clients.add(client)
        self._client_last_sent[client] = -1
        self._client_locks[client] = asyncio.Lock()

    def unregister(self, client: WebSocket) -> None:
        self.clients.discard(client)
        self._client_last_sent.pop(client, None)
        self._client_locks.pop(client, None)

    async def reset(self) -> None:
        self._epoch += 1
        self.driver.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in list(self._client_last_sent):
            # waits out any send already in flight so it cannot overwrite the rewind
            async with self._client_lock(client):
                self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    def status(self, state: Optional[SimulationState] = None) -> Dict[str, Any]:
        state = state if state is not None else self.driver.get_state()
        params = self.driver.parameters
        color = self.driver.get_color_encoding()
        regime = selection_regime(params)
        return {
            "state": state.to_dict(),
            "parameters": asdict(params),
            "preset": self.driver.active_preset,
            "interval_ms": self.driver.interval_ms,
            "color": {**asdict(color), "css": color.css()},
            "analysis": {
                "force_percentages": force_percentages(params),
                "selection_regime": asdict(regime),
            },
            "metadata": {
                "seed": self.config.seed,
                "config_version": self.config.config_version,
                "history_limit": self.config.history_limit,
            },
        }

    def _on_tick(self, state: SimulationState, metrics: TickMetrics) -> None:
        if state.generation % self.broadcast_interval != 0:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # stepped outside the event loop (scripts); nothing to stream to
            return
        task = loop.create_task(self._broadcast_snapshot(self._serialize_snapshot(state), self._epoch))
        self._broadcast_tasks.add(task)
        task.add_done_callback(self._broadcast_tasks.discard)

    async def acknowledge(self, generation: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].generation <= generation:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self, state: Optional[SimulationState] = None) -> QueuedSnapshot:
        status = self.status(state)
        generation = status["state"]["generation"]
        payload = {
            "type": "snapshot",
            "generation": generation,
            "payload": status,
        }
        return QueuedSnapshot(generation=generation, payload=json.dumps(payload))

    def _client_lock(self, client: WebSocket) -> asyncio.Lock:
        lock = self._client_locks.get(client)
        if lock is None:
            lock = self._client_locks[client] = asyncio.Lock()
        return lock

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        # one sender per client at a time, or last_sent could move backwards
        async with self._client_lock(client):
            last_sent = self._client_last_sent.get(client, -1)
            async with self._queue_lock:
                pending = [item for item in self._snapshot_queue if item.generation > last_sent]
            for item in pending:
                await client.send_text(item.payload)
                last_sent = item.generation
            if client in self._client_last_sent:
                self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self, queued: Optional[QueuedSnapshot] = None, epoch: Optional[int] = None) -> None:
        if epoch is not None and epoch != self._epoch:
            return
        if queued is None:
            queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in list(self.clients):
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            logger.info("Dropping disconnected client")
            self.unregister(client)


def create_app(controller: SimulationController) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        controller.driver.pause()

    app = FastAPI(title="Pathogen Evolution Force Mixer", lifespan=lifespan)
    app.state.controller = controller

    @app.get("/api/status")
    async def status() -> JSONResponse:
        return JSONResponse(controller.status())

    @app.get("/api/color")
    async def color() -> JSONResponse:
        encoding = controller.driver.get_color_encoding()
        return JSONResponse({**asdict(encoding), "css": encoding.css()})

    @app.get("/api/presets")
    async def presets() -> JSONResponse:
        return JSONResponse([preset.to_dict() for preset in list_presets()])

    @app.post("/api/presets/{key}")
    async def apply_preset(key: str) -> JSONResponse:
        try:
            preset = controller.driver.apply_preset(key)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc
        return JSONResponse({"preset": preset.to_dict(), "parameters": asdict(controller.driver.parameters)})

    @app.post("/api/params")
    async def configure(payload: dict) -> JSONResponse:
        try:
            params = controller.driver.parameters.merged(payload)
        except TypeError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        applied = controller.driver.configure(params)
        return JSONResponse({"parameters": asdict(applied), "interval_ms": controller.driver.interval_ms})

    @app.post("/api/control/start")
    async def start_simulation() -> JSONResponse:
        controller.driver.start()
        return JSONResponse({"running": True})

    @app.post("/api/control/stop")
    async def stop_simulation() -> JSONResponse:
        controller.driver.pause()
        return JSONResponse({"running": False})

    @app.post("/api/control/reset")
    async def reset_simulation() -> JSONResponse:
        await controller.reset()
        state = controller.driver.get_state()
        return JSONResponse({"running": state.running, "generation": state.generation})

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        controller.register(websocket)
        await controller._send_pending_snapshots(websocket)
        try:
            while True:
                message = await websocket.receive_text()
                try:
                    payload = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if isinstance(payload, dict) and payload.get("type") == "ack":
                    generation = payload.get("generation")
                    if isinstance(generation, int):
                        await controller.acknowledge(generation)
        except WebSocketDisconnect:
            controller.unregister(websocket)

    return app


app_config = AppConfig()
controller = SimulationController.from_app_config(app_config)
app = create_app(controller)


__all__ = ["app", "app_config", "controller", "create_app", "SimulationController"]
