from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import asdict, dataclass
from typing import Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import SimulationConfig
from ..sim.core.engine import SimulationEngine


@dataclass(frozen=True)
class QueuedSnapshot:
    step: int
    payload: str


class SimulationController:
    """Drives one engine in the background and streams its state to renderers."""

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, frame_seconds: float = 0.05):
        self.config = config
        self.engine = SimulationEngine(config, snapshot_interval=0)
        self.broadcast_interval = max(1, broadcast_interval)
        self.frame_seconds = frame_seconds
        self.running = False
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    @property
    def step(self) -> int:
        return self.engine.step_count

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.engine.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.frame_seconds)
            if not self.running:
                continue
            async with self._lock:
                if self.engine.is_complete():
                    self.running = False
                    continue
                self.engine.step()
            if self.step % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, step: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].step <= step:
                self._snapshot_queue.popleft()

    def state_payload(self) -> dict:
        """Cells, links and geometry of the current state, ready for JSON."""
        snapshot = self.engine.snapshot()
        state = self.engine.state
        return {
            "time": snapshot.time,
            "seed": snapshot.seed,
            "geometry": {
                "kind": state.geometry.kind,
                "curvature_1": state.geometry.curvature_1,
                "curvature_2": state.geometry.curvature_2,
            },
            "cells": list(snapshot.rows),
            "apical_links": [asdict(link) for link in state.apical_links],
            "basal_links": [asdict(link) for link in state.basal_links],
        }

    def _serialize_snapshot(self) -> QueuedSnapshot:
        message = {"type": "snapshot", "step": self.step, "payload": self.state_payload()}
        return QueuedSnapshot(step=self.step, payload=json.dumps(message))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.step > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.step
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        for client in list(self.clients):
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                self.drop_client(client)

    def drop_client(self, client: WebSocket) -> None:
        self.clients.discard(client)
        self._client_last_sent.pop(client, None)


app = FastAPI(title="Epithelial Chain Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    state = controller.engine.state
    return JSONResponse(
        {
            "running": controller.running,
            "step": controller.step,
            "time": controller.engine.time,
            "cells": len(state.cells),
            "divisions": state.divisions,
            "complete": controller.engine.is_complete(),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "step": controller.step})


@app.get("/api/snapshot")
async def latest_snapshot() -> JSONResponse:
    return JSONResponse(controller.state_payload())


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    await controller._broadcast_snapshot()
    try:
        while True:
            message = await websocket.receive_text()
            try:
                data = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict) and data.get("type") == "ack":
                await controller.acknowledge(int(data.get("step", -1)))
    except WebSocketDisconnect:
        controller.drop_client(websocket)


__all__ = ["app", "controller"]
