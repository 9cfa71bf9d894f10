import asyncio
import json

from epichain.app.server import SimulationController
from epichain.sim.core.config import SimulationConfig


def _controller() -> SimulationController:
    config = SimulationConfig(seed="queue")
    config.general.n_init = 6
    config.general.n_emt = 2
    return SimulationController(config)


def test_snapshot_queue_ack_cleanup() -> None:
    controller = _controller()

    async def exercise() -> None:
        controller.engine.step()
        await controller._broadcast_snapshot()
        controller.engine.step()
        await controller._broadcast_snapshot()
        async with controller._queue_lock:
            queued_steps = [item.step for item in controller._snapshot_queue]
        assert queued_steps == [1, 2]
        await controller.acknowledge(1)
        async with controller._queue_lock:
            remaining_steps = [item.step for item in controller._snapshot_queue]
        assert remaining_steps == [2]

    asyncio.run(exercise())


def test_snapshot_payload_carries_cells_and_links() -> None:
    controller = _controller()
    queued = controller._serialize_snapshot()
    message = json.loads(queued.payload)
    assert message["type"] == "snapshot"
    assert message["step"] == 0
    payload = message["payload"]
    assert payload["seed"] == "queue"
    assert payload["geometry"]["kind"] == "circle"
    assert len(payload["cells"]) == 6
    assert len(payload["basal_links"]) == 6
    assert payload["apical_links"][0] == {"left": 0, "right": 1, "rest_length": 0.0}


def test_reset_clears_queue() -> None:
    controller = _controller()

    async def exercise() -> None:
        controller.engine.step()
        await controller._broadcast_snapshot()
        await controller.reset()
        async with controller._queue_lock:
            queued_steps = [item.step for item in controller._snapshot_queue]
        assert queued_steps == [0]
        assert controller.engine.time == 0.0

    asyncio.run(exercise())


def test_drop_client_forgets_delivery_state() -> None:
    controller = _controller()
    client = object()
    controller.clients.add(client)
    controller._client_last_sent[client] = 3
    controller.drop_client(client)
    assert client not in controller.clients
    assert client not in controller._client_last_sent


def test_latest_snapshot_endpoint_returns_payload() -> None:
    from epichain.app import server

    response = asyncio.run(server.latest_snapshot())
    body = json.loads(response.body)
    assert body["seed"] == server.controller.engine.seed
    assert len(body["cells"]) == len(server.controller.engine.state.cells)
