import asyncio
import signal
import socket
import threading

import httpx
import pytest

from example_exporter.collectors.example import ExampleCollector
from example_exporter.errors import BindError, ShutdownError
from example_exporter.lifecycle.shutdown import ShutdownCoordinator
from example_exporter.main import create_app
from example_exporter.observability.registry import Registry
from example_exporter.server import ScrapeServer, ServerState


class _GatedSource:
    """Blocks the scrape inside the data source until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def __call__(self):
        self.entered.set()
        self.release.wait(timeout=10)
        return [0.0, 1.0, 2.0]


def _build_server(data_source) -> ScrapeServer:
    registry = Registry()
    registry.register(ExampleCollector(data_source=data_source))
    return ScrapeServer(create_app(registry), host="127.0.0.1", port=0)


async def _wait_started(server: ScrapeServer) -> None:
    for _ in range(200):
        if server.started:
            return
        await asyncio.sleep(0.05)
    raise AssertionError("server did not start")


def test_bind_on_busy_port_raises_bind_error():
    busy = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    busy.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    busy.bind(("127.0.0.1", 0))
    busy.listen(1)
    try:
        registry = Registry()
        server = ScrapeServer(create_app(registry), host="127.0.0.1", port=busy.getsockname()[1])
        with pytest.raises(BindError):
            server.bind()
        assert server.state is ServerState.CREATED
    finally:
        busy.close()


def test_shutdown_before_serving_stops_immediately():
    server = _build_server(lambda: [1.0])
    server.bind()
    assert server.state is ServerState.LISTENING

    asyncio.run(server.shutdown(timeout=1.0))

    assert server.state is ServerState.STOPPED


def test_in_flight_scrape_completes_before_server_stops():
    source = _GatedSource()
    server = _build_server(source)
    server.bind()
    states = []

    async def scenario():
        coordinator = ShutdownCoordinator(server, timeout=10.0)
        serving = asyncio.create_task(server.serve())
        watcher = asyncio.create_task(coordinator.run())
        await _wait_started(server)

        loop = asyncio.get_running_loop()
        url = f"http://127.0.0.1:{server.port}/metrics"
        scrape = loop.run_in_executor(None, lambda: httpx.get(url, timeout=10))
        assert await loop.run_in_executor(None, source.entered.wait, 10)

        coordinator.request_shutdown(signal.SIGTERM)
        await asyncio.sleep(0.3)
        states.append(server.state)

        source.release.set()
        resp = await scrape
        await asyncio.wait_for(watcher, timeout=10)
        await serving
        return resp

    resp = asyncio.run(scenario())

    assert states == [ServerState.DRAINING]
    assert resp.status_code == 200
    assert "example_metric_without_label 42.0" in resp.text
    assert server.state is ServerState.STOPPED


def test_stuck_scrape_hits_drain_deadline():
    source = _GatedSource()
    server = _build_server(source)
    server.bind()

    async def scenario():
        serving = asyncio.create_task(server.serve())
        await _wait_started(server)

        loop = asyncio.get_running_loop()
        url = f"http://127.0.0.1:{server.port}/metrics"
        scrape = loop.run_in_executor(None, lambda: httpx.get(url, timeout=10))
        assert await loop.run_in_executor(None, source.entered.wait, 10)

        try:
            with pytest.raises(ShutdownError):
                await server.shutdown(timeout=0.2)
            await serving
        finally:
            source.release.set()
            try:
                await scrape
            except httpx.HTTPError:
                pass

    asyncio.run(scenario())

    assert server.state is ServerState.STOPPED
