"""uvicorn-backed scrape server with an explicit lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import socket
from enum import Enum
from typing import Generator, Optional

import uvicorn
from fastapi import FastAPI

from example_exporter.errors import BindError, ShutdownError

logger = logging.getLogger(__name__)


class ServerState(str, Enum):
    CREATED = "created"
    LISTENING = "listening"
    DRAINING = "draining"
    STOPPED = "stopped"


class _UvicornServer(uvicorn.Server):
    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        # Signals are owned by the ShutdownCoordinator.
        yield


class ScrapeServer:
    """
    Created -> Listening (bind) -> Draining (shutdown) -> Stopped.

    bind() is separate from serve() so a busy port fails fast, before any
    event loop or task is started.
    """

    def __init__(self, app: FastAPI, host: str = "0.0.0.0", port: int = 9100):
        self.host = host
        self._requested_port = port
        self._socket: Optional[socket.socket] = None
        self._stopped = asyncio.Event()
        self._serving = False
        self.state = ServerState.CREATED

        config = uvicorn.Config(app, host=host, port=port, log_config=None, access_log=True)
        self._server = _UvicornServer(config)

    @property
    def port(self) -> int:
        if self._socket is not None:
            return self._socket.getsockname()[1]
        return self._requested_port

    @property
    def started(self) -> bool:
        """True once uvicorn is accepting connections."""
        return bool(self._server.started)

    def bind(self) -> None:
        if self.state is not ServerState.CREATED:
            raise RuntimeError(f"cannot bind a server in state {self.state.value}")

        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self._requested_port))
        except OSError as exc:
            sock.close()
            raise BindError(f"cannot bind {self.host}:{self._requested_port}: {exc}") from exc
        sock.set_inheritable(True)

        self._socket = sock
        self.state = ServerState.LISTENING
        logger.info("Listening on %s:%d", self.host, self.port)

    async def serve(self) -> None:
        if self.state is not ServerState.LISTENING or self._socket is None:
            raise RuntimeError("bind() must succeed before serve()")

        self._serving = True
        try:
            await self._server.serve(sockets=[self._socket])
        finally:
            self._socket.close()
            self.state = ServerState.STOPPED
            self._stopped.set()
            logger.info("Server stopped")

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting connections and let in-flight requests finish.

        With a ``timeout`` the drain is bounded: when it expires the server is
        forced to exit and ShutdownError is raised once it has stopped.
        """
        if self.state is ServerState.STOPPED:
            return
        self.state = ServerState.DRAINING
        if timeout is not None:
            # uvicorn cancels still-running request tasks once this expires
            self._server.config.timeout_graceful_shutdown = max(1, int(math.ceil(timeout)))
        self._server.should_exit = True

        if not self._serving:
            if self._socket is not None:
                self._socket.close()
            self.state = ServerState.STOPPED
            self._stopped.set()
            return

        try:
            await asyncio.wait_for(self._stopped.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Graceful drain exceeded %.1fs; forcing exit", timeout)
            self._server.force_exit = True
            await self._stopped.wait()
            raise ShutdownError(f"graceful drain did not finish within {timeout}s") from None
