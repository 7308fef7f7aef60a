"""Turns OS termination signals into one orderly server shutdown."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Dict, Iterable, Optional, Protocol, Tuple

from example_exporter.errors import ShutdownError

logger = logging.getLogger(__name__)


def default_signals() -> Tuple[signal.Signals, ...]:
    # SIGKILL cannot be caught; it always kills the process immediately.
    names = ("SIGINT", "SIGTERM", "SIGQUIT")
    return tuple(getattr(signal, n) for n in names if hasattr(signal, n))


class _Stoppable(Protocol):
    async def shutdown(self, timeout: Optional[float] = None) -> None:
        ...


class ShutdownCoordinator:
    """
    Waits for a termination signal, then drains the server exactly once.

    Later signals while draining are logged and ignored.
    """

    def __init__(
        self,
        server: _Stoppable,
        timeout: Optional[float] = None,
        signals: Optional[Iterable[int]] = None,
    ):
        self._server = server
        self._timeout = timeout
        self._signals = tuple(signals) if signals is not None else default_signals()
        self._requested = asyncio.Event()
        self._received: Optional[int] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_handlers: list = []
        self._original_handlers: Dict[int, object] = {}

    @property
    def received_signal(self) -> Optional[int]:
        return self._received

    @property
    def shutdown_requested(self) -> bool:
        return self._requested.is_set()

    def install(self) -> None:
        """Subscribe to the termination signals. Must run inside the event loop."""
        loop = asyncio.get_running_loop()
        self._loop = loop
        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
                self._loop_handlers.append(sig)
            except (NotImplementedError, RuntimeError):
                self._original_handlers[sig] = signal.getsignal(sig)
                signal.signal(sig, self._threadsafe_handler)
            logger.debug("Registered handler for signal %s", signal.Signals(sig).name)

    def _threadsafe_handler(self, signum: int, frame) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.request_shutdown, signum)

    def uninstall(self) -> None:
        if self._loop is not None:
            for sig in self._loop_handlers:
                self._loop.remove_signal_handler(sig)
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._loop_handlers.clear()
        self._original_handlers.clear()

    def request_shutdown(self, signum: int) -> None:
        if self._requested.is_set():
            logger.info("Already shutting down, ignoring signal %s", _signal_name(signum))
            return
        self._received = signum
        self._requested.set()

    async def run(self) -> None:
        await self._requested.wait()
        logger.info("Shutting down exporter, received signal: %s", _signal_name(self._received))
        try:
            await self._server.shutdown(self._timeout)
        except ShutdownError as exc:
            logger.error("Failed to shutdown server: %s", exc)
            return
        logger.info("Exporter shut down cleanly")


def _signal_name(signum: Optional[int]) -> str:
    if signum is None:
        return "-"
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
