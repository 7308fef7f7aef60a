from __future__ import annotations

import threading
from typing import Optional, Protocol, Sequence, runtime_checkable

from example_exporter.collectors.model import MetricDescriptor, Sample
from example_exporter.config import ExporterConfig


@runtime_checkable
class Collector(Protocol):
    def describe(self) -> Sequence[MetricDescriptor]:
        ...

    def collect(self) -> Sequence[Sample]:
        ...


class CollectorState:
    """
    Mutable state owned by one collector.

    Concurrent scrapes may call collect() on the same collector, so the
    last-error comparison and the write happen under one lock. Errors are
    compared by message, so two distinct exception objects with the same text
    count as the same failure.
    """

    def __init__(self, config: Optional[ExporterConfig] = None):
        self.config = config
        self._lock = threading.Lock()
        self._last_error: Optional[BaseException] = None

    @property
    def last_error(self) -> Optional[BaseException]:
        with self._lock:
            return self._last_error

    def record_failure(self, error: BaseException) -> bool:
        """Store ``error``; return True when it differs from the previous one."""
        with self._lock:
            changed = self._last_error is None or str(self._last_error) != str(error)
            self._last_error = error
            return changed

    def record_success(self) -> None:
        with self._lock:
            self._last_error = None
