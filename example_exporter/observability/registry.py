"""Aggregates registered collectors into one exposition payload per scrape."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

from prometheus_client import CollectorRegistry, GCCollector, PlatformCollector, ProcessCollector, generate_latest
from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector as PrometheusCollector

from example_exporter.collectors.base import Collector
from example_exporter.collectors.model import MetricDescriptor, Sample
from example_exporter.errors import DuplicateDescriptorError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Registration:
    collector: Collector
    names: FrozenSet[str]


def _collector_name(collector: Collector) -> str:
    return type(collector).__name__


class Registry:
    """
    Holds collectors and renders them on demand.

    Registration is expected to finish before serving starts; after that the
    collector set is only read, so gather() takes a snapshot without locking.
    """

    def __init__(self, include_runtime_metrics: bool = False):
        self._lock = threading.Lock()
        self._registrations: List[_Registration] = []
        self._descriptors: Dict[str, MetricDescriptor] = {}

        self._runtime: Optional[CollectorRegistry] = None
        if include_runtime_metrics:
            self._runtime = CollectorRegistry(auto_describe=True)
            ProcessCollector(registry=self._runtime)
            PlatformCollector(registry=self._runtime)
            GCCollector(registry=self._runtime)

    def register(self, collector: Collector) -> None:
        """
        Add ``collector``.

        Registering the same collector object again is a no-op. A descriptor
        name already known with identical label names is shared; with
        different label names it raises DuplicateDescriptorError and nothing
        is registered.
        """
        with self._lock:
            if any(r.collector is collector for r in self._registrations):
                return

            incoming: Dict[str, MetricDescriptor] = {}
            for descriptor in collector.describe():
                existing = incoming.get(descriptor.name) or self._descriptors.get(descriptor.name)
                if existing is not None and existing.label_names != descriptor.label_names:
                    raise DuplicateDescriptorError(descriptor.name, existing.label_names, descriptor.label_names)
                incoming.setdefault(descriptor.name, descriptor)

            for name, descriptor in incoming.items():
                self._descriptors.setdefault(name, descriptor)
            self._registrations.append(_Registration(collector, frozenset(incoming)))

        logger.info("Registered collector %s (%d descriptors)", _collector_name(collector), len(incoming))

    def unregister(self, collector: Collector) -> bool:
        with self._lock:
            remaining = [r for r in self._registrations if r.collector is not collector]
            if len(remaining) == len(self._registrations):
                return False
            self._registrations = remaining
            still_declared = set().union(*(r.names for r in remaining))
            self._descriptors = {n: d for n, d in self._descriptors.items() if n in still_declared}
        return True

    def describe(self) -> List[MetricDescriptor]:
        with self._lock:
            return list(self._descriptors.values())

    def _collect_from(self, registration: _Registration, descriptors: Dict[str, MetricDescriptor]) -> List[Sample]:
        try:
            produced = list(registration.collector.collect())
        except Exception:
            logger.exception(
                "Collector %s failed; it contributes no samples to this scrape",
                _collector_name(registration.collector),
            )
            return []

        accepted = []
        for sample in produced:
            if sample.descriptor.name not in registration.names:
                logger.warning(
                    "Collector %s produced undeclared metric %s; dropping sample",
                    _collector_name(registration.collector),
                    sample.descriptor.name,
                )
                continue
            declared = descriptors[sample.descriptor.name]
            if sample.descriptor.label_names != declared.label_names:
                logger.warning(
                    "Collector %s produced %s with labels %s, declared %s; dropping sample",
                    _collector_name(registration.collector),
                    sample.descriptor.name,
                    list(sample.descriptor.label_names),
                    list(declared.label_names),
                )
                continue
            accepted.append(sample)
        return accepted

    def gather(self) -> str:
        """Collect every registered collector once and render exposition text."""
        with self._lock:
            registrations = list(self._registrations)
            descriptors = dict(self._descriptors)

        samples: Dict[str, List[Sample]] = {name: [] for name in descriptors}
        for registration in registrations:
            for sample in self._collect_from(registration, descriptors):
                samples[sample.descriptor.name].append(sample)

        families: List[Metric] = []
        for name, descriptor in descriptors.items():
            family = GaugeMetricFamily(name, descriptor.help, labels=descriptor.label_names)
            for sample in samples[name]:
                family.add_metric(sample.label_values, sample.value)
            families.append(family)

        return generate_latest(_Snapshot(families, self._runtime)).decode("utf-8")


class _Snapshot(PrometheusCollector):
    """Families gathered for one scrape, followed by the runtime families if any."""

    def __init__(self, families: Iterable[Metric], runtime: Optional[CollectorRegistry]):
        self._families = list(families)
        self._runtime = runtime

    def collect(self) -> Iterator[Metric]:
        yield from self._families
        if self._runtime is not None:
            yield from self._runtime.collect()
