from __future__ import annotations

import logging
from typing import List, Optional

from example_exporter.collectors.base import CollectorState
from example_exporter.collectors.data_source import DataSource, get_metrics
from example_exporter.collectors.model import MetricDescriptor, Sample
from example_exporter.config import ExporterConfig
from example_exporter.errors import DataSourceError

logger = logging.getLogger(__name__)

EXAMPLE_VALUE = 42.0
SECOND_LABEL = "second label"


class ExampleCollector:
    """Publishes the readings of one data source as two gauge families."""

    def __init__(self, config: Optional[ExporterConfig] = None, data_source: DataSource = get_metrics):
        self.state = CollectorState(config)
        self._data_source = data_source

        self.example_metric_with_label = MetricDescriptor(
            "example_metric_with_label", "Description", ("label_1", "label_2")
        )
        self.example_metric_without_label = MetricDescriptor(
            "example_metric_without_label", "Description"
        )

    def describe(self) -> List[MetricDescriptor]:
        return [self.example_metric_with_label, self.example_metric_without_label]

    def collect(self) -> List[Sample]:
        """
        Query the data source once and turn the readings into samples.

        A failing data source yields no samples; the failure is logged only
        when it differs from the previous one, and never propagates to the
        scrape.
        """
        try:
            readings = list(self._data_source())
            if not readings:
                raise DataSourceError("data source returned no readings")
        except Exception as exc:
            if self.state.record_failure(exc):
                logger.error("Failed to get metrics: %s", exc)
            return []

        self.state.record_success()

        samples = [Sample(self.example_metric_without_label, EXAMPLE_VALUE)]
        for reading in readings:
            samples.append(
                Sample(
                    self.example_metric_with_label,
                    EXAMPLE_VALUE,
                    (f"{reading:f}", SECOND_LABEL),
                )
            )
        return samples
