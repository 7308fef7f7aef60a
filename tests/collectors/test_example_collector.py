import logging
import threading

from example_exporter.collectors.base import Collector
from example_exporter.collectors.data_source import get_metrics
from example_exporter.collectors.example import ExampleCollector
from example_exporter.config import ExporterConfig
from example_exporter.errors import DataSourceError

LOGGER = "example_exporter.collectors.example"


class _ScriptedSource:
    """Returns or raises the scripted outcomes in order."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)

    def __call__(self):
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _failure_logs(caplog):
    return [r for r in caplog.records if r.name == LOGGER and "Failed to get metrics" in r.getMessage()]


def test_collector_satisfies_protocol_and_describes_both_metrics():
    collector = ExampleCollector(ExporterConfig(port=9100))
    assert isinstance(collector, Collector)
    assert collector.state.config.port == 9100

    names = {d.name: d.label_names for d in collector.describe()}
    assert names == {
        "example_metric_with_label": ("label_1", "label_2"),
        "example_metric_without_label": (),
    }
    assert collector.describe() == collector.describe()


def test_collect_on_success_emits_one_unlabelled_and_one_sample_per_reading():
    collector = ExampleCollector(data_source=lambda: [0, 1, 2])

    samples = collector.collect()

    without = [s for s in samples if s.descriptor.name == "example_metric_without_label"]
    labelled = [s for s in samples if s.descriptor.name == "example_metric_with_label"]
    assert [(s.value, s.label_values) for s in without] == [(42.0, ())]
    assert [s.label_values for s in labelled] == [
        ("0.000000", "second label"),
        ("1.000000", "second label"),
        ("2.000000", "second label"),
    ]
    assert all(s.value == 42.0 for s in labelled)
    for s in samples:
        assert len(s.label_values) == len(s.descriptor.label_names)


def test_default_data_source_produces_three_readings():
    assert get_metrics() == [0.0, 1.0, 2.0]


def test_default_data_source_with_no_readings_raises():
    try:
        get_metrics(count=0)
    except DataSourceError as exc:
        assert "get_metrics" in str(exc)
    else:
        raise AssertionError("expected DataSourceError")


def test_empty_readings_log_once_and_emit_nothing(caplog):
    collector = ExampleCollector(data_source=lambda: [])

    with caplog.at_level(logging.ERROR, logger=LOGGER):
        assert collector.collect() == []

    assert len(_failure_logs(caplog)) == 1
    assert collector.state.last_error is not None


def test_identical_consecutive_errors_are_logged_once_then_new_message_logs_again(caplog):
    source = _ScriptedSource(
        DataSourceError("backend down"),
        DataSourceError("backend down"),
        DataSourceError("backend timeout"),
    )
    collector = ExampleCollector(data_source=source)

    with caplog.at_level(logging.ERROR, logger=LOGGER):
        assert collector.collect() == []
        assert collector.collect() == []
        assert len(_failure_logs(caplog)) == 1

        assert collector.collect() == []

    messages = [r.getMessage() for r in _failure_logs(caplog)]
    assert messages == ["Failed to get metrics: backend down", "Failed to get metrics: backend timeout"]


def test_success_resets_suppression_so_same_error_logs_again(caplog):
    source = _ScriptedSource(
        DataSourceError("backend down"),
        [1.0],
        DataSourceError("backend down"),
    )
    collector = ExampleCollector(data_source=source)

    with caplog.at_level(logging.ERROR, logger=LOGGER):
        collector.collect()
        assert len(collector.collect()) == 2
        assert collector.state.last_error is None
        collector.collect()

    assert len(_failure_logs(caplog)) == 2


def test_unexpected_exception_from_source_is_absorbed(caplog):
    collector = ExampleCollector(data_source=_ScriptedSource(RuntimeError("boom")))

    with caplog.at_level(logging.ERROR, logger=LOGGER):
        assert collector.collect() == []

    assert [r.getMessage() for r in _failure_logs(caplog)] == ["Failed to get metrics: boom"]


def test_concurrent_failing_scrapes_log_the_same_error_once(caplog):
    barrier = threading.Barrier(8)

    def _failing_source():
        barrier.wait(timeout=5)
        raise DataSourceError("backend down")

    collector = ExampleCollector(data_source=_failing_source)

    with caplog.at_level(logging.ERROR, logger=LOGGER):
        threads = [threading.Thread(target=collector.collect) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

    assert len(_failure_logs(caplog)) == 1
