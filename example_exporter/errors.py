from __future__ import annotations

from typing import Sequence


class ExporterError(Exception):
    """Base class for every error the exporter raises on purpose."""


class ConfigError(ExporterError):
    """Config file missing, unreadable or invalid. Fatal at startup."""


class BindError(ExporterError):
    """The scrape port could not be bound. Fatal at startup."""


class DataSourceError(ExporterError):
    """A data source could not produce readings for this scrape."""


class DuplicateDescriptorError(ExporterError):
    def __init__(self, name: str, existing: Sequence[str], incoming: Sequence[str]):
        self.name = name
        self.existing = tuple(existing)
        self.incoming = tuple(incoming)
        super().__init__(
            f"descriptor {name!r} already registered with labels {list(self.existing)}, "
            f"got {list(self.incoming)}"
        )


class ShutdownError(ExporterError):
    """Graceful drain failed or did not finish in time."""
