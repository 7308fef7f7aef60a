from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence, Tuple

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


@dataclass(frozen=True)
class MetricDescriptor:
    """Static declaration of a metric: name, help text and label schema."""

    name: str
    help: str
    label_names: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not _METRIC_NAME_RE.match(self.name):
            raise ValueError(f"Invalid metric name: {self.name!r}")

        label_names = tuple(self.label_names)
        for label in label_names:
            if not _LABEL_NAME_RE.match(label) or label.startswith("__"):
                raise ValueError(f"Invalid label name {label!r} for metric {self.name!r}")
        if len(set(label_names)) != len(label_names):
            raise ValueError(f"Duplicate label names for metric {self.name!r}: {list(label_names)}")

        object.__setattr__(self, "label_names", label_names)


@dataclass(frozen=True)
class Sample:
    """One reading for a descriptor, with label values in descriptor order."""

    descriptor: MetricDescriptor
    value: float
    label_values: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        label_values = tuple(str(v) for v in self.label_values)
        if len(label_values) != len(self.descriptor.label_names):
            raise ValueError(
                f"{self.descriptor.name}: expected {len(self.descriptor.label_names)} label values "
                f"{list(self.descriptor.label_names)}, got {len(label_values)}"
            )
        object.__setattr__(self, "label_values", label_values)
        object.__setattr__(self, "value", float(self.value))

    @property
    def labels(self) -> Sequence[Tuple[str, str]]:
        return tuple(zip(self.descriptor.label_names, self.label_values))
