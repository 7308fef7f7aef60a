from __future__ import annotations

from typing import Callable, List, Sequence

from example_exporter.errors import DataSourceError

DataSource = Callable[[], Sequence[float]]


def get_metrics(count: int = 3) -> List[float]:
    """Synthetic readings ``0.0 .. count-1``; an empty result is an error."""
    readings = [float(i) for i in range(count)]
    if not readings:
        raise DataSourceError("error in get_metrics()")
    return readings
