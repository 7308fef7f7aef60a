import logging
from pathlib import Path
from typing import Optional

from example_exporter.config import settings
from example_exporter.utils.logging_filter import RequestIdFilter

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d "
    "request_id=%(request_id)s %(message)s"
)

_handler: Optional[logging.Handler] = None


def configure_logging(log_file: Optional[str] = None, level: Optional[str] = None) -> logging.Handler:
    """Send all process logs to a single append-mode file."""
    global _handler

    path = Path(log_file or settings.log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(log_level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(log_level)
    if _handler is not None:
        teardown_logging()
    root.handlers = [handler]
    _handler = handler
    return handler


def teardown_logging() -> None:
    global _handler

    if _handler is None:
        return
    root = logging.getLogger()
    if _handler in root.handlers:
        root.removeHandler(_handler)
    _handler.flush()
    _handler.close()
    _handler = None
