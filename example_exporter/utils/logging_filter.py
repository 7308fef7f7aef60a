import logging
from example_exporter.utils.request_context import get_request_id

class RequestIdFilter(logging.Filter):
    """Stamps each record with the id of the scrape that produced it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True
