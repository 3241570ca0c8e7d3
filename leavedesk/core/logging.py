"""
JSON logging for the service.

Every record carries ``timestamp``, ``level``, ``logger``, ``message`` and,
inside a request, the ``request_id`` set by the correlation middleware.
Structured ``extra=`` fields from the services (``leave_id``,
``leave_status``, ...) are emitted as top-level keys.
"""
import logging
from contextvars import ContextVar
from typing import Union

from pythonjsonlogger import jsonlogger

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_FORMAT = "%(levelname)s %(name)s %(message)s"
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "passlib": logging.ERROR,
}


class RequestIdFilter(logging.Filter):
    """Copies the current request id onto the record; empty outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = request_id_var.get()
        if request_id:
            record.request_id = request_id
        return True


def build_formatter() -> jsonlogger.JsonFormatter:
    return jsonlogger.JsonFormatter(
        LOG_FORMAT,
        rename_fields={"levelname": "level", "name": "logger"},
        timestamp=True,
    )


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    root = logging.getLogger()
    # The app module may be imported more than once under test runners
    if any(isinstance(h, logging.StreamHandler) and any(isinstance(f, RequestIdFilter) for f in h.filters)
           for h in root.handlers):
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter())
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
