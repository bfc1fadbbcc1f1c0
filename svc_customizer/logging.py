from __future__ import annotations

import logging
import os
from contextvars import ContextVar

from pythonjsonlogger import jsonlogger

from svc_customizer.config import settings

SERVICE_NAME = "svc-customizer"

# set per request by RequestIdMiddleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamps every record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


def configure_logging() -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # create_app() may run more than once per process
    if any(isinstance(f, RequestIdFilter) for h in root.handlers for f in h.filters):
        return

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger", "message": "event"},
            static_fields={"service": SERVICE_NAME, "version": settings.SERVICE_VERSION},
        )
    )
    root.addHandler(handler)

    logging.getLogger("httpx").setLevel(os.getenv("HTTPX_LOG_LEVEL", "WARNING"))
    logging.getLogger("uvicorn.access").setLevel(os.getenv("UVICORN_ACCESS_LOG_LEVEL", "WARNING"))
    logging.getLogger("azure").setLevel(os.getenv("AZURE_LOG_LEVEL", "WARNING"))
