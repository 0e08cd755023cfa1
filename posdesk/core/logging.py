from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
tenant_schema_var: ContextVar[Optional[str]] = ContextVar("tenant_schema", default=None)


class LoggingContextFilter(logging.Filter):
    """Inject the request correlation id and tenant schema into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.tenant = tenant_schema_var.get() or "public"
        return True


def configure_logging(level: int | str = logging.INFO) -> None:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | tenant=%(tenant)s | %(message)s"
        )
    )
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
