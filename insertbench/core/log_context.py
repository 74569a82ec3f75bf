"""
Per-run / per-worker logging context.

Workers run as asyncio tasks, each with its own copy of the context, so a
`ContextVar` set inside a worker tags every record that worker logs. The
`RunContextFilter` copies the current values onto each `LogRecord` so the
configured format can print `%(run_id)s` and `%(worker_id)s`.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

CURRENT_RUN_ID: ContextVar[Optional[str]] = ContextVar("CURRENT_RUN_ID", default=None)
CURRENT_WORKER_ID: ContextVar[Optional[str]] = ContextVar(
    "CURRENT_WORKER_ID", default=None
)


class RunContextFilter(logging.Filter):
    """Stamp `run_id` / `worker_id` onto records (`-` when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "run_id", None) is None:
            record.run_id = CURRENT_RUN_ID.get() or "-"
        if getattr(record, "worker_id", None) is None:
            worker_id = CURRENT_WORKER_ID.get()
            record.worker_id = str(worker_id).strip() if worker_id is not None else "-"
        return True


def configure_logging(settings: Any, *, level: Optional[str] = None) -> None:
    """
    Install root logging from settings.

    Args:
        settings: Object with LOG_LEVEL, LOG_FORMAT and LOG_FILE attributes
        level: Optional override of settings.LOG_LEVEL
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = str(getattr(settings, "LOG_FILE", "") or "").strip()
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    context_filter = RunContextFilter()
    for handler in handlers:
        handler.addFilter(context_filter)

    logging.basicConfig(
        level=str(level or settings.LOG_LEVEL).upper(),
        format=settings.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # asyncpg logs every server notice at INFO; keep the run log readable.
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
