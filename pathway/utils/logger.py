from __future__ import annotations

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="-")

LOGGER_NAME = "pathway"

LOG_FORMAT = (
    "%(asctime)s %(levelname)-8s %(name)s "
    "request_id=%(request_id)s src=%(filename)s:%(lineno)d %(message)s"
)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = REQUEST_ID.get("-")
        return True


def configure_logging() -> logging.Logger:
    """
    Configure the engine logger once: a rotating file under LOG_DIR, plus stdout
    when LOG_CONSOLE is set. Every module calls it at import.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_configured", False):
        return logger

    from pathway.config import settings

    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    Path(settings.log_dir).mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            filename=str(Path(settings.log_dir) / "pathway.log"),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10,
            encoding="utf-8",
        )
    ]
    if settings.log_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    request_filter = RequestIdFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(request_filter)
        logger.addHandler(handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or str(uuid.uuid4())
    REQUEST_ID.set(rid)
    return rid


def clear_request_id() -> None:
    REQUEST_ID.set("-")


class log_request:
    """
    Time a unit of work and log its outcome:
      with log_request(logger, "path_progress_update user_id=1"):
          ...
    """

    def __init__(self, logger: logging.Logger, name: str):
        self.logger = logger
        self.name = name
        self.start = 0.0

    def __enter__(self):
        self.start = time.time()
        self.logger.debug("start %s", self.name)
        return self

    def __exit__(self, exc_type, exc, tb):
        dur_ms = int((time.time() - self.start) * 1000)
        if exc is None:
            self.logger.info("%s ok duration_ms=%s", self.name, dur_ms)
        else:
            self.logger.warning("%s failed duration_ms=%s error=%s", self.name, dur_ms, exc_type.__name__)
        return False
