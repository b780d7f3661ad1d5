import logging
import os
import sys

from pythonjsonlogger import jsonlogger

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")

_configured = False


def setup_logging() -> logging.Logger:
    """
    Configures structured JSON logging once per process.

    The root logger and the Uvicorn loggers share one stdout handler, so the
    API and the queue worker emit the same record shape, with Datadog
    trace_id/span_id fields when ddtrace injects them. The level comes from
    LOG_LEVEL (default INFO). Later calls return the root logger without
    replacing handlers.

    Returns:
        logging.Logger: The root logger.
    """
    global _configured
    root_logger = logging.getLogger()
    if _configured:
        return root_logger

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))

    root_logger.setLevel(level)
    root_logger.handlers = [stream_handler]

    for logger_name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.handlers = [stream_handler]
        uvicorn_logger.propagate = False

    _configured = True
    return root_logger
