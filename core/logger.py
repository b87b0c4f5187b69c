import logging
import os
import sys
import threading

import logfire
from loguru import logger

SERVICE_NAME = "carebridge-api"
SERVICE_VERSION = "0.1.0"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# Standard library loggers whose records are routed into loguru
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


class SingletonLogger:
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if not cls._instance:
            with cls._lock:
                if not cls._instance:
                    cls._instance = super(SingletonLogger, cls).__new__(cls)
                    cls._instance._init_logger()
        return cls._instance

    def _init_logger(self):
        """
        Configure loguru once for the whole process.

        Sinks: logfire (shipped only when LOGFIRE_TOKEN is set), coloured stderr
        at LOG_LEVEL, and a rotating file when LOG_FILE is given.
        """
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logfire.configure(
            token=os.getenv("LOGFIRE_TOKEN") or None,
            send_to_logfire="if-token-present",
            service_name=SERVICE_NAME,
            service_version=SERVICE_VERSION,
            environment=os.getenv("ENVIRONMENT", "development"),
        )
        logger.configure(handlers=[logfire.loguru_handler()])
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, backtrace=True)

        log_file = os.getenv("LOG_FILE")
        if log_file:
            logger.add(
                log_file,
                level=level,
                rotation=os.getenv("LOG_ROTATION", "10 MB"),
                retention=os.getenv("LOG_RETENTION", "14 days"),
                enqueue=True,
            )

        for name in FORWARDED_LOGGERS:
            std_logger = logging.getLogger(name)
            std_logger.handlers = [InterceptHandler()]
            std_logger.propagate = False
        self.logger = logger

    def get_logger(self):
        return self.logger
