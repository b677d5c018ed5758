"""
Logging setup for the Resume Parser API

All application loggers live under the ``resume_parser`` namespace so that
third-party noise (pdfminer, unstructured, the Mongo driver) can be tuned
separately from our own output.
"""
import functools
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List

LOGGER_NAMESPACE = "resume_parser"

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-40s | %(funcName)-20s:%(lineno)-4d | %(message)s",
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
}

# Libraries that log page-by-page or per-command at DEBUG
QUIET_LOGGERS = {
    "pdfminer": "ERROR",
    "unstructured": "WARNING",
    "pymongo": "WARNING",
    "PIL": "INFO",
    "urllib3": "WARNING",
}

# ENVIRONMENT -> setup_logging kwargs; LOG_LEVEL overrides the level in production
LOG_PROFILES: Dict[str, Dict[str, Any]] = {
    "production": {"level": "INFO", "format_style": "detailed"},
    "development": {"level": "DEBUG", "format_style": "detailed"},
    "testing": {"level": "WARNING", "format_style": "simple", "enable_file": False},
}

MAX_LOG_BYTES = 10 * 1024 * 1024


def _rotating_file(filename: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(filename),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Configure root, uvicorn and library loggers.

    Args:
        level: Logging level for our own loggers
        log_dir: Directory for the daily rotating log files
        enable_console: Log to stdout
        enable_file: Log to ``<log_dir>/resume_parser_YYYYMMDD.log`` plus an errors-only file
        format_style: 'simple', 'detailed' or 'json'
    """
    handlers: Dict[str, Dict[str, Any]] = {}
    root_handlers: List[str] = []
    server_handlers: List[str] = []

    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "console",
            "stream": "ext://sys.stdout",
        }
        root_handlers.append("console")
        server_handlers.append("console")

    log_file = None
    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime('%Y%m%d')
        log_file = log_path / f"{LOGGER_NAMESPACE}_{stamp}.log"
        handlers["file"] = _rotating_file(log_file, level)
        handlers["error_file"] = _rotating_file(log_path / f"{LOGGER_NAMESPACE}_errors_{stamp}.log", "ERROR")
        root_handlers += ["file", "error_file"]
        server_handlers.append("file")

    loggers: Dict[str, Dict[str, Any]] = {
        "": {"level": level, "handlers": root_handlers, "propagate": False},
        "uvicorn": {"level": "INFO", "handlers": server_handlers, "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": server_handlers, "propagate": False},
    }
    for name, quiet_level in QUIET_LOGGERS.items():
        loggers[name] = {"level": quiet_level, "propagate": True}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {"format": FORMATS["detailed"], "datefmt": "%Y-%m-%d %H:%M:%S"},
            "console": {"format": FORMATS.get(format_style, FORMATS["detailed"]), "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "loggers": loggers,
    })

    logger = get_logger("logging")
    logger.info(f"Logging configured - Level: {level}, Console: {enable_console}, File: {log_file or 'disabled'}")


def get_logger(name: str) -> logging.Logger:
    """Logger under the application namespace, e.g. ``resume_parser.app.services.db``"""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_for_environment():
    """Pick a logging profile from ENVIRONMENT (LOG_LEVEL and LOG_DIR also honoured)"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    profile = dict(LOG_PROFILES.get(environment, {"level": "INFO"}))
    if environment not in ("development", "testing"):
        profile["level"] = os.getenv("LOG_LEVEL", profile["level"]).upper()
    setup_logging(log_dir=os.getenv("LOG_DIR", "logs"), **profile)


def log_api_call(operation: str):
    """Decorator for async endpoints: logs start, duration and failures of ``operation``"""
    def decorator(func):
        logger = get_logger(f"api.{func.__module__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            started = time.perf_counter()
            logger.info(f"{operation} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                logger.error(f"{operation} failed after {elapsed:.3f}s: {e}",
                             extra={"operation": operation, "execution_time": elapsed, "error": str(e)})
                raise
            elapsed = time.perf_counter() - started
            logger.info(f"{operation} finished in {elapsed:.3f}s",
                        extra={"operation": operation, "execution_time": elapsed})
            return result

        return wrapper
    return decorator


class PerformanceMonitor:
    """Times a block; warns when it runs past ``threshold_ms``"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms = None
        self._started = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        summary = f"{self.operation_name} took {self.elapsed_ms:.0f}ms"
        if exc_type is not None:
            self.logger.error(f"{summary} and failed: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{summary} (threshold {self.threshold_ms:.0f}ms)")
        else:
            self.logger.debug(summary)
        return False
