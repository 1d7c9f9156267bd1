"""
Centralized logging configuration for the talent matching service.

Everything logs under the ``talentmatch`` namespace. Console output always goes
to stdout; rotating files (all records, plus an errors-only file) are written
to ``LOG_DIR`` unless the environment profile turns them off. Log records never
carry document text, only ids, counts and timings.
"""
import functools
import inspect
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-34s | %(funcName)-20s:%(lineno)-4d | %(message)s",
}

# noisy third-party loggers and the level they are capped at
LIBRARY_LEVELS = {
    "pdfminer": "ERROR",
    "pymongo": "WARNING",
    "urllib3": "WARNING",
    "httpx": "WARNING",
}

# ENVIRONMENT -> (level, file logging, format); None level means LOG_LEVEL
ENVIRONMENT_PROFILES = {
    "production": (None, True, "detailed"),
    "development": ("DEBUG", True, "detailed"),
    "testing": ("WARNING", False, "simple"),
}

_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5


def _rotating_handler(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": _MAX_BYTES,
        "backupCount": _BACKUPS,
        "encoding": "utf8",
    }


def build_logging_config(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed",
) -> Dict[str, Any]:
    """The dictConfig mapping for the given options. Creates no directories."""
    stamp = datetime.now().strftime('%Y%m%d')
    log_dir = Path(log_dir or os.getenv("LOG_DIR", "logs"))

    handlers: Dict[str, Any] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style if format_style in FORMATS else "detailed",
            "stream": "ext://sys.stdout",
        }
    if enable_file:
        handlers["file"] = _rotating_handler(log_dir / f"talentmatch_{stamp}.log", level)
        handlers["error_file"] = _rotating_handler(log_dir / f"talentmatch_errors_{stamp}.log", "ERROR")

    loggers: Dict[str, Any] = {
        "talentmatch": {"level": level, "handlers": list(handlers), "propagate": False},
        "uvicorn": {"level": "INFO", "handlers": [h for h in handlers if h != "error_file"], "propagate": False},
    }
    for name, lib_level in LIBRARY_LEVELS.items():
        loggers[name] = {"level": lib_level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"} for name, fmt in FORMATS.items()
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": "WARNING", "handlers": ["console"] if enable_console else []},
    }


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Apply the logging configuration

    Args:
        level: Level for the talentmatch loggers (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for rotating log files (defaults to $LOG_DIR or ./logs)
        enable_console: Log to stdout
        enable_file: Log to rotating files
        format_style: 'simple' or 'detailed'
    """
    config = build_logging_config(level, log_dir, enable_console, enable_file, format_style)
    if enable_file:
        Path(config["handlers"]["file"]["filename"]).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(config)

    logger = logging.getLogger("talentmatch.logging")
    logger.info(f"Logging configured - Level: {level}, Console: {enable_console}, File: {enable_file}")


def get_logger(name: str) -> logging.Logger:
    """Logger under the talentmatch namespace (usually called with __name__)."""
    if name.startswith("talentmatch"):
        return logging.getLogger(name)
    return logging.getLogger(f"talentmatch.{name}")


def log_api_call(operation: str):
    """
    Decorator to log API endpoint calls
    """
    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError("log_api_call only decorates async endpoints")
        logger = get_logger(f"api.{operation}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            logger.info(f"API {operation} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = time.time() - start_time
                logger.error(f"API {operation} failed after {elapsed:.3f}s: {e}",
                             extra={"execution_time": elapsed, "error": str(e)})
                raise
            elapsed = time.time() - start_time
            logger.info(f"API {operation} completed in {elapsed:.3f}s", extra={"execution_time": elapsed})
            return result

        return wrapper
    return decorator


def configure_for_environment():
    """Configure logging from ENVIRONMENT and LOG_LEVEL"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    level, enable_file, format_style = ENVIRONMENT_PROFILES.get(environment, (None, True, "detailed"))
    setup_logging(level=level or log_level, enable_file=enable_file, format_style=format_style)


class PerformanceMonitor:
    """Context manager that logs how long a block took, warning above a threshold"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.time() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.2f}ms (threshold {self.threshold_ms}ms)"
            )
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        return False
