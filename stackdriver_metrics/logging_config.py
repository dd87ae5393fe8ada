"""Structured logging configuration for the Stackdriver metrics exporter"""
import logging
import os
import sys
from typing import Any, Dict, Optional
import structlog
from structlog.stdlib import LoggerFactory
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, StackInfoRenderer

from .config import ExporterConfig


def setup_structured_logging(config: ExporterConfig) -> None:
    """Setup structured logging with JSON format for production and console for development"""

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        TimeStamper(fmt="iso"),
        StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    # Use JSON renderer for production, console for development
    is_development = os.getenv("ENVIRONMENT", "production").lower() == "development"
    if is_development:
        processors.append(ConsoleRenderer())
    else:
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, config.log_level.upper(), logging.INFO)

    handlers = []

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(config.log_file))
        file_handler.setLevel(level)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    handlers.append(console_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=handlers,
        force=True
    )

    # The API client stack is chatty at INFO
    logging.getLogger('google').setLevel(logging.WARNING)
    logging.getLogger('grpc').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


def log_export_completed(logger: structlog.stdlib.BoundLogger, mode: str, metrics_count: int,
                         time_series_count: int, requests_count: int, duration: float,
                         errors: int = 0) -> None:
    """Log the outcome of one export with structured data"""
    logger.info(
        "Metrics export completed",
        mode=mode,
        metrics_count=metrics_count,
        time_series_count=time_series_count,
        requests_count=requests_count,
        export_time_seconds=round(duration, 3),
        errors=errors,
        event_type="metrics_export"
    )


def log_error(logger: structlog.stdlib.BoundLogger, error: Exception,
              context: Optional[Dict[str, Any]] = None) -> None:
    """Log error with structured context"""
    logger.error(
        "Error occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context or {},
        event_type="error",
        exc_info=error
    )
