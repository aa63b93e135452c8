"""
Structured logging configuration using structlog.
Library modules only obtain loggers; entry points call configure_logging().
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional

import structlog
from structlog.stdlib import ProcessorFormatter

from .settings import settings


def get_log_filename() -> str:
    """Log filename with timestamp format: gateway_yyyymmddhhmmss.log"""
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    return f"gateway_{timestamp}.log"


def configure_logging(
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    log_dir: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the gateway.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to settings.log_level.
        json_logs: If True, output JSON format. If False, use console renderer.
                   Defaults to settings.json_logs.
        log_dir: Directory to store log files. No file handler when unset.
                   Defaults to settings.log_dir.
    """
    level = log_level or settings.log_level
    log_level_int = getattr(logging, level.upper(), logging.INFO)

    use_json = json_logs if json_logs is not None else settings.json_logs
    log_directory = log_dir or settings.log_dir

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    # stdout is reserved for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level_int)
    root_logger.addHandler(console_handler)

    if log_directory:
        os.makedirs(log_directory, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_directory, get_log_filename()),
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_formatter = ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(log_level_int)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(log_level_int)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name. If None, uses the caller's module name.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def bind_call_context(call_id: Optional[str] = None, operation: Optional[str] = None, **kwargs) -> None:
    """
    Bind call context to the current context variables.
    Log entries emitted from the same task include these fields.
    """
    context = {}
    if call_id:
        context["call_id"] = call_id
    if operation:
        context["operation"] = operation
    context.update(kwargs)

    if context:
        structlog.contextvars.bind_contextvars(**context)


def clear_call_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
