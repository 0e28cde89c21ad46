"""
Logging configuration for the CafeVision API.

Application code logs through the standard library (``logging.getLogger``) or
the contextual logger in ``cafevision.middleware``. Every record is rendered by
structlog, as JSON lines or as a coloured console line depending on
``settings.log_format``, and carries the request and design session IDs of the
HTTP request it was emitted under.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

import structlog

from cafevision.core.config import Settings, settings
from cafevision.middleware.logging_middleware import get_request_id, get_session_id


def add_request_context(logger, method_name, event_dict):
    """Attach the current request and session IDs, when there are any."""
    request_id = get_request_id()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    session_id = get_session_id()
    if session_id:
        event_dict.setdefault("session_id", session_id)
    return event_dict


def _renderer(config: Settings):
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)


def _formatter(config: Settings, pre_chain: list) -> structlog.stdlib.ProcessorFormatter:
    processors = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if config.log_format == "json":
        # The console renderer formats exceptions itself
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer(config))
    return structlog.stdlib.ProcessorFormatter(foreign_pre_chain=pre_chain, processors=processors)


def _file_handler(path: Path, level: int, config: Settings, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=config.log_file_max_bytes,
        backupCount=config.log_file_backup_count,
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Settings = settings) -> List[logging.Handler]:
    """
    Configure structlog and the root logger.

    Always logs to stdout. When ``log_dir`` is set, every record also
    goes to ``cafevision.log`` and errors additionally to
    ``cafevision_errors.log``, both rotated. Returns the installed handlers.
    """
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)

    # Applied to stdlib records before rendering
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = _formatter(config, pre_chain)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [console_handler]

    if config.log_dir:
        log_dir = Path(config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        # Files are always JSON so they can be searched
        file_formatter = _formatter(config.model_copy(update={"log_format": "json"}), pre_chain)
        handlers.append(_file_handler(log_dir / "cafevision.log", logging.DEBUG, config, file_formatter))
        handlers.append(_file_handler(log_dir / "cafevision_errors.log", logging.ERROR, config, file_formatter))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = handlers

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={config.log_level}, format={config.log_format}, "
        f"env={config.environment}, files={'on' if config.log_dir else 'off'}"
    )
    return handlers
