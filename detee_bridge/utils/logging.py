"""Logging configuration for the action bridge.

Log events go to stderr (and optionally a rotating file) so that stdout
carries nothing but the action response.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog

from .._version import __version__
from ..config import LoggingConfig, Settings, settings as default_settings

# Chatty below WARNING during every exec
_QUIET_LOGGERS = ("docker", "urllib3")


def setup_logging(config: Optional[Settings] = None) -> None:
    """Configure structlog on top of stdlib logging for one bridge process."""
    config = config or default_settings
    log_config = config.logging
    level = getattr(logging, log_config.level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    if log_config.file:
        logging.getLogger().addHandler(_rotating_file_handler(log_config, level))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_config.format.lower() == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            bridge_context(config.container_name),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _rotating_file_handler(config: LoggingConfig, level: int) -> logging.Handler:
    path = Path(config.file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=config.max_size_mb * 1024 * 1024,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    return handler


def bridge_context(container_name: str):
    """Processor stamping every event with the bridge version and its container."""

    def add_context(logger, method_name, event_dict):
        event_dict.setdefault("service", "detee-bridge")
        event_dict.setdefault("version", __version__)
        event_dict.setdefault("container", container_name)
        return event_dict

    return add_context
