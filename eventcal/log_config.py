"""
Central logging configuration for eventcal.

Keeps the engine's own loggers at a useful level while letting deployments
turn on debug output through environment variables without code changes.
"""

import logging
import os
from typing import Optional

# Every logger the engine creates lives under this prefix.
ENGINE_LOGGERS = [
    "eventcal",
    "eventcal.calendar.recurrence",
    "eventcal.domain.event_store",
    "eventcal.domain.storage",
    "eventcal.domain.pipeline",
    "eventcal.domain.calendar_session",
]


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for eventcal modules.

    Args:
        debug_mode: Whether to enable debug logging for eventcal modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        EVENTCAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        EVENTCAL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("EVENTCAL_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("EVENTCAL_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    engine_level = logging.DEBUG if final_debug else logging.INFO
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(engine_level)

    if final_debug:
        root_logger.info("Debug logging enabled for eventcal modules")
    else:
        root_logger.info("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for name in ENGINE_LOGGERS:
        status[name] = logging.getLevelName(logging.getLogger(name).level)
    return status
