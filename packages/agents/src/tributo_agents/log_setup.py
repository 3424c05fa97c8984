"""structlog setup for Tributo Agents.

Console rendering for development, one JSON object per line elsewhere.
"""

import logging
from typing import Optional

import structlog

from tributo_agents.config import TributoConfig

_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")


def configure_logging(config: Optional[TributoConfig] = None) -> None:
    """
    Configure structlog from the application settings.

    Args:
        config: Settings to read ``log_level`` and ``env`` from
            (default: loaded from the environment)
    """
    config = config or TributoConfig()
    level = logging.getLevelName(config.log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if config.is_development:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
