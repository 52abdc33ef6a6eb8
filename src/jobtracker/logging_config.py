from __future__ import annotations

import logging

from jobtracker.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore", "openai")

_LOG_CONFIGURED = False


def resolve_log_level(name: str | None) -> int:
    level = (name or get_settings().log_level).upper()
    return logging.getLevelNamesMapping().get(level, logging.INFO)


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    resolved = resolve_log_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # Provider clients log each request at INFO; only surface their warnings unless debugging.
    if resolved > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
