from __future__ import annotations

import logging

from alumni_registry.config import get_settings


_LOG_CONFIGURED = False
_QUIET_LOGGERS = ("urllib3", "multipart")


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # HR roster calls would otherwise log a connection line per request at DEBUG.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    _LOG_CONFIGURED = True
