"""Logging setup utilities for ledctrl.

The daemon and the uvicorn server log through the same handlers, so a
failed write, a read error on the serial link and a request line all
end up in one stream with one format.
"""

from __future__ import annotations

import logging
import sys

from ledctrl.config.settings import LoggingConfig

# Loggers configured by setup_logging; uvicorn is started with log_config=None
MANAGED_LOGGERS = ("ledctrl", "uvicorn", "uvicorn.error", "uvicorn.access")

_HANDLER_MARK = "_ledctrl_handler"


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the ledctrl daemon.

    Attaches a stderr handler (and a file handler if ``config.file`` is
    set) to the ``ledctrl`` and ``uvicorn`` loggers. Calling it again
    replaces the handlers it added before instead of stacking them.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = logging.Formatter(config.format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)

    for name in MANAGED_LOGGERS:
        logger = logging.getLogger(name)
        for old in [h for h in logger.handlers if getattr(h, _HANDLER_MARK, False)]:
            logger.removeHandler(old)
            old.close()
        logger.setLevel(level)
        # uvicorn.error/access would otherwise print twice through "uvicorn"
        if name.startswith("uvicorn."):
            logger.propagate = False
        for handler in handlers:
            logger.addHandler(handler)

    logging.getLogger("ledctrl").info("Logging initialized at %s level", config.level)
