"""Shared logging setup."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure the root logger.

    Args:
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        json_format: Emit one JSON object per line instead of plain text
    """
    # Imported here: the middleware module imports FastAPI, which plain
    # library use of the parsers should not require.
    from ledger.api.middleware.logging import JSONLogFormatter

    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Re-running setup (tests, reloads) must not stack handlers.
    for existing in list(root_logger.handlers):
        if getattr(existing, "_ledger_handler", False):
            root_logger.removeHandler(existing)
    handler._ledger_handler = True
    root_logger.addHandler(handler)
