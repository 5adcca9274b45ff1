from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV_VAR = "TASKWEAVE_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(level: str | None = None, *, force: bool = False) -> None:
    """Send taskweave logs to stderr.

    The level falls back to TASKWEAVE_LOG_LEVEL, then WARNING. Only the first
    call has an effect unless `force` is set.
    """
    global _configured
    if _configured and not force:
        return

    level_name = (level or os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LEVEL).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))

    package_logger = logging.getLogger("taskweave")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(numeric_level)

    _configured = True
