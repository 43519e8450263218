import logging
import os
from typing import Final

_LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
_LOG_LEVEL_ENV: Final[str] = "TRIFECTA_LOG_LEVEL"

# Loggers that echo every control-plane request, including query strings
_QUIET_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore")

__version__ = "0.1.0"


def _log_level() -> int:
    return logging._nameToLevel.get(os.environ.get(_LOG_LEVEL_ENV, "INFO").upper(), logging.INFO)


def _configure_logging() -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level = _log_level()
    logging.basicConfig(level=level, format=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


_configure_logging()
