import logging
import sys
from typing import Optional, Union

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

ROOT_LOGGER = "nutriscan"


def _coerce_level(value: Optional[Union[str, int]]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.INFO)
    if isinstance(value, int):
        return value
    return logging.INFO


def configure_logging(level: Optional[Union[str, int]] = "INFO") -> logging.Logger:
    """Attach one stdout handler to the package logger.

    Modules log through ``logging.getLogger(__name__)`` and inherit this
    handler. Calling it again only updates the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    resolved = _coerce_level(level)
    logger.setLevel(resolved)

    if getattr(logger, "_nutriscan_configured", False):
        for handler in logger.handlers:
            handler.setLevel(resolved)
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    sh = logging.StreamHandler(sys.stdout)
    sh.setLevel(resolved)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    # uvicorn configures the root logger; avoid duplicate lines
    logger.propagate = False
    setattr(logger, "_nutriscan_configured", True)
    return logger
