"""
Saber - Logging
================
Logger factory shared by every Saber module.

A single stdout handler lives on the ``saber`` package logger; module
loggers obtained through ``get_logger(__name__)`` are its children and
propagate to it, so each record is printed exactly once.

Verbosity follows ``settings.ENV``:
  • ``"dev"``  → DEBUG
  • ``"prod"`` → WARNING

Model and HTTP libraries (transformers, sentence-transformers, httpx …)
are capped at WARNING so download/progress chatter stays out of the log.

Usage:
    from saber.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Index built")
"""

import logging
import sys

from saber.config.settings import settings

_ROOT_NAME = "saber"
_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}
_DEFAULT_LEVEL = _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)

_NOISY_LIBRARIES = ("transformers", "sentence_transformers", "httpx", "httpcore", "urllib3", "PIL")


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT_NAME)
    if root.handlers:
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(_DEFAULT_LEVEL)
    root.propagate = False

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(max(logging.WARNING, _DEFAULT_LEVEL))
    return root


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return a logger under the ``saber`` hierarchy.

    Args:
        name:  Typically ``__name__`` of the calling module.  Names outside
               the ``saber`` package are nested under it.
        level: Explicit level for this logger only.  If *None*, it inherits
               the ``settings.ENV`` level from the package logger.
    """
    _configure_root()
    if name != _ROOT_NAME and not name.startswith(f"{_ROOT_NAME}."):
        name = f"{_ROOT_NAME}.{name}"
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
