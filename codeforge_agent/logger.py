"""Logging setup for codeforge-agent.

All modules log through children of the ``codeforge_agent`` logger, so
configuring the package logger once (from the CLI) covers the agent loop,
the tools and the workspace.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

__all__ = ["PACKAGE_LOGGER", "setup_logger", "get_logger"]

PACKAGE_LOGGER = "codeforge_agent"
DEFAULT_LOG_FILE = Path("~/.codeforge-agent/logs/agent.log").expanduser()
LOG_FILE_ENV = "FORGE_LOG_FILE"
CONSOLE_FORMAT = "[%(levelname).1s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024  # 5MB
LOG_BACKUP_COUNT = 3

# litellm logs under both names depending on version
NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore")


def setup_logger(
    name: str = PACKAGE_LOGGER,
    verbose: bool = False,
    log_file: Union[str, Path, bool, None] = None,
) -> logging.Logger:
    """Configure the package logger.

    The console only shows warnings unless ``verbose`` is set; the file
    handler always records INFO so a failed turn can be reconstructed
    afterwards.

    Args:
        name: Logger to configure. Defaults to the package logger.
        verbose: Show INFO records on the console.
        log_file: ``None``/``True`` uses ``$FORGE_LOG_FILE`` or the default
            path, ``False`` disables file logging, anything else is a path.
    """
    logger = logging.getLogger(name)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.INFO)
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    log_path = _resolve_log_path(log_file)
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name without changing its configuration."""
    return logging.getLogger(name)


def _resolve_log_path(log_file: Union[str, Path, bool, None]) -> Path | None:
    if log_file is False:
        return None
    if log_file is None or log_file is True:
        override = os.environ.get(LOG_FILE_ENV)
        return Path(override).expanduser() if override else DEFAULT_LOG_FILE
    return Path(log_file).expanduser()
