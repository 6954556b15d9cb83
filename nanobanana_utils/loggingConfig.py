#!/usr/bin/env python3
"""
Logging setup for the Nano Banana MCP server.

All records go to stderr so the stdio transport keeps stdout for protocol frames.

Verbosity levels:
- 0 (default): INFO, tool activity only
- 1: INFO + prompt text
- 2: DEBUG + prompt text, request payloads with image data truncated
"""

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "nanobanana"
VERBOSITY_ENV = "NANO_BANANA_VERBOSITY"

_log_prompts: bool = False
_configured: bool = False


def _ensure_handler() -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    _configured = True


def setVerbosity(level: int) -> None:
    """Set logging verbosity (0=default, 1=prompts, 2=debug)."""
    global _log_prompts
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if level <= 0:
        root.setLevel(logging.INFO)
        _log_prompts = False
    elif level == 1:
        root.setLevel(logging.INFO)
        _log_prompts = True
    else:
        root.setLevel(logging.DEBUG)
        _log_prompts = True


def configureLogging(verboseLevel: int = 0, quiet: bool = False) -> None:
    """
    Configure logging from the command line.

    When quiet is True only warnings and errors are emitted, otherwise
    setVerbosity(verboseLevel) is applied.
    """
    global _log_prompts
    _ensure_handler()
    if quiet:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.WARNING)
        _log_prompts = False
        return
    setVerbosity(verboseLevel)


def logPrompts() -> bool:
    """Return True if prompt text should be logged."""
    return _log_prompts


def getVerbosityFromEnv() -> int:
    """Read NANO_BANANA_VERBOSITY (0, 1 or 2). Invalid or missing values return 0."""
    raw = os.environ.get(VERBOSITY_ENV, "0").strip()
    if raw == "1":
        return 1
    if raw == "2":
        return 2
    return 0


def getLogger(name: str) -> logging.Logger:
    """Return a child logger under the nanobanana root (e.g. nanobanana.configStore)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name.rsplit(".", 1)[-1])
