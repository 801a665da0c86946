"""Opt-in debug log channel.

The status line owns stdout, so diagnostics only ever go to stderr and
only when ``CLAUDE_LIMITLINE_DEBUG`` is set.
"""
from __future__ import annotations

import logging
import os
import sys

DEBUG_ENV = 'CLAUDE_LIMITLINE_DEBUG'
LOG_FORMAT = '[claude-limitline] %(asctime)s %(name)s %(levelname)s: %(message)s'


def debug_enabled() -> bool:
    """Return True if the debug channel was requested via the environment."""
    return os.environ.get(DEBUG_ENV, '').strip().lower() in ('1', 'true', 'yes')


def configure_logging() -> logging.Logger:
    """Attach a stderr handler to the package logger when debugging is enabled."""
    logger = logging.getLogger('claude_limitline')
    if not debug_enabled():
        return logger

    if not any(getattr(h, '_limitline', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._limitline = True  # type: ignore[attr-defined]  # marker against duplicate handlers
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    return logger
