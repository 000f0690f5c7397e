# lsystem_trees/logging_config.py
"""
LOGGING SETUP: One Call for Demos and Host Applications
=======================================================

PURPOSE:
--------
Library modules only create module loggers (logging.getLogger(__name__))
and never install handlers. Applications that want to see the pipeline's
output call setup_logging() once:

    from lsystem_trees.logging_config import setup_logging
    setup_logging("INFO", context={"tree": "oak", "seed": 42})

FORMATS:
--------
    human: 2026-03-02T10:15:04.211Z | INFO     | seed=42 | Interpretation complete: ...
    json:  {"t": "...", "lvl": "INFO", "name": "...", "seed": 42, "msg": "..."}

Context fields (push_context / pop_context) are stored in a contextvar,
so a background generation thread started from a context inherits it
only if the caller copies the context explicitly.

Repeated setup_logging() calls replace the handlers instead of stacking
duplicates.
"""

import contextvars
import json as _json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


_context_var = contextvars.ContextVar('lsystem_logging_context', default={})

_installed_handlers: List[logging.Handler] = []


class ContextFormatter(logging.Formatter):
    """Human-readable (optionally colored) or JSON-lines formatter with context fields."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt_mode: str = "human", use_color: bool = True):
        super().__init__()
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get({})
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)

        if self.fmt_mode == "json":
            entry = {
                't': ts.isoformat(),
                'lvl': record.levelname,
                'name': record.name,
                'msg': record.getMessage(),
            }
            entry.update(context)
            if record.exc_info:
                entry['exc'] = self.formatException(record.exc_info)
            return _json.dumps(entry, default=str)

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        parts = [ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z', '|', level, '|']
        if context:
            parts.append(' '.join(f"{k}={v}" for k, v in context.items()))
            parts.append('|')
        parts.append(record.getMessage())

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """
    Configure the root logger.

    Parameters:
    -----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : str, optional
        Also write to this file (parent directories are created)
    json : bool
        JSON lines on the console instead of human-readable text
    color : bool
        ANSI level colors when stderr is a terminal
    context : dict, optional
        Initial context fields

    Returns:
    --------
    list of logging.Handler
        The handlers now installed on the root logger
    """
    root = logging.getLogger()
    for handler in _installed_handlers:
        root.removeHandler(handler)
    _installed_handlers.clear()

    root.setLevel(getattr(logging, log_level.upper()))

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ContextFormatter("json" if json else "human", use_color=color))
    _installed_handlers.append(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(ContextFormatter("json" if json else "human", use_color=False))
        _installed_handlers.append(file_handler)

    for handler in _installed_handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)

    return list(_installed_handlers)


def push_context(**kwargs) -> None:
    """Add fields shown on every subsequent record from this context."""
    _context_var.set({**_context_var.get({}), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove the named fields, or all fields when keys is None."""
    if keys is None:
        _context_var.set({})
        return
    current = dict(_context_var.get({}))
    for key in keys:
        current.pop(key, None)
    _context_var.set(current)
