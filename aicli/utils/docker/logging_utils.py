"""Internal logging helpers for Docker utilities.

Separated to keep concerns modular. Not part of the public API.
"""

from __future__ import annotations

import re
from re import Pattern

from rich.markup import escape

from aicli.utils.log_utils import logger


ANSI_ESCAPE_RE: Pattern[str] = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def format_prefix(prefix: str | None) -> str:
    """Return a logging prefix safe for Rich markup.

    Args:
        prefix: Optional raw prefix.

    Returns:
        Escaped prefix ending with a space if non-empty.
    """
    if not prefix:
        return ""
    p = escape(prefix.rstrip())
    return p + (" " if not p.endswith(" ") else "")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE_RE.sub("", text)


def log_line(text: str, log_prefix: str | None, level: str = "info") -> None:
    """Log one line of container output, sanitized for the Rich console."""
    log_fn = getattr(logger, level, logger.info)
    sanitized = escape(strip_ansi(text).replace("\r", ""))
    log_fn(f"{format_prefix(log_prefix)}{sanitized}")


def log_multiline(text: str, log_prefix: str | None, level: str = "info") -> None:
    """Log multiline output line-by-line with optional prefix."""
    if not text:
        return
    for raw_line in text.splitlines():
        log_line(raw_line, log_prefix, level)


__all__ = ["format_prefix", "strip_ansi", "log_line", "log_multiline", "ANSI_ESCAPE_RE"]
