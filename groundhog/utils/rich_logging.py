"""Rich logging integration for groundhog.

Provides Rich-based console handlers and a plain formatter for log files.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

from rich.console import Console, ConsoleRenderable
from rich.logging import RichHandler

# Rich markup tags like [red], [bold cyan], [/]
_MARKUP_RE = re.compile(r"\[/?[a-zA-Z#][^\[\]]*\]|\[/\]")


class CorrelationRichHandler(RichHandler):
    """RichHandler that prefixes messages with the session correlation ID."""

    def __init__(self, *args: Any, show_correlation_id: bool = True, **kwargs: Any):
        """Initialize handler.

        Args:
            *args: Positional arguments for RichHandler
            show_correlation_id: Whether to prefix the correlation ID
            **kwargs: Keyword arguments for RichHandler

        """
        kwargs.setdefault("markup", False)
        super().__init__(*args, **kwargs)
        self.show_correlation_id = show_correlation_id

    def render_message(self, record: logging.LogRecord, message: str) -> ConsoleRenderable:
        """Render message with the correlation ID, if any."""
        corr_id = getattr(record, "correlation_id", None)
        if self.show_correlation_id and corr_id and corr_id != "no-correlation-id":
            message = f"[{corr_id}] {message}"
        return super().render_message(record, message)


def strip_rich_markup(text: str) -> str:
    """Strip Rich markup from text for file logging.

    Args:
        text: Text with Rich markup

    Returns:
        Text without Rich markup

    """
    return _MARKUP_RE.sub("", text)


class FileFormatter(logging.Formatter):
    """Formatter for file output that strips Rich markup."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, stripping Rich markup for file output."""
        return strip_rich_markup(super().format(record))


def create_rich_handler(
    console: Console | None = None,
    level: int | str = logging.INFO,
    show_path: bool = False,
    rich_tracebacks: bool = True,
    show_correlation_id: bool = True,
) -> logging.Handler:
    """Create a RichHandler with correlation ID support.

    Args:
        console: Optional Rich Console instance
        level: Log level
        show_path: Whether to show file paths in log output
        rich_tracebacks: Whether to use rich tracebacks
        show_correlation_id: Whether to prefix messages with the correlation ID

    Returns:
        Configured RichHandler instance

    """
    if console is None:
        console = Console(file=sys.stderr)

    return CorrelationRichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
        show_correlation_id=show_correlation_id,
    )
