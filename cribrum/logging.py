"""Logging infrastructure for Cribrum.

Console log records are rendered by rich on stderr, next to the CLI's
status messages, so JSON written to stdout stays parseable. A log file,
when configured, receives plain text lines.
"""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["debug", "info", "warning", "error"]
FormatStyle = Literal["simple", "detailed"]

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_FILE_FORMATS = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

_configured = False


def _console_handler(console: Console, format_style: FormatStyle) -> RichHandler:
    detailed = format_style == "detailed"
    handler = RichHandler(
        console=console,
        show_time=detailed,
        show_path=False,
        markup=False,
        rich_tracebacks=detailed,
    )
    # rich draws the level and time columns itself
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s" if detailed else "%(message)s"))
    return handler


def setup_logging(
    level: LogLevel = "info",
    log_file: str | None = None,
    format_style: FormatStyle = "simple",
    console: Console | None = None,
) -> None:
    """
    Configure cribrum logging.

    Args:
        level: Log level (debug, info, warning, error)
        log_file: Optional file path to write logs to
        format_style: 'simple' for minimal output, 'detailed' adds time and logger name
        console: rich console for log output (default: a new stderr console)
    """
    global _configured

    log_level = _LOG_LEVELS.get(level, logging.INFO)

    logger = logging.getLogger("cribrum")
    logger.setLevel(log_level)

    # Re-running setup must not stack handlers
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    console_handler = _console_handler(console or Console(stderr=True), format_style)
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMATS[format_style]))
        logger.addHandler(file_handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a cribrum module.

    Args:
        name: Module name (e.g., 'correlation.grouping', 'enrichment.kev')

    Returns:
        Logger instance for cribrum.{name}
    """
    return logging.getLogger(f"cribrum.{name}")


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
