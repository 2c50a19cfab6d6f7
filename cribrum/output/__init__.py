"""Output formatters for engine results."""

from cribrum.output.console_output import ConsoleOutputFormatter
from cribrum.output.json_output import JSONOutputFormatter

__all__ = [
    "ConsoleOutputFormatter",
    "JSONOutputFormatter",
]
