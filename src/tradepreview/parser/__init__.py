"""Trade command parsing: typed commands and button selections to TradeIntent."""

from tradepreview.parser.command import CommandParser, ParseResult, parse
from tradepreview.parser.grammar import EXAMPLES
from tradepreview.parser.selection import ButtonSelection, parse_selection


def examples() -> list[str]:
    """Example commands suitable for a help message."""
    return list(EXAMPLES)


__all__ = [
    "ButtonSelection",
    "CommandParser",
    "ParseResult",
    "examples",
    "parse",
    "parse_selection",
]
