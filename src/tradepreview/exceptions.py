"""Custom exceptions for trade parsing and preview.

User-facing problems (bad text, orders the exchange would refuse) travel as
result values. These exceptions mark the points where a lower layer cannot
produce a value at all; the assembler turns them into rejections.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tradepreview.models import Rejection


class PreviewError(Exception):
    """Base exception for all preview errors."""


class UnknownSymbolError(PreviewError):
    """Raised when a symbol has no loaded filter set."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Symbol {symbol} is not supported or its filters are not loaded")
        self.symbol = symbol


class FilterRejection(PreviewError):
    """Raised when a number cannot be normalized into an exchange-legal value.

    Carries one or more rejections; the first is the primary reason.
    """

    def __init__(self, rejection: Rejection, *others: Rejection) -> None:
        super().__init__("; ".join(r.message for r in (rejection, *others)))
        self.rejection = rejection
        self.rejections = (rejection, *others)


class EmptyBookError(PreviewError):
    """Raised when the order book side to be walked has no levels."""
