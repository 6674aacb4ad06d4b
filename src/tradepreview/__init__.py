"""Trade command parsing and exchange-compliant order previews."""

from tradepreview.book import OrderBookSnapshot, simulate_fill
from tradepreview.filters import FilterRegistry, FilterSet
from tradepreview.models import TradeIntent, TradePreview
from tradepreview.parser import parse, parse_selection
from tradepreview.preview import PreviewAssembler, PreviewResult, build_preview

__all__ = [
    "FilterRegistry",
    "FilterSet",
    "OrderBookSnapshot",
    "PreviewAssembler",
    "PreviewResult",
    "TradeIntent",
    "TradePreview",
    "build_preview",
    "parse",
    "parse_selection",
    "simulate_fill",
]
