"""Order book snapshots, fill simulation and depth statistics."""

from tradepreview.book.depth import (
    DepthSummary,
    depth_summary,
    max_quantity_within_slippage,
    share_of_depth,
)
from tradepreview.book.snapshot import BookLevel, OrderBookSnapshot
from tradepreview.book.walker import FillSimulation, FillTarget, simulate_fill

__all__ = [
    "BookLevel",
    "DepthSummary",
    "FillSimulation",
    "FillTarget",
    "OrderBookSnapshot",
    "depth_summary",
    "max_quantity_within_slippage",
    "share_of_depth",
    "simulate_fill",
]
