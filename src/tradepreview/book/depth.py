"""Depth statistics for sizing advice.

Helpers used when a preview warns about slippage: how much could be traded
within the user's slippage limit, and how large an order is relative to the
visible book.
"""

from dataclasses import dataclass
from decimal import Decimal

from tradepreview.book.snapshot import OrderBookSnapshot
from tradepreview.filters.types import FilterSet, quantize_to_step, round_to_step
from tradepreview.models import OrderSide

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")
_BPS = Decimal("10000")


@dataclass(frozen=True)
class DepthSummary:
    """Visible liquidity on one side of the book."""

    levels: int
    total_quantity: Decimal
    average_level_size: Decimal
    spread: Decimal
    spread_bps: Decimal


def max_quantity_within_slippage(
    snapshot: OrderBookSnapshot,
    side: OrderSide,
    max_slippage_bps: Decimal,
    filter_set: FilterSet | None = None,
) -> Decimal:
    """Largest quantity whose levels all sit within max_slippage_bps of the best price.

    Summing whole levels up to the price limit keeps the average fill price
    inside the limit as well. When a filter set is given the result is
    floored to its step size.
    """
    levels = snapshot.levels_for(side)
    if not levels:
        return _ZERO

    best = levels[0].price
    tolerance = max_slippage_bps / _BPS
    if side is OrderSide.BUY:
        limit = best * (_ONE + tolerance)
    else:
        limit = best * (_ONE - tolerance)

    total = _ZERO
    for level in levels:
        if side is OrderSide.BUY and level.price > limit:
            break
        if side is OrderSide.SELL and level.price < limit:
            break
        total += level.quantity

    if filter_set is not None:
        step = filter_set.lot_size(market=True)[0]
        return quantize_to_step(round_to_step(total, step), step)
    return total


def depth_summary(snapshot: OrderBookSnapshot, side: OrderSide) -> DepthSummary:
    """Summarize the side a taker order would consume, plus the touch spread."""
    levels = snapshot.levels_for(side)
    total = sum((level.quantity for level in levels), _ZERO)
    average = total / len(levels) if levels else _ZERO

    spread = spread_bps = _ZERO
    if snapshot.best_bid is not None and snapshot.best_ask is not None:
        spread = snapshot.best_ask - snapshot.best_bid
        spread_bps = spread / snapshot.best_bid * _BPS

    return DepthSummary(
        levels=len(levels),
        total_quantity=total,
        average_level_size=average,
        spread=spread,
        spread_bps=spread_bps,
    )


def share_of_depth(snapshot: OrderBookSnapshot, side: OrderSide, quantity: Decimal) -> Decimal:
    """Percent of the visible side an order of this quantity would consume.

    An empty side counts as 100% so callers treat it as "too large".
    """
    total = sum((level.quantity for level in snapshot.levels_for(side)), _ZERO)
    if total == _ZERO:
        return _HUNDRED
    return quantity / total * _HUNDRED
