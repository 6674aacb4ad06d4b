"""Order book walking and slippage simulation.

Consumes book levels on the taker side in price priority to estimate the
volume-weighted average fill price for a requested size. Pure function of
(snapshot, target): no I/O, no retries, safe to call repeatedly for what-if
analysis on the same snapshot.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from tradepreview.book.snapshot import OrderBookSnapshot
from tradepreview.exceptions import EmptyBookError
from tradepreview.models import OrderSide

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class FillTarget(str, Enum):
    """Unit of the requested amount."""

    QUANTITY = "quantity"  # base units to buy/sell
    NOTIONAL = "notional"  # quote value to spend/receive


@dataclass(frozen=True)
class FillSimulation:
    """Outcome of walking the book for one target.

    book_exhausted marks an insufficient-liquidity partial fill; it is a
    flag for the caller, not an error.
    """

    side: OrderSide
    target: FillTarget
    requested: Decimal
    achieved_quantity: Decimal
    achieved_notional: Decimal
    average_price: Decimal
    best_price: Decimal
    worst_price: Decimal
    slippage_percent: Decimal
    levels_consumed: int
    book_exhausted: bool

    @property
    def slippage_bps(self) -> Decimal:
        return self.slippage_percent * _HUNDRED

    @property
    def insufficient_liquidity(self) -> bool:
        return self.book_exhausted


def simulate_fill(
    snapshot: OrderBookSnapshot,
    side: OrderSide,
    *,
    quantity: Decimal | None = None,
    notional: Decimal | None = None,
) -> FillSimulation:
    """Walk the book for a base quantity or a quote notional.

    Buys consume asks from the lowest price up, sells consume bids from the
    highest price down. Each level contributes min(remaining, level size);
    the walk stops when the target is met or the side runs out.

    Args:
        snapshot: Depth snapshot to walk.
        side: Taker side of the simulated order.
        quantity: Target in base units. Mutually exclusive with notional.
        notional: Target in quote value. Mutually exclusive with quantity.

    Returns:
        FillSimulation with average price and slippage versus the best price.

    Raises:
        ValueError: If not exactly one positive target is given.
        EmptyBookError: If the side to walk has no levels.
    """
    if (quantity is None) == (notional is None):
        raise ValueError("Provide exactly one of quantity or notional")
    if quantity is not None:
        target, requested = FillTarget.QUANTITY, quantity
    elif notional is not None:
        target, requested = FillTarget.NOTIONAL, notional
    if requested <= _ZERO:
        raise ValueError(f"Fill target must be positive, got {requested}")

    levels = snapshot.levels_for(side)
    if not levels:
        book_side = "ask" if side is OrderSide.BUY else "bid"
        raise EmptyBookError(f"No liquidity on the {book_side} side of {snapshot.symbol}")

    best_price = levels[0].price
    worst_price = best_price
    remaining = requested
    filled_quantity = _ZERO
    filled_notional = _ZERO
    consumed_levels = 0

    for level in levels:
        if remaining <= _ZERO:
            break

        if target is FillTarget.QUANTITY:
            take = min(remaining, level.quantity)
            spent = take * level.price
            remaining -= take
        else:
            affordable = remaining / level.price
            if affordable <= level.quantity:
                # Exact remainder: no dust carried into the next level.
                take = affordable
                spent = remaining
                remaining = _ZERO
            else:
                take = level.quantity
                spent = take * level.price
                remaining -= spent

        filled_quantity += take
        filled_notional += spent
        worst_price = level.price
        consumed_levels += 1

    average_price = filled_notional / filled_quantity
    slippage_percent = abs(average_price - best_price) / best_price * _HUNDRED

    return FillSimulation(
        side=side,
        target=target,
        requested=requested,
        achieved_quantity=filled_quantity,
        achieved_notional=filled_notional,
        average_price=average_price,
        best_price=best_price,
        worst_price=worst_price,
        slippage_percent=slippage_percent,
        levels_consumed=consumed_levels,
        book_exhausted=remaining > _ZERO,
    )
