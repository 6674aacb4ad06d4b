"""Order book depth snapshot supplied fresh for every preview."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from tradepreview.models import OrderSide

_ZERO = Decimal("0")
_TWO = Decimal("2")


@dataclass(frozen=True)
class BookLevel:
    """One resting price level."""

    price: Decimal
    quantity: Decimal


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Immutable depth snapshot for one symbol.

    Bids are stored best (highest) first and asks best (lowest) first.
    """

    symbol: str
    bids: tuple[BookLevel, ...]
    asks: tuple[BookLevel, ...]
    timestamp: int | None = None  # Unix milliseconds

    @classmethod
    def from_depth(
        cls,
        symbol: str,
        depth: Mapping[str, Any],
        timestamp: int | None = None,
    ) -> "OrderBookSnapshot":
        """Build a snapshot from raw depth arrays.

        Accepts the exchange REST shape ({"bids": [["50000.00", "1.5"], ...]})
        and the ccxt shape (floats, optional "timestamp"). Levels are re-sorted
        into price priority and empty levels are dropped.

        Raises:
            ValueError: If a level has a non-positive price or negative quantity.
        """
        if timestamp is None:
            timestamp = depth.get("timestamp")
        bids = _levels(depth.get("bids", []), symbol)
        asks = _levels(depth.get("asks", []), symbol)
        return cls(
            symbol=symbol.upper(),
            bids=tuple(sorted(bids, key=lambda lvl: lvl.price, reverse=True)),
            asks=tuple(sorted(asks, key=lambda lvl: lvl.price)),
            timestamp=timestamp,
        )

    def levels_for(self, side: OrderSide) -> tuple[BookLevel, ...]:
        """Levels a taker order of the given side consumes (asks for buys)."""
        return self.asks if side is OrderSide.BUY else self.bids

    @property
    def best_bid(self) -> Decimal | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Decimal | None:
        return self.asks[0].price if self.asks else None

    @property
    def mid_price(self) -> Decimal | None:
        """Midpoint of the touch, or the only available side's best price."""
        if self.best_bid is not None and self.best_ask is not None:
            return (self.best_bid + self.best_ask) / _TWO
        return self.best_bid if self.best_bid is not None else self.best_ask


def _levels(raw: Iterable[Sequence[Any]], symbol: str) -> list[BookLevel]:
    levels = []
    for entry in raw:
        price = Decimal(str(entry[0]))
        quantity = Decimal(str(entry[1]))
        if price <= _ZERO or quantity < _ZERO:
            raise ValueError(f"{symbol}: invalid depth level {entry!r}")
        if quantity == _ZERO:
            continue
        levels.append(BookLevel(price=price, quantity=quantity))
    return levels
