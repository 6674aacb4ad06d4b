"""Per-symbol exchange trading rules and the normalization functions built on them.

All monetary values use Decimal. Never use float for prices, quantities, or fees.

Rounding never moves a quantity up: quantities are floored to the step size.
Prices are floored (buys) or ceiled (sells) to the tick size so a limit
order never becomes more aggressive than the price the user typed.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_DOWN, Decimal
from typing import Any

from tradepreview.exceptions import FilterRejection
from tradepreview.models import OrderSide, Rejection, RejectionCode

_ZERO = Decimal("0")
_ONE = Decimal("1")


def round_to_step(value: Decimal, step: Decimal) -> Decimal:
    """Floor a non-negative value to a multiple of step.

    Args:
        value: Raw quantity or price.
        step: Exchange increment (step size or tick size, e.g. 0.001).

    Returns:
        The largest multiple of step not above value.
    """
    return (value // step) * step


def round_up_to_step(value: Decimal, step: Decimal) -> Decimal:
    """Round a value up to the nearest step increment."""
    return (value / step).to_integral_value(rounding=ROUND_CEILING) * step


def step_places(step: Decimal) -> int:
    """Number of decimal places a step or tick size carries ("0.00100000" -> 3)."""
    exponent = step.normalize().as_tuple().exponent
    return max(0, -int(exponent))


def quantize_to_step(value: Decimal, step: Decimal) -> Decimal:
    """Format a value with exactly as many decimal places as the step has."""
    return value.quantize(_ONE.scaleb(-step_places(step)), rounding=ROUND_DOWN)


@dataclass(frozen=True)
class FilterSet:
    """Numeric trading rules for one symbol.

    Created once when exchange metadata is loaded and shared read-only by
    every preview for the symbol. Band percentages are fractions
    (0.05 means the limit price may sit 5% away from the mark price).
    """

    symbol: str
    step_size: Decimal
    tick_size: Decimal
    min_notional: Decimal = _ZERO
    max_notional: Decimal | None = None
    min_price_band_pct: Decimal = Decimal("0.05")
    max_price_band_pct: Decimal = Decimal("0.05")
    min_qty: Decimal = _ZERO
    max_qty: Decimal | None = None
    min_price: Decimal = _ZERO
    max_price: Decimal | None = None
    # Separate lot rules for market orders; None falls back to the values above.
    market_step_size: Decimal | None = None
    market_min_qty: Decimal | None = None
    market_max_qty: Decimal | None = None

    def __post_init__(self) -> None:
        if self.step_size <= _ZERO:
            raise ValueError(f"{self.symbol}: step size must be positive, got {self.step_size}")
        if self.tick_size <= _ZERO:
            raise ValueError(f"{self.symbol}: tick size must be positive, got {self.tick_size}")
        if self.market_step_size is not None and self.market_step_size <= _ZERO:
            raise ValueError(
                f"{self.symbol}: market step size must be positive, got {self.market_step_size}"
            )

    def lot_size(self, market: bool = False) -> tuple[Decimal, Decimal, Decimal | None]:
        """Return (step, min_qty, max_qty) for limit orders, or market orders if asked."""
        if not market:
            return self.step_size, self.min_qty, self.max_qty
        return (
            self.market_step_size if self.market_step_size is not None else self.step_size,
            self.market_min_qty if self.market_min_qty is not None else self.min_qty,
            self.market_max_qty if self.market_max_qty is not None else self.max_qty,
        )

    @property
    def quantity_precision(self) -> int:
        return step_places(self.step_size)

    @property
    def price_precision(self) -> int:
        return step_places(self.tick_size)

    def normalize_quantity(self, raw: Decimal, market: bool = False) -> Decimal:
        """Floor a quantity to the step size.

        Market orders use the market lot rules when the exchange publishes them.

        Raises:
            FilterRejection: If the floored quantity is zero, below the minimum
                quantity, or above the maximum quantity.
        """
        step, min_qty, max_qty = self.lot_size(market)
        floored = round_to_step(raw, step)

        if max_qty is not None and floored > max_qty:
            raise FilterRejection(
                Rejection(
                    code=RejectionCode.ABOVE_MAX_QUANTITY,
                    message=f"Quantity {raw} is above the maximum {max_qty} for {self.symbol}",
                    nearest_valid=quantize_to_step(round_to_step(max_qty, step), step),
                )
            )

        normalized = quantize_to_step(floored, step)

        if normalized <= _ZERO or normalized < min_qty:
            minimum = quantize_to_step(round_up_to_step(max(min_qty, step), step), step)
            raise FilterRejection(
                Rejection(
                    code=RejectionCode.BELOW_MIN_QUANTITY,
                    message=(
                        f"Quantity {raw} rounds to {normalized} at step size "
                        f"{step.normalize():f}; the minimum for {self.symbol} "
                        f"is {minimum}"
                    ),
                    nearest_valid=minimum,
                )
            )
        return normalized

    def normalize_price(self, raw: Decimal, side: OrderSide | None = None) -> Decimal:
        """Round a price to the tick size: down for buys, up for sells.

        Raises:
            FilterRejection: If the rounded price is not positive or falls
                outside the symbol's price range.
        """
        if side is OrderSide.SELL:
            rounded = round_up_to_step(raw, self.tick_size)
        else:
            rounded = round_to_step(raw, self.tick_size)
        normalized = quantize_to_step(rounded, self.tick_size)

        if normalized <= _ZERO or normalized < self.min_price:
            floor = max(self.min_price, self.tick_size)
            raise FilterRejection(
                Rejection(
                    code=RejectionCode.PRICE_OUT_OF_RANGE,
                    message=f"Price {raw} is below the minimum {floor} for {self.symbol}",
                    nearest_valid=quantize_to_step(floor, self.tick_size),
                )
            )
        if self.max_price is not None and normalized > self.max_price:
            raise FilterRejection(
                Rejection(
                    code=RejectionCode.PRICE_OUT_OF_RANGE,
                    message=f"Price {raw} is above the maximum {self.max_price} for {self.symbol}",
                    nearest_valid=quantize_to_step(
                        round_to_step(self.max_price, self.tick_size), self.tick_size
                    ),
                )
            )
        return normalized

    def validate_notional(
        self, quantity: Decimal, price: Decimal, check_min: bool = True
    ) -> Rejection | None:
        """Check quantity * price against the notional limits.

        Args:
            check_min: False skips the minimum (reduce-only orders may close
                dust positions); the maximum is always enforced.

        Returns:
            None when the notional is acceptable, otherwise a Rejection that
            names the shortfall and the nearest valid quantity.
        """
        notional = quantity * price
        if check_min and notional < self.min_notional:
            nearest = round_up_to_step(self.min_notional / price, self.step_size)
            nearest = quantize_to_step(max(nearest, self.min_qty), self.step_size)
            return Rejection(
                code=RejectionCode.BELOW_MIN_NOTIONAL,
                message=(
                    f"Order value {_money(notional)} is below the minimum notional "
                    f"{self.min_notional.normalize():f} for {self.symbol}; "
                    f"use at least {nearest}"
                ),
                nearest_valid=nearest,
            )
        if self.max_notional is not None and notional > self.max_notional:
            nearest = quantize_to_step(
                round_to_step(self.max_notional / price, self.step_size), self.step_size
            )
            return Rejection(
                code=RejectionCode.ABOVE_MAX_NOTIONAL,
                message=(
                    f"Order value {_money(notional)} is above the maximum notional "
                    f"{self.max_notional.normalize():f} for {self.symbol}; "
                    f"use at most {nearest}"
                ),
                nearest_valid=nearest,
            )
        return None

    def price_band(self, mark_price: Decimal) -> tuple[Decimal, Decimal]:
        """Return the (low, high) limit price range allowed around a mark price."""
        low = mark_price * (_ONE - self.min_price_band_pct)
        high = mark_price * (_ONE + self.max_price_band_pct)
        return low, high

    def validate_price_band(self, mark_price: Decimal, limit_price: Decimal) -> Rejection | None:
        """Check that a limit price sits inside the band around the mark price."""
        low, high = self.price_band(mark_price)
        if low <= limit_price <= high:
            return None

        if limit_price < low:
            nearest = quantize_to_step(round_up_to_step(low, self.tick_size), self.tick_size)
            direction = "below"
        else:
            nearest = quantize_to_step(round_to_step(high, self.tick_size), self.tick_size)
            direction = "above"
        return Rejection(
            code=RejectionCode.OUTSIDE_PRICE_BAND,
            message=(
                f"Limit price {limit_price} is too far {direction} the mark price "
                f"{mark_price} for {self.symbol}; nearest allowed price is {nearest}"
            ),
            nearest_valid=nearest,
        )

    @classmethod
    def from_exchange_symbol(
        cls, info: Mapping[str, Any], default_band: Decimal = Decimal("0.05")
    ) -> "FilterSet":
        """Build a FilterSet from a Binance-style exchangeInfo symbol entry.

        Reads PRICE_FILTER, LOT_SIZE, MARKET_LOT_SIZE, MIN_NOTIONAL / NOTIONAL
        and PERCENT_PRICE. A zero maximum means the exchange sets no cap.

        Raises:
            ValueError: If the symbol lacks a PRICE_FILTER or LOT_SIZE filter.
        """
        symbol = info["symbol"]
        filters = {f["filterType"]: f for f in info.get("filters", [])}

        price_filter = filters.get("PRICE_FILTER")
        lot_size = filters.get("LOT_SIZE")
        if price_filter is None or lot_size is None:
            raise ValueError(f"{symbol}: exchange metadata has no PRICE_FILTER/LOT_SIZE")

        min_notional = _ZERO
        max_notional = None
        if "MIN_NOTIONAL" in filters:
            entry = filters["MIN_NOTIONAL"]
            min_notional = _dec(entry.get("notional", entry.get("minNotional")))
        if "NOTIONAL" in filters:
            entry = filters["NOTIONAL"]
            min_notional = _dec(entry.get("minNotional"))
            max_notional = _optional_cap(entry.get("maxNotional"))

        band_down = band_up = default_band
        if "PERCENT_PRICE" in filters:
            entry = filters["PERCENT_PRICE"]
            band_up = _dec(entry["multiplierUp"]) - _ONE
            band_down = _ONE - _dec(entry["multiplierDown"])

        market_step = market_min = market_max = None
        if "MARKET_LOT_SIZE" in filters:
            entry = filters["MARKET_LOT_SIZE"]
            # Some symbols publish a zero step here meaning "same as LOT_SIZE".
            market_step = _optional_cap(entry.get("stepSize"))
            market_min = _dec(entry.get("minQty"))
            market_max = _optional_cap(entry.get("maxQty"))

        return cls(
            symbol=symbol,
            step_size=_dec(lot_size["stepSize"]),
            tick_size=_dec(price_filter["tickSize"]),
            min_notional=min_notional,
            max_notional=max_notional,
            min_price_band_pct=band_down,
            max_price_band_pct=band_up,
            min_qty=_dec(lot_size.get("minQty")),
            max_qty=_optional_cap(lot_size.get("maxQty")),
            min_price=_dec(price_filter.get("minPrice")),
            max_price=_optional_cap(price_filter.get("maxPrice")),
            market_step_size=market_step,
            market_min_qty=market_min,
            market_max_qty=market_max,
        )

    @classmethod
    def from_ccxt_market(
        cls, market: Mapping[str, Any], default_band: Decimal = Decimal("0.05")
    ) -> "FilterSet":
        """Build a FilterSet from a ccxt unified market structure.

        The exchange id (e.g. "BTCUSDT") is used as the symbol because that is
        what the command parser produces. Precision values are treated as step
        and tick sizes.
        """
        limits = market.get("limits", {})
        precision = market.get("precision", {})
        amount_limits = limits.get("amount", {}) or {}
        price_limits = limits.get("price", {}) or {}
        cost_limits = limits.get("cost", {}) or {}

        return cls(
            symbol=market["id"],
            step_size=_dec(precision.get("amount")),
            tick_size=_dec(precision.get("price")),
            min_notional=_dec(cost_limits.get("min")),
            max_notional=_optional_cap(cost_limits.get("max")),
            min_price_band_pct=default_band,
            max_price_band_pct=default_band,
            min_qty=_dec(amount_limits.get("min")),
            max_qty=_optional_cap(amount_limits.get("max")),
            min_price=_dec(price_limits.get("min")),
            max_price=_optional_cap(price_limits.get("max")),
        )


def _dec(value: Any) -> Decimal:
    """Convert an exchange string or ccxt float to Decimal; missing becomes zero."""
    if value is None:
        return _ZERO
    return Decimal(str(value))


def _optional_cap(value: Any) -> Decimal | None:
    """Exchange caps of zero or null mean "no cap"."""
    cap = _dec(value)
    return cap if cap > _ZERO else None


def _money(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_DOWN)}"
