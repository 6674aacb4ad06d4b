"""Shared data models for trade parsing and preview.

CRITICAL: All monetary values use Decimal. Never use float for prices, quantities, or fees.
Every model here is frozen: later stages build new values instead of mutating.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class OrderSide(str, Enum):
    """Order direction."""

    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderType(str, Enum):
    """Order type."""

    MARKET = "market"
    LIMIT = "limit"


class SizeKind(str, Enum):
    """Unit in which the order size was typed."""

    BASE = "base"  # base asset units, e.g. 0.1 ETH
    QUOTE = "quote"  # quote currency, e.g. 100 USDT
    PERCENT = "percent"  # percent of available balance


@dataclass(frozen=True)
class SizeSpec:
    """Requested order size together with its unit."""

    kind: SizeKind
    amount: Decimal

    def render(self) -> str:
        suffix = {SizeKind.BASE: "", SizeKind.QUOTE: "u", SizeKind.PERCENT: "%"}[self.kind]
        return f"{format_plain(self.amount)}{suffix}"


@dataclass(frozen=True)
class TradeIntent:
    """Canonical, fully parsed trade instruction."""

    symbol: str
    side: OrderSide
    size: SizeSpec
    leverage: int | None = None
    order_type: OrderType = OrderType.MARKET
    limit_price: Decimal | None = None
    stop_loss_pct: Decimal | None = None
    take_profit_pct: Decimal | None = None
    trailing_pct: Decimal | None = None
    reduce_only: bool = False

    def to_command(self) -> str:
        """Render the intent back into command text that parses to an equal intent."""
        parts = [f"/{self.side.value}", self.symbol, self.size.render()]
        if self.leverage is not None:
            parts.append(f"x{self.leverage}")
        if self.stop_loss_pct is not None:
            parts.append(f"sl{format_plain(self.stop_loss_pct)}%")
        if self.take_profit_pct is not None:
            parts.append(f"tp{format_plain(self.take_profit_pct)}%")
        if self.trailing_pct is not None:
            parts.append(f"trail{format_plain(self.trailing_pct)}%")
        if self.reduce_only:
            parts.append("reduce")
        if self.order_type is OrderType.LIMIT and self.limit_price is not None:
            parts.append(f"limit {format_plain(self.limit_price)}")
        return " ".join(parts)


class RejectionCode(str, Enum):
    """Hard failures: the exchange would refuse the order outright."""

    UNKNOWN_SYMBOL = "unknown_symbol"
    BELOW_MIN_QUANTITY = "below_min_quantity"
    ABOVE_MAX_QUANTITY = "above_max_quantity"
    BELOW_MIN_NOTIONAL = "below_min_notional"
    ABOVE_MAX_NOTIONAL = "above_max_notional"
    PRICE_OUT_OF_RANGE = "price_out_of_range"
    OUTSIDE_PRICE_BAND = "outside_price_band"
    NO_LIQUIDITY = "no_liquidity"
    BALANCE_REQUIRED = "balance_required"
    INVALID_PROTECTIVE_PRICE = "invalid_protective_price"


class WarningCode(str, Enum):
    """Soft findings carried inside an otherwise valid preview."""

    HIGH_SLIPPAGE = "high_slippage"
    PARTIAL_LIQUIDITY = "partial_liquidity"
    LEVERAGE_CLAMPED = "leverage_clamped"
    QUANTITY_ADJUSTED = "quantity_adjusted"
    PRICE_ADJUSTED = "price_adjusted"


@dataclass(frozen=True)
class Rejection:
    """Which constraint failed, and the nearest valid value when computable."""

    code: RejectionCode
    message: str
    nearest_valid: Decimal | None = None


@dataclass(frozen=True)
class PreviewWarning:
    """Informational note attached to a preview."""

    code: WarningCode
    message: str


@dataclass(frozen=True)
class TradePreview:
    """Exchange-compliant order ready to be shown for confirmation."""

    symbol: str
    side: OrderSide
    order_type: OrderType
    base_size: Decimal  # step-normalized
    quote_size: Decimal
    leverage: int
    estimated_price: Decimal  # tick-normalized
    estimated_fees: Decimal
    slippage_warning: bool
    max_slippage_exceeded: bool
    stop_loss_price: Decimal | None = None
    take_profit_price: Decimal | None = None
    limit_price: Decimal | None = None
    trailing_pct: Decimal | None = None
    reduce_only: bool = False
    slippage_percent: Decimal = Decimal("0")
    book_exhausted: bool = False
    required_margin: Decimal = Decimal("0")
    warnings: tuple[PreviewWarning, ...] = field(default_factory=tuple)


def format_plain(value: Decimal) -> str:
    """Format a Decimal without exponent notation or trailing zeros."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
