"""Trade preview assembly.

Single composition point: TradeIntent + OrderBookSnapshot + FilterSet +
RiskSettings -> TradePreview, or the hard rejections that prevent one.

Preview flow:
1. Resolve leverage (intent or default, clamped to the user's cap)
2. Resolve the target quantity (base as typed; quote and balance percent
   converted through the book walk, or the limit price)
3. Walk the book for market orders and flag slippage / partial liquidity
4. Normalize quantity and limit price through the filter set
5. Validate notional and, for limit orders, the price band
6. Estimate fees and margin
7. Derive stop-loss / take-profit prices from the estimated entry
8. Return an immutable preview; inputs are never mutated

Hard rejections mean the exchange would refuse the order outright. Soft
warnings travel inside the preview so the user can still confirm.
"""

from dataclasses import dataclass
from decimal import Decimal

from tradepreview.book.snapshot import OrderBookSnapshot
from tradepreview.book.walker import FillSimulation, FillTarget, simulate_fill
from tradepreview.config import RiskSettings
from tradepreview.exceptions import EmptyBookError, FilterRejection, UnknownSymbolError
from tradepreview.filters.registry import FilterRegistry
from tradepreview.filters.types import FilterSet
from tradepreview.logging import get_logger
from tradepreview.models import (
    OrderSide,
    OrderType,
    PreviewWarning,
    Rejection,
    RejectionCode,
    SizeKind,
    TradeIntent,
    TradePreview,
    WarningCode,
)

logger = get_logger(__name__)

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PreviewResult:
    """Either a preview (possibly with warnings) or the rejections that blocked it."""

    preview: TradePreview | None = None
    rejections: tuple[Rejection, ...] = ()
    warnings: tuple[PreviewWarning, ...] = ()

    @property
    def ok(self) -> bool:
        return self.preview is not None and not self.rejections

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(r.message for r in self.rejections)


def build_preview(
    intent: TradeIntent,
    snapshot: OrderBookSnapshot,
    filter_set: FilterSet,
    risk_settings: RiskSettings,
    balance: Decimal | None = None,
    mark_price: Decimal | None = None,
) -> PreviewResult:
    """Build an exchange-compliant preview for a parsed intent.

    Args:
        intent: Parsed trade instruction.
        snapshot: Fresh depth snapshot for intent.symbol.
        filter_set: Trading rules for intent.symbol.
        risk_settings: The user's leverage, slippage and fee preferences.
        balance: Available quote balance; required for percentage sizing.
        mark_price: Mark price for the limit price band; defaults to the
            snapshot mid price.

    Returns:
        PreviewResult holding the preview, or the hard rejections.

    Raises:
        ValueError: If the snapshot or filter set belongs to another symbol.
    """
    if snapshot.symbol != intent.symbol or filter_set.symbol != intent.symbol:
        raise ValueError(
            f"Inputs disagree on symbol: intent={intent.symbol} "
            f"snapshot={snapshot.symbol} filters={filter_set.symbol}"
        )

    warnings: list[PreviewWarning] = []
    try:
        preview = _assemble(
            intent, snapshot, filter_set, risk_settings, balance, mark_price, warnings
        )
    except FilterRejection as exc:
        logger.info(
            "preview_rejected",
            symbol=intent.symbol,
            side=intent.side.value,
            codes=[r.code.value for r in exc.rejections],
            reason=exc.rejection.message,
        )
        return PreviewResult(rejections=exc.rejections, warnings=tuple(warnings))

    logger.debug(
        "preview_built",
        symbol=preview.symbol,
        side=preview.side.value,
        base_size=str(preview.base_size),
        estimated_price=str(preview.estimated_price),
        slippage_pct=str(preview.slippage_percent),
        warnings=len(preview.warnings),
    )
    return PreviewResult(preview=preview, warnings=preview.warnings)


class PreviewAssembler:
    """Builds previews for any symbol served by a filter registry.

    Args:
        registry: Filter registry; each build reads the table current at call time.
    """

    def __init__(self, registry: FilterRegistry) -> None:
        self._registry = registry

    def build(
        self,
        intent: TradeIntent,
        snapshot: OrderBookSnapshot,
        risk_settings: RiskSettings,
        balance: Decimal | None = None,
        mark_price: Decimal | None = None,
    ) -> PreviewResult:
        """Look up the symbol's filters and build the preview.

        An unknown symbol is a hard rejection, never "no constraints".
        """
        try:
            filter_set = self._registry.get(intent.symbol)
        except UnknownSymbolError as exc:
            logger.info("preview_unknown_symbol", symbol=intent.symbol)
            return PreviewResult(
                rejections=(Rejection(code=RejectionCode.UNKNOWN_SYMBOL, message=str(exc)),)
            )
        return build_preview(intent, snapshot, filter_set, risk_settings, balance, mark_price)


def _assemble(
    intent: TradeIntent,
    snapshot: OrderBookSnapshot,
    filter_set: FilterSet,
    risk: RiskSettings,
    balance: Decimal | None,
    mark_price: Decimal | None,
    warnings: list[PreviewWarning],
) -> TradePreview:
    side = intent.side
    is_limit = intent.order_type is OrderType.LIMIT

    # 1. Leverage
    leverage = _resolve_leverage(intent.leverage, risk, warnings)

    limit_price: Decimal | None = None
    if is_limit:
        if intent.limit_price is None:
            raise ValueError("Limit intent without a limit price")
        limit_price = filter_set.normalize_price(intent.limit_price, side)
        if limit_price != intent.limit_price:
            warnings.append(
                PreviewWarning(
                    code=WarningCode.PRICE_ADJUSTED,
                    message=(
                        f"Price {intent.limit_price} adjusted to {limit_price} "
                        f"to match tick size {filter_set.tick_size.normalize():f}"
                    ),
                )
            )

    # 2. Target quantity
    raw_quantity, conversion = _resolve_quantity(intent, snapshot, limit_price, leverage, balance)

    # 3. Book walk (market orders only; a resting limit order does not sweep the book)
    fill: FillSimulation | None = None
    slippage_warning = False
    max_slippage_exceeded = False
    if not is_limit:
        fill = conversion
        if fill is None:
            fill = _walk(snapshot, side, quantity=raw_quantity)
        max_slippage_pct = risk.max_slippage_bps / _HUNDRED
        over_limit = fill.slippage_percent > max_slippage_pct
        slippage_warning = over_limit or fill.book_exhausted
        max_slippage_exceeded = fill.book_exhausted and over_limit
        if over_limit:
            warnings.append(
                PreviewWarning(
                    code=WarningCode.HIGH_SLIPPAGE,
                    message=(
                        f"Estimated slippage {fill.slippage_bps:.2f} bps exceeds your "
                        f"limit of {risk.max_slippage_bps} bps"
                    ),
                )
            )
        if fill.book_exhausted:
            achieved = (
                fill.achieved_quantity
                if fill.target is FillTarget.QUANTITY
                else fill.achieved_notional
            )
            warnings.append(
                PreviewWarning(
                    code=WarningCode.PARTIAL_LIQUIDITY,
                    message=(
                        f"Visible depth covers only {achieved} of "
                        f"{fill.requested}; the order may not fill completely"
                    ),
                )
            )

    # 4. Normalization
    step = filter_set.lot_size(market=not is_limit)[0]
    base_size = filter_set.normalize_quantity(raw_quantity, market=not is_limit)
    if intent.size.kind is SizeKind.BASE and base_size != raw_quantity:
        warnings.append(
            PreviewWarning(
                code=WarningCode.QUANTITY_ADJUSTED,
                message=(
                    f"Quantity {raw_quantity} adjusted to {base_size} "
                    f"to match step size {step.normalize():f}"
                ),
            )
        )

    if fill is not None:
        # Rounded against the taker so the estimate never flatters the fill.
        estimated_price = filter_set.normalize_price(fill.average_price, side.opposite)
    else:
        estimated_price = limit_price

    # 5. Notional and price band
    rejections: list[Rejection] = []
    notional_rejection = filter_set.validate_notional(
        base_size, estimated_price, check_min=not intent.reduce_only
    )
    if notional_rejection is not None:
        rejections.append(notional_rejection)
    if limit_price is not None:
        reference = mark_price if mark_price is not None else snapshot.mid_price
        if reference is None:
            rejections.append(
                Rejection(
                    code=RejectionCode.NO_LIQUIDITY,
                    message=(
                        f"No mark price for {intent.symbol}; cannot check the limit price band"
                    ),
                )
            )
        else:
            band_rejection = filter_set.validate_price_band(reference, limit_price)
            if band_rejection is not None:
                rejections.append(band_rejection)
    if rejections:
        raise FilterRejection(*rejections)

    # 6. Fees and margin
    quote_size = base_size * estimated_price
    estimated_fees = quote_size * risk.fee_rate
    required_margin = quote_size / Decimal(leverage)

    # 7. Protective prices
    stop_loss_price = None
    if intent.stop_loss_pct is not None:
        stop_loss_price = _protective_price(
            estimated_price, intent.stop_loss_pct, side, filter_set, stop_loss=True
        )
    take_profit_price = None
    if intent.take_profit_pct is not None:
        take_profit_price = _protective_price(
            estimated_price, intent.take_profit_pct, side, filter_set, stop_loss=False
        )

    # 8. Assemble
    return TradePreview(
        symbol=intent.symbol,
        side=side,
        order_type=intent.order_type,
        base_size=base_size,
        quote_size=quote_size,
        leverage=leverage,
        estimated_price=estimated_price,
        estimated_fees=estimated_fees,
        slippage_warning=slippage_warning,
        max_slippage_exceeded=max_slippage_exceeded,
        stop_loss_price=stop_loss_price,
        take_profit_price=take_profit_price,
        limit_price=limit_price,
        trailing_pct=intent.trailing_pct,
        reduce_only=intent.reduce_only,
        slippage_percent=fill.slippage_percent if fill is not None else _ZERO,
        book_exhausted=fill.book_exhausted if fill is not None else False,
        required_margin=required_margin,
        warnings=tuple(warnings),
    )


def _resolve_leverage(
    requested: int | None, risk: RiskSettings, warnings: list[PreviewWarning]
) -> int:
    """Intent leverage or the user's default, clamped to [1, leverage_cap]."""
    wanted = requested if requested is not None else risk.default_leverage
    cap = max(1, risk.leverage_cap)
    leverage = min(max(wanted, 1), cap)
    if leverage != wanted:
        warnings.append(
            PreviewWarning(
                code=WarningCode.LEVERAGE_CLAMPED,
                message=f"Leverage {wanted}x is outside your range 1x-{cap}x; using {leverage}x",
            )
        )
    return leverage


def _resolve_quantity(
    intent: TradeIntent,
    snapshot: OrderBookSnapshot,
    limit_price: Decimal | None,
    leverage: int,
    balance: Decimal | None,
) -> tuple[Decimal, FillSimulation | None]:
    """Convert the typed size into a raw base quantity (not yet step-normalized).

    Market orders sized in quote terms also return the notional walk that
    produced the quantity.
    """
    size = intent.size
    if size.kind is SizeKind.BASE:
        return size.amount, None

    if size.kind is SizeKind.PERCENT:
        if balance is None or balance <= _ZERO:
            raise FilterRejection(
                Rejection(
                    code=RejectionCode.BALANCE_REQUIRED,
                    message=(
                        "An available balance is needed to size an order by percentage"
                        if balance is None
                        else f"Available balance is {balance}; nothing to size {size.amount}% from"
                    ),
                )
            )
        notional = balance * size.amount / _HUNDRED * Decimal(leverage)
    else:
        notional = size.amount

    if limit_price is not None:
        return notional / limit_price, None
    # Walking by notional spends exactly the target across levels, so the
    # achieved quantity already reflects the average price for that notional.
    conversion = _walk(snapshot, intent.side, notional=notional)
    return conversion.achieved_quantity, conversion


def _walk(
    snapshot: OrderBookSnapshot,
    side: OrderSide,
    *,
    quantity: Decimal | None = None,
    notional: Decimal | None = None,
) -> FillSimulation:
    try:
        return simulate_fill(snapshot, side, quantity=quantity, notional=notional)
    except EmptyBookError as exc:
        raise FilterRejection(
            Rejection(code=RejectionCode.NO_LIQUIDITY, message=str(exc))
        ) from exc


def _protective_price(
    entry: Decimal,
    pct: Decimal,
    side: OrderSide,
    filter_set: FilterSet,
    *,
    stop_loss: bool,
) -> Decimal:
    """Absolute trigger price pct% away from entry, rounded for the closing order.

    Longs stop below and take profit above the entry; shorts the reverse.
    """
    factor = pct / _HUNDRED
    below = stop_loss == (side is OrderSide.BUY)
    raw = entry * (_ONE - factor) if below else entry * (_ONE + factor)
    label = "Stop loss" if stop_loss else "Take profit"
    try:
        return filter_set.normalize_price(raw, side.opposite)
    except FilterRejection as exc:
        raise FilterRejection(
            Rejection(
                code=RejectionCode.INVALID_PROTECTIVE_PRICE,
                message=f"{label} {pct}% gives trigger price {raw}: {exc.rejection.message}",
                nearest_valid=exc.rejection.nearest_valid,
            )
        ) from exc
