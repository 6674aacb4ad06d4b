"""Free-form trade command parser.

Maps typed commands ("buy 0.1 ETH 10x sl1% tp3%", "/sell BTCUSDT 100u x5
reduce") to one canonical TradeIntent. Parsing is a pure string -> result
function: no registry lookups, no network, and the same text always gives
the same intent or the same errors.

Problems are collected rather than raised so the user sees every mistake in
one reply, together with a suggestion of the expected syntax.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from tradepreview.config import ParserSettings
from tradepreview.logging import get_logger
from tradepreview.models import OrderSide, OrderType, SizeKind, SizeSpec, TradeIntent
from tradepreview.parser import grammar

logger = get_logger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ParseResult:
    """Either an intent, or the errors that prevented building one.

    Suggestions accompany both outcomes: on failure they show the expected
    syntax, on success they hint at optional modifiers.
    """

    intent: TradeIntent | None = None
    errors: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.intent is not None and not self.errors


@dataclass
class _IntentBuilder:
    """Fields accumulated while walking the tokens."""

    side: OrderSide
    symbol: str | None = None
    size: SizeSpec | None = None
    leverage: int | None = None
    market: bool = False
    limit: bool = False
    limit_price: Decimal | None = None
    stop_loss_pct: Decimal | None = None
    take_profit_pct: Decimal | None = None
    trailing_pct: Decimal | None = None
    reduce_only: bool = False
    errors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def fail(self, message: str, suggestion: str | None = None) -> None:
        self.errors.append(message)
        if suggestion and suggestion not in self.suggestions:
            self.suggestions.append(suggestion)


class CommandParser:
    """Parses trade commands according to the configured grammar options.

    Args:
        settings: Quote asset for symbol inference, leverage ceiling and
            market mode (spot forbids leverage with percent sizing).
    """

    def __init__(self, settings: ParserSettings | None = None) -> None:
        self._settings = settings or ParserSettings()
        self._quote_assets = sorted(
            {q.upper() for q in self._settings.known_quote_assets}
            | {self._settings.quote_asset.upper()},
            key=len,
            reverse=True,
        )

    def parse(self, raw_text: str) -> ParseResult:
        """Parse one command.

        Args:
            raw_text: Text as typed, e.g. "/buy BTCUSDT 100u x5 sl1% tp3%".

        Returns:
            ParseResult with the intent, or with errors and suggestions.
        """
        tokens = raw_text.split() if raw_text else []
        if not tokens:
            return ParseResult(
                errors=("Empty command",),
                suggestions=(grammar.USAGE,),
            )

        action = grammar.strip_action(tokens[0])
        if action not in grammar.ACTIONS:
            logger.debug("command_unknown_action", action=action)
            return ParseResult(
                errors=(f"Unknown action '{tokens[0]}': commands start with buy or sell",),
                suggestions=(grammar.USAGE,),
            )

        builder = _IntentBuilder(side=OrderSide(action))
        self._read_tokens(tokens[1:], builder)
        self._check_required(builder)

        if builder.errors:
            suggestions = builder.suggestions + [grammar.USAGE]
            logger.debug("command_rejected", errors=len(builder.errors), text=raw_text)
            return ParseResult(
                errors=tuple(builder.errors),
                suggestions=tuple(dict.fromkeys(suggestions)),
            )

        intent = self._build(builder)
        logger.debug("command_parsed", symbol=intent.symbol, side=intent.side.value)
        return ParseResult(intent=intent, suggestions=tuple(self._hints(intent)))

    # ------------------------------------------------------------------
    # Token walk
    # ------------------------------------------------------------------

    def _read_tokens(self, tokens: list[str], builder: _IntentBuilder) -> None:
        i = 0
        while i < len(tokens):
            i = self._read_token(tokens, i, builder)

    def _read_token(self, tokens: list[str], i: int, builder: _IntentBuilder) -> int:
        """Claim tokens[i] (and any value tokens it owns); return the next index."""
        raw = tokens[i]
        word = raw.lower()
        following = tokens[i + 1].lower() if i + 1 < len(tokens) else None

        if word in grammar.REDUCE_WORDS:
            if builder.reduce_only:
                builder.fail("Reduce-only given twice")
            builder.reduce_only = True
            return i + 1

        if word in grammar.MARKET_WORDS:
            if builder.market:
                builder.fail("Market given twice")
            builder.market = True
            return i + 1

        if word in grammar.LIMIT_WORDS:
            if builder.limit:
                builder.fail("Limit given twice")
            builder.limit = True
            if following is not None and grammar.NUMBER_RE.match(following):
                self._set_limit_price(builder, following)
                return i + 2
            return i + 1

        if (match := grammar.AT_PRICE_RE.match(word)) is not None:
            if builder.limit_price is not None:
                builder.fail("Limit price given twice")
            builder.limit = True
            self._set_limit_price(builder, match["value"])
            return i + 1

        if word in grammar.LEVERAGE_WORDS:
            if following is None or not grammar.NUMBER_RE.match(following):
                builder.fail("Leverage keyword needs a value", "Write leverage as x5 or 5x")
                return i + 1
            self._set_leverage(builder, following)
            return i + 2

        if (match := grammar.LEVERAGE_RE.match(word)) is not None:
            self._set_leverage(builder, match["prefix"] or match["suffix"])
            return i + 1

        if following is not None and (word, following) in grammar.TWO_WORD_MODIFIERS:
            keyword = grammar.TWO_WORD_MODIFIERS[(word, following)]
            return self._read_keyword_value(tokens, i + 2, keyword, builder)
        if word in grammar.STOP_LOSS_WORDS:
            return self._read_keyword_value(tokens, i + 1, "sl", builder)
        if word in grammar.TAKE_PROFIT_WORDS:
            return self._read_keyword_value(tokens, i + 1, "tp", builder)
        if word in grammar.TRAILING_WORDS:
            return self._read_keyword_value(tokens, i + 1, "trail", builder)

        if (match := grammar.STOP_LOSS_RE.match(word)) is not None:
            self._set_percent(builder, "sl", match["value"])
            return i + 1
        if (match := grammar.TAKE_PROFIT_RE.match(word)) is not None:
            self._set_percent(builder, "tp", match["value"])
            return i + 1
        if (match := grammar.TRAILING_RE.match(word)) is not None:
            self._set_percent(builder, "trail", match["value"])
            return i + 1

        if (match := grammar.SIZE_RE.match(word)) is not None:
            unit = match["unit"]
            consumed = 1
            if unit is None and following in grammar.QUOTE_UNITS:
                unit = following
                consumed = 2
            self._set_size(builder, match["value"], unit)
            return i + consumed

        if word in grammar.NON_FINITE_WORDS:
            builder.fail(f"Size '{raw}' must be a finite number")
            return i + 1

        symbol = raw.upper()
        if grammar.SYMBOL_RE.match(symbol):
            self._set_symbol(builder, symbol)
            return i + 1

        builder.fail(f"Unrecognized token '{raw}'")
        return i + 1

    def _read_keyword_value(
        self, tokens: list[str], value_index: int, keyword: str, builder: _IntentBuilder
    ) -> int:
        if value_index >= len(tokens):
            builder.fail(f"{_LABELS[keyword]} needs a percentage, e.g. {keyword}1%")
            return value_index
        match = grammar.PERCENT_VALUE_RE.match(tokens[value_index].lower())
        if match is None:
            builder.fail(
                f"Invalid {_LABELS[keyword].lower()} '{tokens[value_index]}'",
                f"Write {_LABELS[keyword].lower()} as {keyword}1%",
            )
            return value_index + 1
        self._set_percent(builder, keyword, match["value"])
        return value_index + 1

    # ------------------------------------------------------------------
    # Field setters
    # ------------------------------------------------------------------

    def _set_symbol(self, builder: _IntentBuilder, token: str) -> None:
        symbol = self._resolve_symbol(token)
        if symbol is None:
            builder.fail(
                f"Unrecognized symbol '{token}'",
                "Include a valid symbol like BTCUSDT or ETH",
            )
            return
        if builder.symbol is not None and builder.symbol != symbol:
            builder.fail(f"Two symbols given: {builder.symbol} and {symbol}")
            return
        builder.symbol = symbol

    def _resolve_symbol(self, token: str) -> str | None:
        """Append the configured quote asset to bare bases ("ETH" -> "ETHUSDT")."""
        base, symbol = token, f"{token}{self._settings.quote_asset.upper()}"
        for quote in self._quote_assets:
            if token.endswith(quote) and len(token) > len(quote):
                base, symbol = token[: -len(quote)], token
                break
        if not grammar.MIN_BASE_LENGTH <= len(base) <= grammar.MAX_BASE_LENGTH:
            return None
        return symbol

    def _set_size(self, builder: _IntentBuilder, text: str, unit: str | None) -> None:
        if builder.size is not None:
            builder.fail(f"Size given twice ('{text}')")
            return
        amount = _number(builder, text, "Size")
        if amount is None:
            return
        if amount <= _ZERO:
            builder.fail(
                f"Size must be positive, got {text}",
                "Specify size like: 100u (quote), 0.25 (base) or 25% (balance)",
            )
            return

        if unit == grammar.PERCENT_UNIT:
            if amount > _HUNDRED:
                builder.fail(f"Balance percentage must be at most 100%, got {text}%")
                return
            builder.size = SizeSpec(SizeKind.PERCENT, amount)
        elif unit is not None:
            builder.size = SizeSpec(SizeKind.QUOTE, amount)
        else:
            builder.size = SizeSpec(SizeKind.BASE, amount)

    def _set_leverage(self, builder: _IntentBuilder, text: str) -> None:
        if builder.leverage is not None:
            builder.fail("Leverage given twice")
            return
        value = _number(builder, text, "Leverage")
        if value is None:
            return
        cap = self._settings.max_leverage
        if value != value.to_integral_value():
            builder.fail(f"Leverage must be a whole number, got {text}")
            return
        if not 1 <= value <= cap:
            builder.fail(
                f"Leverage {text}x is outside the allowed range 1x-{cap}x",
                f"Use leverage between x1 and x{cap}",
            )
            return
        builder.leverage = int(value)

    def _set_limit_price(self, builder: _IntentBuilder, text: str) -> None:
        value = _number(builder, text, "Limit price")
        if value is None:
            return
        if value <= _ZERO:
            builder.fail(f"Limit price must be positive, got {text}")
            return
        builder.limit_price = value

    def _set_percent(self, builder: _IntentBuilder, keyword: str, text: str) -> None:
        label = _LABELS[keyword]
        attr = _ATTRS[keyword]
        if getattr(builder, attr) is not None:
            builder.fail(f"{label} given twice")
            return
        value = _number(builder, text, label)
        if value is None:
            return
        if value <= _ZERO:
            builder.fail(f"{label} must be positive, got {text}%")
            return
        if keyword in ("sl", "trail") and value >= _HUNDRED:
            builder.fail(f"{label} must be below 100%, got {text}%")
            return
        setattr(builder, attr, value)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _check_required(self, builder: _IntentBuilder) -> None:
        if builder.symbol is None:
            builder.fail(
                "Could not identify trading symbol",
                "Include a valid symbol like BTCUSDT or ETH",
            )
        if builder.size is None:
            builder.fail(
                "Could not identify order size",
                "Specify size like: 100u (quote), 0.25 (base) or 25% (balance)",
            )

        if builder.market and builder.limit:
            builder.fail("An order cannot be both market and limit")
        elif builder.limit and builder.limit_price is None:
            builder.fail("Limit orders need a price", "Add the price, e.g. limit 64000")

        percent_size = builder.size is not None and builder.size.kind is SizeKind.PERCENT
        if percent_size and builder.reduce_only:
            builder.fail(
                "Reduce-only orders cannot be sized by balance percentage",
                "Size reduce-only orders in base or quote units",
            )
        if percent_size and builder.leverage is not None and self._settings.market == "spot":
            builder.fail("Balance percentage cannot be combined with leverage in spot mode")

        if (
            builder.side is OrderSide.SELL
            and builder.take_profit_pct is not None
            and builder.take_profit_pct >= _HUNDRED
        ):
            builder.fail(
                f"Take profit must be below 100% for sells, got {builder.take_profit_pct}%"
            )

    def _build(self, builder: _IntentBuilder) -> TradeIntent:
        if builder.symbol is None or builder.size is None:
            raise ValueError("_build called before _check_required passed")
        return TradeIntent(
            symbol=builder.symbol,
            side=builder.side,
            size=builder.size,
            leverage=builder.leverage,
            order_type=OrderType.LIMIT if builder.limit else OrderType.MARKET,
            limit_price=builder.limit_price,
            stop_loss_pct=builder.stop_loss_pct,
            take_profit_pct=builder.take_profit_pct,
            trailing_pct=builder.trailing_pct,
            reduce_only=builder.reduce_only,
        )

    @staticmethod
    def _hints(intent: TradeIntent) -> list[str]:
        hints = []
        if intent.leverage is None and not intent.reduce_only:
            hints.append("Consider adding leverage (e.g., x5)")
        unprotected = intent.stop_loss_pct is None and intent.take_profit_pct is None
        if unprotected and not intent.reduce_only:
            hints.append("Consider adding risk management (sl1% tp3%)")
        return hints


_LABELS = {"sl": "Stop loss", "tp": "Take profit", "trail": "Trailing stop"}
_ATTRS = {"sl": "stop_loss_pct", "tp": "take_profit_pct", "trail": "trailing_pct"}


def _number(builder: _IntentBuilder, text: str, label: str) -> Decimal | None:
    value = grammar.to_decimal(text)
    if value is None:
        builder.fail(f"{label} '{text}' is not a valid number")
        return None
    if abs(value) >= grammar.MAX_NUMBER:
        builder.fail(f"{label} {text} is too large")
        return None
    return value


def parse(raw_text: str, settings: ParserSettings | None = None) -> ParseResult:
    """Parse a trade command with the given (or default) parser settings."""
    return CommandParser(settings).parse(raw_text)
