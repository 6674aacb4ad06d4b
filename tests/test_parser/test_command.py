"""Tests for the free-form trade command parser.

Verifies:
- Every documented token form maps to the right TradeIntent field
- Symbols without a quote asset get the default quote appended
- Errors are collected (not raised) and come with a usage suggestion
- Parsing is deterministic and intents render back to equivalent commands
"""

from decimal import Decimal

import pytest

from tradepreview.config import ParserSettings
from tradepreview.models import OrderSide, OrderType, SizeKind, SizeSpec, TradeIntent
from tradepreview.parser import CommandParser, examples, parse
from tradepreview.parser.grammar import USAGE


class TestDocumentedScenarios:
    def test_base_size_with_modifiers(self) -> None:
        """'buy 0.1 ETH 10x sl1% tp3%' -> ETHUSDT buy 0.1 base, 10x, sl 1%, tp 3%."""
        result = parse("buy 0.1 ETH 10x sl1% tp3%")

        assert result.ok
        assert result.intent == TradeIntent(
            symbol="ETHUSDT",
            side=OrderSide.BUY,
            size=SizeSpec(SizeKind.BASE, Decimal("0.1")),
            leverage=10,
            order_type=OrderType.MARKET,
            stop_loss_pct=Decimal("1"),
            take_profit_pct=Decimal("3"),
        )

    def test_quote_size_sell(self) -> None:
        """'sell 50u BTC' -> BTCUSDT sell 50 in quote, market."""
        result = parse("sell 50u BTC")

        assert result.ok
        intent = result.intent
        assert intent is not None
        assert intent.symbol == "BTCUSDT"
        assert intent.side is OrderSide.SELL
        assert intent.size == SizeSpec(SizeKind.QUOTE, Decimal("50"))
        assert intent.order_type is OrderType.MARKET
        assert intent.leverage is None


class TestTokenForms:
    def test_slash_command_with_bot_mention(self) -> None:
        result = parse("/Buy@TradeBot BTCUSDT 100u x5 sl1% tp3%")

        assert result.ok
        assert result.intent is not None
        assert result.intent.symbol == "BTCUSDT"
        assert result.intent.leverage == 5
        assert result.suggestions == ()

    def test_quote_unit_as_separate_token(self) -> None:
        result = parse("buy BTC 100 usdt")
        assert result.intent is not None
        assert result.intent.size == SizeSpec(SizeKind.QUOTE, Decimal("100"))

    def test_percent_size(self) -> None:
        result = parse("buy btc 25%")
        assert result.intent is not None
        assert result.intent.size == SizeSpec(SizeKind.PERCENT, Decimal("25"))

    @pytest.mark.parametrize("text", ["buy ETH 1 x5", "buy ETH 1 5x", "buy ETH 1 leverage 5"])
    def test_leverage_forms(self, text: str) -> None:
        result = parse(text)
        assert result.intent is not None
        assert result.intent.leverage == 5

    def test_spelled_out_protection(self) -> None:
        result = parse("buy ETH 1 stop loss 2% take profit 4%")

        assert result.intent is not None
        assert result.intent.stop_loss_pct == Decimal("2")
        assert result.intent.take_profit_pct == Decimal("4")

    def test_keyword_with_equals(self) -> None:
        result = parse("buy ETH 1 sl=1.5 tp 3")

        assert result.intent is not None
        assert result.intent.stop_loss_pct == Decimal("1.5")
        assert result.intent.take_profit_pct == Decimal("3")

    def test_trailing_stop(self) -> None:
        result = parse("buy LINK 50u trail1%")
        assert result.intent is not None
        assert result.intent.trailing_pct == Decimal("1")

    def test_limit_with_price(self) -> None:
        result = parse("sell ETH 1 limit 2500")

        assert result.intent is not None
        assert result.intent.order_type is OrderType.LIMIT
        assert result.intent.limit_price == Decimal("2500")

    def test_at_price_is_limit(self) -> None:
        result = parse("sell ETH 1 @2500.5")

        assert result.intent is not None
        assert result.intent.order_type is OrderType.LIMIT
        assert result.intent.limit_price == Decimal("2500.5")

    def test_explicit_market(self) -> None:
        result = parse("buy SOL mkt 250u")
        assert result.intent is not None
        assert result.intent.order_type is OrderType.MARKET

    def test_reduce_only(self) -> None:
        result = parse("sell ETH 0.5 reduce")

        assert result.intent is not None
        assert result.intent.reduce_only is True
        assert result.suggestions == ()

    def test_symbol_with_other_quote_kept(self) -> None:
        result = parse("buy ETHBUSD 1")
        assert result.intent is not None
        assert result.intent.symbol == "ETHBUSD"

    def test_tokens_in_any_order(self) -> None:
        assert parse("buy 0.1 ETH 10x sl1% tp3%").intent == parse("buy sl1% 10x ETH tp3% 0.1").intent


class TestHints:
    def test_hints_for_bare_order(self) -> None:
        result = parse("buy BTC 100u")
        assert result.suggestions == (
            "Consider adding leverage (e.g., x5)",
            "Consider adding risk management (sl1% tp3%)",
        )

    def test_no_leverage_hint_when_given(self) -> None:
        result = parse("buy BTC 100u x3")
        assert result.suggestions == ("Consider adding risk management (sl1% tp3%)",)


class TestErrors:
    def test_empty_command(self) -> None:
        result = parse("   ")

        assert not result.ok
        assert result.errors == ("Empty command",)
        assert result.suggestions == (USAGE,)

    def test_unknown_action(self) -> None:
        result = parse("hold BTC 1")

        assert result.intent is None
        assert "Unknown action 'hold'" in result.errors[0]

    def test_missing_size(self) -> None:
        result = parse("buy BTC")

        assert result.errors == ("Could not identify order size",)
        assert result.suggestions[-1] == USAGE

    def test_missing_symbol(self) -> None:
        result = parse("buy 100u")
        assert result.errors == ("Could not identify trading symbol",)

    def test_all_errors_reported_together(self) -> None:
        result = parse("buy x0")
        assert "Could not identify trading symbol" in result.errors
        assert "Could not identify order size" in result.errors
        assert any("outside the allowed range" in e for e in result.errors)

    def test_negative_size(self) -> None:
        result = parse("buy BTC -1")
        assert any("Size must be positive" in e for e in result.errors)

    def test_non_finite_size(self) -> None:
        result = parse("buy BTC nan")
        assert "Size 'nan' must be a finite number" in result.errors

    @pytest.mark.parametrize("token", ["x0", "x126", "200x"])
    def test_leverage_out_of_range(self, token: str) -> None:
        result = parse(f"buy BTC 100u {token}")
        assert not result.ok
        assert "outside the allowed range 1x-125x" in result.errors[0]

    def test_fractional_leverage(self) -> None:
        result = parse("buy BTC 100u x2.5")
        assert result.errors == ("Leverage must be a whole number, got 2.5",)

    def test_limit_without_price(self) -> None:
        result = parse("buy BTC 100u limit")
        assert result.errors == ("Limit orders need a price",)

    def test_market_and_limit_conflict(self) -> None:
        result = parse("buy BTC 100u market limit 50000")
        assert result.errors == ("An order cannot be both market and limit",)

    def test_reduce_only_with_percent(self) -> None:
        result = parse("sell BTC 10% reduce")
        assert result.errors == ("Reduce-only orders cannot be sized by balance percentage",)

    def test_percent_above_hundred(self) -> None:
        result = parse("buy BTC 150%")
        assert any("at most 100%" in e for e in result.errors)

    def test_stop_loss_at_hundred(self) -> None:
        result = parse("buy BTC 100u sl100%")
        assert result.errors == ("Stop loss must be below 100%, got 100%",)

    def test_sell_take_profit_at_hundred(self) -> None:
        result = parse("sell BTC 100u tp100%")
        assert result.errors == ("Take profit must be below 100% for sells, got 100%",)

    def test_duplicate_modifier(self) -> None:
        result = parse("buy BTC 100u sl1% sl2%")
        assert result.errors == ("Stop loss given twice",)

    def test_market_given_twice(self) -> None:
        result = parse("buy BTC 100u market mkt")
        assert result.errors == ("Market given twice",)

    def test_two_symbols(self) -> None:
        result = parse("buy BTC ETH 1")
        assert result.errors == ("Two symbols given: BTCUSDT and ETHUSDT",)

    def test_symbol_too_short(self) -> None:
        result = parse("buy X 1")
        assert "Unrecognized symbol 'X'" in result.errors

    def test_unrecognized_token(self) -> None:
        result = parse("buy BTC 1 foo!")
        assert result.errors == ("Unrecognized token 'foo!'",)

    def test_keyword_without_value(self) -> None:
        result = parse("buy BTC 1 sl")
        assert result.errors == ("Stop loss needs a percentage, e.g. sl1%",)


class TestSpotMode:
    def test_percent_with_leverage_rejected(self) -> None:
        parser = CommandParser(ParserSettings(market="spot"))
        result = parser.parse("buy BTC 10% x5")
        assert result.errors == ("Balance percentage cannot be combined with leverage in spot mode",)

    def test_futures_mode_allows_percent_with_leverage(self) -> None:
        assert parse("buy BTC 10% x5").ok

    def test_custom_quote_asset(self) -> None:
        parser = CommandParser(ParserSettings(quote_asset="USDC"))
        result = parser.parse("buy ETH 1")
        assert result.intent is not None
        assert result.intent.symbol == "ETHUSDC"


class TestDeterminism:
    def test_same_text_same_result(self) -> None:
        text = "/sell ADAUSDT 1000u x2 sl2% tp5% limit 0.65"
        assert parse(text) == parse(text)

    @pytest.mark.parametrize("text", examples())
    def test_examples_parse_and_render_back(self, text: str) -> None:
        result = parse(text)

        assert result.ok, result.errors
        assert result.intent is not None
        assert parse(result.intent.to_command()).intent == result.intent
