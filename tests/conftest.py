"""Shared test fixtures for trade parsing and preview."""

from decimal import Decimal

import pytest

from tradepreview.book.snapshot import OrderBookSnapshot
from tradepreview.config import RiskSettings
from tradepreview.filters.registry import FilterRegistry
from tradepreview.filters.types import FilterSet


@pytest.fixture
def btc_filters() -> FilterSet:
    """BTC perpetual rules: step 0.001, tick 0.1, min notional 5."""
    return FilterSet(
        symbol="BTCUSDT",
        step_size=Decimal("0.001"),
        tick_size=Decimal("0.1"),
        min_notional=Decimal("5"),
        min_qty=Decimal("0.001"),
        max_qty=Decimal("1000"),
    )


@pytest.fixture
def eth_filters() -> FilterSet:
    """ETH perpetual rules: step 0.001, tick 0.01, min notional 5."""
    return FilterSet(
        symbol="ETHUSDT",
        step_size=Decimal("0.001"),
        tick_size=Decimal("0.01"),
        min_notional=Decimal("5"),
        min_qty=Decimal("0.001"),
        max_qty=Decimal("10000"),
    )


@pytest.fixture
def risk_settings() -> RiskSettings:
    """Default risk preferences: leverage 3 (cap 20), 50 bps slippage, 0.04% fee."""
    return RiskSettings(
        default_leverage=3,
        leverage_cap=20,
        max_slippage_bps=Decimal("50"),
        fee_rate=Decimal("0.0004"),
    )


@pytest.fixture
def registry(btc_filters: FilterSet, eth_filters: FilterSet) -> FilterRegistry:
    registry = FilterRegistry()
    registry.reload([btc_filters, eth_filters])
    return registry


@pytest.fixture
def two_level_book() -> OrderBookSnapshot:
    """Asks at 100 and 105, one unit each; bids at 99 and 98."""
    return OrderBookSnapshot.from_depth(
        "TESTUSDT",
        {
            "bids": [["99", "1"], ["98", "2"]],
            "asks": [["100", "1"], ["105", "1"]],
        },
    )


@pytest.fixture
def eth_book() -> OrderBookSnapshot:
    return OrderBookSnapshot.from_depth(
        "ETHUSDT",
        {
            "bids": [["1999", "5"], ["1998", "10"]],
            "asks": [["2000", "5"], ["2001", "10"]],
        },
    )
