"""Tests for MarketDataLoader.

All tests use mocked ccxt exchange objects to avoid real API calls.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tradepreview.config import ExchangeSettings
from tradepreview.exchange.loader import MarketDataLoader
from tradepreview.filters.registry import FilterRegistry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

MOCK_MARKETS = {
    "BTC/USDT:USDT": {
        "id": "BTCUSDT",
        "symbol": "BTC/USDT:USDT",
        "active": True,
        "limits": {
            "amount": {"min": 0.001, "max": 1000},
            "cost": {"min": 100, "max": None},
        },
        "precision": {"amount": 0.001, "price": 0.1},
        "info": {
            "symbol": "BTCUSDT",
            "filters": [
                {
                    "filterType": "PRICE_FILTER",
                    "minPrice": "556.80",
                    "maxPrice": "4529764",
                    "tickSize": "0.10",
                },
                {
                    "filterType": "LOT_SIZE",
                    "stepSize": "0.001",
                    "maxQty": "1000",
                    "minQty": "0.001",
                },
                {"filterType": "MIN_NOTIONAL", "notional": "100"},
                {
                    "filterType": "PERCENT_PRICE",
                    "multiplierUp": "1.0500",
                    "multiplierDown": "0.9500",
                },
            ],
        },
    },
    "ETH/USDT:USDT": {
        "id": "ETHUSDT",
        "symbol": "ETH/USDT:USDT",
        "active": True,
        "limits": {
            "amount": {"min": 0.001, "max": 10000},
            "cost": {"min": 20, "max": None},
        },
        "precision": {"amount": 0.001, "price": 0.01},
        "info": {"symbol": "ETHUSDT"},
    },
    "LUNA/USDT:USDT": {
        "id": "LUNAUSDT",
        "symbol": "LUNA/USDT:USDT",
        "active": False,
        "limits": {"amount": {"min": 1}, "cost": {"min": 5}},
        "precision": {"amount": 1, "price": 0.0001},
        "info": {},
    },
    "BROKEN/USDT:USDT": {
        "id": "BROKENUSDT",
        "symbol": "BROKEN/USDT:USDT",
        "active": True,
        "limits": {},
        "precision": {"amount": None, "price": None},
        "info": {},
    },
}


@pytest.fixture
def exchange_settings() -> ExchangeSettings:
    return ExchangeSettings(
        api_key="test-api-key",  # type: ignore[arg-type]
        api_secret="test-api-secret",  # type: ignore[arg-type]
        depth_limit=20,
    )


@pytest.fixture
def mock_exchange() -> MagicMock:
    """Mock ccxt exchange with async methods."""
    exchange = MagicMock()
    exchange.load_markets = AsyncMock(return_value=MOCK_MARKETS)
    exchange.close = AsyncMock()
    exchange.fetch_order_book = AsyncMock(
        return_value={
            "bids": [[49990.0, 1.5], [49980.0, 2.0]],
            "asks": [[50000.0, 1.0], [50010.0, 3.0]],
            "timestamp": 1700000000000,
        }
    )
    exchange.fetch_ticker = AsyncMock(return_value={"markPrice": 50001.5, "last": 50000.0})
    return exchange


@pytest.fixture
def loader(exchange_settings: ExchangeSettings, mock_exchange: MagicMock) -> MarketDataLoader:
    return MarketDataLoader(exchange_settings, exchange=mock_exchange)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_builds_configured_ccxt_exchange(self, exchange_settings: ExchangeSettings) -> None:
        with patch("tradepreview.exchange.loader.ccxt_async") as mock_ccxt:
            loader = MarketDataLoader(exchange_settings)

        mock_ccxt.binanceusdm.assert_called_once()
        config = mock_ccxt.binanceusdm.call_args[0][0]
        assert config["enableRateLimit"] is True
        assert config["timeout"] == 10000
        assert config["apiKey"] == "test-api-key"
        assert config["secret"] == "test-api-secret"
        assert loader.exchange is mock_ccxt.binanceusdm.return_value

    def test_public_access_without_keys(self) -> None:
        with patch("tradepreview.exchange.loader.ccxt_async") as mock_ccxt:
            MarketDataLoader(ExchangeSettings(exchange_id="binance"))

        config = mock_ccxt.binance.call_args[0][0]
        assert "apiKey" not in config


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_connect_loads_markets(
        self, loader: MarketDataLoader, mock_exchange: MagicMock
    ) -> None:
        await loader.connect()
        mock_exchange.load_markets.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close(self, loader: MarketDataLoader, mock_exchange: MagicMock) -> None:
        await loader.close()
        mock_exchange.close.assert_awaited_once()


# ---------------------------------------------------------------------------
# Filter sets
# ---------------------------------------------------------------------------


class TestLoadFilterSets:
    @pytest.mark.asyncio
    async def test_builds_filter_sets(self, loader: MarketDataLoader) -> None:
        filter_sets = {fs.symbol: fs for fs in await loader.load_filter_sets()}

        assert sorted(filter_sets) == ["BTCUSDT", "ETHUSDT"]

    @pytest.mark.asyncio
    async def test_prefers_raw_exchange_filters(self, loader: MarketDataLoader) -> None:
        filter_sets = {fs.symbol: fs for fs in await loader.load_filter_sets()}
        btc = filter_sets["BTCUSDT"]

        assert btc.min_notional == Decimal("100")
        assert btc.min_price == Decimal("556.8")
        assert btc.tick_size == Decimal("0.1")

    @pytest.mark.asyncio
    async def test_falls_back_to_unified_market(self, loader: MarketDataLoader) -> None:
        filter_sets = {fs.symbol: fs for fs in await loader.load_filter_sets()}
        eth = filter_sets["ETHUSDT"]

        assert eth.step_size == Decimal("0.001")
        assert eth.tick_size == Decimal("0.01")
        assert eth.min_notional == Decimal("20")
        assert eth.min_price_band_pct == Decimal("0.05")

    @pytest.mark.asyncio
    async def test_duplicate_ids_keep_first(
        self, exchange_settings: ExchangeSettings, mock_exchange: MagicMock
    ) -> None:
        markets = dict(MOCK_MARKETS)
        markets["BTC/USDT"] = {
            "id": "BTCUSDT",
            "symbol": "BTC/USDT",
            "active": True,
            "limits": {"amount": {"min": 0.00001}, "cost": {"min": 5}},
            "precision": {"amount": 0.00001, "price": 0.01},
            "info": {},
        }
        mock_exchange.load_markets = AsyncMock(return_value=markets)
        loader = MarketDataLoader(exchange_settings, exchange=mock_exchange)

        filter_sets = {fs.symbol: fs for fs in await loader.load_filter_sets()}

        assert filter_sets["BTCUSDT"].step_size == Decimal("0.001")

    @pytest.mark.asyncio
    async def test_refresh_registry(self, loader: MarketDataLoader) -> None:
        registry = FilterRegistry()

        version = await loader.refresh_registry(registry)

        assert version == 1
        assert registry.symbols() == ["BTCUSDT", "ETHUSDT"]


# ---------------------------------------------------------------------------
# Depth and prices
# ---------------------------------------------------------------------------


class TestFetchSnapshot:
    @pytest.mark.asyncio
    async def test_fetch_snapshot(
        self, loader: MarketDataLoader, mock_exchange: MagicMock
    ) -> None:
        snapshot = await loader.fetch_snapshot("btcusdt")

        mock_exchange.fetch_order_book.assert_awaited_once_with("BTC/USDT:USDT", 20)
        assert snapshot.symbol == "BTCUSDT"
        assert snapshot.best_bid == Decimal("49990")
        assert snapshot.best_ask == Decimal("50000")
        assert len(snapshot.asks) == 2
        assert snapshot.timestamp == 1700000000000

    @pytest.mark.asyncio
    async def test_fetch_snapshot_custom_limit(
        self, loader: MarketDataLoader, mock_exchange: MagicMock
    ) -> None:
        await loader.fetch_snapshot("ETHUSDT", limit=5)
        mock_exchange.fetch_order_book.assert_awaited_once_with("ETH/USDT:USDT", 5)

    @pytest.mark.asyncio
    async def test_fetch_mark_price(self, loader: MarketDataLoader) -> None:
        assert await loader.fetch_mark_price("BTCUSDT") == Decimal("50001.5")

    @pytest.mark.asyncio
    async def test_mark_price_falls_back_to_last(
        self, loader: MarketDataLoader, mock_exchange: MagicMock
    ) -> None:
        mock_exchange.fetch_ticker = AsyncMock(return_value={"markPrice": None, "last": 50000.0})
        assert await loader.fetch_mark_price("BTCUSDT") == Decimal("50000")
