"""Exchange metadata and depth loading via ccxt async.

Wraps a ccxt.async_support exchange (binanceusdm by default) to build
FilterSets from market metadata and OrderBookSnapshots from depth. Rate
limiting and timeouts live here; the parser, filters, walker and assembler
never do I/O.
"""

from decimal import Decimal
from typing import Any

import ccxt.async_support as ccxt_async

from tradepreview.book.snapshot import OrderBookSnapshot
from tradepreview.config import ExchangeSettings
from tradepreview.filters.registry import FilterRegistry
from tradepreview.filters.types import FilterSet
from tradepreview.logging import get_logger

logger = get_logger(__name__)


class MarketDataLoader:
    """Loads trading rules and depth snapshots from one exchange."""

    def __init__(self, settings: ExchangeSettings, exchange: Any | None = None) -> None:
        self._settings = settings
        if exchange is None:
            exchange_class = getattr(ccxt_async, settings.exchange_id)
            config: dict = {
                "enableRateLimit": True,
                "timeout": settings.timeout_ms,
            }
            if settings.api_key.get_secret_value():
                config["apiKey"] = settings.api_key.get_secret_value()
                config["secret"] = settings.api_secret.get_secret_value()
            exchange = exchange_class(config)
        self._exchange = exchange
        self._markets: dict = {}
        self._unified_by_id: dict[str, str] = {}

    @property
    def exchange(self) -> Any:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Load markets so filter sets and symbol ids are available."""
        logger.info("connecting_to_exchange", exchange=self._settings.exchange_id)
        self._markets = await self._exchange.load_markets()
        self._unified_by_id = {
            market["id"]: unified for unified, market in self._markets.items() if "id" in market
        }
        logger.info(
            "exchange_connected",
            exchange=self._settings.exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_exchange_connection", exchange=self._settings.exchange_id)
        await self._exchange.close()

    async def load_filter_sets(self) -> list[FilterSet]:
        """Build a FilterSet for every active market.

        Raw exchangeInfo filters are preferred when ccxt passes them through
        in market["info"]; otherwise the unified limits/precision are used.
        Markets with unusable metadata, and later markets reusing an id
        already seen, are skipped with a warning.
        """
        if not self._markets:
            await self.connect()

        band = self._settings.default_price_band
        by_symbol: dict[str, FilterSet] = {}
        for unified, market in self._markets.items():
            if market.get("active") is False:
                continue
            info = market.get("info") or {}
            try:
                if info.get("filters"):
                    filter_set = FilterSet.from_exchange_symbol(info, band)
                else:
                    filter_set = FilterSet.from_ccxt_market(market, band)
            except (KeyError, ValueError, ArithmeticError) as exc:
                logger.warning("filter_set_skipped", symbol=unified, error=str(exc))
                continue
            if filter_set.symbol in by_symbol:
                logger.warning("filter_set_duplicate_id", symbol=unified, id=filter_set.symbol)
                continue
            by_symbol[filter_set.symbol] = filter_set

        logger.info("filter_sets_loaded", count=len(by_symbol))
        return list(by_symbol.values())

    async def refresh_registry(self, registry: FilterRegistry) -> int:
        """Reload markets and atomically swap the registry's table.

        Returns:
            The registry version after the reload.
        """
        self._markets = {}
        filter_sets = await self.load_filter_sets()
        return registry.reload(filter_sets)

    async def fetch_snapshot(self, symbol: str, limit: int | None = None) -> OrderBookSnapshot:
        """Fetch a fresh depth snapshot for an exchange symbol id (e.g. BTCUSDT)."""
        if not self._markets:
            await self.connect()

        symbol = symbol.upper()
        unified = self._unified_by_id.get(symbol, symbol)
        depth = await self._exchange.fetch_order_book(
            unified, limit or self._settings.depth_limit
        )
        snapshot = OrderBookSnapshot.from_depth(symbol, depth)
        logger.debug(
            "snapshot_fetched",
            symbol=symbol,
            bids=len(snapshot.bids),
            asks=len(snapshot.asks),
            best_bid=str(snapshot.best_bid) if snapshot.best_bid is not None else None,
            best_ask=str(snapshot.best_ask) if snapshot.best_ask is not None else None,
        )
        return snapshot

    async def fetch_mark_price(self, symbol: str) -> Decimal | None:
        """Mark price from the ticker, falling back to the last price."""
        if not self._markets:
            await self.connect()

        symbol = symbol.upper()
        ticker = await self._exchange.fetch_ticker(self._unified_by_id.get(symbol, symbol))
        value = ticker.get("markPrice") or ticker.get("last")
        return Decimal(str(value)) if value is not None else None
