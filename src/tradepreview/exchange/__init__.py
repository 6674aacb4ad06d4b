from tradepreview.exchange.loader import MarketDataLoader

__all__ = ["MarketDataLoader"]
