"""This package contains the exchange-specific adapters.

Each adapter is a self-contained module responsible for translating the
canonical symbol and interval notation into one exchange's REST vocabulary,
shaping a page request for a time window, classifying the exchange's error
envelope and normalizing its candlesticks into `Kline` records.

All adapters inherit from the `ExchangeAdapter` abstract base class defined
in `rosoku.adapters.base`.
"""

from rosoku.adapters.base import ExchangeAdapter
from rosoku.adapters.binance import BinanceAdapter
from rosoku.adapters.bitbank import BitbankAdapter
from rosoku.adapters.bitmex import BitmexAdapter
from rosoku.adapters.bybit import BybitAdapter
from rosoku.adapters.kraken import KrakenAdapter
from rosoku.adapters.okx import OKXAdapter
from rosoku.errors import ConfigError
from rosoku.models import Exchange

ADAPTERS: dict[Exchange, type[ExchangeAdapter]] = {
    Exchange.BINANCE: BinanceAdapter,
    Exchange.BITBANK: BitbankAdapter,
    Exchange.BITMEX: BitmexAdapter,
    Exchange.BYBIT: BybitAdapter,
    Exchange.KRAKEN: KrakenAdapter,
    Exchange.OKX: OKXAdapter,
}


def get_adapter(exchange: Exchange | str) -> ExchangeAdapter:
    """Returns a new adapter for an exchange given as enum member or name.

    Raises:
        ConfigError: If no adapter exists for the exchange.
    """
    try:
        key = Exchange(str(exchange).lower())
    except ValueError as e:
        err_msg = (
            f"Unknown exchange '{exchange}'. "
            f"Choose from: {', '.join(x.value for x in Exchange)}."
        )
        raise ConfigError(err_msg) from e
    return ADAPTERS[key]()


__all__ = [
    "ADAPTERS",
    "BinanceAdapter",
    "BitbankAdapter",
    "BitmexAdapter",
    "BybitAdapter",
    "ExchangeAdapter",
    "KrakenAdapter",
    "OKXAdapter",
    "get_adapter",
]
