"""Read-only access to the exchange capability table.

The table maps ``exchange -> market type -> accepted interval tokens`` and is
shipped as ``rosoku/data/capabilities.json``. It is used both to reject input
locally and to tell the user which values an exchange accepts.
"""

import functools
import json
from importlib import resources
from types import MappingProxyType
from typing import Any

from loguru import logger

from rosoku.errors import UnsupportedMarketTypeError
from rosoku.models import MarketType

CAPABILITY_RESOURCE = "data/capabilities.json"

CapabilityTable = MappingProxyType[str, MappingProxyType[str, tuple[str, ...]]]


@functools.cache
def load_capabilities() -> CapabilityTable:
    """Loads and freezes the packaged capability table. Cached after first use."""
    raw: dict[str, dict[str, list[str]]] = json.loads(
        resources.files("rosoku").joinpath(CAPABILITY_RESOURCE).read_text("utf-8")
    )
    table = MappingProxyType(
        {
            exchange: MappingProxyType(
                {market: tuple(intervals) for market, intervals in markets.items()}
            )
            for exchange, markets in raw.items()
        }
    )
    logger.debug(f"Loaded capability table for exchanges: {list(table)}")
    return table


def supported_market_types(exchange: str) -> list[MarketType]:
    """Returns the market types the exchange offers candlesticks for."""
    markets = load_capabilities().get(str(exchange), {})
    return [MarketType(m) for m in markets]


def valid_intervals(exchange: str, market_type: Any) -> list[str]:
    """Returns the canonical interval tokens accepted for an exchange/market pair.

    Unknown combinations yield an empty list rather than an error, so that the
    result can always be used to compose a message.
    """
    markets = load_capabilities().get(str(exchange), {})
    return list(markets.get(str(market_type), ()))


def ensure_market_type(exchange: str, market_type: MarketType) -> None:
    """Raises UnsupportedMarketTypeError if the exchange lacks the market type."""
    if market_type not in supported_market_types(exchange):
        raise UnsupportedMarketTypeError(str(exchange), str(market_type))
