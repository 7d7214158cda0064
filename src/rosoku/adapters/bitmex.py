from typing import Any

from rosoku.adapters.base import ExchangeAdapter, split_symbol
from rosoku.errors import ErrorKind
from rosoku.models import (
    AdapterRequest,
    Interval,
    Kline,
    MarketType,
    RequestWindow,
    TermUnit,
)
from rosoku.utils.time import ms_to_rfc3339, rfc3339_to_ms

_ASSET_ALIASES: dict[str, str] = {"BTC": "XBT"}

_UNIT_SUFFIX: dict[TermUnit, str] = {
    TermUnit.SEC: "s",
    TermUnit.MIN: "m",
    TermUnit.HOUR: "h",
    TermUnit.DAY: "d",
    TermUnit.WEEK: "w",
    TermUnit.MONTH: "M",
}

_COLUMNS = "timestamp,open,high,low,close,volume"


class BitmexAdapter(ExchangeAdapter):
    """Adapter for the BitMEX bucketed-trade endpoint (perpetual contracts only).

    BitMEX validates ``binSize`` itself, so every interval is forwarded and a
    rejection is recognized from the error message. Pages are ascending.
    """

    _BASE_API_URL: str = "https://www.bitmex.com/api/v1/trade/bucketed"

    page_limit = 1000
    # The error envelope carries no code, only {"message": .., "name": ..}.
    _MESSAGE_HINTS = (
        ("binSize", ErrorKind.INTERVAL),
        ("Rate limit", ErrorKind.RATE_LIMIT),
        ("symbol", ErrorKind.SYMBOL),
    )

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "bitmex"

    def translate_symbol(
        self, symbol: str, market_type: MarketType = MarketType.SPOT
    ) -> str:
        """Converts 'BTC/USD' to BitMEX's 'XBTUSD', applying asset aliases."""
        base, quote = split_symbol(symbol)
        return f"{_ASSET_ALIASES.get(base, base)}{_ASSET_ALIASES.get(quote, quote)}"

    def translate_interval(self, interval: Interval) -> str:
        return f"{interval.count}{_UNIT_SUFFIX[interval.unit]}"

    def _build_request(
        self,
        venue_symbol: str,
        venue_interval: str,
        window: RequestWindow,
        market_type: MarketType,
    ) -> AdapterRequest:
        return AdapterRequest(
            url=self._BASE_API_URL,
            symbol=venue_symbol,
            interval=venue_interval,
            limit=self.page_limit,
            market_type=market_type,
            params={
                "binSize": venue_interval,
                "symbol": venue_symbol,
                "columns": _COLUMNS,
                "count": str(self.page_limit),
                "reverse": "false",
                "startTime": ms_to_rfc3339(window.start_ms),
                "endTime": ms_to_rfc3339(window.end_ms),
            },
        )

    def _check_error(self, body: Any, request: AdapterRequest) -> None:
        if isinstance(body, list):
            return
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            raise self.translate_error(None, None, request.market_type)
        raise self.translate_error(
            error.get("name"), error.get("message"), request.market_type
        )

    def _parse_rows(self, body: Any, request: AdapterRequest) -> list[Kline]:
        return [
            Kline.coerce(
                rfc3339_to_ms(c["timestamp"]),
                c["open"],
                c["high"],
                c["low"],
                c["close"],
                c["volume"],
            )
            for c in self._expect(body, list, "response body")
        ]
