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

# Binance interval suffixes; month is the only upper-case one.
_UNIT_SUFFIX: dict[TermUnit, str] = {
    TermUnit.SEC: "s",
    TermUnit.MIN: "m",
    TermUnit.HOUR: "h",
    TermUnit.DAY: "d",
    TermUnit.WEEK: "w",
    TermUnit.MONTH: "M",
}


class BinanceAdapter(ExchangeAdapter):
    """Adapter for the Binance spot and USDⓈ-M futures kline endpoints.

    Pages are ascending and both ``startTime`` and ``endTime`` are inclusive.
    """

    _SPOT_API_URL: str = "https://api.binance.com/api/v3/klines"
    _FUTURES_API_URL: str = "https://fapi.binance.com/fapi/v1/klines"

    page_limit = 1000
    _ERROR_CODES = {
        "-1003": ErrorKind.RATE_LIMIT,
        "-1120": ErrorKind.INTERVAL,
        "-1121": ErrorKind.SYMBOL,
    }
    # 418 is sent once an IP keeps ignoring 429s.
    _RATE_LIMIT_STATUSES = frozenset({418, 429})

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "binance"

    def translate_symbol(
        self, symbol: str, market_type: MarketType = MarketType.SPOT
    ) -> str:
        """Converts a 'BASE/QUOTE' symbol to Binance's 'BASEQUOTE' format."""
        base, quote = split_symbol(symbol)
        return f"{base}{quote}"

    def translate_interval(self, interval: Interval) -> str:
        """Maps an interval to Binance's '<count><suffix>' token, e.g. '15m', '1M'.

        Binance itself decides which counts exist and answers -1120 otherwise.
        """
        return f"{interval.count}{_UNIT_SUFFIX[interval.unit]}"

    def _build_request(
        self,
        venue_symbol: str,
        venue_interval: str,
        window: RequestWindow,
        market_type: MarketType,
    ) -> AdapterRequest:
        url = (
            self._FUTURES_API_URL
            if market_type == MarketType.PERPETUAL
            else self._SPOT_API_URL
        )
        return AdapterRequest(
            url=url,
            symbol=venue_symbol,
            interval=venue_interval,
            limit=self.page_limit,
            market_type=market_type,
            params={
                "symbol": venue_symbol,
                "interval": venue_interval,
                "startTime": str(window.start_ms),
                "endTime": str(window.end_ms),
                "limit": str(self.page_limit),
            },
        )

    def _check_error(self, body: Any, request: AdapterRequest) -> None:
        # Successful responses are always a list; errors are {"code": .., "msg": ..}.
        if isinstance(body, dict):
            raise self.translate_error(
                body.get("code"), body.get("msg"), request.market_type
            )

    def _parse_rows(self, body: Any, request: AdapterRequest) -> list[Kline]:
        # Kline format: [Open time, Open, High, Low, Close, Volume, Close time, ...]
        candles = self._expect(body, list, "response body")
        return [Kline.coerce(c[0], c[1], c[2], c[3], c[4], c[5]) for c in candles]
