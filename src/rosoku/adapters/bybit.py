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

_CATEGORIES: dict[MarketType, str] = {
    MarketType.SPOT: "spot",
    MarketType.PERPETUAL: "linear",
}

_SINGLE_COUNT_TOKENS: dict[TermUnit, str] = {
    TermUnit.DAY: "D",
    TermUnit.WEEK: "W",
    TermUnit.MONTH: "M",
}


class BybitAdapter(ExchangeAdapter):
    """Adapter for the Bybit v5 kline endpoint.

    Spot and USDT perpetual markets share one endpoint and are told apart by
    the ``category`` parameter. Pages come back newest first.
    """

    _BASE_API_URL: str = "https://api.bybit.com/v5/market/kline"

    page_limit = 200
    _ERROR_CODES = {
        "10006": ErrorKind.RATE_LIMIT,
        "10018": ErrorKind.RATE_LIMIT,
    }
    # 10001 is a generic parameter error; the message tells what was wrong.
    _MESSAGE_HINTS = (
        ("symbol", ErrorKind.SYMBOL),
        ("interval", ErrorKind.INTERVAL),
        ("period", ErrorKind.INTERVAL),
        ("category", ErrorKind.MARKET_TYPE),
    )

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "bybit"

    def translate_symbol(
        self, symbol: str, market_type: MarketType = MarketType.SPOT
    ) -> str:
        """Converts a 'BASE/QUOTE' symbol to Bybit's 'BASEQUOTE' format."""
        base, quote = split_symbol(symbol)
        return f"{base}{quote}"

    def translate_interval(self, interval: Interval) -> str:
        """Maps an interval to Bybit's token: minutes as a number, or D/W/M."""
        if interval.unit is TermUnit.SEC:
            raise self._unsupported_interval(interval, "seconds are not offered.")
        if interval.unit is TermUnit.MIN:
            return str(interval.count)
        if interval.unit is TermUnit.HOUR:
            return str(interval.count * 60)
        if interval.count != 1:
            raise self._unsupported_interval(
                interval, f"only 1{interval.unit.value} can be used."
            )
        return _SINGLE_COUNT_TOKENS[interval.unit]

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
                "category": _CATEGORIES[MarketType(market_type)],
                "symbol": venue_symbol,
                "interval": venue_interval,
                "start": str(window.start_ms),
                "end": str(window.end_ms),
                "limit": str(self.page_limit),
            },
        )

    def _check_error(self, body: Any, request: AdapterRequest) -> None:
        if not isinstance(body, dict) or "retCode" not in body:
            raise self.translate_error(None, None, request.market_type)
        if str(body["retCode"]) != "0":
            raise self.translate_error(
                body["retCode"], body.get("retMsg"), request.market_type
            )

    def _parse_rows(self, body: Any, request: AdapterRequest) -> list[Kline]:
        # Row format: [startTime, open, high, low, close, volume, turnover], all strings
        candles = self._expect(body["result"]["list"], list, "result.list")
        return [Kline.coerce(c[0], c[1], c[2], c[3], c[4], c[5]) for c in candles]
