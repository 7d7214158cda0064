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

_BAR_SUFFIX: dict[TermUnit, str] = {
    TermUnit.MIN: "m",
    TermUnit.HOUR: "H",
}


class OKXAdapter(ExchangeAdapter):
    """Adapter for the OKX history-candles REST endpoint.

    OKX names its range bounds from the point of view of a newest-first list:
    ``after`` returns records *older* than the timestamp and ``before`` returns
    records *newer* than it, both exclusive. Pages come back newest first.
    """

    _BASE_API_URL: str = "https://www.okx.com/api/v5/market/history-candles"

    page_limit = 100
    _ERROR_CODES = {
        "50011": ErrorKind.RATE_LIMIT,
        "50061": ErrorKind.RATE_LIMIT,
        "51001": ErrorKind.SYMBOL,
    }
    # 51000 is "Parameter {name} error" for any parameter.
    _MESSAGE_HINTS = (
        ("instId", ErrorKind.SYMBOL),
        ("bar", ErrorKind.INTERVAL),
    )

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "okx"

    def translate_symbol(
        self, symbol: str, market_type: MarketType = MarketType.SPOT
    ) -> str:
        """Converts 'BASE/QUOTE' to 'BASE-QUOTE', or 'BASE-QUOTE-SWAP' for perpetuals."""
        base, quote = split_symbol(symbol)
        inst_id = f"{base}-{quote}"
        if market_type == MarketType.PERPETUAL:
            inst_id += "-SWAP"
        return inst_id

    def translate_interval(self, interval: Interval) -> str:
        """Maps minute and hour intervals to OKX's 'bar' format ('15m', '4H')."""
        suffix = _BAR_SUFFIX.get(interval.unit)
        if suffix is None:
            raise self._unsupported_interval(
                interval, "only minute and hour intervals are offered."
            )
        return f"{interval.count}{suffix}"

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
                "instId": venue_symbol,
                "bar": venue_interval,
                # Both bounds are exclusive, so step outside the inclusive window.
                "after": str(window.end_ms + 1),
                "before": str(window.start_ms - 1),
                "limit": str(self.page_limit),
            },
        )

    def _check_error(self, body: Any, request: AdapterRequest) -> None:
        if not isinstance(body, dict) or "code" not in body:
            raise self.translate_error(None, None, request.market_type)
        if str(body["code"]) != "0":
            raise self.translate_error(
                body["code"], body.get("msg"), request.market_type
            )

    def _parse_rows(self, body: Any, request: AdapterRequest) -> list[Kline]:
        # Row format: [ts, o, h, l, c, vol, volCcy, volCcyQuote, confirm]
        candles = self._expect(body["data"], list, "data")
        return [Kline.coerce(c[0], c[1], c[2], c[3], c[4], c[5]) for c in candles]
