from typing import Any

from rosoku.adapters.base import ExchangeAdapter, keep_within, split_symbol
from rosoku.errors import ErrorKind
from rosoku.models import (
    AdapterRequest,
    Interval,
    Kline,
    MarketType,
    RequestWindow,
    TermUnit,
)

# Kraken keeps the legacy ISO 4217-style codes for a few assets.
_ASSET_ALIASES: dict[str, str] = {
    "BTC": "XBT",
    "DOGE": "XDG",
}

_MINUTES_PER_UNIT: dict[TermUnit, int] = {
    TermUnit.MIN: 1,
    TermUnit.HOUR: 60,
    TermUnit.DAY: 1440,
    TermUnit.WEEK: 10080,
}


class KrakenAdapter(ExchangeAdapter):
    """Adapter for the Kraken public OHLC endpoint.

    The endpoint only takes a lower bound (``since``, in seconds, exclusive)
    and answers with everything after it up to its page size, so rows past the
    window end are trimmed here. Pages are ascending.
    """

    _BASE_API_URL: str = "https://api.kraken.com/0/public/OHLC"

    page_limit = 720
    _ERROR_CODES = {
        "EQuery:Unknown asset pair": ErrorKind.SYMBOL,
        "EAPI:Rate limit exceeded": ErrorKind.RATE_LIMIT,
        "EGeneral:Too many requests": ErrorKind.RATE_LIMIT,
        # The interval is the only free-form argument left once the pair is known.
        "EGeneral:Invalid arguments": ErrorKind.INTERVAL,
    }
    _MESSAGE_HINTS = (("interval", ErrorKind.INTERVAL),)

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "kraken"

    def translate_symbol(
        self, symbol: str, market_type: MarketType = MarketType.SPOT
    ) -> str:
        """Converts 'BTC/USD' to Kraken's 'XBTUSD', applying asset aliases."""
        base, quote = split_symbol(symbol)
        return f"{_ASSET_ALIASES.get(base, base)}{_ASSET_ALIASES.get(quote, quote)}"

    def translate_interval(self, interval: Interval) -> str:
        """Maps an interval to Kraken's interval in minutes (e.g. '1h' -> '60')."""
        minutes = _MINUTES_PER_UNIT.get(interval.unit)
        if minutes is None:
            raise self._unsupported_interval(
                interval, "seconds and months are not offered."
            )
        if interval.unit in (TermUnit.DAY, TermUnit.WEEK) and interval.count != 1:
            raise self._unsupported_interval(
                interval, f"only 1{interval.unit.value} can be used."
            )
        return str(interval.count * minutes)

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
                "pair": venue_symbol,
                "interval": venue_interval,
                "since": str(window.start_ms // 1000 - 1),
            },
        )

    def _check_error(self, body: Any, request: AdapterRequest) -> None:
        if not isinstance(body, dict) or "error" not in body:
            raise self.translate_error(None, None, request.market_type)
        errors = body["error"]
        if not isinstance(errors, list):
            errors = [errors]
        # Errors start with 'E'; 'W' entries are warnings next to a valid result.
        fatal = [str(e) for e in errors if str(e).startswith("E")]
        if fatal:
            raise self.translate_error(fatal[0], fatal[0], request.market_type)

    def _parse_rows(self, body: Any, request: AdapterRequest) -> list[Kline]:
        result = self._expect(body["result"], dict, "result")
        # Kraken answers under its canonical pair name (e.g. 'XXBTZUSD'), which
        # may differ from the one requested; 'last' is the cursor, not data.
        if request.symbol in result:
            candles = result[request.symbol]
        else:
            (candles,) = [v for k, v in result.items() if k != "last"]
        # Row format: [time (s), open, high, low, close, vwap, volume, count]
        return [
            Kline.coerce(int(c[0]) * 1000, c[1], c[2], c[3], c[4], c[6])
            for c in self._expect(candles, list, "result pair data")
        ]

    def trim_overfetch(
        self, rows: list[Kline], window: RequestWindow
    ) -> list[Kline]:
        return keep_within(rows, window)
