from typing import Any

from rosoku.adapters.base import ExchangeAdapter, keep_within, split_symbol
from rosoku.errors import ConfigError, ErrorKind
from rosoku.models import (
    AdapterRequest,
    Interval,
    Kline,
    MarketType,
    RequestWindow,
)
from rosoku.utils.time import ms_to_datetime

# Candle types served one UTC day per request; all others come a year at a time.
_DAILY_BUCKET_TYPES = frozenset({"1min", "5min", "15min", "30min", "1hour"})


class BitbankAdapter(ExchangeAdapter):
    """Adapter for the Bitbank public candlestick endpoint (spot only).

    Bitbank does not take a time range. Each request names a whole bucket
    (a UTC day or year, depending on the candle type) derived from the window
    start, and the rows outside the window are trimmed afterwards. Pages are
    ascending.
    """

    _BASE_API_URL: str = "https://public.bitbank.cc"
    _PATH_TEMPLATE: str = "/{pair}/candlestick/{candle_type}/{date}"

    # Not a request parameter; a year of daily candles is the largest page.
    page_limit = 366
    _ERROR_CODES = {
        "10000": ErrorKind.SYMBOL,
        "10009": ErrorKind.RATE_LIMIT,
    }

    @property
    def venue_name(self) -> str:
        """Returns the unique, lowercase identifier for the exchange."""
        return "bitbank"

    def translate_symbol(
        self, symbol: str, market_type: MarketType = MarketType.SPOT
    ) -> str:
        """Converts 'BTC/JPY' to Bitbank's 'btc_jpy' format."""
        base, quote = split_symbol(symbol)
        return f"{base.lower()}_{quote.lower()}"

    def translate_interval(self, interval: Interval) -> str:
        """Returns the candle type (e.g. '4hour') if Bitbank offers it.

        Raises:
            ConfigError: If the candle type is not in the capability table.
        """
        candle_type = str(interval)
        valid = self.valid_intervals(MarketType.SPOT)
        if candle_type not in valid:
            err_msg = (
                f"bitbank does not support the interval '{candle_type}'. "
                f"Valid values: {', '.join(valid)}."
            )
            raise ConfigError(err_msg)
        return candle_type

    @staticmethod
    def bucket_date(start_ms: int, candle_type: str) -> str:
        """Names the day ('YYYYMMDD') or year ('YYYY') bucket holding ``start_ms``."""
        start = ms_to_datetime(start_ms)
        if candle_type in _DAILY_BUCKET_TYPES:
            return start.strftime("%Y%m%d")
        return f"{start.year:04d}"

    def _build_request(
        self,
        venue_symbol: str,
        venue_interval: str,
        window: RequestWindow,
        market_type: MarketType,
    ) -> AdapterRequest:
        path = self._PATH_TEMPLATE.format(
            pair=venue_symbol,
            candle_type=venue_interval,
            date=self.bucket_date(window.start_ms, venue_interval),
        )
        return AdapterRequest(
            url=f"{self._BASE_API_URL}{path}",
            symbol=venue_symbol,
            interval=venue_interval,
            limit=self.page_limit,
            market_type=market_type,
        )

    def _check_error(self, body: Any, request: AdapterRequest) -> None:
        if not isinstance(body, dict) or "success" not in body:
            raise self.translate_error(None, None, request.market_type)
        if body["success"] != 1:
            data = body.get("data")
            code = data.get("code") if isinstance(data, dict) else None
            raise self.translate_error(code, None, request.market_type)

    def _parse_rows(self, body: Any, request: AdapterRequest) -> list[Kline]:
        buckets = self._expect(body["data"]["candlestick"], list, "data.candlestick")
        # Row format: [open, high, low, close, volume, timestamp (ms)]
        return [
            Kline.coerce(c[5], c[0], c[1], c[2], c[3], c[4])
            for c in self._expect(buckets[0]["ohlcv"], list, "candlestick ohlcv")
        ]

    def trim_overfetch(
        self, rows: list[Kline], window: RequestWindow
    ) -> list[Kline]:
        """Drops the rows of the day/year bucket that lie outside the window."""
        return keep_within(rows, window)
