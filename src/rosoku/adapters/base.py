import abc
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

import httpx
from loguru import logger

from rosoku import capabilities
from rosoku.errors import (
    ConfigError,
    ErrorKind,
    RateLimitedError,
    RemoteIntervalError,
    RemoteSymbolError,
    ResponseShapeFault,
    RosokuError,
    UnrecognizedRemoteFault,
    UnsupportedMarketTypeError,
)
from rosoku.models import (
    AdapterRequest,
    Interval,
    Kline,
    MarketType,
    RequestWindow,
)

# --- Constants ---
SYMBOL_SEPARATOR = "/"
MAX_LOGGED_BODY_CHARS = 200


def split_symbol(symbol: str) -> tuple[str, str]:
    """Splits a canonical 'BASE/QUOTE' symbol into its upper-cased parts.

    Raises:
        ConfigError: If the symbol does not contain exactly one separator with
            a currency on each side.
    """
    parts = symbol.strip().split(SYMBOL_SEPARATOR)
    if len(parts) != 2 or not all(p.strip() for p in parts):
        err_msg = (
            f"The symbol pair provided is incorrectly formatted: '{symbol}'. "
            "Use 'BASE/QUOTE', e.g. 'BTC/USDT'."
        )
        raise ConfigError(err_msg)
    return parts[0].strip().upper(), parts[1].strip().upper()


def keep_within(rows: Sequence[Kline], window: RequestWindow) -> list[Kline]:
    """Drops rows whose timestamp falls outside the inclusive window."""
    return [row for row in rows if window.contains(row.timestamp_ms)]


class ExchangeAdapter(abc.ABC):
    """An abstract base class for all exchange adapters.

    An adapter is a stateless translator between the canonical request
    vocabulary (``BASE/QUOTE`` symbols, ``<count><unit>`` intervals, inclusive
    millisecond windows) and one exchange's REST candlestick endpoint. The
    retrieval engine drives it page by page:

        request = adapter.prepare(symbol, interval, window, market_type)
        body = await adapter.fetch(client, request)
        rows = adapter.trim_overfetch(adapter.parse_response(body, request), window)

    Subclasses declare their error tables in ``_ERROR_CODES`` (native code to
    ``ErrorKind``) and ``_MESSAGE_HINTS`` (message substring to ``ErrorKind``,
    consulted only when the code is not mapped) and implement the
    exchange-specific hooks.
    """

    page_limit: ClassVar[int]
    _ERROR_CODES: ClassVar[Mapping[str, ErrorKind]] = {}
    _MESSAGE_HINTS: ClassVar[Sequence[tuple[str, ErrorKind]]] = ()
    _RATE_LIMIT_STATUSES: ClassVar[frozenset[int]] = frozenset({429})

    @property
    @abc.abstractmethod
    def venue_name(self) -> str:
        """A unique, lowercase identifier for the exchange (e.g., 'binance')."""
        raise NotImplementedError

    # --- Vocabulary translation ---

    @abc.abstractmethod
    def translate_symbol(
        self, symbol: str, market_type: MarketType = MarketType.SPOT
    ) -> str:
        """Converts a canonical 'BASE/QUOTE' symbol to the exchange's format.

        Raises:
            ConfigError: If the symbol is malformed.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def translate_interval(self, interval: Interval) -> str:
        """Converts a canonical interval to the exchange's interval token.

        Raises:
            ConfigError: If the exchange cannot express the interval.
        """
        raise NotImplementedError

    def valid_intervals(self, market_type: MarketType) -> list[str]:
        """The canonical interval tokens this exchange accepts for a market type."""
        return capabilities.valid_intervals(self.venue_name, market_type)

    # --- Request lifecycle ---

    def prepare(
        self,
        symbol: str,
        interval: Interval,
        window: RequestWindow,
        market_type: MarketType,
    ) -> AdapterRequest:
        """Builds the parameters of one page request for the given window.

        Raises:
            UnsupportedMarketTypeError: If the exchange lacks the market type.
            ConfigError: If the symbol or interval cannot be translated.
        """
        capabilities.ensure_market_type(self.venue_name, market_type)
        return self._build_request(
            self.translate_symbol(symbol, market_type),
            self.translate_interval(interval),
            window,
            market_type,
        )

    @abc.abstractmethod
    def _build_request(
        self,
        venue_symbol: str,
        venue_interval: str,
        window: RequestWindow,
        market_type: MarketType,
    ) -> AdapterRequest:
        """Shapes the endpoint URL and query parameters for one page."""
        raise NotImplementedError

    async def fetch(self, client: httpx.AsyncClient, request: AdapterRequest) -> Any:
        """Performs exactly one GET request and returns the decoded JSON body.

        Args:
            client: The HTTP transport shared by the caller.
            request: Parameters built by `prepare`.

        Returns:
            The decoded response body, guaranteed not to be an error envelope.

        Raises:
            RemoteError: A canonical subclass if the exchange reported an error.
        """
        logger.debug(
            f"[{self.venue_name}] GET {request.url} params={dict(request.params)}"
        )
        response = await client.get(request.url, params=dict(request.params))

        if response.status_code in self._RATE_LIMIT_STATUSES:
            raise RateLimitedError(self.venue_name)

        try:
            body = response.json()
        except ValueError as e:
            raise UnrecognizedRemoteFault(
                self.venue_name,
                response.status_code,
                response.text[:MAX_LOGGED_BODY_CHARS],
            ) from e

        self._check_error(body, request)

        if response.is_error:
            raise UnrecognizedRemoteFault(
                self.venue_name,
                response.status_code,
                response.text[:MAX_LOGGED_BODY_CHARS],
            )
        return body

    @abc.abstractmethod
    def _check_error(self, body: Any, request: AdapterRequest) -> None:
        """Raises the translated error if ``body`` is the exchange's error envelope."""
        raise NotImplementedError

    def parse_response(self, body: Any, request: AdapterRequest) -> list[Kline]:
        """Extracts the candlesticks of one page in the order the exchange sent them.

        Raises:
            ResponseShapeFault: If the body does not have the expected structure.
        """
        try:
            return self._parse_rows(body, request)
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            err_msg = (
                f"[{self.venue_name}] Unexpected response shape "
                f"({type(e).__name__}: {e})."
            )
            raise ResponseShapeFault(err_msg) from e

    @abc.abstractmethod
    def _parse_rows(self, body: Any, request: AdapterRequest) -> list[Kline]:
        raise NotImplementedError

    def _expect(self, value: Any, expected: type, what: str) -> Any:
        """Returns ``value`` if it is an instance of ``expected``, else a shape fault."""
        if not isinstance(value, expected):
            err_msg = (
                f"[{self.venue_name}] Expected {what} to be a "
                f"{expected.__name__}, got {type(value).__name__}."
            )
            raise ResponseShapeFault(err_msg)
        return value

    def trim_overfetch(
        self, rows: list[Kline], window: RequestWindow
    ) -> list[Kline]:
        """Discards rows outside the window. Most exchanges honour the range exactly."""
        return rows

    # --- Error translation ---

    def translate_error(
        self,
        code: str | int | None,
        message: str | None,
        market_type: MarketType,
    ) -> RosokuError:
        """Maps a native error code and message to a canonical error.

        The code table is consulted first; an unmapped code falls back to the
        message hints, and anything still unknown becomes an
        UnrecognizedRemoteFault carrying the remote code and message.
        """
        kind = self._ERROR_CODES.get(str(code)) if code is not None else None
        if kind is None and message:
            kind = next(
                (k for needle, k in self._MESSAGE_HINTS if needle in message), None
            )
        if kind is None:
            logger.warning(
                f"[{self.venue_name}] Unrecognized error code={code!r} "
                f"message={message!r}"
            )
            return UnrecognizedRemoteFault(self.venue_name, code, message)
        return self._error_for_kind(kind, market_type)

    def _error_for_kind(self, kind: ErrorKind, market_type: MarketType) -> RosokuError:
        if kind is ErrorKind.SYMBOL:
            return RemoteSymbolError(self.venue_name)
        if kind is ErrorKind.INTERVAL:
            return RemoteIntervalError(
                self.venue_name, self.valid_intervals(market_type)
            )
        if kind is ErrorKind.RATE_LIMIT:
            return RateLimitedError(self.venue_name)
        return UnsupportedMarketTypeError(self.venue_name, str(market_type))

    def _unsupported_interval(self, interval: Interval, reason: str) -> ConfigError:
        """Builds the ConfigError for an interval this exchange cannot express."""
        return ConfigError(
            f"{self.venue_name} does not support the interval '{interval}': {reason}"
        )
