"""Canonical error taxonomy.

Every failure a retrieval call can report is one of these classes. Input
problems are ``ConfigError`` and are never worth retrying; everything the
remote side reports derives from ``RemoteError``. Nothing here is retried or
downgraded internally, callers decide on backoff for ``RateLimitedError``.
"""

import enum
from collections.abc import Sequence


class ErrorKind(enum.Enum):
    """Classes a remote error code or message can be translated into."""

    SYMBOL = "symbol"
    INTERVAL = "interval"
    RATE_LIMIT = "rate_limit"
    MARKET_TYPE = "market_type"


class RosokuError(Exception):
    """Base class for all errors raised by rosoku."""


class ConfigError(RosokuError):
    """Malformed symbol, interval or window input. The caller must correct it."""


class UnsupportedMarketTypeError(ConfigError):
    """The exchange does not offer candlesticks for the requested market type."""

    def __init__(self, exchange: str, market_type: str) -> None:
        self.exchange = exchange
        self.market_type = market_type
        super().__init__(
            f"{exchange} does not support the '{market_type}' market type."
        )


class RemoteError(RosokuError):
    """An error condition reported by the exchange."""

    def __init__(self, exchange: str, message: str) -> None:
        self.exchange = exchange
        super().__init__(f"[{exchange}] {message}")


class RemoteSymbolError(RemoteError):
    """The exchange does not list the requested symbol pair."""

    def __init__(self, exchange: str) -> None:
        super().__init__(
            exchange, "The specified symbol pair does not exist in this exchange."
        )


class RemoteIntervalError(RemoteError):
    """The exchange rejected the interval; carries the intervals it accepts."""

    def __init__(self, exchange: str, valid_intervals: Sequence[str]) -> None:
        self.valid_intervals = list(valid_intervals)
        message = "The specified interval of candlestick does not exist in this exchange."
        if self.valid_intervals:
            message += f" Valid values: {', '.join(self.valid_intervals)}."
        super().__init__(exchange, message)


class RateLimitedError(RemoteError):
    """The exchange is throttling requests."""

    def __init__(self, exchange: str) -> None:
        super().__init__(exchange, "Request denied due to exceeding rate limit.")


class UnrecognizedRemoteFault(RemoteError):
    """An error shape or code the adapter does not know; the API may have changed."""

    def __init__(
        self,
        exchange: str,
        code: str | int | None = None,
        remote_message: str | None = None,
    ) -> None:
        self.code = code
        self.remote_message = remote_message
        detail = "Unexpected error has occurred, perhaps the exchange specifications have changed."
        if code is not None or remote_message:
            detail += f" (code={code!r}, message={remote_message!r})"
        super().__init__(exchange, detail)


class ResponseShapeFault(RosokuError):
    """A response body did not match the schema the adapter expects."""
