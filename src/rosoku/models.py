"""Core value types shared by the adapters and the retrieval engine."""

import dataclasses
import enum
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Self

from rosoku.errors import ConfigError, ResponseShapeFault

# --- Constants ---
MS_PER_SECOND = 1_000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

_INTERVAL_PATTERN = re.compile(r"^\s*(\d+)\s*,?\s*([a-z]+)\s*$")


class Exchange(enum.StrEnum):
    """Exchanges with a retrieval adapter."""

    BINANCE = "binance"
    BITBANK = "bitbank"
    BITMEX = "bitmex"
    BYBIT = "bybit"
    KRAKEN = "kraken"
    OKX = "okx"


class MarketType(enum.StrEnum):
    """Market types an exchange may offer candlesticks for."""

    SPOT = "spot"
    PERPETUAL = "perpetual"


class TermUnit(enum.StrEnum):
    """Units accepted in the canonical interval notation."""

    SEC = "sec"
    MIN = "min"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# A month steps by its shortest length, 28 days.
_UNIT_MS: dict[TermUnit, int] = {
    TermUnit.SEC: MS_PER_SECOND,
    TermUnit.MIN: MS_PER_MINUTE,
    TermUnit.HOUR: MS_PER_HOUR,
    TermUnit.DAY: MS_PER_DAY,
    TermUnit.WEEK: 7 * MS_PER_DAY,
    TermUnit.MONTH: 28 * MS_PER_DAY,
}


@dataclass(frozen=True)
class Interval:
    """A candlestick interval in canonical notation, e.g. ``15min``."""

    count: int
    unit: TermUnit

    def __post_init__(self) -> None:
        if not isinstance(self.count, int) or self.count < 1:
            err_msg = f"Interval count must be a positive integer, got {self.count!r}."
            raise ConfigError(err_msg)
        if not isinstance(self.unit, TermUnit):
            try:
                object.__setattr__(self, "unit", TermUnit(self.unit))
            except ValueError as e:
                err_msg = f"Unknown interval unit: {self.unit!r}."
                raise ConfigError(err_msg) from e

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parses ``<count><unit>`` or ``<count>,<unit>`` (e.g. ``1hour``, ``15,min``).

        Raises:
            ConfigError: If the text is not a valid canonical interval.
        """
        match = _INTERVAL_PATTERN.match(text.lower())
        if match is None:
            err_msg = (
                f"Invalid interval '{text}': expected <count><unit> with unit in "
                f"{[u.value for u in TermUnit]}."
            )
            raise ConfigError(err_msg)
        try:
            unit = TermUnit(match.group(2))
        except ValueError as e:
            err_msg = f"Unknown interval unit: '{match.group(2)}'."
            raise ConfigError(err_msg) from e
        return cls(int(match.group(1)), unit)

    @property
    def duration_ms(self) -> int:
        """The pagination step of one interval, in milliseconds."""
        return self.count * _UNIT_MS[self.unit]

    def __str__(self) -> str:
        return f"{self.count}{self.unit.value}"


@dataclass(frozen=True)
class Kline:
    """One normalized OHLCV candlestick."""

    timestamp_ms: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def coerce(
        cls,
        timestamp_ms: Any,
        open_: Any,
        high: Any,
        low: Any,
        close: Any,
        volume: Any,
    ) -> Self:
        """Builds a Kline from numbers or numeric strings as exchanges deliver them.

        Raises:
            ResponseShapeFault: If any field is missing or not numeric.
        """
        values = (open_, high, low, close, volume)
        try:
            ts = _to_int(timestamp_ms)
            o, h, lo, c, v = (_to_float(x) for x in values)
        except (TypeError, ValueError) as e:
            err_msg = f"Unexpected kline values {[timestamp_ms, *values]!r}: {e}"
            raise ResponseShapeFault(err_msg) from e
        return cls(ts, o, h, lo, c, v)


def _to_int(value: Any) -> int:
    """Coerces an integral number or numeric string, rejecting bools and fractions."""
    if isinstance(value, bool):
        err_msg = "boolean is not a timestamp"
        raise TypeError(err_msg)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    err_msg = f"{value!r} is not an integral timestamp"
    raise TypeError(err_msg)


def _to_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        err_msg = f"{value!r} is not a number"
        raise TypeError(err_msg)
    return float(value)


@dataclass(frozen=True)
class RequestWindow:
    """An inclusive ``[start_ms, end_ms]`` range owned by one retrieval call."""

    start_ms: int
    end_ms: int

    def __post_init__(self) -> None:
        if self.start_ms > self.end_ms:
            err_msg = (
                f"Window start ({self.start_ms}) is after its end ({self.end_ms})."
            )
            raise ConfigError(err_msg)

    def widened(self, margin_ms: int = 1) -> "RequestWindow":
        """Returns the window grown by ``margin_ms`` on each side."""
        return RequestWindow(self.start_ms - margin_ms, self.end_ms + margin_ms)

    def with_start(self, start_ms: int) -> "RequestWindow":
        return dataclasses.replace(self, start_ms=start_ms)

    def with_end(self, end_ms: int) -> "RequestWindow":
        return dataclasses.replace(self, end_ms=end_ms)

    def contains(self, timestamp_ms: int) -> bool:
        return self.start_ms <= timestamp_ms <= self.end_ms


@dataclass(frozen=True)
class AdapterRequest:
    """The exchange-specific parameters of one page request."""

    url: str
    symbol: str
    interval: str
    limit: int
    market_type: MarketType
    params: Mapping[str, str] = field(default_factory=dict)
