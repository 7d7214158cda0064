from typing import Any

import httpx
import pytest

from rosoku.adapters import BinanceAdapter
from rosoku.errors import (
    ConfigError,
    RateLimitedError,
    RemoteIntervalError,
    RemoteSymbolError,
    UnrecognizedRemoteFault,
)
from rosoku.models import Interval, Kline, MarketType, RequestWindow, TermUnit

WINDOW = RequestWindow(1672531200000, 1672617600000)


@pytest.fixture
def adapter() -> BinanceAdapter:
    """Provides a fresh Binance adapter."""
    return BinanceAdapter()


def _responder(status: int, body: Any) -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(status, json=body))


def test_translate_symbol(adapter: BinanceAdapter) -> None:
    """Tests that symbols are upper-cased and concatenated."""
    assert adapter.translate_symbol("ETH/BNB") == "ETHBNB"
    assert adapter.translate_symbol("btc/usdt") == "BTCUSDT"
    with pytest.raises(ConfigError):
        adapter.translate_symbol("ETHBNB")
    with pytest.raises(ConfigError):
        adapter.translate_symbol("BTC/USDT/JPY")


@pytest.mark.parametrize(
    ("interval", "expected"),
    [
        (Interval(1, TermUnit.SEC), "1s"),
        (Interval(15, TermUnit.MIN), "15m"),
        (Interval(4, TermUnit.HOUR), "4h"),
        (Interval(3, TermUnit.DAY), "3d"),
        (Interval(1, TermUnit.WEEK), "1w"),
        (Interval(1, TermUnit.MONTH), "1M"),
    ],
)
def test_translate_interval(
    adapter: BinanceAdapter, interval: Interval, expected: str
) -> None:
    """Tests that intervals map to Binance's short codes."""
    assert adapter.translate_interval(interval) == expected


def test_prepare_selects_endpoint_by_market_type(adapter: BinanceAdapter) -> None:
    """Tests that spot and perpetual requests go to different hosts."""
    interval = Interval(15, TermUnit.MIN)
    spot = adapter.prepare("BTC/USDT", interval, WINDOW, MarketType.SPOT)
    perp = adapter.prepare("BTC/USDT", interval, WINDOW, MarketType.PERPETUAL)

    assert spot.url == "https://api.binance.com/api/v3/klines"
    assert perp.url == "https://fapi.binance.com/fapi/v1/klines"
    assert spot.params == {
        "symbol": "BTCUSDT",
        "interval": "15m",
        "startTime": "1672531200000",
        "endTime": "1672617600000",
        "limit": "1000",
    }
    assert spot.limit == 1000


def test_parse_response(adapter: BinanceAdapter) -> None:
    """Tests that array rows become klines with float prices."""
    request = adapter.prepare(
        "BTC/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    body = [
        [
            1672531200000,
            "16541.77000000",
            "16545.70000000",
            "16508.39000000",
            "16529.67000000",
            "4364.83570000",
            1672534799999,
            "72146317.58082230",
            96455,
            "2130.56554000",
            "35218947.19497010",
            "0",
        ],
    ]
    assert adapter.parse_response(body, request) == [
        Kline(1672531200000, 16541.77, 16545.70, 16508.39, 16529.67, 4364.8357)
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "body", "expected"),
    [
        (400, {"code": -1121, "msg": "Invalid symbol."}, RemoteSymbolError),
        (400, {"code": -1120, "msg": "Invalid interval."}, RemoteIntervalError),
        (429, {"code": -1003, "msg": "Too many requests."}, RateLimitedError),
        (418, {"code": -1003, "msg": "Way too many requests."}, RateLimitedError),
        (400, {"code": -1100, "msg": "Illegal characters."}, UnrecognizedRemoteFault),
    ],
)
async def test_fetch_translates_errors(
    adapter: BinanceAdapter, status: int, body: Any, expected: type[Exception]
) -> None:
    """Tests that each native error envelope maps to its canonical error."""
    request = adapter.prepare(
        "BTC/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    async with httpx.AsyncClient(transport=_responder(status, body)) as client:
        with pytest.raises(expected):
            await adapter.fetch(client, request)


@pytest.mark.asyncio
async def test_interval_error_lists_valid_values(adapter: BinanceAdapter) -> None:
    """Tests that an interval rejection names the intervals on offer."""
    request = adapter.prepare(
        "BTC/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.PERPETUAL
    )
    transport = _responder(400, {"code": -1120, "msg": "Invalid interval."})
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(RemoteIntervalError) as exc_info:
            await adapter.fetch(client, request)

    assert "1min" in exc_info.value.valid_intervals
    assert "1sec" not in exc_info.value.valid_intervals
    assert "Valid values: 1min" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unrecognized_error_keeps_remote_details(adapter: BinanceAdapter) -> None:
    """Tests that an unknown code keeps the native code and message."""
    request = adapter.prepare(
        "BTC/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    transport = _responder(400, {"code": -1100, "msg": "Illegal characters."})
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(UnrecognizedRemoteFault) as exc_info:
            await adapter.fetch(client, request)

    assert exc_info.value.code == -1100
    assert exc_info.value.remote_message == "Illegal characters."
    assert exc_info.value.exchange == "binance"


@pytest.mark.asyncio
async def test_non_json_body_is_unrecognized(adapter: BinanceAdapter) -> None:
    """Tests that a body that is not JSON is an unrecognized fault."""
    request = adapter.prepare(
        "BTC/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    transport = httpx.MockTransport(
        lambda request: httpx.Response(502, text="<html>Bad Gateway</html>")
    )
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(UnrecognizedRemoteFault) as exc_info:
            await adapter.fetch(client, request)

    assert exc_info.value.code == 502
