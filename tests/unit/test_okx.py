import httpx
import pytest

from rosoku.adapters import OKXAdapter
from rosoku.errors import (
    ConfigError,
    RateLimitedError,
    RemoteIntervalError,
    RemoteSymbolError,
)
from rosoku.models import Interval, Kline, MarketType, RequestWindow, TermUnit

WINDOW = RequestWindow(1672531200000, 1672617600000)


@pytest.fixture
def adapter() -> OKXAdapter:
    return OKXAdapter()


def test_translate_symbol(adapter: OKXAdapter) -> None:
    """Tests that perpetual symbols get the swap suffix."""
    assert adapter.translate_symbol("BTC/USDT") == "BTC-USDT"
    assert adapter.translate_symbol("BTC/USDT", MarketType.PERPETUAL) == "BTC-USDT-SWAP"


def test_translate_interval(adapter: OKXAdapter) -> None:
    """Tests that intervals map to OKX's bar codes."""
    assert adapter.translate_interval(Interval(15, TermUnit.MIN)) == "15m"
    assert adapter.translate_interval(Interval(4, TermUnit.HOUR)) == "4H"
    with pytest.raises(ConfigError):
        adapter.translate_interval(Interval(1, TermUnit.DAY))


def test_prepare_uses_exclusive_bounds(adapter: OKXAdapter) -> None:
    """'after' and 'before' are exclusive, so they sit one ms outside the window."""
    request = adapter.prepare(
        "ETH/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    assert request.url == "https://www.okx.com/api/v5/market/history-candles"
    assert request.params == {
        "instId": "ETH-USDT",
        "bar": "1H",
        "after": "1672617600001",
        "before": "1672531199999",
        "limit": "100",
    }


def test_parse_response(adapter: OKXAdapter) -> None:
    """Tests that string rows become klines in the order sent."""
    request = adapter.prepare(
        "BTC/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    body = {
        "code": "0",
        "msg": "",
        "data": [
            ["1672534800000", "16600", "16610", "16590", "16605", "3.2", "53000", "53000", "1"],
            ["1672531200000", "16590", "16600", "16580", "16600", "2.1", "34800", "34800", "1"],
        ],
    }
    assert adapter.parse_response(body, request) == [
        Kline(1672534800000, 16600.0, 16610.0, 16590.0, 16605.0, 3.2),
        Kline(1672531200000, 16590.0, 16600.0, 16580.0, 16600.0, 2.1),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "body", "expected"),
    [
        (200, {"code": "51001", "msg": "Instrument ID does not exist", "data": []}, RemoteSymbolError),
        (200, {"code": "51000", "msg": "Parameter bar error", "data": []}, RemoteIntervalError),
        (200, {"code": "51000", "msg": "Parameter instId error", "data": []}, RemoteSymbolError),
        (429, {"code": "50011", "msg": "Too Many Requests", "data": []}, RateLimitedError),
    ],
)
async def test_fetch_translates_errors(
    adapter: OKXAdapter, status: int, body: dict, expected: type[Exception]
) -> None:
    """Tests that OKX error codes map to canonical errors."""
    request = adapter.prepare(
        "BTC/USDT", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    transport = httpx.MockTransport(lambda request: httpx.Response(status, json=body))
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(expected):
            await adapter.fetch(client, request)
