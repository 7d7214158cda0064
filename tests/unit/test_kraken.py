import httpx
import pytest

from rosoku.adapters import KrakenAdapter
from rosoku.errors import (
    ConfigError,
    RateLimitedError,
    RemoteIntervalError,
    RemoteSymbolError,
    UnrecognizedRemoteFault,
)
from rosoku.models import Interval, Kline, MarketType, RequestWindow, TermUnit

HOUR_MS = 3_600_000
WINDOW = RequestWindow(1688169600000, 1688169600000 + HOUR_MS)


@pytest.fixture
def adapter() -> KrakenAdapter:
    return KrakenAdapter()


def test_translate_symbol_applies_aliases(adapter: KrakenAdapter) -> None:
    """Tests that Kraken's legacy asset codes are substituted."""
    assert adapter.translate_symbol("BTC/USD") == "XBTUSD"
    assert adapter.translate_symbol("DOGE/EUR") == "XDGEUR"
    assert adapter.translate_symbol("ETH/USD") == "ETHUSD"


@pytest.mark.parametrize(
    ("interval", "expected"),
    [
        (Interval(1, TermUnit.MIN), "1"),
        (Interval(15, TermUnit.MIN), "15"),
        (Interval(4, TermUnit.HOUR), "240"),
        (Interval(1, TermUnit.DAY), "1440"),
        (Interval(1, TermUnit.WEEK), "10080"),
    ],
)
def test_translate_interval(
    adapter: KrakenAdapter, interval: Interval, expected: str
) -> None:
    """Tests that intervals map to Kraken's minute counts."""
    assert adapter.translate_interval(interval) == expected


@pytest.mark.parametrize(
    "interval",
    [Interval(1, TermUnit.SEC), Interval(1, TermUnit.MONTH), Interval(2, TermUnit.DAY)],
)
def test_translate_interval_rejects_unsupported(
    adapter: KrakenAdapter, interval: Interval
) -> None:
    """Tests that unsupported units and multi-day intervals are rejected."""
    with pytest.raises(ConfigError):
        adapter.translate_interval(interval)


def test_prepare_uses_exclusive_since_in_seconds(adapter: KrakenAdapter) -> None:
    """Tests that 'since' sits one second before the window start."""
    request = adapter.prepare(
        "BTC/USD", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    assert request.params == {"pair": "XBTUSD", "interval": "60", "since": "1688169599"}


def test_spot_only(adapter: KrakenAdapter) -> None:
    """Tests that perpetual markets are refused before any request."""
    with pytest.raises(ConfigError):
        adapter.prepare(
            "BTC/USD", Interval(1, TermUnit.HOUR), WINDOW, MarketType.PERPETUAL
        )


def test_parse_response_reads_canonical_pair_key(adapter: KrakenAdapter) -> None:
    """Kraken answers under 'XXBTZUSD' for a request of 'XBTUSD'."""
    request = adapter.prepare(
        "BTC/USD", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    body = {
        "error": [],
        "result": {
            "XXBTZUSD": [
                [1688169600, "30000.0", "30100.0", "29900.0", "30050.0", "30020.0", "12.5", 100],
                [1688173200, "30050.0", "30200.0", "30000.0", "30150.0", "30110.0", "8.25", 80],
            ],
            "last": 1688173200,
        },
    }
    assert adapter.parse_response(body, request) == [
        Kline(1688169600000, 30000.0, 30100.0, 29900.0, 30050.0, 12.5),
        Kline(1688173200000, 30050.0, 30200.0, 30000.0, 30150.0, 8.25),
    ]


def test_trim_overfetch_drops_rows_past_window(adapter: KrakenAdapter) -> None:
    """Tests that rows after the window end are dropped."""
    rows = [Kline(WINDOW.start_ms + i * HOUR_MS, 1, 1, 1, 1, 1) for i in range(4)]
    assert adapter.trim_overfetch(rows, WINDOW) == rows[:2]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("errors", "expected"),
    [
        (["EQuery:Unknown asset pair"], RemoteSymbolError),
        (["EAPI:Rate limit exceeded"], RateLimitedError),
        (["EGeneral:Invalid arguments"], RemoteIntervalError),
        (["EService:Unavailable"], UnrecognizedRemoteFault),
    ],
)
async def test_fetch_translates_errors(
    adapter: KrakenAdapter, errors: list[str], expected: type[Exception]
) -> None:
    """Tests that Kraken error strings map to canonical errors."""
    request = adapter.prepare(
        "BTC/USD", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    body = {"error": errors}
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(expected):
            await adapter.fetch(client, request)


@pytest.mark.asyncio
async def test_fetch_passes_warnings_through(adapter: KrakenAdapter) -> None:
    """Tests that 'W' entries next to a valid result do not fail the request."""
    request = adapter.prepare(
        "BTC/USD", Interval(1, TermUnit.HOUR), WINDOW, MarketType.SPOT
    )
    body = {
        "error": ["WGeneral:Deprecated"],
        "result": {
            "XXBTZUSD": [
                [1688169600, "30000.0", "30100.0", "29900.0", "30050.0", "30020.0", "12.5", 100],
            ],
            "last": 1688169600,
        },
    }
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    async with httpx.AsyncClient(transport=transport) as client:
        assert await adapter.fetch(client, request) == body
    assert adapter.parse_response(body, request) == [
        Kline(1688169600000, 30000.0, 30100.0, 29900.0, 30050.0, 12.5)
    ]
