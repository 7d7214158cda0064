"""The pagination loop that drives one adapter across a whole time window.

Exchanges differ in page size, in whether they page oldest-first or
newest-first, and in how their range bounds behave. The engine does not need
to know any of that: it requests the current window, looks at the order of
the rows it got back, and moves the boundary on the side it came from just
past the last row. A window therefore shrinks on every iteration, which bounds
the loop by ``window size / page size`` requests plus one.

The boundary is computed from the rows as received, before they are trimmed
to the window. An exchange that answers with a whole calendar bucket moves
the window to its next bucket even when the current one holds few rows
inside the window.

Retrieval is all-or-nothing: any error from any step propagates immediately
and discards the pages gathered so far.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import httpx
from loguru import logger

from rosoku.adapters import get_adapter
from rosoku.adapters.base import ExchangeAdapter
from rosoku.errors import ConfigError
from rosoku.models import Exchange, Interval, Kline, MarketType, RequestWindow
from rosoku.utils.time import ms_to_rfc3339


@dataclass(frozen=True)
class Page:
    """One response: the rows as the exchange sent them and those inside the window."""

    received: list[Kline]
    kept: list[Kline]


def is_ascending(page: Sequence[Kline]) -> bool:
    """Tells whether a page of at least two rows is ordered oldest first.

    The first two rows decide. If they share a timestamp the first and last
    rows decide instead, and a page whose timestamps are all equal counts as
    ascending.
    """
    first, second = page[0].timestamp_ms, page[1].timestamp_ms
    if first != second:
        return first < second
    return first <= page[-1].timestamp_ms


def next_window(
    page: Sequence[Kline], window: RequestWindow, interval_ms: int
) -> RequestWindow | None:
    """Computes the window of the next request, or None when retrieval is done.

    Args:
        page: The rows just received for ``window``, before trimming.
        window: The (unwidened) window the page was requested for.
        interval_ms: The duration of one candlestick.

    Returns:
        ``window`` with its start raised past the newest row (ascending page)
        or its end lowered past the oldest row (descending page). None if the
        page had fewer than two rows, if the new boundary crosses the opposite
        edge of the window, or if it would not shrink the window at all.
    """
    if len(page) < 2:
        return None

    last_ms = page[-1].timestamp_ms
    if is_ascending(page):
        next_start = last_ms + interval_ms
        if next_start > window.end_ms:
            return None
        if next_start <= window.start_ms:
            logger.warning(
                f"Page ending at {last_ms} does not advance past window start "
                f"{window.start_ms}; stopping."
            )
            return None
        return window.with_start(next_start)

    next_end = last_ms - interval_ms
    if next_end < window.start_ms:
        return None
    if next_end >= window.end_ms:
        logger.warning(
            f"Page ending at {last_ms} does not retreat past window end "
            f"{window.end_ms}; stopping."
        )
        return None
    return window.with_end(next_end)


async def fetch_page(
    adapter: ExchangeAdapter,
    client: httpx.AsyncClient,
    symbol: str,
    interval: Interval,
    window: RequestWindow,
    market_type: MarketType,
    *,
    widen_window: bool = False,
) -> Page:
    """Runs one prepare/fetch/parse/trim cycle for ``window``.

    With ``widen_window`` the request covers one extra millisecond on each
    side, for exchanges that reject a range whose start equals its end. Rows
    are always trimmed against the unwidened window.
    """
    request_window = window.widened() if widen_window else window
    request = adapter.prepare(symbol, interval, request_window, market_type)
    body = await adapter.fetch(client, request)
    rows = adapter.parse_response(body, request)
    return Page(received=rows, kept=adapter.trim_overfetch(rows, window))


async def retrieve(
    adapter: ExchangeAdapter,
    client: httpx.AsyncClient,
    symbol: str,
    interval: Interval,
    window: RequestWindow,
    market_type: MarketType,
    *,
    widen_window: bool = False,
) -> list[Kline]:
    """Retrieves every candlestick the exchange has inside ``window``.

    Pages are requested strictly one after another because each request
    depends on the rows of the previous one.

    Args:
        adapter: The exchange adapter to drive.
        client: The HTTP transport; owned by the caller.
        symbol: Canonical 'BASE/QUOTE' symbol.
        interval: Candlestick interval.
        window: Inclusive time range to cover.
        market_type: Spot or perpetual.
        widen_window: Grow each request by one millisecond on both sides.

    Returns:
        The concatenation of all pages. Rows are not globally sorted.

    Raises:
        RosokuError: Any canonical error from the adapter, unretried.
        httpx.HTTPError: Transport failures, unretried.
    """
    venue = adapter.venue_name
    logger.info(
        f"[{venue}] Fetching {interval} {market_type} klines for {symbol} "
        f"from {ms_to_rfc3339(window.start_ms)} to {ms_to_rfc3339(window.end_ms)}"
    )

    klines: list[Kline] = []
    current: RequestWindow | None = window
    requests = 0
    while current is not None:
        page = await fetch_page(
            adapter,
            client,
            symbol,
            interval,
            current,
            market_type,
            widen_window=widen_window,
        )
        requests += 1
        logger.debug(
            f"[{venue}] Page {requests}: kept {len(page.kept)} of "
            f"{len(page.received)} rows for [{current.start_ms}, {current.end_ms}]"
        )
        klines.extend(page.kept)
        current = next_window(page.received, current, interval.duration_ms)

    logger.success(
        f"[{venue}] Fetched {len(klines)} klines for {symbol} in {requests} requests."
    )
    return klines


async def retrieve_klines(
    exchange: Exchange | str,
    client: httpx.AsyncClient,
    symbol: str,
    interval: Interval | str,
    window: RequestWindow,
    market_type: MarketType | str = MarketType.SPOT,
    *,
    widen_window: bool = False,
) -> list[Kline]:
    """Resolves the adapter and canonical arguments by name, then runs `retrieve`.

    Raises:
        ConfigError: If the exchange, interval or market type is unknown.
    """
    if isinstance(interval, str):
        interval = Interval.parse(interval)
    try:
        market_type = MarketType(str(market_type).lower())
    except ValueError as e:
        err_msg = (
            f"Unknown market type '{market_type}'. "
            f"Choose from: {', '.join(m.value for m in MarketType)}."
        )
        raise ConfigError(err_msg) from e
    return await retrieve(
        get_adapter(exchange),
        client,
        symbol,
        interval,
        window,
        market_type,
        widen_window=widen_window,
    )
