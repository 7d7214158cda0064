r"""The ``rosoku`` command: retrieve historical candlesticks and print them.

Usage:
    rosoku -x binance -s BTC/USDT -i 15min \
        --term-start 2024-01-01T00:00:00Z --term-end 2024-01-02T00:00:00Z

    rosoku -x okx -t perpetual -s ETH/USDT -i 1hour --past --range 7day -f csv
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

import httpx
from loguru import logger

from rosoku import __version__
from rosoku.config import Settings, load_config
from rosoku.engine import retrieve_klines
from rosoku.errors import ConfigError, RosokuError
from rosoku.logging_config import setup_logging
from rosoku.models import Exchange, Interval, Kline, MarketType, RequestWindow
from rosoku.output import Order, OutputFormat, parse_picks, render, sort_klines
from rosoku.utils.time import datetime_to_ms, now_ms, parse_datetime

EXIT_OK = 0
EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rosoku",
        description="Retrieve historical OHLCV candlesticks from crypto exchanges.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-x",
        "--exchange",
        choices=[e.value for e in Exchange],
        default=settings.retrieval.default_exchange,
        help="Name of the exchange (default: %(default)s).",
    )
    parser.add_argument(
        "-t",
        "--type",
        dest="market_type",
        choices=[m.value for m in MarketType],
        default=settings.retrieval.default_market_type,
        help="Market type (default: %(default)s).",
    )
    parser.add_argument(
        "-s",
        "--symbol",
        default="BTC/USDT",
        help="Symbol pair in upper case with '/' between currencies.",
    )
    parser.add_argument(
        "-i",
        "--interval",
        default="15min",
        help="Candlestick interval as <count><unit>, unit one of "
        "sec/min/hour/day/week/month (default: %(default)s).",
    )

    term = parser.add_argument_group("term", "Absolute period of the data.")
    term.add_argument("--term-start", help="Start, e.g. 2024-01-01T00:00:00Z.")
    term.add_argument("--term-end", help="End, e.g. 2024-01-02T00:00:00+09:00.")

    past = parser.add_argument_group("past", "Latest data for a relative period.")
    past.add_argument(
        "--past",
        action="store_true",
        help="Retrieve data up to now (cannot be used with --term-start/--term-end).",
    )
    past.add_argument(
        "--range",
        dest="range_",
        help="Length of the period for --past, e.g. 12hour or 7day "
        "(a month counts as 28 days).",
    )

    parser.add_argument(
        "-p",
        "--pick",
        default="unixtime,o,h,l,c,v",
        help="Fields to output, in order (default: %(default)s).",
    )
    parser.add_argument(
        "--order",
        choices=[o.value for o in Order],
        default=Order.ASC.value,
        help="Chronological order of the output (default: %(default)s).",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="output_format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.RAW.value,
        help="Output format (default: %(default)s).",
    )
    parser.add_argument(
        "--log-level",
        default=settings.general.log_level_console,
        help="Console log level (default: %(default)s).",
    )
    parser.add_argument(
        "--widen-window",
        action=argparse.BooleanOptionalAction,
        default=settings.retrieval.widen_window,
        help="Grow each page request by 1 ms on both sides.",
    )
    return parser


def resolve_window(args: argparse.Namespace, current_ms: int) -> RequestWindow:
    """Builds the requested window from either --past/--range or --term-start/--term-end.

    Raises:
        ConfigError: If the options are missing, mixed or unparsable.
    """
    if args.past:
        if args.term_start or args.term_end:
            err_msg = "--past cannot be used with --term-start/--term-end."
            raise ConfigError(err_msg)
        if not args.range_:
            err_msg = "--past requires --range."
            raise ConfigError(err_msg)
        span_ms = Interval.parse(args.range_).duration_ms
        return RequestWindow(current_ms - span_ms, current_ms)

    if args.range_:
        err_msg = "--range can only be used with --past."
        raise ConfigError(err_msg)
    if not (args.term_start and args.term_end):
        err_msg = "Specify both --term-start and --term-end, or --past with --range."
        raise ConfigError(err_msg)
    try:
        start_ms = datetime_to_ms(parse_datetime(args.term_start))
        end_ms = datetime_to_ms(parse_datetime(args.term_end))
    except ValueError as e:
        raise ConfigError(str(e)) from e
    return RequestWindow(start_ms, end_ms)


async def _retrieve(
    args: argparse.Namespace, window: RequestWindow, settings: Settings
) -> list[Kline]:
    async with httpx.AsyncClient(
        http2=settings.http.http2,
        timeout=settings.http.timeout_seconds,
        follow_redirects=settings.http.follow_redirects,
    ) as client:
        return await retrieve_klines(
            args.exchange,
            client,
            args.symbol,
            args.interval,
            window,
            args.market_type,
            widen_window=args.widen_window,
        )


def _preparse_config(argv: Sequence[str] | None) -> Settings:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=Path)
    known, _ = pre.parse_known_args(argv)
    if known.config is not None:
        return load_config(known.config)
    return Settings.get_instance()


def main(argv: Sequence[str] | None = None) -> int:
    """Runs the command line interface.

    Returns:
        0 on success, 2 for invalid input, 1 for remote or transport failures.
    """
    # Until the log level is known only warnings reach the console.
    setup_logging(console_level="WARNING")
    settings = _preparse_config(argv)
    parser = build_parser(settings)
    parser.add_argument("--config", type=Path, help="Path to a config.toml file.")
    args = parser.parse_args(argv)

    setup_logging(
        console_level=args.log_level,
        file_level=settings.general.log_level_file,
        log_dir=(
            Path(settings.general.log_directory).expanduser()
            if settings.general.file_logging
            else None
        ),
    )

    try:
        window = resolve_window(args, now_ms())
        picks = parse_picks(args.pick)
        klines = asyncio.run(_retrieve(args, window, settings))
    except ConfigError as e:
        logger.error(str(e))
        return EXIT_CONFIG_ERROR
    except RosokuError as e:
        logger.error(str(e))
        return EXIT_RUNTIME_ERROR
    except httpx.HTTPError as e:
        logger.error(f"HTTP request failed: {type(e).__name__}: {e}")
        return EXIT_RUNTIME_ERROR

    output = render(
        sort_klines(klines, Order(args.order)),
        picks,
        OutputFormat(args.output_format),
    )
    if output:
        print(output)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
