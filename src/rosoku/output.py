"""Final presentation of retrieved klines: ordering, field selection and text formats."""

import csv
import enum
import io
import json
from collections.abc import Iterable, Sequence

from rosoku.errors import ConfigError
from rosoku.models import Kline


class Order(enum.StrEnum):
    ASC = "asc"
    DESC = "desc"


class OutputFormat(enum.StrEnum):
    RAW = "raw"
    CSV = "csv"
    TSV = "tsv"
    JSON = "json"


class Pick(enum.StrEnum):
    """A Kline field selectable for output."""

    T = "t"
    O = "o"  # noqa: E741
    H = "h"
    L = "l"
    C = "c"
    V = "v"

    @property
    def attribute(self) -> str:
        return _PICK_ATTRIBUTES[self]

    @property
    def label(self) -> str:
        return "unixtime" if self is Pick.T else self.attribute


_PICK_ATTRIBUTES: dict[Pick, str] = {
    Pick.T: "timestamp_ms",
    Pick.O: "open",
    Pick.H: "high",
    Pick.L: "low",
    Pick.C: "close",
    Pick.V: "volume",
}

DEFAULT_PICKS: tuple[Pick, ...] = tuple(Pick)


def parse_picks(text: str) -> list[Pick]:
    """Parses a comma-separated field list such as 'unixtime,o,h,l,c,v'.

    Fields are kept in the order given. Each may be a letter or its full name
    ('open', 'volume', ...); 'unixtime' selects the timestamp.

    Raises:
        ConfigError: If a field is unknown or the list is empty.
    """
    aliases = {p.value: p for p in Pick}
    aliases |= {p.attribute: p for p in Pick}
    aliases |= {"unixtime": Pick.T, "timestamp": Pick.T}

    picks: list[Pick] = []
    for token in (t.strip().lower() for t in text.split(",")):
        if not token:
            continue
        if token not in aliases:
            err_msg = f"Unknown field '{token}'. Choose from: unixtime, o, h, l, c, v."
            raise ConfigError(err_msg)
        picks.append(aliases[token])
    if not picks:
        err_msg = "Select at least one field."
        raise ConfigError(err_msg)
    return picks


def sort_klines(klines: Iterable[Kline], order: Order = Order.ASC) -> list[Kline]:
    """Sorts klines chronologically; the engine returns pages unordered."""
    return sorted(
        klines, key=lambda k: k.timestamp_ms, reverse=order == Order.DESC
    )


def _project(kline: Kline, picks: Sequence[Pick]) -> list[int | float]:
    return [getattr(kline, p.attribute) for p in picks]


def render(
    klines: Sequence[Kline],
    picks: Sequence[Pick] = DEFAULT_PICKS,
    fmt: OutputFormat = OutputFormat.RAW,
) -> str:
    """Formats klines as text.

    - raw: one JSON array of the selected values per line.
    - csv / tsv: a header row of field names followed by one row per kline.
    - json: an array of objects keyed by field name.
    """
    if fmt == OutputFormat.JSON:
        return json.dumps(
            [
                {p.label: value for p, value in zip(picks, _project(k, picks), strict=True)}
                for k in klines
            ]
        )

    if fmt == OutputFormat.RAW:
        return "\n".join(json.dumps(_project(k, picks)) for k in klines)

    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter="\t" if fmt == OutputFormat.TSV else ",",
        lineterminator="\n",
    )
    writer.writerow([p.label for p in picks])
    writer.writerows(_project(k, picks) for k in klines)
    return buffer.getvalue().rstrip("\n")
