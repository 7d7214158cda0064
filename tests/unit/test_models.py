import pytest

from rosoku.errors import ConfigError, ResponseShapeFault
from rosoku.models import (
    MS_PER_DAY,
    MS_PER_MINUTE,
    Interval,
    Kline,
    RequestWindow,
    TermUnit,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("15min", Interval(15, TermUnit.MIN)),
        ("1hour", Interval(1, TermUnit.HOUR)),
        ("1,month", Interval(1, TermUnit.MONTH)),
        (" 2 Day ", Interval(2, TermUnit.DAY)),
    ],
)
def test_interval_parse(text: str, expected: Interval) -> None:
    """Tests that interval text parses into count and unit."""
    assert Interval.parse(text) == expected


@pytest.mark.parametrize("text", ["min", "15", "15minutes", "0min", "-1hour", ""])
def test_interval_parse_rejects_malformed_input(text: str) -> None:
    """Tests that malformed interval text raises a config error."""
    with pytest.raises(ConfigError):
        Interval.parse(text)


def test_interval_duration_and_str() -> None:
    """A month steps by 28 days; everything else by its exact length."""
    assert Interval(15, TermUnit.MIN).duration_ms == 15 * MS_PER_MINUTE
    assert Interval(1, TermUnit.WEEK).duration_ms == 7 * MS_PER_DAY
    assert Interval(1, TermUnit.MONTH).duration_ms == 28 * MS_PER_DAY
    assert str(Interval(4, TermUnit.HOUR)) == "4hour"


def test_interval_coerces_unit_string() -> None:
    """Tests that unit strings are coerced and unknown ones rejected."""
    assert Interval(1, "min").unit is TermUnit.MIN  # type: ignore[arg-type]
    with pytest.raises(ConfigError):
        Interval(1, "fortnight")  # type: ignore[arg-type]


def test_kline_coerce_from_strings() -> None:
    """Tests that string fields are converted to numbers."""
    kline = Kline.coerce("1672531200000", "1.5", "2", "1", "1.75", "10.25")
    assert kline == Kline(1672531200000, 1.5, 2.0, 1.0, 1.75, 10.25)
    assert isinstance(kline.timestamp_ms, int)


@pytest.mark.parametrize(
    "row",
    [
        (True, 1, 1, 1, 1, 1),
        (1.5, 1, 1, 1, 1, 1),
        (1000, "abc", 1, 1, 1, 1),
        (1000, 1, 1, 1, 1, None),
    ],
)
def test_kline_coerce_rejects_non_numeric_values(row: tuple) -> None:
    """Tests that non-numeric fields are a response shape fault."""
    with pytest.raises(ResponseShapeFault):
        Kline.coerce(*row)


def test_request_window_validation_and_helpers() -> None:
    """Tests that windows validate their bounds and derive new windows."""
    window = RequestWindow(1_000, 2_000)
    assert window.widened() == RequestWindow(999, 2_001)
    assert window.with_start(1_500) == RequestWindow(1_500, 2_000)
    assert window.with_end(1_500) == RequestWindow(1_000, 1_500)
    assert window.contains(1_000)
    assert window.contains(2_000)
    assert not window.contains(2_001)

    # A single-instant window is valid.
    assert RequestWindow(5, 5).start_ms == 5
    with pytest.raises(ConfigError):
        RequestWindow(2_001, 2_000)
