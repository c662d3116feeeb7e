from __future__ import annotations

from datetime import UTC, datetime, timedelta

import allure
import pytest

from shell_loop.engine.models import ExitKind, UntilError
from shell_loop.parsing import (
    LoopConfigError,
    count_precision,
    parse_duration,
    parse_number,
    parse_until_error,
    parse_until_time,
    split_items,
)

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Option Parsing"),
]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("5s", timedelta(seconds=5)),
        ("1m30s", timedelta(seconds=90)),
        ("1h1m1s1ms1us", timedelta(hours=1, minutes=1, seconds=1, milliseconds=1, microseconds=1)),
        ("2 days", timedelta(days=2)),
        ("0s", timedelta(0)),
        ("250ms", timedelta(milliseconds=250)),
    ],
)
def test_parse_duration_accepts_humantime_forms(value: str, expected: timedelta) -> None:
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "5", "s", "5 parsecs", "1m-3s"])
def test_parse_duration_rejects_malformed_values(value: str) -> None:
    with pytest.raises(LoopConfigError) as excinfo:
        parse_duration(value, option="--every")

    assert "--every" in str(excinfo.value)
    assert excinfo.value.exit_code.kind is ExitKind.MINOR_ERROR


def test_parse_until_time_assumes_utc_for_naive_values() -> None:
    assert parse_until_time("2018-04-20 04:20:00") == datetime(2018, 4, 20, 4, 20, tzinfo=UTC)
    assert parse_until_time("2018-04-20T04:20:00Z") == datetime(2018, 4, 20, 4, 20, tzinfo=UTC)
    assert parse_until_time("2018-04-20T06:20:00+02:00") == datetime(
        2018,
        4,
        20,
        4,
        20,
        tzinfo=UTC,
    )


def test_parse_until_time_rejects_garbage() -> None:
    with pytest.raises(LoopConfigError, match="--until-time"):
        parse_until_time("tomorrow")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("a\nb,c", ["a", "b,c"]),
        ("red,green blue", ["red", "green blue"]),
        ("one two", ["one", "two"]),
        ("solo", ["solo"]),
    ],
)
def test_split_items_prefers_newline_then_comma_then_space(
    value: str,
    expected: list[str],
) -> None:
    assert split_items(value) == expected


@pytest.mark.parametrize(
    ("literal", "digits"),
    [("1", 0), ("1.1", 1), ("0.25", 2), ("-2.50", 2), ("1.", 0), ("1.5e3", 1)],
)
def test_count_precision_counts_written_decimals(literal: str, digits: int) -> None:
    assert count_precision(literal) == digits


def test_parse_number_reports_option_name() -> None:
    assert parse_number("-2.5", option="--offset") == -2.5
    with pytest.raises(LoopConfigError, match="--num"):
        parse_number("ten", option="--num")


def test_parse_until_error_variants() -> None:
    assert parse_until_error("any") == UntilError()
    assert parse_until_error("") == UntilError()
    assert parse_until_error("3") == UntilError(code=3)
    with pytest.raises(LoopConfigError, match="'--'"):
        parse_until_error("exit")
    with pytest.raises(LoopConfigError, match="non-negative"):
        parse_until_error("-1")
