"""Parsers for loop option values (durations, timestamps, item lists)."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from shell_loop.engine.models import MINOR_ERROR, ExitCode, UntilError


class LoopConfigError(ValueError):
    """Invalid loop configuration, reported before any iteration runs."""

    def __init__(self, message: str, *, exit_code: ExitCode = MINOR_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code


_DURATION_PART = re.compile(r"\s*(\d+)\s*([a-zA-Zµ]+)\s*")

_UNIT_SECONDS = {
    "nsec": 1e-9,
    "ns": 1e-9,
    "usec": 1e-6,
    "us": 1e-6,
    "µs": 1e-6,
    "msec": 1e-3,
    "ms": 1e-3,
    "seconds": 1.0,
    "second": 1.0,
    "sec": 1.0,
    "s": 1.0,
    "minutes": 60.0,
    "minute": 60.0,
    "min": 60.0,
    "m": 60.0,
    "hours": 3_600.0,
    "hour": 3_600.0,
    "hr": 3_600.0,
    "h": 3_600.0,
    "days": 86_400.0,
    "day": 86_400.0,
    "d": 86_400.0,
    "weeks": 604_800.0,
    "week": 604_800.0,
    "w": 604_800.0,
    "months": 2_630_016.0,
    "month": 2_630_016.0,
    "M": 2_630_016.0,
    "years": 31_557_600.0,
    "year": 31_557_600.0,
    "y": 31_557_600.0,
}


def parse_duration(value: str, *, option: str = "duration") -> timedelta:
    """Parse humantime-style durations such as ``1m30s`` or ``1h1m1s1ms1us``."""

    text = value.strip()
    if not text:
        raise LoopConfigError(f"Bad {option}: empty duration.")

    seconds = 0.0
    position = 0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if match is None or match.end() == position:
            raise LoopConfigError(f"Bad {option}: {value!r} is not a duration (e.g. 5s, 1m30s).")
        amount, unit = match.groups()
        factor = _UNIT_SECONDS.get(unit)
        if factor is None:
            raise LoopConfigError(f"Bad {option}: unknown time unit {unit!r} in {value!r}.")
        seconds += int(amount) * factor
        position = match.end()
    return timedelta(seconds=seconds)


def parse_until_time(value: str) -> datetime:
    """Parse an RFC3339-like timestamp; naive values are taken as UTC."""

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as error:
        raise LoopConfigError(
            f"Bad --until-time: {value!r} (expected e.g. '2018-04-20 04:20:00').",
        ) from error
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def split_items(value: str) -> list[str]:
    """Split ``--for`` values on newlines, else commas, else spaces."""

    if "\n" in value:
        return value.split("\n")
    if "," in value:
        return value.split(",")
    return value.split(" ")


def count_precision(literal: str) -> int:
    """Number of fractional digits written in a ``--count-by`` literal."""

    point = literal.find(".")
    if point == -1:
        return 0
    exponent = re.search(r"[eE]", literal)
    end = exponent.start() if exponent else len(literal)
    return max(0, end - point - 1)


def parse_number(value: str, *, option: str) -> float:
    try:
        return float(value)
    except ValueError as error:
        raise LoopConfigError(f"Bad {option}: {value!r} is not a number.") from error


def parse_until_error(value: str) -> UntilError:
    """Bare ``--until-error`` means any failure; a number means that exact code."""

    if value == "" or value == "any":
        return UntilError()
    try:
        code = int(value)
    except ValueError as error:
        raise LoopConfigError(
            f"Bad --until-error: {value!r} is not an exit code. "
            "Use '--' to separate the command from options.",
        ) from error
    if code < 0:
        raise LoopConfigError(f"Bad --until-error: exit codes are non-negative, got {code}.")
    return UntilError(code=code)
