"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping

import pytest

from shell_loop.engine.environment import LOOP_VARS, loop_variables
from shell_loop.engine.models import CapturedOutput, ExitCode, IterationContext


def captured(text: str = "", code: int = 0) -> CapturedOutput:
    return CapturedOutput(exit_code=ExitCode(code), data=text.encode("utf-8"))


class ScriptedRunner:
    """In-memory runner returning a fixed sequence of results."""

    def __init__(self, results: Iterable[CapturedOutput]) -> None:
        self._results = list(results)
        self.calls: list[tuple[str, dict[str, str] | None]] = []

    def run(self, command_line: str, env: Mapping[str, str] | None = None) -> CapturedOutput:
        self.calls.append((command_line, dict(env) if env is not None else None))
        if not self._results:
            raise AssertionError("ScriptedRunner ran out of results")
        return self._results.pop(0)


class RecordingEnvironment:
    """Environment setter that only records what it was asked to expose."""

    def __init__(self, *, count_precision: int = 0) -> None:
        self.count_precision = count_precision
        self.applied: list[dict[str, str | None]] = []
        self.restored = False

    def apply(self, context: IterationContext) -> None:
        self.applied.append(loop_variables(context, self.count_precision))

    def restore(self) -> None:
        self.restored = True


class FakeClock:
    """Monotonic clock advanced only by ``sleep`` and explicit ``advance``."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def printed() -> list[str]:
    return []


@pytest.fixture()
def clean_loop_env(monkeypatch):
    """Remove loop variables so tests observe exactly what the loop sets."""
    for name in LOOP_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    assert not any(name in os.environ for name in LOOP_VARS)
