"""Output scanning and stop-predicate evaluation."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from typing import NamedTuple

from shell_loop.engine.models import CapturedOutput, RunState, StopConditions

PrintSink = Callable[[str], None]


class DeadlineCheck(NamedTuple):
    stop: bool
    timed_out: bool


def split_lines(text: str) -> Iterator[str]:
    """Yield newline-delimited lines; a trailing newline adds no empty line."""

    if not text:
        return
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    for part in parts:
        yield part.removesuffix("\r")


class OutputEvaluator:
    """Forward command output to the sink and track substring/regex matches.

    Matching is last-line-wins: every line overwrites ``has_matched``, so only
    the final line of an iteration decides. With ``only_last`` the final line
    is held back until ``emit_held`` is called at loop exit.
    """

    def __init__(self, conditions: StopConditions, sink: PrintSink) -> None:
        self.conditions = conditions
        self.sink = sink
        self.held_line: str | None = None

    def evaluate(self, text: str, state: RunState) -> None:
        contains = self.conditions.until_contains
        pattern = self.conditions.until_match
        for line in split_lines(text):
            if self.conditions.only_last:
                self.held_line = line
            else:
                self.sink(line)

            if contains is not None:
                state.has_matched = contains in line

            if pattern is not None:
                state.has_matched = pattern.search(line) is not None

    def forward(self, text: str) -> None:
        """Print a run that finished after the loop stopped.

        It is printed unless ``only_last`` is set, but it never replaces the
        held line or touches ``has_matched``.
        """

        if self.conditions.only_last:
            return
        for line in split_lines(text):
            self.sink(line)

    def emit_held(self) -> None:
        if self.held_line is not None:
            self.sink(self.held_line)
            self.held_line = None


def should_stop(
    *,
    current: CapturedOutput,
    prior: CapturedOutput | bytes | None,
    conditions: StopConditions,
    has_matched: bool,
) -> bool:
    """OR together every post-run stop predicate."""

    exit_code = current.exit_code
    if has_matched:
        return True
    if conditions.until_error is not None and conditions.until_error.matches(exit_code):
        return True
    if conditions.until_success and exit_code.success:
        return True
    if conditions.until_fail and not exit_code.success:
        return True
    return _output_comparison_stops(current.data, prior, conditions)


def _output_comparison_stops(
    current: bytes,
    prior: CapturedOutput | bytes | None,
    conditions: StopConditions,
) -> bool:
    if prior is None:
        return False
    previous = prior.data if isinstance(prior, CapturedOutput) else prior
    if conditions.until_changes and current != previous:
        return True
    return conditions.until_same and current == previous


def deadline_reached(
    *,
    conditions: StopConditions,
    elapsed: timedelta,
    now: datetime,
) -> DeadlineCheck:
    """Check the duration budget and absolute deadline before a run."""

    if conditions.for_duration is not None and elapsed >= conditions.for_duration:
        return DeadlineCheck(stop=True, timed_out=conditions.error_duration)
    if conditions.until_time is not None and now >= conditions.until_time:
        return DeadlineCheck(stop=True, timed_out=False)
    return DeadlineCheck(stop=False, timed_out=False)
